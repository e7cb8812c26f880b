import ast
import logging
from typing import Optional

from black import FileMode, InvalidInput, NothingChanged, format_str

from ddd_auto_generator.constants import DefaultConfig


logger = logging.getLogger(__name__)


def format_python_code_using_black(
    code_string: str, line_length: int = DefaultConfig.LINE_LENGTH, label: Optional[str] = None
) -> str:
    """Formats the given Python code using Black."""
    try:
        formatted_code = format_str(code_string, mode=FileMode(line_length=line_length))
        logger.debug(f"Formatted code using Black: {label or '<module>'}")
        return formatted_code
    except NothingChanged:
        logger.debug(f"Black formatter did not change the code: {label or '<module>'}")
        return code_string
    except InvalidInput as e:
        logger.error(f"Could not format Python code using Black ({label or '<module>'}): {e}")
        logger.warning("Writing unformatted Python code due to Black error.")
        return code_string


def render_module(
    module: ast.Module,
    format_code: bool = DefaultConfig.FORMAT_CODE,
    line_length: int = DefaultConfig.LINE_LENGTH,
    label: Optional[str] = None,
) -> str:
    """Unparse a generated module and, unless disabled, run it through Black."""
    code = ast.unparse(module) + "\n"
    if format_code:
        code = format_python_code_using_black(code, line_length, label)
    return code
