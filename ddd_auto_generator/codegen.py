"""
Jinja2 rendering of the shared infrastructure modules.

Everything entity specific is built as ``ast`` trees; the handful of modules
every generated service shares (aggregate root, domain event, domain
exception, identifier base, user token) are plain templates.
"""

import logging
from pathlib import Path
from typing import Any, Dict, List

from jinja2 import Environment, FileSystemLoader, StrictUndefined, select_autoescape
from jinja2 import ext as jinja2_extensions

from ddd_auto_generator.codegen_utils import format_python_code_using_black
from ddd_auto_generator.constants import SHARED_TEMPLATES, DefaultConfig, OutputLayout
from ddd_auto_generator.domain.models import GeneratedArtifact, SchemaInfo
from ddd_auto_generator.domain.naming import pluralize, singularize, to_kebab_case, to_pascal_case, to_snake_case


logger = logging.getLogger(__name__)

# Define the path to the templates directory relative to this file
TEMPLATE_DIR = Path(__file__).parent / "templates"


def setup_jinja_env() -> Environment:
    """Sets up and returns the Jinja2 environment."""
    env = Environment(
        loader=FileSystemLoader(TEMPLATE_DIR),
        # Templates render Python source, never markup
        autoescape=select_autoescape(["html", "xml"], default_for_string=False, default=False),
        trim_blocks=True,
        lstrip_blocks=True,
        keep_trailing_newline=True,
        undefined=StrictUndefined,
        extensions=[jinja2_extensions.loopcontrols],
    )
    env.filters["repr"] = repr
    env.filters["pluralize"] = pluralize
    env.filters["singularize"] = singularize
    env.filters["snake"] = to_snake_case
    env.filters["pascal"] = to_pascal_case
    env.filters["kebab"] = to_kebab_case
    return env


def render_template(
    env: Environment,
    template_name: str,
    context: Dict[str, Any],
    format_code: bool = DefaultConfig.FORMAT_CODE,
    line_length: int = DefaultConfig.LINE_LENGTH,
) -> str:
    """Renders a Jinja template; Python output is formatted with Black."""
    rendered_content = env.get_template(template_name).render(context)
    if format_code and template_name.endswith(".py.j2"):
        logger.debug(f"Formatting Python code using Black: {template_name}")
        return format_python_code_using_black(rendered_content, line_length, template_name)
    return rendered_content


def generate_shared_artifacts(
    env: Environment,
    schema: SchemaInfo,
    format_code: bool = DefaultConfig.FORMAT_CODE,
    line_length: int = DefaultConfig.LINE_LENGTH,
) -> List[GeneratedArtifact]:
    """Render every shared infrastructure template for the service."""
    context = {"service": schema.service}
    artifacts = []
    for template_name, file_name in SHARED_TEMPLATES.items():
        code = render_template(env, template_name, context, format_code, line_length)
        artifacts.append(GeneratedArtifact(
            parts=(OutputLayout.SHARED, file_name), code=code, component="shared", table_name=None
        ))
        logger.debug(f"Rendered shared module: {file_name}")
    return artifacts
