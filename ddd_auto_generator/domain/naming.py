"""
Naming convention utilities for the domain artifact generator.

Schema names arrive in whatever style the schema author used (``audit_log``,
``isDefault``, ``Order Line``). Every synthesizer converts them through the
functions here so the same table or column always yields the same class,
module, attribute and key names.
"""

import re
from typing import Callable, Dict, List
import inflect

from ..constants import FieldNames


# Initialize inflect engine for pluralization
p = inflect.engine()


def _words(name: str) -> List[str]:
    """Split a name in any supported style into lower-case words."""
    if not isinstance(name, str):
        raise TypeError(f"Expected string, got {type(name).__name__}")

    name = re.sub("(.)([A-Z][a-z]+)", r"\1 \2", name)
    name = re.sub("([a-z0-9])([A-Z])", r"\1 \2", name)
    return [word.lower() for word in re.split(r"[^a-zA-Z0-9]+", name) if word]


def to_snake_case(name: str) -> str:
    """
    Convert any supported naming style to snake_case.

    Example:
        >>> to_snake_case("isDefault")
        'is_default'
        >>> to_snake_case("XMLHttpRequest")
        'xml_http_request'
    """
    return "_".join(_words(name))


def to_pascal_case(name: str) -> str:
    """
    Convert any supported naming style to PascalCase.

    Example:
        >>> to_pascal_case("audit_log")
        'AuditLog'
    """
    return "".join(word.capitalize() for word in _words(name))


def to_camel_case(name: str) -> str:
    pascal = to_pascal_case(name)
    return pascal[:1].lower() + pascal[1:]


def to_kebab_case(name: str) -> str:
    return "-".join(_words(name))


def to_constant_case(name: str) -> str:
    return "_".join(_words(name)).upper()


def to_sentence_case(name: str) -> str:
    """Human readable form used in error messages: ``is_default`` -> ``Is default``."""
    sentence = " ".join(_words(name))
    return sentence[:1].upper() + sentence[1:]


def _inflect_last_word(name: str, inflector: Callable[[str], str]) -> str:
    words = _words(name)
    if not words:
        return name
    words[-1] = inflector(words[-1])
    return "_".join(words)


def pluralize(name: str) -> str:
    """
    Pluralize the last word of a name, returning snake_case.

    Example:
        >>> pluralize("category")
        'categories'
        >>> pluralize("audit_log")
        'audit_logs'
    """
    return _inflect_last_word(name, p.plural_noun)


def singularize(name: str) -> str:
    """
    Singularize the last word of a name, returning snake_case.

    Names that are already singular are returned unchanged.
    """
    return _inflect_last_word(name, lambda word: p.singular_noun(word) or word)


def clean_field_name(name: str) -> str:
    """
    Ensure a column name becomes a valid Python identifier.

    The name is converted to snake_case, prefixed with an underscore when it
    starts with a digit, and suffixed with an underscore when it collides with
    a Python keyword.

    Example:
        >>> clean_field_name("class")
        'class_'
        >>> clean_field_name("123invalid")
        '_123invalid'
    """
    name = to_snake_case(name)
    if name and not name[0].isalpha():
        name = "_" + name

    if name in FieldNames.PYTHON_KEYWORDS:
        name += "_"

    return name if name else "_field"


def validate_python_identifier(name: str) -> bool:
    """Check if a string is a valid, non-keyword Python identifier."""
    if not name:
        return False
    return name.isidentifier() and name not in FieldNames.PYTHON_KEYWORDS


CASE_CONVERTERS: Dict[str, Callable[[str], str]] = {
    "snake": to_snake_case,
    "pascal": to_pascal_case,
    "camel": to_camel_case,
    "kebab": to_kebab_case,
    "constant": to_constant_case,
    "sentence": to_sentence_case,
    "plural": pluralize,
    "singular": singularize,
}


def case_convert(kind: str, text: str) -> str:
    """
    Convert ``text`` to the naming style named by ``kind``.

    Raises:
        ValueError: If ``kind`` is not a known naming style
    """
    try:
        converter = CASE_CONVERTERS[kind]
    except KeyError:
        raise ValueError(
            f"Unknown naming style '{kind}'. Expected one of: {', '.join(sorted(CASE_CONVERTERS))}"
        ) from None
    return converter(text)


class NamingConventions:
    """
    Names derived from a table, shared by every synthesizer.

    Keeping these in one place is what lets the aggregate import the value
    object module that the value-object synthesizer wrote.
    """

    @staticmethod
    def class_name(table_name: str) -> str:
        return to_pascal_case(table_name)

    @staticmethod
    def module_name(table_name: str) -> str:
        return clean_field_name(table_name)

    @staticmethod
    def plural_module_name(table_name: str) -> str:
        return pluralize(clean_field_name(table_name))

    @staticmethod
    def props_class(table_name: str) -> str:
        return f"{to_pascal_case(table_name)}Props"

    @staticmethod
    def identifier_class(table_name: str) -> str:
        return f"{to_pascal_case(table_name)}Identifier"

    @staticmethod
    def exception_class(table_name: str) -> str:
        return f"{to_pascal_case(table_name)}DomainException"

    @staticmethod
    def exception_message_class(table_name: str) -> str:
        return f"{to_pascal_case(table_name)}ExceptionMessage"

    @staticmethod
    def event_class(table_name: str, action: str) -> str:
        return f"{to_pascal_case(table_name)}{to_pascal_case(action)}Event"

    @staticmethod
    def enum_class(table_name: str, column_name: str) -> str:
        return f"{to_pascal_case(table_name)}{to_pascal_case(column_name)}Enum"

    @staticmethod
    def enum_member(literal: str) -> str:
        """Enum member key for a literal: upper case, non-identifier characters replaced."""
        member = re.sub(r"[^A-Z0-9_]", "_", literal.strip().upper())
        if not member or member[0].isdigit():
            member = "_" + member
        return member

    @staticmethod
    def event_type(table_name: str, action: str, version: str = "v1") -> str:
        """Event type string, e.g. ``product.created.v1``."""
        return f"{to_camel_case(table_name)}.{to_camel_case(action)}.{version}"
