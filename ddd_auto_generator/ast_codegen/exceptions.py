"""
Error catalog and domain exception artifacts.

Synthesizers never build a domain raise by hand: they call
:func:`create_domain_raise` (or :func:`create_required_raise`), which
registers the catalog entry and returns the ``raise`` statement in one step.
The catalog module of an entity is rendered after every other artifact of
that entity, from whatever was registered.
"""

import ast
import logging
from typing import Iterable, List, Set

from ddd_auto_generator.ast_codegen.base import (
    create_assign,
    create_attribute,
    create_boolean_constant,
    create_call,
    create_class_def,
    create_constant,
    create_docstring,
    create_function_def,
    create_integer_constant,
    create_keyword,
    create_module,
    create_raise,
    create_string_constant,
    create_super_call,
)
from ddd_auto_generator.ast_codegen.context import GenerationContext
from ddd_auto_generator.constants import ErrorStatus
from ddd_auto_generator.domain.imports import ImportSet
from ddd_auto_generator.domain.models import ColumnInfo, ScalarType
from ddd_auto_generator.domain.naming import NamingConventions

logger = logging.getLogger(__name__)


REQUIRED_KINDS = {
    ScalarType.STRING: "string",
    ScalarType.NUMBER: "number",
    ScalarType.BOOLEAN: "boolean",
}


def _exception_imports(ctx: GenerationContext, imports: ImportSet, table_name: str) -> None:
    imports.add(ctx.domain_exception_module(table_name), NamingConventions.exception_class(table_name))
    imports.add(ctx.exception_message_module(table_name), NamingConventions.exception_message_class(table_name))


def _raise_node(table_name: str, key: str) -> ast.Raise:
    message = create_attribute(f"{NamingConventions.exception_message_class(table_name)}.{key}")
    return create_raise(create_call(NamingConventions.exception_class(table_name), [message]))


def create_domain_raise(
    ctx: GenerationContext,
    imports: ImportSet,
    table_name: str,
    key: str,
    message: str,
    description: str,
    status_code: int = ErrorStatus.BAD_REQUEST,
) -> ast.Raise:
    """
    Register a rule in the catalog of ``table_name`` and build its raise.

    Generated form: ``raise ProductDomainException(ProductExceptionMessage.<key>)``
    """
    ctx.catalog.register(table_name, key, message, description, status_code=status_code)
    _exception_imports(ctx, imports, table_name)
    return _raise_node(table_name, key)


def create_required_raise(ctx: GenerationContext, imports: ImportSet, table_name: str, column: ColumnInfo) -> ast.Raise:
    """Register and raise the field-required rule of a column."""
    key = ctx.catalog.register_required(table_name, column.name, REQUIRED_KINDS.get(column.scalar_type, "value"))
    _exception_imports(ctx, imports, table_name)
    return _raise_node(table_name, key)


def collect_error_references(modules: Iterable[ast.Module], table_name: str) -> Set[str]:
    """Keys referenced as ``<Class>ExceptionMessage.<key>`` in generated modules."""
    catalog_class = NamingConventions.exception_message_class(table_name)
    references = set()
    for module in modules:
        for node in ast.walk(module):
            if (
                isinstance(node, ast.Attribute)
                and isinstance(node.value, ast.Name)
                and node.value.id == catalog_class
            ):
                references.add(node.attr)
    return references


# --- Catalog module ---------------------------------------------------------------

def create_exception_message_entry(ctx: GenerationContext, table_name: str, key: str) -> ast.Assign:
    definition = ctx.catalog.get(table_name, key)
    value = create_call("ExceptionMessage", keywords=[
        create_keyword("message", create_string_constant(definition.message)),
        create_keyword("description", create_string_constant(definition.description)),
        create_keyword("code", create_string_constant(definition.code)),
        create_keyword("exception", create_string_constant(definition.exception)),
        create_keyword("status_code", create_integer_constant(definition.status_code)),
        create_keyword("domain", create_boolean_constant(definition.domain)),
    ])
    return create_assign(key, value)


def generate_exception_message_ast(ctx: GenerationContext, table_name: str) -> ast.Module:
    """Catalog class of an entity, one ``ExceptionMessage`` attribute per registered rule."""
    imports = ImportSet().add(ctx.shared_module("domain_exception"), "ExceptionMessage")
    class_name = NamingConventions.exception_message_class(table_name)
    body: List[ast.stmt] = [
        create_docstring(f"Error catalog of the {NamingConventions.class_name(table_name)} entity.")
    ]
    body.extend(create_exception_message_entry(ctx, table_name, key) for key in ctx.catalog.keys(table_name))
    return create_module([create_class_def(class_name, [], body)], imports)


def generate_exception_message_code(ctx: GenerationContext, table_name: str) -> str:
    return ast.unparse(generate_exception_message_ast(ctx, table_name))


# --- Domain exception module ------------------------------------------------------

def generate_domain_exception_ast(ctx: GenerationContext, table_name: str) -> ast.Module:
    class_name = NamingConventions.class_name(table_name)
    imports = ImportSet()
    imports.add(ctx.shared_module("domain_exception"), "DomainException", "ExceptionMessage")
    imports.add("typing", "Any", "Dict", "Optional")

    init = create_function_def(
        "__init__",
        [
            "self",
            ("exception_message", "ExceptionMessage"),
            ("details", "Optional[Dict[str, Any]]", create_constant(None)),
        ],
        [
            create_super_call("__init__", ["exception_message", create_string_constant(class_name), "details"])
        ],
    )
    exception_class = create_class_def(
        NamingConventions.exception_class(table_name),
        ["DomainException"],
        [create_docstring(f"Domain rule violation raised by {class_name} artifacts."), init],
    )
    return create_module([exception_class], imports)


def generate_domain_exception_code(ctx: GenerationContext, table_name: str) -> str:
    return ast.unparse(generate_domain_exception_ast(ctx, table_name))
