import ast
import logging
from typing import List

from ddd_auto_generator.ast_codegen.base import (
    create_ann_assign,
    create_assign,
    create_boolean_constant,
    create_class_def,
    create_docstring,
    create_module,
    create_string_constant,
)
from ddd_auto_generator.ast_codegen.context import GenerationContext, register_annotation_imports
from ddd_auto_generator.domain.imports import ImportSet
from ddd_auto_generator.domain.models import ColumnInfo, TableInfo
from ddd_auto_generator.domain.naming import NamingConventions

logger = logging.getLogger(__name__)


def create_enum_class(table: TableInfo, column: ColumnInfo) -> ast.ClassDef:
    """Creates ``class ProductStatusEnum(str, Enum)`` with one member per literal."""
    members: List[ast.stmt] = []
    seen = set()
    for literal in column.enum_values:
        member = NamingConventions.enum_member(literal)
        if member in seen:
            logger.warning(f"Enum literal '{literal}' of {table.name}.{column.name} collides with {member}, skipping")
            continue
        seen.add(member)
        members.append(create_assign(member, create_string_constant(literal)))

    return create_class_def(
        column.enum_type_name or NamingConventions.enum_class(table.name, column.name),
        ["str", "Enum"],
        [create_docstring(f"Allowed values of {table.name}.{column.name}.")] + members,
    )


def create_props_class(ctx: GenerationContext, table: TableInfo, imports: ImportSet) -> ast.ClassDef:
    """
    Creates the Props TypedDict of an entity.

    Keys are the Python field names of every column, tenant included;
    ``total=False`` because partial props are passed to updates and DTOs.
    """
    fields: List[ast.stmt] = []
    for column in table.columns:
        annotation = ctx.python_type(table.name, column)
        register_annotation_imports(imports, annotation)
        fields.append(create_ann_assign(column.field_name, annotation))

    imports.add("typing", "TypedDict")
    return create_class_def(
        NamingConventions.props_class(table.name),
        ["TypedDict"],
        [create_docstring(f"State of a {NamingConventions.class_name(table.name)}.")] + fields,
        keywords={"total": create_boolean_constant(False)},
    )


def generate_entity_ast(ctx: GenerationContext, table_name: str) -> ast.Module:
    """Generates the ``<entity>_entity`` module: enum classes, then the Props TypedDict."""
    table = ctx.table(table_name)
    imports = ImportSet()

    body: List[ast.stmt] = []
    for column in table.enum_columns:
        imports.add("enum", "Enum")
        body.append(create_enum_class(table, column))
    body.append(create_props_class(ctx, table, imports))

    return create_module(body, imports, docstring=f"Props and enums of the {NamingConventions.class_name(table_name)} entity.")


def generate_entity_code(ctx: GenerationContext, table_name: str) -> str:
    return ast.unparse(generate_entity_ast(ctx, table_name))
