"""
Generates pydantic request/response models for an entity's API surface.
"""

import ast
import logging
from typing import List, Optional

from ddd_auto_generator.ast_codegen.base import (
    create_ann_assign,
    create_assign,
    create_call,
    create_class_def,
    create_constant,
    create_docstring,
    create_module,
    create_name,
    create_string_constant,
)
from ddd_auto_generator.ast_codegen.context import GenerationContext, register_used_typing
from ddd_auto_generator.constants import OperationNames
from ddd_auto_generator.domain.imports import ImportSet
from ddd_auto_generator.domain.models import ColumnInfo, IdentifierGeneration, RepresentationMode, TableInfo
from ddd_auto_generator.domain.naming import NamingConventions, pluralize, to_pascal_case, to_sentence_case

logger = logging.getLogger(__name__)


def dto_names(table_name: str) -> dict:
    name = NamingConventions.class_name(table_name)
    return {
        "create": f"Create{name}Dto",
        "update": f"Update{name}Dto",
        "batch": f"BatchCreate{to_pascal_case(pluralize(table_name))}Dto",
        "response": f"{name}ResponseDto",
    }


def create_model_config(**options) -> ast.Assign:
    return create_assign("model_config", create_call(
        "ConfigDict", keywords={key: create_constant(value) for key, value in options.items()}
    ))


class DtoSynthesizer:
    """Field declarations shared by the create, update and response models."""

    def __init__(self, ctx: GenerationContext, table_name: str):
        self.ctx = ctx
        self.table: TableInfo = ctx.table(table_name)
        self.config = ctx.config(table_name)
        self.imports = ImportSet()
        self.names = dto_names(table_name)

    def annotation(self, column: ColumnInfo, optional: Optional[bool] = None) -> str:
        if column in self.table.enum_columns:
            self.imports.add(self.ctx.entity_module(self.table.name), column.enum_type_name)
        return self.ctx.python_type(self.table.name, column, optional=optional)

    def field(self, column: ColumnInfo, annotation: str, default: Optional[ast.expr]) -> ast.AnnAssign:
        """``name: annotation = default``, through ``Field`` when an alias or factory is needed."""
        keywords = {}
        if column.name != column.field_name:
            keywords["alias"] = create_string_constant(column.name)
        if isinstance(default, ast.Name):
            keywords["default_factory"] = default
            default = None
        if keywords:
            if default is not None:
                keywords = {"default": default, **keywords}
            self.imports.add("pydantic", "Field")
            return create_ann_assign(column.field_name, annotation, create_call("Field", keywords=keywords))
        return create_ann_assign(column.field_name, annotation, default)

    def create_fields(self) -> List[ast.stmt]:
        fields = []
        for column in self.ctx.members(self.table):
            rel = self.ctx.managed_relationship_for(self.table.name, column)
            if column.is_pk and column.identifier_generation is IdentifierGeneration.RANDOM:
                fields.append(self.field(column, self.annotation(column, optional=True), create_constant(None)))
            elif rel is not None and rel.is_collection:
                factory = "list" if rel.representation_mode is RepresentationMode.LIST else "dict"
                fields.append(self.field(column, self.annotation(column), create_name(factory)))
            elif column.is_pk or column.is_required:
                fields.append(self.field(column, self.annotation(column, optional=False), None))
            else:
                fields.append(self.field(column, self.annotation(column, optional=True), create_constant(None)))
        return fields

    def update_fields(self) -> List[ast.stmt]:
        return [
            self.field(column, self.annotation(column, optional=True), create_constant(None))
            for column in self.ctx.members(self.table) if not column.is_pk
        ]

    def response_fields(self) -> List[ast.stmt]:
        fields = []
        for column in self.ctx.members(self.table):
            rel = self.ctx.managed_relationship_for(self.table.name, column)
            if column.is_pk or column.is_required or (rel is not None and rel.is_collection):
                fields.append(self.field(column, self.annotation(column, optional=False), None))
            else:
                fields.append(self.field(column, self.annotation(column, optional=True), create_constant(None)))
        return fields

    def model(self, name: str, docstring: str, config: ast.Assign, fields: List[ast.stmt]) -> ast.ClassDef:
        return create_class_def(name, ["BaseModel"], [create_docstring(docstring), config] + fields)

    def build(self) -> ast.Module:
        entity = NamingConventions.class_name(self.table.name)
        request_config = dict(extra="forbid", populate_by_name=True)
        body: List[ast.stmt] = []

        if not self.config.is_cancelled(OperationNames.CREATE):
            body.append(self.model(
                self.names["create"], f"Request body to create a {entity}.",
                create_model_config(**request_config), self.create_fields(),
            ))
            if not self.config.is_cancelled(OperationNames.BATCH):
                body.append(self.model(
                    self.names["batch"], f"Request body to create several {to_sentence_case(pluralize(self.table.name)).lower()} at once.",
                    create_model_config(extra="forbid"),
                    [create_ann_assign("items", f"List[{self.names['create']}]")],
                ))
        if not self.config.is_cancelled(OperationNames.UPDATE):
            body.append(self.model(
                self.names["update"], f"Partial update of a {entity}; omitted fields are left unchanged.",
                create_model_config(**request_config), self.update_fields(),
            ))
        body.append(self.model(
            self.names["response"], f"{entity} as returned by the API.",
            create_model_config(from_attributes=True, populate_by_name=True), self.response_fields(),
        ))

        self.imports.add("pydantic", "BaseModel", "ConfigDict")
        for node in body:
            register_used_typing(self.imports, node)
        return create_module(body, self.imports, docstring=f"Request and response models of the {entity} API.")


def generate_dto_ast(ctx: GenerationContext, table_name: str) -> ast.Module:
    return DtoSynthesizer(ctx, table_name).build()


def generate_dto_code(ctx: GenerationContext, table_name: str) -> str:
    return ast.unparse(generate_dto_ast(ctx, table_name))
