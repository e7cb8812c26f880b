"""
Persistence mapping synthesizer.

``<Class>Mapping`` converts aggregate props to a storage record and back.
Collections follow the relationship's persistence mode: a managed join
stores only the referenced keys under ``record["_joins"]``, an inline
collection keeps raw keys (list) or keyed objects (map) in the column
itself. The domain side always gets the shape the aggregate expects.
"""

import ast
import logging
from typing import List

from ddd_auto_generator.ast_codegen.base import (
    create_assign,
    create_bool_op,
    create_call,
    create_class_def,
    create_constant,
    create_dict,
    create_dict_comp,
    create_docstring,
    create_function_def,
    create_if,
    create_if_exp,
    create_is_none,
    create_is_not_none,
    create_list,
    create_list_comp,
    create_method_call,
    create_module,
    create_name,
    create_return,
    create_string_constant,
    create_subscript,
)
from ddd_auto_generator.ast_codegen.context import GenerationContext, register_used_typing
from ddd_auto_generator.ast_codegen.exceptions import create_domain_raise
from ddd_auto_generator.constants import ErrorStatus
from ddd_auto_generator.domain.imports import ImportSet
from ddd_auto_generator.domain.models import (
    ColumnInfo,
    PersistenceMode,
    RepresentationMode,
    ResolvedRelationship,
)
from ddd_auto_generator.domain.naming import NamingConventions

logger = logging.getLogger(__name__)


JOINS_KEY = "_joins"


def join_name(rel: ResolvedRelationship) -> str:
    """Key of a managed join inside ``record["_joins"]``."""
    return f"{NamingConventions.module_name(rel.parent_table)}_{rel.field_name}"


def _get(container: str, key: str) -> ast.Call:
    return create_call(f"{container}.get", [create_string_constant(key)])


def _or_empty(value: ast.expr, empty: ast.expr) -> ast.expr:
    return create_bool_op("or", [value, empty])


def create_plain_helper() -> ast.FunctionDef:
    return create_function_def(
        "_plain",
        [("value", "Any")],
        [create_return(create_if_exp(
            create_call("isinstance", ["value", "Enum"]), "value.value", "value"
        ))],
        returns="Any",
    )


def create_resolve_helper() -> ast.FunctionDef:
    """
    ``_resolve_item(resolve, table, key_field, key)``: the referenced item for
    a stored key, or a key-only item when no resolver is given or it finds nothing.
    """
    key_only = create_dict([(create_name("key_field"), create_name("key"))])
    return create_function_def(
        "_resolve_item",
        [("resolve", "Optional[Resolver]"), ("table", "str"), ("key_field", "str"), ("key", "Any")],
        [
            create_if(create_is_none("resolve"), [create_return(key_only)]),
            create_assign("item", create_call("resolve", ["table", "key_field", "key"])),
            create_return(create_if_exp(create_is_not_none("item"), create_call("dict", ["item"]), key_only)),
        ],
        returns="Dict[str, Any]",
    )


class MappingSynthesizer:
    """Builds the mapping class of one table."""

    def __init__(self, ctx: GenerationContext, table_name: str):
        self.ctx = ctx
        self.table = ctx.table(table_name)
        self.imports = ImportSet()
        self.class_name = f"{NamingConventions.class_name(table_name)}Mapping"

    def relationship(self, column: ColumnInfo):
        return self.ctx.managed_relationship_for(self.table.name, column)

    # --- props -> record ------------------------------------------------------------

    def record_value(self, column: ColumnInfo) -> List[ast.stmt]:
        value = _get("props", column.field_name)
        target = create_subscript("record", create_string_constant(column.name), store=True)
        rel = self.relationship(column)

        if rel is None:
            if column.is_structured:
                self.imports.add("copy")
                return [create_assign(target, create_call("copy.deepcopy", [value]))]
            return [create_assign(target, create_call("_plain", [value]))]

        key = create_string_constant(rel.key_field_name)
        if rel.persistence_mode is PersistenceMode.EMBEDDED or rel.representation_mode is RepresentationMode.EMBEDDED:
            self.imports.add("copy")
            return [create_assign(target, create_call("copy.deepcopy", [value]))]

        if rel.representation_mode is RepresentationMode.LIST:
            keys = create_list_comp(create_subscript("item", key), "item", _or_empty(value, create_list([])))
        else:
            keys = create_call("list", [create_method_call(_or_empty(value, create_dict([])), "keys")])

        if rel.persistence_mode is PersistenceMode.JOIN:
            join_target = create_subscript("joins", create_string_constant(join_name(rel)), store=True)
            return [create_assign(join_target, keys)]

        if rel.representation_mode is RepresentationMode.MAP:
            keyed = create_dict_comp(
                "key", create_call("dict", ["item"]), "key, item",
                create_method_call(_or_empty(value, create_dict([])), "items"),
            )
            return [create_assign(target, keyed)]
        return [create_assign(target, keys)]

    def create_to_record(self) -> ast.FunctionDef:
        body: List[ast.stmt] = [
            create_assign("record", create_dict([])),
            create_assign("joins", create_dict([])),
        ]
        for column in self.table.columns:
            body.extend(self.record_value(column))
        body.append(create_if("joins", [
            create_assign(create_subscript("record", create_string_constant(JOINS_KEY), store=True), create_name("joins"))
        ]))
        body.append(create_return("record"))
        return create_function_def(
            "to_record", [("props", NamingConventions.props_class(self.table.name))], body,
            returns="Dict[str, Any]", decorators=["staticmethod"],
            docstring="Storage record of an aggregate's props, keyed by column name.",
        )

    # --- record -> props ------------------------------------------------------------

    def resolved(self, rel: ResolvedRelationship, key: str) -> ast.Call:
        return create_call("_resolve_item", [
            "resolve",
            create_string_constant(rel.parent_table),
            create_string_constant(rel.key_field_name),
            key,
        ])

    def props_value(self, column: ColumnInfo) -> ast.expr:
        value = _get("record", column.name)
        rel = self.relationship(column)
        if rel is None:
            if column.is_structured:
                self.imports.add("copy")
                return create_call("copy.deepcopy", [value])
            return value
        if rel.representation_mode is RepresentationMode.EMBEDDED:
            self.imports.add("copy")
            return create_call("copy.deepcopy", [value])

        if rel.persistence_mode is PersistenceMode.JOIN:
            keys = _or_empty(
                create_call("joins.get", [create_string_constant(join_name(rel))]),
                create_list([]),
            )
            if rel.representation_mode is RepresentationMode.LIST:
                return create_list_comp(self.resolved(rel, "key"), "key", keys)
            return create_dict_comp("key", self.resolved(rel, "key"), "key", keys)

        if rel.representation_mode is RepresentationMode.LIST:
            return create_list_comp(self.resolved(rel, "key"), "key", _or_empty(value, create_list([])))
        return create_dict_comp(
            "key", create_call("dict", ["item"]), "key, item",
            create_method_call(_or_empty(value, create_dict([])), "items"),
        )

    def create_from_record(self) -> ast.FunctionDef:
        not_found = create_domain_raise(
            self.ctx, self.imports, self.table.name, "not_found",
            f"{NamingConventions.class_name(self.table.name)} not found",
            f"No stored {NamingConventions.class_name(self.table.name)} matches the requested identifier",
            ErrorStatus.NOT_FOUND,
        )
        props = create_dict([
            (create_string_constant(column.field_name), self.props_value(column)) for column in self.table.columns
        ])
        body: List[ast.stmt] = [create_if(create_is_none("record"), [not_found])]
        if any(rel.persistence_mode is PersistenceMode.JOIN for rel in self.ctx.managed_relationships(self.table.name)):
            body.append(create_assign("joins", _or_empty(
                create_call("record.get", [create_string_constant(JOINS_KEY)]), create_dict([])
            )))
        body.append(create_return(props))
        return create_function_def(
            "from_record",
            [("record", "Optional[Dict[str, Any]]"), ("resolve", "Optional[Resolver]", create_constant(None))],
            body,
            returns=NamingConventions.props_class(self.table.name),
            decorators=["staticmethod"],
            docstring=(
                "Aggregate props of a stored record.\n\n"
                "``resolve(table, key_field, key)`` loads referenced items for stored keys; "
                "without it collection items carry their key only."
            ),
        )

    def build(self) -> ast.Module:
        primary_key = self.table.primary_key
        class_def = create_class_def(self.class_name, [], [
            create_docstring(f"Maps {NamingConventions.class_name(self.table.name)} props to '{self.table.name}' records."),
            create_assign("table_name", create_string_constant(self.table.name)),
            create_assign("primary_key", create_string_constant(primary_key.name)),
            self.create_to_record(),
            self.create_from_record(),
        ])

        self.imports.add("enum", "Enum")
        self.imports.add("typing", "Any", "Callable", "Dict", "Optional")
        self.imports.add(self.ctx.entity_module(self.table.name), NamingConventions.props_class(self.table.name))
        resolver_alias = create_assign("Resolver", create_subscript(
            "Callable", ast.Tuple(elts=[
                ast.List(elts=[create_name("str"), create_name("str"), create_name("Any")], ctx=ast.Load()),
                create_subscript("Optional", create_subscript("Dict", ast.Tuple(elts=[create_name("str"), create_name("Any")], ctx=ast.Load()))),
            ], ctx=ast.Load()),
        ))
        body = [resolver_alias, create_plain_helper(), create_resolve_helper(), class_def]
        for node in body:
            register_used_typing(self.imports, node)
        return create_module(
            body, self.imports,
            docstring=f"Persistence mapping of the {NamingConventions.class_name(self.table.name)} aggregate.",
        )


def generate_mapping_ast(ctx: GenerationContext, table_name: str) -> ast.Module:
    return MappingSynthesizer(ctx, table_name).build()


def generate_mapping_code(ctx: GenerationContext, table_name: str) -> str:
    return ast.unparse(generate_mapping_ast(ctx, table_name))
