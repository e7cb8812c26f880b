"""
Command and query definitions of an entity.

Commands carry the caller and the input of one aggregate operator; queries
carry the caller and the lookup parameters. Both are frozen dataclasses so
handlers can pass them around without copying.
"""

import ast
import logging
from typing import List, Optional, Sequence, Tuple

from ddd_auto_generator.ast_codegen.aggregate import CUSTOM_PARAM_TYPES
from ddd_auto_generator.ast_codegen.base import (
    create_ann_assign,
    create_call,
    create_class_def,
    create_constant,
    create_docstring,
    create_integer_constant,
    create_module,
    create_name,
)
from ddd_auto_generator.ast_codegen.context import AggregatePlan, GenerationContext, register_used_typing
from ddd_auto_generator.constants import DefaultConfig, OperationNames
from ddd_auto_generator.domain.imports import ImportSet
from ddd_auto_generator.domain.naming import NamingConventions, pluralize, to_pascal_case

logger = logging.getLogger(__name__)


FieldSpec = Tuple[str, str, Optional[ast.expr]]


def create_dataclass(name: str, docstring: str, fields: Sequence[FieldSpec]) -> ast.ClassDef:
    body: List[ast.stmt] = [create_docstring(docstring)]
    body.extend(create_ann_assign(field_name, annotation, default) for field_name, annotation, default in fields)
    decorator = create_call("dataclass", keywords={"frozen": create_constant(True)})
    return create_class_def(name, [], body, decorator_list=[decorator])


def default_factory(factory: str) -> ast.Call:
    return create_call("field", keywords={"default_factory": create_name(factory)})


def _key_type(ctx: GenerationContext, plan: AggregatePlan) -> str:
    return ctx.python_type(plan.table.name, plan.primary_key, optional=False)


def _module_prelude(ctx: GenerationContext, imports: ImportSet) -> None:
    imports.add("dataclasses", "dataclass")
    imports.add(ctx.shared_module("user_token"), "UserToken")


def generate_commands_ast(ctx: GenerationContext, table_name: str) -> ast.Module:
    plan = ctx.aggregate_plan(table_name)
    name = plan.class_name
    plural = to_pascal_case(pluralize(table_name))
    key = (plan.primary_key.field_name, _key_type(ctx, plan), None)
    user = ("user", "UserToken", None)
    props_class = NamingConventions.props_class(table_name)

    imports = ImportSet()
    _module_prelude(ctx, imports)
    classes: List[ast.ClassDef] = []

    if plan.can_create:
        imports.add(ctx.entity_module(table_name), props_class)
        classes.append(create_dataclass(f"Create{name}Command", f"Create one {name}.", [user, ("props", props_class, None)]))
        if not plan.config.is_cancelled(OperationNames.BATCH):
            classes.append(create_dataclass(
                f"BatchCreate{plural}Command", f"Create several {plural} in one request.",
                [user, ("items", f"List[{props_class}]", None)],
            ))
    if plan.can_update:
        classes.append(create_dataclass(
            f"Update{name}Command", f"Apply field changes to a {name}.",
            [user, key, ("changes", "Dict[str, Any]", None)],
        ))
    if plan.can_delete:
        classes.append(create_dataclass(f"Delete{name}Command", f"Mark a {name} for deletion.", [user, key]))
    if plan.has_enable:
        classes.append(create_dataclass(f"Enable{name}Command", f"Enable a {name}.", [user, key]))
        classes.append(create_dataclass(f"Disable{name}Command", f"Disable a {name}.", [user, key]))
    if plan.has_status:
        classes.append(create_dataclass(
            f"Update{name}StatusCommand", f"Move a {name} to another status.", [user, key, ("status", "str", None)]
        ))
    for rel in plan.collections:
        imports.add("dataclasses", "field")
        classes.append(create_dataclass(
            f"Manage{name}{to_pascal_case(rel.field_name)}Command",
            f"Add and remove {rel.field_name} of a {name} in one request.",
            [
                user, key,
                ("add", "List[Dict[str, Any]]", default_factory("list")),
                ("remove", "List[Any]", default_factory("list")),
            ],
        ))
    for api in plan.custom_apis:
        params = [(param, CUSTOM_PARAM_TYPES.get(kind, "str"), None) for param, kind in api.params]
        classes.append(create_dataclass(
            f"{name}{to_pascal_case(api.method_name)}Command",
            f"{api.http_method.upper()} {api.route}", [user, key] + params,
        ))

    for class_def in classes:
        register_used_typing(imports, class_def)
    return create_module(classes, imports, docstring=f"Commands accepted by the {name} aggregate.")


def generate_commands_code(ctx: GenerationContext, table_name: str) -> str:
    return ast.unparse(generate_commands_ast(ctx, table_name))


def generate_queries_ast(ctx: GenerationContext, table_name: str) -> ast.Module:
    plan = ctx.aggregate_plan(table_name)
    name = plan.class_name
    user = ("user", "UserToken", None)

    imports = ImportSet()
    _module_prelude(ctx, imports)
    imports.add("dataclasses", "field")
    classes: List[ast.ClassDef] = []

    if not plan.config.is_cancelled(OperationNames.GET):
        classes.append(create_dataclass(
            f"Get{name}Query", f"Load one {name} by its identifier.",
            [user, (plan.primary_key.field_name, _key_type(ctx, plan), None)],
        ))
    classes.append(create_dataclass(
        f"List{to_pascal_case(pluralize(table_name))}Query", f"Page through {pluralize(table_name)}, optionally filtered.",
        [
            user,
            ("tenant", "Optional[str]", create_constant(None)),
            ("filters", "Dict[str, Any]", default_factory("dict")),
            ("limit", "int", create_integer_constant(DefaultConfig.PAGE_SIZE)),
            ("offset", "int", create_integer_constant(0)),
        ],
    ))

    for class_def in classes:
        register_used_typing(imports, class_def)
    return create_module(classes, imports, docstring=f"Queries served for the {name} entity.")


def generate_queries_code(ctx: GenerationContext, table_name: str) -> str:
    return ast.unparse(generate_queries_ast(ctx, table_name))
