"""
Permission constants of an entity.

``<Class>Permissions`` is a string enum holding one permission per exposed
operation, each ``<prefix>.<action>``. The prefix comes from the entity's
permissions configuration and falls back to the kebab-case table name.
"""

import ast
import logging
from typing import List, Tuple

from ddd_auto_generator.ast_codegen.base import (
    create_assign,
    create_bool_op,
    create_call,
    create_class_def,
    create_docstring,
    create_function_def,
    create_is_not_none,
    create_list_comp,
    create_module,
    create_return,
    create_string_constant,
)
from ddd_auto_generator.ast_codegen.context import GenerationContext
from ddd_auto_generator.constants import OperationNames
from ddd_auto_generator.domain.imports import ImportSet
from ddd_auto_generator.domain.models import RepresentationMode
from ddd_auto_generator.domain.naming import NamingConventions, singularize, to_constant_case, to_kebab_case

logger = logging.getLogger(__name__)


def permission_prefix(ctx: GenerationContext, table_name: str) -> str:
    return ctx.config(table_name).permissions.prefix or to_kebab_case(table_name)


def permission_entries(ctx: GenerationContext, table_name: str) -> List[Tuple[str, str]]:
    """(member, value) pairs in declaration order."""
    table = ctx.table(table_name)
    config = ctx.config(table_name)
    plan = ctx.aggregate_plan(table_name)
    prefix = permission_prefix(ctx, table_name)
    entries: List[Tuple[str, str]] = []

    def add(action: str) -> None:
        entries.append((to_constant_case(action.replace(".", " ")), f"{prefix}.{action}"))

    if table.indexes or not config.is_cancelled(OperationNames.GET) or not config.is_cancelled(OperationNames.BATCH):
        add("read")
    for operation in OperationNames.LIFECYCLE:
        if not config.is_cancelled(operation):
            add(operation)
    if not config.is_cancelled(OperationNames.UPDATE):
        if plan.has_status:
            add("update.status")
        if plan.has_enable:
            add("update.enabled")
        for rel in plan.collections:
            if rel.representation_mode is RepresentationMode.LIST:
                item = to_kebab_case(singularize(rel.field_name))
                add(f"{item}.add")
                add(f"{item}.remove")
    for api in plan.custom_apis:
        add(to_kebab_case(api.method_name))
    return entries


def generate_permissions_ast(ctx: GenerationContext, table_name: str) -> ast.Module:
    class_name = f"{NamingConventions.class_name(table_name)}Permissions"
    body: List[ast.stmt] = [create_docstring(
        f"Permissions guarding the {NamingConventions.class_name(table_name)} operations."
    )]
    body.extend(create_assign(member, create_string_constant(value)) for member, value in permission_entries(ctx, table_name))

    body.append(create_function_def(
        "allows", ["self", ("user", "Optional[UserToken]")],
        [create_return(create_bool_op("and", [
            create_is_not_none("user"),
            create_call("user.has_permission", ["self.value"]),
        ]))],
        returns="bool",
    ))
    body.append(create_function_def(
        "granted_to", ["cls", ("user", "Optional[UserToken]")],
        [create_return(create_list_comp(
            "permission", "permission", "cls", conditions=[create_call("permission.allows", ["user"])]
        ))],
        returns=f'List["{class_name}"]',
        decorators=["classmethod"],
        docstring="Permissions of this entity held by the user.",
    ))

    imports = ImportSet()
    imports.add("enum", "Enum")
    imports.add("typing", "List", "Optional")
    imports.add(ctx.shared_module("user_token"), "UserToken")
    return create_module([create_class_def(class_name, ["str", "Enum"], body)], imports)


def generate_permissions_code(ctx: GenerationContext, table_name: str) -> str:
    return ast.unparse(generate_permissions_ast(ctx, table_name))
