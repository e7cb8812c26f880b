import ast
import logging
from typing import List

from ddd_auto_generator.ast_codegen.base import (
    create_ann_assign,
    create_class_def,
    create_docstring,
    create_module,
    create_string_constant,
)
from ddd_auto_generator.ast_codegen.context import AggregatePlan, EventSpec, GenerationContext
from ddd_auto_generator.domain.imports import ImportSet
from ddd_auto_generator.domain.naming import NamingConventions

logger = logging.getLogger(__name__)


def base_event_class(table_name: str) -> str:
    return f"{NamingConventions.class_name(table_name)}DomainEvent"


def create_base_event_class(plan: AggregatePlan) -> ast.ClassDef:
    return create_class_def(
        base_event_class(plan.table.name),
        ["DomainEvent"],
        [
            create_docstring(f"Base class of every event emitted by the {plan.class_name} aggregate."),
            create_ann_assign("aggregate_type", "ClassVar[str]", create_string_constant(plan.class_name)),
        ],
    )


def create_event_class(plan: AggregatePlan, spec: EventSpec) -> ast.ClassDef:
    return create_class_def(
        spec.class_name,
        [base_event_class(plan.table.name)],
        [
            create_docstring(spec.description),
            create_ann_assign("event_type", "ClassVar[str]", create_string_constant(spec.event_type)),
        ],
    )


def generate_events_ast(ctx: GenerationContext, table_name: str) -> ast.Module:
    """
    Generates the events module of an entity.

    The event list comes from the aggregate plan, so every class here is
    applied by some aggregate operator and no operator applies a missing one.
    """
    plan = ctx.aggregate_plan(table_name)
    imports = ImportSet()
    imports.add("typing", "ClassVar")
    imports.add(ctx.shared_module("domain_event"), "DomainEvent")

    body: List[ast.stmt] = [create_base_event_class(plan)]
    body.extend(create_event_class(plan, spec) for spec in plan.events)
    return create_module(body, imports, docstring=f"Domain events of the {plan.class_name} aggregate.")


def generate_events_code(ctx: GenerationContext, table_name: str) -> str:
    return ast.unparse(generate_events_ast(ctx, table_name))
