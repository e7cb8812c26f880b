"""
Aggregate Synthesizer.

Builds ``<Class>(AggregateRoot)`` for one eligible table from its
:class:`AggregatePlan`. Every operator checks the caller first, raises only
catalog-registered domain exceptions, re-validates state only when it
applies an event, and returns early without an event when nothing changes.
"""

import ast
import logging
from typing import List, Optional

from ddd_auto_generator.ast_codegen.base import (
    create_assign,
    create_attribute,
    create_bool_op,
    create_call,
    create_class_def,
    create_compare,
    create_constant,
    create_dict_comp,
    create_docstring,
    create_expr,
    create_for,
    create_function_def,
    create_if,
    create_if_exp,
    create_is_none,
    create_is_not_none,
    create_list,
    create_method_call,
    create_missing_test,
    create_module,
    create_not,
    create_return,
    create_string_constant,
    create_string_dict,
    create_subscript,
    create_super_call,
    create_try,
)
from ddd_auto_generator.ast_codegen.context import AggregatePlan, GenerationContext, register_used_typing
from ddd_auto_generator.ast_codegen.exceptions import create_domain_raise, create_required_raise
from ddd_auto_generator.ast_codegen.value_objects import HelperNames, create_duplicate_item_raise, key_field_keyword
from ddd_auto_generator.constants import ErrorStatus, FieldNames
from ddd_auto_generator.domain.imports import ImportSet
from ddd_auto_generator.domain.models import (
    ColumnInfo,
    IdentifierGeneration,
    ResolvedRelationship,
    ScalarType,
)
from ddd_auto_generator.domain.naming import NamingConventions, to_sentence_case
from ddd_auto_generator.exceptions import raise_code_generation_error

logger = logging.getLogger(__name__)


USER = ("user", "UserToken")
CUSTOM_PARAM_TYPES = {"string": "str", "number": "float"}


def unimplemented_rules(plan: AggregatePlan) -> List[str]:
    """Business rules the generated ``validate_state`` flags instead of enforcing."""
    rules = [f"{rel.field_name}_compatibility" for rel in plan.embedded]
    if plan.embedded or plan.collections:
        rules.append("entity_combinations")
    if plan.has_default:
        rules.append("active_dependency_before_deletion")
    return rules


class AggregateSynthesizer:
    """Builds the aggregate class of one table, accumulating its imports."""

    def __init__(self, ctx: GenerationContext, table_name: str):
        self.ctx = ctx
        self.plan = ctx.aggregate_plan(table_name)
        self.table = self.plan.table
        self.imports = ImportSet()
        self.name = self.plan.class_name
        if self.plan.primary_key is None:
            raise_code_generation_error(
                f"Table '{table_name}' has no single primary key", component="aggregate", table=table_name
            )
        self.key = self.plan.primary_key

    # --- Shared pieces ---------------------------------------------------------------

    def rule(self, key: str, message: str, description: str, status_code: int = ErrorStatus.BAD_REQUEST) -> ast.Raise:
        return create_domain_raise(self.ctx, self.imports, self.table.name, key, message, description, status_code)

    def user_check(self, key: str, action: str) -> ast.If:
        return create_if(
            create_is_none("user"),
            [self.rule(key, f"User is required for {action}", f"A user token must be provided to {action} a {self.name}")],
        )

    def required_raise(self, column: ColumnInfo) -> ast.Raise:
        return create_required_raise(self.ctx, self.imports, self.table.name, column)

    @property
    def aggregate_id(self) -> ast.expr:
        return create_attribute(f"self._{self.key.field_name}.value")

    def apply_event(self, action: str, props: ast.expr) -> ast.Expr:
        spec = self.plan.event(action)
        self.imports.add(self.ctx.events_module(self.table.name), spec.class_name)
        return create_expr(create_call("self.apply", [create_call(spec.class_name, ["user", self.aggregate_id, props])]))

    def validate_and_apply(self, action: str, props: ast.expr) -> List[ast.stmt]:
        return [create_expr(create_call("self.validate_state")), self.apply_event(action, props)]

    def member_type(self, column: ColumnInfo) -> str:
        """Annotation of the stored member of a column."""
        if column.is_pk:
            return NamingConventions.identifier_class(self.table.name)
        rel = self.ctx.managed_relationship_for(self.table.name, column)
        if rel is not None:
            class_name = self.ctx.value_object_class(rel)
            return f"Optional[{class_name}]" if not rel.is_collection and rel.nullable else class_name
        return self.ctx.python_type(self.table.name, column)

    def enum_class(self, column: ColumnInfo) -> str:
        self.imports.add(self.ctx.entity_module(self.table.name), column.enum_type_name)
        return column.enum_type_name

    def is_enum(self, column: ColumnInfo) -> bool:
        return column in self.table.enum_columns

    def plain(self, column: ColumnInfo, expr: ast.expr) -> ast.expr:
        """Event payload form of a member value: enums are sent as their value."""
        if self.is_enum(column):
            value = ast.Attribute(value=expr, attr="value", ctx=ast.Load())
            return create_if_exp(create_is_not_none(expr), value, create_constant(None))
        return expr

    # --- Construction -----------------------------------------------------------------

    def member_assignment(self, column: ColumnInfo) -> ast.Assign:
        target = f"self._{column.field_name}"
        raw = create_call("props.get", [create_string_constant(column.field_name)])
        if column.is_pk:
            identifier = NamingConventions.identifier_class(self.table.name)
            self.imports.add(self.ctx.identifier_module(self.table.name), identifier)
            return create_assign(target, create_call(f"{identifier}.create", [raw]))

        rel = self.ctx.managed_relationship_for(self.table.name, column)
        if rel is not None:
            class_name = self.ctx.value_object_class(rel)
            self.imports.add(self.ctx.value_object_module(self.table.name, rel), class_name)
            if rel.is_collection:
                return create_assign(target, create_call(class_name, [raw]))
            return create_assign(target, create_if_exp(create_is_not_none(raw), create_call(class_name, [raw]), create_constant(None)))

        if self.is_enum(column):
            return create_assign(target, create_call(f"self._parse_{column.field_name}", [raw]))
        return create_assign(target, raw)

    def create_init(self) -> ast.FunctionDef:
        body: List[ast.stmt] = [create_super_call("__init__")]
        body.extend(self.member_assignment(column) for column in self.ctx.members(self.table))
        body.append(create_expr(create_call("self.validate_state")))
        props_class = NamingConventions.props_class(self.table.name)
        self.imports.add(self.ctx.entity_module(self.table.name), props_class)
        return create_function_def("__init__", ["self", ("props", props_class)], body)

    def create_enum_parser(self, column: ColumnInfo) -> ast.FunctionDef:
        enum_class = self.enum_class(column)
        invalid = self.rule(
            f"invalid_{column.field_name}",
            f"Invalid {to_sentence_case(column.name).lower()} value",
            f"{to_sentence_case(column.name)} of a {self.name} must be one of: {', '.join(column.enum_values)}",
        )
        return create_function_def(
            f"_parse_{column.field_name}",
            [("value", "Any")],
            [
                create_if(create_is_none("value"), [create_return(create_constant(None))]),
                create_try([create_return(create_call(enum_class, ["value"]))], [("ValueError", None, [invalid])]),
            ],
            returns=f"Optional[{enum_class}]",
            decorators=["staticmethod"],
        )

    # --- Accessors ------------------------------------------------------------------------

    def create_properties(self) -> List[ast.stmt]:
        properties = [create_function_def(
            "get_id", ["self"], [create_return(f"self._{self.key.field_name}")],
            returns=NamingConventions.identifier_class(self.table.name),
        )]
        for column in self.ctx.members(self.table):
            properties.append(create_function_def(
                column.field_name, ["self"], [create_return(f"self._{column.field_name}")],
                returns=self.member_type(column), decorators=["property"],
            ))
        return properties

    # --- Field updates ------------------------------------------------------------------

    def active_default_rules(self, column: ColumnInfo) -> List[ast.stmt]:
        if not self.plan.has_active_default_rules:
            return []
        if column.field_name == FieldNames.ACTIVE:
            return [create_if(
                create_bool_op("and", [create_not("value"), f"self._{FieldNames.IS_DEFAULT}"]),
                [self.rule(
                    "cannot_deactivate_default",
                    f"Cannot deactivate the default {self.name}",
                    f"The default {self.name} must stay active; choose another default first",
                    ErrorStatus.CONFLICT,
                )],
            )]
        if column.field_name == FieldNames.IS_DEFAULT:
            return [create_if(
                create_bool_op("and", ["value", create_not(f"self._{FieldNames.ACTIVE}")]),
                [self.rule(
                    "cannot_set_inactive_as_default",
                    f"Cannot set an inactive {self.name} as default",
                    f"Only an active {self.name} can become the default",
                    ErrorStatus.CONFLICT,
                )],
            )]
        return []

    def create_field_update(self, column: ColumnInfo) -> ast.FunctionDef:
        field = column.field_name
        is_string = column.scalar_type is ScalarType.STRING
        body: List[ast.stmt] = [self.user_check("user_required_for_updates", "updates")]
        if column.is_required:
            body.append(create_if(create_missing_test("value", is_string), [self.required_raise(column)]))
        body.extend(self.active_default_rules(column))
        if self.is_enum(column):
            body.append(create_assign("value", create_call(f"self._parse_{field}", ["value"])))
        if is_string:
            body.append(create_if(
                create_call("isinstance", ["value", "str"]),
                [create_assign("value", create_call("value.strip"))],
            ))
        body.append(create_if(create_compare("value", "==", f"self._{field}"), [create_return()]))
        body.append(create_assign(f"self._{field}", create_attribute("value")))
        body.append(create_if(
            "emit_event",
            self.validate_and_apply("updated", create_string_dict([(field, self.plain(column, create_attribute("value")))])),
        ))

        value_type = "Any" if self.is_enum(column) else self.ctx.python_type(self.table.name, column)
        return create_function_def(
            f"update_{field}",
            ["self", USER, ("value", value_type), ("emit_event", "bool", create_constant(True))],
            body,
            returns="None",
        )

    def create_embedded_update(self, rel: ResolvedRelationship) -> ast.FunctionDef:
        field = rel.field_name
        class_name = self.ctx.value_object_class(rel)
        body: List[ast.stmt] = [self.user_check("user_required_for_updates", "updates")]
        if not rel.nullable:
            body.append(create_if(create_is_none("value"), [self.required_raise(rel.child_column_info)]))
        body.extend([
            create_assign("new_value", create_if_exp(
                create_is_not_none("value"), create_call(class_name, ["value"]), create_constant(None)
            )),
            create_if(create_compare("new_value", "==", f"self._{field}"), [create_return()]),
            create_assign(f"self._{field}", create_attribute("new_value")),
        ])
        body.extend(self.validate_and_apply("updated", create_string_dict([(field, create_if_exp(
            create_is_not_none("new_value"), create_attribute("new_value.value"), create_constant(None)
        ))])))
        return create_function_def(
            f"update_{field}", ["self", USER, ("value", "Optional[Dict[str, Any]]")], body, returns="None",
            docstring=f"Replace the embedded {NamingConventions.class_name(rel.parent_table)}.",
        )

    # --- Lifecycle operators ------------------------------------------------------------

    def create_toggle(self, method: str, target: bool) -> ast.FunctionDef:
        action = "enabled" if target else "disabled"
        field = f"self._{FieldNames.ENABLED}"
        unchanged = create_compare(field, "is", create_constant(target))
        body = [
            self.user_check(f"user_required_for_{method}", method),
            create_if(unchanged, [create_return()]),
            create_assign(field, create_constant(target)),
        ]
        body.extend(self.validate_and_apply(action, create_string_dict([(FieldNames.ENABLED, create_constant(target))])))
        return create_function_def(method, ["self", USER], body, returns="None")

    def create_status_update(self) -> ast.FunctionDef:
        column = next(column for column in self.table.enum_columns if column.field_name == FieldNames.STATUS)
        invalid = self.rule(
            f"invalid_{column.field_name}",
            f"Invalid {to_sentence_case(column.name).lower()} value",
            f"{to_sentence_case(column.name)} of a {self.name} must be one of: {', '.join(column.enum_values)}",
        )
        body = [
            self.user_check("user_required_for_status", "status changes"),
            create_if(create_is_none("status"), [invalid]),
            create_assign("new_status", create_call(f"self._parse_{column.field_name}", ["status"])),
            create_if(create_compare("new_status", "==", f"self._{column.field_name}"), [create_return()]),
            create_assign(f"self._{column.field_name}", create_attribute("new_status")),
        ]
        body.extend(self.validate_and_apply(
            "status_updated", create_string_dict([(column.field_name, create_attribute("new_status.value"))])
        ))
        return create_function_def(
            "update_status", ["self", USER, ("status", "Any")], body, returns="None",
            docstring="Change the status; an unchanged status is a no-op without an event.",
        )

    def create_mark_for_deletion(self) -> ast.FunctionDef:
        body: List[ast.stmt] = [self.user_check("user_required_for_deletion", "deletion")]
        if self.plan.has_default:
            body.append(create_if(f"self._{FieldNames.IS_DEFAULT}", [self.rule(
                "cannot_delete_default",
                f"Cannot delete the default {self.name}",
                f"The default {self.name} cannot be deleted; choose another default first",
                ErrorStatus.CONFLICT,
            )]))
        body.append(self.apply_event("deleted", create_call("self.to_props")))
        return create_function_def(
            "mark_for_deletion", ["self", USER], body, returns="None",
            docstring="Record the deletion request; removal itself happens downstream.",
        )

    # --- Collection operators -------------------------------------------------------------

    def create_collection_operators(self, rel: ResolvedRelationship) -> List[ast.FunctionDef]:
        item = self.plan.item_name(rel)
        plural = rel.field_name
        key = rel.key_field_name
        member = f"self._{plural}"
        user_key = f"user_required_for_{item}_operations"
        item_key = create_call(f"{item}.get", [create_string_constant(key)])

        add_body = [
            self.user_check(user_key, f"{item} operations"),
            create_if(
                create_bool_op("or", [create_not(create_call("isinstance", [item, "dict"])), create_is_none(item_key)]),
                [self.rule(
                    f"invalid_{item}_data",
                    f"Invalid {item} data",
                    f"A {item} must be an object carrying its {key}",
                )],
            ),
            create_if(create_call(f"{member}.contains", [item_key]), [
                create_duplicate_item_raise(self.ctx, self.imports, rel),
            ]),
            create_assign(member, create_call(f"{member}.add", [item])),
        ]
        add_body.extend(self.validate_and_apply(f"{item}_added", create_string_dict([(item, create_call("dict", [item]))])))

        remove_body: List[ast.stmt] = [
            self.user_check(user_key, f"{item} operations"),
            create_if(create_is_none(key), [self.rule(
                f"invalid_{item}_{key}_parameter",
                f"Invalid {item} {key}",
                f"A {key} must be given to remove a {item}",
            )]),
            create_if(create_not(create_call(f"{member}.contains", [key])), [create_return()]),
        ]
        if not rel.nullable:
            remove_body.append(create_if(
                create_compare(create_call("len", [member]), "<=", create_constant(1)),
                [self.rule(
                    f"{plural}_one_required",
                    f"At least one {item} is required",
                    f"A {self.name} must keep at least one {item}",
                )],
            ))
        remove_body.append(create_assign(member, create_call(f"{member}.remove", [key])))
        remove_body.extend(self.validate_and_apply(f"{item}_removed", create_string_dict([(key, create_attribute(key))])))

        bulk_body = [
            self.user_check(user_key, f"{item} operations"),
            create_for("key", create_bool_op("or", ["remove", create_list([])]), [
                create_expr(create_call(f"self.remove_{item}", ["user", "key"]))
            ]),
            create_for("item", create_bool_op("or", ["add", create_list([])]), [
                create_expr(create_call(f"self.add_{item}", ["user", "item"]))
            ]),
        ]

        return [
            create_function_def(
                f"add_{item}", ["self", USER, (item, "Dict[str, Any]")], add_body, returns="None",
                docstring=f"Add a {item}; a {item} with the same {key} is rejected.",
            ),
            create_function_def(f"remove_{item}", ["self", USER, (key, "Any")], remove_body, returns="None"),
            create_function_def(
                f"manage_{plural}_in_bulk",
                [
                    "self", USER,
                    ("add", "Optional[List[Dict[str, Any]]]", create_constant(None)),
                    ("remove", "Optional[List[Any]]", create_constant(None)),
                ],
                bulk_body,
                returns="None",
                docstring="Apply removals then additions through the single-item operators.",
            ),
        ]

    # --- Custom operators ---------------------------------------------------------------

    def create_custom_operators(self, api) -> List[ast.FunctionDef]:
        params = [(name, CUSTOM_PARAM_TYPES.get(kind, "str")) for name, kind in api.params]
        hook = f"_check_{api.method_name}_rules"
        body = [
            self.user_check("user_required_for_operation", "this operation"),
            create_expr(create_call(f"self.{hook}", ["user"] + [name for name, _ in params])),
            self.apply_event(api.method_name, create_string_dict([(name, create_attribute(name)) for name, _ in params])),
        ]
        operator = create_function_def(
            api.method_name, ["self", USER] + params, body, returns="None",
            docstring=f"{api.http_method.upper()} {api.route}",
        )
        hook_def = create_function_def(
            hook, ["self", USER] + params, [], returns="None",
            docstring=f"Business rules of {api.route}. Generated as a hook; override it to enforce them.",
        )
        return [operator, hook_def]

    # --- Invariants and conversion ---------------------------------------------------------

    def create_validate_state(self) -> ast.FunctionDef:
        body: List[ast.stmt] = []
        for column in self.ctx.simple_columns(self.table):
            if column.is_required:
                body.append(create_if(
                    create_missing_test(f"self._{column.field_name}", column.scalar_type is ScalarType.STRING),
                    [self.required_raise(column)],
                ))

        for rel in self.plan.embedded:
            names = HelperNames(rel.parent_table)
            self.imports.add(self.ctx.domain_helpers_module(rel.parent_table), names.validate)
            member = f"self._{rel.field_name}"
            if not rel.nullable:
                body.append(create_if(create_is_none(member), [self.required_raise(rel.child_column_info)]))
            body.append(create_if(
                create_is_not_none(member),
                [create_expr(create_call(names.validate, [f"{member}.value"], key_field_keyword(rel)))],
            ))

        for rel in self.plan.collections:
            names = HelperNames(rel.parent_table)
            validator = names.family_validate(rel.representation_mode)
            self.imports.add(self.ctx.domain_helpers_module(rel.parent_table), validator)
            body.append(create_expr(create_call(validator, [f"self._{rel.field_name}.value"], key_field_keyword(rel))))

        for rule in unimplemented_rules(self.plan):
            body.append(create_expr(create_call("self.flag_unimplemented_rule", [create_string_constant(rule)])))

        return create_function_def(
            "validate_state", ["self"], body, returns="None",
            docstring=f"Check the invariants of the {self.name}; called after every change that emits an event.",
        )

    def props_value(self, column: ColumnInfo) -> ast.expr:
        member = f"self._{column.field_name}"
        if column.is_pk:
            return create_attribute(f"{member}.value")
        rel = self.ctx.managed_relationship_for(self.table.name, column)
        if rel is not None and rel.is_collection:
            return create_attribute(f"{member}.value")
        if rel is not None:
            return create_if_exp(create_is_not_none(member), create_attribute(f"{member}.value"), create_constant(None))
        return create_attribute(member)

    def create_conversions(self) -> List[ast.FunctionDef]:
        props_class = NamingConventions.props_class(self.table.name)
        self.imports.add("enum", "Enum")
        to_props = create_function_def(
            "to_props", ["self"],
            [create_return(create_string_dict([
                (column.field_name, self.props_value(column)) for column in self.ctx.members(self.table)
            ]))],
            returns=props_class,
        )
        to_dto = create_function_def(
            "to_dto", ["self"],
            [create_return(create_dict_comp(
                "key",
                create_if_exp(create_call("isinstance", ["value", "Enum"]), create_attribute("value.value"), create_attribute("value")),
                "key, value",
                _method_on_call("self.to_props", "items"),
            ))],
            returns="Dict[str, Any]",
            docstring="Plain dict of the current state, enums as their values.",
        )
        from_entity = create_function_def(
            "from_entity", ["cls", ("props", props_class)], [create_return(create_call("cls", ["props"]))],
            returns=f'"{self.name}"', decorators=["classmethod"],
            docstring="Rebuild an aggregate from stored props without emitting events.",
        )
        return [to_props, to_dto, from_entity]

    def create_factory(self) -> ast.FunctionDef:
        identifier = NamingConventions.identifier_class(self.table.name)
        pk_field = create_string_constant(self.key.field_name)
        body: List[ast.stmt] = [
            self.user_check("user_required_for_operation", "this operation"),
            create_assign("props", create_call("dict", ["props"])),
        ]
        if self.key.identifier_generation is IdentifierGeneration.RANDOM:
            body.append(create_if(
                create_is_none(create_call("props.get", [pk_field])),
                [create_assign(
                    create_subscript("props", pk_field, store=True),
                    _method_on_call(f"{identifier}.generate", None, attr="value"),
                )],
            ))
        spec = self.plan.event("created")
        self.imports.add(self.ctx.events_module(self.table.name), spec.class_name)
        body.extend([
            create_assign("aggregate", create_call("cls", ["props"])),
            create_expr(create_call("aggregate.apply", [create_call(spec.class_name, [
                "user",
                _method_on_call("aggregate.get_id", None, attr="value"),
                create_call("aggregate.to_props"),
            ])])),
            create_return("aggregate"),
        ])
        return create_function_def(
            "create", ["cls", USER, ("props", NamingConventions.props_class(self.table.name))], body,
            returns=f'"{self.name}"', decorators=["classmethod"],
            docstring=f"Create a new {self.name} and record its creation event.",
        )

    # --- Assembly -------------------------------------------------------------------------

    def build_class(self) -> ast.ClassDef:
        plan = self.plan
        body: List[ast.stmt] = [
            create_docstring(f"Aggregate root of the {self.name} entity."),
            self.create_init(),
        ]
        body.extend(self.create_enum_parser(column) for column in self.table.enum_columns
                    if column in self.ctx.members(self.table))
        body.extend(self.create_properties())

        if plan.can_create:
            body.append(self.create_factory())
        body.extend(self.create_field_update(column) for column in plan.updatable_columns)
        if plan.can_update:
            body.extend(self.create_embedded_update(rel) for rel in plan.embedded)
        if plan.has_enable:
            body.append(self.create_toggle("enable", True))
            body.append(self.create_toggle("disable", False))
        if plan.has_status:
            body.append(self.create_status_update())
        if plan.can_delete:
            body.append(self.create_mark_for_deletion())
        for rel in plan.collections:
            body.extend(self.create_collection_operators(rel))
        for api in plan.custom_apis:
            body.extend(self.create_custom_operators(api))

        body.append(self.create_validate_state())
        body.extend(self.create_conversions())

        self.imports.add(self.ctx.shared_module("aggregate_root"), "AggregateRoot")
        self.imports.add(self.ctx.shared_module("user_token"), "UserToken")
        class_def = create_class_def(self.name, ["AggregateRoot"], body)
        register_used_typing(self.imports, class_def)
        return class_def


def _method_on_call(func: str, method: Optional[str], attr: Optional[str] = None) -> ast.expr:
    """``func().method()`` or ``func().attr``."""
    call = create_call(func)
    if method is not None:
        return create_method_call(call, method)
    return ast.Attribute(value=call, attr=attr, ctx=ast.Load())


def generate_aggregate_ast(ctx: GenerationContext, table_name: str) -> ast.Module:
    synthesizer = AggregateSynthesizer(ctx, table_name)
    class_def = synthesizer.build_class()
    return create_module([class_def], synthesizer.imports, docstring=f"{synthesizer.name} aggregate.")


def generate_aggregate_code(ctx: GenerationContext, table_name: str) -> str:
    return ast.unparse(generate_aggregate_ast(ctx, table_name))
