"""
Value object synthesizer.

Two kinds of modules come out of here:

* ``<entity>_domain`` in the value_objects package of every eligible entity
  and of every table another aggregate holds by value: equality,
  normalization and validation helpers for one structured value of that
  entity, plus the array/record helper families when some other entity
  holds it as a list or keyed map. Helper families are emitted once per
  referenced entity, however many columns reference it; each helper takes a
  ``key_field`` naming the key the caller identifies values by, which
  defaults to the primary key.
* ``<parent>_list`` / ``<parent>_set`` / ``<parent>_value`` in the
  value_objects package of the referencing entity: the objects the
  aggregate stores for list, map and embedded relationships.
"""

import ast
import logging
from typing import Dict, List, Tuple

from ddd_auto_generator.ast_codegen.base import (
    create_assign,
    create_bin_op,
    create_bool_op,
    create_call,
    create_class_def,
    create_compare,
    create_constant,
    create_dict,
    create_dict_comp,
    create_docstring,
    create_expr,
    create_for,
    create_function_def,
    create_generator_exp,
    create_if,
    create_is_none,
    create_list,
    create_list_comp,
    create_method_call,
    create_missing_test,
    create_module,
    create_name,
    create_not,
    create_return,
    create_string_constant,
    create_subscript,
    create_tuple,
    create_tuple_of_strings,
)
from ddd_auto_generator.ast_codegen.context import AggregatePlan, GenerationContext
from ddd_auto_generator.ast_codegen.exceptions import create_domain_raise, create_required_raise
from ddd_auto_generator.domain.imports import ImportSet
from ddd_auto_generator.domain.models import RepresentationMode, ResolvedRelationship, ScalarType, TableInfo
from ddd_auto_generator.domain.naming import NamingConventions, to_sentence_case
from ddd_auto_generator.constants import ErrorStatus, OutputLayout

logger = logging.getLogger(__name__)


ITEM = "Dict[str, Any]"
ARRAY = "List[Dict[str, Any]]"
RECORD = "Dict[Any, Dict[str, Any]]"

# Name of the parameter selecting the key a referenced value is identified by
KEY_FIELD = "key_field"


class HelperNames:
    """Function names of the helper module of one entity."""

    def __init__(self, table_name: str):
        self.entity = NamingConventions.module_name(table_name)
        self.plural = NamingConventions.plural_module_name(table_name)

    @property
    def equals(self) -> str:
        return f"{self.entity}_equals"

    @property
    def to(self) -> str:
        return f"to_{self.entity}"

    @property
    def validate(self) -> str:
        return f"validate_{self.entity}"

    @property
    def compared_fields(self) -> str:
        return f"{self.entity.upper()}_COMPARED_FIELDS"

    def family(self, mode: RepresentationMode) -> str:
        return f"array_of_{self.plural}" if mode is RepresentationMode.LIST else f"record_of_{self.plural}"

    def family_to(self, mode: RepresentationMode) -> str:
        return f"to_{self.family(mode)}"

    def family_validate(self, mode: RepresentationMode) -> str:
        return f"validate_{self.family(mode)}"

    def family_equals(self, mode: RepresentationMode) -> str:
        return f"{self.family(mode)}_equals"

    def family_clone(self, mode: RepresentationMode) -> str:
        return f"clone_{self.family(mode)}"

    def family_empty(self, mode: RepresentationMode) -> str:
        return f"empty_{self.family(mode)}"

    def family_has_changes(self, mode: RepresentationMode) -> str:
        return f"{self.family(mode)}_has_changes"


# --- Helper module ----------------------------------------------------------------

def _compared_fields(ctx: GenerationContext, table: TableInfo) -> List[str]:
    return [column.field_name for column in ctx.members(table) if not column.is_structured]


def create_equals_function(names: HelperNames, class_name: str) -> ast.FunctionDef:
    field_matches = create_generator_exp(
        create_compare(create_call("a.get", ["field"]), "==", create_call("b.get", ["field"])),
        "field",
        names.compared_fields,
    )
    return create_function_def(
        names.equals,
        [("a", f"Optional[{ITEM}]"), ("b", f"Optional[{ITEM}]")],
        [
            create_if(
                create_bool_op("or", [create_is_none("a"), create_is_none("b")]),
                [create_return(create_compare("a", "is", "b"))],
            ),
            create_return(create_call("all", [field_matches])),
        ],
        returns="bool",
        docstring=f"Compare two {class_name} values field by field, ignoring structured fields.",
    )


def _key_field_arg(table: TableInfo) -> Tuple[str, str, ast.expr]:
    return (KEY_FIELD, "str", create_string_constant(table.primary_key.field_name))


def key_field_keyword(rel: ResolvedRelationship) -> Dict[str, ast.expr]:
    """``key_field=<natural key>`` for calls into the helpers of the referenced entity."""
    return {KEY_FIELD: create_string_constant(rel.key_field_name)}


def create_to_function(ctx: GenerationContext, imports: ImportSet, table: TableInfo,
                       names: HelperNames) -> ast.FunctionDef:
    """
    ``to_<entity>`` normalizes one value to a dict.

    A bare string becomes ``{<key_field>: value}`` only when that key is a
    string; any other scalar cannot be resolved to a full value and is
    rejected.
    """
    class_name = NamingConventions.class_name(table.name)
    keys = ctx.reference_keys(table.name)
    string_keys = [column.field_name for column in keys if column.scalar_type is ScalarType.STRING]
    body: List[ast.stmt] = [
        create_if(create_call("isinstance", ["value", "dict"]), [create_return(create_call("dict", ["value"]))]),
    ]

    convert = create_return(create_dict([(create_name(KEY_FIELD), create_name("value"))]))
    if len(string_keys) == len(keys):
        string_branch = [convert]
    else:
        reject = create_domain_raise(
            ctx, imports, table.name, "invalid_string_conversion",
            f"{class_name} cannot be created from a string",
            f"A {class_name} is identified by a non-string key, so a bare string cannot be converted to it",
        )
        if string_keys:
            string_branch = [create_if(create_compare(KEY_FIELD, "in", create_tuple_of_strings(string_keys)), [convert]),
                             reject]
        else:
            string_branch = [reject]
    body.append(create_if(create_call("isinstance", ["value", "str"]), string_branch))
    body.append(create_domain_raise(
        ctx, imports, table.name, "invalid_input_type_for_conversion",
        f"Invalid input type for {class_name} conversion",
        f"A {class_name} value must be an object with its fields",
    ))

    return create_function_def(names.to, [("value", "Any"), _key_field_arg(table)], body, returns=ITEM)


def create_validate_function(ctx: GenerationContext, imports: ImportSet, table: TableInfo,
                             names: HelperNames) -> ast.FunctionDef:
    """
    ``validate_<entity>`` normalizes one value, then checks the key it is
    identified by and every required scalar field of the entity.
    """
    keys = ctx.reference_keys(table.name)
    required = [
        column for column in ctx.members(table)
        if column.is_required and not column.is_pk and not column.is_structured
    ]
    required_names = {column.name for column in required}

    body: List[ast.stmt] = [create_assign("item", create_call(names.to, ["value", KEY_FIELD]))]
    for column in keys:
        if column.name in required_names:
            continue
        missing = create_missing_test(
            create_call("item.get", [create_string_constant(column.field_name)]),
            column.scalar_type is ScalarType.STRING,
        )
        if len(keys) > 1:
            # only the key the caller identifies values by must be present
            missing = create_bool_op("and", [
                create_compare(KEY_FIELD, "==", create_string_constant(column.field_name)), missing,
            ])
        body.append(create_if(missing, [create_required_raise(ctx, imports, table.name, column)]))

    for column in required:
        body.append(create_if(
            create_missing_test(
                create_call("item.get", [create_string_constant(column.field_name)]),
                column.scalar_type is ScalarType.STRING,
            ),
            [create_required_raise(ctx, imports, table.name, column)],
        ))
    body.append(create_return("item"))

    return create_function_def(
        names.validate,
        [("value", "Any"), _key_field_arg(table)],
        body,
        returns=ITEM,
        docstring=f"Normalize a {NamingConventions.class_name(table.name)} value and check its key and required fields.",
    )


def create_array_family(ctx: GenerationContext, imports: ImportSet, table: TableInfo,
                        names: HelperNames) -> List[ast.stmt]:
    mode = RepresentationMode.LIST
    class_name = NamingConventions.class_name(table.name)
    key_arg = _key_field_arg(table)
    invalid = create_domain_raise(
        ctx, imports, table.name, "invalid_array_of_input_type",
        f"Invalid input type for a list of {class_name}",
        f"A list of {class_name} values must be given as a list",
    )
    to_array = create_function_def(
        names.family_to(mode),
        [("value", "Any"), key_arg],
        [
            create_if(create_is_none("value"), [create_return(create_list([]))]),
            create_if(create_not(create_call("isinstance", ["value", create_tuple(["list", "tuple"])])), [invalid]),
            create_return(create_list_comp(create_call(names.to, ["item", KEY_FIELD]), "item", "value")),
        ],
        returns=ARRAY,
    )
    validate_array = create_function_def(
        names.family_validate(mode),
        [("value", "Any"), key_arg],
        [create_return(create_list_comp(
            create_call(names.validate, ["item", KEY_FIELD]), "item",
            create_call(names.family_to(mode), ["value", KEY_FIELD]),
        ))],
        returns=ARRAY,
    )
    equals = create_function_def(
        names.family_equals(mode),
        [("a", "Any"), ("b", "Any"), key_arg],
        [
            create_assign("left", create_call(names.family_to(mode), ["a", KEY_FIELD])),
            create_assign("right", create_call(names.family_to(mode), ["b", KEY_FIELD])),
            create_if(
                create_compare(create_call("len", ["left"]), "!=", create_call("len", ["right"])),
                [create_return(create_constant(False))],
            ),
            create_return(create_call("all", [create_generator_exp(
                create_call(names.equals, ["x", "y"]), "x, y", create_call("zip", ["left", "right"])
            )])),
        ],
        returns="bool",
        docstring="Element-wise comparison; order matters.",
    )
    return [to_array, validate_array, equals] + _clone_empty_changes(table, names, mode, ARRAY, create_list([]))


def create_record_family(ctx: GenerationContext, imports: ImportSet, table: TableInfo,
                         names: HelperNames) -> List[ast.stmt]:
    mode = RepresentationMode.MAP
    class_name = NamingConventions.class_name(table.name)
    key_arg = _key_field_arg(table)
    invalid = create_domain_raise(
        ctx, imports, table.name, "invalid_record_of_input_type",
        f"Invalid input type for a keyed set of {class_name}",
        f"A keyed set of {class_name} values must be given as an object or a list",
    )
    to_record = create_function_def(
        names.family_to(mode),
        [("value", "Any"), key_arg],
        [
            create_if(create_is_none("value"), [create_return(create_dict([]))]),
            create_if(
                create_call("isinstance", ["value", create_tuple(["list", "tuple"])]),
                [
                    create_assign("items", create_list_comp(create_call(names.to, ["item", KEY_FIELD]), "item", "value")),
                    create_return(create_dict_comp(create_call("item.get", [KEY_FIELD]), "item", "item", "items")),
                ],
            ),
            create_if(create_not(create_call("isinstance", ["value", "dict"])), [invalid]),
            create_return(create_dict_comp(
                "key", create_call(names.to, ["item", KEY_FIELD]), "key, item", create_call("value.items"),
            )),
        ],
        returns=RECORD,
        docstring=f"Normalize to a dict of {class_name} values; lists are keyed on the fly by ``key_field``.",
    )
    validate_record = create_function_def(
        names.family_validate(mode),
        [("value", "Any"), key_arg],
        [create_return(create_dict_comp(
            "key", create_call(names.validate, ["item", KEY_FIELD]), "key, item",
            create_method_call(create_call(names.family_to(mode), ["value", KEY_FIELD]), "items"),
        ))],
        returns=RECORD,
    )
    equals = create_function_def(
        names.family_equals(mode),
        [("a", "Any"), ("b", "Any"), key_arg],
        [
            create_assign("left", create_call(names.family_to(mode), ["a", KEY_FIELD])),
            create_assign("right", create_call(names.family_to(mode), ["b", KEY_FIELD])),
            create_if(
                create_compare(create_call("left.keys"), "!=", create_call("right.keys")),
                [create_return(create_constant(False))],
            ),
            create_return(create_call("all", [create_generator_exp(
                create_call(names.equals, [
                    create_subscript("left", create_name("key")),
                    create_subscript("right", create_name("key")),
                ]),
                "key",
                "left",
            )])),
        ],
        returns="bool",
        docstring="Key-wise comparison; insertion order is ignored.",
    )
    return [to_record, validate_record, equals] + _clone_empty_changes(table, names, mode, RECORD, create_dict([]))


def _clone_empty_changes(table: TableInfo, names: HelperNames, mode: RepresentationMode, annotation: str,
                         empty_value: ast.expr) -> List[ast.stmt]:
    key_arg = _key_field_arg(table)
    clone = create_function_def(
        names.family_clone(mode),
        [("value", "Any"), key_arg],
        [create_return(create_call("copy.deepcopy", [create_call(names.family_to(mode), ["value", KEY_FIELD])]))],
        returns=annotation,
    )
    empty = create_function_def(names.family_empty(mode), [], [create_return(empty_value)], returns=annotation)
    has_changes = create_function_def(
        names.family_has_changes(mode),
        [("current", "Any"), ("incoming", "Any"), key_arg],
        [create_return(create_not(create_call(names.family_equals(mode), ["current", "incoming", KEY_FIELD])))],
        returns="bool",
    )
    return [clone, empty, has_changes]


def generate_domain_helpers_ast(ctx: GenerationContext, table_name: str) -> ast.Module:
    """Generates ``<entity>_domain``: single-value helpers plus the referenced collection families."""
    table = ctx.table(table_name)
    names = HelperNames(table_name)
    imports = ImportSet()
    imports.add("typing", "Any", "Dict", "Optional")

    body: List[ast.stmt] = [
        create_assign(names.compared_fields, create_tuple_of_strings(_compared_fields(ctx, table))),
        create_equals_function(names, NamingConventions.class_name(table_name)),
        create_to_function(ctx, imports, table, names),
        create_validate_function(ctx, imports, table, names),
    ]

    modes = ctx.referenced_modes(table_name)
    if RepresentationMode.LIST in modes:
        imports.add("typing", "List")
        body.extend(create_array_family(ctx, imports, table, names))
    if RepresentationMode.MAP in modes:
        body.extend(create_record_family(ctx, imports, table, names))
    if modes:
        imports.add("copy")

    return create_module(
        body, imports,
        docstring=f"Helpers for {NamingConventions.class_name(table_name)} values held by other aggregates.",
    )


def generate_domain_helpers_code(ctx: GenerationContext, table_name: str) -> str:
    return ast.unparse(generate_domain_helpers_ast(ctx, table_name))


# --- Relationship value objects -------------------------------------------------------

def _key_lookup(rel: ResolvedRelationship, item: str = "item") -> ast.Call:
    return create_call(f"{item}.get", [create_string_constant(rel.key_field_name)])


def create_duplicate_item_raise(ctx: GenerationContext, imports: ImportSet, rel: ResolvedRelationship) -> ast.Raise:
    """Rejects a second item with the same key; raised by the aggregate and by the list object."""
    item = AggregatePlan.item_name(rel)
    return create_domain_raise(
        ctx, imports, rel.child_table, f"duplicate_{item}",
        f"{to_sentence_case(item)} already exists",
        f"The {NamingConventions.class_name(rel.child_table)} already holds a {item} with this {rel.key_field_name}",
        ErrorStatus.CONFLICT,
    )


def _common_methods(class_name: str, names: HelperNames, mode: RepresentationMode) -> List[ast.stmt]:
    return [
        create_function_def(
            "equals",
            ["self", ("other", "Any")],
            [create_return(create_bool_op("and", [
                create_call("isinstance", ["other", class_name]),
                create_call(names.family_equals(mode), ["self._items", "other._items"]),
            ]))],
            returns="bool",
        ),
        create_function_def("is_empty", ["self"], [create_return(create_not("self._items"))], returns="bool"),
        create_function_def("__len__", ["self"], [create_return(create_call("len", ["self._items"]))], returns="int"),
        create_function_def("__eq__", ["self", ("other", "Any")], [create_return(create_call("self.equals", ["other"]))],
                            returns="bool"),
    ]


def create_list_value_object(ctx: GenerationContext, rel: ResolvedRelationship) -> Tuple[ast.ClassDef, ImportSet]:
    class_name = ctx.value_object_class(rel)
    names = HelperNames(rel.parent_table)
    mode = RepresentationMode.LIST
    returns = f'"{class_name}"'
    imports = ImportSet()
    imports.add("typing", "Any", "Dict", "Iterator", "List", "Optional")
    imports.add("copy")
    imports.add(ctx.domain_helpers_module(rel.parent_table), names.family_validate(mode),
                names.family_clone(mode), names.family_equals(mode))

    get_body = [
        create_for("item", "self._items", [
            create_if(create_compare(_key_lookup(rel), "==", "key"), [create_return(create_call("copy.deepcopy", ["item"]))]),
        ]),
        create_return(create_constant(None)),
    ]
    body: List[ast.stmt] = [
        create_docstring(
            f"Ordered {NamingConventions.class_name(rel.parent_table)} references, unique by {rel.key_field_name}. "
            f"Operations return new instances."
        ),
        create_function_def(
            "__init__", ["self", ("items", f"Optional[{ARRAY}]", create_constant(None))],
            [
                create_assign("self._items", create_call(
                    names.family_validate(mode), ["items"], key_field_keyword(rel),
                )),
                create_assign("keys", create_call("self.keys")),
                create_if(
                    create_compare(create_call("len", [create_call("set", ["keys"])]), "!=", create_call("len", ["keys"])),
                    [create_duplicate_item_raise(ctx, imports, rel)],
                ),
            ],
        ),
        create_function_def(
            "value", ["self"], [create_return(create_call(names.family_clone(mode), ["self._items"]))],
            returns=ARRAY, decorators=["property"],
        ),
        create_function_def(
            "keys", ["self"], [create_return(create_list_comp(_key_lookup(rel), "item", "self._items"))],
            returns="List[Any]",
        ),
        create_function_def(
            "contains", ["self", ("key", "Any")], [create_return(create_compare("key", "in", create_call("self.keys")))],
            returns="bool",
        ),
        create_function_def("get", ["self", ("key", "Any")], get_body, returns=f"Optional[{ITEM}]"),
        create_function_def(
            "add", ["self", ("item", ITEM)],
            [create_return(create_call(class_name, [create_bin_op("self.value", "+", create_list(["item"]))]))],
            returns=returns,
        ),
        create_function_def(
            "remove", ["self", ("key", "Any")],
            [create_return(create_call(class_name, [create_list_comp(
                "item", "item", "self.value", [create_compare(_key_lookup(rel), "!=", "key")]
            )]))],
            returns=returns,
        ),
        create_function_def(
            "merge", ["self", ("other", returns)],
            [create_return(create_call(class_name, [create_bin_op("self.value", "+", create_list_comp(
                "item", "item", "other.value",
                [create_not(create_call("self.contains", [_key_lookup(rel)]))],
            ))]))],
            returns=returns,
            docstring="Append the items of ``other`` whose key is not present yet.",
        ),
        create_function_def(
            "__iter__", ["self"], [create_return(create_call("iter", ["self.value"]))],
            returns=f"Iterator[{ITEM}]",
        ),
    ]
    body.extend(_common_methods(class_name, names, mode))
    return create_class_def(class_name, [], body), imports


def create_set_value_object(ctx: GenerationContext, rel: ResolvedRelationship) -> Tuple[ast.ClassDef, ImportSet]:
    class_name = ctx.value_object_class(rel)
    names = HelperNames(rel.parent_table)
    mode = RepresentationMode.MAP
    returns = f'"{class_name}"'
    imports = ImportSet()
    imports.add("typing", "Any", "Dict", "Iterator", "List", "Optional")
    imports.add("copy")
    imports.add(ctx.domain_helpers_module(rel.parent_table), names.validate, names.family_validate(mode),
                names.family_clone(mode), names.family_equals(mode))

    key_of_normalized = create_call("normalized.get", [create_string_constant(rel.key_field_name)])
    body: List[ast.stmt] = [
        create_docstring(
            f"{NamingConventions.class_name(rel.parent_table)} values keyed by {rel.key_field_name}. "
            f"Operations return new instances."
        ),
        create_function_def(
            "__init__", ["self", ("items", f"Optional[{RECORD}]", create_constant(None))],
            [create_assign("self._items", create_call(names.family_validate(mode), ["items"], key_field_keyword(rel)))],
        ),
        create_function_def(
            "value", ["self"], [create_return(create_call(names.family_clone(mode), ["self._items"]))],
            returns=RECORD, decorators=["property"],
        ),
        create_function_def("keys", ["self"], [create_return(create_call("list", ["self._items"]))], returns="List[Any]"),
        create_function_def(
            "contains", ["self", ("key", "Any")], [create_return(create_compare("key", "in", "self._items"))],
            returns="bool",
        ),
        create_function_def(
            "get", ["self", ("key", "Any")],
            [
                create_if(create_compare("key", "not in", "self._items"), [create_return(create_constant(None))]),
                create_return(create_call("copy.deepcopy", [create_subscript("self._items", create_name("key"))])),
            ],
            returns=f"Optional[{ITEM}]",
        ),
        create_function_def(
            "add", ["self", ("item", ITEM)],
            [
                create_assign("normalized", create_call(names.validate, ["item"], key_field_keyword(rel))),
                create_assign("items", "self.value"),
                create_assign(create_subscript("items", key_of_normalized, store=True), create_name("normalized")),
                create_return(create_call(class_name, ["items"])),
            ],
            returns=returns,
        ),
        create_function_def(
            "remove", ["self", ("key", "Any")],
            [create_return(create_call(class_name, [create_dict_comp(
                "item_key", "item", "item_key, item", create_call("self.value.items"),
                [create_compare("item_key", "!=", "key")],
            )]))],
            returns=returns,
        ),
        create_function_def(
            "merge", ["self", ("other", returns)],
            [
                create_assign("items", "other.value"),
                create_expr(create_call("items.update", ["self.value"])),
                create_return(create_call(class_name, ["items"])),
            ],
            returns=returns,
            docstring="Union of both sets; on a shared key this set's item wins.",
        ),
        create_function_def(
            "__iter__", ["self"], [create_return(create_call("iter", [create_call("list", [create_call("self.value.values")])]))],
            returns=f"Iterator[{ITEM}]",
        ),
    ]
    body.extend(_common_methods(class_name, names, mode))
    return create_class_def(class_name, [], body), imports


def create_embedded_value_object(ctx: GenerationContext, rel: ResolvedRelationship) -> Tuple[ast.ClassDef, ImportSet]:
    class_name = ctx.value_object_class(rel)
    names = HelperNames(rel.parent_table)
    imports = ImportSet()
    imports.add("typing", "Any", "Dict")
    imports.add("copy")
    imports.add(ctx.domain_helpers_module(rel.parent_table), names.validate, names.equals)

    body: List[ast.stmt] = [
        create_docstring(f"An embedded {NamingConventions.class_name(rel.parent_table)}, validated on construction."),
        create_function_def(
            "__init__", ["self", ("value", ITEM)],
            [create_assign("self._value", create_call(names.validate, ["value"], key_field_keyword(rel)))],
        ),
        create_function_def(
            "value", ["self"], [create_return(create_call("copy.deepcopy", ["self._value"]))],
            returns=ITEM, decorators=["property"],
        ),
        create_function_def(
            "key", ["self"], [create_return(_key_lookup(rel, "self._value"))], returns="Any", decorators=["property"],
        ),
        create_function_def(
            "equals", ["self", ("other", "Any")],
            [create_return(create_bool_op("and", [
                create_call("isinstance", ["other", class_name]),
                create_call(names.equals, ["self._value", "other._value"]),
            ]))],
            returns="bool",
        ),
        create_function_def("__eq__", ["self", ("other", "Any")], [create_return(create_call("self.equals", ["other"]))],
                            returns="bool"),
    ]
    return create_class_def(class_name, [], body), imports


VALUE_OBJECT_BUILDERS = {
    RepresentationMode.LIST: create_list_value_object,
    RepresentationMode.MAP: create_set_value_object,
    RepresentationMode.EMBEDDED: create_embedded_value_object,
}


def generate_value_object_ast(ctx: GenerationContext, rel: ResolvedRelationship) -> ast.Module:
    class_def, imports = VALUE_OBJECT_BUILDERS[rel.representation_mode](ctx, rel)
    return create_module(
        [class_def], imports,
        docstring=f"{ctx.value_object_class(rel)} value object ({rel.representation_mode.value} relationship).",
    )


def generate_value_object_code(ctx: GenerationContext, rel: ResolvedRelationship) -> str:
    return ast.unparse(generate_value_object_ast(ctx, rel))


def value_object_parts(ctx: GenerationContext, table_name: str, rel: ResolvedRelationship) -> Tuple[str, ...]:
    return ctx.artifact_parts(table_name, OutputLayout.VALUE_OBJECTS, ctx.value_object_stem(rel))
