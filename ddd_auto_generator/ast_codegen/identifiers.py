"""
Identifier value object synthesizer.

For a table with one scalar primary key this emits ``<Class>Identifier``, a
subclass of the shared ``EntityIdentifier``. Direct construction is refused:
instances come from ``create`` / ``from_string`` (and ``generate`` when the
key is a generated identifier), which run ``validate`` first.
"""

import ast
import logging
from typing import List

from ddd_auto_generator.ast_codegen.base import (
    create_annotation,
    create_assign,
    create_bool_op,
    create_call,
    create_class_def,
    create_compare,
    create_constant,
    create_docstring,
    create_expr,
    create_function_def,
    create_if,
    create_is_none,
    create_module,
    create_not,
    create_raise,
    create_return,
    create_string_constant,
    create_super_call,
    create_try,
    create_tuple,
)
from ddd_auto_generator.ast_codegen.context import GenerationContext
from ddd_auto_generator.ast_codegen.exceptions import create_domain_raise
from ddd_auto_generator.domain.imports import ImportSet
from ddd_auto_generator.domain.models import ColumnInfo, IdentifierGeneration, ScalarType
from ddd_auto_generator.domain.naming import NamingConventions
from ddd_auto_generator.exceptions import raise_code_generation_error

logger = logging.getLogger(__name__)


CONSTRUCTION_KEY = "_CONSTRUCTION_KEY"


def _value_type(ctx: GenerationContext, table_name: str, column: ColumnInfo) -> str:
    if column.scalar_type is ScalarType.NUMBER:
        return ctx.python_type(table_name, column, optional=False)
    return "str"


def create_identifier_init(class_name: str, value_type: str) -> ast.FunctionDef:
    guard = create_if(
        create_compare("_key", "is not", CONSTRUCTION_KEY),
        [create_raise(create_call("TypeError", [
            create_string_constant(f"{class_name} must be created with create() or from_string()")
        ]))],
    )
    return create_function_def(
        "__init__",
        ["self", ("value", value_type), ("_key", "object", create_constant(None))],
        [guard, create_super_call("__init__", ["value"])],
    )


def create_string_validate(ctx: GenerationContext, imports: ImportSet, table_name: str) -> ast.FunctionDef:
    name = NamingConventions.class_name(table_name)
    required = create_domain_raise(
        ctx, imports, table_name, "identifier_required",
        f"{name} identifier is required",
        f"A {name} identifier must be provided",
    )
    empty = create_domain_raise(
        ctx, imports, table_name, "identifier_empty",
        f"{name} identifier cannot be empty",
        f"A {name} identifier must be a non-blank string",
    )
    return create_function_def(
        "validate",
        [("value", "Any")],
        [
            create_if(create_is_none("value"), [required]),
            create_if(
                create_bool_op("or", [
                    create_not(create_call("isinstance", ["value", "str"])),
                    create_not(create_call("value.strip")),
                ]),
                [empty],
            ),
        ],
        returns="None",
        decorators=["staticmethod"],
    )


def create_number_validate(ctx: GenerationContext, imports: ImportSet, table_name: str) -> ast.FunctionDef:
    name = NamingConventions.class_name(table_name)
    required = create_domain_raise(
        ctx, imports, table_name, "identifier_required",
        f"{name} identifier is required",
        f"A {name} identifier must be provided",
    )
    invalid = create_domain_raise(
        ctx, imports, table_name, "identifier_invalid",
        f"{name} identifier must be a non-negative number",
        f"A {name} identifier must be a number greater than or equal to zero",
    )
    # bool is an int subclass and is rejected explicitly
    not_a_number = create_bool_op("or", [
        create_call("isinstance", ["value", "bool"]),
        create_not(create_call("isinstance", ["value", create_tuple(["int", "float"])])),
    ])
    return create_function_def(
        "validate",
        [("value", "Any")],
        [
            create_if(create_is_none("value"), [required]),
            create_if(create_bool_op("or", [not_a_number, create_compare("value", "<", create_constant(0))]), [invalid]),
        ],
        returns="None",
        decorators=["staticmethod"],
    )


def create_identifier_class(ctx: GenerationContext, imports: ImportSet, table_name: str,
                            column: ColumnInfo) -> ast.ClassDef:
    class_name = NamingConventions.identifier_class(table_name)
    value_type = _value_type(ctx, table_name, column)
    is_number = column.scalar_type is ScalarType.NUMBER
    returns = f'"{class_name}"'

    body: List[ast.stmt] = [
        create_docstring(f"Identity of a {NamingConventions.class_name(table_name)}, held in '{column.name}'."),
        create_identifier_init(class_name, value_type),
    ]

    if is_number:
        invalid = create_domain_raise(
            ctx, imports, table_name, "identifier_invalid",
            f"{NamingConventions.class_name(table_name)} identifier must be a non-negative number",
            f"A {NamingConventions.class_name(table_name)} identifier must be a number greater than or equal to zero",
        )
        required = create_domain_raise(
            ctx, imports, table_name, "identifier_required",
            f"{NamingConventions.class_name(table_name)} identifier is required",
            f"A {NamingConventions.class_name(table_name)} identifier must be provided",
        )
        from_string_body = [
            create_if(create_is_none("value"), [required]),
            create_try(
                [create_assign("number", create_call(value_type, ["value"]))],
                [(create_tuple(["TypeError", "ValueError"]), None, [invalid])],
            ),
            create_return(create_call("cls.create", ["number"])),
        ]
    else:
        from_string_body = [create_return(create_call("cls.create", ["value"]))]

    body.append(create_function_def(
        "from_string", ["cls", ("value", "str")], from_string_body, returns=returns, decorators=["classmethod"],
        docstring="Parse an identifier from its string form.",
    ))

    stored = "value" if is_number else create_call("value.strip")
    body.append(create_function_def(
        "create",
        ["cls", ("value", value_type)],
        [
            create_expr(create_call("cls.validate", ["value"])),
            create_return(create_call("cls", [stored, CONSTRUCTION_KEY])),
        ],
        returns=returns,
        decorators=["classmethod"],
    ))

    if column.identifier_generation is IdentifierGeneration.RANDOM:
        imports.add("uuid")
        body.append(create_function_def(
            "generate",
            ["cls"],
            [create_return(create_call("cls", [create_call("str", [create_call("uuid.uuid4")]), CONSTRUCTION_KEY]))],
            returns=returns,
            decorators=["classmethod"],
            docstring="Create a new random identifier.",
        ))

    validate = create_number_validate if is_number else create_string_validate
    body.append(validate(ctx, imports, table_name))
    body.append(create_function_def(
        "to_string", ["self"], [create_return(create_call("str", ["self.value"]))], returns="str",
    ))

    return create_class_def(class_name, [create_annotation(f"EntityIdentifier[{value_type}]")], body)


def generate_identifier_ast(ctx: GenerationContext, table_name: str) -> ast.Module:
    table = ctx.table(table_name)
    column = table.primary_key
    if column is None or column.is_structured:
        raise_code_generation_error(
            f"Table '{table_name}' has no single scalar primary key", component="identifier", table=table_name
        )

    imports = ImportSet()
    imports.add("typing", "Any")
    imports.add(ctx.shared_module("entity_identifier"), "EntityIdentifier")

    constant = create_assign(CONSTRUCTION_KEY, create_call("object"))
    identifier_class = create_identifier_class(ctx, imports, table_name, column)
    return create_module(
        [constant, identifier_class],
        imports,
        docstring=f"Identifier value object of the {NamingConventions.class_name(table_name)} entity.",
    )


def generate_identifier_code(ctx: GenerationContext, table_name: str) -> str:
    return ast.unparse(generate_identifier_ast(ctx, table_name))
