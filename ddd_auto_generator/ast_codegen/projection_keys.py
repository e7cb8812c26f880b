"""
Cache and event-stream key value object.

``<Class>ProjectionKeys`` centralizes the redis lookup key and the event
store stream names of one entity. Redis members are emitted when the entity
is served by redis, stream members when it is served by the event stream.
"""

import ast
import logging
import re
from typing import List, Optional, Tuple

from ddd_auto_generator.ast_codegen.base import (
    as_expr,
    create_assign,
    create_bin_op,
    create_call,
    create_class_def,
    create_constant,
    create_docstring,
    create_function_def,
    create_if,
    create_is_none,
    create_is_not_none,
    create_module,
    create_return,
    create_string_constant,
    create_string_dict,
)
from ddd_auto_generator.ast_codegen.context import GenerationContext
from ddd_auto_generator.constants import OutputLayout
from ddd_auto_generator.domain.imports import ImportSet
from ddd_auto_generator.domain.naming import NamingConventions

logger = logging.getLogger(__name__)


STREAM_SUFFIX = "-(?P<tenant>[^-]+)-(?P<key>.+)$"


def _alnum(value: str) -> str:
    return re.sub(r"[^A-Za-z0-9]", "", value)


def _concat(*parts) -> ast.expr:
    """``a + b + c`` over names and string constants."""
    node = parts[0] if isinstance(parts[0], ast.AST) else create_string_constant(parts[0])
    for part in parts[1:]:
        node = create_bin_op(node, "+", part if isinstance(part, ast.AST) else create_string_constant(part))
    return node


def _classmethod(name: str, args: List, body: List[ast.stmt], returns: str,
                 docstring: Optional[str] = None) -> ast.FunctionDef:
    return create_function_def(name, ["cls"] + args, body, returns=returns, decorators=["classmethod"], docstring=docstring)


def uses_projection_keys(ctx: GenerationContext, table_name: str) -> bool:
    config = ctx.config(table_name)
    return config.uses_redis or config.uses_event_stream


def redis_members(ctx: GenerationContext, table_name: str) -> List[ast.stmt]:
    redis = ctx.config(table_name).redis
    return [
        create_assign("REDIS_LOOKUP_PREFIX", create_string_constant(re.sub(r"[^A-Za-z0-9]", ":", redis.prefix))),
        create_assign("REDIS_AGGREGATE_NAME", create_string_constant(_alnum(redis.aggregate))),
        create_assign("REDIS_VERSION", create_string_constant(_alnum(redis.version))),
        _classmethod(
            "get_redis_projection_key", [],
            [create_return(_concat(
                as_expr("cls.REDIS_LOOKUP_PREFIX"), ".", as_expr("cls.REDIS_AGGREGATE_NAME"), ".", as_expr("cls.REDIS_VERSION")
            ))],
            "str",
            docstring="Redis key of the lookup projection: ``<prefix>.<aggregate>.<version>``.",
        ),
    ]


def stream_members(ctx: GenerationContext, table_name: str) -> List[ast.stmt]:
    stream = ctx.config(table_name).eventstream
    table = ctx.table(table_name)
    key_field = table.primary_key.field_name
    prefix = create_call("cls.get_event_store_stream_prefix")
    match = create_call("cls.STREAM_PATTERN.match", ["stream_name"])

    def group(name: str) -> ast.Call:
        return create_call("match.group", [create_string_constant(name)])

    return [
        create_assign("ESDB_BOUNDED_CONTEXT", create_string_constant(stream.bounded_context)),
        create_assign("ESDB_AGGREGATE_NAME", create_string_constant(_alnum(stream.aggregate))),
        create_assign("ESDB_VERSION", create_string_constant(_alnum(stream.version))),
        create_assign("STREAM_PREFIX", _concat(
            as_expr("ESDB_BOUNDED_CONTEXT"), ".", as_expr("ESDB_AGGREGATE_NAME"), ".", as_expr("ESDB_VERSION")
        )),
        create_assign("STREAM_PATTERN", create_call("re.compile", [
            _concat(create_call("re.escape", ["STREAM_PREFIX"]), STREAM_SUFFIX)
        ])),
        _classmethod(
            "get_event_store_stream_prefix", [], [create_return("cls.STREAM_PREFIX")], "str",
            docstring="``<bounded context>.<aggregate>.<version>``",
        ),
        _classmethod(
            "get_event_store_category_pattern", [], [create_return(_concat("$ce-", prefix))], "str",
            docstring="Category stream used for catch-up subscriptions.",
        ),
        _classmethod(
            "get_event_store_stream_name", [("tenant", "str"), ("key", "Any")],
            [create_return(_concat(
                prefix, "-", create_call("str", ["tenant"]), "-", create_call("str", ["key"])
            ))],
            "str",
            docstring="Stream of one aggregate instance: ``<prefix>-<tenant>-<key>``.",
        ),
        _classmethod(
            "extract_from_stream_name", [("stream_name", "str")],
            [
                create_assign("match", match),
                create_if(create_is_none("match"), [create_return(create_constant(None))]),
                create_return(create_string_dict([("tenant", group("tenant")), (key_field, group("key"))])),
            ],
            "Optional[Dict[str, str]]",
            docstring="Tenant and key of an instance stream name, or None when the name is not one of ours.",
        ),
        _classmethod(
            f"is_{NamingConventions.module_name(table_name)}_stream", [("stream_name", "str")],
            [create_return(create_is_not_none(create_call("cls.extract_from_stream_name", ["stream_name"])))],
            "bool",
        ),
        _classmethod(
            "get_tenant_stream_pattern", [("tenant", "str")],
            [create_return(_concat(prefix, "-", as_expr("tenant"), "-*"))], "str",
        ),
        _classmethod("get_global_stream_pattern", [], [create_return(_concat(prefix, "-*"))], "str"),
    ]


def generate_projection_keys_ast(ctx: GenerationContext, table_name: str) -> ast.Module:
    config = ctx.config(table_name)
    class_name = f"{NamingConventions.class_name(table_name)}ProjectionKeys"
    imports = ImportSet()

    body: List[ast.stmt] = [
        create_docstring(f"Key patterns of the {NamingConventions.class_name(table_name)} projections.")
    ]
    if config.uses_event_stream:
        imports.add("re")
        imports.add("typing", "Any", "Dict", "Optional")
        body.extend(stream_members(ctx, table_name))
    if config.uses_redis:
        body.extend(redis_members(ctx, table_name))

    return create_module([create_class_def(class_name, [], body)], imports)


def generate_projection_keys_code(ctx: GenerationContext, table_name: str) -> str:
    return ast.unparse(generate_projection_keys_ast(ctx, table_name))


def projection_keys_parts(ctx: GenerationContext, table_name: str) -> Tuple[str, ...]:
    return ctx.artifact_parts(
        table_name, OutputLayout.VALUE_OBJECTS, f"{NamingConventions.module_name(table_name)}_projection_keys"
    )
