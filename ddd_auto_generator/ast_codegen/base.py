import logging
import ast
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

from ddd_auto_generator.domain.imports import ImportSet

logger = logging.getLogger(__name__)


# Anything accepted where an expression is expected: an AST node, or a dotted
# name such as "self._tags.value". Constants must be wrapped explicitly.
ExprLike = Union[ast.expr, str]

# A function argument: "name", ("name", "annotation") or ("name", "annotation", default)
ArgSpec = Union[str, Tuple[str, Optional[str]], Tuple[str, Optional[str], ast.expr]]

COMPARE_OPERATORS = {
    "==": ast.Eq,
    "!=": ast.NotEq,
    "<": ast.Lt,
    "<=": ast.LtE,
    ">": ast.Gt,
    ">=": ast.GtE,
    "is": ast.Is,
    "is not": ast.IsNot,
    "in": ast.In,
    "not in": ast.NotIn,
}

BINARY_OPERATORS = {
    "+": ast.Add,
    "-": ast.Sub,
    "|": ast.BitOr,
}


def add_location(node):
    """Add location info to AST nodes"""
    node.lineno = 1
    node.col_offset = 0
    return node


def as_expr(value: ExprLike) -> ast.expr:
    if isinstance(value, ast.AST):
        return value
    return create_attribute(value)


def create_docstring(content: str) -> ast.Expr:
    """Creates an AST node for a docstring."""
    return add_location(ast.Expr(value=create_string_constant(content)))


def create_name(name: str, store: bool = False) -> ast.Name:
    return add_location(ast.Name(id=name, ctx=ast.Store() if store else ast.Load()))


def create_attribute(path: str, store: bool = False) -> ast.expr:
    """
    Creates a Name or a chain of Attribute nodes from a dotted path.

    Only the outermost node gets the Store context, so ``self._name`` can be
    used as an assignment target.
    """
    parts = path.split(".")
    node: ast.expr = create_name(parts[0], store=store and len(parts) == 1)
    for index, part in enumerate(parts[1:], start=2):
        node = add_location(ast.Attribute(
            value=node,
            attr=part,
            ctx=ast.Store() if store and index == len(parts) else ast.Load()
        ))
    return node


def create_annotation(text: Optional[str]) -> Optional[ast.expr]:
    """Parses a type annotation such as ``Optional[Dict[str, Any]]``."""
    if text is None:
        return None
    return ast.parse(text, mode="eval").body


def create_assign(target: Union[str, ast.expr], value: ExprLike) -> ast.Assign:
    """Creates an AST node for an assignment."""
    if isinstance(target, str):
        target = create_attribute(target, store=True)
    return add_location(ast.Assign(targets=[target], value=as_expr(value), type_comment=None))


def create_ann_assign(target: str, annotation: str, value: Optional[ast.expr] = None) -> ast.AnnAssign:
    """Creates an annotated assignment, e.g. a TypedDict or dataclass field."""
    return add_location(ast.AnnAssign(
        target=create_attribute(target, store=True),
        annotation=create_annotation(annotation),
        value=value,
        simple=1 if "." not in target else 0
    ))


def _keywords(keywords: Union[None, Dict[str, ast.expr], List[ast.keyword]]) -> List[ast.keyword]:
    if not keywords:
        return []
    if isinstance(keywords, dict):
        return [create_keyword(arg, value) for arg, value in keywords.items()]
    return list(keywords)


def create_call(
    func_name: ExprLike,
    args: Optional[List[ExprLike]] = None,
    keywords: Union[None, Dict[str, ast.expr], List[ast.keyword]] = None
) -> ast.Call:
    """Creates an AST node for a function call; ``func_name`` may be a dotted path."""
    return add_location(ast.Call(
        func=as_expr(func_name),
        args=[as_expr(arg) for arg in args or []],
        keywords=_keywords(keywords)
    ))


def create_expr(value: ExprLike) -> ast.Expr:
    """Wraps an expression (usually a call) as a statement."""
    return add_location(ast.Expr(value=as_expr(value)))


def create_return(value: Optional[ExprLike] = None) -> ast.Return:
    return add_location(ast.Return(value=as_expr(value) if value is not None else None))


def create_raise(exception: ast.expr) -> ast.Raise:
    return add_location(ast.Raise(exc=exception, cause=None))


def create_pass() -> ast.Pass:
    return add_location(ast.Pass())


def create_if(test: ExprLike, body: List[ast.stmt], orelse: Optional[List[ast.stmt]] = None) -> ast.If:
    return add_location(ast.If(test=as_expr(test), body=body, orelse=orelse or []))


def create_for(target: str, iterable: ExprLike, body: List[ast.stmt]) -> ast.For:
    return add_location(ast.For(
        target=create_name(target, store=True),
        iter=as_expr(iterable),
        body=body,
        orelse=[],
        type_comment=None
    ))


def create_try(body: List[ast.stmt], handlers: List[Tuple[str, Optional[str], List[ast.stmt]]]) -> ast.Try:
    """Creates a try statement from (exception type, bound name, body) handler specs."""
    return add_location(ast.Try(
        body=body,
        handlers=[
            add_location(ast.ExceptHandler(type=as_expr(exc_type), name=name, body=handler_body))
            for exc_type, name, handler_body in handlers
        ],
        orelse=[],
        finalbody=[]
    ))


def create_compare(left: ExprLike, op: str, right: ExprLike) -> ast.Compare:
    return add_location(ast.Compare(
        left=as_expr(left),
        ops=[COMPARE_OPERATORS[op]()],
        comparators=[as_expr(right)]
    ))


def create_is_none(value: ExprLike) -> ast.Compare:
    return create_compare(value, "is", create_none_constant())


def create_is_not_none(value: ExprLike) -> ast.Compare:
    return create_compare(value, "is not", create_none_constant())


def create_not(operand: ExprLike) -> ast.UnaryOp:
    return add_location(ast.UnaryOp(op=ast.Not(), operand=as_expr(operand)))


def create_bool_op(op: str, values: List[ExprLike]) -> ast.expr:
    """Creates ``a and b`` / ``a or b``; a single value is returned unchanged."""
    values = [as_expr(value) for value in values]
    if len(values) == 1:
        return values[0]
    return add_location(ast.BoolOp(op=ast.And() if op == "and" else ast.Or(), values=values))


def create_bin_op(left: ExprLike, op: str, right: ExprLike) -> ast.BinOp:
    return add_location(ast.BinOp(left=as_expr(left), op=BINARY_OPERATORS[op](), right=as_expr(right)))


def create_if_exp(test: ExprLike, body: ExprLike, orelse: ExprLike) -> ast.IfExp:
    return add_location(ast.IfExp(test=as_expr(test), body=as_expr(body), orelse=as_expr(orelse)))


def create_subscript(value: ExprLike, index: ast.expr, store: bool = False) -> ast.Subscript:
    return add_location(ast.Subscript(
        value=as_expr(value),
        slice=index,
        ctx=ast.Store() if store else ast.Load()
    ))


def create_dict(items: Sequence[Tuple[ast.expr, ast.expr]]) -> ast.Dict:
    return add_location(ast.Dict(keys=[key for key, _ in items], values=[value for _, value in items]))


def create_string_dict(items: Sequence[Tuple[str, ast.expr]]) -> ast.Dict:
    """Creates a dict literal with string constant keys."""
    return create_dict([(create_string_constant(key), value) for key, value in items])


def create_list(elts: Sequence[ExprLike]) -> ast.List:
    return add_location(ast.List(elts=[as_expr(elt) for elt in elts], ctx=ast.Load()))


def create_tuple(elts: Sequence[ExprLike]) -> ast.Tuple:
    return add_location(ast.Tuple(elts=[as_expr(elt) for elt in elts], ctx=ast.Load()))


def _comprehension(target: str, iterable: ExprLike, conditions: Optional[List[ast.expr]] = None) -> ast.comprehension:
    if "," in target:
        target_node = add_location(ast.Tuple(
            elts=[create_name(name.strip(), store=True) for name in target.split(",")],
            ctx=ast.Store()
        ))
    else:
        target_node = create_name(target, store=True)
    return ast.comprehension(target=target_node, iter=as_expr(iterable), ifs=conditions or [], is_async=0)


def create_list_comp(elt: ExprLike, target: str, iterable: ExprLike,
                     conditions: Optional[List[ast.expr]] = None) -> ast.ListComp:
    """Creates ``[elt for target in iterable if ...]``; ``target`` may be ``"key, value"``."""
    return add_location(ast.ListComp(elt=as_expr(elt), generators=[_comprehension(target, iterable, conditions)]))


def create_dict_comp(key: ExprLike, value: ExprLike, target: str, iterable: ExprLike,
                     conditions: Optional[List[ast.expr]] = None) -> ast.DictComp:
    return add_location(ast.DictComp(
        key=as_expr(key),
        value=as_expr(value),
        generators=[_comprehension(target, iterable, conditions)]
    ))


def create_arguments(args: Sequence[ArgSpec], kwonly: Sequence[ArgSpec] = ()) -> ast.arguments:
    """Builds ``ast.arguments``; positional defaults must trail, as in Python."""
    positional = []
    defaults = []
    for spec in args:
        arg, default = _create_arg(spec)
        positional.append(arg)
        if default is not None:
            defaults.append(default)

    keyword_only = []
    kw_defaults = []
    for spec in kwonly:
        arg, default = _create_arg(spec)
        keyword_only.append(arg)
        kw_defaults.append(default)

    return ast.arguments(
        posonlyargs=[],
        args=positional,
        vararg=None,
        kwonlyargs=keyword_only,
        kw_defaults=kw_defaults,
        kwarg=None,
        defaults=defaults
    )


def _create_arg(spec: ArgSpec) -> Tuple[ast.arg, Optional[ast.expr]]:
    if isinstance(spec, str):
        spec = (spec, None)
    name, annotation = spec[0], spec[1]
    default = spec[2] if len(spec) > 2 else None
    return add_location(ast.arg(arg=name, annotation=create_annotation(annotation), type_comment=None)), default


def create_function_def(
    name: str,
    args: Sequence[ArgSpec],
    body: List[ast.stmt],
    returns: Optional[str] = None,
    decorators: Optional[List[str]] = None,
    docstring: Optional[str] = None,
    kwonly: Sequence[ArgSpec] = ()
) -> ast.FunctionDef:
    """Creates a function or method definition."""
    if docstring:
        body = [create_docstring(docstring)] + list(body)
    return add_location(ast.FunctionDef(
        name=name,
        args=create_arguments(args, kwonly),
        body=list(body) or [create_pass()],
        decorator_list=[as_expr(decorator) for decorator in decorators or []],
        returns=create_annotation(returns),
        type_comment=None,
        type_params=[]
    ))


def create_class_def(
    name: str,
    bases: List[ExprLike],
    body: List[ast.stmt],
    decorator_list: Optional[List[ExprLike]] = None,
    keywords: Optional[Dict[str, ast.expr]] = None
) -> ast.ClassDef:
    """Creates an AST node for a class definition."""
    return add_location(ast.ClassDef(
        name=name,
        bases=[as_expr(base) for base in bases],
        keywords=_keywords(keywords),
        body=body or [create_pass()],
        decorator_list=[as_expr(decorator) for decorator in decorator_list or []],
        type_params=[]
    ))


def create_module(body: List[ast.stmt], imports: Optional[ImportSet] = None,
                  docstring: Optional[str] = None) -> ast.Module:
    """Creates a module: docstring, the rendered import set, then the body."""
    statements: List[ast.stmt] = []
    if docstring:
        statements.append(create_docstring(docstring))
    if imports:
        statements.extend(imports.to_ast())
    statements.extend(body)
    module = ast.Module(body=statements, type_ignores=[])
    return ast.fix_missing_locations(module)


def create_list_of_strings(items: List[str]) -> ast.List:
    """Creates an AST List node containing string constants."""
    return add_location(ast.List(elts=[create_string_constant(item) for item in items], ctx=ast.Load()))


def create_tuple_of_strings(items: List[str]) -> ast.Tuple:
    """Creates an AST Tuple node containing string constants."""
    return add_location(ast.Tuple(elts=[create_string_constant(item) for item in items], ctx=ast.Load()))


def create_constant(value: Any) -> ast.Constant:
    return add_location(ast.Constant(value=value))


def create_string_constant(value: str, escape_newlines: bool = False) -> ast.Constant:
    """Creates an AST Constant node for a string."""
    if escape_newlines:
        value = value.replace("\n", "\\n")
    return create_constant(value)


def create_boolean_constant(value: bool) -> ast.Constant:
    return create_constant(value)


def create_integer_constant(value: int) -> ast.Constant:
    return create_constant(value)


def create_none_constant() -> ast.Constant:
    return create_constant(None)


def create_keyword(arg: str, value: ast.expr) -> ast.keyword:
    """Creates an AST keyword argument."""
    return add_location(ast.keyword(arg=arg, value=value))


def create_super_call(method: str, args: Optional[List[ExprLike]] = None) -> ast.Expr:
    """Creates ``super().<method>(args)`` as a statement."""
    func = add_location(ast.Attribute(value=create_call("super"), attr=method, ctx=ast.Load()))
    return create_expr(create_call(func, args))


def create_generator_exp(elt: ExprLike, target: str, iterable: ExprLike,
                         conditions: Optional[List[ast.expr]] = None) -> ast.GeneratorExp:
    return add_location(ast.GeneratorExp(elt=as_expr(elt), generators=[_comprehension(target, iterable, conditions)]))


def create_missing_test(value: ExprLike, is_string: bool = False) -> ast.expr:
    """
    Creates the "value is absent" test used by required checks.

    Strings also count as absent when blank:
    ``value is None or (isinstance(value, str) and not value.strip())``
    """
    value = as_expr(value)
    if not is_string:
        return create_is_none(value)
    blank = create_bool_op("and", [
        create_call("isinstance", [value, "str"]),
        create_not(create_call(add_location(ast.Attribute(value=value, attr="strip", ctx=ast.Load())))),
    ])
    return create_bool_op("or", [create_is_none(value), blank])


def create_method_call(obj: ExprLike, method: str, args: Optional[List[ExprLike]] = None) -> ast.Call:
    """Creates ``<obj>.<method>(args)`` where ``obj`` may be any expression, e.g. a call."""
    return create_call(add_location(ast.Attribute(value=as_expr(obj), attr=method, ctx=ast.Load())), args)
