# src/flowcore/core/expressions.py
"""Sandboxed expression language for field transformations.

Uses Python's ast module to parse and evaluate expressions in a restricted
subset of Python. This is NOT eval() - it's a whitelist-based interpreter.
Mapping configuration arrives from flow definitions that may be
attacker-controlled, so field-supplied code is never compiled or executed.

The parser operates in two phases:
1. Parse-time validation: Reject forbidden constructs at construction
2. Evaluation: Walk the validated AST against (value, row)

Names in scope:
- value: the source field's value
- row: the whole source record (read-only: subscript and row.get only)
- True, False, None
"""

from __future__ import annotations

import ast
import operator
from collections.abc import Callable, Mapping
from typing import Any


class ExpressionSecurityError(Exception):
    """Raised when expression contains forbidden constructs."""


class ExpressionSyntaxError(Exception):
    """Raised when expression is not valid Python syntax."""


class ExpressionEvaluationError(Exception):
    """Raised when a valid expression fails against concrete data.

    Wraps operational errors (KeyError, ArithmeticError, MemoryError,
    TypeError, ValueError). The original exception is chained via __cause__.
    """


_MAX_EXPRESSION_LENGTH = 2000

# Upper bound on str/list/tuple results built by repetition or replace()
_MAX_SEQUENCE_LENGTH = 10_000


def _concat(*parts: Any) -> str:
    return "".join("" if p is None else str(p) for p in parts)


def _replace(text: Any, old: Any, new: Any) -> str:
    text, old, new = str(text), str(old), str(new)
    growth = len(new) - len(old)
    if growth > 0:
        count = text.count(old) if old else len(text) + 1
        if len(text) + count * growth > _MAX_SEQUENCE_LENGTH:
            raise ValueError(f"result would exceed {_MAX_SEQUENCE_LENGTH} characters")
    return text.replace(old, new)


def _repeat(left: Any, right: Any) -> Any:
    for seq, times in ((left, right), (right, left)):
        if isinstance(seq, (str, list, tuple)) and isinstance(times, int) and not isinstance(times, bool):
            if len(seq) * times > _MAX_SEQUENCE_LENGTH:
                raise ValueError(f"repetition would exceed {_MAX_SEQUENCE_LENGTH} items")
    return operator.mul(left, right)


_COMPARISON_OPS: dict[type[ast.cmpop], Callable[[Any, Any], Any]] = {
    ast.Eq: operator.eq,
    ast.NotEq: operator.ne,
    ast.Lt: operator.lt,
    ast.LtE: operator.le,
    ast.Gt: operator.gt,
    ast.GtE: operator.ge,
    ast.Is: operator.is_,
    ast.IsNot: operator.is_not,
    ast.In: lambda a, b: a in b,
    ast.NotIn: lambda a, b: a not in b,
}

_BINARY_OPS: dict[type[ast.operator], Callable[[Any, Any], Any]] = {
    ast.Add: operator.add,
    ast.Sub: operator.sub,
    ast.Mult: _repeat,
    ast.Div: operator.truediv,
    ast.FloorDiv: operator.floordiv,
    ast.Mod: operator.mod,
}

_UNARY_OPS: dict[type[ast.unaryop], Callable[[Any], Any]] = {
    ast.Not: operator.not_,
    ast.USub: operator.neg,
    ast.UAdd: operator.pos,
}


# Allow-listed functions: (callable, min_args, max_args)
_FUNCTIONS: dict[str, tuple[Callable[..., Any], int, int]] = {
    "upper": (lambda s: str(s).upper(), 1, 1),
    "lower": (lambda s: str(s).lower(), 1, 1),
    "strip": (lambda s: str(s).strip(), 1, 1),
    "title": (lambda s: str(s).title(), 1, 1),
    "len": (len, 1, 1),
    "str": (str, 1, 1),
    "int": (int, 1, 1),
    "float": (float, 1, 1),
    "round": (round, 1, 2),
    "abs": (abs, 1, 1),
    "concat": (_concat, 1, 16),
    "replace": (_replace, 3, 3),
}

ALLOWED_FUNCTIONS: frozenset[str] = frozenset(_FUNCTIONS)

_SCOPE_NAMES = frozenset({"value", "row"})
_LITERAL_NAMES = {"True": True, "False": False, "None": None}


class _ExpressionValidator(ast.NodeVisitor):
    """AST visitor that collects forbidden constructs."""

    def __init__(self) -> None:
        self.errors: list[str] = []

    def _is_data_derived(self, node: ast.expr) -> bool:
        """value, row, and subscripts of either (value['a'][0], row['x'])."""
        if isinstance(node, ast.Name) and node.id in _SCOPE_NAMES:
            return True
        if isinstance(node, ast.Subscript):
            return self._is_data_derived(node.value)
        return self._is_row_get(node)

    @staticmethod
    def _is_row_get(node: ast.expr) -> bool:
        return (
            isinstance(node, ast.Call)
            and isinstance(node.func, ast.Attribute)
            and isinstance(node.func.value, ast.Name)
            and node.func.value.id == "row"
            and node.func.attr == "get"
        )

    def visit_Name(self, node: ast.Name) -> None:
        if node.id not in _SCOPE_NAMES and node.id not in _LITERAL_NAMES:
            self.errors.append(f"Forbidden name: {node.id!r}")

    def visit_Subscript(self, node: ast.Subscript) -> None:
        if isinstance(node.slice, ast.Slice):
            self.errors.append("Slice syntax (e.g., [1:3]) is forbidden")
        if not self._is_data_derived(node.value):
            self.errors.append("Subscript access is only allowed on value or row data")
        self.generic_visit(node)

    def visit_Slice(self, node: ast.Slice) -> None:
        self.errors.append("Slice syntax (e.g., [1:3]) is forbidden")

    def visit_Attribute(self, node: ast.Attribute) -> None:
        # row.get is only reachable through visit_Call
        self.errors.append(f"Forbidden attribute access: {node.attr!r}")

    def visit_Call(self, node: ast.Call) -> None:
        if node.keywords:
            self.errors.append("Keyword arguments are forbidden")
        if any(isinstance(arg, ast.Starred) for arg in node.args):
            self.errors.append("Starred expressions (*) are forbidden")

        if self._is_row_get(node):
            if not 1 <= len(node.args) <= 2:
                self.errors.append(f"row.get() requires 1 or 2 arguments, got {len(node.args)}")
            for arg in node.args:
                self.visit(arg)
            return

        if isinstance(node.func, ast.Name) and node.func.id in _FUNCTIONS:
            _, min_args, max_args = _FUNCTIONS[node.func.id]
            if not min_args <= len(node.args) <= max_args:
                self.errors.append(
                    f"{node.func.id}() takes {min_args}..{max_args} arguments, got {len(node.args)}"
                    if min_args != max_args
                    else f"{node.func.id}() takes {min_args} argument(s), got {len(node.args)}"
                )
            for arg in node.args:
                self.visit(arg)
            return

        self.errors.append(f"Forbidden function call: {ast.unparse(node.func)}")

    def visit_Compare(self, node: ast.Compare) -> None:
        for op in node.ops:
            if type(op) not in _COMPARISON_OPS:
                self.errors.append(f"Forbidden comparison operator: {type(op).__name__}")
        self.generic_visit(node)

    def visit_BinOp(self, node: ast.BinOp) -> None:
        if type(node.op) not in _BINARY_OPS:
            self.errors.append(f"Forbidden binary operator: {type(node.op).__name__}")
        self.generic_visit(node)

    def visit_UnaryOp(self, node: ast.UnaryOp) -> None:
        if type(node.op) not in _UNARY_OPS:
            self.errors.append(f"Forbidden unary operator: {type(node.op).__name__}")
        self.generic_visit(node)

    def visit_Constant(self, node: ast.Constant) -> None:
        if node.value is None or isinstance(node.value, str | int | float | bool):
            return
        self.errors.append(f"Forbidden constant type: {type(node.value).__name__}")

    def visit_Dict(self, node: ast.Dict) -> None:
        if any(key is None for key in node.keys):
            self.errors.append("Dict spread (**) is forbidden")
        self.generic_visit(node)

    # Explicitly forbidden constructs

    def visit_Lambda(self, node: ast.Lambda) -> None:
        self.errors.append("Lambda expressions are forbidden")

    def visit_ListComp(self, node: ast.ListComp) -> None:
        self.errors.append("List comprehensions are forbidden")

    def visit_DictComp(self, node: ast.DictComp) -> None:
        self.errors.append("Dict comprehensions are forbidden")

    def visit_SetComp(self, node: ast.SetComp) -> None:
        self.errors.append("Set comprehensions are forbidden")

    def visit_GeneratorExp(self, node: ast.GeneratorExp) -> None:
        self.errors.append("Generator expressions are forbidden")

    def visit_Await(self, node: ast.Await) -> None:
        self.errors.append("Await expressions are forbidden")

    def visit_Yield(self, node: ast.Yield) -> None:
        self.errors.append("Yield expressions are forbidden")

    def visit_YieldFrom(self, node: ast.YieldFrom) -> None:
        self.errors.append("Yield from expressions are forbidden")

    def visit_NamedExpr(self, node: ast.NamedExpr) -> None:
        self.errors.append("Assignment expressions (:=) are forbidden")

    def visit_JoinedStr(self, node: ast.JoinedStr) -> None:
        self.errors.append("F-strings are forbidden")

    def visit_Starred(self, node: ast.Starred) -> None:
        self.errors.append("Starred expressions (*) are forbidden")


class _ExpressionEvaluator(ast.NodeVisitor):
    """AST visitor that evaluates validated expressions."""

    def __init__(self, value: Any, row: Mapping[str, Any]) -> None:
        self._value = value
        self._row = row

    def visit_Expression(self, node: ast.Expression) -> Any:
        return self.visit(node.body)

    def visit_Name(self, node: ast.Name) -> Any:
        if node.id == "value":
            return self._value
        if node.id == "row":
            return self._row
        if node.id in _LITERAL_NAMES:
            return _LITERAL_NAMES[node.id]
        raise ExpressionSecurityError(f"Unknown name: {node.id}")

    def visit_Constant(self, node: ast.Constant) -> Any:
        return node.value

    def visit_Subscript(self, node: ast.Subscript) -> Any:
        container = self.visit(node.value)
        key = self.visit(node.slice)
        try:
            return container[key]
        except KeyError as e:
            if isinstance(container, Mapping):
                msg = f"Field '{key}' not found. Available fields: {list(container.keys())}"
            else:
                msg = f"Key '{key}' not found in {type(container).__name__}"
            raise ExpressionEvaluationError(msg) from e
        except IndexError as e:
            msg = f"Index {key} out of range for {type(container).__name__} of length {len(container)}"
            raise ExpressionEvaluationError(msg) from e
        except TypeError as e:
            msg = f"Cannot access '{key}' on {type(container).__name__}: {e}"
            raise ExpressionEvaluationError(msg) from e

    def visit_Call(self, node: ast.Call) -> Any:
        args = [self.visit(arg) for arg in node.args]
        if isinstance(node.func, ast.Attribute):
            # Validation guarantees this is row.get
            func: Callable[..., Any] = self._row.get
            name = "row.get"
        elif isinstance(node.func, ast.Name) and node.func.id in _FUNCTIONS:
            func = _FUNCTIONS[node.func.id][0]
            name = node.func.id
        else:
            raise ExpressionSecurityError(f"Forbidden function call: {ast.unparse(node.func)}")
        try:
            return func(*args)
        except (TypeError, ValueError, ArithmeticError, MemoryError) as e:
            raise ExpressionEvaluationError(f"{name}() failed: {e}") from e

    def visit_Compare(self, node: ast.Compare) -> Any:
        left = self.visit(node.left)
        for op, comparator in zip(node.ops, node.comparators, strict=True):
            right = self.visit(comparator)
            try:
                if not _COMPARISON_OPS[type(op)](left, right):
                    return False
            except TypeError as e:
                msg = f"cannot compare {type(left).__name__} and {type(right).__name__} with {type(op).__name__}"
                raise ExpressionEvaluationError(msg) from e
            left = right
        return True

    def visit_BoolOp(self, node: ast.BoolOp) -> Any:
        result: Any = None
        if isinstance(node.op, ast.And):
            for value in node.values:
                result = self.visit(value)
                if not result:
                    return result
            return result
        for value in node.values:
            result = self.visit(value)
            if result:
                return result
        return result

    def visit_BinOp(self, node: ast.BinOp) -> Any:
        left = self.visit(node.left)
        right = self.visit(node.right)
        op_name = type(node.op).__name__
        try:
            return _BINARY_OPS[type(node.op)](left, right)
        except ZeroDivisionError as e:
            raise ExpressionEvaluationError(f"division by zero in {op_name} operation") from e
        except (ArithmeticError, MemoryError, ValueError) as e:
            raise ExpressionEvaluationError(f"{op_name} failed: {e}") from e
        except TypeError as e:
            msg = f"type error in {op_name}: cannot apply to {type(left).__name__} and {type(right).__name__}"
            raise ExpressionEvaluationError(msg) from e

    def visit_UnaryOp(self, node: ast.UnaryOp) -> Any:
        operand = self.visit(node.operand)
        try:
            return _UNARY_OPS[type(node.op)](operand)
        except TypeError as e:
            msg = f"type error in unary {type(node.op).__name__}: cannot apply to {type(operand).__name__}"
            raise ExpressionEvaluationError(msg) from e

    def visit_IfExp(self, node: ast.IfExp) -> Any:
        if self.visit(node.test):
            return self.visit(node.body)
        return self.visit(node.orelse)

    def visit_List(self, node: ast.List) -> Any:
        return [self.visit(elt) for elt in node.elts]

    def visit_Tuple(self, node: ast.Tuple) -> Any:
        return tuple(self.visit(elt) for elt in node.elts)

    def visit_Set(self, node: ast.Set) -> Any:
        try:
            return {self.visit(elt) for elt in node.elts}
        except TypeError as e:
            raise ExpressionEvaluationError(f"cannot create set literal: {e}") from e

    def visit_Dict(self, node: ast.Dict) -> Any:
        try:
            return {self.visit(k): self.visit(v) for k, v in zip(node.keys, node.values, strict=True) if k is not None}
        except TypeError as e:
            raise ExpressionEvaluationError(f"cannot create dict literal: {e}") from e

    def generic_visit(self, node: ast.AST) -> Any:
        # Anything without an explicit visitor was rejected at parse time
        raise ExpressionSecurityError(f"Unsupported construct: {type(node).__name__}")


class ValueExpression:
    """Restricted expression evaluated against one field value.

    Allowed:
    - Names: value, row, True, False, None
    - Field access: value['k'], value[0], row['field'], row.get('field', default)
    - Arithmetic: + - * / // %
    - Comparisons, and/or/not, ternary (x if cond else y)
    - Literals (str, int, float, bool, None, list, tuple, set, dict)
    - Functions: upper lower strip title len str int float round abs concat replace

    Forbidden:
    - Any other call, any attribute access other than row.get
    - Lambdas, comprehensions, f-strings, walrus, await/yield, slices

    Example:
        expr = ValueExpression("upper(value) if value else 'N/A'")
        expr.evaluate("john")  # Returns "JOHN"
    """

    def __init__(self, source: str) -> None:
        """Parse and validate at construction time.

        Raises:
            ExpressionSecurityError: If the expression contains forbidden constructs
            ExpressionSyntaxError: If the expression is not valid syntax
        """
        if len(source) > _MAX_EXPRESSION_LENGTH:
            raise ExpressionSecurityError(f"Expression exceeds maximum length ({_MAX_EXPRESSION_LENGTH} chars)")
        self._source = source

        try:
            self._ast = ast.parse(source.strip(), mode="eval")
        except SyntaxError as e:
            raise ExpressionSyntaxError(f"Invalid syntax: {e.msg}") from e

        validator = _ExpressionValidator()
        validator.visit(self._ast)
        if validator.errors:
            raise ExpressionSecurityError("; ".join(validator.errors))

    @property
    def source(self) -> str:
        return self._source

    def evaluate(self, value: Any, row: Mapping[str, Any] | None = None) -> Any:
        """Evaluate against a field value and (optionally) its whole record."""
        return _ExpressionEvaluator(value, row if row is not None else {}).visit(self._ast)

    def __repr__(self) -> str:
        return f"ValueExpression({self._source!r})"
