"""
Sheetflow Core - Derived Column Expressions
Restricted arithmetic over `[Column]` references, parsed with `ast` and
evaluated by walking a whitelist of node types (never exec/eval).
"""

import ast
import math
import operator
import re
from typing import Any

from .cell_classifier import NUMBER_TEXT_PATTERN, as_text, is_empty, parse_strict_number

COLUMN_REFERENCE = re.compile(r"\[([^\]]+)\]")

_BINARY_OPERATORS = {
    ast.Add: operator.add,
    ast.Sub: operator.sub,
    ast.Mult: operator.mul,
    ast.Div: operator.truediv,
    ast.Mod: math.fmod,
}

_UNARY_OPERATORS = {
    ast.UAdd: operator.pos,
    ast.USub: operator.neg,
}


class ExpressionError(ValueError):
    pass


class CompiledExpression:
    """An expression parsed once and evaluated per row."""

    def __init__(self, expression: str):
        self.expression = expression
        self.references: dict[str, str] = {}

        def _placeholder(match: re.Match) -> str:
            column = match.group(1)
            for name, referenced in self.references.items():
                if referenced == column:
                    return name
            name = f"__col_{len(self.references)}"
            self.references[name] = column
            return name

        source = COLUMN_REFERENCE.sub(_placeholder, expression)
        try:
            self.tree = ast.parse(source.strip(), mode="eval")
        except SyntaxError as e:
            raise ExpressionError(f"Invalid expression: {e.msg}") from e
        except (RecursionError, MemoryError) as e:
            raise ExpressionError("Expression is nested too deeply") from e
        _validate(self.tree, self.references)

    def evaluate(self, row: dict[str, Any]) -> Any:
        values = {name: _column_value(row.get(column)) for name, column in self.references.items()}
        try:
            result = _eval_node(self.tree.body, values)
        except (RecursionError, MemoryError) as e:
            raise ExpressionError("Expression is nested too deeply") from e
        if isinstance(result, float) and not math.isfinite(result):
            raise ExpressionError("Expression produced a non-finite number")
        return result


def _validate(tree: ast.AST, references: dict[str, str]) -> None:
    for node in ast.walk(tree):
        if isinstance(node, (ast.Expression, ast.BinOp, ast.UnaryOp, ast.Load)):
            continue
        if type(node) in _BINARY_OPERATORS or type(node) in _UNARY_OPERATORS:
            continue
        if isinstance(node, ast.Constant) and isinstance(node.value, (int, float, str)) and not isinstance(node.value, bool):
            continue
        if isinstance(node, ast.Name) and node.id in references:
            continue
        raise ExpressionError(f"Unsupported syntax: {type(node).__name__}")


def _column_value(value: Any) -> Any:
    """Missing cells become 0; numeric text becomes a number; other text stays text."""
    if is_empty(value):
        return 0
    if isinstance(value, (bool, int, float)):
        return value
    number = parse_strict_number(value)
    if number is not None:
        return number
    text = str(value).strip()
    if NUMBER_TEXT_PATTERN.match(text):
        return float(text)
    return str(value)


def _eval_node(node: ast.AST, values: dict[str, Any]) -> Any:
    if isinstance(node, ast.Constant):
        return node.value
    if isinstance(node, ast.Name):
        return values[node.id]
    if isinstance(node, ast.UnaryOp):
        operand = _eval_node(node.operand, values)
        if isinstance(operand, str):
            raise ExpressionError("Unary operator on text")
        return _UNARY_OPERATORS[type(node.op)](operand)
    if isinstance(node, ast.BinOp):
        left = _eval_node(node.left, values)
        right = _eval_node(node.right, values)
        if isinstance(node.op, ast.Add) and (isinstance(left, str) or isinstance(right, str)):
            return as_text(left) + as_text(right)
        if isinstance(left, str) or isinstance(right, str):
            raise ExpressionError("Arithmetic on text")
        try:
            return _BINARY_OPERATORS[type(node.op)](left, right)
        except (ArithmeticError, ValueError) as e:
            raise ExpressionError(f"Arithmetic failed: {e}") from e
    raise ExpressionError(f"Unsupported syntax: {type(node).__name__}")


def compile_expression(expression: str) -> CompiledExpression:
    return CompiledExpression(expression)
