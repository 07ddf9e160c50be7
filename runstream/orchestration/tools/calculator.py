"""Arithmetic tool backed by a restricted expression evaluator."""

import ast
import math
import operator
from typing import Any, Callable, Dict

from ..tool_registry import Tool

_BINARY_OPS: Dict[type, Callable[[Any, Any], Any]] = {
    ast.Add: operator.add,
    ast.Sub: operator.sub,
    ast.Mult: operator.mul,
    ast.Div: operator.truediv,
    ast.FloorDiv: operator.floordiv,
    ast.Mod: operator.mod,
    ast.Pow: operator.pow,
}

_UNARY_OPS: Dict[type, Callable[[Any], Any]] = {
    ast.UAdd: operator.pos,
    ast.USub: operator.neg,
}

_FUNCTIONS: Dict[str, Callable[..., Any]] = {
    "abs": abs,
    "round": round,
    "sqrt": math.sqrt,
    "floor": math.floor,
    "ceil": math.ceil,
}

_CONSTANTS = {"pi": math.pi, "e": math.e}

# Largest exponent accepted by **
MAX_EXPONENT = 1000

# Largest result, in decimal digits, of ** or *
MAX_RESULT_DIGITS = 4300


def evaluate(expression: str) -> float:
    """Evaluate an arithmetic expression.

    Supports numbers, + - * / // % **, parentheses, ``pi``/``e`` and a few
    math functions. Anything else raises ValueError.
    """
    try:
        tree = ast.parse(expression.strip(), mode="eval")
    except SyntaxError as e:
        raise ValueError(f"Invalid expression: {expression!r}") from e
    try:
        return _eval(tree.body)
    except OverflowError as e:
        raise ValueError(f"Result out of range: {expression!r}") from e


def _digits(value: Any) -> float:
    magnitude = abs(value)
    return math.log10(magnitude) if magnitude > 1 else 0.0


def _check_size(op: ast.operator, left: Any, right: Any) -> None:
    if isinstance(op, ast.Pow):
        if abs(right) > MAX_EXPONENT:
            raise ValueError(f"Exponent too large: {right}")
        digits = _digits(left) * right if right > 0 else 0.0
    elif isinstance(op, ast.Mult):
        digits = _digits(left) + _digits(right)
    else:
        return
    if digits > MAX_RESULT_DIGITS:
        raise ValueError(f"Result too large: about {digits:.0f} digits")


def _eval(node: ast.AST) -> Any:
    if isinstance(node, ast.Constant) and isinstance(node.value, (int, float)) and not isinstance(node.value, bool):
        return node.value
    if isinstance(node, ast.Name) and node.id in _CONSTANTS:
        return _CONSTANTS[node.id]
    if isinstance(node, ast.BinOp) and type(node.op) in _BINARY_OPS:
        left, right = _eval(node.left), _eval(node.right)
        _check_size(node.op, left, right)
        return _BINARY_OPS[type(node.op)](left, right)
    if isinstance(node, ast.UnaryOp) and type(node.op) in _UNARY_OPS:
        return _UNARY_OPS[type(node.op)](_eval(node.operand))
    if (
        isinstance(node, ast.Call)
        and isinstance(node.func, ast.Name)
        and node.func.id in _FUNCTIONS
        and not node.keywords
    ):
        return _FUNCTIONS[node.func.id](*[_eval(arg) for arg in node.args])
    raise ValueError(f"Unsupported expression element: {type(node).__name__}")


def format_number(value: Any) -> str:
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


class Calculator(Tool):
    """Evaluates the arithmetic expression in ``args["input"]``."""

    @property
    def name(self) -> str:
        return "calculator"

    @property
    def description(self) -> str:
        return "Useful for getting the result of a math expression. The input must be a valid arithmetic expression."

    @property
    def parameters(self) -> Dict[str, Any]:
        return {
            "type": "object",
            "properties": {"input": {"type": "string", "description": "Expression to evaluate"}},
            "required": ["input"],
        }

    async def invoke(self, args: Dict[str, Any]) -> str:
        expression = args.get("input")
        if not isinstance(expression, str) or not expression.strip():
            raise ValueError("calculator expects a non-empty 'input' expression")
        try:
            return format_number(evaluate(expression))
        except ZeroDivisionError as e:
            raise ValueError(f"Division by zero in {expression!r}") from e
