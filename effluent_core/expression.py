"""
Restricted arithmetic for event formulas.

A formula is parsed with :mod:`ast` and every node is checked against an
allow-list before anything is evaluated, so only numbers, the inputs
``rnd`` and ``value`` (``valor`` is an alias of ``value``), ``+ - * /``,
parentheses and a handful of math functions can ever run.
Example: ``value + rnd * 5``.
"""

import ast
import math
import operator
from typing import Callable, Dict

from . import config

INPUT_NAMES = ("rnd", "value", "valor")

_BINARY: Dict[type, Callable[[float, float], float]] = {
    ast.Add: operator.add,
    ast.Sub: operator.sub,
    ast.Mult: operator.mul,
    ast.Div: operator.truediv,
}

_UNARY: Dict[type, Callable[[float], float]] = {
    ast.UAdd: operator.pos,
    ast.USub: operator.neg,
}

FUNCTIONS: Dict[str, Callable[..., float]] = {
    "sqrt": math.sqrt,
    "exp": math.exp,
    "log": math.log,
    "abs": abs,
    "min": min,
    "max": max,
    "floor": math.floor,
    "ceil": math.ceil,
    "pow": math.pow,
    "round": round,
}


class FormulaError(ValueError):
    pass


def _check(node: ast.AST) -> None:
    if isinstance(node, ast.Expression):
        _check(node.body)
    elif isinstance(node, ast.Constant):
        if isinstance(node.value, bool) or not isinstance(node.value, (int, float)):
            raise FormulaError(f"unsupported literal {node.value!r}")
    elif isinstance(node, ast.Name):
        if node.id not in INPUT_NAMES:
            raise FormulaError(f"unknown name {node.id!r}")
    elif isinstance(node, ast.BinOp):
        if type(node.op) not in _BINARY:
            raise FormulaError(f"operator {type(node.op).__name__} not allowed")
        _check(node.left)
        _check(node.right)
    elif isinstance(node, ast.UnaryOp):
        if type(node.op) not in _UNARY:
            raise FormulaError(f"operator {type(node.op).__name__} not allowed")
        _check(node.operand)
    elif isinstance(node, ast.Call):
        if not isinstance(node.func, ast.Name) or node.func.id not in FUNCTIONS:
            raise FormulaError("only whitelisted functions may be called")
        if node.keywords or not node.args:
            raise FormulaError(f"bad arguments to {node.func.id}()")
        for arg in node.args:
            _check(arg)
    else:
        raise FormulaError(f"{type(node).__name__} not allowed")


def _eval(node: ast.AST, env: Dict[str, float]) -> float:
    if isinstance(node, ast.Constant):
        return node.value
    if isinstance(node, ast.Name):
        return env[node.id]
    if isinstance(node, ast.BinOp):
        return _BINARY[type(node.op)](_eval(node.left, env), _eval(node.right, env))
    if isinstance(node, ast.UnaryOp):
        return _UNARY[type(node.op)](_eval(node.operand, env))
    if isinstance(node, ast.Call):
        return FUNCTIONS[node.func.id](*(_eval(a, env) for a in node.args))
    raise FormulaError(f"{type(node).__name__} not allowed")


class Formula:
    def __init__(self, text: str, tree: ast.Expression):
        self.text = text
        self._tree = tree

    def evaluate(self, rnd: float, value: float) -> float:
        try:
            result = float(_eval(self._tree.body, {"rnd": rnd, "value": value, "valor": value}))
        except (ArithmeticError, ValueError, TypeError, RecursionError) as exc:
            raise FormulaError(f"cannot evaluate {self.text!r}: {exc}") from exc
        if not math.isfinite(result):
            raise FormulaError(f"{self.text!r} did not give a finite number")
        return result

    def __repr__(self) -> str:
        return f"Formula({self.text!r})"


def compile_formula(text: str) -> Formula:
    if not text or not text.strip():
        raise FormulaError("empty formula")
    if len(text) > config.MAX_FORMULA_LENGTH:
        raise FormulaError(f"formula longer than {config.MAX_FORMULA_LENGTH} characters")
    try:
        tree = ast.parse(text.strip(), mode="eval")
        _check(tree)
    except SyntaxError as exc:
        raise FormulaError(f"syntax error in {text!r}: {exc.msg}") from None
    except (RecursionError, MemoryError):
        raise FormulaError("formula is nested too deeply") from None
    return Formula(text.strip(), tree)
