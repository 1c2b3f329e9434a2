"""
Expression evaluation for the stepback interpreter.

`evaluate` reduces an expression tree to a value against a read-only view
of the environment, raising EvalError with a user-facing message on failure.
"""
from typing import Any

from stepback.stepback_datatypes import (
    Expr, Const, Var, BinOp, Not, Neg, Environment, EvalError
)


def _show(value: Any) -> str:
    from stepback.stepback_printer import Printer
    return Printer().pformat(value)


def as_bool(value: Any) -> bool:
    """Extracts a boolean, failing with a descriptive error on anything else."""
    if isinstance(value, bool):
        return value
    raise EvalError(f"Expected boolean, got {_show(value)}")


def as_int(value: Any) -> int:
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    raise EvalError(f"Expected integer, got {_show(value)}")


def _div(a, b):
    if b == 0:
        raise EvalError("Division by zero")
    q = abs(a) // abs(b)
    return q if (a < 0) == (b < 0) else -q


def _mod(a, b):
    if b == 0:
        raise EvalError("Division by zero")
    return a - b * _div(a, b)


def _same_kind(a, b) -> bool:
    return isinstance(a, bool) == isinstance(b, bool)


# --- Operator tables ---
_ARITHMETIC = {
    '+': lambda a, b: a + b,
    '-': lambda a, b: a - b,
    '*': lambda a, b: a * b,
    '/': _div,
    '%': _mod,
}

_ORDERING = {
    '<': lambda a, b: a < b,
    '<=': lambda a, b: a <= b,
    '>': lambda a, b: a > b,
    '>=': lambda a, b: a >= b,
}


def evaluate(expr: Expr, env: Environment) -> Any:
    """Reduces `expr` to a value. Never mutates `env`."""
    match expr:
        case Const():
            return expr.value
        case Var():
            if expr.name not in env:
                raise EvalError(f"Unknown variable {expr.name}")
            return env[expr.name]
        case Not():
            return not as_bool(evaluate(expr.operand, env))
        case Neg():
            return -as_int(evaluate(expr.operand, env))
        case BinOp():
            return _eval_binop(expr, env)
    raise EvalError(f"Cannot evaluate {type(expr).__name__}")


def _eval_binop(expr: BinOp, env: Environment) -> Any:
    op = expr.op
    # Short-circuit logical operators evaluate the right side only when needed.
    if op == 'and':
        return as_bool(evaluate(expr.left, env)) and as_bool(evaluate(expr.right, env))
    if op == 'or':
        return as_bool(evaluate(expr.left, env)) or as_bool(evaluate(expr.right, env))

    left = evaluate(expr.left, env)
    right = evaluate(expr.right, env)
    if op in _ARITHMETIC:
        return _ARITHMETIC[op](as_int(left), as_int(right))
    if op in _ORDERING:
        return _ORDERING[op](as_int(left), as_int(right))
    if op == '==':
        return _same_kind(left, right) and left == right
    if op == '!=':
        return not (_same_kind(left, right) and left == right)
    raise EvalError(f"Unknown operator {op}")
