"""
A printer for stepback values, expressions and statements.
"""
from stepback.stepback_datatypes import (
    Const, Var, BinOp, Not, Neg,
    Assign, If, While, Print, Seq, Try, Pass, _PassStatement,
)

PREVIEW_WIDTH = 30


class Printer:
    """Formats stepback objects into their single-line textual form."""

    def __init__(self):
        self._handlers = self._create_handlers()

    def pformat(self, obj, level=0):
        """Public entry point to format an object.

        `level` is the nesting depth; a Seq below the top level is braced.
        """
        handler = self._get_handler(obj)
        return handler(obj, level)

    def _get_handler(self, obj):
        """Dispatcher to find the correct formatting method."""
        if obj is Pass: return self._pformat_pass
        obj_type = type(obj)
        if obj_type in self._handlers:
            return self._handlers[obj_type]
        # Default to Python's repr for unknown types
        return lambda o, l: repr(o)

    def _create_handlers(self):
        return {
            int: self._pformat_primitive,
            bool: self._pformat_bool,
            type(None): self._pformat_none,
            Const: self._pformat_const,
            Var: self._pformat_var,
            BinOp: self._pformat_binop,
            Not: self._pformat_not,
            Neg: self._pformat_neg,
            Assign: self._pformat_assign,
            If: self._pformat_if,
            While: self._pformat_while,
            Print: self._pformat_print,
            Seq: self._pformat_seq,
            Try: self._pformat_try,
            _PassStatement: self._pformat_pass,
        }

    # --- Values ---
    def _pformat_primitive(self, obj, level):
        return str(obj)

    def _pformat_bool(self, obj, level):
        return 'true' if obj else 'false'

    def _pformat_none(self, obj, level):
        return 'none'

    # --- Expressions ---
    def _pformat_const(self, obj, level):
        return self.pformat(obj.value)

    def _pformat_var(self, obj, level):
        return obj.name

    def _pformat_operand(self, expr):
        # Compound operands are parenthesised; atoms are not.
        text = self.pformat(expr)
        if isinstance(expr, (BinOp, Not, Neg)):
            return f"({text})"
        if isinstance(expr, Const) and text.startswith("-"):
            return f"({text})"
        return text

    def _pformat_binop(self, obj, level):
        return f"{self._pformat_operand(obj.left)} {obj.op} {self._pformat_operand(obj.right)}"

    def _pformat_not(self, obj, level):
        return f"not {self._pformat_operand(obj.operand)}"

    def _pformat_neg(self, obj, level):
        return f"-{self._pformat_operand(obj.operand)}"

    # --- Statements ---
    def _pformat_assign(self, obj, level):
        return f"{obj.name} := {self.pformat(obj.expr)}"

    def _pformat_if(self, obj, level):
        then = self.pformat(obj.then, level + 1)
        orelse = self.pformat(obj.orelse, level + 1)
        return f"if {self.pformat(obj.cond)} then {then} else {orelse}"

    def _pformat_while(self, obj, level):
        return f"while {self.pformat(obj.cond)} do {self.pformat(obj.body, level + 1)}"

    def _pformat_print(self, obj, level):
        return f"print {self.pformat(obj.expr)}"

    def _pformat_seq(self, obj, level):
        text = self._flat_seq(obj, level)
        if level > 0:
            return "{ " + text + " }"
        return text

    def _flat_seq(self, obj, level):
        parts = []
        node = obj
        while isinstance(node, Seq):
            parts.append(self.pformat(node.first, level + 1))
            node = node.second
        parts.append(self.pformat(node, level + 1))
        return "; ".join(parts)

    def _pformat_try(self, obj, level):
        return f"try {self.pformat(obj.body, level + 1)} catch {self.pformat(obj.handler, level + 1)}"

    def _pformat_pass(self, obj, level):
        return 'pass'


def safe_take(text: str, width: int = PREVIEW_WIDTH) -> str:
    """Takes up to `width` characters, marking a cut with '...'."""
    if len(text) > width:
        return text[:width] + "..."
    return text


def safe_show(obj, width: int = PREVIEW_WIDTH) -> str:
    """Shows up to `width` characters of an object's textual form."""
    return safe_take(Printer().pformat(obj), width)
