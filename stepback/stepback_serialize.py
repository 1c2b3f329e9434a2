from __future__ import annotations

import json
import collections.abc
from pathlib import Path
from typing import Any, Optional

import yaml

from stepback.stepback_datatypes import (
    Expr, Const, Var, BinOp, Not, Neg,
    Statement, Assign, If, While, Print, Seq, Try, Pass,
    ProgramFormatError,
)


# --------------------------
# Helpers
# --------------------------

_OP_NAMES = {
    'add': '+', 'sub': '-', 'mul': '*', 'div': '/', 'mod': '%',
    'eq': '==', 'ne': '!=', 'lt': '<', 'le': '<=', 'gt': '>', 'ge': '>=',
    'and': 'and', 'or': 'or',
}
_OP_KEYS = {sym: name for name, sym in _OP_NAMES.items()}


def _norm_text(data: bytes | bytearray | str) -> str:
    if isinstance(data, (bytes, bytearray)):
        return data.decode('utf-8', errors='replace')
    return str(data)


def _single_key(node: Any, what: str) -> tuple[str, Any]:
    if not isinstance(node, collections.abc.Mapping) or len(node) != 1:
        raise ProgramFormatError(f"{what} must be a single-key mapping, got {node!r}")
    (key, value), = node.items()
    return str(key).lower(), value


def _fields(value: Any, tag: str, names: tuple[str, ...], defaults: Optional[dict] = None) -> list:
    """Reads the operands of a node given as a mapping or a positional list."""
    defaults = defaults or {}
    if isinstance(value, collections.abc.Mapping):
        missing = [n for n in names if n not in value and n not in defaults]
        if missing:
            raise ProgramFormatError(f"'{tag}' is missing {', '.join(missing)}")
        return [value[n] if n in value else defaults[n] for n in names]
    if isinstance(value, list):
        required = len([n for n in names if n not in defaults])
        if not (required <= len(value) <= len(names)):
            raise ProgramFormatError(f"'{tag}' expects {len(names)} operands, got {len(value)}")
        return list(value) + [defaults[n] for n in names[len(value):]]
    raise ProgramFormatError(f"'{tag}' expects a mapping or a list, got {value!r}")


def detect_format(path: Optional[str] = None, data_hint: Optional[str] = None) -> Optional[str]:
    """
    Returns a canonical format name among: 'json', 'yaml'.
    Uses the file extension first; falls back to simple data sniffing.
    """
    if path:
        ext = Path(path).suffix.lower()
        if ext == '.json':
            return 'json'
        if ext in ('.yaml', '.yml'):
            return 'yaml'
    if data_hint is not None:
        s = data_hint.lstrip()
        if s.startswith('{') or s.startswith('['):
            return 'json'
        return 'yaml'
    return None


# --------------------------
# Tree conversion
# --------------------------

def expr_from_data(node: Any) -> Expr:
    """Builds an expression from plain data (as produced by json/yaml)."""
    if isinstance(node, bool) or isinstance(node, int):
        return Const(node)
    if isinstance(node, str):
        return Var(node)
    tag, value = _single_key(node, "Expression")
    if tag == 'const':
        if not isinstance(value, (bool, int)):
            raise ProgramFormatError(f"'const' expects an integer or boolean, got {value!r}")
        return Const(value)
    if tag == 'var':
        if not isinstance(value, str):
            raise ProgramFormatError(f"'var' expects a name, got {value!r}")
        return Var(value)
    if tag == 'not':
        return Not(expr_from_data(value))
    if tag == 'neg':
        return Neg(expr_from_data(value))
    op = _OP_NAMES.get(tag) or (tag if tag in BinOp.OPERATORS else None)
    if op is None:
        raise ProgramFormatError(f"Unknown expression node: {tag!r}")
    if not isinstance(value, list) or len(value) != 2:
        raise ProgramFormatError(f"'{tag}' expects a list of two operands, got {value!r}")
    return BinOp(op, expr_from_data(value[0]), expr_from_data(value[1]))


def statement_from_data(node: Any) -> Statement:
    """Builds a statement tree from plain data (as produced by json/yaml)."""
    if isinstance(node, str):
        if node.lower() == 'pass':
            return Pass
        raise ProgramFormatError(f"Unknown statement: {node!r}")
    tag, value = _single_key(node, "Statement")
    match tag:
        case 'assign':
            name, expr = _fields(value, tag, ('name', 'expr'))
            if not isinstance(name, str) or not name:
                raise ProgramFormatError(f"'assign' expects a variable name, got {name!r}")
            return Assign(name, expr_from_data(expr))
        case 'if':
            cond, then, orelse = _fields(value, tag, ('cond', 'then', 'else'), {'else': 'pass'})
            return If(expr_from_data(cond), statement_from_data(then), statement_from_data(orelse))
        case 'while':
            cond, body = _fields(value, tag, ('cond', 'body'))
            return While(expr_from_data(cond), statement_from_data(body))
        case 'print':
            return Print(expr_from_data(value))
        case 'seq':
            if not isinstance(value, list):
                raise ProgramFormatError(f"'seq' expects a list of statements, got {value!r}")
            return Seq.of(*[statement_from_data(s) for s in value])
        case 'try':
            body, handler = _fields(value, tag, ('body', 'catch'))
            return Try(statement_from_data(body), statement_from_data(handler))
        case 'pass':
            return Pass
    raise ProgramFormatError(f"Unknown statement node: {tag!r}")


def expr_to_data(expr: Expr) -> Any:
    match expr:
        case Const():
            return expr.value
        case Var():
            return expr.name
        case Not():
            return {'not': expr_to_data(expr.operand)}
        case Neg():
            return {'neg': expr_to_data(expr.operand)}
        case BinOp():
            return {_OP_KEYS[expr.op]: [expr_to_data(expr.left), expr_to_data(expr.right)]}
    raise TypeError(f"Cannot serialize {type(expr).__name__}")


def statement_to_data(stmt: Statement) -> Any:
    if stmt is Pass:
        return 'pass'
    match stmt:
        case Assign():
            return {'assign': {'name': stmt.name, 'expr': expr_to_data(stmt.expr)}}
        case If():
            return {'if': {
                'cond': expr_to_data(stmt.cond),
                'then': statement_to_data(stmt.then),
                'else': statement_to_data(stmt.orelse),
            }}
        case While():
            return {'while': {'cond': expr_to_data(stmt.cond), 'body': statement_to_data(stmt.body)}}
        case Print():
            return {'print': expr_to_data(stmt.expr)}
        case Seq():
            # Flatten the right spine so files read as plain lists.
            items = []
            node = stmt
            while isinstance(node, Seq):
                items.append(statement_to_data(node.first))
                node = node.second
            items.append(statement_to_data(node))
            return {'seq': items}
        case Try():
            return {'try': {'body': statement_to_data(stmt.body), 'catch': statement_to_data(stmt.handler)}}
    raise TypeError(f"Cannot serialize {type(stmt).__name__}")


# --------------------------
# Public API
# --------------------------

def deserialize(data: bytes | bytearray | str, *, fmt: Optional[str] = None) -> Any:
    """
    Convert document text to plain Python structures.
    Supported fmt: 'json', 'yaml'. If fmt is None, the content is sniffed.
    """
    text = _norm_text(data)
    f = fmt or detect_format(None, text)
    try:
        if f == 'json':
            try:
                return json.loads(text)
            except json.JSONDecodeError:
                # YAML is a superset of JSON; give it a second chance
                return yaml.safe_load(text)
        if f == 'yaml':
            return yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise ProgramFormatError(f"Invalid {f} document: {e}") from e
    raise ValueError(f"Unsupported program format: {fmt!r}")


def serialize(value: Any, *, fmt: str, pretty: bool = True) -> str:
    f = (fmt or '').lower()
    if f == 'json':
        return json.dumps(value, ensure_ascii=False, indent=2 if pretty else None)
    if f == 'yaml':
        return yaml.safe_dump(value, sort_keys=False)
    raise ValueError(f"Unsupported serialization format: {fmt!r}")


def load_program(data: bytes | bytearray | str, *, fmt: Optional[str] = None) -> Statement:
    """Parses a JSON or YAML program document into a statement tree."""
    return statement_from_data(deserialize(data, fmt=fmt))


def load_program_file(path: str | Path) -> Statement:
    p = Path(path)
    try:
        text = p.read_text(encoding="utf-8")
    except UnicodeDecodeError as e:
        raise ProgramFormatError(f"{p} is not UTF-8 text") from e
    return load_program(text, fmt=detect_format(str(p), text))


def dump_program(stmt: Statement, *, fmt: str = 'yaml') -> str:
    return serialize(statement_to_data(stmt), fmt=fmt)


__all__ = [
    "load_program",
    "load_program_file",
    "dump_program",
    "statement_from_data",
    "statement_to_data",
    "expr_from_data",
    "expr_to_data",
    "deserialize",
    "serialize",
    "detect_format",
]
