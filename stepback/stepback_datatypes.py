"""
Defines the core data types for the stepback interpreter.

This module provides the statement and expression trees, the execution
state that is threaded through evaluation (environment plus history), the
signals a statement frame can hand back to its caller, and the frame record
kept by the evaluator for every open statement.
"""

from typing import List, Dict, Any, Optional, Tuple


class EvalError(Exception):
    """Raised by the expression evaluator with a user-facing message."""
    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ProgramFormatError(ValueError):
    """Raised when a serialized program document is malformed."""
    pass


class QuitSession(Exception):
    """Raised by the session when the user quits. Never caught by frames."""
    pass


# =================================================================
# Abstract Base Classes
# =================================================================

class Expr:
    """Base class for expression nodes. Expressions are immutable."""
    def __deepcopy__(self, memo):
        return self


class Statement:
    """Base class for statement nodes. Statements are read-only once built."""
    def __deepcopy__(self, memo):
        return self

    def __str__(self) -> str:
        from stepback.stepback_printer import Printer
        return Printer().pformat(self)


# =================================================================
# Expressions
# =================================================================

class Const(Expr):
    """A literal value, e.g. `3` or `true`."""
    def __init__(self, value: Any):
        self.value = value

    def __repr__(self) -> str:
        return f"Const({self.value!r})"

    def __eq__(self, other):
        # bool is an int subclass; keep `Const(1)` and `Const(True)` apart.
        return isinstance(other, Const) and type(self.value) is type(other.value) and self.value == other.value

    def __hash__(self):
        return hash((type(self.value), self.value))


class Var(Expr):
    """A variable reference."""
    def __init__(self, name: str):
        self.name = name

    def __repr__(self) -> str:
        return f"Var({self.name!r})"

    def __eq__(self, other):
        return isinstance(other, Var) and self.name == other.name

    def __hash__(self):
        return hash(self.name)


class BinOp(Expr):
    """A binary operation, e.g. `x + 1` or `a and b`."""
    OPERATORS = ('+', '-', '*', '/', '%', '==', '!=', '<', '<=', '>', '>=', 'and', 'or')

    def __init__(self, op: str, left: Expr, right: Expr):
        if op not in self.OPERATORS:
            raise ValueError(f"Unknown binary operator: {op!r}")
        self.op = op
        self.left = left
        self.right = right

    def __repr__(self) -> str:
        return f"BinOp({self.op!r}, {self.left!r}, {self.right!r})"

    def __eq__(self, other):
        return (
            isinstance(other, BinOp) and
            self.op == other.op and
            self.left == other.left and
            self.right == other.right
        )

    def __hash__(self):
        return hash((self.op, self.left, self.right))


class Not(Expr):
    """Logical negation."""
    def __init__(self, operand: Expr):
        self.operand = operand

    def __repr__(self) -> str:
        return f"Not({self.operand!r})"

    def __eq__(self, other):
        return isinstance(other, Not) and self.operand == other.operand

    def __hash__(self):
        return hash(('not', self.operand))


class Neg(Expr):
    """Arithmetic negation."""
    def __init__(self, operand: Expr):
        self.operand = operand

    def __repr__(self) -> str:
        return f"Neg({self.operand!r})"

    def __eq__(self, other):
        return isinstance(other, Neg) and self.operand == other.operand

    def __hash__(self):
        return hash(('neg', self.operand))


# =================================================================
# Statements
# =================================================================

class Assign(Statement):
    """Binds the value of `expr` to `name`."""
    def __init__(self, name: str, expr: Expr):
        self.name = name
        self.expr = expr

    def __repr__(self) -> str:
        return f"Assign({self.name!r}, {self.expr!r})"

    def __eq__(self, other):
        return isinstance(other, Assign) and self.name == other.name and self.expr == other.expr

    def __hash__(self):
        return hash(('assign', self.name, self.expr))


class If(Statement):
    """Runs exactly one of two branches, chosen by a boolean guard."""
    def __init__(self, cond: Expr, then: Statement, orelse: Statement):
        self.cond = cond
        self.then = then
        self.orelse = orelse

    def __repr__(self) -> str:
        return f"If({self.cond!r}, {self.then!r}, {self.orelse!r})"

    def __eq__(self, other):
        return (
            isinstance(other, If) and
            self.cond == other.cond and
            self.then == other.then and
            self.orelse == other.orelse
        )

    def __hash__(self):
        return hash(('if', self.cond, self.then, self.orelse))


class While(Statement):
    """Runs `body` while `cond` holds. The same body node is reused each iteration."""
    def __init__(self, cond: Expr, body: Statement):
        self.cond = cond
        self.body = body

    def __repr__(self) -> str:
        return f"While({self.cond!r}, {self.body!r})"

    def __eq__(self, other):
        return isinstance(other, While) and self.cond == other.cond and self.body == other.body

    def __hash__(self):
        return hash(('while', self.cond, self.body))


class Print(Statement):
    """Emits the textual form of an expression. The expression is not evaluated."""
    def __init__(self, expr: Expr):
        self.expr = expr

    def __repr__(self) -> str:
        return f"Print({self.expr!r})"

    def __eq__(self, other):
        return isinstance(other, Print) and self.expr == other.expr

    def __hash__(self):
        return hash(('print', self.expr))


class Seq(Statement):
    """Runs `first`, then `second`."""
    def __init__(self, first: Statement, second: Statement):
        self.first = first
        self.second = second

    @classmethod
    def of(cls, *statements: Statement) -> Statement:
        """Builds a right-nested sequence. No statements gives `Pass`."""
        if not statements:
            return Pass
        result = statements[-1]
        for stmt in reversed(statements[:-1]):
            result = cls(stmt, result)
        return result

    def __repr__(self) -> str:
        return f"Seq({self.first!r}, {self.second!r})"

    def __eq__(self, other):
        return isinstance(other, Seq) and self.first == other.first and self.second == other.second

    def __hash__(self):
        return hash(('seq', self.first, self.second))


class Try(Statement):
    """Runs `body`; on an ordinary failure runs `handler` instead."""
    def __init__(self, body: Statement, handler: Statement):
        self.body = body
        self.handler = handler

    def __repr__(self) -> str:
        return f"Try({self.body!r}, {self.handler!r})"

    def __eq__(self, other):
        return isinstance(other, Try) and self.body == other.body and self.handler == other.handler

    def __hash__(self):
        return hash(('try', self.body, self.handler))


class _PassStatement(Statement):
    """Internal helper class for the stateless no-op statement."""
    def __repr__(self):
        return "Pass"

# Singleton instance; compare with `is`.
Pass = _PassStatement()


# =================================================================
# Signals
# =================================================================

class _CompletedOutcome:
    """Internal helper class for the normal-completion outcome."""
    def __repr__(self):
        return "Completed"

Completed = _CompletedOutcome()


class Signal:
    """A control-flow value handed back by a frame instead of normal completion."""
    pass


class Rewind(Signal):
    """A step-back request that still has to cross `distance` frames."""
    def __init__(self, distance: int):
        if distance < 1:
            raise ValueError("Rewind distance must be a positive integer.")
        self.distance = distance

    def __repr__(self) -> str:
        return f"Rewind({self.distance})"

    def __eq__(self, other):
        return isinstance(other, Rewind) and self.distance == other.distance

    def __hash__(self):
        return hash(('rewind', self.distance))


class Failure(Signal):
    """An ordinary evaluation failure carrying its message."""
    def __init__(self, message: str):
        self.message = message

    def __repr__(self) -> str:
        return f"Failure({self.message!r})"

    def __eq__(self, other):
        return isinstance(other, Failure) and self.message == other.message

    def __hash__(self):
        return hash(('failure', self.message))


# =================================================================
# Execution State
# =================================================================

class Environment:
    """Variable bindings for a run. `set` returns a new Environment."""
    def __init__(self, bindings: Optional[Dict[str, Any]] = None):
        self._bindings: Dict[str, Any] = dict(bindings or {})

    def get(self, name: str, default: Any = None) -> Any:
        return self._bindings.get(name, default)

    def set(self, name: str, value: Any) -> 'Environment':
        bindings = dict(self._bindings)
        bindings[name] = value
        return Environment(bindings)

    def __contains__(self, name: str) -> bool:
        return name in self._bindings

    def __getitem__(self, name: str) -> Any:
        return self._bindings[name]

    def __len__(self) -> int:
        return len(self._bindings)

    def items(self):
        """Bindings sorted by name."""
        return sorted(self._bindings.items())

    def to_dict(self) -> Dict[str, Any]:
        return dict(self._bindings)

    def __repr__(self) -> str:
        return f"Environment({self._bindings!r})"

    def __eq__(self, other):
        if not isinstance(other, Environment):
            return NotImplemented
        # Compare with types so `1` and `true` stay distinct.
        mine = {k: (type(v), v) for k, v in self._bindings.items()}
        theirs = {k: (type(v), v) for k, v in other._bindings.items()}
        return mine == theirs


class HistoryItem:
    """A statement that was started, and the prior value of the variable it overwrites."""
    def __init__(self, statement: Statement, prior: Optional[Tuple[str, Any]] = None):
        self.statement = statement
        self.prior = prior

    @property
    def name(self) -> Optional[str]:
        return self.prior[0] if self.prior else None

    @property
    def value(self) -> Any:
        return self.prior[1] if self.prior else None

    def __repr__(self) -> str:
        return f"HistoryItem({self.statement!r}, prior={self.prior!r})"

    def __eq__(self, other):
        if not isinstance(other, HistoryItem):
            return NotImplemented
        if self.statement != other.statement:
            return False
        if self.prior is None or other.prior is None:
            return self.prior is other.prior
        return (
            self.prior[0] == other.prior[0] and
            type(self.prior[1]) is type(other.prior[1]) and
            self.prior[1] == other.prior[1]
        )


class History:
    """Chronological, append-only record of started statements."""
    def __init__(self, items: Optional[List[HistoryItem]] = None):
        self._items: Tuple[HistoryItem, ...] = tuple(items or ())

    def append(self, item: HistoryItem) -> 'History':
        return History(self._items + (item,))

    def for_name(self, name: str) -> List[HistoryItem]:
        """Items that recorded a prior value for `name`, oldest first."""
        return [item for item in self._items if item.name == name]

    def __iter__(self):
        return iter(self._items)

    def __len__(self) -> int:
        return len(self._items)

    def __getitem__(self, index):
        return self._items[index]

    def __repr__(self) -> str:
        return f"History({list(self._items)!r})"

    def __eq__(self, other):
        if not isinstance(other, History):
            return NotImplemented
        return list(self._items) == list(other._items)


class ExecutionState:
    """The (history, environment) pair threaded through every frame.

    Primitives return a new state; a caller that wants the old one keeps
    its reference. `snapshot` shares the history tuple and copies only the
    bindings, which is all a checkpoint needs.
    """
    def __init__(self, history: Optional[History] = None, env: Optional[Environment] = None):
        self.history = history if history is not None else History()
        self.env = env if env is not None else Environment()

    @classmethod
    def empty(cls) -> 'ExecutionState':
        return cls(History(), Environment())

    def lookup(self, name: str) -> Any:
        return self.env.get(name)

    def bind(self, name: str, value: Any) -> 'ExecutionState':
        return ExecutionState(self.history, self.env.set(name, value))

    def record(self, statement: Statement, name: Optional[str] = None) -> 'ExecutionState':
        """Appends a history item for `statement`, capturing the prior value of `name` if bound."""
        prior = None
        if name is not None and name in self.env:
            prior = (name, self.env[name])
        return ExecutionState(self.history.append(HistoryItem(statement, prior)), self.env)

    def snapshot(self) -> 'ExecutionState':
        return ExecutionState(self.history, Environment(self.env.to_dict()))

    def __repr__(self) -> str:
        return f"<ExecutionState history={len(self.history)} env={self.env.to_dict()!r}>"

    def __eq__(self, other):
        if not isinstance(other, ExecutionState):
            return NotImplemented
        return self.history == other.history and self.env == other.env


class Frame:
    """One open activation of the step protocol for a single statement."""
    def __init__(self, statement: Statement, checkpoint: ExecutionState, depth: int):
        self.statement = statement
        self.checkpoint = checkpoint
        self.depth = depth
        # Rewind distance carried outward through this frame, if any.
        self.pending: Optional[int] = None

    def __repr__(self) -> str:
        return f"<Frame depth={self.depth} statement={self.statement!r} pending={self.pending!r}>"
