"""
The core stepback interpreter: the statement Evaluator and the step
protocol that wraps every statement frame in a checkpoint-and-prompt cycle.

Frames hand signals back as values: a call returns `(state, outcome)` where
outcome is `Completed`, a `Failure`, or a `Rewind`. Only the quit command
unwinds by exception.
"""
import os
import sys
from typing import Any, List, Optional, Tuple

from stepback.stepback_datatypes import (
    Statement, Assign, If, While, Print, Seq, Try, Pass,
    ExecutionState, Frame, Completed, Signal, Rewind, Failure, EvalError,
)
from stepback.stepback_expr import evaluate, as_bool
from stepback.stepback_printer import Printer
from stepback.stepback_session import Session, BACK

# Pressing "back" unwinds past the prompted statement and its parent.
INITIAL_REWIND_DISTANCE = 2

Outcome = Any  # Completed | Failure | Rewind
StepResult = Tuple[ExecutionState, Outcome]


class Evaluator:
    """The stepback execution engine."""

    def __init__(self, session: Optional[Session] = None):
        self.session = session or Session()
        self.printer = Printer()
        # Open frames, outermost first.
        self.frames: List[Frame] = []

    def _dbg(self, *parts):
        if os.environ.get("STEPBACK_DEBUG"):
            try:
                print("[DBG]", *parts, file=sys.stderr)
            except Exception:
                pass

    def info(self, text: str):
        self.session.info(text)

    def _push_frame(self, stmt: Statement, state: ExecutionState) -> Frame:
        frame = Frame(stmt, state.snapshot(), len(self.frames))
        self.frames.append(frame)
        self._dbg("PUSH", frame.depth, self.session.preview(stmt), "history", len(state.history))
        return frame

    def _pop_frame(self):
        if self.frames:
            frame = self.frames.pop()
            self._dbg("POP", frame.depth, "pending", frame.pending)

    # ---------------------------------------------------------------
    # Step protocol
    # ---------------------------------------------------------------

    def step(self, stmt: Statement, state: ExecutionState) -> StepResult:
        """Runs one frame: checkpoint, prompt, execute, then handle any signal.

        A Rewind reaching this frame with distance > 1 leaves with distance
        one less. At distance 1 the frame restores its checkpoint and starts
        over with a fresh prompt. Failures pass through untouched.
        """
        while True:
            frame = self._push_frame(stmt, state)
            try:
                command = self.session.prompt(stmt, state)
                if command == BACK:
                    outcome = Rewind(INITIAL_REWIND_DISTANCE)
                else:
                    self.info(f"Running: {self.session.preview(stmt)}")
                    state, outcome = self.execute(stmt, state)

                if isinstance(outcome, Rewind):
                    if outcome.distance > 1:
                        frame.pending = outcome.distance - 1
                        self._dbg("REWIND pass", frame.depth, "distance", frame.pending)
                        return state, Rewind(frame.pending)
                    self._dbg("REWIND absorb", frame.depth)
                    self.info(f"Stepped back to {self.session.preview(stmt)}")
                    state = frame.checkpoint
                    continue
                return state, outcome
            finally:
                self._pop_frame()

    # ---------------------------------------------------------------
    # Statement evaluation
    # ---------------------------------------------------------------

    def execute(self, stmt: Statement, state: ExecutionState) -> StepResult:
        """Interprets a single statement node. Child statements go through `step`."""
        match stmt:
            case Assign():
                return self._exec_assign(stmt, state)
            case If():
                return self._exec_if(stmt, state)
            case While():
                return self._exec_while(stmt, state)
            case Print():
                state = state.record(stmt)
                self.info(f"Print: {self.printer.pformat(stmt.expr)}")
                return state, Completed
            case Seq():
                state = state.record(stmt)
                state, outcome = self.step(stmt.first, state)
                if isinstance(outcome, Signal):
                    return state, outcome
                return self.step(stmt.second, state)
            case Try():
                return self._exec_try(stmt, state)
        if stmt is Pass:
            return state.record(stmt), Completed
        raise TypeError(f"Unknown statement type: {type(stmt).__name__}")

    def fail(self, state: ExecutionState, message: str) -> StepResult:
        """Reports an ordinary failure and hands it back with the state as it stands."""
        self.info(f"ERR: {message}")
        return state, Failure(message)

    def _exec_assign(self, stmt: Assign, state: ExecutionState) -> StepResult:
        state = state.record(stmt, stmt.name)
        try:
            value = evaluate(stmt.expr, state.env)
        except EvalError as e:
            return self.fail(state, e.message)
        state = state.bind(stmt.name, value)
        self.info(f"Assigned {self.printer.pformat(value)} to {stmt.name}")
        return state, Completed

    def _guard(self, cond, state: ExecutionState) -> bool:
        return as_bool(evaluate(cond, state.env))

    def _exec_if(self, stmt: If, state: ExecutionState) -> StepResult:
        state = state.record(stmt)
        try:
            guard = self._guard(stmt.cond, state)
        except EvalError as e:
            return self.fail(state, e.message)
        self.info(f"If guard {self.printer.pformat(guard)}")
        return self.step(stmt.then if guard else stmt.orelse, state)

    def _exec_while(self, stmt: While, state: ExecutionState) -> StepResult:
        """Runs the loop without recursing per iteration.

        Every iteration after the first gets its own frame record, nested in
        the previous iteration's frame. Rewinds are counted down against those
        records; whatever is still pending past the second iteration goes back
        to the frame `step` opened for the first one.
        """
        base = len(self.frames)
        try:
            state, outcome = self._while_iteration(stmt, state)
            while outcome is None:
                self._push_frame(stmt, state)
                if self.session.prompt(stmt, state) == BACK:
                    outcome = Rewind(INITIAL_REWIND_DISTANCE)
                else:
                    self.info(f"Running: {self.session.preview(stmt)}")
                    state, outcome = self._while_iteration(stmt, state)
                state, outcome = self._unwind_iterations(stmt, state, outcome, base)
            return state, outcome
        finally:
            while len(self.frames) > base:
                self._pop_frame()

    def _while_iteration(self, stmt: While, state: ExecutionState) -> Tuple[ExecutionState, Optional[Outcome]]:
        """One guard check and body run. None means go round again."""
        state = state.record(stmt)
        try:
            guard = self._guard(stmt.cond, state)
        except EvalError as e:
            return self.fail(state, e.message)
        self.info(f"While guard {self.printer.pformat(guard)}")
        if not guard:
            return state, Completed
        state, outcome = self.step(stmt.body, state)
        if isinstance(outcome, Signal):
            return state, outcome
        self.info("While iteration finished")
        return state, None

    def _unwind_iterations(self, stmt: While, state: ExecutionState, outcome, base: int):
        if outcome is None:
            return state, None
        if not isinstance(outcome, Rewind):
            while len(self.frames) > base:
                self._pop_frame()
            return state, outcome
        while len(self.frames) > base:
            frame = self.frames[-1]
            if outcome.distance > 1:
                frame.pending = outcome.distance - 1
                self._dbg("REWIND pass", frame.depth, "distance", frame.pending)
                self._pop_frame()
                outcome = Rewind(frame.pending)
                continue
            self._dbg("REWIND absorb", frame.depth)
            self.info(f"Stepped back to {self.session.preview(stmt)}")
            self._pop_frame()
            return frame.checkpoint, None
        return state, outcome

    def _exec_try(self, stmt: Try, state: ExecutionState) -> StepResult:
        state = state.record(stmt)
        state, outcome = self.step(stmt.body, state)
        if isinstance(outcome, Failure):
            # Partial effects of the failed body are kept.
            self.info(f"Caught error: {outcome.message}")
            return self.step(stmt.handler, state)
        return state, outcome
