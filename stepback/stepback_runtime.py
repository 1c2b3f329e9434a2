# stepback runtime: runs a whole program under the step protocol.

from dataclasses import dataclass
from typing import Literal, Optional

from stepback.stepback_datatypes import (
    Statement, ExecutionState, Rewind, Failure, QuitSession
)
from stepback.stepback_interpreter import Evaluator
from stepback.stepback_session import Console, Session
from stepback.stepback_printer import PREVIEW_WIDTH


@dataclass
class ExecutionResult:
    """The structured result of a program run."""
    status: Literal['success', 'error', 'quit']
    state: Optional[ExecutionState] = None
    error_message: Optional[str] = None
    restarts: int = 0

    def format_error(self) -> str:
        """Formats the failure for display; empty unless the run failed."""
        if self.status == 'error':
            return f"Uncaught error: {self.error_message or 'Unknown error'}"
        if self.status == 'quit':
            return self.error_message or "quitting..."
        return ""


class ProgramRunner:
    """Runs statement trees interactively and offers post-mortem inspection."""

    def __init__(self, console: Optional[Console] = None, preview_width: int = PREVIEW_WIDTH):
        self.session = Session(console, preview_width=preview_width)
        self.evaluator = Evaluator(self.session)

    def run(self, program: Statement) -> ExecutionResult:
        """Evaluates `program` through the step protocol from an empty state.

        A rewind escaping the first frame restarts the run from scratch. An
        uncaught failure ends it. Quitting unwinds every open frame as is.
        """
        restarts = 0
        try:
            while True:
                state, outcome = self.evaluator.step(program, ExecutionState.empty())
                if isinstance(outcome, Rewind):
                    self.session.info("First statement")
                    restarts += 1
                    continue
                if isinstance(outcome, Failure):
                    self.session.info("Uncaught error")
                    return ExecutionResult('error', state, outcome.message, restarts)
                return ExecutionResult('success', state, None, restarts)
        except QuitSession as e:
            return ExecutionResult('quit', None, str(e), restarts)

    def inspect(self, state: ExecutionState):
        """Enters standalone inspection mode on `state`."""
        self.session.inspect(state)
