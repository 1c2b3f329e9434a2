"""
The interactive side of the stepper: line I/O and the command protocol
offered at each statement prompt and in post-mortem inspection mode.
"""
import sys
from typing import Optional, TextIO

from stepback.stepback_datatypes import ExecutionState, Statement, QuitSession
from stepback.stepback_printer import Printer, safe_show, PREVIEW_WIDTH

CONTINUE = 'continue'
BACK = 'back'

STEP_MENU = "c (continue) / b (back) / i X (inspect var X) / e (environment) / q (quit)"
INSPECT_MENU = "i X (inspect X) / e (current environment) / q (quit inspection)"


class Console:
    """Reads one line of user input and writes one line of output at a time."""

    PREFIX = "> "

    def __init__(self, input_stream: Optional[TextIO] = None, output_stream: Optional[TextIO] = None):
        self.input_stream = input_stream
        self.output_stream = output_stream

    def read_line(self) -> Optional[str]:
        """Blocks for the next line. Returns None at end of input."""
        stream = self.input_stream or sys.stdin
        raw = stream.readline()
        if raw == "":
            return None
        return raw.rstrip("\r\n")

    def write_line(self, text: str):
        stream = self.output_stream or sys.stdout
        stream.write(text + "\n")
        stream.flush()

    def info(self, text: str):
        """Writes interpreter output, prefixed like every other trace line."""
        self.write_line(self.PREFIX + text)


class Session:
    """Command protocol over a Console.

    At a statement prompt the user may continue, step back, inspect a
    variable's history, print the environment, or quit. Inspection commands
    re-prompt the same statement.
    """

    def __init__(self, console: Optional[Console] = None, preview_width: int = PREVIEW_WIDTH):
        self.console = console or Console()
        self.preview_width = preview_width
        self.printer = Printer()

    def info(self, text: str):
        self.console.info(text)

    def preview(self, stmt: Statement) -> str:
        return safe_show(stmt, self.preview_width)

    def _read_command(self) -> str:
        line = self.console.read_line()
        if line is None:
            raise QuitSession("end of input")
        return line.strip()

    def prompt(self, stmt: Statement, state: ExecutionState) -> str:
        """Solicits a command for `stmt`; returns CONTINUE or BACK."""
        while True:
            self.info(f"Next: {self.preview(stmt)}")
            self.info(STEP_MENU)
            command = self._read_command()
            match command:
                case "c":
                    return CONTINUE
                case "b":
                    return BACK
                case "q":
                    raise QuitSession("quitting...")
                case _:
                    if not self._inspect_command(command, state):
                        self.info("bad input")

    def inspect(self, state: ExecutionState):
        """Standalone inspection mode; returns when the user quits it."""
        while True:
            self.info(INSPECT_MENU)
            line = self.console.read_line()
            if line is None:
                return
            command = line.strip()
            if command == "q":
                return
            if not self._inspect_command(command, state):
                self.info("bad input")

    def _inspect_command(self, command: str, state: ExecutionState) -> bool:
        """Handles `e` and `i X`. Returns False when the command is neither."""
        if command == "e":
            self.print_env(state)
            return True
        parts = command.split()
        if len(parts) == 2 and parts[0] == "i":
            self.print_var_history(parts[1], state)
            return True
        return False

    def print_var_history(self, name: str, state: ExecutionState):
        """Prints every recorded prior value of `name`, then its current value."""
        for item in state.history.for_name(name):
            self.info(f"{name} = {self.printer.pformat(item.value)}")
        self.print_current_var(name, state)

    def print_current_var(self, name: str, state: ExecutionState):
        if name not in state.env:
            self.info(f"{name} is undefined")
        else:
            self.info(f"{name} = {self.printer.pformat(state.env[name])}")

    def print_env(self, state: ExecutionState):
        for name, value in state.env.items():
            self.info(f"{name} = {self.printer.pformat(value)}")
