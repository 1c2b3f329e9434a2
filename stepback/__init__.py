from stepback.stepback_datatypes import (
    Const, Var, BinOp, Not, Neg,
    Assign, If, While, Print, Seq, Try, Pass,
    Environment, History, HistoryItem, ExecutionState, Frame,
    Completed, Signal, Rewind, Failure,
    EvalError, ProgramFormatError, QuitSession,
)
from stepback.stepback_expr import evaluate, as_bool
from stepback.stepback_printer import Printer, safe_show
from stepback.stepback_session import Console, Session
from stepback.stepback_interpreter import Evaluator
from stepback.stepback_runtime import ExecutionResult, ProgramRunner
from stepback.stepback_serialize import load_program, load_program_file, dump_program
