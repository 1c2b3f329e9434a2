from stepback.stepback_datatypes import (
    Const, Var, BinOp, Not, Neg, Assign, If, While, Print, Seq, Try, Pass
)
from stepback.stepback_printer import Printer, safe_show, safe_take


def p(obj):
    return Printer().pformat(obj)


def test_values():
    assert p(3) == "3"
    assert p(-2) == "-2"
    assert p(True) == "true"
    assert p(False) == "false"


def test_expressions_parenthesise_compound_operands():
    assert p(BinOp("*", BinOp("+", Var("x"), Const(1)), Const(2))) == "(x + 1) * 2"
    assert p(Not(BinOp("<", Var("x"), Const(3)))) == "not (x < 3)"
    assert p(Neg(Var("x"))) == "-x"
    assert p(BinOp("and", Not(Var("a")), Var("b"))) == "(not a) and b"


def test_negation_and_negative_constants_are_parenthesised_as_operands():
    assert p(Neg(Neg(Var("x")))) == "-(-x)"
    assert p(Neg(Const(-3))) == "-(-3)"
    assert p(BinOp("-", Var("x"), Const(-1))) == "x - (-1)"
    assert p(Not(Neg(Var("x")))) == "not (-x)"
    assert p(Const(-3)) == "-3"


def test_simple_statements():
    assert p(Assign("x", Const(1))) == "x := 1"
    assert p(Print(BinOp("+", Var("x"), Const(1)))) == "print x + 1"
    assert p(Pass) == "pass"
    assert str(Assign("y", Const(False))) == "y := false"


def test_top_level_sequence_is_flat():
    prog = Seq.of(Assign("x", Const(1)), Pass, Print(Var("x")))
    assert p(prog) == "x := 1; pass; print x"


def test_nested_sequences_are_braced():
    body = Seq(Assign("x", Const(1)), Pass)
    assert p(While(Var("go"), body)) == "while go do { x := 1; pass }"
    assert p(If(Var("c"), body, Pass)) == "if c then { x := 1; pass } else pass"
    assert p(Try(Pass, body)) == "try pass catch { x := 1; pass }"
    assert p(Seq(body, Pass)) == "{ x := 1; pass }; pass"


def test_safe_take_only_marks_cut_text():
    assert safe_take("a" * 30) == "a" * 30
    assert safe_take("a" * 31) == "a" * 30 + "..."
    assert safe_take("") == ""


def test_safe_show_truncates_statement_text():
    stmt = Assign("x", BinOp("+", Var("counter"), BinOp("*", Var("step"), Const(10))))
    assert p(stmt) == "x := counter + (step * 10)"
    assert safe_show(stmt) == "x := counter + (step * 10)"
    long = Seq(stmt, stmt)
    assert safe_show(long) == p(long)[:30] + "..."
