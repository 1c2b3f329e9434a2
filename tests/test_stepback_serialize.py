import pytest

from stepback.stepback_datatypes import (
    Const, Var, BinOp, Not, Neg, Assign, If, While, Print, Seq, Try, Pass, ProgramFormatError
)
from stepback.stepback_serialize import (
    load_program, load_program_file, dump_program, detect_format, deserialize, expr_from_data
)

COUNTDOWN_YAML = """
seq:
  - assign: {name: n, expr: 3}
  - while:
      cond: {gt: [n, 0]}
      body:
        seq:
          - print: n
          - assign: [n, {sub: [n, 1]}]
  - try:
      body: {assign: {name: r, expr: {div: [10, n]}}}
      catch: {assign: {name: r, expr: -1}}
  - pass
"""


def test_load_yaml_program():
    prog = load_program(COUNTDOWN_YAML, fmt="yaml")
    loop = While(
        BinOp(">", Var("n"), Const(0)),
        Seq(Print(Var("n")), Assign("n", BinOp("-", Var("n"), Const(1)))),
    )
    handler = Try(
        Assign("r", BinOp("/", Const(10), Var("n"))),
        Assign("r", Const(-1)),
    )
    assert prog == Seq.of(Assign("n", Const(3)), loop, handler, Pass)


def test_load_json_program_is_sniffed():
    text = '{"if": {"cond": {"not": true}, "then": {"print": {"neg": "x"}}}}'
    prog = load_program(text)
    assert prog == If(Not(Const(True)), Print(Neg(Var("x"))), Pass)


def test_operator_symbols_and_explicit_nodes():
    assert expr_from_data({"<=": [{"var": "a"}, {"const": 2}]}) == BinOp("<=", Var("a"), Const(2))
    assert expr_from_data({"and": [True, False]}) == BinOp("and", Const(True), Const(False))


def test_empty_seq_is_pass():
    assert load_program('{"seq": []}') is Pass
    assert load_program('{"pass": null}') is Pass


@pytest.mark.parametrize("text,fragment", [
    ('{"loop": 1}', "Unknown statement node"),
    ('"skip"', "Unknown statement"),
    ('{"assign": {"name": "x"}}', "missing expr"),
    ('{"print": {"pow": [1, 2]}}', "Unknown expression node"),
    ('{"print": {"add": [1]}}', "two operands"),
    ('{"seq": {"a": 1}}', "list of statements"),
    ('{"print": 1.5}', "single-key mapping"),
])
def test_malformed_documents_raise(text, fragment):
    with pytest.raises(ProgramFormatError, match=fragment):
        load_program(text)


def test_invalid_yaml_raises_program_format_error():
    with pytest.raises(ProgramFormatError):
        load_program("seq: [unclosed", fmt="yaml")


def test_dump_then_load_preserves_tree():
    prog = load_program(COUNTDOWN_YAML, fmt="yaml")
    assert load_program(dump_program(prog, fmt="yaml"), fmt="yaml") == prog
    assert load_program(dump_program(prog, fmt="json")) == prog


def test_load_program_file_uses_extension(tmp_path):
    f = tmp_path / "prog.yml"
    f.write_text("assign: [x, 1]\n", encoding="utf-8")
    assert load_program_file(f) == Assign("x", Const(1))


def test_load_program_file_rejects_non_utf8(tmp_path):
    f = tmp_path / "prog.yaml"
    f.write_bytes(b"\xff\xfe\x00pass")
    with pytest.raises(ProgramFormatError, match="not UTF-8"):
        load_program_file(f)


@pytest.mark.parametrize("path,hint,expected", [
    ("a.json", None, "json"),
    ("a.YAML", None, "yaml"),
    ("a.yml", None, "yaml"),
    (None, "  [1]", "json"),
    (None, "pass", "yaml"),
    (None, None, None),
])
def test_detect_format(path, hint, expected):
    assert detect_format(path, hint) == expected


def test_deserialize_json_falls_back_to_yaml():
    assert deserialize("{a: 1}", fmt="json") == {"a": 1}
