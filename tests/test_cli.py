import importlib.util
import io
import sys
from pathlib import Path
import uuid

import pytest


def _load_cli_module():
    """Dynamically load the top-level stepback.py script as a module with a unique name."""
    cli_path = Path(__file__).resolve().parents[1] / "stepback.py"
    mod_name = f"stepback_cli_for_test_{uuid.uuid4().hex}"
    spec = importlib.util.spec_from_file_location(mod_name, str(cli_path))
    mod = importlib.util.module_from_spec(spec)
    sys.modules[mod_name] = mod
    assert spec.loader is not None
    spec.loader.exec_module(mod)
    return mod


def _feed(monkeypatch, *lines):
    monkeypatch.setattr(sys, "stdin", io.StringIO("".join(line + "\n" for line in lines)))


def _write_program(tmp_path, text, name="prog.yaml"):
    f = tmp_path / name
    f.write_text(text, encoding="utf-8")
    return str(f)


def test_cli_runs_program_then_inspects(monkeypatch, capsys, tmp_path):
    cli = _load_cli_module()
    path = _write_program(tmp_path, "seq:\n  - assign: [x, 1]\n  - assign: [x, {add: [x, 1]}]\n")
    _feed(monkeypatch, "c", "c", "c", "i x", "q")

    cli.main([path])
    out = capsys.readouterr().out.splitlines()
    assert "> Assigned 2 to x" in out
    assert out[-3:-1] == ["> x = 1", "> x = 2"]


def test_cli_uncaught_error_exits_nonzero(monkeypatch, capsys, tmp_path):
    cli = _load_cli_module()
    path = _write_program(tmp_path, '{"assign": ["x", "y"]}', name="prog.json")
    _feed(monkeypatch, "c", "q")

    with pytest.raises(SystemExit) as e:
        cli.main([path])
    assert e.value.code == 1
    out, err = capsys.readouterr()
    assert "> Uncaught error" in out
    assert "Uncaught error: Unknown variable y" in err


def test_cli_quit_exits_nonzero(monkeypatch, capsys, tmp_path):
    cli = _load_cli_module()
    path = _write_program(tmp_path, "pass\n")
    _feed(monkeypatch, "q")

    with pytest.raises(SystemExit) as e:
        cli.main([path])
    assert e.value.code == 1
    assert "quitting..." in capsys.readouterr().err


def test_cli_reports_missing_and_malformed_files(capsys, tmp_path):
    cli = _load_cli_module()
    with pytest.raises(SystemExit) as e:
        cli.main([str(tmp_path / "missing.yaml")])
    assert e.value.code == 1
    assert "file not found" in capsys.readouterr().err

    bad = _write_program(tmp_path, "loop: 1\n")
    with pytest.raises(SystemExit):
        cli.main([bad])
    assert "Unknown statement node" in capsys.readouterr().err


def test_cli_usage_without_arguments(capsys):
    cli = _load_cli_module()
    with pytest.raises(SystemExit) as e:
        cli.main([])
    assert e.value.code == 2
    assert "usage:" in capsys.readouterr().err


def test_cli_reports_unreadable_paths(capsys, tmp_path):
    cli = _load_cli_module()
    with pytest.raises(SystemExit) as e:
        cli.main([str(tmp_path)])
    assert e.value.code == 1
    assert "cannot read" in capsys.readouterr().err

    binary = tmp_path / "prog.yaml"
    binary.write_bytes(b"\xff\xfe\x00pass")
    with pytest.raises(SystemExit) as e:
        cli.main([str(binary)])
    assert e.value.code == 1
    assert "not UTF-8" in capsys.readouterr().err
