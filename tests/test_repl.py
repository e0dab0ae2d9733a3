import json

import pytest

from slat import slat_repl


def feed(monkeypatch, lines):
    it = iter(lines)

    def fake_input(prompt=""):
        try:
            return next(it)
        except StopIteration:
            raise EOFError
    monkeypatch.setattr("builtins.input", fake_input)


def test_repl_exit_immediately(monkeypatch, capsys):
    feed(monkeypatch, ["exit"])
    slat_repl.main([])
    out = capsys.readouterr().out
    assert "SLAT REPL v0.1" in out
    assert "Type 'exit' or press Ctrl+D to quit." in out


def test_repl_prints_values(monkeypatch, capsys):
    feed(monkeypatch, [
        "import datetime.date",
        "d = date.fromordinal(1)",
        "d.year",
        "exit",
    ])
    slat_repl.main([])
    out, err = capsys.readouterr()
    assert out.rstrip().endswith("1")
    assert err == ""


def test_repl_errors_print_to_stderr(monkeypatch, capsys):
    feed(monkeypatch, ["y.getName()", ":object 4", ":object x"])
    slat_repl.main([])
    out, err = capsys.readouterr()
    assert "Unknown identifier 'y'" in err
    assert "No object is stored with id 4" in err
    assert "object id must be an integer" in err
    assert "Exiting." in out


def test_repl_fields_command(monkeypatch, capsys):
    feed(monkeypatch, [":fields datetime.timedelta"])
    slat_repl.main([])
    out = capsys.readouterr().out
    assert "max = <datetime.timedelta>  (object" in out


def test_run_script_file_json(tmp_path, capsys):
    script = tmp_path / "probe.slat"
    script.write_text("import datetime.date\ndate.fromordinal(1).day\n", encoding="utf-8")
    slat_repl.main([str(script), "--format", "json"])
    out = capsys.readouterr().out
    assert json.loads(out) == {"error": False, "text": "", "result": {"value_type": "PRESENT", "integer": 1}}


def test_run_script_file_failure(tmp_path, capsys):
    script = tmp_path / "bad.slat"
    script.write_text("import no.such.Thing\n", encoding="utf-8")
    with pytest.raises(SystemExit) as exc:
        slat_repl.main([str(script)])
    assert exc.value.code == 1
    assert "No such class with name 'no.such.Thing'" in capsys.readouterr().err


def test_missing_script_file(tmp_path, capsys):
    with pytest.raises(SystemExit):
        slat_repl.main([str(tmp_path / "nope.slat")])
    assert "file not found" in capsys.readouterr().err
