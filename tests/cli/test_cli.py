"""
Tests for the `bugwhisperer` command-line interface.
"""

import json
from unittest.mock import patch

import pytest

from bugwhisperer.cli import EXIT_CLEAN, EXIT_FAILURE, EXIT_ISSUES, build_parser, main


@pytest.fixture(autouse=True)
def default_engine(monkeypatch):
    monkeypatch.delenv("LINT_ENGINE", raising=False)
    monkeypatch.delenv("LINT_RULES", raising=False)
    monkeypatch.delenv("QUOTE_STYLE", raising=False)


def test_clean_file_exits_zero(tmp_path, capsys):
    path = tmp_path / "ok.js"
    path.write_text('console.log("ok");\n', encoding="utf-8")

    assert main(["analyze", str(path)]) == EXIT_CLEAN
    out = capsys.readouterr().out
    assert "No issues" in out
    assert "Code Quality Check: Excellent!" in out


def test_issues_exit_one_with_json_report(tmp_path, capsys):
    path = tmp_path / "demo.js"
    path.write_text("var x = 5;\nconsole.log(x);\n", encoding="utf-8")

    assert main(["analyze", str(path), "--json"]) == EXIT_ISSUES

    payload = json.loads(capsys.readouterr().out)
    assert payload["fixed_code"] == "const x = 5;\nconsole.log(x);\n"
    assert payload["issues"][0]["rule_id"] == "no-var"
    assert payload["issues"][0]["severity"] == "error"
    assert payload["lesson"].startswith("Code Quality Check: Found 1 error(s)")
    assert path.read_text(encoding="utf-8") == "var x = 5;\nconsole.log(x);\n"


def test_text_report_lists_locations(tmp_path, capsys):
    path = tmp_path / "demo.js"
    path.write_text("total = 0;\n", encoding="utf-8")

    main(["analyze", str(path)])

    out = capsys.readouterr().out
    assert f"{path}:1:1 error 'total' is not defined. [no-undef]" in out
    assert "let total = 0;" in out


def test_write_updates_the_file(tmp_path):
    path = tmp_path / "demo.js"
    path.write_text('console.log("hel)', encoding="utf-8")

    assert main(["analyze", str(path), "--write"]) == EXIT_ISSUES
    assert path.read_text(encoding="utf-8") == 'console.log("hel");\n'


def test_missing_file(tmp_path, capsys):
    assert main(["analyze", str(tmp_path / "nope.js")]) == EXIT_FAILURE
    assert "File not found" in capsys.readouterr().err


def test_unsupported_suffix(tmp_path, capsys):
    path = tmp_path / "script.py"
    path.write_text("x = 1\n", encoding="utf-8")

    assert main(["analyze", str(path)]) == EXIT_FAILURE
    assert "Only JavaScript files are supported" in capsys.readouterr().err


def test_engine_failure_exits_two(tmp_path, monkeypatch, capsys):
    monkeypatch.setenv("ESLINT_BINARY", str(tmp_path / "missing-eslint"))
    path = tmp_path / "demo.js"
    path.write_text("x;\n", encoding="utf-8")

    assert main(["analyze", str(path), "--engine", "eslint"]) == EXIT_FAILURE
    assert "Analysis engine failure" in capsys.readouterr().err


def test_version_flag(capsys):
    with pytest.raises(SystemExit) as exc_info:
        build_parser().parse_args(["--version"])

    assert exc_info.value.code == 0
    assert capsys.readouterr().out.startswith("bugwhisperer ")


def test_subcommand_required():
    with pytest.raises(SystemExit):
        build_parser().parse_args([])


def test_serve_runs_uvicorn():
    with patch("uvicorn.run") as run:
        assert main(["serve", "--host", "127.0.0.1", "--port", "9000"]) == EXIT_CLEAN

    run.assert_called_once()
    assert run.call_args.args == ("backend.app.main:app",)
    assert run.call_args.kwargs["host"] == "127.0.0.1"
    assert run.call_args.kwargs["port"] == 9000
    assert run.call_args.kwargs["reload"] is False
