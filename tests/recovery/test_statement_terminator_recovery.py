"""
Tests for the missing-semicolon heuristic and the combined recovery passes.
"""

from __future__ import annotations

import pytest

from backend.app.services.recovery_passes import (
    MISSING_SEMICOLON_MESSAGE,
    UNTERMINATED_STRING_MESSAGE,
    LineState,
    apply_recovery_passes,
    recover_statement_terminator,
    scan_line,
)


@pytest.mark.parametrize(
    "line, expected",
    [
        ("let a = 1", "let a = 1;"),
        ("return x", "return x;"),
        ("i++", "i++;"),
        ("  total = total * 2", "  total = total * 2;"),
        ("let a = 1   ", "let a = 1;   "),
        ("let a = 1 // set a", "let a = 1; // set a"),
        ('"use strict"', '"use strict";'),
        ("promise", "promise;"),
    ],
)
def test_terminator_appended(line, expected):
    assert recover_statement_terminator(line) == expected


@pytest.mark.parametrize(
    "line",
    [
        "",
        "   ",
        "let a = 1;",
        "function f() {",
        "}",
        "console.log(x)",
        "  { price: 10 },",
        "// comment",
        "/* block */",
        " * jsdoc line",
        "if (a) b = 1",
        "} else {",
        "do",
        "case 1:",
        "default:",
        "class A extends B",
        "  name: \"value\"",
        "const total = a +",
        "const f = x =>",
        "const ok = a &&",
        "const r = cond ?",
        "  .then(next)",
        "const items = [",
        "<div>",
    ],
)
def test_terminator_not_appended(line):
    assert recover_statement_terminator(line) == line


def test_recovery_preserves_line_count_and_crlf():
    text, issues = apply_recovery_passes("let a = 1\r\nlet b = 2\r\n")

    assert text == "let a = 1;\r\nlet b = 2;\r\n"
    assert [issue.line for issue in issues] == [1, 2]
    assert text.count("\n") == 2


def test_string_repair_is_reported_before_terminator_repair():
    text, issues = apply_recovery_passes('const s = "abc')

    assert text == 'const s = "abc";'
    assert [issue.message for issue in issues] == [UNTERMINATED_STRING_MESSAGE, MISSING_SEMICOLON_MESSAGE]
    assert issues[1].rule_id == "semi"
    assert issues[1].suggestion == "Add semicolons at the end of statements"


def test_recovery_is_stable_on_repaired_text():
    text, _ = apply_recovery_passes('console.log("hel)\nlet a = 1')
    again, issues = apply_recovery_passes(text)

    assert again == text
    assert issues == []


@pytest.mark.parametrize(
    "code",
    [
        "const arr = [\n  1,\n  2\n];\n",
        "foo(\n  a,\n  b\n)\n",
        "const t = `a\nb`;\n",
        "const t = `it's\nstill 'open`;\n",
        'const r = /"/g;\n',
        "<p>Don't stop</p>\n",
        "const el = (\n  <p>\n    Don't stop\n  </p>\n);\n",
        "/*\n Don't panic\n let a = 1\n*/\n",
    ],
)
def test_well_formed_multi_line_code_is_untouched(code):
    text, issues = apply_recovery_passes(code)

    assert text == code
    assert issues == []


def test_semicolon_goes_after_a_closed_template():
    text, issues = apply_recovery_passes("const t = `a\nb`\n")

    assert text == "const t = `a\nb`;\n"
    assert [issue.line for issue in issues] == [2]


def test_semicolon_after_regex_literal():
    text, issues = apply_recovery_passes('const r = /"/g\n')

    assert text == 'const r = /"/g;\n'
    assert [issue.message for issue in issues] == [MISSING_SEMICOLON_MESSAGE]


def test_statements_inside_a_callback_body_are_terminated():
    text, issues = apply_recovery_passes("items.forEach(function (item) {\n  total = item\n});\n")

    assert text == "items.forEach(function (item) {\n  total = item;\n});\n"
    assert [issue.line for issue in issues] == [2]


@pytest.mark.parametrize(
    "line, before",
    [
        ("  2", "const arr = ["),
        ("  b", "foo("),
        ("  `a", "const t = "),
        ("still text", "const t = `a"),
        (" let a = 1", "/*"),
    ],
)
def test_no_terminator_inside_open_context(line, before):
    state = scan_line(before).end_state

    assert recover_statement_terminator(line, state) == line


def test_default_state_is_top_level():
    assert recover_statement_terminator("let a = 1", LineState()) == "let a = 1;"
