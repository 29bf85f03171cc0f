"""
Tests for the built-in rule set (messages, locations, severities and fixes).
"""

from __future__ import annotations

import pytest

from backend.app.services.esprima_engine import EsprimaLintEngine
from backend.app.services.js_rules import Fix, apply_fixes, registered_rules, switch_quote
from backend.app.services.lint_engine import DEFAULT_RULE_LEVELS, LintRuleConfig


def _lint(code: str, filename: str = "snippet.js", rules: LintRuleConfig = None):
    return EsprimaLintEngine().lint_sync(filename, code, rules or LintRuleConfig())


def _rule_ids(outcome):
    return [v.rule_id for v in outcome.violations]


def test_every_default_rule_is_registered():
    assert set(DEFAULT_RULE_LEVELS) <= set(registered_rules())


def test_no_var_is_fixed_then_promoted_to_const():
    outcome = _lint("var x = 5;\nconsole.log(x);\n")

    assert _rule_ids(outcome) == ["no-var"]
    violation = outcome.violations[0]
    assert (violation.line, violation.column, violation.severity) == (1, 1, 2)
    assert violation.message == "Unexpected var, use let or const instead."
    assert outcome.output == "const x = 5;\nconsole.log(x);\n"


def test_no_var_not_fixed_when_captured_by_loop_closure():
    code = "for (var i = 0; i < 3; i++) {\n  setTimeout(() => console.log(i));\n}\n"
    outcome = _lint(code)

    assert _rule_ids(outcome) == ["no-var"]
    assert outcome.output is None


def test_no_var_not_fixed_in_script_global_scope():
    outcome = _lint("var x = 5;\nconsole.log(x);\n", filename="legacy.cjs")

    assert _rule_ids(outcome) == ["no-var"]
    assert outcome.output is None


def test_prefer_const_only_for_single_assignment():
    outcome = _lint("let a = 1;\nlet b = 1;\nb = 2;\nconsole.log(a, b);\n")

    assert _rule_ids(outcome) == ["prefer-const"]
    assert outcome.violations[0].message == "'a' is never reassigned. Use 'const' instead."
    assert outcome.violations[0].column == 5
    assert outcome.output == "const a = 1;\nlet b = 1;\nb = 2;\nconsole.log(a, b);\n"


def test_missing_semicolons_are_inserted():
    outcome = _lint("const a = 1\nconsole.log(a)\n")

    assert _rule_ids(outcome) == ["semi", "semi"]
    assert [v.line for v in outcome.violations] == [1, 2]
    assert outcome.violations[0].message == "Missing semicolon."
    assert outcome.output == "const a = 1;\nconsole.log(a);\n"


def test_quotes_double_by_default():
    outcome = _lint("console.log('hi');\n")

    assert _rule_ids(outcome) == ["quotes"]
    assert outcome.violations[0].message == "Strings must use doublequote."
    assert outcome.output == 'console.log("hi");\n'


def test_quotes_single_style():
    outcome = _lint('console.log("hi");\n', rules=LintRuleConfig(quote_style="single"))

    assert outcome.violations[0].message == "Strings must use singlequote."
    assert outcome.output == "console.log('hi');\n"


def test_switch_quote_adjusts_escapes():
    assert switch_quote("'it\\'s'", '"') == '"it\'s"'
    assert switch_quote("'say \"hi\"'", '"') == '"say \\"hi\\""'
    assert switch_quote("`plain`", '"') == '"plain"'


def test_trailing_spaces_removed():
    outcome = _lint("const a = 1;   \nconsole.log(a);\n")

    assert _rule_ids(outcome) == ["no-trailing-spaces"]
    assert (outcome.violations[0].line, outcome.violations[0].column) == (1, 13)
    assert outcome.output == "const a = 1;\nconsole.log(a);\n"


def test_eol_last_adds_final_newline():
    outcome = _lint("console.log(1);")

    assert _rule_ids(outcome) == ["eol-last"]
    assert outcome.violations[0].message == "Newline required at end of file but not found."
    assert outcome.output == "console.log(1);\n"


def test_semicolon_and_final_newline_fixed_over_two_passes():
    outcome = _lint("console.log(1)")

    assert _rule_ids(outcome) == ["semi", "eol-last"]
    assert outcome.output == "console.log(1);\n"


def test_no_undef_reports_every_reference():
    outcome = _lint("total = 0;\ntotal += 1;\n")

    assert _rule_ids(outcome) == ["no-undef", "no-undef"]
    assert outcome.violations[0].message == "'total' is not defined."
    assert outcome.output is None


def test_no_undef_respects_environment_and_global_comments():
    code = (
        "/* global analytics */\n"
        "analytics.track(window.location.href, process.env.NODE_ENV);\n"
        'if (typeof maybeDefined === "undefined") {\n'
        '  console.log("missing");\n'
        "}\n"
    )
    assert _lint(code).violations == []


def test_no_unused_vars_messages():
    outcome = _lint("const unused = 1;\nfunction helper() {}\n")

    assert _rule_ids(outcome) == ["no-unused-vars", "no-unused-vars"]
    assert outcome.violations[0].message == "'unused' is assigned a value but never used."
    assert outcome.violations[1].message == "'helper' is defined but never used."


def test_no_unused_vars_params_after_used():
    ok = _lint("function f(a, b) {\n  return b;\n}\nf(1, 2);\n")
    bad = _lint("function g(a, b) {\n  return a;\n}\ng(1, 2);\n")

    assert ok.violations == []
    assert [v.message for v in bad.violations] == ["'b' is defined but never used."]


def test_no_unreachable():
    outcome = _lint('function f() {\n  return 1;\n  console.log("never");\n}\nf();\n')

    assert _rule_ids(outcome) == ["no-unreachable"]
    assert outcome.violations[0].line == 3


def test_no_dupe_keys():
    outcome = _lint("const o = { a: 1, a: 2 };\nconsole.log(o);\n")

    assert _rule_ids(outcome) == ["no-dupe-keys"]
    assert outcome.violations[0].message == "Duplicate key 'a'."


def test_no_redeclare_blocks_var_fix():
    outcome = _lint("var a = 1;\nvar a = 2;\nconsole.log(a);\n")

    assert _rule_ids(outcome) == ["no-var", "no-var", "no-redeclare"]
    assert outcome.violations[2].message == "'a' is already defined."
    assert outcome.output is None


@pytest.mark.parametrize(
    "code, rule_id, message",
    [
        ("const v = 1;\nif (v === NaN) {\n  console.log(v);\n}\n", "use-isnan", "Use the isNaN function to compare with NaN."),
        ('const v = 1;\nif (typeof v === "strnig") {\n  console.log(v);\n}\n', "valid-typeof", "Invalid typeof comparison value."),
        ("const arr = [1, , 2];\nconsole.log(arr);\n", "no-sparse-arrays", "Unexpected comma in middle of array."),
        ("debugger;\n", "no-debugger", "Unexpected 'debugger' statement."),
        ("const r = Math();\nconsole.log(r);\n", "no-obj-calls", "'Math' is not a function."),
        (
            "let a;\nconst b = 1;\nif (a = b) {\n  console.log(a);\n}\n",
            "no-cond-assign",
            "Expected a conditional expression and instead saw an assignment.",
        ),
    ],
)
def test_recommended_rules(code, rule_id, message):
    outcome = _lint(code)

    assert _rule_ids(outcome) == [rule_id]
    assert outcome.violations[0].message == message


def test_no_func_assign():
    outcome = _lint("function foo() {}\nfoo = 1;\n")

    assert "no-func-assign" in _rule_ids(outcome)
    flagged = next(v for v in outcome.violations if v.rule_id == "no-func-assign")
    assert flagged.message == "'foo' is a function."
    assert flagged.line == 2


def test_cond_assign_allowed_in_extra_parens():
    assert _lint("let a;\nconst b = 1;\nif ((a = b)) {\n  console.log(a);\n}\n").violations == []


def test_no_empty_is_a_warning():
    outcome = _lint("const v = 1;\nif (v) {\n}\n")
    commented = _lint("const v = 1;\nif (v) {\n  // intentionally empty\n}\n")

    assert _rule_ids(outcome) == ["no-empty"]
    assert outcome.violations[0].severity == 1
    assert commented.violations == []


def test_rule_can_be_turned_off():
    rules = LintRuleConfig().with_overrides({"no-var": "off"})
    outcome = _lint("var x = 5;\nconsole.log(x);\n", rules=rules)

    assert outcome.violations == []
    assert outcome.output is None


def test_jsx_components_count_as_used():
    code = 'import Button from "./Button";\nexport const App = () => <Button label="go" />;\n'
    assert _lint(code, filename="App.jsx").violations == []


def test_apply_fixes_skips_overlapping_fixes():
    text, applied = apply_fixes("abc", [Fix(0, 2, "X"), Fix(1, 3, "Y"), Fix(3, 3, "!")])

    assert applied == 2
    assert text == "Xc!"
