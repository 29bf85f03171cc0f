"""
Tests for ES2018+ syntax: tree-sitter lowering, position restoration, and what
happens when the text is valid but esprima still cannot parse it.
"""

import pytest

from backend.app.models.linting import LintOutcome, LintViolation
from backend.app.services.eslint_engine import EslintCliEngine
from backend.app.services.esprima_engine import EsprimaLintEngine, parse_source
from backend.app.services.js_syntax import LoweredSource, has_syntax_errors, lower_modern_syntax
from backend.app.services.lint_engine import (
    LintEngine,
    LintParseError,
    LintRuleConfig,
    UnsupportedSyntaxError,
    create_lint_engine,
)

ASYNC_GENERATOR = "async function* numbers() {\n  yield 1;  \n}\nnumbers();"


class CannedEngine(LintEngine):
    name = "canned"

    def __init__(self, outcome):
        self.outcome = outcome
        self.calls = []

    async def lint(self, filename, code, rules):
        self.calls.append((filename, code))
        return self.outcome


def _lint(code: str, filename: str = "snippet.js"):
    return EsprimaLintEngine().lint_sync(filename, code, LintRuleConfig())


@pytest.mark.parametrize(
    "code",
    [
        'const o = { a: 1, f() { return 1; } };\nconsole.log(o?.a, o?.["a"], o.f?.());\n',
        "const o = {};\nconst b = o.a ?? 1;\nconsole.log(b);\n",
        "const big = 1_000_000;\nconst small = 10n;\nconsole.log(big, small);\n",
        "let c = 0;\nc ||= 2;\nc &&= 3;\nc ??= 4;\nconsole.log(c);\n",
        'try {\n  JSON.parse("x");\n} catch {\n  console.log("bad");\n}\n',
        "async function main(items) {\n  for await (const item of items) {\n    console.log(item);\n  }\n}\nmain([]);\n",
        "const date = /(?<year>\\d{4})/u;\nconsole.log(date);\n",
        "#!/usr/bin/env node\nconsole.log(1);\n",
    ],
)
def test_valid_modern_code_is_clean(code):
    outcome = _lint(code)

    assert outcome.violations == []
    assert outcome.output is None


def test_violation_after_lowered_syntax_keeps_its_column():
    outcome = _lint("const o = {};\nconst label = o?.name ?? 'none';\nconsole.log(label);\n")

    assert [(v.rule_id, v.line, v.column) for v in outcome.violations] == [("quotes", 2, 26)]
    assert outcome.output == 'const o = {};\nconst label = o?.name ?? "none";\nconsole.log(label);\n'


def test_fix_is_applied_to_the_submitted_text():
    outcome = _lint("const o = {};\nvar x = o?.a ?? 0;\nconsole.log(x);\n")

    assert [(v.rule_id, v.line, v.column) for v in outcome.violations] == [("no-var", 2, 1)]
    assert outcome.output == "const o = {};\nconst x = o?.a ?? 0;\nconsole.log(x);\n"


class TestLowering:
    """lower_modern_syntax() rewrites and the offset map back."""

    def test_rewrites(self):
        lowered = lower_modern_syntax("const v = a?.b ?? c ?? 1_000n;\n")

        assert lowered.changed
        assert lowered.text == "const v = a.b || c || 1000;\n"

    def test_catch_binding_is_inserted(self):
        assert lower_modern_syntax("try {} catch {}\n").text == "try {} catch(_) {}\n"

    def test_es2017_text_is_left_alone(self):
        lowered = lower_modern_syntax("const a = 1;\n")

        assert not lowered.changed
        assert lowered.text == "const a = 1;\n"

    def test_malformed_text_is_not_lowered(self):
        assert has_syntax_errors("const a = o?.;\n")
        assert lower_modern_syntax("const a = o?.;\n") is None

    @pytest.mark.parametrize(
        "code, source_type, jsx",
        [
            ("class A {\n  count = 0;\n}\n", "module", False),
            ("class A {\n  #secret = 1;\n}\n", "module", False),
            ("const el = <p>hi</p>;\n", "module", False),
            ("import fs from \"fs\";\n", "script", False),
        ],
    )
    def test_rejected_constructs(self, code, source_type, jsx):
        assert lower_modern_syntax(code, source_type, jsx) is None

    def test_offsets_map_back(self):
        lowered = LoweredSource("a?.b ?? c", [(1, 3, "."), (5, 7, "||")])

        assert lowered.text == "a.b || c"
        assert lowered.original_offset(2) == 3
        assert lowered.original_offset(7) == 8
        assert lowered.original_offset(3, end=True) == 4
        assert lowered.original_offset(8, end=True) == 9
        assert lowered.original_offset(1, end=True) == 1


class TestParseSource:
    """parse_source() on text esprima rejects."""

    def test_ranges_and_locations_refer_to_the_submitted_text(self):
        program = parse_source("a?.b;\n")
        member = program.body[0].expression

        assert member.range == [0, 4]
        assert member.object.range == [0, 1]
        assert member.property.range == [3, 4]
        assert (member.property.loc.start.line, member.property.loc.start.column) == (1, 3)

    def test_catch_placeholder_is_removed(self):
        program = parse_source("try {} catch {}\n")

        assert program.body[0].handler.param is None
        assert [t.value for t in program.tokens] == ["try", "{", "}", "catch", "{", "}"]

    def test_invalid_code_keeps_the_parse_error(self):
        with pytest.raises(LintParseError) as exc_info:
            parse_source("const a = o?.;\n")

        assert not isinstance(exc_info.value, UnsupportedSyntaxError)
        assert exc_info.value.line == 1

    def test_class_fields_are_still_errors(self):
        with pytest.raises(LintParseError) as exc_info:
            parse_source("class A {\n  count = 0;\n}\n")

        assert not isinstance(exc_info.value, UnsupportedSyntaxError)

    def test_valid_but_unparseable(self):
        with pytest.raises(UnsupportedSyntaxError):
            parse_source(ASYNC_GENERATOR)


class TestUnsupportedSyntax:
    """Valid text esprima cannot handle even after lowering."""

    def test_only_text_rules_run_without_fallback(self):
        outcome = _lint(ASYNC_GENERATOR)

        assert [(v.rule_id, v.line) for v in outcome.violations] == [("no-trailing-spaces", 2), ("eol-last", 4)]
        assert outcome.output == "async function* numbers() {\n  yield 1;\n}\nnumbers();\n"

    @pytest.mark.asyncio
    async def test_fallback_engine_takes_over(self):
        canned = LintOutcome(violations=[LintViolation(line=4, column=11, message="Unexpected end.", rule_id="eol-last")])
        fallback = CannedEngine(canned)

        outcome = await EsprimaLintEngine(fallback=fallback).lint("gen.js", ASYNC_GENERATOR, LintRuleConfig())

        assert outcome is canned
        assert fallback.calls == [("gen.js", ASYNC_GENERATOR)]

    @pytest.mark.asyncio
    async def test_fallback_is_not_used_for_supported_code(self):
        fallback = CannedEngine(LintOutcome())

        code = "const o = {};\nconsole.log(o?.a);\n"
        outcome = await EsprimaLintEngine(fallback=fallback).lint("a.js", code, LintRuleConfig())

        assert outcome.violations == []
        assert fallback.calls == []

    @pytest.mark.asyncio
    async def test_syntax_errors_never_reach_the_fallback(self):
        fallback = CannedEngine(LintOutcome())

        with pytest.raises(LintParseError):
            await EsprimaLintEngine(fallback=fallback).lint("a.js", "const a = 1;\n}\n", LintRuleConfig())
        assert fallback.calls == []

    def test_factory_wires_eslint_fallback(self, monkeypatch):
        monkeypatch.delenv("LINT_ENGINE", raising=False)
        monkeypatch.setenv("ESLINT_FALLBACK", "1")
        monkeypatch.setenv("ESLINT_BINARY", "/opt/node/bin/eslint")

        engine = create_lint_engine()

        assert isinstance(engine, EsprimaLintEngine)
        assert isinstance(engine.fallback, EslintCliEngine)
        assert engine.fallback.binary == "/opt/node/bin/eslint"

    def test_factory_has_no_fallback_by_default(self, monkeypatch):
        monkeypatch.delenv("LINT_ENGINE", raising=False)
        monkeypatch.delenv("ESLINT_FALLBACK", raising=False)

        assert create_lint_engine().fallback is None
