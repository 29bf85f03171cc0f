"""
In-process lint engine built on the esprima parser.

Parsing, scope analysis and rule checks are CPU-bound and synchronous, so
`lint()` runs them in the default thread pool executor to keep the event loop
responsive.

esprima parses up to ES2017. Newer syntax is lowered through tree-sitter first
(see js_syntax); a snippet that is valid but still out of reach is handed to the
fallback engine when one is configured, otherwise only the text rules run.
"""

from __future__ import annotations

import asyncio
import logging
import re
from types import SimpleNamespace
from typing import Any, List, Optional

import esprima
from esprima.error_handler import Error as EsprimaError

from ..models.linting import LintOutcome, LintViolation
from .js_rules import LintProblem, RuleContext, apply_fixes, registered_rules
from .js_scope import analyze_scopes
from .js_syntax import lower_modern_syntax, template_ranges
from .lint_engine import (
    LintEngine,
    LintEngineError,
    LintParseError,
    LintRuleConfig,
    UnsupportedSyntaxError,
    parse_mode,
)

logger = logging.getLogger(__name__)

MAX_FIX_PASSES = 10

# Rules that only look at the raw text
TEXT_RULES = ("no-trailing-spaces", "eol-last")

# esprima messages for tokens it cannot place, as opposed to early errors
_UNSUPPORTED_SYNTAX_RE = re.compile(
    r"Unexpected (token (?!ILLEGAL)|identifier|number|string|quasi)|Invalid regular expression"
)


def _esprima_parse(code: str, source_type: str, jsx: bool) -> Any:
    options = {"loc": True, "range": True, "tokens": True, "comment": True, "jsx": jsx}
    try:
        if source_type == "module":
            return esprima.parseModule(code, options)
        return esprima.parseScript(code, options)
    except EsprimaError as e:
        raise LintParseError(str(e), line=getattr(e, "lineNumber", None)) from e
    except RecursionError as e:
        raise LintParseError("Maximum nesting depth exceeded while parsing") from e


def parse_source(code: str, source_type: str = "module", jsx: bool = False) -> Any:
    """
    Parse JavaScript into an esprima Program with locations, tokens and comments.

    Text esprima rejects is checked with tree-sitter: malformed text keeps
    esprima's error, post-ES2017 constructs are lowered and parsed again with
    positions mapped back onto `code`.

    Raises:
        UnsupportedSyntaxError: well-formed text esprima cannot parse even after lowering
        LintParseError: syntax error, or nesting too deep to parse
    """
    try:
        return _esprima_parse(code, source_type, jsx)
    except LintParseError as e:
        error = e

    lowered = lower_modern_syntax(code, source_type, jsx)
    if lowered is None:
        raise error

    if lowered.changed:
        try:
            program = _esprima_parse(lowered.text, source_type, jsx)
        except LintParseError as e:
            error = e
        else:
            logger.debug(f"Parsed {len(lowered.edits)} lowered construct(s) after: {error}")
            return lowered.restore(program)

    if _UNSUPPORTED_SYNTAX_RE.search(str(error)):
        raise UnsupportedSyntaxError(str(error), line=error.line) from error
    raise error


class EsprimaLintEngine(LintEngine):
    """Built-in rule set over the esprima syntax tree, with multi-pass auto-fix."""

    name = "esprima"

    def __init__(self, fallback: Optional[LintEngine] = None):
        self.fallback = fallback

    async def lint(self, filename: str, code: str, rules: LintRuleConfig) -> LintOutcome:
        loop = asyncio.get_running_loop()
        try:
            return await loop.run_in_executor(None, self.lint_sync, filename, code, rules)
        except UnsupportedSyntaxError as e:
            if self.fallback is None:
                raise
            logger.info(f"esprima cannot parse {filename} ({e}); delegating to {self.fallback.name}")
            return await self.fallback.lint(filename, code, rules)

    def lint_sync(self, filename: str, code: str, rules: LintRuleConfig) -> LintOutcome:
        """Synchronous lint + fix; the reported violations are those of the submitted text."""
        source_type, jsx = parse_mode(filename)
        problems = self._check(code, rules, source_type, jsx)

        violations = [
            LintViolation(
                line=p.line,
                column=p.column,
                severity=rules.severity(p.rule_id),
                message=p.message,
                rule_id=p.rule_id,
            )
            for p in problems
        ]

        text = code
        for pass_no in range(1, MAX_FIX_PASSES + 1):
            fixes = [p.fix for p in problems if p.fix is not None]
            if not fixes:
                break
            fixed, applied = apply_fixes(text, fixes)
            try:
                problems = self._check(fixed, rules, source_type, jsx)
            except LintParseError as e:
                logger.warning(f"Discarding fix pass {pass_no} for {filename}: result does not parse ({e})")
                break
            logger.debug(f"Fix pass {pass_no} for {filename}: applied {applied} fix(es)")
            text = fixed

        logger.info(f"esprima lint of {filename}: {len(violations)} violation(s)")
        return LintOutcome(violations=violations, output=text if text != code else None)

    def _check(self, code: str, rules: LintRuleConfig, source_type: str, jsx: bool) -> List[LintProblem]:
        try:
            program = parse_source(code, source_type, jsx)
        except UnsupportedSyntaxError as e:
            if self.fallback is not None:
                raise
            logger.warning(f"Syntax beyond esprima's reach ({e}); checking text rules only")
            return self._check_text(code, rules, source_type)
        rule_ids = [rule_id for rule_id in registered_rules() if rules.severity(rule_id) > 0]
        return self._run_rules(code, program, rules, source_type, rule_ids)

    def _check_text(self, code: str, rules: LintRuleConfig, source_type: str) -> List[LintProblem]:
        # Empty program; template ranges stand in for the tokens no-trailing-spaces reads
        program = _esprima_parse("", source_type, False)
        program.tokens = [SimpleNamespace(type="Template", range=r) for r in template_ranges(code)]
        rule_ids = [rule_id for rule_id in TEXT_RULES if rules.severity(rule_id) > 0]
        return self._run_rules(code, program, rules, source_type, rule_ids)

    def _run_rules(
        self, code: str, program: Any, rules: LintRuleConfig, source_type: str, rule_ids: List[str]
    ) -> List[LintProblem]:
        checks = registered_rules()
        try:
            scopes = analyze_scopes(program, source_type)
            ctx = RuleContext(
                code,
                program,
                scopes,
                source_type=source_type,
                quote_style=rules.quote_style,
                environments=rules.environments,
            )
            problems: List[LintProblem] = []
            for rule_id in rule_ids:
                problems.extend(checks[rule_id](ctx))
        except RecursionError as e:
            raise LintParseError("Maximum nesting depth exceeded while analyzing") from e
        except (AttributeError, TypeError, KeyError, IndexError) as e:
            raise LintEngineError(f"Rule evaluation failed: {e}") from e

        # Stable sort keeps rule order for problems at the same position
        problems.sort(key=lambda p: (p.line, p.column))
        return problems
