"""
Analysis pipeline: recovery passes -> structural lint -> post-fix.

Issue order follows execution order: recovery issues first (line by line),
then lint violations in engine order. `fixed_code` is always a string; when
the lint engine cannot parse the recovered text it is the recovered text.

The pipeline holds no per-call state, so one AnalysisService can serve
concurrent requests.
"""

import logging
import re
from typing import Optional

from ..models.analysis import AnalysisResult
from ..models.linting import LintIssue, LintSeverity
from .autofix_service import AutofixService
from .lint_engine import LintEngine, LintParseError, LintRuleConfig, create_lint_engine
from .recovery_passes import apply_recovery_passes
from .rule_catalog import generate_suggestion, syntax_error_suggestion

logger = logging.getLogger(__name__)

_LINE_NUMBER_RE = re.compile(r"line\s*(\d+)", re.IGNORECASE)


def parse_failure_line(message: str, fallback: Optional[int] = None) -> int:
    """
    Best-guess line of a parser failure.

    The first number following the word "line" in the message wins, then the
    line reported by the engine, then 1.
    """
    match = _LINE_NUMBER_RE.search(message or "")
    if match and int(match.group(1)) >= 1:
        return int(match.group(1))
    if fallback and fallback >= 1:
        return fallback
    return 1


class AnalysisService:
    """Analyze one JavaScript snippet at a time."""

    def __init__(
        self,
        engine: Optional[LintEngine] = None,
        rules: Optional[LintRuleConfig] = None,
        autofix: Optional[AutofixService] = None,
    ):
        self.engine = engine or create_lint_engine()
        self.rules = rules or LintRuleConfig.from_config(engine=self.engine.name)
        self.autofix = autofix or AutofixService()
        logger.info(f"AnalysisService ready with {self.engine!r}")

    async def analyze(self, filename: str, code: str) -> AnalysisResult:
        """
        Run the full repair pipeline.

        Raises:
            LintEngineError: the lint engine failed for reasons other than a parse error
        """
        if not code:
            return AnalysisResult(issues=[], fixed_code="")

        recovered, issues = apply_recovery_passes(code)

        try:
            outcome = await self.engine.lint(filename, recovered, self.rules)
        except LintParseError as e:
            message = str(e)
            logger.warning(f"Lint engine could not parse {filename}: {message}")
            issues.append(
                LintIssue(
                    line=parse_failure_line(message, e.line),
                    severity=LintSeverity.ERROR,
                    message=message,
                    suggestion=syntax_error_suggestion(message),
                )
            )
            return AnalysisResult(issues=issues, fixed_code=recovered)

        for violation in outcome.violations:
            issues.append(
                LintIssue(
                    line=violation.line,
                    column=violation.column,
                    severity=LintSeverity.from_level(violation.severity),
                    message=violation.message,
                    suggestion=generate_suggestion(violation.rule_id, violation.message),
                    rule_id=violation.rule_id,
                )
            )

        working = outcome.output if outcome.output is not None else recovered
        fixed_code, changes = self.autofix.apply_post_fixes(working, issues)

        logger.info(
            f"Analyzed {filename}: {len(issues)} issue(s), "
            f"{'changed' if fixed_code != code else 'unchanged'}, {len(changes)} post-fix change(s)"
        )
        return AnalysisResult(issues=issues, fixed_code=fixed_code)
