"""
Lesson synthesizer: turns an issue list into one short educational paragraph.

Exactly one focus area is chosen, the first in priority order whose keywords
appear in any issue message. Mixed issue sets therefore get a lesson about the
highest-priority category only.

The lesson is reproducible from `(issues, original_code, fixed_code)` alone.
"""

import logging
import re
from dataclasses import dataclass
from typing import Callable, List, Sequence

from ..models.linting import LintIssue, LintSeverity

logger = logging.getLogger(__name__)

EXCELLENT_LESSON = (
    "Code Quality Check: Excellent!\n"
    "• Your code follows JavaScript best practices with no issues detected\n"
    "• All syntax and style guidelines are properly followed\n"
    "• Keep writing clean, maintainable code like this"
)


@dataclass(frozen=True)
class FocusArea:
    """One lesson category: a predicate over lowercased messages plus its texts."""

    name: str
    matches: Callable[[str], bool]
    cause: str
    fix_when_changed: str
    fix_when_unchanged: str
    tip: str

    def fix(self, was_fixed: bool) -> str:
        return self.fix_when_changed if was_fixed else self.fix_when_unchanged


def _contains_any(*phrases: str) -> Callable[[str], bool]:
    return lambda message: any(phrase in message for phrase in phrases)


_VAR_WORD_RE = re.compile(r"\bvar\b")

# Priority order: first match wins
FOCUS_AREAS: List[FocusArea] = [
    FocusArea(
        name="variable declarations",
        matches=lambda message: bool(_VAR_WORD_RE.search(message)),
        cause="Using var instead of let/const can cause scoping issues",
        fix_when_changed="Auto-fixed to use const/let for better scoping",
        fix_when_unchanged="Replace var with let or const",
        tip="Use const by default, let when reassigning, avoid var",
    ),
    FocusArea(
        name="syntax consistency",
        matches=_contains_any("semicolon", "semi"),
        cause="Missing semicolons can lead to unexpected behavior",
        fix_when_changed="Auto-added missing semicolons",
        fix_when_unchanged="Add semicolons at the end of statements",
        tip="Configure your editor to auto-insert semicolons",
    ),
    FocusArea(
        name="code cleanliness",
        matches=_contains_any("unused", "never used"),
        cause="Unused variables clutter code and may indicate bugs",
        fix_when_changed="Other issues were auto-fixed; remove unused variables or use them in your logic",
        fix_when_unchanged="Remove unused variables or use them in your logic",
        tip="Clean up unused code regularly to maintain readability",
    ),
    FocusArea(
        name="variable definitions",
        matches=_contains_any("undefined", "undef", "not defined"),
        cause="Using undefined variables will cause runtime errors",
        fix_when_changed="Added declarations for variables that were assigned without one",
        fix_when_unchanged="Declare variables before using them or import from modules",
        tip="Always declare variables with let, const, or function declarations",
    ),
]

GENERIC_FOCUS = FocusArea(
    name="code quality",
    matches=lambda message: True,
    cause="Various coding issues were detected",
    fix_when_changed="Applied automatic fixes; review the remaining suggestions",
    fix_when_unchanged="Review and apply the suggested fixes",
    tip="Use a linter in your editor for real-time feedback",
)


def select_focus_area(issues: Sequence[LintIssue]) -> FocusArea:
    messages = [issue.message.lower() for issue in issues]
    for area in FOCUS_AREAS:
        if any(area.matches(message) for message in messages):
            return area
    return GENERIC_FOCUS


def generate_lesson(issues: Sequence[LintIssue], original_code: str, fixed_code: str) -> str:
    """
    Generate an educational lesson based on code analysis results.

    Args:
        issues: every issue reported for the snippet
        original_code: the submitted text
        fixed_code: the repaired text

    Returns:
        Multi-line lesson text
    """
    if not issues:
        return EXCELLENT_LESSON

    error_count = sum(1 for issue in issues if issue.severity == LintSeverity.ERROR)
    warning_count = len(issues) - error_count
    was_fixed = original_code != fixed_code

    area = select_focus_area(issues)
    logger.debug(f"Lesson focus: {area.name} ({error_count} errors, {warning_count} warnings)")

    issue_text = f"{error_count} error(s)" if error_count > 0 else f"{warning_count} warning(s)"
    return (
        f"Code Quality Check: Found {issue_text} in {area.name}\n"
        f"• Cause: {area.cause}\n"
        f"• Fix: {area.fix(was_fixed)}\n"
        f"• Practice tip: {area.tip}"
    )
