"""Data models for the Bug Whisperer backend."""

from .analysis import AnalysisResult
from .autofix import AutofixChange
from .linting import LintIssue, LintOutcome, LintSeverity, LintViolation

__all__ = [
    "AnalysisResult",
    "AutofixChange",
    "LintIssue",
    "LintOutcome",
    "LintSeverity",
    "LintViolation",
]
