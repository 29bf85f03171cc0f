"""Services for the Bug Whisperer analysis pipeline."""

from .analysis_service import AnalysisService
from .autofix_service import AutofixService
from .lesson_service import generate_lesson
from .lint_engine import (
    LintEngine,
    LintEngineError,
    LintParseError,
    LintRuleConfig,
    UnsupportedSyntaxError,
    create_lint_engine,
)
from .rule_catalog import generate_suggestion, syntax_error_suggestion

__all__ = [
    "AnalysisService",
    "AutofixService",
    "LintEngine",
    "LintEngineError",
    "LintParseError",
    "LintRuleConfig",
    "UnsupportedSyntaxError",
    "create_lint_engine",
    "generate_lesson",
    "generate_suggestion",
    "syntax_error_suggestion",
]
