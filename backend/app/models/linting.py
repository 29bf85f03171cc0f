"""
Linting models (static quality feedback).

These models are intentionally small and stable: `LintIssue` is part of the API
surface returned to clients, while `LintViolation` / `LintOutcome` describe what a
lint engine hands back to the analysis pipeline before suggestions are attached.
"""

from __future__ import annotations

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field


class LintSeverity(str, Enum):
    """Severity level for reported issues."""

    ERROR = "error"
    WARNING = "warning"

    @classmethod
    def from_level(cls, level: int) -> "LintSeverity":
        """Map an engine severity (2 = error, 1 = warning) to a LintSeverity."""
        return cls.ERROR if level >= 2 else cls.WARNING


class LintIssue(BaseModel):
    """A single located defect, with a human suggestion attached."""

    # 1-based line number in the analyzed snippet
    line: int = Field(default=1, ge=1)
    severity: LintSeverity
    message: str
    suggestion: str

    # Optional machine-readable identity (e.g. no-var, semi); None for parser failures
    rule_id: Optional[str] = None
    column: Optional[int] = None


class LintViolation(BaseModel):
    """A raw rule violation as reported by a lint engine."""

    line: int = Field(default=1, ge=1)
    column: Optional[int] = None
    severity: int = Field(default=2, ge=1, le=2)
    message: str
    rule_id: Optional[str] = None


class LintOutcome(BaseModel):
    """Everything a lint engine returns for one snippet."""

    violations: List[LintViolation] = Field(default_factory=list)

    # Fully repaired text when the engine could auto-fix something, else None
    output: Optional[str] = None
