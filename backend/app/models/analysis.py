"""
Analysis result model returned by the repair pipeline.
"""

from __future__ import annotations

from typing import List

from pydantic import BaseModel, Field

from .linting import LintIssue


class AnalysisResult(BaseModel):
    """
    Outcome of analyzing one snippet.

    `fixed_code` is always populated: on a fatal parse failure it holds the
    best-effort text produced by the recovery passes.
    """

    issues: List[LintIssue] = Field(default_factory=list)
    fixed_code: str = ""

    class Config:
        json_schema_extra = {
            "example": {
                "issues": [
                    {
                        "line": 1,
                        "severity": "error",
                        "message": "Unexpected var, use let or const instead.",
                        "suggestion": "Use let or const instead of var",
                        "rule_id": "no-var",
                        "column": 1,
                    }
                ],
                "fixed_code": "const x = 5;\nconsole.log(x);\n",
            }
        }
