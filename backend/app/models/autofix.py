"""
Autofix models (deterministic non-LLM code rewrites).

Autofix is a trust boundary: whenever we rewrite code after linting, we record
which rule motivated the rewrite and where it happened.
"""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel


class AutofixChange(BaseModel):
    """A single applied autofix change."""

    rule_id: str
    message: str
    line: Optional[int] = None
