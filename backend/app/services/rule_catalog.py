"""
Rule catalog and suggestion mapping.

The catalog is loaded once from `data/rule_catalog.yaml` when this module is
imported and is read-only afterwards, so concurrent analyses can share it
without locking.

Two lookups are provided:
- rule id -> one-line suggestion (lint engine violations)
- raw parser message -> suggestion (fatal parse failures and recovery issues
  that carry no rule id), via an ordered phrase list where the first match wins
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional, Tuple

import yaml

logger = logging.getLogger(__name__)

CATALOG_PATH = Path(__file__).parent / "data" / "rule_catalog.yaml"


@dataclass(frozen=True)
class SyntaxErrorPattern:
    """One phrase group of the syntax-error classifier."""

    phrases: Tuple[str, ...]
    suggestion: str

    def matches(self, lowered_message: str) -> bool:
        return all(phrase in lowered_message for phrase in self.phrases)


@dataclass(frozen=True)
class RuleCatalog:
    """Static mapping from rule identifiers and parser messages to suggestions."""

    suggestions: Mapping[str, str]
    default_suggestion: str
    syntax_patterns: Tuple[SyntaxErrorPattern, ...]
    syntax_default: str

    @classmethod
    def load(cls, path: Path = CATALOG_PATH) -> "RuleCatalog":
        """Load and freeze the catalog from a YAML file."""
        with open(path, 'r', encoding='utf-8') as f:
            raw: Dict[str, Any] = yaml.safe_load(f) or {}

        suggestions = {str(rule_id): str(text) for rule_id, text in (raw.get("rules") or {}).items()}
        patterns = tuple(
            SyntaxErrorPattern(
                phrases=tuple(str(p).lower() for p in entry.get("contains", [])),
                suggestion=str(entry["suggestion"]),
            )
            for entry in raw.get("syntax_errors") or []
        )

        catalog = cls(
            suggestions=MappingProxyType(suggestions),
            default_suggestion=str(raw.get("default_suggestion", "Follow ESLint best practices to fix this issue")),
            syntax_patterns=patterns,
            syntax_default=str(raw.get("syntax_default", "Check for syntax errors like missing brackets, quotes, or semicolons")),
        )
        logger.info(f"Loaded rule catalog: {len(suggestions)} rules, {len(patterns)} syntax patterns")
        return catalog

    def suggestion_for(self, rule_id: str) -> str:
        return self.suggestions.get(rule_id, self.default_suggestion)

    def syntax_suggestion(self, message: str) -> str:
        lowered = (message or "").lower()
        for pattern in self.syntax_patterns:
            if pattern.matches(lowered):
                return pattern.suggestion
        return self.syntax_default


RULE_CATALOG = RuleCatalog.load()


def generate_suggestion(rule_id: Optional[str], message: str) -> str:
    """
    Generate a helpful one-line suggestion for a violation.

    Example:
        generate_suggestion('no-var', 'Unexpected var, use let or const instead.')
        Returns: 'Use let or const instead of var'

    Issues without a rule id (parser failures) are classified by their message.
    """
    if not rule_id:
        return syntax_error_suggestion(message)
    return RULE_CATALOG.suggestion_for(rule_id)


def syntax_error_suggestion(message: str) -> str:
    """
    Generate a suggestion for a raw syntax error message.

    Example:
        syntax_error_suggestion('Line 1: Unexpected token }')
        Returns: 'Check for missing opening brace or extra closing brace'
    """
    return RULE_CATALOG.syntax_suggestion(message)
