"""
Structural lint engine interface.

The analysis pipeline only depends on `LintEngine`: submit text plus a rule
configuration, receive violations and optionally an auto-fixed text. Concrete
backends:
- EsprimaLintEngine (default): in-process, esprima parser + built-in rules
- EslintCliEngine: the Node `eslint` binary driven over stdin/stdout

Backends are selected by name through `create_lint_engine()`.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import PurePath
from types import MappingProxyType
from typing import Dict, Mapping, Optional, Tuple

from ..config import RULE_LEVELS, config
from ..models.linting import LintOutcome

logger = logging.getLogger(__name__)


class LintEngineError(Exception):
    """The lint engine itself failed (crash, missing binary, timeout, malformed output)."""


class LintParseError(LintEngineError):
    """The submitted text could not be parsed into a syntax tree."""

    def __init__(self, message: str, line: Optional[int] = None):
        super().__init__(message)
        self.line = line


class UnsupportedSyntaxError(LintParseError):
    """Well-formed text using syntax the engine's parser does not handle."""


# Enforced style/correctness rules plus the recommended subset
DEFAULT_RULE_LEVELS: Mapping[str, str] = MappingProxyType({
    "no-var": "error",
    "prefer-const": "error",
    "quotes": "error",
    "semi": "error",
    "no-trailing-spaces": "error",
    "eol-last": "error",
    "no-undef": "error",
    "no-unused-vars": "error",
    "no-unreachable": "error",
    "no-dupe-keys": "error",
    "no-redeclare": "error",
    "use-isnan": "error",
    "valid-typeof": "error",
    "no-sparse-arrays": "error",
    "no-debugger": "error",
    "no-func-assign": "error",
    "no-obj-calls": "error",
    "no-empty": "warn",
    "no-cond-assign": "error",
})

DEFAULT_ENVIRONMENTS: Tuple[str, ...] = ("browser", "node", "es2021")


def parse_mode(filename: str) -> Tuple[str, bool]:
    """Return `(source_type, jsx)` for a filename: `.cjs` is a script, `.jsx`/`.tsx` enable JSX."""
    suffix = PurePath(filename or "").suffix.lower()
    if suffix == ".cjs":
        return "script", False
    return "module", suffix in (".jsx", ".tsx")


@dataclass(frozen=True)
class LintRuleConfig:
    """Rule levels, quote style and environments handed to a lint engine."""

    levels: Mapping[str, str] = field(default_factory=lambda: DEFAULT_RULE_LEVELS)
    quote_style: str = "double"
    environments: Tuple[str, ...] = DEFAULT_ENVIRONMENTS

    def __post_init__(self):
        if self.quote_style not in ("double", "single"):
            raise ValueError(f"Unsupported quote style: {self.quote_style}")
        for rule_id, level in self.levels.items():
            if level not in RULE_LEVELS:
                raise ValueError(f"Invalid level {level!r} for rule {rule_id}")

    def level(self, rule_id: str) -> str:
        return self.levels.get(rule_id, "off")

    def severity(self, rule_id: str) -> int:
        """Engine severity of a rule: 2 = error, 1 = warning, 0 = off."""
        return RULE_LEVELS.index(self.level(rule_id))

    def enabled_rules(self) -> Dict[str, int]:
        return {rule_id: self.severity(rule_id) for rule_id in self.levels if self.severity(rule_id) > 0}

    def with_overrides(self, overrides: Mapping[str, str]) -> "LintRuleConfig":
        """Return a copy with some rule levels replaced."""
        levels = dict(self.levels)
        for rule_id, level in overrides.items():
            levels[rule_id] = level
        return LintRuleConfig(
            levels=MappingProxyType(levels),
            quote_style=self.quote_style,
            environments=self.environments,
        )

    @classmethod
    def from_config(cls, engine: Optional[str] = None) -> "LintRuleConfig":
        """
        Build the rule configuration from project config (env / config.json).

        Overrides for rules the built-in engine does not implement are dropped,
        unless `engine` (default: the configured one) is eslint.
        """
        base = cls(quote_style=config.get_quote_style())
        engine = (engine or config.get_lint_engine()).lower()
        known = None if engine == "eslint" else DEFAULT_RULE_LEVELS
        overrides = config.get_rule_overrides(known_rules=known)
        if overrides:
            logger.info(f"Applying lint rule overrides: {overrides}")
            return base.with_overrides(overrides)
        return base


class LintEngine(ABC):
    """
    Base class for structural lint backends.

    Implementations must raise LintParseError when the text cannot be parsed and
    LintEngineError for any other failure of the engine itself.
    """

    name: str = "base"

    @abstractmethod
    async def lint(self, filename: str, code: str, rules: LintRuleConfig) -> LintOutcome:
        """
        Lint one snippet in auto-fix mode.

        Args:
            filename: used only to pick file-type specific parsing
            code: the text to lint
            rules: rule levels and options

        Returns:
            LintOutcome with the violations of the submitted text and the
            auto-fixed text (None when nothing changed).
        """
        pass

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__}(name={self.name})>"


def create_lint_engine(name: Optional[str] = None) -> LintEngine:
    """
    Instantiate a lint engine by name (defaults to the configured engine).

    Raises:
        LintEngineError: unknown engine name
    """
    name = (name or config.get_lint_engine()).lower()

    if name == "esprima":
        from .esprima_engine import EsprimaLintEngine
        fallback = None
        if config.get_eslint_fallback():
            from .eslint_engine import EslintCliEngine
            fallback = EslintCliEngine(binary=config.get_eslint_binary(), timeout=config.get_eslint_timeout())
        return EsprimaLintEngine(fallback=fallback)

    if name == "eslint":
        from .eslint_engine import EslintCliEngine
        return EslintCliEngine(binary=config.get_eslint_binary(), timeout=config.get_eslint_timeout())

    raise LintEngineError(f"Unknown lint engine: {name}")
