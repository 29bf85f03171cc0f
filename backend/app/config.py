"""
Configuration management for Bug Whisperer.

Handles loading project-level configuration for the analysis pipeline and the
HTTP layer.

Configuration priority (highest to lowest):
1. Environment variables (for Docker/container deployments)
2. config.json file (for local development)
3. Built-in defaults
"""

import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Tuple

logger = logging.getLogger(__name__)

# Config file path at project root
CONFIG_FILE = Path(__file__).parent.parent.parent / "config.json"

# Default values (used when neither env var nor config.json specifies)
DEFAULT_LINT_ENGINE = "esprima"
DEFAULT_ESLINT_BINARY = "eslint"
DEFAULT_ESLINT_TIMEOUT = 30.0
DEFAULT_QUOTE_STYLE = "double"
DEFAULT_MAX_CODE_BYTES = 1024 * 1024
DEFAULT_LOG_LEVEL = "INFO"

RULE_LEVELS = ("off", "warn", "error")
_TRUE_VALUES = ("1", "true", "yes", "on")


class Config:
    """
    Project-level configuration manager.

    Priority: ENV > config.json > defaults

    Environment variables:
      - LINT_ENGINE: structural lint backend (esprima, eslint)
      - ESLINT_BINARY: path to the eslint executable (eslint backend only)
      - ESLINT_TIMEOUT: seconds before an eslint run is abandoned
      - ESLINT_FALLBACK: hand snippets esprima cannot parse to eslint (esprima backend only)
      - QUOTE_STYLE: enforced string quote style (double, single)
      - LINT_RULES: comma-separated rule level overrides, e.g. "no-empty=off,quotes=warn"
      - MAX_CODE_BYTES: largest snippet accepted by the HTTP layer
      - CORS_ORIGINS: "*" or a comma-separated list of allowed origins
      - LOG_LEVEL: logging level name
    """

    def __init__(self, config_file: Optional[Path] = None):
        self.config_file = Path(config_file) if config_file else CONFIG_FILE
        self.data = self.load()

    def load(self) -> Dict[str, Any]:
        """Load configuration from file."""
        if self.config_file.exists():
            try:
                with open(self.config_file, 'r', encoding='utf-8') as f:
                    return json.load(f)
            except Exception as e:
                logger.error(f"Failed to load config: {e}")
                return self._default_config()
        else:
            return self._default_config()

    def _default_config(self) -> Dict[str, Any]:
        """Return default configuration."""
        return {
            "lint": {
                "engine": DEFAULT_LINT_ENGINE,
                "quote_style": DEFAULT_QUOTE_STYLE,
                "rules": {},
            }
        }

    def _lint_section(self) -> Dict[str, Any]:
        return self.data.get("lint", {}) or {}

    def get_lint_engine(self) -> str:
        """
        Get configured lint engine name.

        Priority: LINT_ENGINE env var > config.json > default
        """
        env_engine = os.getenv('LINT_ENGINE')
        if env_engine:
            return env_engine.strip().lower()

        return str(self._lint_section().get("engine", DEFAULT_LINT_ENGINE)).lower()

    def get_eslint_binary(self) -> str:
        """Get the eslint executable (ENV > config.json > default)."""
        env_binary = os.getenv('ESLINT_BINARY')
        if env_binary:
            return env_binary

        return self._lint_section().get("eslint_binary", DEFAULT_ESLINT_BINARY)

    def get_eslint_timeout(self) -> float:
        """Get the eslint subprocess timeout in seconds (ENV > config.json > default)."""
        raw = os.getenv('ESLINT_TIMEOUT') or self._lint_section().get("eslint_timeout")
        if raw is None:
            return DEFAULT_ESLINT_TIMEOUT
        try:
            return float(raw)
        except (TypeError, ValueError):
            logger.warning(f"Invalid ESLINT_TIMEOUT value {raw!r}, using {DEFAULT_ESLINT_TIMEOUT}")
            return DEFAULT_ESLINT_TIMEOUT

    def get_eslint_fallback(self) -> bool:
        """Whether the esprima backend delegates unsupported syntax to eslint (ENV > config.json > default)."""
        raw = os.getenv('ESLINT_FALLBACK')
        if raw is None:
            raw = self._lint_section().get("eslint_fallback", False)
        return str(raw).strip().lower() in _TRUE_VALUES

    def get_quote_style(self) -> str:
        """Get the enforced quote style (ENV > config.json > default)."""
        style = (os.getenv('QUOTE_STYLE') or str(self._lint_section().get("quote_style", DEFAULT_QUOTE_STYLE))).strip().lower()
        if style not in ("double", "single"):
            logger.warning(f"Invalid QUOTE_STYLE value {style!r}, using {DEFAULT_QUOTE_STYLE}")
            return DEFAULT_QUOTE_STYLE
        return style

    def get_rule_overrides(self, known_rules: Optional[Iterable[str]] = None) -> Dict[str, str]:
        """
        Get per-rule level overrides.

        config.json `lint.rules` is applied first, then LINT_RULES from the environment.
        Levels are "off", "warn", "error" or ESLint's 0/1/2. Entries with any other
        level, or with a rule id outside `known_rules` (when given), are logged and
        dropped.
        """
        entries: List[Tuple[str, str]] = []
        file_rules = self._lint_section().get("rules") or {}
        for rule_id, level in file_rules.items():
            entries.append((str(rule_id), str(level)))

        env_rules = os.getenv('LINT_RULES')
        if env_rules:
            for item in env_rules.split(","):
                if not item.strip():
                    continue
                if "=" not in item:
                    logger.warning(f"Ignoring LINT_RULES entry without a level: {item.strip()!r}")
                    continue
                rule_id, level = item.split("=", 1)
                entries.append((rule_id.strip(), level.strip()))

        known = frozenset(known_rules) if known_rules is not None else None
        overrides: Dict[str, str] = {}
        for rule_id, level in entries:
            level = level.lower()
            if level.isdigit() and int(level) < len(RULE_LEVELS):
                level = RULE_LEVELS[int(level)]
            if level not in RULE_LEVELS:
                logger.warning(f"Ignoring override {rule_id}={level}: level must be one of {', '.join(RULE_LEVELS)}")
                continue
            if known is not None and rule_id not in known:
                logger.warning(f"Ignoring override for unknown rule {rule_id!r}")
                continue
            overrides[rule_id] = level

        return overrides

    def get_max_code_bytes(self) -> int:
        """Get the request/upload size limit in bytes (ENV > config.json > default)."""
        raw = os.getenv('MAX_CODE_BYTES') or self.data.get("api", {}).get("max_code_bytes")
        if raw is None:
            return DEFAULT_MAX_CODE_BYTES
        try:
            return int(raw)
        except (TypeError, ValueError):
            logger.warning(f"Invalid MAX_CODE_BYTES value {raw!r}, using {DEFAULT_MAX_CODE_BYTES}")
            return DEFAULT_MAX_CODE_BYTES

    def get_cors_origins(self) -> List[str]:
        """Get allowed CORS origins; "*" allows everything."""
        cors_origins_env = os.getenv("CORS_ORIGINS") or self.data.get("api", {}).get("cors_origins", "*")
        if cors_origins_env == "*":
            return ["*"]
        return [origin.strip() for origin in cors_origins_env.split(",") if origin.strip()]

    def get_log_level(self) -> str:
        """Get the logging level name (ENV > config.json > default)."""
        return (os.getenv("LOG_LEVEL") or self.data.get("log_level") or DEFAULT_LOG_LEVEL).upper()


# Global config instance
config = Config()
