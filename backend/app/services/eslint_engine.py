"""
Lint engine backed by the Node `eslint` CLI (ESLint 8, eslintrc mode).

The snippet is piped over stdin with `--fix-dry-run --format json`, so nothing
is written to disk. Rules come exclusively from the command line
(`--no-eslintrc`), which keeps results independent of any project config that
happens to sit in the working directory.

Note that ESLint reports the messages that remain *after* its own fixes; the
built-in esprima engine reports the violations of the submitted text.
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, Dict, List

from ..models.linting import LintOutcome, LintViolation
from .lint_engine import LintEngine, LintEngineError, LintParseError, LintRuleConfig, parse_mode

logger = logging.getLogger(__name__)


class EslintCliEngine(LintEngine):
    """Run `eslint` as a subprocess and translate its JSON report."""

    name = "eslint"

    def __init__(self, binary: str = "eslint", timeout: float = 30.0):
        self.binary = binary
        self.timeout = timeout

    def build_command(self, filename: str, rules: LintRuleConfig) -> List[str]:
        source_type, _ = parse_mode(filename)
        cmd = [
            self.binary,
            "--stdin",
            "--stdin-filename", filename or "snippet.js",
            "--format", "json",
            "--fix-dry-run",
            "--no-eslintrc",
            "--env", ",".join(rules.environments),
            "--parser-options", "ecmaVersion:2021",
            "--parser-options", f"sourceType:{source_type}",
        ]
        for rule_id, severity in rules.enabled_rules().items():
            cmd.extend(["--rule", f"{rule_id}: {self._rule_value(rule_id, severity, rules)}"])
        return cmd

    @staticmethod
    def _rule_value(rule_id: str, severity: int, rules: LintRuleConfig) -> str:
        if rule_id == "quotes":
            return f"[{severity}, {rules.quote_style}]"
        if rule_id == "semi":
            return f"[{severity}, always]"
        return str(severity)

    async def lint(self, filename: str, code: str, rules: LintRuleConfig) -> LintOutcome:
        cmd = self.build_command(filename, rules)
        logger.info(f"Running eslint for {filename} ({len(rules.enabled_rules())} rules)")

        try:
            process = await asyncio.create_subprocess_exec(
                *cmd,
                stdin=asyncio.subprocess.PIPE,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except (FileNotFoundError, PermissionError) as e:
            raise LintEngineError(f"eslint binary not available: {self.binary} ({e})") from e

        try:
            stdout_bytes, stderr_bytes = await asyncio.wait_for(
                process.communicate(code.encode("utf-8")), timeout=self.timeout
            )
        except asyncio.TimeoutError as e:
            process.kill()
            await process.wait()
            logger.error(f"eslint timed out after {self.timeout} seconds for {filename}")
            raise LintEngineError(f"eslint timed out after {self.timeout} seconds") from e

        stdout = stdout_bytes.decode("utf-8", errors="replace")
        stderr = stderr_bytes.decode("utf-8", errors="replace")

        # 0 = clean, 1 = lint errors; anything else is a crash or a config error
        if process.returncode not in (0, 1):
            logger.error(f"eslint failed (exit code {process.returncode}): {stderr.strip()}")
            raise LintEngineError(f"eslint exited with code {process.returncode}: {stderr.strip()}")

        return self.parse_report(stdout, code)

    @staticmethod
    def parse_report(stdout: str, code: str) -> LintOutcome:
        """
        Translate ESLint's JSON formatter output into a LintOutcome.

        Raises:
            LintParseError: ESLint reported a fatal parsing error
            LintEngineError: the report is not valid ESLint JSON
        """
        try:
            report = json.loads(stdout)
            result: Dict[str, Any] = report[0]
            messages = result.get("messages", [])
        except (json.JSONDecodeError, IndexError, KeyError, TypeError, AttributeError) as e:
            raise LintEngineError(f"Malformed eslint output: {e}") from e

        violations: List[LintViolation] = []
        for message in messages:
            if message.get("fatal"):
                raise LintParseError(message.get("message", "Parsing error"), line=message.get("line"))
            violations.append(
                LintViolation(
                    line=max(int(message.get("line") or 1), 1),
                    column=message.get("column"),
                    severity=2 if message.get("severity") == 2 else 1,
                    message=message.get("message", ""),
                    rule_id=message.get("ruleId"),
                )
            )

        output = result.get("output")
        return LintOutcome(violations=violations, output=output if output and output != code else None)
