"""
Targeted post-fix pass (deterministic, offline).

Runs after the lint engine on whichever text is current. It only handles what
the lint engine cannot auto-fix:
- `'X' is not defined` + a line-start assignment `X = ...` -> `let X = ...`

The pass is intentionally conservative:
- Rewrites are line-based and only ever add text.
- Every identifier is handled once, on every line where it is assigned.
- Every rewrite is recorded as an AutofixChange for transparency.
"""

from __future__ import annotations

import logging
import re
from typing import Iterable, List, Tuple

from ..models.autofix import AutofixChange
from ..models.linting import LintIssue

logger = logging.getLogger(__name__)


class AutofixService:
    """Apply the allowlisted post-lint rewrites."""

    _UNDEFINED_NAME_RE = re.compile(r"'([^']+)' is not defined")

    def undefined_names(self, issues: Iterable[LintIssue]) -> List[str]:
        """Distinct undefined identifiers named by the issues, in first-seen order."""
        names: List[str] = []
        for issue in issues:
            match = self._UNDEFINED_NAME_RE.search(issue.message)
            if match and match.group(1) not in names:
                names.append(match.group(1))
        return names

    def apply_post_fixes(self, code: str, issues: Iterable[LintIssue]) -> Tuple[str, List[AutofixChange]]:
        """
        Declare undefined identifiers at their bare assignments.

        Example:
            apply_post_fixes("total = 0;", [<'total' is not defined.>])
            Returns: ("let total = 0;", [AutofixChange(rule_id="no-undef", ...)])
        """
        changes: List[AutofixChange] = []
        names = self.undefined_names(issues)
        if not names:
            return code, changes

        lines = code.split("\n")
        for name in names:
            # `X = rhs` but not `X == rhs` / `X === rhs`
            assignment = re.compile(rf"^(?P<indent>\s*){re.escape(name)}\s*=(?!=)")
            for idx, line in enumerate(lines):
                m = assignment.match(line)
                if not m:
                    continue
                indent = m.group("indent")
                lines[idx] = f"{indent}let {line[len(indent):]}"
                changes.append(
                    AutofixChange(
                        rule_id="no-undef",
                        message=f"Declared '{name}' with let at its assignment",
                        line=idx + 1,
                    )
                )

        if changes:
            logger.info(f"Post-fix declared {len(names)} undefined identifier(s) in {len(changes)} place(s)")
        return "\n".join(lines), changes
