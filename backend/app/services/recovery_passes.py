"""
Heuristic syntax-recovery passes (deterministic, line-based, offline).

These passes run before structural linting so that the most common typing
mistakes (an unclosed string, a missing semicolon) do not make the whole
snippet unparseable.

They are not parsers:
- Each pass is a pure function of ONE line plus the lexical context left open
  by the lines before it (brackets, template literal, block comment, markup).
  `apply_recovery_passes` threads that `LineState` from line to line.
- A pass never inserts or removes a line terminator, so line numbers stay aligned
  with the original input.
- When a line cannot be classified confidently it is left untouched and the
  structural linter gets the final word.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import List, Optional, Tuple

from ..models.linting import LintIssue, LintSeverity
from .rule_catalog import generate_suggestion

logger = logging.getLogger(__name__)

UNTERMINATED_STRING_MESSAGE = "Unterminated string literal."
MISSING_SEMICOLON_MESSAGE = "Missing semicolon."

_QUOTES = "\"'"
_CLOSING_DELIMITERS = ")}]"
_BRACKET_PAIRS = {")": "(", "]": "[", "}": "{"}

_TERMINAL_CHARS = (";", "{", "}", ")", ",")
_CONTINUATION_SUFFIXES = ("=>", "&&", "||", "=", "+", "-", "*", "/", "?", ":", "(", "[", ".")
_CONTROL_FLOW_RE = re.compile(
    r"\b(?:if|else|for|while|do|switch|case|default|function|class|try|catch|finally)\b"
)

# A `/` or `<` after these starts a regex literal or a JSX tag rather than an operator
_EXPRESSION_PRECEDERS = frozenset("(,=:[!&|?{};+-*%<>~^")
_EXPRESSION_KEYWORDS = frozenset({
    "return", "typeof", "instanceof", "in", "of", "new", "delete",
    "void", "throw", "case", "do", "else", "yield", "await",
})
_TRAILING_WORD_RE = re.compile(r"[A-Za-z_$][\w$]*$")

# Context markers kept on the LineState stack besides ( [ {
TEMPLATE = "`"
SUBSTITUTION = "${"
TAG = "<"
CLOSING_TAG = "</"
ELEMENT = "<>"


@dataclass(frozen=True)
class LineState:
    """Lexical context still open at a line boundary."""

    stack: Tuple[str, ...] = ()
    block_comment: bool = False

    @property
    def innermost(self) -> str:
        return self.stack[-1] if self.stack else ""

    @property
    def continues(self) -> bool:
        """True inside brackets, a template, markup or a comment; only `{` blocks hold statements."""
        return self.block_comment or self.innermost not in ("", "{")


@dataclass(frozen=True)
class LineScan:
    """
    Result of scanning one line.

    open_string: `(quote, index_of_opening_quote)` when a quoted string is still
        open at end of line, else None
    code_end: index where a trailing `//` comment starts (len(line) if none)
    end_state: context open after the line
    """

    open_string: Optional[Tuple[str, int]]
    code_end: int
    end_state: LineState

    @property
    def opaque_tail(self) -> bool:
        """The line ends inside a template literal or block comment."""
        return self.end_state.block_comment or self.end_state.innermost == TEMPLATE


def _is_comment_line(stripped: str) -> bool:
    return stripped.startswith(("//", "/*", "*"))


def _expression_expected(line: str, index: int) -> bool:
    before = line[:index].rstrip()
    if not before:
        return True
    if before[-1] in _EXPRESSION_PRECEDERS:
        return True
    word = _TRAILING_WORD_RE.search(before)
    return bool(word) and word.group(0) in _EXPRESSION_KEYWORDS


def _string_end(line: str, start: int) -> int:
    """Index of the quote closing the string opened at `start`, or -1."""
    quote = line[start]
    i = start + 1
    while i < len(line):
        ch = line[i]
        if ch == "\\":
            i += 2
            continue
        if ch == quote:
            return i
        i += 1
    return -1


def _regex_end(line: str, start: int) -> int:
    """Index just past the flags of a regex literal starting at `start`, or -1."""
    in_class = False
    i = start + 1
    while i < len(line):
        ch = line[i]
        if ch == "\\":
            i += 2
            continue
        if ch == "[":
            in_class = True
        elif ch == "]":
            in_class = False
        elif ch == "/" and not in_class:
            i += 1
            while i < len(line) and line[i].isalpha():
                i += 1
            return i
        i += 1
    return -1


def _starts_tag(line: str, index: int) -> bool:
    following = line[index + 1:index + 2]
    return following.isalpha() or following == ">"


def scan_line(line: str, state: LineState = LineState()) -> LineScan:
    """
    Scan one line for string literals, comments and open brackets.

    A backslash inside a string escapes the next character. Template literals,
    regex literals, block comments and JSX text are skipped, so the quotes they
    contain never open a string; when one of them is still open at end of line it
    is part of `end_state`.
    """
    stack = list(state.stack)
    in_comment = state.block_comment
    i = 0
    length = len(line)

    def finish(open_string: Optional[Tuple[str, int]] = None, code_end: int = length) -> LineScan:
        return LineScan(open_string, code_end, LineState(tuple(stack), in_comment))

    while i < length:
        ch = line[i]
        top = stack[-1] if stack else ""

        if in_comment:
            close = line.find("*/", i)
            if close == -1:
                return finish()
            in_comment = False
            i = close + 2
            continue

        if top == TEMPLATE:
            if ch == "\\":
                i += 2
            elif ch == "`":
                stack.pop()
                i += 1
            elif line.startswith("${", i):
                stack.append(SUBSTITUTION)
                i += 2
            else:
                i += 1
            continue

        if top == ELEMENT:
            if ch == "{":
                stack.append("{")
            elif line.startswith("</", i):
                stack.append(CLOSING_TAG)
                i += 1
            elif ch == "<":
                stack.append(TAG)
            i += 1
            continue

        if top in (TAG, CLOSING_TAG) and ch not in _QUOTES:
            if line.startswith("/>", i):
                stack.pop()
                i += 2
                continue
            if ch == ">":
                stack.pop()
                if top == TAG:
                    stack.append(ELEMENT)
                elif stack and stack[-1] == ELEMENT:
                    stack.pop()
            elif ch == "{":
                stack.append("{")
            i += 1
            continue

        if ch in _QUOTES:
            end = _string_end(line, i)
            if end == -1:
                return finish(open_string=(ch, i))
            i = end + 1
            continue

        if ch == "`":
            stack.append(TEMPLATE)
        elif line.startswith("//", i):
            return finish(code_end=i)
        elif line.startswith("/*", i):
            in_comment = True
            i += 2
            continue
        elif ch == "/" and _expression_expected(line, i):
            end = _regex_end(line, i)
            if end != -1:
                i = end
                continue
        elif ch == "<" and _expression_expected(line, i) and _starts_tag(line, i):
            stack.append(TAG)
        elif ch in "([{":
            stack.append(ch)
        elif ch in _BRACKET_PAIRS:
            if top == _BRACKET_PAIRS[ch] or (ch == "}" and top == SUBSTITUTION):
                stack.pop()
        i += 1

    return finish()


def recover_string_literal(line: str, state: LineState = LineState()) -> str:
    """
    Close an unterminated quoted string on a single line.

    The missing quote goes immediately before the right-most `)`, `}` or `]`
    that follows the opening quote; without such a delimiter it is appended.
    Only one unterminated string per line is repaired.

    Example:
        recover_string_literal('console.log("hel)')
        Returns: 'console.log("hel")'
    """
    if _is_comment_line(line.strip()):
        return line

    open_string = scan_line(line, state).open_string
    if open_string is None:
        return line

    quote, start = open_string
    insert_at = max(line.rfind(ch) for ch in _CLOSING_DELIMITERS)
    if insert_at <= start:
        return line + quote
    return line[:insert_at] + quote + line[insert_at:]


def recover_statement_terminator(line: str, state: LineState = LineState()) -> str:
    """
    Append a missing `;` to a line that looks like a complete statement.

    Lines are skipped when they already end with a terminator, a brace or a
    closing parenthesis, are comments, mention a control-flow keyword, look like
    an object-literal entry or markup, or end with an operator that continues on
    the next line. Lines that start in a block comment or end inside an open
    bracket, template literal or JSX element are skipped too. The `;` goes right
    after the last code character, ahead of any trailing comment or whitespace.
    """
    stripped = line.strip()
    if not stripped or _is_comment_line(stripped) or state.block_comment:
        return line

    scan = scan_line(line, state)
    if scan.opaque_tail or scan.end_state.continues:
        return line

    code = line[:scan.code_end].rstrip()
    code_stripped = code.strip()
    if not code_stripped:
        return line

    if code_stripped.endswith(_TERMINAL_CHARS):
        return line
    if _CONTROL_FLOW_RE.search(code_stripped):
        return line
    if code_stripped.startswith("<") or code_stripped.endswith(">"):
        return line
    if _looks_like_property(code_stripped):
        return line
    if code_stripped.endswith(_CONTINUATION_SUFFIXES) and not code_stripped.endswith(("++", "--")):
        return line

    return code + ";" + line[len(code):]


_PROPERTY_RE = re.compile(r"""^(?:[A-Za-z_$][\w$]*|"[^"]*"|'[^']*'|\d+)\s*:(?!:)""")


def _looks_like_property(code: str) -> bool:
    return bool(_PROPERTY_RE.match(code))


def apply_recovery_passes(code: str) -> Tuple[str, List[LintIssue]]:
    """
    Run string-literal recovery then terminator recovery over every line.

    Returns the recovered text and one issue per repair, in line order (within a
    line the string repair is reported before the terminator repair).
    """
    issues: List[LintIssue] = []
    recovered: List[str] = []
    state = LineState()

    for line_no, raw_line in enumerate(code.split("\n"), start=1):
        line, eol = (raw_line[:-1], "\r") if raw_line.endswith("\r") else (raw_line, "")

        repaired = recover_string_literal(line, state)
        if repaired != line:
            issues.append(
                LintIssue(
                    line=line_no,
                    severity=LintSeverity.ERROR,
                    message=UNTERMINATED_STRING_MESSAGE,
                    suggestion=generate_suggestion(None, UNTERMINATED_STRING_MESSAGE),
                )
            )

        terminated = recover_statement_terminator(repaired, state)
        if terminated != repaired:
            issues.append(
                LintIssue(
                    line=line_no,
                    severity=LintSeverity.ERROR,
                    message=MISSING_SEMICOLON_MESSAGE,
                    suggestion=generate_suggestion("semi", MISSING_SEMICOLON_MESSAGE),
                    rule_id="semi",
                )
            )

        recovered.append(terminated + eol)
        state = scan_line(terminated, state).end_state

    if issues:
        logger.info(f"Recovery passes repaired {len(issues)} issue(s)")
    return "\n".join(recovered), issues
