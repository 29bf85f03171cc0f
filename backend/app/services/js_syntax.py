"""
Tree-sitter view of JavaScript syntax.

The esprima port stops at ES2017, while tree-sitter-javascript tracks the
current grammar. When esprima rejects a snippet, this module decides whether the
text is actually well-formed and, if so, lowers the newer constructs into ES2017
equivalents esprima can parse:

    a?.b      -> a.b          a ?? b   -> a || b
    a ||= b   -> a |= b       1_000n   -> 1000
    catch {   -> catch(_) {   for await (...) -> for (...)
    #!node    -> //node

Regex bodies are neutralised as well, since esprima validates them with
Python's `re`. The rewrite keeps an offset map, and `LoweredSource.restore`
moves every range and location of the resulting tree back onto the submitted
text, so rules, messages and fixes all refer to the original code.
"""

from __future__ import annotations

import logging
from bisect import bisect_left, bisect_right
from typing import Any, Callable, Iterator, List, Optional, Tuple

import tree_sitter_javascript
from tree_sitter import Language, Node, Parser, Tree

from .js_scope import walk

logger = logging.getLogger(__name__)

_language: Optional[Language] = None

OPERATOR_REWRITES = {
    "??": "||",
    "??=": "|=",
    "||=": "|=",
    "&&=": "&=",
}

# Past the es2021 target; these stay parse errors
ES2022_CONSTRUCTS = frozenset({"field_definition", "private_property_identifier", "class_static_block"})

# Placeholder binding for `catch {`; removed again by LoweredSource.restore
CATCH_PLACEHOLDER = "_"

Edit = Tuple[int, int, str]


def get_language() -> Language:
    """Get the JavaScript grammar, loading it once."""
    global _language
    if _language is None:
        _language = Language(tree_sitter_javascript.language())
        logger.debug("Loaded tree-sitter JavaScript grammar")
    return _language


def get_parser() -> Parser:
    """Get a new parser; parsers are not shared between executor threads."""
    return Parser(get_language())


def parse_tree(code: str) -> Tree:
    return get_parser().parse(code.encode("utf-8", errors="surrogatepass"))


def has_syntax_errors(code: str) -> bool:
    """True when tree-sitter finds ERROR or MISSING nodes in the text."""
    return parse_tree(code).root_node.has_error


def iter_nodes(root: Node) -> Iterator[Node]:
    """Pre-order walk over every node, named and anonymous."""
    stack = [root]
    while stack:
        node = stack.pop()
        yield node
        stack.extend(reversed(node.children))


def _char_offsets(code: str) -> Callable[[int], int]:
    if code.isascii():
        return lambda offset: offset
    encoded = code.encode("utf-8", errors="surrogatepass")
    return lambda offset: len(encoded[:offset].decode("utf-8", errors="surrogatepass"))


def _node_text(node: Node) -> str:
    return node.text.decode("utf-8", errors="surrogatepass")


def _edits_for(node: Node) -> List[Edit]:
    """Rewrites for one node as (start_byte, end_byte, replacement)."""
    kind = node.type

    if kind == "optional_chain":
        replacement = "." if node.parent is not None and node.parent.type == "member_expression" else ""
        return [(node.start_byte, node.end_byte, replacement)]

    if not node.is_named and kind in OPERATOR_REWRITES:
        return [(node.start_byte, node.end_byte, OPERATOR_REWRITES[kind])]

    if kind == "number":
        text = _node_text(node)
        lowered = text.replace("_", "")
        if lowered.endswith("n"):
            lowered = lowered[:-1]
        if lowered != text:
            return [(node.start_byte, node.end_byte, lowered)]
        return []

    if kind == "catch_clause" and node.child_by_field_name("parameter") is None:
        keyword = node.children[0]
        return [(keyword.end_byte, keyword.end_byte, f"({CATCH_PLACEHOLDER})")]

    if kind == "for_in_statement":
        return [(child.start_byte, child.end_byte, "") for child in node.children if child.type == "await"]

    if kind == "hash_bang_line":
        return [(node.start_byte, node.start_byte + 2, "//")]

    if kind == "regex":
        pattern = node.child_by_field_name("pattern")
        if pattern is not None and _node_text(pattern) != "x":
            return [(pattern.start_byte, pattern.end_byte, "x")]

    return []


def _rejected_constructs(node: Node, jsx: bool, source_type: str) -> Optional[str]:
    if node.type in ES2022_CONSTRUCTS:
        return f"{node.type} (ES2022)"
    if not jsx and node.type.startswith("jsx_"):
        return "JSX outside a .jsx file"
    if source_type == "script" and node.type in ("import_statement", "export_statement"):
        return "module syntax in a script"
    return None


class LoweredSource:
    """ES2017 rendition of a snippet plus the map back to the original offsets."""

    def __init__(self, original: str, edits: List[Edit]):
        self.original = original
        self.edits = sorted(edits)
        # (lowered_start, lowered_end, original_start, original_end)
        self._segments: List[Tuple[int, int, int, int]] = []
        self._insertions: List[Tuple[int, int]] = []

        pieces: List[str] = []
        src = out = 0
        for start, end, replacement in self.edits:
            if start > src:
                pieces.append(original[src:start])
                self._segments.append((out, out + start - src, src, start))
                out += start - src
            pieces.append(replacement)
            self._segments.append((out, out + len(replacement), start, end))
            if start == end:
                self._insertions.append((out, out + len(replacement)))
            out += len(replacement)
            src = end
        if src < len(original) or not self._segments:
            pieces.append(original[src:])
            self._segments.append((out, out + len(original) - src, src, len(original)))

        self.text = "".join(pieces)
        self._starts = [segment[0] for segment in self._segments]
        self._line_starts = [0] + [i + 1 for i, ch in enumerate(original) if ch == "\n"]

    @property
    def changed(self) -> bool:
        return bool(self.edits)

    def original_offset(self, offset: int, end: bool = False) -> int:
        """
        Map an offset in the lowered text onto the submitted text.

        Range ends attach to the text before the offset and range starts to the
        text after it, so a deleted `?.` belongs to neither side.
        """
        if end:
            index = bisect_left(self._starts, offset) - 1
        else:
            index = bisect_right(self._starts, offset) - 1
        out_start, out_end, src_start, src_end = self._segments[max(index, 0)]
        if end and offset == out_end:
            return src_end
        return min(src_start + (offset - out_start), src_end)

    def _position(self, offset: int) -> Tuple[int, int]:
        index = bisect_right(self._line_starts, offset) - 1
        return index + 1, offset - self._line_starts[index]

    def _restore_item(self, item: Any) -> None:
        start = self.original_offset(item.range[0])
        end = max(self.original_offset(item.range[1], end=True), start)
        item.range = [start, end]
        loc = getattr(item, "loc", None)
        if loc is not None:
            loc.start.line, loc.start.column = self._position(start)
            loc.end.line, loc.end.column = self._position(end)

    def _inserted(self, item: Any) -> bool:
        start, end = item.range
        return any(out_start <= start and end <= out_end for out_start, out_end in self._insertions)

    def restore(self, program: Any) -> Any:
        """Move the ranges of an esprima tree parsed from `text` back onto `original`."""
        for node, _ in walk(program):
            if node.type == "CatchClause" and node.param is not None and self._inserted(node.param):
                node.param = None
            if getattr(node, "range", None) is not None:
                self._restore_item(node)
        if getattr(program, "tokens", None):
            program.tokens = [t for t in program.tokens if not self._inserted(t)]
            for token in program.tokens:
                self._restore_item(token)
        for comment in getattr(program, "comments", None) or []:
            self._restore_item(comment)
        return program


def lower_modern_syntax(code: str, source_type: str = "module", jsx: bool = False) -> Optional[LoweredSource]:
    """
    Rewrite post-ES2017 syntax into something esprima can parse.

    Returns:
        The lowered source (possibly without any edit), or None when tree-sitter
        itself finds the text malformed for this file type.
    """
    tree = parse_tree(code)
    if tree.root_node.has_error:
        return None

    to_char = _char_offsets(code)
    edits: List[Edit] = []
    for node in iter_nodes(tree.root_node):
        reason = _rejected_constructs(node, jsx, source_type)
        if reason:
            logger.debug(f"tree-sitter accepts the snippet, but it contains {reason}")
            return None
        for start, end, replacement in _edits_for(node):
            edits.append((to_char(start), to_char(end), replacement))

    if edits:
        logger.debug(f"Lowered {len(edits)} post-ES2017 construct(s) for esprima")
    return LoweredSource(code, edits)


def template_ranges(code: str) -> List[List[int]]:
    """Character ranges of the template literals in a snippet."""
    to_char = _char_offsets(code)
    return [
        [to_char(node.start_byte), to_char(node.end_byte)]
        for node in iter_nodes(parse_tree(code).root_node)
        if node.type == "template_string"
    ]
