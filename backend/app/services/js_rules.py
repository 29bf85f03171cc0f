"""
Built-in JavaScript lint rules for the esprima engine.

Each rule is a plain function registered with `@rule("<id>")`. A rule receives
a RuleContext (source text, syntax tree, tokens, comments and scope analysis)
and yields LintProblem objects. Rule ids and messages follow ESLint so that
suggestions, lessons and clients behave the same whichever engine produced
the violations.

Fixes are text replacements over character offsets. `apply_fixes` applies a
non-overlapping subset of them in one pass; the engine repeats passes until
the text is stable.
"""

from __future__ import annotations

import bisect
import re
from dataclasses import dataclass
from typing import Any, Callable, Dict, FrozenSet, Iterable, Iterator, List, Optional, Set, Tuple

from .js_globals import NON_CALLABLE_GLOBALS, globals_for
from .js_scope import ScopeManager, Variable, pattern_identifiers, walk


@dataclass(frozen=True)
class Fix:
    """Replace `text[start:end]` with `text`."""

    start: int
    end: int
    text: str


@dataclass(frozen=True)
class LintProblem:
    rule_id: str
    message: str
    line: int
    column: int  # 1-based
    fix: Optional[Fix] = None


RuleFunction = Callable[["RuleContext"], Iterable[LintProblem]]

_RULES: Dict[str, RuleFunction] = {}


def rule(rule_id: str) -> Callable[[RuleFunction], RuleFunction]:
    """
    Decorator to register a rule function.

    Example:
        @rule("no-debugger")
        def no_debugger(ctx):
            ...
    """
    def decorator(func: RuleFunction) -> RuleFunction:
        if rule_id in _RULES:
            raise ValueError(f"Rule already registered: {rule_id}")
        _RULES[rule_id] = func
        return func
    return decorator


def registered_rules() -> Dict[str, RuleFunction]:
    """Registered rules, in registration order."""
    return dict(_RULES)


def apply_fixes(text: str, fixes: Iterable[Fix]) -> Tuple[str, int]:
    """
    Apply a single pass of fixes.

    Fixes are taken in offset order; a fix that starts at or before the end of an
    already accepted fix is left for the next pass. Returns the new text and the
    number of fixes applied.
    """
    ordered = sorted(fixes, key=lambda f: (f.start, f.end))
    accepted: List[Fix] = []
    last_end = -1
    for fix in ordered:
        if fix.start <= last_end:
            continue
        accepted.append(fix)
        last_end = fix.end

    for fix in reversed(accepted):
        text = text[:fix.start] + fix.text + text[fix.end:]
    return text, len(accepted)


_GLOBAL_COMMENT_RE = re.compile(r"^\s*globals?\s+(?P<names>.+)$", re.DOTALL)


class RuleContext:
    """Everything a rule may look at for one parsed snippet."""

    def __init__(
        self,
        code: str,
        program: Any,
        scopes: ScopeManager,
        source_type: str = "module",
        quote_style: str = "double",
        environments: Iterable[str] = ("browser", "node", "es2021"),
    ):
        self.code = code
        self.program = program
        self.scopes = scopes
        self.source_type = source_type
        self.quote_style = quote_style
        self.tokens: List[Any] = list(getattr(program, "tokens", None) or [])
        self.comments: List[Any] = list(getattr(program, "comments", None) or [])

        self.nodes: List[Tuple[Any, Any]] = []
        self._parents: Dict[int, Any] = {}
        for statement in program.body:
            for node, parent in walk(statement):
                parent = parent if parent is not None else program
                self.nodes.append((node, parent))
                self._parents[id(node)] = parent

        self.globals: FrozenSet[str] = globals_for(environments) | self._comment_globals()
        self.unresolved: Set[int] = {id(ref.identifier) for ref in scopes.through}

        self._line_starts = [0] + [m.end() for m in re.finditer(r"\n", code)]
        self._token_ends = [t.range[1] for t in self.tokens]

    def _comment_globals(self) -> FrozenSet[str]:
        names: Set[str] = set()
        for comment in self.comments:
            if comment.type != "Block":
                continue
            match = _GLOBAL_COMMENT_RE.match(comment.value or "")
            if not match:
                continue
            for item in re.split(r"[\s,]+", match.group("names")):
                name = item.split(":", 1)[0].strip()
                if name:
                    names.add(name)
        return frozenset(names)

    def parent(self, node: Any) -> Any:
        return self._parents.get(id(node))

    def ancestors(self, node: Any) -> Iterator[Any]:
        current = self.parent(node)
        while current is not None:
            yield current
            current = self.parent(current)

    def nodes_of(self, *types: str) -> Iterator[Tuple[Any, Any]]:
        for node, parent in self.nodes:
            if node.type in types:
                yield node, parent

    def position(self, offset: int) -> Tuple[int, int]:
        """1-based (line, column) of a character offset."""
        index = bisect.bisect_right(self._line_starts, offset) - 1
        return index + 1, offset - self._line_starts[index] + 1

    def last_token(self, node: Any) -> Optional[Any]:
        """
        Last token inside a node.

        When a statement ends without `;` on the same line as the next token,
        esprima extends the node range up to that token, so the range end is
        not always the end of the statement's own text.
        """
        start, end = node.range
        index = bisect.bisect_right(self._token_ends, end) - 1
        if index < 0 or self.tokens[index].range[0] < start:
            return None
        return self.tokens[index]

    def source(self, node: Any) -> str:
        start, end = node.range
        return self.code[start:end]

    def problem(self, rule_id: str, message: str, node: Any, fix: Optional[Fix] = None) -> LintProblem:
        start = node.loc.start
        return LintProblem(rule_id=rule_id, message=message, line=start.line, column=start.column + 1, fix=fix)

    def problem_at(self, rule_id: str, message: str, offset: int, fix: Optional[Fix] = None) -> LintProblem:
        line, column = self.position(offset)
        return LintProblem(rule_id=rule_id, message=message, line=line, column=column, fix=fix)


# ----------------------------------------------------------------------
# shared helpers
# ----------------------------------------------------------------------

_LOOP_TYPES = frozenset({"ForStatement", "ForInStatement", "ForOfStatement", "WhileStatement", "DoWhileStatement"})
_FUNCTION_TYPES = frozenset({"FunctionDeclaration", "FunctionExpression", "ArrowFunctionExpression"})
_BLOCK_PARENTS = frozenset({"Program", "BlockStatement", "ForStatement", "ForInStatement", "ForOfStatement", "ExportNamedDeclaration"})


def _declared_variables(ctx: RuleContext, declaration: Any) -> List[Optional[Variable]]:
    found = []
    for declarator in declaration.declarations:
        for identifier in pattern_identifiers(declarator.id):
            found.append(ctx.scopes.variable_for(identifier))
    return found


def _inside_loop(ctx: RuleContext, node: Any) -> bool:
    for ancestor in ctx.ancestors(node):
        if ancestor.type in _FUNCTION_TYPES:
            return False
        if ancestor.type in _LOOP_TYPES:
            return True
    return False


def _within(inner: Any, outer_range: List[int]) -> bool:
    return outer_range[0] <= inner.range[0] and inner.range[1] <= outer_range[1]


# ----------------------------------------------------------------------
# best-practice rules
# ----------------------------------------------------------------------

@rule("no-var")
def no_var(ctx: RuleContext) -> Iterator[LintProblem]:
    for node, parent in ctx.nodes_of("VariableDeclaration"):
        if node.kind != "var":
            continue
        fix = None
        if _can_fix_var(ctx, node, parent):
            start = node.range[0]
            fix = Fix(start, start + 3, "let")
        yield ctx.problem("no-var", "Unexpected var, use let or const instead.", node, fix)


def _can_fix_var(ctx: RuleContext, node: Any, parent: Any) -> bool:
    if parent is None or parent.type not in _BLOCK_PARENTS:
        return False
    if parent.type == "Program" and ctx.source_type != "module":
        return False

    variables = _declared_variables(ctx, node)
    if any(v is None or len(v.identifiers) > 1 or v.name == "let" for v in variables):
        return False

    in_loop = parent.type in _LOOP_TYPES or _inside_loop(ctx, node)
    if in_loop and parent.type == "BlockStatement" and any(d.init is None for d in node.declarations):
        return False

    block = ctx.program if parent.type == "ExportNamedDeclaration" else parent
    for variable in variables:
        declared_in = variable.scope.function_scope()
        for ref in variable.references:
            if not _within(ref.identifier, block.range):
                return False
            if not ref.is_init and ref.identifier.range[0] < node.range[0]:
                return False
            if in_loop and ref.scope.function_scope() is not declared_in:
                return False
    return True


@rule("prefer-const")
def prefer_const(ctx: RuleContext) -> Iterator[LintProblem]:
    by_declaration: Dict[int, List[Variable]] = {}
    candidates: List[Variable] = []
    for variable in ctx.scopes.variables():
        if variable.kind != "let" or len(variable.identifiers) != 1:
            continue
        writes = variable.writes
        if len(writes) == 1 and writes[0].is_init:
            candidates.append(variable)
            by_declaration.setdefault(id(variable.declarations[0]), []).append(variable)

    for variable in candidates:
        declaration = variable.declarations[0]
        fix = None
        if _can_fix_let(ctx, declaration, by_declaration.get(id(declaration), [])):
            start = declaration.range[0]
            fix = Fix(start, start + 3, "const")
        yield ctx.problem(
            "prefer-const",
            f"'{variable.name}' is never reassigned. Use 'const' instead.",
            variable.identifiers[0],
            fix,
        )


def _can_fix_let(ctx: RuleContext, declaration: Any, flagged: List[Variable]) -> bool:
    parent = ctx.parent(declaration)
    if parent is not None and parent.type == "ForStatement":
        return False
    loop_binding = parent is not None and parent.type in ("ForInStatement", "ForOfStatement")
    if not loop_binding and any(d.init is None for d in declaration.declarations):
        return False
    return len(flagged) == len(_declared_variables(ctx, declaration))


# ----------------------------------------------------------------------
# stylistic rules
# ----------------------------------------------------------------------

_SEMI_STATEMENTS = frozenset({
    "VariableDeclaration", "ExpressionStatement", "ReturnStatement", "ThrowStatement",
    "DoWhileStatement", "DebuggerStatement", "BreakStatement", "ContinueStatement",
    "ImportDeclaration", "ExportAllDeclaration", "ExportNamedDeclaration", "ExportDefaultDeclaration",
})


@rule("semi")
def semi(ctx: RuleContext) -> Iterator[LintProblem]:
    for node, parent in ctx.nodes_of(*_SEMI_STATEMENTS):
        if node.type == "VariableDeclaration" and parent.type in ("ForStatement", "ForInStatement", "ForOfStatement"):
            continue
        if node.type == "ExportNamedDeclaration" and node.declaration is not None:
            continue
        if node.type == "ExportDefaultDeclaration" and node.declaration.type in ("FunctionDeclaration", "ClassDeclaration"):
            continue

        last = ctx.last_token(node)
        if last is None or (last.type == "Punctuator" and last.value == ";"):
            continue
        end = last.range[1]
        yield ctx.problem_at("semi", "Missing semicolon.", end, Fix(end, end, ";"))


_QUOTE_NAMES = {'"': "doublequote", "'": "singlequote"}
_QUOTE_SWITCH_RE = re.compile(r"""\\(\$\{|\r\n?|\n|.)|["'`]|\$\{|(\r\n?|\n)""")


def switch_quote(raw: str, new_quote: str) -> str:
    """
    Re-quote a string or template literal, adjusting escapes.

    Example:
        switch_quote("'it\\'s'", '"')
        Returns: '"it\\'s"' with the inner quote unescaped
    """
    old_quote = raw[0]
    if old_quote == new_quote:
        return raw

    def replace(match: "re.Match[str]") -> str:
        whole, escaped, newline = match.group(0), match.group(1), match.group(2)
        if escaped == old_quote or (old_quote == "`" and escaped == "${"):
            return escaped
        if whole == new_quote or (new_quote == "`" and whole == "${"):
            return "\\" + whole
        if newline and old_quote == "`":
            return "\\n"
        return whole

    return new_quote + _QUOTE_SWITCH_RE.sub(replace, raw[1:-1]) + new_quote


@rule("quotes")
def quotes(ctx: RuleContext) -> Iterator[LintProblem]:
    quote = '"' if ctx.quote_style == "double" else "'"
    message = f"Strings must use {_QUOTE_NAMES[quote]}."

    for node, parent in ctx.nodes_of("Literal", "TemplateLiteral"):
        raw = ctx.source(node)
        if node.type == "Literal":
            if not isinstance(node.value, str) or raw[:1] not in _QUOTE_NAMES or raw[:1] == quote:
                continue
            if parent.type in ("JSXAttribute", "JSXElement"):
                continue
        else:
            if node.expressions or parent.type == "TaggedTemplateExpression":
                continue
            if "\n" in raw or "\r" in raw:
                continue
        yield ctx.problem("quotes", message, node, Fix(node.range[0], node.range[1], switch_quote(raw, quote)))


_TRAILING_SPACE_RE = re.compile(r"[ \t\u00a0\u2000-\u200b\u3000]+$")


@rule("no-trailing-spaces")
def no_trailing_spaces(ctx: RuleContext) -> Iterator[LintProblem]:
    templates = [t.range for t in ctx.tokens if t.type == "Template"]
    offset = 0
    for line in ctx.code.split("\n"):
        content = line[:-1] if line.endswith("\r") else line
        match = _TRAILING_SPACE_RE.search(content)
        if match:
            start, end = offset + match.start(), offset + match.end()
            if not any(t_start < start and end <= t_end for t_start, t_end in templates):
                yield ctx.problem_at("no-trailing-spaces", "Trailing spaces not allowed.", start, Fix(start, end, ""))
        offset += len(line) + 1


@rule("eol-last")
def eol_last(ctx: RuleContext) -> Iterator[LintProblem]:
    code = ctx.code
    if not code or code.endswith("\n"):
        return
    yield ctx.problem_at(
        "eol-last",
        "Newline required at end of file but not found.",
        len(code),
        Fix(len(code), len(code), "\n"),
    )


# ----------------------------------------------------------------------
# variable rules
# ----------------------------------------------------------------------

@rule("no-undef")
def no_undef(ctx: RuleContext) -> Iterator[LintProblem]:
    for ref in ctx.scopes.through:
        identifier = ref.identifier
        if identifier.type != "Identifier" or ref.is_typeof:
            continue
        if ref.name in ctx.globals or ref.name == "arguments":
            continue
        yield ctx.problem("no-undef", f"'{ref.name}' is not defined.", identifier)


@rule("no-unused-vars")
def no_unused_vars(ctx: RuleContext) -> Iterator[LintProblem]:
    for variable in ctx.scopes.variables():
        if variable.kind in ("catch", "function-name") or variable.exported or variable.is_used:
            continue
        if variable.kind == "param" and _used_param_follows(variable):
            continue
        if any(ref.is_write for ref in variable.references):
            message = f"'{variable.name}' is assigned a value but never used."
        else:
            message = f"'{variable.name}' is defined but never used."
        yield ctx.problem("no-unused-vars", message, variable.identifiers[0])


def _used_param_follows(variable: Variable) -> bool:
    """True when a later parameter of the same function is used."""
    function = variable.declarations[0]
    params = function.params or []
    position = next(
        (i for i, p in enumerate(params) if any(ident is variable.identifiers[0] for ident in pattern_identifiers(p))),
        None,
    )
    if position is None:
        return False
    for later in params[position + 1:]:
        for identifier in pattern_identifiers(later):
            other = variable.scope.variables.get(identifier.name)
            if other is not None and other.is_used:
                return True
    return False


@rule("no-redeclare")
def no_redeclare(ctx: RuleContext) -> Iterator[LintProblem]:
    for variable in ctx.scopes.variables():
        for identifier in variable.identifiers[1:]:
            yield ctx.problem("no-redeclare", f"'{variable.name}' is already defined.", identifier)


@rule("no-func-assign")
def no_func_assign(ctx: RuleContext) -> Iterator[LintProblem]:
    for variable in ctx.scopes.variables():
        if variable.kind != "function":
            continue
        for ref in variable.references:
            if ref.is_write and not ref.is_init:
                yield ctx.problem("no-func-assign", f"'{variable.name}' is a function.", ref.identifier)


# ----------------------------------------------------------------------
# possible-problem rules
# ----------------------------------------------------------------------

_TERMINATORS = frozenset({"ReturnStatement", "ThrowStatement", "BreakStatement", "ContinueStatement"})


def _hoisted_only(statement: Any) -> bool:
    if statement.type in ("FunctionDeclaration", "EmptyStatement"):
        return True
    return (
        statement.type == "VariableDeclaration"
        and statement.kind == "var"
        and all(d.init is None for d in statement.declarations)
    )


@rule("no-unreachable")
def no_unreachable(ctx: RuleContext) -> Iterator[LintProblem]:
    bodies = [ctx.program.body]
    for node, _ in ctx.nodes_of("BlockStatement", "SwitchCase"):
        bodies.append(node.body if node.type == "BlockStatement" else node.consequent)

    for body in bodies:
        terminated = False
        for statement in body:
            if terminated and not _hoisted_only(statement):
                yield ctx.problem("no-unreachable", "Unreachable code.", statement)
                break
            if statement.type in _TERMINATORS:
                terminated = True


def _property_key(prop: Any) -> Optional[str]:
    key = prop.key
    if prop.computed or key is None:
        return None
    if key.type == "Identifier":
        return key.name
    if key.type == "Literal":
        value = key.value
        if isinstance(value, float) and value.is_integer():
            return str(int(value))
        return str(value)
    return None


@rule("no-dupe-keys")
def no_dupe_keys(ctx: RuleContext) -> Iterator[LintProblem]:
    for node, _ in ctx.nodes_of("ObjectExpression"):
        seen: Dict[str, Set[str]] = {}
        for prop in node.properties:
            if prop.type != "Property":
                continue
            name = _property_key(prop)
            if name is None or name == "__proto__":
                continue
            kind = prop.kind or "init"
            kinds = seen.setdefault(name, set())
            # a getter and a setter may share a name; anything else is a duplicate
            if "init" in kinds or kind in kinds or (kind == "init" and bool(kinds)):
                yield ctx.problem("no-dupe-keys", f"Duplicate key '{name}'.", prop.key)
            kinds.add(kind)


_COMPARISON_OPERATORS = frozenset({"==", "===", "!=", "!==", "<", ">", "<=", ">="})


def _is_nan(node: Any) -> bool:
    if node.type == "Identifier":
        return node.name == "NaN"
    return (
        node.type == "MemberExpression"
        and not node.computed
        and node.object.type == "Identifier"
        and node.object.name == "Number"
        and node.property.name == "NaN"
    )


@rule("use-isnan")
def use_isnan(ctx: RuleContext) -> Iterator[LintProblem]:
    for node, _ in ctx.nodes_of("BinaryExpression"):
        if node.operator in _COMPARISON_OPERATORS and (_is_nan(node.left) or _is_nan(node.right)):
            yield ctx.problem("use-isnan", "Use the isNaN function to compare with NaN.", node)


_VALID_TYPES = frozenset({"symbol", "undefined", "object", "boolean", "number", "string", "function", "bigint"})


@rule("valid-typeof")
def valid_typeof(ctx: RuleContext) -> Iterator[LintProblem]:
    for node, _ in ctx.nodes_of("BinaryExpression"):
        if node.operator not in ("==", "===", "!=", "!=="):
            continue
        for side, other in ((node.left, node.right), (node.right, node.left)):
            if side.type != "UnaryExpression" or side.operator != "typeof":
                continue
            value = None
            if other.type == "Literal" and isinstance(other.value, str):
                value = other.value
            elif other.type == "TemplateLiteral" and not other.expressions:
                value = ctx.source(other)[1:-1]
            if value is not None and value not in _VALID_TYPES:
                yield ctx.problem("valid-typeof", "Invalid typeof comparison value.", other)


@rule("no-sparse-arrays")
def no_sparse_arrays(ctx: RuleContext) -> Iterator[LintProblem]:
    for node, _ in ctx.nodes_of("ArrayExpression"):
        if any(element is None for element in node.elements):
            yield ctx.problem("no-sparse-arrays", "Unexpected comma in middle of array.", node)


@rule("no-debugger")
def no_debugger(ctx: RuleContext) -> Iterator[LintProblem]:
    for node, _ in ctx.nodes_of("DebuggerStatement"):
        yield ctx.problem("no-debugger", "Unexpected 'debugger' statement.", node)


@rule("no-obj-calls")
def no_obj_calls(ctx: RuleContext) -> Iterator[LintProblem]:
    for node, _ in ctx.nodes_of("CallExpression", "NewExpression"):
        callee = node.callee
        if callee.type != "Identifier" or callee.name not in NON_CALLABLE_GLOBALS:
            continue
        if id(callee) in ctx.unresolved:
            yield ctx.problem("no-obj-calls", f"'{callee.name}' is not a function.", node)


@rule("no-empty")
def no_empty(ctx: RuleContext) -> Iterator[LintProblem]:
    comment_starts = [c.range[0] for c in ctx.comments]
    for node, parent in ctx.nodes_of("BlockStatement", "SwitchStatement"):
        if node.type == "SwitchStatement":
            if not node.cases:
                yield ctx.problem("no-empty", "Empty switch statement.", node)
            continue
        if node.body or parent.type in _FUNCTION_TYPES:
            continue
        start, end = node.range
        if any(start < c < end for c in comment_starts):
            continue
        yield ctx.problem("no-empty", "Empty block statement.", node)


def _paren_depth(code: str, offset: int) -> int:
    depth = 0
    index = offset - 1
    while index >= 0:
        ch = code[index]
        if ch == "(":
            depth += 1
        elif not ch.isspace():
            break
        index -= 1
    return depth


@rule("no-cond-assign")
def no_cond_assign(ctx: RuleContext) -> Iterator[LintProblem]:
    required = {
        "IfStatement": 2,
        "WhileStatement": 2,
        "DoWhileStatement": 2,
        "ForStatement": 1,
        "ConditionalExpression": 1,
    }
    for node, _ in ctx.nodes_of(*required):
        test = node.test
        if test is None or test.type != "AssignmentExpression":
            continue
        if _paren_depth(ctx.code, test.range[0]) >= required[node.type]:
            continue
        yield ctx.problem(
            "no-cond-assign",
            "Expected a conditional expression and instead saw an assignment.",
            test,
        )
