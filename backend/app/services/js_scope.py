"""
Lexical scope analysis for esprima syntax trees.

Builds the scope chain of a parsed program, registers each declaration in the
scope that owns it (`var` and parameters hoist to the enclosing function, `let`,
`const` and classes stay in their block) and records every identifier reference.
References are resolved only after the whole tree has been visited, so hoisted
declarations resolve regardless of source order.

The result feeds the rules that need binding information (no-undef,
no-unused-vars, no-var, prefer-const, no-redeclare, no-func-assign).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Optional, Tuple

_NON_CHILD_KEYS = frozenset({
    "type", "loc", "range", "tokens", "comments", "errors",
    "leadingComments", "trailingComments", "innerComments",
})

FUNCTION_SCOPES = frozenset({"function", "module", "global"})


def is_node(value: Any) -> bool:
    return isinstance(getattr(value, "type", None), str)


def iter_child_nodes(node: Any) -> Iterator[Any]:
    """Yield the direct child nodes of an esprima node in source order."""
    for key, value in vars(node).items():
        if key in _NON_CHILD_KEYS:
            continue
        if isinstance(value, list):
            for item in value:
                if is_node(item):
                    yield item
        elif is_node(value):
            yield value


def walk(root: Any) -> Iterator[Tuple[Any, Any]]:
    """Depth-first pre-order walk yielding `(node, parent)` pairs."""
    seen = set()
    stack: List[Tuple[Any, Any]] = [(root, None)]
    while stack:
        node, parent = stack.pop()
        if id(node) in seen:
            continue
        seen.add(id(node))
        yield node, parent
        children = list(iter_child_nodes(node))
        for child in reversed(children):
            stack.append((child, node))


def pattern_identifiers(pattern: Any) -> List[Any]:
    """Collect the Identifier nodes bound by a declaration or assignment pattern."""
    if pattern is None:
        return []
    kind = pattern.type
    if kind == "Identifier":
        return [pattern]
    if kind == "ObjectPattern":
        found: List[Any] = []
        for prop in pattern.properties:
            target = prop.argument if prop.type == "RestElement" else prop.value
            found.extend(pattern_identifiers(target))
        return found
    if kind == "ArrayPattern":
        found = []
        for element in pattern.elements:
            found.extend(pattern_identifiers(element))
        return found
    if kind == "AssignmentPattern":
        return pattern_identifiers(pattern.left)
    if kind == "RestElement":
        return pattern_identifiers(pattern.argument)
    return []


@dataclass(eq=False)
class Reference:
    """One occurrence of an identifier in expression position."""

    identifier: Any
    scope: "Scope"
    is_read: bool
    is_write: bool
    is_init: bool = False
    is_typeof: bool = False
    # `x++;` / `x += 1;` as a statement: reads the value only to update itself
    is_self_update: bool = False
    resolved: Optional["Variable"] = None

    @property
    def name(self) -> str:
        return self.identifier.name


@dataclass(eq=False)
class Variable:
    """A binding declared in a scope."""

    name: str
    kind: str  # var, let, const, function, class, param, catch, import, function-name
    scope: "Scope"
    identifiers: List[Any] = field(default_factory=list)
    declarations: List[Any] = field(default_factory=list)
    references: List[Reference] = field(default_factory=list)
    exported: bool = False

    @property
    def is_used(self) -> bool:
        return any(ref.is_read and not ref.is_self_update for ref in self.references)

    @property
    def writes(self) -> List[Reference]:
        return [ref for ref in self.references if ref.is_write]


class Scope:
    """A lexical scope: program, function, block, loop header, switch, catch or class."""

    def __init__(self, kind: str, block: Any, parent: Optional["Scope"]):
        self.kind = kind
        self.block = block
        self.parent = parent
        self.children: List["Scope"] = []
        self.variables: Dict[str, Variable] = {}
        self.references: List[Reference] = []
        if parent is not None:
            parent.children.append(self)

    def function_scope(self) -> "Scope":
        scope = self
        while scope.kind not in FUNCTION_SCOPES and scope.parent is not None:
            scope = scope.parent
        return scope

    def resolve(self, name: str) -> Optional[Variable]:
        scope: Optional[Scope] = self
        while scope is not None:
            variable = scope.variables.get(name)
            if variable is not None:
                return variable
            scope = scope.parent
        return None

    def __repr__(self) -> str:
        return f"<Scope(kind={self.kind}, variables={sorted(self.variables)})>"


class ScopeManager:
    """Analysis result: every scope, every unresolved reference and a declaration index."""

    def __init__(self, global_scope: Scope, scopes: List[Scope], through: List[Reference], declared: Dict[int, Variable]):
        self.global_scope = global_scope
        self.scopes = scopes
        self.through = through
        self._declared = declared

    def variable_for(self, identifier: Any) -> Optional[Variable]:
        """Variable declared by a given Identifier node, if any."""
        return self._declared.get(id(identifier))

    def variables(self) -> Iterator[Variable]:
        for scope in self.scopes:
            yield from scope.variables.values()


class ScopeAnalyzer:
    """Visit a program once and build its ScopeManager."""

    def __init__(self, source_type: str = "module"):
        self.source_type = source_type
        self._scopes: List[Scope] = []
        self._declared: Dict[int, Variable] = {}
        self._pending: List[Reference] = []

    def analyze(self, program: Any) -> ScopeManager:
        global_scope = self._new_scope("module" if self.source_type == "module" else "global", program, None)
        for statement in program.body:
            self._visit(statement, global_scope, program)

        through: List[Reference] = []
        for ref in self._pending:
            variable = ref.scope.resolve(ref.name)
            if variable is None:
                through.append(ref)
                continue
            ref.resolved = variable
            variable.references.append(ref)

        return ScopeManager(global_scope, self._scopes, through, self._declared)

    # ------------------------------------------------------------------
    # bookkeeping
    # ------------------------------------------------------------------

    def _new_scope(self, kind: str, block: Any, parent: Optional[Scope]) -> Scope:
        scope = Scope(kind, block, parent)
        self._scopes.append(scope)
        return scope

    def _declare(self, scope: Scope, identifier: Any, kind: str, declaration: Any) -> Variable:
        variable = scope.variables.get(identifier.name)
        if variable is None:
            variable = Variable(name=identifier.name, kind=kind, scope=scope)
            scope.variables[identifier.name] = variable
        variable.identifiers.append(identifier)
        variable.declarations.append(declaration)
        self._declared[id(identifier)] = variable
        return variable

    def _reference(self, identifier: Any, scope: Scope, *, read: bool, write: bool = False,
                   init: bool = False, typeof: bool = False, self_update: bool = False) -> None:
        ref = Reference(
            identifier=identifier,
            scope=scope,
            is_read=read,
            is_write=write,
            is_init=init,
            is_typeof=typeof,
            is_self_update=self_update,
        )
        scope.references.append(ref)
        self._pending.append(ref)

    def _mark_exported(self, identifiers: List[Any]) -> None:
        for identifier in identifiers:
            variable = self._declared.get(id(identifier))
            if variable is not None:
                variable.exported = True

    # ------------------------------------------------------------------
    # traversal
    # ------------------------------------------------------------------

    def _visit(self, node: Any, scope: Scope, parent: Any) -> None:
        if node is None:
            return
        handler = getattr(self, f"_visit_{node.type}", None)
        if handler is not None:
            handler(node, scope, parent)
            return
        for child in iter_child_nodes(node):
            self._visit(child, scope, node)

    def _visit_Identifier(self, node: Any, scope: Scope, parent: Any) -> None:
        self._reference(node, scope, read=True)

    def _visit_FunctionDeclaration(self, node: Any, scope: Scope, parent: Any) -> None:
        if node.id is not None:
            self._declare(scope, node.id, "function", node)
        self._visit_function(node, scope)

    def _visit_FunctionExpression(self, node: Any, scope: Scope, parent: Any) -> None:
        self._visit_function(node, scope, own_name=node.id)

    def _visit_ArrowFunctionExpression(self, node: Any, scope: Scope, parent: Any) -> None:
        self._visit_function(node, scope)

    def _visit_function(self, node: Any, scope: Scope, own_name: Any = None) -> None:
        if own_name is not None:
            scope = self._new_scope("function-name", node, scope)
            self._declare(scope, own_name, "function-name", node)
        function_scope = self._new_scope("function", node, scope)
        for param in node.params or []:
            for identifier in pattern_identifiers(param):
                self._declare(function_scope, identifier, "param", node)
            self._visit_pattern_extras(param, function_scope)

        body = node.body
        if body is None:
            return
        if body.type == "BlockStatement":
            for statement in body.body:
                self._visit(statement, function_scope, body)
        else:
            self._visit(body, function_scope, node)

    def _visit_ClassDeclaration(self, node: Any, scope: Scope, parent: Any) -> None:
        if node.id is not None:
            self._declare(scope, node.id, "class", node)
        self._visit_class(node, scope)

    def _visit_ClassExpression(self, node: Any, scope: Scope, parent: Any) -> None:
        self._visit_class(node, scope, own_name=node.id)

    def _visit_class(self, node: Any, scope: Scope, own_name: Any = None) -> None:
        if node.superClass is not None:
            self._visit(node.superClass, scope, node)
        class_scope = self._new_scope("class", node, scope)
        if own_name is not None:
            self._declare(class_scope, own_name, "function-name", node)
        for member in node.body.body:
            if member.computed:
                self._visit(member.key, class_scope, member)
            if member.value is not None:
                self._visit(member.value, class_scope, member)

    def _visit_VariableDeclaration(self, node: Any, scope: Scope, parent: Any) -> None:
        target = scope.function_scope() if node.kind == "var" else scope
        loop_binding = (
            parent is not None
            and parent.type in ("ForInStatement", "ForOfStatement")
            and parent.left is node
        )
        for declarator in node.declarations:
            for identifier in pattern_identifiers(declarator.id):
                self._declare(target, identifier, node.kind, node)
                if declarator.init is not None or loop_binding:
                    self._reference(identifier, scope, read=False, write=True, init=True)
            self._visit_pattern_extras(declarator.id, scope)
            if declarator.init is not None:
                self._visit(declarator.init, scope, declarator)

    def _visit_pattern_extras(self, pattern: Any, scope: Scope) -> None:
        """Visit default values and computed keys nested in a binding pattern."""
        if pattern is None:
            return
        kind = pattern.type
        if kind == "AssignmentPattern":
            self._visit_pattern_extras(pattern.left, scope)
            self._visit(pattern.right, scope, pattern)
        elif kind == "ObjectPattern":
            for prop in pattern.properties:
                if prop.type == "RestElement":
                    self._visit_pattern_extras(prop.argument, scope)
                    continue
                if prop.computed:
                    self._visit(prop.key, scope, prop)
                self._visit_pattern_extras(prop.value, scope)
        elif kind == "ArrayPattern":
            for element in pattern.elements:
                self._visit_pattern_extras(element, scope)
        elif kind == "RestElement":
            self._visit_pattern_extras(pattern.argument, scope)
        elif kind == "MemberExpression":
            self._visit(pattern, scope, None)

    def _visit_assignment_target(self, target: Any, scope: Scope) -> None:
        if target.type == "Identifier":
            self._reference(target, scope, read=False, write=True)
        elif target.type == "MemberExpression":
            self._visit(target, scope, None)
        else:
            for identifier in pattern_identifiers(target):
                self._reference(identifier, scope, read=False, write=True)
            self._visit_pattern_extras(target, scope)

    def _visit_BlockStatement(self, node: Any, scope: Scope, parent: Any) -> None:
        block_scope = self._new_scope("block", node, scope)
        for statement in node.body:
            self._visit(statement, block_scope, node)

    def _visit_ForStatement(self, node: Any, scope: Scope, parent: Any) -> None:
        loop_scope = self._new_scope("for", node, scope)
        for part in (node.init, node.test, node.update, node.body):
            self._visit(part, loop_scope, node)

    def _visit_ForInStatement(self, node: Any, scope: Scope, parent: Any) -> None:
        loop_scope = self._new_scope("for", node, scope)
        if node.left.type == "VariableDeclaration":
            self._visit(node.left, loop_scope, node)
        else:
            self._visit_assignment_target(node.left, loop_scope)
        self._visit(node.right, loop_scope, node)
        self._visit(node.body, loop_scope, node)

    _visit_ForOfStatement = _visit_ForInStatement

    def _visit_SwitchStatement(self, node: Any, scope: Scope, parent: Any) -> None:
        self._visit(node.discriminant, scope, node)
        switch_scope = self._new_scope("switch", node, scope)
        for case in node.cases:
            if case.test is not None:
                self._visit(case.test, switch_scope, case)
            for statement in case.consequent:
                self._visit(statement, switch_scope, case)

    def _visit_CatchClause(self, node: Any, scope: Scope, parent: Any) -> None:
        catch_scope = self._new_scope("catch", node, scope)
        if node.param is not None:
            for identifier in pattern_identifiers(node.param):
                self._declare(catch_scope, identifier, "catch", node)
            self._visit_pattern_extras(node.param, catch_scope)
        for statement in node.body.body:
            self._visit(statement, catch_scope, node.body)

    def _visit_MemberExpression(self, node: Any, scope: Scope, parent: Any) -> None:
        self._visit(node.object, scope, node)
        if node.computed:
            self._visit(node.property, scope, node)

    def _visit_Property(self, node: Any, scope: Scope, parent: Any) -> None:
        if node.computed:
            self._visit(node.key, scope, node)
        self._visit(node.value, scope, node)

    def _visit_MethodDefinition(self, node: Any, scope: Scope, parent: Any) -> None:
        if node.computed:
            self._visit(node.key, scope, node)
        self._visit(node.value, scope, node)

    def _visit_AssignmentExpression(self, node: Any, scope: Scope, parent: Any) -> None:
        left = node.left
        if left.type == "Identifier":
            compound = node.operator != "="
            self._reference(
                left,
                scope,
                read=compound,
                write=True,
                self_update=compound and parent is not None and parent.type == "ExpressionStatement",
            )
        else:
            self._visit_assignment_target(left, scope)
        self._visit(node.right, scope, node)

    def _visit_UpdateExpression(self, node: Any, scope: Scope, parent: Any) -> None:
        if node.argument.type == "Identifier":
            self._reference(
                node.argument,
                scope,
                read=True,
                write=True,
                self_update=parent is not None and parent.type == "ExpressionStatement",
            )
        else:
            self._visit(node.argument, scope, node)

    def _visit_UnaryExpression(self, node: Any, scope: Scope, parent: Any) -> None:
        if node.operator == "typeof" and node.argument.type == "Identifier":
            self._reference(node.argument, scope, read=True, typeof=True)
        else:
            self._visit(node.argument, scope, node)

    def _visit_LabeledStatement(self, node: Any, scope: Scope, parent: Any) -> None:
        self._visit(node.body, scope, node)

    def _visit_BreakStatement(self, node: Any, scope: Scope, parent: Any) -> None:
        return None

    _visit_ContinueStatement = _visit_BreakStatement
    _visit_MetaProperty = _visit_BreakStatement
    _visit_ExportAllDeclaration = _visit_BreakStatement

    def _visit_ImportDeclaration(self, node: Any, scope: Scope, parent: Any) -> None:
        for specifier in node.specifiers:
            self._declare(scope, specifier.local, "import", node)

    def _visit_ExportNamedDeclaration(self, node: Any, scope: Scope, parent: Any) -> None:
        declaration = node.declaration
        if declaration is not None:
            self._visit(declaration, scope, node)
            self._mark_exported(_declared_identifiers(declaration))
        elif node.source is None:
            for specifier in node.specifiers:
                self._reference(specifier.local, scope, read=True)

    def _visit_ExportDefaultDeclaration(self, node: Any, scope: Scope, parent: Any) -> None:
        declaration = node.declaration
        self._visit(declaration, scope, node)
        if declaration.type in ("FunctionDeclaration", "ClassDeclaration"):
            self._mark_exported(_declared_identifiers(declaration))

    def _visit_JSXOpeningElement(self, node: Any, scope: Scope, parent: Any) -> None:
        name = node.name
        # Capitalized tags are component references; lowercase tags are DOM elements
        if name.type == "JSXIdentifier" and name.name[:1].isupper():
            self._reference(name, scope, read=True)
        for attribute in node.attributes:
            self._visit(attribute, scope, node)


def _declared_identifiers(declaration: Any) -> List[Any]:
    if declaration.type == "VariableDeclaration":
        found: List[Any] = []
        for declarator in declaration.declarations:
            found.extend(pattern_identifiers(declarator.id))
        return found
    if declaration.type in ("FunctionDeclaration", "ClassDeclaration") and declaration.id is not None:
        return [declaration.id]
    return []


def analyze_scopes(program: Any, source_type: str = "module") -> ScopeManager:
    """Build the ScopeManager for a parsed esprima program."""
    return ScopeAnalyzer(source_type).analyze(program)
