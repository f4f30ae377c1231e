"""
TypeScript and JavaScript analyzer built on tree-sitter.

TypeScript files use the ``typescript``/``tsx`` grammars from
``tree-sitter-typescript``; JavaScript and JSX files use
``tree-sitter-javascript``. Both grammars share most node names, so one
analyzer covers the whole family.
"""
import os
import re
from typing import Any, Iterable, List, Optional, Set, Tuple

import tree_sitter_javascript as tsjavascript
import tree_sitter_typescript as tstypescript
from pydantic import BaseModel, Field
from tree_sitter import Node, Tree

from repokg.analysis.relationship_resolver import simple_type_name
from repokg.config import AnalysisConfig
from repokg.core.entities import (
    ClassProperties,
    CodeEntity,
    ComponentProperties,
    ExportInfo,
    FunctionProperties,
    HookProperties,
    ImportInfo,
    InterfaceProperties,
    LanguageType,
    NodeType,
    ParameterInfo,
    VariableProperties,
)
from repokg.parsers.base_analyzer import LanguageAnalyzer
from repokg.parsers.complexity import ComplexityCalculator

GRAMMARS = {
    ".ts": ("typescript", tstypescript.language_typescript),
    ".mts": ("typescript", tstypescript.language_typescript),
    ".cts": ("typescript", tstypescript.language_typescript),
    ".tsx": ("tsx", tstypescript.language_tsx),
    ".js": ("javascript", tsjavascript.language),
    ".jsx": ("javascript", tsjavascript.language),
    ".mjs": ("javascript", tsjavascript.language),
    ".cjs": ("javascript", tsjavascript.language),
}

JAVASCRIPT_EXTENSIONS = (".js", ".jsx", ".mjs", ".cjs")

# Order in which extensionless relative imports are tried.
RESOLUTION_EXTENSIONS = (".ts", ".tsx", ".js", ".jsx", ".mts", ".mjs", ".cts", ".cjs")

FUNCTION_TYPES = frozenset({
    "function_declaration",
    "generator_function_declaration",
    "function_expression",
    "function",
    "generator_function",
    "arrow_function",
    "method_definition",
    "abstract_method_signature",
})
FUNCTION_VALUE_TYPES = frozenset({
    "function_expression", "function", "generator_function", "arrow_function",
})
GENERATOR_TYPES = frozenset({"generator_function_declaration", "generator_function"})
METHOD_TYPES = frozenset({"method_definition", "abstract_method_signature"})
FIELD_TYPES = frozenset({"public_field_definition", "field_definition"})
CLASS_TYPES = frozenset({"class_declaration", "abstract_class_declaration", "class"})
VARIABLE_TYPES = frozenset({"lexical_declaration", "variable_declaration"})

BRANCH_TYPES = (
    "if_statement",
    "for_statement",
    "for_in_statement",
    "while_statement",
    "do_statement",
    "switch_case",
    "ternary_expression",
    "catch_clause",
)
LOGICAL_OPERATORS = {"binary_expression": frozenset({"&&", "||"})}

HOOK_NAME = re.compile(r"^use[A-Z0-9]")
HOOK_CALL = re.compile(r"\b(use[A-Z]\w*)\s*\(")
STATE_HOOK_CALL = re.compile(r"\buse(State|Reducer)\s*\(")
EFFECT_HOOK_CALL = re.compile(r"\buse(Layout)?Effect\s*\(")
JSX_MARKERS = ("</", "/>", "React.createElement")

HOOK_TYPES = (
    ("useState", "state"),
    ("useReducer", "reducer"),
    ("useEffect", "effect"),
    ("useLayoutEffect", "effect"),
    ("useContext", "context"),
    ("useMemo", "memo"),
    ("useCallback", "callback"),
    ("useRef", "ref"),
)

LIFECYCLE_METHODS = frozenset({
    "componentDidMount",
    "componentDidUpdate",
    "componentWillUnmount",
    "shouldComponentUpdate",
    "getDerivedStateFromProps",
    "getSnapshotBeforeUpdate",
    "componentDidCatch",
})


def hook_type(name: str) -> str:
    for prefix, kind in HOOK_TYPES:
        if name.startswith(prefix):
            return kind
    return "custom"


def unquote(text: str) -> str:
    text = text.strip()
    if len(text) >= 2 and text[0] in "'\"`" and text[-1] == text[0]:
        return text[1:-1]
    return text


def clean_jsdoc(text: str) -> Optional[str]:
    body = text[3:]
    if body.endswith("*/"):
        body = body[:-2]
    lines = [re.sub(r"^\s*\*\s?", "", line).rstrip() for line in body.splitlines()]
    return "\n".join(lines).strip() or None


def has_jsx(text: str) -> bool:
    return any(marker in text for marker in JSX_MARKERS)


class _FileContext(BaseModel):
    file_path: str
    source_code: bytes
    exported_names: Set[str] = Field(default_factory=set)


class TypeScriptAnalyzer(LanguageAnalyzer):
    """
    Analyzer for TypeScript, TSX, JavaScript and JSX sources.

    Besides plain functions, classes, interfaces and top-level variables it
    recognizes React components (capitalized functions that render JSX, or
    classes extending ``Component``) and hooks (functions named ``useX``).

    Complexity stops at nested named functions and classes. Anonymous
    callbacks such as ``xs.forEach(v => ...)`` count toward the function
    that contains them.
    """

    file_extensions = tuple(GRAMMARS)

    def __init__(self, language: LanguageType = LanguageType.TYPESCRIPT,
                 config: Optional[AnalysisConfig] = None):
        super().__init__(language, config)
        self.complexity = ComplexityCalculator(
            branch_types=BRANCH_TYPES,
            logical_operators=LOGICAL_OPERATORS,
            is_scope_boundary=self._is_scope_boundary,
            continuation_types=("else_clause",),
        )
        self._source_code = b""

    def grammar_for(self, file_path: str) -> Tuple[str, Any]:
        extension = os.path.splitext(file_path)[1].lower()
        name, loader = GRAMMARS.get(extension, GRAMMARS[".ts"])
        return name, loader()

    def language_for(self, file_path: str) -> LanguageType:
        if file_path.lower().endswith(JAVASCRIPT_EXTENSIONS):
            return LanguageType.JAVASCRIPT
        return LanguageType.TYPESCRIPT

    def process_file(self, file_path: str, source_code: bytes, tree: Tree) -> List[CodeEntity]:
        root = tree.root_node
        # The scope-boundary predicate needs the text of the file being processed.
        self._source_code = source_code

        imports = self._extract_imports(root, source_code)
        exports = self._extract_exports(root, source_code)
        context = _FileContext(file_path=file_path, source_code=source_code,
                               exported_names=self._exported_names(exports))

        declarations: List[CodeEntity] = []
        for node in self.walk_tree(root):
            if not node.is_named:
                continue
            if node.type in FUNCTION_TYPES:
                entity = self._function_entity(node, context)
                if entity:
                    declarations.append(entity)
            elif node.type in CLASS_TYPES:
                entity = self._class_entity(node, context)
                if entity:
                    declarations.append(entity)
            elif node.type == "interface_declaration":
                entity = self._interface_entity(node, context)
                if entity:
                    declarations.append(entity)
            elif node.type in VARIABLE_TYPES:
                declarations.extend(self._variable_entities(node, context))

        file_entity = self.build_file_entity(
            file_path, source_code, declarations, imports, exports,
            docstring=self._file_docstring(root, source_code),
        )
        return [file_entity] + declarations

    def resolve_module(self, importer_path: str, module: str) -> List[str]:
        """
        Resolve a relative import to candidate files.

        ``./util`` may refer to ``util.ts``, ``util.tsx``, ``util/index.ts`` and
        so on; a ``./util.js`` specifier in TypeScript sources may refer to
        ``util.ts``. Bare package specifiers have no candidates.
        """
        if not module.startswith("."):
            return []
        base = os.path.normpath(os.path.join(os.path.dirname(importer_path), module))
        stem, extension = os.path.splitext(base)

        candidates = []
        if extension in self.file_extensions:
            candidates.append(base)
            if extension in JAVASCRIPT_EXTENSIONS:
                candidates.extend(stem + ext for ext in RESOLUTION_EXTENSIONS)
        candidates.extend(base + ext for ext in RESOLUTION_EXTENSIONS)
        candidates.extend(os.path.join(base, "index" + ext) for ext in RESOLUTION_EXTENSIONS)
        return candidates

    # Declarations

    def _function_entity(self, node: Node, ctx: _FileContext) -> Optional[CodeEntity]:
        src = ctx.source_code
        name = self.function_name(node, src)
        if not name:
            return None

        holder = node.parent if node.parent is not None and node.parent.type in FIELD_TYPES else None
        is_method = node.type in METHOD_TYPES or holder is not None
        parent_class = self._enclosing_class_name(node, src) if is_method else None
        parameters = self._parameters(node, src)
        text = self.extract_node_text(node, src)
        is_async = self.has_keyword(node, "async")

        common = dict(
            qualified_name=self.qualified_name(ctx.file_path, name, parent_class),
            docstring=self._docstring(node, src),
            is_exported=False if is_method else self._is_exported(node, name, ctx),
            cyclomatic_complexity=self.complexity.cyclomatic(node),
            cognitive_complexity=self.complexity.cognitive(node),
            lines_of_code=self.lines_of_code(node),
        )

        if not is_method and HOOK_NAME.match(name):
            dependencies = []
            for called in HOOK_CALL.findall(text):
                if called != name and called not in dependencies:
                    dependencies.append(called)
            properties = HookProperties(
                hook_type=hook_type(name),
                dependencies=dependencies,
                parameters=parameters,
                is_async=is_async,
                **common,
            )
            return self.build_entity(name, NodeType.HOOK, ctx.file_path, node, src, properties)

        if not is_method and name[:1].isupper() and has_jsx(text):
            properties = ComponentProperties(
                component_type="functional",
                parameters=parameters,
                has_props=bool(parameters),
                has_state=bool(STATE_HOOK_CALL.search(text)),
                has_effects=bool(EFFECT_HOOK_CALL.search(text)),
                **common,
            )
            return self.build_entity(name, NodeType.COMPONENT, ctx.file_path, node, src, properties)

        modifiers_node = holder if holder is not None else node
        properties = FunctionProperties(
            parameters=parameters,
            return_type=self._annotation(node.child_by_field_name("return_type"), src),
            is_async=is_async,
            is_method=is_method,
            is_static=self.has_keyword(modifiers_node, "static"),
            is_abstract=node.type == "abstract_method_signature" or self.has_keyword(node, "abstract"),
            is_arrow=node.type == "arrow_function",
            is_generator=node.type in GENERATOR_TYPES or self.has_keyword(node, "*"),
            parent_class=parent_class,
            **common,
        )
        return self.build_entity(name, NodeType.FUNCTION, ctx.file_path, node, src, properties)

    def _class_entity(self, node: Node, ctx: _FileContext) -> Optional[CodeEntity]:
        src = ctx.source_code
        name = self._class_name(node, src)
        if not name:
            return None

        extends, implements = self._heritage(node, src)
        methods: List[str] = []
        field_names: List[str] = []
        static_members: List[str] = []
        method_nodes: List[Node] = []
        has_private_constructor = False

        body = node.child_by_field_name("body")
        for member in body.named_children if body is not None else []:
            if member.type in METHOD_TYPES or member.type == "method_signature":
                member_name = self.field_text(member, "name", src)
                if not member_name:
                    continue
                if member_name not in methods:
                    methods.append(member_name)
                if member.type == "method_definition":
                    method_nodes.append(member)
                if self.has_keyword(member, "static"):
                    static_members.append(member_name)
                if member_name == "constructor" and self._accessibility(member, src) == "private":
                    has_private_constructor = True
            elif member.type in FIELD_TYPES:
                member_name = self.field_text(member, "name", src) or self.field_text(member, "property", src)
                if not member_name:
                    continue
                value = member.child_by_field_name("value")
                if value is not None and value.type in FUNCTION_VALUE_TYPES:
                    methods.append(member_name)
                    method_nodes.append(value)
                else:
                    field_names.append(member_name)
                if self.has_keyword(member, "static"):
                    static_members.append(member_name)

        common = dict(
            qualified_name=self.qualified_name(ctx.file_path, name),
            docstring=self._docstring(node, src),
            is_exported=self._is_exported(node, name, ctx),
            cyclomatic_complexity=sum(self.complexity.cyclomatic(m) for m in method_nodes) or 1,
            cognitive_complexity=sum(self.complexity.cognitive(m) for m in method_nodes),
            lines_of_code=self.lines_of_code(node),
        )

        if any(simple_type_name(base).endswith("Component") for base in extends):
            text = self.extract_node_text(node, src)
            properties = ComponentProperties(
                component_type="class",
                has_props=True,
                has_state="this.state" in text or "this.setState" in text,
                has_effects=bool({"componentDidMount", "componentDidUpdate"}.intersection(methods)),
                has_lifecycle_methods=bool(LIFECYCLE_METHODS.intersection(methods)),
                extends=extends,
                implements=implements,
                methods=methods,
                **common,
            )
            return self.build_entity(name, NodeType.COMPONENT, ctx.file_path, node, src, properties)

        properties = ClassProperties(
            extends=extends,
            implements=implements,
            methods=methods,
            field_names=field_names,
            static_members=static_members,
            has_private_constructor=has_private_constructor,
            is_abstract=node.type == "abstract_class_declaration",
            **common,
        )
        return self.build_entity(name, NodeType.CLASS, ctx.file_path, node, src, properties)

    def _interface_entity(self, node: Node, ctx: _FileContext) -> Optional[CodeEntity]:
        src = ctx.source_code
        name = self.field_text(node, "name", src)
        if not name:
            return None

        extends = []
        for child in node.named_children:
            if child.type == "extends_type_clause":
                types = child.children_by_field_name("type") or child.named_children
                extends.extend(self.extract_node_text(t, src) for t in types)

        members = []
        body = node.child_by_field_name("body")
        for member in body.named_children if body is not None else []:
            member_name = self.field_text(member, "name", src)
            if member_name and member_name not in members:
                members.append(member_name)

        properties = InterfaceProperties(
            qualified_name=self.qualified_name(ctx.file_path, name),
            docstring=self._docstring(node, src),
            is_exported=self._is_exported(node, name, ctx),
            extends=extends,
            members=members,
        )
        return self.build_entity(name, NodeType.INTERFACE, ctx.file_path, node, src, properties)

    def _variable_entities(self, node: Node, ctx: _FileContext) -> List[CodeEntity]:
        if not self._is_top_level(node):
            return []
        src = ctx.source_code
        declaration_kind = node.children[0].type if node.children else "var"

        entities = []
        for declarator in node.named_children:
            if declarator.type != "variable_declarator":
                continue
            value = declarator.child_by_field_name("value")
            if value is not None and (value.type in FUNCTION_VALUE_TYPES or value.type in CLASS_TYPES
                                      or self._require_module(value, src)):
                continue
            name = self.field_text(declarator, "name", src)
            if not name:
                continue
            properties = VariableProperties(
                qualified_name=self.qualified_name(ctx.file_path, name),
                docstring=self._docstring(declarator, src),
                is_exported=self._is_exported(declarator, name, ctx),
                declared_type=self._annotation(declarator.child_by_field_name("type"), src) or "any",
                declaration_kind=declaration_kind,
            )
            entities.append(self.build_entity(name, NodeType.VARIABLE, ctx.file_path, declarator, src, properties))
        return entities

    # Names and structure

    def function_name(self, node: Node, src: bytes) -> Optional[str]:
        """Declared name, or the name a function expression is bound to."""
        name = self.field_text(node, "name", src)
        if name:
            return name
        parent = node.parent
        if parent is None:
            return None
        if parent.type == "variable_declarator":
            target = parent.child_by_field_name("name")
            if target is not None and target.type == "identifier":
                return self.extract_node_text(target, src)
        elif parent.type == "pair":
            key = parent.child_by_field_name("key")
            if key is not None and parent.child_by_field_name("value") == node:
                return unquote(self.extract_node_text(key, src))
        elif parent.type in FIELD_TYPES:
            return self.field_text(parent, "name", src) or self.field_text(parent, "property", src)
        elif parent.type == "assignment_expression":
            left = parent.child_by_field_name("left")
            if left is not None and left.type == "identifier":
                return self.extract_node_text(left, src)
            if left is not None and left.type == "member_expression":
                return self.field_text(left, "property", src)
        return None

    def _class_name(self, node: Node, src: bytes) -> Optional[str]:
        name = self.field_text(node, "name", src)
        if name:
            return name
        parent = node.parent
        if parent is not None and parent.type == "variable_declarator":
            target = parent.child_by_field_name("name")
            if target is not None and target.type == "identifier":
                return self.extract_node_text(target, src)
        return None

    def _enclosing_class_name(self, node: Node, src: bytes) -> Optional[str]:
        current = node.parent
        while current is not None:
            if current.type in CLASS_TYPES:
                return self._class_name(current, src)
            if current.type in ("object", "program"):
                return None
            current = current.parent
        return None

    def _is_scope_boundary(self, node: Node) -> bool:
        if not node.is_named:
            return False
        if node.type in CLASS_TYPES:
            return True
        return node.type in FUNCTION_TYPES and self.function_name(node, self._source_code) is not None

    def _heritage(self, node: Node, src: bytes) -> Tuple[List[str], List[str]]:
        extends: List[str] = []
        implements: List[str] = []
        for heritage in node.named_children:
            if heritage.type != "class_heritage":
                continue
            for clause in heritage.named_children:
                if clause.type == "extends_clause":
                    values = clause.children_by_field_name("value") or [
                        c for c in clause.named_children if c.type != "type_arguments"
                    ]
                    extends.extend(self.extract_node_text(v, src) for v in values)
                elif clause.type == "implements_clause":
                    implements.extend(self.extract_node_text(t, src) for t in clause.named_children)
                elif clause.type != "comment":
                    # JavaScript grammar: `extends <expression>` without a clause node
                    extends.append(self.extract_node_text(clause, src))
        return extends, implements

    def _parameters(self, node: Node, src: bytes) -> List[ParameterInfo]:
        single = node.child_by_field_name("parameter")
        if single is not None:
            return [ParameterInfo(name=self.extract_node_text(single, src))]

        params = node.child_by_field_name("parameters")
        if params is None:
            return []

        parameters = []
        for param in params.named_children:
            if param.type == "comment":
                continue
            if param.type in ("required_parameter", "optional_parameter"):
                pattern = param.child_by_field_name("pattern")
                default = param.child_by_field_name("value")
                parameters.append(ParameterInfo(
                    name=self.extract_node_text(pattern or param, src),
                    type=self._annotation(param.child_by_field_name("type"), src) or "any",
                    optional=param.type == "optional_parameter" or default is not None,
                    has_default=default is not None,
                ))
            elif param.type == "assignment_pattern":
                parameters.append(ParameterInfo(
                    name=self.field_text(param, "left", src) or self.extract_node_text(param, src),
                    optional=True,
                    has_default=True,
                ))
            else:
                parameters.append(ParameterInfo(name=self.extract_node_text(param, src)))
        return parameters

    def _annotation(self, node: Optional[Node], src: bytes) -> Optional[str]:
        if node is None:
            return None
        return self.extract_node_text(node, src).lstrip(":").strip() or None

    def _accessibility(self, node: Node, src: bytes) -> Optional[str]:
        for child in node.named_children:
            if child.type == "accessibility_modifier":
                return self.extract_node_text(child, src)
        return None

    def _declaration_root(self, node: Node) -> Node:
        """The outermost node of a declaration: its export or variable statement."""
        current = node
        while current.parent is not None:
            parent = current.parent
            if parent.type in ("variable_declarator", "lexical_declaration", "variable_declaration"):
                current = parent
            elif parent.type == "export_statement":
                return parent
            else:
                break
        return current

    def _is_top_level(self, node: Node) -> bool:
        parent = node.parent
        if parent is not None and parent.type == "export_statement":
            parent = parent.parent
        return parent is not None and parent.type == "program"

    def _is_exported(self, node: Node, name: str, ctx: _FileContext) -> bool:
        root = self._declaration_root(node)
        if root.type == "export_statement":
            return True
        return root.parent is not None and root.parent.type == "program" and name in ctx.exported_names

    def _docstring(self, node: Node, src: bytes) -> Optional[str]:
        root = self._declaration_root(node)
        previous = root.prev_sibling
        if previous is None or previous.type != "comment":
            return None
        if root.start_point[0] - previous.end_point[0] > 1:
            return None
        text = self.extract_node_text(previous, src)
        if not text.startswith("/**"):
            return None
        return clean_jsdoc(text)

    def _file_docstring(self, root: Node, src: bytes) -> Optional[str]:
        first = root.named_children[0] if root.named_children else None
        if first is None or first.type != "comment":
            return None
        text = self.extract_node_text(first, src)
        if not text.startswith("/**"):
            return None
        following = first.next_named_sibling
        # A comment directly attached to the first declaration documents that declaration.
        if following is not None and following.start_point[0] - first.end_point[0] <= 1:
            return None
        return clean_jsdoc(text)

    # Imports and exports

    def _require_module(self, node: Optional[Node], src: bytes) -> Optional[str]:
        if node is None or node.type != "call_expression":
            return None
        if self.field_text(node, "function", src) != "require":
            return None
        arguments = node.child_by_field_name("arguments")
        if arguments is None or not arguments.named_children:
            return None
        first = arguments.named_children[0]
        if first.type != "string":
            return None
        return unquote(self.extract_node_text(first, src))

    def _extract_imports(self, root: Node, src: bytes) -> List[ImportInfo]:
        imports = []
        for node in root.named_children:
            if node.type == "import_statement":
                source = node.child_by_field_name("source")
                if source is None:
                    continue
                info = ImportInfo(
                    module=unquote(self.extract_node_text(source, src)),
                    line=node.start_point[0] + 1,
                )
                for clause in node.named_children:
                    if clause.type == "import_clause":
                        self._read_import_clause(clause, src, info)
                imports.append(info)
            elif node.type in VARIABLE_TYPES:
                for declarator in node.named_children:
                    if declarator.type != "variable_declarator":
                        continue
                    module = self._require_module(declarator.child_by_field_name("value"), src)
                    if not module:
                        continue
                    info = ImportInfo(module=module, line=declarator.start_point[0] + 1)
                    target = declarator.child_by_field_name("name")
                    if target is not None and target.type == "identifier":
                        info.default = self.extract_node_text(target, src)
                    elif target is not None and target.type == "object_pattern":
                        info.specifiers = [self.extract_node_text(p, src) for p in target.named_children]
                    imports.append(info)
        return imports

    def _read_import_clause(self, clause: Node, src: bytes, info: ImportInfo) -> None:
        for part in clause.named_children:
            if part.type == "identifier":
                info.default = self.extract_node_text(part, src)
            elif part.type == "namespace_import":
                names = [c for c in part.named_children if c.type == "identifier"]
                if names:
                    info.namespace = self.extract_node_text(names[0], src)
            elif part.type == "named_imports":
                for specifier in part.named_children:
                    if specifier.type == "import_specifier":
                        name = self.field_text(specifier, "name", src)
                        if name:
                            info.specifiers.append(name)

    def _extract_exports(self, root: Node, src: bytes) -> List[ExportInfo]:
        exports = []
        for node in root.named_children:
            if node.type != "export_statement":
                continue
            source = node.child_by_field_name("source")
            module = unquote(self.extract_node_text(source, src)) if source is not None else None
            is_default = self.has_keyword(node, "default")

            declaration = node.child_by_field_name("declaration")
            if declaration is not None:
                for export_type, name in self._declared_names(declaration, src):
                    exports.append(ExportInfo(type="default" if is_default else export_type, name=name))
                continue

            if is_default:
                value = node.child_by_field_name("value")
                name = None
                if value is not None and value.type == "identifier":
                    name = self.extract_node_text(value, src)
                elif value is not None:
                    name = self.function_name(value, src) or self._class_name(value, src)
                exports.append(ExportInfo(type="default", name=name))
                continue

            clause = next((c for c in node.named_children if c.type == "export_clause"), None)
            if clause is not None:
                specifiers = [
                    self.field_text(s, "name", src) for s in clause.named_children
                    if s.type == "export_specifier"
                ]
                exports.append(ExportInfo(type="named", module=module,
                                          specifiers=[s for s in specifiers if s]))
            elif module is not None:
                namespace = next((c for c in node.named_children if c.type == "namespace_export"), None)
                alias = None
                if namespace is not None and namespace.named_children:
                    alias = self.extract_node_text(namespace.named_children[-1], src)
                exports.append(ExportInfo(type="namespace", name=alias, module=module))
        return exports

    def _declared_names(self, declaration: Node, src: bytes) -> Iterable[Tuple[str, Optional[str]]]:
        kind = declaration.type
        if kind in VARIABLE_TYPES:
            for declarator in declaration.named_children:
                if declarator.type == "variable_declarator":
                    yield "variable", self.field_text(declarator, "name", src)
            return
        if kind in ("function_declaration", "generator_function_declaration"):
            export_type = "function"
        elif kind in CLASS_TYPES:
            export_type = "class"
        elif kind == "interface_declaration":
            export_type = "interface"
        elif kind == "type_alias_declaration":
            export_type = "type"
        elif kind == "enum_declaration":
            export_type = "enum"
        else:
            export_type = "declaration"
        yield export_type, self.field_text(declaration, "name", src)

    def _exported_names(self, exports: List[ExportInfo]) -> Set[str]:
        names = {e.name for e in exports if e.name and e.module is None}
        for export in exports:
            if export.module is None:
                names.update(export.specifiers)
        return names
