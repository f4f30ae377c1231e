"""
Python analyzer built on tree-sitter.
"""
import inspect
import os
import re
from typing import Any, List, Optional, Set, Tuple

import tree_sitter_python as tspython
from tree_sitter import Node, Tree

from repokg.analysis.relationship_resolver import simple_type_name
from repokg.config import AnalysisConfig
from repokg.core.entities import (
    ClassProperties,
    CodeEntity,
    ExportInfo,
    FunctionProperties,
    ImportInfo,
    InterfaceProperties,
    LanguageType,
    NodeType,
    ParameterInfo,
    VariableProperties,
)
from repokg.parsers.base_analyzer import LanguageAnalyzer
from repokg.parsers.complexity import ComplexityCalculator

BRANCH_TYPES = (
    "if_statement",
    "elif_clause",
    "for_statement",
    "while_statement",
    "except_clause",
    "except_group_clause",
    "conditional_expression",
    "case_clause",
    "for_in_clause",
    "if_clause",
)
LOGICAL_OPERATORS = {"boolean_operator": frozenset({"and", "or"})}

# Bases that only mark a class as abstract or generic.
MARKER_BASES = frozenset({"object", "ABC", "Protocol", "Generic"})
IMPLICIT_RECEIVERS = ("self", "cls")
STRING_PREFIX = re.compile(r"^[rRbBuUfF]*")


def string_literal_value(text: str) -> str:
    """Contents of a Python string literal, dedented like ``inspect.cleandoc``."""
    text = STRING_PREFIX.sub("", text.strip(), count=1)
    for quote in ('"""', "'''", '"', "'"):
        if text.startswith(quote) and text.endswith(quote) and len(text) >= 2 * len(quote):
            text = text[len(quote):-len(quote)]
            break
    return inspect.cleandoc(text)


class PythonAnalyzer(LanguageAnalyzer):
    """
    Analyzer for Python source files.

    Classes deriving from ``Protocol`` are recorded as interfaces. Names are
    treated as exported when listed in ``__all__`` or, without one, when they
    do not start with an underscore.
    """

    file_extensions = (".py", ".pyi")

    def __init__(self, language: LanguageType = LanguageType.PYTHON,
                 config: Optional[AnalysisConfig] = None):
        super().__init__(language, config)
        self.complexity = ComplexityCalculator(
            branch_types=BRANCH_TYPES,
            logical_operators=LOGICAL_OPERATORS,
            is_scope_boundary=lambda node: node.type in ("function_definition", "class_definition"),
            continuation_types=("elif_clause", "else_clause"),
        )

    def grammar_for(self, file_path: str) -> Tuple[str, Any]:
        return "python", tspython.language()

    def process_file(self, file_path: str, source_code: bytes, tree: Tree) -> List[CodeEntity]:
        root = tree.root_node
        imports = self._extract_imports(root, source_code)
        public_names = self._declared_all(root, source_code)
        exports = self._extract_exports(root, source_code, public_names)

        declarations: List[CodeEntity] = []
        for node in self.walk_tree(root):
            if node.type == "function_definition":
                declarations.append(self._function_entity(node, file_path, source_code, public_names))
            elif node.type == "class_definition":
                declarations.append(self._class_entity(node, file_path, source_code, public_names))
            elif node.type == "expression_statement" and node.parent is not None \
                    and node.parent.type == "module":
                entity = self._variable_entity(node, file_path, source_code, public_names)
                if entity:
                    declarations.append(entity)

        file_entity = self.build_file_entity(
            file_path, source_code, declarations, imports, exports,
            docstring=self._body_docstring(root, source_code),
        )
        return [file_entity] + declarations

    def resolve_module(self, importer_path: str, module: str) -> List[str]:
        """
        Candidate files for an import.

        Relative imports climb one directory per extra leading dot. Absolute
        imports are tried against every ancestor directory of the importer,
        so the package root does not have to be known.
        """
        dots = len(module) - len(module.lstrip("."))
        relative_path = module[dots:].replace(".", "/")

        if dots:
            base = os.path.dirname(importer_path)
            for _ in range(dots - 1):
                base = os.path.dirname(base)
            if not relative_path:
                return [os.path.join(base, "__init__.py")]
            target = os.path.join(base, relative_path)
            return [target + ".py", os.path.join(target, "__init__.py")]

        candidates = []
        directory = os.path.dirname(importer_path)
        while True:
            target = os.path.join(directory, relative_path)
            candidates.extend([target + ".py", os.path.join(target, "__init__.py")])
            parent = os.path.dirname(directory)
            if parent == directory:
                break
            directory = parent
        return candidates

    def _function_entity(self, node: Node, file_path: str, src: bytes,
                         public_names: Optional[Set[str]]) -> CodeEntity:
        name = self.field_text(node, "name", src)
        outer = self._outer_definition(node)
        decorators = self._decorators(outer, src)
        owner = self._owning_class(outer)
        parent_class = self.field_text(owner, "name", src) if owner is not None else None
        is_top_level = outer.parent is not None and outer.parent.type == "module"

        properties = FunctionProperties(
            qualified_name=self.qualified_name(file_path, name, parent_class),
            docstring=self._body_docstring(node.child_by_field_name("body"), src),
            is_exported=is_top_level and self._is_public(name, public_names),
            cyclomatic_complexity=self.complexity.cyclomatic(node),
            cognitive_complexity=self.complexity.cognitive(node),
            lines_of_code=self.lines_of_code(node),
            parameters=self._parameters(node, src, skip_receiver=owner is not None
                                        and "staticmethod" not in decorators),
            return_type=self.field_text(node, "return_type", src),
            is_async=self.has_keyword(node, "async"),
            is_method=owner is not None,
            is_static="staticmethod" in decorators,
            is_abstract=any(d.endswith("abstractmethod") for d in decorators),
            is_generator=self._contains_yield(node.child_by_field_name("body")),
            parent_class=parent_class,
        )
        return self.build_entity(name, NodeType.FUNCTION, file_path, outer, src, properties)

    def _class_entity(self, node: Node, file_path: str, src: bytes,
                      public_names: Optional[Set[str]]) -> CodeEntity:
        name = self.field_text(node, "name", src)
        outer = self._outer_definition(node)
        bases, metaclass = self._bases(node, src)
        base_names = {simple_type_name(base) for base in bases}

        methods: List[str] = []
        field_names: List[str] = []
        static_members: List[str] = []
        method_nodes: List[Node] = []
        has_abstract_method = False

        body = node.child_by_field_name("body")
        for member in body.named_children if body is not None else []:
            definition = member
            decorators: List[str] = []
            if member.type == "decorated_definition":
                definition = member.child_by_field_name("definition")
                decorators = self._decorators(member, src)
            if definition is not None and definition.type == "function_definition":
                method_name = self.field_text(definition, "name", src)
                methods.append(method_name)
                method_nodes.append(definition)
                if "staticmethod" in decorators or "classmethod" in decorators:
                    static_members.append(method_name)
                if any(d.endswith("abstractmethod") for d in decorators):
                    has_abstract_method = True
            elif member.type == "expression_statement":
                for target in self._assignment_targets(member, src):
                    field_names.append(target)
                    static_members.append(target)

        is_top_level = outer.parent is not None and outer.parent.type == "module"
        common = dict(
            qualified_name=self.qualified_name(file_path, name),
            docstring=self._body_docstring(body, src),
            is_exported=is_top_level and self._is_public(name, public_names),
        )
        extends = [base for base in bases if simple_type_name(base) not in MARKER_BASES]

        if "Protocol" in base_names:
            properties = InterfaceProperties(extends=extends, members=methods + field_names, **common)
            return self.build_entity(name, NodeType.INTERFACE, file_path, outer, src, properties)

        properties = ClassProperties(
            cyclomatic_complexity=sum(self.complexity.cyclomatic(m) for m in method_nodes) or 1,
            cognitive_complexity=sum(self.complexity.cognitive(m) for m in method_nodes),
            lines_of_code=self.lines_of_code(outer),
            extends=extends,
            methods=methods,
            field_names=field_names,
            static_members=static_members,
            is_abstract="ABC" in base_names or "ABCMeta" in (metaclass or "") or has_abstract_method,
            **common,
        )
        return self.build_entity(name, NodeType.CLASS, file_path, outer, src, properties)

    def _variable_entity(self, node: Node, file_path: str, src: bytes,
                         public_names: Optional[Set[str]]) -> Optional[CodeEntity]:
        assignment = node.named_children[0] if node.named_children else None
        if assignment is None or assignment.type != "assignment":
            return None
        left = assignment.child_by_field_name("left")
        if left is None or left.type != "identifier":
            return None
        name = self.extract_node_text(left, src)

        properties = VariableProperties(
            qualified_name=self.qualified_name(file_path, name),
            is_exported=self._is_public(name, public_names),
            declared_type=self.field_text(assignment, "type", src) or "any",
            declaration_kind="assignment",
        )
        return self.build_entity(name, NodeType.VARIABLE, file_path, node, src, properties)

    def _outer_definition(self, node: Node) -> Node:
        parent = node.parent
        if parent is not None and parent.type == "decorated_definition":
            return parent
        return node

    def _owning_class(self, outer: Node) -> Optional[Node]:
        block = outer.parent
        if block is not None and block.type == "block" and block.parent is not None \
                and block.parent.type == "class_definition":
            return block.parent
        return None

    def _decorators(self, outer: Node, src: bytes) -> List[str]:
        if outer.type != "decorated_definition":
            return []
        names = []
        for child in outer.named_children:
            if child.type == "decorator":
                text = self.extract_node_text(child, src).lstrip("@").strip()
                names.append(text.split("(", 1)[0])
        return names

    def _bases(self, node: Node, src: bytes) -> Tuple[List[str], Optional[str]]:
        bases: List[str] = []
        metaclass = None
        superclasses = node.child_by_field_name("superclasses")
        for arg in superclasses.named_children if superclasses is not None else []:
            if arg.type == "keyword_argument":
                if self.field_text(arg, "name", src) == "metaclass":
                    metaclass = self.field_text(arg, "value", src)
            elif arg.type != "comment":
                bases.append(self.extract_node_text(arg, src))
        return bases, metaclass

    def _parameters(self, node: Node, src: bytes, skip_receiver: bool = False) -> List[ParameterInfo]:
        params = node.child_by_field_name("parameters")
        parameters = []
        for param in params.named_children if params is not None else []:
            if param.type in ("comment", "keyword_separator", "positional_separator"):
                continue
            annotation = self.field_text(param, "type", src)
            default = param.child_by_field_name("value")
            if param.type in ("default_parameter", "typed_default_parameter"):
                name = self.field_text(param, "name", src)
            elif param.type == "typed_parameter":
                name = self.extract_node_text(param.named_children[0], src)
            else:
                name = self.extract_node_text(param, src)
            parameters.append(ParameterInfo(
                name=name,
                type=annotation or "any",
                optional=default is not None,
                has_default=default is not None,
            ))

        if skip_receiver and parameters and parameters[0].name in IMPLICIT_RECEIVERS:
            parameters = parameters[1:]
        return parameters

    def _contains_yield(self, node: Optional[Node]) -> bool:
        if node is None:
            return False
        for child in node.named_children:
            if child.type in ("function_definition", "class_definition", "lambda"):
                continue
            if child.type == "yield" or self._contains_yield(child):
                return True
        return False

    def _body_docstring(self, body: Optional[Node], src: bytes) -> Optional[str]:
        if body is None:
            return None
        first = next((c for c in body.named_children if c.type != "comment"), None)
        if first is None or first.type != "expression_statement" or not first.named_children:
            return None
        literal = first.named_children[0]
        if literal.type != "string":
            return None
        return string_literal_value(self.extract_node_text(literal, src)) or None

    def _assignment_targets(self, statement: Node, src: bytes) -> List[str]:
        assignment = statement.named_children[0] if statement.named_children else None
        if assignment is None or assignment.type != "assignment":
            return []
        left = assignment.child_by_field_name("left")
        if left is None or left.type != "identifier":
            return []
        return [self.extract_node_text(left, src)]

    def _is_public(self, name: str, public_names: Optional[Set[str]]) -> bool:
        if public_names is not None:
            return name in public_names
        return not name.startswith("_")

    def _declared_all(self, root: Node, src: bytes) -> Optional[Set[str]]:
        """Names listed in a module-level ``__all__``, or None when there is none."""
        for statement in root.named_children:
            if statement.type != "expression_statement" or not statement.named_children:
                continue
            assignment = statement.named_children[0]
            if assignment.type != "assignment" or self.field_text(assignment, "left", src) != "__all__":
                continue
            value = assignment.child_by_field_name("right")
            if value is None or value.type not in ("list", "tuple"):
                return None
            return {
                string_literal_value(self.extract_node_text(item, src))
                for item in value.named_children if item.type == "string"
            }
        return None

    def _extract_imports(self, root: Node, src: bytes) -> List[ImportInfo]:
        imports = []
        for node in root.named_children:
            line = node.start_point[0] + 1
            if node.type == "import_statement":
                for name_node in node.children_by_field_name("name"):
                    if name_node.type == "aliased_import":
                        module = self.field_text(name_node, "name", src)
                        alias = self.field_text(name_node, "alias", src)
                    else:
                        module = self.extract_node_text(name_node, src)
                        alias = None
                    imports.append(ImportInfo(module=module, namespace=alias or module, line=line))
            elif node.type == "import_from_statement":
                module = self.field_text(node, "module_name", src)
                if not module:
                    continue
                specifiers = []
                for name_node in node.children_by_field_name("name"):
                    if name_node.type == "aliased_import":
                        specifiers.append(self.field_text(name_node, "name", src))
                    else:
                        specifiers.append(self.extract_node_text(name_node, src))
                if any(child.type == "wildcard_import" for child in node.named_children):
                    specifiers.append("*")
                imports.append(ImportInfo(module=module, specifiers=specifiers, line=line))
        return imports

    def _extract_exports(self, root: Node, src: bytes,
                         public_names: Optional[Set[str]]) -> List[ExportInfo]:
        if public_names is not None:
            return [ExportInfo(type="named", specifiers=sorted(public_names))]

        exports = []
        for node in root.named_children:
            definition = node.child_by_field_name("definition") if node.type == "decorated_definition" else node
            if definition is None:
                continue
            if definition.type in ("function_definition", "class_definition"):
                name = self.field_text(definition, "name", src)
                export_type = "function" if definition.type == "function_definition" else "class"
            elif definition.type == "expression_statement":
                targets = self._assignment_targets(definition, src)
                if not targets:
                    continue
                name, export_type = targets[0], "variable"
            else:
                continue
            if name and not name.startswith("_"):
                exports.append(ExportInfo(type=export_type, name=name))
        return exports
