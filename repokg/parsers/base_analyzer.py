"""
Base analyzer class for turning source files into code entities.
"""
import hashlib
import logging
import os
from abc import ABC, abstractmethod
from typing import Any, Dict, Iterator, List, Optional, Tuple

from tree_sitter import Language, Node, Parser, Tree

from repokg.analysis.patterns import PatternMatch, detect_patterns
from repokg.analysis.relationship_resolver import RelationshipResolver
from repokg.config import AnalysisConfig
from repokg.core.entities import (
    CodeEntity,
    EntityMetadata,
    ExportInfo,
    FileProperties,
    ImportInfo,
    LanguageType,
    NodeType,
    new_id,
)
from repokg.core.errors import ParseError
from repokg.core.relationships import CodeRelationship


def content_hash(text: str) -> str:
    """SHA-256 hex digest of a node's source text."""
    return hashlib.sha256(text.encode("utf-8")).hexdigest()


def count_lines(source: bytes) -> int:
    if not source:
        return 0
    return source.count(b"\n") + (0 if source.endswith(b"\n") else 1)


class LanguageAnalyzer(ABC):
    """
    Base class for per-language syntax analyzers.

    An analyzer parses one file at a time and returns the entities declared in
    it. Instances hold tree-sitter parsers and are not shared between threads;
    the orchestrator creates one per shard.
    """

    file_extensions: Tuple[str, ...] = ()

    def __init__(self, language: LanguageType, config: Optional[AnalysisConfig] = None):
        """
        Initialize the analyzer.

        Args:
            language: Language tag stamped on produced entities
            config: Optional analysis configuration
        """
        self.language = language
        self.config = config or AnalysisConfig()
        self.logger = logging.getLogger(f"{__name__}.{language.value}")
        self._parsers: Dict[str, Parser] = {}

    @abstractmethod
    def grammar_for(self, file_path: str) -> Tuple[str, Any]:
        """Return ``(grammar name, tree-sitter language capsule)`` for a file."""
        pass

    @abstractmethod
    def process_file(self, file_path: str, source_code: bytes, tree: Tree) -> List[CodeEntity]:
        """
        Extract entities from a parsed file.

        Args:
            file_path: Path to the file
            source_code: Raw source code bytes
            tree: Parsed tree-sitter tree without error nodes

        Returns:
            The File entity followed by one entity per declaration
        """
        pass

    @abstractmethod
    def resolve_module(self, importer_path: str, module: str) -> List[str]:
        """Candidate file paths an import specifier may refer to, most likely first."""
        pass

    def supports_file(self, file_path: str) -> bool:
        return os.path.splitext(file_path)[1].lower() in self.file_extensions

    def language_for(self, file_path: str) -> LanguageType:
        return self.language

    def get_parser(self, file_path: str) -> Parser:
        name, capsule = self.grammar_for(file_path)
        parser = self._parsers.get(name)
        if parser is None:
            parser = Parser(Language(capsule))
            self._parsers[name] = parser
        return parser

    def parse_source(self, source_code: bytes, file_path: str) -> Tree:
        return self.get_parser(file_path).parse(source_code)

    def analyze(self, file_path: str) -> List[CodeEntity]:
        """
        Parse a single file and return its entities.

        Raises:
            ParseError: If the file does not parse cleanly
            OSError: If the file cannot be read
        """
        with open(file_path, "rb") as f:
            source_code = f.read()

        tree = self.parse_source(source_code, file_path)
        if tree.root_node.has_error:
            line = self.first_error_line(tree.root_node)
            self.logger.warning(f"Syntax error in {file_path} near line {line}")
            raise ParseError(file_path, line=line)

        entities = self.process_file(file_path, source_code, tree)
        self.logger.debug(f"Extracted {len(entities)} entities from {file_path}")
        return entities

    def validate_syntax(self, content: str, file_path: Optional[str] = None) -> bool:
        """True when ``content`` parses without error nodes."""
        path = file_path or f"snippet{self.file_extensions[0]}"
        tree = self.parse_source(content.encode("utf-8"), path)
        return not tree.root_node.has_error

    def extract_relationships(self, entities: List[CodeEntity]) -> List[CodeRelationship]:
        return RelationshipResolver(self.resolve_module).resolve(entities)

    def calculate_complexity(self, entity: CodeEntity) -> int:
        """Cyclomatic complexity recorded for the entity (1 when not applicable)."""
        value = entity.cyclomatic_complexity
        if value is not None:
            return value
        if entity.type == NodeType.FILE:
            return max(1, round(entity.properties.average_complexity))
        return 1

    def detect_patterns(self, entities: List[CodeEntity]) -> List[PatternMatch]:
        return detect_patterns(entities)

    def first_error_line(self, root: Node) -> Optional[int]:
        for node in self.walk_tree(root):
            if node.type == "ERROR" or node.is_missing:
                return node.start_point[0] + 1
        return None

    def walk_tree(self, node: Node) -> Iterator[Node]:
        """
        Walk the syntax tree in depth-first order.

        Args:
            node: Current tree node

        Yields:
            Each node in the tree
        """
        yield node
        for child in node.children:
            yield from self.walk_tree(child)

    def extract_node_text(self, node: Optional[Node], source_code: bytes) -> str:
        """
        Extract the text for a given node from the source code.

        Args:
            node: Tree-sitter node
            source_code: Original source code bytes

        Returns:
            Text content of the node, empty for a missing node
        """
        if node is None:
            return ""
        return source_code[node.start_byte:node.end_byte].decode("utf-8", errors="replace")

    def field_text(self, node: Node, field: str, source_code: bytes) -> Optional[str]:
        child = node.child_by_field_name(field)
        if child is None:
            return None
        return self.extract_node_text(child, source_code)

    def has_keyword(self, node: Node, keyword: str) -> bool:
        """True when an anonymous child token equals ``keyword``."""
        return any(not child.is_named and child.type == keyword for child in node.children)

    def build_entity(self, name: str, node_type: NodeType, file_path: str, node: Node,
                     source_code: bytes, properties: Any) -> CodeEntity:
        text = self.extract_node_text(node, source_code)
        return CodeEntity(
            id=new_id(),
            name=name,
            type=node_type,
            language=self.language_for(file_path),
            file_path=file_path,
            start_line=node.start_point[0] + 1,
            end_line=node.end_point[0] + 1,
            properties=properties,
            metadata=EntityMetadata(hash=content_hash(text)),
        )

    def build_file_entity(self, file_path: str, source_code: bytes, declarations: List[CodeEntity],
                          imports: List[ImportInfo], exports: List[ExportInfo],
                          docstring: Optional[str] = None) -> CodeEntity:
        """The File entity, averaging the cyclomatic complexity of its declarations."""
        scores = [e.cyclomatic_complexity for e in declarations if e.cyclomatic_complexity is not None]
        average = round(sum(scores) / len(scores), 2) if scores else 0.0
        line_count = count_lines(source_code)

        properties = FileProperties(
            qualified_name=file_path,
            extension=os.path.splitext(file_path)[1].lower(),
            line_count=line_count,
            average_complexity=average,
            imports=imports,
            exports=exports,
            docstring=docstring,
        )
        return CodeEntity(
            id=new_id(),
            name=os.path.basename(file_path),
            type=NodeType.FILE,
            language=self.language_for(file_path),
            file_path=file_path,
            start_line=1,
            end_line=max(1, line_count),
            properties=properties,
            metadata=EntityMetadata(
                hash=content_hash(source_code.decode("utf-8", errors="replace"))
            ),
        )

    def qualified_name(self, file_path: str, name: str, parent: Optional[str] = None) -> str:
        if parent:
            return f"{file_path}::{parent}.{name}"
        return f"{file_path}::{name}"

    def lines_of_code(self, node: Node) -> int:
        return node.end_point[0] - node.start_point[0] + 1
