"""
Batch-wide relationship extraction.

Relationships are derived from facts the analyzers record on each entity:
heritage lists on classes and interfaces, and import statements on files.
Every name is resolved against the whole batch so edges point at real entity
ids wherever possible.
"""
import logging
import os
import re
from collections import defaultdict
from typing import Callable, Dict, Iterable, List, Optional, Tuple

from repokg.core.entities import CodeEntity, FileProperties, NodeType, new_id
from repokg.core.relationships import (
    CodeRelationship,
    DetectionMethod,
    RelationshipMetadata,
    RelationshipType,
)

# (importer path, module specifier) -> candidate file paths, most specific first
ModuleResolver = Callable[[str, str], List[str]]

# resolution outcome -> (detection method, strength, confidence)
RESOLUTION_TABLE: Dict[str, Tuple[DetectionMethod, float, float]] = {
    "structural": (DetectionMethod.STATIC, 1.0, 1.0),
    "unique": (DetectionMethod.STATIC, 1.0, 0.9),
    "ambiguous": (DetectionMethod.HEURISTIC, 0.8, 0.6),
    "unresolved": (DetectionMethod.HEURISTIC, 0.5, 0.3),
}

_TYPE_TARGETS = (NodeType.CLASS, NodeType.INTERFACE, NodeType.COMPONENT)
_GENERIC_SUFFIX = re.compile(r"[<\[].*$", re.DOTALL)


def simple_type_name(name: str) -> str:
    """``React.Component<P>`` -> ``Component``; ``Generic[T]`` -> ``Generic``."""
    name = _GENERIC_SUFFIX.sub("", name.strip())
    return name.rsplit(".", 1)[-1].strip()


def normalize_path(path: str) -> str:
    return os.path.normpath(path).replace(os.sep, "/")


class RelationshipResolver:
    """
    Derives CONTAINS, INHERITS, IMPLEMENTS and IMPORTS edges for one batch.

    The result does not depend on the order of the input entities: ambiguous
    names are broken by file path and line, never by list position.
    """

    def __init__(self, module_resolver: Optional[ModuleResolver] = None):
        self.module_resolver = module_resolver
        self.logger = logging.getLogger(__name__)

    def resolve(self, entities: Iterable[CodeEntity]) -> List[CodeRelationship]:
        entities = list(entities)
        files_by_path: Dict[str, List[CodeEntity]] = defaultdict(list)
        types_by_name: Dict[str, List[CodeEntity]] = defaultdict(list)

        for entity in entities:
            if entity.type == NodeType.FILE:
                files_by_path[normalize_path(entity.file_path)].append(entity)
            elif entity.type in _TYPE_TARGETS:
                types_by_name[entity.name].append(entity)

        for path, files in files_by_path.items():
            if len(files) > 1:
                self.logger.warning(f"{len(files)} File entities share path {path}; "
                                    f"no containment or import edges for it")

        relationships: List[CodeRelationship] = []
        relationships.extend(self._containment(entities, files_by_path))
        relationships.extend(self._heritage(entities, types_by_name))
        relationships.extend(self._imports(entities, files_by_path))
        relationships.extend(self._calls(entities))

        self.logger.debug(f"Resolved {len(relationships)} relationships for {len(entities)} entities")
        return relationships

    def _containment(self, entities: List[CodeEntity],
                     files_by_path: Dict[str, List[CodeEntity]]) -> List[CodeRelationship]:
        relationships = []
        for entity in entities:
            if entity.type == NodeType.FILE:
                continue
            files = files_by_path.get(normalize_path(entity.file_path), [])
            if len(files) != 1:
                continue
            relationships.append(self._edge(
                files[0].id, entity.id, RelationshipType.CONTAINS, "structural",
                {"target_name": entity.name},
            ))
        return relationships

    def _heritage(self, entities: List[CodeEntity],
                  types_by_name: Dict[str, List[CodeEntity]]) -> List[CodeRelationship]:
        relationships = []
        for entity in entities:
            props = entity.properties
            heritage = [(RelationshipType.INHERITS, name) for name in getattr(props, "extends", [])]
            heritage += [(RelationshipType.IMPLEMENTS, name) for name in getattr(props, "implements", [])]

            for rel_type, raw_name in heritage:
                name = simple_type_name(raw_name)
                if not name:
                    continue
                candidates = [c for c in types_by_name.get(name, []) if c.id != entity.id]
                relationships.append(self._named_edge(entity, candidates, rel_type, raw_name))
        return relationships

    def _named_edge(self, source: CodeEntity, candidates: List[CodeEntity],
                    rel_type: RelationshipType, target_name: str) -> CodeRelationship:
        properties = {"target_name": target_name}
        if not candidates:
            properties["resolved"] = False
            return self._edge(source.id, new_id(), rel_type, "unresolved", properties)

        if len(candidates) == 1:
            return self._edge(source.id, candidates[0].id, rel_type, "unique", properties)

        same_file = [c for c in candidates if c.file_path == source.file_path]
        pool = same_file or candidates
        target = min(pool, key=lambda c: (c.file_path, c.start_line, c.id))
        properties["candidates"] = len(candidates)
        return self._edge(source.id, target.id, rel_type, "ambiguous", properties)

    def _imports(self, entities: List[CodeEntity],
                 files_by_path: Dict[str, List[CodeEntity]]) -> List[CodeRelationship]:
        relationships = []
        for entity in entities:
            props = entity.properties
            if not isinstance(props, FileProperties):
                continue

            for info in props.imports:
                properties = {
                    "target_name": info.module,
                    "specifiers": list(info.specifiers),
                    "line": info.line,
                }
                target = self._resolve_module(entity.file_path, info.module, files_by_path)
                if target is None:
                    properties["resolved"] = False
                    properties["external"] = not info.module.startswith(".")
                    relationships.append(self._edge(
                        entity.id, new_id(), RelationshipType.IMPORTS, "unresolved", properties,
                    ))
                elif target.id != entity.id:
                    relationships.append(self._edge(
                        entity.id, target.id, RelationshipType.IMPORTS, "unique", properties,
                    ))
        return relationships

    def _resolve_module(self, importer: str, module: str,
                        files_by_path: Dict[str, List[CodeEntity]]) -> Optional[CodeEntity]:
        if self.module_resolver is None:
            return None
        for candidate in self.module_resolver(importer, module):
            files = files_by_path.get(normalize_path(candidate), [])
            if len(files) == 1:
                return files[0]
        return None

    def _calls(self, entities: List[CodeEntity]) -> List[CodeRelationship]:
        # Call targets need semantic resolution across files; not extracted.
        return []

    def _edge(self, source_id: str, target_id: str, rel_type: RelationshipType,
              outcome: str, properties: Dict) -> CodeRelationship:
        method, strength, confidence = RESOLUTION_TABLE[outcome]
        return CodeRelationship(
            source_id=source_id,
            target_id=target_id,
            type=rel_type,
            strength=strength,
            confidence=confidence,
            properties=properties,
            metadata=RelationshipMetadata(detection_method=method),
        )
