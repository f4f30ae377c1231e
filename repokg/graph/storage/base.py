"""
Base storage interface for the code graph.

This module provides the base protocol and abstract class for graph database
backends. Every stored element carries a ``graph_id`` so that several analysis
runs can share one database without seeing each other's data.
"""
from enum import Enum
from typing import Any, Dict, Iterator, List, Optional, Protocol, Sequence, TypeVar, runtime_checkable
import abc
import json
import logging

from repokg.core.entities import CodeEntity
from repokg.core.errors import PersistenceError, ValidationError
from repokg.core.relationships import (
    CodeRelationship,
    DetectionMethod,
    RelationshipMetadata,
    RelationshipType,
)

T = TypeVar("T")

MIN_CYCLE_LENGTH = 2
MAX_CYCLE_LENGTH = 10


class Direction(str, Enum):
    INCOMING = "incoming"
    OUTGOING = "outgoing"
    BOTH = "both"


@runtime_checkable
class GraphStorageInterface(Protocol):
    """Protocol defining the interface for graph storage."""

    def connect(self) -> bool:
        """
        Connect to the database.

        Returns:
            True if the connection is usable

        Raises:
            PersistenceError: If the backend cannot be reached
        """
        ...

    def close(self) -> None:
        """Close the database connection."""
        ...

    def create_schema(self) -> None:
        """Create constraints and indexes."""
        ...

    def execute_query(self, query: str, params: Optional[Dict[str, Any]] = None) -> List[Dict[str, Any]]:
        """
        Execute a query against the database.

        Args:
            query: The query string (Cypher)
            params: Optional parameters for the query

        Returns:
            List of result records as dictionaries
        """
        ...

    def store_entities(self, entities: Sequence[CodeEntity], graph_id: str) -> int:
        """Write entities in batches; returns the number written."""
        ...

    def store_relationships(self, relationships: Sequence[CodeRelationship], graph_id: str) -> int:
        """Write relationships in batches; returns the number written."""
        ...

    def search_entities(self, term: str, graph_id: str, limit: int = 10) -> List[CodeEntity]:
        ...

    def find_dependencies(self, entity_id: str,
                          direction: str = "outgoing") -> List[CodeRelationship]:
        ...

    def find_circular_dependencies(self, graph_id: str, max_cycles: int = 10) -> List[List[str]]:
        ...

    def get_graph_statistics(self, graph_id: str) -> Dict[str, Any]:
        ...

    def delete_graph(self, graph_id: str) -> int:
        ...


def entity_to_record(entity: CodeEntity, graph_id: str) -> Dict[str, Any]:
    """
    Flatten an entity into a property map.

    Scalar properties (and lists of scalars) are stored as top-level keys so
    they can be queried directly; the full entity is kept as JSON so it can be
    rebuilt without loss.
    """
    record: Dict[str, Any] = {}
    for key, value in entity.properties.model_dump(mode="json").items():
        if _is_property_value(value):
            record[key] = value
    record.update({
        "id": entity.id,
        "name": entity.name,
        "type": entity.type.value,
        "language": entity.language.value,
        "file_path": entity.file_path,
        "start_line": entity.start_line,
        "end_line": entity.end_line,
        "graph_id": graph_id,
        "created_at": entity.metadata.created_at.isoformat(),
        "updated_at": entity.metadata.updated_at.isoformat(),
        "version": entity.metadata.version,
        "hash": entity.metadata.hash,
        "entity_json": entity.model_dump_json(),
    })
    return record


def record_to_entity(record: Dict[str, Any]) -> CodeEntity:
    return CodeEntity.model_validate_json(record["entity_json"])


def relationship_to_record(relationship: CodeRelationship, graph_id: str) -> Dict[str, Any]:
    return {
        "id": relationship.id,
        "source_id": relationship.source_id,
        "target_id": relationship.target_id,
        "type": relationship.type.value,
        "strength": relationship.strength,
        "confidence": relationship.confidence,
        "graph_id": graph_id,
        "created_at": relationship.metadata.created_at.isoformat(),
        "detection_method": relationship.metadata.detection_method.value,
        "properties_json": json.dumps(relationship.properties),
    }


def record_to_relationship(record: Dict[str, Any]) -> CodeRelationship:
    return CodeRelationship(
        id=record["id"],
        source_id=record["source_id"],
        target_id=record["target_id"],
        type=RelationshipType(record["type"]),
        strength=record.get("strength", 1.0),
        confidence=record.get("confidence", 1.0),
        properties=json.loads(record.get("properties_json") or "{}"),
        metadata=RelationshipMetadata(
            created_at=record["created_at"],
            detection_method=DetectionMethod(record.get("detection_method", "static")),
        ),
    )


def _is_property_value(value: Any) -> bool:
    scalar = (str, int, float, bool)
    if value is None:
        return False
    if isinstance(value, scalar):
        return True
    return isinstance(value, list) and all(isinstance(item, scalar) for item in value)


class BaseGraphStorage(abc.ABC):
    """
    Abstract base class for graph storage implementations.

    ``store_entities`` and ``store_relationships`` implement the batch
    protocol once; backends only write a single batch atomically.
    """

    def __init__(self, batch_size: int = 1000, slow_query_threshold_ms: int = 1000, **kwargs: Any):
        """
        Initialize the storage.

        Args:
            batch_size: Maximum number of elements written per transaction
            slow_query_threshold_ms: Queries slower than this are logged as warnings
            **kwargs: Additional implementation-specific arguments
        """
        if batch_size < 1:
            raise ValidationError(f"batch_size must be positive, got {batch_size}")
        self.batch_size = batch_size
        self.slow_query_threshold_ms = slow_query_threshold_ms
        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")
        self.is_connected = False

    @abc.abstractmethod
    def connect(self) -> bool:
        """Connect to the database."""
        pass

    @abc.abstractmethod
    def close(self) -> None:
        """Close the database connection."""
        pass

    @abc.abstractmethod
    def verify_connectivity(self) -> bool:
        """True when the backend answers a trivial request."""
        pass

    @abc.abstractmethod
    def create_schema(self) -> None:
        """Create constraints and indexes."""
        pass

    @abc.abstractmethod
    def execute_query(self, query: str, params: Optional[Dict[str, Any]] = None) -> List[Dict[str, Any]]:
        """Execute a query against the database."""
        pass

    @abc.abstractmethod
    def _write_entity_batch(self, batch: List[CodeEntity], graph_id: str) -> int:
        """Write one batch atomically or raise PersistenceError."""
        pass

    @abc.abstractmethod
    def _write_relationship_batch(self, batch: List[CodeRelationship], graph_id: str) -> int:
        """Write one batch atomically; every endpoint must exist in ``graph_id``."""
        pass

    @abc.abstractmethod
    def get_entity(self, entity_id: str, graph_id: Optional[str] = None) -> Optional[CodeEntity]:
        pass

    @abc.abstractmethod
    def search_entities(self, term: str, graph_id: str, limit: int = 10) -> List[CodeEntity]:
        """Entities of one graph matching ``term`` by name, qualified name or docstring."""
        pass

    @abc.abstractmethod
    def _relationships_for(self, entity_id: str, direction: Direction) -> List[CodeRelationship]:
        pass

    @abc.abstractmethod
    def _find_cycles(self, graph_id: str, max_cycles: int) -> List[List[str]]:
        pass

    @abc.abstractmethod
    def get_graph_statistics(self, graph_id: str) -> Dict[str, Any]:
        """
        Summary counts for one graph.

        Returns:
            Dictionary with total_nodes, total_relationships, node_types,
            relationship_types, languages, avg_complexity and max_complexity

        Raises:
            NotFoundError: If the graph holds no entities
        """
        pass

    @abc.abstractmethod
    def delete_graph(self, graph_id: str) -> int:
        """Remove every node and edge of a graph; returns the number of nodes removed."""
        pass

    def store_entities(self, entities: Sequence[CodeEntity], graph_id: str) -> int:
        """
        Persist entities under a graph id.

        Args:
            entities: Entities to write
            graph_id: Target graph partition

        Returns:
            Number of entities written

        Raises:
            PersistenceError: On a duplicate id or a failed batch; batches
                already written stay written
        """
        self._require_graph_id(graph_id)
        entities = list(entities)
        ids = [entity.id for entity in entities]
        if len(set(ids)) != len(ids):
            raise PersistenceError(f"Duplicate entity ids in input for graph {graph_id}")

        stored = 0
        for index, batch in enumerate(self._batches(entities), start=1):
            stored += self._run_batch("entity", index, graph_id, self._write_entity_batch, batch)
        self.logger.info(f"Stored {stored} entities in graph {graph_id}")
        return stored

    def store_relationships(self, relationships: Sequence[CodeRelationship], graph_id: str) -> int:
        """
        Persist relationships under a graph id.

        Edges whose target could not be resolved to a real entity are skipped.

        Raises:
            PersistenceError: If an endpoint is missing or a batch fails
        """
        self._require_graph_id(graph_id)
        relationships = list(relationships)
        persistable = [rel for rel in relationships if rel.is_resolved]
        skipped = len(relationships) - len(persistable)
        if skipped:
            self.logger.info(f"Skipping {skipped} relationships with unresolved targets")

        stored = 0
        for index, batch in enumerate(self._batches(persistable), start=1):
            stored += self._run_batch("relationship", index, graph_id, self._write_relationship_batch, batch)
        self.logger.info(f"Stored {stored} relationships in graph {graph_id}")
        return stored

    def find_dependencies(self, entity_id: str,
                          direction: str = "outgoing") -> List[CodeRelationship]:
        """
        Relationships touching an entity.

        Args:
            entity_id: Entity to inspect
            direction: ``incoming``, ``outgoing`` or ``both``

        Raises:
            ValidationError: For an unknown direction
            NotFoundError: If the entity does not exist
        """
        try:
            resolved_direction = Direction(direction)
        except ValueError:
            raise ValidationError(f"Unknown direction: {direction}") from None
        return self._relationships_for(entity_id, resolved_direction)

    def find_circular_dependencies(self, graph_id: str, max_cycles: int = 10) -> List[List[str]]:
        """
        Dependency cycles of length 2 to 10 over DEPENDS_ON and IMPORTS edges.

        Each cycle is reported as entity names with the start repeated at the end.
        """
        if max_cycles < 1:
            raise ValidationError(f"max_cycles must be positive, got {max_cycles}")
        return self._find_cycles(graph_id, max_cycles)

    def get_health_status(self) -> Dict[str, Any]:
        try:
            healthy = self.verify_connectivity()
            return {"status": "healthy" if healthy else "unhealthy", "backend": self.__class__.__name__}
        except PersistenceError as e:
            return {"status": "unhealthy", "backend": self.__class__.__name__, "error": str(e)}

    def _run_batch(self, kind: str, index: int, graph_id: str, writer, batch: List[T]) -> int:
        try:
            written = writer(batch, graph_id)
        except PersistenceError:
            self.logger.error(f"Failed to store {kind} batch {index} for graph {graph_id}")
            raise
        except Exception as e:
            self.logger.error(f"Failed to store {kind} batch {index} for graph {graph_id}: {e}")
            raise PersistenceError(f"Failed to store {kind} batch {index}: {e}",
                                   parameters={"graph_id": graph_id}) from e
        self.logger.debug(f"Stored {kind} batch {index} ({written} items)")
        return written

    def _batches(self, items: List[T]) -> Iterator[List[T]]:
        for start in range(0, len(items), self.batch_size):
            yield items[start:start + self.batch_size]

    def _require_graph_id(self, graph_id: str) -> None:
        if not graph_id:
            raise ValidationError("graph_id must not be empty")
