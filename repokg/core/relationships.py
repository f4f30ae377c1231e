"""
Core relationships for the code knowledge graph.
"""
from datetime import datetime
from enum import Enum
from typing import Any, Dict, FrozenSet

from pydantic import BaseModel, Field

from .entities import new_id, utc_now


class RelationshipType(str, Enum):
    """Directed edge types between entities."""

    IMPORTS = "IMPORTS"
    EXPORTS = "EXPORTS"
    CALLS = "CALLS"
    INHERITS = "INHERITS"
    IMPLEMENTS = "IMPLEMENTS"
    CONTAINS = "CONTAINS"
    DEPENDS_ON = "DEPENDS_ON"
    USES = "USES"


class DetectionMethod(str, Enum):
    """How an edge was found, ordered by reliability."""

    STATIC = "static"
    HEURISTIC = "heuristic"
    AI = "ai"


# Relationship types that describe a structural dependency. Only these take
# part in cycle detection.
CYCLE_RELATIONSHIP_TYPES: FrozenSet[RelationshipType] = frozenset({
    RelationshipType.DEPENDS_ON,
    RelationshipType.IMPORTS,
})


class RelationshipMetadata(BaseModel):
    created_at: datetime = Field(default_factory=utc_now)
    detection_method: DetectionMethod = DetectionMethod.STATIC


class CodeRelationship(BaseModel):
    """A typed, directed edge between two entities of the same graph."""

    id: str = Field(default_factory=new_id)
    source_id: str
    target_id: str
    type: RelationshipType
    strength: float = Field(default=1.0, ge=0.0, le=1.0)
    confidence: float = Field(default=1.0, ge=0.0, le=1.0)
    properties: Dict[str, Any] = Field(default_factory=dict)
    metadata: RelationshipMetadata = Field(default_factory=RelationshipMetadata)

    @property
    def detection_method(self) -> DetectionMethod:
        return self.metadata.detection_method

    @property
    def is_resolved(self) -> bool:
        """False when the target is a placeholder id with no backing entity."""
        return self.properties.get("resolved", True)

    def __str__(self) -> str:
        return f"{self.type.value}(source={self.source_id}, target={self.target_id})"
