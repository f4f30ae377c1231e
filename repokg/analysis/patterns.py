"""
Heuristic design-pattern detection over analyzed entities.
"""
from typing import Iterable, List

from pydantic import BaseModel, Field

from repokg.core.entities import ClassProperties, CodeEntity, NodeType

_INSTANCE_MEMBERS = {"instance", "_instance", "__instance", "INSTANCE"}
_INSTANCE_ACCESSORS = {"getInstance", "get_instance", "instance"}
_FACTORY_WORDS = ("factory", "create", "build", "make")


class PatternMatch(BaseModel):
    """A suspected use of a design pattern by one entity."""

    pattern: str
    entity_id: str
    entity_name: str
    confidence: float = Field(ge=0.0, le=1.0)
    indicators: List[str] = Field(default_factory=list)


def detect_singletons(entities: Iterable[CodeEntity]) -> List[PatternMatch]:
    """Classes with a private constructor, a static instance slot or an instance accessor."""
    matches = []
    for entity in entities:
        props = entity.properties
        if not isinstance(props, ClassProperties):
            continue

        indicators = []
        if props.has_private_constructor:
            indicators.append("private constructor")
        if _INSTANCE_MEMBERS.intersection(props.static_members) or \
                _INSTANCE_MEMBERS.intersection(props.field_names):
            indicators.append("static instance")
        if _INSTANCE_ACCESSORS.intersection(props.methods):
            indicators.append("instance accessor")
        if "__new__" in props.methods:
            indicators.append("__new__ override")

        if indicators:
            matches.append(PatternMatch(
                pattern="singleton",
                entity_id=entity.id,
                entity_name=entity.name,
                confidence=0.8 if len(indicators) >= 2 else 0.5,
                indicators=indicators,
            ))
    return matches


def detect_factories(entities: Iterable[CodeEntity]) -> List[PatternMatch]:
    """Functions and classes whose name marks them as object factories."""
    matches = []
    for entity in entities:
        if entity.type not in (NodeType.FUNCTION, NodeType.CLASS):
            continue
        lowered = entity.name.lower()
        words = [word for word in _FACTORY_WORDS if word in lowered]
        if not words:
            continue
        matches.append(PatternMatch(
            pattern="factory",
            entity_id=entity.id,
            entity_name=entity.name,
            confidence=0.7 if "factory" in words else 0.4,
            indicators=[f"name contains '{word}'" for word in words],
        ))
    return matches


def detect_patterns(entities: Iterable[CodeEntity]) -> List[PatternMatch]:
    entities = list(entities)
    return detect_singletons(entities) + detect_factories(entities)
