"""
Quality metrics for a finished analysis batch.
"""
from collections import Counter
from typing import List
import logging

from repokg.core.entities import CodeEntity, NodeType
from repokg.core.jobs import ComplexityMetrics, QualityMetrics
from repokg.core.relationships import CodeRelationship

logger = logging.getLogger(__name__)

LOW_COMPLEXITY_LIMIT = 5
MEDIUM_COMPLEXITY_LIMIT = 10


def complexity_bucket(value: int) -> str:
    if value <= LOW_COMPLEXITY_LIMIT:
        return "low"
    if value <= MEDIUM_COMPLEXITY_LIMIT:
        return "medium"
    return "high"


class CodeMetrics:
    """
    Calculates complexity and count metrics from entities and relationships.
    """

    def __init__(self, function_complexity_threshold: int = 10, class_complexity_threshold: int = 20):
        """
        Initialize the metrics calculator.

        Args:
            function_complexity_threshold: Cyclomatic complexity above which a
                function, component or hook is flagged for insights
            class_complexity_threshold: Same, for classes
        """
        self.function_complexity_threshold = function_complexity_threshold
        self.class_complexity_threshold = class_complexity_threshold
        self.logger = logging.getLogger(__name__)

    def calculate(self, entities: List[CodeEntity],
                  relationships: List[CodeRelationship]) -> QualityMetrics:
        scored = [e for e in entities if e.cyclomatic_complexity is not None]
        cyclomatic = [e.cyclomatic_complexity for e in scored]
        cognitive = [e.cognitive_complexity or 0 for e in scored]

        complexity = ComplexityMetrics()
        if scored:
            complexity = ComplexityMetrics(
                average_cyclomatic_complexity=round(sum(cyclomatic) / len(cyclomatic), 2),
                max_cyclomatic_complexity=max(cyclomatic),
                average_cognitive_complexity=round(sum(cognitive) / len(cognitive), 2),
                max_cognitive_complexity=max(cognitive),
                complexity_distribution=dict(Counter(complexity_bucket(v) for v in cyclomatic)),
            )

        counts = Counter(e.type.value for e in entities)
        counts["relationships"] = len(relationships)

        return QualityMetrics(
            complexity=complexity,
            counts=dict(counts),
            insight_targets=self.insight_targets(scored),
        )

    def insight_targets(self, entities: List[CodeEntity]) -> List[str]:
        """Ids of entities complex enough to deserve a closer look."""
        targets = []
        for entity in entities:
            threshold = (self.class_complexity_threshold if entity.type == NodeType.CLASS
                         else self.function_complexity_threshold)
            if entity.cyclomatic_complexity > threshold:
                targets.append(entity.id)
        if targets:
            self.logger.info(f"{len(targets)} entities exceed their complexity threshold")
        return targets
