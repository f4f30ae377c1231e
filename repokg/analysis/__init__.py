"""
Batch-level analysis: relationship resolution, metrics and pattern detection.
"""
from .metrics import CodeMetrics, complexity_bucket
from .patterns import PatternMatch, detect_factories, detect_patterns, detect_singletons
from .relationship_resolver import ModuleResolver, RelationshipResolver

__all__ = [
    "CodeMetrics",
    "complexity_bucket",
    "PatternMatch",
    "detect_factories",
    "detect_patterns",
    "detect_singletons",
    "ModuleResolver",
    "RelationshipResolver",
]
