"""
Core module for repokg entities, relationships and jobs.
"""

from .entities import (
    CodeEntity,
    NodeType,
    LanguageType,
    EntityMetadata,
    ParameterInfo,
    ImportInfo,
    ExportInfo,
    FileProperties,
    FunctionProperties,
    ClassProperties,
    InterfaceProperties,
    VariableProperties,
    ComponentProperties,
    HookProperties,
    new_id,
)
from .relationships import (
    CodeRelationship,
    RelationshipType,
    RelationshipMetadata,
    DetectionMethod,
    CYCLE_RELATIONSHIP_TYPES,
)
from .jobs import (
    AnalysisJob,
    AnalysisRequest,
    AnalysisResult,
    AnalysisSummary,
    ComplexityMetrics,
    JobMetadata,
    JobStatus,
    QualityMetrics,
)
from .errors import (
    CodeGraphError,
    ParseError,
    UnsupportedLanguageError,
    AcquisitionError,
    PersistenceError,
    ValidationError,
    NotFoundError,
    JobStateError,
)

__all__ = [
    "CodeEntity",
    "NodeType",
    "LanguageType",
    "EntityMetadata",
    "ParameterInfo",
    "ImportInfo",
    "ExportInfo",
    "FileProperties",
    "FunctionProperties",
    "ClassProperties",
    "InterfaceProperties",
    "VariableProperties",
    "ComponentProperties",
    "HookProperties",
    "new_id",
    "CodeRelationship",
    "RelationshipType",
    "RelationshipMetadata",
    "DetectionMethod",
    "CYCLE_RELATIONSHIP_TYPES",
    "AnalysisJob",
    "AnalysisRequest",
    "AnalysisResult",
    "AnalysisSummary",
    "ComplexityMetrics",
    "JobMetadata",
    "JobStatus",
    "QualityMetrics",
    "CodeGraphError",
    "ParseError",
    "UnsupportedLanguageError",
    "AcquisitionError",
    "PersistenceError",
    "ValidationError",
    "NotFoundError",
    "JobStateError",
]
