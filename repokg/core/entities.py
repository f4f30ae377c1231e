"""
Core entities for the code knowledge graph.

Each ``CodeEntity`` carries a ``properties`` payload whose shape depends on the
entity type. The payload is a tagged union keyed by ``kind`` so that a File
never grows function-only keys and vice versa; anything that does not fit a
known shape goes into ``CodeEntity.extra``.
"""
from datetime import datetime, timezone
from enum import Enum
from typing import Annotated, Any, Dict, List, Literal, Optional, Union
import uuid

from pydantic import BaseModel, Field, model_validator


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def new_id() -> str:
    """Generate a unique ID for a graph element."""
    return str(uuid.uuid4())


class NodeType(str, Enum):
    """Closed set of entity types produced by the analyzers."""

    FILE = "File"
    FUNCTION = "Function"
    CLASS = "Class"
    INTERFACE = "Interface"
    VARIABLE = "Variable"
    COMPONENT = "Component"
    HOOK = "Hook"


class LanguageType(str, Enum):
    """Language tags understood by the analyzer registry."""

    TYPESCRIPT = "typescript"
    JAVASCRIPT = "javascript"
    PYTHON = "python"


class ParameterInfo(BaseModel):
    """One declared parameter of a callable."""

    name: str
    type: str = "any"
    optional: bool = False
    has_default: bool = False


class ImportInfo(BaseModel):
    """One file-level import statement."""

    module: str
    specifiers: List[str] = Field(default_factory=list)
    default: Optional[str] = None
    namespace: Optional[str] = None
    line: int = 1


class ExportInfo(BaseModel):
    """One exported name (or re-export clause) of a file."""

    type: str  # function, class, interface, variable, named, default
    name: Optional[str] = None
    module: Optional[str] = None
    specifiers: List[str] = Field(default_factory=list)


class _DeclarationProperties(BaseModel):
    qualified_name: str
    docstring: Optional[str] = None
    is_exported: bool = False


class _ComplexityProperties(_DeclarationProperties):
    cyclomatic_complexity: int = 1
    cognitive_complexity: int = 0
    lines_of_code: int = 1


class FileProperties(BaseModel):
    """File-level aggregates."""

    kind: Literal["file"] = "file"
    qualified_name: str
    extension: str = ""
    line_count: int = 0
    average_complexity: float = 0.0
    imports: List[ImportInfo] = Field(default_factory=list)
    exports: List[ExportInfo] = Field(default_factory=list)
    docstring: Optional[str] = None


class FunctionProperties(_ComplexityProperties):
    kind: Literal["function"] = "function"
    parameters: List[ParameterInfo] = Field(default_factory=list)
    return_type: Optional[str] = None
    is_async: bool = False
    is_method: bool = False
    is_static: bool = False
    is_abstract: bool = False
    is_arrow: bool = False
    is_generator: bool = False
    parent_class: Optional[str] = None


class ClassProperties(_ComplexityProperties):
    kind: Literal["class"] = "class"
    extends: List[str] = Field(default_factory=list)
    implements: List[str] = Field(default_factory=list)
    methods: List[str] = Field(default_factory=list)
    field_names: List[str] = Field(default_factory=list)
    static_members: List[str] = Field(default_factory=list)
    has_private_constructor: bool = False
    is_abstract: bool = False


class InterfaceProperties(_DeclarationProperties):
    kind: Literal["interface"] = "interface"
    extends: List[str] = Field(default_factory=list)
    members: List[str] = Field(default_factory=list)


class VariableProperties(_DeclarationProperties):
    kind: Literal["variable"] = "variable"
    declared_type: str = "any"
    declaration_kind: str = "const"


class ComponentProperties(_ComplexityProperties):
    kind: Literal["component"] = "component"
    component_type: Literal["functional", "class"] = "functional"
    parameters: List[ParameterInfo] = Field(default_factory=list)
    has_props: bool = False
    has_state: bool = False
    has_effects: bool = False
    has_lifecycle_methods: bool = False
    extends: List[str] = Field(default_factory=list)
    implements: List[str] = Field(default_factory=list)
    methods: List[str] = Field(default_factory=list)


class HookProperties(_ComplexityProperties):
    kind: Literal["hook"] = "hook"
    hook_type: str = "custom"
    dependencies: List[str] = Field(default_factory=list)
    parameters: List[ParameterInfo] = Field(default_factory=list)
    is_async: bool = False


EntityProperties = Annotated[
    Union[
        FileProperties,
        FunctionProperties,
        ClassProperties,
        InterfaceProperties,
        VariableProperties,
        ComponentProperties,
        HookProperties,
    ],
    Field(discriminator="kind"),
]


class EntityMetadata(BaseModel):
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)
    version: str = "1.0"
    hash: str = ""


class CodeEntity(BaseModel):
    """One discovered program element."""

    id: str = Field(default_factory=new_id)
    name: str
    type: NodeType
    language: LanguageType
    file_path: str
    start_line: int = Field(ge=1)
    end_line: int = Field(ge=1)
    properties: EntityProperties
    extra: Dict[str, Any] = Field(default_factory=dict)
    metadata: EntityMetadata = Field(default_factory=EntityMetadata)

    @model_validator(mode="after")
    def _check_line_span(self) -> "CodeEntity":
        if self.end_line < self.start_line:
            raise ValueError(
                f"end_line ({self.end_line}) precedes start_line ({self.start_line}) for {self.name}"
            )
        return self

    @property
    def cyclomatic_complexity(self) -> Optional[int]:
        return getattr(self.properties, "cyclomatic_complexity", None)

    @property
    def cognitive_complexity(self) -> Optional[int]:
        return getattr(self.properties, "cognitive_complexity", None)

    def __str__(self) -> str:
        return f"{self.type.value}(name={self.name}, file={self.file_path}:{self.start_line})"
