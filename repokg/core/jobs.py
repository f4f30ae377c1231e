"""
Analysis job value objects.

An ``AnalysisJob`` tracks one end-to-end pipeline run. Its status only ever
moves forward and its progress never decreases; both rules are enforced here
so the orchestrator cannot violate them by accident.
"""
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator

from .entities import CodeEntity, LanguageType, new_id, utc_now
from .errors import JobStateError
from .relationships import CodeRelationship


class JobStatus(str, Enum):
    """Job status states."""

    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


TERMINAL_STATUSES = frozenset({JobStatus.COMPLETED, JobStatus.FAILED, JobStatus.CANCELLED})

_ALLOWED_TRANSITIONS = {
    JobStatus.PENDING: frozenset({JobStatus.RUNNING, JobStatus.CANCELLED}),
    JobStatus.RUNNING: frozenset({JobStatus.COMPLETED, JobStatus.FAILED}),
}


class AnalysisRequest(BaseModel):
    """Caller input for a new analysis job, validated before enqueueing."""

    repository_url: str = Field(min_length=1)
    branch: str = Field(default="main", min_length=1)
    language: LanguageType = LanguageType.TYPESCRIPT
    parallel_workers: Optional[int] = Field(default=None, ge=1, le=64)
    max_file_size: Optional[int] = Field(default=None, gt=0)
    include_tests: Optional[bool] = None

    @field_validator("repository_url", "branch")
    @classmethod
    def _strip(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("must not be blank")
        return value


class JobMetadata(BaseModel):
    total_files: int = 0
    processed_files: int = 0
    skipped_files: int = 0
    entities_found: int = 0
    relationships_found: int = 0
    failed_files: List[str] = Field(default_factory=list)


class ComplexityMetrics(BaseModel):
    average_cyclomatic_complexity: float = 0.0
    max_cyclomatic_complexity: int = 0
    average_cognitive_complexity: float = 0.0
    max_cognitive_complexity: int = 0
    complexity_distribution: Dict[str, int] = Field(default_factory=dict)


class QualityMetrics(BaseModel):
    complexity: ComplexityMetrics = Field(default_factory=ComplexityMetrics)
    counts: Dict[str, int] = Field(default_factory=dict)
    # Entity ids an insight layer would attach findings to.
    insight_targets: List[str] = Field(default_factory=list)


class AnalysisSummary(BaseModel):
    total_files: int = 0
    total_entities: int = 0
    total_relationships: int = 0
    languages: List[str] = Field(default_factory=list)
    analysis_time_seconds: float = 0.0


class AnalysisResult(BaseModel):
    job_id: str
    graph_id: str
    entities: List[CodeEntity] = Field(default_factory=list)
    relationships: List[CodeRelationship] = Field(default_factory=list)
    metrics: QualityMetrics = Field(default_factory=QualityMetrics)
    summary: AnalysisSummary = Field(default_factory=AnalysisSummary)


class AnalysisJob(BaseModel):
    """Represents one analysis run."""

    id: str = Field(default_factory=new_id)
    repository_url: str
    branch: str = "main"
    language: LanguageType = LanguageType.TYPESCRIPT
    status: JobStatus = JobStatus.PENDING
    progress: int = 0
    created_at: datetime = Field(default_factory=utc_now)
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    parallel_workers: Optional[int] = None
    max_file_size: Optional[int] = None
    include_tests: Optional[bool] = None
    metadata: JobMetadata = Field(default_factory=JobMetadata)
    results: Optional[AnalysisResult] = None
    error: Optional[str] = None

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    def _transition(self, new_status: JobStatus) -> None:
        allowed = _ALLOWED_TRANSITIONS.get(self.status, frozenset())
        if new_status not in allowed:
            raise JobStateError(
                f"Job {self.id} cannot move from {self.status.value} to {new_status.value}"
            )
        self.status = new_status

    def mark_running(self) -> None:
        self._transition(JobStatus.RUNNING)
        self.started_at = utc_now()

    def mark_completed(self, results: AnalysisResult) -> None:
        meta = self.metadata
        if meta.processed_files + meta.skipped_files != meta.total_files:
            raise JobStateError(
                f"Job {self.id} accounted for {meta.processed_files + meta.skipped_files} "
                f"of {meta.total_files} files"
            )
        self._transition(JobStatus.COMPLETED)
        self.results = results
        self.error = None
        self.progress = 100
        self.completed_at = utc_now()

    def mark_failed(self, error: str) -> None:
        self._transition(JobStatus.FAILED)
        self.error = error or "Unknown error"
        self.results = None
        self.completed_at = utc_now()

    def mark_cancelled(self) -> None:
        self._transition(JobStatus.CANCELLED)
        self.completed_at = utc_now()

    def update_progress(self, value: float) -> None:
        """Raise progress to ``value``; lower values are ignored."""
        self.progress = max(self.progress, min(100, int(value)))

    def record_processed(self, file_path: str, entity_count: int) -> None:
        self._check_capacity(file_path)
        self.metadata.processed_files += 1
        self.metadata.entities_found += entity_count

    def record_skipped(self, file_path: str) -> None:
        self._check_capacity(file_path)
        self.metadata.skipped_files += 1
        self.metadata.failed_files.append(file_path)

    def _check_capacity(self, file_path: str) -> None:
        meta = self.metadata
        if meta.processed_files + meta.skipped_files >= meta.total_files:
            raise JobStateError(
                f"Job {self.id} has already accounted for all {meta.total_files} files "
                f"(extra: {file_path})"
            )

    def to_status_dict(self) -> Dict[str, Any]:
        """Convert job to a status dictionary for polling clients."""
        result: Dict[str, Any] = {
            "job_id": self.id,
            "repository_url": self.repository_url,
            "branch": self.branch,
            "language": self.language.value,
            "status": self.status.value,
            "progress": self.progress,
            "created_at": self.created_at.isoformat(),
            "metadata": {
                "total_files": self.metadata.total_files,
                "processed_files": self.metadata.processed_files,
                "skipped_files": self.metadata.skipped_files,
                "entities_found": self.metadata.entities_found,
                "relationships_found": self.metadata.relationships_found,
                "failed_files_count": len(self.metadata.failed_files),
            },
        }

        if self.started_at:
            result["started_at"] = self.started_at.isoformat()
            if self.status == JobStatus.RUNNING:
                result["elapsed_seconds"] = round((utc_now() - self.started_at).total_seconds(), 2)

        if self.completed_at:
            result["completed_at"] = self.completed_at.isoformat()
            if self.started_at:
                result["total_seconds"] = round(
                    (self.completed_at - self.started_at).total_seconds(), 2
                )

        if self.results:
            result["graph_id"] = self.results.graph_id

        if self.error:
            result["error"] = self.error

        return result
