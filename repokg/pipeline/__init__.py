"""
Analysis pipeline: acquisition, discovery and job orchestration.
"""
from .acquisition import (
    AcquiredRepository,
    AutoRepositoryAcquirer,
    GitRepositoryAcquirer,
    LocalRepositoryAcquirer,
    RepositoryAcquirer,
)
from .discovery import DiscoveredFile, FileDiscoverer
from .orchestrator import JobOrchestrator, new_graph_id, partition

__all__ = [
    "AcquiredRepository",
    "AutoRepositoryAcquirer",
    "GitRepositoryAcquirer",
    "LocalRepositoryAcquirer",
    "RepositoryAcquirer",
    "DiscoveredFile",
    "FileDiscoverer",
    "JobOrchestrator",
    "new_graph_id",
    "partition",
]
