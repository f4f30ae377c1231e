"""
Storage backends for the code graph.
"""
from .base import BaseGraphStorage, Direction, GraphStorageInterface
from .factory import get_storage_implementation, storage_from_config
from .memory import MemoryGraphStorage
from .neo4j import Neo4jStorage

__all__ = [
    "GraphStorageInterface",
    "BaseGraphStorage",
    "Direction",
    "MemoryGraphStorage",
    "Neo4jStorage",
    "get_storage_implementation",
    "storage_from_config",
]
