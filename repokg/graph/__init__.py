"""
Graph persistence and querying.
"""
from .query_translator import QueryTemplate, TranslatedQuery, translate
from .storage import (
    BaseGraphStorage,
    MemoryGraphStorage,
    Neo4jStorage,
    get_storage_implementation,
    storage_from_config,
)

__all__ = [
    "QueryTemplate",
    "TranslatedQuery",
    "translate",
    "BaseGraphStorage",
    "MemoryGraphStorage",
    "Neo4jStorage",
    "get_storage_implementation",
    "storage_from_config",
]
