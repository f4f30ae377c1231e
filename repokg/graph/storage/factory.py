"""
Factory module for graph storage implementations.
"""
from typing import Any

from repokg.config import SystemConfig
from repokg.core.errors import ValidationError

from .base import BaseGraphStorage
from .memory import MemoryGraphStorage
from .neo4j import Neo4jStorage


def get_storage_implementation(storage_type: str = "neo4j", **kwargs: Any) -> BaseGraphStorage:
    """
    Factory function to get the appropriate storage implementation.

    Args:
        storage_type: Type of storage ('neo4j', 'memory')
        **kwargs: Additional arguments to pass to the storage constructor

    Returns:
        An instance of the appropriate storage implementation
    """
    storage_mapping = {
        "neo4j": Neo4jStorage,
        "memory": MemoryGraphStorage,
    }

    if storage_type not in storage_mapping:
        raise ValidationError(
            f"Unsupported storage type: {storage_type}. Supported types: {list(storage_mapping.keys())}"
        )

    storage_class = storage_mapping[storage_type]
    return storage_class(**kwargs)


def storage_from_config(config: SystemConfig) -> BaseGraphStorage:
    """Build the configured backend; it is not connected yet."""
    db = config.database
    common = {"batch_size": db.batch_size, "slow_query_threshold_ms": db.slow_query_threshold_ms}
    if config.storage_type == "memory":
        return get_storage_implementation("memory", **common)
    return get_storage_implementation(
        "neo4j",
        uri=db.uri,
        username=db.username,
        password=db.password,
        database=db.database,
        max_connection_pool_size=db.max_connection_pool_size,
        connection_acquisition_timeout=db.connection_acquisition_timeout,
        max_connection_lifetime=db.max_connection_lifetime,
        enable_query_logging=db.enable_query_logging,
        **common,
    )
