"""
Neo4j implementation of the graph storage interface.
"""
from collections import defaultdict
from typing import Any, Dict, List, Optional
import re
import time

from neo4j import GraphDatabase
from neo4j.exceptions import DriverError, Neo4jError, ServiceUnavailable

from repokg.core.entities import CodeEntity, NodeType
from repokg.core.errors import NotFoundError, PersistenceError
from repokg.core.relationships import CYCLE_RELATIONSHIP_TYPES, CodeRelationship

from .base import (
    MAX_CYCLE_LENGTH,
    MIN_CYCLE_LENGTH,
    BaseGraphStorage,
    Direction,
    entity_to_record,
    record_to_entity,
    record_to_relationship,
    relationship_to_record,
)

CONSTRAINTS = [
    "CREATE CONSTRAINT entity_graph_id_unique IF NOT EXISTS "
    "FOR (e:CodeEntity) REQUIRE (e.graph_id, e.id) IS UNIQUE",
    "CREATE CONSTRAINT relationship_graph_id_unique IF NOT EXISTS "
    "FOR ()-[r:CodeRelationship]-() REQUIRE (r.graph_id, r.id) IS UNIQUE",
]

INDEXES = [
    "CREATE INDEX entity_id_index IF NOT EXISTS FOR (e:CodeEntity) ON (e.id)",
    "CREATE INDEX entity_type_index IF NOT EXISTS FOR (e:CodeEntity) ON (e.type)",
    "CREATE INDEX entity_language_index IF NOT EXISTS FOR (e:CodeEntity) ON (e.language)",
    "CREATE INDEX entity_graph_id_index IF NOT EXISTS FOR (e:CodeEntity) ON (e.graph_id)",
    "CREATE INDEX file_extension_index IF NOT EXISTS FOR (f:File) ON (f.extension)",
    "CREATE INDEX function_complexity_index IF NOT EXISTS FOR (fn:Function) ON (fn.cyclomatic_complexity)",
    "CREATE INDEX relationship_type_index IF NOT EXISTS FOR ()-[r:CodeRelationship]-() ON (r.type)",
    "CREATE INDEX relationship_strength_index IF NOT EXISTS FOR ()-[r:CodeRelationship]-() ON (r.strength)",
    "CREATE INDEX relationship_graph_id_index IF NOT EXISTS FOR ()-[r:CodeRelationship]-() ON (r.graph_id)",
    "CREATE INDEX entity_type_language_index IF NOT EXISTS FOR (e:CodeEntity) ON (e.type, e.language)",
    "CREATE FULLTEXT INDEX entity_search IF NOT EXISTS "
    "FOR (e:CodeEntity) ON EACH [e.name, e.qualified_name, e.docstring]",
]

# One label per entity type in addition to CodeEntity. Labels come from the
# closed NodeType enum, never from input data.
ENTITY_BATCH_QUERY = """
UNWIND $entities AS entity
CREATE (e:CodeEntity:{label})
SET e = entity
RETURN count(e) AS created
"""

RELATIONSHIP_BATCH_QUERY = """
UNWIND $relationships AS rel
MATCH (source:CodeEntity {id: rel.source_id, graph_id: $graph_id})
MATCH (target:CodeEntity {id: rel.target_id, graph_id: $graph_id})
CREATE (source)-[r:CodeRelationship]->(target)
SET r = rel
RETURN count(r) AS created
"""

# Nodes may not repeat inside a cycle, and each cycle is reported once,
# starting from its smallest id.
CYCLE_QUERY = """
MATCH path = (start:CodeEntity {{graph_id: $graph_id}})-[rels:CodeRelationship*{min_length}..{max_length}]->(start)
WHERE ALL(rel IN rels WHERE rel.type IN $types AND rel.graph_id = $graph_id)
  AND ALL(n IN nodes(path) WHERE start.id <= n.id)
  AND size(reduce(seen = [], n IN tail(nodes(path)) |
        CASE WHEN n IN seen THEN seen ELSE seen + [n] END)) = size(nodes(path)) - 1
RETURN [n IN tail(nodes(path)) | n.name] AS names, start.name AS start_name
LIMIT $max_cycles
"""

NODE_STATISTICS_QUERY = """
MATCH (n:CodeEntity {graph_id: $graph_id})
RETURN count(n) AS total_nodes,
       collect(DISTINCT n.language) AS languages,
       avg(CASE WHEN n.type <> 'File' THEN n.cyclomatic_complexity END) AS avg_complexity,
       max(CASE WHEN n.type <> 'File' THEN n.cyclomatic_complexity END) AS max_complexity
"""

NODE_TYPES_QUERY = """
MATCH (n:CodeEntity {graph_id: $graph_id})
RETURN n.type AS type, count(n) AS count
"""

RELATIONSHIP_TYPES_QUERY = """
MATCH (:CodeEntity {graph_id: $graph_id})-[r:CodeRelationship {graph_id: $graph_id}]->()
RETURN r.type AS type, count(r) AS count
"""

LUCENE_SPECIAL = re.compile(r'([+\-!(){}\[\]^"~*?:\\/]|&&|\|\|)')


def escape_lucene(term: str) -> str:
    return LUCENE_SPECIAL.sub(r"\\\1", term)


class Neo4jStorage(BaseGraphStorage):
    """Neo4j implementation of the graph storage interface."""

    def __init__(self, uri: str = "bolt://localhost:7687", username: str = "neo4j",
                 password: str = "password", database: str = "neo4j",
                 max_connection_pool_size: int = 50, connection_acquisition_timeout: int = 60,
                 max_connection_lifetime: int = 3600, enable_query_logging: bool = False,
                 **kwargs: Any):
        """
        Initialize the Neo4j storage.

        Args:
            uri: Bolt or neo4j URI of the server
            username: Username for authentication
            password: Password for authentication
            database: Database name
            max_connection_pool_size: Driver connection pool size
            connection_acquisition_timeout: Seconds to wait for a pooled connection
            max_connection_lifetime: Seconds before a pooled connection is recycled
            enable_query_logging: Log every query at debug level
            **kwargs: batch_size and slow_query_threshold_ms for the base class
        """
        super().__init__(**kwargs)
        self.uri = uri
        self.username = username
        self.password = password
        self.database = database
        self.max_connection_pool_size = max_connection_pool_size
        self.connection_acquisition_timeout = connection_acquisition_timeout
        self.max_connection_lifetime = max_connection_lifetime
        self.enable_query_logging = enable_query_logging
        self.driver = None

    def connect(self) -> bool:
        """Connect to the Neo4j database."""
        try:
            self.driver = GraphDatabase.driver(
                self.uri,
                auth=(self.username, self.password),
                max_connection_pool_size=self.max_connection_pool_size,
                connection_acquisition_timeout=self.connection_acquisition_timeout,
                max_connection_lifetime=self.max_connection_lifetime,
            )
            self.driver.verify_connectivity()
        except (Neo4jError, DriverError) as e:
            self.logger.error(f"Failed to connect to Neo4j at {self.uri}: {e}")
            if self.driver is not None:
                self.driver.close()
                self.driver = None
            raise PersistenceError(f"Failed to connect to Neo4j at {self.uri}: {e}") from e

        self.is_connected = True
        self.logger.info(f"Connected to Neo4j at {self.uri}")
        return True

    def close(self) -> None:
        """Close the database connection."""
        if self.driver:
            self.driver.close()
        self.driver = None
        self.is_connected = False
        self.logger.info("Disconnected from Neo4j")

    def verify_connectivity(self) -> bool:
        records = self.execute_query("RETURN 1 AS result")
        return bool(records) and records[0]["result"] == 1

    def get_health_status(self) -> Dict[str, Any]:
        status = super().get_health_status()
        if status["status"] == "healthy":
            try:
                components = self.execute_query(
                    "CALL dbms.components() YIELD name, versions, edition "
                    "RETURN name, versions, edition"
                )
                status["components"] = components
            except PersistenceError as e:
                self.logger.warning(f"Could not read server components: {e}")
        return status

    def create_schema(self) -> None:
        """Create constraints and indexes; existing ones are left untouched."""
        for statement in CONSTRAINTS + INDEXES:
            self.execute_query(statement)
            self.logger.debug(f"Applied schema statement: {statement}")
        self.logger.info("Neo4j schema initialized")

    def execute_query(self, query: str, params: Optional[Dict[str, Any]] = None) -> List[Dict[str, Any]]:
        """
        Execute a Cypher query and return the results.

        Raises:
            PersistenceError: If the driver reports an error
        """
        self._ensure_driver()
        params = params or {}
        if self.enable_query_logging:
            self.logger.debug(f"Query: {query.strip()} Params: {list(params)}")

        started = time.perf_counter()
        try:
            with self.driver.session(database=self.database) as session:
                records = [record.data() for record in session.run(query, params)]
        except Neo4jError as e:
            self.logger.error(f"Query execution failed: {e}")
            raise PersistenceError(f"Query execution failed: {e}", query=query, parameters=params) from e
        except DriverError as e:
            if isinstance(e, ServiceUnavailable):
                self.is_connected = False
            raise PersistenceError(f"Neo4j driver error: {e}", query=query, parameters=params) from e
        finally:
            self._log_duration(query, started)
        return records

    def _write_entity_batch(self, batch: List[CodeEntity], graph_id: str) -> int:
        by_label: Dict[NodeType, List[Dict[str, Any]]] = defaultdict(list)
        for entity in batch:
            by_label[entity.type].append(entity_to_record(entity, graph_id))

        def work(tx):
            created = 0
            for label, records in by_label.items():
                result = tx.run(ENTITY_BATCH_QUERY.format(label=label.value), entities=records)
                created += result.single()["created"]
            return created

        return self._write_transaction(work, ENTITY_BATCH_QUERY, graph_id)

    def _write_relationship_batch(self, batch: List[CodeRelationship], graph_id: str) -> int:
        records = [relationship_to_record(rel, graph_id) for rel in batch]

        def work(tx):
            result = tx.run(RELATIONSHIP_BATCH_QUERY, relationships=records, graph_id=graph_id)
            created = result.single()["created"]
            if created != len(records):
                raise PersistenceError(
                    f"Only {created} of {len(records)} relationships matched both endpoints "
                    f"in graph {graph_id}",
                    query=RELATIONSHIP_BATCH_QUERY,
                    parameters={"graph_id": graph_id},
                )
            return created

        return self._write_transaction(work, RELATIONSHIP_BATCH_QUERY, graph_id)

    def _write_transaction(self, work, query: str, graph_id: str) -> int:
        """Run ``work`` in one explicit transaction; rolled back on any error, never retried."""
        self._ensure_driver()
        started = time.perf_counter()
        try:
            with self.driver.session(database=self.database) as session:
                with session.begin_transaction() as tx:
                    created = work(tx)
                    tx.commit()
                    return created
        except (Neo4jError, DriverError) as e:
            raise PersistenceError(f"Batch write failed: {e}", query=query,
                                   parameters={"graph_id": graph_id}) from e
        finally:
            self._log_duration(query, started)

    def get_entity(self, entity_id: str, graph_id: Optional[str] = None) -> Optional[CodeEntity]:
        query = "MATCH (e:CodeEntity {id: $entity_id}) "
        if graph_id:
            query += "WHERE e.graph_id = $graph_id "
        query += "RETURN e.entity_json AS entity_json LIMIT 1"
        records = self.execute_query(query, {"entity_id": entity_id, "graph_id": graph_id})
        return record_to_entity(records[0]) if records else None

    def search_entities(self, term: str, graph_id: str, limit: int = 10) -> List[CodeEntity]:
        self._require_graph(graph_id)
        if not term.strip():
            return []
        records = self.execute_query(
            """
            CALL db.index.fulltext.queryNodes('entity_search', $search_term)
            YIELD node, score
            WHERE node.graph_id = $graph_id
            RETURN node.entity_json AS entity_json, score
            ORDER BY score DESC
            LIMIT $limit
            """,
            {"search_term": f"{escape_lucene(term.strip())}*", "graph_id": graph_id, "limit": limit},
        )
        return [record_to_entity(record) for record in records]

    def _relationships_for(self, entity_id: str, direction: Direction) -> List[CodeRelationship]:
        if self.get_entity(entity_id) is None:
            raise NotFoundError(f"Entity not found: {entity_id}")

        patterns = {
            Direction.OUTGOING: "(entity)-[r:CodeRelationship]->(other)",
            Direction.INCOMING: "(entity)<-[r:CodeRelationship]-(other)",
            Direction.BOTH: "(entity)-[r:CodeRelationship]-(other)",
        }
        records = self.execute_query(
            f"""
            MATCH (entity:CodeEntity {{id: $entity_id}})
            MATCH {patterns[direction]}
            WHERE r.graph_id = entity.graph_id
            RETURN DISTINCT properties(r) AS rel
            ORDER BY rel.strength DESC, rel.id
            """,
            {"entity_id": entity_id},
        )
        return [record_to_relationship(record["rel"]) for record in records]

    def _find_cycles(self, graph_id: str, max_cycles: int) -> List[List[str]]:
        self._require_graph(graph_id)
        query = CYCLE_QUERY.format(min_length=MIN_CYCLE_LENGTH, max_length=MAX_CYCLE_LENGTH)
        records = self.execute_query(query, {
            "graph_id": graph_id,
            "types": sorted(t.value for t in CYCLE_RELATIONSHIP_TYPES),
            "max_cycles": max_cycles,
        })
        # tail(nodes(path)) ends with the start node; prepend it to get a closed walk.
        return [[record["start_name"]] + record["names"] for record in records]

    def get_graph_statistics(self, graph_id: str) -> Dict[str, Any]:
        params = {"graph_id": graph_id}
        nodes = self.execute_query(NODE_STATISTICS_QUERY, params)
        if not nodes or nodes[0]["total_nodes"] == 0:
            raise NotFoundError(f"Graph not found: {graph_id}")
        node_types = self.execute_query(NODE_TYPES_QUERY, params)
        relationship_types = self.execute_query(RELATIONSHIP_TYPES_QUERY, params)

        summary = nodes[0]
        avg_complexity = summary["avg_complexity"]
        return {
            "total_nodes": summary["total_nodes"],
            "total_relationships": sum(r["count"] for r in relationship_types),
            "node_types": {r["type"]: r["count"] for r in node_types},
            "relationship_types": {r["type"]: r["count"] for r in relationship_types},
            "languages": sorted(summary["languages"]),
            "avg_complexity": round(avg_complexity, 2) if avg_complexity is not None else None,
            "max_complexity": summary["max_complexity"],
        }

    def delete_graph(self, graph_id: str) -> int:
        records = self.execute_query(
            """
            MATCH (n:CodeEntity {graph_id: $graph_id})
            DETACH DELETE n
            RETURN count(*) AS deleted
            """,
            {"graph_id": graph_id},
        )
        deleted = records[0]["deleted"] if records else 0
        if deleted == 0:
            raise NotFoundError(f"Graph not found: {graph_id}")
        self.logger.info(f"Deleted graph {graph_id} ({deleted} nodes)")
        return deleted

    def _require_graph(self, graph_id: str) -> None:
        records = self.execute_query(
            "MATCH (n:CodeEntity {graph_id: $graph_id}) RETURN n.id AS id LIMIT 1",
            {"graph_id": graph_id},
        )
        if not records:
            raise NotFoundError(f"Graph not found: {graph_id}")

    def _ensure_driver(self) -> None:
        if self.driver is None:
            self.connect()

    def _log_duration(self, query: str, started: float) -> None:
        elapsed_ms = (time.perf_counter() - started) * 1000
        if elapsed_ms > self.slow_query_threshold_ms:
            self.logger.warning(f"Slow query ({elapsed_ms:.0f} ms): {' '.join(query.split())[:200]}")
