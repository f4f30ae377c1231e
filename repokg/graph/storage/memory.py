"""
In-process implementation of the graph storage interface on networkx.
"""
from collections import Counter
from typing import Any, Dict, List, Optional
import threading

import networkx as nx

from repokg.core.entities import CodeEntity, NodeType
from repokg.core.errors import NotFoundError, PersistenceError
from repokg.core.relationships import CYCLE_RELATIONSHIP_TYPES, CodeRelationship

from .base import MAX_CYCLE_LENGTH, MIN_CYCLE_LENGTH, BaseGraphStorage, Direction


class MemoryGraphStorage(BaseGraphStorage):
    """
    Graph storage backed by one ``networkx.MultiDiGraph`` per graph id.

    Data lives as long as the instance. Useful for tests and for one-shot
    command line runs that do not need a database.
    """

    def __init__(self, **kwargs: Any):
        super().__init__(**kwargs)
        self.graphs: Dict[str, nx.MultiDiGraph] = {}
        self._lock = threading.Lock()

    def connect(self) -> bool:
        self.is_connected = True
        self.logger.info("Using in-memory graph storage")
        return True

    def close(self) -> None:
        self.is_connected = False

    def verify_connectivity(self) -> bool:
        return True

    def create_schema(self) -> None:
        self.logger.debug("In-memory storage needs no schema")

    def execute_query(self, query: str, params: Optional[Dict[str, Any]] = None) -> List[Dict[str, Any]]:
        raise PersistenceError("In-memory storage does not execute Cypher queries",
                               query=query, parameters=params)

    def _write_entity_batch(self, batch: List[CodeEntity], graph_id: str) -> int:
        with self._lock:
            graph = self.graphs.setdefault(graph_id, nx.MultiDiGraph())
            duplicates = [entity.id for entity in batch if entity.id in graph]
            if duplicates:
                raise PersistenceError(
                    f"Entity ids already stored in graph {graph_id}: {', '.join(duplicates[:5])}",
                    parameters={"graph_id": graph_id},
                )
            for entity in batch:
                graph.add_node(entity.id, entity=entity)
        return len(batch)

    def _write_relationship_batch(self, batch: List[CodeRelationship], graph_id: str) -> int:
        with self._lock:
            graph = self.graphs.get(graph_id)
            if graph is None:
                raise PersistenceError(f"Graph {graph_id} has no entities",
                                       parameters={"graph_id": graph_id})
            missing = sorted({
                endpoint
                for rel in batch
                for endpoint in (rel.source_id, rel.target_id)
                if endpoint not in graph
            })
            if missing:
                raise PersistenceError(
                    f"Relationship endpoints missing from graph {graph_id}: {', '.join(missing[:5])}",
                    parameters={"graph_id": graph_id},
                )
            for rel in batch:
                graph.add_edge(rel.source_id, rel.target_id, key=rel.id, relationship=rel)
        return len(batch)

    def get_entity(self, entity_id: str, graph_id: Optional[str] = None) -> Optional[CodeEntity]:
        graphs = [self.graphs.get(graph_id)] if graph_id else list(self.graphs.values())
        for graph in graphs:
            if graph is not None and entity_id in graph:
                return graph.nodes[entity_id]["entity"]
        return None

    def search_entities(self, term: str, graph_id: str, limit: int = 10) -> List[CodeEntity]:
        graph = self._graph(graph_id)
        needle = term.strip().lower()
        if not needle:
            return []

        scored = []
        for _, data in graph.nodes(data=True):
            entity: CodeEntity = data["entity"]
            name = entity.name.lower()
            if name == needle:
                score = 3
            elif needle in name:
                score = 2
            elif needle in (getattr(entity.properties, "qualified_name", "") or "").lower() or \
                    needle in (getattr(entity.properties, "docstring", "") or "").lower():
                score = 1
            else:
                continue
            scored.append((score, entity))

        scored.sort(key=lambda item: (-item[0], item[1].name, item[1].file_path))
        return [entity for _, entity in scored[:limit]]

    def _relationships_for(self, entity_id: str, direction: Direction) -> List[CodeRelationship]:
        graphs = [(graph_id, g) for graph_id, g in self.graphs.items() if entity_id in g]
        if not graphs:
            raise NotFoundError(f"Entity not found: {entity_id}")

        # The same id may be stored under several graph ids; edges never cross graphs.
        relationships = {}
        for graph_id, graph in graphs:
            edges = []
            if direction in (Direction.OUTGOING, Direction.BOTH):
                edges.extend(graph.out_edges(entity_id, data="relationship"))
            if direction in (Direction.INCOMING, Direction.BOTH):
                edges.extend(graph.in_edges(entity_id, data="relationship"))
            for _, _, rel in edges:
                relationships[(graph_id, rel.id)] = rel
        return sorted(relationships.values(), key=lambda rel: (-rel.strength, rel.id))

    def _find_cycles(self, graph_id: str, max_cycles: int) -> List[List[str]]:
        graph = self._graph(graph_id)
        dependencies = nx.DiGraph()
        for source, target, rel in graph.edges(data="relationship"):
            if rel.type in CYCLE_RELATIONSHIP_TYPES and source != target:
                dependencies.add_edge(source, target)

        cycles = []
        for cycle in nx.simple_cycles(dependencies, length_bound=MAX_CYCLE_LENGTH):
            if len(cycle) < MIN_CYCLE_LENGTH:
                continue
            start = cycle.index(min(cycle))
            ordered = cycle[start:] + cycle[:start]
            names = [graph.nodes[node]["entity"].name for node in ordered]
            cycles.append(names + [names[0]])
            if len(cycles) >= max_cycles:
                break
        return cycles

    def get_graph_statistics(self, graph_id: str) -> Dict[str, Any]:
        graph = self._graph(graph_id)
        entities: List[CodeEntity] = [data for _, data in graph.nodes(data="entity")]
        complexities = [
            e.cyclomatic_complexity for e in entities
            if e.type != NodeType.FILE and e.cyclomatic_complexity is not None
        ]

        return {
            "total_nodes": graph.number_of_nodes(),
            "total_relationships": graph.number_of_edges(),
            "node_types": dict(Counter(e.type.value for e in entities)),
            "relationship_types": dict(Counter(
                rel.type.value for _, _, rel in graph.edges(data="relationship")
            )),
            "languages": sorted({e.language.value for e in entities}),
            "avg_complexity": round(sum(complexities) / len(complexities), 2) if complexities else None,
            "max_complexity": max(complexities) if complexities else None,
        }

    def delete_graph(self, graph_id: str) -> int:
        with self._lock:
            graph = self.graphs.pop(graph_id, None)
        if graph is None:
            raise NotFoundError(f"Graph not found: {graph_id}")
        self.logger.info(f"Deleted graph {graph_id} ({graph.number_of_nodes()} nodes)")
        return graph.number_of_nodes()

    def _graph(self, graph_id: str) -> nx.MultiDiGraph:
        graph = self.graphs.get(graph_id)
        if graph is None:
            raise NotFoundError(f"Graph not found: {graph_id}")
        return graph
