#!/usr/bin/env python3
"""
Example script demonstrating how to analyze a repository with repokg
using the in-memory graph storage.
"""
import asyncio
import logging
import sys

from rich.console import Console
from rich.table import Table

from repokg.config import AnalysisConfig
from repokg.core.entities import NodeType
from repokg.core.jobs import JobStatus
from repokg.graph.storage import MemoryGraphStorage
from repokg.pipeline import JobOrchestrator


logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)
console = Console()


async def analyze(path: str, language: str):
    storage = MemoryGraphStorage()
    storage.connect()
    orchestrator = JobOrchestrator(storage, AnalysisConfig(parallel_workers=4))
    try:
        job = await orchestrator.run_job(path, branch="main", language=language)
    finally:
        orchestrator.shutdown()
    return storage, job


def main():
    if len(sys.argv) < 2:
        console.print("[red]Error: Please provide a path or git URL to analyze.[/red]")
        console.print("Usage: python analyze_repository.py <path_or_url> [typescript|javascript|python]")
        return 1

    target = sys.argv[1]
    language = sys.argv[2] if len(sys.argv) > 2 else "typescript"

    console.print(f"[bold cyan]Analyzing {target} as {language}...[/bold cyan]")
    storage, job = asyncio.run(analyze(target, language))

    if job.status != JobStatus.COMPLETED:
        console.print(f"[red]Analysis failed: {job.error}[/red]")
        return 1

    graph_id = job.results.graph_id
    stats = storage.get_graph_statistics(graph_id)

    entity_table = Table(title="Entity Statistics")
    entity_table.add_column("Entity Type", style="cyan")
    entity_table.add_column("Count", style="green")
    for entity_type, count in stats["node_types"].items():
        entity_table.add_row(entity_type, str(count))

    rel_table = Table(title="Relationship Statistics")
    rel_table.add_column("Relationship Type", style="cyan")
    rel_table.add_column("Count", style="green")
    for rel_type, count in stats["relationship_types"].items():
        rel_table.add_row(rel_type, str(count))

    console.print(entity_table)
    console.print(rel_table)

    # Most complex functions
    functions = sorted(
        (e for e in job.results.entities if e.type == NodeType.FUNCTION),
        key=lambda e: e.cyclomatic_complexity,
        reverse=True,
    )
    if functions:
        complexity_table = Table(title="Most Complex Functions")
        complexity_table.add_column("Function", style="cyan")
        complexity_table.add_column("Cyclomatic", style="green")
        complexity_table.add_column("Cognitive", style="green")
        for entity in functions[:10]:
            complexity_table.add_row(entity.properties.qualified_name, str(entity.cyclomatic_complexity),
                                     str(entity.cognitive_complexity))
        console.print(complexity_table)

    cycles = storage.find_circular_dependencies(graph_id)
    if cycles:
        console.print("\n[bold yellow]Circular dependencies:[/bold yellow]")
        for cycle in cycles:
            console.print("  " + " -> ".join(cycle))
    else:
        console.print("\n[green]No circular dependencies found.[/green]")

    return 0


if __name__ == "__main__":
    sys.exit(main())
