"""
Command-line interface for repokg.
"""
import asyncio
import functools
import json
import logging
import sys

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from repokg import __version__
from repokg.config import SystemConfig, load_config
from repokg.core.errors import CodeGraphError
from repokg.core.jobs import JobStatus
from repokg.graph.query_translator import translate
from repokg.graph.storage import BaseGraphStorage, storage_from_config
from repokg.parsers.factory import AnalyzerFactory
from repokg.pipeline import JobOrchestrator

logger = logging.getLogger("repokg")
console = Console()


def setup_logging(level: str) -> None:
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(rich_tracebacks=True)],
    )


def storage_options(command):
    """Database selection options shared by every command that touches the graph."""
    options = [
        click.option('--env-file', default=None, type=click.Path(dir_okay=False),
                     help='Read settings from this .env file'),
        click.option('--db-type', default=None, type=click.Choice(['neo4j', 'memory']),
                     help='Graph storage backend (default: STORAGE_TYPE or neo4j)'),
        click.option('--db-uri', default=None, help='Neo4j URI, e.g. bolt://localhost:7687'),
        click.option('--db-user', default=None, help='Database username'),
        click.option('--db-pass', default=None, help='Database password'),
        click.option('--db-name', default=None, help='Neo4j database name'),
    ]
    for option in reversed(options):
        command = option(command)
    return command


def build_config(env_file, db_type, db_uri, db_user, db_pass, db_name, **analysis) -> SystemConfig:
    overrides = {}
    if db_type:
        overrides["storage_type"] = db_type
    database = {key: value for key, value in {
        "uri": db_uri, "username": db_user, "password": db_pass, "database": db_name,
    }.items() if value is not None}
    if database:
        overrides["database"] = database
    analysis = {key: value for key, value in analysis.items() if value is not None}
    if analysis:
        overrides["analysis"] = analysis
    return load_config(env_file=env_file, **overrides)


def open_storage(config: SystemConfig) -> BaseGraphStorage:
    storage = storage_from_config(config)
    storage.connect()
    return storage


def handle_errors(func):
    """Report repokg errors as a one-line message and a non-zero exit code."""
    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except CodeGraphError as e:
            logger.debug(f"{func.__name__} failed", exc_info=True)
            console.print(f"[red]Error: {e}[/red]")
            sys.exit(1)
    return wrapper


def print_counts(title: str, label: str, counts: dict) -> None:
    table = Table(title=title)
    table.add_column(label, style="cyan")
    table.add_column("Count", style="green")
    for key, count in sorted(counts.items()):
        table.add_row(str(key), str(count))
    console.print(table)


@click.group()
@click.version_option(__version__)
@click.option('--log-level', default='INFO',
              type=click.Choice(['DEBUG', 'INFO', 'WARNING', 'ERROR'], case_sensitive=False),
              help='Logging verbosity')
def cli(log_level):
    """repokg - Build a knowledge graph of a source repository."""
    setup_logging(log_level.upper())


@cli.command()
@click.argument('repository')
@click.option('--branch', '-b', default='main', help='Branch to analyze')
@click.option('--language', '-l', default='typescript',
              type=click.Choice(AnalyzerFactory.get_supported_languages()),
              help='Language family of the repository')
@click.option('--workers', '-w', default=None, type=int, help='Parallel analysis workers')
@click.option('--max-file-size', default=None, type=int, help='Skip files larger than this (bytes)')
@click.option('--include-tests/--exclude-tests', default=None, help='Analyze test files too')
@click.option('--export', 'export_path', type=click.Path(dir_okay=False),
              help='Write the job status and metrics as JSON')
@storage_options
@handle_errors
def analyze(repository, branch, language, workers, max_file_size, include_tests, export_path,
            env_file, db_type, db_uri, db_user, db_pass, db_name):
    """Analyze a repository (git URL or local directory) and store its graph."""
    config = build_config(env_file, db_type, db_uri, db_user, db_pass, db_name,
                          parallel_workers=workers)
    storage = open_storage(config)
    orchestrator = JobOrchestrator(storage, config.analysis)
    try:
        storage.create_schema()
        with console.status(f"Analyzing {repository} ({branch})...", spinner="dots"):
            job = asyncio.run(orchestrator.run_job(
                repository, branch, language,
                parallel_workers=workers, max_file_size=max_file_size, include_tests=include_tests,
            ))

        status = job.to_status_dict()
        if export_path:
            payload = dict(status)
            if job.results:
                payload["metrics"] = job.results.metrics.model_dump(mode="json")
                payload["summary"] = job.results.summary.model_dump(mode="json")
            with open(export_path, 'w') as f:
                json.dump(payload, f, indent=2)
            console.print(f"Job report written to {export_path}")

        if job.status != JobStatus.COMPLETED:
            console.print(f"[red]Analysis failed: {job.error}[/red]")
            sys.exit(1)

        results = job.results
        print_counts("Entity Statistics", "Entity Type",
                     {k: v for k, v in results.metrics.counts.items() if k != "relationships"})
        relationship_counts = {}
        for rel in results.relationships:
            relationship_counts[rel.type.value] = relationship_counts.get(rel.type.value, 0) + 1
        print_counts("Relationship Statistics", "Relationship Type", relationship_counts)

        complexity = results.metrics.complexity
        console.print(f"Average cyclomatic complexity: {complexity.average_cyclomatic_complexity}, "
                      f"max: {complexity.max_cyclomatic_complexity}")
        if job.metadata.skipped_files:
            console.print(f"[yellow]{job.metadata.skipped_files} files were skipped[/yellow]")
        console.print(f"[green]Analysis complete. Graph id: {results.graph_id} "
                      f"({len(results.entities)} entities, {len(results.relationships)} relationships)[/green]")
    finally:
        orchestrator.shutdown()
        storage.close()


@cli.command()
@click.argument('term')
@click.option('--graph-id', '-g', required=True, help='Graph to search')
@click.option('--limit', default=10, help='Maximum results')
@storage_options
@handle_errors
def search(term, graph_id, limit, env_file, db_type, db_uri, db_user, db_pass, db_name):
    """Search entities by name, qualified name or docstring."""
    storage = open_storage(build_config(env_file, db_type, db_uri, db_user, db_pass, db_name))
    try:
        entities = storage.search_entities(term, graph_id, limit)
    finally:
        storage.close()

    table = Table(title=f"Entities matching '{term}'")
    table.add_column("Name", style="cyan")
    table.add_column("Type", style="magenta")
    table.add_column("Location", style="green")
    table.add_column("Id")
    for entity in entities:
        table.add_row(entity.name, entity.type.value, f"{entity.file_path}:{entity.start_line}", entity.id)
    console.print(table)


@cli.command()
@click.argument('entity_id')
@click.option('--direction', '-d', default='outgoing',
              type=click.Choice(['incoming', 'outgoing', 'both']), help='Edge direction')
@storage_options
@handle_errors
def deps(entity_id, direction, env_file, db_type, db_uri, db_user, db_pass, db_name):
    """List the relationships of an entity."""
    storage = open_storage(build_config(env_file, db_type, db_uri, db_user, db_pass, db_name))
    try:
        relationships = storage.find_dependencies(entity_id, direction)
    finally:
        storage.close()

    table = Table(title=f"{direction.capitalize()} relationships of {entity_id}")
    table.add_column("Type", style="cyan")
    table.add_column("Source")
    table.add_column("Target")
    table.add_column("Confidence", style="green")
    for rel in relationships:
        table.add_row(rel.type.value, rel.source_id, rel.target_id, f"{rel.confidence:.2f}")
    console.print(table)


@cli.command()
@click.option('--graph-id', '-g', required=True, help='Graph to inspect')
@click.option('--max-cycles', default=10, help='Maximum cycles to report')
@storage_options
@handle_errors
def cycles(graph_id, max_cycles, env_file, db_type, db_uri, db_user, db_pass, db_name):
    """Find circular dependencies."""
    storage = open_storage(build_config(env_file, db_type, db_uri, db_user, db_pass, db_name))
    try:
        found = storage.find_circular_dependencies(graph_id, max_cycles)
    finally:
        storage.close()

    if not found:
        console.print("[green]No circular dependencies found.[/green]")
        return
    for index, cycle in enumerate(found, start=1):
        console.print(f"[yellow]{index}.[/yellow] " + " -> ".join(cycle))


@cli.command()
@click.option('--graph-id', '-g', required=True, help='Graph to summarize')
@storage_options
@handle_errors
def stats(graph_id, env_file, db_type, db_uri, db_user, db_pass, db_name):
    """Show node and relationship counts for a graph."""
    storage = open_storage(build_config(env_file, db_type, db_uri, db_user, db_pass, db_name))
    try:
        statistics = storage.get_graph_statistics(graph_id)
    finally:
        storage.close()

    print_counts("Entity Statistics", "Entity Type", statistics["node_types"])
    print_counts("Relationship Statistics", "Relationship Type", statistics["relationship_types"])
    console.print(f"Languages: {', '.join(statistics['languages'])}")
    console.print(f"Average complexity: {statistics['avg_complexity']}, "
                  f"max: {statistics['max_complexity']}")


@cli.command()
@click.argument('question')
@click.option('--graph-id', '-g', required=True, help='Graph to query')
@click.option('--show-query', is_flag=True, help='Print the generated Cypher')
@storage_options
@handle_errors
def ask(question, graph_id, show_query, env_file, db_type, db_uri, db_user, db_pass, db_name):
    """Answer a question about a graph using a pre-built query."""
    translated = translate(question, graph_id)
    if show_query:
        console.print(translated.cypher)

    storage = open_storage(build_config(env_file, db_type, db_uri, db_user, db_pass, db_name))
    try:
        records = storage.execute_query(translated.cypher, translated.parameters)
    finally:
        storage.close()

    table = Table(title=translated.description)
    columns = list(records[0].keys()) if records else []
    for column in columns:
        table.add_column(column, style="cyan")
    for record in records:
        table.add_row(*[str(record[column]) for column in columns])
    console.print(table)


@cli.command()
@click.option('--graph-id', '-g', required=True, help='Graph to delete')
@click.confirmation_option(prompt='Delete this graph and all its relationships?')
@storage_options
@handle_errors
def delete(graph_id, env_file, db_type, db_uri, db_user, db_pass, db_name):
    """Delete every node and relationship of a graph."""
    storage = open_storage(build_config(env_file, db_type, db_uri, db_user, db_pass, db_name))
    try:
        deleted = storage.delete_graph(graph_id)
    finally:
        storage.close()
    console.print(f"[green]Deleted {deleted} nodes from graph {graph_id}.[/green]")


@cli.command()
@storage_options
@handle_errors
def health(env_file, db_type, db_uri, db_user, db_pass, db_name):
    """Check that the graph storage is reachable."""
    storage = storage_from_config(build_config(env_file, db_type, db_uri, db_user, db_pass, db_name))
    try:
        storage.connect()
        status = storage.get_health_status()
    finally:
        storage.close()
    console.print_json(json.dumps(status, default=str))


if __name__ == '__main__':
    cli()
