"""
Keyword-based translation of natural-language questions into Cypher.

The translator is a fixed lookup: each template is chosen when all of its
keyword groups match the lowercased question, checked in order. Questions that
match nothing fall back to a listing of entities.
"""
from typing import Any, Dict, List, Tuple

from pydantic import BaseModel, ConfigDict, Field


class QueryTemplate(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    description: str
    # Every group must contribute at least one keyword found in the question.
    keyword_groups: Tuple[Tuple[str, ...], ...]
    cypher: str


class TranslatedQuery(BaseModel):
    name: str
    description: str
    cypher: str
    parameters: Dict[str, Any] = Field(default_factory=dict)


TEMPLATES: List[QueryTemplate] = [
    QueryTemplate(
        name="most_complex",
        description="Entities with the highest cyclomatic complexity",
        keyword_groups=(("most complex", "highest complexity", "complicated"),),
        cypher="""
        MATCH (e:CodeEntity {graph_id: $graph_id})
        WHERE e.cyclomatic_complexity IS NOT NULL
        RETURN e.name AS name, e.type AS type, e.file_path AS file_path,
               e.cyclomatic_complexity AS cyclomatic_complexity
        ORDER BY e.cyclomatic_complexity DESC
        LIMIT 10
        """,
    ),
    QueryTemplate(
        name="circular_dependencies",
        description="Import and dependency cycles",
        keyword_groups=(("circular dependen", "dependency cycle", "import cycle"),),
        cypher="""
        MATCH path = (start:CodeEntity {graph_id: $graph_id})-[rels:CodeRelationship*2..5]->(start)
        WHERE ALL(rel IN rels WHERE rel.type IN ['DEPENDS_ON', 'IMPORTS'])
        RETURN [n IN nodes(path) | n.name] AS cycle
        LIMIT 5
        """,
    ),
    QueryTemplate(
        name="function_count",
        description="Number of functions",
        keyword_groups=(("function",), ("count", "how many", "number of")),
        cypher="""
        MATCH (e:CodeEntity {graph_id: $graph_id, type: 'Function'})
        RETURN count(e) AS function_count
        """,
    ),
    QueryTemplate(
        name="test_coverage",
        description="Share of functions that live in test files",
        keyword_groups=(("test",), ("coverage",)),
        cypher="""
        MATCH (e:CodeEntity {graph_id: $graph_id, type: 'Function'})
        WITH count(e) AS total_functions,
             count(CASE WHEN e.file_path CONTAINS 'test' OR e.file_path CONTAINS 'spec' THEN 1 END)
               AS test_functions
        RETURN total_functions, test_functions,
               CASE WHEN total_functions = 0 THEN 0.0
                    ELSE test_functions * 100.0 / total_functions END AS test_coverage
        """,
    ),
    QueryTemplate(
        name="largest_classes",
        description="Classes with the most lines",
        keyword_groups=(("class",), ("large", "big", "longest")),
        cypher="""
        MATCH (e:CodeEntity {graph_id: $graph_id, type: 'Class'})
        RETURN e.name AS name, e.file_path AS file_path, (e.end_line - e.start_line + 1) AS line_count
        ORDER BY line_count DESC
        LIMIT 10
        """,
    ),
    QueryTemplate(
        name="largest_files",
        description="Files with the most lines",
        keyword_groups=(("file",), ("size", "large", "big", "longest")),
        cypher="""
        MATCH (e:CodeEntity {graph_id: $graph_id, type: 'File'})
        RETURN e.name AS name, e.file_path AS file_path, e.line_count AS line_count
        ORDER BY e.line_count DESC
        LIMIT 10
        """,
    ),
]

DEFAULT_TEMPLATE = QueryTemplate(
    name="entities",
    description="Sample of entities in the graph",
    keyword_groups=(),
    cypher="""
    MATCH (e:CodeEntity {graph_id: $graph_id})
    RETURN e.name AS name, e.type AS type, e.file_path AS file_path
    LIMIT 10
    """,
)


def match_template(question: str) -> QueryTemplate:
    lowered = question.lower()
    for template in TEMPLATES:
        if all(any(keyword in lowered for keyword in group) for group in template.keyword_groups):
            return template
    return DEFAULT_TEMPLATE


def translate(question: str, graph_id: str) -> TranslatedQuery:
    """
    Translate a question about one graph into a parameterized Cypher query.

    Args:
        question: Free-form question, e.g. "which functions are most complex?"
        graph_id: Graph the query is scoped to

    Returns:
        The selected query with its ``graph_id`` parameter bound
    """
    template = match_template(question)
    return TranslatedQuery(
        name=template.name,
        description=template.description,
        cypher=template.cypher.strip(),
        parameters={"graph_id": graph_id},
    )
