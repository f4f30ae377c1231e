"""
repokg - build a code knowledge graph from a source repository.
"""

__version__ = "0.1.0"
