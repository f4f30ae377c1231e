"""
Cyclomatic and cognitive complexity over tree-sitter syntax trees.
"""
from typing import Callable, Dict, FrozenSet, Iterable, Optional

from tree_sitter import Node


class ComplexityCalculator:
    """
    Computes branching-based complexity scores for one declaration node.

    The calculator is language agnostic: each analyzer supplies the node types
    that count as branches, the binary node types whose operator makes them a
    short-circuit boolean, and a predicate for nodes that open their own scope
    (nested named functions and classes), which are never counted towards the
    enclosing declaration.
    """

    def __init__(self, branch_types: Iterable[str],
                 logical_operators: Dict[str, FrozenSet[str]],
                 is_scope_boundary: Callable[[Node], bool],
                 continuation_types: Optional[Iterable[str]] = None):
        """
        Args:
            branch_types: Node types that add a decision point (if, loops, case, catch, ternary)
            logical_operators: Map of node type to the operator tokens that count (e.g. ``&&``)
            is_scope_boundary: Predicate for nested declarations with their own complexity
            continuation_types: Node types that continue a branch at the same nesting
                level (``else``, ``elif``)
        """
        self.branch_types = frozenset(branch_types)
        self.logical_operators = logical_operators
        self.is_scope_boundary = is_scope_boundary
        self.continuation_types = frozenset(continuation_types or ())

    def cyclomatic(self, node: Node) -> int:
        """Base 1, plus one per branching construct and per boolean operator."""
        return 1 + self._count_decisions(node)

    def cognitive(self, node: Node) -> int:
        """Nesting-weighted branch count; boolean operators always add a flat 1."""
        return self._cognitive_children(node, 0)

    def is_logical(self, node: Node) -> bool:
        operators = self.logical_operators.get(node.type)
        if not operators:
            return False
        operator = node.child_by_field_name("operator")
        return operator is not None and operator.type in operators

    def _is_branch(self, node: Node) -> bool:
        return node.is_named and node.type in self.branch_types

    def _count_decisions(self, node: Node) -> int:
        count = 0
        for child in node.children:
            if self.is_scope_boundary(child):
                continue
            if self._is_branch(child) or self.is_logical(child):
                count += 1
            count += self._count_decisions(child)
        return count

    def _cognitive_children(self, node: Node, nesting: int) -> int:
        return sum(self._cognitive_node(child, nesting) for child in node.children)

    def _cognitive_node(self, node: Node, nesting: int) -> int:
        if self.is_scope_boundary(node):
            return 0
        if self._is_branch(node):
            return 1 + nesting + self._cognitive_branch(node, nesting)
        if self.is_logical(node):
            return 1 + self._cognitive_children(node, nesting)
        return self._cognitive_children(node, nesting)

    def _cognitive_branch(self, branch: Node, nesting: int) -> int:
        total = 0
        for child in branch.children:
            if child.type in self.continuation_types:
                total += self._cognitive_continuation(child, nesting)
            else:
                total += self._cognitive_node(child, nesting + 1)
        return total

    def _cognitive_continuation(self, node: Node, nesting: int) -> int:
        # elif / else-if sit at the nesting level of the branch they continue
        if self._is_branch(node):
            return 1 + nesting + self._cognitive_branch(node, nesting)
        total = 0
        for child in node.children:
            if self._is_branch(child):
                total += self._cognitive_node(child, nesting)
            else:
                total += self._cognitive_node(child, nesting + 1)
        return total
