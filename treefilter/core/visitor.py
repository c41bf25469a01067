"""Breadth-first traversal of a test node tree under a filter.

Each node's path is built from the display names of its ancestors, so a child
named ``B/C`` under ``A`` lives at ``/A/B%2FC``. A container is reported and
expanded while the filter says its subtree may still hold matches; a leaf is
reported only when it matches.
"""

from __future__ import annotations

from collections import deque
from collections.abc import Iterable, Iterator
from dataclasses import dataclass
from typing import Optional

from treefilter.core.filter import ExecutionFilter, NopFilter
from treefilter.core.lexical import PATH_SEPARATOR, encode_segment
from treefilter.models.test_node import TestNode


@dataclass(frozen=True)
class VisitedNode:
    """A node selected during traversal.

    Attributes:
        node: The selected node.
        parent_uid: Uid of the parent node, or None for a root.
        path: Encoded path of the node within the tree.
    """

    node: TestNode
    parent_uid: Optional[str]
    path: str


class BFSTestNodeVisitor:
    """Walk test node trees breadth-first, yielding selected nodes.

    Example:
        visitor = BFSTestNodeVisitor(roots, TreeNodeFilter("/A/B%2FC"))
        for visited in visitor.visit():
            print(visited.path, visited.node.uid)
    """

    def __init__(
        self,
        roots: Iterable[TestNode],
        node_filter: Optional[ExecutionFilter] = None,
    ) -> None:
        self.roots = list(roots)
        self.node_filter = node_filter if node_filter is not None else NopFilter()

    def visit(self) -> Iterator[VisitedNode]:
        """Yield selected nodes in breadth-first order."""
        queue: deque[tuple[TestNode, Optional[str], str]] = deque(
            (root, None, "") for root in self.roots
        )

        while queue:
            node, parent_uid, parent_path = queue.popleft()
            path = parent_path + PATH_SEPARATOR + encode_segment(node.display_name)

            if node.children:
                if not self.node_filter.may_contain_matches(node, path):
                    continue
                yield VisitedNode(node=node, parent_uid=parent_uid, path=path)
                for child in node.children:
                    queue.append((child, node.uid, path))
            elif self.node_filter.matches_node(node, path):
                yield VisitedNode(node=node, parent_uid=parent_uid, path=path)

    def selected_leaves(self) -> list[VisitedNode]:
        """Return only the selected leaf nodes (the runnable tests)."""
        return [visited for visited in self.visit() if visited.node.is_leaf]
