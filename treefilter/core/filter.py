"""Execution filters and the FilterEngine for selecting test nodes.

This module provides the filter family used to decide which test nodes run:

- TreeNodeFilter: path and property matching with the filter language
- NopFilter: selects every node
- UidListFilter: selects an explicit set of node uids

The FilterEngine applies filter definitions to flat lists of nodes and
reports statistics. Compiled patterns can be shared through a PatternCache
owned by the caller.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Literal, Optional, Union

from treefilter.core.expressions import FilterPattern
from treefilter.core.lexical import build_path
from treefilter.core.matcher import matches, matches_prefix
from treefilter.core.parser import compile_pattern
from treefilter.models.test_node import TestNode

if TYPE_CHECKING:
    from treefilter.models.filter_def import FilterDefinition

logger = logging.getLogger(__name__)


def derive_node_path(node: TestNode) -> str:
    """Derive the filter path of a standalone test node.

    Nodes describing a test method use their hierarchical identity,
    ``/<namespace>/<type>/<method>``. Other nodes fall back to their display
    name as a single segment. Every name is slash-encoded.

    Args:
        node: The node to describe.

    Returns:
        Encoded path such as ``/MyNamespace/MyTests/Adds%2FSubtracts``.
    """
    if node.method_identifier is not None:
        return build_path(node.method_identifier.path_names())
    return build_path([node.display_name])


class PatternCache:
    """Caller-owned cache of compiled patterns keyed by filter string.

    Compiled patterns are immutable, so a cache can be shared freely. Its
    lifetime is whatever the owner decides; there is no global instance.

    Example:
        cache = PatternCache()
        pattern = cache.get("/MyTests/**")
        assert cache.get("/MyTests/**") is pattern
    """

    def __init__(self) -> None:
        self._patterns: dict[str, FilterPattern] = {}

    def get(self, source: str) -> FilterPattern:
        """Return the compiled pattern for ``source``, compiling on first use.

        Raises:
            PatternSyntaxError: If ``source`` is malformed. Nothing is cached.
        """
        pattern = self._patterns.get(source)
        if pattern is not None:
            logger.debug("Pattern cache hit for %r", source)
            return pattern

        compiled = compile_pattern(source)
        # setdefault keeps the first winner if two threads compile at once
        return self._patterns.setdefault(source, compiled)

    def clear(self) -> None:
        """Drop every cached pattern."""
        self._patterns.clear()

    def __contains__(self, source: object) -> bool:
        return source in self._patterns

    def __len__(self) -> int:
        return len(self._patterns)


class ExecutionFilter:
    """Base class for filters deciding which test nodes are selected."""

    def matches_node(self, node: TestNode, path: Optional[str] = None) -> bool:
        """Return True if ``node`` is selected.

        Args:
            node: The node to check.
            path: The node's encoded path within its tree, if known.
        """
        raise NotImplementedError

    def may_contain_matches(self, node: TestNode, path: str) -> bool:
        """Return True if nodes below ``node`` may be selected."""
        raise NotImplementedError


class NopFilter(ExecutionFilter):
    """Filter that selects every node."""

    def matches_node(self, node: TestNode, path: Optional[str] = None) -> bool:
        return True

    def may_contain_matches(self, node: TestNode, path: str) -> bool:
        return True


class UidListFilter(ExecutionFilter):
    """Filter that selects nodes by uid.

    Containers are always traversed since a listed uid may sit anywhere
    below them.
    """

    def __init__(self, uids: Iterable[str]) -> None:
        self.uids = frozenset(uids)

    def matches_node(self, node: TestNode, path: Optional[str] = None) -> bool:
        return node.uid in self.uids

    def may_contain_matches(self, node: TestNode, path: str) -> bool:
        return True


class TreeNodeFilter(ExecutionFilter):
    """Filter selecting nodes by path shape and properties.

    The filter string is compiled once, at construction; a malformed string
    raises PatternSyntaxError and no filter is created. Matching is pure, so
    one instance can be used from many threads.

    Example:
        flt = TreeNodeFilter("/MyNamespace/*Tests/**[Category=Fast]")
        flt.matches("/MyNamespace/MathTests/Adds", {"Category": "Fast"})
    """

    def __init__(
        self,
        source: Union[str, FilterPattern],
        cache: Optional[PatternCache] = None,
    ) -> None:
        if isinstance(source, FilterPattern):
            self.pattern = source
        elif cache is not None:
            self.pattern = cache.get(source)
        else:
            self.pattern = compile_pattern(source)

    @property
    def source(self) -> str:
        """The filter string this filter was built from."""
        return self.pattern.source

    def matches(self, path: str, properties: Any = None) -> bool:
        """Match an encoded path and its properties."""
        return matches(self.pattern, path, properties)

    def matches_node(self, node: TestNode, path: Optional[str] = None) -> bool:
        """Match a test node.

        Args:
            node: The node to check; its properties feed the predicate.
            path: Encoded tree path of the node. When omitted it is derived
                from the node itself (see derive_node_path).
        """
        if path is None:
            path = derive_node_path(node)
        return matches(self.pattern, path, node.properties)

    def may_contain_matches(self, node: TestNode, path: str) -> bool:
        return matches_prefix(self.pattern, path)

    def __repr__(self) -> str:
        return f"TreeNodeFilter({self.pattern.source!r})"


@dataclass
class FilterStats:
    """Statistics about filter matches.

    Attributes:
        total_nodes: Total number of nodes processed.
        matched_nodes: Number of nodes that matched all enabled filters.
        match_percentage: Percentage of nodes that matched (0.0-100.0).
        per_filter: Dict mapping filter IDs to their individual match counts.
    """

    total_nodes: int
    matched_nodes: int
    match_percentage: float
    per_filter: dict[str, int] = field(default_factory=dict)


class FilterEngine:
    """Engine for applying tree-node filters to lists of test nodes.

    Each node is matched on the path derived from its own identity (see
    derive_node_path); use BFSTestNodeVisitor to select from a tree instead.
    Filter strings are compiled through the engine's PatternCache, so
    reusing an engine reuses compiled patterns.
    """

    def __init__(self, cache: Optional[PatternCache] = None) -> None:
        self.cache = cache if cache is not None else PatternCache()

    def apply_filter(
        self,
        pattern: Union[str, FilterPattern],
        nodes: list[TestNode],
    ) -> list[TestNode]:
        """Apply a single filter to nodes.

        Args:
            pattern: Filter string or compiled pattern.
            nodes: List of nodes to filter.

        Returns:
            List of nodes that match the pattern, in input order.

        Raises:
            PatternSyntaxError: If the filter string is malformed.
        """
        node_filter = TreeNodeFilter(pattern, cache=self.cache)
        return [node for node in nodes if node_filter.matches_node(node)]

    def apply_filters(
        self,
        filters: list[FilterDefinition],
        nodes: list[TestNode],
        mode: Literal["AND", "OR"] = "AND",
    ) -> list[TestNode]:
        """Apply multiple filters to nodes with AND or OR logic.

        Args:
            filters: List of filter definitions to apply.
            nodes: List of nodes to filter.
            mode: "AND" requires all enabled filters to match,
                  "OR" requires any enabled filter to match.

        Returns:
            List of nodes that match according to the mode.
            If no enabled filters, returns all nodes.
        """
        enabled_filters = [f for f in filters if f.enabled]

        if not enabled_filters:
            return list(nodes)

        node_filters = [TreeNodeFilter(f.pattern, cache=self.cache) for f in enabled_filters]

        result: list[TestNode] = []
        for node in nodes:
            if mode == "AND":
                if all(nf.matches_node(node) for nf in node_filters):
                    result.append(node)
            else:  # OR mode
                if any(nf.matches_node(node) for nf in node_filters):
                    result.append(node)

        return result

    def apply_exclusions(
        self,
        patterns: list[str],
        nodes: list[TestNode],
    ) -> list[TestNode]:
        """Remove nodes matching any of the exclusion patterns.

        Args:
            patterns: Filter strings selecting nodes to drop.
            nodes: List of nodes to filter.

        Returns:
            List of nodes that do NOT match any exclusion pattern.
        """
        if not patterns:
            return list(nodes)

        node_filters = [TreeNodeFilter(p, cache=self.cache) for p in patterns]

        return [
            node for node in nodes
            if not any(nf.matches_node(node) for nf in node_filters)
        ]

    def get_stats(
        self,
        filters: list[FilterDefinition],
        nodes: list[TestNode],
    ) -> FilterStats:
        """Calculate statistics about filter matches.

        Args:
            filters: List of filter definitions to analyze.
            nodes: List of nodes to analyze.

        Returns:
            FilterStats containing total counts, match counts, percentages,
            and per-filter breakdown.
        """
        total = len(nodes)

        per_filter: dict[str, int] = {}
        for filt in filters:
            if not filt.enabled:
                continue
            node_filter = TreeNodeFilter(filt.pattern, cache=self.cache)
            per_filter[filt.id] = sum(1 for node in nodes if node_filter.matches_node(node))

        # Nodes matching ALL enabled filters
        matched_count = len(self.apply_filters(filters, nodes, mode="AND"))

        if total > 0:
            percentage = (matched_count / total) * 100.0
        else:
            percentage = 0.0

        return FilterStats(
            total_nodes=total,
            matched_nodes=matched_count,
            match_percentage=percentage,
            per_filter=per_filter,
        )
