"""Evaluation of compiled filter patterns against candidates.

A candidate is an encoded path (``/A/B%2FC``) and a property lookup. The
functions here are pure and never raise for a compiled pattern, which lets a
single :class:`~treefilter.core.expressions.FilterPattern` serve any number of
threads at once.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any

from treefilter.core.expressions import FilterPattern
from treefilter.core.lexical import split_path


class PropertyLookup:
    """Read-only multi-valued view over a node's properties.

    Accepted inputs:
        - ``None`` (no properties)
        - a mapping of key to a single string value
        - a mapping of key to an iterable of string values
        - an iterable of ``(key, value)`` pairs, or of objects exposing
          ``key`` and ``value`` attributes

    Insertion order is irrelevant; duplicate pairs collapse.
    """

    __slots__ = ("_values",)

    def __init__(self, properties: Any = None) -> None:
        values: dict[str, set[str]] = {}

        if properties is None:
            pass
        elif isinstance(properties, Mapping):
            for key, raw in properties.items():
                bucket = values.setdefault(str(key), set())
                if raw is None:
                    continue
                if isinstance(raw, str):
                    bucket.add(raw)
                elif isinstance(raw, Iterable):
                    bucket.update(str(item) for item in raw)
                else:
                    bucket.add(str(raw))
        else:
            for item in properties:
                if hasattr(item, "key") and hasattr(item, "value"):
                    key, value = item.key, item.value
                else:
                    key, value = item
                values.setdefault(str(key), set()).add(str(value))

        self._values = {key: frozenset(vals) for key, vals in values.items()}

    @classmethod
    def of(cls, properties: Any) -> "PropertyLookup":
        """Return ``properties`` as a lookup, wrapping it if needed."""
        if isinstance(properties, PropertyLookup):
            return properties
        return cls(properties)

    def has_value(self, key: str, value: str) -> bool:
        """True if ``key`` carries ``value`` among its values."""
        return value in self._values.get(key, ())

    def get_values(self, key: str) -> frozenset[str]:
        """All values stored under ``key`` (empty if absent)."""
        return self._values.get(key, frozenset())

    def __contains__(self, key: object) -> bool:
        return key in self._values

    def __len__(self) -> int:
        return len(self._values)

    def __repr__(self) -> str:
        items = {key: sorted(vals) for key, vals in sorted(self._values.items())}
        return f"PropertyLookup({items!r})"


def matches(pattern: FilterPattern, path: str, properties: Any = None) -> bool:
    """Check whether a candidate path and its properties satisfy a pattern.

    Args:
        pattern: A compiled filter.
        path: Candidate path starting with ``/``. Literal slashes inside a
            segment must already be encoded as ``%2F``.
        properties: Anything :class:`PropertyLookup` accepts.

    Returns:
        True if the path has the right shape, every segment satisfies its
        expression and the property predicate (if any) holds.
    """
    segments = split_path(path)
    if segments is None:
        return False

    expected = len(pattern.segments)
    if pattern.is_recursive_tail:
        if len(segments) < expected:
            return False
    elif len(segments) != expected:
        return False

    # zip stops at the shorter side; trailing segments under ** are accepted
    for expression, segment in zip(pattern.segments, segments):
        if not expression.evaluate(segment):
            return False

    if pattern.property_predicate is None:
        return True

    return pattern.property_predicate.evaluate(PropertyLookup.of(properties))


def matches_prefix(pattern: FilterPattern, path: str) -> bool:
    """Check whether nodes below ``path`` could still match ``pattern``.

    Used when walking a test tree: a container node is worth expanding when
    each of its path segments satisfies the expression at the same position
    and the path is not already longer than the pattern allows. Property
    predicates only apply to the node that fully matches, so they are not
    evaluated here.
    """
    segments = split_path(path)
    if segments is None:
        return False

    if not pattern.is_recursive_tail and len(segments) > len(pattern.segments):
        return False

    for expression, segment in zip(pattern.segments, segments):
        if not expression.evaluate(segment):
            return False

    return True
