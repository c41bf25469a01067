"""Expression trees produced by the pattern compiler.

A compiled filter is a :class:`FilterPattern`: one boolean expression per path
segment plus an optional property predicate. Segment leaves are
:class:`Literal` and :class:`Glob`; property leaves are :class:`Equals` and
:class:`NotEquals`. :class:`And`, :class:`Or` and :class:`Not` combine either
kind.

Every node is a frozen dataclass, so a compiled pattern can be shared between
threads without locking.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Optional

from treefilter.core.glob import match_glob
from treefilter.core.lexical import (
    PROPERTY_SPECIAL_CHARS,
    RECURSIVE_TAIL,
    SEGMENT_SPECIAL_CHARS,
    WILDCARD,
    escape_text,
)

if TYPE_CHECKING:
    from treefilter.core.matcher import PropertyLookup


class Expression(ABC):
    """Base class for filter expressions."""

    @abstractmethod
    def evaluate(self, candidate: Any) -> bool:
        """Evaluate the expression against one candidate.

        The candidate is a path segment string for segment expressions and a
        :class:`~treefilter.core.matcher.PropertyLookup` for property
        expressions.
        """
        ...

    @abstractmethod
    def to_string(self) -> str:
        """Render the expression back to pattern syntax."""
        ...

    def __str__(self) -> str:
        return self.to_string()


@dataclass(frozen=True)
class Literal(Expression):
    """Segment must equal ``text`` exactly."""

    text: str

    def evaluate(self, candidate: str) -> bool:
        return candidate == self.text

    def to_string(self) -> str:
        return escape_text(self.text, SEGMENT_SPECIAL_CHARS)


@dataclass(frozen=True)
class Glob(Expression):
    """Segment must match a wildcard pattern.

    Attributes:
        parts: Literal runs between the unescaped ``*`` of the source.
    """

    parts: tuple[str, ...]

    def evaluate(self, candidate: str) -> bool:
        return match_glob(self.parts, candidate)

    def to_string(self) -> str:
        return WILDCARD.join(escape_text(part, SEGMENT_SPECIAL_CHARS) for part in self.parts)


@dataclass(frozen=True)
class Equals(Expression):
    """Property ``key`` has at least one value equal to ``value``."""

    key: str
    value: str

    def evaluate(self, candidate: PropertyLookup) -> bool:
        return candidate.has_value(self.key, self.value)

    def to_string(self) -> str:
        key = escape_text(self.key, PROPERTY_SPECIAL_CHARS)
        value = escape_text(self.value, PROPERTY_SPECIAL_CHARS)
        return f"{key}={value}"


@dataclass(frozen=True)
class NotEquals(Expression):
    """Property ``key`` has no value equal to ``value``.

    An absent key satisfies the constraint.
    """

    key: str
    value: str

    def evaluate(self, candidate: PropertyLookup) -> bool:
        return not candidate.has_value(self.key, self.value)

    def to_string(self) -> str:
        key = escape_text(self.key, PROPERTY_SPECIAL_CHARS)
        value = escape_text(self.value, PROPERTY_SPECIAL_CHARS)
        return f"{key}!={value}"


def flatten_operands(node: Expression, kind: type) -> list[Expression]:
    """Collect the operands of a left-deep chain of ``kind`` nodes in order.

    ``A|B|C`` parses as ``Or(Or(A, B), C)``; long chains are walked
    iteratively so their length is not bounded by the recursion limit.
    """
    rights: list[Expression] = []
    while isinstance(node, kind):
        rights.append(node.right)  # type: ignore[attr-defined]
        node = node.left  # type: ignore[attr-defined]
    rights.append(node)
    rights.reverse()
    return rights


@dataclass(frozen=True)
class And(Expression):
    """`&` combination of two expressions."""

    left: Expression
    right: Expression

    def evaluate(self, candidate: Any) -> bool:
        """Both sides must match."""
        return all(op.evaluate(candidate) for op in flatten_operands(self, And))

    def to_string(self) -> str:
        return "&".join(f"({op.to_string()})" for op in flatten_operands(self, And))


@dataclass(frozen=True)
class Or(Expression):
    """`|` combination of two expressions."""

    left: Expression
    right: Expression

    def evaluate(self, candidate: Any) -> bool:
        """Either side must match."""
        return any(op.evaluate(candidate) for op in flatten_operands(self, Or))

    def to_string(self) -> str:
        return "|".join(f"({op.to_string()})" for op in flatten_operands(self, Or))


@dataclass(frozen=True)
class Not(Expression):
    """`!` negation of an expression."""

    inner: Expression

    def evaluate(self, candidate: Any) -> bool:
        return not self.inner.evaluate(candidate)

    def to_string(self) -> str:
        return f"!({self.inner.to_string()})"


# Aliases documenting which leaves each tree kind may hold
SegmentExpression = Expression
PropertyExpression = Expression


@dataclass(frozen=True)
class FilterPattern:
    """A compiled filter.

    Attributes:
        source: The filter string this pattern was compiled from.
        segments: One expression per path segment, excluding a trailing ``**``.
        is_recursive_tail: True if the filter ended with the ``**`` segment,
            meaning any further path segments are accepted.
        property_predicate: Optional expression over node properties.
    """

    source: str
    segments: tuple[SegmentExpression, ...]
    is_recursive_tail: bool = False
    property_predicate: Optional[PropertyExpression] = None

    def to_string(self) -> str:
        """Render a normalized form of the pattern."""
        parts = [seg.to_string() for seg in self.segments]
        if self.is_recursive_tail:
            parts.append(RECURSIVE_TAIL)
        text = "/" + "/".join(parts)
        if self.property_predicate is not None:
            text += f"[{self.property_predicate.to_string()}]"
        return text

    def __str__(self) -> str:
        return self.to_string()
