"""Lexical helpers shared by the pattern compiler and the matcher.

Two conventions live here:

- Backslash escaping inside filter patterns. A backslash removes the special
  meaning of the next character, so ``\\*`` is a literal star.
- Slash encoding of candidate path segments. A display name that contains a
  literal ``/`` is stored in a path as ``%2F`` so that ``/`` always means
  "segment separator". ``%`` itself is encoded as ``%25`` first, which keeps
  the encoding reversible.
"""

from __future__ import annotations

from typing import Optional

ESCAPE_CHAR = "\\"
PATH_SEPARATOR = "/"
WILDCARD = "*"
RECURSIVE_TAIL = "**"

# Characters with a meaning inside a path segment expression
SEGMENT_SPECIAL_CHARS = frozenset("*()&|!/[]\\")

# Characters with a meaning inside a property predicate
PROPERTY_SPECIAL_CHARS = frozenset("()&|!=[]\\")


def encode_segment(name: str) -> str:
    """Encode a display name so it can be used as a single path segment.

    Args:
        name: Raw display name, possibly containing ``/`` or ``%``.

    Returns:
        The name with ``%`` replaced by ``%25`` and ``/`` by ``%2F``.
    """
    # Order matters: encode the escape character first
    return name.replace("%", "%25").replace("/", "%2F")


def decode_segment(segment: str) -> str:
    """Reverse :func:`encode_segment`."""
    return segment.replace("%2F", "/").replace("%25", "%")


def build_path(names: list[str]) -> str:
    """Join display names into an encoded candidate path.

    Example:
        >>> build_path(["A", "B/C"])
        '/A/B%2FC'
    """
    return "".join(PATH_SEPARATOR + encode_segment(name) for name in names)


def split_path(path: str) -> Optional[list[str]]:
    """Split a candidate path into its encoded segments.

    Splitting is purely on the ``/`` character; ``%2F`` is part of a segment.

    Returns:
        The list of segments, or None if the path does not start with ``/``.
    """
    if not path or not path.startswith(PATH_SEPARATOR):
        return None
    return path[1:].split(PATH_SEPARATOR)


def escape_text(text: str, special: frozenset[str] = SEGMENT_SPECIAL_CHARS) -> str:
    """Escape every special character in ``text`` with a backslash.

    Useful to build a pattern that matches a name literally, e.g.
    ``escape_text("Add(1, 2)")`` gives ``Add\\(1, 2\\)``.
    """
    return "".join(ESCAPE_CHAR + ch if ch in special else ch for ch in text)

