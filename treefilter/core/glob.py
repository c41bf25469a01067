"""Wildcard matching for path segments.

A glob is stored as the literal runs between its wildcards, so ``A*B*`` is
``("A", "B", "")`` and an escaped star never reaches this module as a
wildcard. With ``*`` as the only wildcard, anchoring the first run as a prefix,
the last run as a suffix and placing every middle run at its leftmost
occurrence is both correct and free of backtracking: the cost is bounded by
O(len(text) * len(pattern)) regardless of how many stars the pattern holds.
"""

from __future__ import annotations


def match_glob(parts: tuple[str, ...], text: str) -> bool:
    """Match ``text`` against a glob given as literal runs.

    Args:
        parts: Literal runs separated by wildcards. A single run means the
            pattern holds no wildcard at all.
        text: The candidate segment.

    Returns:
        True if the whole of ``text`` matches.
    """
    if not parts:
        return text == ""

    if len(parts) == 1:
        return text == parts[0]

    first = parts[0]
    last = parts[-1]

    if len(text) < len(first) + len(last):
        return False
    if not text.startswith(first) or not text.endswith(last):
        return False

    pos = len(first)
    end = len(text) - len(last)

    for middle in parts[1:-1]:
        if not middle:
            continue
        idx = text.find(middle, pos, end)
        if idx < 0:
            return False
        pos = idx + len(middle)

    return True
