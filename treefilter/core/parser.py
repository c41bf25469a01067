"""Compiler for tree-node filter strings.

A filter selects test nodes by path shape and by properties::

    /MyNamespace/*Tests/(Add*|Sub*)[Category=Fast&Owner!=ci]
    /MyNamespace/**

Compilation runs in two stages. The whole filter is first cut into raw
segments and an optional trailing ``[...]`` predicate, honouring escapes and
parentheses. Each piece is then tokenized and parsed by a small
recursive-descent parser into the trees of :mod:`treefilter.core.expressions`.
Any malformed input raises :class:`PatternSyntaxError`; nothing partial is
ever returned.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum, auto
from typing import Callable, Optional

from treefilter.core.expressions import (
    And,
    Equals,
    Expression,
    FilterPattern,
    Glob,
    Literal,
    Not,
    NotEquals,
    Or,
)
from treefilter.core.lexical import ESCAPE_CHAR, PATH_SEPARATOR, RECURSIVE_TAIL, WILDCARD

logger = logging.getLogger(__name__)

# Bound on nested '!' and '(' so that compiled trees stay well within the
# interpreter recursion limit during evaluation
MAX_NESTING_DEPTH = 100


class PatternSyntaxError(ValueError):
    """Raised when a filter string cannot be compiled.

    Attributes:
        message: Description of the problem.
        source: The filter string being compiled (if available).
        position: 0-based index into ``source`` where the problem was found.
    """

    def __init__(
        self,
        message: str,
        source: Optional[str] = None,
        position: Optional[int] = None,
    ):
        self.message = message
        self.source = source
        self.position = position

        full_message = message
        if position is not None:
            full_message += f" at position {position}"
        if source is not None:
            full_message += f" in {source!r}"

        super().__init__(full_message)


# =============================================================================
# Stage 1: cut the filter into segments and predicate
# =============================================================================


@dataclass(frozen=True)
class _RawPiece:
    """A slice of the source with its offset, still escaped."""

    text: str
    start: int


def _split_filter(source: str) -> tuple[list[_RawPiece], Optional[_RawPiece]]:
    """Split a filter into raw path segments and an optional predicate."""
    if not source:
        raise PatternSyntaxError("Empty filter expression", source, 0)

    if source[0] != PATH_SEPARATOR:
        if source[0] == "[":
            raise PatternSyntaxError(
                "Property predicate must follow a path", source, 0
            )
        raise PatternSyntaxError("Filter must start with '/'", source, 0)

    segments: list[_RawPiece] = []
    predicate: Optional[_RawPiece] = None
    length = len(source)
    segment_start = 1
    depth = 0
    pos = 1

    while pos < length:
        ch = source[pos]

        if ch == ESCAPE_CHAR:
            if pos + 1 >= length:
                raise PatternSyntaxError("Trailing escape character", source, pos)
            pos += 2
            continue

        if ch == "(":
            depth += 1
        elif ch == ")":
            depth -= 1
            if depth < 0:
                raise PatternSyntaxError(
                    "Unbalanced parentheses: unexpected ')'", source, pos
                )
        elif ch == PATH_SEPARATOR:
            if depth > 0:
                raise PatternSyntaxError(
                    "'/' is not allowed inside parentheses", source, pos
                )
            segments.append(_RawPiece(source[segment_start:pos], segment_start))
            segment_start = pos + 1
        elif ch == "[":
            if depth > 0:
                raise PatternSyntaxError(
                    "Property predicate is not allowed inside parentheses", source, pos
                )
            segments.append(_RawPiece(source[segment_start:pos], segment_start))
            predicate = _read_predicate(source, pos)
            break
        elif ch == "]":
            raise PatternSyntaxError("Unexpected ']'", source, pos)

        pos += 1
    else:
        if depth > 0:
            raise PatternSyntaxError(
                "Unbalanced parentheses: missing ')'", source, length
            )
        segments.append(_RawPiece(source[segment_start:], segment_start))

    return segments, predicate


def _read_predicate(source: str, open_pos: int) -> _RawPiece:
    """Read the ``[...]`` clause opening at ``open_pos``.

    The clause must be non-empty, hold no nested brackets and close the
    filter.
    """
    length = len(source)
    pos = open_pos + 1
    close_pos = -1

    while pos < length:
        ch = source[pos]
        if ch == ESCAPE_CHAR:
            if pos + 1 >= length:
                raise PatternSyntaxError("Trailing escape character", source, pos)
            pos += 2
            continue
        if ch == "[":
            raise PatternSyntaxError(
                "Nested '[' is not allowed in a property predicate", source, pos
            )
        if ch == "]":
            close_pos = pos
            break
        pos += 1

    if close_pos < 0:
        raise PatternSyntaxError(
            "Unterminated property predicate: missing ']'", source, open_pos
        )

    if close_pos == open_pos + 1:
        raise PatternSyntaxError("Empty property predicate", source, open_pos)

    if close_pos + 1 < length:
        if source[close_pos + 1] == "[":
            raise PatternSyntaxError(
                "Only one property predicate is allowed", source, close_pos + 1
            )
        raise PatternSyntaxError(
            "Property predicate must be at the end of the filter", source, close_pos + 1
        )

    return _RawPiece(source[open_pos + 1 : close_pos], open_pos + 1)


# =============================================================================
# Stage 2: tokenize a segment or predicate
# =============================================================================


class _TokenType(Enum):
    """Token types for segment and predicate expressions."""

    TEXT = auto()  # Literal text, possibly with wildcards
    AND = auto()  # &
    OR = auto()  # |
    NOT = auto()  # !
    LPAREN = auto()  # (
    RPAREN = auto()  # )
    EQ = auto()  # =
    NEQ = auto()  # !=
    EOF = auto()  # End of input


@dataclass
class _Token:
    """A token with its absolute position in the filter string."""

    type: _TokenType
    value: str
    pos: int
    # Literal runs between unescaped wildcards (segments only)
    parts: tuple[str, ...] = ()


_SINGLE_CHAR_TOKENS = {
    "(": _TokenType.LPAREN,
    ")": _TokenType.RPAREN,
    "&": _TokenType.AND,
    "|": _TokenType.OR,
}


class _Tokenizer:
    """Tokenizer shared by segment and predicate expressions.

    In segment mode an unescaped ``*`` is a wildcard; in property mode ``=``
    and ``!=`` are operators and ``*`` is ordinary text.
    """

    def __init__(self, source: str, piece: _RawPiece, property_mode: bool):
        self.source = source
        self.text = piece.text
        self.offset = piece.start
        self.property_mode = property_mode
        self.pos = 0
        self.length = len(piece.text)

    def _is_stop_char(self, ch: str) -> bool:
        if ch in _SINGLE_CHAR_TOKENS or ch == "!":
            return True
        return self.property_mode and ch == "="

    def _error(self, message: str, pos: int) -> PatternSyntaxError:
        return PatternSyntaxError(message, self.source, self.offset + pos)

    def _read_text(self) -> _Token:
        """Read a text run, resolving escapes and splitting on wildcards."""
        start_pos = self.pos
        runs: list[str] = []
        current: list[str] = []

        while self.pos < self.length:
            ch = self.text[self.pos]
            if ch == ESCAPE_CHAR:
                if self.pos + 1 >= self.length:
                    raise self._error("Trailing escape character", self.pos)
                current.append(self.text[self.pos + 1])
                self.pos += 2
                continue
            if self._is_stop_char(ch):
                break
            if ch == WILDCARD and not self.property_mode:
                next_pos = self.pos + 1
                if next_pos < self.length and self.text[next_pos] == WILDCARD:
                    raise self._error(
                        "'**' is only allowed as an entire final segment", self.pos
                    )
                runs.append("".join(current))
                current = []
                self.pos += 1
                continue
            current.append(ch)
            self.pos += 1

        runs.append("".join(current))
        value = WILDCARD.join(runs)
        return _Token(_TokenType.TEXT, value, self.offset + start_pos, tuple(runs))

    def tokenize(self) -> list[_Token]:
        """Tokenize the whole piece."""
        tokens: list[_Token] = []

        while self.pos < self.length:
            ch = self.text[self.pos]
            start_pos = self.offset + self.pos

            if ch in _SINGLE_CHAR_TOKENS:
                tokens.append(_Token(_SINGLE_CHAR_TOKENS[ch], ch, start_pos))
                self.pos += 1
            elif ch == "!":
                if (
                    self.property_mode
                    and self.pos + 1 < self.length
                    and self.text[self.pos + 1] == "="
                ):
                    tokens.append(_Token(_TokenType.NEQ, "!=", start_pos))
                    self.pos += 2
                else:
                    tokens.append(_Token(_TokenType.NOT, "!", start_pos))
                    self.pos += 1
            elif ch == "=" and self.property_mode:
                tokens.append(_Token(_TokenType.EQ, "=", start_pos))
                self.pos += 1
            else:
                tokens.append(self._read_text())

        tokens.append(_Token(_TokenType.EOF, "", self.offset + self.length))
        return tokens


# =============================================================================
# Stage 3: recursive descent
# =============================================================================


class _Parser:
    """Recursive descent parser for one segment or one predicate.

    Precedence from loosest to tightest: ``|``, ``&``, ``!``. Both binary
    operators are left-associative. ``parse_leaf`` builds the leaf node and
    differs between segments and predicates.
    """

    def __init__(
        self,
        tokens: list[_Token],
        source: str,
        parse_leaf: Callable[["_Parser"], Expression],
    ):
        self.tokens = tokens
        self.source = source
        self.pos = 0
        self._parse_leaf = parse_leaf

    def current(self) -> _Token:
        """Get current token."""
        return self.tokens[self.pos]

    def advance(self) -> _Token:
        """Advance to next token and return previous."""
        token = self.tokens[self.pos]
        if self.pos < len(self.tokens) - 1:
            self.pos += 1
        return token

    def error(self, message: str, token: _Token) -> PatternSyntaxError:
        return PatternSyntaxError(message, self.source, token.pos)

    def parse(self) -> Expression:
        """Parse the token stream into a single expression."""
        if self.current().type == _TokenType.EOF:
            raise self.error("Empty expression", self.current())

        expr = self._parse_or_expr(0)

        token = self.current()
        if token.type != _TokenType.EOF:
            if token.type == _TokenType.RPAREN:
                raise self.error("Unbalanced parentheses: unexpected ')'", token)
            raise self.error(f"Unexpected {_describe(token)}", token)

        return expr

    def _parse_or_expr(self, depth: int) -> Expression:
        """Parse OR expressions (lowest precedence)."""
        left = self._parse_and_expr(depth)

        while self.current().type == _TokenType.OR:
            self.advance()  # consume |
            right = self._parse_and_expr(depth)
            left = Or(left, right)

        return left

    def _parse_and_expr(self, depth: int) -> Expression:
        """Parse AND expressions (medium precedence)."""
        left = self._parse_unary(depth)

        while self.current().type == _TokenType.AND:
            self.advance()  # consume &
            right = self._parse_unary(depth)
            left = And(left, right)

        return left

    def _parse_unary(self, depth: int) -> Expression:
        """Parse NOT, parenthesized groups and leaves (highest precedence)."""
        token = self.current()

        if token.type in (_TokenType.NOT, _TokenType.LPAREN):
            if depth >= MAX_NESTING_DEPTH:
                raise self.error(
                    f"Expression nested deeper than {MAX_NESTING_DEPTH} levels", token
                )

        if token.type == _TokenType.NOT:
            self.advance()  # consume !
            return Not(self._parse_unary(depth + 1))

        if token.type == _TokenType.LPAREN:
            self.advance()  # consume (
            if self.current().type == _TokenType.RPAREN:
                raise self.error("Empty parentheses", self.current())
            expr = self._parse_or_expr(depth + 1)
            closing = self.current()
            if closing.type != _TokenType.RPAREN:
                raise self.error("Unbalanced parentheses: expected ')'", closing)
            self.advance()  # consume )
            return expr

        if token.type == _TokenType.EOF:
            raise self.error("Unexpected end of expression", token)

        if token.type in (_TokenType.AND, _TokenType.OR, _TokenType.RPAREN):
            raise self.error(f"Missing operand before {_describe(token)}", token)

        return self._parse_leaf(self)


def _describe(token: _Token) -> str:
    if token.type == _TokenType.EOF:
        return "end of expression"
    return f"'{token.value}'"


def _parse_segment_leaf(parser: _Parser) -> Expression:
    """A segment leaf is a literal or a glob."""
    token = parser.current()
    if token.type != _TokenType.TEXT:
        raise parser.error(f"Unexpected {_describe(token)}", token)
    parser.advance()

    if len(token.parts) == 1:
        return Literal(token.parts[0])
    return Glob(token.parts)


def _parse_property_leaf(parser: _Parser) -> Expression:
    """A predicate leaf is ``key=value`` or ``key!=value``."""
    key_token = parser.current()
    if key_token.type in (_TokenType.EQ, _TokenType.NEQ):
        raise parser.error(
            f"Missing property name before '{key_token.value}'", key_token
        )
    if key_token.type != _TokenType.TEXT:
        raise parser.error(f"Unexpected {_describe(key_token)}", key_token)
    parser.advance()

    op_token = parser.current()
    if op_token.type not in (_TokenType.EQ, _TokenType.NEQ):
        raise parser.error(
            f"Expected '=' or '!=' after property name '{key_token.value}'", op_token
        )
    parser.advance()

    value_token = parser.current()
    if value_token.type != _TokenType.TEXT:
        raise parser.error(f"Missing value after '{op_token.value}'", value_token)
    parser.advance()

    if op_token.type == _TokenType.EQ:
        return Equals(key_token.value, value_token.value)
    return NotEquals(key_token.value, value_token.value)


def _compile_piece(source: str, piece: _RawPiece, property_mode: bool) -> Expression:
    tokens = _Tokenizer(source, piece, property_mode).tokenize()
    leaf = _parse_property_leaf if property_mode else _parse_segment_leaf
    return _Parser(tokens, source, leaf).parse()


# =============================================================================
# Public API
# =============================================================================


def compile_pattern(source: str) -> FilterPattern:
    """Compile a filter string into a :class:`FilterPattern`.

    Args:
        source: The filter, e.g. ``"/Namespace/*Tests/**[Category=Fast]"``.

    Returns:
        An immutable compiled pattern.

    Raises:
        PatternSyntaxError: If the filter is malformed.

    Examples:
        >>> pattern = compile_pattern("/A/(B|C)")
        >>> len(pattern.segments)
        2

        >>> compile_pattern("/**/A")
        Traceback (most recent call last):
        ...
        treefilter.core.parser.PatternSyntaxError: '**' is only allowed as the last segment at position 1 in '/**/A'
    """
    if not isinstance(source, str):
        raise PatternSyntaxError(f"Filter must be a string, got {type(source).__name__}")

    raw_segments, raw_predicate = _split_filter(source)

    if raw_predicate is not None and raw_segments[-1].text == "":
        raise PatternSyntaxError(
            "Property predicate must follow a path segment",
            source,
            raw_predicate.start - 1,
        )

    segments: list[Expression] = []
    is_recursive_tail = False
    last_index = len(raw_segments) - 1

    for index, piece in enumerate(raw_segments):
        if piece.text == "":
            raise PatternSyntaxError("Empty path segment", source, piece.start)

        if piece.text == RECURSIVE_TAIL:
            if index != last_index:
                raise PatternSyntaxError(
                    "'**' is only allowed as the last segment", source, piece.start
                )
            is_recursive_tail = True
            continue

        segments.append(_compile_piece(source, piece, property_mode=False))

    predicate: Optional[Expression] = None
    if raw_predicate is not None:
        predicate = _compile_piece(source, raw_predicate, property_mode=True)

    pattern = FilterPattern(
        source=source,
        segments=tuple(segments),
        is_recursive_tail=is_recursive_tail,
        property_predicate=predicate,
    )
    logger.debug(
        "Compiled filter %r: %d segment(s), recursive tail=%s, predicate=%s",
        source,
        len(pattern.segments),
        is_recursive_tail,
        predicate is not None,
    )
    return pattern
