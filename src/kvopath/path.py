"""Property path tokenizer.

Turns ``a.b[0]['c']``-style paths into the ordered list of keys a caller would
look up by hand:

    tokenize("a.b.c")          # ['a', 'b', 'c']
    tokenize("a['b']['c']")    # ['a', 'b', 'c']
    tokenize("a.b[0].c")       # ['a', 'b', '0', 'c']

Grammar:

    Path        := Segment0 (DotSegment | BracketSeg)*
    Segment0    := [A-Za-z0-9_$]+
    DotSegment  := '.' [A-Za-z_$][A-Za-z0-9_$]*
    BracketSeg  := '[' [+-]?[0-9]+ ']'
                 | '[' Quote StringBody Quote ']'

Bracketed strings may hold any character except an unescaped closing quote.
A backslash escapes the next quote or backslash. After ``]`` only ``.``, ``[``
or the end of the path may follow.

The scan is a single left-to-right pass with an explicit cursor. Every
failure raises MalformedPathError pointing at the offending index.
"""

from __future__ import annotations

import functools
import re

from kvopath.errors import MalformedPathError

DELIMITERS = ".[]"

_FIRST_CHAR = re.compile(r"[A-Za-z0-9_$]")
_IDENTIFIER = re.compile(r"[A-Za-z_$][A-Za-z0-9_$]*\Z")
_IDENTIFIER_START = re.compile(r"[A-Za-z_$]")
_NUMBER_SEGMENT = re.compile(r"\[([+-]?\d+)\]")
_ESCAPE = re.compile(r"\\(['\"\\])")
_QUOTES = ("'", '"')


def tokenize(path: str) -> list[str]:
    """Split a property path into its keys.

    Raises MalformedPathError if the path breaks the grammar. Nothing is
    mutated either way.
    """
    if not isinstance(path, str):
        raise TypeError(f"property path must be a str, not {type(path).__name__}")
    return list(_tokenize(path))


def is_path(key: object) -> bool:
    """True if key is a string holding more than a single plain key."""
    return isinstance(key, str) and any(d in key for d in DELIMITERS)


@functools.lru_cache(maxsize=1024)
def _tokenize(path: str) -> tuple[str, ...]:
    end = _next_delimiter(path, 0)
    first = path[:end]
    if not first:
        raise MalformedPathError(path, 0, "a property", path[:1])
    for offset, char in enumerate(first):
        if not _FIRST_CHAR.match(char):
            raise MalformedPathError(path, offset, "a property", char)

    tokens = [first]
    cursor = end
    while cursor < len(path):
        if path[cursor] == ".":
            token, consumed = _dot_segment(path, cursor)
        else:
            token, consumed = _bracket_segment(path, cursor)
        tokens.append(token)
        cursor += consumed
    return tuple(tokens)


def _next_delimiter(path: str, start: int) -> int:
    """Index of the first delimiter at or after start, or len(path)."""
    for index in range(start, len(path)):
        if path[index] in DELIMITERS:
            return index
    return len(path)


def _char_at(path: str, index: int) -> str:
    return path[index] if index < len(path) else ""


def _dot_segment(path: str, cursor: int) -> tuple[str, int]:
    """Scan ``.name`` starting at the dot. Returns (name, consumed)."""
    start = cursor + 1
    end = _next_delimiter(path, start)
    name = path[start:end]
    if not _IDENTIFIER.match(name):
        index = start
        if name and _IDENTIFIER_START.match(name[0]):
            index = start + next(
                i for i, c in enumerate(name) if not _FIRST_CHAR.match(c)
            )
        raise MalformedPathError(path, index, "an identifier", _char_at(path, index))
    return name, end - cursor


def _bracket_segment(path: str, cursor: int) -> tuple[str, int]:
    """Scan ``[0]``, ``['key']`` or ``["key"]``. Returns (key, consumed)."""
    if path[cursor] == "]":
        raise MalformedPathError(path, cursor, "'['", "]")

    number = _NUMBER_SEGMENT.match(path, cursor)
    if number:
        token = number.group(1)
        end = number.end()
    else:
        quote_at = cursor + 1
        quote = _char_at(path, quote_at)
        if quote not in _QUOTES:
            raise MalformedPathError(path, quote_at, "''', '\"', or a number", quote)
        close = _closing_quote(path, quote_at + 1, quote)
        if close == -1:
            raise MalformedPathError(path, len(path), f"closing {quote}", "")
        if _char_at(path, close + 1) != "]":
            raise MalformedPathError(path, close + 1, "']'", _char_at(path, close + 1))
        token = _ESCAPE.sub(r"\1", path[quote_at + 1:close])
        end = close + 2

    following = _char_at(path, end)
    if following not in ("", ".", "["):
        raise MalformedPathError(path, end, "'[', '.', or EOS", following)
    return token, end - cursor


def _closing_quote(path: str, start: int, quote: str) -> int:
    """Index of the first unescaped quote at or after start, or -1."""
    index = start
    while index < len(path):
        char = path[index]
        if char == "\\":
            index += 2
        elif char == quote:
            return index
        else:
            index += 1
    return -1
