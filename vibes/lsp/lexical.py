"""
vibes.lsp.lexical - Word boundaries and vocabulary tables

Word detection works on a single line of text. Positions coming from the
client are UTF-16 code unit offsets (the LSP default encoding); they are
converted to code point indices before any character is inspected, and
converted back when a range is reported.
"""

from dataclasses import dataclass
from typing import Optional

KEYWORDS = frozenset(
    [
        "and",
        "break",
        "class",
        "def",
        "else",
        "elsif",
        "end",
        "false",
        "for",
        "if",
        "in",
        "next",
        "nil",
        "or",
        "raise",
        "require",
        "rescue",
        "return",
        "true",
        "unless",
        "until",
        "while",
    ]
)

BUILTINS = frozenset(
    [
        "assert",
        "money",
        "money_cents",
        "now",
        "random_id",
        "to_float",
        "to_int",
        "uuid",
        "JSON",
        "Regex",
        "Time",
    ]
)

# Every completion label, sorted by code point
COMPLETION_LABELS = tuple(sorted(KEYWORDS | BUILTINS))


@dataclass(frozen=True)
class WordSpan:
    """A word on a line; start and end are code point indices."""

    text: str
    start: int
    end: int


def is_word_char(c: str) -> bool:
    """Letters, decimal digits, and the identifier suffixes _ ? !"""
    return c.isalpha() or c.isdecimal() or c in "_?!"


def classify_word(word: str) -> str:
    if word in KEYWORDS:
        return "keyword"
    if word in BUILTINS:
        return "builtin"
    return "symbol"


def _utf16_width(c: str) -> int:
    return 2 if ord(c) > 0xFFFF else 1


def utf16_to_index(text: str, offset: int) -> int:
    """
    Convert a UTF-16 code unit offset into a code point index of text.

    An offset that lands between the two halves of a surrogate pair maps to
    that character. Offsets past the end clamp to len(text).
    """
    if offset <= 0:
        return 0
    units = 0
    for idx, c in enumerate(text):
        width = _utf16_width(c)
        if units + width > offset:
            return idx
        units += width
    return len(text)


def index_to_utf16(text: str, index: int) -> int:
    """Convert a code point index of text into a UTF-16 code unit offset."""
    return sum(_utf16_width(c) for c in text[:index])


def word_at_position(source: str, line: int, character: int) -> Optional[WordSpan]:
    """
    Find the word under (or immediately before) a cursor.

    Args:
        source: Full document text.
        line: 0-based line number.
        character: 0-based UTF-16 offset within the line.

    Returns:
        The word span, or None when the cursor is not on a word.
    """
    lines = source.split("\n")
    if line < 0 or line >= len(lines):
        return None

    text = lines[line]
    if not text:
        return None

    cursor = utf16_to_index(text, character)
    # Hovering right after the last character still finds the word
    if cursor == len(text):
        cursor -= 1

    if not is_word_char(text[cursor]):
        if cursor > 0 and is_word_char(text[cursor - 1]):
            cursor -= 1
        else:
            return None

    start = cursor
    while start > 0 and is_word_char(text[start - 1]):
        start -= 1

    end = cursor
    while end < len(text) and is_word_char(text[end]):
        end += 1

    return WordSpan(text[start:end], start, end)
