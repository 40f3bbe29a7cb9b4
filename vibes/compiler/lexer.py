"""
vibes.compiler.lexer - Tokenizer for VibeScript source code

Turns source text into a flat list of Tokens carrying 1-based line and
column positions (columns count code points). Newlines are kept as
NEWLINE tokens because statement boundaries decide whether `if`, `unless`,
`while` and `until` open a block or act as trailing modifiers.

The tokenizer never raises: problems such as an unterminated string or a
stray character become ILLEGAL tokens whose value is the error message,
so the checker can report all of them in one pass.
"""

from dataclasses import dataclass

# Token types
IDENT = "IDENT"
KEYWORD = "KEYWORD"
INT = "INT"
FLOAT = "FLOAT"
STRING = "STRING"
SYMBOL = "SYMBOL"
IVAR = "IVAR"
CLASS_VAR = "CLASS_VAR"
OP = "OP"
NEWLINE = "NEWLINE"
ILLEGAL = "ILLEGAL"
EOF = "EOF"

# Reserved words recognized by the engine
RESERVED = frozenset(
    [
        "and",
        "break",
        "class",
        "def",
        "do",
        "else",
        "elsif",
        "end",
        "export",
        "false",
        "for",
        "if",
        "in",
        "next",
        "nil",
        "not",
        "or",
        "private",
        "raise",
        "require",
        "rescue",
        "return",
        "self",
        "true",
        "unless",
        "until",
        "while",
        "yield",
    ]
)

TWO_CHAR_OPS = frozenset(
    ["==", "!=", "<=", ">=", "&&", "||", "=>", "->", "..", "::", "+=", "-="]
)
ONE_CHAR_OPS = frozenset("+-*/%=<>!.,:;|?()[]{}")


@dataclass
class Token:
    """A token with its source location."""

    type: str
    value: str
    line: int  # 1-based line number
    col: int  # 1-based column, in code points

    def __repr__(self):
        return f"Token({self.type}, {self.value!r}, {self.line}:{self.col})"


def is_identifier_start(c: str) -> bool:
    return c.isalpha() or c == "_"


def is_identifier_char(c: str) -> bool:
    return c.isalnum() or c == "_"


def tokenize(src: str) -> list[Token]:
    """
    Tokenize source code into a list of Tokens ending with an EOF token.
    """
    tokens = []
    i = 0
    n = len(src)
    line = 1
    line_start = 0

    def current_col():
        return i - line_start + 1

    while i < n:
        c = src[i]
        if c == "\n":
            tokens.append(Token(NEWLINE, "\n", line, current_col()))
            i += 1
            line += 1
            line_start = i
            continue
        if c in " \t\r":
            i += 1
            continue
        if c == "#":
            # comment to end of line
            while i < n and src[i] != "\n":
                i += 1
            continue

        tok_line = line
        tok_col = current_col()

        if c == '"':
            i += 1
            buf = []
            terminated = False
            while i < n:
                ch = src[i]
                if ch == "\\" and i + 1 < n:
                    esc = src[i + 1]
                    buf.append({"n": "\n", "t": "\t"}.get(esc, esc))
                    i += 2
                    if esc == "\n":
                        line += 1
                        line_start = i
                    continue
                if ch == '"':
                    i += 1
                    terminated = True
                    break
                if ch == "\n":
                    line += 1
                    line_start = i + 1
                buf.append(ch)
                i += 1
            if terminated:
                tokens.append(Token(STRING, "".join(buf), tok_line, tok_col))
            else:
                tokens.append(Token(ILLEGAL, "unterminated string", tok_line, tok_col))
            continue

        if c == "@":
            j = i + 1
            kind = IVAR
            if j < n and src[j] == "@":
                j += 1
                kind = CLASS_VAR
            start = j
            while j < n and is_identifier_char(src[j]):
                j += 1
            if j == start:
                tokens.append(Token(ILLEGAL, "unexpected character '@'", tok_line, tok_col))
                i += 1
                continue
            tokens.append(Token(kind, src[start:j], tok_line, tok_col))
            i = j
            continue

        if c == ":" and i + 1 < n and is_identifier_start(src[i + 1]):
            j = i + 1
            while j < n and is_identifier_char(src[j]):
                j += 1
            tokens.append(Token(SYMBOL, src[i + 1 : j], tok_line, tok_col))
            i = j
            continue

        if is_identifier_start(c):
            j = i
            while j < n and is_identifier_char(src[j]):
                j += 1
            # Trailing ? or ! belongs to the name (valid?, save!) unless it
            # starts a != or ?= style operator
            if j < n and src[j] in "?!" and not (j + 1 < n and src[j + 1] == "="):
                j += 1
            word = src[i:j]
            tokens.append(Token(KEYWORD if word in RESERVED else IDENT, word, tok_line, tok_col))
            i = j
            continue

        if c.isdigit():
            j = i
            is_float = False
            while j < n:
                ch = src[j]
                if ch.isdigit():
                    j += 1
                elif ch == "_" and j + 1 < n and src[j + 1].isdigit():
                    j += 1
                elif ch == "." and not is_float and j + 1 < n and src[j + 1].isdigit():
                    is_float = True
                    j += 1
                else:
                    break
            tokens.append(Token(FLOAT if is_float else INT, src[i:j].replace("_", ""), tok_line, tok_col))
            i = j
            continue

        pair = src[i : i + 2]
        if pair in TWO_CHAR_OPS:
            tokens.append(Token(OP, pair, tok_line, tok_col))
            i += 2
            continue
        if c in ONE_CHAR_OPS:
            tokens.append(Token(OP, c, tok_line, tok_col))
            i += 1
            continue

        tokens.append(Token(ILLEGAL, f"unexpected character {c!r}", tok_line, tok_col))
        i += 1

    tokens.append(Token(EOF, "", line, current_col()))
    return tokens
