"""
vibes.compiler.engine - Source checking and compilation entry point

The engine reads VibeScript source, verifies its block and delimiter
structure, and returns a Script describing the top-level definitions.

Blocks are opened by `def`, `class`, `for` and `do`, and by `if`,
`unless`, `while` and `until` when they start a statement. When those
four appear after an expression on the same line they are trailing
modifiers (`return nil if empty?`) and open nothing. Every block closes
with `end`. Delimiters `()`, `[]` and `{}` must nest inside the blocks
that contain them.
"""

from dataclasses import dataclass, field
from typing import Optional

from vibes.compiler.errors import CompileError, ParseError
from vibes.compiler.lexer import (
    EOF,
    IDENT,
    ILLEGAL,
    KEYWORD,
    NEWLINE,
    OP,
    Token,
    tokenize,
)

BLOCK_KEYWORDS = frozenset(["def", "class", "for", "do"])
STATEMENT_BLOCK_KEYWORDS = frozenset(["if", "unless", "while", "until"])
LOOP_KEYWORDS = frozenset(["for", "while", "until"])

OPENERS = {"(": ")", "[": "]", "{": "}"}
CLOSERS = {v: k for k, v in OPENERS.items()}

# Tokens after which a statement keyword starts a new statement
STATEMENT_PREFIX_KEYWORDS = frozenset(
    ["else", "do", "return", "and", "or", "not", "raise", "in"]
)


@dataclass
class Frame:
    """An open block or delimiter waiting for its closing token."""

    opener: Token

    @property
    def is_block(self) -> bool:
        return self.opener.type == KEYWORD

    @property
    def closer(self) -> str:
        if self.is_block:
            return "end"
        return OPENERS[self.opener.value]


@dataclass
class Definition:
    """A top-level function or class declaration."""

    kind: str  # "function" or "class"
    name: str
    line: int
    col: int


@dataclass
class Script:
    """The result of a successful compile."""

    source: str
    definitions: list[Definition] = field(default_factory=list)

    @property
    def functions(self) -> list[str]:
        return [d.name for d in self.definitions if d.kind == "function"]

    @property
    def classes(self) -> list[str]:
        return [d.name for d in self.definitions if d.kind == "class"]


def _starts_statement(prev: Optional[Token]) -> bool:
    if prev is None or prev.type == NEWLINE:
        return True
    if prev.type == OP:
        return prev.value not in (")", "]", "}")
    if prev.type == KEYWORD:
        return prev.value in STATEMENT_PREFIX_KEYWORDS
    return False


class Checker:
    """
    Walks a token stream, tracking open blocks and delimiters.

    Collects every structural problem as a ParseError instead of stopping
    at the first one, recovering by discarding the frames that the
    offending token shows to be unbalanced.
    """

    def __init__(self, source: str):
        self.source = source
        self.tokens = tokenize(source)
        self.stack: list[Frame] = []
        self.errors: list[ParseError] = []
        self.definitions: list[Definition] = []

    def error(self, tok: Token, message: str) -> None:
        self.errors.append(ParseError(tok.line, tok.col, message, self.source))

    def check(self) -> list[ParseError]:
        prev: Optional[Token] = None
        for idx, tok in enumerate(self.tokens):
            if tok.type == ILLEGAL:
                self.error(tok, tok.value)
            elif tok.type == KEYWORD:
                self._keyword(idx, tok, prev)
            elif tok.type == OP:
                self._operator(tok)
            elif tok.type == EOF:
                self._end_of_input(tok)
            prev = tok
        return self.errors

    def _keyword(self, idx: int, tok: Token, prev: Optional[Token]) -> None:
        word = tok.value
        if word == "end":
            self._close_block(tok)
        elif word in BLOCK_KEYWORDS:
            if word == "do" and self._is_loop_do(tok):
                return
            if word in ("def", "class") and not self.stack:
                self._record_definition(idx, tok)
            self.stack.append(Frame(tok))
        elif word in STATEMENT_BLOCK_KEYWORDS and _starts_statement(prev):
            self.stack.append(Frame(tok))

    def _is_loop_do(self, tok: Token) -> bool:
        # `while cond do` / `for x in xs do` on one line: the do belongs
        # to the loop and opens nothing new
        if not self.stack:
            return False
        top = self.stack[-1].opener
        return top.type == KEYWORD and top.value in LOOP_KEYWORDS and top.line == tok.line

    def _record_definition(self, idx: int, tok: Token) -> None:
        name_tok = self._next_significant(idx)
        if name_tok is None or name_tok.type != IDENT:
            return
        kind = "function" if tok.value == "def" else "class"
        self.definitions.append(Definition(kind, name_tok.value, tok.line, tok.col))

    def _next_significant(self, idx: int) -> Optional[Token]:
        for tok in self.tokens[idx + 1 :]:
            if tok.type != NEWLINE:
                return tok if tok.type != EOF else None
        return None

    def _close_block(self, tok: Token) -> None:
        block_idx = self._innermost_block()
        if block_idx is None:
            if self.stack:
                top = self.stack[-1]
                self.error(tok, f"expected '{top.closer}', got 'end'")
                self.stack.clear()
            else:
                self.error(tok, "unexpected 'end'")
            return

        if block_idx != len(self.stack) - 1:
            top = self.stack[-1]
            self.error(tok, f"expected '{top.closer}', got 'end'")
        del self.stack[block_idx:]

    def _innermost_block(self) -> Optional[int]:
        for idx in range(len(self.stack) - 1, -1, -1):
            if self.stack[idx].is_block:
                return idx
        return None

    def _operator(self, tok: Token) -> None:
        if tok.value in OPENERS:
            self.stack.append(Frame(tok))
            return
        if tok.value not in CLOSERS:
            return

        if self.stack and not self.stack[-1].is_block:
            if self.stack[-1].opener.value == CLOSERS[tok.value]:
                self.stack.pop()
                return

        # Find a matching opener that is not hidden behind an open block
        for idx in range(len(self.stack) - 1, -1, -1):
            frame = self.stack[idx]
            if frame.is_block:
                break
            if frame.opener.value == CLOSERS[tok.value]:
                top = self.stack[-1]
                self.error(tok, f"expected '{top.closer}', got '{tok.value}'")
                del self.stack[idx:]
                return

        self.error(tok, f"unexpected '{tok.value}'")

    def _end_of_input(self, tok: Token) -> None:
        while self.stack:
            frame = self.stack.pop()
            opener = frame.opener
            self.error(
                tok,
                f"expected '{frame.closer}' to close '{opener.value}' "
                f"from line {opener.line}, got end of input",
            )


class Engine:
    """
    Compiles VibeScript source text.

    The engine holds no per-compile state, so a single instance can be
    shared by every document of a session.
    """

    def compile(self, source: str) -> Script:
        """
        Compile source text into a Script.

        Raises:
            CompileError: If the source has syntax errors or duplicate
                top-level definitions.
        """
        checker = Checker(source)
        errors = checker.check()
        if errors:
            raise CompileError.from_parse_errors(errors)

        seen: dict[tuple[str, str], Definition] = {}
        for definition in checker.definitions:
            key = (definition.kind, definition.name)
            if key in seen:
                raise CompileError(f"duplicate {definition.kind} {definition.name}")
            seen[key] = definition

        return Script(source=source, definitions=checker.definitions)

    def compile_file(self, path: str) -> Script:
        """Read a file as UTF-8 and compile it."""
        with open(path, encoding="utf-8") as f:
            return self.compile(f.read())
