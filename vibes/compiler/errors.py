"""
vibes.compiler.errors - Compile error types

A failed compile surfaces as a single CompileError whose string form is
what editors and the CLI show to users. Positioned problems found while
reading the source are ParseErrors; their string form always starts with

    parse error at <line>:<column>: <message>

followed by a code frame pointing at the offending column.
"""

from typing import Optional


def format_code_frame(source: str, line: int, column: int) -> str:
    """
    Render the source line at (line, column) with a caret under the column.

    Both line and column are 1-based. Returns "" when the line does not
    exist in the source.
    """
    if not source or line <= 0:
        return ""

    lines = source.split("\n")
    if line > len(lines):
        return ""

    line_text = lines[line - 1]
    if column <= 0:
        column = 1
    if column > len(line_text) + 1:
        column = len(line_text) + 1

    line_label = str(line)
    gutter_pad = " " * len(line_label)
    caret_pad = " " * (column - 1)

    return (
        f"  --> line {line}, column {column}\n"
        f" {line_label} | {line_text}\n"
        f" {gutter_pad} | {caret_pad}^"
    )


class ParseError(Exception):
    """A positioned syntax problem (1-based line and column)."""

    def __init__(self, line: int, column: int, message: str, source: str = ""):
        super().__init__(message)
        self.line = line
        self.column = column
        self.message = message
        self.source = source

    def __str__(self) -> str:
        text = f"parse error at {self.line}:{self.column}: {self.message}"
        frame = format_code_frame(self.source, self.line, self.column)
        if frame:
            text += "\n" + frame
        return text


class CompileError(Exception):
    """
    Raised by Engine.compile when the source cannot be compiled.

    Several parse errors are reported together, separated by a blank line.
    Errors that are not tied to a position (duplicate definitions) carry
    only a message.
    """

    def __init__(self, message: str, errors: Optional[list[ParseError]] = None):
        super().__init__(message)
        self.message = message
        self.errors = errors or []

    @classmethod
    def from_parse_errors(cls, errors: list[ParseError]) -> "CompileError":
        return cls("\n\n".join(str(e) for e in errors), errors)

    def __str__(self) -> str:
        return self.message
