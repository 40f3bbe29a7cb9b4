"""
vibes.lsp.diagnostics - Compiler errors to LSP diagnostics

The engine reports a failed compile as one error string. Positioned
problems inside it follow a fixed template:

    parse error at <line>:<column>: <message>

This module is the only place that depends on that wording. Each match
becomes one diagnostic; an error string with no match (an internal error,
a duplicate definition) becomes a single diagnostic at the top of the
document.
"""

import re
import string
from dataclasses import dataclass, field
from typing import Any, Optional

from vibes.lsp.lexical import index_to_utf16
from vibes.lsp.protocol import DiagnosticSeverity, make_diagnostic, make_range

DEFAULT_ERROR_TEMPLATE = "parse error at {line}:{column}: {message}"
DEFAULT_SOURCE = "vibes-lsp"

_FIELD_PATTERNS = {
    "line": r"(?P<line>[0-9]+)",
    "column": r"(?P<column>[0-9]+)",
    "message": r"(?P<message>[^\n]+)",
}


def compile_error_pattern(template: str = DEFAULT_ERROR_TEMPLATE) -> "re.Pattern[str]":
    """
    Build the regex matching one positioned error from a template.

    The template must contain the fields {line}, {column} and {message};
    everything else is matched literally. The message runs to the end of
    its line, so code frames printed under an error are not captured.
    """
    parts = []
    fields = set()
    for literal, name, format_spec, conversion in string.Formatter().parse(template):
        parts.append(re.escape(literal))
        if name is None:
            continue
        if name not in _FIELD_PATTERNS or format_spec or conversion or name in fields:
            raise ValueError(f"unsupported field {{{name}}} in error template {template!r}")
        fields.add(name)
        parts.append(_FIELD_PATTERNS[name])

    missing = set(_FIELD_PATTERNS) - fields
    if missing:
        raise ValueError(
            f"error template {template!r} is missing {', '.join(sorted(missing))}"
        )
    return re.compile("".join(parts))


DEFAULT_ERROR_PATTERN = compile_error_pattern()


@dataclass(frozen=True)
class PositionedError:
    """One error occurrence; line and column are 1-based as reported."""

    line: int
    column: int
    message: str


@dataclass
class TranslatedError:
    """
    Outcome of scanning an engine error string.

    Exactly one of the two is populated: the positioned occurrences, or
    the raw message when nothing matched the template.
    """

    positioned: list[PositionedError] = field(default_factory=list)
    fallback: Optional[str] = None


def translate_error(
    error: str, pattern: "re.Pattern[str]" = DEFAULT_ERROR_PATTERN
) -> TranslatedError:
    positioned = [
        PositionedError(int(m.group("line")), int(m.group("column")), m.group("message"))
        for m in pattern.finditer(error)
    ]
    if not positioned:
        return TranslatedError(fallback=error)
    return TranslatedError(positioned=positioned)

def _diagnostic_at(line: int, character: int, message: str, source: str) -> dict[str, Any]:
    return make_diagnostic(
        range_=make_range(line, character, line, character + 1),
        message=message,
        severity=DiagnosticSeverity.ERROR,
        source=source,
    )


def _utf16_character(lines: list[str], line: int, index: int) -> int:
    """Map a code point column on a line to its UTF-16 offset."""
    if line >= len(lines):
        return index
    text = lines[line]
    # Columns past the end of the line (end of input) count one unit each
    return index_to_utf16(text, index) + max(0, index - len(text))


def render_diagnostics(
    translated: TranslatedError, text: str = "", source: str = DEFAULT_SOURCE
) -> list[dict[str, Any]]:
    """
    Turn a translated error into LSP Diagnostic objects.

    Engine columns count code points; text is the compiled document, used
    to convert them to the UTF-16 offsets clients expect.
    """
    if translated.fallback is not None:
        return [_diagnostic_at(0, 0, translated.fallback, source)]
    lines = text.split("\n")
    diagnostics = []
    for err in translated.positioned:
        line = max(0, err.line - 1)
        character = _utf16_character(lines, line, max(0, err.column - 1))
        diagnostics.append(_diagnostic_at(line, character, err.message, source))
    return diagnostics


def diagnostics_for_source(
    engine: Any,
    text: str,
    pattern: "re.Pattern[str]" = DEFAULT_ERROR_PATTERN,
    source: str = DEFAULT_SOURCE,
) -> list[dict[str, Any]]:
    """
    Compile text and describe the outcome as diagnostics.

    A successful compile yields an empty list, which tells the client to
    clear any diagnostics it is showing for the document.
    """
    try:
        engine.compile(text)
    except Exception as e:
        return render_diagnostics(translate_error(str(e), pattern), text, source)
    return []
