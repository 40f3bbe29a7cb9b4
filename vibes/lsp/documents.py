"""
vibes.lsp.documents - Open document tracking

The server keeps the full text of every open document. Synchronization is
full-document only: each change replaces the whole text.
"""

from dataclasses import dataclass, field
from typing import Optional

from vibes.lsp.lexical import WordSpan, word_at_position


@dataclass
class TextDocument:
    """Represents an open text document."""

    uri: str
    content: str
    version: Optional[int] = None

    def get_line(self, line: int) -> str:
        """Get a specific line (0-based)."""
        lines = self.content.split("\n")
        if 0 <= line < len(lines):
            return lines[line]
        return ""

    def get_word_at_position(self, line: int, character: int) -> Optional[WordSpan]:
        """
        Get the word at the given position.

        Returns the word under or before the cursor.
        """
        return word_at_position(self.content, line, character)


@dataclass
class DocumentStore:
    """
    Open documents keyed by URI.

    Owned by a single server; one store per client connection.
    """

    _documents: dict[str, TextDocument] = field(default_factory=dict)

    def open(self, uri: str, content: str, version: Optional[int] = None) -> TextDocument:
        doc = TextDocument(uri=uri, content=content, version=version)
        self._documents[uri] = doc
        return doc

    def update(self, uri: str, content: str, version: Optional[int] = None) -> TextDocument:
        """Replace the text of a document, creating it if it was never opened."""
        doc = self._documents.get(uri)
        if doc is None:
            return self.open(uri, content, version)
        doc.content = content
        if version is not None:
            doc.version = version
        return doc

    def close(self, uri: str) -> bool:
        """Forget a document. Returns False if it was not open."""
        return self._documents.pop(uri, None) is not None

    def get(self, uri: str) -> Optional[TextDocument]:
        return self._documents.get(uri)
