"""
vibes.lsp.server - VibeScript Language Server Implementation

This module provides the main LSP server for VibeScript. It compiles open
documents with the engine and reports the outcome to the editor.

Features:
- Diagnostics (syntax errors reported by the compiler)
- Hover (keyword / builtin / symbol classification)
- Code completion (keywords and builtins)
- Full-document synchronization

Usage:
    The server is started via `vibes lsp` and communicates over stdio.
"""

import sys
import traceback
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional

from vibes import __version__
from vibes.compiler import Engine
from vibes.lsp.diagnostics import (
    DEFAULT_ERROR_TEMPLATE,
    DEFAULT_SOURCE,
    compile_error_pattern,
    diagnostics_for_source,
)
from vibes.lsp.documents import DocumentStore
from vibes.lsp.lexical import (
    COMPLETION_LABELS,
    KEYWORDS,
    classify_word,
    index_to_utf16,
)
from vibes.lsp.protocol import (
    CompletionItemKind,
    FramingError,
    InvalidParams,
    JsonRpcProtocol,
    TextDocumentSyncKind,
    make_completion_item,
    make_hover,
    make_range,
)


class ServerState(Enum):
    """Lifecycle of a server. Transitions are recorded, never enforced."""

    UNSTARTED = "unstarted"
    INITIALIZED = "initialized"
    SHUTTING_DOWN = "shutting-down"
    EXITED = "exited"


@dataclass
class ServerConfig:
    """Settings for one server instance."""

    name: str = "vibes-lsp"
    version: str = __version__
    # Tag shown next to each diagnostic in the editor
    source: str = DEFAULT_SOURCE
    # Language name used in hover text
    language: str = "VibeScript"
    # Wording of positioned engine errors
    error_template: str = DEFAULT_ERROR_TEMPLATE
    log_path: Optional[str] = None
    quiet: bool = False


# =============================================================================
# Params Helpers
# =============================================================================


def _require_object(value: Any, what: str) -> dict[str, Any]:
    if not isinstance(value, dict):
        raise InvalidParams(f"{what} must be an object")
    return value


def _optional_object(params: dict[str, Any], key: str) -> dict[str, Any]:
    value = params.get(key)
    if value is None:
        return {}
    return _require_object(value, key)


def _get_str(obj: dict[str, Any], key: str, default: Optional[str] = None) -> str:
    value = obj.get(key, default)
    if not isinstance(value, str):
        raise InvalidParams(f"{key} must be a string")
    return value


def _get_int(obj: dict[str, Any], key: str) -> int:
    value = obj.get(key, 0)
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidParams(f"{key} must be an integer")
    return value


def _document_uri(params: Any, default: Optional[str] = None) -> str:
    params = _require_object(params, "params")
    text_document = _optional_object(params, "textDocument")
    return _get_str(text_document, "uri", default)


@dataclass
class VibesLanguageServer:
    """
    VibeScript Language Server Protocol implementation.

    One instance serves one client connection and owns its document store.
    """

    # Protocol handler
    protocol: JsonRpcProtocol = field(default_factory=JsonRpcProtocol)

    # Compiler used for diagnostics
    engine: Any = field(default_factory=Engine)

    config: ServerConfig = field(default_factory=ServerConfig)

    # Open documents
    documents: DocumentStore = field(default_factory=DocumentStore)

    # Server state
    state: ServerState = ServerState.UNSTARTED
    shutdown_requested: bool = False

    # Logging
    log_file: Any = None

    def __post_init__(self):
        """Set up the server after initialization."""
        self.error_pattern = compile_error_pattern(self.config.error_template)
        self.protocol.on_error = self._log
        self._register_handlers()

    def _log(self, message: str) -> None:
        """Log a message for debugging."""
        if self.log_file:
            self.log_file.write(f"{message}\n")
            self.log_file.flush()
        # stdout carries the protocol; diagnostics for humans go to stderr
        if not self.config.quiet:
            print(f"[vibes-lsp] {message}", file=sys.stderr)
            sys.stderr.flush()

    def _register_handlers(self) -> None:
        """Register all LSP method handlers."""
        # Lifecycle
        self.protocol.register_request_handler("initialize", self._handle_initialize)
        self.protocol.register_notification_handler(
            "initialized", self._handle_initialized
        )
        self.protocol.register_request_handler("shutdown", self._handle_shutdown)
        self.protocol.register_notification_handler("exit", self._handle_exit)

        # Text document synchronization
        self.protocol.register_notification_handler(
            "textDocument/didOpen", self._handle_did_open
        )
        self.protocol.register_notification_handler(
            "textDocument/didChange", self._handle_did_change
        )
        self.protocol.register_notification_handler(
            "textDocument/didClose", self._handle_did_close
        )

        # Language features
        self.protocol.register_request_handler(
            "textDocument/completion", self._handle_completion
        )
        self.protocol.register_request_handler("textDocument/hover", self._handle_hover)

    # =========================================================================
    # Lifecycle Methods
    # =========================================================================

    def _handle_initialize(self, params: Any) -> dict[str, Any]:
        """Handle the initialize request."""
        client = None
        if isinstance(params, dict) and isinstance(params.get("clientInfo"), dict):
            client = params["clientInfo"].get("name")
        self._log(f"Received initialize request (client: {client or 'unknown'})")

        self.state = ServerState.INITIALIZED

        return {
            "capabilities": {
                "textDocumentSync": int(TextDocumentSyncKind.FULL),
                "hoverProvider": True,
                "completionProvider": {
                    "resolveProvider": False,
                },
            },
            "serverInfo": {
                "name": self.config.name,
                "version": self.config.version,
            },
        }

    def _handle_initialized(self, params: Any) -> None:
        """Handle the initialized notification."""
        self._log("Server initialized")

    def _handle_shutdown(self, params: Any) -> None:
        """Handle the shutdown request."""
        self._log("Shutdown requested")
        self.state = ServerState.SHUTTING_DOWN
        self.shutdown_requested = True
        return None

    def _handle_exit(self, params: Any) -> None:
        """Handle the exit notification."""
        self._log("Exit notification received")
        self.state = ServerState.EXITED
        self.protocol.stop()

    @property
    def exit_code(self) -> int:
        """0 unless the client sent exit without a prior shutdown."""
        if self.state is ServerState.EXITED and not self.shutdown_requested:
            return 1
        return 0

    # =========================================================================
    # Document Synchronization
    # =========================================================================

    def _handle_did_open(self, params: Any) -> None:
        """Handle textDocument/didOpen notification."""
        params = _require_object(params, "params")
        text_document = _require_object(params.get("textDocument"), "textDocument")
        uri = _get_str(text_document, "uri")
        content = _get_str(text_document, "text")
        version = text_document.get("version")

        self._log(f"Document opened: {uri}")

        self.documents.open(uri, content, version if isinstance(version, int) else None)
        self._publish_diagnostics(uri, content)

    def _handle_did_change(self, params: Any) -> None:
        """Handle textDocument/didChange notification."""
        uri = _document_uri(params)
        content_changes = params.get("contentChanges")
        if not isinstance(content_changes, list):
            raise InvalidParams("contentChanges must be an array")
        if not content_changes:
            return

        # Full sync: the last change carries the whole document
        latest = _require_object(content_changes[-1], "content change")
        content = _get_str(latest, "text")
        version = params["textDocument"].get("version")

        self.documents.update(uri, content, version if isinstance(version, int) else None)
        self._publish_diagnostics(uri, content)

    def _handle_did_close(self, params: Any) -> None:
        """Handle textDocument/didClose notification."""
        uri = _document_uri(params)

        self._log(f"Document closed: {uri}")

        if self.documents.close(uri):
            # Clear diagnostics for closed document
            self.protocol.send_notification(
                "textDocument/publishDiagnostics",
                {"uri": uri, "diagnostics": []},
            )

    # =========================================================================
    # Language Features
    # =========================================================================

    def _handle_completion(self, params: Any) -> dict[str, Any]:
        """Handle textDocument/completion request."""
        items = []
        for label in COMPLETION_LABELS:
            if label in KEYWORDS:
                items.append(
                    make_completion_item(
                        label, kind=CompletionItemKind.KEYWORD, detail="keyword"
                    )
                )
            else:
                items.append(
                    make_completion_item(
                        label, kind=CompletionItemKind.FUNCTION, detail="builtin"
                    )
                )
        return {"isIncomplete": False, "items": items}

    def _handle_hover(self, params: Any) -> Optional[dict[str, Any]]:
        """Handle textDocument/hover request."""
        try:
            uri = _document_uri(params, default="")
            position = _optional_object(params, "position")
            line = _get_int(position, "line")
            character = _get_int(position, "character")
        except InvalidParams as e:
            raise InvalidParams("invalid hover params") from e

        doc = self.documents.get(uri)
        if doc is None:
            return None
        span = doc.get_word_at_position(line, character)
        if span is None:
            return None

        kind = classify_word(span.text)
        line_text = doc.get_line(line)
        return make_hover(
            f"`{span.text}`\n\n{self.config.language} {kind}",
            make_range(
                line,
                index_to_utf16(line_text, span.start),
                line,
                index_to_utf16(line_text, span.end),
            ),
        )

    # =========================================================================
    # Diagnostics
    # =========================================================================

    def _publish_diagnostics(self, uri: str, content: str) -> None:
        """Compile a document's text and publish the resulting diagnostics."""
        diagnostics = diagnostics_for_source(
            self.engine, content, self.error_pattern, self.config.source
        )
        self.protocol.send_notification(
            "textDocument/publishDiagnostics",
            {
                "uri": uri,
                "diagnostics": diagnostics,
            },
        )

    # =========================================================================
    # Main Entry Point
    # =========================================================================

    def run(self) -> int:
        """
        Run the language server main loop.

        Returns:
            The process exit status.
        """
        self._log("VibeScript language server starting")

        try:
            self.protocol.run()
        except FramingError as e:
            self._log(f"Framing error, closing connection: {e}")
            return 1
        except KeyboardInterrupt:
            self._log("Interrupted")
            return 1
        except Exception as e:
            self._log(f"Server error: {e}")
            traceback.print_exc(file=sys.stderr)
            return 1
        finally:
            self._log("Server stopped")
        return self.exit_code


def start_server(config: Optional[ServerConfig] = None, protocol: Optional[JsonRpcProtocol] = None) -> int:
    """
    Start the VibeScript language server on stdio.

    Args:
        config: Server settings; config.log_path names an optional log file.
        protocol: Transport to serve on (default: stdin/stdout).

    Returns:
        The process exit status.
    """
    config = config or ServerConfig()
    log_file = None
    if config.log_path:
        log_file = open(config.log_path, "w", encoding="utf-8")

    try:
        server = VibesLanguageServer(
            protocol=protocol or JsonRpcProtocol(), config=config, log_file=log_file
        )
        return server.run()
    finally:
        if log_file:
            log_file.close()


def main(argv: Optional[list[str]] = None) -> None:
    """Main entry point for the vibes-lsp command."""
    import argparse

    parser = argparse.ArgumentParser(description="VibeScript Language Server")
    parser.add_argument(
        "--log",
        metavar="FILE",
        help="Log file for debugging",
    )
    parser.add_argument(
        "--quiet",
        action="store_true",
        help="Do not echo log messages to stderr",
    )
    args = parser.parse_args(argv)

    sys.exit(start_server(ServerConfig(log_path=args.log, quiet=args.quiet)))


if __name__ == "__main__":
    main()
