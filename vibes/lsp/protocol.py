"""
vibes.lsp.protocol - JSON-RPC 2.0 Protocol Implementation for LSP

This module provides low-level JSON-RPC 2.0 protocol handling for the
Language Server Protocol. It handles:
- Message framing with Content-Length headers
- JSON-RPC request/response/notification envelopes
- Dispatching inbound messages to registered handlers
- Error handling according to JSON-RPC spec

The LSP uses JSON-RPC 2.0 over stdio with HTTP-style headers:
    Content-Length: <length>\r\n
    \r\n
    <JSON body>
"""

import json
import re
import sys
import threading
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any, Callable, Optional

# =============================================================================
# JSON-RPC Error Codes
# =============================================================================


class ErrorCode(IntEnum):
    """JSON-RPC error codes sent by the server."""

    METHOD_NOT_FOUND = -32601
    INVALID_PARAMS = -32602
    INTERNAL_ERROR = -32603


class JsonRpcError(Exception):
    """Exception representing a JSON-RPC error."""

    def __init__(self, code: int, message: str, data: Any = None):
        super().__init__(message)
        self.code = code
        self.message = message
        self.data = data

    def to_dict(self) -> dict[str, Any]:
        """Convert to JSON-RPC error object."""
        error: dict[str, Any] = {
            "code": int(self.code),
            "message": self.message,
        }
        if self.data is not None:
            error["data"] = self.data
        return error


class InvalidParams(JsonRpcError):
    """Raised by handlers when the params of a message are malformed."""

    def __init__(self, message: str = "invalid params"):
        super().__init__(ErrorCode.INVALID_PARAMS, message)


class FramingError(Exception):
    """
    The byte stream does not follow Content-Length framing.

    Framing errors are fatal: once a frame boundary is lost there is no way
    to resynchronize, so the connection is abandoned.
    """


# =============================================================================
# Message Types
# =============================================================================


@dataclass
class Response:
    """A JSON-RPC response message. The id is opaque and echoed untouched."""

    id: Any
    result: Any = None
    error: Optional[dict[str, Any]] = None

    def to_dict(self) -> dict[str, Any]:
        message: dict[str, Any] = {"jsonrpc": "2.0", "id": self.id}
        if self.error is not None:
            message["error"] = self.error
        else:
            message["result"] = self.result
        return message


@dataclass
class Notification:
    """A JSON-RPC notification message (no id, no response expected)."""

    method: str
    params: Any = None

    def to_dict(self) -> dict[str, Any]:
        message: dict[str, Any] = {"jsonrpc": "2.0", "method": self.method}
        if self.params is not None:
            message["params"] = self.params
        return message


def parse_envelope(payload: bytes) -> Optional[dict[str, Any]]:
    """
    Decode a message payload into an envelope dict.

    Returns None if the payload is not UTF-8 JSON or is not a JSON object.
    """
    try:
        message = json.loads(payload.decode("utf-8"))
    except (UnicodeDecodeError, ValueError):
        return None
    if not isinstance(message, dict):
        return None
    return message


# =============================================================================
# Protocol Transport
# =============================================================================


_CONTENT_LENGTH = re.compile(r"[+-]?[0-9]+")


class ProtocolReader:
    """
    Reads LSP messages from an input stream.

    LSP messages have HTTP-style headers followed by a JSON body:
        Content-Length: <length>\r\n
        \r\n
        <JSON body>
    """

    def __init__(self, input_stream=None):
        """
        Initialize the reader.

        Args:
            input_stream: The input stream to read from (default: sys.stdin.buffer)
        """
        self.input = input_stream or sys.stdin.buffer
        self._lock = threading.Lock()

    def read_payload(self) -> Optional[bytes]:
        """
        Read the raw body of a single LSP message.

        Returns:
            The body bytes, or None on end of stream before any header.

        Raises:
            FramingError: If the headers or body are malformed or truncated.
        """
        with self._lock:
            content_length = self._read_headers()
            if content_length is None:
                return None

            body = self.input.read(content_length)
            if len(body) < content_length:
                raise FramingError(
                    f"unexpected end of stream: expected {content_length} bytes, "
                    f"got {len(body)}"
                )
            return body

    def _read_headers(self) -> Optional[int]:
        """
        Read LSP headers and return the Content-Length.

        Returns:
            The content length, or None if EOF before any header line.
        """
        content_length = None
        seen_header = False

        while True:
            line = self.input.readline()
            if not line:
                if seen_header:
                    raise FramingError("unexpected end of stream in headers")
                return None
            seen_header = True

            line = line.decode("ascii", errors="replace").rstrip("\r\n")

            if not line:
                # Empty line marks end of headers
                break

            name, sep, value = line.partition(":")
            if not sep:
                continue
            if name.strip().lower() == "content-length":
                value = value.strip()
                # Plain decimal only; int() would also take "1_000"
                if not _CONTENT_LENGTH.fullmatch(value):
                    raise FramingError(f"invalid Content-Length: {value!r}")
                content_length = int(value)
                if content_length < 0:
                    raise FramingError(f"invalid Content-Length: {value!r}")
            # Ignore other headers (like Content-Type)

        if content_length is None:
            raise FramingError("missing Content-Length header")

        return content_length


class ProtocolWriter:
    """
    Writes LSP messages to an output stream.

    Formats messages with proper Content-Length headers.
    """

    def __init__(self, output_stream=None):
        """
        Initialize the writer.

        Args:
            output_stream: The output stream to write to (default: sys.stdout.buffer)
        """
        self.output = output_stream or sys.stdout.buffer
        self._lock = threading.Lock()

    def write_payload(self, body: bytes) -> None:
        """Write one framed payload and flush it."""
        header = f"Content-Length: {len(body)}\r\n\r\n".encode("ascii")

        with self._lock:
            self.output.write(header)
            self.output.write(body)
            self.output.flush()

    def write_message(self, message: dict[str, Any]) -> None:
        """
        Write a JSON-RPC message with proper LSP framing.

        Args:
            message: The message to write as a dict.
        """
        body = json.dumps(message, ensure_ascii=False, separators=(",", ":"))
        self.write_payload(body.encode("utf-8"))


# =============================================================================
# JSON-RPC Protocol Handler
# =============================================================================


@dataclass
class JsonRpcProtocol:
    """
    High-level JSON-RPC protocol handler.

    Dispatches inbound messages to registered handlers and collects the
    outbound messages each one produces, in order: notifications queued by
    the handler with send_notification, then the response if the message
    was a request.
    """

    reader: ProtocolReader = field(default_factory=ProtocolReader)
    writer: ProtocolWriter = field(default_factory=ProtocolWriter)

    # Request handlers: method -> callable
    _request_handlers: dict[str, Callable] = field(default_factory=dict)

    # Notification handlers: method -> callable
    _notification_handlers: dict[str, Callable] = field(default_factory=dict)

    # Messages produced while handling the current inbound message
    _outbox: list[dict[str, Any]] = field(default_factory=list)

    # Called with a description when a message is dropped or a
    # notification handler fails
    on_error: Optional[Callable[[str], None]] = None

    running: bool = False

    def register_request_handler(self, method: str, handler: Callable[[Any], Any]) -> None:
        """
        Register a handler for a request method.

        The handler receives the params and should return a result
        or raise JsonRpcError.
        """
        self._request_handlers[method] = handler

    def register_notification_handler(
        self, method: str, handler: Callable[[Any], None]
    ) -> None:
        """
        Register a handler for a notification method.

        The handler receives the params and should not return anything.
        """
        self._notification_handlers[method] = handler

    def send_notification(self, method: str, params: Any = None) -> None:
        """Queue a server-initiated notification for the current reply batch."""
        self._outbox.append(Notification(method, params).to_dict())

    def stop(self) -> None:
        """Stop the main loop once the current replies are written."""
        self.running = False

    def handle_message(self, message: dict[str, Any]) -> list[dict[str, Any]]:
        """
        Handle an incoming JSON-RPC message.

        Args:
            message: The parsed JSON message.

        Returns:
            The outbound messages to write, in order. Empty for
            notifications that produce nothing and for client responses.
        """
        self._outbox = []
        method = message.get("method")
        if not isinstance(method, str):
            # A response from the client or an envelope without a method;
            # the server never sends requests, so there is nothing to match.
            return []

        params = message.get("params")
        has_id = "id" in message and message["id"] is not None

        if method in self._request_handlers:
            if has_id:
                self._outbox.append(
                    self._handle_request(message["id"], method, params).to_dict()
                )
        elif method in self._notification_handlers:
            self._handle_notification(method, params)
        elif has_id:
            self._outbox.append(
                self._make_error_response(
                    message["id"], ErrorCode.METHOD_NOT_FOUND, "method not found"
                ).to_dict()
            )

        outbound, self._outbox = self._outbox, []
        return outbound

    def _handle_request(self, msg_id: Any, method: str, params: Any) -> Response:
        """Handle an incoming request."""
        handler = self._request_handlers[method]
        try:
            return Response(msg_id, result=handler(params))
        except JsonRpcError as e:
            return Response(msg_id, error=e.to_dict())
        except Exception as e:
            self._report(f"internal error handling {method}: {e}")
            return self._make_error_response(msg_id, ErrorCode.INTERNAL_ERROR, str(e))

    def _handle_notification(self, method: str, params: Any) -> None:
        """Handle an incoming notification."""
        handler = self._notification_handlers[method]
        try:
            handler(params)
        except InvalidParams as e:
            self._report(f"ignoring {method}: {e.message}")
        except Exception as e:
            # Notifications don't get responses, so errors stop here
            self._report(f"error handling {method}: {e}")

    def _make_error_response(self, msg_id: Any, code: int, message: str) -> Response:
        """Create a JSON-RPC error response."""
        return Response(msg_id, error=JsonRpcError(code, message).to_dict())

    def _report(self, text: str) -> None:
        if self.on_error is not None:
            self.on_error(text)

    def run(self) -> None:
        """
        Run the protocol handler main loop.

        Reads one message, dispatches it, writes every reply, and only then
        reads the next. Continues until EOF or until a handler calls stop().
        Payloads that are not JSON objects are dropped.

        Raises:
            FramingError: If the input stream breaks framing.
            OSError: If writing to the output stream fails.
        """
        self.running = True
        while self.running:
            payload = self.reader.read_payload()
            if payload is None:
                # EOF
                break

            message = parse_envelope(payload)
            if message is None:
                self._report(f"dropping malformed payload ({len(payload)} bytes)")
                continue

            for outbound in self.handle_message(message):
                self.writer.write_message(outbound)
        self.running = False


# =============================================================================
# LSP-Specific Types
# =============================================================================


class DiagnosticSeverity(IntEnum):
    """LSP diagnostic severity levels."""

    ERROR = 1
    WARNING = 2
    INFORMATION = 3
    HINT = 4


class CompletionItemKind(IntEnum):
    """LSP completion item kinds."""

    TEXT = 1
    METHOD = 2
    FUNCTION = 3
    CONSTRUCTOR = 4
    FIELD = 5
    VARIABLE = 6
    CLASS = 7
    INTERFACE = 8
    MODULE = 9
    PROPERTY = 10
    UNIT = 11
    VALUE = 12
    ENUM = 13
    KEYWORD = 14
    SNIPPET = 15


class TextDocumentSyncKind(IntEnum):
    """LSP text document sync kinds."""

    NONE = 0
    FULL = 1
    INCREMENTAL = 2


# =============================================================================
# LSP Helper Functions
# =============================================================================


def make_position(line: int, character: int) -> dict[str, int]:
    """Create an LSP Position object (0-based line and character)."""
    return {"line": line, "character": character}


def make_range(
    start_line: int, start_char: int, end_line: int, end_char: int
) -> dict[str, Any]:
    """Create an LSP Range object."""
    return {
        "start": make_position(start_line, start_char),
        "end": make_position(end_line, end_char),
    }


def make_diagnostic(
    range_: dict[str, Any],
    message: str,
    severity: DiagnosticSeverity = DiagnosticSeverity.ERROR,
    source: str = "vibes-lsp",
) -> dict[str, Any]:
    """Create an LSP Diagnostic object."""
    return {
        "range": range_,
        "severity": int(severity),
        "source": source,
        "message": message,
    }


def make_completion_item(
    label: str,
    kind: CompletionItemKind = CompletionItemKind.TEXT,
    detail: Optional[str] = None,
) -> dict[str, Any]:
    """Create an LSP CompletionItem object."""
    item: dict[str, Any] = {
        "label": label,
        "kind": int(kind),
    }
    if detail is not None:
        item["detail"] = detail
    return item


def make_hover(
    contents: str, range_: Optional[dict[str, Any]] = None
) -> dict[str, Any]:
    """Create an LSP Hover object."""
    hover: dict[str, Any] = {
        "contents": {"kind": "markdown", "value": contents},
    }
    if range_ is not None:
        hover["range"] = range_
    return hover
