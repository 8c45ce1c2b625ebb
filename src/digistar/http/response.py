"""
=============================================================================
HTTP RESPONSE BUILDER
=============================================================================

Builds HTTP/1.1 responses and serializes them for the socket.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                     HTTP RESPONSE STRUCTURE                         │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   HTTP/1.1 200 OK\r\n                       ← status line            │
    │   Content-Type: application/json\r\n        ← headers                │
    │   Content-Length: 58\r\n                    ← added by to_bytes()    │
    │   Date: Mon, 19 Oct 2026 10:00:00 GMT\r\n   ← added by to_bytes()    │
    │   Server: Digistar/1.0\r\n                  ← added by to_bytes()    │
    │   \r\n                                                               │
    │   {                                         ← body                   │
    │     "message": "Data submitted successfully!"                        │
    │   }                                                                  │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Content types used by this server are exact, without charset parameters:

    application/json   JSON endpoints and JSON error bodies (2-space indent)
    text/html          HTML endpoints and the 404 / 405 pages
    text/plain         static read failures
    <MIME table>       static files

=============================================================================
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Union
import json

from .status_codes import HTTPStatus
from .mime_types import get_mime_type


JSON_INDENT = 2


@dataclass
class HTTPResponse:
    """
    Represents an HTTP response to be sent to the client.

    A plain data container; use ResponseBuilder or the helper functions at
    the bottom of this module to construct one.
    """

    status: HTTPStatus = HTTPStatus.OK
    headers: Dict[str, str] = field(default_factory=dict)
    body: bytes = b""
    version: str = "HTTP/1.1"

    @property
    def status_line(self) -> str:
        """Status line, e.g. "HTTP/1.1 404 Not Found"."""
        return f"{self.version} {int(self.status)} {self.status.phrase}"

    @property
    def content_type(self) -> str:
        return self.headers.get("Content-Type", "")

    def set_header(self, name: str, value: str) -> "HTTPResponse":
        """Set a response header. Returns self for chaining."""
        self.headers[name] = value
        return self

    def set_content_type(self, content_type: str) -> "HTTPResponse":
        """Set the Content-Type header."""
        return self.set_header("Content-Type", content_type)

    def set_body(self, body: Union[str, bytes]) -> "HTTPResponse":
        """Set the response body, encoding strings as UTF-8."""
        self.body = body.encode("utf-8") if isinstance(body, str) else body
        return self

    def json(self) -> Any:
        """Decode a JSON body (handy in tests and logging)."""
        return json.loads(self.body.decode("utf-8"))

    def to_bytes(self, server_name: str = "Digistar/1.0") -> bytes:
        """
        Serialize the response to bytes for sending over the socket.

        Content-Length, Date and Server are added when absent. A 304 keeps
        its headers but never carries a body.
        """
        response_headers = dict(self.headers)
        body = b"" if self.status == HTTPStatus.NOT_MODIFIED else self.body

        if "Content-Length" not in response_headers and self.status != HTTPStatus.NOT_MODIFIED:
            response_headers["Content-Length"] = str(len(body))

        if "Date" not in response_headers:
            response_headers["Date"] = format_http_date(datetime.now(timezone.utc))

        if "Server" not in response_headers:
            response_headers["Server"] = server_name

        lines = [self.status_line]
        for name, value in response_headers.items():
            lines.append(f"{name}: {value}")
        lines.append("")

        header_bytes = "\r\n".join(lines).encode("utf-8") + b"\r\n"
        return header_bytes + body


class ResponseBuilder:
    """
    Fluent builder for constructing HTTP responses.

        response = (ResponseBuilder()
            .status(HTTPStatus.OK)
            .json({"message": "Hello"})
            .header("X-Custom", "value")
            .build())

    Every method except build() returns the builder itself.
    """

    def __init__(self):
        self._status = HTTPStatus.OK
        self._headers: Dict[str, str] = {}
        self._body: bytes = b""

    # =========================================================================
    # STATUS AND HEADERS
    # =========================================================================

    def status(self, status: HTTPStatus) -> "ResponseBuilder":
        self._status = HTTPStatus(status)
        return self

    def header(self, name: str, value: str) -> "ResponseBuilder":
        self._headers[name] = value
        return self

    def headers(self, headers: Dict[str, str]) -> "ResponseBuilder":
        self._headers.update(headers)
        return self

    def content_type(self, content_type: str) -> "ResponseBuilder":
        return self.header("Content-Type", content_type)

    # =========================================================================
    # BODY METHODS
    # =========================================================================

    def body(self, body: Union[str, bytes]) -> "ResponseBuilder":
        """Set a raw body; strings are encoded as UTF-8."""
        self._body = body.encode("utf-8") if isinstance(body, str) else body
        return self

    def text(self, text: str, content_type: str = "text/plain") -> "ResponseBuilder":
        self._body = text.encode("utf-8")
        self._headers["Content-Type"] = content_type
        return self

    def html(self, html: str) -> "ResponseBuilder":
        self._body = html.encode("utf-8")
        self._headers["Content-Type"] = "text/html"
        return self

    def json(self, data: Any, pretty: bool = True) -> "ResponseBuilder":
        """
        Set a JSON body.

        Pretty-printed with a 2-space indent by default, which is the format
        every JSON endpoint of this server uses. ensure_ascii=False keeps
        non-ASCII text readable instead of \\u-escaped.
        """
        indent = JSON_INDENT if pretty else None
        self._body = json.dumps(data, indent=indent, ensure_ascii=False).encode("utf-8")
        self._headers["Content-Type"] = "application/json"
        return self

    def file(self, content: bytes, filename: str) -> "ResponseBuilder":
        """Set a file body with Content-Type taken from the MIME table."""
        self._body = content
        self._headers["Content-Type"] = get_mime_type(filename)
        return self

    # =========================================================================
    # CACHING AND CONNECTION
    # =========================================================================

    def cache(self, max_age: int = 3600) -> "ResponseBuilder":
        self._headers["Cache-Control"] = f"public, max-age={max_age}"
        return self

    def close_connection(self) -> "ResponseBuilder":
        self._headers["Connection"] = "close"
        return self

    def build(self) -> HTTPResponse:
        return HTTPResponse(
            status=self._status,
            headers=self._headers,
            body=self._body,
        )


# =============================================================================
# UTILITY FUNCTIONS
# =============================================================================

def format_http_date(dt: datetime) -> str:
    """
    Format a datetime as an HTTP-date (RFC 7231), always in GMT.

    Example: "Mon, 19 Oct 2026 10:00:00 GMT"
    """
    days = ["Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"]
    months = ["Jan", "Feb", "Mar", "Apr", "May", "Jun",
              "Jul", "Aug", "Sep", "Oct", "Nov", "Dec"]

    dt = dt.astimezone(timezone.utc)
    return (
        f"{days[dt.weekday()]}, "
        f"{dt.day:02d} {months[dt.month - 1]} {dt.year} "
        f"{dt.hour:02d}:{dt.minute:02d}:{dt.second:02d} GMT"
    )


# =============================================================================
# CONVENIENCE FUNCTIONS
# =============================================================================
#
# One-liners for the responses the pipeline produces:
#
#     return json_response({"message": "ok"})
#     return html_message(HTTPStatus.NOT_FOUND, "Page Not Found")
#     return bad_request("Invalid JSON")
#
# =============================================================================

def json_response(data: Any, status: HTTPStatus = HTTPStatus.OK) -> HTTPResponse:
    """Pretty-printed application/json response."""
    return ResponseBuilder().status(status).json(data).build()


def html_response(html: str, status: HTTPStatus = HTTPStatus.OK) -> HTTPResponse:
    return ResponseBuilder().status(status).html(html).build()


def html_message(status: HTTPStatus, message: str) -> HTTPResponse:
    """
    Small HTML page with the message as a heading.

        html_message(HTTPStatus.NOT_FOUND, "Page Not Found")
        → 404, text/html, "<h2>Page Not Found</h2>"
    """
    return html_response(f"<h2>{message}</h2>", status)


def error_response(status: HTTPStatus, message: str) -> HTTPResponse:
    """JSON error body of the form {"error": message}."""
    return json_response({"error": message}, status)


def bad_request(message: str = "Bad Request") -> HTTPResponse:
    """400 with a JSON error body, e.g. {"error": "Invalid JSON"}."""
    return error_response(HTTPStatus.BAD_REQUEST, message)


def payload_too_large(message: str = "Payload Too Large") -> HTTPResponse:
    return error_response(HTTPStatus.PAYLOAD_TOO_LARGE, message)


def not_found(message: str = "Page Not Found") -> HTTPResponse:
    """404 HTML page."""
    return html_message(HTTPStatus.NOT_FOUND, message)


def method_not_allowed(allowed_methods: list[str]) -> HTTPResponse:
    """
    405 HTML page.

    Includes the Allow header listing the methods the route table serves
    (RFC 7231 requires it on 405 responses).
    """
    response = html_message(HTTPStatus.METHOD_NOT_ALLOWED, "Method Not Allowed")
    response.set_header("Allow", ", ".join(allowed_methods))
    return response


def internal_error(message: str = "Internal Server Error") -> HTTPResponse:
    """
    500 plain-text response.

    The message is sent to the client verbatim, so callers pass a generic
    text and log the real cause themselves.
    """
    return (ResponseBuilder()
        .status(HTTPStatus.INTERNAL_SERVER_ERROR)
        .text(message)
        .build())
