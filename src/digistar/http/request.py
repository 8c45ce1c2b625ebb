"""
=============================================================================
HTTP REQUEST PARSER
=============================================================================

Parses raw HTTP/1.1 request bytes into structured HTTPRequest objects.

=============================================================================
HTTP REQUEST ANATOMY
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                     HTTP REQUEST STRUCTURE                          │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   POST /submit?src=form HTTP/1.1\r\n        ← request line           │
    │   Host: localhost:3000\r\n                  ← headers                │
    │   Content-Type: application/json\r\n                                 │
    │   Content-Length: 7\r\n                                              │
    │   \r\n                                      ← blank line             │
    │   {"a":1}                                   ← body (7 bytes)         │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

The parser only produces the *transport* view of the request: method, path,
target, headers, query parameters and raw body bytes. Decoding the body
(JSON or form data) is a pipeline stage (see middleware/body_parser.py) and
lands in HTTPRequest.decoded_body.

=============================================================================
LIMITS
=============================================================================

    max_header_size   header block larger than this      → 431
    max_body_size     Content-Length larger than this     → 413
    Transfer-Encoding request bodies without a length    → 411

The body limit is checked against the declared Content-Length, so an
oversized body is rejected before it is read off the socket (the Connection
calls body_length() as soon as it has the headers).

=============================================================================
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union
from urllib.parse import parse_qsl, unquote
import re


# Shape used for query parameters and form bodies when they are echoed back:
# a key seen once maps to its value, a repeated key maps to all its values.
FlatParams = Dict[str, Union[str, List[str]]]


class HTTPParseError(Exception):
    """
    Raised when an HTTP request cannot be read or parsed.

    Carries the status code that should be returned to the client:

        400 Bad Request                 - malformed syntax, truncated body
        411 Length Required             - body sent without Content-Length
        413 Payload Too Large           - body over max_body_size
        431 Request Header Fields Too Large
        505 HTTP Version Not Supported
    """

    def __init__(self, message: str, status_code: int = 400):
        super().__init__(message)
        self.status_code = status_code


@dataclass(frozen=True)
class DecodedBody:
    """
    A request body decoded by the body parser.

    Attributes:
        content_type: The Content-Type that selected the decoder
                      ("application/json" or
                      "application/x-www-form-urlencoded").
        value:        The decoded value. Any JSON value for JSON bodies
                      (including None for a literal ``null``), a FlatParams
                      mapping for form bodies.
    """

    content_type: str
    value: Any


@dataclass
class HTTPRequest:
    """
    Represents a parsed HTTP request.

    One instance is created per request and discarded once the response has
    been written; nothing on it is shared with other requests.

    =========================================================================
    ATTRIBUTES
    =========================================================================

        method:         Request method token ("GET", "POST", "DELETE", ...).
                        Any uppercase token is accepted; the router decides
                        what is allowed.

        path:           URL-decoded path WITHOUT the query string.

        target:         The request-target exactly as the client sent it,
                        query string included ("/about?name=Budi").

        version:        "HTTP/1.1" or "HTTP/1.0".

        headers:        Header dict with LOWERCASE keys.

        query_params:   Query string as a dict of lists, in arrival order.
                        "?a=1&a=2&b=3" → {"a": ["1", "2"], "b": ["3"]}

        body:           Raw body bytes (Content-Length bytes).

        decoded_body:   Set by the body parser for POST requests with a
                        recognized Content-Type, otherwise None.

        client_address: (ip, port) of the peer.

    =========================================================================
    """

    method: str
    path: str
    target: str = ""
    version: str = "HTTP/1.1"

    headers: Dict[str, str] = field(default_factory=dict)
    query_params: Dict[str, List[str]] = field(default_factory=dict)
    body: bytes = b""

    decoded_body: Optional[DecodedBody] = None

    client_address: tuple[str, int] = ("", 0)

    def __post_init__(self):
        if not self.target:
            self.target = self.path

    # =========================================================================
    # PROPERTIES
    # =========================================================================

    @property
    def content_type(self) -> Optional[str]:
        """
        The Content-Type header value, exactly as sent.

        No parameter stripping or case folding: body decoding is selected by
        an exact match on this value.
        """
        return self.headers.get("content-type")

    @property
    def http_version(self) -> str:
        """Numeric protocol version, e.g. "1.1"."""
        return self.version.partition("/")[2]

    @property
    def is_keep_alive(self) -> bool:
        """
        Check if this connection should be kept alive.

            HTTP/1.1: keep alive unless "Connection: close"
            HTTP/1.0: close unless "Connection: keep-alive"
        """
        connection = self.headers.get("connection", "").lower()

        if self.version == "HTTP/1.1":
            return connection != "close"
        return connection == "keep-alive"

    # =========================================================================
    # ACCESSOR METHODS
    # =========================================================================

    def get_header(self, name: str, default: str = "") -> str:
        """Get a header value (case-insensitive lookup)."""
        return self.headers.get(name.lower(), default)

    def get_query(self, name: str, default: Optional[str] = None) -> Optional[str]:
        """
        Get the first value of a query parameter.

        Example:
            # URL: /about?name=Budi&name=Sari
            request.get_query("name")  # Returns "Budi"
        """
        values = self.query_params.get(name, [])
        return values[0] if values else default

    def get_query_list(self, name: str) -> List[str]:
        """Get all values of a query parameter (empty list if absent)."""
        return self.query_params.get(name, [])


# =============================================================================
# URL-ENCODED DATA
# =============================================================================
#
# Query strings and application/x-www-form-urlencoded bodies share one
# grammar, so they share one decoder. It never fails: "+" becomes a space,
# bad percent escapes are kept literally, invalid UTF-8 is replaced, and a
# bare "key" counts as "key=".
#
# =============================================================================

def parse_urlencoded(text: str) -> Dict[str, List[str]]:
    """
    Decode a URL-encoded string into a dict of value lists.

    Example:
        >>> parse_urlencoded("a=1&b=&a=2&c")
        {'a': ['1', '2'], 'b': [''], 'c': ['']}
    """
    params: Dict[str, List[str]] = {}
    for key, value in parse_qsl(text, keep_blank_values=True, errors="replace"):
        params.setdefault(key, []).append(value)
    return params


def flatten_params(params: Dict[str, List[str]]) -> FlatParams:
    """
    Collapse single-valued keys to plain strings.

    Example:
        >>> flatten_params({"a": ["1", "2"], "b": ["3"]})
        {'a': ['1', '2'], 'b': '3'}
    """
    return {
        key: values[0] if len(values) == 1 else list(values)
        for key, values in params.items()
    }


class RequestParser:
    """
    Parses raw HTTP request bytes into HTTPRequest objects.

    ==========================================================================
    PARSER ARCHITECTURE
    ==========================================================================

        Raw Request Bytes
              │
              ▼
        ┌───────────────────────────────────────────────────────────────────┐
        │  1. Find header/body separator (\\r\\n\\r\\n)                        │
        │     Missing? → 400 (or 431 if the header block is too big)       │
        │  2. Parse request line: METHOD SP TARGET SP VERSION              │
        │     Invalid? → 400 / 505                                          │
        │  3. Parse headers, names lowercased                               │
        │  4. Check body framing and size (411 / 413)                       │
        │  5. Slice exactly Content-Length body bytes                       │
        │     Short?   → 400 (client went away mid-body)                    │
        │  6. Build HTTPRequest                                             │
        └───────────────────────────────────────────────────────────────────┘

    ==========================================================================
    """

    REQUEST_LINE_PATTERN = re.compile(r"^([A-Z]+) ([^ ]+) (HTTP/\d\.\d)$")
    HEADER_PATTERN = re.compile(r"^([^:]+):\s*(.*)$")

    SUPPORTED_VERSIONS = ("HTTP/1.0", "HTTP/1.1")

    def __init__(
        self,
        max_body_size: int = 1024 * 1024,
        max_header_size: int = 64 * 1024,
    ):
        """
        Initialize the request parser.

        Args:
            max_body_size: Largest accepted request body in bytes.
            max_header_size: Largest accepted request line + header block.
        """
        self.max_body_size = max_body_size
        self.max_header_size = max_header_size

    def parse(
        self,
        data: bytes,
        client_address: tuple[str, int] = ("", 0)
    ) -> HTTPRequest:
        """
        Parse raw HTTP request data into an HTTPRequest object.

        Args:
            data: Raw HTTP request bytes from the socket.
            client_address: Client's (ip, port) tuple.

        Returns:
            Parsed HTTPRequest object.

        Raises:
            HTTPParseError: If the request is malformed or over a limit.
        """
        header_end = data.find(b"\r\n\r\n")
        if header_end == -1:
            if len(data) > self.max_header_size:
                raise HTTPParseError("Request headers too large", status_code=431)
            raise HTTPParseError("Incomplete request: no header terminator")
        if header_end > self.max_header_size:
            raise HTTPParseError("Request headers too large", status_code=431)

        header_section = data[:header_end].decode("utf-8", errors="replace")
        body = data[header_end + 4:]

        lines = header_section.split("\r\n")
        method, target, path, query_params, version = self._parse_request_line(lines[0])
        headers = self._parse_headers(lines[1:])

        content_length = self.check_content_length(headers)
        if len(body) < content_length:
            raise HTTPParseError(
                f"Incomplete body: expected {content_length} bytes, got {len(body)}"
            )

        return HTTPRequest(
            method=method,
            path=path,
            target=target,
            version=version,
            headers=headers,
            query_params=query_params,
            body=body[:content_length],
            client_address=client_address,
        )

    def body_length(self, header_section: bytes) -> int:
        """
        Body length declared by a raw header block (request line included).

        Lets the connection size its body read, and refuse an oversized or
        unframed body, before a single body byte is buffered.
        """
        lines = header_section.decode("utf-8", errors="replace").split("\r\n")
        return self.check_content_length(self._parse_headers(lines[1:]))

    def check_content_length(self, headers: Dict[str, str]) -> int:
        """
        Validate body framing headers and return the body length.

        Called by the parser and, earlier, by the connection as soon as the
        header block has arrived.

        Raises:
            HTTPParseError: 400 for a malformed length, 411 for a
                Transfer-Encoding body, 413 when over max_body_size.
        """
        if "transfer-encoding" in headers:
            raise HTTPParseError(
                "Transfer-Encoding bodies are not supported; send Content-Length",
                status_code=411,
            )

        raw_length = headers.get("content-length", "0")
        if not raw_length.isdigit():
            raise HTTPParseError(f"Invalid Content-Length: {raw_length}")

        content_length = int(raw_length)
        if content_length > self.max_body_size:
            raise HTTPParseError(
                f"Request body too large: {content_length} bytes",
                status_code=413,
            )
        return content_length

    def _parse_request_line(
        self,
        line: str
    ) -> tuple[str, str, str, Dict[str, List[str]], str]:
        """
        Parse the request line into its components.

            "GET /about?name=Budi HTTP/1.1"
             ─┬─ ────────┬─────── ────┬───
              │          │            │
            Method     Target      Version

        Returns:
            Tuple of (method, target, path, query_params, version)
        """
        match = self.REQUEST_LINE_PATTERN.match(line)
        if not match:
            raise HTTPParseError(f"Invalid request line: {line}")

        method, target, version = match.groups()

        if version not in self.SUPPORTED_VERSIONS:
            raise HTTPParseError(
                f"Unsupported HTTP version: {version}",
                status_code=505,
            )

        raw_path, _, query = target.partition("?")
        raw_path = raw_path.partition("#")[0]
        query = query.partition("#")[0]

        path = unquote(raw_path) or "/"
        if not path.startswith("/"):
            raise HTTPParseError(f"Invalid request target: {target}")

        # "/../../etc/passwd" must never reach the static resolver
        if ".." in path.split("/"):
            raise HTTPParseError("Invalid path: contains ..")

        return method, target, path, parse_urlencoded(query), version

    def _parse_headers(self, lines: List[str]) -> Dict[str, str]:
        """
        Parse header lines into a dict with lowercase names.

        Repeated headers are joined with ", " (RFC 7230 §3.2.2). Obsolete
        line folding (continuation lines starting with whitespace) is
        appended to the previous header. Lines that are not "Name: value"
        are skipped.
        """
        headers: Dict[str, str] = {}
        current_name = None

        for line in lines:
            if not line:
                continue

            if line[0] in (" ", "\t"):
                if current_name is not None:
                    headers[current_name] += " " + line.strip()
                continue

            match = self.HEADER_PATTERN.match(line)
            if not match:
                continue

            name, value = match.groups()
            name = name.strip().lower()
            value = value.strip()
            current_name = name

            if name in headers:
                headers[name] += ", " + value
            else:
                headers[name] = value

        return headers


def parse_request(
    data: bytes,
    client_address: tuple[str, int] = ("", 0),
    max_body_size: int = 1024 * 1024,
) -> HTTPRequest:
    """
    Convenience function to parse an HTTP request in one call.

    Use RequestParser directly to parse many requests with the same limits.
    """
    parser = RequestParser(max_body_size=max_body_size)
    return parser.parse(data, client_address)
