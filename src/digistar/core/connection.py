"""
=============================================================================
CLIENT CONNECTION
=============================================================================

Wraps one accepted client socket: buffered reading of complete HTTP
requests, writing responses, and closing cleanly.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                        read_request() flow                          │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   recv() until "\r\n\r\n"          header block over the cap → 431  │
    │        │                                                             │
    │        ▼                                                             │
    │   parser.body_length(headers)      Transfer-Encoding → 411          │
    │        │                           over max_body_size → 413          │
    │        ▼                                                             │
    │   recv() until Content-Length      peer closes early → short data,  │
    │        │                           the parser answers 400            │
    │        ▼                                                             │
    │   return one request, keep the rest of the buffer (pipelining)      │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

The whole body is buffered before the pipeline runs, which is what lets the
request logger print it without waiting on the socket.

=============================================================================
"""

import socket
import time
import logging
from enum import Enum
from dataclasses import dataclass, field
from typing import Optional
import uuid

from ..http.request import HTTPParseError, RequestParser


logger = logging.getLogger(__name__)


class ConnectionState(Enum):
    """Connection lifecycle states (for logging and debugging)."""
    NEW = "new"
    READING = "reading"
    PROCESSING = "processing"
    WRITING = "writing"
    KEEP_ALIVE = "keep_alive"
    CLOSING = "closing"
    CLOSED = "closed"


@dataclass
class Connection:
    """
    Represents a client connection.

    Attributes:
        socket: The client socket.
        address: Client's (ip, port) tuple.
        parser: Parser whose limits decide how much may be read.
        id: Short connection identifier for log lines.
        state: Current connection state.
        requests_handled: Number of requests read on this connection.
    """

    socket: socket.socket
    address: tuple[str, int]
    parser: RequestParser = field(default_factory=RequestParser)

    id: str = field(default_factory=lambda: str(uuid.uuid4())[:8])
    state: ConnectionState = ConnectionState.NEW
    created_at: float = field(default_factory=time.time)
    last_activity: float = field(default_factory=time.time)
    requests_handled: int = 0

    buffer_size: int = 8192
    timeout: Optional[float] = 30.0
    keep_alive_timeout: float = 5.0

    _buffer: bytes = field(default=b"", repr=False)

    def __post_init__(self):
        self.socket.setblocking(True)
        self.socket.settimeout(self.timeout)

    @property
    def client_ip(self) -> str:
        return self.address[0]

    # =========================================================================
    # READING
    # =========================================================================

    def read_request(self) -> Optional[bytes]:
        """
        Read one complete HTTP request from the socket.

        Returns:
            The request bytes (headers + Content-Length body bytes), or None
            when the client closed the connection, or went idle on a
            kept-alive connection, before sending anything.

        Raises:
            TimeoutError: If the first request does not arrive in time.
            HTTPParseError: If the headers exceed their cap or declare a
                body that may not be read (411 / 413).
        """
        self.state = ConnectionState.READING
        self.last_activity = time.time()

        if self.requests_handled > 0:
            self.socket.settimeout(self.keep_alive_timeout)

        try:
            while b"\r\n\r\n" not in self._buffer:
                if len(self._buffer) > self.parser.max_header_size:
                    raise HTTPParseError("Request headers too large", status_code=431)

                chunk = self._recv()
                if not chunk:
                    if self._buffer:
                        # Partial headers: let the parser report it
                        data, self._buffer = self._buffer, b""
                        return data
                    return None

                self._buffer += chunk

            header_end = self._buffer.find(b"\r\n\r\n")
            body_start = header_end + 4
            content_length = self.parser.body_length(self._buffer[:header_end])

            while len(self._buffer) - body_start < content_length:
                chunk = self._recv()
                if not chunk:
                    break  # peer went away mid-body; parser answers 400
                self._buffer += chunk

            request_end = body_start + content_length
            request_data = self._buffer[:request_end]
            self._buffer = self._buffer[request_end:]

            self.requests_handled += 1
            self.last_activity = time.time()
            return request_data

        except socket.timeout:
            if self.requests_handled > 0 and not self._buffer:
                logger.debug(f"[{self.id}] Keep-alive timeout")
                return None
            raise TimeoutError("Request read timeout")

        finally:
            self.socket.settimeout(self.timeout)

    def _recv(self) -> bytes:
        """recv() that maps an abrupt disconnect to end-of-stream."""
        try:
            data = self.socket.recv(self.buffer_size)
            self.last_activity = time.time()
            return data
        except (ConnectionResetError, BrokenPipeError):
            return b""

    # =========================================================================
    # WRITING
    # =========================================================================

    def send_response(self, data: bytes) -> bool:
        """
        Send response bytes with sendall().

        Returns:
            True if sent, False if the client is gone.
        """
        self.state = ConnectionState.WRITING
        try:
            self.socket.sendall(data)
            self.last_activity = time.time()
            return True
        except OSError as e:
            logger.warning(f"[{self.id}] Send failed: {e}")
            return False

    def set_keep_alive(self):
        """Mark connection as waiting for its next request."""
        self.state = ConnectionState.KEEP_ALIVE

    # =========================================================================
    # CLOSING
    # =========================================================================

    def close(self):
        """
        Close the connection gracefully.

        1. shutdown(SHUT_WR): send FIN, we are done writing
        2. drain what the client still sends, briefly
        3. close(): release the descriptor
        """
        if self.state == ConnectionState.CLOSED:
            return

        self.state = ConnectionState.CLOSING

        try:
            self.socket.shutdown(socket.SHUT_WR)
        except OSError:
            pass

        try:
            self.socket.settimeout(0.5)
            while self.socket.recv(1024):
                pass
        except OSError:
            pass

        try:
            self.socket.close()
        except OSError:
            pass

        self.state = ConnectionState.CLOSED
        logger.debug(f"[{self.id}] Connection closed after {self.requests_handled} requests")

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False
