"""
=============================================================================
REQUEST LOGGER STAGE
=============================================================================

First stage of the pipeline. Writes a record of every incoming request to an
output sink before anything else happens to it:

    [2026-10-19T08:15:02.117Z] POST request for /submit?src=form
    Headers: {"host": "localhost:3000", "content-type": "application/json", ...}
    Body: {"a":1}

The Body line is written for POST requests only. The request body has
already been read in full by the connection layer, so the stage never waits
on the socket.

=============================================================================
SINKS
=============================================================================

The stage does not print. It hands each line to a sink, an object with a
single write_line() method:

    StreamSink()          → stdout (default), one write per line
    StreamSink(stream)    → any text stream (a file, io.StringIO)
    LoggerSink()          → the "digistar.access" stdlib logger

Tests pass their own sink to capture lines without touching stdout.

=============================================================================
"""

from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Callable, Optional, TextIO
import json
import logging
import sys
import threading

from .base import Stage
from ..http.request import HTTPRequest
from ..http.response import HTTPResponse


access_logger = logging.getLogger("digistar.access")


class OutputSink(ABC):
    """Destination for request log lines."""

    @abstractmethod
    def write_line(self, line: str) -> None:
        """Write one line (without trailing newline)."""


class StreamSink(OutputSink):
    """
    Writes lines to a text stream, stdout by default.

    Worker threads share one sink, so writes are serialized with a lock to
    keep a request's lines from interleaving mid-line with another's.
    """

    def __init__(self, stream: Optional[TextIO] = None):
        self._stream = stream
        self._lock = threading.Lock()

    @property
    def stream(self) -> TextIO:
        # Resolved lazily so pytest's capsys replacement of sys.stdout is seen
        return self._stream if self._stream is not None else sys.stdout

    def write_line(self, line: str) -> None:
        with self._lock:
            self.stream.write(line + "\n")
            self.stream.flush()


class LoggerSink(OutputSink):
    """Forwards lines to a stdlib logger at a fixed level."""

    def __init__(self, logger: Optional[logging.Logger] = None, level: int = logging.INFO):
        self.logger = logger or access_logger
        self.level = level

    def write_line(self, line: str) -> None:
        self.logger.log(self.level, line)


def utc_timestamp(now: Optional[datetime] = None) -> str:
    """
    ISO-8601 UTC timestamp with milliseconds and a Z suffix.

        >>> utc_timestamp(datetime(2026, 10, 19, 8, 15, 2, 117000, tzinfo=timezone.utc))
        '2026-10-19T08:15:02.117Z'
    """
    now = now or datetime.now(timezone.utc)
    return now.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


class RequestLogger(Stage):
    """
    Request logging stage.

    Never short-circuits: always returns None after writing its lines.

    Usage:
        pipeline.add(RequestLogger())                  # stdout
        pipeline.add(RequestLogger(LoggerSink()))      # stdlib logging
    """

    def __init__(
        self,
        sink: Optional[OutputSink] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        """
        Args:
            sink: Where lines go. Defaults to StreamSink() (stdout).
            clock: Returns the current time; injectable for tests.
        """
        self.sink = sink or StreamSink()
        self.clock = clock or (lambda: datetime.now(timezone.utc))

    def __call__(self, request: HTTPRequest) -> Optional[HTTPResponse]:
        self.sink.write_line(
            f"[{utc_timestamp(self.clock())}] {request.method} request for {request.target}"
        )
        self.sink.write_line(f"Headers: {json.dumps(request.headers, ensure_ascii=False)}")

        if request.method == "POST":
            self.sink.write_line(f"Body: {request.body.decode('utf-8', errors='replace')}")

        return None
