"""
pytest configuration and fixtures.
"""

import socket
import threading
from pathlib import Path
from typing import Generator, List, Optional
import pytest

# Add src to path for imports
import sys
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from digistar import HTTPServer, ServerConfig, create_server
from digistar.app import build_pipeline
from digistar.middleware import OutputSink, Pipeline


@pytest.fixture
def sample_get_request() -> bytes:
    """Sample HTTP GET request."""
    return (
        b"GET /about?name=Budi&tag=a&tag=b HTTP/1.1\r\n"
        b"Host: localhost:3000\r\n"
        b"User-Agent: pytest\r\n"
        b"Accept: text/html\r\n"
        b"Connection: keep-alive\r\n"
        b"\r\n"
    )


@pytest.fixture
def sample_post_request() -> bytes:
    """Sample HTTP POST request with JSON body."""
    body = b'{"name": "Budi", "age": 21}'
    return (
        b"POST /submit HTTP/1.1\r\n"
        b"Host: localhost:3000\r\n"
        b"Content-Type: application/json\r\n"
        + f"Content-Length: {len(body)}\r\n".encode()
        + b"Connection: close\r\n"
        b"\r\n"
    ) + body


@pytest.fixture
def static_root(tmp_path: Path) -> Path:
    """
    A static root laid out like a small site:

        public/
        ├── style.css
        ├── app.js
        ├── notes.txt.bak    (unknown extension)
        ├── docs/index.html
        └── empty/           (directory without index.html)
    """
    root = tmp_path / "public"
    root.mkdir()
    (root / "style.css").write_text("body { color: red; }")
    (root / "app.js").write_text("console.log('hi');")
    (root / "notes.txt.bak").write_text("backup")
    (root / "docs").mkdir()
    (root / "docs" / "index.html").write_text("<h1>Docs</h1>")
    (root / "empty").mkdir()
    return root


class CollectingSink(OutputSink):
    """Output sink that keeps every line in memory."""

    def __init__(self):
        self.lines: List[str] = []
        self._lock = threading.Lock()

    def write_line(self, line: str) -> None:
        with self._lock:
            self.lines.append(line)


@pytest.fixture
def sink() -> CollectingSink:
    return CollectingSink()


@pytest.fixture
def config(static_root: Path) -> ServerConfig:
    """Default test server configuration."""
    return ServerConfig(
        host="127.0.0.1",
        port=0,  # Let OS pick a free port
        max_workers=4,
        timeout=5.0,
        keep_alive_timeout=1.0,
        static_dir=str(static_root),
        log_level="WARNING",
    )


@pytest.fixture
def pipeline(config: ServerConfig, sink: CollectingSink) -> Pipeline:
    """The full Digistar pipeline, logging into a CollectingSink."""
    return build_pipeline(config, sink)


def send_raw(port: int, data: bytes, timeout: float = 5.0) -> bytes:
    """Send raw bytes and read until the server closes the connection."""
    with socket.create_connection(("127.0.0.1", port), timeout=timeout) as s:
        s.sendall(data)
        chunks = []
        while True:
            chunk = s.recv(65536)
            if not chunk:
                break
            chunks.append(chunk)
    return b"".join(chunks)


def split_response(raw: bytes):
    """Split a raw response into (status code, lowercase headers, body)."""
    head, _, body = raw.partition(b"\r\n\r\n")
    lines = head.decode("latin-1").split("\r\n")
    status = int(lines[0].split(" ")[1])
    headers = {}
    for line in lines[1:]:
        name, _, value = line.partition(":")
        headers[name.strip().lower()] = value.strip()
    return status, headers, body


class TestServer:
    """Test server helper that runs in a background thread."""

    def __init__(self, server: HTTPServer):
        self.server = server
        self._thread: Optional[threading.Thread] = None

    @property
    def port(self) -> int:
        return self.server.address[1]

    def start(self):
        """Start server in background thread."""
        self._thread = threading.Thread(target=self.server.run, daemon=True)
        self._thread.start()

        if not self.server.wait_until_ready(timeout=5.0):
            raise RuntimeError("Server failed to start")

    def stop(self):
        """Stop the server."""
        self.server.stop()

        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=10.0)

    def request(self, data: bytes):
        """Send a raw request and return (status, headers, body)."""
        return split_response(send_raw(self.port, data))


@pytest.fixture
def test_server(config: ServerConfig, sink: CollectingSink) -> Generator[TestServer, None, None]:
    """A running Digistar server on a free port."""
    test_srv = TestServer(create_server(config, sink))
    test_srv.start()

    yield test_srv

    test_srv.stop()


@pytest.fixture
def start_server() -> Generator:
    """
    Factory for servers with a custom config or handler.

        srv = start_server(HTTPServer(config, handler))
    """
    started: List[TestServer] = []

    def _start(server: HTTPServer) -> TestServer:
        test_srv = TestServer(server)
        test_srv.start()
        started.append(test_srv)
        return test_srv

    yield _start

    for test_srv in started:
        test_srv.stop()
