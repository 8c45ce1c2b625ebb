"""
End-to-end tests: a real server on a local port, driven with raw sockets.
"""

import json
import socket
import threading

import pytest

from digistar import HTTPServer, ServerConfig, create_server


def get(path: str) -> bytes:
    return f"GET {path} HTTP/1.1\r\nHost: localhost\r\nConnection: close\r\n\r\n".encode()


def post(path: str, body: bytes, content_type: str) -> bytes:
    return (
        f"POST {path} HTTP/1.1\r\n"
        f"Host: localhost\r\n"
        f"Content-Type: {content_type}\r\n"
        f"Content-Length: {len(body)}\r\n"
        f"Connection: close\r\n\r\n"
    ).encode() + body


class TestRoutes:
    """Requests that walk the whole pipeline over TCP."""

    def test_index(self, test_server):
        status, headers, body = test_server.request(get("/"))

        assert status == 200
        assert headers["content-type"] == "text/html"
        assert headers["server"] == "Digistar/1.0"
        assert headers["connection"] == "close"
        assert body == b"<h2>Hello, Digistar!</h2>"

    def test_about(self, test_server):
        _, _, body = test_server.request(get("/about?name=Budi"))
        assert body == b"<h2>Hello, Ini Halaman About Budi!</h2>"

        _, _, body = test_server.request(get("/about"))
        assert body == b"<h2>Hello, Ini Halaman About Digistar!</h2>"

    def test_info(self, test_server):
        status, headers, body = test_server.request(get("/info?x=1"))
        data = json.loads(body)

        assert status == 200
        assert headers["content-type"] == "application/json"
        assert data["httpVersion"] == "1.1"
        assert data["url"] == "/info?x=1"
        assert data["queryParameters"] == {"x": "1"}
        assert data["headers"]["host"] == "localhost"

    def test_submit_json(self, test_server):
        status, _, body = test_server.request(post("/submit", b'{"a":1}', "application/json"))

        assert status == 200
        assert json.loads(body) == {"message": "Data submitted successfully!", "data": {"a": 1}}

    def test_submit_invalid_json(self, test_server):
        status, _, body = test_server.request(post("/submit", b"{bad", "application/json"))

        assert status == 400
        assert json.loads(body) == {"error": "Invalid JSON"}

    def test_method_not_allowed(self, test_server):
        raw = b"DELETE / HTTP/1.1\r\nHost: localhost\r\nConnection: close\r\n\r\n"
        status, headers, body = test_server.request(raw)

        assert status == 405
        assert headers["allow"] == "GET, POST"
        assert body == b"<h2>Method Not Allowed</h2>"

    def test_not_found(self, test_server):
        status, _, body = test_server.request(get("/nope"))

        assert status == 404
        assert body == b"<h2>Page Not Found</h2>"


class TestStaticFiles:
    def test_css_file(self, test_server):
        status, headers, body = test_server.request(get("/style.css"))

        assert status == 200
        assert headers["content-type"] == "text/css"
        assert headers["content-length"] == str(len(body))
        assert "etag" in headers
        assert body == b"body { color: red; }"

    def test_directory_index(self, test_server):
        status, headers, body = test_server.request(get("/docs/"))

        assert status == 200
        assert headers["content-type"] == "text/html"
        assert body == b"<h1>Docs</h1>"

    def test_conditional_get(self, test_server):
        _, headers, _ = test_server.request(get("/style.css"))
        raw = (
            "GET /style.css HTTP/1.1\r\n"
            f"If-None-Match: {headers['etag']}\r\n"
            "Connection: close\r\n\r\n"
        ).encode()

        status, _, body = test_server.request(raw)

        assert status == 304
        assert body == b""


class TestProtocolErrors:
    def test_malformed_request_line(self, test_server):
        status, headers, body = test_server.request(b"NONSENSE\r\n\r\n")

        assert status == 400
        assert headers["connection"] == "close"
        assert "error" in json.loads(body)

    def test_path_traversal(self, test_server):
        status, _, _ = test_server.request(get("/../secret"))
        assert status == 400

    def test_body_too_large(self, config, sink, start_server):
        config.max_body_size = 16
        srv = start_server(create_server(config, sink))

        status, _, body = srv.request(post("/submit", b"x" * 17, "text/plain"))

        assert status == 413
        assert "error" in json.loads(body)

    def test_transfer_encoding_rejected(self, test_server):
        raw = (
            b"POST /submit HTTP/1.1\r\n"
            b"Transfer-Encoding: chunked\r\n"
            b"Content-Type: application/json\r\n\r\n"
            b"7\r\n{\"a\":1}\r\n0\r\n\r\n"
        )
        status, _, _ = test_server.request(raw)

        assert status == 411

    def test_unsupported_version(self, test_server):
        status, _, _ = test_server.request(b"GET / HTTP/2.0\r\n\r\n")
        assert status == 505


class TestConnectionHandling:
    def test_keep_alive_serves_several_requests(self, test_server):
        with socket.create_connection(("127.0.0.1", test_server.port), timeout=5) as s:
            s.sendall(b"GET / HTTP/1.1\r\nHost: localhost\r\n\r\n")
            first = _read_one_response(s)
            s.sendall(b"GET /about HTTP/1.1\r\nHost: localhost\r\n\r\n")
            second = _read_one_response(s)

        assert b"Connection: keep-alive" in first
        assert first.endswith(b"<h2>Hello, Digistar!</h2>")
        assert second.endswith(b"<h2>Hello, Ini Halaman About Digistar!</h2>")

    def test_http_10_closes(self, test_server):
        status, headers, _ = test_server.request(b"GET / HTTP/1.0\r\n\r\n")

        assert status == 200
        assert headers["connection"] == "close"

    def test_concurrent_clients(self, test_server):
        results = []
        lock = threading.Lock()

        def client(i):
            status, _, body = test_server.request(get(f"/about?name=c{i}"))
            with lock:
                results.append((status, body))

        threads = [threading.Thread(target=client, args=(i,)) for i in range(10)]
        for t in threads:
            t.start()
        for t in threads:
            t.join(timeout=10)

        assert len(results) == 10
        assert all(status == 200 for status, _ in results)
        assert {body for _, body in results} == {
            f"<h2>Hello, Ini Halaman About c{i}!</h2>".encode() for i in range(10)
        }

    def test_request_log_lines(self, test_server, sink):
        test_server.request(post("/submit", b'{"a":1}', "application/json"))

        assert sink.lines[0].endswith("] POST request for /submit")
        assert sink.lines[1].startswith("Headers: ")
        assert sink.lines[2] == 'Body: {"a":1}'


class TestServerLifecycle:
    def test_handler_exception_is_500(self, config, start_server):
        def broken(request):
            raise RuntimeError("boom")

        srv = start_server(HTTPServer(config, broken))

        status, _, body = srv.request(get("/"))

        assert status == 500
        assert json.loads(body) == {"error": "Internal Server Error"}

    def test_invalid_config_rejected(self):
        with pytest.raises(ValueError):
            create_server(ServerConfig(max_workers=0))

    def test_bind_failure_raises(self, config):
        with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as blocker:
            blocker.bind(("127.0.0.1", 0))
            blocker.listen(1)
            config.port = blocker.getsockname()[1]

            server = HTTPServer(config)
            with pytest.raises(OSError):
                server.run()


def _read_one_response(sock: socket.socket) -> bytes:
    """Read exactly one Content-Length framed response."""
    data = b""
    while b"\r\n\r\n" not in data:
        data += sock.recv(4096)
    head, _, body = data.partition(b"\r\n\r\n")
    length = 0
    for line in head.split(b"\r\n")[1:]:
        name, _, value = line.partition(b":")
        if name.strip().lower() == b"content-length":
            length = int(value)
    while len(body) < length:
        body += sock.recv(4096)
    return head + b"\r\n\r\n" + body
