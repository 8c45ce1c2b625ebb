"""
Unit tests for the Digistar route table, run through the full pipeline.
"""

import json

from digistar.http.request import parse_request
from digistar.http.response import HTTPStatus


def run(pipeline, raw: bytes):
    return pipeline.handle(parse_request(raw, ("127.0.0.1", 5000)))


def post_raw(path: str, body: bytes, content_type: str = None) -> bytes:
    head = f"POST {path} HTTP/1.1\r\nHost: localhost\r\n"
    if content_type:
        head += f"Content-Type: {content_type}\r\n"
    head += f"Content-Length: {len(body)}\r\n\r\n"
    return head.encode() + body


class TestIndex:
    def test_hello(self, pipeline):
        response = run(pipeline, b"GET / HTTP/1.1\r\nHost: localhost\r\n\r\n")

        assert response.status == HTTPStatus.OK
        assert response.headers["Content-Type"] == "text/html"
        assert response.body == b"<h2>Hello, Digistar!</h2>"


class TestAbout:
    def test_default_name(self, pipeline):
        response = run(pipeline, b"GET /about HTTP/1.1\r\n\r\n")
        assert response.body == b"<h2>Hello, Ini Halaman About Digistar!</h2>"

    def test_name_from_query(self, pipeline):
        response = run(pipeline, b"GET /about?name=Budi HTTP/1.1\r\n\r\n")
        assert response.body == b"<h2>Hello, Ini Halaman About Budi!</h2>"

    def test_empty_name_uses_default(self, pipeline):
        response = run(pipeline, b"GET /about?name= HTTP/1.1\r\n\r\n")
        assert response.body == b"<h2>Hello, Ini Halaman About Digistar!</h2>"

    def test_first_name_wins(self, pipeline):
        response = run(pipeline, b"GET /about?name=Budi&name=Sari HTTP/1.1\r\n\r\n")
        assert b"About Budi!" in response.body

    def test_name_is_escaped(self, pipeline):
        response = run(pipeline, b"GET /about?name=%3Cb%3EX%3C/b%3E HTTP/1.1\r\n\r\n")
        assert response.body == b"<h2>Hello, Ini Halaman About &lt;b&gt;X&lt;/b&gt;!</h2>"

    def test_percent_encoded_path(self, pipeline):
        """The path is decoded before it is matched against the route table."""
        response = run(pipeline, b"GET /ab%6Fut HTTP/1.1\r\n\r\n")
        assert response.body == b"<h2>Hello, Ini Halaman About Digistar!</h2>"


class TestInfo:
    def test_reflects_request(self, pipeline):
        response = run(
            pipeline,
            b"GET /info?a=1&a=2&b=3 HTTP/1.1\r\nHost: localhost:3000\r\nX-Test: yes\r\n\r\n",
        )

        assert response.status == HTTPStatus.OK
        assert response.headers["Content-Type"] == "application/json"
        assert response.json() == {
            "httpVersion": "1.1",
            "method": "GET",
            "url": "/info?a=1&a=2&b=3",
            "headers": {"host": "localhost:3000", "x-test": "yes"},
            "queryParameters": {"a": ["1", "2"], "b": "3"},
        }

    def test_pretty_printed(self, pipeline):
        response = run(pipeline, b"GET /info HTTP/1.0\r\n\r\n")

        assert response.body == json.dumps(response.json(), indent=2).encode()
        assert response.json()["httpVersion"] == "1.0"
        assert response.json()["queryParameters"] == {}


class TestSubmit:
    def test_json_body(self, pipeline):
        response = run(pipeline, post_raw("/submit", b'{"a":1}', "application/json"))

        assert response.status == HTTPStatus.OK
        assert response.json() == {"message": "Data submitted successfully!", "data": {"a": 1}}

    def test_form_body(self, pipeline):
        body = b"name=Budi&hobby=coding&hobby=music"
        response = run(pipeline, post_raw("/submit", body, "application/x-www-form-urlencoded"))

        assert response.json()["data"] == {"name": "Budi", "hobby": ["coding", "music"]}

    def test_json_null(self, pipeline):
        response = run(pipeline, post_raw("/submit", b"null", "application/json"))
        assert response.json() == {"message": "Data submitted successfully!", "data": None}

    def test_undecoded_body_omits_data(self, pipeline):
        response = run(pipeline, post_raw("/submit", b"hello", "text/plain"))
        assert response.json() == {"message": "Data submitted successfully!"}

    def test_invalid_json(self, pipeline):
        response = run(pipeline, post_raw("/submit", b"{bad", "application/json"))

        assert response.status == HTTPStatus.BAD_REQUEST
        assert response.json() == {"error": "Invalid JSON"}

    def test_non_standard_json_constants(self, pipeline):
        body = b'{"a": NaN, "b": Infinity}'
        response = run(pipeline, post_raw("/submit", body, "application/json"))

        assert response.status == HTTPStatus.BAD_REQUEST
        assert response.json() == {"error": "Invalid JSON"}


class TestFallThrough:
    def test_unknown_path_404(self, pipeline):
        response = run(pipeline, b"GET /nope HTTP/1.1\r\n\r\n")

        assert response.status == HTTPStatus.NOT_FOUND
        assert response.body == b"<h2>Page Not Found</h2>"

    def test_unserved_method_405(self, pipeline):
        response = run(pipeline, b"DELETE / HTTP/1.1\r\n\r\n")

        assert response.status == HTTPStatus.METHOD_NOT_ALLOWED
        assert response.body == b"<h2>Method Not Allowed</h2>"
        assert response.headers["Allow"] == "GET, POST"

    def test_delete_static_file_405(self, pipeline):
        response = run(pipeline, b"DELETE /style.css HTTP/1.1\r\n\r\n")
        assert response.status == HTTPStatus.METHOD_NOT_ALLOWED

    def test_post_to_static_file_served(self, pipeline):
        response = run(pipeline, post_raw("/style.css", b"x", "text/plain"))

        assert response.status == HTTPStatus.OK
        assert response.headers["Content-Type"] == "text/css"
        assert response.body == b"body { color: red; }"

    def test_overlong_name_404(self, pipeline):
        raw = b"GET /" + b"a" * 300 + b" HTTP/1.1\r\n\r\n"
        response = run(pipeline, raw)

        assert response.status == HTTPStatus.NOT_FOUND
        assert response.body == b"<h2>Page Not Found</h2>"

    def test_static_file_before_routes(self, pipeline, static_root):
        (static_root / "info").write_text("shadowed")

        response = run(pipeline, b"GET /info HTTP/1.1\r\n\r\n")

        assert response.body == b"shadowed"
        assert response.headers["Content-Type"] == "text/plain"

    def test_every_request_logged(self, pipeline, sink):
        run(pipeline, b"GET /nope HTTP/1.1\r\n\r\n")
        run(pipeline, post_raw("/submit", b"{bad", "application/json"))

        assert sink.lines[0].endswith("] GET request for /nope")
        assert sink.lines[2].endswith("] POST request for /submit")
        assert sink.lines[4] == "Body: {bad"
