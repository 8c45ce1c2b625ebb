"""
The Digistar route table.

    GET  /        greeting page
    GET  /info    echo of the request as JSON
    GET  /about   greeting using the ``name`` query parameter
    POST /submit  echo of the decoded body as JSON
"""

from html import escape

from ..http.request import HTTPRequest, flatten_params
from ..http.response import HTTPResponse, html_response, json_response
from ..http.router import Router


DEFAULT_NAME = "Digistar"
SUBMIT_MESSAGE = "Data submitted successfully!"


def index(request: HTTPRequest) -> HTTPResponse:
    return html_response(f"<h2>Hello, {DEFAULT_NAME}!</h2>")


def info(request: HTTPRequest) -> HTTPResponse:
    """Reflect the request back: version, method, target, headers and query."""
    return json_response({
        "httpVersion": request.http_version,
        "method": request.method,
        "url": request.target,
        "headers": request.headers,
        "queryParameters": flatten_params(request.query_params),
    })


def about(request: HTTPRequest) -> HTTPResponse:
    # An empty ?name= falls back to the default as well
    name = request.get_query("name") or DEFAULT_NAME
    return html_response(f"<h2>Hello, Ini Halaman About {escape(name, quote=False)}!</h2>")


def submit(request: HTTPRequest) -> HTTPResponse:
    """
    Acknowledge a submission and echo what the body parser decoded.

    "data" is left out entirely when the body was not decoded (unrecognized
    or missing Content-Type), and is null when the JSON body was ``null``.
    """
    payload = {"message": SUBMIT_MESSAGE}
    if request.decoded_body is not None:
        payload["data"] = request.decoded_body.value
    return json_response(payload)


def register_routes(router: Router) -> Router:
    """Add the Digistar routes to a router and return it."""
    router.add_route("/", index, method="GET")
    router.add_route("/info", info, method="GET")
    router.add_route("/about", about, method="GET")
    router.add_route("/submit", submit, method="POST")
    return router
