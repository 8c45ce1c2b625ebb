"""
=============================================================================
HTTP PROTOCOL LAYER
=============================================================================

Everything between raw bytes and the request pipeline:

    request.py       raw bytes → HTTPRequest (method, path, headers, body)
    response.py      HTTPResponse / ResponseBuilder → raw bytes
    router.py        exact (method, path) → handler table, 404 / 405
    status_codes.py  HTTPStatus enum with reason phrases
    mime_types.py    static file extension → Content-Type

=============================================================================
"""

from .request import (
    HTTPRequest,
    DecodedBody,
    RequestParser,
    HTTPParseError,
    parse_request,
    parse_urlencoded,
    flatten_params,
)
from .response import (
    HTTPResponse,
    ResponseBuilder,
    json_response,
    html_response,
    html_message,
    error_response,
    bad_request,
    payload_too_large,
    not_found,
    method_not_allowed,
    internal_error,
)
from .router import Router, Route
from .status_codes import HTTPStatus
from .mime_types import MIME_TYPES, get_mime_type

__all__ = [
    # Requests
    "HTTPRequest",
    "DecodedBody",
    "RequestParser",
    "HTTPParseError",
    "parse_request",
    "parse_urlencoded",
    "flatten_params",

    # Responses
    "HTTPResponse",
    "ResponseBuilder",
    "json_response",
    "html_response",
    "html_message",
    "error_response",
    "bad_request",
    "payload_too_large",
    "not_found",
    "method_not_allowed",
    "internal_error",

    # Routing
    "Router",
    "Route",

    # Status codes and MIME types
    "HTTPStatus",
    "MIME_TYPES",
    "get_mime_type",
]
