"""
=============================================================================
BODY PARSER STAGE
=============================================================================

Decodes POST bodies according to their Content-Type and stores the result
on request.decoded_body for the handlers further down the pipeline.

    ┌──────────────────────────────────────┬──────────────────────────────┐
    │ Content-Type (exact match)           │ Result                       │
    ├──────────────────────────────────────┼──────────────────────────────┤
    │ application/json                     │ json.loads(body)             │
    │                                      │ malformed → 400, HALT        │
    │ application/x-www-form-urlencoded    │ {"key": "value", ...}        │
    │                                      │ repeated key → list          │
    │ anything else / missing              │ decoded_body stays None      │
    └──────────────────────────────────────┴──────────────────────────────┘

The match is exact and case-sensitive: "application/json; charset=utf-8"
is NOT decoded, the raw bytes stay available on request.body.

Bodies over max_body_size answer 413. The connection layer normally
rejects them from Content-Length before they are read; the check here
covers requests built in-process.

=============================================================================
"""

from typing import Any, Callable, Dict, Optional
import json
import logging

from .base import Stage
from ..http.request import DecodedBody, HTTPRequest, flatten_params, parse_urlencoded
from ..http.response import HTTPResponse, bad_request, payload_too_large


logger = logging.getLogger(__name__)


JSON_CONTENT_TYPE = "application/json"
FORM_CONTENT_TYPE = "application/x-www-form-urlencoded"


class InvalidBody(ValueError):
    """A body that its declared Content-Type cannot decode."""


def _reject_constant(name: str) -> Any:
    raise ValueError(f"Non-standard JSON constant: {name}")


def decode_json(body: bytes) -> Any:
    # NaN, Infinity and -Infinity are rejected like any other malformed body
    try:
        return json.loads(body.decode("utf-8"), parse_constant=_reject_constant)
    except ValueError as e:
        raise InvalidBody("Invalid JSON") from e


def decode_form(body: bytes) -> Dict[str, Any]:
    # Form decoding is permissive and never raises
    return flatten_params(parse_urlencoded(body.decode("utf-8", errors="replace")))


class BodyParser(Stage):
    """
    Body decoding stage.

    Usage:
        pipeline.add(BodyParser(max_body_size=64 * 1024))

        # later, in a handler:
        if request.decoded_body is not None:
            data = request.decoded_body.value
    """

    def __init__(self, max_body_size: int = 1024 * 1024):
        self.max_body_size = max_body_size
        self.decoders: Dict[str, Callable[[bytes], Any]] = {
            JSON_CONTENT_TYPE: decode_json,
            FORM_CONTENT_TYPE: decode_form,
        }

    def __call__(self, request: HTTPRequest) -> Optional[HTTPResponse]:
        if request.method != "POST":
            return None

        if len(request.body) > self.max_body_size:
            logger.warning(
                f"Rejecting {len(request.body)} byte body "
                f"(limit {self.max_body_size}) for {request.path}"
            )
            return payload_too_large()

        content_type = request.content_type
        decoder = self.decoders.get(content_type) if content_type else None
        if decoder is None:
            return None

        try:
            value = decoder(request.body)
        except InvalidBody as e:
            logger.debug(f"Undecodable {content_type} body for {request.path}: {e.__cause__}")
            return bad_request(str(e))

        request.decoded_body = DecodedBody(content_type=content_type, value=value)
        return None
