"""
=============================================================================
DIGISTAR - Small HTTP/1.1 Server With a Fixed Request Pipeline
=============================================================================

Serves a handful of routes and a directory of static files over raw
sockets. Every request walks the same stages:

    Logger → Body Parser → Static Resolver → Router

=============================================================================
PACKAGE STRUCTURE
=============================================================================

    digistar/
    ├── __init__.py          # This file - package exports
    ├── __main__.py          # CLI entry point (python -m digistar)
    ├── app.py               # Pipeline wiring, create_server()
    ├── server.py            # HTTPServer: workers, keep-alive loop
    ├── config.py            # ServerConfig dataclass
    ├── core/
    │   ├── socket_server.py # Listening socket, accept loop
    │   └── connection.py    # Per-client reading and writing
    ├── http/
    │   ├── request.py       # HTTPRequest, RequestParser
    │   ├── response.py      # HTTPResponse, ResponseBuilder
    │   ├── router.py        # Exact method + path routing
    │   ├── status_codes.py  # HTTPStatus
    │   └── mime_types.py    # Extension → Content-Type
    ├── middleware/
    │   ├── base.py          # Stage, Pipeline
    │   ├── logging.py       # RequestLogger, sinks
    │   └── body_parser.py   # BodyParser
    └── handlers/
        ├── static.py        # StaticFileHandler stage
        └── routes.py        # /, /info, /about, /submit

=============================================================================
QUICK START
=============================================================================

    from digistar import ServerConfig, create_server

    server = create_server(ServerConfig(port=3000, static_dir="public"))
    server.run()

=============================================================================
"""

__version__ = "1.0.0"

from .config import ServerConfig
from .server import HTTPServer
from .app import build_pipeline, create_server

__all__ = [
    "ServerConfig",
    "HTTPServer",
    "build_pipeline",
    "create_server",
    "__version__",
]
