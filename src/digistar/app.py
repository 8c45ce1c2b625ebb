"""
=============================================================================
APPLICATION WIRING
=============================================================================

Builds the Digistar request pipeline from a ServerConfig:

    RequestLogger ──► BodyParser ──► StaticFileHandler ──► Router
     (log lines)     (JSON / form)    (public/ files)     (route table)

Every request goes through the stages in this order; the first stage that
returns a response ends the walk, and the router answers whatever nobody
else did (200 from a route, 405 or 404 otherwise).

=============================================================================
"""

from typing import Optional

from .config import ServerConfig
from .handlers import StaticFileHandler, register_routes
from .http import Router
from .middleware import (
    Pipeline, RequestLogger, BodyParser,
    OutputSink, StreamSink, LoggerSink,
)
from .server import HTTPServer


def make_sink(config: ServerConfig) -> OutputSink:
    """Request-log sink selected by config.request_log."""
    if config.request_log == "logging":
        return LoggerSink()
    return StreamSink()


def build_router() -> Router:
    router = Router()
    register_routes(router)
    return router


def build_pipeline(
    config: Optional[ServerConfig] = None,
    sink: Optional[OutputSink] = None,
) -> Pipeline:
    """
    Assemble the stage list in front of the route table.

    Args:
        config: Settings for the body cap and the static root.
        sink: Where request log lines go. Defaults to what
              config.request_log selects (stdout unless told otherwise).
    """
    config = config or ServerConfig()

    router = build_router()
    pipeline = Pipeline(router.handle)
    pipeline.use(
        RequestLogger(sink or make_sink(config)),
        BodyParser(max_body_size=config.max_body_size),
        StaticFileHandler(
            root_dir=config.static_dir,
            index_file=config.index_file,
            cache_max_age=config.cache_max_age,
            methods=router.supported_methods,
        ),
    )
    return pipeline


def create_server(
    config: Optional[ServerConfig] = None,
    sink: Optional[OutputSink] = None,
) -> HTTPServer:
    """
    Create a ready-to-run Digistar server.

    Example:
        server = create_server(ServerConfig(port=3000))
        server.run()

    Raises:
        ValueError: If the configuration is invalid.
    """
    config = config or ServerConfig()
    config.validate()
    return HTTPServer(config, build_pipeline(config, sink))
