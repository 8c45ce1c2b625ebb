"""
=============================================================================
HTTP SERVER
=============================================================================

Ties the transport layer to the request pipeline.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                    DIGISTAR SERVER ARCHITECTURE                      │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   SocketServer ──accept──► ThreadPoolExecutor ──► _process_connection│
    │                                                        │             │
    │                                  Connection.read_request()           │
    │                                                        │             │
    │                                  RequestParser.parse()               │
    │                                                        │             │
    │      Pipeline:  Logger → Body Parser → Static Resolver → Router      │
    │                                                        │             │
    │                                  HTTPResponse.to_bytes() → send      │
    │                                                        │             │
    │                                  keep-alive? loop : close            │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Errors that happen before the pipeline runs (parse errors, oversized bodies,
timeouts) are answered here with a JSON {"error": ...} body and the
connection is closed. An exception escaping the pipeline is logged with its
traceback and answered with 500.

=============================================================================
"""

from concurrent.futures import ThreadPoolExecutor
import logging
import time
from typing import Callable, Optional

from .config import ServerConfig
from .core import SocketServer, Connection, ConnectionState
from .http import (
    HTTPRequest, RequestParser, HTTPParseError,
    HTTPResponse, HTTPStatus, ResponseBuilder, not_found,
)


logger = logging.getLogger(__name__)


RequestHandler = Callable[[HTTPRequest], HTTPResponse]


class HTTPServer:
    """
    Multi-threaded HTTP/1.1 server running one request handler.

    The handler is normally a Pipeline (see app.build_pipeline), but any
    callable taking an HTTPRequest and returning an HTTPResponse works.

    Usage:
        server = HTTPServer(ServerConfig(port=3000), pipeline)
        server.run()  # blocks until SIGINT / SIGTERM
    """

    def __init__(
        self,
        config: Optional[ServerConfig] = None,
        handler: Optional[RequestHandler] = None,
    ):
        """
        Args:
            config: Server configuration; defaults when omitted.
            handler: Request handler; every request gets 404 when omitted.

        Raises:
            ValueError: If the configuration is invalid.
        """
        self.config = config or ServerConfig()
        self.config.validate()

        self._parser = RequestParser(
            max_body_size=self.config.max_body_size,
            max_header_size=self.config.max_header_size,
        )
        self._socket_server = SocketServer(self.config, self._parser)
        self._handler = handler or _no_routes

        self._executor: Optional[ThreadPoolExecutor] = None
        self._running = False

    @property
    def address(self):
        """(host, port) actually bound; useful with port 0."""
        return self._socket_server.address

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    def run(self, host: Optional[str] = None, port: Optional[int] = None):
        """
        Start the server (blocking).

        Args:
            host: Override config host.
            port: Override config port.

        Raises:
            OSError: If the listening socket cannot be bound.
        """
        if host:
            self.config.host = host
        if port is not None:
            self.config.port = port

        self._setup_logging()

        self._executor = ThreadPoolExecutor(
            max_workers=self.config.max_workers,
            thread_name_prefix="digistar-worker",
        )
        self._running = True

        logger.info(
            f"Starting {self.config.server_name} on "
            f"{self.config.host}:{self.config.port} "
            f"({self.config.max_workers} workers, static root: {self.config.static_dir})"
        )

        try:
            self._socket_server.start(self._handle_connection)
        except KeyboardInterrupt:
            logger.info("Received keyboard interrupt")
        finally:
            self._shutdown()

    def wait_until_ready(self, timeout: Optional[float] = None) -> bool:
        """Block until the server accepts connections."""
        return self._socket_server.wait_until_ready(timeout)

    def stop(self):
        """Ask a running server to stop; run() returns shortly after."""
        self._socket_server.shutdown()

    def _setup_logging(self):
        """Configure logging based on config."""
        level = getattr(logging, self.config.log_level.upper(), logging.INFO)

        logging.basicConfig(
            level=level,
            format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )

        logging.getLogger("digistar").setLevel(level)

    def _shutdown(self):
        """
        Graceful shutdown.

        The socket server has already stopped accepting; wait for the
        workers to finish the connections they hold.
        """
        logger.info("Shutting down server...")
        self._running = False

        if self._executor is not None:
            self._executor.shutdown(wait=True)
            self._executor = None

        logger.info("Server stopped")

    # =========================================================================
    # REQUEST HANDLING
    # =========================================================================

    def _handle_connection(self, conn: Connection):
        """Hand a freshly accepted connection to a worker thread."""
        try:
            self._executor.submit(self._process_connection, conn)
        except RuntimeError:
            # Executor already shut down
            logger.warning(f"[{conn.id}] Server shutting down, rejecting connection")
            self._send_error(conn, HTTPStatus.SERVICE_UNAVAILABLE, "Server shutting down")
            conn.close()

    def _process_connection(self, conn: Connection):
        """
        Serve requests on one connection until it closes (runs in a worker).

        1. Read request from socket
        2. Parse HTTP request
        3. Run the pipeline
        4. Send response
        5. Keep-alive: repeat from 1; otherwise close
        """
        with conn:
            while self._running:
                try:
                    try:
                        raw_request = conn.read_request()
                        if raw_request is None:
                            break
                        request = self._parser.parse(raw_request, conn.address)
                    except HTTPParseError as e:
                        logger.info(f"[{conn.id}] Rejected request from {conn.client_ip}: {e}")
                        self._send_error(conn, e.status_code, str(e))
                        break

                    conn.state = ConnectionState.PROCESSING
                    started = time.perf_counter()

                    try:
                        response = self._handler(request)
                    except Exception as e:
                        logger.exception(f"[{conn.id}] Handler error: {e}")
                        response = (ResponseBuilder()
                            .status(HTTPStatus.INTERNAL_SERVER_ERROR)
                            .json({"error": "Internal Server Error"})
                            .build())

                    keep_alive = request.is_keep_alive and self.config.keep_alive
                    if keep_alive:
                        response.headers.setdefault("Connection", "keep-alive")
                        response.headers.setdefault(
                            "Keep-Alive",
                            f"timeout={int(self.config.keep_alive_timeout)}"
                        )
                    else:
                        response.headers["Connection"] = "close"

                    response_bytes = response.to_bytes(self.config.server_name)
                    sent = conn.send_response(response_bytes)

                    elapsed_ms = (time.perf_counter() - started) * 1000
                    logger.debug(
                        f"[{conn.id}] {conn.client_ip} {request.method} {request.target} "
                        f"{int(response.status)} {len(response.body)}B {elapsed_ms:.1f}ms"
                    )

                    if not sent or not keep_alive:
                        break
                    if response.headers.get("Connection", "").lower() == "close":
                        break

                    conn.set_keep_alive()

                except TimeoutError:
                    self._send_error(conn, HTTPStatus.REQUEST_TIMEOUT, "Request timeout")
                    break

                except Exception as e:
                    logger.exception(f"[{conn.id}] Connection error: {e}")
                    break

    def _send_error(self, conn: Connection, status: int, message: str):
        """
        Send a JSON error response and mark the connection for closing.

        Used for errors raised before the pipeline runs (parse errors,
        timeouts).
        """
        response = (ResponseBuilder()
            .status(status)
            .json({"error": message})
            .close_connection()
            .build())

        conn.send_response(response.to_bytes(self.config.server_name))


def _no_routes(request: HTTPRequest) -> HTTPResponse:
    return not_found()
