"""
=============================================================================
SERVER CONFIGURATION
=============================================================================

All tunable settings in one dataclass, with three ways to fill it:

    ServerConfig()                  defaults (0.0.0.0:3000, ./public)
    ServerConfig.from_env()         DIGISTAR_* environment variables
    python -m digistar --port 8000  CLI flags (override the environment)

validate() runs when the server is created, so a bad value stops the
process at startup instead of surfacing on the first request.

=============================================================================
"""

import os
from dataclasses import dataclass
from typing import Optional


LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")
REQUEST_LOG_TARGETS = ("stdout", "logging")


@dataclass
class ServerConfig:
    """
    Configuration for the Digistar server.

    =========================================================================
    CONFIGURATION GROUPS
    =========================================================================

    NETWORK     host, port, backlog, buffer_size, timeout
    HTTP        keep_alive, keep_alive_timeout, max_body_size, max_header_size
    WORKERS     max_workers
    STATIC      static_dir, index_file, cache_max_age
    LOGGING     log_level, request_log

    =========================================================================
    """

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK SETTINGS
    # ─────────────────────────────────────────────────────────────────────

    host: str = "0.0.0.0"
    """Address to bind; all interfaces by default."""

    port: int = 3000
    """Port to listen on. 0 lets the OS pick a free one (tests)."""

    backlog: int = 128
    """Maximum number of connections waiting in the accept queue."""

    buffer_size: int = 8192
    """Bytes requested per recv() call."""

    timeout: Optional[float] = 30.0
    """
    Socket read timeout in seconds for the first request on a connection.
    None blocks forever, which lets one stalled client pin a worker.
    """

    # ─────────────────────────────────────────────────────────────────────
    # HTTP SETTINGS
    # ─────────────────────────────────────────────────────────────────────

    keep_alive: bool = True
    """Allow several requests per TCP connection."""

    keep_alive_timeout: float = 5.0
    """Idle seconds before a kept-alive connection is closed."""

    max_body_size: int = 1024 * 1024  # 1 MiB
    """
    Largest accepted request body. Larger Content-Length values are
    answered with 413 before the body is read.
    """

    max_header_size: int = 64 * 1024
    """Largest accepted request line + header block (431 beyond it)."""

    # ─────────────────────────────────────────────────────────────────────
    # WORKERS
    # ─────────────────────────────────────────────────────────────────────

    max_workers: int = 16
    """Connections handled concurrently; further ones wait in the queue."""

    # ─────────────────────────────────────────────────────────────────────
    # STATIC FILES
    # ─────────────────────────────────────────────────────────────────────

    static_dir: str = "public"
    """Static root, relative to the working directory."""

    index_file: str = "index.html"
    """File served for requests that resolve to a directory."""

    cache_max_age: int = 0
    """Cache-Control max-age for static files, in seconds."""

    # ─────────────────────────────────────────────────────────────────────
    # LOGGING
    # ─────────────────────────────────────────────────────────────────────

    log_level: str = "INFO"
    """Level for the diagnostic loggers (DEBUG, INFO, WARNING, ...)."""

    request_log: str = "stdout"
    """
    Where request log lines go:
    "stdout"  - printed, one line per write
    "logging" - the "digistar.access" logger
    """

    # ─────────────────────────────────────────────────────────────────────
    # SERVER IDENTITY
    # ─────────────────────────────────────────────────────────────────────

    server_name: str = "Digistar/1.0"
    """Value of the Server response header."""

    @classmethod
    def from_env(cls) -> "ServerConfig":
        """
        Create configuration from environment variables.

        =====================================================================
        ENVIRONMENT VARIABLES
        =====================================================================

        DIGISTAR_HOST           Bind address (default: 0.0.0.0)
        DIGISTAR_PORT           Port (default: 3000)
        DIGISTAR_WORKERS        Worker threads (default: 16)
        DIGISTAR_TIMEOUT        Read timeout in seconds (default: 30)
        DIGISTAR_STATIC_DIR     Static root (default: public)
        DIGISTAR_MAX_BODY_SIZE  Body limit in bytes (default: 1048576)
        DIGISTAR_LOG_LEVEL      Logging level (default: INFO)
        DIGISTAR_REQUEST_LOG    stdout or logging (default: stdout)

        =====================================================================

        Raises:
            ValueError: If a numeric variable does not parse.
        """
        defaults = cls()
        return cls(
            host=os.getenv("DIGISTAR_HOST", defaults.host),
            port=int(os.getenv("DIGISTAR_PORT", str(defaults.port))),
            max_workers=int(os.getenv("DIGISTAR_WORKERS", str(defaults.max_workers))),
            timeout=float(os.getenv("DIGISTAR_TIMEOUT", str(defaults.timeout))),
            static_dir=os.getenv("DIGISTAR_STATIC_DIR", defaults.static_dir),
            max_body_size=int(os.getenv("DIGISTAR_MAX_BODY_SIZE", str(defaults.max_body_size))),
            log_level=os.getenv("DIGISTAR_LOG_LEVEL", defaults.log_level),
            request_log=os.getenv("DIGISTAR_REQUEST_LOG", defaults.request_log),
        )

    def validate(self) -> None:
        """
        Validate configuration values.

        Raises:
            ValueError: Describing the first invalid setting.
        """
        if not 0 <= self.port < 65536:
            raise ValueError(f"Invalid port: {self.port}. Must be 0-65535.")

        if self.max_workers < 1:
            raise ValueError("max_workers must be >= 1")

        if self.buffer_size < 1024:
            raise ValueError("buffer_size must be >= 1024")

        if self.timeout is not None and self.timeout <= 0:
            raise ValueError("timeout must be > 0")

        if self.keep_alive_timeout <= 0:
            raise ValueError("keep_alive_timeout must be > 0")

        if self.max_body_size < 0:
            raise ValueError("max_body_size must be >= 0")

        if self.max_header_size < 1024:
            raise ValueError("max_header_size must be >= 1024")

        if self.cache_max_age < 0:
            raise ValueError("cache_max_age must be >= 0")

        if self.log_level.upper() not in LOG_LEVELS:
            raise ValueError(f"Unknown log_level: {self.log_level}")

        if self.request_log not in REQUEST_LOG_TARGETS:
            raise ValueError(
                f"request_log must be one of {', '.join(REQUEST_LOG_TARGETS)}"
            )
