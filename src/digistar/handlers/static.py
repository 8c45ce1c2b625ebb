"""
=============================================================================
STATIC FILE STAGE
=============================================================================

Serves files from the static root ("public/" by default) before the route
table is consulted. A request for /style.css returns public/style.css if it
exists; otherwise the request passes on to the router.

=============================================================================
RESOLUTION
=============================================================================

    GET /docs/
      │
      ▼
    candidate = <root>/docs            escapes root? ──► pass (None)
      │
      ▼
    open(candidate) ───────────────── is a directory ──► open(<root>/docs/index.html)
      │                                                    │
      ├── FileNotFoundError, NotADirectoryError, ◄─────────┤
      │   name too long, symlink loop                      │
      │        └──► pass (None), router answers            │
      ├── other OSError (permission denied, ...) ◄─────────┘
      │        └──► 500 text/plain "Internal Server Error", cause logged
      ▼
    200, Content-Type from MIME table, ETag, Last-Modified, Cache-Control
    (304 when If-None-Match carries the current ETag)

There is no separate "does it exist?" check before the read. The file is
opened once and classified by the error the open raises, so a file that
disappears between check and read cannot produce a 500.

Only the methods the route table serves (GET and POST) are resolved; any
other method goes straight to the router, so DELETE /style.css answers 405
like any other DELETE.

=============================================================================
"""

from datetime import datetime, timezone
from pathlib import Path
from typing import Iterable, Optional, Tuple
import errno
import logging
import os

from ..http.request import HTTPRequest
from ..http.response import (
    HTTPResponse, ResponseBuilder, HTTPStatus,
    format_http_date, internal_error,
)
from ..middleware.base import Stage


logger = logging.getLogger(__name__)


NOT_FOUND_ERRORS = (FileNotFoundError, NotADirectoryError, IsADirectoryError)
NOT_FOUND_ERRNOS = (errno.ENAMETOOLONG, errno.ELOOP)


class StaticFileHandler(Stage):
    """
    Static file stage.

    =========================================================================
    USAGE
    =========================================================================

        static = StaticFileHandler(
            root_dir="public",
            index_file="index.html",
            cache_max_age=0,
            methods=("GET", "POST"),
        )
        pipeline.add(static)

    =========================================================================
    """

    def __init__(
        self,
        root_dir: str = "public",
        index_file: str = "index.html",
        cache_max_age: int = 0,
        methods: Iterable[str] = ("GET", "POST"),
    ):
        """
        Args:
            root_dir: Directory to serve files from. May not exist yet; every
                      request then passes through to the router.
            index_file: File served for directory requests.
            cache_max_age: Cache-Control max-age in seconds.
            methods: Request methods resolved against the root; others
                     pass through to the router.
        """
        self.root_dir = Path(root_dir).resolve()
        self.index_file = index_file
        self.cache_max_age = cache_max_age
        self.methods = frozenset(m.upper() for m in methods)

        if not self.root_dir.is_dir():
            logger.warning(f"Static root {self.root_dir} does not exist; serving routes only")

    def __call__(self, request: HTTPRequest) -> Optional[HTTPResponse]:
        if request.method not in self.methods:
            return None

        candidate = self._candidate(request.path)
        if candidate is None:
            return None

        try:
            content, stat, served = self._read(candidate)
        except NOT_FOUND_ERRORS:
            return None
        except OSError as e:
            if e.errno in NOT_FOUND_ERRNOS:
                return None
            logger.error(f"Error reading static file {candidate}: {e}")
            return internal_error()

        return self._file_response(request, served, content, stat)

    def _candidate(self, url_path: str) -> Optional[Path]:
        """
        Map a URL path to a filesystem path under the root.

        Returns None when the resolved path would leave the root (symlinks
        pointing outside, or a path the OS cannot represent).
        """
        try:
            candidate = (self.root_dir / url_path.lstrip("/")).resolve()
            candidate.relative_to(self.root_dir)
        except ValueError:
            logger.warning(f"Refusing static path outside root: {url_path}")
            return None
        return candidate

    def _read(self, path: Path) -> Tuple[bytes, os.stat_result, Path]:
        """
        Read a file, or the index file of a directory.

        Returns:
            (content, stat of the opened file, path actually served)
        """
        try:
            return self._read_file(path) + (path,)
        except IsADirectoryError:
            index = path / self.index_file
            return self._read_file(index) + (index,)

    @staticmethod
    def _read_file(path: Path) -> Tuple[bytes, os.stat_result]:
        with open(path, "rb") as f:
            # fstat on the open descriptor describes exactly what was read
            return f.read(), os.fstat(f.fileno())

    def _file_response(
        self,
        request: HTTPRequest,
        path: Path,
        content: bytes,
        stat: os.stat_result,
    ) -> HTTPResponse:
        """
        Build the 200 (or 304) response for a file that was read.

        ETag is "<mtime>-<size>": cheap to compute and changes whenever the
        file is rewritten.
        """
        etag = f'"{int(stat.st_mtime)}-{stat.st_size}"'

        if request.get_header("If-None-Match") == etag:
            return (ResponseBuilder()
                .status(HTTPStatus.NOT_MODIFIED)
                .header("ETag", etag)
                .build())

        mtime = datetime.fromtimestamp(stat.st_mtime, tz=timezone.utc)
        return (ResponseBuilder()
            .status(HTTPStatus.OK)
            .header("ETag", etag)
            .header("Last-Modified", format_http_date(mtime))
            .cache(self.cache_max_age)
            .file(content, path.name)
            .build())
