"""
Request handlers.

    static.py   StaticFileHandler, the static-file pipeline stage
    routes.py   the Digistar route table (/, /info, /about, /submit)
"""

from .static import StaticFileHandler
from .routes import register_routes, index, info, about, submit

__all__ = [
    "StaticFileHandler",
    "register_routes",
    "index",
    "info",
    "about",
    "submit",
]
