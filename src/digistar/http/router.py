"""
=============================================================================
HTTP ROUTER
=============================================================================

Maps (method, path) pairs to handler functions.

The router is the LAST stage of the request pipeline: it only sees requests
that no earlier stage (body parser, static files) answered. Matching is an
exact lookup, there are no path parameters or wildcards:

    ┌──────────┬───────────┬─────────────────────────────────────────────┐
    │ Method   │ Path      │ Outcome                                     │
    ├──────────┼───────────┼─────────────────────────────────────────────┤
    │ GET      │ /info     │ registered handler                          │
    │ GET      │ /nope     │ 404 <h2>Page Not Found</h2>                 │
    │ POST     │ /info     │ 404 (POST is served, just not at /info)     │
    │ DELETE   │ /info     │ 405 <h2>Method Not Allowed</h2> + Allow     │
    └──────────┴───────────┴─────────────────────────────────────────────┘

The set of "served" methods is derived from the table itself: a method that
no route is registered for answers 405 on every path.

=============================================================================
"""

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional
import logging

from .request import HTTPRequest
from .response import HTTPResponse, not_found, method_not_allowed


logger = logging.getLogger(__name__)


# Handler: takes a request, returns a response
Handler = Callable[[HTTPRequest], HTTPResponse]


@dataclass
class Route:
    """
    A registered route.

        @router.get("/about", name="about")
        def about(request):
            ...

        Route(method="GET", path="/about", handler=about, name="about")
    """

    method: str
    path: str
    handler: Handler
    name: Optional[str] = None
    meta: Dict[str, Any] = field(default_factory=dict)


class Router:
    """
    Exact method + path route table.

    Routes are registered with add_route() or the decorator helpers:

        router = Router()

        @router.get("/")
        def index(request):
            return html_response("<h2>Hello</h2>")

        @router.post("/submit")
        def submit(request):
            return json_response({"data": request.decoded_body.value})

        response = router.handle(request)
    """

    def __init__(self):
        self._routes: Dict[tuple[str, str], Route] = {}

    # =========================================================================
    # ROUTE REGISTRATION
    # =========================================================================

    def add_route(
        self,
        path: str,
        handler: Handler,
        method: str = "GET",
        name: Optional[str] = None,
        **meta: Any
    ) -> Route:
        """
        Register a route.

        Args:
            path: Exact request path ("/info")
            handler: Function taking a request and returning a response
            method: HTTP method (case-insensitive)
            name: Optional route name
            **meta: Extra metadata kept on the Route

        Raises:
            ValueError: If the method + path pair is already registered.
        """
        key = (method.upper(), self._normalize(path))
        if key in self._routes:
            raise ValueError(f"Route already registered: {key[0]} {key[1]}")

        route = Route(
            method=key[0],
            path=key[1],
            handler=handler,
            name=name or getattr(handler, "__name__", None),
            meta=meta,
        )
        self._routes[key] = route
        return route

    @staticmethod
    def _normalize(path: str) -> str:
        return path or "/"

    # =========================================================================
    # ROUTE MATCHING
    # =========================================================================

    @property
    def routes(self) -> List[Route]:
        """All routes, in registration order."""
        return list(self._routes.values())

    @property
    def supported_methods(self) -> List[str]:
        """Methods that at least one route is registered for, sorted."""
        return sorted({method for method, _ in self._routes})

    def match(self, method: str, path: str) -> Optional[Route]:
        """Find the route for an exact method + path pair, or None."""
        return self._routes.get((method.upper(), self._normalize(path)))

    def handle(self, request: HTTPRequest) -> HTTPResponse:
        """
        Route a request to its handler.

        1. Exact match          → handler(request)
        2. Method never served  → 405 with Allow header
        3. Otherwise            → 404
        """
        route = self.match(request.method, request.path)
        if route:
            return route.handler(request)

        allowed = self.supported_methods
        if request.method.upper() not in allowed:
            logger.debug(f"Method {request.method} not served, answering 405")
            return method_not_allowed(allowed)

        return not_found()

    # =========================================================================
    # DECORATOR-STYLE ROUTE REGISTRATION
    # =========================================================================
    #
    #     @router.get("/info")
    #     def info(request): ...
    #
    # is equivalent to:
    #
    #     router.add_route("/info", info, method="GET")
    #
    # =========================================================================

    def route(
        self,
        path: str,
        method: str = "GET",
        name: Optional[str] = None,
        **meta: Any
    ) -> Callable[[Handler], Handler]:
        """Decorator for registering a route; returns the handler unchanged."""
        def decorator(handler: Handler) -> Handler:
            self.add_route(path, handler, method, name, **meta)
            return handler
        return decorator

    def get(self, path: str, name: Optional[str] = None, **meta: Any) -> Callable[[Handler], Handler]:
        """Register a GET route."""
        return self.route(path, "GET", name, **meta)

    def post(self, path: str, name: Optional[str] = None, **meta: Any) -> Callable[[Handler], Handler]:
        """Register a POST route."""
        return self.route(path, "POST", name, **meta)

    def __len__(self) -> int:
        return len(self._routes)
