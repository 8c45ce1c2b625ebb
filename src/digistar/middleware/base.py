"""
=============================================================================
PIPELINE STAGES
=============================================================================

The request pipeline is an ordered list of stages followed by a final
handler (the router). Each stage looks at the request and either:

    - returns an HTTPResponse   → the pipeline HALTS, that is the answer
    - returns None              → the pipeline CONTINUES with the next stage

    ┌────────────┐   None   ┌────────────┐   None   ┌────────────┐   None   ┌────────┐
    │   Logger   │ ───────► │ BodyParser │ ───────► │   Static   │ ───────► │ Router │
    └────────────┘          └─────┬──────┘          └─────┬──────┘          └───┬────┘
                                  │ 400 / 413             │ 200 / 304 / 500     │ 200 / 404 / 405
                                  ▼                       ▼                     ▼
                               response                response              response

A stage may also enrich the request on the way through (the body parser
sets request.decoded_body) since later stages run on the same object.

The driver is a plain loop, not nested callbacks: the order of evaluation is
exactly the order of registration, and a short-circuit is a return value.

=============================================================================
"""

from abc import ABC, abstractmethod
from typing import Callable, Iterator, List, Optional
import logging

from ..http.request import HTTPRequest
from ..http.response import HTTPResponse


logger = logging.getLogger(__name__)


# The final handler: always produces a response.
Handler = Callable[[HTTPRequest], HTTPResponse]

# A stage function: may produce a response.
StageFunc = Callable[[HTTPRequest], Optional[HTTPResponse]]


class Stage(ABC):
    """
    Abstract base class for pipeline stages.

        class RejectEmptyPosts(Stage):
            def __call__(self, request):
                if request.method == "POST" and not request.body:
                    return bad_request("Empty body")   # halt
                return None                            # continue
    """

    @abstractmethod
    def __call__(self, request: HTTPRequest) -> Optional[HTTPResponse]:
        """
        Process the request.

        Returns:
            A response to stop the pipeline, or None to pass the request on.
        """

    @property
    def name(self) -> str:
        """Stage name for logging."""
        return self.__class__.__name__


class FunctionStage(Stage):
    """
    Wraps a plain function as a stage.

        pipeline.add(FunctionStage(lambda request: None, name="noop"))
    """

    def __init__(self, func: StageFunc, name: Optional[str] = None):
        self._func = func
        self._name = name or getattr(func, "__name__", "stage")

    def __call__(self, request: HTTPRequest) -> Optional[HTTPResponse]:
        return self._func(request)

    @property
    def name(self) -> str:
        return self._name


def stage(func: StageFunc) -> FunctionStage:
    """
    Decorator to create a stage from a function.

        @stage
        def deny_trace(request):
            if request.method == "TRACE":
                return method_not_allowed(["GET", "POST"])
            return None

        pipeline.add(deny_trace)
    """
    return FunctionStage(func)


class Pipeline:
    """
    Ordered list of stages in front of a final handler.

    =========================================================================
    USAGE
    =========================================================================

        pipeline = Pipeline(router.handle)
        pipeline.add(RequestLogger(sink))
        pipeline.add(BodyParser())
        pipeline.add(StaticFileHandler("public"))

        response = pipeline.handle(request)

    =========================================================================
    """

    def __init__(self, handler: Handler):
        """
        Args:
            handler: Final handler, called when every stage passed.
        """
        self._handler = handler
        self._stages: List[Stage] = []

    def add(self, item: Stage) -> "Pipeline":
        """Append a stage. Returns self for chaining."""
        self._stages.append(item)
        logger.debug(f"Added stage: {item.name}")
        return self

    def use(self, *stages: Stage) -> "Pipeline":
        """Append several stages at once."""
        for item in stages:
            self.add(item)
        return self

    def handle(self, request: HTTPRequest) -> HTTPResponse:
        """
        Run the request through every stage, then the final handler.

        The first stage returning a response wins; later stages and the
        final handler never see the request.
        """
        for item in self._stages:
            response = item(request)
            if response is not None:
                logger.debug(
                    f"{item.name} answered {request.method} {request.path} "
                    f"with {int(response.status)}"
                )
                return response

        return self._handler(request)

    __call__ = handle

    @property
    def stages(self) -> List[Stage]:
        return list(self._stages)

    def __len__(self) -> int:
        return len(self._stages)

    def __iter__(self) -> Iterator[Stage]:
        return iter(self._stages)
