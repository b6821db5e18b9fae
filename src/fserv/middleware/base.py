"""
=============================================================================
BASE MIDDLEWARE INTERFACE
=============================================================================

Middleware wraps the request handler so cross-cutting work (access
logging) stays out of the file-serving code.

    ┌─────────────────────────────────────────────────────────────────────┐
    │   Request ─────────────────────────────────────────────►            │
    │                                                                      │
    │   ┌──────────┐    ┌──────────┐    ┌───────────────────┐             │
    │   │ Logging  │───►│   ...    │───►│ StaticFileHandler │             │
    │   │    MW    │    │    MW    │    │      .handle      │             │
    │   └──────────┘    └──────────┘    └───────────────────┘             │
    │                                                                      │
    │   ◄─────────────────────────────────────────────── Response         │
    └─────────────────────────────────────────────────────────────────────┘

Each middleware receives the request and `next`, the rest of the chain.
It may return early or call next(request) and post-process the response.

=============================================================================
"""

from abc import ABC, abstractmethod
from typing import Callable, List
import logging

from ..http.request import HTTPRequest
from ..http.response import HTTPResponse


logger = logging.getLogger(__name__)

NextHandler = Callable[[HTTPRequest], HTTPResponse]


class Middleware(ABC):
    """
    Abstract base class for middleware.

        class MyMiddleware(Middleware):
            def __call__(self, request, next):
                response = next(request)
                response.set_header("X-Served-From", "disk")
                return response
    """

    @abstractmethod
    def __call__(self, request: HTTPRequest, next: NextHandler) -> HTTPResponse:
        """
        Process the request.

        Args:
            request: The parsed request.
            next: The next handler in the chain.

        Returns:
            The response, from next() or produced here.
        """

    @property
    def name(self) -> str:
        return self.__class__.__name__


class MiddlewarePipeline:
    """
    Chains middleware around a final handler.

    First added = outermost:

        pipeline = MiddlewarePipeline()
        pipeline.add(LoggingMiddleware())
        handle = pipeline.wrap(static_handler.handle)
        response = handle(request)
    """

    def __init__(self):
        self._middleware: List[Middleware] = []

    def add(self, middleware: Middleware) -> "MiddlewarePipeline":
        """Append middleware. Returns self for chaining."""
        self._middleware.append(middleware)
        logger.debug(f"Added middleware: {middleware.name}")
        return self

    def use(self, *middleware: Middleware) -> "MiddlewarePipeline":
        for mw in middleware:
            self.add(mw)
        return self

    def wrap(self, handler: NextHandler) -> NextHandler:
        """
        Build the chain around handler.

        Given [MW1, MW2] the result calls MW1 → MW2 → handler, so we wrap
        in reverse order.
        """
        current = handler
        for middleware in reversed(self._middleware):
            current = self._create_wrapped_handler(middleware, current)
        return current

    @staticmethod
    def _create_wrapped_handler(middleware: Middleware, next_handler: NextHandler) -> NextHandler:
        def wrapped(request: HTTPRequest) -> HTTPResponse:
            return middleware(request, next_handler)
        return wrapped

    def __len__(self) -> int:
        return len(self._middleware)

    def __iter__(self):
        return iter(self._middleware)
