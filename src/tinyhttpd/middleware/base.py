"""
=============================================================================
MIDDLEWARE BASE
=============================================================================

A middleware sees every request on its way to the router and every response
on its way back to the connection:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │   request ──► Logging ──► Session ──► Security ──► Router           │
    │                                                      │               │
    │   response ◄── Logging ◄── Session ◄── Security ◄────┘              │
    │              (X-Request-ID) (Set-Cookie)  (X-Frame-Options, ...)    │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Middleware runs INSIDE the exchange: it can add headers and attach data to
the request, but it never decides gzip or connection closure. Those are
applied afterwards, when the connection loop encodes the response.

=============================================================================
"""

from abc import ABC, abstractmethod
from typing import Callable, Iterator, List
import logging

from ..http.request import HTTPRequest
from ..http.response import HTTPResponse


logger = logging.getLogger(__name__)


# The next step in the chain: another middleware or the router itself
NextHandler = Callable[[HTTPRequest], HTTPResponse]


class Middleware(ABC):
    """
    Abstract base class for middleware.

    =========================================================================
    THE MIDDLEWARE CONTRACT
    =========================================================================

        class MyMiddleware(Middleware):
            def __call__(self, request, next):
                # before: inspect or annotate the request
                response = next(request)     # <-- continue the chain
                # after: add headers to the response
                response.set_header("X-Processed-By", "MyMiddleware")
                return response

    Returning without calling next() short-circuits the chain: the router
    never sees the request.

    =========================================================================
    """

    @abstractmethod
    def __call__(self, request: HTTPRequest, next: NextHandler) -> HTTPResponse:
        """
        Process the request.

        Args:
            request: The incoming HTTP request
            next: The next handler in the chain (call this to continue!)

        Returns:
            HTTP response (from next() or short-circuited)
        """

    @property
    def name(self) -> str:
        return self.__class__.__name__


class MiddlewarePipeline:
    """
    Chains middleware around a final handler, like layers of an onion.

        pipeline = MiddlewarePipeline()
        pipeline.add(LoggingMiddleware())     # First added = outermost
        pipeline.add(SessionMiddleware(store))

        handler = pipeline.wrap(router.handle)
        response = handler(request)

    Request flows INWARD in the order added; the response flows back
    OUTWARD in reverse.
    """

    def __init__(self):
        self._middleware: List[Middleware] = []

    def add(self, middleware: Middleware) -> "MiddlewarePipeline":
        """Append middleware (innermost so far). Returns self for chaining."""
        self._middleware.append(middleware)
        logger.debug(f"Added middleware: {middleware.name}")
        return self

    def use(self, *middleware: Middleware) -> "MiddlewarePipeline":
        """Add several middleware in order."""
        for mw in middleware:
            self.add(mw)
        return self

    def wrap(self, handler: NextHandler) -> NextHandler:
        """
        Wrap a handler with every middleware in the pipeline.

        =====================================================================
        HOW WRAPPING WORKS
        =====================================================================

            Given: [MW1, MW2, MW3] and handler

            current = handler
            current = MW3 around current
            current = MW2 around current
            current = MW1 around current

            Final: MW1 → MW2 → MW3 → handler

        Wrapping in REVERSE order makes the first-added middleware the
        outermost one.

        =====================================================================
        """
        current = handler

        for middleware in reversed(self._middleware):
            current = self._create_wrapped_handler(middleware, current)

        return current

    def _create_wrapped_handler(
        self,
        middleware: Middleware,
        next_handler: NextHandler
    ) -> NextHandler:
        # Closure over this middleware and the next step
        def wrapped(request: HTTPRequest) -> HTTPResponse:
            return middleware(request, next_handler)

        return wrapped

    def __len__(self) -> int:
        return len(self._middleware)

    def __iter__(self) -> Iterator[Middleware]:
        return iter(self._middleware)
