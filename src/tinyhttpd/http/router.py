"""
=============================================================================
URL ROUTER
=============================================================================

Maps (method, path) to a handler from a fixed, ordered route table.

Supports:
- Exact paths:     /, /user-agent, /api/status
- Wildcard paths:  /echo/*text, /files/*name
- Method filters:  GET only, POST/PUT only, or any method

=============================================================================
ROUTING FLOW
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                        ROUTING FLOW                                 │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   Incoming Request                                                   │
    │   GET /echo/hello                                                    │
    │        │                                                             │
    │        ▼                                                             │
    │   ┌─────────────────────────────────────────────────────────────┐   │
    │   │  ROUTER (first match wins, in registration order)            │   │
    │   │                                                              │   │
    │   │  ANY       /              → welcome                          │   │
    │   │  ANY       /echo/*text    → echo           ← MATCH!          │   │
    │   │  GET       /user-agent    → user_agent                       │   │
    │   │  GET       /api/status    → api.status                       │   │
    │   │  POST,PUT  /api/echo      → api.echo                         │   │
    │   │  ANY       /files/*name   → files                            │   │
    │   │                                                              │   │
    │   │  Extracted: path_params = {"text": "hello"}                  │   │
    │   └─────────────────────────────────────────────────────────────┘   │
    │        │                                                             │
    │        ▼                                                             │
    │   echo(request)                                                      │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
MATCHING RULES
=============================================================================

1. The request target is matched LITERALLY. There's no normalisation:
   /echo/a?b=c echoes "a?b=c", /files/ is not /files, and the percent
   encoding is left for handlers to undo.

2. A pattern is compiled to an anchored regex:

       /user-agent     →  ^/user\\-agent$
       /echo/*text     →  ^/echo/(?P<text>.*)$
                                  ──────────
                                  everything after the prefix

   The wildcard can only appear once, at the end.

3. Outcome for a request:
       pattern matches AND method allowed  → call handler
       pattern matches, no method allowed  → 405 + Allow header
       nothing matches                     → 404

=============================================================================
INTERVIEW QUESTIONS ABOUT ROUTING
=============================================================================

Q: "How do you handle route conflicts?"
A: "First-match wins. More specific routes are registered first.
   /files and /files/*name are separate entries because a wildcard after
   '/files/' can't match the bare '/files'."

Q: "Why return 405 instead of 404 for a wrong method?"
A: "The resource exists, the client just used the wrong verb. 405 with an
   Allow header tells them which verbs would work."

=============================================================================
"""

from dataclasses import dataclass, field
from typing import Callable, Optional, Dict, FrozenSet, Iterable, List
import re

from .request import HTTPRequest
from .response import HTTPResponse, not_found, method_not_allowed


# Handler: a function that takes a request and returns a response
Handler = Callable[[HTTPRequest], HTTPResponse]


@dataclass
class Route:
    """
    A registered route: a path pattern bound to a handler.

        Route(
            path="/echo/*text",      # URL pattern
            methods=None,            # None = any method
            handler=echo,            # Handler function
            name="echo",             # Label for logs/debugging
            _pattern=<compiled>,     # ^/echo/(?P<text>.*)$
        )
    """

    path: str
    methods: Optional[FrozenSet[str]]
    handler: Handler
    name: Optional[str] = None

    _pattern: Optional[re.Pattern] = field(default=None, repr=False)

    def allows(self, method: str) -> bool:
        return self.methods is None or method in self.methods


@dataclass
class RouteMatch:
    """
    Result of a successful route match.

    Example:
        Pattern: /files/*name
        Path:    /files/notes.txt
        Result:  RouteMatch(route=<Route>, params={"name": "notes.txt"})
    """
    route: Route
    params: Dict[str, str]


class Router:
    """
    Ordered route table with 404/405 handling.

        router = Router()
        router.add_route("/", welcome)
        router.add_route("/user-agent", user_agent, methods=["GET"])

        @router.route("/echo/*text")
        def echo(request):
            return ok(request.path_params["text"])

        response = router.handle(request)
    """

    def __init__(self):
        self._routes: List[Route] = []

    # =========================================================================
    # ROUTE REGISTRATION
    # =========================================================================

    def add_route(
        self,
        path: str,
        handler: Handler,
        methods: Optional[Iterable[str]] = None,
        name: Optional[str] = None,
    ) -> Route:
        """
        Register a route.

        Args:
            path: Exact path, or a prefix ending in "*name"
            handler: Function that takes a request and returns a response
            methods: Allowed methods (None for any method)
            name: Optional label

        Returns:
            The registered Route object
        """
        route = Route(
            path=path,
            methods=frozenset(m.upper() for m in methods) if methods else None,
            handler=handler,
            name=name or getattr(handler, "__name__", None),
            _pattern=self._compile_pattern(path),
        )
        self._routes.append(route)
        return route

    def route(
        self,
        path: str,
        methods: Optional[Iterable[str]] = None,
        name: Optional[str] = None,
    ) -> Callable[[Handler], Handler]:
        """
        Decorator form of add_route().

            @router.route("/api/echo", methods=["POST", "PUT"])
            def echo(request):
                ...
        """
        def decorator(handler: Handler) -> Handler:
            self.add_route(path, handler, methods, name)
            return handler  # Unchanged, so decorators can be stacked
        return decorator

    @staticmethod
    def _compile_pattern(path: str) -> re.Pattern:
        """
        Compile a path pattern into an anchored regex.

            "/files"         → ^/files$
            "/files/*name"   → ^/files/(?P<name>.*)$
        """
        prefix, star, param_name = path.partition("*")
        if "/" in param_name:
            raise ValueError(f"Wildcard must be the last segment: {path}")

        regex = "^" + re.escape(prefix)
        if star:
            regex += f"(?P<{param_name or 'wildcard'}>.*)"
        return re.compile(regex + "$", re.DOTALL)

    # =========================================================================
    # ROUTE MATCHING
    # =========================================================================

    @property
    def routes(self) -> List[Route]:
        return list(self._routes)

    def match(self, method: str, path: str) -> Optional[RouteMatch]:
        """
        Find the first route whose pattern matches path and that allows method.

        Order matters: first-registered, first-matched.
        """
        for route in self._routes:
            if not route.allows(method):
                continue

            match = route._pattern.match(path)
            if match:
                return RouteMatch(route=route, params=match.groupdict())

        return None

    def get_allowed_methods(self, path: str) -> List[str]:
        """
        Methods accepted by the routes whose pattern matches path.

        Used for the Allow header of 405 responses; an empty list means
        no route knows this path at all.
        """
        methods = set()
        for route in self._routes:
            if route.methods and route._pattern.match(path):
                methods.update(route.methods)
        return sorted(methods)

    def handle(self, request: HTTPRequest) -> HTTPResponse:
        """
        Route a request to its handler.

        1. Find the matching route
        2. Inject wildcard captures into request.path_params
        3. Call the handler and return its response

        Unmatched paths get 404, matched paths with the wrong method 405.
        """
        match = self.match(request.method, request.path)

        if match:
            request.path_params = match.params
            return match.route.handler(request)

        allowed = self.get_allowed_methods(request.path)
        if allowed:
            return method_not_allowed(allowed)

        return not_found()
