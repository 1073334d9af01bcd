"""
Unit tests for URL routing.
"""

import pytest

from tinyhttpd.config import ServerConfig
from tinyhttpd.handlers import FileStore
from tinyhttpd.http.request import HTTPRequest
from tinyhttpd.http.response import ok
from tinyhttpd.http.router import Router
from tinyhttpd.http.status_codes import HTTPStatus
from tinyhttpd.routes import build_router


def make_request(method: str, path: str, **headers) -> HTTPRequest:
    return HTTPRequest(
        method=method,
        path=path,
        headers={k.replace("_", "-").lower(): v for k, v in headers.items()},
        client_address=("127.0.0.1", 5000),
    )


class TestRouter:
    """Tests for Router class."""

    def test_add_route(self):
        """Test adding a route."""
        router = Router()
        route = router.add_route("/test", lambda r: ok("test"), methods=["get"])

        assert route.path == "/test"
        assert route.methods == frozenset({"GET"})
        assert router.routes == [route]

    def test_match_static_path(self):
        """Test matching exact paths."""
        router = Router()
        router.add_route("/user-agent", lambda r: ok(""))

        assert router.match("GET", "/user-agent") is not None
        assert router.match("GET", "/user-agent/") is None
        assert router.match("GET", "/user-agent?x=1") is None

    def test_match_with_method(self):
        """Test that method is checked."""
        router = Router()
        router.add_route("/items", lambda r: ok("get"), methods=["GET"])

        assert router.match("GET", "/items") is not None
        assert router.match("POST", "/items") is None

    def test_match_wildcard(self):
        """Test wildcard captures the rest of the path, slashes included."""
        router = Router()
        router.add_route("/echo/*text", lambda r: ok(""))

        match = router.match("GET", "/echo/a/b?c=%20")

        assert match.params == {"text": "a/b?c=%20"}

    def test_wildcard_matches_empty_rest(self):
        router = Router()
        router.add_route("/files/*name", lambda r: ok(""))

        assert router.match("GET", "/files/").params == {"name": ""}
        assert router.match("GET", "/files") is None

    def test_wildcard_must_be_last(self):
        with pytest.raises(ValueError):
            Router().add_route("/files/*name/extra", lambda r: ok(""))

    def test_first_match_wins(self):
        router = Router()
        router.add_route("/a/*rest", lambda r: ok("wildcard"))
        router.add_route("/a/b", lambda r: ok("exact"))

        response = router.handle(make_request("GET", "/a/b"))

        assert response.body == b"wildcard"

    def test_get_allowed_methods(self):
        router = Router()
        router.add_route("/api/echo", lambda r: ok(""), methods=["PUT", "POST"])
        router.add_route("/api/*any", lambda r: ok(""), methods=["GET"])

        assert router.get_allowed_methods("/api/echo") == ["GET", "POST", "PUT"]
        assert router.get_allowed_methods("/nowhere") == []

    def test_handle_success(self):
        router = Router()
        router.add_route("/echo/*text", lambda r: ok(r.path_params["text"]))

        response = router.handle(make_request("GET", "/echo/hello"))

        assert response.status == HTTPStatus.OK
        assert response.body == b"hello"

    def test_handle_not_found(self):
        response = Router().handle(make_request("GET", "/nonexistent"))

        assert response.status == HTTPStatus.NOT_FOUND
        assert response.body == b"Not Found"

    def test_handle_method_not_allowed(self):
        router = Router()
        router.add_route("/user-agent", lambda r: ok(""), methods=["GET"])

        response = router.handle(make_request("POST", "/user-agent"))

        assert response.status == HTTPStatus.METHOD_NOT_ALLOWED
        assert response.headers["Allow"] == "GET"


class TestRouterDecorators:
    """Tests for the route() decorator."""

    def test_route_decorator(self):
        router = Router()

        @router.route("/api/echo", methods=["POST", "PUT"])
        def api_echo(request):
            return ok(request.body)

        assert router.routes[0].name == "api_echo"
        assert router.routes[0].handler is api_echo
        assert router.match("PUT", "/api/echo") is not None


class TestRouteTable:
    """The server's route table."""

    @pytest.fixture
    def store(self, storage_dir) -> FileStore:
        return FileStore(storage_dir)

    def paths(self, router: Router) -> list:
        return [route.path for route in router.routes]

    def test_full_table(self, config: ServerConfig, store: FileStore):
        router = build_router(config, store)

        assert self.paths(router) == [
            "/", "/echo/*text", "/user-agent",
            "/api/status", "/api/time", "/api/echo", "/api/session",
            "/files", "/files/*name",
        ]

    def test_no_session_route_without_sessions(self, config: ServerConfig, store: FileStore):
        config.enable_sessions = False
        assert "/api/session" not in self.paths(build_router(config, store))

    def test_no_api(self, config: ServerConfig, store: FileStore):
        config.enable_api = False
        paths = self.paths(build_router(config, store))

        assert not [p for p in paths if p.startswith("/api")]

    def test_welcome_any_method(self, config: ServerConfig, store: FileStore):
        router = build_router(config, store)

        for method in ("GET", "POST", "DELETE"):
            response = router.handle(make_request(method, "/"))
            assert response.status == HTTPStatus.OK
            assert response.content_type == "text/plain"

    def test_echo(self, config: ServerConfig, store: FileStore):
        response = build_router(config, store).handle(make_request("GET", "/echo/abc"))

        assert response.body == b"abc"
        assert response.content_type == "text/plain"

    def test_user_agent(self, config: ServerConfig, store: FileStore):
        router = build_router(config, store)

        response = router.handle(make_request("GET", "/user-agent", user_agent="X"))
        assert response.body == b"X"

        response = router.handle(make_request("GET", "/user-agent"))
        assert response.body == b""

    def test_user_agent_wrong_method(self, config: ServerConfig, store: FileStore):
        response = build_router(config, store).handle(make_request("POST", "/user-agent"))

        assert response.status == HTTPStatus.METHOD_NOT_ALLOWED
        assert response.headers["Allow"] == "GET"

    def test_api_echo_wrong_method(self, config: ServerConfig, store: FileStore):
        response = build_router(config, store).handle(make_request("GET", "/api/echo"))

        assert response.status == HTTPStatus.METHOD_NOT_ALLOWED
        assert response.headers["Allow"] == "POST, PUT"

    def test_unknown_path(self, config: ServerConfig, store: FileStore):
        response = build_router(config, store).handle(make_request("GET", "/nonexistent"))
        assert response.status == HTTPStatus.NOT_FOUND
