"""
Social API — Versioned Route Table Tests
==========================================

What we test:
    ✅ Route validation and method normalization
    ✅ Duplicate (method, path) rejected when the router is built
    ✅ Duplicate version prefixes and late registrations rejected
    ✅ /health always mounted; versions mounted under their prefixes
    ✅ Method restriction and trailing-slash redirects over HTTP
"""

import pytest
from httpx import ASGITransport, AsyncClient
from starlette.requests import Request
from starlette.responses import PlainTextResponse

from social_api.exceptions import ConfigurationError, RouteConflictError
from social_api.health import ServerHealth
from social_api.main import create_app, default_route_table
from social_api.routes.v0 import V0_PREFIX, v0_routes
from social_api.routing import Route, VersionedRouteTable


async def ok(request: Request):
    return PlainTextResponse("ok")


async def other(request: Request):
    return PlainTextResponse("other")


def route_paths(router):
    return {(route.path, method) for route in router.routes for method in route.methods}


class TestRoute:
    """Tests for Route construction."""

    def test_methods_upper_cased(self):
        route = Route("/x", frozenset({"get", "Post"}), ok)
        assert route.methods == frozenset({"GET", "POST"})

    def test_plain_set_accepted(self):
        route = Route("/x", {"delete"}, ok)
        assert route.methods == frozenset({"DELETE"})

    def test_url_must_start_with_slash(self):
        with pytest.raises(ConfigurationError, match="must start with '/'"):
            Route("register", frozenset({"POST"}), ok)

    def test_methods_required(self):
        with pytest.raises(ConfigurationError):
            Route("/x", frozenset(), ok)

    def test_route_is_immutable(self):
        route = Route("/x", frozenset({"GET"}), ok)
        with pytest.raises(AttributeError):
            route.url = "/y"


class TestVersionedRouteTable:
    """Tests for registration and conflict detection."""

    def setup_method(self):
        self.table = VersionedRouteTable()
        self.health = ServerHealth()

    def test_duplicate_method_and_path_rejected(self):
        self.table.register("/api/v0", [
            Route("/login", frozenset({"POST"}), ok),
            Route("/login", frozenset({"POST"}), other),
        ])
        with pytest.raises(RouteConflictError) as exc_info:
            self.table.build_router(self.health)
        assert exc_info.value.method == "POST"
        assert exc_info.value.path == "/api/v0/login"

    def test_same_path_different_methods_allowed(self):
        self.table.register("/api/v0", [
            Route("/items", frozenset({"GET"}), ok),
            Route("/items", frozenset({"POST"}), other),
        ])
        router = self.table.build_router(self.health)
        assert ("/api/v0/items", "GET") in route_paths(router)
        assert ("/api/v0/items", "POST") in route_paths(router)

    def test_parameter_names_do_not_hide_conflicts(self):
        self.table.register("/api/v0", [
            Route("/{user}/friends", frozenset({"GET"}), ok),
            Route("/{name}/friends", frozenset({"GET"}), other),
        ])
        with pytest.raises(RouteConflictError):
            self.table.build_router(self.health)

    def test_same_url_under_different_prefixes_allowed(self):
        self.table.register("/api/v0", [Route("/login", frozenset({"POST"}), ok)])
        self.table.register("/api/v1", [Route("/login", frozenset({"POST"}), other)])
        paths = route_paths(self.table.build_router(self.health))
        assert ("/api/v0/login", "POST") in paths
        assert ("/api/v1/login", "POST") in paths

    def test_duplicate_prefix_rejected(self):
        self.table.register("/api/v0", [Route("/a", frozenset({"GET"}), ok)])
        with pytest.raises(RouteConflictError, match="already registered"):
            self.table.register("/api/v0/", [Route("/b", frozenset({"GET"}), ok)])

    def test_prefix_must_start_with_slash(self):
        with pytest.raises(ConfigurationError):
            self.table.register("api/v0", [])

    def test_route_cannot_shadow_health(self):
        self.table.register("", [Route("/health", frozenset({"GET"}), ok)])
        with pytest.raises(RouteConflictError):
            self.table.build_router(self.health)

    def test_register_after_build_rejected(self):
        self.table.build_router(self.health)
        with pytest.raises(RouteConflictError, match="already built"):
            self.table.register("/api/v9", [])

    def test_health_always_registered(self):
        router = self.table.build_router(self.health)
        assert route_paths(router) == {("/health", "GET")}

    def test_versions_keep_registration_order(self):
        self.table.register("/api/v1", [])
        self.table.register("/api/v0", v0_routes())
        assert self.table.versions == ["/api/v1", "/api/v0"]
        assert len(self.table.routes("/api/v0")) == 3

    def test_default_table_serves_v0(self):
        paths = route_paths(default_route_table().build_router(self.health))
        assert paths == {
            ("/health", "GET"),
            (f"{V0_PREFIX}/register", "POST"),
            (f"{V0_PREFIX}/login", "POST"),
            (f"{V0_PREFIX}/{{user}}/friends", "GET"),
        }

    def test_create_app_fails_fast_on_conflict(self, test_settings):
        self.table.register("/api/v0", [
            Route("/register", frozenset({"POST"}), ok),
            Route("/register", frozenset({"post"}), other),
        ])
        with pytest.raises(RouteConflictError):
            create_app(self.health, route_table=self.table, app_settings=test_settings)


class TestRoutingOverHTTP:
    """Dispatch behavior of the built router."""

    @pytest.mark.asyncio
    async def test_wrong_method_rejected(self, test_client):
        response = await test_client.get("/api/v0/register")
        assert response.status_code == 405

    @pytest.mark.asyncio
    async def test_unknown_path_is_404(self, test_client):
        response = await test_client.get("/api/v1/register")
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_trailing_slash_redirects(self, test_client):
        response = await test_client.get("/health/")
        assert response.status_code in (307, 308)
        assert response.headers["location"].endswith("/health")

    @pytest.mark.asyncio
    async def test_multiple_versions_served(self, health_up, test_settings):
        table = VersionedRouteTable()
        table.register("/api/v0", [Route("/ping", frozenset({"GET"}), ok)])
        table.register("/api/v1", [Route("/ping", frozenset({"GET"}), other)])
        app = create_app(health_up, route_table=table, app_settings=test_settings)

        transport = ASGITransport(app=app)
        async with AsyncClient(transport=transport, base_url="http://test") as client:
            v0 = await client.get("/api/v0/ping")
            v1 = await client.get("/api/v1/ping")

        assert v0.text == "ok"
        assert v1.text == "other"
