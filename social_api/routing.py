"""
Social API — Versioned Route Table
====================================

What:  Collects endpoint routes under version prefixes (e.g. /api/v0) and
       turns them into a FastAPI router.
Why:   Several API versions can be served side by side, each mounted under
       its own prefix, while /health stays outside versioning.
How:   register(prefix, routes) stores an immutable tuple of Route objects.
       build_router(health) binds prefix + route.url to route.handler for
       every registered route, restricted to route.methods, plus GET /health.

Conflicts:
    Two routes claiming the same (method, full path) is a configuration
    error detected when the router is built, never at request time.
    Path parameter names do not matter for this check: /{user}/friends and
    /{name}/friends match the same requests, so they conflict.
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Dict, FrozenSet, Iterable, List, Set, Tuple

from fastapi import APIRouter
from starlette.requests import Request
from starlette.responses import Response

from social_api.exceptions import ConfigurationError, RouteConflictError
from social_api.health import ServerHealth
from social_api.routes.health import HEALTH_PATH, make_health_endpoint

logger = logging.getLogger(__name__)

Handler = Callable[[Request], Awaitable[Response]]

_PARAM_RE = re.compile(r"\{[^}]*\}")


@dataclass(frozen=True)
class Route:
    """
    One endpoint: URL pattern relative to its version prefix, the HTTP
    methods it accepts, and the async handler serving it.
    """
    url: str
    methods: FrozenSet[str]
    handler: Handler = field(compare=False)

    def __post_init__(self):
        if not self.url.startswith("/"):
            raise ConfigurationError(
                f"Route url must start with '/': {self.url!r}",
                context={"url": self.url},
            )
        if not self.methods:
            raise ConfigurationError(
                f"Route {self.url!r} has no HTTP methods",
                context={"url": self.url},
            )
        object.__setattr__(self, "methods", frozenset(m.upper() for m in self.methods))


def _normalize_prefix(prefix: str) -> str:
    prefix = prefix.rstrip("/")
    if prefix and not prefix.startswith("/"):
        raise ConfigurationError(
            f"Version prefix must start with '/': {prefix!r}",
            context={"prefix": prefix},
        )
    return prefix


def _route_key(method: str, path: str) -> Tuple[str, str]:
    return method, _PARAM_RE.sub("{}", path)


class VersionedRouteTable:
    """
    Mapping of version prefix → routes, built once at startup.

    Example:
        table = VersionedRouteTable()
        table.register("/api/v0", v0_routes())
        app.include_router(table.build_router(health))
    """

    def __init__(self):
        self._versions: Dict[str, Tuple[Route, ...]] = {}
        self._frozen = False

    def register(self, prefix: str, routes: Iterable[Route]) -> None:
        """Store routes under a version prefix. Each prefix may be registered once."""
        if self._frozen:
            raise RouteConflictError(
                f"Cannot register {prefix!r}: router already built",
                context={"prefix": prefix},
            )
        prefix = _normalize_prefix(prefix)
        if prefix in self._versions:
            raise RouteConflictError(
                f"Version prefix {prefix!r} is already registered",
                context={"prefix": prefix},
            )
        self._versions[prefix] = tuple(routes)

    @property
    def versions(self) -> List[str]:
        return list(self._versions)

    def routes(self, prefix: str) -> Tuple[Route, ...]:
        return self._versions[_normalize_prefix(prefix)]

    def iter_bindings(self) -> Iterable[Tuple[str, Route]]:
        """Yield (full path, route) for every registered route, in order."""
        for prefix, routes in self._versions.items():
            for route in routes:
                yield prefix + route.url, route

    def check_conflicts(self) -> None:
        """Raise RouteConflictError if any (method, full path) is claimed twice."""
        claimed: Set[Tuple[str, str]] = {_route_key("GET", HEALTH_PATH)}
        for path, route in self.iter_bindings():
            for method in sorted(route.methods):
                key = _route_key(method, path)
                if key in claimed:
                    raise RouteConflictError(
                        f"{method} {path} is registered more than once",
                        method=method,
                        path=path,
                    )
                claimed.add(key)

    def build_router(self, health: ServerHealth) -> APIRouter:
        """
        Build the FastAPI router: GET /health first, then every versioned
        route. Fails fast with RouteConflictError on duplicates.
        """
        self.check_conflicts()
        self._frozen = True

        router = APIRouter()
        router.add_api_route(
            HEALTH_PATH,
            make_health_endpoint(health),
            methods=["GET"],
            response_model=None,
            tags=["Health"],
            summary="Liveness probe",
        )

        for path, route in self.iter_bindings():
            router.add_api_route(
                path,
                route.handler,
                methods=sorted(route.methods),
                response_model=None,
            )
            logger.debug("Registered %s %s", ",".join(sorted(route.methods)), path)

        return router
