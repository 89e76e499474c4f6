"""
Social API — FastAPI Application Factory
==========================================

What:  Creates and configures the FastAPI application instance.
Why:   Centralizes logging setup, middleware registration, route mounting
       and exception handling in one place.
How:   Factory pattern: create_app() returns a configured FastAPI instance
       wired to an explicitly passed ServerHealth and route table.
Who:   Called by ServerLifecycle at startup, and by tests directly.

Application Architecture:
    ┌─────────────────────────────────────────────────────┐
    │                   FastAPI App                       │
    │                                                     │
    │  Interceptor Chain (outermost first):               │
    │  ┌──────────────┐ ┌──────────────┐                  │
    │  │  Request ID  │→│  Access Log  │→ handler         │
    │  └──────────────┘ └──────────────┘                  │
    │                                                     │
    │  Routes:                                            │
    │  ┌──────────────┐ ┌──────────────────────────────┐  │
    │  │ GET /health  │ │ /api/v0/{register,login,...} │  │
    │  └──────────────┘ └──────────────────────────────┘  │
    │                                                     │
    │  Exception Handlers:                                │
    │  ┌──────────────────────────────────────────────┐   │
    │  │ HTTPFailure → {"error": msg} + its status    │   │
    │  └──────────────────────────────────────────────┘   │
    └─────────────────────────────────────────────────────┘

There is deliberately no catch-all exception handler: an unexpected error
in a handler propagates to the server, which answers 500.
"""

import logging
import sys
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from social_api import __version__
from social_api.config import Settings, get_settings
from social_api.context import request_id_var
from social_api.database import connect
from social_api.exceptions import HTTPFailure
from social_api.health import ServerHealth
from social_api.middleware import build_interceptors
from social_api.middleware.request_id import IdGenerator
from social_api.routes.v0 import V0_PREFIX, v0_routes
from social_api.routing import VersionedRouteTable
from social_api.schemas.envelope import error_response

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════
# Logging Configuration
# ══════════════════════════════════════════════════════════════════════════

def setup_logging(level: str = "INFO") -> None:
    """
    Configure application logging.

    Format: %(asctime)s [%(levelname)s] %(name)s: %(message)s

    Access lines come from the social_api.access logger (AccessLogMiddleware),
    so uvicorn's own access log is silenced to avoid logging every request twice.
    """
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[
            logging.StreamHandler(sys.stdout),
        ],
        force=True,
    )
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)


# ══════════════════════════════════════════════════════════════════════════
# Application Lifespan
# ══════════════════════════════════════════════════════════════════════════

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Releases per-app resources on shutdown.

    Health is NOT touched here: the lifecycle manager flips it, before the
    server starts draining, so probes fail while requests are still finishing.
    """
    yield
    await app.state.db.dispose()


# ══════════════════════════════════════════════════════════════════════════
# Exception Handlers
# ══════════════════════════════════════════════════════════════════════════

def register_exception_handlers(app: FastAPI) -> None:
    """Map HTTPFailure to the {"error": ...} envelope with the handler's status."""

    @app.exception_handler(HTTPFailure)
    async def handle_http_failure(request: Request, exc: HTTPFailure) -> JSONResponse:
        rid = request_id_var.get("")
        logger.debug("[%s] %d %s | Context: %s", rid, exc.status_code, exc.message, exc.context)
        return error_response(exc.status_code, exc)


# ══════════════════════════════════════════════════════════════════════════
# Application Factory
# ══════════════════════════════════════════════════════════════════════════

def default_route_table() -> VersionedRouteTable:
    """Route table with every API version this service serves."""
    table = VersionedRouteTable()
    table.register(V0_PREFIX, v0_routes())
    return table


def create_app(
    health: ServerHealth,
    route_table: Optional[VersionedRouteTable] = None,
    app_settings: Optional[Settings] = None,
    id_generator: Optional[IdGenerator] = None,
) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        health:       Readiness cell read by GET /health (owned by the caller)
        route_table:  Versioned routes to mount; defaults to all versions
        app_settings: Settings for the persistence hook; defaults to the singleton
        id_generator: Correlation ID source for requests without X-Request-Id

    Raises:
        RouteConflictError: two routes claim the same method and path
    """
    app_settings = app_settings or get_settings()
    route_table = route_table or default_route_table()

    app = FastAPI(
        title="Social API",
        version=__version__,
        middleware=build_interceptors(id_generator),
        lifespan=lifespan,
    )
    app.state.db = connect(app_settings)

    register_exception_handlers(app)
    app.include_router(route_table.build_router(health))

    return app
