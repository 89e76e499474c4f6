"""
Social API — Request Context
==============================

What:  Typed per-request metadata (currently the correlation ID).
Why:   Handlers and middleware read the correlation ID through a typed object
       instead of an untyped dynamic lookup; a missing or wrong-typed value is
       detected explicitly and replaced by UNKNOWN_REQUEST_ID.
How:   RequestIDMiddleware stores a RequestContext on request.state.context
       and mirrors the ID into request_id_var, so log calls made anywhere
       inside the request (without a Request object at hand) can read it.
       The ContextVar is coroutine-local: concurrent requests never see each
       other's values.

Usage in a route:
    async def handler(ctx: RequestContext = Depends(get_request_context)):
        logger.info("[%s] doing work", ctx.request_id)
"""

from contextvars import ContextVar
from dataclasses import dataclass
from typing import Optional

from starlette.requests import Request

REQUEST_ID_HEADER = "X-Request-Id"
UNKNOWN_REQUEST_ID = "unknown"

request_id_var: ContextVar[str] = ContextVar("request_id", default="")


@dataclass(frozen=True)
class RequestContext:
    """Metadata attached to a single request; dropped when the request ends."""
    request_id: str


def context_from_request(request: Request) -> Optional[RequestContext]:
    """Return the request's RequestContext, or None if the tracer did not run."""
    ctx = getattr(request.state, "context", None)
    if isinstance(ctx, RequestContext):
        return ctx
    return None


def request_id_for(request: Request) -> str:
    """Correlation ID for logging; UNKNOWN_REQUEST_ID when unavailable."""
    ctx = context_from_request(request)
    return ctx.request_id if ctx else UNKNOWN_REQUEST_ID


def get_request_context(request: Request) -> RequestContext:
    """FastAPI dependency returning the current RequestContext."""
    return context_from_request(request) or RequestContext(UNKNOWN_REQUEST_ID)
