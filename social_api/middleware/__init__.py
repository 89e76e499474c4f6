# Middleware package init
"""
Social API — Middleware Package
=================================

What:  Cross-cutting concerns applied to every request.

Interceptor chain (order is fixed):
    Request → [Request ID] → [Access Log] → Route Handler

    1. Request ID FIRST: assigns the correlation ID
    2. Access Log SECOND: logs on the way out, with the ID already set

    build_interceptors() returns the chain outermost-first, which is the
    order FastAPI(middleware=[...]) expects.

Read and write deadlines are not middleware: they live in the uvicorn
protocol (social_api/timeouts.py), below the ASGI app, so they cover the
request head as well as the body.
"""

from typing import List, Optional

from starlette.middleware import Middleware

from social_api.middleware.logging import AccessLogMiddleware
from social_api.middleware.request_id import IdGenerator, RequestIDMiddleware


def build_interceptors(id_generator: Optional[IdGenerator] = None) -> List[Middleware]:
    """The request interceptor chain, outermost first."""
    return [
        Middleware(RequestIDMiddleware, id_generator=id_generator),
        Middleware(AccessLogMiddleware),
    ]


__all__ = ["AccessLogMiddleware", "RequestIDMiddleware", "build_interceptors"]
