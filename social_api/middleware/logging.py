"""
Social API — Access Logging Middleware
========================================

What:  One access log line per request, written after the handler finishes.
Why:   Ties method, path, client and user agent to the correlation ID so a
       single request can be followed through the logs.
How:   Wraps the next handler; logs in a `finally` block on the way out.
Who:   Registered second, directly inside RequestIDMiddleware, so the
       correlation ID is always available when the line is written.
When:  After the handler returns, or after it raises.

Log line:
    HTTP/1.1 1718000000000000000 GET /health 127.0.0.1:53412 curl/8.4.0

    The protocol string is the line prefix, followed by correlation ID,
    method, path, remote address and user agent. The same fields are also
    attached via `extra=` for structured log handlers.

Failure behavior:
    There is no recovery here. If the handler raises, the line is still
    logged exactly once and the exception keeps propagating.
"""

import logging

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from social_api.context import request_id_for

logger = logging.getLogger("social_api.access")

UNKNOWN_ADDR = "unknown"


def protocol_of(request: Request) -> str:
    """HTTP protocol string of the request, e.g. 'HTTP/1.1'."""
    return f"HTTP/{request.scope.get('http_version', '1.1')}"


def remote_addr_of(request: Request) -> str:
    """Client address as host:port; 'unknown' when the server did not report one."""
    client = request.client
    if client is None:
        return UNKNOWN_ADDR
    if client.port is None:
        return str(client.host)
    return f"{client.host}:{client.port}"


class AccessLogMiddleware(BaseHTTPMiddleware):
    """
    Logs correlation ID, method, path, remote address and user agent for
    every request, including /health probes.
    """

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        try:
            return await call_next(request)
        finally:
            self.log_request(request)

    @staticmethod
    def log_request(request: Request) -> None:
        rid = request_id_for(request)
        proto = protocol_of(request)
        method = request.method
        path = request.url.path
        remote_addr = remote_addr_of(request)
        user_agent = request.headers.get("user-agent", "")

        logger.info(
            "%s %s %s %s %s %s",
            proto,
            rid,
            method,
            path,
            remote_addr,
            user_agent,
            extra={
                "request_id": rid,
                "protocol": proto,
                "method": method,
                "path": path,
                "remote_addr": remote_addr,
                "user_agent": user_agent,
            },
        )
