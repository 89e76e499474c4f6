"""
Social API — Request ID Middleware
====================================

What:  Assigns or propagates a correlation ID for each incoming request and
       echoes it on the response.
Why:   Every access log line (and any log line written while handling the
       request) can be tied back to one request and one client call.
How:   Reads X-Request-Id; if absent or empty, asks the injected generator for
       a new one. Stores it in the request context and returns it in the
       X-Request-Id response header.
Who:   Registered first (outermost) by the app factory.
When:  Before any other middleware or handler runs.

Client-supplied IDs:
    An ID sent by the client is used as-is. Sending the same ID twice gets
    the same ID echoed twice; requests are never deduplicated.
"""

import threading
import time
from typing import Callable, Optional

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response
from starlette.types import ASGIApp

from social_api.context import REQUEST_ID_HEADER, RequestContext, request_id_var

IdGenerator = Callable[[], str]


class MonotonicIdGenerator:
    """
    Generates IDs from the nanosecond wall clock.

    What:  Returns str(time.time_ns()), bumped past the previous value when
           the clock has not advanced (coarse clocks, bursts of requests).
    Why:   A raw nanosecond timestamp can repeat under concurrency; the bump
           guarantees no two IDs from one generator are equal.
    How:   The last issued value is kept under a lock.

    Callers that need globally unique IDs (across processes or restarts)
    should inject a dedicated generator, e.g. lambda: uuid.uuid4().hex.
    """

    def __init__(self, clock: Callable[[], int] = time.time_ns):
        self._clock = clock
        self._last = 0
        self._lock = threading.Lock()

    def __call__(self) -> str:
        with self._lock:
            now = self._clock()
            if now <= self._last:
                now = self._last + 1
            self._last = now
            return str(now)


class RequestIDMiddleware(BaseHTTPMiddleware):
    """
    Middleware that assigns a correlation ID to each request.

    Behavior:
        1. Use the client's X-Request-Id header when present and non-empty
        2. Otherwise generate one with the injected generator
        3. Store RequestContext on request.state.context for handlers/logger
        4. Set request_id_var for logging code without a Request in scope
        5. Echo the ID in the X-Request-Id response header
    """

    def __init__(self, app: ASGIApp, id_generator: Optional[IdGenerator] = None):
        super().__init__(app)
        self.id_generator = id_generator or MonotonicIdGenerator()

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        rid = request.headers.get(REQUEST_ID_HEADER, "")
        if not rid:
            rid = self.id_generator()

        request.state.context = RequestContext(request_id=rid)
        token = request_id_var.set(rid)
        try:
            response = await call_next(request)
        finally:
            request_id_var.reset(token)

        response.headers[REQUEST_ID_HEADER] = rid
        return response
