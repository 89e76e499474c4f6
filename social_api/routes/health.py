"""
Social API — Health Check Route
=================================

What:  GET /health liveness probe for load balancers and orchestrators.
Why:   Lets the load balancer stop routing traffic here as soon as the
       lifecycle manager starts draining.
How:   Reads the injected ServerHealth cell:
       - UP   → 204 No Content
       - DOWN → 503 Service Unavailable
       No body in either case.

This is a liveness probe, not a dependency check: it never touches the
persistence layer.
"""

from starlette.requests import Request
from starlette.responses import Response

from social_api.health import ServerHealth

HEALTH_PATH = "/health"


def make_health_endpoint(health: ServerHealth):
    """Build the /health handler bound to one ServerHealth instance."""

    async def check_server_status(request: Request) -> Response:
        if health.is_up:
            return Response(status_code=204)
        return Response(status_code=503)

    return check_server_status
