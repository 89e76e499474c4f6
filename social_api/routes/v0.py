"""
Social API — Version 0 Routes
===============================

What:  The /api/v0 endpoints: register, login and friends.
Why:   Reserves the public surface of the first API version.
How:   Every handler answers 501 Not Implemented with a fixed envelope and
       has no side effects.

Route Inventory:
    POST /api/v0/register         → 501 {"msg": "Not yet implemented"}
    POST /api/v0/login            → 501 {"error": "not logged in"}
    GET  /api/v0/{user}/friends   → 501 {"msg": "You will have to wait a lil bit <user>!"}
"""

from typing import List

from starlette.requests import Request
from starlette.responses import Response

from social_api.exceptions import HTTPFailure
from social_api.routing import Route
from social_api.schemas.envelope import MessageResponse, json_response

V0_PREFIX = "/api/v0"


async def register_user(request: Request) -> Response:
    return json_response(501, MessageResponse(msg="Not yet implemented"))


async def login_user(request: Request) -> Response:
    # Rendered as {"error": ...} by the HTTPFailure handler in main.py
    raise HTTPFailure(501, "not logged in")


async def get_friends(request: Request) -> Response:
    user = request.path_params["user"]
    return json_response(
        501, MessageResponse(msg=f"You will have to wait a lil bit {user}!")
    )


def v0_routes() -> List[Route]:
    """Routes served under V0_PREFIX."""
    return [
        Route(url="/register", methods=frozenset({"POST"}), handler=register_user),
        Route(url="/login", methods=frozenset({"POST"}), handler=login_user),
        Route(url="/{user}/friends", methods=frozenset({"GET"}), handler=get_friends),
    ]
