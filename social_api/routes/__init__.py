# Routes package init
"""
Social API — API Routes Package
=================================

Route Inventory:
    - health.py:  GET  /health                  (liveness probe, unversioned)
    - v0.py:      POST /api/v0/register         (placeholder)
                  POST /api/v0/login            (placeholder)
                  GET  /api/v0/{user}/friends   (placeholder)

Routes are plain async handlers taking a Request and returning a Response.
They are bound to URLs by social_api.routing.VersionedRouteTable, not by
decorators, so a version's route list can be mounted under any prefix.
"""
