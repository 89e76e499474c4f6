"""
Social API — Application Package Initializer
==============================================

Architecture Note:

    ┌─────────────────────────────────────┐
    │   Lifecycle (start, drain, stop)    │  ← lifecycle.py, __main__.py
    ├─────────────────────────────────────┤
    │   App factory + interceptor chain   │  ← main.py, middleware/
    ├─────────────────────────────────────┤
    │   Versioned routes + handlers       │  ← routing.py, routes/
    ├─────────────────────────────────────┤
    │   Shared state + boundaries         │  ← health.py, context.py, database.py
    └─────────────────────────────────────┘

Run with:  python -m social_api   (or the `social-api` console script)
"""

__version__ = "0.1.0"
