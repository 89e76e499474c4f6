"""
Social API — Custom Exception Hierarchy
=========================================

What:  Application-specific exceptions for configuration, lifecycle and
       handler-level failures.
Why:   Each failure class has a different propagation policy, and a type per
       class makes that policy explicit at the raise and catch sites.
How:   Every exception carries a message and an optional context dict.
       Handler-level failures (HTTPFailure) are rendered by the global
       handler registered in main.py as {"error": message}.

Exception Hierarchy:
    SocialAPIError (base)
    ├── ConfigurationError        → fail fast at startup
    │   └── RouteConflictError    → duplicate (method, path) or version prefix
    ├── LifecycleError            → terminal, logged by the lifecycle manager
    │   ├── ListenerStartError    → background listener could not bind/serve
    │   └── ShutdownTimeoutError  → drain deadline exceeded, exit non-zero
    └── HTTPFailure               → handler error, status chosen by the handler

Propagation policy:
    Configuration and lifecycle errors are terminal and logged.
    HTTPFailure is converted to a structured JSON response and never crashes
    the process. Anything else raised by a handler is NOT caught: there is no
    recovery middleware, so it reaches the server which answers 500.
"""

from typing import Any, Dict, Optional


class SocialAPIError(Exception):
    """
    Base exception for all application errors.

    Attributes:
        message:  Human-readable error description
        context:  Additional debug info (logged, never returned to clients)
    """

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class ConfigurationError(SocialAPIError):
    """Raised while assembling the application; the process must not start."""


class RouteConflictError(ConfigurationError):
    """
    Raised when two routes claim the same (method, full path), or when a
    version prefix is registered twice.

    Example:
        table.register("/api/v0", [Route("/login", {"POST"}, login)])
        table.register("/api/v0", [...])   # → RouteConflictError
    """

    def __init__(
        self,
        message: str = "Conflicting route registration",
        method: Optional[str] = None,
        path: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if method:
            ctx["method"] = method
        if path:
            ctx["path"] = path
        super().__init__(message=message, context=ctx)
        self.method = method
        self.path = path


class LifecycleError(SocialAPIError):
    """Base class for server start/stop failures."""


class ListenerStartError(LifecycleError):
    """
    Raised (and logged) when the background listener cannot start,
    e.g. the port is already in use.
    """

    def __init__(
        self,
        message: str = "HTTP listener failed to start",
        host: Optional[str] = None,
        port: Optional[int] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if host is not None:
            ctx["host"] = host
        if port is not None:
            ctx["port"] = port
        super().__init__(message=message, context=ctx)


class ShutdownTimeoutError(LifecycleError):
    """
    Raised when in-flight requests did not drain before the shutdown deadline.

    The lifecycle manager force-closes remaining connections before raising;
    the entry point logs this at ERROR level and exits with status 1.
    """

    def __init__(
        self,
        timeout: float,
        pending: int = 0,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        ctx["timeout"] = timeout
        ctx["pending_connections"] = pending
        super().__init__(
            message=f"shutdown deadline of {timeout:g}s exceeded "
                    f"with {pending} connection(s) still open",
            context=ctx,
        )
        self.timeout = timeout
        self.pending = pending


class HTTPFailure(SocialAPIError):
    """
    Handler-level error with an HTTP status code chosen by the handler.

    Rendered as {"error": message} by the handler registered in main.py.

    Example:
        raise HTTPFailure(501, "not logged in")
    """

    def __init__(
        self,
        status_code: int,
        message: str,
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)
        self.status_code = status_code
