"""
Social API — Server Lifecycle Manager
=======================================

What:  Owns the HTTP listener: starts it on a background task, waits for a
       shutdown request, then drains in-flight requests within a deadline.
Why:   A load balancer must see the instance go unhealthy BEFORE it stops
       accepting work, and a stuck request must not hang shutdown forever.
How:   uvicorn.Server driven programmatically, plus a ShutdownTrigger the
       foreground coroutine awaits. OS signals are only one way to fire
       the trigger; tests fire it directly.

State machine:
    INITIALIZING ──start()──→ RUNNING ──shutdown()──→ DRAINING ──→ STOPPED

    start():     configure logging → build app (routes + interceptors)
                 → spawn listener task (bind 127.0.0.1:PORT, serve)
                 → health UP
    shutdown():  health DOWN → stop accepting, drop keep-alive
                 → wait up to `shutdown_timeout` for in-flight requests
                 → clean: STOPPED
                 → deadline: force-close connections, ShutdownTimeoutError

Timeouts (fixed policy, see timeouts.py):
    read 10s, write 15s, idle 15s, shutdown 30s

Listener failures:
    Binding or serving errors happen on the background task, not in
    start(). What happens next is set by LISTENER_FAILURE_POLICY:
    - log:  log at ERROR, keep waiting for the shutdown trigger
    - exit: log at ERROR, health DOWN, fire the trigger, run() returns 1
"""

import asyncio
import contextlib
import enum
import logging
import signal
import socket
from typing import Iterator, Optional, Sequence

import uvicorn
from fastapi import FastAPI

from social_api.config import Settings, get_settings
from social_api.exceptions import LifecycleError, ListenerStartError, ShutdownTimeoutError
from social_api.health import ServerHealth
from social_api.main import create_app, setup_logging
from social_api.middleware.request_id import IdGenerator
from social_api.routing import VersionedRouteTable
from social_api.timeouts import ServerTimeouts, protocol_for

logger = logging.getLogger(__name__)

LOOPBACK_HOST = "127.0.0.1"
SHUTDOWN_TIMEOUT = 30.0
# How long force-closed connections get to unwind before the task is cancelled
FORCE_CLOSE_GRACE = 5.0


class LifecycleState(str, enum.Enum):
    INITIALIZING = "initializing"
    RUNNING = "running"
    DRAINING = "draining"
    STOPPED = "stopped"


class ShutdownTrigger:
    """
    One-shot shutdown request.

    fire() may be called any number of times; only the first one counts,
    later calls are dropped. wait() returns the reason given to that first call.
    """

    def __init__(self):
        self._event = asyncio.Event()
        self.reason: Optional[str] = None

    def fire(self, reason: str = "requested") -> None:
        if self._event.is_set():
            return
        self.reason = reason
        self._event.set()

    @property
    def fired(self) -> bool:
        return self._event.is_set()

    async def wait(self) -> str:
        await self._event.wait()
        return self.reason or "requested"


def install_signal_handlers(
    trigger: ShutdownTrigger,
    signals: Sequence[signal.Signals] = (signal.SIGINT, signal.SIGTERM),
) -> None:
    """Fire `trigger` when the process receives any of `signals`."""
    loop = asyncio.get_running_loop()
    for sig in signals:
        try:
            loop.add_signal_handler(sig, trigger.fire, sig.name)
        except NotImplementedError:
            # Windows event loops have no add_signal_handler
            signal.signal(
                sig,
                lambda signum, frame: loop.call_soon_threadsafe(
                    trigger.fire, signal.Signals(signum).name
                ),
            )


class _ManagedServer(uvicorn.Server):
    """uvicorn.Server that leaves signal handling to ServerLifecycle."""

    def install_signal_handlers(self) -> None:
        # uvicorn < 0.29
        pass

    @contextlib.contextmanager
    def capture_signals(self) -> Iterator[None]:
        yield


class ServerLifecycle:
    """
    Runs the API on 127.0.0.1:<port> and shuts it down gracefully.

    Example:
        lifecycle = ServerLifecycle(settings)
        exit_code = asyncio.run(lifecycle.run())
    """

    def __init__(
        self,
        app_settings: Optional[Settings] = None,
        *,
        health: Optional[ServerHealth] = None,
        trigger: Optional[ShutdownTrigger] = None,
        route_table: Optional[VersionedRouteTable] = None,
        id_generator: Optional[IdGenerator] = None,
        timeouts: Optional[ServerTimeouts] = None,
        shutdown_timeout: float = SHUTDOWN_TIMEOUT,
        configure_logging: bool = True,
    ):
        self.settings = app_settings or get_settings()
        self.health = health or ServerHealth()
        self.trigger = trigger or ShutdownTrigger()
        self.route_table = route_table
        self.id_generator = id_generator
        self.timeouts = timeouts or ServerTimeouts()
        self.shutdown_timeout = shutdown_timeout
        self.configure_logging = configure_logging

        self.state = LifecycleState.INITIALIZING
        self.app: Optional[FastAPI] = None
        self.bound_port: Optional[int] = None
        self.listener_error: Optional[ListenerStartError] = None
        self._server: Optional[_ManagedServer] = None
        self._serve_task: Optional[asyncio.Task] = None

    # ── Startup ───────────────────────────────────────────────────────────

    async def start(self) -> None:
        """
        INITIALIZING → RUNNING. Returns once the listener task is spawned;
        use wait_until_serving() to wait for the socket to accept connections.

        Raises:
            RouteConflictError: duplicate routes (nothing is started)
        """
        self._expect(LifecycleState.INITIALIZING)

        if self.configure_logging:
            setup_logging(self.settings.log_level)

        self.app = create_app(
            self.health,
            route_table=self.route_table,
            app_settings=self.settings,
            id_generator=self.id_generator,
        )

        config = uvicorn.Config(
            self.app,
            http=protocol_for(self.timeouts),
            host=LOOPBACK_HOST,
            port=self.settings.port,
            timeout_keep_alive=self.timeouts.idle,
            lifespan="on",
            log_config=None,
        )
        self._server = _ManagedServer(config)
        self._serve_task = asyncio.create_task(self._serve(), name="http-listener")

        self.health.mark_up()
        self.state = LifecycleState.RUNNING

    def _bind(self) -> socket.socket:
        sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        try:
            sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            sock.bind((LOOPBACK_HOST, self.settings.port))
        except OSError:
            sock.close()
            raise
        sock.set_inheritable(True)
        return sock

    async def _serve(self) -> None:
        """Background task: bind and serve until uvicorn exits."""
        try:
            sock = self._bind()
        except OSError as exc:
            self._listener_failed(
                ListenerStartError(
                    f"could not bind {LOOPBACK_HOST}:{self.settings.port}: {exc}",
                    host=LOOPBACK_HOST,
                    port=self.settings.port,
                )
            )
            return

        self.bound_port = sock.getsockname()[1]
        logger.info("HTTP server started on http://%s:%d/", LOOPBACK_HOST, self.bound_port)
        try:
            await self._server.serve(sockets=[sock])
        except Exception as exc:
            self._listener_failed(
                ListenerStartError(
                    f"HTTP listener stopped: {exc}",
                    host=LOOPBACK_HOST,
                    port=self.bound_port,
                )
            )
            return
        finally:
            sock.close()

        if not self._server.started:
            self._listener_failed(
                ListenerStartError(
                    "HTTP listener exited during startup",
                    host=LOOPBACK_HOST,
                    port=self.bound_port,
                )
            )

    def _listener_failed(self, exc: ListenerStartError) -> None:
        logger.error("%s", exc.message)
        self.listener_error = exc
        if self.settings.listener_failure_policy == "exit":
            self.health.mark_down()
            self.trigger.fire("listener-failure")

    async def wait_until_serving(self, timeout: float = 5.0) -> None:
        """
        Wait until the listener accepts connections.

        Raises:
            ListenerStartError: the listener failed or did not come up in time
        """
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout
        while not (self._server is not None and self._server.started):
            if self._serve_task is not None and self._serve_task.done():
                raise self.listener_error or ListenerStartError("HTTP listener exited")
            if loop.time() >= deadline:
                raise ListenerStartError(f"HTTP listener not serving after {timeout:g}s")
            await asyncio.sleep(0.01)

    # ── Shutdown ──────────────────────────────────────────────────────────

    async def wait_for_shutdown(self) -> str:
        """Block until the shutdown trigger fires; returns its reason."""
        reason = await self.trigger.wait()
        logger.info("Shutdown requested (%s)", reason)
        return reason

    async def shutdown(self) -> None:
        """
        RUNNING → DRAINING → STOPPED.

        Raises:
            ShutdownTimeoutError: requests still open after shutdown_timeout;
                                  their connections have been closed
        """
        self._expect(LifecycleState.RUNNING)
        logger.info("Server gracefully shutting down...")
        self.state = LifecycleState.DRAINING

        # Fail health checks first so the load balancer stops sending traffic
        self.health.mark_down()

        # uvicorn then stops accepting, closes idle keep-alive connections and
        # marks in-flight ones to close after their response
        self._server.should_exit = True

        try:
            await asyncio.wait_for(asyncio.shield(self._serve_task), self.shutdown_timeout)
        except asyncio.TimeoutError:
            pending = await self._force_close()
            self.state = LifecycleState.STOPPED
            raise ShutdownTimeoutError(self.shutdown_timeout, pending)

        self.state = LifecycleState.STOPPED
        logger.info("Server stopped")

    async def _force_close(self) -> int:
        server = self._server
        server.force_exit = True
        connections = list(server.server_state.connections)
        for connection in connections:
            transport = getattr(connection, "transport", None)
            if transport is not None:
                transport.close()
        for task in list(server.server_state.tasks):
            task.cancel()

        done, _ = await asyncio.wait({self._serve_task}, timeout=FORCE_CLOSE_GRACE)
        if not done:
            self._serve_task.cancel()
        logger.warning("Force-closed %d connection(s)", len(connections))
        return len(connections)

    # ── Entry ─────────────────────────────────────────────────────────────

    async def run(self, install_signals: bool = True) -> int:
        """
        Start, wait for the shutdown trigger, drain. Returns the exit code:
        0 on clean shutdown, 1 when draining timed out or the listener
        failed under the `exit` policy.
        """
        await self.start()
        if install_signals:
            install_signal_handlers(self.trigger)

        await self.wait_for_shutdown()
        try:
            await self.shutdown()
        except ShutdownTimeoutError as exc:
            logger.error("Could not gracefully shutdown server: %s", exc.message)
            return 1

        if self.listener_error is not None and self.settings.listener_failure_policy == "exit":
            return 1
        return 0

    def _expect(self, state: LifecycleState) -> None:
        if self.state is not state:
            raise LifecycleError(
                f"expected lifecycle state {state.value}, got {self.state.value}",
                context={"state": self.state.value},
            )
