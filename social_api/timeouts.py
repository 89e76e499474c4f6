"""
Social API — Slow-Client Timeouts
===================================

What:  Fixed read/write/idle deadlines for every HTTP connection.
Why:   Bounds what one slow client can hold. A client that trickles its
       request line, headers or body, or stops reading its response, is
       disconnected.
How:   uvicorn's h11 protocol with two timers per connection:
       - read:  starts when the connection is accepted, or when the first
                byte of the next keep-alive request arrives, and is
                cancelled once the whole request body has been received
       - write: starts when the request head has been parsed and is
                cancelled once the response is complete and flushed
       - idle:  uvicorn's own timeout_keep_alive between requests
       An expired deadline aborts the transport. A handler still reading its
       body sees http.disconnect; a pending response write is dropped.
Who:   ServerLifecycle passes protocol_for(timeouts) to uvicorn.Config(http=...).
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Optional, Type

from uvicorn.protocols.http.h11_impl import H11Protocol

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ServerTimeouts:
    """Connection timeouts in seconds."""
    read: float = 10.0
    write: float = 15.0
    idle: float = 15.0


class SlowClientProtocol(H11Protocol):
    """H11Protocol with one read deadline per request and one write deadline per response."""

    timeouts = ServerTimeouts()

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self._read_timer: Optional[asyncio.TimerHandle] = None
        self._write_timer: Optional[asyncio.TimerHandle] = None
        # Request cycle that was current when the read deadline started
        self._read_started_after = None

    # ── asyncio.Protocol ──────────────────────────────────────────────────

    def connection_made(self, transport):
        super().connection_made(transport)
        self._start_read_deadline()

    def connection_lost(self, exc):
        self._cancel_read_deadline()
        self._cancel_write_deadline()
        super().connection_lost(exc)

    def data_received(self, data):
        if self._read_timer is None and self._between_requests():
            self._start_read_deadline()
        super().data_received(data)

    # ── h11 request cycle ─────────────────────────────────────────────────

    def handle_events(self):
        previous = self.cycle
        super().handle_events()

        cycle = self.cycle
        if cycle is None:
            return
        if cycle is not previous:
            self._start_write_deadline()
        if (
            self._read_timer is not None
            and cycle is not self._read_started_after
            and not cycle.more_body
        ):
            self._cancel_read_deadline()

    def on_response_complete(self):
        # Bytes still buffered in the transport stay under the write deadline
        if not self.transport.get_write_buffer_size():
            self._cancel_write_deadline()
        super().on_response_complete()

    # ── Timers ────────────────────────────────────────────────────────────

    def _between_requests(self) -> bool:
        return self.cycle is None or self.cycle.response_complete

    def _start_read_deadline(self) -> None:
        self._cancel_read_deadline()
        self._read_started_after = self.cycle
        self._read_timer = self.loop.call_later(self.timeouts.read, self._read_timeout)

    def _cancel_read_deadline(self) -> None:
        if self._read_timer is not None:
            self._read_timer.cancel()
            self._read_timer = None

    def _start_write_deadline(self) -> None:
        self._cancel_write_deadline()
        self._write_timer = self.loop.call_later(
            self.timeouts.write, self._write_timeout, self.cycle
        )

    def _cancel_write_deadline(self) -> None:
        if self._write_timer is not None:
            self._write_timer.cancel()
            self._write_timer = None

    def _read_timeout(self) -> None:
        self._read_timer = None
        logger.warning(
            "Read timeout after %.1fs, closing connection from %s",
            self.timeouts.read, self._peer(),
        )
        self.transport.abort()

    def _write_timeout(self, cycle) -> None:
        self._write_timer = None
        if cycle.response_complete and not self.transport.get_write_buffer_size():
            return
        logger.warning(
            "Write timeout after %.1fs, closing connection from %s",
            self.timeouts.write, self._peer(),
        )
        self.transport.abort()

    def _peer(self) -> str:
        if self.client:
            return "%s:%d" % self.client
        return "unknown"


def protocol_for(timeouts: ServerTimeouts) -> Type[SlowClientProtocol]:
    """SlowClientProtocol bound to `timeouts`, for uvicorn.Config(http=...)."""
    return type("SlowClientProtocol", (SlowClientProtocol,), {"timeouts": timeouts})
