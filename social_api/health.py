"""
Social API — Server Health State
==================================

What:  The process readiness flag read by GET /health.
Why:   Load balancers poll /health; flipping the flag to DOWN as soon as a
       shutdown starts makes them stop routing new traffic here while
       in-flight requests drain.
How:   A two-state cell (DOWN/UP) guarded by a lock. The lifecycle manager
       owns it and is the only writer; the health route only reads it.
       One instance is created per server and injected into both, so there
       is no module-level global.
"""

import enum
import threading


class HealthStatus(str, enum.Enum):
    DOWN = "down"
    UP = "up"


class ServerHealth:
    """Thread-safe DOWN/UP cell. Starts DOWN."""

    def __init__(self, status: HealthStatus = HealthStatus.DOWN):
        self._status = status
        self._lock = threading.Lock()

    def load(self) -> HealthStatus:
        with self._lock:
            return self._status

    def store(self, status: HealthStatus) -> None:
        with self._lock:
            self._status = HealthStatus(status)

    def mark_up(self) -> None:
        self.store(HealthStatus.UP)

    def mark_down(self) -> None:
        self.store(HealthStatus.DOWN)

    @property
    def is_up(self) -> bool:
        return self.load() is HealthStatus.UP

    def __repr__(self) -> str:
        return f"ServerHealth({self.load().value})"
