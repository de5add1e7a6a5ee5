"""The background task that drives the D-Bus connection.

dbus-python delivers replies and signals from a GLib main loop. A
:class:`ConnectionPump` runs that loop in a daemon thread and exposes the way
it ended as a one-shot result, so an application can wait on it alongside its
own work and notice when the system bus has gone away.
"""

from __future__ import annotations

import enum
import threading
import time
from concurrent.futures import Future
from dataclasses import dataclass
from typing import Any, Callable, Optional

from bluezio.core.errors import ConnectionLostError
from bluezio.core.log import LOG__DEBUG, LOG__GENERAL, get_logger, print_and_log

logger = get_logger(__name__)

__all__ = ["PumpOutcome", "PumpResult", "ConnectionPump"]

_QUIT_RETRY_INTERVAL = 0.05


class PumpOutcome(enum.Enum):
    RUNNING = "running"
    CONNECTION_LOST = "connection-lost"
    INTERNAL_FAILURE = "internal-failure"
    SHUTDOWN = "shutdown"


@dataclass(frozen=True)
class PumpResult:
    outcome: PumpOutcome
    reason: Optional[str] = None


def _default_loop():
    # Imported here so the package stays importable where PyGObject is absent
    from gi.repository import GLib

    return GLib.MainLoop()


class ConnectionPump:
    """Runs the main loop the bus connection is attached to.

    Parameters
    ----------
    loop : object, optional
        Anything with ``run()`` and ``quit()``; a new ``GLib.MainLoop`` when
        omitted
    """

    def __init__(self, loop: Optional[Any] = None, name: str = "bluezio-dbus"):
        self._loop = loop
        self._name = name
        self._thread: Optional[threading.Thread] = None
        self._result: "Future[PumpResult]" = Future()
        self._lock = threading.Lock()
        self._stopping = False

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    def start(self) -> "ConnectionPump":
        if self._thread is not None:
            return self
        if self._loop is None:
            self._loop = _default_loop()
        self._thread = threading.Thread(target=self._run, name=self._name, daemon=True)
        self._thread.start()
        print_and_log("[DEBUG] D-Bus main loop started", LOG__DEBUG)
        return self

    def _run(self) -> None:
        try:
            self._loop.run()
        except Exception as exc:
            logger.exception("D-Bus main loop failed")
            self._finish(PumpOutcome.INTERNAL_FAILURE, str(exc))
            return
        if self._stopping:
            self._finish(PumpOutcome.SHUTDOWN)
        else:
            self._finish(PumpOutcome.CONNECTION_LOST, "main loop exited")

    def _finish(self, outcome: PumpOutcome, reason: Optional[str] = None) -> bool:
        with self._lock:
            if self._result.done():
                return False
            self._result.set_result(PumpResult(outcome, reason))
        if outcome is PumpOutcome.SHUTDOWN:
            print_and_log("[DEBUG] D-Bus main loop shut down", LOG__DEBUG)
        else:
            detail = f": {reason}" if reason else ""
            print_and_log(f"[-] D-Bus connection ended ({outcome.value}){detail}", LOG__GENERAL)
        return True

    def connection_lost(self, reason: Optional[str] = "disconnected from the system bus") -> None:
        """Record that the bus connection dropped and stop the loop."""
        self._finish(PumpOutcome.CONNECTION_LOST, reason)
        if self._loop is not None:
            self._loop.quit()

    def stop(self, timeout: Optional[float] = 5.0) -> PumpResult:
        """Stop the loop after an orderly shutdown and wait for the thread."""
        self._stopping = True
        if self._thread is None:
            self._finish(PumpOutcome.SHUTDOWN)
        elif self._thread is threading.current_thread():
            self._loop.quit()
        else:
            self._quit_and_join(timeout)
        return self.wait(0 if self._result.done() else timeout)

    def _quit_and_join(self, timeout: Optional[float]) -> None:
        # A quit() issued before the thread enters run() is lost, so repeat it
        deadline = None if timeout is None else time.monotonic() + timeout
        while self._thread.is_alive():
            self._loop.quit()
            wait = _QUIT_RETRY_INTERVAL
            if deadline is not None:
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    return
                wait = min(wait, remaining)
            self._thread.join(wait)

    # ------------------------------------------------------------------
    # Observing the result
    # ------------------------------------------------------------------
    def outcome(self) -> PumpOutcome:
        if not self._result.done():
            return PumpOutcome.RUNNING
        return self._result.result().outcome

    def wait(self, timeout: Optional[float] = None) -> PumpResult:
        """Block until the loop has ended; raises ``TimeoutError`` otherwise."""
        return self._result.result(timeout)

    def add_done_callback(self, fn: Callable[[PumpResult], None]) -> None:
        self._result.add_done_callback(lambda future: fn(future.result()))

    def check(self) -> None:
        """Raise :class:`ConnectionLostError` if the loop ended for any reason but shutdown."""
        if not self._result.done():
            return
        result = self._result.result()
        if result.outcome is not PumpOutcome.SHUTDOWN:
            raise ConnectionLostError(result.outcome, result.reason)

    @property
    def running(self) -> bool:
        return self.outcome() is PumpOutcome.RUNNING
