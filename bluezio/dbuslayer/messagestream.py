"""Signal subscriptions and the event streams built on top of them.

A :class:`MessageStream` is the handle for one registered match rule. The bus
pushes matching :class:`RawMessage` objects into it from its own thread and
the handle forwards them to a :class:`MessageSink`, a FIFO that can be shared
by several handles.

An :class:`EventStream` registers every rule needed for its scope against a
single sink, so messages from all its subscriptions come out in the order
the bus delivered them, and runs each one through
:func:`bluezio.dbuslayer.events.message_to_events`.
"""

from __future__ import annotations

import collections
import queue
import threading
import time
import weakref
from typing import TYPE_CHECKING, Callable, Deque, Iterator, List, Optional, Set, Tuple

from bluezio.core.log import LOG__DEBUG, get_logger, print_and_log
from bluezio.dbuslayer.events import BluetoothEvent, match_rules, message_to_events
from bluezio.dbuslayer.ids import ObjectId
from bluezio.dbuslayer.match import MatchRule, RawMessage

if TYPE_CHECKING:  # pragma: no cover
    from bluezio.dbuslayer.bus import BusConnection

logger = get_logger(__name__)

__all__ = ["MessageSink", "MessageStream", "EventStream"]


class MessageSink:
    """Thread-safe FIFO of ``(stream, message)`` pairs.

    A ``None`` message means the stream it comes from has been closed; a
    ``(None, None)`` pair only wakes up a blocked reader.
    """

    def __init__(self):
        self._queue: "queue.Queue[Tuple[Optional[MessageStream], Optional[RawMessage]]]" = (
            queue.Queue()
        )

    def put(self, stream: "MessageStream", message: RawMessage) -> None:
        self._queue.put((stream, message))

    def stream_closed(self, stream: "MessageStream") -> None:
        self._queue.put((stream, None))

    def wake(self) -> None:
        self._queue.put((None, None))

    def get(
        self, timeout: Optional[float] = None
    ) -> Tuple[Optional["MessageStream"], Optional[RawMessage]]:
        """Block for the next pair; raises :class:`queue.Empty` on timeout."""
        return self._queue.get(timeout=timeout)


class MessageStream:
    """Handle for one match rule registered with the bus.

    Iterating a handle with its own (unshared) sink yields the raw messages
    it receives until it is closed.
    """

    def __init__(
        self,
        rule: MatchRule,
        sink: Optional[MessageSink] = None,
        on_remove: Optional[Callable[["MessageStream"], None]] = None,
    ):
        self.rule = rule
        self.sink = sink if sink is not None else MessageSink()
        self._on_remove = on_remove
        self._closed = threading.Event()

    @property
    def closed(self) -> bool:
        return self._closed.is_set()

    def deliver(self, message: RawMessage) -> bool:
        """Forward *message* to the sink if it matches; called by the bus."""
        if self.closed or not self.rule.matches(message):
            return False
        self.sink.put(self, message)
        return True

    def mark_closed(self) -> None:
        """Record that the bus no longer delivers to this handle."""
        if not self._closed.is_set():
            self._closed.set()
            self.sink.stream_closed(self)

    def close(self) -> None:
        """Deregister the rule from the bus."""
        if self.closed:
            return
        if self._on_remove is not None:
            self._on_remove(self)
        self.mark_closed()

    def __iter__(self) -> Iterator[RawMessage]:
        while True:
            stream, message = self.sink.get()
            if stream is not self:
                continue
            if message is None:
                return
            yield message

    def __repr__(self) -> str:
        state = "closed" if self.closed else "open"
        return f"<MessageStream {self.rule} ({state})>"


_END = object()


def _release(bus: "BusConnection", streams: List[MessageStream], sink: MessageSink) -> None:
    """Deregister *streams* from *bus* and wake any reader blocked on *sink*."""
    released = list(streams)
    del streams[:]
    for stream in released:
        try:
            bus.remove_match(stream)
        except Exception as exc:
            # Keep going so the remaining rules are still released
            print_and_log(f"[DEBUG] Failed to remove match {stream.rule}: {exc}", LOG__DEBUG)
        stream.mark_closed()
    sink.wake()


class EventStream:
    """A stream of Bluetooth events for an optional scope.

    Parameters
    ----------
    bus : BusConnection
        Connection to register the match rules with
    scope : DeviceId, CharacteristicId or AdapterId, optional
        ``None`` for every adapter and device; otherwise the object whose
        events (and those of its descendants) are wanted

    The stream holds one registration per match rule for its whole life.
    :meth:`close` drops them all. So does leaving a ``with`` block,
    abandoning a ``for`` loop once the generator is finalised, or dropping
    the last reference to the stream. Iteration ends when the stream is
    closed or the connection closes every underlying subscription.
    """

    def __init__(self, bus: "BusConnection", scope: Optional[ObjectId] = None):
        self._bus = bus
        self.scope = scope
        self._sink = MessageSink()
        self._streams: List[MessageStream] = []
        self._live: Set[MessageStream] = set()
        self._pending: Deque[BluetoothEvent] = collections.deque()
        self._lock = threading.Lock()
        self._closed = False
        self._finalizer = weakref.finalize(self, _release, bus, self._streams, self._sink)
        self._finalizer.atexit = False

        try:
            for rule in match_rules(scope):
                stream = bus.add_match(rule, self._sink)
                self._streams.append(stream)
                self._live.add(stream)
        except Exception:
            self.close()
            raise
        logger.debug(
            "Event stream registered %d match rule(s) for %s",
            len(self._streams),
            scope.object_path if scope is not None else "all objects",
        )

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def subscriptions(self) -> Tuple[MessageStream, ...]:
        return tuple(self._streams)

    def close(self) -> None:
        """Deregister every match rule this stream owns. Safe to call twice."""
        with self._lock:
            if self._closed:
                return
            self._closed = True
        self._finalizer()

    def _next_event(self, timeout: Optional[float]):
        deadline = None if timeout is None else time.monotonic() + timeout
        while not self._pending:
            if self._closed or not self._live:
                return _END
            wait = None
            if deadline is not None:
                wait = max(0.0, deadline - time.monotonic())
            try:
                stream, message = self._sink.get(timeout=wait)
            except queue.Empty:
                return None
            if stream is None:
                continue
            if message is None:
                self._live.discard(stream)
                continue
            self._pending.extend(message_to_events(message, self.scope))
        return self._pending.popleft()

    def get(self, timeout: Optional[float] = None) -> Optional[BluetoothEvent]:
        """Return the next event, or ``None`` on timeout or once the stream has ended."""
        event = self._next_event(timeout)
        return None if event is _END else event

    def __iter__(self) -> Iterator[BluetoothEvent]:
        try:
            while True:
                event = self._next_event(None)
                if event is _END:
                    return
                yield event
        finally:
            self.close()

    def __enter__(self) -> "EventStream":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
