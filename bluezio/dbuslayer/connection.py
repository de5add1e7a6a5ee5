"""System-bus connection to the BlueZ daemon, built on dbus-python.

:class:`BluezConnection` is the only place that touches dbus-python. It
converts values in both directions, applies the method-call timeout to every
call, maps :class:`dbus.exceptions.DBusException` to
:class:`bluezio.core.errors.DbusError` and routes incoming signals to the
registered :class:`MessageStream` handles.
"""

from __future__ import annotations

import functools
import threading
from typing import Any, Callable, Dict, List, Optional

import dbus
import dbus.exceptions
import dbus.lowlevel
import dbus.mainloop.glib

from bluezio.bt_ref.constants import (
    BLUEZ_SERVICE_NAME,
    DBUS_OM_IFACE,
    DBUS_PROPERTIES,
    INTROSPECT_INTERFACE,
)
from bluezio.bt_ref.utils import dbus_to_python, python_to_dbus
from bluezio.core import config
from bluezio.core.errors import map_dbus_error
from bluezio.core.log import LOG__DEBUG, get_logger, print_and_log
from bluezio.dbuslayer.bus import ManagedObjects
from bluezio.dbuslayer.introspect import child_node_names
from bluezio.dbuslayer.match import MatchRule, RawMessage
from bluezio.dbuslayer.messagestream import MessageSink, MessageStream

logger = get_logger(__name__)

__all__ = ["BluezConnection"]


def _translate_dbus_errors(func):
    """Re-raise dbus-python exceptions from *func* as :class:`DbusError`."""

    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except dbus.exceptions.DBusException as exc:
            raise map_dbus_error(exc) from exc

    return wrapper


def _raw_message(message: "dbus.lowlevel.SignalMessage") -> RawMessage:
    return RawMessage(
        path=str(message.get_path()),
        interface=str(message.get_interface()),
        member=str(message.get_member()),
        args=tuple(dbus_to_python(arg) for arg in message.get_args_list()),
        sender=message.get_sender(),
    )


class BluezConnection:
    """A connection to the system bus, talking to ``org.bluez``.

    Parameters
    ----------
    bus : dbus.bus.BusConnection, optional
        An existing connection; a private system-bus connection attached to
        the GLib main loop is opened when omitted
    timeout : float
        Seconds to wait for the reply to each method call
    """

    def __init__(self, bus=None, timeout: float = config.DBUS_METHOD_CALL_TIMEOUT):
        if bus is None:
            dbus.mainloop.glib.threads_init()
            dbus.mainloop.glib.DBusGMainLoop(set_as_default=True)
            # Private so that close() does not tear down a connection shared
            # with other code in the same process
            bus = dbus.SystemBus(private=True)
        self._bus = bus
        self._timeout = timeout
        self._filters: Dict[MessageStream, Callable] = {}
        self._lock = threading.Lock()
        self._disconnect_callbacks: List[Callable[[], None]] = []
        self._closed = False
        self._bus.call_on_disconnection(self._on_disconnection)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    def _interface(self, path: str, interface: str) -> dbus.Interface:
        obj = self._bus.get_object(BLUEZ_SERVICE_NAME, path, introspect=False)
        return dbus.Interface(obj, interface)

    # ------------------------------------------------------------------
    # Method calls
    # ------------------------------------------------------------------
    @_translate_dbus_errors
    def get_managed_objects(self, path: str = "/") -> ManagedObjects:
        manager = self._interface(path, DBUS_OM_IFACE)
        return dbus_to_python(manager.GetManagedObjects(timeout=self._timeout))

    @_translate_dbus_errors
    def introspect(self, path: str) -> str:
        introspectable = self._interface(path, INTROSPECT_INTERFACE)
        return str(introspectable.Introspect(timeout=self._timeout))

    def introspect_children(self, path: str) -> List[str]:
        return child_node_names(path, self.introspect(path))

    @_translate_dbus_errors
    def get_all_properties(self, path: str, interface: str) -> Dict[str, Any]:
        props = self._interface(path, DBUS_PROPERTIES)
        return dbus_to_python(props.GetAll(interface, timeout=self._timeout))

    @_translate_dbus_errors
    def get_property(self, path: str, interface: str, name: str) -> Any:
        props = self._interface(path, DBUS_PROPERTIES)
        return dbus_to_python(props.Get(interface, name, timeout=self._timeout))

    @_translate_dbus_errors
    def set_property(self, path: str, interface: str, name: str, value: Any) -> None:
        props = self._interface(path, DBUS_PROPERTIES)
        props.Set(interface, name, python_to_dbus(value, name), timeout=self._timeout)

    @_translate_dbus_errors
    def call_method(self, path: str, interface: str, method: str, *args: Any) -> Any:
        iface = self._interface(path, interface)
        reply = getattr(iface, method)(
            *(python_to_dbus(arg) for arg in args), timeout=self._timeout
        )
        return dbus_to_python(reply)

    # ------------------------------------------------------------------
    # Signal routing
    # ------------------------------------------------------------------
    def add_match(self, rule: MatchRule, sink: Optional[MessageSink] = None) -> MessageStream:
        """Register *rule* with the bus daemon and start routing matches to *sink*."""
        stream = MessageStream(rule, sink, on_remove=self.remove_match)

        def _filter(_connection, message):
            if isinstance(message, dbus.lowlevel.SignalMessage):
                try:
                    stream.deliver(_raw_message(message))
                except Exception as exc:
                    print_and_log(f"[DEBUG] Dropping signal for {rule}: {exc}", LOG__DEBUG)
            return dbus.lowlevel.HANDLER_RESULT_NOT_YET_HANDLED

        try:
            self._bus.add_match_string_non_blocking(str(rule))
        except dbus.exceptions.DBusException as exc:
            raise map_dbus_error(exc) from exc
        self._bus.add_message_filter(_filter)
        with self._lock:
            self._filters[stream] = _filter
        logger.debug("Added match %s", rule)
        return stream

    def remove_match(self, stream: MessageStream) -> None:
        with self._lock:
            _filter = self._filters.pop(stream, None)
        if _filter is not None:
            try:
                self._bus.remove_message_filter(_filter)
                self._bus.remove_match_string_non_blocking(str(stream.rule))
            except (dbus.exceptions.DBusException, ValueError) as exc:
                # Nothing left to deregister once the connection is gone
                print_and_log(f"[DEBUG] Removing match {stream.rule} failed: {exc}", LOG__DEBUG)
            logger.debug("Removed match %s", stream.rule)
        stream.mark_closed()

    # ------------------------------------------------------------------
    # Connection lifecycle
    # ------------------------------------------------------------------
    def on_disconnection(self, callback: Callable[[], None]) -> None:
        """Call *callback* (from the main loop thread) if the bus goes away."""
        self._disconnect_callbacks.append(callback)

    def _on_disconnection(self, _connection) -> None:
        with self._lock:
            streams = list(self._filters)
            self._filters.clear()
        for stream in streams:
            stream.mark_closed()
        if self._closed:
            return
        print_and_log("[-] Lost connection to the system bus", LOG__DEBUG)
        for callback in list(self._disconnect_callbacks):
            callback()

    def close(self) -> None:
        """Deregister every remaining match, then close the connection."""
        if self._closed:
            return
        with self._lock:
            streams = list(self._filters)
        for stream in streams:
            self.remove_match(stream)
        self._closed = True
        self._bus.close()
