"""Core error classes for bluezio."""

from __future__ import annotations

import re
from typing import TYPE_CHECKING, Optional
from uuid import UUID

from bluezio.bt_ref.constants import (
    RESULT_ERR,
    RESULT_ERR_ACCESS_DENIED,
    RESULT_ERR_ACTION_IN_PROGRESS,
    RESULT_ERR_BAD_ARGS,
    RESULT_ERR_CONNECTION_LOST,
    RESULT_ERR_FLAG_PARSE,
    RESULT_ERR_INTROSPECTION,
    RESULT_ERR_METHOD_SIGNATURE_NOT_EXIST,
    RESULT_ERR_NO_ADAPTERS,
    RESULT_ERR_NO_REPLY,
    RESULT_ERR_NOT_AUTHORIZED,
    RESULT_ERR_NOT_CONNECTED,
    RESULT_ERR_NOT_FOUND,
    RESULT_ERR_NOT_PERMITTED,
    RESULT_ERR_NOT_SUPPORTED,
    RESULT_ERR_PROPERTY_MISSING,
    RESULT_ERR_UNKNOWN_OBJECT,
    RESULT_ERR_UNKNOWN_SERVCE,
    RESULT_ERR_UUID_NOT_FOUND,
    RESULT_ERR_UUID_PARSE,
)

if TYPE_CHECKING:  # pragma: no cover
    import dbus.exceptions

    from bluezio.dbuslayer.pump import PumpOutcome


class BluetoothError(Exception):
    """Base exception for every failure raised by bluezio.

    The ``.code`` attribute maps to the ``bt_ref.constants`` RESULT_* values.
    """

    def __init__(self, message: str, code: int = RESULT_ERR):
        super().__init__(message)
        self.code = code


class NoBluetoothAdapters(BluetoothError):
    """Raised when no object in the BlueZ tree exposes the adapter interface."""

    def __init__(self):
        super().__init__("No Bluetooth adapters found.", RESULT_ERR_NO_ADAPTERS)


class DbusError(BluetoothError):
    """A failure talking to the BlueZ daemon over D-Bus.

    Covers method-call timeouts, a dropped connection and errors returned by
    the daemon itself. The original D-Bus error name and message are kept.
    """

    def __init__(self, dbus_name: str, dbus_message: str = "", code: int = RESULT_ERR):
        message = dbus_name
        if dbus_message:
            message += f": {dbus_message}"
        super().__init__(message, code)
        self.dbus_name = dbus_name
        self.dbus_message = dbus_message


class IntrospectionParseError(BluetoothError):
    """Raised when introspection XML returned by the daemon cannot be parsed."""

    def __init__(self, path: str, reason: str):
        super().__init__(
            f"Error parsing XML for introspection of {path}: {reason}",
            RESULT_ERR_INTROSPECTION,
        )
        self.path = path
        self.reason = reason


class UUIDNotFound(BluetoothError):
    """No service, characteristic or descriptor was found for some UUID."""

    def __init__(self, uuid: UUID):
        super().__init__(
            f"Service or characteristic UUID {uuid} not found.",
            RESULT_ERR_UUID_NOT_FOUND,
        )
        self.uuid = uuid


class UUIDParseError(BluetoothError):
    """A string did not parse as a UUID where one was mandatory."""

    def __init__(self, value: object):
        super().__init__(f"Error parsing UUID string: {value!r}", RESULT_ERR_UUID_PARSE)
        self.value = value


class FlagParseError(BluetoothError):
    """An unrecognised characteristic flag token."""

    def __init__(self, token: str):
        super().__init__(f"Invalid characteristic flag {token!r}", RESULT_ERR_FLAG_PARSE)
        self.token = token


class RequiredPropertyMissing(BluetoothError):
    """A required property of a device or other object was absent."""

    def __init__(self, name: str):
        super().__init__(f"Required property {name} missing.", RESULT_ERR_PROPERTY_MISSING)
        self.name = name


class IdentifierFormatError(BluetoothError):
    """An identifier outside the BlueZ namespace was formatted for display."""

    def __init__(self, object_path: str):
        super().__init__(
            f"Object path {object_path} is not under the BlueZ namespace",
            RESULT_ERR_BAD_ARGS,
        )
        self.object_path = object_path


class ConnectionLostError(BluetoothError):
    """The D-Bus main-loop task ended; the daemon is no longer reachable."""

    def __init__(self, outcome: "PumpOutcome", reason: Optional[str] = None):
        msg = f"D-Bus connection lost ({outcome.value})"
        if reason:
            msg += f": {reason}"
        super().__init__(msg, RESULT_ERR_CONNECTION_LOST)
        self.outcome = outcome
        self.reason = reason


# ---------------------------------------------------------------------------
# D-Bus exception mapping
# ---------------------------------------------------------------------------

_DBUS_ERROR_NAME_MAP = {
    "org.freedesktop.DBus.Error.NoReply": RESULT_ERR_NO_REPLY,
    "org.freedesktop.DBus.Error.Timeout": RESULT_ERR_NO_REPLY,
    "org.freedesktop.DBus.Error.UnknownObject": RESULT_ERR_UNKNOWN_OBJECT,
    "org.freedesktop.DBus.Error.UnknownMethod": RESULT_ERR_METHOD_SIGNATURE_NOT_EXIST,
    "org.freedesktop.DBus.Error.ServiceUnknown": RESULT_ERR_UNKNOWN_SERVCE,
    "org.freedesktop.DBus.Error.InvalidArgs": RESULT_ERR_BAD_ARGS,
    "org.bluez.Error.NotConnected": RESULT_ERR_NOT_CONNECTED,
    "org.bluez.Error.Failed": RESULT_ERR,
    "org.bluez.Error.NotPermitted": RESULT_ERR_NOT_PERMITTED,
    "org.bluez.Error.NotAuthorized": RESULT_ERR_NOT_AUTHORIZED,
    "org.bluez.Error.NotSupported": RESULT_ERR_NOT_SUPPORTED,
    "org.bluez.Error.InProgress": RESULT_ERR_ACTION_IN_PROGRESS,
    "org.bluez.Error.InvalidArguments": RESULT_ERR_BAD_ARGS,
    "org.bluez.Error.NotFound": RESULT_ERR_NOT_FOUND,
}

# Fallback substring search when the name is not specific enough
_DBUS_MESSAGE_MAP = {
    "Not Connected": RESULT_ERR_NOT_CONNECTED,
    "Operation already in progress": RESULT_ERR_ACTION_IN_PROGRESS,
    "Authentication Failed": RESULT_ERR_ACCESS_DENIED,
    "Timeout": RESULT_ERR_NO_REPLY,
}

# Regex to pull method & interface names from D-Bus error strings (best-effort)
_METHOD_CALL_INTERFACE_RX = re.compile(
    r"method '(?P<method>[^']+)'[\s\S]*interface '(?P<iface>[^']+)'"
)


def decode_dbus_error(name: str, message: str) -> int:
    """Return the RESULT_ERR_* constant matching a D-Bus error name/message."""
    if name in _DBUS_ERROR_NAME_MAP and _DBUS_ERROR_NAME_MAP[name] != RESULT_ERR:
        return _DBUS_ERROR_NAME_MAP[name]
    lowered = message.lower()
    for substr, code in _DBUS_MESSAGE_MAP.items():
        if substr.lower() in lowered:
            return code
    if _METHOD_CALL_INTERFACE_RX.search(message):
        return RESULT_ERR_METHOD_SIGNATURE_NOT_EXIST
    return _DBUS_ERROR_NAME_MAP.get(name, RESULT_ERR)


def map_dbus_error(exc: "dbus.exceptions.DBusException") -> DbusError:
    """Return a :class:`DbusError` for the given D-Bus exception.

    Parameters
    ----------
    exc : dbus.exceptions.DBusException
        The exception raised by dbus-python

    Returns
    -------
    DbusError
        Error carrying the D-Bus name, message and a RESULT_* code
    """
    name = exc.get_dbus_name() or "org.freedesktop.DBus.Error.Failed"
    msg = exc.get_dbus_message() or ""
    return DbusError(name, msg, decode_dbus_error(name, msg))


__all__ = [
    "BluetoothError",
    "NoBluetoothAdapters",
    "DbusError",
    "IntrospectionParseError",
    "UUIDNotFound",
    "UUIDParseError",
    "FlagParseError",
    "RequiredPropertyMissing",
    "IdentifierFormatError",
    "ConnectionLostError",
    "decode_dbus_error",
    "map_dbus_error",
]
