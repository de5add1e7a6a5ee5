from __future__ import annotations

from uuid import UUID

import pytest

from bluezio.bt_ref import constants
from bluezio.core.errors import (
    BluetoothError,
    ConnectionLostError,
    DbusError,
    NoBluetoothAdapters,
    UUIDNotFound,
    decode_dbus_error,
    map_dbus_error,
)
from bluezio.dbuslayer.pump import PumpOutcome


class FakeDBusException(Exception):
    """Quacks like dbus.exceptions.DBusException."""

    def __init__(self, name, message=""):
        super().__init__(message)
        self._name = name
        self._message = message

    def get_dbus_name(self):
        return self._name

    def get_dbus_message(self):
        return self._message


@pytest.mark.parametrize(
    "name, message, code",
    [
        ("org.freedesktop.DBus.Error.NoReply", "Did not receive a reply", constants.RESULT_ERR_NO_REPLY),
        ("org.freedesktop.DBus.Error.UnknownObject", "", constants.RESULT_ERR_UNKNOWN_OBJECT),
        ("org.bluez.Error.InProgress", "", constants.RESULT_ERR_ACTION_IN_PROGRESS),
        ("org.bluez.Error.Failed", "Operation already in progress", constants.RESULT_ERR_ACTION_IN_PROGRESS),
        ("org.bluez.Error.Failed", "Software caused connection abort", constants.RESULT_ERR),
        ("com.example.Error.Weird", "", constants.RESULT_ERR),
    ],
)
def test_decode_dbus_error(name, message, code) -> None:
    assert decode_dbus_error(name, message) == code


def test_map_dbus_error_keeps_name_and_message() -> None:
    error = map_dbus_error(FakeDBusException("org.bluez.Error.NotConnected", "Not Connected"))
    assert isinstance(error, DbusError)
    assert isinstance(error, BluetoothError)
    assert error.dbus_name == "org.bluez.Error.NotConnected"
    assert error.dbus_message == "Not Connected"
    assert error.code == constants.RESULT_ERR_NOT_CONNECTED
    assert str(error) == "org.bluez.Error.NotConnected: Not Connected"


def test_map_dbus_error_without_name() -> None:
    error = map_dbus_error(FakeDBusException(None, None))
    assert error.dbus_name == "org.freedesktop.DBus.Error.Failed"
    assert error.dbus_message == ""


def test_error_codes() -> None:
    assert NoBluetoothAdapters().code == constants.RESULT_ERR_NO_ADAPTERS
    uuid = UUID("0000180f-0000-1000-8000-00805f9b34fb")
    assert UUIDNotFound(uuid).uuid == uuid
    lost = ConnectionLostError(PumpOutcome.INTERNAL_FAILURE, "boom")
    assert lost.code == constants.RESULT_ERR_CONNECTION_LOST
    assert str(lost) == "D-Bus connection lost (internal-failure): boom"
