"""
D-Bus layer for bluezio.

Identifiers, property decoding, discovery, event translation and event
streams. Only :mod:`bluezio.dbuslayer.connection` imports dbus-python; it is
loaded on first use of :class:`BluezConnection`.
"""

from .ids import (
    AdapterId,
    CharacteristicId,
    DescriptorId,
    DeviceId,
    MacAddress,
    ServiceId,
)
from .properties import (
    AdapterInfo,
    CharacteristicFlags,
    CharacteristicInfo,
    DescriptorInfo,
    DeviceInfo,
    DiscoveryFilter,
    ServiceInfo,
    Transport,
)
from .events import AdapterEvent, BluetoothEvent, CharacteristicEvent, DeviceEvent
from .messagestream import EventStream, MessageStream
from .pump import ConnectionPump, PumpOutcome
from .session import BluetoothSession

__all__ = [
    "AdapterId",
    "DeviceId",
    "ServiceId",
    "CharacteristicId",
    "DescriptorId",
    "MacAddress",
    "AdapterInfo",
    "DeviceInfo",
    "ServiceInfo",
    "CharacteristicInfo",
    "DescriptorInfo",
    "CharacteristicFlags",
    "DiscoveryFilter",
    "Transport",
    "AdapterEvent",
    "DeviceEvent",
    "CharacteristicEvent",
    "BluetoothEvent",
    "EventStream",
    "MessageStream",
    "ConnectionPump",
    "PumpOutcome",
    "BluetoothSession",
    "BluezConnection",
]


# Lazy-load the dbus-python connection so the rest imports without it
def __getattr__(name):
    if name == "BluezConnection":
        from .connection import BluezConnection
        return BluezConnection
    raise AttributeError(f"module '{__name__}' has no attribute '{name}'")
