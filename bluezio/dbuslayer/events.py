"""Bluetooth events and their translation from raw BlueZ signals.

An event names the entity it concerns (adapter, device or characteristic)
and carries one change variant from a closed set per entity. Consumers
dispatch with ``isinstance``::

    for event in stream:
        if isinstance(event, DeviceEvent) and isinstance(event.event, Rssi):
            ...

Translation is pure: :func:`message_to_events` maps one :class:`RawMessage`
to a list of events without touching the bus.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Union
from uuid import UUID

from bluezio.bt_ref.constants import (
    ADAPTER_INTERFACE,
    BLUEZ_ROOT,
    BLUEZ_SERVICE_NAME,
    DBUS_OM_IFACE,
    DBUS_PROPERTIES,
    DEVICE_INTERFACE,
    GATT_CHARACTERISTIC_INTERFACE,
    SIGNAL_INTERFACES_ADDED,
    SIGNAL_INTERFACES_REMOVED,
    SIGNAL_PROPERTIES_CHANGED,
)
from bluezio.core.log import LOG__DEBUG, get_logger, print_and_log
from bluezio.dbuslayer.ids import (
    AdapterId,
    CharacteristicId,
    DeviceId,
    ObjectId,
    id_for_path,
)
from bluezio.dbuslayer.match import MatchRule, RawMessage
from bluezio.dbuslayer.properties import (
    decode_bytes,
    decode_manufacturer_data,
    decode_service_data,
    decode_uuid_list,
)

logger = get_logger(__name__)

__all__ = [
    "Discovered",
    "Removed",
    "Powered",
    "Discovering",
    "Connected",
    "Rssi",
    "ManufacturerData",
    "ServiceData",
    "Services",
    "ServicesResolved",
    "Value",
    "AdapterEvent",
    "DeviceEvent",
    "CharacteristicEvent",
    "BluetoothEvent",
    "ADAPTER_CHANGES",
    "DEVICE_CHANGES",
    "CHARACTERISTIC_CHANGES",
    "match_rules",
    "message_to_events",
]


# ---------------------------------------------------------------------------
# Change variants
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Discovered:
    """The object has appeared in the BlueZ tree."""


@dataclass(frozen=True)
class Removed:
    """The object has been removed from the BlueZ tree."""


@dataclass(frozen=True)
class Powered:
    powered: bool


@dataclass(frozen=True)
class Discovering:
    discovering: bool


@dataclass(frozen=True)
class Connected:
    connected: bool


@dataclass(frozen=True)
class Rssi:
    rssi: int


@dataclass(frozen=True)
class ManufacturerData:
    """New manufacturer-specific advertisement data, keyed by company id."""

    manufacturer_data: Dict[int, bytes] = field(default_factory=dict)


@dataclass(frozen=True)
class ServiceData:
    """New service-specific advertisement data, keyed by service UUID."""

    service_data: Dict[UUID, bytes] = field(default_factory=dict)


@dataclass(frozen=True)
class Services:
    """New list of advertised service UUIDs."""

    services: List[UUID] = field(default_factory=list)


@dataclass(frozen=True)
class ServicesResolved:
    """GATT service discovery for the device has completed."""


@dataclass(frozen=True)
class Value:
    """New value of a characteristic, from a notification, indication or read."""

    value: bytes


AdapterChange = Union[Discovered, Removed, Powered, Discovering]
DeviceChange = Union[
    Discovered,
    Removed,
    Connected,
    Rssi,
    ManufacturerData,
    ServiceData,
    Services,
    ServicesResolved,
]
CharacteristicChange = Value

ADAPTER_CHANGES = (Discovered, Removed, Powered, Discovering)
DEVICE_CHANGES = (
    Discovered,
    Removed,
    Connected,
    Rssi,
    ManufacturerData,
    ServiceData,
    Services,
    ServicesResolved,
)
CHARACTERISTIC_CHANGES = (Value,)


# ---------------------------------------------------------------------------
# Events
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class AdapterEvent:
    id: AdapterId
    event: AdapterChange


@dataclass(frozen=True)
class DeviceEvent:
    id: DeviceId
    event: DeviceChange


@dataclass(frozen=True)
class CharacteristicEvent:
    id: CharacteristicId
    event: CharacteristicChange


BluetoothEvent = Union[AdapterEvent, DeviceEvent, CharacteristicEvent]


# ---------------------------------------------------------------------------
# Match rules
# ---------------------------------------------------------------------------


def match_rules(scope: Optional[ObjectId] = None) -> List[MatchRule]:
    """Return the match rules needed to receive events for *scope*.

    With no scope, events for every adapter and device are wanted, including
    objects being added and removed. With a device or characteristic scope
    only property changes at or below that object are wanted.
    """
    namespace = scope.object_path if scope is not None else BLUEZ_ROOT
    rules = [
        # BlueZ sends a PropertiesChanged signal for each scan result on the adapter
        MatchRule(
            sender=BLUEZ_SERVICE_NAME,
            path_namespace=namespace,
            interface=DBUS_PROPERTIES,
            member=SIGNAL_PROPERTIES_CHANGED,
        )
    ]
    if scope is None:
        # InterfacesAdded and InterfacesRemoved, both on the root object manager
        rules.append(MatchRule(sender=BLUEZ_SERVICE_NAME, path="/", interface=DBUS_OM_IFACE))
    return rules


# ---------------------------------------------------------------------------
# Translation
# ---------------------------------------------------------------------------


def _in_scope(scope: Optional[ObjectId], object_path: str) -> bool:
    return scope is None or scope.contains(object_path)


def message_to_events(
    message: RawMessage, scope: Optional[ObjectId] = None
) -> List[BluetoothEvent]:
    """Translate one raw signal message into zero or more events.

    Parameters
    ----------
    message : RawMessage
        The signal as delivered by the bus
    scope : AdapterId, DeviceId or CharacteristicId, optional
        Only events for this object and its descendants are returned

    Returns
    -------
    list
        Events for the message, empty if nothing in it is of interest
    """
    if message.interface == DBUS_PROPERTIES and message.member == SIGNAL_PROPERTIES_CHANGED:
        if not _in_scope(scope, message.path) or len(message.args) < 2:
            return []
        interface_name, changed = message.args[0], message.args[1]
        if not isinstance(changed, Mapping):
            return []
        return _properties_changed_to_events(message.path, interface_name, changed)

    if message.interface == DBUS_OM_IFACE and message.member == SIGNAL_INTERFACES_ADDED:
        if len(message.args) < 2 or not _in_scope(scope, str(message.args[0])):
            return []
        return _lifecycle_events(str(message.args[0]), message.args[1], Discovered())

    if message.interface == DBUS_OM_IFACE and message.member == SIGNAL_INTERFACES_REMOVED:
        if len(message.args) < 2 or not _in_scope(scope, str(message.args[0])):
            return []
        return _lifecycle_events(str(message.args[0]), message.args[1], Removed())

    logger.debug("Unexpected message %s.%s on %s", message.interface, message.member, message.path)
    return []


def _properties_changed_to_events(
    object_path: str, interface_name: str, changed: Mapping[str, Any]
) -> List[BluetoothEvent]:
    events: List[BluetoothEvent] = []
    source = f"PropertiesChanged on {object_path}"

    if interface_name == ADAPTER_INTERFACE:
        adapter_id = id_for_path(AdapterId, object_path)
        if adapter_id is None:
            return events
        if isinstance(changed.get("Powered"), bool):
            events.append(AdapterEvent(adapter_id, Powered(changed["Powered"])))
        if isinstance(changed.get("Discovering"), bool):
            events.append(AdapterEvent(adapter_id, Discovering(changed["Discovering"])))

    elif interface_name == DEVICE_INTERFACE:
        device_id = id_for_path(DeviceId, object_path)
        if device_id is None:
            return events
        if isinstance(changed.get("Connected"), bool):
            events.append(DeviceEvent(device_id, Connected(changed["Connected"])))
        rssi = changed.get("RSSI")
        if isinstance(rssi, int) and not isinstance(rssi, bool):
            events.append(DeviceEvent(device_id, Rssi(rssi)))
        if "ManufacturerData" in changed:
            events.append(
                DeviceEvent(
                    device_id,
                    ManufacturerData(decode_manufacturer_data(changed["ManufacturerData"], source)),
                )
            )
        if "ServiceData" in changed:
            events.append(
                DeviceEvent(device_id, ServiceData(decode_service_data(changed["ServiceData"], source)))
            )
        if "UUIDs" in changed:
            events.append(DeviceEvent(device_id, Services(decode_uuid_list(changed["UUIDs"], source))))
        if changed.get("ServicesResolved") is True:
            events.append(DeviceEvent(device_id, ServicesResolved()))

    elif interface_name == GATT_CHARACTERISTIC_INTERFACE:
        characteristic_id = id_for_path(CharacteristicId, object_path)
        if characteristic_id is None:
            return events
        if "Value" in changed:
            value = decode_bytes(changed["Value"])
            if value is None:
                print_and_log(f"[DEBUG] Ignoring malformed Value in {source}", LOG__DEBUG)
            else:
                events.append(CharacteristicEvent(characteristic_id, Value(value)))

    return events


def _lifecycle_events(object_path: str, interfaces: Any, change) -> List[BluetoothEvent]:
    # InterfacesAdded carries {interface: properties}, InterfacesRemoved a list of names
    events: List[BluetoothEvent] = []
    if ADAPTER_INTERFACE in interfaces:
        adapter_id = id_for_path(AdapterId, object_path)
        if adapter_id is not None:
            events.append(AdapterEvent(adapter_id, change))
    if DEVICE_INTERFACE in interfaces:
        device_id = id_for_path(DeviceId, object_path)
        if device_id is not None:
            events.append(DeviceEvent(device_id, change))
    return events
