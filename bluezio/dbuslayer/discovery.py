"""Discovery walker: rebuilds the BlueZ object tree as typed ids and records.

Two strategies are used, depending on what BlueZ supports at each level:

* adapters and devices come from one ``GetManagedObjects`` snapshot, filtered
  by the interface each object exposes;
* services, characteristics and descriptors are found by introspecting the
  containing object and keeping the child nodes whose name carries the
  prefix of the next level. Other child nodes are skipped.
"""

from __future__ import annotations

from typing import Callable, List, Optional, Sequence, TypeVar
from uuid import UUID

from bluezio.bt_ref.constants import (
    ADAPTER_INTERFACE,
    DEVICE_INTERFACE,
    GATT_CHARACTERISTIC_INTERFACE,
    GATT_DESCRIPTOR_INTERFACE,
    GATT_SERVICE_INTERFACE,
    INTROSPECT_CHARACTERISTIC_STRING,
    INTROSPECT_DESCRIPTOR_STRING,
    INTROSPECT_SERVICE_STRING,
)
from bluezio.core.errors import BluetoothError, NoBluetoothAdapters, UUIDNotFound
from bluezio.core.log import LOG__DEBUG, get_logger, print_and_log
from bluezio.dbuslayer.bus import BusConnection
from bluezio.dbuslayer.ids import (
    AdapterId,
    CharacteristicId,
    DescriptorId,
    DeviceId,
    ServiceId,
    id_for_path,
)
from bluezio.dbuslayer.properties import (
    AdapterInfo,
    CharacteristicInfo,
    DescriptorInfo,
    DeviceInfo,
    ServiceInfo,
    adapter_info_from_properties,
    characteristic_info_from_properties,
    descriptor_info_from_properties,
    device_info_from_properties,
    service_info_from_properties,
)

logger = get_logger(__name__)

T = TypeVar("T")

__all__ = [
    "get_adapters",
    "get_adapter_infos",
    "get_adapter_info",
    "get_devices",
    "get_device_info",
    "get_services",
    "get_service_info",
    "get_characteristics",
    "get_characteristic_info",
    "get_descriptors",
    "get_descriptor_info",
    "get_service_by_uuid",
    "get_characteristic_by_uuid",
    "get_descriptor_by_uuid",
    "get_service_characteristic_by_uuid",
]


# ---------------------------------------------------------------------------
# Bulk snapshot (GetManagedObjects)
# ---------------------------------------------------------------------------


def get_adapters(bus: BusConnection) -> List[AdapterId]:
    """Return every adapter on the system, sorted by path.

    Raises
    ------
    NoBluetoothAdapters
        If no object in the tree exposes ``org.bluez.Adapter1``
    """
    tree = bus.get_managed_objects()
    adapters = []
    for object_path, interfaces in tree.items():
        if ADAPTER_INTERFACE not in interfaces:
            continue
        adapter_id = id_for_path(AdapterId, object_path)
        if adapter_id is None:
            logger.debug("Skipping adapter object with unexpected path %s", object_path)
            continue
        adapters.append(adapter_id)
    if not adapters:
        raise NoBluetoothAdapters()
    return sorted(adapters)


def get_adapter_infos(bus: BusConnection) -> List[AdapterInfo]:
    """Return a record for every adapter on the system."""
    tree = bus.get_managed_objects()
    adapters = []
    for object_path, interfaces in sorted(tree.items()):
        if ADAPTER_INTERFACE not in interfaces:
            continue
        adapter_id = id_for_path(AdapterId, object_path)
        if adapter_id is None:
            continue
        adapters.append(adapter_info_from_properties(adapter_id, interfaces[ADAPTER_INTERFACE]))
    if not adapters:
        raise NoBluetoothAdapters()
    return adapters


def get_devices(bus: BusConnection) -> List[DeviceInfo]:
    """Return every Bluetooth device which has been discovered so far.

    A device whose properties cannot be decoded (e.g. BlueZ is half way
    through removing it) is left out of the list with a diagnostic.
    """
    tree = bus.get_managed_objects()
    devices = []
    for object_path, interfaces in sorted(tree.items()):
        if DEVICE_INTERFACE not in interfaces:
            continue
        device_id = id_for_path(DeviceId, object_path)
        if device_id is None:
            logger.debug("Skipping device object with unexpected path %s", object_path)
            continue
        try:
            devices.append(device_info_from_properties(device_id, interfaces[DEVICE_INTERFACE]))
        except BluetoothError as exc:
            print_and_log(f"[DEBUG] Skipping device {object_path}: {exc}", LOG__DEBUG)
    return devices


# ---------------------------------------------------------------------------
# Single-object lookups
# ---------------------------------------------------------------------------


def get_adapter_info(bus: BusConnection, id: AdapterId) -> AdapterInfo:
    props = bus.get_all_properties(id.object_path, ADAPTER_INTERFACE)
    return adapter_info_from_properties(id, props)


def get_device_info(bus: BusConnection, id: DeviceId) -> DeviceInfo:
    props = bus.get_all_properties(id.object_path, DEVICE_INTERFACE)
    return device_info_from_properties(id, props)


def get_service_info(bus: BusConnection, id: ServiceId) -> ServiceInfo:
    props = {
        name: bus.get_property(id.object_path, GATT_SERVICE_INTERFACE, name)
        for name in ("UUID", "Primary")
    }
    return service_info_from_properties(id, props)


def get_characteristic_info(bus: BusConnection, id: CharacteristicId) -> CharacteristicInfo:
    props = {
        name: bus.get_property(id.object_path, GATT_CHARACTERISTIC_INTERFACE, name)
        for name in ("UUID", "Flags")
    }
    return characteristic_info_from_properties(id, props)


def get_descriptor_info(bus: BusConnection, id: DescriptorId) -> DescriptorInfo:
    props = {"UUID": bus.get_property(id.object_path, GATT_DESCRIPTOR_INTERFACE, "UUID")}
    return descriptor_info_from_properties(id, props)


# ---------------------------------------------------------------------------
# Introspection walk
# ---------------------------------------------------------------------------


def _child_ids(
    bus: BusConnection, parent_path: str, prefix: str, make_id: Callable[[str], T]
) -> List[T]:
    ids = []
    for name in bus.introspect_children(parent_path):
        if not name.startswith(prefix):
            continue
        try:
            ids.append(make_id(name))
        except ValueError:
            logger.debug("Skipping unexpected child node %s of %s", name, parent_path)
    return ids


def get_services(bus: BusConnection, device: DeviceId) -> List[ServiceInfo]:
    """Return the GATT services the device offers.

    BlueZ only fills these in once the device is connected and its services
    are resolved; before that the list is empty.
    """
    return [
        get_service_info(bus, service_id)
        for service_id in _child_ids(
            bus, device.object_path, INTROSPECT_SERVICE_STRING, device.service
        )
    ]


def get_characteristics(bus: BusConnection, service: ServiceId) -> List[CharacteristicInfo]:
    """Return the characteristics of the given GATT service."""
    return [
        get_characteristic_info(bus, characteristic_id)
        for characteristic_id in _child_ids(
            bus, service.object_path, INTROSPECT_CHARACTERISTIC_STRING, service.characteristic
        )
    ]


def get_descriptors(bus: BusConnection, characteristic: CharacteristicId) -> List[DescriptorInfo]:
    """Return the descriptors of the given GATT characteristic."""
    return [
        get_descriptor_info(bus, descriptor_id)
        for descriptor_id in _child_ids(
            bus,
            characteristic.object_path,
            INTROSPECT_DESCRIPTOR_STRING,
            characteristic.descriptor,
        )
    ]


# ---------------------------------------------------------------------------
# UUID lookups
# ---------------------------------------------------------------------------


def _find_by_uuid(infos: Sequence[T], uuid: UUID) -> T:
    found: Optional[T] = next((info for info in infos if info.uuid == uuid), None)
    if found is None:
        raise UUIDNotFound(uuid)
    return found


def get_service_by_uuid(bus: BusConnection, device: DeviceId, uuid: UUID) -> ServiceInfo:
    """Find the GATT service with the given UUID on the device."""
    return _find_by_uuid(get_services(bus, device), uuid)


def get_characteristic_by_uuid(
    bus: BusConnection, service: ServiceId, uuid: UUID
) -> CharacteristicInfo:
    """Find the characteristic with the given UUID within the service."""
    return _find_by_uuid(get_characteristics(bus, service), uuid)


def get_descriptor_by_uuid(
    bus: BusConnection, characteristic: CharacteristicId, uuid: UUID
) -> DescriptorInfo:
    """Find the descriptor with the given UUID on the characteristic."""
    return _find_by_uuid(get_descriptors(bus, characteristic), uuid)


def get_service_characteristic_by_uuid(
    bus: BusConnection, device: DeviceId, service_uuid: UUID, characteristic_uuid: UUID
) -> CharacteristicInfo:
    """Shorthand for :func:`get_service_by_uuid` then :func:`get_characteristic_by_uuid`."""
    service = get_service_by_uuid(bus, device, service_uuid)
    return get_characteristic_by_uuid(bus, service.id, characteristic_uuid)
