"""High-level session with the BlueZ daemon.

:class:`BluetoothSession` bundles a bus connection with the discovery walker,
the GATT operations and the event streams. Typical use::

    pump, session = BluetoothSession.new()
    session.start_discovery()
    with session.event_stream() as events:
        for event in events:
            ...
    session.shutdown()
"""

from __future__ import annotations

import weakref
from typing import List, Optional, Tuple
from uuid import UUID

from bluezio.bt_ref.constants import (
    ADAPTER_INTERFACE,
    DEVICE_INTERFACE,
    GATT_CHARACTERISTIC_INTERFACE,
    GATT_DESCRIPTOR_INTERFACE,
)
from bluezio.core.errors import DbusError
from bluezio.core.log import LOG__DEBUG, LOG__GENERAL, get_logger, print_and_log
from bluezio.dbuslayer import discovery
from bluezio.dbuslayer.bus import BusConnection
from bluezio.dbuslayer.ids import (
    AdapterId,
    CharacteristicId,
    DescriptorId,
    DeviceId,
    ServiceId,
)
from bluezio.dbuslayer.messagestream import EventStream
from bluezio.dbuslayer.properties import (
    AdapterInfo,
    CharacteristicInfo,
    DescriptorInfo,
    DeviceInfo,
    DiscoveryFilter,
    ServiceInfo,
    decode_bytes,
)
from bluezio.dbuslayer.pump import ConnectionPump

logger = get_logger(__name__)

__all__ = ["BluetoothSession"]


class BluetoothSession:
    """A connection to the Bluetooth daemon.

    Parameters
    ----------
    bus : BusConnection
        Connection used for every call and subscription
    pump : ConnectionPump, optional
        The task driving *bus*; stopped by :meth:`shutdown`
    """

    def __init__(self, bus: BusConnection, pump: Optional[ConnectionPump] = None):
        self._bus = bus
        self._pump = pump
        self._streams: "weakref.WeakSet[EventStream]" = weakref.WeakSet()

    @classmethod
    def new(cls) -> Tuple[ConnectionPump, "BluetoothSession"]:
        """Connect to the system bus.

        Returns
        -------
        tuple
            ``(pump, session)``. The pump is already running; wait on it to
            learn if the connection to the bus is lost.
        """
        from bluezio.dbuslayer.connection import BluezConnection

        connection = BluezConnection()
        pump = ConnectionPump().start()
        connection.on_disconnection(pump.connection_lost)
        print_and_log("[*] Connected to the system bus", LOG__DEBUG)
        return pump, cls(connection, pump)

    # ------------------------------------------------------------------
    # Discovery
    # ------------------------------------------------------------------
    def start_discovery(self, discovery_filter: Optional[DiscoveryFilter] = None) -> None:
        """Power on every adapter and start scanning on it.

        A failure to power an adapter or to set its filter aborts the call.
        A failure to start scanning on one adapter is logged and the other
        adapters are still started.
        """
        discovery_filter = discovery_filter or DiscoveryFilter()
        filter_props = discovery_filter.to_properties()
        for adapter_id in self.get_adapters():
            path = adapter_id.object_path
            logger.debug("Starting discovery on %s with filter %s", path, filter_props)
            self._bus.set_property(path, ADAPTER_INTERFACE, "Powered", True)
            self._bus.call_method(path, ADAPTER_INTERFACE, "SetDiscoveryFilter", filter_props)
            try:
                self._bus.call_method(path, ADAPTER_INTERFACE, "StartDiscovery")
            except DbusError as exc:
                print_and_log(f"[!] Starting discovery on {path} failed: {exc}", LOG__GENERAL)

    def stop_discovery(self) -> None:
        """Stop scanning on every adapter; the first failure aborts."""
        for adapter_id in self.get_adapters():
            self._bus.call_method(adapter_id.object_path, ADAPTER_INTERFACE, "StopDiscovery")

    # ------------------------------------------------------------------
    # Object tree
    # ------------------------------------------------------------------
    def get_adapters(self) -> List[AdapterId]:
        return discovery.get_adapters(self._bus)

    def get_adapter_infos(self) -> List[AdapterInfo]:
        return discovery.get_adapter_infos(self._bus)

    def get_adapter_info(self, id: AdapterId) -> AdapterInfo:
        return discovery.get_adapter_info(self._bus, id)

    def get_devices(self) -> List[DeviceInfo]:
        return discovery.get_devices(self._bus)

    def get_device_info(self, id: DeviceId) -> DeviceInfo:
        return discovery.get_device_info(self._bus, id)

    def get_services(self, device: DeviceId) -> List[ServiceInfo]:
        return discovery.get_services(self._bus, device)

    def get_service_info(self, id: ServiceId) -> ServiceInfo:
        return discovery.get_service_info(self._bus, id)

    def get_characteristics(self, service: ServiceId) -> List[CharacteristicInfo]:
        return discovery.get_characteristics(self._bus, service)

    def get_characteristic_info(self, id: CharacteristicId) -> CharacteristicInfo:
        return discovery.get_characteristic_info(self._bus, id)

    def get_descriptors(self, characteristic: CharacteristicId) -> List[DescriptorInfo]:
        return discovery.get_descriptors(self._bus, characteristic)

    def get_descriptor_info(self, id: DescriptorId) -> DescriptorInfo:
        return discovery.get_descriptor_info(self._bus, id)

    def get_service_by_uuid(self, device: DeviceId, uuid: UUID) -> ServiceInfo:
        return discovery.get_service_by_uuid(self._bus, device, uuid)

    def get_characteristic_by_uuid(self, service: ServiceId, uuid: UUID) -> CharacteristicInfo:
        return discovery.get_characteristic_by_uuid(self._bus, service, uuid)

    def get_descriptor_by_uuid(
        self, characteristic: CharacteristicId, uuid: UUID
    ) -> DescriptorInfo:
        return discovery.get_descriptor_by_uuid(self._bus, characteristic, uuid)

    def get_service_characteristic_by_uuid(
        self, device: DeviceId, service_uuid: UUID, characteristic_uuid: UUID
    ) -> CharacteristicInfo:
        return discovery.get_service_characteristic_by_uuid(
            self._bus, device, service_uuid, characteristic_uuid
        )

    # ------------------------------------------------------------------
    # Device operations
    # ------------------------------------------------------------------
    def connect(self, id: DeviceId) -> None:
        """Connect to the device and resolve its GATT services."""
        print_and_log(f"[*] Connecting to {id.object_path}", LOG__DEBUG)
        self._bus.call_method(id.object_path, DEVICE_INTERFACE, "Connect")

    def disconnect(self, id: DeviceId) -> None:
        print_and_log(f"[*] Disconnecting from {id.object_path}", LOG__DEBUG)
        self._bus.call_method(id.object_path, DEVICE_INTERFACE, "Disconnect")

    # ------------------------------------------------------------------
    # GATT values
    # ------------------------------------------------------------------
    def _read_value(self, path: str, interface: str, offset: int) -> bytes:
        options = {"offset": offset} if offset else {}
        reply = self._bus.call_method(path, interface, "ReadValue", options)
        value = decode_bytes(reply)
        if value is None:
            raise DbusError(
                "org.freedesktop.DBus.Error.InvalidSignature",
                f"ReadValue on {path} returned {type(reply).__name__}",
            )
        print_and_log(f"[DEBUG] Read {path}: {bytes(value).hex()}", LOG__DEBUG)
        return value

    def _write_value(self, path: str, interface: str, value: bytes, options: dict) -> None:
        print_and_log(f"[DEBUG] Write {path}: {bytes(value).hex()}", LOG__DEBUG)
        self._bus.call_method(path, interface, "WriteValue", bytes(value), options)

    def read_characteristic_value(self, id: CharacteristicId, offset: int = 0) -> bytes:
        return self._read_value(id.object_path, GATT_CHARACTERISTIC_INTERFACE, offset)

    def write_characteristic_value(
        self, id: CharacteristicId, value: bytes, without_response: bool = False, offset: int = 0
    ) -> None:
        """Write *value*; ``without_response`` uses a Write Command instead of a Write Request."""
        options: dict = {}
        if offset:
            options["offset"] = offset
        if without_response:
            options["type"] = "command"
        self._write_value(id.object_path, GATT_CHARACTERISTIC_INTERFACE, value, options)

    def read_descriptor_value(self, id: DescriptorId, offset: int = 0) -> bytes:
        return self._read_value(id.object_path, GATT_DESCRIPTOR_INTERFACE, offset)

    def write_descriptor_value(self, id: DescriptorId, value: bytes, offset: int = 0) -> None:
        options = {"offset": offset} if offset else {}
        self._write_value(id.object_path, GATT_DESCRIPTOR_INTERFACE, value, options)

    def start_notify(self, id: CharacteristicId) -> None:
        """Ask the device for notifications or indications of new values.

        The values arrive as :class:`~bluezio.dbuslayer.events.Value` events
        on an event stream covering the characteristic.
        """
        self._bus.call_method(id.object_path, GATT_CHARACTERISTIC_INTERFACE, "StartNotify")

    def stop_notify(self, id: CharacteristicId) -> None:
        self._bus.call_method(id.object_path, GATT_CHARACTERISTIC_INTERFACE, "StopNotify")

    # ------------------------------------------------------------------
    # Events
    # ------------------------------------------------------------------
    def _open_stream(self, scope) -> EventStream:
        stream = EventStream(self._bus, scope)
        self._streams.add(stream)
        return stream

    def event_stream(self) -> EventStream:
        """Events for every adapter and device, including ones appearing later."""
        return self._open_stream(None)

    def device_event_stream(self, device: DeviceId) -> EventStream:
        """Events for one device and the characteristics under it."""
        return self._open_stream(device)

    def characteristic_event_stream(self, characteristic: CharacteristicId) -> EventStream:
        """Value changes of one characteristic."""
        return self._open_stream(characteristic)

    # ------------------------------------------------------------------
    # Shutdown
    # ------------------------------------------------------------------
    def shutdown(self) -> None:
        """Close every event stream, then the connection, then stop the pump."""
        for stream in list(self._streams):
            stream.close()
        self._bus.close()
        if self._pump is not None:
            self._pump.stop()
        print_and_log("[*] Bluetooth session shut down", LOG__DEBUG)

    def __enter__(self) -> "BluetoothSession":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.shutdown()
