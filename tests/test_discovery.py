from __future__ import annotations

from uuid import UUID

import pytest

from bluezio.bt_ref.constants import (
    ADAPTER_INTERFACE,
    DEVICE_INTERFACE,
    GATT_CHARACTERISTIC_INTERFACE,
    GATT_SERVICE_INTERFACE,
)
from bluezio.core.errors import NoBluetoothAdapters, UUIDNotFound
from bluezio.dbuslayer import discovery
from bluezio.dbuslayer.ids import AdapterId, DeviceId
from bluezio.dbuslayer.properties import CharacteristicFlags
from conftest import (
    BATTERY_LEVEL,
    BATTERY_SERVICE,
    CCCD,
    DEVICE_INFORMATION,
    DEVICE_PATH,
    MANUFACTURER_NAME,
    SERVICE_PATH,
    adapter_properties,
    device_properties,
)


def test_empty_tree_has_no_adapters(make_bus) -> None:
    bus = make_bus()
    with pytest.raises(NoBluetoothAdapters):
        discovery.get_adapters(bus)
    assert discovery.get_devices(bus) == []


def test_device_without_adapter(make_bus) -> None:
    bus = make_bus({DEVICE_PATH: {DEVICE_INTERFACE: device_properties()}})
    with pytest.raises(NoBluetoothAdapters):
        discovery.get_adapters(bus)
    devices = discovery.get_devices(bus)
    assert len(devices) == 1
    assert devices[0].id == DeviceId(DEVICE_PATH)


def test_adapters_sorted_by_path(make_bus) -> None:
    bus = make_bus(
        {
            "/org/bluez/hci1": {ADAPTER_INTERFACE: adapter_properties()},
            "/org/bluez/hci0": {ADAPTER_INTERFACE: adapter_properties()},
            "/org/bluez": {"org.bluez.AgentManager1": {}},
        }
    )
    assert discovery.get_adapters(bus) == [
        AdapterId("/org/bluez/hci0"),
        AdapterId("/org/bluez/hci1"),
    ]
    infos = discovery.get_adapter_infos(bus)
    assert [info.id.name for info in infos] == ["hci0", "hci1"]


def test_devices_that_fail_to_decode_are_skipped(bus) -> None:
    broken = device_properties(Address="11:22:33:44:55:66")
    del broken["Paired"]
    bus.add_object("/org/bluez/hci0/dev_11_22_33_44_55_66", DEVICE_INTERFACE, broken)
    devices = discovery.get_devices(bus)
    assert [device.id.object_path for device in devices] == [DEVICE_PATH]


def test_device_info_uses_one_getall(bus, device_id) -> None:
    info = discovery.get_device_info(bus, device_id)
    assert info.name == "Thermometer"
    assert bus.calls == [("GetAll", DEVICE_PATH, DEVICE_INTERFACE)]


def test_adapter_info(bus, adapter_id) -> None:
    info = discovery.get_adapter_info(bus, adapter_id)
    assert str(info.mac_address) == "00:11:22:33:44:55"


def test_services_by_introspection(bus, device_id) -> None:
    # Child nodes without the service prefix are ignored
    bus.add_object(DEVICE_PATH + "/fd0", "org.bluez.MediaTransport1", {})
    services = discovery.get_services(bus, device_id)
    assert [(service.id.name, service.uuid) for service in services] == [
        ("service0010", UUID(BATTERY_SERVICE)),
        ("service0020", UUID(DEVICE_INFORMATION)),
    ]
    assert all(service.primary for service in services)


def test_service_info_issues_exactly_the_required_gets(bus, service_id) -> None:
    discovery.get_service_info(bus, service_id)
    assert bus.calls == [
        ("Get", SERVICE_PATH, GATT_SERVICE_INTERFACE, "UUID"),
        ("Get", SERVICE_PATH, GATT_SERVICE_INTERFACE, "Primary"),
    ]


def test_characteristics_and_descriptors(bus, service_id, characteristic_id) -> None:
    characteristics = discovery.get_characteristics(bus, service_id)
    assert len(characteristics) == 1
    assert characteristics[0].id == characteristic_id
    assert characteristics[0].uuid == UUID(BATTERY_LEVEL)
    assert characteristics[0].flags == CharacteristicFlags.READ | CharacteristicFlags.NOTIFY

    descriptors = discovery.get_descriptors(bus, characteristic_id)
    assert [descriptor.uuid for descriptor in descriptors] == [UUID(CCCD)]


def test_characteristic_info_gets(bus, characteristic_id) -> None:
    discovery.get_characteristic_info(bus, characteristic_id)
    assert [call[3] for call in bus.calls] == ["UUID", "Flags"]
    assert {call[2] for call in bus.calls} == {GATT_CHARACTERISTIC_INTERFACE}


def test_device_without_services(make_bus, device_id) -> None:
    bus = make_bus({DEVICE_PATH: {DEVICE_INTERFACE: device_properties()}})
    assert discovery.get_services(bus, device_id) == []


def test_lookups_by_uuid(bus, device_id, service_id, characteristic_id) -> None:
    service = discovery.get_service_by_uuid(bus, device_id, UUID(BATTERY_SERVICE))
    assert service.id == service_id

    characteristic = discovery.get_characteristic_by_uuid(bus, service_id, UUID(BATTERY_LEVEL))
    assert characteristic.id == characteristic_id

    descriptor = discovery.get_descriptor_by_uuid(bus, characteristic_id, UUID(CCCD))
    assert descriptor.id.parent() == characteristic_id

    characteristic = discovery.get_service_characteristic_by_uuid(
        bus, device_id, UUID(DEVICE_INFORMATION), UUID(MANUFACTURER_NAME)
    )
    assert characteristic.id.object_path == DEVICE_PATH + "/service0020/char0021"


def test_lookup_of_missing_uuid(bus, device_id) -> None:
    missing = UUID("12345678-1234-5678-1234-567812345678")
    with pytest.raises(UUIDNotFound) as excinfo:
        discovery.get_service_by_uuid(bus, device_id, missing)
    assert excinfo.value.uuid == missing
