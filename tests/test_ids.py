from __future__ import annotations

import pytest

from bluezio.core.errors import IdentifierFormatError
from bluezio.dbuslayer.ids import (
    AdapterId,
    CharacteristicId,
    DescriptorId,
    DeviceId,
    MacAddress,
    ParseMacAddressError,
    ServiceId,
    id_for_path,
)

DEVICE = "/org/bluez/hci0/dev_11_22_33_44_55_66"


def test_child_then_parent_returns_the_original_id() -> None:
    device = DeviceId(DEVICE)
    service = device.service("service0001")
    assert service.object_path == DEVICE + "/service0001"
    assert service.parent() == device

    characteristic = service.characteristic("char0002")
    assert characteristic.parent() == service

    descriptor = characteristic.descriptor("desc0003")
    assert descriptor.parent() == characteristic
    assert descriptor.characteristic().service().device().adapter() == AdapterId("/org/bluez/hci0")


def test_adapter_has_no_parent() -> None:
    assert not hasattr(AdapterId("/org/bluez/hci0"), "parent")


def test_display_strips_bluez_prefix() -> None:
    assert str(AdapterId("/org/bluez/hci0")) == "hci0"
    assert str(ServiceId(DEVICE + "/service0010")) == "hci0/dev_11_22_33_44_55_66/service0010"


def test_display_outside_bluez_namespace_fails() -> None:
    adapter = AdapterId("/com/example/hci0")
    with pytest.raises(IdentifierFormatError):
        str(adapter)


@pytest.mark.parametrize(
    "id_type, path",
    [
        (AdapterId, "hci0"),
        (AdapterId, "/org/bluez/dev_11_22_33_44_55_66"),
        (DeviceId, "/org/bluez/hci0/service0010"),
        (DeviceId, "/org/bluez/hci0"),
        (ServiceId, DEVICE + "/char0011"),
        (CharacteristicId, "/org/bluez/hci0/dev_11/foo/char0011"),
        (DescriptorId, DEVICE + "/service0010/char0011/desc"),
    ],
)
def test_malformed_paths_are_rejected(id_type, path) -> None:
    with pytest.raises(ValueError):
        id_type(path)
    assert id_for_path(id_type, path) is None


def test_ids_are_hashable_values() -> None:
    first = DeviceId(DEVICE)
    second = AdapterId("/org/bluez/hci0").device("dev_11_22_33_44_55_66")
    assert first == second
    assert len({first, second}) == 1
    assert sorted([AdapterId("/org/bluez/hci1"), AdapterId("/org/bluez/hci0")])[0].name == "hci0"


def test_contains_matches_whole_segments_only() -> None:
    device = DeviceId("/org/bluez/hci0/dev_AA")
    assert device.contains("/org/bluez/hci0/dev_AA")
    assert device.contains("/org/bluez/hci0/dev_AA/service0001/char0002")
    assert not device.contains("/org/bluez/hci0/dev_AAB")
    assert not device.contains("/org/bluez/hci0")


def test_device_for_address() -> None:
    adapter = AdapterId.from_name("hci1")
    device = adapter.device_for_address(MacAddress.parse("aa:bb:cc:dd:ee:ff"))
    assert device.object_path == "/org/bluez/hci1/dev_AA_BB_CC_DD_EE_FF"
    assert device.adapter() == adapter


@pytest.mark.parametrize("text", ["", "AA:BB:CC:DD:EE", "AA-BB-CC-DD-EE-FF", "GG:BB:CC:DD:EE:FF"])
def test_mac_address_parse_rejects_garbage(text: str) -> None:
    with pytest.raises(ParseMacAddressError):
        MacAddress.parse(text)
