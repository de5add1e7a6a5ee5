"""Typed records decoded from BlueZ property bags.

BlueZ hands out properties as a loosely typed ``{name: value}`` mapping (after
:func:`bluezio.bt_ref.utils.dbus_to_python` the values are plain Python
types). The functions here turn such a mapping into an immutable record:

* a *required* property that is absent, or has the wrong type, raises
  :class:`RequiredPropertyMissing` and no record is produced;
* an *optional* property that is absent becomes ``None`` or an empty
  container;
* a malformed entry inside a multi-valued optional property (one UUID, one
  manufacturer-data or service-data entry) is dropped with a debug
  diagnostic and the rest of the record is still decoded.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional
from uuid import UUID

from bluezio.bt_ref.uuid_utils import parse_uuid, try_parse_uuid
from bluezio.core.errors import FlagParseError, RequiredPropertyMissing
from bluezio.core.log import LOG__DEBUG, print_and_log
from bluezio.dbuslayer.ids import (
    AdapterId,
    CharacteristicId,
    DescriptorId,
    DeviceId,
    MacAddress,
    ServiceId,
)

__all__ = [
    "AdapterInfo",
    "DeviceInfo",
    "ServiceInfo",
    "CharacteristicInfo",
    "DescriptorInfo",
    "CharacteristicFlags",
    "Transport",
    "DiscoveryFilter",
    "adapter_info_from_properties",
    "device_info_from_properties",
    "service_info_from_properties",
    "characteristic_info_from_properties",
    "descriptor_info_from_properties",
    "decode_uuid_list",
    "decode_manufacturer_data",
    "decode_service_data",
    "decode_bytes",
]

PropertyBag = Mapping[str, Any]


# ---------------------------------------------------------------------------
# Characteristic flags
# ---------------------------------------------------------------------------


class CharacteristicFlags(enum.Flag):
    """Capabilities of a GATT characteristic, as listed in its ``Flags`` property."""

    BROADCAST = 0x01
    READ = 0x02
    WRITE_WITHOUT_RESPONSE = 0x04
    WRITE = 0x08
    NOTIFY = 0x10
    INDICATE = 0x20
    SIGNED_WRITE = 0x40
    EXTENDED_PROPERTIES = 0x80
    RELIABLE_WRITE = 0x100
    WRITABLE_AUXILIARIES = 0x200
    ENCRYPT_READ = 0x400
    ENCRYPT_WRITE = 0x800
    ENCRYPT_AUTHENTICATED_READ = 0x1000
    ENCRYPT_AUTHENTICATED_WRITE = 0x2000
    AUTHORIZE = 0x4000

    @classmethod
    def empty(cls) -> "CharacteristicFlags":
        return cls(0)

    @classmethod
    def from_tokens(cls, tokens: Iterable[str]) -> "CharacteristicFlags":
        """Parse BlueZ flag strings; the first unknown token raises FlagParseError."""
        flags = cls(0)
        for token in tokens:
            flag = _FLAG_BY_TOKEN.get(token)
            if flag is None:
                raise FlagParseError(str(token))
            flags |= flag
        return flags

    def to_tokens(self) -> List[str]:
        return [token for token, flag in _FLAG_BY_TOKEN.items() if flag in self]


_FLAG_BY_TOKEN: Dict[str, CharacteristicFlags] = {
    "broadcast": CharacteristicFlags.BROADCAST,
    "read": CharacteristicFlags.READ,
    "write-without-response": CharacteristicFlags.WRITE_WITHOUT_RESPONSE,
    "write": CharacteristicFlags.WRITE,
    "notify": CharacteristicFlags.NOTIFY,
    "indicate": CharacteristicFlags.INDICATE,
    "authenticated-signed-writes": CharacteristicFlags.SIGNED_WRITE,
    "extended-properties": CharacteristicFlags.EXTENDED_PROPERTIES,
    "reliable-write": CharacteristicFlags.RELIABLE_WRITE,
    "writable-auxiliaries": CharacteristicFlags.WRITABLE_AUXILIARIES,
    "encrypt-read": CharacteristicFlags.ENCRYPT_READ,
    "encrypt-write": CharacteristicFlags.ENCRYPT_WRITE,
    "encrypt-authenticated-read": CharacteristicFlags.ENCRYPT_AUTHENTICATED_READ,
    "encrypt-authenticated-write": CharacteristicFlags.ENCRYPT_AUTHENTICATED_WRITE,
    "authorize": CharacteristicFlags.AUTHORIZE,
}


# ---------------------------------------------------------------------------
# Records
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class AdapterInfo:
    """Information about a Bluetooth adapter on the system."""

    id: AdapterId
    mac_address: MacAddress
    address_type: str
    name: str
    alias: str
    powered: bool
    discovering: bool


@dataclass(frozen=True)
class DeviceInfo:
    """Information about a Bluetooth device which was discovered."""

    id: DeviceId
    mac_address: MacAddress
    name: Optional[str]
    appearance: Optional[int]
    services: List[UUID]
    paired: bool
    connected: bool
    rssi: Optional[int]
    manufacturer_data: Dict[int, bytes] = field(default_factory=dict)
    service_data: Dict[UUID, bytes] = field(default_factory=dict)
    services_resolved: bool = False


@dataclass(frozen=True)
class ServiceInfo:
    """Information about a GATT service on a Bluetooth device."""

    id: ServiceId
    uuid: UUID
    primary: bool


@dataclass(frozen=True)
class CharacteristicInfo:
    """Information about a GATT characteristic on a Bluetooth device."""

    id: CharacteristicId
    uuid: UUID
    flags: CharacteristicFlags


@dataclass(frozen=True)
class DescriptorInfo:
    """Information about a GATT descriptor on a Bluetooth device."""

    id: DescriptorId
    uuid: UUID


# ---------------------------------------------------------------------------
# Discovery filter
# ---------------------------------------------------------------------------


class Transport(enum.Enum):
    """The type of transport to use for a scan."""

    # Interleaved scan, both BLE and Bluetooth Classic where the adapter has both
    AUTO = "auto"
    BR_EDR = "bredr"
    LE = "le"

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class DiscoveryFilter:
    """Filter parameters for discovery.

    Fields left unset (``None``, or an empty ``service_uuids``) keep the
    BlueZ default. With nothing set BlueZ still applies its own RSSI delta
    filter, only reporting RSSI changes above a certain amount.

    Attributes
    ----------
    service_uuids
        Only report devices advertising at least one of these service UUIDs
    rssi_threshold
        Only report devices with an RSSI above this value
    pathloss_threshold
        Only report devices with a path loss below this value
    transport
        Type of scan to run
    duplicate_data
        Report every advertisement carrying manufacturer data, not only changes
    discoverable
        Make the adapter discoverable while discovering
    pattern
        Only report devices whose address or name starts with this string
    """

    service_uuids: List[UUID] = field(default_factory=list)
    rssi_threshold: Optional[int] = None
    pathloss_threshold: Optional[int] = None
    transport: Optional[Transport] = None
    duplicate_data: Optional[bool] = None
    discoverable: Optional[bool] = None
    pattern: Optional[str] = None

    def to_properties(self) -> Dict[str, Any]:
        """Serialise to the ``SetDiscoveryFilter`` argument, set fields only."""
        props: Dict[str, Any] = {}
        if self.service_uuids:
            props["UUIDs"] = [str(uuid) for uuid in self.service_uuids]
        if self.rssi_threshold is not None:
            props["RSSI"] = self.rssi_threshold
        if self.pathloss_threshold is not None:
            props["Pathloss"] = self.pathloss_threshold
        if self.transport is not None:
            props["Transport"] = str(self.transport)
        if self.duplicate_data is not None:
            props["DuplicateData"] = self.duplicate_data
        if self.discoverable is not None:
            props["Discoverable"] = self.discoverable
        if self.pattern is not None:
            props["Pattern"] = self.pattern
        return props


# ---------------------------------------------------------------------------
# Field helpers
# ---------------------------------------------------------------------------


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _required(props: PropertyBag, name: str, expected_type: type) -> Any:
    value = props.get(name)
    if value is None or not isinstance(value, expected_type):
        raise RequiredPropertyMissing(name)
    if expected_type is int and isinstance(value, bool):
        raise RequiredPropertyMissing(name)
    return value


def _optional_str(props: PropertyBag, name: str) -> Optional[str]:
    value = props.get(name)
    return value if isinstance(value, str) else None


def _optional_int(props: PropertyBag, name: str) -> Optional[int]:
    value = props.get(name)
    return value if _is_int(value) else None


def decode_bytes(value: Any) -> Optional[bytes]:
    if isinstance(value, (bytes, bytearray)):
        return bytes(value)
    if isinstance(value, (list, tuple)) and all(
        _is_int(byte) and 0 <= byte <= 0xFF for byte in value
    ):
        return bytes(value)
    return None


def decode_uuid_list(values: Any, source: str = "UUIDs") -> List[UUID]:
    """Parse a list of UUID strings, dropping the malformed ones."""
    if not isinstance(values, (list, tuple)):
        return []
    uuids: List[UUID] = []
    for value in values:
        uuid = try_parse_uuid(value)
        if uuid is None:
            print_and_log(f"[DEBUG] Dropping malformed UUID {value!r} in {source}", LOG__DEBUG)
            continue
        uuids.append(uuid)
    return uuids


def decode_manufacturer_data(values: Any, source: str = "ManufacturerData") -> Dict[int, bytes]:
    """Decode ``{company id: bytes}``, dropping entries of the wrong shape."""
    if not isinstance(values, Mapping):
        return {}
    decoded: Dict[int, bytes] = {}
    for company_id, payload in values.items():
        data = decode_bytes(payload)
        if not _is_int(company_id) or data is None:
            print_and_log(
                f"[DEBUG] Dropping malformed manufacturer data entry {company_id!r} in {source}",
                LOG__DEBUG,
            )
            continue
        decoded[company_id] = data
    return decoded


def decode_service_data(values: Any, source: str = "ServiceData") -> Dict[UUID, bytes]:
    """Decode ``{service UUID: bytes}``, dropping entries of the wrong shape."""
    if not isinstance(values, Mapping):
        return {}
    decoded: Dict[UUID, bytes] = {}
    for key, payload in values.items():
        uuid = try_parse_uuid(key)
        data = decode_bytes(payload)
        if uuid is None or data is None:
            print_and_log(
                f"[DEBUG] Dropping malformed service data entry {key!r} in {source}",
                LOG__DEBUG,
            )
            continue
        decoded[uuid] = data
    return decoded


# ---------------------------------------------------------------------------
# Decoders
# ---------------------------------------------------------------------------


def adapter_info_from_properties(id: AdapterId, props: PropertyBag) -> AdapterInfo:
    return AdapterInfo(
        id=id,
        mac_address=MacAddress(_required(props, "Address", str)),
        address_type=_required(props, "AddressType", str),
        name=_required(props, "Name", str),
        alias=_required(props, "Alias", str),
        powered=_required(props, "Powered", bool),
        discovering=_required(props, "Discovering", bool),
    )


def device_info_from_properties(id: DeviceId, props: PropertyBag) -> DeviceInfo:
    """Decode the ``org.bluez.Device1`` properties of *id*.

    Parameters
    ----------
    id : DeviceId
        The device the properties belong to
    props : Mapping[str, Any]
        Property bag as returned by ``GetAll`` or carried in ``InterfacesAdded``

    Returns
    -------
    DeviceInfo
        A snapshot of the device

    Raises
    ------
    RequiredPropertyMissing
        If ``Address``, ``Paired``, ``Connected`` or ``ServicesResolved`` is absent
    """
    source = f"device {id.object_path}"
    return DeviceInfo(
        id=id,
        mac_address=MacAddress(_required(props, "Address", str)),
        name=_optional_str(props, "Name"),
        appearance=_optional_int(props, "Appearance"),
        services=decode_uuid_list(props.get("UUIDs", []), source),
        paired=_required(props, "Paired", bool),
        connected=_required(props, "Connected", bool),
        rssi=_optional_int(props, "RSSI"),
        manufacturer_data=decode_manufacturer_data(props.get("ManufacturerData", {}), source),
        service_data=decode_service_data(props.get("ServiceData", {}), source),
        services_resolved=_required(props, "ServicesResolved", bool),
    )


def service_info_from_properties(id: ServiceId, props: PropertyBag) -> ServiceInfo:
    return ServiceInfo(
        id=id,
        uuid=parse_uuid(_required(props, "UUID", str)),
        primary=_required(props, "Primary", bool),
    )


def characteristic_info_from_properties(
    id: CharacteristicId, props: PropertyBag
) -> CharacteristicInfo:
    tokens = _required(props, "Flags", (list, tuple))
    return CharacteristicInfo(
        id=id,
        uuid=parse_uuid(_required(props, "UUID", str)),
        flags=CharacteristicFlags.from_tokens(tokens),
    )


def descriptor_info_from_properties(id: DescriptorId, props: PropertyBag) -> DescriptorInfo:
    return DescriptorInfo(id=id, uuid=parse_uuid(_required(props, "UUID", str)))
