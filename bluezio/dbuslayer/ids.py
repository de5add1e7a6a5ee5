"""Typed identifiers for the objects BlueZ exposes on D-Bus.

Every identifier wraps the object path of one BlueZ object. The level of an
object is given by the prefix of the last path segment::

    /org/bluez/hci0                                        AdapterId
    /org/bluez/hci0/dev_AA_BB_CC_DD_EE_FF                  DeviceId
    /org/bluez/hci0/dev_AA_BB_CC_DD_EE_FF/service0010      ServiceId
    .../service0010/char0011                               CharacteristicId
    .../service0010/char0011/desc0013                      DescriptorId

Identifiers are plain values: they hold no connection, compare and hash on
the path, and may be kept around after the object has gone away (operations
on such an id then fail with a D-Bus error).
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import ClassVar, Optional, Type

from bluezio.bt_ref.constants import (
    BLUEZ_NAMESPACE,
    INTROSPECT_ADAPTER_STRING,
    INTROSPECT_CHARACTERISTIC_STRING,
    INTROSPECT_DESCRIPTOR_STRING,
    INTROSPECT_DEVICE_STRING,
    INTROSPECT_SERVICE_STRING,
)
from bluezio.core.errors import IdentifierFormatError

__all__ = [
    "ObjectId",
    "AdapterId",
    "DeviceId",
    "ServiceId",
    "CharacteristicId",
    "DescriptorId",
    "MacAddress",
    "ParseMacAddressError",
    "id_for_path",
]

_MAC_RX = re.compile(r"^[0-9A-Fa-f]{2}(?::[0-9A-Fa-f]{2}){5}$")


class ParseMacAddressError(ValueError):
    """An error parsing a MAC address from a string."""


@dataclass(frozen=True, order=True)
class MacAddress:
    """MAC address of a Bluetooth device."""

    address: str

    @classmethod
    def parse(cls, text: str) -> "MacAddress":
        if not _MAC_RX.match(text):
            raise ParseMacAddressError(f"Invalid MAC address {text!r}")
        return cls(text.upper())

    def __str__(self) -> str:
        return self.address


def _split_path(object_path: str):
    head, sep, segment = object_path.rpartition("/")
    return head, segment if sep else ""


@dataclass(frozen=True, order=True)
class ObjectId:
    object_path: str

    # Prefix of the last path segment, and the class of the containing object
    SEGMENT_PREFIX: ClassVar[str] = ""
    PARENT: ClassVar[Optional[Type["ObjectId"]]] = None

    def __post_init__(self):
        if not isinstance(self.object_path, str):
            raise ValueError(f"object path must be a string, not {self.object_path!r}")
        head, segment = _split_path(self.object_path)
        if not segment.startswith(self.SEGMENT_PREFIX) or len(segment) == len(self.SEGMENT_PREFIX):
            raise ValueError(
                f"{self.object_path!r} is not a valid {type(self).__name__} path"
            )
        if self.PARENT is not None:
            # Validates the rest of the path, level by level
            self.PARENT(head)
        elif not head.startswith("/"):
            raise ValueError(
                f"{self.object_path!r} is not a valid {type(self).__name__} path"
            )

    @property
    def name(self) -> str:
        """Last segment of the object path, e.g. ``service0010``."""
        return _split_path(self.object_path)[1]

    def _parent_path(self) -> str:
        return self.object_path[: self.object_path.rindex("/")]

    def _child(self, child_type: Type["ObjectId"], segment: str):
        return child_type(f"{self.object_path}/{segment}")

    def contains(self, object_path: str) -> bool:
        """Return True if *object_path* is this object or one of its descendants."""
        return object_path == self.object_path or object_path.startswith(
            self.object_path + "/"
        )

    def __str__(self) -> str:
        if not self.object_path.startswith(BLUEZ_NAMESPACE):
            raise IdentifierFormatError(self.object_path)
        return self.object_path[len(BLUEZ_NAMESPACE):]


@dataclass(frozen=True, order=True)
class AdapterId(ObjectId):
    """Opaque identifier for a Bluetooth adapter on the system."""

    SEGMENT_PREFIX: ClassVar[str] = INTROSPECT_ADAPTER_STRING

    @classmethod
    def from_name(cls, name: str, root: str = BLUEZ_NAMESPACE.rstrip("/")) -> "AdapterId":
        return cls(f"{root}/{name}")

    def device(self, segment: str) -> "DeviceId":
        return self._child(DeviceId, segment)

    def device_for_address(self, mac_address: MacAddress) -> "DeviceId":
        """Return the id BlueZ uses for the device with *mac_address* on this adapter."""
        return self.device(INTROSPECT_DEVICE_STRING + str(mac_address).replace(":", "_"))


@dataclass(frozen=True, order=True)
class DeviceId(ObjectId):
    """Opaque identifier for a Bluetooth device which the system knows about."""

    SEGMENT_PREFIX: ClassVar[str] = INTROSPECT_DEVICE_STRING
    PARENT: ClassVar[Optional[Type[ObjectId]]] = AdapterId

    def parent(self) -> AdapterId:
        return AdapterId(self._parent_path())

    adapter = parent

    def service(self, segment: str) -> "ServiceId":
        return self._child(ServiceId, segment)


@dataclass(frozen=True, order=True)
class ServiceId(ObjectId):
    """Opaque identifier for a GATT service on a Bluetooth device."""

    SEGMENT_PREFIX: ClassVar[str] = INTROSPECT_SERVICE_STRING
    PARENT: ClassVar[Optional[Type[ObjectId]]] = DeviceId

    def parent(self) -> DeviceId:
        return DeviceId(self._parent_path())

    device = parent

    def characteristic(self, segment: str) -> "CharacteristicId":
        return self._child(CharacteristicId, segment)


@dataclass(frozen=True, order=True)
class CharacteristicId(ObjectId):
    """Opaque identifier for a GATT characteristic on a Bluetooth device."""

    SEGMENT_PREFIX: ClassVar[str] = INTROSPECT_CHARACTERISTIC_STRING
    PARENT: ClassVar[Optional[Type[ObjectId]]] = ServiceId

    def parent(self) -> ServiceId:
        return ServiceId(self._parent_path())

    service = parent

    def descriptor(self, segment: str) -> "DescriptorId":
        return self._child(DescriptorId, segment)


@dataclass(frozen=True, order=True)
class DescriptorId(ObjectId):
    """Opaque identifier for a GATT characteristic descriptor on a Bluetooth device."""

    SEGMENT_PREFIX: ClassVar[str] = INTROSPECT_DESCRIPTOR_STRING
    PARENT: ClassVar[Optional[Type[ObjectId]]] = CharacteristicId

    def parent(self) -> CharacteristicId:
        return CharacteristicId(self._parent_path())

    characteristic = parent


def id_for_path(id_type: Type[ObjectId], object_path: str) -> Optional[ObjectId]:
    """Build an id of *id_type* from a path received from the daemon.

    Returns ``None`` if the path does not have the shape of that level, so
    callers handling signals can skip objects of other kinds.
    """
    try:
        return id_type(object_path)
    except ValueError:
        return None
