"""UUID utility functions for Bluetooth operations."""

from typing import Optional
from uuid import UUID

from bluezio.bt_ref.constants import BASE_UUID__BLUETOOTH
from bluezio.core.errors import UUIDParseError

# Standard BT SIG Base UUID
BT_SIG_BASE_UUID = UUID(BASE_UUID__BLUETOOTH)

_BASE_LOW_BITS = BT_SIG_BASE_UUID.int & ((1 << 96) - 1)


def uuid_from_u32(short: int) -> UUID:
    """Expand a 32-bit Bluetooth UUID into a full 128-bit one."""
    if not 0 <= short <= 0xFFFFFFFF:
        raise ValueError(f"{short:#x} does not fit in 32 bits")
    return UUID(int=(short << 96) | _BASE_LOW_BITS)


def uuid_from_u16(short: int) -> UUID:
    """Expand a 16-bit Bluetooth UUID into a full 128-bit one."""
    if not 0 <= short <= 0xFFFF:
        raise ValueError(f"{short:#x} does not fit in 16 bits")
    return uuid_from_u32(short)


def uuid_to_short(uuid: UUID) -> Optional[int]:
    """Return the 16/32-bit alias of *uuid*, or ``None`` for a custom UUID."""
    if uuid.int & ((1 << 96) - 1) != _BASE_LOW_BITS:
        return None
    return uuid.int >> 96


def succinct_uuid(uuid: UUID) -> str:
    """Format *uuid* the short way when it is based on the BT SIG base UUID.

    ``0000180f-0000-1000-8000-00805f9b34fb`` is rendered ``0x180f``;
    a 32-bit alias as ``0x12345678``; anything else in full.
    """
    short = uuid_to_short(uuid)
    if short is None:
        return str(uuid)
    if short <= 0xFFFF:
        return f"{short:#06x}"
    return f"{short:#010x}"


def try_parse_uuid(value: object) -> Optional[UUID]:
    """Parse an RFC-4122 UUID string, returning ``None`` when it is malformed."""
    if isinstance(value, UUID):
        return value
    if not isinstance(value, str):
        return None
    try:
        return UUID(value)
    except ValueError:
        return None


def parse_uuid(value: object) -> UUID:
    """Parse an RFC-4122 UUID string.

    Raises
    ------
    UUIDParseError
        If *value* is not a string in UUID syntax
    """
    uuid = try_parse_uuid(value)
    if uuid is None:
        raise UUIDParseError(value)
    return uuid
