"""
Core package initialisation for bluezio.

Configuration, logging and the error taxonomy do not import D-Bus.
"""

from bluezio.core.errors import (
    BluetoothError,
    NoBluetoothAdapters,
    DbusError,
    RequiredPropertyMissing,
)

__all__ = [
    "BluetoothError",
    "NoBluetoothAdapters",
    "DbusError",
    "RequiredPropertyMissing",
]
