"""
bluezio - typed access to the BlueZ Bluetooth daemon over D-Bus
"""

__version__ = "0.1.0"

# ---------------------------------------------------------------------------
# Initialise logging on package import so every code path writes to the
# same log files. No-op if the module was already imported.
# ---------------------------------------------------------------------------
import importlib as _importlib

_importlib.import_module("bluezio.core.log")  # noqa: F401 – side-effect import

from bluezio.core.errors import (  # noqa: E402
    BluetoothError,
    DbusError,
    NoBluetoothAdapters,
    RequiredPropertyMissing,
)

__all__ = [
    "BluetoothError",
    "DbusError",
    "NoBluetoothAdapters",
    "RequiredPropertyMissing",
    "BluetoothSession",
    "DiscoveryFilter",
    "Transport",
    "AdapterId",
    "DeviceId",
    "ServiceId",
    "CharacteristicId",
    "DescriptorId",
    "MacAddress",
]

_LAZY = {
    "BluetoothSession": "bluezio.dbuslayer.session",
    "DiscoveryFilter": "bluezio.dbuslayer.properties",
    "Transport": "bluezio.dbuslayer.properties",
    "AdapterId": "bluezio.dbuslayer.ids",
    "DeviceId": "bluezio.dbuslayer.ids",
    "ServiceId": "bluezio.dbuslayer.ids",
    "CharacteristicId": "bluezio.dbuslayer.ids",
    "DescriptorId": "bluezio.dbuslayer.ids",
    "MacAddress": "bluezio.dbuslayer.ids",
}


# Lazy-load the D-Bus layer so importing bluezio stays cheap
def __getattr__(name):
    if name in _LAZY:
        return getattr(_importlib.import_module(_LAZY[name]), name)
    raise AttributeError(f"module '{__name__}' has no attribute '{name}'")
