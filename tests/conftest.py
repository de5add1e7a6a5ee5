from __future__ import annotations

import copy
import os
import tempfile
from typing import Any, Dict, List, Optional, Tuple

import pytest

# Keep log files and user config of the developer machine out of the tests
_SANDBOX = tempfile.mkdtemp(prefix="bluezio-tests-")
os.environ.setdefault("XDG_DATA_HOME", os.path.join(_SANDBOX, "data"))
os.environ.setdefault("XDG_CONFIG_HOME", os.path.join(_SANDBOX, "config"))

from bluezio.bt_ref.constants import (  # noqa: E402
    ADAPTER_INTERFACE,
    DEVICE_INTERFACE,
    GATT_CHARACTERISTIC_INTERFACE,
    GATT_DESCRIPTOR_INTERFACE,
    GATT_SERVICE_INTERFACE,
)
from bluezio.core.errors import DbusError, decode_dbus_error  # noqa: E402
from bluezio.dbuslayer.ids import (  # noqa: E402
    AdapterId,
    CharacteristicId,
    DescriptorId,
    DeviceId,
    ServiceId,
)
from bluezio.dbuslayer.introspect import child_node_names  # noqa: E402
from bluezio.dbuslayer.match import MatchRule, RawMessage  # noqa: E402
from bluezio.dbuslayer.messagestream import MessageSink, MessageStream  # noqa: E402

ADAPTER_PATH = "/org/bluez/hci0"
DEVICE_PATH = ADAPTER_PATH + "/dev_AA_BB_CC_DD_EE_FF"
SERVICE_PATH = DEVICE_PATH + "/service0010"
CHARACTERISTIC_PATH = SERVICE_PATH + "/char0011"
DESCRIPTOR_PATH = CHARACTERISTIC_PATH + "/desc0013"

BATTERY_SERVICE = "0000180f-0000-1000-8000-00805f9b34fb"
BATTERY_LEVEL = "00002a19-0000-1000-8000-00805f9b34fb"
CCCD = "00002902-0000-1000-8000-00805f9b34fb"
DEVICE_INFORMATION = "0000180a-0000-1000-8000-00805f9b34fb"
MANUFACTURER_NAME = "00002a29-0000-1000-8000-00805f9b34fb"


def adapter_properties(**overrides: Any) -> Dict[str, Any]:
    props = {
        "Address": "00:11:22:33:44:55",
        "AddressType": "public",
        "Name": "host",
        "Alias": "host",
        "Powered": False,
        "Discovering": False,
    }
    props.update(overrides)
    return props


def device_properties(**overrides: Any) -> Dict[str, Any]:
    props = {
        "Address": "AA:BB:CC:DD:EE:FF",
        "Name": "Thermometer",
        "Paired": False,
        "Connected": True,
        "ServicesResolved": True,
        "RSSI": -60,
        "UUIDs": [BATTERY_SERVICE],
        "ManufacturerData": {0x004C: b"\x01\x02"},
    }
    props.update(overrides)
    return props


class FakeBus:
    """In-memory stand-in for :class:`bluezio.dbuslayer.connection.BluezConnection`.

    Holds a managed-object tree, answers introspection from it, records every
    call in ``calls`` and routes :meth:`deliver`-ed messages to the matches
    registered with :meth:`add_match`.
    """

    def __init__(self, objects: Optional[Dict[str, Dict[str, Dict[str, Any]]]] = None):
        self.objects: Dict[str, Dict[str, Dict[str, Any]]] = copy.deepcopy(objects or {})
        self.calls: List[Tuple[Any, ...]] = []
        self.replies: Dict[Tuple[str, str], Any] = {}
        self.introspection: Dict[str, str] = {}
        self.streams: List[MessageStream] = []
        self.removed: List[MatchRule] = []
        self.closed = False
        self._failures: List[Tuple[str, Optional[str], DbusError]] = []

    # Test helpers ------------------------------------------------------
    def add_object(self, path: str, interface: str, properties: Dict[str, Any]) -> None:
        self.objects.setdefault(path, {})[interface] = dict(properties)

    def fail(
        self,
        member: str,
        path: Optional[str] = None,
        name: str = "org.bluez.Error.Failed",
        message: str = "",
    ) -> None:
        self._failures.append((member, path, DbusError(name, message, decode_dbus_error(name, message))))

    def members(self, path: Optional[str] = None) -> List[str]:
        return [call[0] for call in self.calls if path is None or call[1] == path]

    def deliver(self, message: RawMessage) -> None:
        for stream in list(self.streams):
            stream.deliver(message)

    def drop_connection(self) -> None:
        streams, self.streams = self.streams, []
        for stream in streams:
            stream.mark_closed()

    def _record(self, member: str, path: str, *args: Any) -> None:
        self.calls.append((member, path) + args)
        for fail_member, fail_path, error in self._failures:
            if fail_member == member and fail_path in (None, path):
                raise error

    # BusConnection -----------------------------------------------------
    def get_managed_objects(self, path: str = "/") -> Dict[str, Dict[str, Dict[str, Any]]]:
        self._record("GetManagedObjects", path)
        return copy.deepcopy(self.objects)

    def introspect(self, path: str) -> str:
        self._record("Introspect", path)
        if path in self.introspection:
            return self.introspection[path]
        children: List[str] = []
        for object_path in sorted(self.objects):
            if object_path.startswith(path + "/"):
                child = object_path[len(path) + 1:].split("/")[0]
                if child not in children:
                    children.append(child)
        nodes = "".join(f'<node name="{child}"/>' for child in children)
        return (
            "<node>"
            '<interface name="org.freedesktop.DBus.Introspectable"/>'
            f"{nodes}"
            "</node>"
        )

    def introspect_children(self, path: str) -> List[str]:
        return child_node_names(path, self.introspect(path))

    def _interface_props(self, path: str, interface: str) -> Dict[str, Any]:
        try:
            return self.objects[path][interface]
        except KeyError:
            raise DbusError(
                "org.freedesktop.DBus.Error.UnknownObject", f"no {interface} at {path}"
            ) from None

    def get_all_properties(self, path: str, interface: str) -> Dict[str, Any]:
        self._record("GetAll", path, interface)
        return copy.deepcopy(self._interface_props(path, interface))

    def get_property(self, path: str, interface: str, name: str) -> Any:
        self._record("Get", path, interface, name)
        props = self._interface_props(path, interface)
        if name not in props:
            raise DbusError("org.freedesktop.DBus.Error.InvalidArgs", f"No such property '{name}'")
        return copy.deepcopy(props[name])

    def set_property(self, path: str, interface: str, name: str, value: Any) -> None:
        self._record("Set", path, interface, name, value)
        self._interface_props(path, interface)[name] = value

    def call_method(self, path: str, interface: str, method: str, *args: Any) -> Any:
        self._record(method, path, interface, *args)
        return self.replies.get((path, method))

    def add_match(self, rule: MatchRule, sink: Optional[MessageSink] = None) -> MessageStream:
        stream = MessageStream(rule, sink, on_remove=self.remove_match)
        self.streams.append(stream)
        return stream

    def remove_match(self, stream: MessageStream) -> None:
        if stream in self.streams:
            self.streams.remove(stream)
            self.removed.append(stream.rule)
        stream.mark_closed()

    def close(self) -> None:
        for stream in list(self.streams):
            self.remove_match(stream)
        self.closed = True


def standard_tree() -> Dict[str, Dict[str, Dict[str, Any]]]:
    """One adapter, one connected device with two services."""
    return {
        ADAPTER_PATH: {ADAPTER_INTERFACE: adapter_properties()},
        DEVICE_PATH: {DEVICE_INTERFACE: device_properties()},
        SERVICE_PATH: {GATT_SERVICE_INTERFACE: {"UUID": BATTERY_SERVICE, "Primary": True}},
        CHARACTERISTIC_PATH: {
            GATT_CHARACTERISTIC_INTERFACE: {"UUID": BATTERY_LEVEL, "Flags": ["read", "notify"]}
        },
        DESCRIPTOR_PATH: {GATT_DESCRIPTOR_INTERFACE: {"UUID": CCCD}},
        DEVICE_PATH + "/service0020": {
            GATT_SERVICE_INTERFACE: {"UUID": DEVICE_INFORMATION, "Primary": True}
        },
        DEVICE_PATH + "/service0020/char0021": {
            GATT_CHARACTERISTIC_INTERFACE: {"UUID": MANUFACTURER_NAME, "Flags": ["read"]}
        },
    }


@pytest.fixture
def make_bus():
    return FakeBus


@pytest.fixture
def bus() -> FakeBus:
    return FakeBus(standard_tree())


@pytest.fixture
def adapter_id() -> AdapterId:
    return AdapterId(ADAPTER_PATH)


@pytest.fixture
def device_id() -> DeviceId:
    return DeviceId(DEVICE_PATH)


@pytest.fixture
def service_id() -> ServiceId:
    return ServiceId(SERVICE_PATH)


@pytest.fixture
def characteristic_id() -> CharacteristicId:
    return CharacteristicId(CHARACTERISTIC_PATH)


@pytest.fixture
def descriptor_id() -> DescriptorId:
    return DescriptorId(DESCRIPTOR_PATH)
