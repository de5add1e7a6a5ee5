"""Interface between the bluezio core and the D-Bus connection it runs on."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Dict, List, Protocol

from bluezio.dbuslayer.match import MatchRule

if TYPE_CHECKING:  # pragma: no cover
    from bluezio.dbuslayer.messagestream import MessageSink, MessageStream

ManagedObjects = Dict[str, Dict[str, Dict[str, Any]]]


class BusConnection(Protocol):
    """Operations the core needs from the bus.

    Values returned are plain Python types. Every call either completes
    within the connection's method-call timeout or raises
    :class:`bluezio.core.errors.DbusError`.
    """

    def get_managed_objects(self, path: str = "/") -> ManagedObjects:
        """Return ``{object path: {interface: {property: value}}}``."""

    def introspect(self, path: str) -> str:
        """Return the introspection XML of *path*."""

    def introspect_children(self, path: str) -> List[str]:
        """Return the names of the immediate child nodes of *path*."""

    def get_all_properties(self, path: str, interface: str) -> Dict[str, Any]:
        ...

    def get_property(self, path: str, interface: str, name: str) -> Any:
        ...

    def set_property(self, path: str, interface: str, name: str, value: Any) -> None:
        ...

    def call_method(self, path: str, interface: str, method: str, *args: Any) -> Any:
        ...

    def add_match(self, rule: MatchRule, sink: "MessageSink") -> "MessageStream":
        """Register *rule*; matching messages are delivered into *sink*."""

    def remove_match(self, stream: "MessageStream") -> None:
        ...

    def close(self) -> None:
        """Release every registration, then the connection itself."""
