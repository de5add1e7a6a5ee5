"""D-Bus match rules and the raw signal messages they select."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional, Tuple

__all__ = ["MatchRule", "RawMessage"]


@dataclass(frozen=True)
class RawMessage:
    """A signal message as delivered by the bus, with plain Python arguments."""

    path: str
    interface: str
    member: str
    args: Tuple[Any, ...] = ()
    sender: Optional[str] = None


@dataclass(frozen=True)
class MatchRule:
    """A match rule for signal messages.

    ``str(rule)`` is the expression passed to ``AddMatch`` on the bus daemon.
    :meth:`matches` applies the same test on the client side, since a message
    filter installed on the connection sees every incoming message, including
    those routed to us by other rules.
    """

    sender: Optional[str] = None
    path: Optional[str] = None
    path_namespace: Optional[str] = None
    interface: Optional[str] = None
    member: Optional[str] = None
    msg_type: str = field(default="signal")

    def __str__(self) -> str:
        parts = [f"type='{self.msg_type}'"]
        for key in ("sender", "path", "path_namespace", "interface", "member"):
            value = getattr(self, key)
            if value is not None:
                parts.append(f"{key}='{value}'")
        return ",".join(parts)

    def matches(self, message: RawMessage) -> bool:
        # The sender is the unique bus name of the daemon, not its well-known
        # name, so it is left to the bus daemon to check.
        if self.path is not None and message.path != self.path:
            return False
        if self.path_namespace is not None and not (
            self.path_namespace == "/"
            or message.path == self.path_namespace
            or message.path.startswith(self.path_namespace + "/")
        ):
            return False
        if self.interface is not None and message.interface != self.interface:
            return False
        if self.member is not None and message.member != self.member:
            return False
        return True
