"""Typed shapes for realtime traffic.

Two kinds of things reach session handlers: transport lifecycle events
(:class:`LifecycleEvent`) and application messages wrapped in an
:class:`Envelope`.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Any, Dict, Generic, Mapping, TypeVar

T = TypeVar("T")


class LifecycleEvent(str, enum.Enum):
    CONNECT = "connect"
    DISCONNECT = "disconnect"
    RECONNECT = "reconnect"
    RECONNECTING = "reconnecting"

    @classmethod
    def names(cls) -> frozenset:
        return frozenset(member.value for member in cls)


@dataclass(frozen=True)
class Envelope(Generic[T]):
    """Application message ``{type, data}`` exchanged on the ``message`` event."""

    type: str
    data: T = None  # type: ignore[assignment]

    @classmethod
    def from_payload(cls, payload: Any) -> "Envelope[Any]":
        if not isinstance(payload, Mapping):
            raise ValueError(f"envelope must be a mapping, got {type(payload).__name__}")
        msg_type = payload.get("type")
        if not isinstance(msg_type, str) or not msg_type:
            raise ValueError("envelope is missing a 'type'")
        return cls(type=msg_type, data=payload.get("data"))

    def to_payload(self) -> Dict[str, Any]:
        return {"type": self.type, "data": self.data}


def event_name(event: Any) -> str:
    """Accept either a plain string or a :class:`LifecycleEvent`."""
    if isinstance(event, LifecycleEvent):
        return event.value
    return str(event)
