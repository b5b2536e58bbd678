"""
Realtime ports and notification event contracts (contracts-first).

Notification events are a closed tagged union keyed by ``type``. Producers
build the concrete event and hand it to a ``NotificationPublisher``; the
streaming endpoint serializes it onto the wire with camelCase field names.
New event kinds are added to ``RealtimeNotification`` here, never inferred
from payload shape.
"""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Annotated, Callable, Iterable, Literal, Optional, Protocol, Union

from pydantic import BaseModel, ConfigDict, Field, PlainSerializer, TypeAdapter
from pydantic.alias_generators import to_camel


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _utc_z(ts: datetime) -> str:
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    s = ts.astimezone(timezone.utc).isoformat()
    return s.replace("+00:00", "Z")


UtcTimestamp = Annotated[datetime, PlainSerializer(_utc_z, return_type=str)]


class _EventModel(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True, alias_generator=to_camel)


class SenderInfo(_EventModel):
    id: str
    name: str


class BadgeInfo(_EventModel):
    code: str
    name: str
    description: Optional[str] = None


class ConnectedEvent(_EventModel):
    """Stream handshake marker; produced by the stream itself, never emitted."""

    type: Literal["connected"] = "connected"
    timestamp: UtcTimestamp = Field(default_factory=_utc_now)


class DirectMessageEvent(_EventModel):
    type: Literal["direct_message"] = "direct_message"
    conversation_id: str
    message_id: str
    body: str
    sender: SenderInfo
    created_at: UtcTimestamp


class BadgeAwardedEvent(_EventModel):
    type: Literal["badge_awarded"] = "badge_awarded"
    award_id: str
    badge: BadgeInfo
    reason: Optional[str] = None
    awarded_at: UtcTimestamp


RealtimeNotification = Annotated[
    Union[ConnectedEvent, DirectMessageEvent, BadgeAwardedEvent],
    Field(discriminator="type"),
]

notification_adapter: TypeAdapter[RealtimeNotification] = TypeAdapter(RealtimeNotification)


def serialize_notification(event: RealtimeNotification) -> str:
    """JSON text of an event as it appears on the wire."""
    return event.model_dump_json(by_alias=True)


NotificationListener = Callable[[RealtimeNotification], None]


class NotificationPublisher(Protocol):
    """Producer-facing side of the fan-out registry.

    Delivery is best-effort and synchronous: events for users with no open
    stream are dropped.
    """

    def emit(self, user_id: str, event: RealtimeNotification) -> int: ...

    def emit_many(self, user_ids: Iterable[str], event: RealtimeNotification) -> int: ...


class SignalChannel(Protocol):
    """Bidirectional text channel owned by one voice participant.

    Starlette's ``WebSocket`` satisfies this protocol.
    """

    async def send_text(self, data: str) -> None: ...

    async def close(self, code: int = 1000, reason: str | None = None) -> None: ...


__all__ = [
    "ConnectedEvent",
    "DirectMessageEvent",
    "BadgeAwardedEvent",
    "SenderInfo",
    "BadgeInfo",
    "RealtimeNotification",
    "notification_adapter",
    "serialize_notification",
    "NotificationListener",
    "NotificationPublisher",
    "SignalChannel",
]
