"""In-process WebRTC signaling hub.

Keeps the room table for mesh voice calls and relays offer/answer/ICE
messages between named peers. The hub never looks at media; it only
tracks membership and forwards frames.

All methods run on the event loop. Map mutations never span an ``await``,
so no lock is needed. Every send iterates over a snapshot of the room,
since membership may change while a send is suspended.
"""
from __future__ import annotations

import json
import secrets
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional, Union

from pydantic import ValidationError

from application.dtos.voice import (
    HangupMessage,
    IdentityMessage,
    InitMessage,
    PeerInfoMessage,
    PeerJoinMessage,
    PeerLeaveMessage,
    PeerMeta,
    PeerSummary,
    ServerMessage,
    client_message_adapter,
    encode_server_message,
)
from application.ports.realtime import SignalChannel
from core.logging_config import get_logger


logger = get_logger(__name__)


def new_peer_id() -> str:
    """128 random bits, hex encoded."""
    return secrets.token_hex(16)


@dataclass
class Participant:
    """One live connection inside a room. Owns its channel."""

    peer_id: str
    channel: SignalChannel
    meta: Optional[PeerMeta] = None
    joined_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def identified(self) -> bool:
        return self.meta is not None

    def summary(self) -> PeerSummary:
        return PeerSummary(peer_id=self.peer_id, meta=self.meta)


class VoiceSignalingHub:
    """Room registry plus join/relay/leave operations."""

    def __init__(self, *, max_frame_bytes: int = 64 * 1024) -> None:
        # room_id -> {peer_id -> Participant}
        self._rooms: Dict[str, Dict[str, Participant]] = {}
        self._max_frame_bytes = max_frame_bytes

    # -------------------- Lifecycle --------------------
    async def connect(self, room_id: str, channel: SignalChannel) -> str:
        """Register an accepted channel in ``room_id`` and return its peer id."""
        peer_id = new_peer_id()
        room = self._rooms.setdefault(room_id, {})
        participant = Participant(peer_id=peer_id, channel=channel)
        room[peer_id] = participant
        others = [p.summary() for pid, p in room.items() if pid != peer_id]
        logger.info("voice_peer_joined", room=room_id, peer_id=peer_id, participants=len(room))

        init = InitMessage(peer_id=peer_id, peers=others)
        if not await self._send(room_id, participant, encode_server_message(init)):
            # never announced, so leave without a peer-leave broadcast
            self._remove(room_id, peer_id)
            return peer_id
        await self._broadcast(room_id, PeerJoinMessage(peer_id=peer_id), exclude=peer_id)
        return peer_id

    async def hangup(self, room_id: str, peer_id: str) -> bool:
        """Explicit leave: announce, remove and close the channel."""
        return await self.disconnect(room_id, peer_id, close_channel=True)

    async def disconnect(self, room_id: str, peer_id: str, *, close_channel: bool = False) -> bool:
        """Remove a peer and tell the rest of the room.

        Safe to call any number of times from any trigger (hangup, socket
        close, socket error, failed send); only the first call has effect.
        """
        removed = self._remove(room_id, peer_id)
        if removed is None:
            return False
        participant, remaining = removed
        logger.info("voice_peer_left", room=room_id, peer_id=peer_id, participants=len(remaining))
        await self._send_to(room_id, remaining, encode_server_message(PeerLeaveMessage(peer_id=peer_id)))
        if close_channel:
            await self._close_channel(room_id, participant)
        return True

    # -------------------- Inbound frames --------------------
    async def receive(self, room_id: str, peer_id: str, raw: Union[str, bytes]) -> None:
        """Dispatch one frame from ``peer_id``. Bad frames are dropped.

        The size limit applies to the UTF-8 encoded frame, before any decoding.
        """
        participant = self._get(room_id, peer_id)
        if participant is None:
            return
        data = raw.encode("utf-8") if isinstance(raw, str) else raw
        if len(data) > self._max_frame_bytes:
            logger.warning("voice_frame_too_large", room=room_id, peer_id=peer_id, size=len(data))
            return
        try:
            payload = json.loads(data)
        except ValueError as exc:
            # UnicodeDecodeError for binary frames lands here too
            logger.warning("voice_frame_unparseable", room=room_id, peer_id=peer_id, error=str(exc))
            return
        if not isinstance(payload, dict):
            return
        try:
            message = client_message_adapter.validate_python(payload)
        except ValidationError:
            logger.debug("voice_frame_ignored", room=room_id, peer_id=peer_id, type=payload.get("type"))
            return

        if isinstance(message, IdentityMessage):
            participant.meta = PeerMeta(user_id=message.user_id, name=message.name)
            logger.info("voice_peer_identified", room=room_id, peer_id=peer_id, user_id=message.user_id)
            await self._broadcast(
                room_id,
                PeerInfoMessage(peer_id=peer_id, meta=participant.meta),
                exclude=peer_id,
            )
        elif isinstance(message, HangupMessage):
            await self.hangup(room_id, peer_id)
        else:
            await self._relay(room_id, peer_id, message.target, payload)

    # -------------------- Introspection --------------------
    def has_room(self, room_id: str) -> bool:
        return room_id in self._rooms

    def has_peer(self, room_id: str, peer_id: str) -> bool:
        return self._get(room_id, peer_id) is not None

    def room_size(self, room_id: str) -> int:
        return len(self._rooms.get(room_id, ()))

    def room_ids(self) -> List[str]:
        return list(self._rooms)

    def peer_ids(self, room_id: str) -> List[str]:
        return list(self._rooms.get(room_id, ()))

    def get_meta(self, room_id: str, peer_id: str) -> Optional[PeerMeta]:
        participant = self._get(room_id, peer_id)
        return participant.meta if participant else None

    # -------------------- Internals --------------------
    def _get(self, room_id: str, peer_id: str) -> Optional[Participant]:
        room = self._rooms.get(room_id)
        if room is None:
            return None
        return room.get(peer_id)

    def _remove(self, room_id: str, peer_id: str) -> Optional[tuple[Participant, List[Participant]]]:
        room = self._rooms.get(room_id)
        if room is None:
            return None
        participant = room.pop(peer_id, None)
        if participant is None:
            return None
        remaining = list(room.values())
        if not room:
            del self._rooms[room_id]
            logger.info("voice_room_evicted", room=room_id)
        return participant, remaining

    async def _relay(self, room_id: str, sender_id: str, target_id: str, payload: Dict[str, Any]) -> None:
        target = self._get(room_id, target_id)
        if target is None:
            logger.debug("voice_relay_target_missing", room=room_id, peer_id=sender_id, target=target_id)
            return
        forwarded = {**payload, "from": sender_id}
        if not await self._send(room_id, target, json.dumps(forwarded)):
            await self.disconnect(room_id, target_id, close_channel=True)

    async def _broadcast(self, room_id: str, message: ServerMessage, *, exclude: Optional[str] = None) -> None:
        room = self._rooms.get(room_id)
        if not room:
            return
        recipients = [p for pid, p in room.items() if pid != exclude]
        await self._send_to(room_id, recipients, encode_server_message(message))

    async def _send_to(self, room_id: str, recipients: Iterable[Participant], data: str) -> None:
        failed: List[str] = []
        for participant in recipients:
            if not await self._send(room_id, participant, data):
                failed.append(participant.peer_id)
        # a broken recipient is treated as gone; the sender is unaffected
        for peer_id in failed:
            await self.disconnect(room_id, peer_id, close_channel=True)

    async def _send(self, room_id: str, participant: Participant, data: str) -> bool:
        try:
            await participant.channel.send_text(data)
            return True
        except Exception as exc:
            logger.warning(
                "voice_send_failed",
                room=room_id,
                peer_id=participant.peer_id,
                error=str(exc),
            )
            return False

    async def _close_channel(self, room_id: str, participant: Participant) -> None:
        try:
            await participant.channel.close()
        except Exception as exc:
            logger.debug("voice_channel_close_failed", room=room_id, peer_id=participant.peer_id, error=str(exc))
