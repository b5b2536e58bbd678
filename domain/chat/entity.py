"""
Chat domain entities - two-party conversations and their messages
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import List, Optional
import uuid

from domain.common.exceptions import DomainValidationException


MESSAGE_BODY_MAX_LENGTH = 2000


def _now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class Conversation:
    """Direct conversation between exactly two users"""

    id: str
    user_a_id: str
    user_b_id: str
    created_at: datetime = field(default_factory=_now)
    updated_at: datetime = field(default_factory=_now)

    @property
    def participant_ids(self) -> List[str]:
        return [self.user_a_id, self.user_b_id]

    def has_participant(self, user_id: str) -> bool:
        return user_id in (self.user_a_id, self.user_b_id)

    def other_participants(self, user_id: str) -> List[str]:
        return [uid for uid in self.participant_ids if uid != user_id]

    def touch(self, at: Optional[datetime] = None) -> None:
        self.updated_at = at or _now()


@dataclass
class ChatMessage:
    """Message posted in a conversation"""

    conversation_id: str
    sender_id: str
    sender_name: str
    body: str
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    created_at: datetime = field(default_factory=_now)

    def __post_init__(self):
        self.body = normalize_body(self.body)


def normalize_body(body: str) -> str:
    """Business rule: trimmed body, 1..2000 characters."""
    text = (body or "").strip()
    if not text:
        raise DomainValidationException("Message body must not be empty", field="body")
    if len(text) > MESSAGE_BODY_MAX_LENGTH:
        raise DomainValidationException(
            "Message body too long",
            field="body",
            details={"max": MESSAGE_BODY_MAX_LENGTH, "length": len(text)},
        )
    return text
