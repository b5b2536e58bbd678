"""
Data transfer objects between the application and presentation layers
"""
from pydantic import BaseModel, Field, model_serializer
from typing import List, Optional
from datetime import datetime, timezone

from domain.badge.entity import BadgeAward
from domain.chat.entity import ChatMessage, Conversation, MESSAGE_BODY_MAX_LENGTH


class DTOBase(BaseModel):
    """Base DTO: datetimes serialize as UTC ISO8601 with Z."""

    @model_serializer(mode="wrap")
    def _serialize_model(self, handler):  # type: ignore[override]
        data = handler(self)

        def convert(value):
            if isinstance(value, datetime):
                ts = value if value.tzinfo else value.replace(tzinfo=timezone.utc)
                s = ts.astimezone(timezone.utc).isoformat()
                return s.replace("+00:00", "Z")
            if isinstance(value, list):
                return [convert(v) for v in value]
            if isinstance(value, dict):
                return {k: convert(v) for k, v in value.items()}
            return value

        return convert(data)


class CurrentUserDTO(DTOBase):
    """Authenticated caller resolved from the access token"""
    id: str
    name: str


class PostMessageDTO(DTOBase):
    body: str = Field(..., min_length=1, max_length=MESSAGE_BODY_MAX_LENGTH)


class OpenConversationDTO(DTOBase):
    participant_id: str = Field(..., min_length=1)


class ConversationDTO(DTOBase):
    id: str
    other_participant_id: str
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_entity(cls, conversation: Conversation, viewer_id: str) -> "ConversationDTO":
        others = conversation.other_participants(viewer_id)
        return cls(
            id=conversation.id,
            other_participant_id=others[0] if others else viewer_id,
            created_at=conversation.created_at,
            updated_at=conversation.updated_at,
        )


class ConversationListDTO(DTOBase):
    conversations: List[ConversationDTO]


class SenderDTO(DTOBase):
    id: str
    name: str


class ChatMessageDTO(DTOBase):
    id: str
    conversation_id: str
    body: str
    sender: SenderDTO
    created_at: datetime

    @classmethod
    def from_entity(cls, message: ChatMessage) -> "ChatMessageDTO":
        return cls(
            id=message.id,
            conversation_id=message.conversation_id,
            body=message.body,
            sender=SenderDTO(id=message.sender_id, name=message.sender_name),
            created_at=message.created_at,
        )


class ChatMessageListDTO(DTOBase):
    messages: List[ChatMessageDTO]


class BadgeAwardDTO(DTOBase):
    id: str
    code: str
    name: str
    description: Optional[str] = None
    reason: Optional[str] = None
    awarded_at: datetime

    @classmethod
    def from_entity(cls, award: BadgeAward) -> "BadgeAwardDTO":
        return cls(
            id=award.id,
            code=award.badge.code,
            name=award.badge.name,
            description=award.badge.description,
            reason=award.reason,
            awarded_at=award.awarded_at,
        )


class BadgeEvaluationDTO(DTOBase):
    awarded: List[BadgeAwardDTO]
