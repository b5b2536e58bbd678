"""Direct message use-cases.

Persists through the conversation repository, then notifies the other
participant through the notification publisher. Notification is
best-effort: a recipient without an open stream simply misses the push.
"""
from __future__ import annotations

import uuid
from typing import List

from application.ports.realtime import DirectMessageEvent, NotificationPublisher, SenderInfo
from core.logging_config import get_logger
from domain.chat.entity import ChatMessage, Conversation
from domain.chat.repository import ConversationRepository
from domain.common.exceptions import (
    ConversationAccessDeniedException,
    ConversationNotFoundException,
    SelfConversationException,
)


logger = get_logger(__name__)


class DirectMessageService:
    def __init__(self, *, conversations: ConversationRepository, publisher: NotificationPublisher) -> None:
        self._conversations = conversations
        self._publisher = publisher

    async def open_conversation(self, requester_id: str, participant_id: str) -> Conversation:
        """Find or create the conversation between two distinct users."""
        if requester_id == participant_id:
            raise SelfConversationException()
        existing = await self._conversations.find_between(requester_id, participant_id)
        if existing is not None:
            return existing
        # the smaller id goes first so the pair has a single canonical shape
        user_a_id, user_b_id = sorted((requester_id, participant_id))
        conversation = Conversation(id=str(uuid.uuid4()), user_a_id=user_a_id, user_b_id=user_b_id)
        await self._conversations.save(conversation)
        logger.info("conversation_created", conversation_id=conversation.id)
        return conversation

    async def list_conversations(self, user_id: str) -> List[Conversation]:
        return await self._conversations.list_for_user(user_id)

    async def post_message(self, conversation_id: str, sender_id: str, sender_name: str, body: str) -> ChatMessage:
        conversation = await self._get_for_participant(conversation_id, sender_id)
        message = ChatMessage(
            conversation_id=conversation_id,
            sender_id=sender_id,
            sender_name=sender_name,
            body=body,
        )
        await self._conversations.add_message(message)
        conversation.touch(message.created_at)
        await self._conversations.save(conversation)

        targets = conversation.other_participants(sender_id)
        if targets:
            event = DirectMessageEvent(
                conversation_id=conversation_id,
                message_id=message.id,
                body=message.body,
                sender=SenderInfo(id=sender_id, name=sender_name),
                created_at=message.created_at,
            )
            delivered = self._publisher.emit_many(targets, event)
            logger.info(
                "direct_message_posted",
                conversation_id=conversation_id,
                message_id=message.id,
                recipients=len(targets),
                delivered=delivered,
            )
        return message

    async def list_messages(self, conversation_id: str, user_id: str, limit: int = 200) -> List[ChatMessage]:
        await self._get_for_participant(conversation_id, user_id)
        return await self._conversations.list_messages(conversation_id, limit=limit)

    async def _get_for_participant(self, conversation_id: str, user_id: str) -> Conversation:
        conversation = await self._conversations.get(conversation_id)
        if conversation is None:
            raise ConversationNotFoundException(conversation_id)
        if not conversation.has_participant(user_id):
            raise ConversationAccessDeniedException(conversation_id)
        return conversation
