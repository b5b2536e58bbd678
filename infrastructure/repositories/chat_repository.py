"""
In-memory conversation repository.

Stands in for the relational store during development and tests. Guarded
by an asyncio lock like the realtime connection manager.
"""
from __future__ import annotations

import asyncio
from typing import Dict, List, Optional

from domain.chat.entity import ChatMessage, Conversation
from domain.chat.repository import ConversationRepository


class InMemoryConversationRepository(ConversationRepository):
    def __init__(self) -> None:
        self._conversations: Dict[str, Conversation] = {}
        self._messages: Dict[str, List[ChatMessage]] = {}
        self._lock = asyncio.Lock()

    async def get(self, conversation_id: str) -> Optional[Conversation]:
        async with self._lock:
            return self._conversations.get(conversation_id)

    async def save(self, conversation: Conversation) -> Conversation:
        async with self._lock:
            self._conversations[conversation.id] = conversation
            self._messages.setdefault(conversation.id, [])
        return conversation

    async def find_between(self, user_a_id: str, user_b_id: str) -> Optional[Conversation]:
        pair = {user_a_id, user_b_id}
        async with self._lock:
            for conversation in self._conversations.values():
                if {conversation.user_a_id, conversation.user_b_id} == pair:
                    return conversation
        return None

    async def list_for_user(self, user_id: str) -> List[Conversation]:
        async with self._lock:
            owned = [c for c in self._conversations.values() if c.has_participant(user_id)]
        owned.sort(key=lambda c: c.updated_at, reverse=True)
        return owned

    async def add_message(self, message: ChatMessage) -> ChatMessage:
        async with self._lock:
            self._messages.setdefault(message.conversation_id, []).append(message)
        return message

    async def list_messages(self, conversation_id: str, limit: int = 200) -> List[ChatMessage]:
        async with self._lock:
            messages = list(self._messages.get(conversation_id, ()))
        messages.sort(key=lambda m: m.created_at)
        return messages[:limit]
