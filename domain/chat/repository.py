"""
Chat repository interfaces
"""
from abc import ABC, abstractmethod
from typing import List, Optional

from .entity import ChatMessage, Conversation


class ConversationRepository(ABC):
    """Conversation and message storage"""

    @abstractmethod
    async def get(self, conversation_id: str) -> Optional[Conversation]:
        pass

    @abstractmethod
    async def save(self, conversation: Conversation) -> Conversation:
        pass

    @abstractmethod
    async def add_message(self, message: ChatMessage) -> ChatMessage:
        pass

    @abstractmethod
    async def list_messages(self, conversation_id: str, limit: int = 200) -> List[ChatMessage]:
        """Messages in ascending creation order, at most `limit`"""
        pass

    @abstractmethod
    async def find_between(self, user_a_id: str, user_b_id: str) -> Optional[Conversation]:
        """Conversation for the unordered pair, if any"""
        pass

    @abstractmethod
    async def list_for_user(self, user_id: str) -> List[Conversation]:
        """Conversations the user takes part in, most recently updated first"""
        pass
