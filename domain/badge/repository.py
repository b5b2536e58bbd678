"""
Badge repository interfaces
"""
from abc import ABC, abstractmethod
from typing import List, Optional

from .entity import Badge, BadgeAward, BadgeRuleContext


class BadgeRepository(ABC):

    @abstractmethod
    async def get_badge(self, code: str) -> Optional[Badge]:
        pass

    @abstractmethod
    async def list_awards(self, user_id: str) -> List[BadgeAward]:
        pass

    @abstractmethod
    async def create_award(self, award: BadgeAward) -> BadgeAward:
        """Persist an award; raises BadgeAlreadyAwardedException on duplicates"""
        pass


class ActivityStatsProvider(ABC):
    """Read side used to build the rule context (questions, uploads, wallet...)"""

    @abstractmethod
    async def load_context(self, user_id: str) -> BadgeRuleContext:
        pass
