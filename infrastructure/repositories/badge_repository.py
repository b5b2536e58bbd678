"""
In-memory badge catalogue, award store and activity stats.
"""
from __future__ import annotations

import asyncio
from dataclasses import replace
from typing import Dict, Iterable, List, Optional

from domain.badge.entity import Badge, BadgeAward, BadgeRuleContext
from domain.badge.repository import ActivityStatsProvider, BadgeRepository
from domain.common.exceptions import BadgeAlreadyAwardedException


DEFAULT_BADGES = (
    Badge(code="first_question", name="First Question", description="Asked the community a first question"),
    Badge(code="first_upload", name="First Upload", description="Shared a first resource"),
    Badge(code="credit_saver", name="Credit Saver", description="Saved up 100 points"),
    Badge(code="mentor_helper", name="Mentor Helper", description="Answered five questions"),
)


class InMemoryBadgeRepository(BadgeRepository):
    def __init__(self, badges: Iterable[Badge] = DEFAULT_BADGES) -> None:
        self._badges: Dict[str, Badge] = {b.code: b for b in badges}
        # user_id -> {badge code -> award}
        self._awards: Dict[str, Dict[str, BadgeAward]] = {}
        self._lock = asyncio.Lock()

    async def get_badge(self, code: str) -> Optional[Badge]:
        return self._badges.get(code)

    async def list_awards(self, user_id: str) -> List[BadgeAward]:
        async with self._lock:
            return list(self._awards.get(user_id, {}).values())

    async def create_award(self, award: BadgeAward) -> BadgeAward:
        async with self._lock:
            held = self._awards.setdefault(award.user_id, {})
            if award.badge.code in held:
                raise BadgeAlreadyAwardedException(award.user_id, award.badge.code)
            held[award.badge.code] = award
        return award


class InMemoryActivityStats(ActivityStatsProvider):
    """Counters keyed by user; unknown users have an empty context"""

    def __init__(self) -> None:
        self._contexts: Dict[str, BadgeRuleContext] = {}

    def set_stats(self, user_id: str, **counters: int) -> None:
        current = self._contexts.get(user_id) or BadgeRuleContext(user_id=user_id)
        self._contexts[user_id] = replace(current, **counters)

    async def load_context(self, user_id: str) -> BadgeRuleContext:
        current = self._contexts.get(user_id) or BadgeRuleContext(user_id=user_id)
        # earned_codes is filled by the service from the award store
        return replace(current, earned_codes=set())
