"""Badge evaluation use-case.

Evaluates the rule set against the user's activity, records new awards and
pushes one ``badge_awarded`` notification per award.
"""
from __future__ import annotations

from typing import List, Sequence

from application.ports.realtime import BadgeAwardedEvent, BadgeInfo, NotificationPublisher
from core.logging_config import get_logger
from domain.badge.entity import BadgeAward
from domain.badge.repository import ActivityStatsProvider, BadgeRepository
from domain.badge.rules import BADGE_RULES, BadgeRule
from domain.common.exceptions import BadgeAlreadyAwardedException


logger = get_logger(__name__)


class BadgeService:
    def __init__(
        self,
        *,
        badges: BadgeRepository,
        stats: ActivityStatsProvider,
        publisher: NotificationPublisher,
        rules: Sequence[BadgeRule] = BADGE_RULES,
    ) -> None:
        self._badges = badges
        self._stats = stats
        self._publisher = publisher
        self._rules = rules

    async def evaluate_for_user(self, user_id: str) -> List[BadgeAward]:
        context = await self._stats.load_context(user_id)
        context.earned_codes = {a.badge.code for a in await self._badges.list_awards(user_id)}

        awarded: List[BadgeAward] = []
        for rule in self._rules:
            if rule.code in context.earned_codes:
                continue
            reason = rule.evaluate(context)
            if not reason:
                continue
            badge = await self._badges.get_badge(rule.code)
            if badge is None:
                logger.warning("badge_definition_missing", code=rule.code)
                continue
            try:
                award = await self._badges.create_award(BadgeAward(user_id=user_id, badge=badge, reason=reason))
            except BadgeAlreadyAwardedException:
                # a concurrent evaluation got there first
                continue
            awarded.append(award)
            context.earned_codes.add(rule.code)

        for award in awarded:
            self._publisher.emit(user_id, to_event(award))
        if awarded:
            logger.info("badges_awarded", user_id=user_id, codes=[a.badge.code for a in awarded])
        return awarded


def to_event(award: BadgeAward) -> BadgeAwardedEvent:
    return BadgeAwardedEvent(
        award_id=award.id,
        badge=BadgeInfo(
            code=award.badge.code,
            name=award.badge.name,
            description=award.badge.description,
        ),
        reason=award.reason,
        awarded_at=award.awarded_at,
    )
