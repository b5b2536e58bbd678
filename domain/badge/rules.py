"""
Badge rules - each rule returns an award reason, or None when not earned
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Optional, Tuple

from .entity import BadgeRuleContext


@dataclass(frozen=True)
class BadgeRule:
    code: str
    evaluate: Callable[[BadgeRuleContext], Optional[str]]


BADGE_RULES: Tuple[BadgeRule, ...] = (
    BadgeRule(
        code="first_question",
        evaluate=lambda ctx: "Posted a first question" if ctx.question_count > 0 else None,
    ),
    BadgeRule(
        code="first_upload",
        evaluate=lambda ctx: "Uploaded a first shared resource" if ctx.resource_count > 0 else None,
    ),
    BadgeRule(
        code="credit_saver",
        evaluate=lambda ctx: "Wallet balance reached 100 points" if ctx.wallet_balance >= 100 else None,
    ),
    BadgeRule(
        code="mentor_helper",
        evaluate=lambda ctx: "Posted 5 or more answers" if ctx.answer_count >= 5 else None,
    ),
)
