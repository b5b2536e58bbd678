"""
Badge domain entities
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional, Set
import uuid


@dataclass(frozen=True)
class Badge:
    code: str
    name: str
    description: Optional[str] = None
    id: str = field(default_factory=lambda: str(uuid.uuid4()))


@dataclass
class BadgeAward:
    user_id: str
    badge: Badge
    reason: Optional[str] = None
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    awarded_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


@dataclass
class BadgeRuleContext:
    """Activity snapshot the badge rules are evaluated against"""

    user_id: str
    question_count: int = 0
    resource_count: int = 0
    answer_count: int = 0
    wallet_balance: int = 0
    earned_codes: Set[str] = field(default_factory=set)
