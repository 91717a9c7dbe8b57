"""
User and Usage Store Interfaces.

The synthesis service reads users and daily usage through these two
protocols and never touches a database directly. Any object with the
right methods qualifies (a SQL repository, an HTTP client to a user
service, the in-memory stores in ``stores.memory``).

Usage rows are keyed by (user_id, UTC date). ``increment_usage`` must be
an atomic upsert-add: two concurrent increments for the same user and day
both land, whatever the interleaving.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timezone
from enum import Enum
from typing import List, Optional, Protocol, runtime_checkable


class SubscriptionTier(str, Enum):
    FREE = "free"
    PRO = "pro"

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class UserRecord:
    """
    The slice of a user account the synthesis service needs.

    Attributes:
        user_id: Opaque user identifier.
        subscription_tier: free or pro.
        created_at: Account creation time (UTC); the free trial starts here.
    """
    user_id: str
    subscription_tier: SubscriptionTier
    created_at: datetime


@dataclass(frozen=True)
class UsageRecord:
    """One user's consumption on one UTC calendar day."""
    user_id: str
    date: date
    characters_used: int = 0
    articles_synthesized: int = 0


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@runtime_checkable
class UserStore(Protocol):
    def find_by_id(self, user_id: str) -> Optional[UserRecord]:
        """The user, or None when no such user exists."""
        ...


@runtime_checkable
class UsageStore(Protocol):
    def get_today_usage(self, user_id: str) -> Optional[UsageRecord]:
        """Today's row for the user, or None before the first synthesis of the day."""
        ...

    def increment_usage(self, user_id: str, chars: int) -> None:
        """Atomically add chars and one article to today's row, creating it if needed."""
        ...

    def get_usage_history(self, user_id: str, limit: int = 30) -> List[UsageRecord]:
        """Most recent rows first, at most limit of them."""
        ...
