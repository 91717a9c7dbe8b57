"""
In-memory user and usage stores.

Used by the CLI, by tests, and by the HTTP app when no external store is
wired in. Both stores are thread-safe; the usage store performs its
upsert-add under a lock so concurrent increments never lose an update.
"""
from __future__ import annotations

import threading
from datetime import date, datetime, timezone
from typing import Callable, Dict, Iterable, List, Optional, Tuple

from feedtape_tts.core.logging import debug, get_logger
from feedtape_tts.stores.base import SubscriptionTier, UsageRecord, UserRecord, utc_now

_LOG = get_logger("feedtape-tts.stores")


class InMemoryUserStore:
    """Dict-backed UserStore."""

    def __init__(self, users: Optional[Iterable[UserRecord]] = None):
        self._lock = threading.Lock()
        self._users: Dict[str, UserRecord] = {}
        for user in users or ():
            self._users[user.user_id] = user

    def find_by_id(self, user_id: str) -> Optional[UserRecord]:
        with self._lock:
            return self._users.get(user_id)

    def add(self, user: UserRecord) -> UserRecord:
        with self._lock:
            self._users[user.user_id] = user
        return user

    def create(
        self,
        user_id: str,
        tier: SubscriptionTier = SubscriptionTier.FREE,
        created_at: Optional[datetime] = None,
    ) -> UserRecord:
        """Add a user created now (or at created_at)."""
        return self.add(UserRecord(
            user_id=user_id,
            subscription_tier=SubscriptionTier(tier),
            created_at=created_at or utc_now(),
        ))

    def __len__(self) -> int:
        with self._lock:
            return len(self._users)


class InMemoryUsageStore:
    """
    Dict-backed UsageStore keyed by (user_id, UTC date).

    Args:
        clock: Returns the current time; "today" is its UTC date.
    """

    def __init__(self, clock: Callable[[], datetime] = utc_now):
        self._lock = threading.Lock()
        self._rows: Dict[Tuple[str, date], UsageRecord] = {}
        self._clock = clock

    def _today(self) -> date:
        now = self._clock()
        if now.tzinfo is not None:
            now = now.astimezone(timezone.utc)
        return now.date()

    def get_today_usage(self, user_id: str) -> Optional[UsageRecord]:
        with self._lock:
            return self._rows.get((user_id, self._today()))

    def increment_usage(self, user_id: str, chars: int) -> None:
        if chars < 0:
            raise ValueError(f"chars must be non-negative, got {chars}")
        with self._lock:
            key = (user_id, self._today())
            row = self._rows.get(key) or UsageRecord(user_id=user_id, date=key[1])
            self._rows[key] = UsageRecord(
                user_id=user_id,
                date=key[1],
                characters_used=row.characters_used + chars,
                articles_synthesized=row.articles_synthesized + 1,
            )
        debug(_LOG, "usage_incremented", user_id=user_id, chars=chars)

    def get_usage_history(self, user_id: str, limit: int = 30) -> List[UsageRecord]:
        with self._lock:
            rows = [r for (uid, _), r in self._rows.items() if uid == user_id]
        rows.sort(key=lambda r: r.date, reverse=True)
        return rows[:limit]

    def set_usage(self, user_id: str, day: date, characters_used: int, articles_synthesized: int = 0) -> None:
        """Seed a row directly (fixtures, migrations)."""
        with self._lock:
            self._rows[(user_id, day)] = UsageRecord(
                user_id=user_id,
                date=day,
                characters_used=characters_used,
                articles_synthesized=articles_synthesized,
            )
