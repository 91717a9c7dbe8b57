"""
Tests for the in-memory user and usage stores.

Tests cover:
- Protocol conformance
- Atomic usage increments under concurrency
- UTC date rollover
- History ordering and limit
"""
import threading
from datetime import date, datetime, timedelta, timezone

import pytest

from feedtape_tts.stores import (
    InMemoryUsageStore,
    InMemoryUserStore,
    SubscriptionTier,
    UsageStore,
    UserStore,
)


class MutableClock:
    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now


class TestUserStore:
    """Tests for InMemoryUserStore."""

    def test_protocol(self):
        assert isinstance(InMemoryUserStore(), UserStore)

    def test_create_and_find(self):
        store = InMemoryUserStore()
        created = store.create("u-1", tier="pro")

        assert store.find_by_id("u-1") == created
        assert created.subscription_tier is SubscriptionTier.PRO
        assert created.created_at.tzinfo is not None
        assert len(store) == 1

    def test_missing_user(self):
        assert InMemoryUserStore().find_by_id("nobody") is None


class TestUsageStore:
    """Tests for InMemoryUsageStore."""

    def test_protocol(self):
        assert isinstance(InMemoryUsageStore(), UsageStore)

    def test_no_row_before_first_use(self, usage_store):
        assert usage_store.get_today_usage("u-1") is None

    def test_increment_upserts(self, usage_store):
        usage_store.increment_usage("u-1", 120)
        usage_store.increment_usage("u-1", 30)

        row = usage_store.get_today_usage("u-1")
        assert row.characters_used == 150
        assert row.articles_synthesized == 2
        assert row.date == date(2026, 10, 17)

    def test_negative_chars_rejected(self, usage_store):
        with pytest.raises(ValueError):
            usage_store.increment_usage("u-1", -1)

    def test_concurrent_increments_all_land(self, usage_store):
        """Many threads adding to the same row never lose an update."""

        def worker():
            for _ in range(100):
                usage_store.increment_usage("u-1", 3)

        threads = [threading.Thread(target=worker) for _ in range(10)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        row = usage_store.get_today_usage("u-1")
        assert row.characters_used == 10 * 100 * 3
        assert row.articles_synthesized == 1000

    def test_utc_day_rollover(self):
        """A new UTC date starts a fresh row."""
        clock = MutableClock(datetime(2026, 10, 17, 23, 59, tzinfo=timezone.utc))
        store = InMemoryUsageStore(clock=clock)
        store.increment_usage("u-1", 500)

        clock.now = datetime(2026, 10, 18, 0, 1, tzinfo=timezone.utc)

        assert store.get_today_usage("u-1") is None
        store.increment_usage("u-1", 10)
        assert store.get_today_usage("u-1").characters_used == 10

    def test_non_utc_clock_uses_utc_date(self):
        """Late evening in UTC-5 is already tomorrow in UTC."""
        eastern = timezone(timedelta(hours=-5))
        store = InMemoryUsageStore(clock=lambda: datetime(2026, 10, 17, 21, 0, tzinfo=eastern))
        store.increment_usage("u-1", 10)

        assert store.get_today_usage("u-1").date == date(2026, 10, 18)

    def test_history_newest_first(self, usage_store):
        for offset in range(5):
            usage_store.set_usage("u-1", date(2026, 10, 10 + offset), characters_used=offset * 100)
        usage_store.set_usage("u-2", date(2026, 10, 16), characters_used=999)

        history = usage_store.get_usage_history("u-1", limit=3)

        assert [r.date for r in history] == [date(2026, 10, 14), date(2026, 10, 13), date(2026, 10, 12)]
        assert all(r.user_id == "u-1" for r in history)
