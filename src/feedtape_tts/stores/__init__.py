"""
User and usage stores consulted by the synthesis service.

    - base.py: UserStore / UsageStore protocols and record types
    - memory.py: thread-safe in-memory implementations
"""
from .base import SubscriptionTier, UsageRecord, UsageStore, UserRecord, UserStore, utc_now
from .memory import InMemoryUsageStore, InMemoryUserStore

__all__ = [
    "SubscriptionTier",
    "UserRecord",
    "UsageRecord",
    "UserStore",
    "UsageStore",
    "InMemoryUserStore",
    "InMemoryUsageStore",
    "utc_now",
]
