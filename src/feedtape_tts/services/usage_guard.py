"""
Daily Quota and Trial Enforcement.

UsageGuard decides, before any synthesis work, whether a user may spend
``requested`` more characters today. Rules are applied in order:

    1. Free tier whose trial window (quota.trial_days, 7) has elapsed:
       rejected with TRIAL_EXPIRED, whatever today's usage.
    2. The daily limit is the tier's character allowance
       (free 20000, pro 200000).
    3. used + requested > limit: rejected with QUOTA_EXCEEDED.
    4. Otherwise the request is allowed and the tier's Quota is returned.

The guard is pure: it never reads or writes usage itself. The caller
passes today's consumption in and increments it after synthesis.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

from feedtape_tts.core.config import QuotaConfig
from feedtape_tts.core.errors import ErrorCode, PaymentRequiredError
from feedtape_tts.core.logging import get_logger, warn
from feedtape_tts.core.metrics import metrics
from feedtape_tts.stores.base import SubscriptionTier, UserRecord, utc_now

_LOG = get_logger("feedtape-tts.quota")


@dataclass(frozen=True)
class Quota:
    """Per-day allowance of a subscription tier."""
    character_limit: int
    minute_limit: int


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class UsageGuard:
    """
    Enforces the trial window and daily character limits.

    Args:
        config: Tier limits and trial length.
        clock: Current UTC time, injectable for tests.
    """

    def __init__(self, config: Optional[QuotaConfig] = None, clock: Callable[[], datetime] = utc_now):
        self.config = config or QuotaConfig()
        self._clock = clock

    def quota_for(self, user: UserRecord) -> Quota:
        if user.subscription_tier == SubscriptionTier.PRO:
            return Quota(self.config.pro_daily_characters, self.config.pro_daily_minutes)
        return Quota(self.config.free_daily_characters, self.config.free_daily_minutes)

    def trial_ends_at(self, user: UserRecord) -> datetime:
        return _as_utc(user.created_at) + timedelta(days=self.config.trial_days)

    def is_trial_expired(self, user: UserRecord, now: Optional[datetime] = None) -> bool:
        """True for free-tier users at or past the end of their trial."""
        if user.subscription_tier != SubscriptionTier.FREE:
            return False
        now = _as_utc(now or self._clock())
        return now >= self.trial_ends_at(user)

    def is_trial(self, user: UserRecord, now: Optional[datetime] = None) -> bool:
        """True for free-tier users still inside their trial window."""
        return user.subscription_tier == SubscriptionTier.FREE and not self.is_trial_expired(user, now)

    def remaining(self, user: UserRecord, used: int) -> int:
        """Characters left today; never negative."""
        return max(0, self.quota_for(user).character_limit - max(0, used))

    def check(
        self,
        user: UserRecord,
        characters_used_today: int,
        requested_chars: int,
        now: Optional[datetime] = None,
    ) -> Quota:
        """
        Allow or reject a request of requested_chars characters.

        Args:
            user: The requesting user.
            characters_used_today: Characters already charged today.
            requested_chars: Normalized length of the new text.
            now: Evaluation time (defaults to the guard's clock).

        Returns:
            The user's Quota when the request fits.

        Raises:
            PaymentRequiredError: TRIAL_EXPIRED or QUOTA_EXCEEDED.
        """
        if self.is_trial_expired(user, now):
            metrics.record_quota_rejection("trial_expired")
            warn(_LOG, "trial_expired", user_id=user.user_id, trial_days=self.config.trial_days)
            raise PaymentRequiredError(
                "Trial period expired. Please upgrade to continue.",
                code=ErrorCode.TRIAL_EXPIRED,
                details={"trial_ends_at": self.trial_ends_at(user).isoformat()},
            )

        quota = self.quota_for(user)
        used = max(0, int(characters_used_today))
        if used + requested_chars > quota.character_limit:
            metrics.record_quota_rejection("quota_exceeded")
            warn(
                _LOG,
                "quota_exceeded",
                user_id=user.user_id,
                used=used,
                limit=quota.character_limit,
                requested=requested_chars,
            )
            raise PaymentRequiredError(
                "Daily character limit exceeded",
                code=ErrorCode.QUOTA_EXCEEDED,
                details={"used": used, "limit": quota.character_limit, "requested": requested_chars},
            )

        return quota
