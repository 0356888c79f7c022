"""Plan-based bookmark quotas."""
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from enum import StrEnum

# Premium granted without an explicit expiry lasts this long
PREMIUM_DEFAULT_DAYS = 30


class Tier(StrEnum):
    """User subscription tiers."""

    FREE = "free"
    PREMIUM = "premium"


@dataclass(frozen=True)
class TierLimits:
    """Usage limits for a subscription tier."""

    max_bookmarks: int


TIER_LIMITS: dict[Tier, TierLimits] = {
    Tier.FREE: TierLimits(max_bookmarks=10),
    Tier.PREMIUM: TierLimits(max_bookmarks=100),
}


def get_tier_limits(tier: Tier) -> TierLimits:
    """
    Get limits for a tier.

    Raises:
        KeyError: If tier is not found in TIER_LIMITS.
    """
    return TIER_LIMITS[tier]


def tier_for(is_premium: bool) -> Tier:
    """Map the stored premium flag onto a tier."""
    return Tier.PREMIUM if is_premium else Tier.FREE


def default_premium_until(now: datetime | None = None) -> datetime:
    """Expiry used when premium is granted without an explicit end date."""
    if now is None:
        now = datetime.now(UTC)
    return now + timedelta(days=PREMIUM_DEFAULT_DAYS)
