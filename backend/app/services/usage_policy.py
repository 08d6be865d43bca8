"""
Plan tier and daily quota resolution.

The tier is written into Supabase user metadata by more than one upstream
(billing webhooks, admin tooling, older signup flows) with inconsistent key
casing, so several fields are scanned in a fixed order. Resolution is total:
any user shape resolves to exactly one tier, defaulting to free.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional, Tuple

FREE_DAILY_LIMIT = 5

# (metadata attribute, key) in priority order
_TIER_FIELDS: Tuple[Tuple[str, str], ...] = (
    ("app_metadata", "subscriptionTier"),
    ("app_metadata", "subscription_tier"),
    ("user_metadata", "subscriptionTier"),
    ("user_metadata", "subscription_tier"),
)


class PlanTier(str, Enum):
    FREE = "free"
    PREMIUM = "premium"


@dataclass(frozen=True)
class UsagePolicy:
    tier: PlanTier
    limit: Optional[int]  # None = unbounded

    @property
    def is_limited(self) -> bool:
        return self.limit is not None


def normalize_tier(value: Any) -> Optional[PlanTier]:
    if not isinstance(value, str):
        return None
    normalized = value.lower()
    if normalized == PlanTier.PREMIUM.value:
        return PlanTier.PREMIUM
    if normalized == PlanTier.FREE.value:
        return PlanTier.FREE
    return None


def _metadata_value(user: Any, attr: str, key: str) -> Any:
    if isinstance(user, Mapping):
        metadata = user.get(attr)
    else:
        metadata = getattr(user, attr, None)
    if not isinstance(metadata, Mapping):
        return None
    return metadata.get(key)


def resolve_plan_tier(user: Any) -> PlanTier:
    for attr, key in _TIER_FIELDS:
        tier = normalize_tier(_metadata_value(user, attr, key))
        if tier:
            return tier
    return PlanTier.FREE


def resolve_usage_policy(user: Any, free_limit: int = FREE_DAILY_LIMIT) -> UsagePolicy:
    tier = resolve_plan_tier(user)
    if tier is PlanTier.PREMIUM:
        return UsagePolicy(tier=tier, limit=None)
    return UsagePolicy(tier=tier, limit=free_limit)
