"""
Quota telemetry headers.

Every metered response (success, 429, and GET /usage) carries the plan, and
limited plans also carry the daily limit and what is left of it, so the
extension can render the counter without an extra round-trip.
"""

from typing import Dict, Optional

from backend.app.services.usage_policy import UsagePolicy

PLAN_HEADER = "X-Usage-Plan"
LIMIT_HEADER = "X-RateLimit-Limit"
REMAINING_HEADER = "X-RateLimit-Remaining"

EXPOSED_HEADERS = [PLAN_HEADER, LIMIT_HEADER, REMAINING_HEADER]


def usage_headers(policy: UsagePolicy, remaining: Optional[int]) -> Dict[str, str]:
    headers = {PLAN_HEADER: policy.tier.value}
    if policy.limit is not None and remaining is not None:
        headers[LIMIT_HEADER] = str(policy.limit)
        headers[REMAINING_HEADER] = str(max(remaining, 0))
    return headers
