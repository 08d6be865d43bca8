"""
Usage API: today's analysis count, limit and reset time for the current user.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from backend.app.core.auth import AuthUser, get_current_user
from backend.app.core.config import Settings, get_settings
from backend.app.core.dependencies import get_quota_ledger
from backend.app.core.rate_limit import usage_headers
from backend.app.services.usage_policy import resolve_usage_policy
from backend.app.storage.usage_ledger import QuotaLedger, format_utc_iso, next_utc_midnight

router = APIRouter(prefix="/usage", tags=["usage"])


class UsageReport(BaseModel):
    plan: str
    limit: Optional[int]
    usedToday: int
    remainingToday: Optional[int]
    resetAt: str


async def build_usage_report(
    user: AuthUser,
    ledger: QuotaLedger,
    *,
    free_limit: int,
    now: Optional[datetime] = None,
) -> UsageReport:
    now = now or datetime.now(timezone.utc)
    policy = resolve_usage_policy(user, free_limit)
    used = await ledger.get_usage(user.user_id, now=now)
    remaining = None if policy.limit is None else max(policy.limit - used, 0)
    return UsageReport(
        plan=policy.tier.value,
        limit=policy.limit,
        usedToday=used,
        remainingToday=remaining,
        resetAt=format_utc_iso(next_utc_midnight(now)),
    )


@router.get("")
async def get_usage(
    user: AuthUser = Depends(get_current_user),
    ledger: QuotaLedger = Depends(get_quota_ledger),
    settings: Settings = Depends(get_settings),
) -> JSONResponse:
    report = await build_usage_report(user, ledger, free_limit=settings.free_daily_analysis_limit)
    policy = resolve_usage_policy(user, settings.free_daily_analysis_limit)
    return JSONResponse(
        content=report.model_dump(),
        status_code=200,
        headers=usage_headers(policy, report.remainingToday),
    )
