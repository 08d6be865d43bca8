"""
Job-fit analysis pipeline.

identity -> request body -> profile -> usage policy -> quota gate -> prompts
-> generation backend -> output validation. Each step short-circuits with a
typed FitCheckError; nothing is retried here.

Design goals:
- Collaborators are injected (profile store, quota ledger, LLM client)
- Invalid input is rejected before any storage or backend call
- Premium users never touch the ledger
- Quota decisions only ever come from QuotaLedger.try_consume
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional

from pydantic import ValidationError

from backend.app.core.auth import Identity, require_user
from backend.app.core.errors import (
    QuotaExceeded,
    RequestInvalid,
    ResumeMissing,
    UpstreamEmpty,
    UpstreamTimeout,
    UpstreamUnavailable,
)
from backend.app.core.rate_limit import usage_headers
from backend.app.services.response_validator import validate_analysis_output
from backend.app.services.usage_policy import FREE_DAILY_LIMIT, UsagePolicy, resolve_usage_policy
from backend.app.storage.profile_storage import ProfileStore
from backend.app.storage.usage_ledger import QuotaLedger
from fitcheck.llm.prompts import AnalysisPrompts, build_analysis_prompts
from fitcheck.llm.provider import LLMClient
from fitcheck.models import AnalysisRequest, AnalysisResponse

logger = logging.getLogger(__name__)


def _now_utc() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class AnalysisOutcome:
    response: AnalysisResponse
    policy: UsagePolicy
    remaining: Optional[int]
    tokens_used: int = 0

    @property
    def headers(self) -> Dict[str, str]:
        return usage_headers(self.policy, self.remaining)


def _validation_details(exc: ValidationError) -> List[Dict[str, Any]]:
    details = []
    for err in exc.errors():
        field = ".".join(str(part) for part in err["loc"]) or "body"
        details.append({"field": field, "message": err["msg"]})
    return details


def parse_analysis_request(payload: Any) -> AnalysisRequest:
    """Validate an analyze-job body. Raises RequestInvalid with per-field detail."""
    if not isinstance(payload, dict):
        raise RequestInvalid(details=[{"field": "body", "message": "Request body must be a JSON object"}])
    try:
        return AnalysisRequest.model_validate(payload)
    except ValidationError as e:
        raise RequestInvalid(details=_validation_details(e)) from e


class AnalysisPipeline:

    def __init__(
        self,
        *,
        profiles: ProfileStore,
        ledger: QuotaLedger,
        llm: Optional[LLMClient],
        free_limit: int = FREE_DAILY_LIMIT,
        timeout_s: Optional[float] = 45.0,
        clock: Callable[[], datetime] = _now_utc,
    ):
        self.profiles = profiles
        self.ledger = ledger
        self.llm = llm
        self.free_limit = free_limit
        self.timeout_s = timeout_s
        self.clock = clock

    async def run(self, identity: Identity, payload: Any) -> AnalysisOutcome:
        user = require_user(identity)
        request = parse_analysis_request(payload)

        profile = await self.profiles.get(user.user_id)
        if profile is None or not profile.has_resume:
            raise ResumeMissing()

        policy = resolve_usage_policy(user, self.free_limit)

        # Checked before the quota gate so a misconfigured server does not burn quota.
        if self.llm is None:
            logger.error("Generation backend not configured (missing OpenAI API key)")
            raise UpstreamUnavailable()

        remaining = await self._consume_quota(user.user_id, policy)

        prompts = build_analysis_prompts(
            job_description=request.job_description,
            resume_text=profile.resume_text or "",
            full_name=profile.full_name,
            location=profile.location,
            target_role=profile.target_role,
            tone=profile.preferred_tone,
            target_role_override=request.target_role_override,
            tone_override=request.tone_override,
        )

        raw, tokens_used = await self._generate(prompts)
        response = validate_analysis_output(raw)

        logger.info(
            "Analysis complete user=%s plan=%s label=%s score=%s remaining=%s tokens=%s",
            user.user_id,
            policy.tier.value,
            response.fit_assessment.label.value,
            response.fit_assessment.match_score,
            remaining,
            tokens_used,
        )
        return AnalysisOutcome(
            response=response,
            policy=policy,
            remaining=remaining,
            tokens_used=tokens_used,
        )

    async def _consume_quota(self, user_id, policy: UsagePolicy) -> Optional[int]:
        if policy.limit is None:
            return None

        decision = await self.ledger.try_consume(user_id, policy.limit, now=self.clock())
        if not decision.allowed:
            logger.info("Daily quota exhausted user=%s limit=%s", user_id, policy.limit)
            raise QuotaExceeded(
                plan=policy.tier.value,
                limit=policy.limit,
                remaining=0,
                headers=usage_headers(policy, 0),
            )
        return decision.remaining

    async def _generate(self, prompts: AnalysisPrompts):
        try:
            resp = await asyncio.wait_for(
                self.llm.complete(prompts.user, system_prompt=prompts.system, json_mode=True),
                timeout=self.timeout_s,
            )
        except asyncio.TimeoutError as e:
            logger.warning("Generation backend timed out after %ss", self.timeout_s)
            raise UpstreamTimeout() from e

        if resp.error:
            logger.warning("Generation backend failed: %s", resp.error)
            raise UpstreamUnavailable()
        if not resp.content or not resp.content.strip():
            logger.warning("Generation backend returned empty content")
            raise UpstreamEmpty()
        return resp.content, resp.tokens_used
