from __future__ import annotations

import asyncio
import json
import logging
from typing import Optional

import pytest

from backend.app.core.auth import MissingIdentity
from backend.app.core.errors import (
    LedgerError,
    QuotaExceeded,
    RequestInvalid,
    ResumeMissing,
    Unauthenticated,
    UpstreamEmpty,
    UpstreamInvalidJSON,
    UpstreamSchemaMismatch,
    UpstreamTimeout,
    UpstreamUnavailable,
)
from backend.app.services.analysis import AnalysisPipeline, parse_analysis_request
from fitcheck.llm.provider import LLMClient, LLMConfig, LLMResponse

from conftest import (
    JOB_DESCRIPTION,
    CountingLedger,
    CountingProfileStore,
    ScriptedLLMClient,
    make_user,
    valid_output,
)

pytestmark = pytest.mark.unit


class _SlowLLMClient(LLMClient):
    def __init__(self):
        super().__init__(LLMConfig(api_key="test-key"))

    async def complete(self, prompt: str, system_prompt: Optional[str] = None, json_mode: bool = False):
        await asyncio.sleep(5)
        return LLMResponse(content="{}")


class _FailingLedger(CountingLedger):
    async def try_consume(self, user_id, limit, now=None):
        self.consume_calls += 1
        raise LedgerError()


def _pipeline(llm=None, ledger=None, profiles=None, **kwargs) -> AnalysisPipeline:
    return AnalysisPipeline(
        profiles=profiles or CountingProfileStore(),
        ledger=ledger or CountingLedger(),
        llm=llm if llm is not None else ScriptedLLMClient(),
        **kwargs,
    )


async def _with_resume(pipeline: AnalysisPipeline, user, **fields):
    fields.setdefault("resume_text", "Six years of Python, FastAPI and PostgreSQL on AWS.")
    await pipeline.profiles.upsert(user.user_id, fields)
    return user


BODY = {"jobDescription": JOB_DESCRIPTION}


@pytest.mark.asyncio
async def test_free_user_success_reports_remaining_quota() -> None:
    pipeline = _pipeline()
    user = await _with_resume(pipeline, make_user())

    outcome = await pipeline.run(user, BODY)

    assert outcome.response.fit_assessment.match_score == 86
    assert outcome.remaining == 4
    assert outcome.tokens_used == 321
    assert outcome.headers == {
        "X-Usage-Plan": "free",
        "X-RateLimit-Limit": "5",
        "X-RateLimit-Remaining": "4",
    }


@pytest.mark.asyncio
async def test_generation_request_uses_json_mode_and_both_prompts() -> None:
    llm = ScriptedLLMClient()
    pipeline = _pipeline(llm=llm)
    user = await _with_resume(pipeline, make_user(), preferred_tone="formal", target_role="Platform Engineer")

    await pipeline.run(user, {**BODY, "toneOverride": "warm"})

    call = llm.calls[0]
    assert call["json_mode"] is True
    assert "Keep the tone warm" in call["system_prompt"]
    assert "Target role: Platform Engineer" in call["prompt"]


@pytest.mark.asyncio
async def test_unauthenticated_identity_stops_before_anything_else() -> None:
    llm = ScriptedLLMClient()
    pipeline = _pipeline(llm=llm)

    with pytest.raises(Unauthenticated):
        await pipeline.run(MissingIdentity(), {"jobDescription": "short"})

    assert pipeline.profiles.get_calls == 0
    assert llm.calls == []


@pytest.mark.asyncio
async def test_invalid_body_has_no_side_effects() -> None:
    llm = ScriptedLLMClient()
    pipeline = _pipeline(llm=llm)
    user = await _with_resume(pipeline, make_user())

    with pytest.raises(RequestInvalid) as exc_info:
        await pipeline.run(user, {"jobDescription": "x" * 29})

    assert exc_info.value.details[0]["field"] == "jobDescription"
    assert pipeline.profiles.get_calls == 0
    assert pipeline.ledger.consume_calls == 0
    assert llm.calls == []


@pytest.mark.parametrize(
    "payload, field",
    [
        (None, "body"),
        ([], "body"),
        ({}, "jobDescription"),
        ({"jobDescription": JOB_DESCRIPTION, "toneOverride": "sarcastic"}, "toneOverride"),
        ({"jobDescription": 12345}, "jobDescription"),
    ],
)
def test_request_validation_reports_field_paths(payload, field) -> None:
    with pytest.raises(RequestInvalid) as exc_info:
        parse_analysis_request(payload)

    assert [d["field"] for d in exc_info.value.details] == [field]


def test_thirty_character_description_is_enough() -> None:
    request = parse_analysis_request({"jobDescription": "x" * 30, "targetRoleOverride": "SRE"})

    assert request.target_role_override == "SRE"
    assert request.tone_override is None


@pytest.mark.asyncio
@pytest.mark.parametrize("fields", [None, {"resume_text": None, "full_name": "Ada"}, {"resume_text": "   "}])
async def test_missing_resume_is_rejected_before_quota(fields) -> None:
    pipeline = _pipeline()
    user = make_user()
    if fields is not None:
        await pipeline.profiles.upsert(user.user_id, fields)

    with pytest.raises(ResumeMissing):
        await pipeline.run(user, BODY)

    assert pipeline.ledger.consume_calls == 0


@pytest.mark.asyncio
async def test_exhausted_quota_is_rejected_without_another_increment() -> None:
    ledger = CountingLedger()
    llm = ScriptedLLMClient()
    pipeline = _pipeline(llm=llm, ledger=ledger)
    user = await _with_resume(pipeline, make_user())
    for _ in range(5):
        await pipeline.run(user, BODY)

    with pytest.raises(QuotaExceeded) as exc_info:
        await pipeline.run(user, BODY)

    err = exc_info.value
    assert err.status_code == 429
    assert err.headers["X-RateLimit-Remaining"] == "0"
    assert err.to_body()["plan"] == "free"
    assert await ledger.get_usage(user.user_id) == 5
    assert len(llm.calls) == 5


@pytest.mark.asyncio
async def test_concurrent_analyses_respect_daily_limit() -> None:
    pipeline = _pipeline()
    user = await _with_resume(pipeline, make_user())

    results = await asyncio.gather(*(pipeline.run(user, BODY) for _ in range(12)), return_exceptions=True)

    assert sum(not isinstance(r, Exception) for r in results) == 5
    assert all(isinstance(r, QuotaExceeded) for r in results if isinstance(r, Exception))


@pytest.mark.asyncio
async def test_premium_user_never_touches_the_ledger() -> None:
    ledger = CountingLedger()
    pipeline = _pipeline(ledger=ledger)
    user = await _with_resume(pipeline, make_user("premium"))

    for _ in range(1000):
        outcome = await pipeline.run(user, BODY)

    assert ledger.consume_calls == 0
    assert outcome.remaining is None
    assert outcome.headers == {"X-Usage-Plan": "premium"}


@pytest.mark.asyncio
async def test_ledger_failure_fails_closed() -> None:
    llm = ScriptedLLMClient()
    pipeline = _pipeline(llm=llm, ledger=_FailingLedger())
    user = await _with_resume(pipeline, make_user())

    with pytest.raises(LedgerError) as exc_info:
        await pipeline.run(user, BODY)

    assert exc_info.value.status_code == 500
    assert llm.calls == []


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "output, error",
    [
        (LLMResponse(error="insufficient_quota"), UpstreamUnavailable),
        ("", UpstreamEmpty),
        ("   ", UpstreamEmpty),
        ("Sure! Here is the JSON you asked for.", UpstreamInvalidJSON),
        (json.dumps(valid_output(match_score=101)), UpstreamSchemaMismatch),
    ],
)
async def test_generation_failures_map_to_upstream_errors(output, error) -> None:
    pipeline = _pipeline(llm=ScriptedLLMClient([output]))
    user = await _with_resume(pipeline, make_user())

    with pytest.raises(error) as exc_info:
        await pipeline.run(user, BODY)

    assert exc_info.value.status_code == 502


@pytest.mark.asyncio
async def test_stalled_backend_times_out() -> None:
    pipeline = _pipeline(llm=_SlowLLMClient(), timeout_s=0.05)
    user = await _with_resume(pipeline, make_user())

    with pytest.raises(UpstreamTimeout):
        await pipeline.run(user, BODY)


@pytest.mark.asyncio
async def test_unconfigured_backend_does_not_consume_quota() -> None:
    ledger = CountingLedger()
    pipeline = AnalysisPipeline(profiles=CountingProfileStore(), ledger=ledger, llm=None)
    user = await _with_resume(pipeline, make_user())

    with pytest.raises(UpstreamUnavailable):
        await pipeline.run(user, BODY)

    assert ledger.consume_calls == 0


@pytest.mark.asyncio
async def test_completion_log_reports_token_usage(caplog: pytest.LogCaptureFixture) -> None:
    pipeline = _pipeline()
    user = await _with_resume(pipeline, make_user())

    with caplog.at_level(logging.INFO, logger="backend.app.services.analysis"):
        await pipeline.run(user, BODY)

    assert any("Analysis complete" in r.getMessage() and "tokens=321" in r.getMessage() for r in caplog.records)
