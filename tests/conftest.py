from __future__ import annotations

import asyncio
import json
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union
from uuid import uuid4

import pytest
from fastapi.testclient import TestClient

from backend.app.core.auth import AuthUser, Identity, MissingIdentity, get_identity
from backend.app.core.config import Settings
from backend.app.core.dependencies import get_generation_client, get_profile_store, get_quota_ledger
from backend.app.main import create_app
from backend.app.storage.profile_storage import InMemoryProfileStore
from backend.app.storage.usage_ledger import InMemoryQuotaLedger
from fitcheck.llm.provider import LLMClient, LLMConfig, LLMResponse

JOB_DESCRIPTION = (
    "Senior Backend Engineer. Requirements: 5+ years of Python, FastAPI and PostgreSQL. "
    "Experience running services on AWS. Remote within the EU."
)

RESUME_TEXT = (
    "Backend engineer with 6 years of Python experience. Built FastAPI services backed by "
    "PostgreSQL and deployed them on AWS ECS. Based in Berlin."
)

VALID_OUTPUT: Dict[str, Any] = {
    "fit_assessment": {
        "label": "Strong",
        "match_score": 86,
        "ats_match_percentage": 72,
        "green_flags": ["6 years of Python", "FastAPI and PostgreSQL in production"],
        "red_flags": [],
        "decision_helper": "Apply Immediately",
    },
    "cover_letter_text": (
        "Dear Hiring Team,\n\nI am excited to apply for the Senior Backend Engineer role. "
        "Over six years I have built and operated FastAPI services on PostgreSQL and AWS."
    ),
}


def valid_output(**fit_overrides: Any) -> Dict[str, Any]:
    data = json.loads(json.dumps(VALID_OUTPUT))
    data["fit_assessment"].update(fit_overrides)
    return data


class ScriptedLLMClient(LLMClient):
    """Returns queued outputs in order, then the valid default."""

    def __init__(self, outputs: Optional[List[Union[str, LLMResponse]]] = None):
        super().__init__(LLMConfig(api_key="test-key"))
        self.outputs = list(outputs or [])
        self.calls: List[Dict[str, Any]] = []

    async def complete(
        self,
        prompt: str,
        system_prompt: Optional[str] = None,
        json_mode: bool = False,
    ) -> LLMResponse:
        self.calls.append({"prompt": prompt, "system_prompt": system_prompt, "json_mode": json_mode})
        item = self.outputs.pop(0) if self.outputs else json.dumps(VALID_OUTPUT)
        if isinstance(item, LLMResponse):
            return item
        return LLMResponse(content=item, tokens_used=321)


class CountingLedger(InMemoryQuotaLedger):
    def __init__(self):
        super().__init__()
        self.consume_calls = 0

    async def try_consume(self, user_id, limit, now=None):
        self.consume_calls += 1
        return await super().try_consume(user_id, limit, now=now)


class CountingProfileStore(InMemoryProfileStore):
    def __init__(self):
        super().__init__()
        self.get_calls = 0

    async def get(self, user_id):
        self.get_calls += 1
        return await super().get(user_id)


def make_user(tier: Optional[str] = None) -> AuthUser:
    app_metadata = {"subscriptionTier": tier} if tier else {}
    return AuthUser(user_id=uuid4(), email="candidate@example.com", app_metadata=app_metadata)


@dataclass
class ApiHarness:
    identity: Identity = field(default_factory=lambda: MissingIdentity())
    llm: ScriptedLLMClient = field(default_factory=ScriptedLLMClient)
    ledger: CountingLedger = field(default_factory=CountingLedger)
    profiles: CountingProfileStore = field(default_factory=CountingProfileStore)

    def login(self, user: AuthUser) -> AuthUser:
        self.identity = user
        return user

    def seed_profile(self, user: AuthUser, **fields: Any) -> None:
        fields.setdefault("resume_text", RESUME_TEXT)
        asyncio.run(self.profiles.upsert(user.user_id, fields))

    def use_quota(self, user: AuthUser, times: int, limit: int = 5) -> None:
        async def _consume() -> None:
            for _ in range(times):
                await InMemoryQuotaLedger.try_consume(self.ledger, user.user_id, limit)

        asyncio.run(_consume())


@pytest.fixture
def settings() -> Settings:
    return Settings(
        _env_file=None,
        storage_backend="memory",
        openai_api_key="test-key",
        supabase_url="https://auth.example.test",
        supabase_anon_key="anon-key",
        generation_timeout_s=2.0,
    )


@pytest.fixture
def harness() -> ApiHarness:
    return ApiHarness()


@pytest.fixture
def client(settings: Settings, harness: ApiHarness):
    app = create_app(settings)
    app.dependency_overrides[get_identity] = lambda: harness.identity
    app.dependency_overrides[get_generation_client] = lambda: harness.llm
    app.dependency_overrides[get_quota_ledger] = lambda: harness.ledger
    app.dependency_overrides[get_profile_store] = lambda: harness.profiles
    with TestClient(app) as test_client:
        yield test_client
