"""
FastAPI dependency providers for storage and the generation backend.

Tests swap any of these through app.dependency_overrides.
"""

from functools import lru_cache
from typing import Optional

from fastapi import Depends

from backend.app.core.config import Settings, get_settings
from backend.app.core.database import db
from backend.app.services.analysis import AnalysisPipeline
from backend.app.storage.profile_storage import InMemoryProfileStore, PostgresProfileStore, ProfileStore
from backend.app.storage.usage_ledger import InMemoryQuotaLedger, PostgresQuotaLedger, QuotaLedger
from fitcheck.llm.provider import LLMClient, LLMConfig, get_llm_client


@lru_cache
def _memory_profile_store() -> InMemoryProfileStore:
    return InMemoryProfileStore()


@lru_cache
def _memory_quota_ledger() -> InMemoryQuotaLedger:
    return InMemoryQuotaLedger()


@lru_cache
def _cached_llm_client(
    api_key: str,
    model: str,
    base_url: Optional[str],
    max_tokens: int,
    temperature: float,
    timeout_s: float,
) -> Optional[LLMClient]:
    return get_llm_client(
        LLMConfig(
            api_key=api_key,
            model=model,
            base_url=base_url,
            max_tokens=max_tokens,
            temperature=temperature,
            timeout_s=timeout_s,
        )
    )


def get_profile_store(settings: Settings = Depends(get_settings)) -> ProfileStore:
    if settings.storage_backend == "memory":
        return _memory_profile_store()
    return PostgresProfileStore(db)


def get_quota_ledger(settings: Settings = Depends(get_settings)) -> QuotaLedger:
    if settings.storage_backend == "memory":
        return _memory_quota_ledger()
    return PostgresQuotaLedger(db)


def get_generation_client(settings: Settings = Depends(get_settings)) -> Optional[LLMClient]:
    """OpenAI client, or None when no API key is configured."""
    return _cached_llm_client(
        settings.openai_api_key or "",
        settings.openai_model,
        settings.openai_base_url,
        settings.generation_max_tokens,
        settings.generation_temperature,
        settings.generation_timeout_s,
    )


def get_analysis_pipeline(
    settings: Settings = Depends(get_settings),
    profiles: ProfileStore = Depends(get_profile_store),
    ledger: QuotaLedger = Depends(get_quota_ledger),
    llm: Optional[LLMClient] = Depends(get_generation_client),
) -> AnalysisPipeline:
    return AnalysisPipeline(
        profiles=profiles,
        ledger=ledger,
        llm=llm,
        free_limit=settings.free_daily_analysis_limit,
        timeout_s=settings.generation_timeout_s,
    )
