"""
Profile storage: one row per user, read by the analysis pipeline and
merge-upserted by PUT /profile.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional
from uuid import UUID

from backend.app.core.database import Database
from backend.app.core.errors import ProfileStorageError
from fitcheck.models import Profile

logger = logging.getLogger(__name__)

PROFILE_FIELDS = ("full_name", "resume_text", "preferred_tone", "target_role", "location")


class ProfileStore(ABC):

    @abstractmethod
    async def get(self, user_id: UUID) -> Optional[Profile]:
        """Return the user's profile, or None when no row exists."""
        raise NotImplementedError

    @abstractmethod
    async def upsert(self, user_id: UUID, updates: Dict[str, Any]) -> Profile:
        """
        Create or update the profile. Keys absent from ``updates`` (or set to
        None) keep their stored value; tone falls back to neutral.
        """
        raise NotImplementedError


def _row_to_profile(row: Any) -> Profile:
    return Profile(**{name: row[name] for name in PROFILE_FIELDS})


class PostgresProfileStore(ProfileStore):

    SELECT_SQL = """
        SELECT full_name, resume_text, preferred_tone, target_role, location
        FROM profiles
        WHERE id = $1
    """

    UPSERT_SQL = """
        INSERT INTO profiles (id, full_name, resume_text, preferred_tone, target_role, location)
        VALUES ($1, $2, $3, COALESCE($4, 'neutral'), $5, $6)
        ON CONFLICT (id) DO UPDATE SET
            full_name = COALESCE(EXCLUDED.full_name, profiles.full_name),
            resume_text = COALESCE(EXCLUDED.resume_text, profiles.resume_text),
            preferred_tone = COALESCE($4, profiles.preferred_tone, 'neutral'),
            target_role = COALESCE(EXCLUDED.target_role, profiles.target_role),
            location = COALESCE(EXCLUDED.location, profiles.location),
            updated_at = NOW()
        RETURNING full_name, resume_text, preferred_tone, target_role, location
    """

    def __init__(self, database: Database):
        self.database = database

    async def get(self, user_id: UUID) -> Optional[Profile]:
        try:
            async with self.database.connection() as conn:
                row = await conn.fetchrow(self.SELECT_SQL, user_id)
        except Exception as e:
            logger.exception("Error fetching profile for user %s", user_id)
            raise ProfileStorageError() from e
        return _row_to_profile(row) if row else None

    async def upsert(self, user_id: UUID, updates: Dict[str, Any]) -> Profile:
        tone = updates.get("preferred_tone")
        try:
            async with self.database.connection() as conn:
                row = await conn.fetchrow(
                    self.UPSERT_SQL,
                    user_id,
                    updates.get("full_name"),
                    updates.get("resume_text"),
                    getattr(tone, "value", tone),
                    updates.get("target_role"),
                    updates.get("location"),
                )
        except Exception as e:
            logger.exception("Error upserting profile for user %s", user_id)
            raise ProfileStorageError("Failed to save profile") from e
        if row is None:
            raise ProfileStorageError("Failed to save profile")
        return _row_to_profile(row)


class InMemoryProfileStore(ProfileStore):
    """Process-local profiles for local dev and tests."""

    def __init__(self):
        self._profiles: Dict[UUID, Profile] = {}

    async def get(self, user_id: UUID) -> Optional[Profile]:
        profile = self._profiles.get(user_id)
        return profile.model_copy() if profile else None

    async def upsert(self, user_id: UUID, updates: Dict[str, Any]) -> Profile:
        existing = self._profiles.get(user_id)
        merged: Dict[str, Any] = existing.model_dump() if existing else {}
        for name in PROFILE_FIELDS:
            value = updates.get(name)
            if value is not None:
                merged[name] = value
        if merged.get("preferred_tone") is None:
            merged["preferred_tone"] = "neutral"
        profile = Profile(**merged)
        self._profiles[user_id] = profile
        return profile.model_copy()
