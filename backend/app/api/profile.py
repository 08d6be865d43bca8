"""
Profile API (authenticated).

Stores the resume and writing preferences the analysis is built from.
"""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field, field_validator

from backend.app.core.auth import AuthUser, get_current_user
from backend.app.core.dependencies import get_profile_store
from backend.app.storage.profile_storage import ProfileStore
from fitcheck.models import Profile, Tone


router = APIRouter(prefix="/profile", tags=["profile"])


class ProfileUpsertRequest(BaseModel):
    full_name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    resume_text: Optional[str] = Field(default=None, min_length=30)
    preferred_tone: Optional[Tone] = None
    target_role: Optional[str] = Field(default=None, min_length=1, max_length=200)
    location: Optional[str] = Field(default=None, min_length=1, max_length=200)

    @field_validator("*", mode="before")
    @classmethod
    def reject_null(cls, v):
        # Omit a field to keep its stored value; null is not a way to clear it.
        if v is None:
            raise ValueError("must not be null")
        return v


_EMPTY_PROFILE = Profile(preferred_tone=Tone.NEUTRAL)


@router.get("", response_model=Profile)
async def get_profile(
    user: AuthUser = Depends(get_current_user),
    profiles: ProfileStore = Depends(get_profile_store),
) -> Profile:
    profile = await profiles.get(user.user_id)
    return profile or _EMPTY_PROFILE


@router.put("", response_model=Profile)
async def upsert_profile(
    request: ProfileUpsertRequest,
    user: AuthUser = Depends(get_current_user),
    profiles: ProfileStore = Depends(get_profile_store),
) -> Profile:
    updates = request.model_dump(exclude_unset=True)
    return await profiles.upsert(user.user_id, updates)
