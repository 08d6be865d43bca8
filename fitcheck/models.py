"""
Core data models for FitCheck.

Provides:
- Tone / FitLabel / DecisionHelper enums shared by prompts and validation
- Profile: the candidate dossier the analysis is built from
- AnalysisRequest: inbound analyze-job body
- FitAssessment / AnalysisResponse: the output contract the model must satisfy
"""

from __future__ import annotations

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, StrictInt


MAX_FLAGS = 5
MIN_JOB_DESCRIPTION_CHARS = 30
MIN_COVER_LETTER_CHARS = 50

DEFAULT_TONE = "neutral"
DEFAULT_TARGET_ROLE = "your target role"


# ----------------------------- Enums -----------------------------

class Tone(str, Enum):
    """Writing tone for the generated cover letter."""
    NEUTRAL = "neutral"
    WARM = "warm"
    FORMAL = "formal"


class FitLabel(str, Enum):
    """Overall fit verdict."""
    STRONG = "Strong"
    MEDIUM = "Medium"
    WEAK = "Weak"


class DecisionHelper(str, Enum):
    """Recommended next action for the candidate."""
    APPLY_IMMEDIATELY = "Apply Immediately"
    TAILOR_AND_APPLY = "Tailor & Apply"
    SKIP_FOR_NOW = "Skip for Now"


# ----------------------------- Profile -----------------------------

class Profile(BaseModel):
    """One row per user. Analysis only proceeds when resume_text is non-blank."""

    full_name: Optional[str] = None
    resume_text: Optional[str] = None
    preferred_tone: Optional[Tone] = Tone.NEUTRAL
    target_role: Optional[str] = None
    location: Optional[str] = None

    @property
    def has_resume(self) -> bool:
        return bool((self.resume_text or "").strip())


# ----------------------------- Analysis contract -----------------------------

class AnalysisRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    job_description: str = Field(
        ...,
        alias="jobDescription",
        min_length=MIN_JOB_DESCRIPTION_CHARS,
    )
    tone_override: Optional[Tone] = Field(default=None, alias="toneOverride")
    target_role_override: Optional[str] = Field(default=None, alias="targetRoleOverride")


class FitAssessment(BaseModel):
    label: FitLabel
    match_score: StrictInt = Field(..., ge=0, le=100)
    ats_match_percentage: StrictInt = Field(..., ge=0, le=100)
    green_flags: List[str] = Field(..., max_length=MAX_FLAGS)
    red_flags: List[str] = Field(..., max_length=MAX_FLAGS)
    decision_helper: DecisionHelper


class AnalysisResponse(BaseModel):
    fit_assessment: FitAssessment
    cover_letter_text: str = Field(..., min_length=MIN_COVER_LETTER_CHARS)
