"""
Prompt templates for the job-fit analysis.

The system prompt carries the scoring rubric and the exact JSON contract;
the user prompt carries the job description and the candidate dossier.
Both are pure functions of their inputs.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional

from fitcheck.models import DEFAULT_TARGET_ROLE, DEFAULT_TONE, MAX_FLAGS, MIN_COVER_LETTER_CHARS


# ===================== System Prompt =====================

ANALYZE_SYSTEM = """You are an expert recruiter and ATS assistant.
Your job is to:
- Analyze how well a candidate fits a specific job description.
- Provide a clear fit assessment with scores and flags.
- Generate a professional, tailored cover letter based only on the candidate's real experience.

You MUST respond with a single JSON object that matches this shape exactly:

{{
  "fit_assessment": {{
    "label": "Strong" | "Medium" | "Weak",
    "match_score": integer,                 // 0-100, true role fit
    "ats_match_percentage": integer,        // 0-100, keyword/ATS overlap
    "green_flags": string[],                // up to {max_flags}, concrete alignment points
    "red_flags": string[],                  // up to {max_flags}, concrete risks or gaps
    "decision_helper": "Apply Immediately" | "Tailor & Apply" | "Skip for Now"
  }},
  "cover_letter_text": string               // 3-4 paragraphs, at least {min_letter} characters
}}

Scoring rubric:
- match_score measures true fit for the role: hard requirements met and relevant experience.
  Judge substance, not how well the resume is worded.
- ats_match_percentage measures keyword and structural overlap with the job description only.
  It is independent of match_score; the two are expected to diverge.
- Hard requirements are explicit must-haves: years of experience, a named stack, a license or
  certification, a location or work authorization.
- Every missing hard requirement MUST be listed in red_flags.
- One missing hard requirement caps match_score at 60. Two or more cap it at 40.
- A candidate whose match_score is capped can never be labelled "Strong".

decision_helper is fixed by this mapping:
- "Apply Immediately": label is "Strong", match_score >= 80 and no critical red flag.
- "Skip for Now": label is "Weak", or match_score < 60, or major gaps exist.
- "Tailor & Apply": every other case.

Rules:
- Use only the information provided in the resume and job description.
- Do NOT invent fake achievements, companies, or numbers.
- If something is missing from the resume, treat it as a red flag or risk.
- Keep the tone {tone} and aligned with junior/mid/senior professional roles.
- The cover letter should reference the target role: "{target_role}".
- Output ONLY the JSON object. No markdown fences, no commentary before or after it."""


# ===================== Prompt Builders =====================

@dataclass(frozen=True)
class AnalysisPrompts:
    system: str
    user: str
    tone: str
    target_role: str


def _first_text(*values: Any) -> Optional[str]:
    for value in values:
        if value is None:
            continue
        if isinstance(value, Enum):
            value = value.value
        text = str(value).strip()
        if text:
            return text
    return None


def resolve_tone(override: Optional[str], preferred: Optional[str]) -> str:
    """Override, then profile preference, then neutral."""
    return _first_text(override, preferred) or DEFAULT_TONE


def resolve_target_role(override: Optional[str], profile_role: Optional[str]) -> str:
    """Override, then profile target role, then a generic placeholder."""
    return _first_text(override, profile_role) or DEFAULT_TARGET_ROLE


def build_system_prompt(*, tone: str, target_role: str) -> str:
    return ANALYZE_SYSTEM.format(
        max_flags=MAX_FLAGS,
        min_letter=MIN_COVER_LETTER_CHARS,
        tone=tone,
        target_role=target_role,
    )


def build_user_prompt(
    *,
    job_description: str,
    resume_text: str,
    full_name: Optional[str],
    location: Optional[str],
    target_role: str,
) -> str:
    return f"""JOB DESCRIPTION:
{job_description.strip()}

CANDIDATE PROFILE:
Name: {_first_text(full_name) or "The candidate"}
Location: {_first_text(location) or "Not specified"}
Target role: {target_role}
Resume:
{resume_text.strip()}

Now:
1) Analyze the fit.
2) Produce the JSON object exactly as described."""


def build_analysis_prompts(
    *,
    job_description: str,
    resume_text: str,
    full_name: Optional[str] = None,
    location: Optional[str] = None,
    target_role: Optional[str] = None,
    tone: Optional[str] = None,
    target_role_override: Optional[str] = None,
    tone_override: Optional[str] = None,
) -> AnalysisPrompts:
    """
    Render the system and user prompts for one analysis.

    Overrides win over profile defaults, which win over the hardcoded
    defaults ("neutral" tone, "your target role").
    """
    effective_tone = resolve_tone(tone_override, tone)
    effective_role = resolve_target_role(target_role_override, target_role)
    return AnalysisPrompts(
        system=build_system_prompt(tone=effective_tone, target_role=effective_role),
        user=build_user_prompt(
            job_description=job_description,
            resume_text=resume_text,
            full_name=full_name,
            location=location,
            target_role=effective_role,
        ),
        tone=effective_tone,
        target_role=effective_role,
    )
