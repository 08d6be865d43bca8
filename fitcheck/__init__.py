"""
FitCheck: AI job-fit assessment and cover letter generation.

Scores a stored resume against a job description through a generation
backend and validates the result against a strict output contract.
"""

__version__ = "1.0.0"

from fitcheck.models import AnalysisRequest, AnalysisResponse, FitAssessment, Profile, Tone

__all__ = [
    "AnalysisRequest",
    "AnalysisResponse",
    "FitAssessment",
    "Profile",
    "Tone",
]
