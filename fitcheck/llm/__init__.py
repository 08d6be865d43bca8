"""
LLM integration for FitCheck.

Provides the generation backend interface, the OpenAI implementation,
and the job-fit analysis prompts.
"""

from fitcheck.llm.provider import LLMClient, LLMConfig, LLMResponse, get_llm_client
from fitcheck.llm.prompts import AnalysisPrompts, build_analysis_prompts

__all__ = [
    "LLMClient",
    "LLMConfig",
    "LLMResponse",
    "get_llm_client",
    "AnalysisPrompts",
    "build_analysis_prompts",
]
