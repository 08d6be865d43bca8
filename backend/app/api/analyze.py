"""
Job analysis endpoint (authenticated, quota-gated for free plans).
"""

from __future__ import annotations

import json
import logging
from typing import Any

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from backend.app.core.auth import Identity, get_identity
from backend.app.core.dependencies import get_analysis_pipeline
from backend.app.services.analysis import AnalysisPipeline

logger = logging.getLogger(__name__)

router = APIRouter(tags=["analysis"])


async def _read_json_body(request: Request) -> Any:
    """Raw JSON body, or None when it is missing or unparseable (rejected downstream)."""
    body = await request.body()
    if not body:
        return None
    try:
        return json.loads(body)
    except (json.JSONDecodeError, UnicodeDecodeError):
        return None


@router.post("/analyze-job")
async def analyze_job(
    request: Request,
    identity: Identity = Depends(get_identity),
    pipeline: AnalysisPipeline = Depends(get_analysis_pipeline),
) -> JSONResponse:
    """
    Body:
        {"jobDescription": str, "toneOverride"?: "neutral"|"warm"|"formal", "targetRoleOverride"?: str}

    Returns {"fit_assessment": {...}, "cover_letter_text": str} with
    X-Usage-Plan and, for limited plans, X-RateLimit-Limit / X-RateLimit-Remaining.
    """
    payload = await _read_json_body(request)
    outcome = await pipeline.run(identity, payload)
    return JSONResponse(
        content=outcome.response.model_dump(mode="json"),
        status_code=200,
        headers=outcome.headers,
    )
