"""
Validation of raw generation-backend output against the analysis contract.

Parse failures and schema failures are reported as different errors. Nothing
is repaired or defaulted: any violation rejects the whole response.
"""

from __future__ import annotations

import json
import logging
from typing import Any, List

from pydantic import ValidationError

from backend.app.core.errors import UpstreamEmpty, UpstreamInvalidJSON, UpstreamSchemaMismatch
from fitcheck.models import AnalysisResponse

logger = logging.getLogger(__name__)

# Keep log lines bounded when the model rambles.
_LOG_PAYLOAD_CHARS = 4000


def _field_paths(exc: ValidationError) -> List[str]:
    return [".".join(str(part) for part in err["loc"]) or "<root>" for err in exc.errors()]


def parse_model_json(raw: str) -> Any:
    if raw is None or not raw.strip():
        raise UpstreamEmpty()
    try:
        return json.loads(raw)
    except json.JSONDecodeError as e:
        logger.warning(
            "Model returned invalid JSON (%s): %s",
            e,
            raw[:_LOG_PAYLOAD_CHARS],
        )
        raise UpstreamInvalidJSON() from e


def validate_analysis_output(raw: str) -> AnalysisResponse:
    """Parse and validate model output. Raises an UpstreamError subclass on failure."""
    data = parse_model_json(raw)
    try:
        return AnalysisResponse.model_validate(data)
    except ValidationError as e:
        paths = _field_paths(e)
        logger.warning(
            "Model output failed schema validation at %s: %s",
            ", ".join(paths),
            raw[:_LOG_PAYLOAD_CHARS],
        )
        raise UpstreamSchemaMismatch(field_paths=paths) from e
