"""
Error taxonomy for the analysis service.

Every failure the pipeline can produce is a FitCheckError subclass carrying
its HTTP status and a client-safe message. Internal detail (raw model
output, storage exceptions) is logged where it happens and never copied
into these objects.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional


class FitCheckError(Exception):
    status_code: int = 500
    public_message: str = "Internal server error"

    def __init__(
        self,
        message: Optional[str] = None,
        *,
        headers: Optional[Dict[str, str]] = None,
        details: Optional[List[Dict[str, Any]]] = None,
    ):
        self.message = message or self.public_message
        self.headers = dict(headers or {})
        self.details = details
        super().__init__(self.message)

    def to_body(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {"error": self.message}
        if self.details is not None:
            body["details"] = self.details
        return body


class Unauthenticated(FitCheckError):
    status_code = 401
    public_message = "Unauthorized"


class RequestInvalid(FitCheckError):
    status_code = 400
    public_message = "Invalid request body"


class ResumeMissing(FitCheckError):
    status_code = 400
    public_message = (
        "Missing resume in profile. Please save your resume in settings before analyzing jobs."
    )


class QuotaExceeded(FitCheckError):
    status_code = 429
    public_message = "Daily analysis limit reached. Your quota resets at midnight UTC."

    def __init__(self, *, plan: str, limit: int, remaining: int, headers: Dict[str, str]):
        super().__init__(headers=headers)
        self.plan = plan
        self.limit = limit
        self.remaining = remaining

    def to_body(self) -> Dict[str, Any]:
        body = super().to_body()
        body.update({"plan": self.plan, "limit": self.limit, "remaining": self.remaining})
        return body


# ----------------------------- Upstream (generation backend) -----------------------------

class UpstreamError(FitCheckError):
    status_code = 502
    public_message = "Failed to generate analysis"


class UpstreamUnavailable(UpstreamError):
    """Backend not configured, errored, or returned nothing."""


class UpstreamEmpty(UpstreamUnavailable):
    public_message = "Failed to generate analysis"


class UpstreamTimeout(UpstreamUnavailable):
    public_message = "Analysis timed out. Please try again."


class UpstreamMalformed(UpstreamError):
    """Backend answered but the answer breaks the output contract."""


class UpstreamInvalidJSON(UpstreamMalformed):
    public_message = "Model returned invalid JSON"


class UpstreamSchemaMismatch(UpstreamMalformed):
    public_message = "Model output did not match expected schema"

    def __init__(self, message: Optional[str] = None, *, field_paths: Optional[List[str]] = None):
        super().__init__(message)
        # Kept server-side for logs and tests; not part of the client body.
        self.field_paths = list(field_paths or [])


# ----------------------------- Storage -----------------------------

class StorageError(FitCheckError):
    status_code = 500
    public_message = "Internal server error"


class LedgerError(StorageError):
    public_message = "Usage tracking is unavailable. Please try again later."


class ProfileStorageError(StorageError):
    public_message = "Failed to load profile"
