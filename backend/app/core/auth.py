"""
Supabase Auth helpers.

We validate user identity by calling Supabase Auth's /auth/v1/user endpoint with the
provided JWT (Authorization: Bearer ...). This avoids adding JWT verification deps
and keeps the backend stateless.

Resolution never raises for a missing or bad credential: it returns a
MissingIdentity value and the caller decides how to answer. Every failure
mode (no token, Supabase down, unexpected payload) resolves to MissingIdentity.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Union
from uuid import UUID

import httpx
from fastapi import Depends, Header

from backend.app.core.config import Settings, get_settings
from backend.app.core.errors import Unauthenticated

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AuthUser:
    user_id: UUID
    email: Optional[str] = None
    app_metadata: Dict[str, Any] = field(default_factory=dict)
    user_metadata: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class MissingIdentity:
    # Server-side only; never sent to the client.
    reason: str = "no credentials"


Identity = Union[AuthUser, MissingIdentity]


def _as_dict(value: Any) -> Dict[str, Any]:
    return dict(value) if isinstance(value, dict) else {}


def _parse_bearer(authorization: Optional[str]) -> Optional[str]:
    if not authorization:
        return None
    if authorization.lower().startswith("bearer "):
        token = authorization.split(" ", 1)[1].strip()
        return token or None
    return None


async def _supabase_get_user(
    settings: Settings,
    token: str,
    client: Optional[httpx.AsyncClient] = None,
) -> Identity:
    if not settings.supabase_url or not settings.supabase_anon_key:
        logger.error("Supabase auth not configured; rejecting request")
        return MissingIdentity("auth not configured")

    url = settings.supabase_url.rstrip("/") + "/auth/v1/user"
    headers = {
        "Authorization": f"Bearer {token}",
        "apikey": settings.supabase_anon_key,
    }

    try:
        if client is not None:
            resp = await client.get(url, headers=headers)
        else:
            async with httpx.AsyncClient(timeout=settings.auth_timeout_s) as own_client:
                resp = await own_client.get(url, headers=headers)
    except httpx.HTTPError as e:
        logger.warning("Supabase auth request failed: %s", e)
        return MissingIdentity("auth service unreachable")

    if resp.status_code != 200:
        return MissingIdentity(f"auth service returned {resp.status_code}")

    try:
        data = resp.json()
        user_id = UUID(str(data.get("id")))
    except (ValueError, AttributeError):
        return MissingIdentity("invalid session payload")

    return AuthUser(
        user_id=user_id,
        email=data.get("email"),
        app_metadata=_as_dict(data.get("app_metadata")),
        user_metadata=_as_dict(data.get("user_metadata")),
    )


async def resolve_identity(
    settings: Settings,
    authorization: Optional[str],
    *,
    client: Optional[httpx.AsyncClient] = None,
) -> Identity:
    """Resolve an Authorization header to an AuthUser, or MissingIdentity."""
    token = _parse_bearer(authorization)
    if not token:
        return MissingIdentity("bearer token required")
    return await _supabase_get_user(settings, token, client)


async def get_identity(
    authorization: Optional[str] = Header(None, alias="Authorization"),
    settings: Settings = Depends(get_settings),
) -> Identity:
    return await resolve_identity(settings, authorization)


def require_user(identity: Identity) -> AuthUser:
    """Unwrap an identity or raise the 401 error."""
    if isinstance(identity, AuthUser):
        return identity
    logger.info("Unauthenticated request: %s", identity.reason)
    raise Unauthenticated()


async def get_current_user(identity: Identity = Depends(get_identity)) -> AuthUser:
    return require_user(identity)
