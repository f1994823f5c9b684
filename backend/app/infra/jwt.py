"""Verification helpers for session tokens issued by the hosted auth provider.

Tokens are HS256 JWTs signed with the project's shared secret. We validate the
signature, expiry and audience (and the issuer when one is configured).
"""

from __future__ import annotations

import time
from typing import Any, Dict

import jwt
from jwt import InvalidTokenError

from app.settings import settings


def encode_session(payload: dict[str, object], *, ttl_seconds: int = 3600) -> str:
    """Mint a session token in the provider's format (dev tooling and tests)."""
    now = int(time.time())
    body: Dict[str, Any] = {"aud": settings.auth_jwt_audience, "iat": now, "exp": now + ttl_seconds}
    if settings.auth_jwt_issuer:
        body["iss"] = settings.auth_jwt_issuer
    body.update(payload)
    return jwt.encode(body, settings.auth_jwt_secret, algorithm="HS256")


def decode_session(token: str) -> dict[str, object]:
    """Decode and validate a session token.

    Raises jwt.InvalidTokenError subclasses on failure.
    """
    options = {"require": ["exp", "sub"]}
    payload = jwt.decode(
        token,
        settings.auth_jwt_secret,
        algorithms=["HS256"],
        audience=settings.auth_jwt_audience,
        issuer=settings.auth_jwt_issuer,
        leeway=5,
        options=options,
    )
    if not str(payload.get("sub") or "").strip():
        raise InvalidTokenError("missing_claim:sub")
    return payload
