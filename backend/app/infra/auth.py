"""Authentication helpers for FastAPI endpoints and middleware.

Sessions are owned by the hosted auth provider. A request is authenticated when
it carries a valid provider JWT, either as a bearer token (API calls) or in the
session cookie (page navigations). In development the X-User-Id header is
accepted instead so local tools and tests can act as any user.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from fastapi import HTTPException, Request, status

from app.infra import jwt as jwt_helper
from app.settings import settings

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class AuthenticatedUser:
	id: str
	email: Optional[str] = None
	session_id: Optional[str] = None


def verify_session_jwt(token: str) -> AuthenticatedUser:
	"""Decode a provider session token into an AuthenticatedUser.

	Raises HTTPException(401) for any decode failure.
	"""
	try:
		payload = jwt_helper.decode_session(token)
	except Exception:
		raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")

	email = payload.get("email")
	session_id = payload.get("session_id") or payload.get("sid")
	return AuthenticatedUser(
		id=str(payload["sub"]).strip(),
		email=str(email) if email else None,
		session_id=str(session_id) if session_id else None,
	)


def _bearer_token(request: Request) -> Optional[str]:
	header = request.headers.get("Authorization") or ""
	scheme, _, credentials = header.partition(" ")
	if scheme.lower() == "bearer" and credentials.strip():
		return credentials.strip()
	return None


_SESSION_USER_ATTR = "session_user"
_SESSION_RESOLVED_ATTR = "session_resolved"


def resolve_session_user(request: Request) -> Optional[AuthenticatedUser]:
	"""Return the session user or None; never raises.

	Shared by the request dependencies and the middlewares. The result is cached
	on request.state so the token is decoded once per request.
	"""
	state = request.state
	if getattr(state, _SESSION_RESOLVED_ATTR, False):
		return getattr(state, _SESSION_USER_ATTR, None)
	user = _resolve(request)
	setattr(state, _SESSION_USER_ATTR, user)
	setattr(state, _SESSION_RESOLVED_ATTR, True)
	return user


def _resolve(request: Request) -> Optional[AuthenticatedUser]:
	token = _bearer_token(request) or request.cookies.get(settings.auth_cookie_name)
	if token:
		try:
			return verify_session_jwt(token)
		except HTTPException:
			logger.debug("session_token_rejected", extra={"path": request.url.path})
			return None

	if settings.is_dev():
		dev_user = (request.headers.get("X-User-Id") or "").strip()
		if dev_user:
			return AuthenticatedUser(id=dev_user)
	return None


async def get_current_user(request: Request) -> AuthenticatedUser:
	"""Resolve the authenticated user or fail with 401."""
	user = resolve_session_user(request)
	if user is None:
		raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")
	return user


async def get_optional_user(request: Request) -> Optional[AuthenticatedUser]:
	return resolve_session_user(request)
