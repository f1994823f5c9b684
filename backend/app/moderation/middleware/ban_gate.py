"""Ban enforcement applied to every inbound request.

Reads only the cached projection on the caller's profile. API paths of a
suspended account get a 403 JSON body, page navigations are redirected to the
banned notice, and allow-listed paths pass through with informational headers.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Callable, Iterable, Optional

from fastapi import Request, status
from fastapi.responses import JSONResponse, RedirectResponse
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.responses import Response

from app.infra.auth import resolve_session_user
from app.moderation.domain import container
from app.moderation.domain.profiles import BanState
from app.obs import metrics
from app.settings import settings

logger = logging.getLogger(__name__)

SUSPENDED_ERROR = "Account suspended"
HEADER_BANNED = "x-user-banned"
HEADER_BANNED_UNTIL = "x-user-banned-until"
HEADER_ROLE = "x-user-role"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def is_allowlisted(path: str, allowlist: Iterable[str]) -> bool:
    for entry in allowlist:
        if entry.endswith("/"):
            if path.startswith(entry) or path == entry.rstrip("/"):
                return True
        elif path == entry or path.startswith(f"{entry}/"):
            return True
    return False


class BanEnforcementMiddleware(BaseHTTPMiddleware):
    def __init__(
        self,
        app,
        *,
        allowlist: Optional[Iterable[str]] = None,
        api_prefix: Optional[str] = None,
        banned_path: Optional[str] = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        super().__init__(app)
        self._allowlist = tuple(allowlist if allowlist is not None else settings.ban_allowlist_paths)
        self._api_prefix = api_prefix or settings.api_path_prefix
        self._banned_path = banned_path or settings.banned_page_path
        self._clock = clock

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        user = resolve_session_user(request)
        if user is None:
            return await call_next(request)
        try:
            profile = await container.get_profile_repository().get(user.id)
        except Exception:
            # Fail open: a broken profile read must not lock every user out.
            logger.warning("ban_enforcement_lookup_failed", exc_info=True, extra={"user_id": user.id})
            metrics.record_enforcement("lookup_failed")
            return await call_next(request)
        if profile is None:
            return await call_next(request)

        state = profile.ban_state()
        if not state.is_active(now=self._clock()):
            response = await call_next(request)
            if profile.is_moderator:
                response.headers[HEADER_ROLE] = "moderator"
            metrics.record_enforcement("allowed")
            return response

        path = request.url.path
        if path.startswith(self._api_prefix):
            metrics.record_enforcement("blocked_api")
            logger.info("ban_enforced_api", extra={"user_id": user.id, "path": path})
            return JSONResponse(
                status_code=status.HTTP_403_FORBIDDEN,
                content={
                    "error": SUSPENDED_ERROR,
                    "reason": state.ban_reason,
                    "bannedUntil": _iso(state),
                },
            )
        if not is_allowlisted(path, self._allowlist):
            metrics.record_enforcement("redirected")
            return RedirectResponse(url=self._banned_path, status_code=status.HTTP_307_TEMPORARY_REDIRECT)

        response = await call_next(request)
        response.headers[HEADER_BANNED] = "true"
        until = _iso(state)
        if until:
            response.headers[HEADER_BANNED_UNTIL] = until
        metrics.record_enforcement("allowlisted")
        return response


def _iso(state: BanState) -> Optional[str]:
    return state.banned_until.isoformat() if state.banned_until else None


def install(app) -> None:
    app.add_middleware(BanEnforcementMiddleware)
