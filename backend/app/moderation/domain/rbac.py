"""Moderator authorization for moderation endpoints."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from fastapi import Depends

from app.infra.auth import AuthenticatedUser, get_optional_user
from app.moderation.domain import container
from app.moderation.domain.bans import BanService
from app.moderation.domain.errors import Forbidden, Unauthorized
from app.moderation.domain.profiles import ProfileRecord
from app.moderation.domain.reports import ReportService


@dataclass(slots=True)
class ModeratorContext:
    """Authorized caller plus the services a moderation handler may use."""

    user: AuthenticatedUser
    profile: ProfileRecord
    reports: ReportService
    bans: BanService

    @property
    def actor_id(self) -> str:
        return self.user.id


async def authorize_moderator(user: Optional[AuthenticatedUser]) -> ModeratorContext:
    """Return the moderator context or raise before any side effect.

    No session is ``Unauthorized``; a profile without the moderator flag
    (or no profile at all) is ``Forbidden``.
    """

    if user is None:
        raise Unauthorized()
    profile = await container.get_profile_repository().get(user.id)
    if profile is None or not profile.is_moderator:
        raise Forbidden()
    return ModeratorContext(
        user=user,
        profile=profile,
        reports=container.get_report_service(),
        bans=container.get_ban_service(),
    )


async def require_moderator(user: Optional[AuthenticatedUser] = Depends(get_optional_user)) -> ModeratorContext:
    return await authorize_moderator(user)


async def require_user(user: Optional[AuthenticatedUser] = Depends(get_optional_user)) -> AuthenticatedUser:
    if user is None:
        raise Unauthorized()
    return user
