"""View-state endpoints backing the banned notice and the moderator dashboard."""

from __future__ import annotations

import logging
from typing import Any, Optional, Union

from fastapi import APIRouter, Depends, status
from fastapi.responses import RedirectResponse

from app.infra.auth import AuthenticatedUser, get_optional_user
from app.moderation.api.schemas import BanOut, ReportOut
from app.moderation.domain import container
from app.moderation.domain.errors import Forbidden, SetupRequired
from app.moderation.domain.rbac import authorize_moderator
from app.moderation.domain.reports import ReportStatus
from app.moderation.domain.views import REPORT_STATUS_FILTERS, BannedNotice, DashboardState
from app.settings import settings

logger = logging.getLogger(__name__)

router = APIRouter(tags=["moderation-pages"])

LOGIN_PATH = "/login"
FEED_PATH = "/feed"
HOME_PATH = "/"
DASHBOARD_PATH = "/moderation"


def _redirect(url: str) -> RedirectResponse:
    return RedirectResponse(url=url, status_code=status.HTTP_307_TEMPORARY_REDIRECT)


def _login_redirect(next_path: str) -> RedirectResponse:
    return _redirect(f"{LOGIN_PATH}?redirect={next_path}")


@router.get(settings.banned_page_path, response_model=None)
async def banned_notice(
    user: Optional[AuthenticatedUser] = Depends(get_optional_user),
) -> Union[RedirectResponse, dict[str, Any]]:
    if user is None:
        return _login_redirect(settings.banned_page_path)
    profile = await container.get_profile_repository().get(user.id)
    if profile is None or not profile.ban_state().is_active():
        return _redirect(FEED_PATH)
    notice = BannedNotice.for_profile(profile)
    return {
        "title": notice.title,
        "description": notice.description,
        "reason": notice.reason,
        "bannedUntil": notice.banned_until.isoformat() if notice.banned_until else None,
        "summary": notice.summary,
    }


@router.get(DASHBOARD_PATH, response_model=None)
async def moderation_dashboard(
    user: Optional[AuthenticatedUser] = Depends(get_optional_user),
) -> Union[RedirectResponse, dict[str, Any]]:
    if user is None:
        return _login_redirect(DASHBOARD_PATH)
    try:
        ctx = await authorize_moderator(user)
    except Forbidden:
        return _redirect(HOME_PATH)
    reports = await ctx.reports.list_reports(status=ReportStatus.PENDING.value)
    setup_required = False
    try:
        bans = await ctx.bans.list_bans()
    except SetupRequired:
        logger.warning("dashboard_ban_setup_required")
        bans, setup_required = [], True
    state = DashboardState(moderator=ctx.profile, reports=reports, bans=bans, setup_required=setup_required)
    return {
        "moderator": {
            "id": state.moderator.id,
            "display_name": state.moderator.display_name,
            "username": state.moderator.username,
        },
        "reportFilter": state.report_filter,
        "reportStatusFilters": [{"value": value, "label": label} for value, label in REPORT_STATUS_FILTERS],
        "reports": [ReportOut.from_view(view) for view in state.reports],
        "bans": [BanOut.from_view(view) for view in state.bans],
        "banPresets": state.presets,
        "setupRequired": state.setup_required,
    }
