"""Moderator ban endpoints: list, issue and lift."""

from __future__ import annotations

import logging
from typing import Any, Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, ConfigDict, Field

from app.moderation.api.schemas import BanOut, SuccessOut
from app.moderation.domain.errors import SetupRequired
from app.moderation.domain.rbac import ModeratorContext, require_moderator

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/moderation/bans", tags=["moderation-bans"])


class BanIssueIn(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    user_id: Optional[str] = Field(default=None, alias="userId")
    reason: Optional[str] = None
    expires_at: Optional[str] = Field(default=None, alias="expiresAt")
    duration_days: Optional[int] = Field(default=None, alias="durationDays")
    source_report_id: Optional[int] = Field(default=None, alias="sourceReportId")


class BanLiftIn(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    ban_id: Optional[str] = Field(default=None, alias="banId")
    lift_reason: Optional[str] = Field(default=None, alias="liftReason")


@router.get("", response_model=None)
async def list_bans(
    status: Optional[str] = Query(default=None),
    ctx: ModeratorContext = Depends(require_moderator),
) -> dict[str, Any]:
    try:
        views = await ctx.bans.list_bans(status=status)
    except SetupRequired:
        logger.warning("ban_list_setup_required")
        return {"bans": [], "setupRequired": True}
    return {"bans": [BanOut.from_view(view) for view in views]}


@router.post("", response_model=SuccessOut)
async def issue_ban(
    payload: BanIssueIn,
    ctx: ModeratorContext = Depends(require_moderator),
) -> SuccessOut:
    await ctx.bans.issue_ban(
        actor_id=ctx.actor_id,
        user_id=payload.user_id,
        reason=payload.reason,
        expires_at=payload.expires_at,
        duration_days=payload.duration_days,
        source_report_id=payload.source_report_id,
    )
    return SuccessOut()


@router.patch("", response_model=SuccessOut)
async def lift_ban(
    payload: BanLiftIn,
    ctx: ModeratorContext = Depends(require_moderator),
) -> SuccessOut:
    await ctx.bans.lift_ban(actor_id=ctx.actor_id, ban_id=payload.ban_id, lift_reason=payload.lift_reason)
    return SuccessOut()
