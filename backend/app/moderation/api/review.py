"""Moderator report queue: listing and status transitions."""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, ConfigDict, Field

from app.moderation.api.schemas import ReportOut, SuccessOut
from app.moderation.domain.rbac import ModeratorContext, require_moderator

router = APIRouter(prefix="/api/moderation/reports", tags=["moderation-reports"])


class ReportListOut(BaseModel):
    reports: list[ReportOut]


class ReportTransitionIn(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    report_id: Optional[int] = Field(default=None, alias="reportId")
    status: Optional[str] = None
    resolution_note: Optional[str] = Field(default=None, alias="resolutionNote")


@router.get("", response_model=ReportListOut)
async def list_reports(
    status: Optional[str] = Query(default=None),
    ctx: ModeratorContext = Depends(require_moderator),
) -> ReportListOut:
    views = await ctx.reports.list_reports(status=status)
    return ReportListOut(reports=[ReportOut.from_view(view) for view in views])


@router.patch("", response_model=SuccessOut)
async def transition_report(
    payload: ReportTransitionIn,
    ctx: ModeratorContext = Depends(require_moderator),
) -> SuccessOut:
    await ctx.reports.transition(
        actor_id=ctx.actor_id,
        report_id=payload.report_id,
        status=payload.status,
        resolution_note=payload.resolution_note,
    )
    return SuccessOut()
