"""Response models shared by the moderation routers."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel

from app.moderation.domain.bans import BanView
from app.moderation.domain.profiles import ProfileSummary
from app.moderation.domain.reports import ReportView


class ProfileOut(BaseModel):
    id: str
    display_name: Optional[str] = None
    username: Optional[str] = None
    avatar_url: Optional[str] = None

    @classmethod
    def from_summary(cls, summary: ProfileSummary | None) -> Optional["ProfileOut"]:
        if summary is None:
            return None
        return cls(
            id=summary.id,
            display_name=summary.display_name,
            username=summary.username,
            avatar_url=summary.avatar_url,
        )


class ReportOut(BaseModel):
    id: int
    reporter_id: str
    reported_id: str
    category: str
    description: Optional[str]
    evidence_urls: list[str]
    status: str
    resolution_note: Optional[str]
    resolved_by: Optional[str]
    resolved_at: Optional[datetime]
    created_at: datetime
    updated_at: datetime
    reporter_profile: Optional[ProfileOut]
    reported_profile: Optional[ProfileOut]

    @classmethod
    def from_view(cls, view: ReportView) -> "ReportOut":
        report = view.report
        return cls(
            id=report.id,
            reporter_id=report.reporter_id,
            reported_id=report.reported_id,
            category=report.category.value,
            description=report.description,
            evidence_urls=list(report.evidence_urls),
            status=report.status.value,
            resolution_note=report.resolution_note,
            resolved_by=report.resolved_by,
            resolved_at=report.resolved_at,
            created_at=report.created_at,
            updated_at=report.updated_at,
            reporter_profile=ProfileOut.from_summary(view.reporter_profile),
            reported_profile=ProfileOut.from_summary(view.reported_profile),
        )


class BanOut(BaseModel):
    id: str
    user_id: str
    reason: Optional[str]
    created_by: Optional[str]
    created_at: datetime
    expires_at: Optional[datetime]
    lifted_at: Optional[datetime]
    lifted_by: Optional[str]
    lift_reason: Optional[str]
    source_report_id: Optional[int]
    is_active: bool
    user_profile: Optional[ProfileOut]

    @classmethod
    def from_view(cls, view: BanView) -> "BanOut":
        ban = view.ban
        return cls(
            id=ban.id,
            user_id=ban.user_id,
            reason=ban.reason,
            created_by=ban.created_by,
            created_at=ban.created_at,
            expires_at=ban.expires_at,
            lifted_at=ban.lifted_at,
            lifted_by=ban.lifted_by,
            lift_reason=ban.lift_reason,
            source_report_id=ban.source_report_id,
            is_active=ban.is_active(),
            user_profile=ProfileOut.from_summary(view.user_profile),
        )


class SuccessOut(BaseModel):
    success: bool = True
