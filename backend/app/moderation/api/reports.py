"""Report submission endpoint available to every signed-in user."""

from __future__ import annotations

from typing import Any, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict, Field

from app.infra.auth import AuthenticatedUser
from app.moderation.domain.container import get_report_service
from app.moderation.domain.rbac import require_user
from app.moderation.domain.reports import ReportService
from app.moderation.api.schemas import SuccessOut

router = APIRouter(prefix="/api/reports", tags=["reports"])


class ReportIn(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    reported_user_id: Optional[str] = Field(default=None, alias="reportedUserId")
    category: Optional[str] = None
    description: Optional[str] = None
    # Non-list values are tolerated and treated as no evidence.
    evidence_urls: Any = Field(default=None, alias="evidenceUrls")


def get_report_service_dep() -> ReportService:
    return get_report_service()


@router.post("", response_model=SuccessOut)
async def submit_report(
    payload: ReportIn,
    reporter: AuthenticatedUser = Depends(require_user),
    service: ReportService = Depends(get_report_service_dep),
) -> SuccessOut:
    await service.submit(
        reporter_id=reporter.id,
        reported_id=payload.reported_user_id,
        category=payload.category,
        description=payload.description,
        evidence_urls=payload.evidence_urls,
    )
    return SuccessOut()
