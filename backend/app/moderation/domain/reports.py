"""User report lifecycle: submission, moderator listing and status transitions."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Iterable, Mapping, Optional, Protocol, Sequence

from app.moderation.domain.errors import Forbidden, InvalidArgument, NotFound, RateLimited
from app.moderation.domain.profiles import ProfileRepository, ProfileSummary
from app.obs import metrics

logger = logging.getLogger(__name__)

REPORT_LIST_LIMIT = 200
STATUS_FILTER_ALL = "all"


class ReportCategory(str, Enum):
    HARASSMENT_OR_BULLYING = "harassment_or_bullying"
    HATE_OR_VIOLENCE = "hate_or_violence"
    SEXUAL_OR_GRAPHIC_CONTENT = "sexual_or_graphic_content"
    FRAUD_OR_SCAM = "fraud_or_scam"
    IMPERSONATION = "impersonation"
    SPAM = "spam"
    OTHER = "other"


class ReportStatus(str, Enum):
    PENDING = "pending"
    UNDER_REVIEW = "under_review"
    ACTION_TAKEN = "action_taken"
    DISMISSED = "dismissed"

    @property
    def is_resolved(self) -> bool:
        return self in (ReportStatus.ACTION_TAKEN, ReportStatus.DISMISSED)


@dataclass(slots=True)
class Report:
    id: int
    reporter_id: str
    reported_id: str
    category: ReportCategory
    status: ReportStatus
    created_at: datetime
    updated_at: datetime
    description: Optional[str] = None
    evidence_urls: list[str] = field(default_factory=list)
    resolution_note: Optional[str] = None
    resolved_by: Optional[str] = None
    resolved_at: Optional[datetime] = None


@dataclass(slots=True)
class NewReport:
    """Validated submission; the store always persists it as ``pending``."""

    reporter_id: str
    reported_id: str
    category: ReportCategory
    description: Optional[str]
    evidence_urls: list[str]


@dataclass(slots=True, frozen=True)
class ReportResolution:
    status: ReportStatus
    resolution_note: Optional[str]
    resolved_by: Optional[str]
    resolved_at: Optional[datetime]


@dataclass(slots=True)
class ReportView:
    report: Report
    reporter_profile: Optional[ProfileSummary]
    reported_profile: Optional[ProfileSummary]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def parse_status(value: Any) -> ReportStatus:
    try:
        return ReportStatus(value)
    except ValueError:
        raise InvalidArgument("Invalid status") from None


def parse_status_filter(value: str | None) -> ReportStatus | None:
    if value is None or value == "" or value == STATUS_FILTER_ALL:
        return None
    return parse_status(value)


def parse_category(value: Any) -> ReportCategory:
    try:
        return ReportCategory(value)
    except ValueError:
        raise InvalidArgument("Invalid report category") from None


def clean_text(value: Any) -> str | None:
    """Trim free text; blank or non-string input becomes ``None``."""

    if not isinstance(value, str):
        return None
    trimmed = value.strip()
    return trimmed or None


def normalize_evidence(value: Any) -> list[str]:
    if not isinstance(value, (list, tuple)):
        return []
    return [item.strip() for item in value if isinstance(item, str) and item.strip()]


def resolve_transition(
    target: ReportStatus,
    *,
    note: Any,
    actor_id: str,
    now: datetime,
) -> ReportResolution:
    """Compute the resolution fields for moving a report to ``target``.

    Resolved statuses stamp the resolver and time; open statuses clear both.
    This is the only place these fields are derived.
    """

    if target.is_resolved:
        return ReportResolution(
            status=target,
            resolution_note=clean_text(note),
            resolved_by=actor_id,
            resolved_at=now,
        )
    return ReportResolution(status=target, resolution_note=clean_text(note), resolved_by=None, resolved_at=None)


class ReportRepository(Protocol):
    async def create(self, report: NewReport, *, now: datetime) -> Report:
        ...

    async def list(self, *, status: ReportStatus | None, limit: int) -> Sequence[Report]:
        ...

    async def get(self, report_id: int) -> Report | None:
        ...

    async def apply_resolution(self, report_id: int, resolution: ReportResolution, *, now: datetime) -> Report | None:
        ...


class ReportLimiter(Protocol):
    async def allow(self, reporter_id: str) -> bool:
        ...


class InMemoryReportRepository(ReportRepository):
    def __init__(self) -> None:
        self._items: dict[int, Report] = {}
        self._next_id = 1

    async def create(self, report: NewReport, *, now: datetime) -> Report:
        stored = Report(
            id=self._next_id,
            reporter_id=report.reporter_id,
            reported_id=report.reported_id,
            category=report.category,
            status=ReportStatus.PENDING,
            created_at=now,
            updated_at=now,
            description=report.description,
            evidence_urls=list(report.evidence_urls),
        )
        self._items[stored.id] = stored
        self._next_id += 1
        return stored

    async def list(self, *, status: ReportStatus | None, limit: int) -> Sequence[Report]:
        items = [item for item in self._items.values() if status is None or item.status is status]
        items.sort(key=lambda item: (item.created_at, item.id), reverse=True)
        return items[:limit]

    async def get(self, report_id: int) -> Report | None:
        return self._items.get(report_id)

    async def apply_resolution(self, report_id: int, resolution: ReportResolution, *, now: datetime) -> Report | None:
        report = self._items.get(report_id)
        if report is None:
            return None
        report.status = resolution.status
        report.resolution_note = resolution.resolution_note
        report.resolved_by = resolution.resolved_by
        report.resolved_at = resolution.resolved_at
        report.updated_at = now
        return report


def _enrich(reports: Iterable[Report], profiles: Mapping[str, ProfileSummary]) -> list[ReportView]:
    return [
        ReportView(
            report=report,
            reporter_profile=profiles.get(report.reporter_id),
            reported_profile=profiles.get(report.reported_id),
        )
        for report in reports
    ]


class ReportService:
    """Coordinates report submission and moderator review."""

    def __init__(
        self,
        repository: ReportRepository,
        profiles: ProfileRepository,
        *,
        limiter: ReportLimiter | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._repo = repository
        self._profiles = profiles
        self._limiter = limiter
        self._clock = clock

    async def submit(
        self,
        *,
        reporter_id: str,
        reported_id: Any,
        category: Any,
        description: Any = None,
        evidence_urls: Any = None,
    ) -> Report:
        if not isinstance(reported_id, str) or not reported_id.strip():
            raise InvalidArgument("reportedUserId is required")
        reported_id = reported_id.strip()
        if reported_id == reporter_id:
            raise Forbidden("You cannot report yourself")
        parsed_category = parse_category(category)
        if not await self._profiles.exists(reported_id):
            raise NotFound("Reported user not found")
        if self._limiter is not None and not await self._limiter.allow(reporter_id):
            metrics.MOD_REPORTS_RATE_LIMITED.inc()
            raise RateLimited("Too many reports")
        report = await self._repo.create(
            NewReport(
                reporter_id=reporter_id,
                reported_id=reported_id,
                category=parsed_category,
                description=clean_text(description),
                evidence_urls=normalize_evidence(evidence_urls),
            ),
            now=self._clock(),
        )
        metrics.record_report_submitted(report.category.value)
        logger.info(
            "report_submitted",
            extra={"report_id": report.id, "reported_id": reported_id, "category": report.category.value},
        )
        return report

    async def list_reports(self, *, status: str | None = None) -> list[ReportView]:
        status_filter = parse_status_filter(status)
        reports = await self._repo.list(status=status_filter, limit=REPORT_LIST_LIMIT)
        user_ids = {uid for report in reports for uid in (report.reporter_id, report.reported_id)}
        profiles = await self._profiles.summaries(user_ids) if user_ids else {}
        return _enrich(reports, profiles)

    async def transition(
        self,
        *,
        actor_id: str,
        report_id: Any,
        status: Any,
        resolution_note: Any = None,
    ) -> Report:
        if isinstance(report_id, bool) or not isinstance(report_id, int) or status is None:
            raise InvalidArgument("reportId and status are required")
        target = parse_status(status)
        now = self._clock()
        resolution = resolve_transition(target, note=resolution_note, actor_id=actor_id, now=now)
        report = await self._repo.apply_resolution(report_id, resolution, now=now)
        if report is None:
            raise NotFound("Report not found")
        metrics.record_report_transition(target.value)
        logger.info(
            "report_transitioned",
            extra={"report_id": report_id, "status": target.value, "actor_id": actor_id},
        )
        return report


__all__ = [
    "InMemoryReportRepository",
    "NewReport",
    "REPORT_LIST_LIMIT",
    "Report",
    "ReportCategory",
    "ReportLimiter",
    "ReportRepository",
    "ReportResolution",
    "ReportService",
    "ReportStatus",
    "ReportView",
    "clean_text",
    "normalize_evidence",
    "parse_category",
    "parse_status",
    "parse_status_filter",
    "resolve_transition",
]
