"""Serializable view-state for the banned notice and the moderator dashboard."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional

from app.moderation.domain.bans import BAN_DURATION_PRESETS_DAYS, BanView
from app.moderation.domain.profiles import ProfileRecord
from app.moderation.domain.reports import STATUS_FILTER_ALL, ReportStatus, ReportView

BANNED_TITLE = "Account Suspended"
BANNED_DESCRIPTION = (
    "You can't use this account right now because it was suspended by our moderation team."
)
INDEFINITE_SUMMARY = "This suspension is currently indefinite."

REPORT_STATUS_FILTERS: tuple[tuple[str, str], ...] = (
    (ReportStatus.PENDING.value, "Pending"),
    (ReportStatus.UNDER_REVIEW.value, "Under review"),
    (ReportStatus.ACTION_TAKEN.value, "Actioned"),
    (ReportStatus.DISMISSED.value, "Dismissed"),
    (STATUS_FILTER_ALL, "All"),
)


def format_lift_date(value: datetime) -> str:
    return value.astimezone(timezone.utc).strftime("%B %d, %Y at %H:%M UTC")


@dataclass(slots=True)
class BannedNotice:
    reason: Optional[str]
    banned_until: Optional[datetime]
    title: str = BANNED_TITLE
    description: str = BANNED_DESCRIPTION

    @property
    def summary(self) -> str:
        if self.banned_until is None:
            return INDEFINITE_SUMMARY
        return f"Your access is scheduled to be restored on {format_lift_date(self.banned_until)}."

    @classmethod
    def for_profile(cls, profile: ProfileRecord) -> "BannedNotice":
        return cls(reason=profile.ban_reason, banned_until=profile.banned_until)


def ban_presets() -> list[dict[str, object]]:
    presets: list[dict[str, object]] = [
        {"value": str(days), "label": f"{days} day" if days == 1 else f"{days} days", "days": days}
        for days in BAN_DURATION_PRESETS_DAYS
    ]
    presets.append({"value": "indefinite", "label": "Indefinite", "days": None})
    presets.append({"value": "custom", "label": "Custom date", "days": None})
    return presets


@dataclass(slots=True)
class DashboardState:
    """What the moderator dashboard renders on first load; rebuilt per request."""

    moderator: ProfileRecord
    reports: list[ReportView]
    bans: list[BanView]
    report_filter: str = ReportStatus.PENDING.value
    setup_required: bool = False
    presets: list[dict[str, object]] = field(default_factory=ban_presets)
