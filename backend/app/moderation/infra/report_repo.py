"""PostgreSQL persistence for user reports."""

from __future__ import annotations

from datetime import datetime
from typing import Sequence

import asyncpg

from app.moderation.domain.reports import (
    NewReport,
    Report,
    ReportCategory,
    ReportRepository,
    ReportResolution,
    ReportStatus,
)
from app.moderation.infra.store_errors import as_uuid, opt_str, store_errors

_COLUMNS = """
    id, reporter_id, reported_id, category, description, evidence_urls, status,
    resolution_note, resolved_by, resolved_at, created_at, updated_at
"""


def _row_to_report(row: asyncpg.Record) -> Report:
    return Report(
        id=int(row["id"]),
        reporter_id=str(row["reporter_id"]),
        reported_id=str(row["reported_id"]),
        category=ReportCategory(str(row["category"])),
        status=ReportStatus(str(row["status"])),
        created_at=row["created_at"],
        updated_at=row["updated_at"],
        description=row["description"],
        evidence_urls=list(row["evidence_urls"] or []),
        resolution_note=row["resolution_note"],
        resolved_by=opt_str(row["resolved_by"]),
        resolved_at=row["resolved_at"],
    )


class PostgresReportRepository(ReportRepository):
    """Stores reports in user_reports."""

    def __init__(self, pool: asyncpg.Pool) -> None:
        self._pool = pool

    async def create(self, report: NewReport, *, now: datetime) -> Report:
        with store_errors("report_create", target=report.reported_id):
            row = await self._pool.fetchrow(
                f"""
                INSERT INTO user_reports (
                    reporter_id, reported_id, category, description, evidence_urls, status, created_at, updated_at
                )
                VALUES ($1, $2, $3, $4, $5, 'pending', $6, $6)
                RETURNING {_COLUMNS}
                """,
                as_uuid(report.reporter_id),
                as_uuid(report.reported_id),
                report.category.value,
                report.description,
                list(report.evidence_urls),
                now,
            )
        if row is None:  # pragma: no cover - asyncpg always returns a row for RETURNING
            raise RuntimeError("Failed to insert report")
        return _row_to_report(row)

    async def list(self, *, status: ReportStatus | None, limit: int) -> Sequence[Report]:
        with store_errors("report_list"):
            rows = await self._pool.fetch(
                f"""
                SELECT {_COLUMNS}
                FROM user_reports
                WHERE ($1::text IS NULL OR status = $1)
                ORDER BY created_at DESC, id DESC
                LIMIT $2
                """,
                status.value if status else None,
                limit,
            )
        return [_row_to_report(row) for row in rows]

    async def get(self, report_id: int) -> Report | None:
        with store_errors("report_get", target=str(report_id)):
            row = await self._pool.fetchrow(f"SELECT {_COLUMNS} FROM user_reports WHERE id = $1", report_id)
        if row is None:
            return None
        return _row_to_report(row)

    async def apply_resolution(self, report_id: int, resolution: ReportResolution, *, now: datetime) -> Report | None:
        with store_errors("report_transition", target=str(report_id)):
            row = await self._pool.fetchrow(
                f"""
                UPDATE user_reports
                SET status = $2, resolution_note = $3, resolved_by = $4, resolved_at = $5, updated_at = $6
                WHERE id = $1
                RETURNING {_COLUMNS}
                """,
                report_id,
                resolution.status.value,
                resolution.resolution_note,
                as_uuid(resolution.resolved_by) if resolution.resolved_by else None,
                resolution.resolved_at,
                now,
            )
        if row is None:
            return None
        return _row_to_report(row)
