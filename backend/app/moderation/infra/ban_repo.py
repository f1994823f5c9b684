"""PostgreSQL persistence for the ban ledger and the profile ban-state projection."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Sequence

import asyncpg

from app.moderation.domain.bans import (
    DEFAULT_BAN_REASON,
    SUPERSEDED_LIFT_REASON,
    Ban,
    BanRepository,
    IssueOutcome,
    LiftOutcome,
    NewBan,
)
from app.moderation.domain.profiles import BanState
from app.moderation.infra.store_errors import as_uuid, opt_str, store_errors

logger = logging.getLogger(__name__)

_COLUMNS = """
    id, user_id, reason, created_by, created_at, expires_at,
    lifted_at, lifted_by, lift_reason, source_report_id
"""


def _row_to_ban(row: asyncpg.Record) -> Ban:
    return Ban(
        id=str(row["id"]),
        user_id=str(row["user_id"]),
        reason=row["reason"],
        created_by=opt_str(row["created_by"]),
        created_at=row["created_at"],
        expires_at=row["expires_at"],
        lifted_at=row["lifted_at"],
        lifted_by=opt_str(row["lifted_by"]),
        lift_reason=row["lift_reason"],
        source_report_id=int(row["source_report_id"]) if row["source_report_id"] is not None else None,
    )


async def _refresh(conn: asyncpg.Connection, user_id: str, now: datetime) -> BanState:
    """Copy the newest active ban onto the profile, or clear it."""

    row = await conn.fetchrow(
        """
        SELECT reason, expires_at
        FROM user_bans
        WHERE user_id = $1
          AND lifted_at IS NULL
          AND (expires_at IS NULL OR expires_at > $2)
        ORDER BY created_at DESC
        LIMIT 1
        """,
        as_uuid(user_id),
        now,
    )
    state = BanState()
    if row is not None:
        state = BanState(ban_reason=row["reason"] or DEFAULT_BAN_REASON, banned_until=row["expires_at"])
    await conn.execute(
        "UPDATE profiles SET ban_reason = $2, banned_until = $3 WHERE id = $1",
        as_uuid(user_id),
        state.ban_reason,
        state.banned_until,
    )
    return state


class PostgresBanRepository(BanRepository):
    """Stores bans in user_bans and maintains profiles.ban_reason/banned_until."""

    def __init__(self, pool: asyncpg.Pool) -> None:
        self._pool = pool

    async def issue(self, ban: NewBan, *, now: datetime) -> IssueOutcome:
        with store_errors("ban_issue", target=ban.user_id):
            try:
                return await self._issue_once(ban, now=now)
            except asyncpg.exceptions.UniqueViolationError:
                # A concurrent issuance inserted an unlifted row between our supersede and insert.
                logger.warning("ban_issue_conflict_retry", extra={"user_id": ban.user_id})
                return await self._issue_once(ban, now=now)

    async def _issue_once(self, ban: NewBan, *, now: datetime) -> IssueOutcome:
        async with self._pool.acquire() as conn:
            async with conn.transaction():
                superseded = await conn.fetch(
                    """
                    UPDATE user_bans
                    SET lifted_at = $2, lifted_by = $3, lift_reason = $4
                    WHERE user_id = $1 AND lifted_at IS NULL
                    RETURNING id
                    """,
                    as_uuid(ban.user_id),
                    now,
                    as_uuid(ban.created_by),
                    SUPERSEDED_LIFT_REASON,
                )
                row = await conn.fetchrow(
                    f"""
                    INSERT INTO user_bans (user_id, reason, created_by, created_at, expires_at, source_report_id)
                    VALUES ($1, $2, $3, $4, $5, $6)
                    RETURNING {_COLUMNS}
                    """,
                    as_uuid(ban.user_id),
                    ban.reason,
                    as_uuid(ban.created_by),
                    now,
                    ban.expires_at,
                    ban.source_report_id,
                )
                if row is None:  # pragma: no cover - asyncpg always returns a row for RETURNING
                    raise RuntimeError("Failed to insert ban")
                state = await _refresh(conn, ban.user_id, now)
        return IssueOutcome(ban=_row_to_ban(row), superseded=len(superseded), state=state)

    async def lift(self, ban_id: str, *, lifted_by: str, reason: str, now: datetime) -> LiftOutcome:
        with store_errors("ban_lift", target=ban_id):
            async with self._pool.acquire() as conn:
                async with conn.transaction():
                    row = await conn.fetchrow(
                        f"""
                        UPDATE user_bans
                        SET lifted_at = $2, lifted_by = $3, lift_reason = $4
                        WHERE id = $1 AND lifted_at IS NULL
                        RETURNING {_COLUMNS}
                        """,
                        as_uuid(ban_id),
                        now,
                        as_uuid(lifted_by),
                        reason,
                    )
                    lifted = row is not None
                    if row is None:
                        row = await conn.fetchrow(f"SELECT {_COLUMNS} FROM user_bans WHERE id = $1", as_uuid(ban_id))
                    if row is None:
                        return LiftOutcome(ban=None, lifted=False)
                    ban = _row_to_ban(row)
                    state = await _refresh(conn, ban.user_id, now)
        return LiftOutcome(ban=ban, lifted=lifted, state=state)

    async def list(self, *, active_only: bool, now: datetime, limit: int) -> Sequence[Ban]:
        with store_errors("ban_list"):
            rows = await self._pool.fetch(
                f"""
                SELECT {_COLUMNS}
                FROM user_bans
                WHERE NOT $1::boolean
                   OR (lifted_at IS NULL AND (expires_at IS NULL OR expires_at > $2))
                ORDER BY created_at DESC
                LIMIT $3
                """,
                active_only,
                now,
                limit,
            )
        return [_row_to_ban(row) for row in rows]

    async def get(self, ban_id: str) -> Ban | None:
        key = as_uuid(ban_id)
        if key is None:
            return None
        with store_errors("ban_get", target=ban_id):
            row = await self._pool.fetchrow(f"SELECT {_COLUMNS} FROM user_bans WHERE id = $1", key)
        if row is None:
            return None
        return _row_to_ban(row)

    async def refresh_projection(self, user_id: str, *, now: datetime) -> BanState:
        with store_errors("ban_refresh", target=user_id):
            async with self._pool.acquire() as conn:
                async with conn.transaction():
                    return await _refresh(conn, user_id, now)

    async def projection_user_ids(self) -> Sequence[str]:
        with store_errors("ban_projection_users"):
            rows = await self._pool.fetch(
                """
                SELECT user_id AS id FROM user_bans
                UNION
                SELECT id FROM profiles WHERE ban_reason IS NOT NULL OR banned_until IS NOT NULL
                """
            )
        return sorted(str(row["id"]) for row in rows)
