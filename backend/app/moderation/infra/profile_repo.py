"""PostgreSQL reads of the profiles table."""

from __future__ import annotations

from typing import Iterable, Mapping

import asyncpg

from app.moderation.domain.profiles import ProfileRecord, ProfileRepository, ProfileSummary
from app.moderation.infra.store_errors import as_uuid, store_errors


def _row_to_profile(row: asyncpg.Record) -> ProfileRecord:
    return ProfileRecord(
        id=str(row["id"]),
        display_name=row["display_name"],
        username=row["username"],
        avatar_url=row["avatar_url"],
        is_moderator=bool(row["is_moderator"]),
        ban_reason=row["ban_reason"],
        banned_until=row["banned_until"],
    )


class PostgresProfileRepository(ProfileRepository):
    def __init__(self, pool: asyncpg.Pool) -> None:
        self._pool = pool

    async def get(self, user_id: str) -> ProfileRecord | None:
        key = as_uuid(user_id)
        if key is None:
            return None
        with store_errors("profile_get", target=user_id):
            row = await self._pool.fetchrow(
                """
                SELECT id, display_name, username, avatar_url, is_moderator, ban_reason, banned_until
                FROM profiles
                WHERE id = $1
                """,
                key,
            )
        if row is None:
            return None
        return _row_to_profile(row)

    async def exists(self, user_id: str) -> bool:
        key = as_uuid(user_id)
        if key is None:
            return False
        with store_errors("profile_exists", target=user_id):
            found = await self._pool.fetchval("SELECT 1 FROM profiles WHERE id = $1", key)
        return found is not None

    async def summaries(self, user_ids: Iterable[str]) -> Mapping[str, ProfileSummary]:
        keys = [key for key in (as_uuid(uid) for uid in set(user_ids)) if key is not None]
        if not keys:
            return {}
        with store_errors("profile_summaries"):
            rows = await self._pool.fetch(
                """
                SELECT id, display_name, username, avatar_url
                FROM profiles
                WHERE id = ANY($1::uuid[])
                """,
                keys,
            )
        return {
            str(row["id"]): ProfileSummary(
                id=str(row["id"]),
                display_name=row["display_name"],
                username=row["username"],
                avatar_url=row["avatar_url"],
            )
            for row in rows
        }
