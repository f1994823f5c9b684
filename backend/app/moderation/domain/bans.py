"""Ban ledger: issuance with supersede, early lift and the profile projection."""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Iterable, Optional, Protocol, Sequence

from app.moderation.domain.errors import Forbidden, InvalidArgument, NotFound
from app.moderation.domain.profiles import (
    BanState,
    InMemoryProfileRepository,
    ProfileRepository,
    ProfileSummary,
)
from app.moderation.domain.reports import ReportRepository
from app.obs import metrics

logger = logging.getLogger(__name__)

DEFAULT_BAN_REASON = "Policy violation"
DEFAULT_LIFT_REASON = "Lifted by moderator"
SUPERSEDED_LIFT_REASON = "Superseded by moderator"
BAN_DURATION_PRESETS_DAYS: tuple[int, ...] = (1, 3, 7, 30, 90)
BAN_LIST_LIMIT = 200
BAN_STATUS_ACTIVE = "active"
BAN_STATUS_ALL = "all"


@dataclass(slots=True)
class Ban:
    id: str
    user_id: str
    reason: Optional[str]
    created_by: Optional[str]
    created_at: datetime
    expires_at: Optional[datetime] = None
    lifted_at: Optional[datetime] = None
    lifted_by: Optional[str] = None
    lift_reason: Optional[str] = None
    source_report_id: Optional[int] = None

    def is_active(self, *, now: datetime | None = None) -> bool:
        if self.lifted_at is not None:
            return False
        now = now or datetime.now(timezone.utc)
        return self.expires_at is None or self.expires_at > now


@dataclass(slots=True)
class NewBan:
    user_id: str
    reason: str
    created_by: str
    expires_at: Optional[datetime] = None
    source_report_id: Optional[int] = None


@dataclass(slots=True)
class IssueOutcome:
    ban: Ban
    superseded: int
    state: BanState


@dataclass(slots=True)
class LiftOutcome:
    ban: Optional[Ban]
    lifted: bool
    state: Optional[BanState] = None


@dataclass(slots=True)
class BanView:
    ban: Ban
    user_profile: Optional[ProfileSummary]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def derive_ban_state(bans: Iterable[Ban], *, now: datetime) -> BanState:
    """Project a user's ban rows onto the profile fields.

    The newest active ban wins; no active ban clears the projection.
    """

    active = [ban for ban in bans if ban.is_active(now=now)]
    if not active:
        return BanState()
    current = max(active, key=lambda ban: ban.created_at)
    return BanState(ban_reason=current.reason or DEFAULT_BAN_REASON, banned_until=current.expires_at)


def parse_expiry(raw: Any) -> datetime | None:
    """Parse an ISO-8601 expiry; blank means indefinite and naive values are UTC."""

    if raw is None:
        return None
    if not isinstance(raw, str):
        raise InvalidArgument("Invalid expiresAt")
    text = raw.strip()
    if not text:
        return None
    if text.endswith(("Z", "z")):
        text = f"{text[:-1]}+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        raise InvalidArgument("Invalid expiresAt") from None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def expiry_from_duration(days: Any, *, now: datetime) -> datetime:
    if isinstance(days, bool) or days not in BAN_DURATION_PRESETS_DAYS:
        raise InvalidArgument("Invalid durationDays")
    return now + timedelta(days=int(days))


def parse_ban_id(raw: Any) -> str:
    if not isinstance(raw, str) or not raw.strip():
        raise InvalidArgument("banId is required")
    try:
        return str(uuid.UUID(raw.strip()))
    except ValueError:
        raise InvalidArgument("Invalid banId") from None


class BanRepository(Protocol):
    async def issue(self, ban: NewBan, *, now: datetime) -> IssueOutcome:
        """Supersede unlifted bans, insert ``ban`` and refresh the projection atomically."""

    async def lift(self, ban_id: str, *, lifted_by: str, reason: str, now: datetime) -> LiftOutcome:
        """Lift an unlifted ban and refresh the owner's projection atomically."""

    async def list(self, *, active_only: bool, now: datetime, limit: int) -> Sequence[Ban]:
        ...

    async def get(self, ban_id: str) -> Ban | None:
        ...

    async def refresh_projection(self, user_id: str, *, now: datetime) -> BanState:
        ...

    async def projection_user_ids(self) -> Sequence[str]:
        """Users with ban rows or a non-empty projection."""


class InMemoryBanRepository(BanRepository):
    """Ban store used in development and tests, writing through to in-memory profiles."""

    def __init__(self, profiles: InMemoryProfileRepository) -> None:
        self._profiles = profiles
        self._items: dict[str, Ban] = {}

    def add(self, ban: Ban) -> Ban:
        self._items[ban.id] = ban
        return ban

    def for_user(self, user_id: str) -> list[Ban]:
        return [ban for ban in self._items.values() if ban.user_id == user_id]

    async def issue(self, ban: NewBan, *, now: datetime) -> IssueOutcome:
        superseded = 0
        for existing in self.for_user(ban.user_id):
            if existing.lifted_at is None:
                existing.lifted_at = now
                existing.lifted_by = ban.created_by
                existing.lift_reason = SUPERSEDED_LIFT_REASON
                superseded += 1
        stored = self.add(
            Ban(
                id=str(uuid.uuid4()),
                user_id=ban.user_id,
                reason=ban.reason,
                created_by=ban.created_by,
                created_at=now,
                expires_at=ban.expires_at,
                source_report_id=ban.source_report_id,
            )
        )
        state = await self.refresh_projection(ban.user_id, now=now)
        return IssueOutcome(ban=stored, superseded=superseded, state=state)

    async def lift(self, ban_id: str, *, lifted_by: str, reason: str, now: datetime) -> LiftOutcome:
        ban = self._items.get(ban_id)
        if ban is None:
            return LiftOutcome(ban=None, lifted=False)
        lifted = ban.lifted_at is None
        if lifted:
            ban.lifted_at = now
            ban.lifted_by = lifted_by
            ban.lift_reason = reason
        state = await self.refresh_projection(ban.user_id, now=now)
        return LiftOutcome(ban=ban, lifted=lifted, state=state)

    async def list(self, *, active_only: bool, now: datetime, limit: int) -> Sequence[Ban]:
        items = [ban for ban in self._items.values() if not active_only or ban.is_active(now=now)]
        items.sort(key=lambda ban: ban.created_at, reverse=True)
        return items[:limit]

    async def get(self, ban_id: str) -> Ban | None:
        return self._items.get(ban_id)

    async def refresh_projection(self, user_id: str, *, now: datetime) -> BanState:
        state = derive_ban_state(self.for_user(user_id), now=now)
        self._profiles.set_ban_state(user_id, state)
        return state

    async def projection_user_ids(self) -> Sequence[str]:
        return sorted({ban.user_id for ban in self._items.values()} | self._profiles.banned_ids())


class BanService:
    """Moderator-facing ban operations. Callers must already be authorized."""

    def __init__(
        self,
        repository: BanRepository,
        profiles: ProfileRepository,
        *,
        reports: Optional[ReportRepository] = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._repo = repository
        self._profiles = profiles
        self._reports = reports
        self._clock = clock

    async def issue_ban(
        self,
        *,
        actor_id: str,
        user_id: Any,
        reason: Any = None,
        expires_at: Any = None,
        duration_days: Any = None,
        source_report_id: Optional[int] = None,
    ) -> Ban:
        if not isinstance(user_id, str) or not user_id.strip():
            raise InvalidArgument("userId is required")
        user_id = user_id.strip()
        now = self._clock()
        if duration_days is not None:
            if expires_at not in (None, ""):
                raise InvalidArgument("Provide either expiresAt or durationDays")
            expiry = expiry_from_duration(duration_days, now=now)
        else:
            expiry = parse_expiry(expires_at)
        if not await self._profiles.exists(user_id):
            raise NotFound("User not found")
        if user_id == actor_id:
            raise Forbidden("You cannot ban yourself")
        if source_report_id is not None and self._reports is not None:
            if await self._reports.get(source_report_id) is None:
                raise NotFound("Report not found")
        text = reason.strip() if isinstance(reason, str) else ""
        outcome = await self._repo.issue(
            NewBan(
                user_id=user_id,
                reason=text or DEFAULT_BAN_REASON,
                created_by=actor_id,
                expires_at=expiry,
                source_report_id=source_report_id,
            ),
            now=now,
        )
        metrics.record_ban_issued(indefinite=expiry is None, superseded=outcome.superseded)
        logger.info(
            "ban_issued",
            extra={
                "ban_id": outcome.ban.id,
                "user_id": user_id,
                "actor_id": actor_id,
                "expires_at": expiry.isoformat() if expiry else None,
                "superseded": outcome.superseded,
            },
        )
        return outcome.ban

    async def lift_ban(self, *, actor_id: str, ban_id: Any, lift_reason: Any = None) -> LiftOutcome:
        parsed_id = parse_ban_id(ban_id)
        text = lift_reason.strip() if isinstance(lift_reason, str) else ""
        outcome = await self._repo.lift(
            parsed_id,
            lifted_by=actor_id,
            reason=text or DEFAULT_LIFT_REASON,
            now=self._clock(),
        )
        metrics.record_ban_lift(outcome.lifted)
        logger.info(
            "ban_lift",
            extra={"ban_id": parsed_id, "actor_id": actor_id, "lifted": outcome.lifted},
        )
        return outcome

    async def list_bans(self, *, status: str | None = None) -> list[BanView]:
        if status in (None, "", BAN_STATUS_ACTIVE):
            active_only = True
        elif status == BAN_STATUS_ALL:
            active_only = False
        else:
            raise InvalidArgument("Invalid status")
        bans = await self._repo.list(active_only=active_only, now=self._clock(), limit=BAN_LIST_LIMIT)
        user_ids = {ban.user_id for ban in bans}
        profiles = await self._profiles.summaries(user_ids) if user_ids else {}
        return [BanView(ban=ban, user_profile=profiles.get(ban.user_id)) for ban in bans]

    async def refresh(self, user_id: str) -> BanState:
        return await self._repo.refresh_projection(user_id, now=self._clock())

    async def refresh_all(self) -> int:
        """Recompute every projection that could be stale; returns the user count."""

        user_ids = await self._repo.projection_user_ids()
        for user_id in user_ids:
            await self.refresh(user_id)
        logger.info("ban_projection_rebuilt", extra={"users": len(user_ids)})
        return len(user_ids)


__all__ = [
    "BAN_DURATION_PRESETS_DAYS",
    "Ban",
    "BanRepository",
    "BanService",
    "BanView",
    "DEFAULT_BAN_REASON",
    "DEFAULT_LIFT_REASON",
    "InMemoryBanRepository",
    "IssueOutcome",
    "LiftOutcome",
    "NewBan",
    "SUPERSEDED_LIFT_REASON",
    "derive_ban_state",
    "expiry_from_duration",
    "parse_ban_id",
    "parse_expiry",
]
