"""Profile reads used by moderation, including the cached ban-state projection."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Iterable, Mapping, Optional, Protocol


@dataclass(slots=True)
class ProfileSummary:
    """Lightweight projection shown next to reports and bans."""

    id: str
    display_name: Optional[str] = None
    username: Optional[str] = None
    avatar_url: Optional[str] = None


@dataclass(slots=True)
class BanState:
    """The ``ban_reason``/``banned_until`` pair cached on a profile."""

    ban_reason: Optional[str] = None
    banned_until: Optional[datetime] = None

    def is_active(self, *, now: datetime | None = None) -> bool:
        if self.ban_reason is None:
            return False
        if self.banned_until is None:
            return True
        now = now or datetime.now(timezone.utc)
        return self.banned_until > now


@dataclass(slots=True)
class ProfileRecord:
    id: str
    display_name: Optional[str] = None
    username: Optional[str] = None
    avatar_url: Optional[str] = None
    is_moderator: bool = False
    ban_reason: Optional[str] = None
    banned_until: Optional[datetime] = None

    def summary(self) -> ProfileSummary:
        return ProfileSummary(
            id=self.id,
            display_name=self.display_name,
            username=self.username,
            avatar_url=self.avatar_url,
        )

    def ban_state(self) -> BanState:
        return BanState(ban_reason=self.ban_reason, banned_until=self.banned_until)


class ProfileRepository(Protocol):
    async def get(self, user_id: str) -> ProfileRecord | None:
        ...

    async def exists(self, user_id: str) -> bool:
        ...

    async def summaries(self, user_ids: Iterable[str]) -> Mapping[str, ProfileSummary]:
        ...


class InMemoryProfileRepository(ProfileRepository):
    """Profile store for development and tests."""

    def __init__(self, profiles: Iterable[ProfileRecord] = ()) -> None:
        self._items: dict[str, ProfileRecord] = {profile.id: profile for profile in profiles}

    def add(self, profile: ProfileRecord) -> ProfileRecord:
        self._items[profile.id] = profile
        return profile

    def remove(self, user_id: str) -> None:
        self._items.pop(user_id, None)

    def set_ban_state(self, user_id: str, state: BanState) -> None:
        profile = self._items.get(user_id)
        if profile is None:
            return
        profile.ban_reason = state.ban_reason
        profile.banned_until = state.banned_until

    def banned_ids(self) -> set[str]:
        return {uid for uid, profile in self._items.items() if profile.ban_reason is not None or profile.banned_until is not None}

    async def get(self, user_id: str) -> ProfileRecord | None:
        return self._items.get(user_id)

    async def exists(self, user_id: str) -> bool:
        return user_id in self._items

    async def summaries(self, user_ids: Iterable[str]) -> Mapping[str, ProfileSummary]:
        return {uid: self._items[uid].summary() for uid in set(user_ids) if uid in self._items}
