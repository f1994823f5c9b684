"""Lightweight service container shared by moderation modules."""

from __future__ import annotations

from typing import Optional

import asyncpg
from redis.asyncio import Redis

from app.infra.redis import RedisProxy, redis_client
from app.moderation.domain.bans import BanRepository, BanService, InMemoryBanRepository
from app.moderation.domain.profiles import InMemoryProfileRepository, ProfileRepository
from app.moderation.domain.reports import (
    InMemoryReportRepository,
    ReportLimiter,
    ReportRepository,
    ReportService,
)
from app.moderation.infra.ban_repo import PostgresBanRepository
from app.moderation.infra.profile_repo import PostgresProfileRepository
from app.moderation.infra.rate_limit import RedisReportLimiter
from app.moderation.infra.report_repo import PostgresReportRepository
from app.settings import settings


def _default_limiter(redis_conn: Redis | RedisProxy) -> RedisReportLimiter:
    proxy = redis_conn if isinstance(redis_conn, RedisProxy) else RedisProxy(redis_conn)
    return RedisReportLimiter(
        redis=proxy,
        limit=settings.report_rate_limit,
        window_seconds=settings.report_rate_window_seconds,
    )


_profile_repository: ProfileRepository = InMemoryProfileRepository()
_report_repository: ReportRepository = InMemoryReportRepository()
_ban_repository: BanRepository = InMemoryBanRepository(_profile_repository)
_redis_proxy: RedisProxy = redis_client
_report_limiter: Optional[ReportLimiter] = _default_limiter(_redis_proxy)
_report_service = ReportService(repository=_report_repository, profiles=_profile_repository, limiter=_report_limiter)
_ban_service = BanService(repository=_ban_repository, profiles=_profile_repository, reports=_report_repository)


def configure(
    *,
    profile_repository: Optional[ProfileRepository] = None,
    report_repository: Optional[ReportRepository] = None,
    ban_repository: Optional[BanRepository] = None,
    redis_proxy: Optional[RedisProxy] = None,
    report_limiter: Optional[ReportLimiter] = None,
) -> None:
    global _profile_repository, _report_repository, _ban_repository, _redis_proxy
    global _report_limiter, _report_service, _ban_service
    if profile_repository is not None:
        _profile_repository = profile_repository
    if report_repository is not None:
        _report_repository = report_repository
    if ban_repository is not None:
        _ban_repository = ban_repository
    elif profile_repository is not None and isinstance(profile_repository, InMemoryProfileRepository):
        _ban_repository = InMemoryBanRepository(profile_repository)
    _redis_proxy = redis_proxy or _redis_proxy
    if report_limiter is not None:
        _report_limiter = report_limiter
    elif redis_proxy is not None:
        _report_limiter = _default_limiter(redis_proxy)
    _report_service = ReportService(
        repository=_report_repository,
        profiles=_profile_repository,
        limiter=_report_limiter,
    )
    _ban_service = BanService(repository=_ban_repository, profiles=_profile_repository, reports=_report_repository)


def configure_postgres(pool: asyncpg.Pool, redis_conn: Redis | RedisProxy) -> None:
    proxy = redis_conn if isinstance(redis_conn, RedisProxy) else RedisProxy(redis_conn)
    configure(
        profile_repository=PostgresProfileRepository(pool),
        report_repository=PostgresReportRepository(pool),
        ban_repository=PostgresBanRepository(pool),
        redis_proxy=proxy,
    )


def get_profile_repository() -> ProfileRepository:
    return _profile_repository


def get_report_repository() -> ReportRepository:
    return _report_repository


def get_ban_repository() -> BanRepository:
    return _ban_repository


def get_report_service() -> ReportService:
    return _report_service


def get_ban_service() -> BanService:
    return _ban_service
