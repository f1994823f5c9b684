import os
import sys
from pathlib import Path
from types import SimpleNamespace

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from fakeredis.aioredis import FakeRedis

# Ensure backend package is importable when tests run from repo root
BACKEND_ROOT = Path(__file__).resolve().parents[1]
if str(BACKEND_ROOT) not in sys.path:
	sys.path.insert(0, str(BACKEND_ROOT))

# Settings require a signing secret at import time
os.environ.setdefault("AUTH_JWT_SECRET", "test-secret-for-session-tokens-0123456789")

from app.infra import postgres
from app.main import app
from app.moderation.domain import container
from app.moderation.domain.bans import InMemoryBanRepository
from app.moderation.domain.profiles import InMemoryProfileRepository, ProfileRecord
from app.moderation.domain.reports import InMemoryReportRepository
from app.moderation.infra.rate_limit import RedisReportLimiter
from app.settings import settings

MODERATOR_ID = "6f1c2a52-8d3e-4b7a-9c11-0a2b3c4d5e01"
REPORTER_ID = "6f1c2a52-8d3e-4b7a-9c11-0a2b3c4d5e02"
TARGET_ID = "6f1c2a52-8d3e-4b7a-9c11-0a2b3c4d5e03"
BYSTANDER_ID = "6f1c2a52-8d3e-4b7a-9c11-0a2b3c4d5e04"


@pytest_asyncio.fixture(autouse=True)
async def fake_redis():
	from app.infra.redis import redis_client, set_redis_client
	original = redis_client._client
	client = FakeRedis(decode_responses=True)
	set_redis_client(client)
	try:
		yield client
	finally:
		set_redis_client(original)
		await client.flushall()


@pytest.fixture(autouse=True)
def patch_postgres(monkeypatch):
	async def _noop():
		return None

	monkeypatch.setattr(postgres, "init_pool", _noop)
	monkeypatch.setattr(postgres, "close_pool", _noop)


@pytest.fixture(autouse=True)
def force_test_settings():
	"""Ensure a consistent test environment.

	Most API tests authenticate via the X-User-Id header, which is only
	accepted in dev mode.
	"""
	original_env = settings.environment
	original_limit = settings.report_rate_limit
	settings.environment = "dev"
	try:
		yield
	finally:
		settings.environment = original_env
		settings.report_rate_limit = original_limit


@pytest.fixture(autouse=True)
def moderation(fake_redis):
	"""Fresh in-memory moderation stores seeded with four profiles."""
	from app.infra.redis import redis_client

	profiles = InMemoryProfileRepository(
		[
			ProfileRecord(id=MODERATOR_ID, display_name="Mia Moderator", username="mia", is_moderator=True),
			ProfileRecord(id=REPORTER_ID, display_name="Alex Reporter", username="alex"),
			ProfileRecord(id=TARGET_ID, display_name="Ben Target", username="ben", avatar_url="https://cdn.example/ben.png"),
			ProfileRecord(id=BYSTANDER_ID, display_name="Cleo Bystander", username="cleo"),
		]
	)
	reports = InMemoryReportRepository()
	bans = InMemoryBanRepository(profiles)
	container.configure(
		profile_repository=profiles,
		report_repository=reports,
		ban_repository=bans,
		report_limiter=RedisReportLimiter(
			redis=redis_client,
			limit=settings.report_rate_limit,
			window_seconds=settings.report_rate_window_seconds,
		),
	)
	return SimpleNamespace(
		profiles=profiles,
		reports=reports,
		bans=bans,
		moderator_id=MODERATOR_ID,
		reporter_id=REPORTER_ID,
		target_id=TARGET_ID,
		bystander_id=BYSTANDER_ID,
	)


@pytest_asyncio.fixture
async def api_client():
	transport = ASGITransport(app=app)
	async with AsyncClient(transport=transport, base_url="http://testserver") as client:
		yield client


