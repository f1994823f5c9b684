from datetime import datetime, timedelta, timezone

import pytest

from app.infra import jwt as jwt_helper
from app.moderation.domain import container
from app.moderation.domain.bans import SUPERSEDED_LIFT_REASON
from app.moderation.domain.errors import SetupRequired
from app.moderation.domain.reports import ReportStatus
from app.settings import settings


def _headers(user_id: str) -> dict[str, str]:
    return {"X-User-Id": user_id}


async def _submit_report(api_client, moderation, **overrides):
    payload = {"reportedUserId": moderation.target_id, "category": "spam"}
    payload.update(overrides)
    return await api_client.post("/api/reports", json=payload, headers=_headers(moderation.reporter_id))


@pytest.mark.asyncio
async def test_submit_report_creates_pending_report(api_client, moderation):
    response = await _submit_report(api_client, moderation)

    assert response.status_code == 200
    assert response.json() == {"success": True}
    [report] = await moderation.reports.list(status=None, limit=10)
    assert report.status is ReportStatus.PENDING
    assert report.reporter_id == moderation.reporter_id
    assert report.description is None
    assert report.evidence_urls == []


@pytest.mark.asyncio
async def test_submit_report_errors(api_client, moderation):
    no_session = await api_client.post("/api/reports", json={"reportedUserId": moderation.target_id, "category": "spam"})
    assert no_session.status_code == 401
    assert no_session.json()["error"] == "Unauthorized"

    missing = await _submit_report(api_client, moderation, reportedUserId=None)
    assert missing.status_code == 400
    assert missing.json()["error"] == "reportedUserId is required"

    self_report = await _submit_report(api_client, moderation, reportedUserId=moderation.reporter_id)
    assert self_report.status_code == 403
    assert self_report.json()["error"] == "You cannot report yourself"

    bad_category = await _submit_report(api_client, moderation, category="rude")
    assert bad_category.status_code == 400
    assert bad_category.json()["error"] == "Invalid report category"

    ghost = await _submit_report(api_client, moderation, reportedUserId="9a9a9a9a-0000-4000-8000-000000000000")
    assert ghost.status_code == 404
    assert ghost.json()["error"] == "Reported user not found"

    assert await moderation.reports.list(status=None, limit=10) == []


@pytest.mark.asyncio
async def test_submit_report_tolerates_non_list_evidence(api_client, moderation):
    response = await _submit_report(api_client, moderation, evidenceUrls="https://img.example/1.png", description="  ")
    assert response.status_code == 200
    [report] = await moderation.reports.list(status=None, limit=10)
    assert report.evidence_urls == []
    assert report.description is None


@pytest.mark.asyncio
async def test_submit_report_rate_limited(api_client, moderation, fake_redis):
    from app.moderation.infra.rate_limit import RedisReportLimiter

    container.configure(report_limiter=RedisReportLimiter(redis=fake_redis, limit=1))

    assert (await _submit_report(api_client, moderation)).status_code == 200
    limited = await _submit_report(api_client, moderation, category="other")

    assert limited.status_code == 429
    assert limited.json()["error"] == "Too many reports"


@pytest.mark.asyncio
async def test_submit_report_when_redis_is_down(api_client, moderation):
    from redis.exceptions import ConnectionError as RedisConnectionError

    from app.moderation.infra.rate_limit import RedisReportLimiter

    class DownRedis:
        def pipeline(self, *args, **kwargs):
            raise RedisConnectionError("redis down")

    container.configure(report_limiter=RedisReportLimiter(redis=DownRedis(), limit=1))

    first = await _submit_report(api_client, moderation)
    second = await _submit_report(api_client, moderation, category="other")

    assert first.status_code == 200
    assert second.status_code == 200
    assert len(await moderation.reports.list(status=None, limit=10)) == 2


@pytest.mark.asyncio
async def test_invalid_json_body_is_bad_request(api_client, moderation):
    response = await api_client.post(
        "/api/reports",
        content=b"{not json",
        headers={**_headers(moderation.reporter_id), "Content-Type": "application/json"},
    )
    assert response.status_code == 400
    assert "request_id" in response.json()


@pytest.mark.asyncio
async def test_moderation_routes_require_moderator(api_client, moderation):
    for method, path, body in (
        ("GET", "/api/moderation/reports", None),
        ("PATCH", "/api/moderation/reports", {"reportId": 1, "status": "dismissed"}),
        ("GET", "/api/moderation/bans", None),
        ("POST", "/api/moderation/bans", {"userId": moderation.target_id}),
        ("PATCH", "/api/moderation/bans", {"banId": "00000000-0000-4000-8000-000000000000"}),
    ):
        anonymous = await api_client.request(method, path, json=body)
        assert anonymous.status_code == 401, path
        assert anonymous.json()["error"] == "Unauthorized"

        regular = await api_client.request(method, path, json=body, headers=_headers(moderation.reporter_id))
        assert regular.status_code == 403, path
        assert regular.json()["error"] == "Forbidden"


@pytest.mark.asyncio
async def test_non_moderator_ban_writes_nothing(api_client, moderation):
    response = await api_client.post(
        "/api/moderation/bans",
        json={"userId": moderation.target_id, "reason": "nope"},
        headers=_headers(moderation.bystander_id),
    )

    assert response.status_code == 403
    assert moderation.bans.for_user(moderation.target_id) == []
    assert (await moderation.profiles.get(moderation.target_id)).ban_reason is None


@pytest.mark.asyncio
async def test_list_and_transition_reports(api_client, moderation):
    await _submit_report(api_client, moderation, description="Sends scam links", evidenceUrls=["https://img.example/1.png"])
    mod = _headers(moderation.moderator_id)

    listing = await api_client.get("/api/moderation/reports", headers=mod)
    assert listing.status_code == 200
    [row] = listing.json()["reports"]
    assert row["status"] == "pending"
    assert row["description"] == "Sends scam links"
    assert row["evidence_urls"] == ["https://img.example/1.png"]
    assert row["reporter_profile"]["username"] == "alex"
    assert row["reported_profile"] == {
        "id": moderation.target_id,
        "display_name": "Ben Target",
        "username": "ben",
        "avatar_url": "https://cdn.example/ben.png",
    }

    dismissed = await api_client.patch(
        "/api/moderation/reports",
        json={"reportId": row["id"], "status": "dismissed", "resolutionNote": "  No violation found "},
        headers=mod,
    )
    assert dismissed.status_code == 200
    assert dismissed.json() == {"success": True}

    resolved = (await api_client.get("/api/moderation/reports?status=dismissed", headers=mod)).json()["reports"]
    assert resolved[0]["resolution_note"] == "No violation found"
    assert resolved[0]["resolved_by"] == moderation.moderator_id
    assert resolved[0]["resolved_at"] is not None
    assert (await api_client.get("/api/moderation/reports?status=pending", headers=mod)).json() == {"reports": []}
    assert len((await api_client.get("/api/moderation/reports?status=all", headers=mod)).json()["reports"]) == 1


@pytest.mark.asyncio
async def test_report_transition_errors(api_client, moderation):
    mod = _headers(moderation.moderator_id)
    await _submit_report(api_client, moderation)
    [report] = await moderation.reports.list(status=None, limit=10)

    bad_status = await api_client.patch("/api/moderation/reports", json={"reportId": report.id, "status": "closed"}, headers=mod)
    assert bad_status.status_code == 400
    missing = await api_client.patch("/api/moderation/reports", json={"status": "dismissed"}, headers=mod)
    assert missing.status_code == 400
    unknown = await api_client.patch("/api/moderation/reports", json={"reportId": 404, "status": "dismissed"}, headers=mod)
    assert unknown.status_code == 404
    bad_filter = await api_client.get("/api/moderation/reports?status=archived", headers=mod)
    assert bad_filter.status_code == 400


@pytest.mark.asyncio
async def test_ban_lifecycle_end_to_end(api_client, moderation):
    mod = _headers(moderation.moderator_id)
    target = _headers(moderation.target_id)
    before = datetime.now(timezone.utc)

    issued = await api_client.post(
        "/api/moderation/bans",
        json={"userId": moderation.target_id, "reason": "Spam bot", "durationDays": 7},
        headers=mod,
    )
    assert issued.status_code == 200
    [ban] = moderation.bans.for_user(moderation.target_id)
    assert ban.reason == "Spam bot"
    assert ban.expires_at - before >= timedelta(days=7)
    assert ban.expires_at - before < timedelta(days=7, minutes=1)
    profile = await moderation.profiles.get(moderation.target_id)
    assert profile.ban_reason == "Spam bot"
    assert profile.banned_until == ban.expires_at

    page = await api_client.get("/feed", headers=target)
    assert page.status_code == 307
    assert page.headers["location"] == "/banned"

    listing = await api_client.get("/api/moderation/bans", headers=mod)
    assert listing.status_code == 200
    [row] = listing.json()["bans"]
    assert row["id"] == ban.id
    assert row["is_active"] is True
    assert row["user_profile"]["username"] == "ben"

    lifted = await api_client.patch(
        "/api/moderation/bans",
        json={"banId": ban.id, "liftReason": "Appeal approved"},
        headers=mod,
    )
    assert lifted.status_code == 200
    assert ban.lifted_at is not None
    assert ban.lifted_by == moderation.moderator_id
    assert ban.lift_reason == "Appeal approved"
    profile = await moderation.profiles.get(moderation.target_id)
    assert profile.ban_reason is None and profile.banned_until is None

    after = await api_client.get("/feed", headers=target)
    assert after.status_code == 404
    assert "x-user-banned" not in after.headers

    assert (await api_client.get("/api/moderation/bans", headers=mod)).json() == {"bans": []}
    history = (await api_client.get("/api/moderation/bans?status=all", headers=mod)).json()["bans"]
    assert history[0]["lift_reason"] == "Appeal approved"
    assert history[0]["is_active"] is False


@pytest.mark.asyncio
async def test_second_ban_supersedes_via_api(api_client, moderation):
    mod = _headers(moderation.moderator_id)
    await api_client.post("/api/moderation/bans", json={"userId": moderation.target_id}, headers=mod)
    await api_client.post(
        "/api/moderation/bans",
        json={"userId": moderation.target_id, "reason": "Repeat offence", "expiresAt": "2099-01-01T00:00:00Z"},
        headers=mod,
    )

    rows = (await api_client.get("/api/moderation/bans?status=all", headers=mod)).json()["bans"]
    active = [row for row in rows if row["is_active"]]
    assert len(active) == 1
    assert active[0]["reason"] == "Repeat offence"
    superseded = [row for row in rows if not row["is_active"]]
    assert superseded[0]["lift_reason"] == SUPERSEDED_LIFT_REASON


@pytest.mark.asyncio
async def test_ban_validation_errors(api_client, moderation):
    mod = _headers(moderation.moderator_id)

    missing = await api_client.post("/api/moderation/bans", json={}, headers=mod)
    assert missing.status_code == 400
    assert missing.json()["error"] == "userId is required"

    bad_expiry = await api_client.post(
        "/api/moderation/bans", json={"userId": moderation.target_id, "expiresAt": "soon"}, headers=mod
    )
    assert bad_expiry.status_code == 400
    assert bad_expiry.json()["error"] == "Invalid expiresAt"

    ghost = await api_client.post(
        "/api/moderation/bans", json={"userId": "9a9a9a9a-0000-4000-8000-000000000000"}, headers=mod
    )
    assert ghost.status_code == 404

    self_ban = await api_client.post("/api/moderation/bans", json={"userId": moderation.moderator_id}, headers=mod)
    assert self_ban.status_code == 403

    bad_lift = await api_client.patch("/api/moderation/bans", json={"banId": "not-a-uuid"}, headers=mod)
    assert bad_lift.status_code == 400

    unknown_lift = await api_client.patch(
        "/api/moderation/bans", json={"banId": "00000000-0000-4000-8000-000000000000"}, headers=mod
    )
    assert unknown_lift.status_code == 200

    assert moderation.bans.for_user(moderation.target_id) == []


@pytest.mark.asyncio
async def test_ban_with_unknown_source_report_is_not_found(api_client, moderation):
    mod = _headers(moderation.moderator_id)

    response = await api_client.post(
        "/api/moderation/bans",
        json={"userId": moderation.target_id, "sourceReportId": 987654},
        headers=mod,
    )

    assert response.status_code == 404
    assert response.json()["error"] == "Report not found"
    assert moderation.bans.for_user(moderation.target_id) == []

    await _submit_report(api_client, moderation)
    [report] = await moderation.reports.list(status=None, limit=10)
    linked = await api_client.post(
        "/api/moderation/bans",
        json={"userId": moderation.target_id, "sourceReportId": report.id},
        headers=mod,
    )

    assert linked.status_code == 200
    [ban] = moderation.bans.for_user(moderation.target_id)
    assert ban.source_report_id == report.id


@pytest.mark.asyncio
async def test_ban_with_past_expiry_is_inactive(api_client, moderation):
    mod = _headers(moderation.moderator_id)
    expired = (datetime.now(timezone.utc) - timedelta(hours=40)).isoformat()

    response = await api_client.post(
        "/api/moderation/bans",
        json={"userId": moderation.target_id, "expiresAt": expired},
        headers=mod,
    )

    assert response.status_code == 200
    page = await api_client.get("/feed", headers=_headers(moderation.target_id))
    assert page.status_code == 404
    assert "x-user-banned" not in page.headers
    assert (await api_client.get("/api/moderation/bans", headers=mod)).json() == {"bans": []}


@pytest.mark.asyncio
async def test_ban_listing_reports_missing_tables(api_client, moderation):
    class MissingTables:
        async def list(self, **_):
            raise SetupRequired()

    container.configure(ban_repository=MissingTables())

    response = await api_client.get("/api/moderation/bans", headers=_headers(moderation.moderator_id))

    assert response.status_code == 200
    assert response.json() == {"bans": [], "setupRequired": True}


@pytest.mark.asyncio
async def test_moderator_can_authenticate_with_bearer_token(api_client, moderation):
    settings.environment = "production"
    token = jwt_helper.encode_session({"sub": moderation.moderator_id})

    response = await api_client.get("/api/moderation/reports", headers={"Authorization": f"Bearer {token}"})
    spoofed = await api_client.get("/api/moderation/reports", headers=_headers(moderation.moderator_id))

    assert response.status_code == 200
    assert spoofed.status_code == 401
