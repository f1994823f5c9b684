import pytest
from fastapi import HTTPException
from starlette.requests import Request

from app.infra import jwt as jwt_helper
from app.infra.auth import get_current_user, resolve_session_user, verify_session_jwt
from app.settings import settings

USER_ID = "0b7f3f7e-2f7c-4a57-9a0e-5d1a6c1f0a11"


def _request(headers: dict[str, str] | None = None) -> Request:
    raw = [(key.lower().encode(), value.encode()) for key, value in (headers or {}).items()]
    return Request({"type": "http", "method": "GET", "path": "/", "headers": raw, "query_string": b""})


def test_bearer_token_resolves_user() -> None:
    token = jwt_helper.encode_session({"sub": USER_ID, "email": "ben@example.com"})

    user = resolve_session_user(_request({"Authorization": f"Bearer {token}"}))

    assert user is not None
    assert user.id == USER_ID
    assert user.email == "ben@example.com"


def test_session_cookie_resolves_user() -> None:
    token = jwt_helper.encode_session({"sub": USER_ID})
    cookie = f"{settings.auth_cookie_name}={token}"

    user = resolve_session_user(_request({"Cookie": cookie}))

    assert user is not None and user.id == USER_ID


def test_invalid_tokens_resolve_to_none() -> None:
    expired = jwt_helper.encode_session({"sub": USER_ID}, ttl_seconds=-60)
    wrong_audience = jwt_helper.encode_session({"sub": USER_ID, "aud": "anon"})
    no_subject = jwt_helper.encode_session({"sub": "  "})

    for token in (expired, wrong_audience, no_subject, "garbage"):
        assert resolve_session_user(_request({"Authorization": f"Bearer {token}"})) is None


def test_verify_session_jwt_raises_unauthorized() -> None:
    with pytest.raises(HTTPException) as exc:
        verify_session_jwt("garbage")
    assert exc.value.status_code == 401


def test_dev_header_only_accepted_in_dev() -> None:
    assert resolve_session_user(_request({"X-User-Id": USER_ID})).id == USER_ID

    settings.environment = "production"
    assert resolve_session_user(_request({"X-User-Id": USER_ID})) is None


@pytest.mark.asyncio
async def test_get_current_user_requires_session() -> None:
    with pytest.raises(HTTPException) as exc:
        await get_current_user(_request())
    assert exc.value.status_code == 401


def test_session_is_decoded_once_per_request(monkeypatch) -> None:
    calls = []
    decode = jwt_helper.decode_session

    def counting_decode(token: str) -> dict[str, object]:
        calls.append(token)
        return decode(token)

    monkeypatch.setattr(jwt_helper, "decode_session", counting_decode)
    token = jwt_helper.encode_session({"sub": USER_ID})
    request = _request({"Authorization": f"Bearer {token}"})

    first = resolve_session_user(request)
    second = resolve_session_user(request)

    assert first is second
    assert len(calls) == 1
