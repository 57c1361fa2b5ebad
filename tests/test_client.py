"""
Tests for the async API client, session refresh and post auto-save
"""

import asyncio
import json

import httpx
import pytest

from contenthub.client import AutoSaver, ContentHubClient, SessionManager
from contenthub.client.api import error_from_response
from contenthub.core.errors import (
    AuthorizationError,
    CapacityError,
    ContentHubError,
    EventCapacityExceeded,
    NotFoundError,
    RateLimitError,
    StorageError,
    UpstreamError,
    ValidationError,
)
from contenthub.schemas import AuthSession, AuthUser

NOW = 1_900_000_000
USER = {"id": "u1", "email": "ed@example.com", "user_metadata": {"role": "editor"}}

def make_session(access="access-1", refresh="refresh-1", expires_at=NOW + 3600) -> AuthSession:
    return AuthSession(
        access_token=access,
        refresh_token=refresh,
        expires_at=expires_at,
        user=AuthUser(**USER),
    )

def envelope(data=None, message="ok"):
    return {"success": True, "message": message, "data": data}

def make_client(handler) -> ContentHubClient:
    return ContentHubClient("http://test/api", transport=httpx.MockTransport(handler))

# -------- Error mapping --------

def test_error_mapping():
    assert isinstance(error_from_response(401, {"error": "Invalid login credentials"}), AuthorizationError)
    assert isinstance(error_from_response(429, {"error": "Slow down"}), RateLimitError)
    assert isinstance(error_from_response(500, {"error": "x", "error_code": "storage_error"}), StorageError)

    missing = error_from_response(404, {"error": "Post not found"})
    assert isinstance(missing, NotFoundError)
    assert missing.message == "Post not found"

    invalid = error_from_response(422, {"error": "Email is required", "details": {"field": "Email"}})
    assert isinstance(invalid, ValidationError)
    assert invalid.field == "Email"

    full = error_from_response(409, {"error": "Event is full", "error_code": "event_capacity_exceeded"})
    assert isinstance(full, EventCapacityExceeded)
    assert type(error_from_response(409, {"error_code": "other"})) is CapacityError

    other = error_from_response(503, {})
    assert type(other) is ContentHubError
    assert other.status_code == 503

# -------- ContentHubClient --------

@pytest.mark.asyncio
async def test_client_unwraps_envelope_and_sends_token():
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json=envelope({"user": USER}))

    async with make_client(handler) as client:
        client.set_access_token("token-1")
        user = await client.get_user()

    assert user.email == "ed@example.com"
    assert seen[0].url.path == "/api/auth/user"
    assert seen[0].headers["Authorization"] == "Bearer token-1"

@pytest.mark.asyncio
async def test_client_post_calls():
    post = {
        "id": "p1", "title": "Hello", "slug": "hello", "author_id": "u1",
        "created_at": "2030-01-01T00:00:00Z", "updated_at": "2030-01-01T00:00:00Z",
    }

    def handler(request: httpx.Request) -> httpx.Response:
        if request.method == "GET":
            return httpx.Response(200, json=envelope([post]))
        if request.method == "PUT":
            return httpx.Response(200, json=envelope({**post, **json.loads(request.content)}))
        return httpx.Response(200, json=envelope())

    async with make_client(handler) as client:
        posts = await client.list_posts()
        updated = await client.update_post("p1", {"content": "Edited"})
        await client.delete_post("p1")

    assert [p.slug for p in posts] == ["hello"]
    assert updated.content == "Edited"

@pytest.mark.asyncio
async def test_client_raises_mapped_errors():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(401, json={
            "success": False, "error": "Invalid login credentials", "error_code": "unauthorized",
        })

    async with make_client(handler) as client:
        with pytest.raises(AuthorizationError) as exc_info:
            await client.sign_in("ed@example.com", "wrong")

    assert exc_info.value.message == "Invalid login credentials"

@pytest.mark.asyncio
async def test_client_handles_non_json_errors():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(502, text="Bad Gateway")

    async with make_client(handler) as client:
        with pytest.raises(ContentHubError) as exc_info:
            await client.list_posts()

    assert exc_info.value.status_code == 502

# -------- SessionManager --------

def test_refresh_delay():
    manager = SessionManager(make_client(lambda r: httpx.Response(200)), clock=lambda: NOW)
    assert manager.refresh_delay() == 0

    manager.session = make_session(expires_at=NOW + 3600)
    assert manager.refresh_delay() == 3600 - SessionManager.REFRESH_MARGIN

    manager.session = make_session(expires_at=NOW + 60)
    assert manager.refresh_delay() == 0

@pytest.mark.asyncio
async def test_sign_in_schedules_refresh():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json=envelope(make_session().model_dump()))

    client = make_client(handler)
    manager = SessionManager(client, clock=lambda: NOW)

    session = await manager.sign_in("ed@example.com", "password1")

    assert manager.is_signed_in
    assert client.access_token == session.access_token
    assert manager._refresh_task is not None and not manager._refresh_task.done()

    await manager.close()
    assert manager._refresh_task is None
    assert manager.is_signed_in
    await client.aclose()

@pytest.mark.asyncio
async def test_refresh_adopts_new_session():
    def handler(request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        assert body == {"refresh_token": "refresh-1"}
        return httpx.Response(200, json=envelope(make_session("access-2", "refresh-2").model_dump()))

    client = make_client(handler)
    manager = SessionManager(client, clock=lambda: NOW)
    manager.start(make_session())

    refreshed = await manager.refresh()

    assert refreshed.access_token == "access-2"
    assert manager.session.refresh_token == "refresh-2"
    assert client.access_token == "access-2"
    await manager.close()
    await client.aclose()

@pytest.mark.asyncio
async def test_failed_refresh_signs_out():
    signed_out = []

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(401, json={"success": False, "error": "Invalid token", "error_code": "unauthorized"})

    client = make_client(handler)
    manager = SessionManager(client, on_signed_out=lambda: signed_out.append(True), clock=lambda: NOW)

    # already inside the refresh margin, so the refresh runs right away
    manager.start(make_session(expires_at=NOW + 10))
    await asyncio.sleep(0.05)

    assert not manager.is_signed_in
    assert client.access_token is None
    assert signed_out == [True]
    await client.aclose()

@pytest.mark.asyncio
async def test_sign_out_clears_session():
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request.url.path)
        return httpx.Response(200, json=envelope())

    client = make_client(handler)
    manager = SessionManager(client, clock=lambda: NOW)
    manager.start(make_session())

    await manager.sign_out()

    assert calls == ["/api/auth/logout"]
    assert not manager.is_signed_in
    assert manager._refresh_task is None
    await client.aclose()

# -------- AutoSaver --------

@pytest.mark.asyncio
async def test_autosave_debounces():
    saved = []

    async def save(post_id, changes):
        saved.append((post_id, changes))

    saver = AutoSaver(save, delay=0.05)
    assert saver.schedule("p1", {"title": "H"})
    assert saver.schedule("p1", {"title": "Hello"})
    await asyncio.sleep(0.15)

    assert saved == [("p1", {"title": "Hello"})]
    assert saver.saves == 1
    assert not saver.has_pending

@pytest.mark.asyncio
async def test_autosave_skips_unsaved_posts():
    async def save(post_id, changes):
        raise AssertionError("should not save")

    saver = AutoSaver(save, delay=0.01)

    assert saver.schedule(None, {"title": "Draft"}) is False
    assert not saver.has_pending

@pytest.mark.asyncio
async def test_autosave_records_failures():
    async def save(post_id, changes):
        raise NotFoundError("Post")

    saver = AutoSaver(save, delay=0.01)
    saver.schedule("p1", {"title": "Gone"})
    await asyncio.sleep(0.05)

    assert isinstance(saver.last_error, NotFoundError)
    assert saver.saves == 0

@pytest.mark.asyncio
async def test_autosave_close_drops_pending_save():
    saved = []

    async def save(post_id, changes):
        saved.append(post_id)

    saver = AutoSaver(save, delay=0.05)
    saver.schedule("p1", {"title": "Hello"})

    await saver.close()
    await asyncio.sleep(0.1)

    assert saved == []
    assert not saver.has_pending

@pytest.mark.asyncio
async def test_unreachable_server_raises_upstream_error():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    async with make_client(handler) as client:
        with pytest.raises(UpstreamError):
            await client.list_posts()

@pytest.mark.asyncio
async def test_refresh_signs_out_when_server_unreachable():
    signed_out = []

    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    client = make_client(handler)
    manager = SessionManager(client, on_signed_out=lambda: signed_out.append(True), clock=lambda: NOW)
    manager.start(make_session())

    assert await manager.refresh() is None

    assert not manager.is_signed_in
    assert signed_out == [True]
    assert manager._refresh_task is None
    await client.aclose()

@pytest.mark.asyncio
async def test_refresh_signs_out_on_malformed_session():
    signed_out = []

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json=envelope({"access_token": "only-this"}))

    client = make_client(handler)
    manager = SessionManager(client, on_signed_out=lambda: signed_out.append(True), clock=lambda: NOW)

    manager.start(make_session(expires_at=NOW + 10))
    await asyncio.sleep(0.05)

    assert not manager.is_signed_in
    assert client.access_token is None
    assert signed_out == [True]
    await client.aclose()
