"""Tests for the add-in SDK client."""

import httpx
import pytest

from src.client.sdk import (
    EMPTY_PRESENCE,
    OutOfOfficeResult,
    PeoplePickerClient,
    PeoplePickerError,
    PresenceResult,
)


def make_client(handler, token="token-123"):
    return PeoplePickerClient(
        "https://people.example.com/",
        token=token,
        transport=httpx.MockTransport(handler),
    )


@pytest.mark.asyncio
async def test_get_presence_sends_freshness_params():
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(
            200,
            json={
                "ok": True,
                "data": {"activity": "InAMeeting", "availability": "Busy", "fetchedAt": "2026-03-02T09:00:00Z", "ttl": 60},
                "meta": {"cached": False},
            },
        )

    async with make_client(handler) as client:
        result = await client.get_presence("jane@contoso.com", no_cache=True, ttl=60)

    assert result == PresenceResult("InAMeeting", "Busy", "2026-03-02T09:00:00Z")
    request = seen[0]
    assert request.url.path == "/api/v1/presence/jane@contoso.com"
    assert request.url.params["noCache"] == "1"
    assert request.url.params["ttl"] == "60"
    assert request.headers["Authorization"] == "Bearer token-123"


@pytest.mark.asyncio
async def test_get_presence_without_options_sends_no_params():
    seen = []

    def handler(request):
        seen.append(request)
        return httpx.Response(200, json={"ok": False})

    async with make_client(handler, token=None) as client:
        result = await client.get_presence("jane@contoso.com")

    assert result is EMPTY_PRESENCE
    assert result.is_empty
    assert dict(seen[0].url.params) == {}
    assert "Authorization" not in seen[0].headers


@pytest.mark.asyncio
async def test_get_presence_swallows_http_errors():
    async with make_client(lambda request: httpx.Response(502)) as client:
        assert await client.get_presence("jane@contoso.com") is EMPTY_PRESENCE


@pytest.mark.asyncio
async def test_get_presence_raises_when_asked():
    async with make_client(lambda request: httpx.Response(502)) as client:
        with pytest.raises(PeoplePickerError) as exc_info:
            await client.get_presence("jane@contoso.com", raise_errors=True)

    assert exc_info.value.status_code == 502


@pytest.mark.asyncio
async def test_get_presence_raises_on_reported_failure():
    def handler(request):
        return httpx.Response(200, json={"ok": False, "error": "presence_fetch_failed"})

    async with make_client(handler) as client:
        assert await client.get_presence("jane@contoso.com") is EMPTY_PRESENCE
        with pytest.raises(PeoplePickerError, match="presence_fetch_failed"):
            await client.get_presence("jane@contoso.com", raise_errors=True)


@pytest.mark.asyncio
async def test_unavailable_presence_is_not_an_error():
    def handler(request):
        return httpx.Response(200, json={"ok": False, "data": None, "error": None})

    async with make_client(handler) as client:
        assert await client.get_presence("jane@contoso.com", raise_errors=True) is EMPTY_PRESENCE


@pytest.mark.asyncio
async def test_timeout_becomes_sdk_error():
    def handler(request):
        raise httpx.ReadTimeout("slow", request=request)

    async with make_client(handler) as client:
        with pytest.raises(PeoplePickerError, match="timed out"):
            await client.get_presence("jane@contoso.com", raise_errors=True)


@pytest.mark.asyncio
async def test_invalid_json_becomes_sdk_error():
    async with make_client(lambda request: httpx.Response(200, text="<html>")) as client:
        with pytest.raises(PeoplePickerError):
            await client.get_presence("jane@contoso.com", raise_errors=True)


@pytest.mark.asyncio
async def test_check_send_permission():
    seen = []

    def handler(request):
        seen.append(request)
        return httpx.Response(200, json={"available": True, "reason": "You are a member of this group", "canSend": True})

    async with make_client(handler) as client:
        result = await client.check_send_permission("group-1", "jane@contoso.com")

    assert result["canSend"] is True
    assert seen[0].method == "POST"
    assert seen[0].url.path == "/api/v1/groups/check-send-permission"
    assert b'"groupId":"group-1"' in seen[0].content.replace(b" ", b"")


@pytest.mark.asyncio
async def test_check_send_permission_failure():
    async with make_client(lambda request: httpx.Response(400, json={"available": False})) as client:
        result = await client.check_send_permission("bad", "jane@contoso.com")

    assert result["available"] is False
    assert "400" in result["reason"]


@pytest.mark.asyncio
async def test_get_ooo():
    seen = []

    def handler(request):
        seen.append(request)
        return httpx.Response(
            200,
            json={
                "ok": True,
                "data": {"isOOO": True, "message": "Back Monday", "startTime": None, "endTime": "2026-03-09T00:00:00"},
                "meta": {"cached": True},
            },
        )

    async with make_client(handler) as client:
        result = await client.get_ooo("jane@contoso.com")

    assert result == OutOfOfficeResult(True, "Back Monday", None, "2026-03-09T00:00:00")
    assert seen[0].url.path == "/api/v1/ooo/jane@contoso.com"


@pytest.mark.asyncio
async def test_get_ooo_unavailable_is_none():
    async with make_client(lambda request: httpx.Response(200, json={"ok": False})) as client:
        assert await client.get_ooo("jane@contoso.com") is None
        assert await client.get_ooo("jane@contoso.com", raise_errors=True) is None


@pytest.mark.asyncio
async def test_get_ooo_failures():
    async with make_client(lambda request: httpx.Response(500)) as client:
        assert await client.get_ooo("jane@contoso.com") is None
        with pytest.raises(PeoplePickerError):
            await client.get_ooo("jane@contoso.com", raise_errors=True)

    def handler(request):
        return httpx.Response(200, json={"ok": False, "error": "ooo_fetch_failed"})

    async with make_client(handler) as client:
        with pytest.raises(PeoplePickerError, match="ooo_fetch_failed"):
            await client.get_ooo("jane@contoso.com", raise_errors=True)
