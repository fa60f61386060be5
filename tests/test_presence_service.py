"""Tests for the cached presence resolver."""

import json

import pytest

from src.domain.models.errors import NotFoundOrForbidden, UpstreamUnavailable
from src.domain.models.presence_models import (
    PresenceCacheEntry,
    UpstreamPresence,
    cache_key_for,
    clamp_ttl,
)
from src.domain.services.presence_service import PresenceService
from tests.fakes import BASE_TIME, FakePresenceProvider

EMAIL = "Jane.Doe@Contoso.com"
KEY = "presence:jane.doe@contoso.com"


def seed(cache_store, activity="InAMeeting", availability="Busy", fetched_at=BASE_TIME, ttl=300):
    entry = PresenceCacheEntry(activity, availability, fetched_at, ttl)
    cache_store.values[KEY] = json.dumps(entry.to_dict())


@pytest.mark.parametrize(
    "value,expected",
    [
        (None, 300),
        (float("nan"), 300),
        ("soon", 300),
        (True, 300),
        (0, 30),
        (-5, 30),
        (10, 30),
        (30, 30),
        (45, 45),
        ("120", 120),
        (300, 300),
        (301, 300),
        (10_000, 300),
    ],
)
def test_clamp_ttl(value, expected):
    assert clamp_ttl(value) == expected


def test_cache_key_is_normalized():
    assert cache_key_for("  Jane.Doe@Contoso.COM ") == KEY


@pytest.mark.asyncio
async def test_miss_fetches_upstream_and_writes_back(clock, cache_store):
    provider = FakePresenceProvider(UpstreamPresence("Available", "Available"))
    service = PresenceService(provider, cache_store, clock=clock)

    snapshot = await service.get_presence(EMAIL, ttl_hint=60)

    assert snapshot.availability == "Available"
    assert snapshot.cached is False
    assert snapshot.ttl == 60
    assert snapshot.fetched_at == BASE_TIME
    assert provider.calls == ["jane.doe@contoso.com"]
    assert cache_store.expiries[KEY] == 60
    stored = json.loads(cache_store.values[KEY])
    assert stored["availability"] == "Available"
    assert stored["ttl"] == 60


@pytest.mark.asyncio
async def test_write_back_uses_clamped_ttl(clock, cache_store):
    service = PresenceService(FakePresenceProvider(), cache_store, clock=clock)

    await service.get_presence(EMAIL, ttl_hint=5)

    assert cache_store.expiries[KEY] == 30


@pytest.mark.asyncio
async def test_hit_is_returned_verbatim_without_no_cache(clock, cache_store):
    seed(cache_store)
    clock.advance(10_000)
    provider = FakePresenceProvider()
    service = PresenceService(provider, cache_store, clock=clock)

    snapshot = await service.get_presence(EMAIL, ttl_hint=30)

    assert snapshot.cached is True
    assert snapshot.availability == "Busy"
    assert snapshot.activity == "InAMeeting"
    assert snapshot.fetched_at == BASE_TIME
    assert provider.calls == []


@pytest.mark.asyncio
async def test_no_cache_returns_entry_within_ttl(clock, cache_store):
    seed(cache_store)
    clock.advance(60)
    provider = FakePresenceProvider()
    service = PresenceService(provider, cache_store, clock=clock)

    snapshot = await service.get_presence(EMAIL, no_cache=True, ttl_hint=60)

    assert snapshot.cached is True
    assert provider.calls == []


@pytest.mark.asyncio
async def test_no_cache_refetches_stale_entry(clock, cache_store):
    seed(cache_store)
    clock.advance(61)
    provider = FakePresenceProvider(UpstreamPresence("Away", "Away"))
    service = PresenceService(provider, cache_store, clock=clock)

    snapshot = await service.get_presence(EMAIL, no_cache=True, ttl_hint=60)

    assert snapshot.cached is False
    assert snapshot.availability == "Away"
    assert provider.calls == ["jane.doe@contoso.com"]
    assert json.loads(cache_store.values[KEY])["availability"] == "Away"


@pytest.mark.asyncio
async def test_no_cache_with_tiny_ttl_uses_minimum(clock, cache_store):
    seed(cache_store)
    clock.advance(25)
    provider = FakePresenceProvider()
    service = PresenceService(provider, cache_store, clock=clock)

    snapshot = await service.get_presence(EMAIL, no_cache=True, ttl_hint=0)

    assert snapshot.cached is True
    assert provider.calls == []


@pytest.mark.asyncio
@pytest.mark.parametrize("status_code", [403, 404])
async def test_forbidden_or_missing_mailbox_is_none(clock, cache_store, status_code):
    provider = FakePresenceProvider(NotFoundOrForbidden(status_code))
    service = PresenceService(provider, cache_store, clock=clock)

    assert await service.get_presence(EMAIL) is None
    assert cache_store.values == {}


@pytest.mark.asyncio
async def test_upstream_failure_propagates(clock, cache_store):
    provider = FakePresenceProvider(UpstreamUnavailable("timed out"))
    service = PresenceService(provider, cache_store, clock=clock)

    with pytest.raises(UpstreamUnavailable):
        await service.get_presence(EMAIL)


@pytest.mark.asyncio
async def test_unexpected_provider_error_becomes_upstream_unavailable(clock, cache_store):
    provider = FakePresenceProvider(RuntimeError("boom"))
    service = PresenceService(provider, cache_store, clock=clock)

    with pytest.raises(UpstreamUnavailable):
        await service.get_presence(EMAIL)


@pytest.mark.asyncio
async def test_unavailable_cache_is_a_miss(clock, cache_store):
    seed(cache_store)
    cache_store.unavailable = True
    provider = FakePresenceProvider(UpstreamPresence("Available", "Available"))
    service = PresenceService(provider, cache_store, clock=clock)

    snapshot = await service.get_presence(EMAIL)

    assert snapshot.cached is False
    assert snapshot.availability == "Available"
    assert provider.calls == ["jane.doe@contoso.com"]


@pytest.mark.asyncio
async def test_unreadable_cache_entry_is_a_miss(clock, cache_store):
    cache_store.values[KEY] = "not json"
    provider = FakePresenceProvider()
    service = PresenceService(provider, cache_store, clock=clock)

    snapshot = await service.get_presence(EMAIL)

    assert snapshot.cached is False
    assert len(provider.calls) == 1


@pytest.mark.asyncio
async def test_entry_without_timestamp_counts_as_fetched_now(clock, cache_store):
    cache_store.values[KEY] = json.dumps({"activity": "Available", "availability": "Available"})
    provider = FakePresenceProvider()
    service = PresenceService(provider, cache_store, clock=clock)

    snapshot = await service.get_presence(EMAIL, no_cache=True, ttl_hint=30)

    assert snapshot.cached is True
    assert snapshot.fetched_at == clock()
    assert provider.calls == []


@pytest.mark.asyncio
async def test_without_cache_every_call_goes_upstream(clock):
    provider = FakePresenceProvider()
    service = PresenceService(provider, None, clock=clock)

    await service.get_presence(EMAIL)
    await service.get_presence(EMAIL)

    assert len(provider.calls) == 2


@pytest.mark.asyncio
async def test_invalidate(clock, cache_store):
    seed(cache_store)
    service = PresenceService(FakePresenceProvider(), cache_store, clock=clock)

    assert await service.invalidate(EMAIL) is True
    assert await service.invalidate(EMAIL) is False
    assert KEY not in cache_store.values


@pytest.mark.asyncio
async def test_invalidate_with_unavailable_cache(clock, cache_store):
    cache_store.unavailable = True
    service = PresenceService(FakePresenceProvider(), cache_store, clock=clock)

    assert await service.invalidate(EMAIL) is False


def test_age_fifty_seconds_is_fresh_at_sixty_and_stale_at_thirty(clock):
    entry = PresenceCacheEntry("Available", "Available", BASE_TIME, 300)
    clock.advance(50)

    assert entry.is_fresh(60, clock()) is True
    assert entry.is_fresh(30, clock()) is False


@pytest.mark.asyncio
@pytest.mark.parametrize("ttl,served_from_cache", [(60, True), (30, False)])
async def test_forced_lookup_at_fifty_seconds(clock, cache_store, ttl, served_from_cache):
    seed(cache_store, fetched_at=BASE_TIME)
    clock.advance(50)
    provider = FakePresenceProvider(UpstreamPresence("Available", "Available"))
    service = PresenceService(provider, cache_store, clock=clock)

    snapshot = await service.get_presence(EMAIL, no_cache=True, ttl_hint=ttl)

    assert snapshot.cached is served_from_cache
    assert len(provider.calls) == (0 if served_from_cache else 1)


@pytest.mark.asyncio
async def test_miss_then_plain_hit_long_after(clock, cache_store):
    provider = FakePresenceProvider(UpstreamPresence("InAMeeting", "Busy"))
    service = PresenceService(provider, cache_store, clock=clock)

    first = await service.get_presence(EMAIL, ttl_hint=120)

    assert first.cached is False
    assert first.ttl == 120
    assert cache_store.expiries[KEY] == 120

    clock.advance(200)
    second = await service.get_presence(EMAIL)

    assert second.cached is True
    assert second.availability == "Busy"
    assert second.fetched_at == BASE_TIME
    assert provider.calls == ["jane.doe@contoso.com"]
