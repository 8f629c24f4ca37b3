"""
Tests for the Redis read cache of event lookups and listing pages.

Redis is replaced by an in-memory stand-in exposing the async calls the
cache service makes (get, setex, delete, scan_iter, info).
"""

from fnmatch import fnmatchcase

import pytest

from app.services import cache_service
from app.services.event_service import create_event, get_event_by_slug, list_events, update_event


class FakeRedis:
    def __init__(self):
        self.store: dict[str, str] = {}
        self.ttls: dict[str, int] = {}
        self.hits = 0
        self.misses = 0

    async def get(self, key: str):
        value = self.store.get(key)
        if value is None:
            self.misses += 1
        else:
            self.hits += 1
        return value

    async def setex(self, key: str, ttl: int, value: str) -> bool:
        self.store[key] = value
        self.ttls[key] = ttl
        return True

    async def delete(self, *keys: str) -> int:
        return sum(1 for key in keys if self.store.pop(key, None) is not None)

    async def scan_iter(self, match: str = "*", count: int = 10):
        for key in list(self.store):
            if fnmatchcase(key, match):
                yield key

    async def info(self, section: str = "") -> dict:
        return {"keyspace_hits": self.hits, "keyspace_misses": self.misses}


@pytest.fixture
def redis_cache(monkeypatch) -> FakeRedis:
    fake = FakeRedis()

    async def fake_get_redis():
        return fake

    monkeypatch.setattr(cache_service, "get_redis", fake_get_redis)
    return fake


@pytest.mark.asyncio
async def test_slug_lookup_is_cached(db, redis_cache, event_payload):
    created = await create_event(db, event_payload)

    first = await get_event_by_slug(db, "pycon-berlin-2026")
    assert "events:slug:pycon-berlin-2026" in redis_cache.store
    assert redis_cache.ttls["events:slug:pycon-berlin-2026"] == cache_service.settings.REDIS_CACHE_TTL

    # served from the cache: a change behind the service's back is not seen
    db["events"].docs[0]["venue"] = "Changed directly"
    cached = await get_event_by_slug(db, "pycon-berlin-2026")

    assert cached.model_dump() == first.model_dump()
    assert cached.id == created.id
    assert cached.venue == "bcc Berlin Congress Center"
    assert cached.created_at == created.created_at
    assert redis_cache.hits == 1


@pytest.mark.asyncio
async def test_unknown_slug_is_not_cached(db, redis_cache):
    assert await get_event_by_slug(db, "nope") is None
    assert redis_cache.store == {}


@pytest.mark.asyncio
async def test_listing_page_is_cached(db, redis_cache, event_payload):
    await create_event(db, {**event_payload, "title": "Late", "date": "2026-05-01"})
    await create_event(db, {**event_payload, "title": "Early", "date": "2026-03-01"})

    events, total = await list_events(db, page=1, page_size=10)
    assert "events:list:page=1&size=10" in redis_cache.store

    db["events"].docs.clear()
    cached_events, cached_total = await list_events(db, page=1, page_size=10)

    assert cached_total == total == 2
    assert [e.model_dump() for e in cached_events] == [e.model_dump() for e in events]
    assert [e.title for e in cached_events] == ["Early", "Late"]


@pytest.mark.asyncio
async def test_listing_pages_are_cached_separately(db, redis_cache, event_payload):
    await create_event(db, {**event_payload, "title": "Late", "date": "2026-05-01"})
    await create_event(db, {**event_payload, "title": "Early", "date": "2026-03-01"})

    await list_events(db, page=1, page_size=1)
    page_two, _ = await list_events(db, page=2, page_size=1)

    assert [e.title for e in page_two] == ["Late"]
    assert set(redis_cache.store) == {"events:list:page=1&size=1", "events:list:page=2&size=1"}


@pytest.mark.asyncio
async def test_update_invalidates_cached_reads(db, redis_cache, event_payload):
    created = await create_event(db, event_payload)
    await get_event_by_slug(db, "pycon-berlin-2026")
    await list_events(db, page=1, page_size=10)
    redis_cache.store["unrelated:key"] = "kept"

    await update_event(db, created.id, {**event_payload, "venue": "Estrel Berlin"})

    assert set(redis_cache.store) == {"unrelated:key"}

    by_slug = await get_event_by_slug(db, "pycon-berlin-2026")
    events, _ = await list_events(db, page=1, page_size=10)
    assert by_slug.venue == "Estrel Berlin"
    assert events[0].venue == "Estrel Berlin"


@pytest.mark.asyncio
async def test_title_change_drops_old_slug_entry(db, redis_cache, event_payload):
    created = await create_event(db, event_payload)
    await get_event_by_slug(db, "pycon-berlin-2026")

    await update_event(db, created.id, {**event_payload, "title": "PyCon Berlin 2027"})

    assert await get_event_by_slug(db, "pycon-berlin-2026") is None
    assert (await get_event_by_slug(db, "pycon-berlin-2027")).id == created.id


@pytest.mark.asyncio
async def test_cache_stats(redis_cache):
    await cache_service.get_cached_event("missing")

    stats = await cache_service.get_cache_stats()

    assert stats["status"] == "connected"
    assert stats["misses"] == 1
