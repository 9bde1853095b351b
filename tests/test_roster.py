"""
Tests for Roster
================

人員名簿の正規化・キャッシュのテスト
"""

import asyncio

import httpx
import pytest

from src.review.errors import (
    RosterConfigurationError,
    RosterFetchError,
    RosterTimeoutError,
)
from src.review.models import RosterEntry
from src.roster import RosterCache, normalize_roster, parse_local_roster


ROSTER_URL = "https://hr.example.com/api/personnel"


class FakeClock:
    """手動で進める単調時計"""

    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def make_cache(handler, ttl_seconds=1800, clock=None) -> tuple[RosterCache, list[httpx.Request]]:
    requests: list[httpx.Request] = []

    def recording_handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return handler(request)

    client = httpx.AsyncClient(transport=httpx.MockTransport(recording_handler))
    cache = RosterCache(
        ttl_seconds,
        timeout_seconds=5,
        client=client,
        clock=clock or FakeClock(),
    )
    return cache, requests


def roster_response(request: httpx.Request) -> httpx.Response:
    return httpx.Response(200, json=[
        {"name": "张三", "position": "局长"},
        {"name": "李四", "position": "副局长"},
    ])


class TestNormalizeRoster:
    """normalize_roster のテスト"""

    def test_plain_list(self):
        entries = normalize_roster([{"name": "张三", "position": "局长"}])
        assert entries == [RosterEntry(name="张三", position="局长")]

    def test_data_envelope(self):
        entries = normalize_roster({"data": [{"姓名": "李四", "职务": "处长"}]})
        assert entries == [RosterEntry(name="李四", position="处长")]

    def test_single_object(self):
        entries = normalize_roster({"fullName": "王五", "role": "科长"})
        assert entries == [RosterEntry(name="王五", position="科长")]

    def test_missing_position(self):
        entries = normalize_roster([{"name": "赵六"}])
        assert entries == [RosterEntry(name="赵六", position="")]

    def test_drops_nameless_and_invalid_records(self):
        entries = normalize_roster([{"position": "局长"}, {"name": ""}, "text", None, {"name": "张三"}])
        assert [e.name for e in entries] == ["张三"]

    def test_unexpected_shape(self):
        assert normalize_roster("not a roster") == []
        assert normalize_roster(None) == []


class TestParseLocalRoster:
    """parse_local_roster のテスト"""

    def test_separators(self):
        text = "张三 - 局长\n李四 副局长\n王五－处长\n\n  赵六  "
        entries = parse_local_roster(text)
        assert entries == [
            RosterEntry(name="张三", position="局长"),
            RosterEntry(name="李四", position="副局长"),
            RosterEntry(name="王五", position="处长"),
            RosterEntry(name="赵六", position=""),
        ]

    def test_empty(self):
        assert parse_local_roster("") == []
        assert parse_local_roster("\n \n") == []


class TestRosterCache:
    """RosterCache のテスト"""

    @pytest.mark.asyncio
    async def test_fetch_and_reuse_within_ttl(self):
        clock = FakeClock()
        cache, requests = make_cache(roster_response, ttl_seconds=60, clock=clock)

        first = await cache.get(ROSTER_URL)
        clock.advance(59)
        second = await cache.get(ROSTER_URL)

        assert len(requests) == 1
        assert first == second
        assert [e.name for e in first] == ["张三", "李四"]
        assert requests[0].headers["Accept"] == "application/json"

    @pytest.mark.asyncio
    async def test_refetch_after_expiry(self):
        clock = FakeClock()
        cache, requests = make_cache(roster_response, ttl_seconds=60, clock=clock)

        await cache.get(ROSTER_URL)
        clock.advance(60)
        await cache.get(ROSTER_URL)

        assert len(requests) == 2

    @pytest.mark.asyncio
    async def test_different_url_is_a_miss(self):
        cache, requests = make_cache(roster_response)

        await cache.get(ROSTER_URL)
        await cache.get("https://other.example.com/roster")
        await cache.get("https://other.example.com/roster")

        assert len(requests) == 2
        assert cache.status()["sourceUrl"] == "https://other.example.com/roster"

    @pytest.mark.asyncio
    async def test_invalidate(self):
        cache, requests = make_cache(roster_response)

        await cache.get(ROSTER_URL)
        cache.invalidate()
        assert cache.last_fetched is None
        await cache.get(ROSTER_URL)

        assert len(requests) == 2

    @pytest.mark.asyncio
    async def test_concurrent_misses_fetch_once(self):
        """同時ミスでも取得は1回"""
        cache, requests = make_cache(roster_response)

        results = await asyncio.gather(*(cache.get(ROSTER_URL) for _ in range(5)))

        assert len(requests) == 1
        assert all(r == results[0] for r in results)

    @pytest.mark.asyncio
    async def test_missing_url(self):
        cache, requests = make_cache(roster_response)

        with pytest.raises(RosterConfigurationError, match="not configured"):
            await cache.get(None)
        with pytest.raises(RosterConfigurationError):
            await cache.get("")
        assert requests == []

    @pytest.mark.asyncio
    async def test_non_success_status(self):
        cache, _ = make_cache(lambda r: httpx.Response(503))

        with pytest.raises(RosterFetchError) as exc_info:
            await cache.get(ROSTER_URL)

        assert exc_info.value.status == 503
        assert cache.status()["hasCachedData"] is False

    @pytest.mark.asyncio
    async def test_invalid_json(self):
        cache, _ = make_cache(lambda r: httpx.Response(200, content=b"<html>oops</html>"))

        with pytest.raises(RosterFetchError):
            await cache.get(ROSTER_URL)

    @pytest.mark.asyncio
    async def test_timeout(self):
        def handler(request):
            raise httpx.ConnectTimeout("slow", request=request)

        cache, _ = make_cache(handler)

        with pytest.raises(RosterTimeoutError):
            await cache.get(ROSTER_URL)

    @pytest.mark.asyncio
    async def test_failure_keeps_previous_snapshot_out_of_ttl(self):
        """失敗後も古いスナップショットは期限切れ扱いのまま"""
        clock = FakeClock()
        responses = iter([roster_response(None), httpx.Response(500)])
        cache, _ = make_cache(lambda r: next(responses), ttl_seconds=10, clock=clock)

        await cache.get(ROSTER_URL)
        clock.advance(11)
        with pytest.raises(RosterFetchError):
            await cache.get(ROSTER_URL)

        assert cache.status()["isExpired"] is True

    @pytest.mark.asyncio
    async def test_status(self):
        cache, _ = make_cache(roster_response, ttl_seconds=120)

        assert cache.status()["hasCachedData"] is False
        await cache.get(ROSTER_URL)
        status = cache.status()

        assert status["hasCachedData"] is True
        assert status["recordCount"] == 2
        assert status["cacheExpiry"] == 120
        assert status["isExpired"] is False
        assert cache.last_fetched is not None

    def test_concurrent_misses_across_event_loops(self):
        """別イベントループでの同時ミスでも取得できる"""
        fetches = []

        async def slow_roster(request):
            fetches.append(request)
            await asyncio.sleep(0)
            return roster_response(request)

        client = httpx.AsyncClient(transport=httpx.MockTransport(slow_roster))
        cache = RosterCache(60, timeout_seconds=5, client=client, clock=FakeClock())

        async def concurrent_gets():
            return await asyncio.gather(*(cache.get(ROSTER_URL) for _ in range(3)))

        first_run = asyncio.run(concurrent_gets())
        cache.invalidate()
        second_run = asyncio.run(concurrent_gets())

        assert len(fetches) == 2
        assert [e.name for e in first_run[0]] == ["张三", "李四"]
        assert all(r == second_run[0] for r in second_run)
