"""Shared test doubles for the cache and the upstream provider."""

import asyncio
import copy
import fnmatch
from collections import defaultdict
from typing import Any

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from footy_cache.matches.models import MatchAnalysisOptions


class FakePipeline:
    """Queues commands and runs them against the owning FakeRedis on execute."""

    def __init__(self, redis: "FakeRedis") -> None:
        self._redis = redis
        self._commands: list[tuple[str, tuple[Any, ...], dict[str, Any]]] = []

    def __getattr__(self, name: str) -> Any:
        def queue(*args: Any, **kwargs: Any) -> "FakePipeline":
            self._commands.append((name, args, kwargs))
            return self

        return queue

    async def execute(self) -> list[Any]:
        self._redis._check()
        self._redis.pipelines_executed += 1
        commands, self._commands = self._commands, []
        return [await getattr(self._redis, name)(*args, **kwargs) for name, args, kwargs in commands]


class FakeRedis:
    """In-memory stand-in for the subset of redis.asyncio.Redis the tier uses."""

    def __init__(self) -> None:
        self.store: dict[str, bytes] = {}
        self.sets: dict[str, set[str]] = {}
        self.ttls: dict[str, int] = {}
        self.down = False
        self.closed = False
        self.pipelines_executed = 0

    def _check(self) -> None:
        if self.down:
            raise RedisConnectionError("Connection refused")

    async def ping(self) -> bool:
        self._check()
        return True

    async def get(self, key: str) -> bytes | None:
        self._check()
        return self.store.get(key)

    async def set(self, key: str, value: bytes, ex: int | None = None) -> bool:
        self._check()
        self.store[key] = value
        if ex is not None:
            self.ttls[key] = ex
        return True

    async def sadd(self, key: str, *members: str) -> int:
        self._check()
        members_set = self.sets.setdefault(key, set())
        before = len(members_set)
        members_set.update(members)
        return len(members_set) - before

    async def expire(self, key: str, seconds: int, nx: bool = False, gt: bool = False) -> bool:
        self._check()
        if key not in self.store and key not in self.sets:
            return False
        current = self.ttls.get(key)
        if nx and current is not None:
            return False
        # A key without expiry counts as infinite for GT
        if gt and (current is None or seconds <= current):
            return False
        self.ttls[key] = seconds
        return True

    async def srem(self, key: str, *members: str) -> int:
        self._check()
        members_set = self.sets.get(key, set())
        removed = len(members_set & set(members))
        members_set.difference_update(members)
        if key in self.sets and not members_set:
            del self.sets[key]
            self.ttls.pop(key, None)
        return removed

    async def sunion(self, keys: list[str]) -> "set[str]":
        self._check()
        result: set[str] = set()
        for key in keys:
            result |= self.sets.get(key, set())
        return result

    async def delete(self, *keys: str | bytes) -> int:
        self._check()
        deleted = 0
        for key in keys:
            name = key.decode() if isinstance(key, bytes) else key
            if self.store.pop(name, None) is not None:
                deleted += 1
            elif self.sets.pop(name, None) is not None:
                deleted += 1
            self.ttls.pop(name, None)
        return deleted

    async def scan_iter(self, match: str | None = None):
        self._check()
        for key in [*self.store, *self.sets]:
            if match is None or fnmatch.fnmatchcase(key, match):
                yield key

    def pipeline(self, transaction: bool = True) -> FakePipeline:
        return FakePipeline(self)

    async def aclose(self) -> None:
        self.closed = True


class FakeClock:
    """Controllable epoch-seconds clock."""

    def __init__(self, start: float = 1_750_000_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeMatchSource:
    """Scriptable upstream provider that counts its calls.

    Set ``failures[operation] = n`` to make the next n calls raise.
    """

    def __init__(self) -> None:
        self.calls: dict[str, int] = defaultdict(int)
        self.args: dict[str, tuple[Any, ...]] = {}
        self.failures: dict[str, int] = {}
        self.delay = 0.0
        self.todays: Any = {
            "success": True,
            "matches": [{"id": 8123, "home_name": "Arsenal", "away_name": "Chelsea"}],
            "totalMatches": 1,
        }
        self.live: Any = [{"id": 9001, "status": "live", "minute": 63}]
        self.upcoming: Any = [{"id": 9100, "status": "upcoming"}, {"id": 9101, "status": "upcoming"}]
        self.details: Any = {
            "success": True,
            "data": {
                "matchDetails": {"id": 8123, "status": "complete"},
                "h2hMatches": [{"id": 7001}],
                "teamStats": [],
                "recentMatches": [],
            },
        }
        self.analysis: Any = {
            "success": True,
            "data": {
                "matchDetails": {"id": 8123},
                "h2hMatches": [],
                "homeTeamStats": {"recentMatches": [{"id": 1}]},
                "awayTeamStats": {"recentMatches": []},
                "predictions": [{"market": "btts", "value": 0.61}],
            },
        }
        self.total: Any = {"success": True, "totalMatches": 42}

    async def _respond(self, operation: str, payload: Any, *args: Any) -> Any:
        self.calls[operation] += 1
        self.args[operation] = args
        if self.delay:
            await asyncio.sleep(self.delay)
        remaining = self.failures.get(operation, 0)
        if remaining:
            self.failures[operation] = remaining - 1
            raise RuntimeError(f"{operation} unavailable")
        return copy.deepcopy(payload)

    async def get_basic_match_info(self, date: str | None = None) -> Any:
        return await self._respond("get_basic_match_info", self.todays, date)

    async def get_live_matches(self, limit: int | None = None) -> Any:
        return await self._respond("get_live_matches", self.live, limit)

    async def get_upcoming_matches(self, limit: int | None = None, hours: int = 48) -> Any:
        return await self._respond("get_upcoming_matches", self.upcoming, limit, hours)

    async def get_detailed_match_info(self, match_id: int) -> Any:
        return await self._respond("get_detailed_match_info", self.details, match_id)

    async def get_match_analysis(self, options: MatchAnalysisOptions) -> Any:
        return await self._respond("get_match_analysis", self.analysis, options)

    async def get_total_match_count(self, date: str | None = None) -> Any:
        return await self._respond("get_total_match_count", self.total, date)


@pytest.fixture
def fake_redis() -> FakeRedis:
    """Create an in-memory Redis double."""
    return FakeRedis()


@pytest.fixture
def clock() -> FakeClock:
    """Create a controllable clock."""
    return FakeClock()


@pytest.fixture
def match_source() -> FakeMatchSource:
    """Create a scriptable upstream provider."""
    return FakeMatchSource()
