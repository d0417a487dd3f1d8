"""
Shared stubs for the leaderboard hub tests.
"""

import asyncio
import os
import sys

import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from velohub.data_models.leaderboard import AggregationPolicy
from velohub.services.leaderboard import LeaderboardService
from velohub.services.result_cache import ResultCache
from velohub.utils.leaderboard_exceptions import RosterUnavailable


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


class StubUpstream:
    """Upstream client double recording every fetch."""

    has_token = True

    def __init__(self, rows=None, error=None, gate: asyncio.Event = None):
        self.rows = list(rows or [])
        self.error = error
        self.gate = gate
        self.calls = []

    async def fetch_leaderboard(self, track, offset=0, count=None):
        self.calls.append(track)
        if self.gate is not None:
            await self.gate.wait()
        else:
            # Yield so concurrent callers overlap
            await asyncio.sleep(0.01)
        if self.error is not None:
            raise self.error
        return list(self.rows)


class StubRoster:
    """Roster gateway double with in-memory pilots and tracks."""

    def __init__(self, pilot_ids=(), tracks=(), unavailable=False):
        self.pilots = [
            {'user_id': user_id, 'name': f'Pilot {user_id}', 'country': 'ES', 'active': True}
            for user_id in pilot_ids
        ]
        self.tracks = list(tracks)
        self.unavailable = unavailable
        self.replaced = []
        self.upserted_pilots = []

    def _check(self, operation):
        if self.unavailable:
            raise RosterUnavailable(operation, "connection refused")

    async def get_active_pilots(self):
        self._check("get_active_pilots")
        return list(self.pilots)

    async def get_active_pilot_ids(self):
        self._check("get_active_pilot_ids")
        return {pilot['user_id'] for pilot in self.pilots if pilot['active']}

    async def get_active_tracks(self):
        self._check("get_active_tracks")
        return [t for t in self.tracks if t.get('active', True)]

    async def replace_active_tracks(self, entries):
        self._check("replace_active_tracks")
        self.replaced.append(list(entries))
        return [dict(entry, id=i) for i, entry in enumerate(entries, start=1)]

    async def upsert_pilots(self, entries):
        self._check("upsert_pilots")
        self.upserted_pilots.extend(entries)
        return len(entries)


def row(user_id, lap_time, **extra):
    record = {'user_id': user_id, 'lap_time': lap_time, 'playername': f'Pilot {user_id}'}
    record.update(extra)
    return record


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def make_service(clock):
    def _make(rows=None, pilot_ids=(), tracks=(), policy=None, ttl=600, upstream=None, roster=None):
        upstream = upstream or StubUpstream(rows)
        roster = roster or StubRoster(pilot_ids=pilot_ids, tracks=tracks)
        cache = ResultCache(ttl_seconds=ttl, clock=clock)
        return LeaderboardService(roster, upstream, cache, policy=policy or AggregationPolicy())
    return _make
