"""
Tests for the roster gateway against a temporary SQLite database.
"""

import asyncio

import pytest
from sqlalchemy.exc import OperationalError

from velohub.database.database import Database
from velohub.services.roster import RosterService, validate_track_entry, validate_pilot_entry
from velohub.utils.leaderboard_exceptions import InvalidParameters, RosterUnavailable


def run_with_roster(tmp_path, scenario):
    """Run scenario(roster) against a fresh database file."""
    async def _run():
        db = Database(database_url=f"sqlite+aiosqlite:///{tmp_path / 'roster.db'}")
        await db.initialize()
        try:
            return await scenario(RosterService(db.session_factory))
        finally:
            await db.close()

    return asyncio.run(_run())


def track(track_id=None, laps=1, online_id=None, title='', active=True):
    return validate_track_entry({
        'title': title, 'scenery_id': 3, 'track_id': track_id,
        'online_id': online_id, 'laps': laps, 'active': active,
    })


class TestTrackEntryValidation:
    """Tests for admin track entry validation."""

    def test_normalizes_entry(self):
        entry = validate_track_entry({'title': ' Bando ', 'scenery_id': '7', 'track_id': '1500', 'laps': 3, 'active': True})
        assert entry == {
            'title': 'Bando', 'scenery_id': 7, 'track_id': 1500,
            'online_id': None, 'laps': 3, 'active': True,
        }

    @pytest.mark.parametrize("entry", [
        "not a dict",
        {'laps': 1},
        {'track_id': 1, 'online_id': 'abc', 'laps': 1},
        {'track_id': 'x', 'laps': 1},
        {'track_id': 0, 'laps': 1},
        {'track_id': 1, 'laps': 2},
        {'track_id': 1, 'laps': 1, 'active': 'yes'},
    ])
    def test_rejects_malformed_entries(self, entry):
        with pytest.raises(InvalidParameters):
            validate_track_entry(entry)

    def test_pilot_entry(self):
        assert validate_pilot_entry({'user_id': '42', 'name': 'Ana'}) == {
            'user_id': 42, 'name': 'Ana', 'country': '', 'active': True,
        }
        with pytest.raises(InvalidParameters):
            validate_pilot_entry({'user_id': 'abc'})


class TestRosterStore:
    """Tests for reading and replacing roster data."""

    def test_replace_active_tracks(self, tmp_path):
        async def scenario(roster):
            await roster.replace_active_tracks([track(100, 1, title='Old'), track(200, 3)])
            await roster.replace_active_tracks([track(100, 1, title='Renamed'), track(online_id='ab-1', laps=3)])
            return await roster.get_active_tracks()

        tracks = run_with_roster(tmp_path, scenario)

        assert [(t['track_id'], t['online_id'], t['laps'], t['title']) for t in tracks] == [
            (100, None, 1, 'Renamed'),
            (None, 'ab-1', 3, ''),
        ]

    def test_active_tracks_ordered_by_laps(self, tmp_path):
        async def scenario(roster):
            await roster.replace_active_tracks([track(300, 3), track(100, 1), track(200, 1, active=False)])
            return await roster.get_active_tracks()

        tracks = run_with_roster(tmp_path, scenario)

        assert [t['track_id'] for t in tracks] == [100, 300]

    def test_upsert_pilots(self, tmp_path):
        async def scenario(roster):
            await roster.upsert_pilots([
                validate_pilot_entry({'user_id': 1, 'name': 'A'}),
                validate_pilot_entry({'user_id': 2, 'name': 'B'}),
            ])
            await roster.upsert_pilots([validate_pilot_entry({'user_id': 2, 'name': 'B', 'active': False})])
            return await roster.get_active_pilots(), await roster.get_active_pilot_ids()

        pilots, ids = run_with_roster(tmp_path, scenario)

        assert [p['name'] for p in pilots] == ['A']
        assert ids == {1}

    def test_database_errors_become_roster_unavailable(self, tmp_path):
        async def scenario(roster):
            roster.max_retries = 2

            async def failing():
                raise OperationalError("SELECT 1", {}, Exception("database is locked"))

            await roster.execute_with_retry(failing, "probe")

        with pytest.raises(RosterUnavailable):
            run_with_roster(tmp_path, scenario)


class TestDatabase:
    """Tests for the database lifecycle the roster builds on."""

    def test_session_factory_and_ping(self, tmp_path):
        async def scenario():
            db = Database(database_url=f"sqlite+aiosqlite:///{tmp_path / 'hub.db'}")
            before = await db.ping()
            await db.initialize()
            try:
                roster = RosterService(db.session_factory)
                await roster.upsert_pilots([validate_pilot_entry({'user_id': 7, 'name': 'G'})])
                return before, await db.ping(), await roster.get_active_pilot_ids()
            finally:
                await db.close()

        before, after, ids = asyncio.run(scenario())

        assert before is False
        assert after is True
        assert ids == {7}
