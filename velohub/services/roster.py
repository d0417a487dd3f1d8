"""
Roster gateway for the leaderboard hub.

Reads active tracks and pilots from the roster store and applies the admin
track/pilot updates. Every database failure surfaces as RosterUnavailable so
callers can degrade instead of failing the whole request.
"""

from typing import Any, Dict, Iterable, List, Optional, Set
import logging

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from velohub.constants import LapConstants
from velohub.database.models import TrackConfig, Pilot
from velohub.services.base import BaseService
from velohub.utils.leaderboard_exceptions import InvalidParameters
from velohub.utils.time_parser import coerce_user_id

logger = logging.getLogger(__name__)


def _optional_int(entry: Dict[str, Any], key: str) -> Optional[int]:
    value = entry.get(key)
    if value in (None, ''):
        return None
    coerced = coerce_user_id(value)
    if coerced is None:
        raise InvalidParameters(f"{key} must be an integer")
    return coerced


def validate_track_entry(entry: Any) -> Dict[str, Any]:
    """
    Validate one admin track entry and return its normalized form.

    Args:
        entry: Mapping with title, scenery_id, track_id or online_id, laps, active

    Raises:
        InvalidParameters: If the entry is malformed
    """
    if not isinstance(entry, dict):
        raise InvalidParameters("each entry must be an object")

    track_id = _optional_int(entry, 'track_id')
    online_id = entry.get('online_id')
    if online_id is not None and not isinstance(online_id, str):
        raise InvalidParameters("online_id must be a string")
    online_id = (online_id or '').strip() or None

    if (track_id is None) == (online_id is None):
        raise InvalidParameters("each entry needs exactly one of track_id or online_id")
    if track_id is not None and track_id <= 0:
        raise InvalidParameters("track_id must be a positive integer")

    laps = _optional_int(entry, 'laps')
    if laps not in LapConstants.VALID_LAPS:
        raise InvalidParameters("laps must be 1 or 3")

    active = entry.get('active', True)
    if not isinstance(active, bool):
        raise InvalidParameters("active must be a boolean")

    title = entry.get('title') or ''
    if not isinstance(title, str):
        raise InvalidParameters("title must be a string")

    return {
        'title': title.strip(),
        'scenery_id': _optional_int(entry, 'scenery_id'),
        'track_id': track_id,
        'online_id': online_id,
        'laps': laps,
        'active': active,
    }


def validate_pilot_entry(entry: Any) -> Dict[str, Any]:
    """Validate one admin pilot entry; user_id must coerce to an integer."""
    if not isinstance(entry, dict):
        raise InvalidParameters("each pilot must be an object")
    user_id = coerce_user_id(entry.get('user_id'))
    if user_id is None:
        raise InvalidParameters("user_id must be an integer")
    active = entry.get('active', True)
    if not isinstance(active, bool):
        raise InvalidParameters("active must be a boolean")
    return {
        'user_id': user_id,
        'name': str(entry.get('name') or '').strip(),
        'country': str(entry.get('country') or '').strip(),
        'active': active,
    }


class RosterService(BaseService):
    """Read/update access to registered tracks and pilots."""

    async def get_active_tracks(self) -> List[Dict[str, Any]]:
        """Active tracks ordered by lap count."""
        async def _query():
            async with self.get_session() as session:
                result = await session.execute(
                    select(TrackConfig)
                    .where(TrackConfig.active == True)
                    .order_by(TrackConfig.laps, TrackConfig.id)
                )
                return [track.to_dict() for track in result.scalars().all()]

        return await self.execute_with_retry(_query, "get_active_tracks")

    async def get_active_pilots(self) -> List[Dict[str, Any]]:
        """Active pilots ordered by user id."""
        async def _query():
            async with self.get_session() as session:
                result = await session.execute(
                    select(Pilot)
                    .where(Pilot.active == True)
                    .order_by(Pilot.user_id)
                )
                return [pilot.to_dict() for pilot in result.scalars().all()]

        return await self.execute_with_retry(_query, "get_active_pilots")

    async def get_active_pilot_ids(self) -> Set[int]:
        pilots = await self.get_active_pilots()
        return {pilot['user_id'] for pilot in pilots}

    async def deactivate_all_tracks(self, session: AsyncSession) -> None:
        await session.execute(update(TrackConfig).values(active=False))

    async def upsert_track(self, session: AsyncSession, entry: Dict[str, Any]) -> TrackConfig:
        """Insert or update a track keyed by (track_id, laps) or (online_id, laps)."""
        if entry['track_id'] is not None:
            query = select(TrackConfig).where(
                TrackConfig.track_id == entry['track_id'],
                TrackConfig.laps == entry['laps'],
            )
        else:
            query = select(TrackConfig).where(
                TrackConfig.online_id == entry['online_id'],
                TrackConfig.laps == entry['laps'],
            )
        track = (await session.execute(query)).scalar_one_or_none()

        if track is None:
            track = TrackConfig(**entry)
            session.add(track)
        else:
            for key, value in entry.items():
                setattr(track, key, value)
        return track

    async def replace_active_tracks(self, entries: Iterable[Dict[str, Any]]) -> List[Dict[str, Any]]:
        """
        Deactivate every track, then upsert the given entries atomically.

        Args:
            entries: Entries already passed through validate_track_entry

        Returns:
            The upserted tracks as dicts
        """
        entries = list(entries)

        async def _replace():
            async with self.get_session() as session:
                await self.deactivate_all_tracks(session)
                tracks = [await self.upsert_track(session, entry) for entry in entries]
                await session.flush()
                return [track.to_dict() for track in tracks]

        tracks = await self.execute_with_retry(_replace, "replace_active_tracks")
        logger.info(f"Replaced active track set with {len(tracks)} entries")
        return tracks

    async def upsert_pilots(self, entries: Iterable[Dict[str, Any]]) -> int:
        """Insert or update pilots keyed by user_id."""
        entries = list(entries)

        async def _upsert():
            async with self.get_session() as session:
                for entry in entries:
                    result = await session.execute(
                        select(Pilot).where(Pilot.user_id == entry['user_id'])
                    )
                    pilot = result.scalar_one_or_none()
                    if pilot is None:
                        session.add(Pilot(**entry))
                    else:
                        for key, value in entry.items():
                            setattr(pilot, key, value)
                return len(entries)

        count = await self.execute_with_retry(_upsert, "upsert_pilots")
        logger.info(f"Upserted {count} pilots")
        return count
