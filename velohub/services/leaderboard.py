"""
Leaderboard aggregation service.

Resolves the track to query, serves raw upstream rows from the result cache
or the provider, then normalizes, filters against the active roster, keeps
each pilot's best lap, sorts and assigns positions.
"""

from typing import Any, Dict, List, Optional, Sequence, Set, Tuple
import asyncio
import logging

from velohub.constants import DiagnosticConstants, LapConstants
from velohub.data_models.leaderboard import (
    AggregationPolicy, CacheEntry, LeaderboardRequest, LeaderboardResult,
    NormalizedResult, RankedResult, TrackRef
)
from velohub.services.normalization import normalize_rankable, upstream_user_ids
from velohub.services.result_cache import ResultCache, CacheKey
from velohub.utils.leaderboard_exceptions import (
    InvalidParameters, RosterUnavailable, UnparseableRecord, UpstreamRateLimited
)

logger = logging.getLogger(__name__)


def best_per_user(results: Sequence[NormalizedResult]) -> List[NormalizedResult]:
    """
    Keep one row per user: the lowest parseable lap time.

    A row without a parseable time survives only when the user has no
    parseable row at all. Survivors keep the slot of the user's first row.
    """
    slots: Dict[int, int] = {}
    kept: List[NormalizedResult] = []
    for result in results:
        slot = slots.get(result.user_id)
        if slot is None:
            slots[result.user_id] = len(kept)
            kept.append(result)
            continue
        current = kept[slot]
        if not result.has_time:
            continue
        if not current.has_time or result.lap_time_ms < current.lap_time_ms:
            kept[slot] = result
    return kept


def sort_by_lap_time(results: Sequence[NormalizedResult]) -> List[NormalizedResult]:
    """Stable ascending sort with unparseable times last."""
    return sorted(results, key=lambda r: (not r.has_time, r.lap_time_ms or 0))


def rank_results(
    records: Sequence[Dict[str, Any]],
    pilot_ids: Optional[Set[int]],
    policy: AggregationPolicy,
    include_unparsed: bool = False,
) -> Tuple[List[RankedResult], bool]:
    """
    Turn raw upstream rows into a ranked leaderboard.

    Args:
        records: Raw upstream rows
        pilot_ids: Active roster identities, or None to skip roster filtering
        policy: Aggregation switches
        include_unparsed: Return every row even when no time parses

    Returns:
        Ranked rows and whether the unparsed preview was truncated
    """
    normalized = []
    skipped = 0
    for record in records:
        try:
            normalized.append(normalize_rankable(record))
        except UnparseableRecord as e:
            skipped += 1
            logger.debug(str(e))
    if skipped:
        logger.info(f"Excluded {skipped} upstream rows without a numeric user_id")

    if pilot_ids is not None:
        if pilot_ids:
            normalized = [r for r in normalized if r.user_id in pilot_ids]
        elif not policy.empty_roster_shows_all:
            normalized = []

    if policy.dedupe_by_user:
        normalized = best_per_user(normalized)

    truncated = False
    include_unparsed = include_unparsed or policy.include_unparsed
    if not include_unparsed and not any(r.has_time for r in normalized):
        if len(normalized) > policy.unparsed_preview_limit:
            normalized = normalized[:policy.unparsed_preview_limit]
            truncated = True

    ordered = sort_by_lap_time(normalized)
    return [RankedResult(position=i, result=r) for i, r in enumerate(ordered, start=1)], truncated


class LeaderboardService:
    """Aggregation engine serving ranked leaderboards per track and lap mode."""

    def __init__(self, roster_service, upstream_client, cache: ResultCache,
                 policy: Optional[AggregationPolicy] = None):
        self.roster_service = roster_service
        self.upstream_client = upstream_client
        self.cache = cache
        self.policy = policy or AggregationPolicy()
        # One upstream call per key at a time
        self._inflight: Dict[CacheKey, asyncio.Task] = {}

    async def get_active_tracks(self) -> List[Dict[str, Any]]:
        """Active roster tracks, empty when the roster store is unavailable."""
        try:
            return await self.roster_service.get_active_tracks()
        except RosterUnavailable as e:
            logger.warning(f"Serving empty track list: {e}")
            return []

    async def get_active_pilot_ids(self) -> Set[int]:
        """Active roster pilot ids, empty when the roster store is unavailable."""
        try:
            return await self.roster_service.get_active_pilot_ids()
        except RosterUnavailable as e:
            logger.warning(f"Serving with empty roster: {e}")
            return set()

    @staticmethod
    def _track_from_config(config: Dict[str, Any]) -> Optional[TrackRef]:
        try:
            if config.get('track_id') is not None:
                return TrackRef.official(config['track_id'], config['laps'])
            return TrackRef.unofficial(config.get('online_id'), config['laps'])
        except InvalidParameters as e:
            logger.warning(f"Skipping unusable track config {config}: {e.user_message}")
            return None

    async def resolve_track(self, request: LeaderboardRequest) -> TrackRef:
        """
        Resolve the track to query from explicit parameters or the roster.

        Raises:
            InvalidParameters: If laps is not 1 or 3, both ids are given, or no track is available
        """
        laps = request.laps
        if laps is not None and laps not in LapConstants.VALID_LAPS:
            raise InvalidParameters("laps must be 1 or 3")
        if request.track_id is not None and request.online_id is not None:
            raise InvalidParameters("use either track_id or online_id, not both")

        if request.track_id is not None or request.online_id is not None:
            if laps is None:
                raise InvalidParameters("laps must be 1 or 3")
            if request.track_id is not None:
                return TrackRef.official(request.track_id, laps)
            return TrackRef.unofficial(request.online_id, laps)

        for config in await self.get_active_tracks():
            if laps is not None and config.get('laps') != laps:
                continue
            track = self._track_from_config(config)
            if track is not None:
                return track
        raise InvalidParameters("no track given and no active track configured")

    async def _fetch_and_store(self, track: TrackRef) -> CacheEntry:
        raw = await self.upstream_client.fetch_leaderboard(track)
        logger.info(f"Fetched {len(raw)} upstream rows for {track.identity} race_mode={track.race_mode}")
        return self.cache.put(track.cache_key, raw)

    def _forget_inflight(self, key: CacheKey, task: asyncio.Task):
        if self._inflight.get(key) is task:
            del self._inflight[key]
        if not task.cancelled():
            # Mark the exception retrieved; waiters re-raise it themselves
            task.exception()

    async def _fetch_shared(self, track: TrackRef) -> CacheEntry:
        """Fetch through a shared task so concurrent misses make one upstream call.

        The task is shielded: a caller that goes away does not cancel the
        upstream call, whose result still lands in the cache.
        """
        key = track.cache_key
        task = self._inflight.get(key)
        if task is None:
            task = asyncio.create_task(self._fetch_and_store(track))
            self._inflight[key] = task
            task.add_done_callback(lambda t, key=key: self._forget_inflight(key, t))
        return await asyncio.shield(task)

    async def get_raw_records(self, track: TrackRef, use_cache: bool = True) -> Tuple[Tuple[Dict[str, Any], ...], bool, bool]:
        """
        Raw rows for a track.

        Returns:
            (rows, served_from_cache, stale)

        Raises:
            UpstreamError: When the provider fails and no cached rows can stand in
        """
        key = track.cache_key
        entry = self.cache.get(key)
        if use_cache and entry is not None and self.cache.is_fresh(entry):
            logger.debug(f"Cache hit for {key}")
            return entry.raw, True, False

        logger.debug(f"Cache miss for {key}")
        try:
            fresh = await self._fetch_shared(track)
        except UpstreamRateLimited:
            entry = self.cache.get(key) or entry
            if entry is None:
                raise
            logger.warning(
                f"Upstream rate limited for {key}, serving cached rows "
                f"{self.cache.age(entry):.0f}s old"
            )
            return entry.raw, True, True
        return fresh.raw, False, False

    async def get_leaderboard(self, request: LeaderboardRequest) -> LeaderboardResult:
        """Ranked leaderboard for the requested (or first active) track."""
        track = await self.resolve_track(request)
        raw, cached, stale = await self.get_raw_records(track, use_cache=request.use_cache)

        pilot_ids = None
        if self.policy.filter_by_roster and not request.filter_all:
            pilot_ids = await self.get_active_pilot_ids()

        results, truncated = rank_results(
            raw, pilot_ids, self.policy, include_unparsed=request.include_unparsed
        )
        return LeaderboardResult(
            track=track,
            results=results,
            cached=cached,
            stale=stale,
            unparsed_truncated=truncated,
        )

    async def get_overlap_report(self, request: LeaderboardRequest) -> Dict[str, Any]:
        """Diagnostic comparison of upstream identities against the active roster."""
        track = await self.resolve_track(request)
        raw, cached, stale = await self.get_raw_records(track, use_cache=request.use_cache)

        pilot_ids = await self.get_active_pilot_ids()
        upstream_ids = upstream_user_ids(raw)
        overlap = [user_id for user_id in upstream_ids if user_id in pilot_ids]

        id_name, id_value = track.id_field()
        return {
            id_name: id_value,
            'laps': track.laps,
            'race_mode': track.race_mode,
            'cached': cached,
            'stale': stale,
            'velo_count': len(raw),
            'velo_unique_users': len(upstream_ids),
            'pilots_active': len(pilot_ids),
            'overlap_count': len(overlap),
            'overlap_user_ids': overlap[:DiagnosticConstants.MAX_OVERLAP_IDS],
        }

    async def close(self):
        """Cancel upstream calls still in flight."""
        for task in list(self._inflight.values()):
            task.cancel()
        self._inflight.clear()
