"""
Leaderboard data models for the aggregation pipeline.

Provides immutable data transfer objects passed between the upstream client,
the result cache, the aggregation engine and the HTTP layer.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from velohub.constants import LapConstants, DiagnosticConstants
from velohub.utils.leaderboard_exceptions import InvalidParameters


class TrackMode(Enum):
    OFFICIAL = "official"
    UNOFFICIAL = "unofficial"


@dataclass(frozen=True)
class TrackRef:
    """Identifies one upstream leaderboard."""
    mode: TrackMode
    laps: int
    track_id: Optional[int] = None
    online_id: Optional[str] = None

    def __post_init__(self):
        if self.laps not in LapConstants.VALID_LAPS:
            raise InvalidParameters("laps must be 1 or 3")
        if self.mode is TrackMode.OFFICIAL:
            if self.track_id is None or self.online_id is not None:
                raise InvalidParameters("official tracks need a track_id and no online_id")
            if self.track_id <= 0:
                raise InvalidParameters("track_id must be a positive integer")
        else:
            if not self.online_id or self.track_id is not None:
                raise InvalidParameters("unofficial tracks need an online_id and no track_id")

    @classmethod
    def official(cls, track_id: int, laps: int) -> "TrackRef":
        return cls(mode=TrackMode.OFFICIAL, laps=laps, track_id=track_id)

    @classmethod
    def unofficial(cls, online_id: str, laps: int) -> "TrackRef":
        return cls(mode=TrackMode.UNOFFICIAL, laps=laps, online_id=online_id)

    @property
    def race_mode(self) -> int:
        return LapConstants.RACE_MODE_BY_LAPS[self.laps]

    @property
    def identity(self) -> str:
        if self.mode is TrackMode.OFFICIAL:
            return f"track:{self.track_id}"
        return f"online:{self.online_id}"

    @property
    def cache_key(self) -> Tuple[str, int]:
        return (self.identity, self.race_mode)

    def id_field(self) -> Tuple[str, Any]:
        """Upstream/response field name and value identifying the track."""
        if self.mode is TrackMode.OFFICIAL:
            return "track_id", self.track_id
        return "online_id", self.online_id


@dataclass(frozen=True)
class NormalizedResult:
    """Canonical shape of one upstream row."""
    user_id: Optional[int]
    playername: str
    country: str
    model_name: str
    sim_version: str
    device_type: str
    lap_time: str
    lap_time_ms: Optional[int]  # None when the time is unparseable

    @property
    def has_time(self) -> bool:
        return self.lap_time_ms is not None


@dataclass(frozen=True)
class RankedResult:
    """Single leaderboard row with its position."""
    position: int
    result: NormalizedResult

    def to_dict(self) -> Dict[str, Any]:
        r = self.result
        return {
            "position": self.position,
            "user_id": r.user_id,
            "playername": r.playername,
            "country": r.country,
            "model_name": r.model_name,
            "sim_version": r.sim_version,
            "device_type": r.device_type,
            "lap_time": r.lap_time,
            "lap_time_ms": r.lap_time_ms,
        }


@dataclass(frozen=True)
class CacheEntry:
    """Raw upstream rows with the time they were fetched."""
    raw: Tuple[Dict[str, Any], ...]
    fetched_at: float


@dataclass(frozen=True)
class AggregationPolicy:
    """Switches for the behaviors that diverged between server iterations."""
    filter_by_roster: bool = True
    empty_roster_shows_all: bool = False
    dedupe_by_user: bool = True
    include_unparsed: bool = False
    unparsed_preview_limit: int = DiagnosticConstants.UNPARSED_PREVIEW_LIMIT


@dataclass(frozen=True)
class LeaderboardRequest:
    """Caller-supplied leaderboard query."""
    track_id: Optional[int] = None
    online_id: Optional[str] = None
    laps: Optional[int] = None
    filter_all: bool = False
    include_unparsed: bool = False
    use_cache: bool = True


@dataclass(frozen=True)
class LeaderboardResult:
    """Ranked leaderboard for one track."""
    track: TrackRef
    results: List[RankedResult] = field(default_factory=list)
    cached: bool = False
    stale: bool = False
    unparsed_truncated: bool = False

    def to_dict(self) -> Dict[str, Any]:
        id_name, id_value = self.track.id_field()
        return {
            id_name: id_value,
            "laps": self.track.laps,
            "race_mode": self.track.race_mode,
            "stale": self.stale,
            "results": [row.to_dict() for row in self.results],
        }
