"""
Normalization of raw upstream rows into NormalizedResult.

Upstream rows name the same field in several ways; the candidate names live
in RecordAliases and are consulted in priority order.
"""

from typing import Any, Dict, Iterable, Optional, Sequence

from velohub.constants import RecordAliases
from velohub.data_models.leaderboard import NormalizedResult
from velohub.utils.leaderboard_exceptions import UnparseableRecord
from velohub.utils.time_parser import parse_lap_time, coerce_user_id


def first_present(record: Dict[str, Any], aliases: Sequence[str]) -> Optional[Any]:
    """Value of the first alias present with a non-null value."""
    for alias in aliases:
        value = record.get(alias)
        if value is not None:
            return value
    return None


def _text(record: Dict[str, Any], aliases: Sequence[str]) -> str:
    value = first_present(record, aliases)
    return '' if value is None else str(value).strip()


def normalize_record(record: Dict[str, Any]) -> NormalizedResult:
    """Map one raw row onto the canonical shape; the time may be unparseable."""
    lap_time = first_present(record, RecordAliases.LAP_TIME)
    lap_time = '' if lap_time is None else str(lap_time).strip()
    return NormalizedResult(
        user_id=coerce_user_id(first_present(record, RecordAliases.USER_ID)),
        playername=_text(record, RecordAliases.PLAYER_NAME),
        country=_text(record, RecordAliases.COUNTRY),
        model_name=_text(record, RecordAliases.MODEL_NAME),
        sim_version=_text(record, RecordAliases.SIM_VERSION),
        device_type=_text(record, RecordAliases.DEVICE_TYPE),
        lap_time=lap_time,
        lap_time_ms=parse_lap_time(lap_time),
    )


def normalize_rankable(record: Any) -> NormalizedResult:
    """
    Normalize a row that is going to be ranked.

    Raises:
        UnparseableRecord: If the row is not a mapping or its identity is not numeric
    """
    if not isinstance(record, dict):
        raise UnparseableRecord("row is not an object")
    result = normalize_record(record)
    if result.user_id is None:
        raise UnparseableRecord(f"user_id {record.get('user_id')!r} is not numeric", record)
    return result


def upstream_user_ids(records: Iterable[Dict[str, Any]]) -> list:
    """Distinct numeric identities in upstream order."""
    seen = {}
    for record in records:
        user_id = coerce_user_id(first_present(record, RecordAliases.USER_ID))
        if user_id is not None:
            seen.setdefault(user_id, None)
    return list(seen)
