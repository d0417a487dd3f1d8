"""
Public leaderboard routes: ranked results, active tracks, health and the
roster overlap diagnostic.
"""

from typing import Optional
import logging

from aiohttp import web

from velohub.data_models.leaderboard import LeaderboardRequest
from velohub.utils.leaderboard_exceptions import InvalidParameters
from velohub.utils.time_parser import coerce_user_id
from velohub.web.app import DATABASE, LEADERBOARD_SERVICE, NOTIFICATION_SERVICE, SIM_VERSION

logger = logging.getLogger(__name__)


def _int_param(request: web.Request, name: str) -> Optional[int]:
    raw = request.query.get(name, '').strip()
    if not raw:
        return None
    value = coerce_user_id(raw)
    if value is None:
        raise InvalidParameters(f"{name} must be an integer")
    return value


def parse_leaderboard_request(request: web.Request) -> LeaderboardRequest:
    """Build a LeaderboardRequest from query parameters."""
    track_id = _int_param(request, 'track_id')
    if track_id is not None and track_id <= 0:
        raise InvalidParameters("track_id must be a positive integer")
    online_id = request.query.get('online_id', '').strip() or None

    return LeaderboardRequest(
        track_id=track_id,
        online_id=online_id,
        laps=_int_param(request, 'laps'),
        filter_all=request.query.get('filter') == 'all',
        include_unparsed=request.query.get('include_unparsed') == '1',
        use_cache=request.query.get('use_cache') != '0',
    )


async def get_leaderboard(request: web.Request) -> web.Response:
    service = request.app[LEADERBOARD_SERVICE]
    result = await service.get_leaderboard(parse_leaderboard_request(request))
    return web.json_response(result.to_dict())


async def get_debug_leaderboard(request: web.Request) -> web.Response:
    service = request.app[LEADERBOARD_SERVICE]
    report = await service.get_overlap_report(parse_leaderboard_request(request))
    return web.json_response(report)


async def get_active_tracks(request: web.Request) -> web.Response:
    service = request.app[LEADERBOARD_SERVICE]
    tracks = await service.get_active_tracks()
    return web.json_response({"tracks": tracks})


async def get_health(request: web.Request) -> web.Response:
    service = request.app[LEADERBOARD_SERVICE]
    database = request.app[DATABASE]
    notifier = request.app[NOTIFICATION_SERVICE]
    upstream = getattr(service, 'upstream_client', None)

    return web.json_response({
        "ok": True,
        "has_token": bool(getattr(upstream, 'has_token', False)),
        "has_webhook": bool(notifier is not None and notifier.enabled),
        "database": await database.ping() if database is not None else False,
        "cache_entries": len(service.cache),
        "sim_version": request.app[SIM_VERSION],
    })


def setup_routes(app: web.Application):
    app.router.add_get('/api/leaderboard', get_leaderboard)
    app.router.add_get('/api/debug/leaderboard', get_debug_leaderboard)
    app.router.add_get('/api/tracks/active', get_active_tracks)
    app.router.add_get('/api/health', get_health)
