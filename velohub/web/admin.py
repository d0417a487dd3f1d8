"""
Admin routes guarded by the shared-secret x-admin-key header.
"""

from typing import Any
import hmac
import json
import logging

from aiohttp import web

from velohub.services.roster import validate_track_entry, validate_pilot_entry
from velohub.utils.leaderboard_exceptions import AdminAuthError, InvalidParameters
from velohub.web.app import ADMIN_KEY, NOTIFICATION_SERVICE, ROSTER_SERVICE

logger = logging.getLogger(__name__)

ADMIN_HEADER = 'x-admin-key'


def require_admin(request: web.Request):
    """Raise AdminAuthError unless the header matches the configured key."""
    expected = request.app[ADMIN_KEY]
    supplied = request.headers.get(ADMIN_HEADER, '')
    if not expected or not supplied:
        raise AdminAuthError()
    if not hmac.compare_digest(supplied.encode('utf-8'), expected.encode('utf-8')):
        logger.warning(f"Rejected admin request from {request.remote}")
        raise AdminAuthError()


async def _json_body(request: web.Request) -> Any:
    try:
        return await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError):
        raise InvalidParameters("request body must be valid JSON")


def _list_field(body: Any, name: str) -> list:
    if not isinstance(body, dict) or not isinstance(body.get(name), list):
        raise InvalidParameters(f"body must be an object with a '{name}' list")
    return body[name]


async def set_tracks(request: web.Request) -> web.Response:
    """Deactivate every track, then upsert the supplied entries."""
    require_admin(request)
    body = await _json_body(request)
    entries = [validate_track_entry(entry) for entry in _list_field(body, 'entries')]

    tracks = await request.app[ROSTER_SERVICE].replace_active_tracks(entries)

    notifier = request.app[NOTIFICATION_SERVICE]
    if notifier is not None:
        await notifier.notify_tracks_updated(tracks)

    return web.json_response({"ok": True, "tracks": tracks})


async def upsert_pilots(request: web.Request) -> web.Response:
    require_admin(request)
    body = await _json_body(request)
    pilots = [validate_pilot_entry(entry) for entry in _list_field(body, 'pilots')]

    count = await request.app[ROSTER_SERVICE].upsert_pilots(pilots)
    return web.json_response({"ok": True, "count": count})


def setup_routes(app: web.Application):
    app.router.add_post('/api/admin/set-tracks', set_tracks)
    app.router.add_post('/api/admin/pilots', upsert_pilots)
