"""
aiohttp application factory for the leaderboard hub.

Wires the services into the application and renders every error as a JSON
payload.
"""

from typing import Optional
import logging

from aiohttp import web

from velohub.utils.leaderboard_exceptions import LeaderboardException

logger = logging.getLogger(__name__)

LEADERBOARD_SERVICE = web.AppKey("leaderboard_service", object)
ROSTER_SERVICE = web.AppKey("roster_service", object)
NOTIFICATION_SERVICE = web.AppKey("notification_service", object)
DATABASE = web.AppKey("database", object)
ADMIN_KEY = web.AppKey("admin_key", object)
SIM_VERSION = web.AppKey("sim_version", str)


@web.middleware
async def error_middleware(request: web.Request, handler):
    """Render hub exceptions with their status, anything unexpected as a bare 500."""
    try:
        return await handler(request)
    except web.HTTPException:
        raise
    except LeaderboardException as e:
        if e.status >= 500:
            logger.error(f"{request.method} {request.path} failed: {e}")
        else:
            logger.info(f"{request.method} {request.path} rejected: {e}")
        return web.json_response(e.to_payload(), status=e.status)
    except Exception:
        logger.exception(f"Unexpected error in {request.method} {request.path}")
        return web.json_response({"error": "Internal server error"}, status=500)


def create_app(
    leaderboard_service,
    roster_service,
    notification_service=None,
    database=None,
    admin_key: Optional[str] = None,
    sim_version: str = "",
) -> web.Application:
    """Build the application with its routes and shared services."""
    from velohub.web import admin, leaderboard

    app = web.Application(middlewares=[error_middleware])
    app[LEADERBOARD_SERVICE] = leaderboard_service
    app[ROSTER_SERVICE] = roster_service
    app[NOTIFICATION_SERVICE] = notification_service
    app[DATABASE] = database
    app[ADMIN_KEY] = admin_key
    app[SIM_VERSION] = sim_version

    leaderboard.setup_routes(app)
    admin.setup_routes(app)
    return app
