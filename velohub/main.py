import logging
from typing import Optional

from aiohttp import web

from velohub.config import Config
from velohub.database.database import Database
from velohub.services.leaderboard import LeaderboardService
from velohub.services.notifications import NotificationService
from velohub.services.result_cache import ResultCache
from velohub.services.roster import RosterService
from velohub.services.upstream import VelocidroneClient
from velohub.utils.logger import setup_logger, setup_root_logging
from velohub.web.app import create_app

class LeaderboardHub:
    """Owns the database, services and HTTP application for one process."""

    def __init__(self):
        self.logger = setup_logger(__name__)
        self.db: Optional[Database] = None
        self.upstream: Optional[VelocidroneClient] = None
        self.notifier: Optional[NotificationService] = None
        self.leaderboard_service: Optional[LeaderboardService] = None

    async def setup(self) -> web.Application:
        """Initialize services and build the application"""
        self.logger.info("Setting up leaderboard hub...")

        self.db = Database()
        await self.db.initialize()

        roster_service = RosterService(self.db.session_factory)
        self.upstream = VelocidroneClient(
            api_url=Config.VELO_API_URL,
            token=Config.VELO_API_TOKEN,
            sim_version=Config.SIM_VERSION,
            timeout=Config.UPSTREAM_TIMEOUT_SECONDS,
            page_size=Config.UPSTREAM_PAGE_SIZE,
            protected_track_value=Config.PROTECTED_TRACK_VALUE,
        )
        if not self.upstream.has_token:
            self.logger.warning("VELO_API_TOKEN is not set; leaderboard requests will fail until it is configured")

        self.notifier = NotificationService(Config.NOTIFY_WEBHOOK_URL)
        self.leaderboard_service = LeaderboardService(
            roster_service,
            self.upstream,
            ResultCache(ttl_seconds=Config.CACHE_TTL_SECONDS),
            policy=Config.policy(),
        )

        app = create_app(
            self.leaderboard_service,
            roster_service,
            notification_service=self.notifier,
            database=self.db,
            admin_key=Config.ADMIN_KEY,
            sim_version=Config.SIM_VERSION,
        )
        app.on_cleanup.append(self.close)

        self.logger.info("Leaderboard hub setup complete!")
        return app

    async def close(self, app: Optional[web.Application] = None):
        """Cleanup when the server is shutting down"""
        self.logger.info("Shutting down leaderboard hub...")

        if self.leaderboard_service:
            await self.leaderboard_service.close()
        if self.upstream:
            await self.upstream.close()
        if self.notifier:
            await self.notifier.close()
        if self.db:
            await self.db.close()

def main():
    """Main entry point"""
    Config.validate()
    setup_root_logging()

    hub = LeaderboardHub()
    try:
        web.run_app(hub.setup(), host=Config.HOST, port=Config.PORT)
    except Exception as e:
        logging.error(f"Fatal error: {e}", exc_info=True)
        raise

if __name__ == "__main__":
    main()
