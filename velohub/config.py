import os
from dotenv import load_dotenv

load_dotenv()


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() == 'true'


class Config:
    """Leaderboard hub configuration settings"""

    # HTTP server settings
    HOST = os.getenv('HOST', '0.0.0.0')
    PORT = int(os.getenv('PORT', 3000))

    # Database settings
    DATABASE_URL = os.getenv('DATABASE_URL', 'sqlite:///velohub.db')

    DEBUG = _env_bool('DEBUG', 'False')
    # Directory for dated log files; empty disables file logging
    LOG_DIR = os.getenv('LOG_DIR', 'logs')

    # Velocidrone upstream settings
    VELO_API_URL = os.getenv('VELO_API_URL', 'https://velocidrone.co.uk/api/leaderboard')
    VELO_API_TOKEN = os.getenv('VELO_API_TOKEN')
    SIM_VERSION = os.getenv('SIM_VERSION', '1.16')
    UPSTREAM_TIMEOUT_SECONDS = float(os.getenv('UPSTREAM_TIMEOUT_SECONDS', 20))
    UPSTREAM_PAGE_SIZE = int(os.getenv('UPSTREAM_PAGE_SIZE', 200))
    PROTECTED_TRACK_VALUE = int(os.getenv('PROTECTED_TRACK_VALUE', 1))

    # Result cache TTL, 10 minutes by default
    CACHE_TTL_SECONDS = float(os.getenv('CACHE_TTL_SECONDS', 600))

    # Admin and notifications
    ADMIN_KEY = os.getenv('ADMIN_KEY')
    NOTIFY_WEBHOOK_URL = os.getenv('NOTIFY_WEBHOOK_URL')

    # Aggregation policy
    EMPTY_ROSTER_SHOWS_ALL = _env_bool('EMPTY_ROSTER_SHOWS_ALL', 'False')
    DEDUPE_BY_USER = _env_bool('DEDUPE_BY_USER', 'True')
    INCLUDE_UNPARSED = _env_bool('INCLUDE_UNPARSED', 'False')
    UNPARSED_PREVIEW_LIMIT = int(os.getenv('UNPARSED_PREVIEW_LIMIT', 50))

    @classmethod
    def get_async_database_url(cls) -> str:
        """Database URL with the sqlite driver swapped for aiosqlite"""
        database_url = cls.DATABASE_URL
        if database_url.startswith('sqlite:///'):
            database_url = database_url.replace('sqlite:///', 'sqlite+aiosqlite:///')
        return database_url

    @classmethod
    def policy(cls):
        """Build the aggregation policy from the current settings"""
        from velohub.data_models.leaderboard import AggregationPolicy

        return AggregationPolicy(
            empty_roster_shows_all=cls.EMPTY_ROSTER_SHOWS_ALL,
            dedupe_by_user=cls.DEDUPE_BY_USER,
            include_unparsed=cls.INCLUDE_UNPARSED,
            unparsed_preview_limit=cls.UNPARSED_PREVIEW_LIMIT,
        )

    @classmethod
    def validate(cls):
        """Validate that required configuration is present"""
        if not 0 < cls.PORT < 65536:
            raise ValueError("PORT must be between 1 and 65535")
        if cls.CACHE_TTL_SECONDS < 0:
            raise ValueError("CACHE_TTL_SECONDS must not be negative")
        if cls.UPSTREAM_PAGE_SIZE < 1:
            raise ValueError("UPSTREAM_PAGE_SIZE must be positive")
        if cls.UNPARSED_PREVIEW_LIMIT < 0:
            raise ValueError("UNPARSED_PREVIEW_LIMIT must not be negative")
