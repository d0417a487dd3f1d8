"""
Hub-wide constants for the Velocidrone leaderboard hub.

Upstream field names, lap/race-mode mapping and limits used across the
services and HTTP layer.
"""


class LapConstants:
    """Constants related to lap counts and upstream race modes."""

    # Upstream raceMode code per lap count
    RACE_MODE_BY_LAPS = {1: 3, 3: 6}

    VALID_LAPS = frozenset(RACE_MODE_BY_LAPS)


class UpstreamConstants:
    """Constants for the Velocidrone leaderboard API."""

    # Field holding the result rows in a successful response
    RESULTS_FIELD = "tracktimes"

    # Form field wrapping the url-encoded query string
    POST_DATA_FIELD = "post_data"

    RATE_LIMIT_STATUS = 429

    DEFAULT_OFFSET = 0
    DEFAULT_PAGE_SIZE = 200


class RecordAliases:
    """Candidate field names for upstream rows, consulted in priority order."""

    USER_ID = ("user_id",)
    LAP_TIME = ("lap_time", "best_time", "time", "laptime", "best_lap", "bestlap")
    PLAYER_NAME = ("playername", "name", "username")
    COUNTRY = ("country", "flag")
    MODEL_NAME = ("model_name", "model")
    SIM_VERSION = ("sim_version", "simversion")
    DEVICE_TYPE = ("device_type", "device")


class DiagnosticConstants:
    """Limits for diagnostic payloads."""

    # Preview size when nothing in a leaderboard has a parseable time
    UNPARSED_PREVIEW_LIMIT = 50

    # Overlapping ids listed by the debug endpoint
    MAX_OVERLAP_IDS = 100


class UIConstants:
    """Constants for notification embeds."""

    SUCCESS_COLOR = 0x2ecc71  # Green for success

    WEBHOOK_USERNAME = "Velohub"
