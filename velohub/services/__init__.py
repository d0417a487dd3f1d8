"""
Services package for the leaderboard hub.
"""

from .base import BaseService
from .result_cache import ResultCache
from .roster import RosterService
from .upstream import VelocidroneClient
from .leaderboard import LeaderboardService
from .notifications import NotificationService

__all__ = [
    'BaseService', 'ResultCache', 'RosterService', 'VelocidroneClient',
    'LeaderboardService', 'NotificationService',
]
