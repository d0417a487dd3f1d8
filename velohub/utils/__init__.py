"""
Utility package for the leaderboard hub.
"""

from .time_parser import parse_lap_time, format_lap_time, coerce_user_id

__all__ = ['parse_lap_time', 'format_lap_time', 'coerce_user_id']
