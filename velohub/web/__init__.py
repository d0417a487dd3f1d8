"""
HTTP layer for the leaderboard hub.
"""

from .app import create_app

__all__ = ['create_app']
