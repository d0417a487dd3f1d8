"""
Velocidrone pilot leaderboard hub.
"""

__version__ = "1.0.0"
