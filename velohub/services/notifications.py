"""
Outbound notifications posted to a Discord channel webhook.

Notifications are a side channel: failures are logged and never reach the
admin request that triggered them.
"""

from typing import Any, Dict, List, Optional
import logging

import aiohttp
import discord

from velohub.constants import UIConstants

logger = logging.getLogger(__name__)


class TrackEmbeds:
    """Embed factory for track announcements."""

    @staticmethod
    def _describe(track: Dict[str, Any]) -> str:
        ident = track.get('track_id') if track.get('track_id') is not None else track.get('online_id')
        laps = track.get('laps')
        title = track.get('title') or f"Track {ident}"
        return f"**{title}** • {laps} lap{'s' if laps != 1 else ''}"

    @staticmethod
    def tracks_updated(tracks: List[Dict[str, Any]]) -> discord.Embed:
        """Create embed announcing the new active track set."""
        active = [t for t in tracks if t.get('active')]
        if active:
            description = "\n".join(TrackEmbeds._describe(t) for t in active)
        else:
            description = "No active tracks right now."
        return discord.Embed(
            title="Active tracks updated",
            description=description,
            color=UIConstants.SUCCESS_COLOR
        )


class NotificationService:
    """Posts embeds to a Discord webhook; a no-op without a webhook URL."""

    def __init__(self, webhook_url: Optional[str], session: Optional[aiohttp.ClientSession] = None):
        self.webhook_url = webhook_url
        self._session = session
        self._owns_session = session is None

    @property
    def enabled(self) -> bool:
        return bool(self.webhook_url)

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession()
            self._owns_session = True
        return self._session

    async def send_embed(self, embed: discord.Embed) -> bool:
        """Send an embed; returns whether it was delivered."""
        if not self.enabled:
            return False
        try:
            webhook = discord.Webhook.from_url(self.webhook_url, session=self._get_session())
            await webhook.send(embed=embed, username=UIConstants.WEBHOOK_USERNAME)
            return True
        except (discord.HTTPException, aiohttp.ClientError, ValueError) as e:
            logger.error(f"Failed to send webhook notification: {e}")
            return False

    async def notify_tracks_updated(self, tracks: List[Dict[str, Any]]) -> bool:
        return await self.send_embed(TrackEmbeds.tracks_updated(tracks))

    async def close(self):
        if self._session is not None and self._owns_session and not self._session.closed:
            await self._session.close()
