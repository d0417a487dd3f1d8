"""
Tests for the Discord webhook notification side channel.
"""

import asyncio

from velohub.services.notifications import NotificationService, TrackEmbeds


class TestTrackEmbeds:
    """Tests for track announcement embeds."""

    def test_lists_active_tracks(self):
        embed = TrackEmbeds.tracks_updated([
            {'title': 'Bando', 'track_id': 1500, 'laps': 1, 'active': True},
            {'title': '', 'online_id': 'ab-1', 'laps': 3, 'active': True},
            {'title': 'Retired', 'track_id': 9, 'laps': 1, 'active': False},
        ])
        assert "**Bando** • 1 lap" in embed.description
        assert "**Track ab-1** • 3 laps" in embed.description
        assert "Retired" not in embed.description

    def test_no_active_tracks(self):
        embed = TrackEmbeds.tracks_updated([])
        assert embed.description == "No active tracks right now."


class TestNotificationService:
    """Tests for webhook delivery."""

    def test_disabled_without_webhook(self):
        service = NotificationService(None)
        assert not service.enabled
        assert asyncio.run(service.notify_tracks_updated([])) is False

    def test_invalid_webhook_url_is_logged_not_raised(self):
        async def scenario():
            service = NotificationService("not-a-webhook-url")
            try:
                return await service.notify_tracks_updated([])
            finally:
                await service.close()

        assert asyncio.run(scenario()) is False
