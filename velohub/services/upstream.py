"""
Client for the Velocidrone leaderboard API.

Builds the form-encoded request for one track/lap mode, posts it with the
bearer token and returns the raw result rows. Failures are raised as typed
UpstreamError subclasses so the aggregation engine can decide between
propagating and falling back to cached data.
"""

import asyncio
import json
import logging
from typing import Any, Dict, List, Optional
from urllib.parse import urlencode

import aiohttp

from velohub.constants import UpstreamConstants
from velohub.data_models.leaderboard import TrackRef
from velohub.utils.leaderboard_exceptions import (
    UpstreamAuthMissing, UpstreamRateLimited, UpstreamProtocolError
)

logger = logging.getLogger(__name__)


class VelocidroneClient:
    """Async client for the leaderboard provider sharing one HTTP session."""

    def __init__(
        self,
        api_url: str,
        token: Optional[str],
        sim_version: str,
        timeout: float = 20,
        page_size: int = UpstreamConstants.DEFAULT_PAGE_SIZE,
        protected_track_value: int = 1,
        session: Optional[aiohttp.ClientSession] = None,
    ):
        self.api_url = api_url
        self.token = token
        self.sim_version = sim_version
        self.timeout = aiohttp.ClientTimeout(total=timeout)
        self.page_size = page_size
        self.protected_track_value = protected_track_value
        self._session = session
        self._owns_session = session is None

    @property
    def has_token(self) -> bool:
        return bool(self.token)

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(timeout=self.timeout)
            self._owns_session = True
        return self._session

    def build_post_data(self, track: TrackRef, offset: int = UpstreamConstants.DEFAULT_OFFSET,
                        count: Optional[int] = None) -> str:
        """Url-encoded query string describing the leaderboard to fetch."""
        id_name, id_value = track.id_field()
        return urlencode([
            (id_name, id_value),
            ('sim_version', self.sim_version),
            ('offset', offset),
            ('count', self.page_size if count is None else count),
            ('protected_track_value', self.protected_track_value),
            ('race_mode', track.race_mode),
        ])

    def build_request_body(self, track: TrackRef, offset: int = UpstreamConstants.DEFAULT_OFFSET,
                           count: Optional[int] = None) -> Dict[str, str]:
        return {UpstreamConstants.POST_DATA_FIELD: self.build_post_data(track, offset, count)}

    def _headers(self) -> Dict[str, str]:
        return {
            'Authorization': f'Bearer {self.token}',
            'Accept': 'application/json',
        }

    async def fetch_leaderboard(self, track: TrackRef, offset: int = UpstreamConstants.DEFAULT_OFFSET,
                                count: Optional[int] = None) -> List[Dict[str, Any]]:
        """
        Fetch raw leaderboard rows for one track.

        Args:
            track: Track and lap mode to query
            offset: Paging offset
            count: Page size, defaults to the configured page size

        Returns:
            Raw rows as decoded from the provider's JSON

        Raises:
            UpstreamAuthMissing: If no token is configured (no request is made)
            UpstreamRateLimited: If the provider answers 429
            UpstreamProtocolError: On any other non-2xx status, non-JSON body or transport failure
        """
        if not self.token:
            raise UpstreamAuthMissing()

        body = self.build_request_body(track, offset, count)
        logger.debug(f"Requesting leaderboard {track.identity} race_mode={track.race_mode}")

        try:
            async with self._get_session().post(
                self.api_url, data=body, headers=self._headers(), timeout=self.timeout
            ) as response:
                status = response.status
                text = await response.text()
        except asyncio.TimeoutError as e:
            raise UpstreamProtocolError("request timed out", kind="transport") from e
        except aiohttp.ClientError as e:
            raise UpstreamProtocolError(str(e), kind="transport") from e

        if status == UpstreamConstants.RATE_LIMIT_STATUS:
            logger.warning(f"Upstream rate limited for {track.identity}")
            raise UpstreamRateLimited(status, text)
        if not 200 <= status < 300:
            logger.error(f"Upstream returned HTTP {status} for {track.identity}")
            raise UpstreamProtocolError(f"HTTP {status}", upstream_status=status, body=text)

        return self.parse_results(text, status)

    @staticmethod
    def parse_results(text: str, status: int = 200) -> List[Dict[str, Any]]:
        """Extract the result rows from a successful response body."""
        try:
            payload = json.loads(text)
        except ValueError as e:
            raise UpstreamProtocolError(
                "response body is not JSON", upstream_status=status, body=text[:500], kind="invalid_json"
            ) from e

        rows = payload.get(UpstreamConstants.RESULTS_FIELD) if isinstance(payload, dict) else None
        if not isinstance(rows, list):
            return []
        return [row for row in rows if isinstance(row, dict)]

    async def close(self):
        if self._session is not None and self._owns_session and not self._session.closed:
            await self._session.close()
