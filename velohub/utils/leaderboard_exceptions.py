"""
Custom exceptions for the leaderboard hub with user-facing error messages.

Each exception carries the HTTP status the web layer answers with.
"""

from typing import Optional


class LeaderboardException(Exception):
    """Base exception for leaderboard-related errors."""
    status = 500

    def __init__(self, message: str, user_message: str = None):
        super().__init__(message)
        self.user_message = user_message or message

    def to_payload(self) -> dict:
        return {"error": self.user_message}

class InvalidParameters(LeaderboardException):
    """Raised when the caller supplies an unusable track or lap count."""
    status = 400

    def __init__(self, reason: str):
        super().__init__(f"Invalid parameters: {reason}", reason)

class AdminAuthError(LeaderboardException):
    """Raised when the admin shared secret is missing or wrong."""
    status = 401

    def __init__(self):
        super().__init__(
            "Admin key missing or mismatched",
            "Unauthorized"
        )

class UpstreamError(LeaderboardException):
    """Base class for failures talking to the leaderboard provider."""
    status = 502

    def __init__(self, message: str, user_message: str = None,
                 upstream_status: Optional[int] = None, body: str = ""):
        super().__init__(message, user_message)
        self.upstream_status = upstream_status
        self.body = body

    def to_payload(self) -> dict:
        payload = super().to_payload()
        if self.body:
            payload["detail"] = self.body
        if self.upstream_status is not None:
            payload["upstream_status"] = self.upstream_status
        return payload

class UpstreamAuthMissing(UpstreamError):
    """Raised before any network call when no API token is configured."""
    status = 401

    def __init__(self):
        super().__init__(
            "VELO_API_TOKEN is not configured",
            "Leaderboard provider token is not configured"
        )

class UpstreamRateLimited(UpstreamError):
    """Raised when the provider answers with a rate-limit status."""
    status = 503

    def __init__(self, upstream_status: int, body: str = ""):
        super().__init__(
            f"Upstream rate limited (HTTP {upstream_status})",
            "Leaderboard provider is rate limiting requests, try again later",
            upstream_status=upstream_status,
            body=body,
        )

class UpstreamProtocolError(UpstreamError):
    """Raised on a non-success status, a non-JSON body or a transport failure."""
    status = 502

    def __init__(self, reason: str, upstream_status: Optional[int] = None, body: str = "",
                 kind: str = "http_status"):
        super().__init__(
            f"Upstream protocol error ({kind}): {reason}",
            "Leaderboard provider returned an invalid response",
            upstream_status=upstream_status,
            body=body,
        )
        self.kind = kind

class RosterUnavailable(LeaderboardException):
    """Raised when the roster store cannot be reached."""
    status = 503

    def __init__(self, operation: str, details: str = None):
        super().__init__(
            f"Roster store error during {operation}: {details}",
            "Roster store is unavailable. Please try again later."
        )

class UnparseableRecord(LeaderboardException):
    """Raised for a single upstream row that cannot take part in ranking."""
    status = 422

    def __init__(self, reason: str, record: dict = None):
        super().__init__(f"Unparseable record: {reason}")
        self.record = record
