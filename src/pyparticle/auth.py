"""Access token state for the Particle API."""

from __future__ import annotations

import logging
from datetime import UTC, datetime

from pyparticle.const import DEFAULT_BASE_URL


_LOGGER = logging.getLogger(__name__)


class TokenSession:
    """Hold the bearer token used by every Particle API request.

    The session is owned by one client instance and only changes through
    explicit ``update()``/``clear()`` calls (login and logout). It reports
    readiness but never enforces it: callers decide whether to gate
    privileged operations on ``ready()``.

    No locking is done. Operations read the token once when they build their
    request, so a concurrent ``update()`` only affects requests built after it.

    Attributes:
        base_url: Base URL for the API (without trailing slash).
        access_token: Current bearer token (None if logged out).
        last_updated_at: Timestamp of the last token change (None if never set).
    """

    def __init__(self, base_url: str = DEFAULT_BASE_URL, access_token: str | None = None) -> None:
        """Initialize the token session.

        Args:
            base_url: Base URL for the API. Defaults to the Particle cloud.
            access_token: Optional token from a previous login.
        """
        self.base_url = base_url.rstrip("/")
        self.access_token = access_token
        self.last_updated_at: datetime | None = datetime.now(UTC) if access_token else None

    def ready(self) -> bool:
        """Check if a token is set.

        Returns:
            True if an access token is available, False otherwise.
        """
        has_token = bool(self.access_token)
        if not has_token:
            _LOGGER.debug("Not logged in, no access token available")
        return has_token

    def clear(self) -> None:
        """Drop the access token."""
        self.access_token = None
        self.last_updated_at = None
        _LOGGER.debug("Access token cleared")

    def get(self) -> str | None:
        """Get the current access token."""
        return self.access_token

    def update(self, token: str | None) -> None:
        """Replace the access token.

        Args:
            token: New access token.
        """
        self.access_token = token
        self.last_updated_at = datetime.now(UTC)
        _LOGGER.debug("Access token updated")
