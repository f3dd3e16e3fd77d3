"""Session-aware client for the Particle cloud.

This module ties the token session, the HTTP transport and the operation set
together and adds the one composite operation with client-owned state:
collecting the attributes of every device into a cached, sorted list.
"""

from __future__ import annotations

import asyncio
import locale
import logging
from typing import TYPE_CHECKING, Any, cast

from aiohttp import ClientSession  # noqa: TC002 - Used at runtime for type hints

from pyparticle.api import ParticleAPI
from pyparticle.auth import TokenSession
from pyparticle.const import DEFAULT_BASE_URL, DEFAULT_CLIENT_SECRET, DEFAULT_TIMEOUT, NO_DEVICES_FOUND
from pyparticle.exceptions import NoDevicesFoundError, TokenChangedError, UnexpectedResponseError
from pyparticle.transport import HttpTransport


if TYPE_CHECKING:
    from types import TracebackType

_LOGGER = logging.getLogger(__name__)


class ParticleClient:
    """Client for the Particle cloud API.

    The client owns the token session and the attribute cache. All API
    operations are available through ``client.api``.

    Example:
        Basic usage with automatic session management:

        ```python
        from pyparticle import ParticleClient

        async with ParticleClient() as client:
            await client.api.login("particle", "user@example.com", "password")

            # Devices with their functions and variables, sorted by name
            for device in await client.get_all_attributes():
                print(device["name"], device.get("functions", []))
        ```

        Reusing a stored token and an application-managed session:

        ```python
        from aiohttp import ClientSession
        from pyparticle import ParticleClient

        async with ClientSession() as session:
            client = ParticleClient(access_token=stored_token, session=session)

            async with client:
                if client.auth.ready():
                    devices = await client.api.list_devices()
        ```

    Attributes:
        api: Operation set bound to this client's token session.
        auth: Token session shared by every operation.
    """

    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        access_token: str | None = None,
        *,
        session: ClientSession | None = None,
        timeout: float = DEFAULT_TIMEOUT,
        client_secret: str = DEFAULT_CLIENT_SECRET,
    ) -> None:
        """Initialize the Particle client.

        Args:
            base_url: Base URL for the API. Defaults to the Particle cloud.
            access_token: Optional token from a previous login.
            session: Optional aiohttp ClientSession. If not provided, one will be
                created when entering the context manager.
            timeout: Request timeout in seconds.
            client_secret: OAuth client secret sent when minting tokens.
        """
        self._auth = TokenSession(base_url=base_url, access_token=access_token)
        self._transport = HttpTransport(session=session, timeout=timeout)
        self._api = ParticleAPI(auth=self._auth, transport=self._transport, client_secret=client_secret)

        self._attribute_cache: list[dict[str, Any]] | None = None

    @property
    def api(self) -> ParticleAPI:
        """Get the operation set."""
        return self._api

    @property
    def auth(self) -> TokenSession:
        """Get the token session."""
        return self._auth

    @property
    def attribute_cache(self) -> list[dict[str, Any]] | None:
        """Get the cached device attributes, or None if nothing is cached."""
        return self._attribute_cache

    async def __aenter__(self) -> ParticleClient:
        """Enter the context manager.

        Creates the HTTP session if needed. Does not log in.

        Returns:
            Self for use in async with statements.
        """
        await self._api.__aenter__()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        """Exit the context manager, closing the HTTP session if the client created it.

        Args:
            exc_type: Exception type if an exception occurred.
            exc_val: Exception value if an exception occurred.
            exc_tb: Exception traceback if an exception occurred.
        """
        await self._api.__aexit__(exc_type, exc_val, exc_tb)

    def logout(self) -> None:
        """Forget the access token and every cached device."""
        self._api.logout()
        self.invalidate_attribute_cache()

    def invalidate_attribute_cache(self) -> None:
        """Drop the cached device attributes so the next call refetches them."""
        if self._attribute_cache is not None:
            _LOGGER.debug("Attribute cache invalidated")
        self._attribute_cache = None

    async def get_all_attributes(self) -> list[dict[str, Any]]:
        """Get every device of the account with its attributes.

        Returns the cached list when present. Otherwise lists the devices,
        fetches the attributes of every connected device concurrently and
        merges them over the listing record. Disconnected devices keep their
        listing record. The result is sorted by name, case-insensitively and
        in the collation order of the current locale, and cached until
        ``invalidate_attribute_cache()`` is called.

        All attribute requests settle before the outcome is decided; if any
        of them failed, the first failure is raised and nothing is cached.

        Returns:
            Device records sorted by name.

        Raises:
            NoDevicesFoundError: If the account has no devices. The cache is cleared.
            UnexpectedResponseError: If the listing is not a list of device records
                or a connected device has no ID.
            TokenChangedError: If the access token changed while requests were
                in flight. Nothing is cached.
            ParticleError: If listing devices or any attribute request failed.
        """
        if self._attribute_cache is not None:
            return self._attribute_cache

        _LOGGER.info("Polling server to see what devices are online, and what functions are available")

        token = self._auth.get()
        devices = await self._api.list_devices()

        _check_listing(devices)

        if not devices:
            _LOGGER.info("No devices found")
            self._attribute_cache = None
            raise NoDevicesFoundError(NO_DEVICES_FOUND)

        results = await asyncio.gather(
            *[self._collect_attributes(device) for device in devices],
            return_exceptions=True,
        )

        for result in results:
            if isinstance(result, BaseException):
                _LOGGER.debug("Attribute collection failed: %s", result)
                raise result

        if self._auth.get() != token:
            msg = "Access token changed while collecting device attributes"
            raise TokenChangedError(msg)

        merged = sorted(
            cast("list[dict[str, Any]]", results),
            key=lambda device: locale.strxfrm((device.get("name") or "").casefold()),
        )
        self._attribute_cache = merged
        _LOGGER.debug("Cached attributes for %d device(s)", len(merged))
        return merged

    async def _collect_attributes(self, device: dict[str, Any]) -> dict[str, Any]:
        """Enrich a connected device with its attributes.

        Args:
            device: Listing record.

        Returns:
            The listing record for a disconnected device, otherwise the
            listing record updated with the attributes response.
        """
        if not device.get("connected"):
            return device

        attributes = await self._api.get_attributes(device.get("id"))
        if not isinstance(attributes, dict):
            return device
        return {**device, **attributes}


def _check_listing(devices: Any) -> None:
    """Reject a device listing the aggregator cannot fan out over.

    Raises:
        UnexpectedResponseError: If the listing is not a list of objects or a
            connected device has no ID.
    """
    if not isinstance(devices, list) or not all(isinstance(device, dict) for device in devices):
        msg = f"Unexpected device listing from API: {devices!r}"
        raise UnexpectedResponseError(msg, body=devices)

    for device in devices:
        if device.get("connected") and not device.get("id"):
            msg = f"Connected device without an ID in listing: {device!r}"
            raise UnexpectedResponseError(msg, body=devices)
