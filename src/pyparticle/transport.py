"""HTTP transport for the Particle API.

This module performs single HTTP requests and hands back the status and the
parsed body. It knows nothing about Particle's response conventions; those
are applied by ``pyparticle.classifier``.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from aiohttp import BasicAuth, ClientError, ClientResponse, ClientSession, ClientTimeout, FormData

from pyparticle.const import DEFAULT_TIMEOUT
from pyparticle.exceptions import ParticleConnectionError, ParticleTimeoutError


if TYPE_CHECKING:
    from collections.abc import Mapping
    from types import TracebackType

_LOGGER = logging.getLogger(__name__)


@dataclass
class TransportResponse:
    """Outcome of a request that produced a response.

    Attributes:
        status: HTTP status code.
        body: Parsed JSON body, the raw text if it is not JSON, or the raw
            bytes when the request asked for them.
        content_type: Response content type.
    """

    status: int
    body: Any
    content_type: str = ""

    @property
    def is_json(self) -> bool:
        """Check if the server declared a JSON body."""
        return "json" in self.content_type


def decode_body(data: bytes) -> Any:
    """Decode a response payload, falling back to text when it is not JSON.

    Args:
        data: Raw response payload.

    Returns:
        Parsed JSON value, the decoded text, or None for an empty payload.
    """
    if not data:
        return None
    text = data.decode("utf-8", errors="replace")
    try:
        return json.loads(text)
    except ValueError:
        return text


class HttpTransport:
    """Issue HTTP requests against the Particle API using aiohttp.

    Example:
        ```python
        async with HttpTransport() as transport:
            response = await transport.request(
                "GET",
                "https://api.particle.io/v1/devices",
                params={"access_token": token},
            )
            print(response.status, response.body)
        ```
    """

    def __init__(self, *, session: ClientSession | None = None, timeout: float = DEFAULT_TIMEOUT) -> None:
        """Initialize the transport.

        Args:
            session: Optional aiohttp ClientSession. If not provided, one will be
                created when entering the context manager.
            timeout: Total timeout in seconds for ordinary requests and the
                connect timeout for streaming requests.
        """
        self._session = session
        self._owns_session = session is None
        self._timeout = timeout

    @property
    def session(self) -> ClientSession | None:
        """Get the underlying aiohttp session."""
        return self._session

    async def __aenter__(self) -> HttpTransport:
        """Enter the context manager.

        Creates a new aiohttp session if one wasn't provided during initialization.

        Returns:
            Self for use in async with statements.
        """
        if self._session is None:
            self._session = ClientSession()
            self._owns_session = True
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        """Exit the context manager.

        Closes the session if it was created by this transport.

        Args:
            exc_type: Exception type if an exception occurred.
            exc_val: Exception value if an exception occurred.
            exc_tb: Exception traceback if an exception occurred.
        """
        await self.close()

    async def close(self) -> None:
        """Close the session if this transport created it."""
        if self._owns_session and self._session is not None:
            await self._session.close()
            self._session = None

    def _validate_session(self) -> ClientSession:
        """Validate that the session is initialized and open.

        Returns:
            The open session.

        Raises:
            RuntimeError: If session is not initialized or is closed.
        """
        if self._session is None:
            msg = "Session not initialized. Use 'async with' or provide a session."
            raise RuntimeError(msg)

        if self._session.closed:
            msg = "Session is closed. Cannot make request."
            raise RuntimeError(msg)

        return self._session

    async def request(
        self,
        method: str,
        url: str,
        *,
        params: Mapping[str, str] | None = None,
        data: Mapping[str, str] | FormData | None = None,
        json_data: Any = None,
        headers: Mapping[str, str] | None = None,
        auth: BasicAuth | None = None,
        raw: bool = False,
    ) -> TransportResponse:
        """Make a single HTTP request.

        Args:
            method: HTTP method (GET, PUT, POST, DELETE).
            url: Absolute request URL.
            params: Optional query parameters.
            data: Optional form fields or multipart body.
            json_data: Optional JSON body.
            headers: Optional extra headers.
            auth: Optional HTTP basic auth credentials.
            raw: Return the body as bytes instead of decoding it.

        Returns:
            TransportResponse with status and body.

        Raises:
            RuntimeError: If session is not initialized or is closed.
            ParticleTimeoutError: If the request times out.
            ParticleConnectionError: If the connection fails.
        """
        session = self._validate_session()
        timeout = ClientTimeout(total=self._timeout)

        _LOGGER.debug("%s %s", method, url)

        try:
            async with session.request(
                method,
                url,
                params=params,
                data=data,
                json=json_data,
                headers=headers,
                auth=auth,
                timeout=timeout,
            ) as response:
                payload = await response.read()
                body = payload if raw else decode_body(payload)
                _LOGGER.debug("%s %s returned HTTP %d", method, url, response.status)
                return TransportResponse(status=response.status, body=body, content_type=response.content_type)

        except TimeoutError as exc:
            msg = f"Request to {url} timed out"
            raise ParticleTimeoutError(msg) from exc

        except ClientError as exc:
            msg = f"Failed to connect to API: {exc}"
            raise ParticleConnectionError(msg) from exc

    async def open_stream(
        self,
        url: str,
        *,
        params: Mapping[str, str] | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> ClientResponse:
        """Open a long-lived GET request and return the live response.

        Only connecting is bounded by the timeout; reading is not. The caller
        owns the response and must close it.

        Args:
            url: Absolute request URL.
            params: Optional query parameters.
            headers: Optional extra headers.

        Returns:
            The open aiohttp ClientResponse.

        Raises:
            RuntimeError: If session is not initialized or is closed.
            ParticleTimeoutError: If connecting times out.
            ParticleConnectionError: If the connection fails.
        """
        session = self._validate_session()
        timeout = ClientTimeout(total=None, sock_connect=self._timeout, sock_read=None)

        _LOGGER.debug("GET %s (stream)", url)

        try:
            return await session.get(url, params=params, headers=headers, timeout=timeout)

        except TimeoutError as exc:
            msg = f"Request to {url} timed out"
            raise ParticleTimeoutError(msg) from exc

        except ClientError as exc:
            msg = f"Failed to connect to API: {exc}"
            raise ParticleConnectionError(msg) from exc
