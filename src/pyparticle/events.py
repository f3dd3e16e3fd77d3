"""Live subscriptions to Particle event streams.

An EventStream wraps an open streaming response. Chunks are handed on as
raw bytes exactly as they arrive: frames may be partial or contain several
server-sent events, and no parsing is done here.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Callable  # noqa: TC003 - Used at runtime for type hints
from typing import TYPE_CHECKING

from aiohttp import ClientError

from pyparticle.exceptions import ParticleConnectionError


if TYPE_CHECKING:
    from collections.abc import AsyncIterator
    from types import TracebackType

    from aiohttp import ClientResponse

_LOGGER = logging.getLogger(__name__)


class EventStream:
    """Closable handle for a live event stream.

    Example:
        Forwarding chunks to a callback:

        ```python
        def on_data(chunk: bytes) -> None:
            print(chunk.decode())


        stream = await api.get_event_stream("temperature", "mine", sink=on_data)
        try:
            await stream.wait()
        finally:
            await stream.close()
        ```

        Iterating without a callback:

        ```python
        async with await api.get_event_stream(device_id="mine") as stream:
            async for chunk in stream:
                print(chunk)
        ```

    Attributes:
        url: URL the stream was opened on (without the token).
    """

    def __init__(
        self,
        response: ClientResponse,
        url: str,
        sink: Callable[[bytes], None] | None = None,
    ) -> None:
        """Initialize the stream.

        Args:
            response: Open streaming response. The stream takes ownership.
            url: URL the stream was opened on.
            sink: Optional callback receiving every chunk. When given, chunks
                are forwarded from a background task started immediately.
        """
        self.url = url
        self._response = response
        self._sink = sink
        self._error: ParticleConnectionError | None = None
        self._forward_task: asyncio.Task[None] | None = None
        self._closed = False

        if sink is not None:
            self._forward_task = asyncio.create_task(self._forward_loop())

    @property
    def closed(self) -> bool:
        """Check if the stream was closed by the caller."""
        return self._closed

    async def __aenter__(self) -> EventStream:
        """Enter the context manager."""
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        """Exit the context manager, closing the stream."""
        await self.close()

    async def __aiter__(self) -> AsyncIterator[bytes]:
        """Iterate over raw chunks until the server ends the stream.

        Raises:
            RuntimeError: If chunks are already being forwarded to a sink.
            ParticleConnectionError: If the connection drops while reading.
        """
        if self._forward_task is not None:
            msg = "Stream is forwarding to a sink and cannot be iterated"
            raise RuntimeError(msg)

        try:
            async for chunk in self._response.content.iter_any():
                yield chunk
        except ClientError as exc:
            msg = f"Event stream {self.url} failed: {exc}"
            raise ParticleConnectionError(msg) from exc

    async def _forward_loop(self) -> None:
        """Pass every chunk to the sink until the stream ends."""
        assert self._sink is not None

        try:
            async for chunk in self._response.content.iter_any():
                try:
                    self._sink(chunk)
                except Exception:
                    _LOGGER.exception("Error in event stream sink for %s", self.url)
        except ClientError as exc:
            _LOGGER.warning("Event stream %s failed: %s", self.url, exc)
            msg = f"Event stream {self.url} failed: {exc}"
            self._error = ParticleConnectionError(msg)
            self._error.__cause__ = exc
        else:
            _LOGGER.debug("Event stream ended for %s", self.url)

    async def wait(self) -> None:
        """Wait until the server ends the stream or the stream is closed.

        Only available when chunks are forwarded to a sink; otherwise iterate
        the stream with ``async for``.

        Raises:
            RuntimeError: If the stream was opened without a sink.
            ParticleConnectionError: If the connection dropped while reading.
        """
        if self._forward_task is None:
            msg = "Stream has no sink to wait for; iterate it instead"
            raise RuntimeError(msg)

        await asyncio.wait({self._forward_task})

        if self._error is not None:
            raise self._error

    async def close(self) -> None:
        """Stop forwarding and release the connection."""
        if self._closed:
            return
        self._closed = True

        if self._forward_task is not None and not self._forward_task.done():
            self._forward_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._forward_task

        self._response.close()
        _LOGGER.debug("Closed event stream for %s", self.url)
