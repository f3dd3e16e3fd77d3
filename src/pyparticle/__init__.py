"""Python client library for the Particle device cloud.

This package provides an async, session-aware client for the Particle REST
API: accounts and access tokens, devices, firmware, functions and variables,
events and webhooks.

The library is organized into layers:
1. **Transport** (pyparticle.transport): Single HTTP requests over aiohttp
2. **Classifier** (pyparticle.classifier): Typed results from response bodies
3. **API Layer** (pyparticle.api): One method per API operation
4. **Client Layer** (pyparticle.client): Token session, lifecycle and the
   cached device attribute aggregation

Example:
    Basic usage:

    ```python
    from pyparticle import ParticleClient

    async with ParticleClient() as client:
        await client.api.login("particle", "user@example.com", "password")

        # Every device with its functions and variables, sorted by name
        devices = await client.get_all_attributes()

        # Call a function on the first online device
        online = [device for device in devices if device.get("connected")]
        await client.api.call_function(online[0]["id"], "led", "on")
    ```

    Listening to events:

    ```python
    async with ParticleClient(access_token=token) as client:
        stream = await client.api.get_event_stream(device_id="mine", sink=print)
        await stream.wait()
    ```
"""

from __future__ import annotations

from pyparticle.api import ParticleAPI
from pyparticle.auth import TokenSession
from pyparticle.classifier import classify, has_bad_token, raise_for_result
from pyparticle.client import ParticleClient
from pyparticle.events import EventStream
from pyparticle.exceptions import (
    AuthenticationError,
    InvalidParameterError,
    InvalidTokenError,
    LocalFileError,
    NoDevicesFoundError,
    ParticleConnectionError,
    ParticleError,
    ParticleServerError,
    ParticleTimeoutError,
    TokenChangedError,
    UnexpectedResponseError,
)
from pyparticle.models import (
    ApiResult,
    EventStreamRequest,
    InvalidToken,
    ServerFailure,
    Success,
    TransportFailure,
    UnexpectedBody,
    WebhookRequest,
)
from pyparticle.transport import HttpTransport, TransportResponse


__version__ = "0.1.0"

__all__ = [
    "ApiResult",
    "AuthenticationError",
    "EventStream",
    "EventStreamRequest",
    "HttpTransport",
    "InvalidParameterError",
    "InvalidToken",
    "InvalidTokenError",
    "LocalFileError",
    "NoDevicesFoundError",
    "ParticleAPI",
    "ParticleClient",
    "ParticleConnectionError",
    "ParticleError",
    "ParticleServerError",
    "ParticleTimeoutError",
    "ServerFailure",
    "Success",
    "TokenChangedError",
    "TokenSession",
    "TransportFailure",
    "TransportResponse",
    "UnexpectedBody",
    "UnexpectedResponseError",
    "WebhookRequest",
    "__version__",
    "classify",
    "has_bad_token",
    "raise_for_result",
]
