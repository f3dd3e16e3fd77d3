"""Data models for Particle API results and request descriptors."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from pyparticle.const import MY_DEVICES


if TYPE_CHECKING:
    from pyparticle.exceptions import ParticleConnectionError


__all__ = [
    "ApiResult",
    "EventStreamRequest",
    "InvalidToken",
    "ServerFailure",
    "Success",
    "TransportFailure",
    "UnexpectedBody",
    "WebhookRequest",
]


# -------------------------------------------------------------------------
# Results
# -------------------------------------------------------------------------


@dataclass(frozen=True)
class Success:
    """Successful API call.

    Attributes:
        body: Parsed response body.
        status: HTTP status code, if known.
    """

    body: Any
    status: int | None = None

    @property
    def ok(self) -> bool:
        """Check if the call succeeded."""
        return True


@dataclass(frozen=True)
class InvalidToken:
    """The API rejected the access token as invalid or expired.

    Attributes:
        body: Response body carrying the invalid-token marker.
        status: HTTP status code, if known.
    """

    body: Any = None
    status: int | None = None

    @property
    def ok(self) -> bool:
        """Check if the call succeeded."""
        return False


@dataclass(frozen=True)
class ServerFailure:
    """Application-level error reported in the response body.

    Attributes:
        error: Raw ``error`` value (string or object).
        messages: Entries of the ``errors`` list.
        description: ``error_description`` value, sent by the OAuth endpoint.
        status: HTTP status code, if known.
    """

    error: Any = None
    messages: list[str] = field(default_factory=list)
    description: str | None = None
    status: int | None = None

    @property
    def ok(self) -> bool:
        """Check if the call succeeded."""
        return False

    @property
    def message(self) -> str:
        """Human-readable message, preferring the description over raw errors."""
        if self.description:
            return self.description
        if self.messages:
            return "\n".join(str(message) for message in self.messages)
        if self.error is None:
            return "Unknown server error"
        return str(self.error)


@dataclass(frozen=True)
class UnexpectedBody:
    """Response that matched no known success or error shape.

    Attributes:
        body: The raw response body.
        status: HTTP status code, if known.
    """

    body: Any
    status: int | None = None

    @property
    def ok(self) -> bool:
        """Check if the call succeeded."""
        return False


@dataclass(frozen=True)
class TransportFailure:
    """Request never produced a response.

    Attributes:
        error: The connection error raised by the transport.
    """

    error: ParticleConnectionError

    @property
    def ok(self) -> bool:
        """Check if the call succeeded."""
        return False


ApiResult = Success | InvalidToken | ServerFailure | UnexpectedBody | TransportFailure


# -------------------------------------------------------------------------
# Request descriptors
# -------------------------------------------------------------------------


@dataclass
class WebhookRequest:
    """Fields of a webhook created through the form-encoded endpoint.

    Attributes:
        event: Event name prefix that triggers the hook.
        url: Target URL the hook calls.
        device_id: Optional device filter.
        request_type: HTTP method the hook uses (GET, POST, ...).
        headers: Extra headers the hook sends.
        json: JSON template for the hook body.
        query: Query parameters the hook appends.
        auth: Basic auth credentials for the target.
        mydevices: Only trigger on events from the owner's devices.
        reject_unauthorized: Verify the target's TLS certificate.
    """

    event: str
    url: str
    device_id: str | None = None
    request_type: str | None = None
    headers: dict[str, Any] | None = None
    json: dict[str, Any] | None = None
    query: dict[str, Any] | None = None
    auth: dict[str, Any] | None = None
    mydevices: bool | None = None
    reject_unauthorized: bool | None = None


@dataclass(frozen=True)
class EventStreamRequest:
    """Selects which event stream to subscribe to.

    Attributes:
        event_name: Optional event name prefix to filter on.
        device_id: None for the public firehose, ``"mine"`` for the caller's
            devices, otherwise a single device ID.
    """

    event_name: str | None = None
    device_id: str | None = None

    @property
    def path(self) -> str:
        """Endpoint path for this subscription."""
        if not self.device_id:
            path = "/v1/events"
        elif self.device_id == MY_DEVICES:
            path = "/v1/devices/events"
        else:
            path = f"/v1/devices/{self.device_id}/events"

        if self.event_name:
            path += f"/{self.event_name}"
        return path
