"""Custom exceptions for pyparticle library."""

from __future__ import annotations

from typing import Any


class ParticleError(Exception):
    """Base exception for all Particle errors."""


class ParticleConnectionError(ParticleError):
    """Exception raised when a request never produced a response."""


class ParticleTimeoutError(ParticleConnectionError):
    """Exception raised when API requests timeout."""


class LocalFileError(ParticleConnectionError):
    """Exception raised when a local file cannot be read or written.

    Attributes:
        path: Path of the file that failed.
    """

    def __init__(self, message: str = "", path: str | None = None) -> None:
        """Initialize LocalFileError.

        Args:
            message: Error message.
            path: Optional path of the file that failed.
        """
        super().__init__(message)
        self.path = path


class InvalidTokenError(ParticleError):
    """Exception raised when the API reports an invalid or expired access token."""


class ParticleServerError(ParticleError):
    """Exception raised for application-level errors reported in a response body.

    Attributes:
        error: Raw ``error`` value from the body (string or object).
        messages: Messages from the body's ``errors`` list.
        status: HTTP status code of the response.
    """

    def __init__(
        self,
        message: str = "",
        *,
        error: Any = None,
        messages: list[str] | None = None,
        status: int | None = None,
    ) -> None:
        """Initialize ParticleServerError.

        Args:
            message: Error message.
            error: Optional raw ``error`` value from the body.
            messages: Optional list of messages from the body.
            status: Optional HTTP status code.
        """
        super().__init__(message)
        self.error = error
        self.messages = messages or []
        self.status = status


class UnexpectedResponseError(ParticleError):
    """Exception raised when a response matches no known success or error shape.

    Attributes:
        body: The unrecognised response body.
        status: HTTP status code of the response.
    """

    def __init__(self, message: str = "", body: Any = None, status: int | None = None) -> None:
        """Initialize UnexpectedResponseError.

        Args:
            message: Error message.
            body: Optional response body.
            status: Optional HTTP status code.
        """
        super().__init__(message)
        self.body = body
        self.status = status


class AuthenticationError(ParticleError):
    """Exception raised for login failures."""


class NoDevicesFoundError(ParticleError):
    """Exception raised when the account has no devices to aggregate."""


class TokenChangedError(ParticleError):
    """Exception raised when the access token changed while requests were in flight."""


class InvalidParameterError(ParticleError):
    """Exception raised for invalid parameter values.

    Attributes:
        parameter_name: Optional name of the invalid parameter.
        value: Optional value that was invalid.
    """

    def __init__(
        self,
        message: str = "",
        parameter_name: str | None = None,
        value: Any = None,
    ) -> None:
        """Initialize InvalidParameterError.

        Args:
            message: Error message.
            parameter_name: Optional name of the invalid parameter.
            value: Optional value that was invalid.
        """
        super().__init__(message)
        self.parameter_name = parameter_name
        self.value = value
