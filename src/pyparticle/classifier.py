"""Classification of Particle API response bodies.

Every operation passes its parsed response body through ``classify`` so the
invalid-token check and the embedded ``ok``/``error``/``errors`` conventions
are handled in one place. Operations whose success is signalled differently
(e.g. rename echoing the new name) pass their own ``accept`` predicate.
"""

from __future__ import annotations

import logging
from http import HTTPStatus
from typing import TYPE_CHECKING, Any

from pyparticle.const import INVALID_TOKEN_MARKER
from pyparticle.exceptions import InvalidTokenError, ParticleServerError, UnexpectedResponseError
from pyparticle.models import InvalidToken, ServerFailure, Success, TransportFailure, UnexpectedBody


if TYPE_CHECKING:
    from collections.abc import Callable

    from pyparticle.models import ApiResult


__all__ = [
    "accept_ok",
    "classify",
    "has_bad_token",
    "raise_for_result",
]

_LOGGER = logging.getLogger(__name__)


def has_bad_token(body: Any) -> bool:
    """Check if a response body reports an invalid or expired token.

    Args:
        body: Parsed response body.

    Returns:
        True if the body's ``error`` string contains the invalid-token marker.
    """
    if not isinstance(body, dict):
        return False

    error = body.get("error")
    if isinstance(error, str) and INVALID_TOKEN_MARKER in error:
        _LOGGER.warning("Please login - it appears your access token may have expired")
        return True
    return False


def accept_ok(body: Any) -> bool:
    """Success predicate for endpoints that always answer with ``ok: true``."""
    return isinstance(body, dict) and body.get("ok") is True


def classify(
    body: Any,
    *,
    status: int | None = None,
    accept: Callable[[Any], bool] | None = None,
) -> ApiResult:
    """Turn a parsed response body into a typed result.

    Args:
        body: Parsed response body (dict, list, string or None).
        status: Optional HTTP status code of the response.
        accept: Optional per-operation success predicate. When given, a body
            that is neither accepted nor a recognised error is unexpected.

    Returns:
        One of Success, InvalidToken, ServerFailure or UnexpectedBody.
    """
    if has_bad_token(body):
        return InvalidToken(body=body, status=status)

    if accept is not None:
        if accept(body):
            return Success(body=body, status=status)
    elif accept_ok(body):
        return Success(body=body, status=status)

    if isinstance(body, dict) and (body.get("error") or body.get("errors")):
        errors = body.get("errors")
        if errors is not None and not isinstance(errors, list):
            errors = [errors]
        return ServerFailure(
            error=body.get("error"),
            messages=errors or [],
            description=body.get("error_description"),
            status=status,
        )

    if accept is not None:
        return UnexpectedBody(body=body, status=status)

    if status is not None and status >= HTTPStatus.BAD_REQUEST:
        return UnexpectedBody(body=body, status=status)

    if isinstance(body, dict) and body.get("ok") is False:
        return UnexpectedBody(body=body, status=status)

    return Success(body=body, status=status)


def raise_for_result(result: ApiResult) -> Any:
    """Unwrap a result, raising the matching exception for failures.

    Args:
        result: Result produced by ``classify`` or the transport.

    Returns:
        The response body of a Success.

    Raises:
        ParticleConnectionError: For TransportFailure.
        InvalidTokenError: For InvalidToken.
        ParticleServerError: For ServerFailure.
        UnexpectedResponseError: For UnexpectedBody.
    """
    if isinstance(result, Success):
        return result.body

    if isinstance(result, TransportFailure):
        raise result.error

    if isinstance(result, InvalidToken):
        msg = "Invalid token"
        raise InvalidTokenError(msg)

    if isinstance(result, ServerFailure):
        raise ParticleServerError(
            result.message,
            error=result.error,
            messages=result.messages,
            status=result.status,
        )

    msg = f"Unexpected response from API: {result.body!r}"
    raise UnexpectedResponseError(msg, body=result.body, status=result.status)
