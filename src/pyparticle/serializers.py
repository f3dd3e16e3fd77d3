"""Serialization of request parameters into Particle API form bodies.

This module provides stateless functions that turn Python values and request
descriptors into the flat string mappings the form-encoded endpoints expect.

Encoding Rules:
    - ``None`` values are omitted entirely
    - Booleans become ``"true"``/``"false"``
    - Nested mappings are flattened with bracket keys (``headers[X-Key]``)
    - Everything else goes through ``str()``
"""

from __future__ import annotations

import time
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

from pyparticle.const import PUBLIC_KEY_FILENAME, PUBLIC_KEY_ORDER_PREFIX


if TYPE_CHECKING:
    from pyparticle.models import WebhookRequest


def serialize_value(value: Any) -> str:
    """Serialize a scalar form value.

    Example:
        >>> serialize_value(True)
        'true'
        >>> serialize_value(42)
        '42'
    """
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def serialize_form(fields: Mapping[str, Any]) -> dict[str, str]:
    """Serialize a mapping of form fields, flattening nested mappings.

    Args:
        fields: Field names mapped to values. Values may be nested mappings.

    Returns:
        Flat mapping of field names to string values, without None entries.

    Example:
        >>> serialize_form({"event": "temp", "headers": {"X-Key": "abc"}, "json": None})
        {'event': 'temp', 'headers[X-Key]': 'abc'}
    """
    form: dict[str, str] = {}
    for name, value in fields.items():
        _add_field(form, name, value)
    return form


def _add_field(form: dict[str, str], name: str, value: Any) -> None:
    if value is None:
        return
    if isinstance(value, Mapping):
        for key, nested in value.items():
            _add_field(form, f"{name}[{key}]", nested)
        return
    form[name] = serialize_value(value)


def serialize_webhook_form(webhook: WebhookRequest, access_token: str | None) -> dict[str, str]:
    """Serialize a webhook descriptor for the form-encoded create endpoint.

    Args:
        webhook: Webhook fields.
        access_token: Token sent in the ``access_token`` field.

    Returns:
        Flat form mapping.
    """
    return serialize_form(
        {
            "event": webhook.event,
            "url": webhook.url,
            "deviceid": webhook.device_id,
            "access_token": access_token,
            "requestType": webhook.request_type,
            "headers": webhook.headers,
            "json": webhook.json,
            "query": webhook.query,
            "auth": webhook.auth,
            "mydevices": webhook.mydevices,
            "rejectUnauthorized": webhook.reject_unauthorized,
        }
    )


def serialize_public_key_form(
    device_id: str,
    public_key: bytes | str,
    algorithm: str,
    access_token: str | None,
    product_id: str | int | None = None,
) -> dict[str, str]:
    """Serialize a public key provisioning request.

    The order field is a unique manual order ID derived from the current
    time in milliseconds.

    Args:
        device_id: Device the key belongs to.
        public_key: PEM encoded public key.
        algorithm: Key algorithm (``rsa`` or ``ecc``).
        access_token: Token sent in the ``access_token`` field.
        product_id: Optional product the device belongs to.

    Returns:
        Flat form mapping.
    """
    if isinstance(public_key, bytes):
        public_key = public_key.decode("utf-8")

    return serialize_form(
        {
            "deviceID": device_id,
            "publicKey": public_key,
            "order": f"{PUBLIC_KEY_ORDER_PREFIX}{int(time.time() * 1000)}",
            "filename": PUBLIC_KEY_FILENAME,
            "algorithm": algorithm,
            "access_token": access_token,
            "product_id": product_id,
        }
    )
