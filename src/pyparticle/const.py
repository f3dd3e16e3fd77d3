"""Constants for pyparticle library."""

from __future__ import annotations


# API Configuration
DEFAULT_BASE_URL = "https://api.particle.io"
DEFAULT_TIMEOUT = 30  # seconds
DEFAULT_CLIENT_SECRET = "client_secret_here"  # noqa: S105 - public placeholder expected by the token endpoint

# Response conventions
INVALID_TOKEN_MARKER = "invalid_token"  # noqa: S105 - substring of the error field, not a secret
NO_DEVICES_FOUND = "No devices found"

# Event Streams
MY_DEVICES = "mine"

# Key Provisioning
PUBLIC_KEY_FILENAME = "cli"
PUBLIC_KEY_ORDER_PREFIX = "manual_"

# Username Validation
EMAIL_REQUIRED_CHARACTERS = ("@", ".")
