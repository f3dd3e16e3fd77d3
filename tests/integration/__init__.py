"""Integration tests for pyparticle library.

These tests use real API credentials from .env file and make actual API calls.
They are marked with @pytest.mark.integration and skipped by default.

To run integration tests:
    pytest tests/integration -v -m integration

Environment variables read from .env:
    PARTICLE_ACCESS_TOKEN: Existing access token (preferred)
    PARTICLE_USERNAME: Account email, used with PARTICLE_PASSWORD to log in
    PARTICLE_PASSWORD: Account password
    PARTICLE_CLIENT_ID: OAuth client ID (optional, defaults to "particle")
    PARTICLE_API_BASE_URL: API base URL (optional, defaults to production)
"""
