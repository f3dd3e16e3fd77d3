"""Pytest configuration and shared fixtures."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from http import HTTPStatus
from typing import TYPE_CHECKING, Any
from unittest.mock import AsyncMock

import pytest
from aiohttp import ClientSession, web

from pyparticle.client import ParticleClient


if TYPE_CHECKING:
    from collections.abc import AsyncGenerator

    from aiohttp.test_utils import TestClient


ACCESS_TOKEN = "test-access-token"
EXPIRED_TOKEN = "expired-token"

INVALID_TOKEN_BODY = {
    "error": "invalid_token",
    "error_description": "The access token provided is invalid.",
}

SAMPLE_DEVICES = [
    {"id": "dev1", "name": "kitchen", "connected": True},
    {"id": "dev2", "name": "Garage", "connected": False},
]


@dataclass
class RecordedRequest:
    """Request as seen by the fake cloud."""

    method: str
    path: str
    query: dict[str, str]
    form: dict[str, Any]
    json: Any
    headers: dict[str, str]


@dataclass
class FakeCloudState:
    """Mutable behaviour of the fake cloud."""

    devices: list[dict[str, Any]] = field(default_factory=lambda: [dict(device) for device in SAMPLE_DEVICES])
    attributes: dict[str, Any] = field(default_factory=dict)
    failing_attributes: set[str] = field(default_factory=set)
    event_chunks: list[bytes] = field(default_factory=list)
    hold_stream: bool = False
    requests: list[RecordedRequest] = field(default_factory=list)

    def count(self, method: str, path: str) -> int:
        """Count recorded requests for a method and path."""
        return sum(1 for request in self.requests if request.method == method and request.path == path)

    @property
    def last(self) -> RecordedRequest:
        """Most recent recorded request."""
        return self.requests[-1]


STATE = web.AppKey("state", FakeCloudState)

FORM_CONTENT_TYPES = ("application/x-www-form-urlencoded", "multipart/form-data")


async def _read_form(request: web.Request) -> dict[str, Any]:
    if request.content_type not in FORM_CONTENT_TYPES:
        return {}

    form: dict[str, Any] = {}
    for name, value in (await request.post()).items():
        if isinstance(value, web.FileField):
            form[name] = (value.filename, value.file.read())
        else:
            form[name] = value
    return form


@web.middleware
async def record_and_authorize(request: web.Request, handler: Any) -> web.StreamResponse:
    """Record every request and reject the expired token like the real cloud."""
    form = await _read_form(request)
    body = await request.json() if request.content_type == "application/json" else None
    request.app[STATE].requests.append(
        RecordedRequest(
            method=request.method,
            path=request.path,
            query=dict(request.query),
            form=form,
            json=body,
            headers=dict(request.headers),
        )
    )
    request["form"] = form

    token = request.query.get("access_token") or form.get("access_token")
    authorization = request.headers.get("Authorization", "")
    if token is None and authorization.startswith("Bearer "):
        token = authorization.removeprefix("Bearer ")

    if token == EXPIRED_TOKEN:
        return web.json_response(INVALID_TOKEN_BODY, status=HTTPStatus.UNAUTHORIZED)
    return await handler(request)


# -------------------------------------------------------------------------
# Fake cloud handlers
# -------------------------------------------------------------------------


async def create_user(request: web.Request) -> web.Response:
    if request["form"]["username"] == "taken@example.com":
        return web.json_response({"ok": False, "errors": ["username already taken"]})
    return web.json_response({"ok": True})


async def create_token(request: web.Request) -> web.Response:
    form = request["form"]
    if form.get("password") != "secret":
        return web.json_response(
            {"error": "invalid_grant", "error_description": "User credentials are invalid"},
            status=HTTPStatus.BAD_REQUEST,
        )
    return web.json_response({"access_token": "minted-token", "token_type": "bearer", "expires_in": 7776000})


async def remove_token(request: web.Request) -> web.Response:
    if request.match_info["token"] == "unknown":
        return web.json_response({"ok": False, "error": "Token not found"}, status=HTTPStatus.NOT_FOUND)
    return web.json_response({"ok": True})


async def list_tokens(request: web.Request) -> web.Response:
    if not request.headers.get("Authorization", "").startswith("Basic "):
        return web.json_response({"ok": False, "errors": ["Unauthorized"]}, status=HTTPStatus.UNAUTHORIZED)
    return web.json_response([{"token": "abc", "expires_at": "2026-12-01T00:00:00.000Z", "client": "user"}])


async def list_devices(request: web.Request) -> web.Response:
    return web.json_response(request.app[STATE].devices)


async def claim_device(request: web.Request) -> web.Response:
    device_id = request["form"]["id"]
    if device_id == "owned":
        return web.json_response({"ok": False, "errors": ["device is already claimed", "by someone else"]})
    return web.json_response({"ok": True, "id": device_id, "user_id": "u1"})


async def remove_device(request: web.Request) -> web.Response:
    return web.json_response({"ok": True, "id": request.match_info["device_id"]})


async def update_device(request: web.Request) -> web.Response:
    device_id = request.match_info["device_id"]
    form = request["form"]

    if request.content_type == "multipart/form-data":
        files = sorted(name for name, value in form.items() if isinstance(value, tuple))
        return web.json_response({"ok": True, "id": device_id, "status": "Update started", "files": files})

    if "name" in form:
        name = "unchanged" if form["name"] == "rejected" else form["name"]
        return web.json_response({"id": device_id, "name": name})

    return web.json_response({"id": device_id, "connected": True, "signaling": form.get("signal") == "1"})


async def get_attributes(request: web.Request) -> web.Response:
    state = request.app[STATE]
    device_id = request.match_info["device_id"]
    await asyncio.sleep(0)

    if device_id in state.failing_attributes:
        return web.json_response({"ok": False, "error": "Timed out."}, status=HTTPStatus.REQUEST_TIMEOUT)
    if device_id in state.attributes:
        return web.json_response(state.attributes[device_id])
    return web.json_response(
        {"id": device_id, "name": f"core-{device_id}", "functions": ["led"], "variables": {"temp": "double"}}
    )


async def get_variable(request: web.Request) -> web.Response:
    name = request.match_info["name"]
    if name == "missing":
        return web.json_response({"ok": False, "error": "Variable not found"}, status=HTTPStatus.NOT_FOUND)
    return web.json_response({"name": name, "result": 21.5, "coreInfo": {"connected": True}})


async def call_function(request: web.Request) -> web.Response:
    return web.json_response({"id": request.match_info["device_id"], "return_value": 1, "connected": True})


async def compile_code(request: web.Request) -> web.Response:
    return web.json_response({"ok": True, "binary_id": "b1", "binary_url": "/v1/binaries/b1", "sizeInfo": "1024"})


async def download_binary(request: web.Request) -> web.Response:
    if request.match_info["binary_id"] == "gone":
        return web.json_response({"ok": False, "error": "Binary not found"}, status=HTTPStatus.NOT_FOUND)
    return web.Response(body=b"\x00\x01firmware\xff", content_type="application/octet-stream")


async def send_public_key(request: web.Request) -> web.Response:
    return web.json_response({"ok": True})


async def publish_event(request: web.Request) -> web.Response:
    if request["form"].get("name") == "forbidden":
        return web.json_response({"ok": False, "error": "Event name is reserved"}, status=HTTPStatus.BAD_REQUEST)
    return web.json_response({"ok": True})


async def create_webhook(request: web.Request) -> web.Response:
    return web.json_response({"ok": True, "id": "hook1"})


async def delete_webhook(request: web.Request) -> web.Response:
    if request.match_info["hook_id"] == "missing":
        return web.json_response({"ok": False, "error": "Webhook not found"}, status=HTTPStatus.NOT_FOUND)
    return web.json_response({"ok": True})


async def list_webhooks(request: web.Request) -> web.Response:
    return web.json_response([{"id": "hook1", "event": "temp", "url": "https://example.com/hook"}])


async def event_stream(request: web.Request) -> web.StreamResponse:
    state = request.app[STATE]
    response = web.StreamResponse(headers={"Content-Type": "text/event-stream"})
    await response.prepare(request)

    for chunk in state.event_chunks:
        await response.write(chunk)

    if state.hold_stream:
        # Heartbeats until the client goes away, bounded so the server can shut down.
        for _ in range(200):
            await asyncio.sleep(0.01)
            await response.write(b":ok\n\n")

    await response.write_eof()
    return response


def build_cloud_app() -> web.Application:
    """Create the fake Particle cloud application."""
    app = web.Application(middlewares=[record_and_authorize])
    app[STATE] = FakeCloudState()

    app.router.add_post("/v1/users", create_user)
    app.router.add_post("/oauth/token", create_token)
    app.router.add_delete("/v1/access_tokens/{token}", remove_token)
    app.router.add_get("/v1/access_tokens", list_tokens)

    # Event routes first: they overlap with the device patterns below
    app.router.add_get("/v1/events", event_stream)
    app.router.add_get("/v1/events/{event_name}", event_stream)
    app.router.add_get("/v1/devices/events", event_stream)
    app.router.add_get("/v1/devices/events/{event_name}", event_stream)
    app.router.add_get("/v1/devices/{device_id}/events", event_stream)
    app.router.add_get("/v1/devices/{device_id}/events/{event_name}", event_stream)
    app.router.add_post("/v1/devices/events", publish_event)

    app.router.add_get("/v1/devices", list_devices)
    app.router.add_post("/v1/devices", claim_device)
    app.router.add_delete("/v1/devices/{device_id}", remove_device)
    app.router.add_put("/v1/devices/{device_id}", update_device)
    app.router.add_get("/v1/devices/{device_id}", get_attributes)
    app.router.add_get("/v1/devices/{device_id}/{name}", get_variable)
    app.router.add_post("/v1/devices/{device_id}/{function_name}", call_function)

    app.router.add_post("/v1/binaries", compile_code)
    app.router.add_get("/v1/binaries/{binary_id}", download_binary)
    app.router.add_post("/v1/provisioning/{device_id}", send_public_key)

    app.router.add_post("/v1/webhooks", create_webhook)
    app.router.add_get("/v1/webhooks", list_webhooks)
    app.router.add_delete("/v1/webhooks/{hook_id}", delete_webhook)

    return app


# -------------------------------------------------------------------------
# Fixtures
# -------------------------------------------------------------------------


@pytest.fixture
async def cloud_server(aiohttp_client: Any) -> TestClient:
    """Start the fake cloud and return a test client bound to it."""
    return await aiohttp_client(build_cloud_app())


@pytest.fixture
def cloud(cloud_server: TestClient) -> FakeCloudState:
    """Behaviour and request log of the running fake cloud."""
    return cloud_server.app[STATE]


@pytest.fixture
def particle(cloud_server: TestClient) -> ParticleClient:
    """Create a logged-in Particle client talking to the fake cloud."""
    return ParticleClient(
        base_url=str(cloud_server.make_url("/")),
        access_token=ACCESS_TOKEN,
        session=cloud_server.session,
    )


@pytest.fixture
async def mock_session() -> AsyncGenerator[ClientSession]:
    """Create a mock aiohttp ClientSession.

    Yields:
        Mock ClientSession for testing.
    """
    session = AsyncMock(spec=ClientSession)
    session.closed = False

    async def mock_close() -> None:
        session.closed = True

    session.close = mock_close

    yield session

    if not session.closed:
        await session.close()

