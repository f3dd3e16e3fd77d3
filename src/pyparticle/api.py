"""Operations of the Particle cloud REST API.

This module maps each API operation onto one HTTP request. Every operation
reads the access token when it builds its request, runs the request through
the transport, classifies the response and either returns the success body
or raises a typed ``ParticleError``. Nothing is retried.
"""

from __future__ import annotations

import logging
from http import HTTPStatus
from pathlib import Path
from typing import TYPE_CHECKING, Any

import aiofiles
import aiofiles.os
from aiohttp import BasicAuth, ClientError, FormData

from pyparticle.classifier import accept_ok, classify, raise_for_result
from pyparticle.const import DEFAULT_CLIENT_SECRET, EMAIL_REQUIRED_CHARACTERS
from pyparticle.events import EventStream
from pyparticle.exceptions import (
    AuthenticationError,
    InvalidParameterError,
    LocalFileError,
    ParticleConnectionError,
    ParticleError,
)
from pyparticle.models import EventStreamRequest, TransportFailure, WebhookRequest
from pyparticle.serializers import (
    serialize_form,
    serialize_public_key_form,
    serialize_value,
    serialize_webhook_form,
)
from pyparticle.transport import decode_body


if TYPE_CHECKING:
    import os
    from collections.abc import Callable, Mapping
    from types import TracebackType

    from pyparticle.auth import TokenSession
    from pyparticle.models import ApiResult
    from pyparticle.transport import HttpTransport

_LOGGER = logging.getLogger(__name__)


def _reject_all(body: Any) -> bool:  # noqa: ARG001 - predicate signature
    """Success predicate for responses that can only mean failure."""
    return False


class ParticleAPI:
    """Operation set for the Particle cloud API.

    All operations return the parsed response body on success and raise on
    failure:

    - ``ParticleConnectionError`` when no response was received
    - ``InvalidTokenError`` when the token is invalid or expired
    - ``ParticleServerError`` when the body reports an error
    - ``UnexpectedResponseError`` when the body matches no known shape

    Use ``execute()`` directly to get the typed ``ApiResult`` without raising.

    Example:
        ```python
        from pyparticle.api import ParticleAPI
        from pyparticle.auth import TokenSession
        from pyparticle.transport import HttpTransport

        api = ParticleAPI(auth=TokenSession(), transport=HttpTransport())

        async with api:
            await api.login("particle", "user@example.com", "password")
            devices = await api.list_devices()
            await api.call_function(devices[0]["id"], "led", "on")
        ```
    """

    def __init__(
        self,
        *,
        auth: TokenSession,
        transport: HttpTransport,
        client_secret: str = DEFAULT_CLIENT_SECRET,
    ) -> None:
        """Initialize the API.

        Args:
            auth: Token session shared with the owning client.
            transport: HTTP transport used for every request.
            client_secret: OAuth client secret sent when minting tokens.
        """
        self._auth = auth
        self._transport = transport
        self._client_secret = client_secret

    @property
    def auth(self) -> TokenSession:
        """Get the token session."""
        return self._auth

    @property
    def base_url(self) -> str:
        """Get the API base URL."""
        return self._auth.base_url

    async def __aenter__(self) -> ParticleAPI:
        """Enter the context manager, opening the transport."""
        await self._transport.__aenter__()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        """Exit the context manager, closing the transport if it owns its session."""
        await self._transport.__aexit__(exc_type, exc_val, exc_tb)

    # -------------------------------------------------------------------------
    # Request plumbing
    # -------------------------------------------------------------------------

    def _url(self, path: str) -> str:
        return f"{self._auth.base_url}{path}"

    def _token_params(self) -> dict[str, str]:
        """Query parameters carrying the current token."""
        return serialize_form({"access_token": self._auth.get()})

    def _token_form(self, **fields: Any) -> dict[str, str]:
        """Form fields plus the current token."""
        return serialize_form({**fields, "access_token": self._auth.get()})

    async def execute(
        self,
        method: str,
        path: str,
        *,
        params: Mapping[str, str] | None = None,
        data: Mapping[str, str] | FormData | None = None,
        json_data: Any = None,
        headers: Mapping[str, str] | None = None,
        auth: BasicAuth | None = None,
        accept: Callable[[Any], bool] | None = None,
    ) -> ApiResult:
        """Run one request and classify its outcome.

        Args:
            method: HTTP method.
            path: Path under the base URL (e.g. "/v1/devices").
            params: Optional query parameters.
            data: Optional form fields or multipart body.
            json_data: Optional JSON body.
            headers: Optional extra headers.
            auth: Optional basic auth credentials.
            accept: Optional per-operation success predicate.

        Returns:
            The classified ApiResult. Never raises for transport or API errors.
        """
        try:
            response = await self._transport.request(
                method,
                self._url(path),
                params=params,
                data=data,
                json_data=json_data,
                headers=headers,
                auth=auth,
            )
        except ParticleConnectionError as exc:
            _LOGGER.debug("%s %s failed: %s", method, path, exc)
            return TransportFailure(error=exc)

        return classify(response.body, status=response.status, accept=accept)

    async def _call(self, method: str, path: str, **kwargs: Any) -> Any:
        return raise_for_result(await self.execute(method, path, **kwargs))

    async def _multipart(self, files: Mapping[str, str | os.PathLike[str]]) -> FormData:
        """Build a multipart body from local files.

        Args:
            files: Form field names mapped to local file paths.

        Returns:
            FormData with one file part per entry.

        Raises:
            LocalFileError: If a file cannot be read.
        """
        form = FormData()
        for field_name, file_path in files.items():
            try:
                async with aiofiles.open(file_path, "rb") as source:
                    content = await source.read()
            except OSError as exc:
                msg = f"Unable to read {file_path}: {exc}"
                raise LocalFileError(msg, path=str(file_path)) from exc

            _LOGGER.debug("Attaching %s as %s", file_path, field_name)
            form.add_field(
                field_name,
                content,
                filename=Path(file_path).name,
                content_type="application/octet-stream",
            )
        return form

    # -------------------------------------------------------------------------
    # Users and Tokens
    # -------------------------------------------------------------------------

    async def create_user(self, username: str, password: str) -> Any:
        """Create a new user account.

        Args:
            username: Email address of the new account.
            password: Password of the new account.

        Returns:
            Response body, e.g. {"ok": true}.

        Raises:
            InvalidParameterError: If the username is not an email address.
        """
        if not username or not all(char in username for char in EMAIL_REQUIRED_CHARACTERS):
            msg = "Username must be an email address."
            raise InvalidParameterError(msg, parameter_name="username", value=username)

        _LOGGER.debug("Creating user %s", username)
        return await self._call(
            "POST",
            "/v1/users",
            data=serialize_form({"username": username, "password": password}),
        )

    async def create_access_token(self, client_id: str, username: str, password: str) -> Any:
        """Mint a new access token with the password grant.

        The token session is not modified.

        Args:
            client_id: OAuth client ID.
            username: Account email address.
            password: Account password.

        Returns:
            Token response, e.g. {"access_token": str, "token_type": "bearer", ...}.

        Raises:
            ParticleServerError: With the server's error description on failure.
        """
        return await self._call(
            "POST",
            "/oauth/token",
            data=serialize_form(
                {
                    "username": username,
                    "password": password,
                    "grant_type": "password",
                    "client_id": client_id,
                    "client_secret": self._client_secret,
                }
            ),
        )

    async def login(self, client_id: str, username: str, password: str) -> str:
        """Log in and store the new access token in the token session.

        Args:
            client_id: OAuth client ID.
            username: Account email address.
            password: Account password.

        Returns:
            The new access token.

        Raises:
            AuthenticationError: If a token could not be obtained.
        """
        try:
            body = await self.create_access_token(client_id, username, password)
        except ParticleError as exc:
            msg = f"Login Failed: {exc}"
            raise AuthenticationError(msg) from exc

        token = body.get("access_token") if isinstance(body, dict) else None
        if not token:
            msg = "Login Failed: Missing access token in response"
            raise AuthenticationError(msg)

        self._auth.update(token)
        _LOGGER.info("Logged in as %s", username)
        return token

    def logout(self) -> None:
        """Forget the current access token. The token stays valid server-side."""
        self._auth.clear()

    async def remove_access_token(self, username: str, password: str, access_token: str) -> Any:
        """Revoke an access token.

        Args:
            username: Account email address (basic auth).
            password: Account password (basic auth).
            access_token: Token to revoke.

        Returns:
            Response body, e.g. {"ok": true}.
        """
        return await self._call(
            "DELETE",
            f"/v1/access_tokens/{access_token}",
            auth=BasicAuth(username, password),
            data=self._token_form(),
            accept=accept_ok,
        )

    async def list_tokens(self, username: str, password: str) -> Any:
        """List the account's access tokens.

        Args:
            username: Account email address (basic auth).
            password: Account password (basic auth).

        Returns:
            List of token objects.
        """
        return await self._call("GET", "/v1/access_tokens", auth=BasicAuth(username, password))

    # -------------------------------------------------------------------------
    # Devices
    # -------------------------------------------------------------------------

    async def list_devices(self) -> Any:
        """List the account's devices.

        Returns:
            List of device records, e.g. [{"id": str, "name": str, "connected": bool}].
        """
        return await self._call("GET", "/v1/devices", params=self._token_params())

    async def claim_device(self, device_id: str) -> Any:
        """Claim a device for the account."""
        return await self._call(
            "POST",
            "/v1/devices",
            data=self._token_form(id=device_id),
            accept=accept_ok,
        )

    async def remove_device(self, device_id: str) -> Any:
        """Release a device from the account."""
        _LOGGER.info("Releasing device %s", device_id)
        return await self._call(
            "DELETE",
            f"/v1/devices/{device_id}",
            data=self._token_form(id=device_id),
            accept=accept_ok,
        )

    async def rename_device(self, device_id: str, name: str) -> Any:
        """Rename a device.

        Succeeds only if the server echoes the new name back.

        Args:
            device_id: Device to rename.
            name: New device name.

        Returns:
            Updated device record.
        """
        return await self._call(
            "PUT",
            f"/v1/devices/{device_id}",
            data=self._token_form(name=name),
            accept=lambda body: isinstance(body, dict) and body.get("name") == name,
        )

    async def get_attributes(self, device_id: str) -> Any:
        """Get a device's attributes (name, functions, variables, ...)."""
        return await self._call("GET", f"/v1/devices/{device_id}", params=self._token_params())

    async def get_variable(self, device_id: str, name: str) -> Any:
        """Read a cloud variable from a device.

        Returns:
            Variable response, e.g. {"name": str, "result": Any, ...}.
        """
        return await self._call("GET", f"/v1/devices/{device_id}/{name}", params=self._token_params())

    async def signal_device(self, device_id: str, signal: bool) -> Any:
        """Start or stop a device signalling (rainbow LED)."""
        return await self._call(
            "PUT",
            f"/v1/devices/{device_id}",
            data=self._token_form(signal="1" if signal else "0"),
        )

    async def call_function(self, device_id: str, function_name: str, argument: str | None = None) -> Any:
        """Call a cloud function on a device.

        Args:
            device_id: Target device.
            function_name: Name of the exposed function.
            argument: Optional string argument.

        Returns:
            Function response, e.g. {"return_value": int, ...}.
        """
        return await self._call(
            "POST",
            f"/v1/devices/{device_id}/{function_name}",
            data=self._token_form(arg=argument),
        )

    async def send_public_key(
        self,
        device_id: str,
        public_key: bytes | str,
        algorithm: str,
        product_id: str | int | None = None,
    ) -> Any:
        """Provision a device's public key.

        Args:
            device_id: Device the key belongs to.
            public_key: PEM encoded public key.
            algorithm: Key algorithm (``rsa`` or ``ecc``).
            product_id: Optional product the device belongs to.

        Returns:
            Response body.
        """
        _LOGGER.info("Adding a new public key for device %s", device_id)
        return await self._call(
            "POST",
            f"/v1/provisioning/{device_id}",
            data=serialize_public_key_form(device_id, public_key, algorithm, self._auth.get(), product_id),
        )

    # -------------------------------------------------------------------------
    # Firmware
    # -------------------------------------------------------------------------

    async def flash_device(self, device_id: str, files: Mapping[str, str | os.PathLike[str]]) -> Any:
        """Flash firmware sources or a binary to a device over the air.

        Args:
            device_id: Target device.
            files: Form field names mapped to local file paths.

        Returns:
            Flash result body.

        Raises:
            LocalFileError: If a file cannot be read.
        """
        _LOGGER.info("Attempting to flash firmware to device %s", device_id)
        form = await self._multipart(files)
        return await self._call("PUT", f"/v1/devices/{device_id}", params=self._token_params(), data=form)

    async def compile_code(
        self,
        files: Mapping[str, str | os.PathLike[str]],
        platform_id: int | str,
    ) -> Any:
        """Compile firmware sources in the cloud.

        Args:
            files: Form field names mapped to local source paths.
            platform_id: Target platform ID.

        Returns:
            Compile result body, e.g. {"ok": true, "binary_url": str, ...}.

        Raises:
            LocalFileError: If a file cannot be read.
        """
        _LOGGER.info("Attempting to compile firmware for platform %s", platform_id)
        form = await self._multipart(files)
        form.add_field("platform_id", serialize_value(platform_id))
        return await self._call("POST", "/v1/binaries", params=self._token_params(), data=form)

    async def download_binary(self, url: str, filename: str | os.PathLike[str]) -> bytes:
        """Download a compiled binary to a local file.

        Any existing file at ``filename`` is deleted first. The response is
        read completely before anything is written, so error bodies never end
        up in the output file.

        Args:
            url: Server-given path of the binary (e.g. "/v1/binaries/abc").
            filename: Destination path.

        Returns:
            The binary contents.

        Raises:
            LocalFileError: If the destination cannot be written.
            InvalidTokenError: If the token is invalid or expired.
            ParticleServerError: If the server answered with an error body.
            UnexpectedResponseError: If the server answered with another JSON
                body or an error status.
        """
        destination = Path(filename)
        if await aiofiles.os.path.exists(destination):
            try:
                await aiofiles.os.remove(destination)
            except OSError as exc:
                _LOGGER.warning("Error deleting file %s: %s", destination, exc)

        _LOGGER.info("Grabbing binary from %s", self._url(url))
        response = await self._transport.request("GET", self._url(url), params=self._token_params(), raw=True)

        if response.is_json or response.status >= HTTPStatus.BAD_REQUEST:
            body = decode_body(response.body)
            raise_for_result(classify(body, status=response.status, accept=_reject_all))

        try:
            async with aiofiles.open(destination, "wb") as target:
                await target.write(response.body)
        except OSError as exc:
            msg = f"Unable to write {destination}: {exc}"
            raise LocalFileError(msg, path=str(destination)) from exc

        return response.body

    # -------------------------------------------------------------------------
    # Events
    # -------------------------------------------------------------------------

    async def get_event_stream(
        self,
        event_name: str | None = None,
        device_id: str | None = None,
        sink: Callable[[bytes], None] | None = None,
    ) -> EventStream:
        """Subscribe to a live event stream.

        Args:
            event_name: Optional event name prefix.
            device_id: None for public events, "mine" for the account's
                devices, or a single device ID.
            sink: Optional callback receiving every raw chunk.

        Returns:
            Open EventStream. The caller must close it.

        Raises:
            InvalidTokenError: If the token is invalid or expired.
            ParticleServerError: If the server refused the subscription.
        """
        path = EventStreamRequest(event_name=event_name, device_id=device_id).path
        url = self._url(path)
        _LOGGER.info("Listening to: %s", path)

        response = await self._transport.open_stream(url, params=self._token_params())

        if response.status >= HTTPStatus.BAD_REQUEST:
            try:
                payload = await response.read()
            except ClientError as exc:
                msg = f"Failed to read error response from {path}: {exc}"
                raise ParticleConnectionError(msg) from exc
            finally:
                response.release()
            raise_for_result(classify(decode_body(payload), status=response.status, accept=_reject_all))

        return EventStream(response, url, sink=sink)

    async def publish_event(self, name: str, data: str | None = None, private: bool | None = None) -> Any:
        """Publish an event to the cloud.

        Args:
            name: Event name.
            data: Optional event payload.
            private: Publish as a private event. Omitted when None.

        Returns:
            Response body, e.g. {"ok": true}.
        """
        body = await self._call(
            "POST",
            "/v1/devices/events",
            data=self._token_form(name=name, data=data, private=private),
            accept=accept_ok,
        )
        _LOGGER.info("Published %s event: %s", "private" if private else "public", name)
        return body

    # -------------------------------------------------------------------------
    # Webhooks
    # -------------------------------------------------------------------------

    async def create_webhook_with_obj(self, webhook: Mapping[str, Any]) -> Any:
        """Create a webhook from a complete JSON definition.

        The definition is sent unchanged as the JSON body, authenticated with
        a bearer header.

        Args:
            webhook: Webhook definition.

        Returns:
            Response body, e.g. {"ok": true, "id": str}.
        """
        body = await self._call(
            "POST",
            "/v1/webhooks",
            json_data=dict(webhook),
            headers={"Authorization": f"Bearer {self._auth.get()}"},
            accept=accept_ok,
        )
        _LOGGER.info("Successfully created webhook with ID %s", body.get("id"))
        return body

    async def create_webhook(
        self,
        event: str,
        url: str,
        device_id: str | None = None,
        *,
        request_type: str | None = None,
        headers: dict[str, Any] | None = None,
        json: dict[str, Any] | None = None,
        query: dict[str, Any] | None = None,
        auth: dict[str, Any] | None = None,
        mydevices: bool | None = None,
        reject_unauthorized: bool | None = None,
    ) -> Any:
        """Create a webhook through the form-encoded endpoint.

        Args:
            event: Event name prefix that triggers the hook.
            url: Target URL.
            device_id: Optional device filter.
            request_type: HTTP method the hook uses.
            headers: Extra headers the hook sends.
            json: JSON template for the hook body.
            query: Query parameters the hook appends.
            auth: Basic auth credentials for the target.
            mydevices: Only trigger on the account's devices.
            reject_unauthorized: Verify the target's TLS certificate.

        Returns:
            Response body, e.g. {"ok": true, "id": str}.
        """
        webhook = WebhookRequest(
            event=event,
            url=url,
            device_id=device_id,
            request_type=request_type,
            headers=headers,
            json=json,
            query=query,
            auth=auth,
            mydevices=mydevices,
            reject_unauthorized=reject_unauthorized,
        )
        body = await self._call(
            "POST",
            "/v1/webhooks",
            data=serialize_webhook_form(webhook, self._auth.get()),
            accept=accept_ok,
        )
        _LOGGER.info("Successfully created webhook for %s", event)
        return body

    async def delete_webhook(self, hook_id: str) -> Any:
        """Delete a webhook."""
        return await self._call(
            "DELETE",
            f"/v1/webhooks/{hook_id}",
            params=self._token_params(),
            accept=accept_ok,
        )

    async def list_webhooks(self) -> Any:
        """List the account's webhooks."""
        return await self._call("GET", "/v1/webhooks", params=self._token_params())
