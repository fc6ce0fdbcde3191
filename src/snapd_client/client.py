"""
Snap Client - High-level operations on the snapd REST API.

Every operation follows the same shape: build a request descriptor, execute
it through :class:`~snapd_client.transport.SnapdTransport`, check the
envelope's ``status-code`` and return the interesting part of ``result``.
An envelope with an unexpected status code is reported as a ``validation``
:class:`~snapd_client.errors.SnapdError` ("malformed response").

Asynchronous mutations (install, remove, connect, ...) return the id of the
change the daemon started. Waiting for that change is left to the caller,
see :meth:`SnapClient.status`.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Sequence, Union
from urllib.parse import quote

from pydantic import ValidationError

from .auth import CredentialStore
from .config import Settings, get_settings
from .errors import SnapdError
from .models import (
    Credential,
    Envelope,
    HttpMethod,
    ModifyOptions,
    PlugRef,
    RequestDescriptor,
    SlotRef,
)
from .transport import SnapdTransport

logger = logging.getLogger(__name__)

SlotArg = Union[SlotRef, Mapping[str, Any]]
PlugArg = Union[PlugRef, Mapping[str, Any]]
AuthArg = Union[Credential, Mapping[str, Any]]


def _require_name(name: Any) -> str:
    if not isinstance(name, str):
        raise SnapdError.validation("malformed name argument")
    return quote(name, safe="")


def _require_id(change_id: Any) -> str:
    if not isinstance(change_id, str):
        raise SnapdError.validation("malformed id argument")
    return quote(change_id, safe="")


class SnapClient:
    """
    Client for the snapd daemon listening on a Unix socket.

    Example usage:
        client = SnapClient()
        names = await client.list_snaps()
        change_id = await client.install("hello", channel="stable")
        change = await client.status(change_id)
    """

    def __init__(
        self,
        auth_file: Optional[Union[str, Path]] = None,
        socket_path: Optional[Union[str, Path]] = None,
        *,
        settings: Optional[Settings] = None,
        transport: Optional[SnapdTransport] = None,
    ):
        """
        Initialize the client.

        Args:
            auth_file: Credential file. Defaults to ``~/.snap/auth.json``.
            socket_path: snapd socket. Defaults to ``/run/snapd.socket``.
            settings: Settings to read defaults from (default: environment).
            transport: Pre-built transport; overrides ``socket_path``.
        """
        settings = settings or get_settings()
        self.credentials = CredentialStore(auth_file or settings.auth_file)
        self.transport = transport or SnapdTransport(
            socket_path or settings.socket_path,
            timeout=settings.timeout,
        )

    @property
    def socket_path(self) -> Path:
        return self.transport.socket_path

    async def read_auth(self, filename: Optional[Union[str, Path]] = None) -> Credential:
        """Return the credential from the auth file, reading it at most once."""
        return await self.credentials.get(filename)

    async def _resolve_auth(self, auth: Optional[AuthArg]) -> Credential:
        if auth is None:
            return await self.read_auth()
        try:
            return Credential.model_validate(auth)
        except ValidationError as exc:
            raise SnapdError.validation("malformed auth argument") from exc

    async def _request(
        self,
        method: HttpMethod,
        path: str,
        *,
        data: Any = None,
        auth: Optional[Credential] = None,
        params: Optional[Dict[str, str]] = None,
    ) -> Envelope:
        descriptor = RequestDescriptor(
            method=method,
            path=path,
            body=json.dumps(data) if data is not None else None,
            credential=auth,
            params=params,
        )
        return await self.transport.execute(descriptor)

    # ------------------------------------------------------------------
    # Account
    # ------------------------------------------------------------------

    async def login(self, email: str, password: str, otp: Optional[str] = None) -> Credential:
        """
        Log in to the store account. May require root privileges.

        Args:
            email: Store account email
            password: Account password
            otp: One-time passcode when two-factor auth is enabled

        Returns:
            Credential holding the email and the new macaroon.
        """
        data = {"email": email, "password": password}
        if otp is not None:
            data["otp"] = otp

        response = await self._request("POST", "/v2/login", data=data)
        if response.accepts(200) and isinstance(response.result, dict):
            try:
                return Credential(
                    email=response.result.get("email"),
                    macaroon=response.result.get("macaroon"),
                )
            except ValidationError as exc:
                raise SnapdError.malformed_response() from exc
        raise SnapdError.malformed_response()

    async def logout(self, auth: Optional[AuthArg] = None) -> bool:
        """Log out. Uses the stored credential when ``auth`` is omitted."""
        response = await self._request(
            "POST", "/v2/logout", auth=await self._resolve_auth(auth)
        )
        if response.accepts(200):
            return True
        raise SnapdError.malformed_response()

    # ------------------------------------------------------------------
    # Snaps
    # ------------------------------------------------------------------

    async def list_snaps(self) -> List[str]:
        """Names of the installed snaps."""
        response = await self._request("GET", "/v2/snaps")
        if response.accepts(200) and isinstance(response.result, list):
            try:
                return [entry["name"] for entry in response.result]
            except (KeyError, TypeError) as exc:
                raise SnapdError.malformed_response() from exc
        raise SnapdError.malformed_response()

    async def info(self, name: str) -> Any:
        """Detailed information about an installed snap."""
        path = f"/v2/snaps/{_require_name(name)}"
        response = await self._request("GET", path)
        if response.accepts(200):
            return response.result
        raise SnapdError.malformed_response()

    async def modify(
        self,
        action: str,
        name: str,
        auth: Optional[AuthArg] = None,
        **opts: Any,
    ) -> str:
        """
        Run a snap action (install, remove, refresh, ...).

        Recognised options are ``classic``, ``devmode``, ``ignore-validation``
        (or ``ignore_validation``), ``jailmode``, ``channel`` and ``version``.
        Other keyword arguments are ignored.

        Returns:
            Id of the change started by the daemon.
        """
        path = f"/v2/snaps/{_require_name(name)}"
        data = ModifyOptions.from_options(opts).to_body(action)
        logger.debug(f"Requesting {action} of {name}: {data}")

        response = await self._request(
            "POST", path, data=data, auth=await self._resolve_auth(auth)
        )
        if response.accepts(202) and response.change is not None:
            return response.change
        raise SnapdError.malformed_response()

    async def install(self, name: str, auth: Optional[AuthArg] = None, **opts: Any) -> str:
        return await self.modify("install", name, auth, **opts)

    async def remove(self, name: str, auth: Optional[AuthArg] = None, **opts: Any) -> str:
        return await self.modify("remove", name, auth, **opts)

    async def switch(self, name: str, auth: Optional[AuthArg] = None, **opts: Any) -> str:
        return await self.modify("switch", name, auth, **opts)

    async def refresh(self, name: str, auth: Optional[AuthArg] = None, **opts: Any) -> str:
        return await self.modify("refresh", name, auth, **opts)

    async def revert(self, name: str, auth: Optional[AuthArg] = None, **opts: Any) -> str:
        return await self.modify("revert", name, auth, **opts)

    async def enable(self, name: str, auth: Optional[AuthArg] = None, **opts: Any) -> str:
        return await self.modify("enable", name, auth, **opts)

    async def disable(self, name: str, auth: Optional[AuthArg] = None, **opts: Any) -> str:
        return await self.modify("disable", name, auth, **opts)

    # ------------------------------------------------------------------
    # Apps and configuration
    # ------------------------------------------------------------------

    async def post_apps(
        self,
        names: Sequence[str],
        action: str,
        *,
        enable: bool = False,
        disable: bool = False,
        reload: bool = False,
        auth: Optional[AuthArg] = None,
    ) -> Optional[str]:
        """
        Start, stop or restart snap services.

        Args:
            names: Snap or app names (e.g. ``["lxd"]`` or ``["lxd.daemon"]``)
            action: ``start``, ``stop`` or ``restart``
            enable: With ``start``, also enable the services at boot
            disable: With ``stop``, also disable the services at boot
            reload: With ``restart``, reload instead of restarting if possible
            auth: Credential to send; none is loaded when omitted

        Returns:
            The envelope's ``status`` string.
        """
        if isinstance(names, str) or not all(isinstance(n, str) for n in names):
            raise SnapdError.validation("malformed names argument")

        data: Dict[str, Any] = {"action": action, "names": list(names)}
        for flag, value in (("enable", enable), ("disable", disable), ("reload", reload)):
            if value:
                data[flag] = True

        credential = await self._resolve_auth(auth) if auth is not None else None
        response = await self._request("POST", "/v2/apps", data=data, auth=credential)
        if response.accepts(202):
            return response.status
        raise SnapdError.malformed_response()

    async def get_conf(
        self,
        name: str,
        keys: Optional[Sequence[str]] = None,
        auth: Optional[AuthArg] = None,
    ) -> Dict[str, Any]:
        """Configuration values of a snap, optionally limited to ``keys``."""
        path = f"/v2/snaps/{_require_name(name)}/conf"
        params = {"keys": ",".join(keys)} if keys else None

        response = await self._request(
            "GET", path, auth=await self._resolve_auth(auth), params=params
        )
        if response.accepts(200):
            return response.result
        raise SnapdError.malformed_response()

    async def put_conf(
        self,
        name: str,
        keys: Mapping[str, Any],
        auth: Optional[AuthArg] = None,
    ) -> Optional[str]:
        """Set configuration values of a snap. Returns the envelope status."""
        path = f"/v2/snaps/{_require_name(name)}/conf"
        if not isinstance(keys, Mapping):
            raise SnapdError.validation("malformed keys argument")

        response = await self._request(
            "PUT", path, data=dict(keys), auth=await self._resolve_auth(auth)
        )
        if response.accepts(200, 202):
            return response.status
        raise SnapdError.malformed_response()

    # ------------------------------------------------------------------
    # Changes
    # ------------------------------------------------------------------

    async def status(self, id: Optional[str] = None) -> Any:
        """
        Look up a change by id, or list all changes when ``id`` is None.

        Returns:
            The change detail, or a list of changes.
        """
        if id is None:
            path = "/v2/changes"
        else:
            path = f"/v2/changes/{_require_id(id)}"

        response = await self._request("GET", path)
        if response.accepts(200):
            return response.result
        raise SnapdError.malformed_response()

    async def abort(self, id: str, auth: Optional[AuthArg] = None) -> Any:
        """Abort an ongoing change. Returns the updated change detail."""
        path = f"/v2/changes/{_require_id(id)}"

        response = await self._request(
            "POST", path, data={"action": "abort"}, auth=await self._resolve_auth(auth)
        )
        if response.accepts(200):
            return response.result
        raise SnapdError.malformed_response()

    # ------------------------------------------------------------------
    # Interfaces
    # ------------------------------------------------------------------

    async def list_interfaces(self, auth: Optional[AuthArg] = None) -> Any:
        """Plugs and slots known to the daemon."""
        response = await self._request(
            "GET", "/v2/interfaces", auth=await self._resolve_auth(auth)
        )
        if response.accepts(200):
            return response.result
        raise SnapdError.malformed_response()

    async def modify_interface(
        self,
        action: str,
        slot: SlotArg,
        plug: PlugArg,
        auth: Optional[AuthArg] = None,
    ) -> str:
        """
        Connect or disconnect one plug from one slot.

        Args:
            action: ``connect`` or ``disconnect``
            slot: Slot owner and name, e.g. ``{"snap": "core", "slot": "network"}``
            plug: Plug owner and name, e.g. ``{"snap": "hello", "plug": "network"}``

        Returns:
            Id of the change started by the daemon.
        """
        try:
            slot_ref = SlotRef.model_validate(slot)
            plug_ref = PlugRef.model_validate(plug)
        except ValidationError as exc:
            raise SnapdError.validation("malformed slot or plug argument") from exc

        data = {
            "action": action,
            "slots": [slot_ref.model_dump()],
            "plugs": [plug_ref.model_dump()],
        }
        response = await self._request(
            "POST", "/v2/interfaces", data=data, auth=await self._resolve_auth(auth)
        )
        if response.accepts(202) and response.change is not None:
            return response.change
        raise SnapdError.malformed_response()

    async def connect(self, slot: SlotArg, plug: PlugArg, auth: Optional[AuthArg] = None) -> str:
        return await self.modify_interface("connect", slot, plug, auth)

    async def disconnect(
        self, slot: SlotArg, plug: PlugArg, auth: Optional[AuthArg] = None
    ) -> str:
        return await self.modify_interface("disconnect", slot, plug, auth)


__all__ = ["SnapClient"]
