"""HTTP-over-Unix-socket transport for the snapd REST API.

:class:`SnapdTransport` runs one request/response cycle per call. Each call
opens its own connection to the daemon socket and closes it before returning,
whatever the outcome.

Response handling follows the daemon's envelope convention:

- HTTP 200/202: the body must be a non-empty JSON envelope, returned as-is.
  The envelope's own ``status-code`` is checked by the caller.
- Any other HTTP status: the body is decoded and raised as a daemon
  :class:`~snapd_client.errors.SnapdError`.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Dict, Optional, Union

import httpx

from .config import DEFAULT_SOCKET_PATH
from .errors import ErrorCategory, SnapdError
from .models import Envelope, RequestDescriptor

logger = logging.getLogger(__name__)

SUCCESS_STATUSES = frozenset({200, 202})


class SnapdTransport:
    """Executes request descriptors against the snapd socket.

    Parameters:
        socket_path: Path to the daemon's Unix socket. Defaults to
            ``/run/snapd.socket``.
        timeout: Seconds to wait for the daemon; ``None`` waits forever.
        transport: Replaces the Unix socket transport (tests use
            ``httpx.MockTransport``).
    """

    # The daemon ignores the host; httpx needs one to build the request line.
    BASE_URL = "http://localhost"

    def __init__(
        self,
        socket_path: Optional[Union[str, Path]] = None,
        *,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.socket_path = Path(socket_path) if socket_path else DEFAULT_SOCKET_PATH
        self.timeout = timeout
        self._transport = transport

    def _open_transport(self) -> httpx.AsyncBaseTransport:
        if self._transport is not None:
            return self._transport
        return httpx.AsyncHTTPTransport(uds=str(self.socket_path))

    @staticmethod
    def build_headers(descriptor: RequestDescriptor) -> Dict[str, str]:
        """Headers for ``descriptor``: JSON content type, body length and auth."""
        headers = {"Content-Type": "application/json"}
        if descriptor.writes_body:
            headers["Content-Length"] = str(len(descriptor.body.encode("utf-8")))
        credential = descriptor.credential
        if credential is not None:
            headers["Authorization"] = credential.authorization_header()
        return headers

    @staticmethod
    def decode_response(status_code: int, body: bytes) -> Envelope:
        """Turn a raw HTTP status and body into an envelope or an error.

        Raises:
            SnapdError: ``transport`` for an empty success body, ``daemon``
                for any non-success HTTP status.
            json.JSONDecodeError: The body is not valid JSON.
        """
        if status_code in SUCCESS_STATUSES:
            if len(body) < 1:
                raise SnapdError(
                    "empty response",
                    category=ErrorCategory.TRANSPORT,
                    status_code=status_code,
                )
            return Envelope.from_body(json.loads(body))

        error = SnapdError.from_envelope(json.loads(body), status_code)
        logger.debug(f"snapd returned HTTP {status_code}: {error.message} (kind={error.kind})")
        raise error

    async def execute(self, descriptor: RequestDescriptor) -> Envelope:
        """Send ``descriptor`` to the daemon and decode the reply.

        Connection and write failures propagate unchanged.
        """
        headers = self.build_headers(descriptor)
        content = descriptor.body.encode("utf-8") if descriptor.writes_body else None

        logger.debug(f"{descriptor.method} {descriptor.path} via {self.socket_path}")
        async with httpx.AsyncClient(
            transport=self._open_transport(),
            base_url=self.BASE_URL,
            timeout=httpx.Timeout(self.timeout),
        ) as client:
            response = await client.request(
                descriptor.method,
                descriptor.path,
                params=descriptor.params,
                headers=headers,
                content=content,
            )
            body = await response.aread()

        logger.debug(f"{descriptor.method} {descriptor.path} -> HTTP {response.status_code}")
        return self.decode_response(response.status_code, body)


__all__ = ["SnapdTransport", "SUCCESS_STATUSES"]
