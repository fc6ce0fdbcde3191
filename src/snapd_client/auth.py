"""Credential loading for authenticated snapd requests."""

from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path
from typing import Optional, Union

from .config import default_auth_file
from .errors import SnapdError
from .models import Credential

logger = logging.getLogger(__name__)


def load_credential(path: Union[str, Path]) -> Credential:
    """Read ``email`` and ``macaroon`` from a snap auth file.

    Raises:
        OSError: The file cannot be read.
        json.JSONDecodeError: The file is not JSON.
        SnapdError: The file holds no string macaroon.
    """
    path = Path(path).expanduser()
    data = json.loads(path.read_text(encoding="utf-8"))
    if not isinstance(data, dict) or not isinstance(data.get("macaroon"), str):
        raise SnapdError.validation("failed to read macaroon from auth file")
    email = data.get("email")
    return Credential(
        email=email if isinstance(email, str) else None,
        macaroon=data["macaroon"],
    )


class CredentialStore:
    """Load-once cache for the credential of one client instance.

    The first successful load is kept for the lifetime of the store.
    Concurrent first loads are serialised so the file is read once.
    """

    def __init__(self, auth_file: Optional[Union[str, Path]] = None) -> None:
        self.auth_file = Path(auth_file).expanduser() if auth_file else default_auth_file()
        self._credential: Optional[Credential] = None
        self._lock = asyncio.Lock()

    @property
    def cached(self) -> Optional[Credential]:
        return self._credential

    async def get(self, filename: Optional[Union[str, Path]] = None) -> Credential:
        """Return the cached credential, reading it from disk on first use.

        Args:
            filename: Overrides the store's auth file for the first load.
                Ignored once a credential is cached.
        """
        if self._credential is not None:
            return self._credential

        async with self._lock:
            if self._credential is None:
                path = Path(filename).expanduser() if filename else self.auth_file
                logger.debug(f"Loading snap credential from {path}")
                self._credential = load_credential(path)
        return self._credential
