import json
from pathlib import Path
from typing import Any, List, Optional

import httpx
import pytest

from snapd_client import config as config_module
from snapd_client.client import SnapClient
from snapd_client.transport import SnapdTransport


@pytest.fixture(autouse=True)
def isolated_settings(monkeypatch, tmp_path: Path):
    """
    Keep tests away from the real home directory and SNAPD_* variables.
    """
    for key in ("SNAPD_SOCKET_PATH", "SNAPD_AUTH_FILE", "SNAPD_TIMEOUT", "SNAPD_LOG_LEVEL"):
        monkeypatch.delenv(key, raising=False)
    monkeypatch.setenv("HOME", str(tmp_path))
    config_module.reload_settings()
    yield
    config_module.get_settings.cache_clear()


@pytest.fixture
def auth_file(tmp_path: Path) -> Path:
    path = tmp_path / "auth.json"
    path.write_text(json.dumps({"email": "dev@example.com", "macaroon": "MDAxY2xv"}))
    return path


class FakeDaemon:
    """Answers requests with queued responses and records what it saw."""

    def __init__(self) -> None:
        self.requests: List[httpx.Request] = []
        self._responses: List[httpx.Response] = []

    def reply(self, status_code: int = 200, body: Any = None, raw: Optional[bytes] = None) -> "FakeDaemon":
        content = raw if raw is not None else json.dumps(body).encode("utf-8")
        self._responses.append(httpx.Response(status_code, content=content))
        return self

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self._responses.pop(0)

    @property
    def last_request(self) -> httpx.Request:
        return self.requests[-1]

    def last_json(self) -> Any:
        return json.loads(self.last_request.content)


@pytest.fixture
def daemon() -> FakeDaemon:
    return FakeDaemon()


@pytest.fixture
def transport(daemon: FakeDaemon) -> SnapdTransport:
    return SnapdTransport("/run/snapd.socket", transport=httpx.MockTransport(daemon.handler))


@pytest.fixture
def client(transport: SnapdTransport, auth_file: Path) -> SnapClient:
    return SnapClient(auth_file=auth_file, transport=transport)
