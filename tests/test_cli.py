"""Tests for the snapc command line."""

import json
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest
from typer.testing import CliRunner

from snapd_client.errors import ErrorCategory, SnapdError
from snapd_client.main import app
from snapd_client.models import Credential

runner = CliRunner()


@pytest.fixture
def snap_client():
    """Patch SnapClient in the CLI with an async mock instance."""
    instance = MagicMock()
    for name in (
        "login", "logout", "read_auth", "list_snaps", "info", "modify", "post_apps",
        "get_conf", "put_conf", "status", "abort", "list_interfaces", "connect", "disconnect",
    ):
        setattr(instance, name, AsyncMock())
    with patch("snapd_client.main.SnapClient", return_value=instance) as factory:
        instance.factory = factory
        yield instance


def test_list_prints_names(snap_client) -> None:
    snap_client.list_snaps.return_value = ["core", "hello"]

    result = runner.invoke(app, ["list"])

    assert result.exit_code == 0
    assert result.stdout.split() == ["core", "hello"]


def test_list_json(snap_client) -> None:
    snap_client.list_snaps.return_value = ["core"]

    result = runner.invoke(app, ["list", "--json"])

    assert json.loads(result.stdout) == ["core"]


def test_global_paths_reach_client(snap_client, tmp_path) -> None:
    snap_client.list_snaps.return_value = []

    runner.invoke(app, ["--socket", str(tmp_path / "s"), "--auth-file", str(tmp_path / "a"), "list"])

    snap_client.factory.assert_called_with(auth_file=tmp_path / "a", socket_path=tmp_path / "s")


def test_install_forwards_options(snap_client) -> None:
    snap_client.modify.return_value = "17"

    result = runner.invoke(app, ["install", "hello", "--channel", "edge", "--classic"])

    assert result.exit_code == 0
    assert "17" in result.stdout
    args, kwargs = snap_client.modify.call_args
    assert args == ("install", "hello")
    assert kwargs["channel"] == "edge"
    assert kwargs["classic"] is True
    assert kwargs["devmode"] is False


@pytest.mark.parametrize("action", ["remove", "switch", "refresh", "revert", "enable", "disable"])
def test_modify_commands_registered(snap_client, action) -> None:
    snap_client.modify.return_value = "1"

    result = runner.invoke(app, [action, "hello"])

    assert result.exit_code == 0
    assert snap_client.modify.call_args.args == (action, "hello")


def test_daemon_error_exits_nonzero(snap_client) -> None:
    snap_client.info.side_effect = SnapdError(
        "snap not installed", category=ErrorCategory.DAEMON, kind="snap-not-found"
    )

    result = runner.invoke(app, ["info", "nope"])

    assert result.exit_code == 1
    assert "snap-not-found" in result.stdout


def test_connection_error_exits_nonzero(snap_client) -> None:
    snap_client.list_snaps.side_effect = httpx.ConnectError("No such file or directory")

    result = runner.invoke(app, ["list"])

    assert result.exit_code == 1
    assert "Cannot reach snapd" in result.stdout


def test_conf_set_parses_values(snap_client) -> None:
    snap_client.put_conf.return_value = "Accepted"

    result = runner.invoke(app, ["conf", "set", "my-snap", "speed=2", "name=fast", 'limits={"cpu": 2}'])

    assert result.exit_code == 0
    snap_client.put_conf.assert_awaited_once_with(
        "my-snap", {"speed": 2, "name": "fast", "limits": {"cpu": 2}}
    )


def test_conf_set_rejects_bad_assignment(snap_client) -> None:
    result = runner.invoke(app, ["conf", "set", "my-snap", "speed"])

    assert result.exit_code == 1
    snap_client.put_conf.assert_not_called()


def test_conf_get(snap_client) -> None:
    snap_client.get_conf.return_value = {"age": "1"}

    result = runner.invoke(app, ["conf", "get", "my-snap", "age"])

    assert json.loads(result.stdout) == {"age": "1"}
    snap_client.get_conf.assert_awaited_once_with("my-snap", ["age"])


def test_changes_list_and_show(snap_client) -> None:
    snap_client.status.return_value = [{"id": "1", "status": "Done", "kind": "install-snap", "summary": "s"}]

    result = runner.invoke(app, ["changes", "list", "--json"])
    assert json.loads(result.stdout)[0]["id"] == "1"
    snap_client.status.assert_awaited_with()

    snap_client.status.return_value = {"id": "1"}
    runner.invoke(app, ["changes", "show", "1"])
    snap_client.status.assert_awaited_with("1")


def test_changes_abort(snap_client) -> None:
    snap_client.abort.return_value = {"id": "3", "status": "Abort"}

    result = runner.invoke(app, ["changes", "abort", "3"])

    assert result.exit_code == 0
    snap_client.abort.assert_awaited_once_with("3")


def test_interfaces_connect(snap_client) -> None:
    snap_client.connect.return_value = "8"

    result = runner.invoke(app, ["interfaces", "connect", "hello:network", "core:network"])

    assert result.exit_code == 0
    snap_client.connect.assert_awaited_once_with(
        {"snap": "core", "slot": "network"}, {"snap": "hello", "plug": "network"}
    )


def test_interfaces_disconnect_rejects_bad_endpoint(snap_client) -> None:
    result = runner.invoke(app, ["interfaces", "disconnect", "hello", "core:network"])

    assert result.exit_code == 1
    snap_client.disconnect.assert_not_called()


def test_apps(snap_client) -> None:
    snap_client.post_apps.return_value = "Accepted"

    result = runner.invoke(app, ["apps", "restart", "lxd", "lxd.daemon", "--reload"])

    assert result.exit_code == 0
    snap_client.post_apps.assert_awaited_once_with(
        ["lxd", "lxd.daemon"], "restart", enable=False, disable=False, reload=True
    )


def test_login_and_whoami(snap_client) -> None:
    snap_client.login.return_value = Credential(email="me@x.io", macaroon="m")
    snap_client.read_auth.return_value = Credential(email="me@x.io", macaroon="m")

    result = runner.invoke(app, ["login", "me@x.io", "--password", "pw"])
    assert result.exit_code == 0
    snap_client.login.assert_awaited_once_with("me@x.io", "pw", None)

    result = runner.invoke(app, ["whoami"])
    assert "me@x.io" in result.stdout


def test_missing_auth_file_exits_nonzero(tmp_path) -> None:
    missing = tmp_path / "missing.json"

    result = runner.invoke(app, ["--auth-file", str(missing), "logout"])

    assert result.exit_code == 1
    assert "Error:" in result.stdout
    assert "Traceback" not in result.stdout


def test_invalid_log_level_exits_nonzero(monkeypatch, snap_client) -> None:
    from snapd_client.config import get_settings

    monkeypatch.setenv("SNAPD_LOG_LEVEL", "chatty")
    get_settings.cache_clear()

    result = runner.invoke(app, ["list"])

    assert result.exit_code == 1
    assert "Invalid configuration" in result.stdout
    snap_client.list_snaps.assert_not_called()
