import asyncio
import json
import logging
from pathlib import Path
from typing import Any, Coroutine, List, Optional

import httpx
import typer
from rich import print
from rich.console import Console
from rich.table import Table

from snapd_client.client import SnapClient
from snapd_client.config import get_settings
from snapd_client.errors import SnapdError

logger = logging.getLogger(__name__)

APP_HELP = """
snapc: Talk to the snapd daemon over its Unix socket.

Mutating commands (install, remove, connect, ...) print the id of the change
snapd started. Follow it with `snapc changes show <id>`.

Authenticated commands read the macaroon from ~/.snap/auth.json
(override with --auth-file or SNAPD_AUTH_FILE).
"""

app = typer.Typer(name="snapc", help=APP_HELP, no_args_is_help=True)
conf_app = typer.Typer(name="conf", help="Read and write snap configuration.")
changes_app = typer.Typer(name="changes", help="Inspect and abort changes.")
interfaces_app = typer.Typer(name="interfaces", help="List and wire up interfaces.")
app.add_typer(conf_app, name="conf")
app.add_typer(changes_app, name="changes")
app.add_typer(interfaces_app, name="interfaces")

console = Console()
state = {"socket_path": None, "auth_file": None}


def _client() -> SnapClient:
    return SnapClient(auth_file=state["auth_file"], socket_path=state["socket_path"])


def _run(coro: Coroutine[Any, Any, Any]) -> Any:
    """Run a client coroutine, turning failures into a message and exit code 1."""
    try:
        return asyncio.run(coro)
    except SnapdError as e:
        kind = f" ({e.kind})" if e.kind else ""
        console.print(f"[red]snapd error{kind}: {e.message}[/red]")
        raise typer.Exit(code=1)
    except httpx.HTTPError as e:
        console.print(f"[red]Cannot reach snapd at {state['socket_path'] or get_settings().socket_path}: {e}[/red]")
        raise typer.Exit(code=1)
    except (OSError, ValueError) as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(code=1)


def _print_json(data: Any) -> None:
    print(json.dumps(data, indent=2, default=str))


@app.callback()
def main(
    socket_path: Optional[Path] = typer.Option(None, "--socket", help="snapd socket (default: /run/snapd.socket)."),
    auth_file: Optional[Path] = typer.Option(None, "--auth-file", help="Credential file (default: ~/.snap/auth.json)."),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log requests to stderr."),
):
    """
    snapd client.
    """
    state["socket_path"] = socket_path
    state["auth_file"] = auth_file
    try:
        settings = get_settings()
    except ValueError as e:
        console.print(f"[red]Invalid configuration: {e}[/red]")
        raise typer.Exit(code=1)
    level = logging.DEBUG if verbose else settings.log_level
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    logger.debug(f"snapc using socket={socket_path or 'default'} auth_file={auth_file or 'default'}")


# ============================================================================
# Account Commands
# ============================================================================

@app.command()
def login(
    email: str = typer.Argument(..., help="Store account email"),
    password: str = typer.Option(..., prompt=True, hide_input=True, help="Account password"),
    otp: Optional[str] = typer.Option(None, "--otp", help="Two-factor one-time passcode"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
):
    """
    Log in to the store. Usually needs root.
    """
    credential = _run(_client().login(email, password, otp))

    if json_output:
        _print_json(credential.model_dump())
        return
    print(f"[green]Logged in as {credential.email}[/green]")


@app.command()
def logout():
    """
    Log out using the stored credential.
    """
    _run(_client().logout())
    print("[green]Logged out[/green]")


@app.command()
def whoami():
    """
    Show the account of the stored credential.
    """
    credential = _run(_client().read_auth())
    print(f"email: {credential.email or '-'}")


# ============================================================================
# Snap Commands
# ============================================================================

@app.command("list")
def list_snaps(json_output: bool = typer.Option(False, "--json", help="Output as JSON")):
    """
    List installed snaps.
    """
    names = _run(_client().list_snaps())

    if json_output:
        _print_json(names)
        return
    for name in names:
        print(name)


@app.command()
def info(
    name: str = typer.Argument(..., help="Snap name"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
):
    """
    Show details of an installed snap.
    """
    result = _run(_client().info(name))

    if json_output or not isinstance(result, dict):
        _print_json(result)
        return

    table = Table(title=name, show_header=False)
    table.add_column("Field", style="cyan")
    table.add_column("Value")
    for field in ("summary", "version", "revision", "channel", "confinement", "status", "publisher"):
        value = result.get(field)
        if isinstance(value, dict):
            value = value.get("display-name") or value.get("username")
        if value is not None:
            table.add_row(field, str(value))
    console.print(table)


def _register_modify_command(action: str, help_text: str) -> None:
    def command(
        name: str = typer.Argument(..., help="Snap name"),
        channel: Optional[str] = typer.Option(None, "--channel", help="Track/risk to follow"),
        version: Optional[str] = typer.Option(None, "--version", help="Version to install"),
        classic: bool = typer.Option(False, "--classic", help="Use classic confinement"),
        devmode: bool = typer.Option(False, "--devmode", help="Use development mode"),
        jailmode: bool = typer.Option(False, "--jailmode", help="Force strict confinement"),
        ignore_validation: bool = typer.Option(False, "--ignore-validation", help="Ignore validation constraints"),
    ):
        change_id = _run(
            _client().modify(
                action,
                name,
                channel=channel,
                version=version,
                classic=classic,
                devmode=devmode,
                jailmode=jailmode,
                ignore_validation=ignore_validation,
            )
        )
        print(f"[green]{action} {name}[/green]: change {change_id}")

    command.__doc__ = help_text
    app.command(action)(command)


for _action, _help in (
    ("install", "Install a snap."),
    ("remove", "Remove a snap."),
    ("switch", "Switch the channel a snap tracks."),
    ("refresh", "Refresh a snap."),
    ("revert", "Revert a snap to its previous revision."),
    ("enable", "Enable a disabled snap."),
    ("disable", "Disable a snap."),
):
    _register_modify_command(_action, _help)


@app.command()
def apps(
    action: str = typer.Argument(..., help="start, stop or restart"),
    names: List[str] = typer.Argument(..., help="Snap or app names"),
    enable: bool = typer.Option(False, "--enable", help="With start: also enable at boot"),
    disable: bool = typer.Option(False, "--disable", help="With stop: also disable at boot"),
    reload: bool = typer.Option(False, "--reload", help="With restart: reload if possible"),
):
    """
    Start, stop or restart snap services.
    """
    status = _run(_client().post_apps(list(names), action, enable=enable, disable=disable, reload=reload))
    print(f"[green]{action}[/green]: {status}")


# ============================================================================
# Configuration Commands
# ============================================================================

@conf_app.command("get")
def conf_get(
    name: str = typer.Argument(..., help="Snap name"),
    keys: Optional[List[str]] = typer.Argument(None, help="Keys to read (default: all)"),
):
    """
    Print configuration values of a snap as JSON.
    """
    _print_json(_run(_client().get_conf(name, list(keys) if keys else None)))


@conf_app.command("set")
def conf_set(
    name: str = typer.Argument(..., help="Snap name"),
    assignments: List[str] = typer.Argument(..., help="key=value pairs"),
):
    """
    Set configuration values of a snap.

    Values are parsed as JSON when possible, otherwise kept as strings.

    Examples:
        snapc conf set my-snap speed=2 name=fast
        snapc conf set my-snap 'limits={"cpu": 2}'
    """
    keys = {}
    for assignment in assignments:
        key, sep, raw = assignment.partition("=")
        if not sep or not key:
            console.print(f"[red]Invalid assignment '{assignment}', expected key=value[/red]")
            raise typer.Exit(code=1)
        try:
            keys[key] = json.loads(raw)
        except json.JSONDecodeError:
            keys[key] = raw

    status = _run(_client().put_conf(name, keys))
    print(f"[green]Configuration updated[/green] ({status})")


# ============================================================================
# Change Commands
# ============================================================================

def _change_table(changes: List[dict]) -> Table:
    table = Table(title="Changes")
    table.add_column("ID", style="cyan")
    table.add_column("Status")
    table.add_column("Kind")
    table.add_column("Summary")
    for change in changes:
        table.add_row(
            str(change.get("id", "")),
            str(change.get("status", "")),
            str(change.get("kind", "")),
            str(change.get("summary", "")),
        )
    return table


@changes_app.command("list")
def changes_list(json_output: bool = typer.Option(False, "--json", help="Output as JSON")):
    """
    List recent changes.
    """
    changes = _run(_client().status())

    if json_output or not isinstance(changes, list):
        _print_json(changes)
        return
    if not changes:
        print("[dim]No changes[/dim]")
        return
    console.print(_change_table(changes))


@changes_app.command("show")
def changes_show(change_id: str = typer.Argument(..., help="Change id")):
    """
    Show a change and its tasks as JSON.
    """
    _print_json(_run(_client().status(change_id)))


@changes_app.command("abort")
def changes_abort(change_id: str = typer.Argument(..., help="Change id")):
    """
    Abort an ongoing change.
    """
    change = _run(_client().abort(change_id))
    status = change.get("status") if isinstance(change, dict) else change
    print(f"[yellow]Abort requested[/yellow]: change {change_id} ({status})")


# ============================================================================
# Interface Commands
# ============================================================================

def _parse_endpoint(value: str, attr: str) -> dict:
    snap, sep, name = value.partition(":")
    if not sep or not snap or not name:
        console.print(f"[red]Invalid {attr} '{value}', expected <snap>:<{attr}>[/red]")
        raise typer.Exit(code=1)
    return {"snap": snap, attr: name}


@interfaces_app.command("list")
def interfaces_list(json_output: bool = typer.Option(False, "--json", help="Output as JSON")):
    """
    List slots and the plugs connected to them.
    """
    result = _run(_client().list_interfaces())

    if json_output or not isinstance(result, dict):
        _print_json(result)
        return

    table = Table(title="Interfaces")
    table.add_column("Slot", style="cyan")
    table.add_column("Plug")
    for slot in result.get("slots", []):
        plugs = ", ".join(f"{p.get('snap')}:{p.get('plug')}" for p in slot.get("connections", []))
        table.add_row(f"{slot.get('snap')}:{slot.get('slot')}", plugs or "-")
    console.print(table)


@interfaces_app.command("connect")
def interfaces_connect(
    plug: str = typer.Argument(..., help="<snap>:<plug>"),
    slot: str = typer.Argument(..., help="<snap>:<slot>"),
):
    """
    Connect a plug to a slot.
    """
    change_id = _run(
        _client().connect(_parse_endpoint(slot, "slot"), _parse_endpoint(plug, "plug"))
    )
    print(f"[green]connect {plug} {slot}[/green]: change {change_id}")


@interfaces_app.command("disconnect")
def interfaces_disconnect(
    plug: str = typer.Argument(..., help="<snap>:<plug>"),
    slot: str = typer.Argument(..., help="<snap>:<slot>"),
):
    """
    Disconnect a plug from a slot.
    """
    change_id = _run(
        _client().disconnect(_parse_endpoint(slot, "slot"), _parse_endpoint(plug, "plug"))
    )
    print(f"[green]disconnect {plug} {slot}[/green]: change {change_id}")


if __name__ == "__main__":
    app()
