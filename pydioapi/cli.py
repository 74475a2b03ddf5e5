"""
pydio CLI：认证一次保存到本地，之后所有命令复用保存的认证。
"""

from __future__ import annotations

import getpass
import json
from pathlib import Path
from typing import Annotated, Optional

import typer

from pydioapi import PydioAdapter, PydioError, entry_is_dir, entry_size
from pydioapi.cli_config import clear_config, load_config, save_config
from pydioapi.logging_config import setup_logging


def _format_size(n: int) -> str:
    """将字节数格式化为人类可读（KiB/MiB/GiB）。"""
    if n < 1024:
        return f"{n} B"
    if n < 1024 * 1024:
        return f"{n / 1024:.1f} KiB"
    if n < 1024 * 1024 * 1024:
        return f"{n / (1024 * 1024):.1f} MiB"
    return f"{n / (1024 * 1024 * 1024):.1f} GiB"


app = typer.Typer(
    name="pydio",
    help="Pydio REST API CLI. Auth once and save; use saved auth for all commands.",
)


@app.callback()
def _main_callback(
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Enable debug logging")] = False,
) -> None:
    setup_logging("DEBUG" if verbose else None)


# 可选参数：覆盖保存的 api_url / workspace
_api_url_option: type = Annotated[
    Optional[str],
    typer.Option("--api-url", "-a", help="Override saved API URL"),
]
_workspace_option: type = Annotated[
    Optional[str],
    typer.Option("--workspace", "-w", help="Override saved workspace id"),
]


def _clean(path: str) -> str:
    return (path or "").strip().strip("/")


def _get_client(api_url: str | None, workspace: str | None) -> PydioAdapter | None:
    cfg = load_config() or {}
    url = api_url or cfg.get("api_url")
    ws = workspace or cfg.get("workspace")
    username = cfg.get("username")
    password = cfg.get("password")
    if not url or not ws or username is None or password is None:
        return None
    return PydioAdapter(username, password, url, ws, timeout=30.0)


def _require_client(api_url: str | None, workspace: str | None) -> PydioAdapter:
    client = _get_client(api_url, workspace)
    if client is None:
        typer.echo("error: no saved credentials. run 'pydio login' first", err=True)
        raise typer.Exit(1)
    return client


def _fail(e: Exception) -> typer.Exit:
    typer.echo(f"error: {e}", err=True)
    return typer.Exit(1)


# ------------------------- login / logout / auth -------------------------


@app.command("login", help="Save credentials to local config")
def login(
    api_url: Annotated[Optional[str], typer.Option("--api-url", "-a", help="Pydio API URL")] = None,
    workspace: Annotated[Optional[str], typer.Option("--workspace", "-w", help="Workspace id")] = None,
    username: Annotated[Optional[str], typer.Option("--username", "-u", help="Username")] = None,
    password: Annotated[Optional[str], typer.Option("--password", "-p", help="Password (unsafe in shell)")] = None,
) -> None:
    api_url = api_url or input("API URL (e.g. https://pydio.example.com/api/): ").strip()
    if not api_url:
        typer.echo("error: API URL required", err=True)
        raise typer.Exit(1)
    workspace = workspace or input("Workspace: ").strip()
    if not workspace:
        typer.echo("error: workspace required", err=True)
        raise typer.Exit(1)
    username = username or input("Username: ").strip() or None
    if username and password is None:
        password = getpass.getpass("Password: ")
    save_config(api_url, workspace, username, password)
    typer.echo("Saved.")


@app.command("logout", help="Clear saved credentials")
def logout() -> None:
    if clear_config():
        typer.echo("Cleared.")
    else:
        typer.echo("No saved credentials.")


auth_app = typer.Typer(help="Auth subcommands")
app.add_typer(auth_app, name="auth")


def _print_status() -> None:
    cfg = load_config()
    if not cfg:
        typer.echo("Not logged in. Run 'pydio login'.")
        return
    has_auth = bool(cfg.get("username") and cfg.get("password"))
    typer.echo(f"api_url: {cfg.get('api_url')}")
    typer.echo(f"workspace: {cfg.get('workspace')}")
    typer.echo(f"auth: {'yes' if has_auth else 'no'}")


@auth_app.command("status", help="Show whether credentials are saved")
def auth_status() -> None:
    _print_status()


@app.command("info", help="Show saved API URL, workspace and auth status")
def info_cmd() -> None:
    _print_status()


# ------------------------- list / ls / stat -------------------------


def _cmd_list_impl(directory: str, recursive: bool, api_url: str | None, workspace: str | None) -> None:
    client = _require_client(api_url, workspace)
    try:
        entries = client.list_contents(_clean(directory), recursive=recursive)
    except PydioError as e:
        raise _fail(e)
    finally:
        client.close()
    for e in entries:
        name = e.path + ("/" if entry_is_dir(e) else "")
        size = _format_size(entry_size(e)) if e.is_file else "-"
        typer.echo(f"  {name}  {size}  {e.permission or '-'}  {e.timestamp or '-'}")


@app.command("list", help="List directory")
def list_cmd(
    directory: Annotated[str, typer.Argument(help="Directory path (default: workspace root)")] = "",
    recursive: Annotated[bool, typer.Option("--recursive", "-r", help="List subdirectories too")] = False,
    api_url: _api_url_option = None,
    workspace: _workspace_option = None,
) -> None:
    _cmd_list_impl(directory, recursive, api_url, workspace)


@app.command("ls", help="Alias for list")
def ls_cmd(
    directory: Annotated[str, typer.Argument(help="Directory path (default: workspace root)")] = "",
    recursive: Annotated[bool, typer.Option("--recursive", "-r", help="List subdirectories too")] = False,
    api_url: _api_url_option = None,
    workspace: _workspace_option = None,
) -> None:
    _cmd_list_impl(directory, recursive, api_url, workspace)


@app.command("stat", help="Show metadata of a file or folder (JSON)")
def stat_cmd(
    path: Annotated[str, typer.Argument(help="Remote path")],
    api_url: _api_url_option = None,
    workspace: _workspace_option = None,
) -> None:
    client = _require_client(api_url, workspace)
    try:
        meta = client.get_metadata(_clean(path))
        visibility = client.get_visibility(_clean(path)) if meta and meta.path else None
    except PydioError as e:
        raise _fail(e)
    finally:
        client.close()
    if meta is None:
        typer.echo(f"error: not found: {path}", err=True)
        raise typer.Exit(1)
    data = meta.to_dict()
    if visibility:
        data["visibility"] = visibility
    typer.echo(json.dumps(data, ensure_ascii=False, indent=2))


# ------------------------- download / upload -------------------------


@app.command("download", help="Download a file")
def download_cmd(
    remote_path: Annotated[str, typer.Argument(help="Remote path, e.g. docs/foo.txt")],
    output: Annotated[Optional[Path], typer.Option("--output", "-o", help="Local path (default: same name)")] = None,
    api_url: _api_url_option = None,
    workspace: _workspace_option = None,
) -> None:
    remote = _clean(remote_path)
    if not remote:
        typer.echo("error: remote path required", err=True)
        raise typer.Exit(1)
    client = _require_client(api_url, workspace)
    out = output if output is not None else Path(Path(remote).name)
    try:
        content = client.read(remote)
    except PydioError as e:
        raise _fail(e)
    finally:
        client.close()
    out.parent.mkdir(parents=True, exist_ok=True)
    out.write_bytes(content)
    typer.echo(f"Saved to {out}.")


@app.command("upload", help="Upload a local file")
def upload_cmd(
    path: Annotated[Path, typer.Argument(help="Local file path")],
    to: Annotated[Optional[str], typer.Option("--to", "-t", help="Remote path (default: local name at root)")] = None,
    visibility: Annotated[Optional[str], typer.Option("--visibility", help="public or private")] = None,
    api_url: _api_url_option = None,
    workspace: _workspace_option = None,
) -> None:
    if not path.is_file():
        typer.echo(f"error: not a file: {path}", err=True)
        raise typer.Exit(1)
    remote = _clean(to or path.name)
    config = {"visibility": visibility} if visibility else None
    client = _require_client(api_url, workspace)
    try:
        with path.open("rb") as f:
            client.write_stream(remote, f, config)
    except (PydioError, ValueError) as e:
        raise _fail(e)
    finally:
        client.close()
    typer.echo("Uploaded.")


# ------------------------- mkdir / delete -------------------------


@app.command("mkdir", help="Create a folder (parents are created as needed)")
def mkdir_cmd(
    path: Annotated[str, typer.Argument(help="Folder path, e.g. docs/sub")],
    api_url: _api_url_option = None,
    workspace: _workspace_option = None,
) -> None:
    client = _require_client(api_url, workspace)
    try:
        result = client.create_dir(_clean(path))
    except PydioError as e:
        raise _fail(e)
    finally:
        client.close()
    if result is None:
        typer.echo(f"error: could not create {path}", err=True)
        raise typer.Exit(1)
    typer.echo("Created.")


@app.command("delete", help="Delete a file or folder")
def delete_cmd(
    path: Annotated[str, typer.Argument(help="Remote path")],
    api_url: _api_url_option = None,
    workspace: _workspace_option = None,
) -> None:
    client = _require_client(api_url, workspace)
    try:
        client.delete(_clean(path))
    except PydioError as e:
        raise _fail(e)
    finally:
        client.close()
    typer.echo("Deleted.")


# ------------------------- move / copy / rename -------------------------


def _two_path_cmd(op: str, src: str, dst: str, api_url: str | None, workspace: str | None) -> None:
    client = _require_client(api_url, workspace)
    try:
        getattr(client, op)(_clean(src), _clean(dst))
    except PydioError as e:
        raise _fail(e)
    finally:
        client.close()
    typer.echo("OK.")


@app.command("move", help="Move a file")
def move_cmd(
    src: Annotated[str, typer.Argument(help="Source path")],
    dst: Annotated[str, typer.Argument(help="Destination path")],
    api_url: _api_url_option = None,
    workspace: _workspace_option = None,
) -> None:
    _two_path_cmd("move", src, dst, api_url, workspace)


@app.command("copy", help="Copy a file into the destination's folder")
def copy_cmd(
    src: Annotated[str, typer.Argument(help="Source path")],
    dst: Annotated[str, typer.Argument(help="Destination path")],
    api_url: _api_url_option = None,
    workspace: _workspace_option = None,
) -> None:
    _two_path_cmd("copy", src, dst, api_url, workspace)


@app.command("rename", help="Rename a file (keeps it in its folder)")
def rename_cmd(
    src: Annotated[str, typer.Argument(help="Source path")],
    dst: Annotated[str, typer.Argument(help="New path")],
    api_url: _api_url_option = None,
    workspace: _workspace_option = None,
) -> None:
    _two_path_cmd("rename", src, dst, api_url, workspace)


# ------------------------- chmod -------------------------


@app.command("chmod", help="Set visibility (public or private)")
def chmod_cmd(
    path: Annotated[str, typer.Argument(help="Remote path")],
    visibility: Annotated[str, typer.Argument(help="public or private")],
    api_url: _api_url_option = None,
    workspace: _workspace_option = None,
) -> None:
    client = _require_client(api_url, workspace)
    try:
        client.set_visibility(_clean(path), visibility)
    except (PydioError, ValueError) as e:
        raise _fail(e)
    finally:
        client.close()
    typer.echo("OK.")


# ------------------------- main -------------------------


def main() -> None:
    app()


if __name__ == "__main__":
    main()
