"""Entry point: upload backend code, inspect local hashes, store settings."""

import json
import logging
import sys
from typing import Optional

import click

from unisave_uploader import config as app_config
from unisave_uploader.auth.credentials import CredentialsStore
from unisave_uploader.sync.engine import ErrorKind, UploadState, Uploader
from unisave_uploader.sync.hashing import build_manifest
from unisave_uploader.ui.notify import notify_result

EXIT_COMPILE_FAILED = 1
EXIT_UPLOAD_FAILED = 2


def _setup_logging(verbose: bool = False) -> None:
    """Configure logging to a file in the config dir and to stderr (INFO level, DEBUG when verbose)."""
    log_file = app_config.get_log_path()
    fmt = logging.Formatter(
        "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    root = logging.getLogger("unisave_uploader")
    root.setLevel(logging.DEBUG)
    root.handlers.clear()
    fh = logging.FileHandler(log_file, encoding="utf-8")
    fh.setLevel(logging.DEBUG)
    fh.setFormatter(fmt)
    root.addHandler(fh)
    ch = logging.StreamHandler(sys.stderr)
    ch.setLevel(logging.DEBUG if verbose else logging.INFO)
    ch.setFormatter(fmt)
    root.addHandler(ch)
    root.debug("Logging to %s", log_file)


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Log debug output to stderr")
@click.pass_context
def main(ctx: click.Context, verbose: bool) -> None:
    """Upload Unisave backend code to the server and let it compile."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    _setup_logging(verbose)


@main.command()
@click.option("--backend-folder", "-b", help="Folder with backend sources")
@click.option("--server-url", "-s", help="Unisave server URL")
@click.option("--extension", "-e", help="Source file extension (default .cs)")
@click.option("--no-notify", is_flag=True, help="Do not show desktop notifications")
@click.pass_context
def upload(
    ctx: click.Context,
    backend_folder: Optional[str],
    server_url: Optional[str],
    extension: Optional[str],
    no_notify: bool,
) -> None:
    """Upload changed backend files and compile them on the server."""
    log = logging.getLogger("unisave_uploader.main")
    prefs = app_config.load_preferences(
        {
            "backend_folder": backend_folder,
            "server_url": server_url,
            "source_extension": extension,
        }
    )
    if prefs.missing_tokens():
        click.echo(
            "Game token or editor key not set. Run 'unisave-uploader configure' "
            "or set UNISAVE_GAME_TOKEN and UNISAVE_EDITOR_KEY.",
            err=True,
        )
        ctx.exit(EXIT_UPLOAD_FAILED)

    log.info("Uploading %s to %s", prefs.source_root, prefs.server_url)
    result = Uploader.from_preferences(prefs).run()
    if not no_notify:
        notify_result(result)

    if result.state is UploadState.FAILED:
        click.echo(f"Upload failed while {result.failed_in.value}: {result.message}", err=True)
        if result.error is ErrorKind.AUTHORIZATION:
            click.echo("Check your game token and editor key ('unisave-uploader configure').", err=True)
        ctx.exit(EXIT_UPLOAD_FAILED)

    summary = f"Uploaded {len(result.uploaded)} of {len(result.plan)} requested files"
    if result.failed:
        summary += f" ({len(result.failed)} failed: {', '.join(result.failed)})"
    click.echo(summary)
    if not result.ok:
        click.echo(f"Server compile error:\n{result.message}", err=True)
        ctx.exit(EXIT_COMPILE_FAILED)
    click.echo("Compilation succeeded.")


@main.command()
@click.option("--backend-folder", "-b", help="Folder with backend sources")
@click.option("--extension", "-e", help="Source file extension (default .cs)")
@click.option("--json", "as_json", is_flag=True, help="Output in JSON format")
@click.pass_context
def hashes(ctx: click.Context, backend_folder: Optional[str], extension: Optional[str], as_json: bool) -> None:
    """Print scan order, per-file hashes and the global hash (no network)."""
    folder = backend_folder or app_config.get_backend_folder()
    ext = app_config.normalize_extension(extension) if extension else app_config.get_source_extension()
    try:
        manifest = build_manifest(folder, ext)
    except OSError as e:
        click.echo(f"Error: {e}", err=True)
        ctx.exit(EXIT_UPLOAD_FAILED)
    if as_json:
        click.echo(json.dumps(manifest.to_dict(), indent=2))
        return
    for path in manifest.files:
        click.echo(f"{manifest.hashes[path]}  {path}")
    click.echo(f"global {manifest.global_hash}  ({len(manifest.files)} files)")


@main.command()
@click.option("--server-url", help="Unisave server URL")
@click.option("--game-token", help="Game token")
@click.option("--editor-key", help="Editor key (stored in the OS keyring)")
@click.option("--backend-folder", help="Folder with backend sources")
@click.option("--extension", help="Source file extension")
def configure(
    server_url: Optional[str],
    game_token: Optional[str],
    editor_key: Optional[str],
    backend_folder: Optional[str],
    extension: Optional[str],
) -> None:
    """Persist settings. Tokens go to the OS keyring."""
    if server_url:
        app_config.set_server_url(server_url)
    if backend_folder:
        app_config.set_backend_folder(backend_folder)
    if extension:
        app_config.set_source_extension(extension)
    if game_token or editor_key:
        creds = CredentialsStore()
        stored = creds.get_stored()
        token = game_token or (stored[0] if stored else "")
        key = editor_key or (stored[1] if stored else "")
        if not token or not key:
            raise click.UsageError("Pass both --game-token and --editor-key the first time.")
        creds.set_stored(token, key)
    click.echo(f"Settings saved to {app_config.get_config_path()}")


@main.command()
def logout() -> None:
    """Remove the stored game token and editor key."""
    CredentialsStore().clear_stored()
    click.echo("Stored credentials removed.")


if __name__ == "__main__":
    main()
