"""gitolite-admin CLI: manage SSH keys in a gitolite-admin checkout."""

from __future__ import annotations

import functools
import logging

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table

from gitolite_admin import __version__
from gitolite_admin.errors import GitoliteAdminError, NothingToCommit

console = Console()


def _setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


def _reports_errors(f):
    """Print domain errors instead of a traceback and exit non-zero."""

    @functools.wraps(f)
    def wrapper(*args, **kwargs):
        try:
            return f(*args, **kwargs)
        except NothingToCommit:
            console.print("[yellow]Nothing to commit.[/]")
        except GitoliteAdminError as e:
            console.print(f"[red]Error:[/] {escape(str(e))}")
            raise SystemExit(1)

    return wrapper


def _admin(ctx: click.Context):
    from gitolite_admin.admin import GitoliteAdmin
    from gitolite_admin.settings import AdminSettings, load_settings

    if "admin" not in ctx.obj:
        settings_path = ctx.obj["settings_path"]
        settings = load_settings(settings_path) if settings_path else AdminSettings()
        ctx.obj["admin"] = GitoliteAdmin(ctx.obj["repo"], settings)
    return ctx.obj["admin"]


@click.group()
@click.version_option(version=__version__)
@click.option("--repo", "-r", default="./gitolite-admin", help="Path to the gitolite-admin checkout")
@click.option("--settings", "-s", "settings_path", default=None, help="YAML settings file")
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
@click.pass_context
def main(ctx: click.Context, repo: str, settings_path: str | None, verbose: bool):
    """gitolite-admin: manage a gitolite-admin repository.

    The checkout at --repo is cloned from the configured server if it does
    not exist yet.
    """
    _setup_logging(verbose)
    ctx.ensure_object(dict)
    ctx.obj["repo"] = repo
    ctx.obj["settings_path"] = settings_path


# ── Keys ─────────────────────────────────────────────────────────────


@main.command(name="keys")
@click.option("--owner", "-o", default=None, help="Only show keys of this owner")
@click.pass_context
@_reports_errors
def list_keys(ctx: click.Context, owner: str | None):
    """List the SSH keys in the keydir."""
    admin = _admin(ctx)
    keys = admin.ssh_keys.all_keys()
    if owner:
        keys = [k for k in keys if k.owner == owner]

    if not keys:
        console.print("[yellow]No keys found.[/]")
        return

    table = Table(title=f"SSH keys ({len(keys)})")
    table.add_column("Owner", style="cyan")
    table.add_column("Location")
    table.add_column("Type", style="dim")
    table.add_column("Path")

    for key in sorted(keys, key=lambda k: k.relative_path):
        table.add_row(key.owner, key.location or "-", key.key_type, key.relative_path)

    console.print(table)


@main.command(name="add-key")
@click.argument("owner")
@click.argument("key_file", type=click.Path(exists=True, dir_okay=False))
@click.option("--location", "-l", default=None, help="Location of the key, e.g. 'laptop'")
@click.option("--subfolder", "-f", multiple=True, help="Folder above the location (repeatable)")
@click.option("--message", "-m", default=None, help="Commit message")
@click.option("--push", is_flag=True, help="Push after committing")
@click.pass_context
@_reports_errors
def add_key(ctx, owner, key_file, location, subfolder, message, push):
    """Add KEY_FILE as a key of OWNER and commit it."""
    from gitolite_admin.keys.models import SSHKey

    admin = _admin(ctx)
    with open(key_file) as f:
        key = SSHKey.from_string(f.read(), owner=owner, location=location, subfolders=subfolder)

    admin.add_key(key)
    sha = admin.save(message or f"Add key {key.relative_path}")
    console.print(f"  [green]v[/] Added {key.relative_path} ({sha[:12]})")

    if push:
        admin.push()
        console.print("  [green]v[/] Pushed")


@main.command(name="rm-key")
@click.argument("owner")
@click.option("--location", "-l", default=None, help="Only remove the key at this location")
@click.option("--message", "-m", default=None, help="Commit message")
@click.option("--push", is_flag=True, help="Push after committing")
@click.pass_context
@_reports_errors
def rm_key(ctx, owner, location, message, push):
    """Remove the keys of OWNER and commit the removal."""
    admin = _admin(ctx)
    key_set = admin.ssh_keys.get(owner)
    keys = [k for k in key_set or [] if location is None or k.location == location]

    if not keys:
        console.print(f"[yellow]No keys found for {owner}.[/]")
        raise SystemExit(1)

    for key in keys:
        admin.remove_key(key)
    sha = admin.save(message or f"Remove keys of {owner}")
    for key in keys:
        console.print(f"  [green]v[/] Removed {key.relative_path}")
    console.print(f"  Committed {sha[:12]}")

    if push:
        admin.push()
        console.print("  [green]v[/] Pushed")


# ── Sync ─────────────────────────────────────────────────────────────


@main.command()
@click.option("--message", "-m", default=None, help="Commit message")
@click.pass_context
@_reports_errors
def save(ctx, message):
    """Commit pending changes in the working tree."""
    sha = _admin(ctx).save(message)
    console.print(f"  [green]v[/] Committed {sha[:12]}")


@main.command()
@click.pass_context
@_reports_errors
def push(ctx):
    """Push the local branch to the gitolite server."""
    _admin(ctx).push()
    console.print("  [green]v[/] Pushed")


@main.command()
@click.pass_context
@_reports_errors
def update(ctx):
    """Reset to upstream and merge in the latest remote changes."""
    sha = _admin(ctx).update()
    if sha:
        console.print(f"  [green]v[/] Merged as {sha[:12]}")
    else:
        console.print("  [green]v[/] Already up to date")


@main.command()
@click.pass_context
@_reports_errors
def reset(ctx):
    """Discard local changes and reset to the upstream branch."""
    _admin(ctx).reset()
    console.print("  [green]v[/] Reset to upstream")


if __name__ == "__main__":
    main()
