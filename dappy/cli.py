"""dappy CLI — administer the local identity registries."""

from __future__ import annotations

import logging
from pathlib import Path

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from dappy import __version__
from dappy.config import PointerSettings, VerificationSettings, load_settings
from dappy.errors import ConfigError, RegistryError
from dappy.ledger.local import LocalLedger
from dappy.ledger.store import StateStore
from dappy.pointers.models import Multihash
from dappy.pointers.registry import REGISTRIES
from dappy.security.audit_log import AuditLogger

console = Console()

POINTER_REGISTRIES = click.Choice(sorted(REGISTRIES))


def _fail(message: str) -> None:
    console.print(f"[red]Error:[/] {message}")
    raise SystemExit(1)


def _ledger(ctx: click.Context) -> LocalLedger:
    return ctx.obj["ledger"]


def _apply(ctx: click.Context, operation):
    """Run one registry call, persist on success, exit non-zero on failure."""
    try:
        result = operation()
    except (RegistryError, ValueError) as exc:
        _fail(getattr(exc, "message", None) or str(exc))
    _ledger(ctx).save()
    return result


@click.group()
@click.version_option(version=__version__)
@click.option("--config", "config_path", default=None, type=click.Path(dir_okay=False), help="YAML config file")
@click.option("--state-dir", default=None, help="Registry state directory (default: ~/.dappy/state)")
@click.option("--no-audit", is_flag=True, help="Do not write events to the audit log")
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
@click.pass_context
def main(ctx: click.Context, config_path: str | None, state_dir: str | None, no_audit: bool, verbose: bool):
    """dappy — identity registries for accounts.

    Manage soulbound user verification tokens and the social connection /
    filesystem change pointer registries stored under the state directory.
    """
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
    )
    try:
        settings = load_settings(config_path)
    except ConfigError as exc:
        _fail(exc.message)
    if state_dir:
        settings.state_dir = state_dir

    ledger = LocalLedger(StateStore(settings.state_path))
    if not no_audit:
        AuditLogger(settings.state_path.parent / "audit_logs").attach(ledger.context.events)
    ctx.obj = {"settings": settings, "ledger": ledger}


# ── Verification ─────────────────────────────────────────────────────


@main.group()
def verification():
    """Manage user verification tokens."""


@verification.command(name="init")
@click.option("--owner", default=None, help="Owner address (default: USER_VERIFICATION_OWNER)")
@click.option("--name", "token_name", default=None, help="Token name")
@click.option("--symbol", "token_symbol", default=None, help="Token symbol")
@click.option("--expiration", type=int, default=None, help="Token validity in seconds")
@click.pass_context
def init_verification(ctx, owner, token_name, token_symbol, expiration):
    """Create and initialize the verification registry."""
    configured = ctx.obj["settings"].verification
    try:
        settings = VerificationSettings(
            owner=owner or configured.owner,
            token_name=token_name or configured.token_name,
            token_symbol=token_symbol or configured.token_symbol,
            token_expiration_time=expiration or configured.token_expiration_time,
            managers=configured.managers,
        ).validate()
    except ConfigError as exc:
        _fail(exc.message)

    registry = _ledger(ctx).verification
    _apply(
        ctx,
        lambda: registry.initialize(
            settings.owner,
            settings.token_name,
            settings.token_symbol,
            settings.token_expiration_time,
        ),
    )
    console.print(
        f"[green]Initialized[/] {settings.token_name} ({settings.token_symbol}), "
        f"owner {settings.owner}, validity {settings.token_expiration_time}s"
    )
    if settings.managers:
        changed = _apply(ctx, lambda: registry.set_managers(settings.owner, settings.managers, True))
        console.print(f"  Enabled {len(changed)} manager(s)")


@verification.command()
@click.argument("account")
@click.option("--caller", "-c", required=True, help="Owner or manager address")
@click.option("--token-id", type=int, default=None, help="Explicit token id (default: next free id)")
@click.pass_context
def issue(ctx, account, caller, token_id):
    """Issue a verification token to ACCOUNT."""
    registry = _ledger(ctx).verification
    issued = _apply(ctx, lambda: registry.issue_token(caller, account, token_id))
    console.print(f"[green]Issued[/] token {issued} to {account.lower()}")


@verification.command()
@click.argument("token_id", type=int)
@click.option("--caller", "-c", required=True, help="Owner or manager address")
@click.pass_context
def revoke(ctx, token_id, caller):
    """Revoke token TOKEN_ID."""
    registry = _ledger(ctx).verification
    _apply(ctx, lambda: registry.revoke_token(caller, token_id))
    console.print(f"[green]Revoked[/] token {token_id}")


@verification.command()
@click.argument("from_account")
@click.argument("to_account")
@click.option("--caller", "-c", required=True, help="Owner or manager address")
@click.pass_context
def reissue(ctx, from_account, to_account, caller):
    """Move FROM_ACCOUNT's token to TO_ACCOUNT."""
    registry = _ledger(ctx).verification
    moved = _apply(ctx, lambda: registry.reissue_token(caller, from_account, to_account))
    if moved:
        console.print(f"[green]Reissued[/] token to {to_account.lower()}")
    else:
        console.print(f"[yellow]Skipped:[/] {to_account.lower()} already holds a token")


@verification.command()
@click.argument("token_id", type=int)
@click.option("--caller", "-c", required=True, help="Owner or manager address")
@click.pass_context
def extend(ctx, token_id, caller):
    """Restart the validity window of TOKEN_ID."""
    registry = _ledger(ctx).verification
    expires_at = _apply(ctx, lambda: registry.extend_token_expiry(caller, token_id))
    console.print(f"[green]Extended[/] token {token_id} until {expires_at}")


@verification.command(name="set-managers")
@click.argument("accounts", nargs=-1)
@click.option("--caller", "-c", required=True, help="Owner address")
@click.option("--disable", is_flag=True, help="Remove the accounts instead of adding them")
@click.pass_context
def set_managers(ctx, accounts, caller, disable):
    """Enable (or disable) ACCOUNTS as managers. Defaults to MANAGERS."""
    accounts = list(accounts) or ctx.obj["settings"].verification.managers
    if not accounts:
        _fail("managers list is empty")
    registry = _ledger(ctx).verification
    changed = _apply(ctx, lambda: registry.set_managers(caller, accounts, not disable))
    verb = "Disabled" if disable else "Enabled"
    console.print(f"[green]{verb}[/] {len(changed)} manager(s)")


@verification.command()
@click.argument("account", required=False)
@click.pass_context
def status(ctx, account):
    """Show all tokens, or the token held by ACCOUNT."""
    registry = _ledger(ctx).verification
    if not registry.initialized:
        console.print("[yellow]Verification registry is not initialized.[/]")
        return

    try:
        if account:
            records = [registry.token_record(registry.get_token_id(account))]
        else:
            records = registry.tokens()
    except (RegistryError, ValueError) as exc:
        _fail(getattr(exc, "message", None) or str(exc))

    now = registry.context.now()
    table = Table(title=f"{registry.name} ({registry.symbol}) — {registry.total_supply()} token(s)")
    table.add_column("Token", justify="right", style="cyan")
    table.add_column("Holder")
    table.add_column("Expires", justify="right")
    table.add_column("Valid", justify="center")
    for record in records:
        valid = "[red]N[/]" if record.is_expired(now) else "[green]Y[/]"
        table.add_row(str(record.token_id), record.holder, str(record.expires_at), valid)
    console.print(table)
    console.print(f"Owner: {registry.owner}  Managers: {', '.join(registry.managers()) or '-'}")


# ── Pointers ─────────────────────────────────────────────────────────


@main.group()
def pointers():
    """Manage social connection and filesystem change pointers."""


def _pointer_registry(ctx, name):
    registry = _ledger(ctx).pointers(name)
    if registry is None:
        _fail(f"Registry '{name}' does not exist. Run 'dappy pointers init {name}' first.")
    return registry


@pointers.command(name="init")
@click.argument("registry_name", type=POINTER_REGISTRIES)
@click.option("--owner", default=None, help="Owner address (default from config)")
@click.pass_context
def init_pointers(ctx, registry_name, owner):
    """Create a pointer registry."""
    env_name = f"{registry_name.upper()}_OWNER"
    configured = getattr(ctx.obj["settings"], registry_name)
    try:
        owner = PointerSettings(owner=owner or configured.owner).validate(env_name).owner
    except ConfigError as exc:
        _fail(exc.message)
    try:
        registry = _ledger(ctx).create_pointers(registry_name, owner)
    except FileExistsError as exc:
        _fail(str(exc))
    _ledger(ctx).save()
    console.print(f"[green]Created[/] {registry_name} owned by {registry.owner}")


@pointers.command(name="set")
@click.argument("registry_name", type=POINTER_REGISTRIES)
@click.option("--caller", "-c", required=True, help="Account writing the pointer")
@click.option("--content", default=None, help="Hash this text into a sha2-256 pointer")
@click.option("--digest", default=None, help="0x-prefixed 32-byte digest")
@click.option("--hash-function", type=int, default=0x12, show_default=True)
@click.option("--size", type=int, default=32, show_default=True)
@click.option("--service", is_flag=True, help="Write the owner's service slot")
@click.pass_context
def set_pointer(ctx, registry_name, caller, content, digest, hash_function, size, service):
    """Store a content pointer for the caller."""
    if (content is None) == (digest is None):
        _fail("pass exactly one of --content or --digest")
    try:
        pointer = Multihash.from_content(content) if content is not None else Multihash(digest, hash_function, size)
    except ValueError as exc:
        _fail(str(exc))

    registry = _pointer_registry(ctx, registry_name)
    if service:
        _apply(ctx, lambda: registry.set_service_pointer(caller, pointer))
    else:
        _apply(ctx, lambda: registry.set_user_pointer(caller, pointer))
    console.print(f"[green]Stored[/] {'service' if service else 'user'} pointer {pointer.digest}")


@pointers.command(name="remove")
@click.argument("registry_name", type=POINTER_REGISTRIES)
@click.option("--caller", "-c", required=True, help="Account removing its pointer")
@click.option("--service", is_flag=True, help="Clear the owner's service slot")
@click.pass_context
def remove_pointer(ctx, registry_name, caller, service):
    """Clear the caller's pointer."""
    registry = _pointer_registry(ctx, registry_name)
    _apply(ctx, lambda: registry.remove_pointer(caller, service))
    console.print(f"[green]Removed[/] {'service' if service else 'user'} pointer")


@pointers.command(name="show")
@click.argument("registry_name", type=POINTER_REGISTRIES)
@click.argument("account")
@click.pass_context
def show_pointer(ctx, registry_name, account):
    """Show ACCOUNT's user and service pointers."""
    registry = _pointer_registry(ctx, registry_name)
    try:
        slots = [("user", registry.user_pointer(account)), ("service", registry.service_pointer(account))]
    except ValueError as exc:
        _fail(str(exc))

    table = Table(title=f"{registry_name}: {account.lower()}")
    table.add_column("Slot", style="cyan")
    table.add_column("Digest")
    table.add_column("Fn", justify="right")
    table.add_column("Size", justify="right")
    for slot, pointer in slots:
        if pointer.is_empty:
            table.add_row(slot, "[dim]unset[/]", "", "")
        else:
            table.add_row(slot, pointer.digest, hex(pointer.hash_function), str(pointer.size))
    console.print(table)


# ── Audit ────────────────────────────────────────────────────────────


@main.group()
def audit():
    """Inspect the registry audit log."""


@audit.command(name="list")
@click.option("--action", default=None, help="Filter by event name, e.g. TokenIssued")
@click.option("--registry", default=None, help="Filter by registry name")
@click.option("--limit", default=50, show_default=True)
@click.option("--format", "fmt", default="table", type=click.Choice(["table", "json", "csv"]))
@click.pass_context
def list_audit(ctx, action, registry, limit, fmt):
    """List recorded registry events, newest first."""
    logger = AuditLogger(Path(ctx.obj["settings"].state_path).parent / "audit_logs")
    if fmt != "table":
        click.echo(logger.export_events(fmt, action=action, registry=registry, limit=limit))
        return

    entries = logger.get_events(action=action, registry=registry, limit=limit)
    if not entries:
        console.print("[yellow]No audit entries found.[/]")
        return

    table = Table(title=f"Audit log ({len(entries)} entries)")
    table.add_column("Seq", justify="right", style="dim")
    table.add_column("Registry")
    table.add_column("Action", style="cyan")
    table.add_column("Actor")
    table.add_column("Resource")
    for e in entries:
        table.add_row(str(e.sequence), e.registry, e.action, e.actor, e.resource_id)
    console.print(table)


if __name__ == "__main__":
    main()
