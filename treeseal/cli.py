"""CLI entry point for TreeSeal."""

from __future__ import annotations

import logging
from collections.abc import Iterator
from pathlib import Path
from typing import Annotated

import typer
import yaml
from rich import print as rprint
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.syntax import Syntax
from rich.table import Table

from treeseal_core.config import RunOptions, TreeSealConfig, load_config
from treeseal_core.config.loader import DEFAULT_CONFIG_TEMPLATE
from treeseal_core.events import DispatchSink
from treeseal_core.events.models import (
    DirectoryChanged,
    DirectoryUnchanged,
    InvalidSignature,
    ItemAdded,
    ItemChanged,
    ItemRemoved,
    ItemUnchanged,
    ValidSignature,
    printable,
)
from treeseal_core.events.sinks import CollectingSink
from treeseal_core.interfaces.trust import TrustPolicy
from treeseal_core.merkle import Attestor, PlannedAction, TreeSealError
from treeseal_core.trust import TrustError, TrustStore, create_trust_policy

app = typer.Typer(
    name="treeseal",
    help="Signed per-directory manifests: detect added, removed or modified files.",
)

keys_app = typer.Typer(help="Manage signing identities.")
app.add_typer(keys_app, name="keys")

config_app = typer.Typer(help="Manage TreeSeal configuration.")
app.add_typer(config_app, name="config")

# Global state
_config: TreeSealConfig | None = None

_LOG_LEVELS = {"debug": logging.DEBUG, "info": logging.INFO, "warn": logging.WARNING, "error": logging.ERROR}


def _show(value: object) -> str:
    return escape(printable(value))


def _get_config() -> TreeSealConfig:
    if _config is None:
        return load_config()
    return _config


def _setup_logging(level: str) -> None:
    logging.basicConfig(
        level=_LOG_LEVELS[level],
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_time=False, show_path=False)],
        force=True,
    )


@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    config: Annotated[
        str | None, typer.Option("--config", "-c", help="Path to treeseal.yaml")
    ] = None,
) -> None:
    """Global options."""
    global _config
    try:
        _config = load_config(config)
    except ValueError as e:
        rprint(f"[red]Error:[/red] {escape(str(e))}")
        raise typer.Exit(1)
    _setup_logging(_config.log_level)
    if ctx.invoked_subcommand is None:
        typer.echo(ctx.get_help())
        raise typer.Exit(0)


# ---------------------------------------------------------------------------
# Shared option types
# ---------------------------------------------------------------------------

RootsArg = Annotated[
    list[Path],
    typer.Argument(exists=True, file_okay=False, dir_okay=True, help="Root directories"),
]
DryRunOpt = Annotated[bool, typer.Option("--dry-run", "-n", help="Print planned actions, perform none")]
RecursiveOpt = Annotated[bool, typer.Option("--recursive", "-r", help="Descend into subdirectories")]
SignerOpt = Annotated[str | None, typer.Option("--signer", "-s", help="Signing identity selector")]
ExcludeOpt = Annotated[
    list[str] | None,
    typer.Option("--exclude", "-x", help="Glob of subdirectories to skip (repeatable)"),
]
VerboseOpt = Annotated[bool, typer.Option("--verbose", "-v", help="Report unchanged items too")]


def _prepare(
    roots: list[Path],
    *,
    recursive: bool,
    exclude: list[str] | None,
    dry_run: bool,
    verbose: bool,
    signer: str | None,
    **flags: bool,
) -> tuple[Attestor, RunOptions]:
    cfg = _get_config()
    if verbose:
        _setup_logging("debug")
    options = RunOptions.from_config(
        cfg,
        recursive=recursive,
        excludes=tuple(exclude or ()),
        dry_run=dry_run,
        verbose=verbose,
        signer=signer,
        **flags,
    )
    policy: TrustPolicy = create_trust_policy(cfg.trust, options.signer)
    return Attestor(roots, options, policy), options


def _run_actions(actions: Iterator[PlannedAction], options: RunOptions) -> None:
    """Drain a write/delete run, printing one line per directory."""
    if options.dry_run:
        rprint("[yellow](dry run: nothing will be written)[/yellow]")
    count = 0
    try:
        for action in actions:
            if action.action == "skip":
                rprint(f"[dim]skip[/dim]   {_show(action.directory)} ({action.reason})")
                continue
            verb = action.action if not options.dry_run else f"would {action.action}"
            reason = f" ({action.reason})" if action.reason else ""
            rprint(f"[green]{verb}[/green] {_show(action.directory)}{reason}")
            count += 1
    except (TreeSealError, TrustError, OSError) as e:
        rprint(f"[red]Error:[/red] {escape(str(e))}")
        raise typer.Exit(1)
    rprint(f"\n{count} director{'y' if count == 1 else 'ies'} processed.")


# ---------------------------------------------------------------------------
# create / update / clear
# ---------------------------------------------------------------------------


@app.command()
def create(
    roots: RootsArg,
    dry_run: DryRunOpt = False,
    recursive: RecursiveOpt = False,
    signer: SignerOpt = None,
    exclude: ExcludeOpt = None,
    verbose: VerboseOpt = False,
) -> None:
    """Write a signed manifest in every directory."""
    attestor, options = _prepare(
        roots, recursive=recursive, exclude=exclude, dry_run=dry_run, verbose=verbose, signer=signer
    )
    _run_actions(attestor.create(), options)


@app.command()
def update(
    roots: RootsArg,
    dry_run: DryRunOpt = False,
    recursive: RecursiveOpt = False,
    signer: SignerOpt = None,
    exclude: ExcludeOpt = None,
    verbose: VerboseOpt = False,
) -> None:
    """Rewrite manifests only where something changed since the last write."""
    attestor, options = _prepare(
        roots, recursive=recursive, exclude=exclude, dry_run=dry_run, verbose=verbose, signer=signer
    )
    _run_actions(attestor.update(), options)


@app.command()
def clear(
    roots: RootsArg,
    dry_run: DryRunOpt = False,
    recursive: RecursiveOpt = False,
    exclude: ExcludeOpt = None,
    verbose: VerboseOpt = False,
) -> None:
    """Remove manifests."""
    attestor, options = _prepare(
        roots, recursive=recursive, exclude=exclude, dry_run=dry_run, verbose=verbose, signer=None
    )
    _run_actions(attestor.clear(), options)


# ---------------------------------------------------------------------------
# verify
# ---------------------------------------------------------------------------


def _console_sink(options: RunOptions) -> DispatchSink:
    """Default consumer: prints changes as they are found."""
    sink = DispatchSink(signatures_only=options.signatures_only, dirs_only=options.dirs_only)
    verbose = options.verbose

    def valid_signature(e: ValidSignature) -> None:
        if verbose or options.signatures_only:
            rprint(f"[green]signature ok[/green] {_show(e.directory)}: {escape(e.message)}")

    def invalid_signature(e: InvalidSignature) -> None:
        rprint(
            f"[red]SIGNATURE INVALID[/red] {_show(e.directory)}: {escape(e.message)}"
            f" [dim](accepting {escape(e.identity)})[/dim]"
        )

    def directory_unchanged(e: DirectoryUnchanged) -> None:
        if verbose:
            rprint(f"[dim]unchanged[/dim] {_show(e.directory)}")

    def directory_changed(e: DirectoryChanged) -> None:
        rprint(f"[yellow]changed[/yellow] {_show(e.directory)}")

    def item_unchanged(e: ItemUnchanged) -> None:
        if verbose:
            rprint(f"  [dim]=[/dim] {_show(e.name)}")

    def item_changed(e: ItemChanged) -> None:
        rprint(f"  [yellow]~[/yellow] {_show(e.name)}")
        if verbose:
            rprint(f"      [dim]{e.expected or '(unchecked)'} -> {e.actual or '(unchecked)'}[/dim]")

    def item_added(e: ItemAdded) -> None:
        rprint(f"  [green]+[/green] {_show(e.name)}")

    def item_removed(e: ItemRemoved) -> None:
        rprint(f"  [red]-[/red] {_show(e.name)}")

    sink.on("valid_signature", valid_signature)
    sink.on("invalid_signature", invalid_signature)
    sink.on("directory_unchanged", directory_unchanged)
    sink.on("directory_changed", directory_changed)
    sink.on("item_unchanged", item_unchanged)
    sink.on("item_changed", item_changed)
    sink.on("item_added", item_added)
    sink.on("item_removed", item_removed)
    return sink


@app.command()
def verify(
    roots: RootsArg,
    recursive: RecursiveOpt = False,
    signer: SignerOpt = None,
    exclude: ExcludeOpt = None,
    verbose: VerboseOpt = False,
    signatures_only: Annotated[
        bool, typer.Option("--signatures-only", help="Only check manifest signatures")
    ] = False,
    dirs_only: Annotated[
        bool, typer.Option("--dirs-only", help="Only report which directories changed")
    ] = False,
    as_json: Annotated[bool, typer.Option("--json", help="Print the full report as JSON")] = False,
    fail_on_change: Annotated[
        bool, typer.Option("--fail-on-change", help="Exit 1 on changes or invalid signatures")
    ] = False,
) -> None:
    """Compare directories against their manifests."""
    attestor, options = _prepare(
        roots,
        recursive=recursive,
        exclude=exclude,
        dry_run=False,
        verbose=verbose,
        signer=signer,
        signatures_only=signatures_only,
        dirs_only=dirs_only,
    )

    sink: CollectingSink | DispatchSink
    if as_json:
        sink = CollectingSink(signatures_only=signatures_only, dirs_only=dirs_only)
    else:
        sink = _console_sink(options)

    try:
        checked = attestor.verify(sink)
    except (TreeSealError, TrustError, OSError) as e:
        rprint(f"[red]Error:[/red] {escape(str(e))}")
        raise typer.Exit(1)

    if isinstance(sink, CollectingSink):
        typer.echo(sink.report.model_dump_json(indent=2))
        has_changes = sink.report.has_changes
    else:
        changed = sink.counts["directory_changed"]
        invalid = sink.counts["invalid_signature"]
        summary = f"\n{checked} checked, {changed} changed, {invalid} invalid signature(s)."
        if changed or invalid:
            rprint(f"[red]{summary}[/red]")
        else:
            rprint(f"[green]{summary}[/green]")
        has_changes = sink.has_changes

    if fail_on_change and has_changes:
        raise typer.Exit(code=1)


# ---------------------------------------------------------------------------
# keys
# ---------------------------------------------------------------------------


def _store(keyring: str | None) -> TrustStore:
    return TrustStore(keyring or _get_config().trust.keyring_dir)


KeyringOpt = Annotated[
    str | None, typer.Option("--keyring", help="Keyring directory (default from config)")
]


@keys_app.command("generate")
def keys_generate(
    name: str = typer.Argument(..., help="Identity name, e.g. 'Alice <alice@example.org>'"),
    default: bool = typer.Option(False, "--default", help="Make this the default signing identity"),
    keyring: KeyringOpt = None,
) -> None:
    """Create a new Ed25519 signing identity."""
    store = _store(keyring)
    try:
        identity = store.generate(name, make_default=default)
    except OSError as e:
        rprint(f"[red]Error:[/red] {escape(str(e))}")
        raise typer.Exit(1)
    rprint(f"[green]Generated[/green] {escape(str(identity))}")
    rprint(f"[dim]fingerprint:[/dim] {identity.fingerprint}")


@keys_app.command("list")
def keys_list(keyring: KeyringOpt = None) -> None:
    """List identities in the keyring."""
    store = _store(keyring)
    entries = store.entries()
    if not entries:
        rprint(f"[yellow]No identities in {escape(str(store.directory))}.[/yellow]")
        return
    table = Table(title=f"Identities ({len(entries)})")
    table.add_column("Key ID", style="cyan")
    table.add_column("Name")
    table.add_column("Secret", justify="center")
    table.add_column("Status")
    for entry in entries:
        identity = entry.identity
        status = "revoked" if identity.revoked else ("default" if entry.is_default else "")
        table.add_row(
            identity.key_id,
            escape(identity.name),
            "yes" if entry.has_secret else "-",
            status,
        )
    rprint(table)


# ---------------------------------------------------------------------------
# config
# ---------------------------------------------------------------------------


@config_app.command("show")
def config_show() -> None:
    """Show current resolved configuration."""
    cfg = _get_config()
    rprint(Syntax(yaml.dump(cfg.model_dump(), default_flow_style=False), "yaml"))


@config_app.command("init")
def config_init(
    force: bool = typer.Option(False, "--force", help="Overwrite existing config"),
) -> None:
    """Create default treeseal.yaml in current directory."""
    target = Path("treeseal.yaml")
    if target.exists() and not force:
        rprint("[yellow]treeseal.yaml already exists.[/yellow] Use --force to overwrite.")
        raise typer.Exit(1)
    target.write_text(DEFAULT_CONFIG_TEMPLATE)
    rprint(f"[green]Created[/green] {target}")
