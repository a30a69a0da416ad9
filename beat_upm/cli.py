"""Beat UPM CLI — run the one-time installer and inspect a project's manifest."""

from __future__ import annotations

import difflib
import logging
import sys

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.syntax import Syntax
from rich.table import Table

from beat_upm import __version__

console = Console()


def configure_logging(verbose: bool = False) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        handlers=[RichHandler(console=console, show_path=verbose, markup=False)],
        force=True,
    )


def _resolve_project(project_path: str):
    """Find the project root or exit with an error."""
    from beat_upm.errors import NotFoundError
    from beat_upm.manifest.locator import find_project_root

    try:
        return find_project_root(project_path)
    except NotFoundError as e:
        console.print(f"[red]{e}[/]")
        sys.exit(1)


def _load_config(project_root, config_path: str | None):
    from beat_upm.config import load_config
    from beat_upm.errors import ConfigError

    try:
        return load_config(project_root, config_path)
    except ConfigError as e:
        console.print(f"[red]Configuration error:[/] {e}")
        sys.exit(1)


@click.group()
@click.version_option(version=__version__)
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
def main(verbose: bool):
    """Beat UPM — scoped registry installer for Unity projects.

    Registers the Beat package registry in Packages/manifest.json, requests
    the beat.core package, and remembers that it ran for each project.
    """
    configure_logging(verbose)


# ── Install ──────────────────────────────────────────────────────────


@main.command()
@click.argument("project_path", default=".")
@click.option("--config", "-c", "config_path", default=None, help="Path to a beat_upm.yaml file")
@click.option("--force", is_flag=True, help="Run even if this project was already set up")
@click.option("--strategy", type=click.Choice(["textual", "structural"]), default=None)
@click.option("--package-command", default=None, help="Command adding a package, e.g. 'openupm add {package}'")
@click.option("--no-package", is_flag=True, help="Only add the registry; do not request the package")
@click.option("--timeout", type=float, default=None, help="Seconds to wait for the package request")
@click.option("--self-delete", multiple=True, help="File to delete after a successful run")
def install(
    project_path: str,
    config_path: str | None,
    force: bool,
    strategy: str | None,
    package_command: str | None,
    no_package: bool,
    timeout: float | None,
    self_delete: tuple,
):
    """Run the one-time installer for the Unity project at PROJECT_PATH."""
    import shlex
    from pathlib import Path

    from beat_upm.cleanup import SelfDeregisterHook
    from beat_upm.config import parse_strategy
    from beat_upm.coordinator import InstallCoordinator
    from beat_upm.models import RunStatus
    from beat_upm.notify import ConsoleNotifier
    from beat_upm.packages import CommandPackageClient
    from beat_upm.scheduler import UpdateLoop

    root = _resolve_project(project_path)
    config = _load_config(root, config_path)
    if strategy:
        config.strategy = parse_strategy(strategy)
    if package_command:
        config.package_command = shlex.split(package_command)
    if timeout is not None:
        config.timeout = timeout
    if self_delete:
        config.self_delete = [Path(p) for p in self_delete]

    console.print(f"\n[bold blue]Beat UPM[/] — Installing into: {root}\n")

    packages = None
    if config.package_command and not no_package:
        packages = CommandPackageClient(config.package_command, root)
    elif not no_package:
        console.print(
            f"[yellow]No package command configured; {config.package_id} will not be requested.[/]"
        )

    hook = None
    if config.self_delete:
        hook = SelfDeregisterHook([p if p.is_absolute() else root / p for p in config.self_delete])

    loop = UpdateLoop()
    coordinator = InstallCoordinator.from_config(
        config,
        root,
        loop=loop,
        packages=packages,
        notifier=ConsoleNotifier(console),
        self_deregister=hook,
    )
    report = coordinator.run(root, force=force)

    if not report.is_finished:
        with console.status(f"Waiting for {config.package_id}..."):
            loop.run_until_idle(interval=config.poll_interval, timeout=config.timeout)

    if not report.is_finished:
        coordinator.cancel()
        console.print(f"[yellow]Timed out waiting for {config.package_id}.[/]")
        console.print(f"[dim]{report.summary()}[/]")
        sys.exit(2)

    console.print(f"[dim]{report.summary()}[/]")
    if report.status == RunStatus.SKIPPED:
        console.print("[yellow]Already installed for this project.[/] Use --force to run again.")
    elif report.status == RunStatus.FAILED:
        sys.exit(1)


# ── Add registry ─────────────────────────────────────────────────────


@main.command(name="add-registry")
@click.argument("project_path", default=".")
@click.option("--config", "-c", "config_path", default=None, help="Path to a beat_upm.yaml file")
@click.option("--name", default=None, help="Registry name (default: from config)")
@click.option("--url", default=None, help="Registry URL (default: from config)")
@click.option("--scope", "-s", multiple=True, help="Registry scope (repeatable)")
@click.option("--strategy", type=click.Choice(["textual", "structural"]), default=None)
@click.option("--dry-run", is_flag=True, help="Show the change without writing it")
def add_registry(
    project_path: str,
    config_path: str | None,
    name: str | None,
    url: str | None,
    scope: tuple,
    strategy: str | None,
    dry_run: bool,
):
    """Add a scoped registry to the manifest, ignoring the run-once marker."""
    from beat_upm.config import parse_strategy
    from beat_upm.coordinator import InstallCoordinator
    from beat_upm.errors import InstallerError
    from beat_upm.manifest.locator import locate_manifest
    from beat_upm.manifest.patcher import patch_manifest
    from beat_upm.manifest.presence import is_registry_present
    from beat_upm.manifest.reader import read_manifest
    from beat_upm.markers import FileMarkerStore
    from beat_upm.models import InstallResult, ScopedRegistry

    root = _resolve_project(project_path)
    config = _load_config(root, config_path)
    if strategy:
        config.strategy = parse_strategy(strategy)

    try:
        entry = ScopedRegistry(
            name=name or config.registry.name,
            url=url or config.registry.url,
            scopes=list(scope) or config.registry.scopes,
        )
    except ValueError as e:
        raise click.BadParameter(str(e)) from e

    try:
        if dry_run:
            path = locate_manifest(root, config.manifest_path)
            text = read_manifest(path)
            present = is_registry_present(text, entry.name)
            updated = text if present else patch_manifest(text, entry, config.strategy)
            if updated == text:
                console.print(f"[yellow]{entry.name} registry already present.[/]")
                return
            diff = "".join(
                difflib.unified_diff(
                    text.splitlines(keepends=True),
                    updated.splitlines(keepends=True),
                    fromfile=str(path),
                    tofile=str(path),
                )
            )
            console.print(Syntax(diff, "diff", theme="ansi_dark"))
            return

        coordinator = InstallCoordinator(
            FileMarkerStore(root),
            strategy=config.strategy,
            manifest_path=config.manifest_path,
        )
        result = coordinator.ensure_registry_installed(root, entry)
    except InstallerError as e:
        console.print(f"[red]Failed:[/] {e}")
        sys.exit(1)

    if result == InstallResult.INSTALLED:
        console.print(f"  [green]v[/] Added {entry.name} ({entry.url})")
    else:
        console.print(f"  [yellow]-[/] {entry.name} registry already present")


# ── Inspect ──────────────────────────────────────────────────────────


@main.command()
@click.argument("project_path", default=".")
@click.option("--config", "-c", "config_path", default=None, help="Path to a beat_upm.yaml file")
@click.option("--name", default=None, help="Registry name to look for (default: from config)")
def check(project_path: str, config_path: str | None, name: str | None):
    """Exit 0 if the manifest declares the named registry, 1 otherwise."""
    from beat_upm.errors import InstallerError
    from beat_upm.manifest.locator import locate_manifest
    from beat_upm.manifest.presence import is_registry_present
    from beat_upm.manifest.reader import read_manifest

    root = _resolve_project(project_path)
    config = _load_config(root, config_path)
    name = name or config.registry.name
    try:
        text = read_manifest(locate_manifest(root, config.manifest_path))
    except InstallerError as e:
        console.print(f"[red]{e}[/]")
        sys.exit(1)

    if is_registry_present(text, name):
        console.print(f"  [green]v[/] {name} registry present")
        return
    console.print(f"  [red]x[/] {name} registry missing")
    sys.exit(1)


@main.command(name="list")
@click.argument("project_path", default=".")
@click.option("--config", "-c", "config_path", default=None, help="Path to a beat_upm.yaml file")
def list_registries(project_path: str, config_path: str | None):
    """List the scoped registries declared in the manifest."""
    from beat_upm.errors import InstallerError
    from beat_upm.manifest.locator import locate_manifest
    from beat_upm.manifest.presence import read_registries
    from beat_upm.manifest.reader import read_manifest

    root = _resolve_project(project_path)
    config = _load_config(root, config_path)
    try:
        registries = read_registries(read_manifest(locate_manifest(root, config.manifest_path)))
    except InstallerError as e:
        console.print(f"[red]{e}[/]")
        sys.exit(1)
    except ValueError as e:
        console.print(f"[red]manifest.json is not valid JSON:[/] {e}")
        sys.exit(1)

    if not registries:
        console.print("[yellow]No scoped registries declared.[/]")
        return

    table = Table(title=f"Scoped Registries ({len(registries)})")
    table.add_column("Name", style="cyan")
    table.add_column("URL")
    table.add_column("Scopes")
    for registry in registries:
        table.add_row(registry.name, registry.url, ", ".join(registry.scopes))

    console.print(table)


@main.command()
@click.argument("project_path", default=".")
@click.option("--config", "-c", "config_path", default=None, help="Path to a beat_upm.yaml file")
def status(project_path: str, config_path: str | None):
    """Show whether the installer has already run for the project."""
    from beat_upm.errors import InstallerError

    root = _resolve_project(project_path)
    config = _load_config(root, config_path)
    try:
        done = config.marker_store(root).is_done(config.marker_key)
    except InstallerError as e:
        console.print(f"[red]{e}[/]")
        sys.exit(1)

    state = "[green]installed[/]" if done else "[yellow]not installed[/]"
    console.print(f"  {state} ({config.marker_backend} marker '{config.marker_key}')")
    console.print(f"  [dim]{root}[/]")


if __name__ == "__main__":
    main()
