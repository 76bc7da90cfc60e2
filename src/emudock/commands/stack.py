"""Emulator stack commands: render, up, down, logs, status, env."""

from pathlib import Path

import typer
from rich.markup import escape
from rich.table import Table

from ..bootstrap import EnvironmentBootstrapper
from ..client import ClientConfig, export_lines
from ..config import get_settings
from ..exceptions import EmuDockError
from ..render import RecipeOptions, render_emulator_config
from ..services import StackDefinition, resolve_stack
from ..utils.common import console

FILE_HELP = "Descriptor file (default: emulators.yaml in the project directory, if present)"


def _load(
    file: Path | None, readiness_timeout: float | None = None
) -> tuple[EnvironmentBootstrapper, StackDefinition]:
    """Resolve settings and descriptors and build a bootstrapper for them."""
    settings = get_settings()
    if readiness_timeout is not None:
        settings = settings.model_copy(update={"readiness_timeout": readiness_timeout})
    stack = resolve_stack(file, fallback=settings.descriptor_path)
    options = RecipeOptions.from_settings(settings, project_id=stack.project_id)
    return EnvironmentBootstrapper(stack.descriptors, settings=settings, options=options), stack


def render(
    file: Path | None = typer.Option(None, "--file", help=FILE_HELP),
    write: bool = typer.Option(False, "--write", help="Write the files into the project directory"),
):
    """Render the Dockerfile, compose file and emulator config."""
    try:
        bootstrapper, _ = _load(file)

        if write:
            for path in bootstrapper.write_artifacts():
                console.print(f"[green]✓[/green] Wrote {path}")
            return

        artifacts = bootstrapper.render()
        emulator_config = render_emulator_config(bootstrapper.descriptors, bootstrapper.options)
        for title, text in (
            (bootstrapper.options.dockerfile_name, artifacts.dockerfile),
            (bootstrapper.compose.compose_file.name, artifacts.compose),
            (bootstrapper.options.emulator_config_name, emulator_config),
        ):
            console.rule(f"[bold cyan]{title}[/bold cyan]")
            typer.echo(text, nl=False)
    except EmuDockError as e:
        console.print(f"[red]Failed to render: {escape(str(e))}[/red]")
        raise typer.Exit(1) from e


def up(
    file: Path | None = typer.Option(None, "--file", help=FILE_HELP),
    build: bool = typer.Option(True, "--build/--no-build", help="Rebuild the image before starting"),
    timeout: float | None = typer.Option(
        None, "--timeout", help="Seconds to wait for the emulators to answer"
    ),
):
    """Build and start the emulators (detached)."""
    if timeout is not None and timeout <= 0:
        console.print("[red]--timeout must be positive[/red]")
        raise typer.Exit(1)

    try:
        bootstrapper, _ = _load(file, readiness_timeout=timeout)
        with console.status("[cyan]Starting emulators...[/cyan]"):
            bootstrapper.start(build=build)

        console.print("[green]✓[/green] Emulators are up")
        for descriptor in bootstrapper.descriptors.enabled():
            console.print(
                f"  [cyan]{descriptor.name}[/cyan]: {bootstrapper.options.endpoint_host}:{descriptor.port}"
            )
    except EmuDockError as e:
        console.print(f"[red]Failed to start: {escape(str(e))}[/red]")
        raise typer.Exit(1) from e


def down(
    file: Path | None = typer.Option(None, "--file", help=FILE_HELP),
):
    """Stop and remove the emulator container."""
    try:
        bootstrapper, _ = _load(file)
        bootstrapper.stop()
        console.print("[green]✓[/green] Emulators stopped")
    except EmuDockError as e:
        console.print(f"[red]Failed to stop: {escape(str(e))}[/red]")
        raise typer.Exit(1) from e


def logs(
    follow: bool = typer.Option(False, "-f", "--follow", help="Follow log output"),
    tail: int = typer.Option(100, "-n", "--tail", min=0, help="Number of lines to show"),
    file: Path | None = typer.Option(None, "--file", help=FILE_HELP),
):
    """View emulator logs."""
    try:
        bootstrapper, _ = _load(file)
        for line in bootstrapper.logs(follow=follow, tail=tail):
            typer.echo(line)
    except KeyboardInterrupt:
        console.print("\n[yellow]Stopped following logs[/yellow]")
    except EmuDockError as e:
        console.print(f"[red]Failed to get logs: {escape(str(e))}[/red]")
        raise typer.Exit(1) from e


def status(
    file: Path | None = typer.Option(None, "--file", help=FILE_HELP),
):
    """Show the emulator containers."""
    try:
        bootstrapper, _ = _load(file)
        containers = bootstrapper.status()
    except EmuDockError as e:
        console.print(f"[red]Failed to show status: {escape(str(e))}[/red]")
        raise typer.Exit(1) from e

    if not containers:
        console.print("[yellow]No emulator containers found[/yellow]")
        return

    table = Table(title="Emulator Containers")
    table.add_column("Service", style="cyan")
    table.add_column("Container", style="blue")
    table.add_column("State")
    table.add_column("Ports")

    for container in containers:
        state = container.get("State", "unknown")
        state_str = f"[green]✓ {state}[/green]" if state == "running" else f"[red]✗ {state}[/red]"
        table.add_row(
            container.get("Service", "-"),
            container.get("Name", "-"),
            state_str,
            container.get("Ports") or "-",
        )

    console.print(table)


def env(
    file: Path | None = typer.Option(None, "--file", help=FILE_HELP),
    host: str | None = typer.Option(None, "--host", help="Host the client reaches the emulators on"),
):
    """Print shell exports that point clients at the emulators."""
    try:
        bootstrapper, stack = _load(file)
        config = ClientConfig.from_descriptors(
            stack.descriptors,
            project_id=bootstrapper.options.project_id,
            host=host or bootstrapper.options.endpoint_host,
        )
    except EmuDockError as e:
        console.print(f"[red]Failed to build client environment: {escape(str(e))}[/red]")
        raise typer.Exit(1) from e

    for line in export_lines(config):
        typer.echo(line)
