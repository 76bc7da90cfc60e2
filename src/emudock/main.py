#!/usr/bin/env python3
"""Main entry point for the emudock CLI."""

import sys

import typer

from emudock import __version__
from emudock.commands import stack as stack_cmd
from emudock.utils.common import console

app = typer.Typer(
    name="emudock",
    help="Run the Firebase emulator suite in a container.",
    no_args_is_help=True,
    rich_markup_mode="rich",
    pretty_exceptions_enable=True,
    pretty_exceptions_show_locals=False,
    context_settings={"help_option_names": ["-h", "--help"]},
)


def version_callback(value: bool):
    """Show version and exit."""
    if value:
        console.print(f"[bold cyan]emudock[/bold cyan] version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool | None = typer.Option(
        None,
        "--version",
        "-v",
        help="Show version and exit",
        callback=version_callback,
        is_eager=True,
    ),
):
    """
    Render container recipes for the emulators, start them, and point clients at them.
    """
    pass


app.command(name="render")(stack_cmd.render)
app.command(name="up")(stack_cmd.up)
app.command(name="down")(stack_cmd.down)
app.command(name="logs")(stack_cmd.logs)
app.command(name="status")(stack_cmd.status)
app.command(name="env")(stack_cmd.env)


def run():
    """Main entry point for the CLI."""
    try:
        app()
    except KeyboardInterrupt:
        console.print("\n[yellow]Interrupted[/yellow]")
        sys.exit(130)


if __name__ == "__main__":
    run()
