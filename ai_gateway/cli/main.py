"""Main CLI entry point for the gateway."""

import logging

import typer
from rich.console import Console

from ai_gateway.cli.commands import config, start

app = typer.Typer(
    name="aigw",
    help="AI Gateway CLI - run and inspect the provider proxy",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

app.command(name="start", help="Start the proxy server")(start.start)
app.add_typer(config.app, name="config", help="Configuration management")


@app.command()
def version() -> None:
    """Show version information."""
    from ai_gateway import __version__

    console = Console()
    console.print(f"[bold cyan]aigw[/bold cyan] version [green]{__version__}[/green]")


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
) -> None:
    """AI Gateway CLI."""
    if verbose:
        logging.basicConfig(level=logging.DEBUG)


if __name__ == "__main__":
    app()
