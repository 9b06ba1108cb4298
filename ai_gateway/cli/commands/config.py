"""Configuration commands for the aigw CLI."""

import typer
from rich.console import Console
from rich.table import Table

from ai_gateway.core.config import ConfigError, ConfigSchema, GatewayConfig, validate_all
from ai_gateway.core.provider import DEFAULT_PROVIDERS

app = typer.Typer(help="Configuration management")


@app.command()
def show() -> None:
    """Show the effective configuration. Keys are never printed."""
    console = Console()
    try:
        config = GatewayConfig.load()
    except ConfigError as e:
        console.print(f"[red]Configuration error:[/red] {e}")
        raise typer.Exit(1) from e

    table = Table(title="AI Gateway Configuration")
    table.add_column("Setting", style="cyan")
    table.add_column("Value", style="green")

    table.add_row("Host", config.host)
    table.add_row("Port", str(config.port))
    table.add_row("Log Level", config.log_level)
    table.add_row("Master Key", config.master_key_hash)
    table.add_row("Rotation Limit", str(config.rotation_limit))
    table.add_row("Rotation Store", config.rotation_store)
    table.add_row("Request Timeout", f"{config.request_timeout}s")
    table.add_row("Connect Timeout", f"{config.connect_timeout}s")
    table.add_row("Metrics Sink", config.metrics_sink)
    if config.metrics_sink_url:
        table.add_row("Metrics Sink URL", config.metrics_sink_url)

    console.print(table)

    pools = Table(title="Rotation Key Pools")
    pools.add_column("Provider", style="cyan")
    pools.add_column("Host")
    pools.add_column("Keys", justify="right", style="green")
    for name, provider in sorted(DEFAULT_PROVIDERS.items()):
        pools.add_row(name, provider.host, str(len(config.key_pool(name))))
    console.print(pools)


@app.command()
def validate() -> None:
    """Check every environment variable and exit non-zero on errors."""
    console = Console()
    errors = validate_all()
    if not errors:
        # Cross-variable checks only run on a full load.
        try:
            GatewayConfig.load()
        except ConfigError as e:
            errors = [e]
    if not errors:
        console.print("[green]✅ Configuration is valid[/green]")
        return

    for error in errors:
        console.print(f"[red]❌ {error.env_var}[/red]: {error.message}")
    raise typer.Exit(1)


@app.command()
def docs() -> None:
    """Print Markdown documentation for all environment variables."""
    typer.echo(ConfigSchema.generate_markdown_docs())
