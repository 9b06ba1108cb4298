"""Start command for the aigw CLI."""

import typer
import uvicorn
from rich.console import Console
from rich.table import Table

from ai_gateway.core.config import ConfigError, GatewayConfig
from ai_gateway.core.provider import DEFAULT_PROVIDERS


def start(
    host: str = typer.Option(None, "--host", help="Override host"),
    port: int = typer.Option(None, "--port", help="Override port"),
    reload: bool = typer.Option(False, "--reload", help="Enable auto-reload for development"),
) -> None:
    """Start the proxy server."""
    console = Console()

    try:
        config = GatewayConfig.load()
    except ConfigError as e:
        console.print(f"[red]Configuration error:[/red] {e}")
        raise typer.Exit(1) from e

    server_host = host or config.host
    server_port = port or config.port

    table = Table(title="AI Gateway Configuration")
    table.add_column("Setting", style="cyan")
    table.add_column("Value", style="green")

    table.add_row("Server URL", f"http://{server_host}:{server_port}")
    table.add_row("Master Key", config.master_key_hash)
    table.add_row("Rotation Limit", str(config.rotation_limit))
    table.add_row("Rotation Store", config.rotation_store)
    table.add_row("Metrics Sink", config.metrics_sink)
    for name in sorted(DEFAULT_PROVIDERS):
        table.add_row(f"{name} keys", str(len(config.key_pool(name))))

    console.print(table)

    log_level = config.log_level.lower()
    uvicorn.run(
        "ai_gateway.main:app_factory",
        factory=True,
        host=server_host,
        port=server_port,
        reload=reload,
        log_level=log_level,
        access_log=log_level == "debug",
    )
