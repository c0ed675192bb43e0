"""
CLI interface for Imaging Gateway.

Provides command-line access to serving and configuration checks.
"""

import os
import sys
from typing import Optional

import typer
import uvicorn
import yaml
from dotenv import load_dotenv
from rich.console import Console
from rich.table import Table

from imaging_gateway.api.lifecycle import LOG_LEVEL_ENV, configure_logging
from imaging_gateway.config.loader import (
    ENDPOINT_URL_ENV,
    TOKEN_ENV,
    GatewayConfig,
    config_from_env,
    load_gateway_config,
)

app = typer.Typer()
console = Console()

EXIT_CODE_PASS = 0
EXIT_CODE_FAIL = 1

DEFAULT_PORT = 3000


@app.callback(invoke_without_command=True)
def main(ctx: typer.Context):
    """Imaging Gateway CLI."""
    load_dotenv()
    if ctx.invoked_subcommand is None:
        console.print("Imaging Gateway - Use --help to see available commands")


@app.command()
def serve(
    host: str = typer.Option("0.0.0.0", "--host", envvar="HOST", help="Bind address"),
    port: Optional[int] = typer.Option(
        None,
        "--port",
        "-p",
        help="Bind port (defaults to $PORT, then 3000)"
    ),
    log_level: Optional[str] = typer.Option(
        None,
        "--log-level",
        "-l",
        help="Logging level (defaults to $GATEWAY_LOG_LEVEL, then INFO)"
    ),
    reload: bool = typer.Option(False, "--reload", help="Reload on code changes"),
):
    """Run the gateway HTTP server."""
    level = (log_level or os.getenv(LOG_LEVEL_ENV, "INFO")).upper()
    os.environ[LOG_LEVEL_ENV] = level
    configure_logging(level)

    if port is None:
        try:
            port = int(os.getenv("PORT", DEFAULT_PORT))
        except ValueError:
            console.print(f"[red]Error:[/] PORT must be an integer, got {os.getenv('PORT')!r}")
            sys.exit(EXIT_CODE_FAIL)

    console.print(f"[green]✓[/] Server running: http://localhost:{port}")
    uvicorn.run(
        "imaging_gateway.api.app:app",
        host=host,
        port=port,
        log_level=level.lower(),
        reload=reload,
    )


@app.command("show-config")
def show_config(
    config_path: Optional[str] = typer.Option(
        None,
        "--config",
        "-c",
        help="YAML config file (defaults to $GATEWAY_CONFIG and GATEWAY_* variables)"
    ),
):
    """Print the effective gateway configuration."""
    try:
        config = load_gateway_config(config_path) if config_path else config_from_env()
    except (FileNotFoundError, ValueError, yaml.YAMLError) as e:
        console.print(f"[red]Invalid configuration:[/] {str(e)}")
        sys.exit(EXIT_CODE_FAIL)

    _display_config(config)
    sys.exit(EXIT_CODE_PASS)


@app.command()
def status():
    """Check that the inference endpoint is configured."""
    missing = [name for name in (ENDPOINT_URL_ENV, TOKEN_ENV) if not os.getenv(name, "").strip()]
    if missing:
        for name in missing:
            console.print(f"[red]✗[/] {name} missing in .env")
        sys.exit(EXIT_CODE_FAIL)

    console.print(f"[green]✓[/] Inference endpoint configured: {os.getenv(ENDPOINT_URL_ENV)}")
    sys.exit(EXIT_CODE_PASS)


def _preview(text: str, width: int = 60) -> str:
    """First line of text, shortened for table display."""
    first_line = text.strip().splitlines()[0]
    return first_line if len(first_line) <= width else first_line[: width - 1] + "…"


def _display_config(config: GatewayConfig):
    table = Table(title="Imaging Gateway Configuration")
    table.add_column("Setting", style="bold")
    table.add_column("Value")

    timeout = config.request_timeout_seconds
    table.add_row("daily_limit", str(config.daily_limit))
    table.add_row("model", config.model)
    table.add_row("temperature", str(config.temperature))
    table.add_row("max_output_tokens", str(config.max_output_tokens))
    table.add_row("request_timeout_seconds", "none" if timeout is None else f"{timeout:g}")
    table.add_row("upload_field", config.upload_field)
    table.add_row("instruction_text", _preview(config.instruction_text))
    table.add_row(ENDPOINT_URL_ENV, os.getenv(ENDPOINT_URL_ENV) or "[red]missing[/]")
    # Never echo the credential itself
    table.add_row(TOKEN_ENV, "[green]set[/]" if os.getenv(TOKEN_ENV) else "[red]missing[/]")

    console.print(table)


if __name__ == "__main__":
    app()
