"""CLI commands for tiercache.

Provides command-line interface using Typer:
- tiercache ping: Check shared tier connectivity
- tiercache stats: Key counts per namespace
- tiercache keys: List keys containing a pattern
- tiercache get: Print a cached value
- tiercache invalidate: Remove keys containing a pattern
- tiercache clear: Flush every tier

Usage:
    tiercache --help
    tiercache keys region:threats:
    tiercache invalidate threat:analysis:evil.example
"""

import typer

from tiercache.cli import cache_cmd
from tiercache.config import settings
from tiercache.observability.logging import configure_logging

# Main CLI application
app = typer.Typer(
    name="tiercache",
    help="tiercache: tiered local/Redis cache for the threat-analysis dashboard",
    no_args_is_help=True,
)

app.command("ping")(cache_cmd.ping)
app.command("stats")(cache_cmd.stats)
app.command("keys")(cache_cmd.keys)
app.command("get")(cache_cmd.get)
app.command("invalidate")(cache_cmd.invalidate)
app.command("clear")(cache_cmd.clear)


@app.callback()
def callback(
    log_level: str = typer.Option(
        settings.log_level,
        "--log-level",
        "-l",
        help="Log level: debug, info, warning, error",
    ),
    log_json: bool = typer.Option(
        settings.log_json,
        "--log-json/--no-log-json",
        help="Emit JSON log lines",
    ),
) -> None:
    """tiercache: tiered local/Redis cache for the threat-analysis dashboard."""
    configure_logging(json_format=log_json, level=log_level)


def main() -> None:
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
