"""Main CLI entry point for Tradelytics.

This module provides the main click group, logging setup and lazy
loading of command modules to keep startup fast.
"""

import logging
from pathlib import Path
from typing import Optional

import click
from rich.console import Console
from rich.logging import RichHandler

from tradelytics.config import LOG_LEVELS

# Console for rich output
console = Console()


def setup_logging(level: str = "WARNING") -> None:
    """Route log records through rich on stderr.

    Args:
        level: Log level name.
    """
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.WARNING),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), rich_tracebacks=True)],
        force=True,
    )


class LazyGroup(click.Group):
    """A click Group that lazily loads commands.

    Command modules are only imported when they are actually invoked.
    """

    def __init__(self, *args, lazy_subcommands: dict[str, str] | None = None, **kwargs):
        """Initialize the lazy group.

        Args:
            lazy_subcommands: Mapping of command names to module paths.
        """
        super().__init__(*args, **kwargs)
        self._lazy_subcommands = lazy_subcommands or {}

    def list_commands(self, ctx: click.Context) -> list[str]:
        """List all available commands."""
        base = super().list_commands(ctx)
        lazy = list(self._lazy_subcommands.keys())
        return sorted(set(base + lazy))

    def get_command(self, ctx: click.Context, cmd_name: str) -> click.Command | None:
        """Get a command by name, lazily loading if needed."""
        if cmd_name in self.commands:
            return self.commands[cmd_name]

        if cmd_name in self._lazy_subcommands:
            return self._lazy_load(cmd_name)

        return None

    def _lazy_load(self, cmd_name: str) -> click.Command:
        """Lazily load a command from its module path."""
        import importlib

        module_path = self._lazy_subcommands[cmd_name]
        module = importlib.import_module(module_path)

        # Commands are looked up by their click name, e.g. "add-trade"
        cmd = None
        for attr_name in dir(module):
            attr = getattr(module, attr_name)
            if isinstance(attr, click.Command) and attr.name == cmd_name:
                cmd = attr
                break

        if cmd is None:
            raise click.ClickException(f"Could not find command '{cmd_name}' in {module_path}")

        self.add_command(cmd)
        return cmd


LAZY_SUBCOMMANDS = {
    "init": "tradelytics.cli.trades",
    "add-trade": "tradelytics.cli.trades",
    "import-trades": "tradelytics.cli.trades",
    "calendar": "tradelytics.cli.calendar",
    "metrics": "tradelytics.cli.metrics",
    "note": "tradelytics.cli.journal",
    "rates": "tradelytics.cli.fx",
    "convert": "tradelytics.cli.fx",
}


CONTEXT_SETTINGS = {"help_option_names": ["-h", "--help"]}


@click.group(cls=LazyGroup, lazy_subcommands=LAZY_SUBCOMMANDS, context_settings=CONTEXT_SETTINGS)
@click.version_option(package_name="tradelytics")
@click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False, path_type=Path),
    envvar="TRADELYTICS_CONFIG",
    default=None,
    help="Config file (default: ~/.config/tradelytics/config.toml).",
)
@click.option(
    "--log-level",
    type=click.Choice(LOG_LEVELS, case_sensitive=False),
    default=None,
    help="Override the configured log level.",
)
@click.pass_context
def cli(ctx: click.Context, config_path: Optional[Path], log_level: Optional[str]) -> None:
    """Tradelytics - trading journal analytics from the command line.

    Record trades, review them on a P&L calendar, compare performance
    across periods and keep a note for every trading day.

    \b
    Quick Start:
      tradelytics init                  # Create a config file
      tradelytics import-trades t.csv   # Load trades
      tradelytics calendar              # This month's P&L calendar
      tradelytics metrics --range 1M    # Month-over-month metrics
    """
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path
    ctx.obj["log_level"] = log_level
    setup_logging(log_level or "WARNING")


def main() -> None:
    """Main entry point for the CLI."""
    cli()


if __name__ == "__main__":
    main()
