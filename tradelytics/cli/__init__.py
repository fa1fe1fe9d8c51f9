"""CLI commands for Tradelytics.

This package provides the command-line interface: trade recording and
import, the P&L calendar, performance metrics, journal notes and
exchange rates.
"""

from tradelytics.cli.main import cli, main

__all__ = ["cli", "main"]
