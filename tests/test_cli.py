"""Tests for the command line interface.

**Feature: cli**
"""

import tempfile
from datetime import date
from pathlib import Path

import pytest
import toml
from click.testing import CliRunner

from tradelytics.cli import cli
from tradelytics.currency.providers import ExchangeRateApiProvider
from tradelytics.db.store import DataStore
from tradelytics.exceptions import RateProviderError
from tradelytics.models import ExchangeRateSet

CSV = """symbol,pnl,entry_time,strategy,asset_class,tags,id
AAPL,100,2024-01-02T10:00:00,breakout,stock,"scalp,news",a1
MSFT,-40,2024-01-02T11:00:00,reversal,stock,,a2
BTC,not-a-number,2024-01-03T09:00:00,breakout,crypto,,a3
ETH,15.5,2024-01-03T12:00:00,breakout,crypto,swing,a4
"""


@pytest.fixture
def workspace():
    """Config file and database in a temporary directory."""
    with tempfile.TemporaryDirectory() as tmpdir:
        root = Path(tmpdir)
        config_path = root / "config.toml"
        db_path = root / "journal.db"
        config_path.write_text(toml.dumps({
            "account": {"id": "main"},
            "currency": {"display": "USD"},
            "storage": {"db_path": str(db_path)},
        }))
        yield root, config_path, db_path


@pytest.fixture
def runner():
    return CliRunner()


def invoke(runner: CliRunner, config_path: Path, *args: str):
    return runner.invoke(cli, ["--config", str(config_path), *args])


class TestInit:
    """init writes a template config once."""

    def test_creates_config(self, runner):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "fresh" / "config.toml"

            result = invoke(runner, path, "init")

            assert result.exit_code == 0, result.output
            assert path.exists()
            assert toml.load(path)["account"]["id"] == "main"

            again = invoke(runner, path, "init")
            assert again.exit_code == 0
            assert "already exists" in again.output


class TestTradeCommands:
    """Trades can be added and imported."""

    def test_add_trade(self, runner, workspace):
        _, config_path, db_path = workspace

        result = invoke(
            runner, config_path, "add-trade",
            "--symbol", "AAPL", "--pnl", "120.5", "--strategy", "breakout",
            "--tag", "scalp", "--entry-time", "2024-01-02", "--id", "x1",
        )

        assert result.exit_code == 0, result.output
        assert "+$120.50" in result.output
        trades = DataStore(db_path).list_trades("main")
        assert len(trades) == 1
        assert trades[0].id == "x1"
        assert trades[0].tags == frozenset({"scalp"})
        assert trades[0].occurred_at == date(2024, 1, 2)

    def test_import_skips_bad_rows(self, runner, workspace):
        root, config_path, db_path = workspace
        csv_path = root / "trades.csv"
        csv_path.write_text(CSV)

        result = invoke(runner, config_path, "import-trades", str(csv_path))

        assert result.exit_code == 0, result.output
        assert "Imported 3 trades" in result.output
        assert "Skipped Rows" in result.output
        trades = DataStore(db_path).list_trades("main")
        assert [t.id for t in trades] == ["a1", "a2", "a4"]
        assert trades[0].tags == frozenset({"scalp", "news"})
        assert trades[2].asset_class == "CRYPTO"

    def test_account_required(self, runner):
        with tempfile.TemporaryDirectory() as tmpdir:
            config_path = Path(tmpdir) / "config.toml"
            config_path.write_text(toml.dumps({"storage": {"db_path": str(Path(tmpdir) / "db")}}))

            result = invoke(runner, config_path, "add-trade", "--symbol", "AAPL", "--pnl", "1")

            assert result.exit_code == 1
            assert "No account selected" in result.output

    def test_invalid_config(self, runner):
        with tempfile.TemporaryDirectory() as tmpdir:
            config_path = Path(tmpdir) / "config.toml"
            config_path.write_text('[logging]\nlevel = "LOUD"\n')

            result = invoke(runner, config_path, "metrics")

            assert result.exit_code == 1
            assert "Configuration Error" in result.output


class TestReportCommands:
    """Calendar and metrics read the stored trades."""

    @pytest.fixture
    def imported(self, runner, workspace):
        root, config_path, db_path = workspace
        csv_path = root / "trades.csv"
        csv_path.write_text(CSV)
        invoke(runner, config_path, "import-trades", str(csv_path))
        return workspace

    def test_calendar(self, runner, imported):
        _, config_path, _ = imported

        result = invoke(runner, config_path, "calendar", "--month", "2024-01")

        assert result.exit_code == 0, result.output
        assert "January 2024" in result.output
        assert "Month Summary" in result.output
        assert "Trades:       3" in result.output
        assert "Trading Days: 2" in result.output
        assert "+$75.50" in result.output

    def test_calendar_empty_month(self, runner, imported):
        _, config_path, _ = imported

        result = invoke(runner, config_path, "calendar", "--month", "2023-06")

        assert result.exit_code == 0, result.output
        assert "Trading Days: 0" in result.output

    def test_calendar_bad_month(self, runner, imported):
        _, config_path, _ = imported
        result = invoke(runner, config_path, "calendar", "--month", "January")
        assert result.exit_code == 2

    def test_metrics(self, runner, imported):
        _, config_path, _ = imported

        result = invoke(runner, config_path, "metrics")

        assert result.exit_code == 0, result.output
        assert "+$75.50" in result.output
        assert "Profit Factor:  2.89" in result.output
        assert "vs Previous Period" not in result.output

    def test_metrics_filtered(self, runner, imported):
        _, config_path, _ = imported

        result = invoke(runner, config_path, "metrics", "--strategy", "breakout", "--tag", "swing")

        assert result.exit_code == 0, result.output
        assert "+$15.50" in result.output
        assert "no losses" in result.output

    def test_metrics_with_range(self, runner, imported):
        _, config_path, _ = imported
        result = invoke(runner, config_path, "metrics", "--range", "1m")
        assert result.exit_code == 0, result.output
        assert "vs Previous Period" in result.output

    def test_metrics_bad_range(self, runner, imported):
        _, config_path, _ = imported
        result = invoke(runner, config_path, "metrics", "--range", "2Y")
        assert result.exit_code == 2


class TestNoteCommand:
    """note saves through the sync controller."""

    def test_note_saved(self, runner, workspace):
        _, config_path, db_path = workspace

        result = invoke(runner, config_path, "note", "2024-01-02", "Stayed patient")

        assert result.exit_code == 0, result.output
        assert "Note saved" in result.output
        notes = DataStore(db_path).get_notes("main", date(2024, 1, 1), date(2024, 1, 31))
        assert [n.content for n in notes] == ["Stayed patient"]

    def test_bad_date(self, runner, workspace):
        _, config_path, _ = workspace
        result = invoke(runner, config_path, "note", "02/01/2024", "text")
        assert result.exit_code == 2


class TestRateCommands:
    """rates and convert go through the rate cache."""

    @pytest.fixture
    def live(self, monkeypatch):
        async def fetch_latest(self, base_currency="USD"):
            return ExchangeRateSet(base=base_currency, rates={"USD": 1, "EUR": 0.92}, timestamp=1)

        monkeypatch.setattr(ExchangeRateApiProvider, "fetch_latest", fetch_latest)

    @pytest.fixture
    def offline(self, monkeypatch):
        async def fetch_latest(self, base_currency="USD"):
            raise RateProviderError("offline")

        monkeypatch.setattr(ExchangeRateApiProvider, "fetch_latest", fetch_latest)

    def test_convert(self, runner, workspace, live):
        _, config_path, db_path = workspace

        result = invoke(runner, config_path, "convert", "100", "--to", "eur")

        assert result.exit_code == 0, result.output
        assert "€92.00 EUR" in result.output
        # Rates were cached in the database
        assert DataStore(db_path).load_rate_entry().rates["EUR"] == 0.92

    def test_convert_back(self, runner, workspace, live):
        _, config_path, _ = workspace
        result = invoke(runner, config_path, "convert", "92", "--to", "EUR", "--from-local")
        assert result.exit_code == 0, result.output
        assert "$100.00 USD" in result.output

    def test_convert_unknown_currency(self, runner, workspace, live):
        _, config_path, _ = workspace
        result = invoke(runner, config_path, "convert", "1", "--to", "XYZ")
        assert result.exit_code == 1
        assert "XYZ" in result.output

    def test_rates_fallback(self, runner, workspace, offline):
        _, config_path, db_path = workspace

        result = invoke(runner, config_path, "rates", "--currency", "EUR")

        assert result.exit_code == 0, result.output
        assert "0.9200" in result.output
        assert "fallback" in result.output
        assert DataStore(db_path).load_rate_entry() is None

    def test_calendar_in_display_currency(self, runner, workspace, live):
        root, config_path, _ = workspace
        csv_path = root / "trades.csv"
        csv_path.write_text(CSV)
        invoke(runner, config_path, "import-trades", str(csv_path))

        result = invoke(runner, config_path, "calendar", "--month", "2024-01", "--currency", "EUR")

        assert result.exit_code == 0, result.output
        assert "(EUR)" in result.output
        # 75.50 USD at 0.92
        assert "+€69.46" in result.output
