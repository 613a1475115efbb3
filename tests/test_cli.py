"""Tests for the command line interface."""

import json
from pathlib import Path

import pytest
import structlog

from entitygraph.cli import main, parse_args, run
from entitygraph.config import reset_config

SHOP_SCHEMA = """\
entity_types:
  - OrderLine
  - Order
  - Customer
foreign_keys:
  - name: FK_OrderLine_Order
    dependent: OrderLine
    principal: Order
    columns: [OrderId]
  - name: FK_Order_Customer
    dependent: Order
    principal: Customer
    columns: [CustomerId]
  - name: FK_Customer_LastOrder
    dependent: Customer
    principal: Order
    columns: [LastOrderId]
    required: false
"""


@pytest.fixture(autouse=True)
def isolated_cwd(tmp_path, monkeypatch):
    """Run each test from an empty directory with no config file."""
    monkeypatch.chdir(tmp_path)
    for key in ("ENTITYGRAPH_LOGGING_LEVEL", "ENTITYGRAPH_ORDERING_ALLOW_CYCLE_BREAKING"):
        monkeypatch.delenv(key, raising=False)
    reset_config()
    yield
    reset_config()


@pytest.fixture
def schema_file(tmp_path: Path) -> Path:
    path = tmp_path / "shop.yaml"
    path.write_text(SHOP_SCHEMA)
    return path


class TestParseArgs:
    """Test argument parsing."""

    def test_defaults(self):
        """Test default option values."""
        args = parse_args(["shop.yaml"])

        assert args.schema == "shop.yaml"
        assert args.config is None
        assert args.format == "text"
        assert args.log_level is None
        assert not args.no_break_cycles

    def test_debug_sets_log_level(self):
        """Test that --debug implies DEBUG."""
        assert parse_args(["shop.yaml", "--debug"]).log_level == "DEBUG"

    def test_invalid_visualize_format(self):
        """Test that unknown visualization formats are rejected by argparse."""
        with pytest.raises(SystemExit):
            parse_args(["shop.yaml", "--visualize", "svg"])


class TestRun:
    """Test running the ordering command."""

    def test_text_output(self, schema_file, capsys):
        """Test ordering output as numbered lines."""
        exit_code = run(parse_args([str(schema_file), "--log-level", "WARNING"]))

        out = capsys.readouterr().out
        assert exit_code == 0
        assert "1. Customer\n2. Order\n3. OrderLine" in out

    def test_json_output(self, schema_file, capsys):
        """Test ordering output as JSON."""
        exit_code = run(parse_args([str(schema_file), "--format", "json", "--log-level", "WARNING"]))

        assert exit_code == 0
        assert json.loads(capsys.readouterr().out) == ["Customer", "Order", "OrderLine"]

    def test_no_break_cycles_fails(self, schema_file):
        """Test that the cycle is fatal when cycle breaking is disabled."""
        exit_code = run(parse_args([str(schema_file), "--no-break-cycles", "--log-level", "CRITICAL"]))

        assert exit_code == 1

    def test_config_file_disables_cycle_breaking(self, schema_file, tmp_path):
        """Test that the ordering policy is read from the config file."""
        config_path = tmp_path / "custom.yaml"
        config_path.write_text("ordering:\n  allow_cycle_breaking: false\n")

        exit_code = run(
            parse_args([str(schema_file), "--config", str(config_path), "--log-level", "CRITICAL"]),
        )

        assert exit_code == 1

    def test_config_file_selects_console_logs(self, schema_file, tmp_path):
        """Test that the logging section of the config file wins over the bootstrap setup."""
        config_path = tmp_path / "custom.yaml"
        config_path.write_text("logging:\n  level: CRITICAL\n  json_logs: false\n")

        exit_code = run(parse_args([str(schema_file), "--config", str(config_path)]))

        config = structlog.get_config()
        assert exit_code == 0
        assert isinstance(config["processors"][-1], structlog.dev.ConsoleRenderer)
        assert config["cache_logger_on_first_use"] is True

    def test_validate_and_visualize(self, schema_file, capsys):
        """Test that diagnostics are printed before the ordering."""
        exit_code = run(
            parse_args(
                [str(schema_file), "--validate", "--visualize", "mermaid", "--log-level", "CRITICAL"],
            ),
        )

        out = capsys.readouterr().out
        assert exit_code == 0
        assert "Validation Status: FAIL" in out
        assert "Order -> Customer -> Order" in out
        assert "graph TD" in out
        assert out.index("graph TD") < out.index("1. Customer")

    def test_missing_schema(self, tmp_path):
        """Test that a missing schema file exits with 1."""
        assert run(parse_args([str(tmp_path / "missing.yaml"), "--log-level", "CRITICAL"])) == 1

    def test_invalid_schema(self, tmp_path):
        """Test that an invalid schema exits with 1."""
        path = tmp_path / "broken.yaml"
        path.write_text("foreign_keys:\n  - {name: FK, dependent: A, principal: B}\n")

        assert run(parse_args([str(path), "--log-level", "CRITICAL"])) == 1

    def test_main_exits_with_code(self, schema_file):
        """Test that main() exits with the run() result."""
        with pytest.raises(SystemExit) as exc_info:
            main([str(schema_file), "--log-level", "CRITICAL"])

        assert exc_info.value.code == 0
