"""CLI end to end against a temporary config dir and DuckDB file."""

import pytest
from typer.testing import CliRunner

from conftest import ORACLE, OWNER, QUESTION, USER
from ctfmarket.cli.app import app
from ctfmarket.cli.common import format_amount, parse_amount
from ctfmarket.errors import InvalidAmount

runner = CliRunner()


@pytest.fixture
def config_dir(tmp_path):
    (tmp_path / "default.toml").write_text(
        f"""
[storage]
db_path = "{(tmp_path / 'cli.duckdb').as_posix()}"

[market]
owner = "{OWNER}"
oracle = "{ORACLE}"

[collateral]
symbol = "USDC"
decimals = 6

[logging]
level = "CRITICAL"
"""
    )
    return tmp_path


def _ctfm(config_dir, *args):
    return runner.invoke(app, ["-C", str(config_dir), *args])


def test_market_lifecycle(config_dir):
    result = _ctfm(config_dir, "market", "create", "-q", "Will India Win?")
    assert result.exit_code == 0, result.output
    assert QUESTION in result.output

    assert _ctfm(config_dir, "collateral", "mint", "--account", USER, "-a", "1000").exit_code == 0
    assert _ctfm(config_dir, "collateral", "approve", "--account", USER, "-a", "1000").exit_code == 0
    result = _ctfm(config_dir, "position", "split", "-m", QUESTION, "--holder", USER, "-a", "100")
    assert result.exit_code == 0, result.output

    result = _ctfm(config_dir, "position", "balance", "-m", QUESTION, "--holder", USER)
    assert "YES: 100.000000" in result.output
    assert "NO: 100.000000" in result.output

    result = _ctfm(config_dir, "oracle", "resolve", "-m", QUESTION, "--outcome", "YES")
    assert result.exit_code == 0, result.output
    assert "[1, 0]" in result.output

    result = _ctfm(config_dir, "position", "redeem", "-m", QUESTION, "--holder", USER)
    assert result.exit_code == 0, result.output
    assert "payout 100.000000" in result.output

    result = _ctfm(config_dir, "collateral", "balance", "--account", USER)
    assert "Balance:   1000.000000 USDC" in result.output

    result = _ctfm(config_dir, "market", "show", QUESTION)
    assert "State:        resolved" in result.output

    result = _ctfm(config_dir, "events", "list", "-m", QUESTION)
    assert "payout_redemption" in result.output


def test_ledger_errors_exit_nonzero(config_dir):
    _ctfm(config_dir, "market", "create", "-q", "Will India Win?")
    result = _ctfm(config_dir, "position", "redeem", "-m", QUESTION, "--holder", USER)
    assert result.exit_code == 1
    assert "condition_not_resolved" in result.output

    result = _ctfm(config_dir, "oracle", "resolve", "-m", QUESTION, "--payouts", "1,0", "--caller", USER)
    assert result.exit_code == 1
    assert "not_oracle" in result.output

    result = _ctfm(config_dir, "market", "show", "0x" + "00" * 32)
    assert result.exit_code == 1
    assert "unknown_market" in result.output


def test_oracle_resolve_needs_one_of_outcome_or_payouts(config_dir):
    result = _ctfm(config_dir, "oracle", "resolve", "-m", QUESTION)
    assert result.exit_code == 1
    assert "Exactly one of --outcome or --payouts" in result.stderr
    assert result.stdout == ""


def test_market_create_usage_error_on_stderr(config_dir):
    result = _ctfm(config_dir, "market", "create")
    assert result.exit_code == 1
    assert "--question" in result.stderr
    assert result.stdout == ""


def test_parse_and_format_amount():
    assert parse_amount("1.5", 6) == 1_500_000
    assert parse_amount("100", 6) == 100_000_000
    assert format_amount(1_500_000, 6) == "1.500000"
    with pytest.raises(InvalidAmount):
        parse_amount("0.0000001", 6)
    with pytest.raises(InvalidAmount):
        parse_amount("abc", 6)
    with pytest.raises(InvalidAmount):
        parse_amount("NaN", 6)
