# Copyright (c) 2025-2026 Gowtham Adamane Rao. All Rights Reserved.
#
# Licensed under the Prosperity Public License 3.0.0 (the "License").
# You may not use this file except in compliance with the License.
# You may obtain a copy of the License in the LICENSE file at the root
# of this repository, or at: https://prosperitylicense.com/versions/3.0.0
#
# Commercial use beyond a 30-day trial requires a separate license.


import pytest
from typer.testing import CliRunner

from py_market_intelligence.cli import app
from py_market_intelligence.handler import MarketIntelligenceHandler


# Fixture for the CLI runner
@pytest.fixture
def runner():
    return CliRunner()


# Serve illustrative data instead of wiring a live WITS client
@pytest.fixture(autouse=True)
def offline_handler(mocker):
    return mocker.patch(
        "py_market_intelligence.cli.build_handler",
        side_effect=lambda settings: MarketIntelligenceHandler(),
    )


def test_query_command_success(runner):
    """Test the 'query' command with a complete market size request."""
    result = runner.invoke(
        app,
        [
            "query",
            "--type",
            "market_size",
            "--product-category",
            "canned goods",
            "--market",
            "UAE",
        ],
    )
    assert result.exit_code == 0
    assert '"status": 200' in result.stdout
    assert '"source": "ITC TradeMap"' in result.stdout
    assert "8.5 Billion" in result.stdout


def test_query_command_trade_flow(runner):
    result = runner.invoke(
        app, ["query", "-t", "trade_flow", "--hs-code", "210690", "-m", "UAE", "-y", "2022"]
    )
    assert result.exit_code == 0
    assert '"import_value_usd": 5000000000' in result.stdout
    assert '"year": 2022' in result.stdout


def test_query_command_missing_field(runner):
    """Test that a validation failure prints the error envelope and exits 1."""
    result = runner.invoke(
        app, ["query", "--type", "tariff", "--hs-code", "210690", "--origin", "RSA"]
    )
    assert result.exit_code == 1
    assert '"error_code": "VALIDATION_ERROR"' in result.stdout
    assert "destination" in result.stdout


def test_query_command_unsupported_type(runner):
    result = runner.invoke(app, ["query", "--type", "weather"])
    assert result.exit_code == 1
    assert "Unsupported request type: weather" in result.stdout


def test_query_command_unexpected_failure(runner, mocker):
    """Test that an unexpected exception still produces an error envelope."""
    mocker.patch.object(
        MarketIntelligenceHandler, "handle", side_effect=RuntimeError("handler exploded")
    )
    result = runner.invoke(app, ["query", "--type", "buyers"])
    assert result.exit_code == 1
    assert '"error_code": "INTERNAL_SERVER_ERROR"' in result.stdout
    assert "handler exploded" in result.stdout


def test_query_command_closes_wits_client(runner, mocker, offline_handler):
    wits_client = mocker.MagicMock()
    offline_handler.side_effect = lambda settings: MarketIntelligenceHandler(
        wits_client=wits_client
    )
    result = runner.invoke(
        app, ["query", "-t", "buyers", "--industry", "food", "-m", "UAE"]
    )
    assert result.exit_code == 0
    wits_client.close.assert_called_once()


def test_serve_command(runner, mocker):
    """Test that 'serve' hands the app to uvicorn with the CLI overrides."""
    mocker.patch("py_market_intelligence.cli.create_app", return_value="asgi-app")
    run = mocker.patch("uvicorn.run")

    result = runner.invoke(app, ["serve", "--host", "0.0.0.0", "--port", "9001"])

    assert result.exit_code == 0
    assert "Serving market intelligence API on http://0.0.0.0:9001" in result.stdout
    run.assert_called_once()
    args, kwargs = run.call_args
    assert args == ("asgi-app",)
    assert kwargs["host"] == "0.0.0.0"
    assert kwargs["port"] == 9001

