# Copyright (c) 2025-2026 Gowtham Adamane Rao. All Rights Reserved.
#
# Licensed under the Prosperity Public License 3.0.0 (the "License").
# You may not use this file except in compliance with the License.
# You may obtain a copy of the License in the LICENSE file at the root
# of this repository, or at: https://prosperitylicense.com/versions/3.0.0
#
# Commercial use beyond a 30-day trial requires a separate license.


"""
Command-line interface for the py-market-intelligence application.

This module uses Typer to create a CLI for serving the HTTP API and for
running a single market intelligence query from the terminal.
"""

import json
import logging
from typing import Any, Dict, Optional

import typer
import uvicorn

from .api import build_handler, create_app
from .config import AppSettings
from .errors import handle_error, is_market_intelligence_error
from .models import is_error_envelope

# Create a Typer application
app = typer.Typer(
    name="py-market-intelligence",
    help="Serve or query trade flow, tariff and market intelligence data.",
    add_completion=False,
)

LOG_FORMAT = "%(asctime)s - %(levelname)s - %(name)s - %(message)s"


def _configure_logging(settings: AppSettings) -> None:
    logging.basicConfig(level=settings.log.level.upper(), format=LOG_FORMAT)


@app.command()
def serve(
    host: Optional[str] = typer.Option(
        None, "--host", help="Bind address. Overrides the configured host."
    ),
    port: Optional[int] = typer.Option(
        None, "--port", "-p", help="Port number. Overrides the configured port."
    ),
) -> None:
    """
    Run the market intelligence HTTP API.
    """
    settings = AppSettings()
    _configure_logging(settings)

    # The CLI options take precedence over the environment.
    bind_host = host or settings.api.host
    bind_port = port or settings.api.port

    typer.echo(f"Serving market intelligence API on http://{bind_host}:{bind_port}")
    typer.echo(f"  - Routes under: {settings.api.prefix}")
    typer.echo(f"  - WITS API: {settings.wits.base_url}")
    uvicorn.run(
        create_app(settings),
        host=bind_host,
        port=bind_port,
        log_level=settings.log.level.lower(),
    )


@app.command()
def query(
    request_type: str = typer.Option(
        ...,
        "--type",
        "-t",
        help=(
            "The request type: trade_flow, tariff, market_size, buyers or "
            "competitive_landscape."
        ),
    ),
    hs_code: Optional[str] = typer.Option(None, "--hs-code", help="HS product code."),
    market: Optional[str] = typer.Option(None, "--market", "-m", help="Target market."),
    year: Optional[int] = typer.Option(None, "--year", "-y", help="Year of the data."),
    origin: Optional[str] = typer.Option(None, "--origin", help="Origin country."),
    destination: Optional[str] = typer.Option(
        None, "--destination", help="Destination country."
    ),
    product_category: Optional[str] = typer.Option(
        None, "--product-category", help="Product category."
    ),
    industry: Optional[str] = typer.Option(None, "--industry", help="Industry sector."),
) -> None:
    """
    Run a single market intelligence request and print the JSON envelope.
    """
    settings = AppSettings()
    _configure_logging(settings)

    fields = {
        "hs_code": hs_code,
        "market": market,
        "year": year,
        "origin": origin,
        "destination": destination,
        "product_category": product_category,
        "industry": industry,
    }
    payload: Dict[str, Any] = {"type": request_type}
    payload.update({key: value for key, value in fields.items() if value is not None})

    handler = build_handler(settings)
    try:
        body = handler.handle(payload).to_response()
    except Exception as e:
        if not is_market_intelligence_error(e):
            logging.error(f"A critical error occurred: {e}", exc_info=True)
        body = handle_error(e).to_response()
    finally:
        if handler.wits_client is not None:
            handler.wits_client.close()

    typer.echo(json.dumps(body, indent=2))
    if is_error_envelope(body):
        typer.secho(f"Request failed: {body['message']}", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)


if __name__ == "__main__":
    app()
