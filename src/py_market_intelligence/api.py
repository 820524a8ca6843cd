# Copyright (c) 2025-2026 Gowtham Adamane Rao. All Rights Reserved.
#
# Licensed under the Prosperity Public License 3.0.0 (the "License").
# You may not use this file except in compliance with the License.
# You may obtain a copy of the License in the LICENSE file at the root
# of this repository, or at: https://prosperitylicense.com/versions/3.0.0
#
# Commercial use beyond a 30-day trial requires a separate license.


"""
HTTP layer for the market intelligence service, built with FastAPI.

Every route builds a typed request, passes it to the handler and writes the
envelope it gets back. Anything raised along the way is converted to an
error envelope by `handle_error`, once, here.

Run with:
`uvicorn py_market_intelligence.api:create_app --factory`
or `py-market-intelligence serve`.
"""

import logging
from contextlib import asynccontextmanager
from typing import Any, Callable, Dict, Optional, Union

from fastapi import APIRouter, Body, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from .config import AppSettings
from .errors import (
    ErrorKind,
    MarketIntelligenceError,
    handle_error,
    is_market_intelligence_error,
    require_fields,
)
from .handler import MarketIntelligenceHandler
from .models import (
    BuyersRequest,
    CompetitiveLandscapeRequest,
    MarketIntelligenceRequest,
    MarketSizeRequest,
    RequestType,
    TariffRequest,
    TradeFlowRequest,
)
from .trade_flow import TradeFlowService
from .wits_client import WitsClient

logger = logging.getLogger(__name__)

RequestSource = Callable[[], Union[MarketIntelligenceRequest, Dict[str, Any]]]


def build_handler(settings: AppSettings) -> MarketIntelligenceHandler:
    """Wires a handler backed by a live WITS client and trade flow cache."""
    wits_client = WitsClient(settings.wits)
    return MarketIntelligenceHandler(
        trade_flow_service=TradeFlowService(wits_client, settings.trade_flow),
        wits_client=wits_client,
    )


def dispatch(handler: MarketIntelligenceHandler, build_request: RequestSource) -> JSONResponse:
    """
    Builds a request, handles it and writes the resulting envelope.
    """
    try:
        envelope = handler.handle(build_request())
    except Exception as exc:
        if is_market_intelligence_error(exc):
            logger.warning(f"Request failed: {exc}")
        else:
            logger.exception(f"Unhandled error while handling request: {exc}")
        envelope = handle_error(exc)
    return JSONResponse(status_code=envelope.status, content=envelope.to_response())


def prevalidate(payload: Dict[str, Any]) -> Dict[str, Any]:
    """
    Fast-fail checks for the unified endpoint: the request type must be
    known and its required fields present.
    """
    request_type = payload.get("type")
    if not request_type:
        raise MarketIntelligenceError(ErrorKind.VALIDATION, "Request type is required")
    try:
        request_type = RequestType(request_type)
    except (ValueError, TypeError):
        raise MarketIntelligenceError(
            ErrorKind.VALIDATION, f"Unsupported request type: {request_type}"
        ) from None
    require_fields(request_type, payload)
    return payload


def create_router(handler: MarketIntelligenceHandler, prefix: str) -> APIRouter:
    router = APIRouter(prefix=prefix, tags=["market-intelligence"])

    @router.get("/trade-flow")
    def trade_flow(
        hs_code: Optional[str] = None,
        market: Optional[str] = None,
        year: Optional[int] = None,
    ) -> JSONResponse:
        """Trade flow data for a product and market."""
        return dispatch(
            handler,
            lambda: TradeFlowRequest(hs_code=hs_code, market=market, year=year),
        )

    @router.get("/tariff")
    def tariff(
        hs_code: Optional[str] = None,
        origin: Optional[str] = None,
        destination: Optional[str] = None,
        year: Optional[int] = None,
    ) -> JSONResponse:
        """Tariff treatment for a product between an origin and a destination."""
        return dispatch(
            handler,
            lambda: TariffRequest(
                hs_code=hs_code, origin=origin, destination=destination, year=year
            ),
        )

    @router.get("/market-size")
    def market_size(
        product_category: Optional[str] = None, market: Optional[str] = None
    ) -> JSONResponse:
        """Market size for a product category."""
        return dispatch(
            handler,
            lambda: MarketSizeRequest(product_category=product_category, market=market),
        )

    @router.get("/buyers")
    def buyers(
        industry: Optional[str] = None, market: Optional[str] = None
    ) -> JSONResponse:
        """Potential buyers in an industry and market."""
        return dispatch(
            handler, lambda: BuyersRequest(industry=industry, market=market)
        )

    @router.get("/competitive-landscape")
    def competitive_landscape(
        product_category: Optional[str] = None, market: Optional[str] = None
    ) -> JSONResponse:
        """Competitors and price points for a product category."""
        return dispatch(
            handler,
            lambda: CompetitiveLandscapeRequest(
                product_category=product_category, market=market
            ),
        )

    @router.post("")
    def unified(payload: Dict[str, Any] = Body(...)) -> JSONResponse:
        """Unified endpoint: the JSON body carries the request `type`."""
        return dispatch(handler, lambda: prevalidate(payload))

    return router


def create_app(
    settings: Optional[AppSettings] = None,
    handler: Optional[MarketIntelligenceHandler] = None,
) -> FastAPI:
    """
    Creates the FastAPI application.

    Args:
        settings: Application settings; loaded from the environment if omitted.
        handler: A preconfigured handler. If omitted, one is wired to a live
                 WITS client, which is closed on shutdown.
    """
    settings = settings or AppSettings()
    owns_handler = handler is None
    if handler is None:
        handler = build_handler(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("Market intelligence API started")
        yield
        if owns_handler and handler.wits_client is not None:
            handler.wits_client.close()
        logger.info("Market intelligence API shutting down")

    app = FastAPI(
        title="Market Intelligence API",
        description="Trade flow, tariff, market size, buyer and competitor lookups.",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.handler = handler
    app.include_router(create_router(handler, settings.api.prefix))

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        """Reports malformed query strings or bodies as validation errors."""
        logger.warning(f"Validation error on {request.url.path}: {exc.errors()}")
        envelope = MarketIntelligenceError(
            ErrorKind.VALIDATION,
            "Invalid request data",
            {
                "errors": [
                    {
                        "field": ".".join(str(loc) for loc in e["loc"]),
                        "message": e["msg"],
                        "type": e["type"],
                    }
                    for e in exc.errors()
                ]
            },
        ).to_response()
        return JSONResponse(status_code=envelope.status, content=envelope.to_response())

    return app
