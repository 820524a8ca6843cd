# Copyright (c) 2025-2026 Gowtham Adamane Rao. All Rights Reserved.
#
# Licensed under the Prosperity Public License 3.0.0 (the "License").
# You may not use this file except in compliance with the License.
# You may obtain a copy of the License in the LICENSE file at the root
# of this repository, or at: https://prosperitylicense.com/versions/3.0.0
#
# Commercial use beyond a 30-day trial requires a separate license.


"""
The market intelligence request dispatcher.

This module brings together the request models, the WITS client and the
trade flow service: a request is validated, routed by its `type` to exactly
one branch, and the branch's payload is wrapped in a success envelope.
Errors are never caught here; converting them to error envelopes is the
job of the caller (the HTTP layer or the CLI).
"""

import logging
from typing import Any, Callable, Dict, Mapping, Optional, Tuple, Union

import pydantic

from .errors import ErrorKind, MarketIntelligenceError, require_fields
from .models import (
    REQUEST_MODELS,
    Buyer,
    BuyersData,
    BuyersRequest,
    CompetitiveLandscapeData,
    CompetitiveLandscapeRequest,
    Competitor,
    ExporterShare,
    MarketIntelligenceRequest,
    MarketSizeData,
    MarketSizeRequest,
    PricePoints,
    RequestType,
    ResponseEnvelope,
    TariffData,
    TariffRequest,
    TradeAgreement,
    TradeFlowData,
    TradeFlowRequest,
    is_buyers_request,
    is_competitive_landscape_request,
    is_market_size_request,
    is_tariff_request,
    is_trade_flow_request,
)
from .responses import build_success
from .trade_flow import TradeFlowService
from .wits_client import WitsClient, malformed_response_error

logger = logging.getLogger(__name__)

# (source, confidence_score) reported for each request kind
SOURCES: Dict[RequestType, Tuple[str, float]] = {
    RequestType.TRADE_FLOW: ("WITS API", 0.95),
    RequestType.TARIFF: ("WITS API", 0.98),
    RequestType.MARKET_SIZE: ("ITC TradeMap", 0.93),
    RequestType.BUYERS: ("Internal Trade DB", 0.87),
    RequestType.COMPETITIVE_LANDSCAPE: ("Market Research DB", 0.92),
}


def parse_request(payload: Mapping[str, Any]) -> MarketIntelligenceRequest:
    """
    Builds the request variant named by `payload["type"]`.

    Raises:
        MarketIntelligenceError: VALIDATION if the type is missing or unknown,
            or if a field has the wrong type (e.g. a non-integer year).
    """
    request_type = payload.get("type")
    if not request_type:
        raise MarketIntelligenceError(
            ErrorKind.VALIDATION, "Request type is required", {"params": dict(payload)}
        )
    try:
        model = REQUEST_MODELS[RequestType(request_type)]
    except (ValueError, TypeError):  # unknown or unhashable tag
        raise MarketIntelligenceError(
            ErrorKind.VALIDATION,
            f"Unsupported request type: {request_type}",
            {"params": dict(payload)},
        ) from None
    try:
        return model.model_validate(dict(payload))
    except pydantic.ValidationError as e:
        raise MarketIntelligenceError(
            ErrorKind.VALIDATION,
            f"Invalid parameters for {RequestType(request_type).label} requests",
            {"errors": e.errors(include_url=False), "params": dict(payload)},
        ) from e


def _success(request_type: RequestType, data: Any) -> ResponseEnvelope:
    source, confidence_score = SOURCES[request_type]
    return build_success(
        data, metadata={"source": source, "confidence_score": confidence_score}
    )


class MarketIntelligenceHandler:
    """
    Routes market intelligence requests to the matching branch.

    Args:
        trade_flow_service: When given, trade flow requests are served through
            it (cache, then WITS). Otherwise illustrative figures are returned.
        wits_client: When given, tariff requests are looked up in WITS.
            Otherwise illustrative figures are returned.
    """

    def __init__(
        self,
        trade_flow_service: Optional[TradeFlowService] = None,
        wits_client: Optional[WitsClient] = None,
    ):
        self.trade_flow_service = trade_flow_service
        self.wits_client = wits_client
        # Checked in this order; the first guard that matches wins.
        self._routes: Tuple[Tuple[Callable[[Any], bool], Callable[[Any], ResponseEnvelope]], ...] = (
            (is_trade_flow_request, self._handle_trade_flow),
            (is_tariff_request, self._handle_tariff),
            (is_market_size_request, self._handle_market_size),
            (is_buyers_request, self._handle_buyers),
            (is_competitive_landscape_request, self._handle_competitive_landscape),
        )

    def handle(
        self, request: Union[MarketIntelligenceRequest, Mapping[str, Any]]
    ) -> ResponseEnvelope:
        """
        Validates and dispatches a request.

        Args:
            request: A request model, or a raw mapping with a `type` key.

        Returns:
            The success envelope produced by the matching branch.

        Raises:
            MarketIntelligenceError: VALIDATION for a missing or unsupported
                type or a missing field; any error from a data source
                propagates unchanged.
        """
        if isinstance(request, Mapping):
            request = parse_request(request)

        request_type = getattr(request, "type", None)
        if not request_type:
            raise MarketIntelligenceError(
                ErrorKind.VALIDATION, "Request type is required", {"params": repr(request)}
            )

        for matches, branch in self._routes:
            if matches(request):
                logger.debug(f"Dispatching {request_type} request")
                return branch(request)

        raise MarketIntelligenceError(
            ErrorKind.VALIDATION,
            f"Unsupported request type: {request_type}",
            {"params": repr(request)},
        )

    def _handle_trade_flow(self, request: TradeFlowRequest) -> ResponseEnvelope:
        require_fields(RequestType.TRADE_FLOW, request.model_dump())

        if self.trade_flow_service is not None:
            return self.trade_flow_service.get_trade_flow(request)

        data = TradeFlowData(
            import_value_usd=5_000_000_000,
            export_value_usd=3_000_000_000,
            growth_rate=12.5,
            top_exporters=[
                ExporterShare(country="China", market_share=35),
                ExporterShare(country="Germany", market_share=15),
                ExporterShare(country="South Africa", market_share=8),
            ],
            import_volume=250_000,
            market=request.market,
            year=request.year,
        )
        return _success(RequestType.TRADE_FLOW, data)

    def _handle_tariff(self, request: TariffRequest) -> ResponseEnvelope:
        require_fields(RequestType.TARIFF, request.model_dump())

        if self.wits_client is not None:
            # The destination applies the tariff to goods from the origin.
            wits_response = self.wits_client.get_tariff(
                reporter=request.destination,
                partner=request.origin,
                product_code=request.hs_code,
                year=request.year,
            )
            try:
                data = _tariff_from_wits(wits_response)
            except (pydantic.ValidationError, AttributeError, TypeError) as e:
                raise malformed_response_error(wits_response, e) from e
        else:
            data = TariffData(
                tariff_rate=5.2,
                quota_restrictions=None,
                trade_agreements=[
                    TradeAgreement(
                        name="AfCFTA",
                        benefits="Reduced tariff rate of 0% for qualifying goods",
                    )
                ],
            )
        return _success(RequestType.TARIFF, data)

    def _handle_market_size(self, request: MarketSizeRequest) -> ResponseEnvelope:
        require_fields(RequestType.MARKET_SIZE, request.model_dump())

        data = MarketSizeData(
            market_value_usd="8.5 Billion",
            growth_rate="5%",
            popular_categories=["canned vegetables", "plant-based meals"],
        )
        return _success(RequestType.MARKET_SIZE, data)

    def _handle_buyers(self, request: BuyersRequest) -> ResponseEnvelope:
        require_fields(RequestType.BUYERS, request.model_dump())

        data = BuyersData(
            buyers=[
                Buyer(
                    name="Almarai",
                    contact="buyer@almarai.com",
                    size="Large",
                    interests=["dairy", "beverages"],
                ),
                Buyer(
                    name="Spinneys",
                    contact="procurement@spinneys.com",
                    size="Medium",
                    interests=["organic", "health foods"],
                ),
            ]
        )
        return _success(RequestType.BUYERS, data)

    def _handle_competitive_landscape(
        self, request: CompetitiveLandscapeRequest
    ) -> ResponseEnvelope:
        require_fields(RequestType.COMPETITIVE_LANDSCAPE, request.model_dump())

        data = CompetitiveLandscapeData(
            competitors=[
                Competitor(
                    name="Global Foods Inc.",
                    market_share=32,
                    origin="USA",
                    strengths=["brand recognition", "distribution network"],
                ),
                Competitor(
                    name="EuroFoods",
                    market_share=18,
                    origin="Germany",
                    strengths=["product quality", "organic certification"],
                ),
            ],
            price_points=PricePoints(
                low="$2.50 - $4.00",
                average="$4.00 - $6.50",
                premium="$6.50 - $12.00",
            ),
        )
        return _success(RequestType.COMPETITIVE_LANDSCAPE, data)


def _tariff_from_wits(response: Mapping[str, Any]) -> TariffData:
    """Maps a WITS tariff response onto the tariff payload."""
    quotas = response.get("quotas") or {}
    quota_restrictions = None
    if quotas.get("isApplied"):
        quota_restrictions = quotas.get("details") or "Quota applies"

    agreements = [
        TradeAgreement(
            name=agreement.get("name", "Unknown agreement"),
            benefits=f"Preferential tariff rate of {agreement.get('rate', 0)}%",
        )
        for agreement in response.get("tradeAgreements") or []
    ]
    return TariffData(
        tariff_rate=response.get("simpleAverage") or 0,
        quota_restrictions=quota_restrictions,
        trade_agreements=agreements,
    )
