# Copyright (c) 2025-2026 Gowtham Adamane Rao. All Rights Reserved.
#
# Licensed under the Prosperity Public License 3.0.0 (the "License").
# You may not use this file except in compliance with the License.
# You may obtain a copy of the License in the LICENSE file at the root
# of this repository, or at: https://prosperitylicense.com/versions/3.0.0
#
# Commercial use beyond a 30-day trial requires a separate license.


"""
Trade flow service with an in-memory, TTL-checked cache in front of WITS.

Entries are never evicted; staleness is decided lazily on lookup by
comparing the entry's age against the configured TTL. Concurrent misses for
the same key may both reach WITS, in which case the last write wins.
"""

import logging
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, Optional

import pydantic
from pydantic import BaseModel

from .config import TradeFlowSettings
from .errors import require_fields
from .models import (
    ExporterShare,
    RequestType,
    ResponseEnvelope,
    TradeFlowData,
    TradeFlowRequest,
    utc_now,
)
from .responses import build_cached, build_success
from .wits_client import (
    WitsClient,
    malformed_response_error,
    normalize_response_for_caller,
)

logger = logging.getLogger(__name__)

SOURCE = "WITS API"
CONFIDENCE_SCORE = 0.95

# Placeholders until export values, growth and exporter shares are
# sourced from their own WITS lookups.
PLACEHOLDER_GROWTH_RATE = 12.5
PLACEHOLDER_TOP_EXPORTERS = (
    ("China", 35),
    ("Germany", 15),
    ("South Africa", 8),
)


class CacheEntry(BaseModel):
    data: TradeFlowData
    timestamp: datetime


class TradeFlowService:
    """
    Retrieves trade flow data from WITS and shapes it into envelopes,
    serving repeated lookups from an in-memory cache.
    """

    def __init__(
        self,
        wits_client: WitsClient,
        settings: Optional[TradeFlowSettings] = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        """
        Args:
            wits_client: The client used on cache misses.
            settings: Default reporter and cache TTL.
            clock: Returns the current aware datetime; injectable for tests.
        """
        self.wits_client = wits_client
        self.settings = settings or TradeFlowSettings()
        self._clock = clock
        self._cache: Dict[str, CacheEntry] = {}

    @staticmethod
    def cache_key(hs_code: str, market: str, year: Optional[int] = None) -> str:
        return f"{hs_code}:{market}:{year or 'latest'}"

    def _is_fresh(self, entry: CacheEntry) -> bool:
        age = self._clock() - entry.timestamp
        return age < timedelta(seconds=self.settings.cache_ttl_seconds)

    def get_trade_flow(self, request: TradeFlowRequest) -> ResponseEnvelope[TradeFlowData]:
        """
        Returns trade flow data for the request, from cache when fresh.

        Raises:
            MarketIntelligenceError: VALIDATION if hs_code or market is
                missing; EXTERNAL_API if the WITS body cannot be mapped; any
                error raised by the WITS client propagates.
        """
        require_fields(RequestType.TRADE_FLOW, request.model_dump())

        key = self.cache_key(request.hs_code, request.market, request.year)
        entry = self._cache.get(key)
        if entry is not None and self._is_fresh(entry):
            logger.debug(f"Trade flow cache hit for {key}")
            return build_cached(
                entry.data.model_copy(deep=True),
                entry.timestamp,
                metadata={
                    "confidence_score": CONFIDENCE_SCORE,
                    "data_completeness": "complete",
                },
            )

        logger.info(f"Trade flow cache {'stale' if entry else 'miss'} for {key}")
        wits_response = self.wits_client.get_trade_flow(
            reporter=self.settings.default_reporter,
            partner=request.market,
            product_code=request.hs_code,
            year=request.year,
        )
        wits_response = normalize_response_for_caller(wits_response, request.market)

        try:
            data = _trade_flow_from_wits(wits_response, request.year)
        except (pydantic.ValidationError, AttributeError, TypeError) as e:
            raise malformed_response_error(wits_response, e) from e
        self._cache[key] = CacheEntry(
            data=data.model_copy(deep=True), timestamp=self._clock()
        )

        return build_success(
            data,
            metadata={"source": SOURCE, "confidence_score": CONFIDENCE_SCORE},
        )

    def clear(self) -> None:
        """Removes every cached entry."""
        self._cache.clear()


def _trade_flow_from_wits(
    response: Dict[str, Any], year: Optional[int] = None
) -> TradeFlowData:
    """Maps a WITS trade flow response onto the trade flow payload."""
    return TradeFlowData(
        import_value_usd=response.get("tradeValue") or 0,
        export_value_usd=0,
        growth_rate=PLACEHOLDER_GROWTH_RATE,
        top_exporters=[
            ExporterShare(country=country, market_share=share)
            for country, share in PLACEHOLDER_TOP_EXPORTERS
        ],
        import_volume=response.get("netWeight") or 0,
        market=response["partner"],
        year=response.get("year") or year,
    )
