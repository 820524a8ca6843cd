# Copyright (c) 2025-2026 Gowtham Adamane Rao. All Rights Reserved.
#
# Licensed under the Prosperity Public License 3.0.0 (the "License").
# You may not use this file except in compliance with the License.
# You may obtain a copy of the License in the LICENSE file at the root
# of this repository, or at: https://prosperitylicense.com/versions/3.0.0
#
# Commercial use beyond a 30-day trial requires a separate license.


"""
Client module for the World Bank WITS trade-data API.

This module provides a WitsClient class that handles:
- Normalizing caller-facing market tokens to the codes WITS expects.
- Making HTTP requests to the trade flow and tariff endpoints.
- Resiliently retrying requests that fail at the transport level.
- Translating every upstream failure into the service's error taxonomy,
  in exactly one place.
"""

import logging
from datetime import datetime
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional

import httpx
from tenacity import (
    Retrying,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from .config import WitsSettings
from .errors import ErrorKind, MarketIntelligenceError

# Configure a logger for this module
logger = logging.getLogger(__name__)

WORLD_CODE = "WLD"

# Caller-facing market tokens mapped to the ISO-3 codes used by WITS.
COUNTRY_CODE_MAP: Mapping[str, str] = MappingProxyType(
    {
        "UAE": "ARE",
        "USA": "USA",
        "US": "USA",
        "UK": "GBR",
        "GB": "GBR",
        "KSA": "SAU",
        "RSA": "ZAF",
        "WORLD": WORLD_CODE,
        "WLD": WORLD_CODE,
    }
)

TRADE_FLOW_PATH = "/trade/flow"
TARIFF_PATH = "/tariff/rate"


def normalize_country_code(token: Optional[str]) -> str:
    """
    Converts a market token (e.g., 'UAE', 'uk') to the WITS country code
    (e.g., 'ARE', 'GBR').

    Lookup is case-insensitive. Tokens that are not in the map are assumed to
    already be WITS codes and are returned uppercased. An empty or missing
    token means the whole world.
    """
    if not token or not token.strip():
        return WORLD_CODE
    key = token.strip().upper()
    return COUNTRY_CODE_MAP.get(key, key)


def normalize_response_for_caller(
    response: Mapping[str, Any], market: str
) -> Dict[str, Any]:
    """
    Returns a copy of a WITS response with the partner field replaced by the
    caller's original market token, so a caller who asked about 'UAE' sees
    'UAE' back rather than WITS's 'ARE'.
    """
    return {**response, "partner": market}


def translate_error_response(status: int, body: Any) -> MarketIntelligenceError:
    """
    Maps a failed WITS response to the matching taxonomy error.

    Args:
        status: The HTTP status returned by WITS.
        body: The decoded JSON body, or the raw text if it was not JSON.
    """
    upstream_message = body.get("message") if isinstance(body, dict) else None
    details = {"original_error": body}

    if status == 400:
        return MarketIntelligenceError(
            ErrorKind.VALIDATION,
            upstream_message or "Invalid request to WITS API",
            details,
        )
    if status == 404:
        # Reported as a validation error rather than NOT_FOUND: the lookup
        # parameters did not match any WITS resource.
        return MarketIntelligenceError(
            ErrorKind.VALIDATION,
            "The requested resource was not found in WITS API",
            details,
        )
    if status >= 500:
        return MarketIntelligenceError(
            ErrorKind.EXTERNAL_API,
            f"WITS API server error: {upstream_message or status}",
            details,
        )
    return MarketIntelligenceError(
        ErrorKind.EXTERNAL_API,
        f"WITS API error: {upstream_message or status}",
        {**details, "status": status},
    )


def malformed_response_error(
    body: Any, cause: Optional[Exception] = None
) -> MarketIntelligenceError:
    """
    The error raised when a successful WITS response cannot be read, either
    because the body is not an object or because its fields have the wrong
    shape for the payload they are mapped onto.
    """
    details: Dict[str, Any] = {"original_error": body}
    if cause is not None:
        details["reason"] = str(cause)
    return MarketIntelligenceError(
        ErrorKind.EXTERNAL_API, "WITS API returned a malformed response", details
    )


class WitsClient:
    """
    Handles all outbound calls to the WITS API.
    """

    def __init__(
        self,
        settings: WitsSettings,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        """
        Initializes the client with WITS settings.

        Args:
            settings: An instance of WitsSettings containing configuration.
            transport: Optional httpx transport, e.g. a MockTransport in tests.
        """
        self.settings = settings
        headers = {
            "User-Agent": "py-market-intelligence/1.0",
            "Accept": "application/json",
        }
        if settings.api_key:
            headers["X-API-Key"] = settings.api_key
        self.client = httpx.Client(
            base_url=str(settings.base_url),
            headers=headers,
            timeout=settings.timeout,
            transport=transport,
        )

    def __enter__(self) -> "WitsClient":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def close(self) -> None:
        """Releases the underlying HTTP connection pool."""
        self.client.close()

    def _send(self, path: str, params: Dict[str, Any]) -> httpx.Response:
        """
        Issues a GET request, retrying transport-level failures.
        """
        retrying = Retrying(
            wait=wait_exponential(multiplier=self.settings.retry_backoff, max=10),
            stop=stop_after_attempt(self.settings.max_retries),
            retry=retry_if_exception_type(httpx.TransportError),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            reraise=True,
        )
        return retrying(self.client.get, path, params=params)

    def _request(self, path: str, params: Dict[str, Any]) -> Dict[str, Any]:
        """
        Performs a WITS call and translates any failure into the error
        taxonomy. All public methods go through here.
        """
        logger.info(f"Requesting WITS {path} with params {params}")
        try:
            response = self._send(path, params)
        except httpx.TransportError as e:
            logger.error(f"WITS API is unreachable at {path}: {e}")
            raise MarketIntelligenceError(
                ErrorKind.EXTERNAL_API,
                "WITS API is unreachable",
                {"original_error": str(e)},
            ) from e

        if not response.is_success:
            body = _decode_body(response)
            logger.warning(f"WITS API returned {response.status_code} for {path}")
            raise translate_error_response(response.status_code, body)

        body = _decode_body(response)
        if not isinstance(body, dict):
            raise malformed_response_error(body)
        return body

    def _lookup_params(
        self,
        reporter: Optional[str],
        partner: Optional[str],
        product_code: Optional[str],
        year: Optional[int],
        request_kind: str,
    ) -> Dict[str, Any]:
        if not product_code:
            raise MarketIntelligenceError(
                ErrorKind.VALIDATION,
                f"Product code is required for {request_kind} requests",
                {"reporter": reporter, "partner": partner, "year": year},
            )
        return {
            "reporter": normalize_country_code(reporter),
            "partner": normalize_country_code(partner),
            "productCode": product_code,
            # Default to the previous calendar year
            "year": year or datetime.now().year - 1,
            "format": "json",
        }

    def get_trade_flow(
        self,
        reporter: Optional[str],
        partner: Optional[str],
        product_code: Optional[str],
        year: Optional[int] = None,
    ) -> Dict[str, Any]:
        """
        Fetches trade flow data for a product between two countries.

        Args:
            reporter: Reporter market token (e.g., 'WLD').
            partner: Partner market token (e.g., 'UAE').
            product_code: HS product code.
            year: Year of the data; defaults to the previous calendar year.

        Returns:
            The decoded WITS response, unchanged.
        """
        params = self._lookup_params(reporter, partner, product_code, year, "trade flow")
        return self._request(TRADE_FLOW_PATH, params)

    def get_tariff(
        self,
        reporter: Optional[str],
        partner: Optional[str],
        product_code: Optional[str],
        year: Optional[int] = None,
    ) -> Dict[str, Any]:
        """
        Fetches tariff rates applied by the reporter to goods from the partner.
        """
        params = self._lookup_params(reporter, partner, product_code, year, "tariff")
        return self._request(TARIFF_PATH, params)


def _decode_body(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return response.text
