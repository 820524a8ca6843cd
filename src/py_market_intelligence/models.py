# Copyright (c) 2025-2026 Gowtham Adamane Rao. All Rights Reserved.
#
# Licensed under the Prosperity Public License 3.0.0 (the "License").
# You may not use this file except in compliance with the License.
# You may obtain a copy of the License in the LICENSE file at the root
# of this repository, or at: https://prosperitylicense.com/versions/3.0.0
#
# Commercial use beyond a 30-day trial requires a separate license.


"""
Core data models for the py-market-intelligence package.

This module defines the Pydantic models shared by every layer of the service:
the response envelopes and their metadata, the payload returned for each kind
of market intelligence request, and the request variants themselves together
with the type guards used to dispatch them.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Generic, List, Literal, Mapping, Optional, Tuple, TypeVar, Union

from pydantic import BaseModel, ConfigDict, Field

# === Timestamps ===


def utc_now() -> datetime:
    """Returns the current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def to_iso(value: Union[str, datetime]) -> str:
    """
    Normalizes a timestamp to the canonical form used in envelope metadata,
    e.g. '2024-03-01T12:00:00.000Z'. Naive datetimes are taken as UTC.

    Raises:
        ValueError: If a string value is not an ISO-8601 timestamp.
    """
    if isinstance(value, str):
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        value = datetime.fromisoformat(text)
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return (
        value.astimezone(timezone.utc)
        .isoformat(timespec="milliseconds")
        .replace("+00:00", "Z")
    )


def now_iso() -> str:
    return to_iso(utc_now())


# === Envelope Models ===


class ErrorCode(str, Enum):
    """Machine-readable error codes carried by error envelopes."""

    VALIDATION_ERROR = "VALIDATION_ERROR"
    NOT_FOUND = "NOT_FOUND"
    UNAUTHORIZED = "UNAUTHORIZED"
    FORBIDDEN = "FORBIDDEN"
    INTERNAL_SERVER_ERROR = "INTERNAL_SERVER_ERROR"
    SERVICE_UNAVAILABLE = "SERVICE_UNAVAILABLE"
    EXTERNAL_API_ERROR = "EXTERNAL_API_ERROR"


DataCompleteness = Literal["complete", "partial", "incomplete"]


class Metadata(BaseModel):
    """Provenance information attached to every envelope."""

    data_completeness: DataCompleteness = Field(
        default="complete", description="How complete the returned data is."
    )
    last_updated: str = Field(
        default_factory=now_iso,
        description="ISO-8601 timestamp of when the data was produced.",
    )
    source: str = Field(
        default="API", description="Where the data came from (API, Cache, ...)."
    )
    confidence_score: Optional[float] = Field(
        default=None, ge=0, le=1, description="Reliability of the data, 0 to 1."
    )


T = TypeVar("T")


class ResponseEnvelope(BaseModel, Generic[T]):
    """The uniform wrapper returned for every successful request."""

    status: int = Field(default=200, description="HTTP status code.")
    data: T = Field(description="The response payload.")
    message: Optional[str] = Field(
        default=None, description="Optional human-readable context."
    )
    metadata: Metadata

    def to_response(self) -> Dict[str, Any]:
        """Returns the JSON-ready body, omitting unset optional fields."""
        body = self.model_dump(mode="json")
        if self.message is None:
            body.pop("message")
        if self.metadata.confidence_score is None:
            body["metadata"].pop("confidence_score")
        return body


class ErrorEnvelope(BaseModel):
    """The uniform wrapper returned for every failed request."""

    status: int = Field(description="HTTP status code matching the error kind.")
    data: None = None
    message: str
    error_code: ErrorCode
    details: Optional[Dict[str, Any]] = None
    metadata: Optional[Metadata] = None

    def to_response(self) -> Dict[str, Any]:
        body = self.model_dump(mode="json")
        for key in ("details", "metadata"):
            if body[key] is None:
                body.pop(key)
        if self.metadata is not None and self.metadata.confidence_score is None:
            body["metadata"].pop("confidence_score")
        return body


def is_error_envelope(body: Mapping[str, Any]) -> bool:
    """Returns True if a serialized envelope describes an error."""
    return body.get("data", ...) is None and "message" in body


# === Payload Models ===


class ExporterShare(BaseModel):
    country: str
    market_share: float


class TradeFlowData(BaseModel):
    """Trade flow figures for one product in one market."""

    import_value_usd: float = Field(description="Total import value in USD.")
    export_value_usd: float = Field(description="Total export value in USD.")
    growth_rate: float = Field(description="Annual growth rate as a percentage.")
    top_exporters: List[ExporterShare] = Field(default_factory=list)
    import_volume: Optional[float] = Field(
        default=None, description="Import volume in metric tons."
    )
    market: Optional[str] = Field(
        default=None, description="The market token as supplied by the caller."
    )
    year: Optional[int] = Field(default=None, description="Year of the data.")


class TradeAgreement(BaseModel):
    name: str
    benefits: str


class TariffData(BaseModel):
    """Tariff treatment for one product between two countries."""

    tariff_rate: float = Field(description="Applicable tariff rate as a percentage.")
    quota_restrictions: Optional[str] = Field(
        default=None, description="Any quota restrictions, or None."
    )
    trade_agreements: List[TradeAgreement] = Field(default_factory=list)


class MarketSizeData(BaseModel):
    market_value_usd: str
    growth_rate: str
    popular_categories: List[str] = Field(default_factory=list)


class Buyer(BaseModel):
    name: str
    contact: str
    size: str
    interests: List[str] = Field(default_factory=list)


class BuyersData(BaseModel):
    buyers: List[Buyer] = Field(default_factory=list)


class Competitor(BaseModel):
    name: str
    market_share: float
    origin: str
    strengths: List[str] = Field(default_factory=list)


class PricePoints(BaseModel):
    low: str
    average: str
    premium: str


class CompetitiveLandscapeData(BaseModel):
    competitors: List[Competitor] = Field(default_factory=list)
    price_points: PricePoints


MarketIntelligenceData = Union[
    TradeFlowData, TariffData, MarketSizeData, BuyersData, CompetitiveLandscapeData
]


# === Request Models ===


class RequestType(str, Enum):
    """The discriminant values of the market intelligence request union."""

    TRADE_FLOW = "trade_flow"
    TARIFF = "tariff"
    MARKET_SIZE = "market_size"
    BUYERS = "buyers"
    COMPETITIVE_LANDSCAPE = "competitive_landscape"

    @property
    def label(self) -> str:
        """Human-readable name used in validation messages."""
        return self.value.replace("_", " ")


class _RequestBase(BaseModel):
    # Payload fields are optional here; presence is checked per request kind
    # so that a missing field is reported by name.
    model_config = ConfigDict(frozen=True)


class TradeFlowRequest(_RequestBase):
    type: Literal["trade_flow"] = "trade_flow"
    hs_code: Optional[str] = Field(default=None, description="HS code of the product.")
    market: Optional[str] = Field(default=None, description="Target market code.")
    year: Optional[int] = Field(default=None, description="Year for historical data.")


class TariffRequest(_RequestBase):
    type: Literal["tariff"] = "tariff"
    hs_code: Optional[str] = Field(default=None, description="HS code of the product.")
    origin: Optional[str] = Field(default=None, description="Origin country code.")
    destination: Optional[str] = Field(
        default=None, description="Destination country code."
    )
    year: Optional[int] = Field(default=None, description="Year of the tariff schedule.")


class MarketSizeRequest(_RequestBase):
    type: Literal["market_size"] = "market_size"
    product_category: Optional[str] = None
    market: Optional[str] = None


class BuyersRequest(_RequestBase):
    type: Literal["buyers"] = "buyers"
    industry: Optional[str] = None
    market: Optional[str] = None


class CompetitiveLandscapeRequest(_RequestBase):
    type: Literal["competitive_landscape"] = "competitive_landscape"
    product_category: Optional[str] = None
    market: Optional[str] = None


MarketIntelligenceRequest = Union[
    TradeFlowRequest,
    TariffRequest,
    MarketSizeRequest,
    BuyersRequest,
    CompetitiveLandscapeRequest,
]

REQUEST_MODELS: Dict[RequestType, type] = {
    RequestType.TRADE_FLOW: TradeFlowRequest,
    RequestType.TARIFF: TariffRequest,
    RequestType.MARKET_SIZE: MarketSizeRequest,
    RequestType.BUYERS: BuyersRequest,
    RequestType.COMPETITIVE_LANDSCAPE: CompetitiveLandscapeRequest,
}

# Ordered (field, label) pairs each request kind must carry.
REQUIRED_FIELDS: Dict[RequestType, Tuple[Tuple[str, str], ...]] = {
    RequestType.TRADE_FLOW: (("hs_code", "HS code"), ("market", "Market")),
    RequestType.TARIFF: (
        ("hs_code", "HS code"),
        ("origin", "Origin country"),
        ("destination", "Destination country"),
    ),
    RequestType.MARKET_SIZE: (
        ("product_category", "Product category"),
        ("market", "Market"),
    ),
    RequestType.BUYERS: (("industry", "Industry"), ("market", "Market")),
    RequestType.COMPETITIVE_LANDSCAPE: (
        ("product_category", "Product category"),
        ("market", "Market"),
    ),
}


# === Type Guards ===


def is_trade_flow_request(request: Any) -> bool:
    return getattr(request, "type", None) == RequestType.TRADE_FLOW


def is_tariff_request(request: Any) -> bool:
    return getattr(request, "type", None) == RequestType.TARIFF


def is_market_size_request(request: Any) -> bool:
    return getattr(request, "type", None) == RequestType.MARKET_SIZE


def is_buyers_request(request: Any) -> bool:
    return getattr(request, "type", None) == RequestType.BUYERS


def is_competitive_landscape_request(request: Any) -> bool:
    return getattr(request, "type", None) == RequestType.COMPETITIVE_LANDSCAPE
