# Copyright (c) 2025-2026 Gowtham Adamane Rao. All Rights Reserved.
#
# Licensed under the Prosperity Public License 3.0.0 (the "License").
# You may not use this file except in compliance with the License.
# You may obtain a copy of the License in the LICENSE file at the root
# of this repository, or at: https://prosperitylicense.com/versions/3.0.0
#
# Commercial use beyond a 30-day trial requires a separate license.


"""
Builders for standardized success envelopes.

These functions are pure apart from reading the clock: the default
`last_updated` is taken at call time, never at import time.
"""

from datetime import datetime
from typing import Any, Dict, Optional, TypeVar, Union

from .errors import ErrorKind, MarketIntelligenceError
from .models import Metadata, ResponseEnvelope, now_iso, to_iso

T = TypeVar("T")

DEFAULT_METADATA: Dict[str, Any] = {
    "data_completeness": "complete",
    "source": "API",
}


def build_success(
    data: T,
    status: int = 200,
    message: Optional[str] = None,
    metadata: Optional[Dict[str, Any]] = None,
) -> ResponseEnvelope[T]:
    """
    Creates a standardized success envelope.

    Args:
        data: The response payload. Must not be None.
        status: A 2xx HTTP status code (default 200).
        message: Optional context for the caller.
        metadata: Overrides merged on top of the default metadata. A supplied
                  `last_updated` is kept (normalized); otherwise the current
                  time is used.

    Raises:
        MarketIntelligenceError: (INTERNAL) if the payload is None or the
            status is outside the 2xx range.
    """
    if data is None:
        raise MarketIntelligenceError(
            ErrorKind.INTERNAL, "Success responses must carry data"
        )
    if not 200 <= status <= 299:
        raise MarketIntelligenceError(
            ErrorKind.INTERNAL,
            f"Success responses require a 2xx status, got {status}",
            {"status": status},
        )

    overrides = dict(metadata or {})
    last_updated = overrides.pop("last_updated", None)
    merged = {**DEFAULT_METADATA, **overrides}
    merged["last_updated"] = _normalize_timestamp(last_updated) if last_updated else now_iso()

    return ResponseEnvelope[Any](
        status=status,
        data=data,
        message=message or None,
        metadata=Metadata(**merged),
    )


def build_partial(
    data: T,
    status: int = 200,
    message: Optional[str] = None,
    metadata: Optional[Dict[str, Any]] = None,
) -> ResponseEnvelope[T]:
    """Creates a success envelope flagged as carrying partial data."""
    return build_success(
        data,
        status=status,
        message=message,
        metadata={**(metadata or {}), "data_completeness": "partial"},
    )


def build_cached(
    data: T,
    cached_at: Union[str, datetime],
    status: int = 200,
    message: Optional[str] = None,
    metadata: Optional[Dict[str, Any]] = None,
) -> ResponseEnvelope[T]:
    """
    Creates a success envelope for data served from a cache.

    The source is always 'Cache' and `last_updated` is the time the entry was
    cached, whatever the overrides say.
    """
    return build_success(
        data,
        status=status,
        message=message,
        metadata={
            **(metadata or {}),
            "source": "Cache",
            "last_updated": _normalize_timestamp(cached_at),
        },
    )


def _normalize_timestamp(value: Union[str, datetime]) -> str:
    try:
        return to_iso(value)
    except (TypeError, ValueError) as e:
        raise MarketIntelligenceError(
            ErrorKind.INTERNAL,
            f"Invalid metadata timestamp: {value!r}",
            {"original_error": str(e)},
        ) from e
