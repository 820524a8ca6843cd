# Copyright (c) 2025-2026 Gowtham Adamane Rao. All Rights Reserved.
#
# Licensed under the Prosperity Public License 3.0.0 (the "License").
# You may not use this file except in compliance with the License.
# You may obtain a copy of the License in the LICENSE file at the root
# of this repository, or at: https://prosperitylicense.com/versions/3.0.0
#
# Commercial use beyond a 30-day trial requires a separate license.


"""
Error taxonomy for the market intelligence service.

Every failure the service reports belongs to one of seven kinds. A kind is
plain data (an HTTP status and a machine-readable code), so a single
exception type tagged with its kind covers the whole taxonomy.

`handle_error` is the one conversion from "anything that was raised" to an
error envelope. It is used at the system boundary and never raises itself.
"""

import logging
from enum import Enum
from typing import Any, Dict, Mapping, Optional

from pydantic_core import to_jsonable_python

from .models import (
    REQUIRED_FIELDS,
    ErrorCode,
    ErrorEnvelope,
    Metadata,
    RequestType,
    now_iso,
)

logger = logging.getLogger(__name__)

GENERIC_ERROR_MESSAGE = "An unexpected error occurred"


class ErrorKind(Enum):
    """The closed set of error kinds, each fixed to an HTTP status and code."""

    VALIDATION = (400, ErrorCode.VALIDATION_ERROR)
    UNAUTHORIZED = (401, ErrorCode.UNAUTHORIZED)
    FORBIDDEN = (403, ErrorCode.FORBIDDEN)
    NOT_FOUND = (404, ErrorCode.NOT_FOUND)
    INTERNAL = (500, ErrorCode.INTERNAL_SERVER_ERROR)
    EXTERNAL_API = (502, ErrorCode.EXTERNAL_API_ERROR)
    SERVICE_UNAVAILABLE = (503, ErrorCode.SERVICE_UNAVAILABLE)

    @property
    def http_status(self) -> int:
        return self.value[0]

    @property
    def code(self) -> ErrorCode:
        return self.value[1]


class MarketIntelligenceError(Exception):
    """
    The single exception type raised for every known failure.

    Args:
        kind: The error kind, which fixes the HTTP status and error code.
        message: A human-readable description of the failure.
        details: Optional structured context, e.g. the offending parameters
                 or the raw error body returned by an upstream API.
    """

    def __init__(
        self,
        kind: ErrorKind,
        message: str,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.kind = kind
        self.message = message
        self.details = details

    @property
    def status(self) -> int:
        return self.kind.http_status

    @property
    def error_code(self) -> ErrorCode:
        return self.kind.code

    def __repr__(self) -> str:
        return f"MarketIntelligenceError({self.kind.name}, {self.message!r})"

    def to_response(self) -> ErrorEnvelope:
        """Converts this error to a standardized error envelope."""
        return ErrorEnvelope(
            status=self.status,
            message=self.message,
            error_code=self.error_code,
            details=_jsonable_details(self.details),
            metadata=Metadata(
                data_completeness="incomplete",
                last_updated=now_iso(),
                source="Error",
            ),
        )


def require_fields(request_type: RequestType, values: Mapping[str, Any]) -> None:
    """
    Checks the required fields of a request kind, in their fixed order.

    Raises:
        MarketIntelligenceError: VALIDATION naming the first field that is
            missing or empty.
    """
    for field, label in REQUIRED_FIELDS[request_type]:
        if not values.get(field):
            raise MarketIntelligenceError(
                ErrorKind.VALIDATION,
                f"{label} ({field}) is required for {request_type.label} requests",
                {"field": field, "params": dict(values)},
            )


def is_market_intelligence_error(value: object) -> bool:
    """Returns True if the value belongs to the error taxonomy."""
    return isinstance(value, MarketIntelligenceError)


def handle_error(error: object) -> ErrorEnvelope:
    """
    Converts any raised value into an error envelope.

    Taxonomy errors convert via their own kind. Anything else is reported as
    an internal error, with a short description of the original value placed
    in `details.original_error`. Tracebacks are never included.
    """
    if is_market_intelligence_error(error):
        return error.to_response()  # type: ignore[union-attr]

    if isinstance(error, BaseException):
        message = _safe_str(error) or GENERIC_ERROR_MESSAGE
        original = f"{type(error).__name__}: {_safe_str(error)}"
    else:
        message = GENERIC_ERROR_MESSAGE
        original = _safe_str(error)

    return MarketIntelligenceError(
        ErrorKind.INTERNAL, message, {"original_error": original}
    ).to_response()


def _safe_str(value: object) -> str:
    try:
        return str(value)
    except Exception:
        return f"<unprintable {type(value).__name__}>"


def _jsonable_details(details: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    if details is None:
        return None
    try:
        return to_jsonable_python(details, serialize_unknown=True)
    except Exception as e:
        logger.warning(f"Could not serialize error details: {e}")
        return {"original_error": _safe_str(details)}
