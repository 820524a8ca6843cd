# Copyright (c) 2025-2026 Gowtham Adamane Rao. All Rights Reserved.
#
# Licensed under the Prosperity Public License 3.0.0 (the "License").
# You may not use this file except in compliance with the License.
# You may obtain a copy of the License in the LICENSE file at the root
# of this repository, or at: https://prosperitylicense.com/versions/3.0.0
#
# Commercial use beyond a 30-day trial requires a separate license.


"""
Configuration module for the py-market-intelligence package.

This module uses pydantic-settings to manage application configuration,
allowing settings to be loaded from environment variables or a .env file.
All values are read once at construction; nothing is mutated at runtime.
"""

from typing import Optional

from pydantic import BaseModel, Field, HttpUrl
from pydantic_settings import BaseSettings, SettingsConfigDict


class WitsSettings(BaseModel):
    """
    Defines settings related to the WITS trade-data API.
    """

    base_url: HttpUrl = Field(
        default=HttpUrl("https://api.worldbank.org/wits"),
        description="The base URL for the WITS API.",
    )
    api_key: Optional[str] = Field(
        default=None, description="Optional static key sent as the X-API-Key header."
    )
    timeout: float = Field(
        default=10.0, gt=0, description="Timeout in seconds for outbound requests."
    )
    max_retries: int = Field(
        default=3,
        ge=1,
        description="Number of attempts for requests that fail at the transport level.",
    )
    retry_backoff: float = Field(
        default=0.5,
        ge=0,
        description="Multiplier (seconds) for the exponential backoff between attempts.",
    )


class TradeFlowSettings(BaseModel):
    """Defines the configuration for the trade flow caching service."""

    default_reporter: str = Field(
        default="WLD",
        description="Reporter country code used for trade flow lookups.",
    )
    cache_ttl_seconds: float = Field(
        default=3600.0,
        gt=0,
        description="Maximum age of a cached trade flow entry before it is refetched.",
    )


class ApiSettings(BaseModel):
    """Defines the HTTP server configuration."""

    host: str = Field(default="127.0.0.1", description="Bind address for the server.")
    port: int = Field(default=8000, description="Port number for the server.")
    prefix: str = Field(
        default="/api/market-intelligence",
        description="Path prefix under which all routes are mounted.",
    )


class LoggingSettings(BaseModel):
    """Defines the logging configuration."""

    level: str = Field(
        default="INFO",
        description="The logging level, e.g., DEBUG, INFO, WARNING, ERROR.",
    )


class AppSettings(BaseSettings):
    """
    The main application settings model.
    """

    model_config = SettingsConfigDict(
        env_prefix="PY_MARKET_INTEL_",
        env_nested_delimiter="__",
        env_file=".env",
        env_file_encoding="utf-8",
    )
    wits: WitsSettings = Field(default_factory=WitsSettings)
    trade_flow: TradeFlowSettings = Field(default_factory=TradeFlowSettings)
    api: ApiSettings = Field(default_factory=ApiSettings)
    log: LoggingSettings = Field(default_factory=LoggingSettings)
