"""
Shared Data Models
==================

This package contains dataclasses used across the project.
"""

from .accounts import (
    AccountRecord,
    ExchangeAndMarkets,
    MarketMapAndPriceFeedMap,
    LiquidateAccounts,
    LiquidationRecord,
)

__all__ = [
    "AccountRecord",
    "ExchangeAndMarkets",
    "MarketMapAndPriceFeedMap",
    "LiquidateAccounts",
    "LiquidationRecord",
]
