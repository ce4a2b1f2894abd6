"""
API Package
===========

Interfaces to the exchange SDK and the helpers that load exchange state.

Components:
- gateway.py: ExchangeGateway protocols and the factory loader
- fetchers.py: exchange/market snapshot and market/price-feed maps
"""

from .gateway import (
    AccountFetcher,
    ExchangeGateway,
    MarginEngine,
    Margins,
    Signer,
    TransactionSender,
    load_gateway,
)
from .fetchers import get_exchange_and_markets, get_market_map_and_price_feed_map

__all__ = [
    "AccountFetcher",
    "ExchangeGateway",
    "MarginEngine",
    "Margins",
    "Signer",
    "TransactionSender",
    "load_gateway",
    "get_exchange_and_markets",
    "get_market_map_and_price_feed_map",
]
