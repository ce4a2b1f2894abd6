"""
Account Models
==============

Dataclasses for on-chain exchange, market and margin account snapshots.

The decoded account payloads (exchange, market, margin account, price feed)
are produced by the exchange SDK behind the gateway; these wrappers only
carry them around together with their addresses.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Dict, Generic, List, TypeVar

T = TypeVar("T")


@dataclass(frozen=True)
class AccountRecord(Generic[T]):
    """A decoded account together with the address it was loaded from."""
    address: str
    account: T


@dataclass
class ExchangeAndMarkets:
    """Exchange configuration snapshot and every market it lists."""
    exchange: Any
    markets: List[AccountRecord] = field(default_factory=list)


@dataclass
class MarketMapAndPriceFeedMap:
    """
    Market views keyed by market id and price feeds keyed by feed address.

    Both maps are derived from ExchangeAndMarkets.markets and are refreshed
    on the fast interval.
    """
    markets: Dict[int, Any] = field(default_factory=dict)
    price_feeds: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class LiquidateAccounts:
    """Account roles for a liquidation instruction."""
    margin_account: str
    exchange: str
    owner: str
    liquidator: str
    liquidator_margin_account: str


@dataclass(frozen=True)
class LiquidationRecord:
    """A confirmed liquidation. Records are append-only."""
    address: str
    profit: Decimal
    liquidated_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    signature: str = ""
