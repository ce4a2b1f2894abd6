"""
Exchange State Fetchers
=======================

Build the exchange/market snapshot and the market/price-feed maps the
margin engine needs.
"""

import logging
from typing import Dict, List

from ..errors import MissingExchangeError
from ..models import AccountRecord, ExchangeAndMarkets, MarketMapAndPriceFeedMap
from .gateway import ExchangeGateway

logger = logging.getLogger(__name__)


async def get_exchange_and_markets(
    gateway: ExchangeGateway,
    exchange_address: str,
) -> ExchangeAndMarkets:
    """
    Load the exchange account and every market it lists.

    Market id 0 is an unused slot and is skipped. Markets that fail to load
    are dropped.

    Raises:
        MissingExchangeError: If the exchange account does not exist
    """
    exchange = await gateway.get_exchange(exchange_address)
    if exchange is None:
        raise MissingExchangeError(f"Invalid exchange address {exchange_address}")

    market_addresses = [
        gateway.market_address(exchange_address, market_id)
        for market_id in exchange.market_ids
        if market_id != 0
    ]
    fetched = await gateway.get_markets(market_addresses)
    markets = [m for m in fetched if m is not None]

    if len(markets) < len(market_addresses):
        logger.warning(f"{len(market_addresses) - len(markets)} markets could not be loaded")
    logger.debug(f"Loaded exchange {exchange_address} with {len(markets)} markets")

    return ExchangeAndMarkets(exchange=exchange, markets=markets)


async def get_market_map_and_price_feed_map(
    gateway: ExchangeGateway,
    all_markets: List[AccountRecord],
) -> MarketMapAndPriceFeedMap:
    """
    Index markets by id and fetch the price feed of each market.

    Price feeds that are missing on chain are left out of the map.
    """
    markets: Dict[int, AccountRecord] = {}
    for market in all_markets:
        markets[market.account.id] = market

    price_feed_addresses = [market.account.price_feed for market in all_markets]
    fetched = await gateway.get_price_feeds(price_feed_addresses)

    price_feeds = {}
    for address, price_feed in zip(price_feed_addresses, fetched):
        if price_feed is None:
            continue
        price_feeds[address] = price_feed

    return MarketMapAndPriceFeedMap(markets=markets, price_feeds=price_feeds)
