"""Tests for exchange/market snapshot and market/price-feed map loading."""

import pytest

from liquidator.api.fetchers import get_exchange_and_markets, get_market_map_and_price_feed_map
from liquidator.errors import MissingExchangeError
from tests.helpers import FakeGateway, market


class TestExchangeAndMarkets:

    @pytest.mark.asyncio
    async def test_skips_market_id_zero(self):
        gateway = FakeGateway(market_ids=[0, 1, 2])
        result = await get_exchange_and_markets(gateway, "exchange-0")

        assert [m.account.id for m in result.markets] == [1, 2]
        assert ("get_markets", ["market-1", "market-2"]) in gateway.calls

    @pytest.mark.asyncio
    async def test_drops_markets_that_fail_to_load(self):
        gateway = FakeGateway(market_ids=[0, 1, 2, 3], missing_markets=[2])
        result = await get_exchange_and_markets(gateway, "exchange-0")
        assert [m.address for m in result.markets] == ["market-1", "market-3"]

    @pytest.mark.asyncio
    async def test_missing_exchange_is_fatal(self):
        gateway = FakeGateway()
        gateway.exchange = None
        with pytest.raises(MissingExchangeError):
            await get_exchange_and_markets(gateway, "nowhere")

    @pytest.mark.asyncio
    async def test_exchange_with_no_markets(self):
        gateway = FakeGateway(market_ids=[0])
        result = await get_exchange_and_markets(gateway, "exchange-0")
        assert result.markets == []
        assert result.exchange is gateway.exchange


class TestMarketMapAndPriceFeedMap:

    @pytest.mark.asyncio
    async def test_indexes_markets_by_id(self):
        gateway = FakeGateway(market_ids=[1, 2])
        result = await get_market_map_and_price_feed_map(gateway, [market(1), market(2)])

        assert set(result.markets) == {1, 2}
        assert result.markets[2].address == "market-2"
        assert set(result.price_feeds) == {"feed-1", "feed-2"}

    @pytest.mark.asyncio
    async def test_drops_missing_price_feeds(self):
        gateway = FakeGateway(market_ids=[1, 2], missing_feeds=[1])
        result = await get_market_map_and_price_feed_map(gateway, [market(1), market(2)])

        assert set(result.markets) == {1, 2}
        assert list(result.price_feeds) == ["feed-2"]
