"""
Tests for the liquidation executor.

Tests:
- Market and price feed arrays follow position order
- Missing market aborts before anything is sent
- Rejected transaction surfaces as LiquidationError
"""

import pytest

from liquidator.core.executor import get_markets_and_price_feeds, liquidate
from liquidator.errors import LiquidationError, MissingMarketError
from liquidator.models import LiquidateAccounts
from tests.helpers import FakeGateway, StubSigner, account, market


@pytest.fixture
def markets():
    return {m: market(m) for m in (1, 2, 3)}


def roles(address="victim"):
    return LiquidateAccounts(
        margin_account=address,
        exchange="exchange-0",
        owner="owner",
        liquidator="signer-key",
        liquidator_margin_account="liq-margin",
    )


class TestMarketsAndPriceFeeds:

    def test_follow_position_order(self, markets):
        record = account("victim", 120, 100, market_ids=[3, 1, 2])
        market_addresses, feeds = get_markets_and_price_feeds(record.account, markets)

        assert market_addresses == ["market-3", "market-1", "market-2"]
        assert feeds == ["feed-3", "feed-1", "feed-2"]

    def test_no_positions(self, markets):
        record = account("victim", 120, 100, market_ids=[])
        assert get_markets_and_price_feeds(record.account, markets) == ([], [])

    def test_missing_market_raises(self, markets):
        record = account("victim", 120, 100, market_ids=[1, 9])
        with pytest.raises(MissingMarketError) as exc_info:
            get_markets_and_price_feeds(record.account, markets)
        assert exc_info.value.market_id == 9
        assert "missing from markets map" in str(exc_info.value)


class TestLiquidate:

    @pytest.mark.asyncio
    async def test_builds_signs_and_sends(self, markets):
        gateway = FakeGateway()
        signer = StubSigner("signer-key")
        record = account("victim", 120, 100, market_ids=[2, 1])

        signature = await liquidate(
            gateway, record.account, roles(), markets, [signer], signer.public_key, {"max_fee": 5}
        )

        assert signature == "sig-victim"
        tx = gateway.sent[0]
        assert tx["markets"] == ["market-2", "market-1"]
        assert tx["price_feeds"] == ["feed-2", "feed-1"]
        assert tx["fee_payer"] == "signer-key"
        assert tx["recent_blockhash"] == "blockhash-0"
        assert tx["params"] == {"max_fee": 5}
        assert gateway.call_names() == ["get_latest_blockhash", "send_and_confirm"]

    @pytest.mark.asyncio
    async def test_missing_market_sends_nothing(self, markets):
        gateway = FakeGateway()
        record = account("victim", 120, 100, market_ids=[7])

        with pytest.raises(MissingMarketError):
            await liquidate(gateway, record.account, roles(), markets, [], "signer-key")

        assert gateway.sent == []
        assert "send_and_confirm" not in gateway.call_names()

    @pytest.mark.asyncio
    async def test_rejection_wrapped_in_liquidation_error(self, markets):
        gateway = FakeGateway()
        gateway.send_errors["victim"] = RuntimeError("account not liquidatable")
        record = account("victim", 120, 100)

        with pytest.raises(LiquidationError) as exc_info:
            await liquidate(gateway, record.account, roles(), markets, [], "signer-key")

        assert exc_info.value.address == "victim"
        assert "account not liquidatable" in exc_info.value.reason
        assert isinstance(exc_info.value.__cause__, RuntimeError)
