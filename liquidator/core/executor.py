"""
Liquidation Executor

Builds, signs and submits one liquidation transaction for one account.
"""

import logging
from typing import Any, Dict, List, Optional, Tuple

from ..api.gateway import ExchangeGateway, MarginAccount, Signer
from ..errors import LiquidationError, MissingMarketError
from ..models import AccountRecord, LiquidateAccounts

logger = logging.getLogger(__name__)


def get_markets_and_price_feeds(
    margin_account: MarginAccount,
    markets: Dict[int, AccountRecord],
) -> Tuple[List[str], List[str]]:
    """
    Collect market and price feed addresses for an account's positions.

    Both lists follow position order; the liquidation instruction pairs them
    with positions by index.

    Raises:
        MissingMarketError: If a position's market is not in the map
    """
    market_addresses: List[str] = []
    price_feed_addresses: List[str] = []
    for position in margin_account.positions():
        market = markets.get(position.market_id)
        if market is None or not market.address:
            raise MissingMarketError(position.market_id)
        market_addresses.append(market.address)
        price_feed_addresses.append(market.account.price_feed)
    return market_addresses, price_feed_addresses


async def liquidate(
    gateway: ExchangeGateway,
    margin_account: MarginAccount,
    accounts: LiquidateAccounts,
    markets: Dict[int, AccountRecord],
    signers: List[Signer],
    fee_payer: str,
    params: Optional[Dict[str, Any]] = None,
) -> str:
    """
    Submit a liquidation for one margin account and wait for confirmation.

    Args:
        gateway: Exchange gateway
        margin_account: Decoded margin account being liquidated
        accounts: Account roles for the instruction
        markets: Market map keyed by market id
        signers: Transaction signers
        fee_payer: Fee payer address
        params: Optional extra liquidation parameters

    Returns:
        Confirmed transaction signature

    Raises:
        MissingMarketError: If a position's market is not loaded
        LiquidationError: If the transaction is rejected or not confirmed
    """
    market_addresses, price_feed_addresses = get_markets_and_price_feeds(margin_account, markets)
    recent_blockhash = await gateway.get_latest_blockhash()
    tx = gateway.build_liquidate_transaction(
        accounts,
        market_addresses,
        price_feed_addresses,
        fee_payer=fee_payer,
        signers=signers,
        recent_blockhash=recent_blockhash,
        params=params,
    )
    try:
        signature = await gateway.send_and_confirm(tx, signers)
    except Exception as e:
        raise LiquidationError(accounts.margin_account, f"{type(e).__name__}: {e}") from e
    logger.info(f"Liquidated {accounts.margin_account} ({len(market_addresses)} positions): {signature}")
    return signature
