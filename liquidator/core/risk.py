"""
Risk Classifier

Flags margin accounts that are liquidatable now or within the watch
threshold of the liquidation boundary.
"""

import logging
import time
from decimal import Decimal
from typing import Any, Dict, List, Optional

from ..api.gateway import MarginEngine, Margins
from ..models import AccountRecord

logger = logging.getLogger(__name__)

ONE = Decimal(1)
HUNDRED = Decimal(100)


def get_account_margins(
    engine: MarginEngine,
    account: AccountRecord,
    exchange: Any,
    markets: Dict[int, AccountRecord],
    price_feeds: Dict[str, Any],
    now: Optional[float] = None,
) -> Margins:
    """
    Evaluate an account's margins at the current wall-clock second.

    Args:
        engine: Margin engine
        account: Margin account record
        exchange: Exchange snapshot
        markets: Market map keyed by market id
        price_feeds: Price feeds keyed by feed address
        now: Unix time to evaluate at (defaults to time.time())

    Returns:
        Margins for the account
    """
    timestamp = int(now if now is not None else time.time())
    return engine.get_account_margins(account.account, exchange, markets, price_feeds, timestamp)


def margin_usage(margins: Margins) -> Optional[Decimal]:
    """Required / available margin, or None if either side is zero."""
    required = margins.total_required_margin()
    available = margins.total_available_margin()
    if required == 0 or available == 0:
        return None
    return required / available


def is_at_risk(margins: Margins, margin_percentage_watch: int) -> bool:
    """
    Check if margins are liquidatable or within the watch threshold.

    An account is at risk when the engine says it can be liquidated, or when
    required / available + watch / 100 > 1. The ratio check is skipped when
    either margin is zero.
    """
    if margins.can_liquidate():
        return True

    usage = margin_usage(margins)
    if usage is None:
        return False
    return usage + Decimal(margin_percentage_watch) / HUNDRED > ONE


def get_at_risk_margin_accounts(
    accounts: List[AccountRecord],
    exchange: Any,
    markets: Dict[int, AccountRecord],
    price_feeds: Dict[str, Any],
    margin_percentage_watch: int,
    engine: MarginEngine,
    now: Optional[float] = None,
) -> List[AccountRecord]:
    """
    Select the accounts that need fast re-checking.

    Args:
        accounts: Full margin account population
        exchange: Exchange snapshot
        markets: Market map keyed by market id
        price_feeds: Price feeds keyed by feed address
        margin_percentage_watch: Watch threshold in percentage points
        engine: Margin engine
        now: Unix time to evaluate at (defaults to time.time())

    Returns:
        At-risk accounts, in input order
    """
    if now is None:
        now = time.time()

    at_risk = []
    for account in accounts:
        margins = get_account_margins(engine, account, exchange, markets, price_feeds, now)
        if is_at_risk(margins, margin_percentage_watch):
            at_risk.append(account)

    logger.debug(f"Classified {len(accounts)} accounts, {len(at_risk)} at risk")
    return at_risk
