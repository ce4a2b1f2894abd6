# Core business logic
from .risk import get_account_margins, get_at_risk_margin_accounts, is_at_risk, margin_usage
from .executor import get_markets_and_price_feeds, liquidate

__all__ = [
    "get_account_margins",
    "get_at_risk_margin_accounts",
    "is_at_risk",
    "margin_usage",
    "get_markets_and_price_feeds",
    "liquidate",
]
