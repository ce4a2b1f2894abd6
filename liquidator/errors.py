"""
Liquidator Errors
=================

Exception hierarchy shared across the liquidator package.
"""


class LiquidatorError(Exception):
    """Base class for all liquidator errors."""


class ConfigError(LiquidatorError):
    """Missing or invalid configuration. Fatal at startup."""


class MissingExchangeError(LiquidatorError):
    """Exchange account could not be found or has not been loaded yet."""


class MissingMarketError(LiquidatorError):
    """A position references a market that is not in the market map."""

    def __init__(self, market_id: int):
        super().__init__(f"Market is missing from markets map (id={market_id})")
        self.market_id = market_id


class LiquidationError(LiquidatorError):
    """A liquidation transaction was rejected or could not be built."""

    def __init__(self, address: str, reason: str):
        super().__init__(f"Liquidation of {address} failed: {reason}")
        self.address = address
        self.reason = reason
