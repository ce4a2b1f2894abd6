"""
Bot Stats
=========

Cumulative counters for the liquidator and the periodic status report.
"""

import sys
import time
from decimal import Decimal
from typing import Callable, List, Optional

from ..api.gateway import Margins
from ..core.risk import margin_usage
from ..models import LiquidationRecord


class BotStats:
    """
    Liquidations performed, profit, failures and the latest at-risk snapshot.

    Not thread safe; owned by a single LiquidatorService.
    """

    def __init__(
        self,
        price_check_interval_ms: int,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._clock = clock
        self.start_time = clock()
        self.price_check_interval_ms = price_check_interval_ms

        self.liquidations: List[LiquidationRecord] = []
        self.failed_liquidations = 0
        self.last_failure: Optional[str] = None
        self.at_risk_margins: Optional[List[Margins]] = None
        self.is_background_updating = False

    def add_liquidated_account(self, address: str, profit: Decimal, signature: str = "") -> LiquidationRecord:
        record = LiquidationRecord(address=address, profit=profit, signature=signature)
        self.liquidations.append(record)
        return record

    def add_failed_liquidation(self, address: str, error: BaseException):
        self.failed_liquidations += 1
        self.last_failure = f"{address}: {type(error).__name__}"

    def update(
        self,
        price_check_interval_ms: int,
        at_risk_margins: Optional[List[Margins]],
        is_background_updating: bool,
    ):
        self.price_check_interval_ms = price_check_interval_ms
        self.at_risk_margins = at_risk_margins
        self.is_background_updating = is_background_updating

    @property
    def accounts_liquidated(self) -> int:
        return len(self.liquidations)

    @property
    def total_profit(self) -> Decimal:
        return sum((r.profit for r in self.liquidations), Decimal(0))

    @property
    def last_liquidation(self) -> Optional[LiquidationRecord]:
        return self.liquidations[-1] if self.liquidations else None

    @property
    def uptime_seconds(self) -> float:
        return self._clock() - self.start_time

    def _usages(self) -> List[Decimal]:
        if not self.at_risk_margins:
            return []
        usages = (margin_usage(m) for m in self.at_risk_margins)
        return [u for u in usages if u is not None]

    @property
    def max_margin_usage(self) -> Optional[Decimal]:
        """Highest required / available ratio among at-risk accounts."""
        usages = self._usages()
        return max(usages) if usages else None

    @property
    def average_margin_usage(self) -> Optional[Decimal]:
        usages = self._usages()
        if not usages:
            return None
        return sum(usages, Decimal(0)) / len(usages)

    def __str__(self) -> str:
        def pct(value: Optional[Decimal]) -> str:
            return "n/a" if value is None else f"{value * 100:.2f}%"

        at_risk_count = "n/a" if self.at_risk_margins is None else str(len(self.at_risk_margins))

        lines = ["----------------BOT STATS----------------"]
        lines.append(f"Accounts Liquidated: {self.accounts_liquidated}")
        lines.append(f"Total Profit: {self.total_profit}")
        if self.last_liquidation is not None:
            lines.append(f"Last Liquidation: {self.last_liquidation.liquidated_at.isoformat()}")
        lines.append(f"Failed Liquidations: {self.failed_liquidations}")
        lines.append(f"Total Time Running: {self.uptime_seconds:.1f} seconds")
        lines.append(f"Current Price Check Interval: {self.price_check_interval_ms}ms")
        lines.append(f"Closest Percentage Margin Used Account: {pct(self.max_margin_usage)}")
        lines.append(f"Average Percentage Margin Used (at risk only): {pct(self.average_margin_usage)}")
        lines.append(f"Accounts Over Margin Percentage: {at_risk_count}")
        lines.append(f"Is Background Updating Margin Accounts: {self.is_background_updating}")
        lines.append("-----------------------------------------")
        return "\n".join(lines) + "\n"


def print_progress(text: str, stream=None):
    """Redraw the status block in place on an interactive terminal."""
    stream = stream or sys.stdout
    if stream.isatty():
        stream.write("\x1b[2J\x1b[H")
    stream.write(text)
    stream.flush()
