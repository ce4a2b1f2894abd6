"""
Liquidator Service Orchestrator
===============================

Main loop of the liquidator.

Architecture:
- Four independently-cadenced caches, refreshed in dependency order:
  - Exchange + markets: slow (minutes)
  - Market map + price feeds: fast (every tick interval)
  - At-risk accounts: fast, re-fetches only the flagged addresses
  - All margin accounts: slow full rescan; every completed rescan is
    classified and reseeds the at-risk set
- Sequential liquidation pass over the at-risk set against current prices
- Tick pacing at the fast interval, no catch-up
"""

import asyncio
import logging
import time
from typing import Any, Awaitable, Callable, Dict, List, Optional

from ..alerts import TelegramAlerts
from ..api.fetchers import get_exchange_and_markets, get_market_map_and_price_feed_map
from ..api.gateway import ExchangeGateway, Margins, Signer
from ..config import (
    Config,
    DEFAULT_EXCHANGE_UPDATE_INTERVAL_MS,
    DEFAULT_FULL_ACCOUNT_INTERVAL_MS,
    DEFAULT_MARGIN_PERCENTAGE_WATCH,
    DEFAULT_PRICE_FEED_INTERVAL_MS,
)
from ..core.executor import liquidate
from ..core.risk import get_account_margins, get_at_risk_margin_accounts
from ..errors import MissingExchangeError
from ..models import (
    AccountRecord,
    ExchangeAndMarkets,
    LiquidateAccounts,
    MarketMapAndPriceFeedMap,
)
from .cache import RetryPolicy, TimedRefresh
from .stats import BotStats, print_progress

logger = logging.getLogger(__name__)


class LiquidatorService:
    """
    Continuous liquidation service for one exchange.

    Owns its caches and stats; several instances can run side by side.
    """

    def __init__(
        self,
        gateway: ExchangeGateway,
        exchange_address: str,
        liquidator_signer: Signer,
        liquidator_margin_account: str,
        price_feed_interval_ms: int = DEFAULT_PRICE_FEED_INTERVAL_MS,
        full_account_interval_ms: int = DEFAULT_FULL_ACCOUNT_INTERVAL_MS,
        exchange_update_interval_ms: int = DEFAULT_EXCHANGE_UPDATE_INTERVAL_MS,
        margin_percentage_watch: int = DEFAULT_MARGIN_PERCENTAGE_WATCH,
        enable_logging: bool = False,
        dry_run: bool = False,
        alerts: Optional[TelegramAlerts] = None,
        retry: Optional[RetryPolicy] = None,
        liquidate_params: Optional[Dict[str, Any]] = None,
        clock: Callable[[], float] = time.monotonic,
        wall_clock: Callable[[], float] = time.time,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        """
        Initialize the liquidator service.

        Args:
            gateway: Exchange gateway (account fetch, margin engine, transactions)
            exchange_address: Exchange to monitor
            liquidator_signer: Signer paying for and signing liquidations
            liquidator_margin_account: Liquidator's own margin account
            price_feed_interval_ms: Fast refresh interval and tick cadence
            full_account_interval_ms: Full account rescan interval
            exchange_update_interval_ms: Exchange/market reload interval
            margin_percentage_watch: Watch threshold in percentage points
            enable_logging: Print the status report every tick
            dry_run: Log eligible accounts instead of submitting liquidations
            alerts: Optional Telegram alerts
            retry: Retry policy shared by all caches (default: no retry)
            liquidate_params: Extra parameters passed to every liquidation
            clock: Monotonic clock (seconds) for cadence
            wall_clock: Unix time source for margin evaluation
            sleep: Coroutine used for tick pacing
        """
        self.gateway = gateway
        self.exchange_address = exchange_address
        self.liquidator_signer = liquidator_signer
        self.liquidator_margin_account = liquidator_margin_account
        self.price_feed_interval_ms = price_feed_interval_ms
        self.margin_percentage_watch = margin_percentage_watch
        self.enable_logging = enable_logging
        self.dry_run = dry_run
        self.alerts = alerts
        self.liquidate_params = liquidate_params

        self._clock = clock
        self._wall_clock = wall_clock
        self._sleep = sleep

        self.exchange_and_markets: TimedRefresh[ExchangeAndMarkets] = TimedRefresh(
            exchange_update_interval_ms / 1000,
            self._update_exchange_and_markets,
            name="exchange",
            clock=clock,
            retry=retry,
        )
        self.market_and_price_feed_maps: TimedRefresh[MarketMapAndPriceFeedMap] = TimedRefresh(
            price_feed_interval_ms / 1000,
            self._update_price_and_market_maps,
            name="price_feeds",
            clock=clock,
            retry=retry,
        )
        self.accounts_in_danger: TimedRefresh[List[AccountRecord]] = TimedRefresh(
            price_feed_interval_ms / 1000,
            self._update_accounts_in_danger,
            name="at_risk",
            clock=clock,
            retry=retry,
        )
        self.all_margin_accounts: TimedRefresh[List[AccountRecord]] = TimedRefresh(
            full_account_interval_ms / 1000,
            self._update_all_margin_accounts,
            name="all_accounts",
            clock=clock,
            retry=retry,
        )

        self.stats = BotStats(price_feed_interval_ms, clock=clock)
        self.running = False

    @classmethod
    def from_config(
        cls,
        config: Config,
        gateway: ExchangeGateway,
        dry_run: bool = False,
        alerts: Optional[TelegramAlerts] = None,
    ) -> "LiquidatorService":
        """Build a service from loaded configuration."""
        exchange_address = config.exchange_address or gateway.exchange_address(config.exchange_id)
        retry = RetryPolicy(
            max_attempts=config.refresh_max_attempts,
            base_delay=config.refresh_backoff_base_sec,
            max_delay=config.refresh_backoff_cap_sec,
        )
        return cls(
            gateway=gateway,
            exchange_address=exchange_address,
            liquidator_signer=gateway.load_signer(config.private_key),
            liquidator_margin_account=config.liquidator_margin_account,
            price_feed_interval_ms=config.price_feed_interval_ms,
            full_account_interval_ms=config.full_account_interval_ms,
            exchange_update_interval_ms=config.exchange_update_interval_ms,
            margin_percentage_watch=config.margin_percentage_watch,
            enable_logging=config.enable_logging,
            dry_run=dry_run,
            alerts=alerts,
            retry=retry,
        )

    # -------------------------------------------------------------------------
    # Refresh functions
    # -------------------------------------------------------------------------

    async def _update_exchange_and_markets(self, _previous) -> ExchangeAndMarkets:
        return await get_exchange_and_markets(self.gateway, self.exchange_address)

    async def _update_price_and_market_maps(self, _previous) -> MarketMapAndPriceFeedMap:
        current_exchange = self.exchange_and_markets.current_value
        if current_exchange is None:
            raise MissingExchangeError("Exchange not found")
        return await get_market_map_and_price_feed_map(self.gateway, current_exchange.markets)

    async def _update_accounts_in_danger(
        self,
        previous_accounts: Optional[List[AccountRecord]],
    ) -> List[AccountRecord]:
        if not previous_accounts:
            return []
        fetched = await self.gateway.get_margin_accounts([a.address for a in previous_accounts])
        return [a for a in fetched if a is not None]

    async def _update_all_margin_accounts(self, _previous) -> List[AccountRecord]:
        fetched = await self.gateway.get_all_margin_accounts()
        accounts = [a for a in fetched if a is not None]
        logger.info(f"Full rescan loaded {len(accounts)} margin accounts")
        return accounts

    # -------------------------------------------------------------------------
    # Tick
    # -------------------------------------------------------------------------

    async def refresh(self):
        """
        Refresh stale caches in dependency order.

        A completed full rescan reseeds the at-risk set with a fresh
        classification of the whole population.
        """
        if self.exchange_and_markets.needs_update:
            await self.exchange_and_markets.update()

        if self.market_and_price_feed_maps.needs_update and self.exchange_and_markets.current_value is not None:
            await self.market_and_price_feed_maps.update()

        if self.accounts_in_danger.needs_update:
            await self.accounts_in_danger.update()

        if self.all_margin_accounts.needs_update:
            all_accounts = await self.all_margin_accounts.update()
            exchange_state = self.exchange_and_markets.current_value
            maps = self.market_and_price_feed_maps.current_value

            if exchange_state is not None and maps is not None:
                at_risk = get_at_risk_margin_accounts(
                    all_accounts,
                    exchange_state.exchange,
                    maps.markets,
                    maps.price_feeds,
                    self.margin_percentage_watch,
                    self.gateway,
                    now=self._wall_clock(),
                )
                self.accounts_in_danger.reseed(at_risk)
                logger.info(f"Reseeded at-risk set: {len(at_risk)} of {len(all_accounts)} accounts")

    async def tick(self) -> float:
        """
        Run one pass: refresh, liquidate, report, then sleep to hold cadence.

        Returns:
            Seconds slept for pacing
        """
        start = self._clock()

        await self.refresh()

        at_risk = self.accounts_in_danger.current_value
        exchange_state = self.exchange_and_markets.current_value
        maps = self.market_and_price_feed_maps.current_value

        if at_risk is not None and exchange_state is not None and maps is not None:
            await self.check_and_liquidate_at_risk_accounts(
                at_risk,
                exchange_state.exchange,
                maps.markets,
                maps.price_feeds,
            )
            self._update_stats(exchange_state, maps)

        elapsed = self._clock() - start
        delay = max(0.0, self.price_feed_interval_ms / 1000 - elapsed)
        await self._sleep(delay)
        return delay

    async def check_and_liquidate_at_risk_accounts(
        self,
        accounts: List[AccountRecord],
        exchange: Any,
        markets: Dict[int, AccountRecord],
        price_feeds: Dict[str, Any],
    ) -> int:
        """
        Re-validate each at-risk account on current data and liquidate it if eligible.

        Accounts are processed one at a time; a failure on one account is
        logged and the pass continues with the next.

        Returns:
            Number of confirmed liquidations
        """
        liquidated = 0
        now = self._wall_clock()

        for record in accounts:
            try:
                margins = get_account_margins(self.gateway, record, exchange, markets, price_feeds, now)
                if not (record.account.in_liquidation() or margins.can_liquidate()):
                    continue

                if self.dry_run:
                    logger.info(
                        f"[DRY RUN] Would liquidate {record.address} "
                        f"(fee margin {margins.required_liquidation_fee_margin})"
                    )
                    continue

                liquidate_accounts = LiquidateAccounts(
                    margin_account=record.address,
                    exchange=record.account.exchange,
                    owner=record.account.owner,
                    liquidator=self.liquidator_signer.public_key,
                    liquidator_margin_account=self.liquidator_margin_account,
                )
                signature = await liquidate(
                    self.gateway,
                    record.account,
                    liquidate_accounts,
                    markets,
                    [self.liquidator_signer],
                    self.liquidator_signer.public_key,
                    self.liquidate_params,
                )
            except Exception as e:
                logger.warning(f"Liquidation attempt for {record.address} failed: {e}")
                self.stats.add_failed_liquidation(record.address, e)
                if self.alerts:
                    self.alerts.send_liquidation_failed_alert(record.address, f"{type(e).__name__}: {e}")
                continue

            profit = margins.required_liquidation_fee_margin
            self.stats.add_liquidated_account(record.address, profit, signature)
            liquidated += 1
            if self.alerts:
                self.alerts.send_liquidation_alert(record.address, profit, signature)

        return liquidated

    def _update_stats(self, exchange_state: ExchangeAndMarkets, maps: MarketMapAndPriceFeedMap):
        at_risk_margins: List[Margins] = []
        now = self._wall_clock()
        for record in self.accounts_in_danger.current_value or []:
            try:
                at_risk_margins.append(
                    get_account_margins(
                        self.gateway, record, exchange_state.exchange, maps.markets, maps.price_feeds, now
                    )
                )
            except Exception as e:
                logger.debug(f"Skipping stats for {record.address}: {e}")

        self.stats.update(
            self.price_feed_interval_ms,
            at_risk_margins,
            self.all_margin_accounts.is_updating,
        )
        if self.enable_logging:
            print_progress(str(self.stats))

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    async def run(self):
        """
        Main entry point - tick until stopped.

        Refresh errors are not retried beyond the cache retry policy; they
        end the loop and propagate so the process can be restarted.
        """
        self.running = True
        logger.info("=" * 60)
        logger.info("LIQUIDATOR SERVICE STARTING")
        logger.info("=" * 60)
        logger.info(f"Exchange: {self.exchange_address}")
        logger.info(f"Liquidator margin account: {self.liquidator_margin_account}")
        logger.info(f"Price check interval: {self.price_feed_interval_ms}ms")
        logger.info(f"Full rescan interval: {self.all_margin_accounts.interval:.0f}s")
        logger.info(f"Margin percentage watch: {self.margin_percentage_watch}%")
        logger.info(f"Dry run: {self.dry_run}")

        if self.alerts:
            self.alerts.send_service_status("started", f"Exchange: {self.exchange_address}")

        try:
            while self.running:
                await self.tick()
        except Exception as e:
            error_msg = f"{type(e).__name__}: {e}"
            logger.error(f"Service error: {error_msg}")
            if self.alerts:
                self.alerts.send_service_status("error", error_msg)
            raise
        finally:
            self.running = False
            logger.info("LIQUIDATOR SERVICE STOPPED")
            logger.info(str(self.stats))
            if self.alerts:
                self.alerts.send_service_status("stopped", str(self.stats))

    def stop(self):
        """Stop after the current tick."""
        self.running = False

    def _handle_shutdown(self, signum, frame):
        """Handle shutdown signals gracefully."""
        logger.info("Shutdown signal received, stopping liquidator...")
        self.stop()
