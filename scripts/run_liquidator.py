#!/usr/bin/env python3
"""
Margin Account Liquidator - CLI Entry Point
===========================================

Runs the continuous liquidation loop for one exchange.

Architecture:
    - Exchange + markets reloaded every EXCHANGE_UPDATE_INTERVAL ms
    - Price feeds and at-risk accounts re-checked every PRICE_FEED_INTERVAL ms
    - Full margin account rescan every FULL_ACCOUNT_INTERVAL ms, which
      reseeds the at-risk set
    - Eligible accounts are liquidated one transaction at a time

Usage:
    # Start liquidator (settings from environment / .env)
    python scripts/run_liquidator.py

    # Dry run (log eligible accounts, submit nothing)
    python scripts/run_liquidator.py --dry-run
"""

import argparse
import asyncio
import logging
import signal
import sys
from datetime import datetime
from pathlib import Path

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from liquidator.alerts import TelegramAlerts
from liquidator.api import load_gateway
from liquidator.config import load_config
from liquidator.errors import ConfigError
from liquidator.monitor import LiquidatorService


def setup_logging(log_level: str, log_file: str):
    """Configure logging for the liquidator."""
    log_path = Path(log_file)
    if not log_path.is_absolute():
        log_path = project_root / log_path
    log_path.parent.mkdir(parents=True, exist_ok=True)

    # Date-stamped log file (e.g., logs/liquidator_2026-01-18.log)
    date_str = datetime.now().strftime("%Y-%m-%d")
    dated_log_file = log_path.parent / f"{log_path.stem}_{date_str}{log_path.suffix}"

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.setLevel(getattr(logging, log_level.upper()))

    formatter = logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s')

    file_handler = logging.FileHandler(dated_log_file)
    file_handler.setFormatter(formatter)
    root_logger.addHandler(file_handler)

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    # Reduce noise from requests library
    logging.getLogger("urllib3").setLevel(logging.WARNING)
    logging.getLogger("requests").setLevel(logging.WARNING)

    root_logger.info(f"Logging to: {dated_log_file}")


def main():
    parser = argparse.ArgumentParser(
        description='Margin Account Liquidator',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Required environment:
  RPC_URL, PRIVATE_KEY, LIQUIDATOR_MARGIN_ACCOUNT, GATEWAY_FACTORY

Examples:
  python scripts/run_liquidator.py               # Start liquidator
  python scripts/run_liquidator.py --dry-run     # Log only, no transactions
  python scripts/run_liquidator.py --watch 5     # Flag accounts within 5%
        """
    )

    parser.add_argument(
        '--dry-run',
        action='store_true',
        help='Log eligible accounts instead of submitting liquidations (console alerts only, no Telegram)'
    )
    parser.add_argument(
        '--interval',
        type=int,
        help='Price feed / at-risk re-check interval in ms (overrides PRICE_FEED_INTERVAL)'
    )
    parser.add_argument(
        '--full-interval',
        type=int,
        help='Full account rescan interval in ms (overrides FULL_ACCOUNT_INTERVAL)'
    )
    parser.add_argument(
        '--watch',
        type=int,
        help='Margin percentage watch threshold (overrides MARGIN_PERCENTAGE_WATCH)'
    )
    parser.add_argument(
        '--log-level',
        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'],
        help='Log level (overrides LOG_LEVEL)'
    )
    parser.add_argument(
        '--no-telegram',
        action='store_true',
        help='Disable Telegram alerts even if configured'
    )

    args = parser.parse_args()

    try:
        config = load_config()
    except ConfigError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        sys.exit(1)

    if args.interval is not None:
        config.price_feed_interval_ms = args.interval
    if args.full_interval is not None:
        config.full_account_interval_ms = args.full_interval
    if args.watch is not None:
        config.margin_percentage_watch = args.watch
    if args.log_level:
        config.log_level = args.log_level

    setup_logging(config.log_level, config.log_file)
    logger = logging.getLogger(__name__)

    try:
        config.validate()
        gateway = load_gateway(config.gateway_factory, config)
    except ConfigError as e:
        logger.error(f"Configuration error: {e}")
        sys.exit(1)

    # Dry run: console alerts only, no Telegram
    alerts = None
    if not args.no_telegram:
        alerts = TelegramAlerts.from_config(config, dry_run=args.dry_run)

    service = LiquidatorService.from_config(config, gateway, dry_run=args.dry_run, alerts=alerts)

    signal.signal(signal.SIGINT, service._handle_shutdown)
    signal.signal(signal.SIGTERM, service._handle_shutdown)

    try:
        asyncio.run(service.run())
    except KeyboardInterrupt:
        logger.info("Liquidator stopped by user")
        sys.exit(0)
    except Exception as e:
        logger.exception(f"Liquidator error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
