"""
Telegram Alerts
===============

Telegram notifications for the liquidator.

Alert types:
- Liquidation alerts: Sent after a liquidation is confirmed
- Failure alerts: Sent when a liquidation attempt fails (per-account cooldown)
- Service status: started / stopped / error
"""

import logging
import threading
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal
from typing import TYPE_CHECKING, Dict, List, Optional
from zoneinfo import ZoneInfo

import requests

if TYPE_CHECKING:
    from ..config import Config

# Timezone for alert timestamps
EASTERN_TZ = ZoneInfo("America/New_York")

logger = logging.getLogger(__name__)

# Rate limiting constants
MIN_ALERT_INTERVAL_SECONDS = 300  # 5 minutes between failure alerts for same account
MIN_MESSAGE_INTERVAL_SECONDS = 1  # 1 second between any messages (Telegram limit: 30/sec)
MAX_ALERTS_PER_MINUTE = 20  # Global rate limit


@dataclass
class AlertConfig:
    """Configuration for alert sending."""
    bot_token: str
    chat_id: str
    dry_run: bool = False
    max_message_length: int = 4000
    min_alert_interval: int = MIN_ALERT_INTERVAL_SECONDS
    min_message_interval: float = MIN_MESSAGE_INTERVAL_SECONDS


def _short(address: str) -> str:
    if len(address) <= 12:
        return address
    return f"{address[:6]}...{address[-4:]}"


class TelegramAlerts:
    """
    Telegram alert sender for the liquidator.

    Messages are sent from a daemon thread so the liquidation loop never
    waits on Telegram. Includes rate limiting to prevent Telegram API abuse.
    """

    def __init__(self, config: AlertConfig):
        """
        Initialize Telegram alerts.

        Args:
            config: AlertConfig with bot token, chat ID, and settings
        """
        self.config = config
        self._validate()

        # Rate limiting state. Sender threads hold _lock across the HTTP call;
        # callers only take _cooldown_lock.
        self._lock = threading.Lock()
        self._cooldown_lock = threading.Lock()
        self._last_message_time: float = 0
        self._account_alert_times: Dict[str, float] = {}  # address -> last failure alert time
        self._alerts_this_minute: List[float] = []

    @classmethod
    def from_config(cls, config: "Config", dry_run: bool = False) -> Optional["TelegramAlerts"]:
        """
        Build alerts from loaded configuration.

        In dry-run mode messages are logged instead of sent, whether or not
        Telegram is configured.

        Returns:
            TelegramAlerts, or None if Telegram is not configured outside dry-run
        """
        if not dry_run and not config.telegram_enabled:
            return None
        return cls(AlertConfig(
            bot_token=config.telegram_bot_token or "",
            chat_id=config.telegram_chat_id or "",
            dry_run=dry_run,
        ))

    def _validate(self):
        """Validate configuration."""
        if not self.config.dry_run:
            if not self.config.bot_token:
                raise ValueError("TELEGRAM_BOT_TOKEN is required (or use --dry-run)")
            if not self.config.chat_id:
                raise ValueError("TELEGRAM_CHAT_ID is required (or use --dry-run)")

    def _check_rate_limit(self) -> bool:
        """
        Check if we're within rate limits.

        Returns:
            True if we can send, False if rate limited
        """
        now = time.time()
        self._alerts_this_minute = [t for t in self._alerts_this_minute if now - t < 60]

        if len(self._alerts_this_minute) >= MAX_ALERTS_PER_MINUTE:
            logger.warning(f"Rate limited: {len(self._alerts_this_minute)} alerts in last minute")
            return False
        return True

    def _enforce_message_interval(self):
        """Enforce minimum interval between messages."""
        elapsed = time.time() - self._last_message_time
        if elapsed < self.config.min_message_interval:
            time.sleep(self.config.min_message_interval - elapsed)

    def _can_alert_account(self, address: str) -> bool:
        """Check if the failure alert cooldown for an account has passed."""
        last_alert = self._account_alert_times.get(address, 0)
        if time.time() - last_alert < self.config.min_alert_interval:
            logger.debug(f"Account {_short(address)} in alert cooldown")
            return False
        return True

    def _truncate_message(self, text: str) -> str:
        """Truncate message to Telegram's character limit."""
        if len(text) > self.config.max_message_length:
            return text[:self.config.max_message_length - 20] + "\n... (truncated)"
        return text

    def _send_message(self, text: str, skip_rate_limit: bool = False) -> Optional[int]:
        """
        Send a message via Telegram Bot API.

        Args:
            text: Message text (HTML formatted)
            skip_rate_limit: If True, skip rate limit check (for service status)

        Returns:
            message_id if successful, None otherwise
        """
        text = self._truncate_message(text)

        if self.config.dry_run:
            logger.info(f"[DRY RUN] Would send Telegram message:\n{text}")
            return 0

        with self._lock:
            if not skip_rate_limit and not self._check_rate_limit():
                logger.warning("Message dropped due to rate limiting")
                return None
            self._enforce_message_interval()

            url = f"https://api.telegram.org/bot{self.config.bot_token}/sendMessage"
            payload = {
                "chat_id": self.config.chat_id,
                "text": text,
                "parse_mode": "HTML",
            }

            try:
                response = requests.post(url, json=payload, timeout=10)
                response.raise_for_status()

                now = time.time()
                self._last_message_time = now
                self._alerts_this_minute.append(now)

                message_id = response.json().get("result", {}).get("message_id")
                logger.info(f"Telegram alert sent successfully (message_id: {message_id})")
                return message_id

            except requests.exceptions.Timeout:
                logger.error("Telegram request timed out")
                return None
            except requests.exceptions.HTTPError as e:
                # Log status code without exposing token in URL
                status_code = e.response.status_code if e.response is not None else "unknown"
                logger.error(f"Telegram HTTP error: {status_code}")
                return None
            except requests.exceptions.RequestException:
                logger.error("Telegram request failed")
                return None

    def _send_message_async(self, text: str, skip_rate_limit: bool = False):
        """Send message on a daemon thread. Fire and forget."""
        def _send():
            try:
                self._send_message(text, skip_rate_limit=skip_rate_limit)
            except Exception as e:
                logger.error(f"Async send failed: {type(e).__name__}")

        thread = threading.Thread(target=_send, daemon=True)
        thread.start()

    def send_liquidation_alert(
        self,
        address: str,
        profit: Decimal,
        signature: str,
        timestamp: datetime = None,
    ):
        """Announce a confirmed liquidation."""
        if timestamp is None:
            timestamp = datetime.now(timezone.utc)
        time_str = timestamp.astimezone(EASTERN_TZ).strftime('%H:%M:%S %Z')

        lines = [
            f"<b>LIQUIDATED at {time_str}</b>",
            "",
            f"Account: <code>{address}</code>",
            f"Fee margin: {profit}",
            f"Tx: <code>{signature}</code>",
        ]
        self._send_message_async("\n".join(lines))

    def send_liquidation_failed_alert(self, address: str, error: str):
        """Report a failed liquidation attempt, at most once per cooldown per account."""
        with self._cooldown_lock:
            if not self._can_alert_account(address):
                return
            self._account_alert_times[address] = time.time()

        lines = [
            "<b>Liquidation failed</b>",
            "",
            f"Account: <code>{address}</code>",
            f"Error: {error}",
        ]
        self._send_message_async("\n".join(lines))

    def send_service_status(self, status: str, details: str = "", timestamp: datetime = None):
        """
        Send service status notification.

        These are operational alerts and skip rate limiting.

        Args:
            status: Status type ("started", "stopped", "error")
            details: Additional details
            timestamp: Timestamp (default: now)
        """
        if timestamp is None:
            timestamp = datetime.now(timezone.utc)
        time_str = timestamp.astimezone(EASTERN_TZ).strftime('%H:%M:%S %Z')

        status_text = {
            "started": "Liquidator started",
            "stopped": "Liquidator stopped",
            "error": "Liquidator error",
        }.get(status, f"Status: {status}")

        lines = [f"<b>{status_text} at {time_str}</b>"]
        if details:
            lines.append("")
            lines.append(details)
        self._send_message_async("\n".join(lines), skip_rate_limit=True)
