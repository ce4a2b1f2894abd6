"""
Configuration for the Margin Account Liquidator

All settings in one place for easy tuning. Values come from the environment,
with a .env file in the project root loaded first when present.
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

from dotenv import load_dotenv

from .errors import ConfigError

_project_root = Path(__file__).parent.parent
_env_path = _project_root / ".env"


# =============================================================================
# Defaults
# =============================================================================

# Fast cadence: price feeds, market map and at-risk re-checks (ms)
DEFAULT_PRICE_FEED_INTERVAL_MS = 300

# Slow cadence: full margin account rescan (ms)
DEFAULT_FULL_ACCOUNT_INTERVAL_MS = 300_000

# Exchange configuration barely changes; reload every 10 minutes (ms)
DEFAULT_EXCHANGE_UPDATE_INTERVAL_MS = 600_000

# Flag accounts within this many percentage points of liquidation
DEFAULT_MARGIN_PERCENTAGE_WATCH = 10

# Refresh retry (1 attempt = fail fast, no retry)
DEFAULT_REFRESH_MAX_ATTEMPTS = 1
DEFAULT_REFRESH_BACKOFF_BASE_SEC = 0.5
DEFAULT_REFRESH_BACKOFF_CAP_SEC = 10.0

DEFAULT_LOG_LEVEL = "INFO"
DEFAULT_LOG_FILE = "logs/liquidator.log"

# Exchange id used when EXCHANGE_ADDRESS is not set (only one exchange is handled)
DEFAULT_EXCHANGE_ID = 0


@dataclass
class Config:
    """All configuration settings."""

    # -------------------------------------------------------------------------
    # Connection & credentials (required)
    # -------------------------------------------------------------------------
    rpc_url: str
    private_key: str
    liquidator_margin_account: str
    gateway_factory: str

    # -------------------------------------------------------------------------
    # Exchange
    # -------------------------------------------------------------------------
    exchange_address: Optional[str] = None
    exchange_id: int = DEFAULT_EXCHANGE_ID
    commitment: Optional[str] = None

    # -------------------------------------------------------------------------
    # Refresh Intervals (milliseconds)
    # -------------------------------------------------------------------------
    price_feed_interval_ms: int = DEFAULT_PRICE_FEED_INTERVAL_MS
    full_account_interval_ms: int = DEFAULT_FULL_ACCOUNT_INTERVAL_MS
    exchange_update_interval_ms: int = DEFAULT_EXCHANGE_UPDATE_INTERVAL_MS

    # -------------------------------------------------------------------------
    # Risk
    # -------------------------------------------------------------------------
    margin_percentage_watch: int = DEFAULT_MARGIN_PERCENTAGE_WATCH

    # -------------------------------------------------------------------------
    # Refresh retry
    # -------------------------------------------------------------------------
    refresh_max_attempts: int = DEFAULT_REFRESH_MAX_ATTEMPTS
    refresh_backoff_base_sec: float = DEFAULT_REFRESH_BACKOFF_BASE_SEC
    refresh_backoff_cap_sec: float = DEFAULT_REFRESH_BACKOFF_CAP_SEC

    # -------------------------------------------------------------------------
    # Logging & alerts
    # -------------------------------------------------------------------------
    enable_logging: bool = False
    log_level: str = DEFAULT_LOG_LEVEL
    log_file: str = DEFAULT_LOG_FILE
    telegram_bot_token: Optional[str] = None
    telegram_chat_id: Optional[str] = None

    @property
    def price_feed_interval_sec(self) -> float:
        return self.price_feed_interval_ms / 1000

    @property
    def full_account_interval_sec(self) -> float:
        return self.full_account_interval_ms / 1000

    @property
    def exchange_update_interval_sec(self) -> float:
        return self.exchange_update_interval_ms / 1000

    @property
    def telegram_enabled(self) -> bool:
        return bool(self.telegram_bot_token and self.telegram_chat_id)

    def validate(self):
        """
        Check value ranges.

        Raises:
            ConfigError: On the first invalid value
        """
        for name in ("price_feed_interval_ms", "full_account_interval_ms", "exchange_update_interval_ms"):
            if getattr(self, name) <= 0:
                raise ConfigError(f"{name} must be positive, got {getattr(self, name)}")
        if self.margin_percentage_watch < 0:
            raise ConfigError(f"margin_percentage_watch must be >= 0, got {self.margin_percentage_watch}")
        if self.refresh_max_attempts < 1:
            raise ConfigError(f"refresh_max_attempts must be >= 1, got {self.refresh_max_attempts}")


def _require(env: Mapping[str, str], name: str, description: str) -> str:
    value = env.get(name)
    if not value:
        raise ConfigError(f"Missing {description} (set {name})")
    return value


def _parse_int(env: Mapping[str, str], name: str, default: int) -> int:
    raw = env.get(name)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise ConfigError(f"{name} must be an integer, got {raw!r}")


def _parse_float(env: Mapping[str, str], name: str, default: float) -> float:
    raw = env.get(name)
    if raw is None or raw == "":
        return default
    try:
        return float(raw)
    except ValueError:
        raise ConfigError(f"{name} must be a number, got {raw!r}")


def load_config(env: Optional[Mapping[str, str]] = None) -> Config:
    """
    Build the Config from environment variables.

    Args:
        env: Mapping to read from. Defaults to os.environ after loading the
            project .env file.

    Returns:
        Validated Config

    Raises:
        ConfigError: If a required value is missing or a value is invalid
    """
    if env is None:
        if _env_path.exists():
            load_dotenv(_env_path)
        env = os.environ

    config = Config(
        rpc_url=_require(env, "RPC_URL", "rpc url"),
        private_key=_require(env, "PRIVATE_KEY", "liquidator signer"),
        liquidator_margin_account=_require(env, "LIQUIDATOR_MARGIN_ACCOUNT", "liquidator margin account"),
        gateway_factory=_require(env, "GATEWAY_FACTORY", "gateway factory"),
        exchange_address=env.get("EXCHANGE_ADDRESS") or None,
        exchange_id=_parse_int(env, "EXCHANGE_ID", DEFAULT_EXCHANGE_ID),
        commitment=env.get("COMMITMENT") or None,
        price_feed_interval_ms=_parse_int(env, "PRICE_FEED_INTERVAL", DEFAULT_PRICE_FEED_INTERVAL_MS),
        full_account_interval_ms=_parse_int(env, "FULL_ACCOUNT_INTERVAL", DEFAULT_FULL_ACCOUNT_INTERVAL_MS),
        exchange_update_interval_ms=_parse_int(env, "EXCHANGE_UPDATE_INTERVAL", DEFAULT_EXCHANGE_UPDATE_INTERVAL_MS),
        margin_percentage_watch=_parse_int(env, "MARGIN_PERCENTAGE_WATCH", DEFAULT_MARGIN_PERCENTAGE_WATCH),
        refresh_max_attempts=_parse_int(env, "REFRESH_MAX_ATTEMPTS", DEFAULT_REFRESH_MAX_ATTEMPTS),
        refresh_backoff_base_sec=_parse_float(env, "REFRESH_BACKOFF_BASE_SEC", DEFAULT_REFRESH_BACKOFF_BASE_SEC),
        refresh_backoff_cap_sec=_parse_float(env, "REFRESH_BACKOFF_CAP_SEC", DEFAULT_REFRESH_BACKOFF_CAP_SEC),
        enable_logging=env.get("ENABLE_LOGGING") == "true",
        log_level=env.get("LOG_LEVEL") or DEFAULT_LOG_LEVEL,
        log_file=env.get("LOG_FILE") or DEFAULT_LOG_FILE,
        telegram_bot_token=env.get("TELEGRAM_BOT_TOKEN") or None,
        telegram_chat_id=env.get("TELEGRAM_CHAT_ID") or None,
    )
    config.validate()
    return config
