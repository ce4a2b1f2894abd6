"""
Exchange Gateway
================

Interfaces the liquidator needs from the exchange SDK and the network.

The liquidator never decodes accounts, computes margins or signs anything
itself. A concrete gateway (built around the exchange SDK and an RPC
connection) is loaded at startup from a ``module:factory`` path, see
``load_gateway``.
"""

import importlib
import logging
from decimal import Decimal
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Protocol, Sequence

from ..errors import ConfigError
from ..models import AccountRecord, LiquidateAccounts

if TYPE_CHECKING:
    from ..config import Config

logger = logging.getLogger(__name__)


class Signer(Protocol):
    """Signing credential. Read-only, reused across sequential calls."""
    public_key: str


class Position(Protocol):
    market_id: int


class MarginAccount(Protocol):
    """Decoded margin account as exposed by the SDK wrapper."""
    exchange: str
    owner: str

    def in_liquidation(self) -> bool: ...

    def positions(self) -> Sequence[Position]: ...


class Margins(Protocol):
    """Result of a margin computation for one account at one timestamp."""
    required_liquidation_fee_margin: Decimal

    def can_liquidate(self) -> bool: ...

    def total_required_margin(self) -> Decimal: ...

    def total_available_margin(self) -> Decimal: ...


class AccountFetcher(Protocol):
    """
    Batch account loading.

    Every batch method returns one entry per requested address, ``None``
    where the account does not exist. Callers drop the ``None`` entries.
    """

    async def get_exchange(self, address: str) -> Optional[Any]: ...

    async def get_markets(self, addresses: List[str]) -> List[Optional[AccountRecord]]: ...

    async def get_price_feeds(self, addresses: List[str]) -> List[Optional[Any]]: ...

    async def get_margin_accounts(self, addresses: List[str]) -> List[Optional[AccountRecord]]: ...

    async def get_all_margin_accounts(self) -> List[Optional[AccountRecord]]: ...


class MarginEngine(Protocol):
    def get_account_margins(
        self,
        account: MarginAccount,
        exchange: Any,
        markets: Dict[int, AccountRecord],
        price_feeds: Dict[str, Any],
        timestamp: int,
    ) -> Margins: ...


class TransactionSender(Protocol):
    async def get_latest_blockhash(self) -> str: ...

    def build_liquidate_transaction(
        self,
        accounts: LiquidateAccounts,
        market_addresses: List[str],
        price_feed_addresses: List[str],
        fee_payer: str,
        signers: List[Signer],
        recent_blockhash: str,
        params: Optional[Dict[str, Any]] = None,
    ) -> Any: ...

    async def send_and_confirm(self, transaction: Any, signers: List[Signer]) -> str: ...


class ExchangeGateway(AccountFetcher, MarginEngine, TransactionSender, Protocol):
    """Everything the liquidator consumes, bundled behind one object."""

    def exchange_address(self, exchange_id: int) -> str: ...

    def market_address(self, exchange_address: str, market_id: int) -> str: ...

    def load_signer(self, private_key: str) -> Signer: ...


def load_gateway(factory_path: str, config: "Config") -> ExchangeGateway:
    """
    Import and call a gateway factory.

    Args:
        factory_path: "package.module:callable" path of the factory
        config: Loaded Config, passed to the factory

    Returns:
        Gateway instance built by the factory

    Raises:
        ConfigError: If the path is malformed or cannot be imported
    """
    module_name, sep, attr = factory_path.partition(":")
    if not sep or not module_name or not attr:
        raise ConfigError(f"GATEWAY_FACTORY must look like 'package.module:factory', got {factory_path!r}")

    try:
        module = importlib.import_module(module_name)
    except ImportError as e:
        raise ConfigError(f"Cannot import gateway module {module_name!r}: {e}") from e

    factory = getattr(module, attr, None)
    if factory is None or not callable(factory):
        raise ConfigError(f"Gateway factory {attr!r} not found in {module_name!r}")

    gateway = factory(config)
    logger.info(f"Loaded gateway {type(gateway).__name__} from {factory_path}")
    return gateway
