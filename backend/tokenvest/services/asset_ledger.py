"""Fungible asset ledger: the value-transfer capability consumed by the engine.

The engine never touches balances itself. It asks a ledger to pull value from
a funder into custody and to push value from custody to an address. Any
failure (missing balance, missing allowance, unknown asset) is raised as a
``TransferError`` and propagates to the caller unmodified.

``InMemoryAssetLedger`` is a minimal ERC20-style implementation (balances,
allowances, mint, decimals) that backs the service by default and in tests.
"""
import abc
from dataclasses import dataclass, field
from typing import Dict, Optional, Tuple

import structlog

from tokenvest.config import get_settings

logger = structlog.get_logger()


class TransferError(Exception):
    """Raised by the ledger when value cannot be moved."""

    code = "transfer_failed"
    status_code = 400

    def __init__(self, message: str, **detail):
        super().__init__(message)
        self.message = message
        self.detail = detail or None


class UnknownAsset(TransferError):
    code = "unknown_asset"


class InsufficientBalance(TransferError):
    code = "insufficient_balance"


class InsufficientAllowance(TransferError):
    code = "insufficient_allowance"


class AssetLedger(abc.ABC):
    """Capability interface for moving value in and out of custody."""

    @abc.abstractmethod
    async def balance_of(self, asset: str, address: str) -> int:
        """Balance of ``address`` in the asset's smallest unit"""

    @abc.abstractmethod
    async def decimals(self, asset: str) -> int:
        """Display decimals of the asset"""

    @abc.abstractmethod
    async def transfer_into(self, asset: str, custody: str, from_address: str, amount: int) -> None:
        """Pull ``amount`` from ``from_address`` into ``custody``"""

    @abc.abstractmethod
    async def transfer_out(self, asset: str, custody: str, to_address: str, amount: int) -> None:
        """Send ``amount`` from ``custody`` to ``to_address``"""


@dataclass
class InMemoryAsset:
    """Balances and allowances of a single asset"""
    asset: str
    decimals: int = 18
    total_supply: int = 0
    balances: Dict[str, int] = field(default_factory=dict)
    allowances: Dict[Tuple[str, str], int] = field(default_factory=dict)  # (owner, spender) -> amount

    def balance_of(self, address: str) -> int:
        return self.balances.get(address, 0)

    def allowance(self, owner: str, spender: str) -> int:
        return self.allowances.get((owner, spender), 0)

    def move(self, sender: str, recipient: str, amount: int) -> None:
        balance = self.balance_of(sender)
        if balance < amount:
            raise InsufficientBalance(
                f"Transfer amount exceeds balance of {sender}",
                asset=self.asset,
                address=sender,
                balance=str(balance),
                amount=str(amount),
            )
        self.balances[sender] = balance - amount
        self.balances[recipient] = self.balance_of(recipient) + amount


class InMemoryAssetLedger(AssetLedger):
    """Process-local ERC20-style ledger holding any number of assets"""

    def __init__(self, default_decimals: Optional[int] = None):
        self.default_decimals = (
            default_decimals if default_decimals is not None else get_settings().default_asset_decimals
        )
        self._assets: Dict[str, InMemoryAsset] = {}

    def register_asset(self, asset: str, decimals: Optional[int] = None) -> InMemoryAsset:
        """Create the asset if needed and return it"""
        if asset not in self._assets:
            self._assets[asset] = InMemoryAsset(
                asset=asset,
                decimals=decimals if decimals is not None else self.default_decimals,
            )
            logger.info("Registered ledger asset", asset=asset, decimals=self._assets[asset].decimals)
        return self._assets[asset]

    def _get(self, asset: str) -> InMemoryAsset:
        try:
            return self._assets[asset]
        except KeyError:
            raise UnknownAsset(f"Asset {asset} does not exist in the ledger", asset=asset) from None

    def mint(self, asset: str, to_address: str, amount: int) -> None:
        if amount <= 0:
            raise ValueError("Mint amount must be positive")
        token = self.register_asset(asset)
        token.balances[to_address] = token.balance_of(to_address) + amount
        token.total_supply += amount
        logger.info("Minted asset", asset=asset, to=to_address, amount=amount)

    def approve(self, asset: str, owner: str, spender: str, amount: int) -> None:
        if amount < 0:
            raise ValueError("Allowance cannot be negative")
        self._get(asset).allowances[(owner, spender)] = amount

    def allowance(self, asset: str, owner: str, spender: str) -> int:
        return self._get(asset).allowance(owner, spender)

    def transfer(self, asset: str, sender: str, recipient: str, amount: int) -> None:
        """Direct holder-to-holder transfer"""
        self._get(asset).move(sender, recipient, amount)

    async def balance_of(self, asset: str, address: str) -> int:
        return self._get(asset).balance_of(address)

    async def decimals(self, asset: str) -> int:
        return self._get(asset).decimals

    async def transfer_into(self, asset: str, custody: str, from_address: str, amount: int) -> None:
        token = self._get(asset)
        allowed = token.allowance(from_address, custody)
        if allowed < amount:
            raise InsufficientAllowance(
                f"Custody allowance of {from_address} is too low",
                asset=asset,
                address=from_address,
                allowance=str(allowed),
                amount=str(amount),
            )
        token.move(from_address, custody, amount)
        token.allowances[(from_address, custody)] = allowed - amount

    async def transfer_out(self, asset: str, custody: str, to_address: str, amount: int) -> None:
        self._get(asset).move(custody, to_address, amount)


# Singleton instance
_asset_ledger: Optional[AssetLedger] = None


def get_asset_ledger() -> AssetLedger:
    """Get or create the asset ledger singleton"""
    global _asset_ledger
    if _asset_ledger is None:
        _asset_ledger = InMemoryAssetLedger()
    return _asset_ledger


def close_asset_ledger() -> None:
    """Drop the asset ledger singleton"""
    global _asset_ledger
    _asset_ledger = None
