"""TokenVest services"""
from .asset_ledger import AssetLedger, InMemoryAssetLedger, get_asset_ledger
from .release_policy import (
    LinearRelease,
    PeriodicRelease,
    PolicyKind,
    linear_vested,
    periodic_vested,
    next_release_time,
    vested_amount,
)


__all__ = [
    "AssetLedger",
    "InMemoryAssetLedger",
    "get_asset_ledger",
    # Release policies
    "LinearRelease",
    "PeriodicRelease",
    "PolicyKind",
    "linear_vested",
    "periodic_vested",
    "next_release_time",
    "vested_amount",
]
