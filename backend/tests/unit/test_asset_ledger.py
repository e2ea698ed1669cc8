"""Unit tests for the in-memory asset ledger"""
import pytest

from tokenvest.services.asset_ledger import (
    InMemoryAssetLedger,
    InsufficientAllowance,
    InsufficientBalance,
    TransferError,
    UnknownAsset,
)

CUSTODY = "0xCustody"
FUNDER = "0xFunder"
HOLDER = "0xHolder"


@pytest.fixture
def ledger():
    ledger = InMemoryAssetLedger(default_decimals=6)
    ledger.mint("USDX", FUNDER, 1_000)
    return ledger


class TestInMemoryAssetLedger:
    """Tests for balances, allowances and custody transfers"""

    @pytest.mark.asyncio
    async def test_mint_registers_asset_with_default_decimals(self, ledger):
        assert await ledger.balance_of("USDX", FUNDER) == 1_000
        assert await ledger.decimals("USDX") == 6

    @pytest.mark.asyncio
    async def test_register_asset_with_explicit_decimals(self, ledger):
        ledger.register_asset("WBTC", decimals=8)
        assert await ledger.decimals("WBTC") == 8
        assert await ledger.balance_of("WBTC", FUNDER) == 0

    @pytest.mark.asyncio
    async def test_unknown_asset(self, ledger):
        with pytest.raises(UnknownAsset):
            await ledger.balance_of("NOPE", FUNDER)

    @pytest.mark.asyncio
    async def test_transfer_into_requires_allowance(self, ledger):
        with pytest.raises(InsufficientAllowance) as exc_info:
            await ledger.transfer_into("USDX", CUSTODY, FUNDER, 100)

        assert exc_info.value.code == "insufficient_allowance"
        assert await ledger.balance_of("USDX", FUNDER) == 1_000
        assert await ledger.balance_of("USDX", CUSTODY) == 0

    @pytest.mark.asyncio
    async def test_transfer_into_consumes_allowance(self, ledger):
        ledger.approve("USDX", FUNDER, CUSTODY, 300)
        await ledger.transfer_into("USDX", CUSTODY, FUNDER, 200)

        assert await ledger.balance_of("USDX", FUNDER) == 800
        assert await ledger.balance_of("USDX", CUSTODY) == 200
        assert ledger.allowance("USDX", FUNDER, CUSTODY) == 100

    @pytest.mark.asyncio
    async def test_transfer_into_insufficient_balance(self, ledger):
        ledger.approve("USDX", FUNDER, CUSTODY, 5_000)
        with pytest.raises(InsufficientBalance):
            await ledger.transfer_into("USDX", CUSTODY, FUNDER, 2_000)
        # Allowance untouched on failure
        assert ledger.allowance("USDX", FUNDER, CUSTODY) == 5_000

    @pytest.mark.asyncio
    async def test_transfer_out(self, ledger):
        ledger.approve("USDX", FUNDER, CUSTODY, 500)
        await ledger.transfer_into("USDX", CUSTODY, FUNDER, 500)
        await ledger.transfer_out("USDX", CUSTODY, HOLDER, 125)

        assert await ledger.balance_of("USDX", CUSTODY) == 375
        assert await ledger.balance_of("USDX", HOLDER) == 125

    @pytest.mark.asyncio
    async def test_transfer_out_beyond_custody(self, ledger):
        with pytest.raises(TransferError):
            await ledger.transfer_out("USDX", CUSTODY, HOLDER, 1)

    def test_mint_rejects_non_positive(self, ledger):
        with pytest.raises(ValueError):
            ledger.mint("USDX", FUNDER, 0)

    def test_total_supply_tracks_mints(self, ledger):
        ledger.mint("USDX", HOLDER, 50)
        assert ledger.register_asset("USDX").total_supply == 1_050

    def test_error_detail_is_serializable(self, ledger):
        with pytest.raises(InsufficientBalance) as exc_info:
            ledger.transfer("USDX", HOLDER, FUNDER, 10)
        assert exc_info.value.detail["balance"] == "0"
        assert exc_info.value.detail["amount"] == "10"
