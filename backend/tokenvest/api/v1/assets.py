"""Supported asset registry API endpoints"""
from fastapi import APIRouter, Depends, Path

from tokenvest.api.deps import get_caller, get_vesting_engine
from tokenvest.schemas.asset import AssetStatusResponse, SupportedAssetsResponse
from tokenvest.services.vesting_engine import VestingEngine

router = APIRouter()


@router.get("", response_model=SupportedAssetsResponse)
async def list_supported_assets(engine: VestingEngine = Depends(get_vesting_engine)):
    """List all currently supported assets"""
    return SupportedAssetsResponse(assets=await engine.list_supported_assets())


@router.get("/{asset}", response_model=AssetStatusResponse)
async def get_asset_status(asset: str = Path(...), engine: VestingEngine = Depends(get_vesting_engine)):
    """Whether an asset is eligible for new vesting schedules"""
    return AssetStatusResponse(asset=asset, supported=await engine.is_supported(asset))


@router.put("/{asset}", response_model=AssetStatusResponse)
async def add_supported_asset(
    asset: str = Path(...),
    caller: str = Depends(get_caller),
    engine: VestingEngine = Depends(get_vesting_engine),
):
    """Add an asset to the allow-list (administrator only, idempotent)"""
    await engine.add_supported_asset(caller, asset)
    return AssetStatusResponse(asset=asset, supported=True)


@router.delete("/{asset}", response_model=AssetStatusResponse)
async def remove_supported_asset(
    asset: str = Path(...),
    caller: str = Depends(get_caller),
    engine: VestingEngine = Depends(get_vesting_engine),
):
    """Remove an asset from the allow-list. Existing schedules are unaffected."""
    await engine.remove_supported_asset(caller, asset)
    return AssetStatusResponse(asset=asset, supported=False)
