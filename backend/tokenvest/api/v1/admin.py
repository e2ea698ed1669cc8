"""Admin API endpoints"""
from fastapi import APIRouter, Depends

from tokenvest.api.deps import get_caller, get_vesting_engine
from tokenvest.schemas.admin import EngineStateResponse, PauseResponse, TransferAdministrationRequest
from tokenvest.services.vesting_engine import VestingEngine

router = APIRouter()


@router.get("/state", response_model=EngineStateResponse)
async def get_engine_state(engine: VestingEngine = Depends(get_vesting_engine)):
    """Current administrator and pause flag"""
    return EngineStateResponse(
        administrator=await engine.administrator(),
        paused=await engine.is_paused(),
    )


@router.post("/pause", response_model=PauseResponse)
async def pause(caller: str = Depends(get_caller), engine: VestingEngine = Depends(get_vesting_engine)):
    """Block schedule creation and claims. Queries stay available."""
    changed = await engine.pause(caller)
    return PauseResponse(paused=True, changed=changed)


@router.post("/unpause", response_model=PauseResponse)
async def unpause(caller: str = Depends(get_caller), engine: VestingEngine = Depends(get_vesting_engine)):
    changed = await engine.unpause(caller)
    return PauseResponse(paused=False, changed=changed)


@router.post("/transfer", response_model=EngineStateResponse)
async def transfer_administration(
    request: TransferAdministrationRequest,
    caller: str = Depends(get_caller),
    engine: VestingEngine = Depends(get_vesting_engine),
):
    """Hand the administrator role to a new identity"""
    await engine.transfer_administration(caller, request.new_admin)
    return EngineStateResponse(
        administrator=await engine.administrator(),
        paused=await engine.is_paused(),
    )
