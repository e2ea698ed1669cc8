"""Vesting API endpoints"""
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Path

from tokenvest.api.deps import get_caller, get_vesting_engine
from tokenvest.schemas.vesting import (
    ClaimableResponse,
    ClaimResponse,
    CreateLinearVestingRequest,
    CreatePeriodicVestingRequest,
    CreateVestingResponse,
    ReleaseScheduleResponse,
    RevokeResponse,
    ScheduleCountResponse,
    VestingScheduleResponse,
    schedule_to_response,
)
from tokenvest.services.vesting_engine import VestingEngine

router = APIRouter()


@router.post("/linear", response_model=CreateVestingResponse)
async def create_vesting_schedule(
    request: CreateLinearVestingRequest,
    caller: str = Depends(get_caller),
    engine: VestingEngine = Depends(get_vesting_engine),
):
    """Lock tokens for continuous linear release (administrator only)."""
    index = await engine.create_vesting_schedule(
        caller,
        beneficiary=request.beneficiary,
        asset=request.asset,
        total_amount=request.total_amount,
        start_time=request.start_time,
        duration=request.duration,
        revocable=request.revocable,
    )
    return CreateVestingResponse(
        message=f"Locked {request.total_amount} {request.asset} for {request.beneficiary}",
        beneficiary=request.beneficiary,
        schedule_index=index,
    )


@router.post("/periodic", response_model=CreateVestingResponse)
async def create_vesting_schedule_with_release(
    request: CreatePeriodicVestingRequest,
    caller: str = Depends(get_caller),
    engine: VestingEngine = Depends(get_vesting_engine),
):
    """Lock tokens for stepped release (administrator only)."""
    index = await engine.create_vesting_schedule_with_release(
        caller,
        beneficiary=request.beneficiary,
        asset=request.asset,
        total_amount=request.total_amount,
        start_time=request.start_time,
        duration=request.duration,
        release_interval=request.release_interval,
        release_percentage_bps=request.release_percentage_bps,
        revocable=request.revocable,
    )
    return CreateVestingResponse(
        message=(
            f"Locked {request.total_amount} {request.asset} for {request.beneficiary}, "
            f"{request.release_percentage_bps} bps every {request.release_interval}s"
        ),
        beneficiary=request.beneficiary,
        schedule_index=index,
    )


@router.get("/{beneficiary}", response_model=List[VestingScheduleResponse])
async def list_vesting_schedules(
    beneficiary: str = Path(...),
    engine: VestingEngine = Depends(get_vesting_engine),
):
    """List all vesting schedules of a beneficiary in index order"""
    schedules = await engine.list_vesting_schedules(beneficiary)
    now = engine.now()
    return [schedule_to_response(s, now) for s in schedules]


@router.get("/{beneficiary}/count", response_model=ScheduleCountResponse)
async def get_vesting_schedule_count(
    beneficiary: str = Path(...),
    engine: VestingEngine = Depends(get_vesting_engine),
):
    count = await engine.get_vesting_schedule_count(beneficiary)
    return ScheduleCountResponse(beneficiary=beneficiary, count=count)


@router.get("/{beneficiary}/{index}", response_model=VestingScheduleResponse)
async def get_vesting_schedule(
    beneficiary: str = Path(...),
    index: int = Path(..., ge=0),
    engine: VestingEngine = Depends(get_vesting_engine),
):
    schedule = await engine.get_vesting_schedule(beneficiary, index)
    return schedule_to_response(schedule, engine.now())


@router.get("/{beneficiary}/{index}/claimable", response_model=ClaimableResponse)
async def calculate_claimable_amount(
    beneficiary: str = Path(...),
    index: int = Path(..., ge=0),
    engine: VestingEngine = Depends(get_vesting_engine),
):
    """Vested but unclaimed amount as of now. Available while paused."""
    now = engine.now()
    claimable = await engine.calculate_claimable_amount(beneficiary, index)
    return ClaimableResponse(
        beneficiary=beneficiary,
        schedule_index=index,
        claimable_amount=claimable,
        as_of=now,
    )


@router.get("/{beneficiary}/{index}/release-schedule", response_model=ReleaseScheduleResponse)
async def get_release_schedule(
    beneficiary: str = Path(...),
    index: int = Path(..., ge=0),
    engine: VestingEngine = Depends(get_vesting_engine),
):
    """Release parameters of a periodic schedule"""
    release = await engine.get_release_schedule(beneficiary, index)
    if release is None:
        raise HTTPException(
            status_code=404,
            detail={
                "error": "no_release_schedule",
                "message": "Linear schedules have no release schedule",
            },
        )
    return ReleaseScheduleResponse(
        release_interval=release.release_interval,
        release_percentage_bps=release.release_percentage_bps,
        next_release_time=release.next_release_time,
    )


@router.post("/{beneficiary}/{index}/claim", response_model=ClaimResponse)
async def claim_tokens(
    beneficiary: str = Path(...),
    index: int = Path(..., ge=0),
    caller: str = Depends(get_caller),
    engine: VestingEngine = Depends(get_vesting_engine),
):
    """Pay out everything vested and unclaimed to the beneficiary."""
    amount = await engine.claim_tokens(caller, index, beneficiary=beneficiary)
    schedule = await engine.get_vesting_schedule(beneficiary, index)
    return ClaimResponse(
        message=f"Claimed {amount} {schedule.asset}",
        beneficiary=beneficiary,
        schedule_index=index,
        asset=schedule.asset,
        amount=amount,
        claimed_amount=schedule.claimed_amount,
        next_release_time=schedule.next_release_time,
    )


@router.post("/{beneficiary}/{index}/revoke", response_model=RevokeResponse)
async def revoke_vesting(
    beneficiary: str = Path(...),
    index: int = Path(..., ge=0),
    caller: str = Depends(get_caller),
    engine: VestingEngine = Depends(get_vesting_engine),
):
    """Freeze a schedule and return its unvested remainder (administrator only)."""
    result = await engine.revoke_vesting(caller, beneficiary, index)
    return RevokeResponse(
        message=f"Revoked vesting schedule {index} of {beneficiary}",
        beneficiary=beneficiary,
        schedule_index=index,
        vested_amount=result.vested_amount,
        returned_amount=result.returned_amount,
        claimable_amount=result.claimable_amount,
    )
