"""Vesting schemas"""
from datetime import datetime
from typing import Optional

from pydantic import BaseModel

from tokenvest.models.vesting import VestingSchedule


class CreateLinearVestingRequest(BaseModel):
    """Lock tokens for continuous linear release between start and start + duration."""
    beneficiary: str
    asset: str
    total_amount: int  # smallest unit of the asset
    start_time: int  # Unix timestamp
    duration: int  # seconds
    revocable: bool = False


class CreatePeriodicVestingRequest(CreateLinearVestingRequest):
    """Lock tokens for stepped release.

    Every elapsed ``release_interval`` unlocks ``release_percentage_bps``
    (1/10000ths) of the total, capped at 100%.
    """
    release_interval: int  # seconds
    release_percentage_bps: int


class CreateVestingResponse(BaseModel):
    message: str
    beneficiary: str
    schedule_index: int


class ReleaseScheduleResponse(BaseModel):
    release_interval: int
    release_percentage_bps: int
    next_release_time: int


class VestingScheduleResponse(BaseModel):
    beneficiary: str
    schedule_index: int
    asset: str
    total_amount: int
    claimed_amount: int
    vested_amount: int
    claimable_amount: int
    start_time: int
    end_time: int
    revocable: bool
    revoked: bool
    policy: str  # linear / periodic
    release_schedule: Optional[ReleaseScheduleResponse] = None
    vested_at_revocation: Optional[int] = None
    revoked_at: Optional[int] = None
    fully_claimed: bool = False
    created_at: Optional[datetime] = None


class ScheduleCountResponse(BaseModel):
    beneficiary: str
    count: int


class ClaimableResponse(BaseModel):
    beneficiary: str
    schedule_index: int
    claimable_amount: int
    as_of: int


class ClaimResponse(BaseModel):
    message: str
    beneficiary: str
    schedule_index: int
    asset: str
    amount: int
    claimed_amount: int
    next_release_time: Optional[int] = None


class RevokeResponse(BaseModel):
    message: str
    beneficiary: str
    schedule_index: int
    vested_amount: int
    returned_amount: int
    claimable_amount: int


def schedule_to_response(s: VestingSchedule, now: int) -> VestingScheduleResponse:
    release = None
    if s.is_periodic:
        release = ReleaseScheduleResponse(
            release_interval=s.release_interval,
            release_percentage_bps=s.release_percentage_bps,
            next_release_time=s.next_release_time,
        )

    vested = s.calculate_vested(now)
    return VestingScheduleResponse(
        beneficiary=s.beneficiary,
        schedule_index=s.schedule_index,
        asset=s.asset,
        total_amount=s.total_amount,
        claimed_amount=s.claimed_amount,
        vested_amount=vested,
        claimable_amount=vested - s.claimed_amount,
        start_time=s.start_time,
        end_time=s.end_time,
        revocable=s.revocable,
        revoked=s.revoked,
        policy=s.policy_kind,
        release_schedule=release,
        vested_at_revocation=s.vested_at_revocation,
        revoked_at=s.revoked_at,
        fully_claimed=s.is_fully_claimed,
        created_at=s.created_at,
    )
