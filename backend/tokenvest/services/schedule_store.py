"""Append-only store of vesting schedules keyed by (beneficiary, index)."""
from typing import List

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from tokenvest.errors import ScheduleNotFound
from tokenvest.models.vesting import VestingSchedule


class ScheduleStore:
    """Per-beneficiary sequential lists of schedules.

    Records are never deleted. ``get_for_update`` takes a row lock where the
    database supports it so multi-process deployments serialize on the record.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    async def count(self, beneficiary: str) -> int:
        result = await self.db.execute(
            select(func.count(VestingSchedule.id)).where(VestingSchedule.beneficiary == beneficiary)
        )
        return result.scalar_one()

    async def append(self, schedule: VestingSchedule) -> VestingSchedule:
        """Assign the next index for the beneficiary and stage the record"""
        schedule.schedule_index = await self.count(schedule.beneficiary)
        self.db.add(schedule)
        await self.db.flush()
        return schedule

    async def get(self, beneficiary: str, index: int) -> VestingSchedule:
        result = await self.db.execute(
            select(VestingSchedule).where(
                VestingSchedule.beneficiary == beneficiary,
                VestingSchedule.schedule_index == index,
            )
        )
        schedule = result.scalar_one_or_none()
        if schedule is None:
            raise ScheduleNotFound(
                f"No vesting schedule {index} for {beneficiary}",
                beneficiary=beneficiary,
                index=index,
            )
        return schedule

    async def get_for_update(self, beneficiary: str, index: int) -> VestingSchedule:
        result = await self.db.execute(
            select(VestingSchedule)
            .where(
                VestingSchedule.beneficiary == beneficiary,
                VestingSchedule.schedule_index == index,
            )
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        schedule = result.scalar_one_or_none()
        if schedule is None:
            raise ScheduleNotFound(
                f"No vesting schedule {index} for {beneficiary}",
                beneficiary=beneficiary,
                index=index,
            )
        return schedule

    async def list_for(self, beneficiary: str) -> List[VestingSchedule]:
        result = await self.db.execute(
            select(VestingSchedule)
            .where(VestingSchedule.beneficiary == beneficiary)
            .order_by(VestingSchedule.schedule_index)
        )
        return list(result.scalars().all())
