"""Event service for recording and querying engine notifications."""
from typing import Any, Dict, List, Optional

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from tokenvest.models.vesting_event import VestingEvent, VestingEventType

logger = structlog.get_logger()


class EventService:
    """Service for recording and listing vesting notifications."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def record(
        self,
        event_type: VestingEventType,
        timestamp: int,
        beneficiary: Optional[str] = None,
        asset: Optional[str] = None,
        amount: Optional[int] = None,
        schedule_index: Optional[int] = None,
        data: Optional[Dict[str, Any]] = None,
        triggered_by: Optional[str] = None,
    ) -> VestingEvent:
        """
        Record a notification to the event log.

        Args:
            event_type: The notification type
            timestamp: Engine clock at emission
            beneficiary: Schedule beneficiary, if any
            asset: Asset involved, if any
            amount: Primary amount (locked, claimed, frozen vested)
            schedule_index: Index of the schedule within the beneficiary's list
            data: Additional event-specific fields
            triggered_by: Caller that triggered the operation

        Returns:
            The staged VestingEvent record
        """
        event = VestingEvent(
            event_type=event_type,
            timestamp=timestamp,
            beneficiary=beneficiary,
            asset=asset,
            amount=amount,
            schedule_index=schedule_index,
            data=data,
            triggered_by=triggered_by,
        )

        self.db.add(event)
        await self.db.flush()

        logger.info(
            "Recorded event",
            event_id=event.id,
            event_type=event_type.value,
            beneficiary=beneficiary,
            asset=asset,
            amount=amount,
        )

        return event

    async def list_events(
        self,
        event_type: Optional[VestingEventType] = None,
        beneficiary: Optional[str] = None,
        asset: Optional[str] = None,
        skip: int = 0,
        limit: int = 100,
    ) -> List[VestingEvent]:
        """Events newest first, optionally filtered"""
        query = select(VestingEvent)
        if event_type is not None:
            query = query.where(VestingEvent.event_type == event_type)
        if beneficiary is not None:
            query = query.where(VestingEvent.beneficiary == beneficiary)
        if asset is not None:
            query = query.where(VestingEvent.asset == asset)

        result = await self.db.execute(
            query.order_by(VestingEvent.id.desc()).offset(skip).limit(limit)
        )
        return list(result.scalars().all())
