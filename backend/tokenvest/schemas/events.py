"""Event log schemas"""
from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import BaseModel

from tokenvest.models.vesting_event import VestingEvent


class VestingEventResponse(BaseModel):
    """Event response model."""
    id: int
    event_type: str
    timestamp: int
    beneficiary: Optional[str]
    asset: Optional[str]
    amount: Optional[int]
    schedule_index: Optional[int]
    data: Optional[Dict[str, Any]]
    triggered_by: Optional[str]
    created_at: Optional[datetime]


def event_to_response(e: VestingEvent) -> VestingEventResponse:
    return VestingEventResponse(
        id=e.id,
        event_type=e.event_type.value,
        timestamp=e.timestamp,
        beneficiary=e.beneficiary,
        asset=e.asset,
        amount=e.amount,
        schedule_index=e.schedule_index,
        data=e.data,
        triggered_by=e.triggered_by,
        created_at=e.created_at,
    )
