"""Event log API endpoints."""
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from tokenvest.models.database import get_db
from tokenvest.models.vesting_event import VestingEventType
from tokenvest.schemas.events import VestingEventResponse, event_to_response
from tokenvest.services.event_service import EventService

router = APIRouter()


@router.get("", response_model=List[VestingEventResponse])
async def list_events(
    event_type: Optional[str] = Query(None, description="Filter by event type"),
    beneficiary: Optional[str] = Query(None, description="Filter by beneficiary"),
    asset: Optional[str] = Query(None, description="Filter by asset"),
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=1000),
    db: AsyncSession = Depends(get_db),
):
    """List recorded notifications, newest first"""
    parsed_type = None
    if event_type:
        try:
            parsed_type = VestingEventType(event_type)
        except ValueError:
            raise HTTPException(status_code=400, detail=f"Invalid event type: {event_type}")

    events = await EventService(db).list_events(
        event_type=parsed_type,
        beneficiary=beneficiary,
        asset=asset,
        skip=skip,
        limit=limit,
    )
    return [event_to_response(e) for e in events]
