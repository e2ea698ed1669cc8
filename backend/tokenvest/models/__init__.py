"""Database models"""
from tokenvest.models.database import Base, get_db
from tokenvest.models.asset import SupportedAsset
from tokenvest.models.engine_state import EngineState
from tokenvest.models.vesting import VestingSchedule
from tokenvest.models.vesting_event import VestingEvent, VestingEventType

__all__ = [
    "Base",
    "get_db",
    "SupportedAsset",
    "EngineState",
    "VestingSchedule",
    "VestingEvent",
    "VestingEventType",
]
