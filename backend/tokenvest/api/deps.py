"""Shared FastAPI dependencies"""
import time
from typing import Callable

from fastapi import Depends, Header
from sqlalchemy.ext.asyncio import AsyncSession

from tokenvest.api.websocket import event_stream
from tokenvest.config import get_settings
from tokenvest.models.database import get_db
from tokenvest.services.asset_ledger import AssetLedger, get_asset_ledger
from tokenvest.services.engine_guard import EngineGuard, get_engine_guard
from tokenvest.services.vesting_engine import VestingEngine


def get_ledger() -> AssetLedger:
    return get_asset_ledger()


def get_guard() -> EngineGuard:
    return get_engine_guard()


def get_clock() -> Callable[[], int]:
    return lambda: int(time.time())


async def get_caller(x_caller_address: str = Header(..., min_length=1)) -> str:
    """Identity of the caller, taken from the X-Caller-Address header"""
    return x_caller_address


async def get_vesting_engine(
    db: AsyncSession = Depends(get_db),
    ledger: AssetLedger = Depends(get_ledger),
    guard: EngineGuard = Depends(get_guard),
    clock: Callable[[], int] = Depends(get_clock),
) -> VestingEngine:
    return VestingEngine(
        db,
        ledger,
        guard=guard,
        clock=clock,
        settings=get_settings(),
        publisher=event_stream,
    )
