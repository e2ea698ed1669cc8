"""API v1 router aggregation"""
from fastapi import APIRouter

from tokenvest.api.v1 import admin, assets, events, vesting

api_router = APIRouter()

api_router.include_router(assets.router, prefix="/assets", tags=["Assets"])
api_router.include_router(vesting.router, prefix="/vesting", tags=["Vesting"])
api_router.include_router(admin.router, prefix="/admin", tags=["Admin"])
api_router.include_router(events.router, prefix="/events", tags=["Events"])
