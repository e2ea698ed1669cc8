"""Admin schemas"""
from pydantic import BaseModel


class EngineStateResponse(BaseModel):
    administrator: str
    paused: bool


class PauseResponse(BaseModel):
    paused: bool
    changed: bool


class TransferAdministrationRequest(BaseModel):
    new_admin: str
