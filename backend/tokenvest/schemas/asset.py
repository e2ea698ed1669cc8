"""Asset registry schemas"""
from typing import List

from pydantic import BaseModel


class AssetStatusResponse(BaseModel):
    asset: str
    supported: bool


class SupportedAssetsResponse(BaseModel):
    assets: List[str]
