"""Allow-list of assets eligible for vesting."""
from typing import List, Optional

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from tokenvest.models.asset import SupportedAsset

logger = structlog.get_logger()


class AssetRegistry:
    """Set membership over the ``supported_assets`` table.

    Mutations only stage changes in the session; the caller commits.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    async def _get(self, asset: str) -> Optional[SupportedAsset]:
        result = await self.db.execute(
            select(SupportedAsset).where(SupportedAsset.asset == asset)
        )
        return result.scalar_one_or_none()

    async def is_supported(self, asset: str) -> bool:
        entry = await self._get(asset)
        return bool(entry and entry.supported)

    async def set_supported(self, asset: str, supported: bool, updated_by: Optional[str] = None) -> bool:
        """Set the supported flag. Returns True if the flag changed."""
        entry = await self._get(asset)
        if entry is None:
            if not supported:
                return False
            self.db.add(SupportedAsset(asset=asset, supported=True, updated_by=updated_by))
            await self.db.flush()
            return True

        if entry.supported == supported:
            logger.debug("Asset registry unchanged", asset=asset, supported=supported)
            return False

        entry.supported = supported
        entry.updated_by = updated_by
        await self.db.flush()
        return True

    async def list_supported(self) -> List[str]:
        result = await self.db.execute(
            select(SupportedAsset.asset)
            .where(SupportedAsset.supported.is_(True))
            .order_by(SupportedAsset.asset)
        )
        return list(result.scalars().all())
