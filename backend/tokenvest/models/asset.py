"""Supported asset registry model"""
from datetime import datetime

from sqlalchemy import Column, String, Boolean, DateTime

from tokenvest.models.database import Base


class SupportedAsset(Base):
    """Allow-list entry: asset identifier -> supported flag.

    Removing an asset clears the flag instead of deleting the row, and has no
    effect on schedules already created against it.
    """
    __tablename__ = "supported_assets"

    asset = Column(String(64), primary_key=True)
    supported = Column(Boolean, nullable=False, default=True)
    updated_by = Column(String(64), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def __repr__(self):
        return f"<SupportedAsset {self.asset} supported={self.supported}>"
