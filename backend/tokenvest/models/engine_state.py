"""Global engine state: pause flag and administrator identity"""
from datetime import datetime

from sqlalchemy import Column, Integer, String, Boolean, DateTime

from tokenvest.models.database import Base

ENGINE_STATE_ID = 1


class EngineState(Base):
    """Single-row table holding the pause flag and the administrator"""
    __tablename__ = "engine_state"

    id = Column(Integer, primary_key=True, default=ENGINE_STATE_ID)
    admin_address = Column(String(64), nullable=False)
    paused = Column(Boolean, nullable=False, default=False)
    paused_by = Column(String(64), nullable=True)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def __repr__(self):
        return f"<EngineState admin={self.admin_address} paused={self.paused}>"
