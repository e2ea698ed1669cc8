"""Notification log for engine state changes."""
import enum
from datetime import datetime

from sqlalchemy import Column, Integer, String, BigInteger, DateTime, JSON, Index, Enum as SQLEnum

from tokenvest.models.database import Base, Amount


class VestingEventType(str, enum.Enum):
    """All notifications emitted by the engine."""
    # Asset registry
    TOKEN_SUPPORTED = "token_supported"
    TOKEN_UNSUPPORTED = "token_unsupported"

    # Schedules
    TOKENS_LOCKED = "tokens_locked"
    TOKENS_CLAIMED = "tokens_claimed"
    VESTING_REVOKED = "vesting_revoked"

    # Admin controller
    PAUSED = "paused"
    UNPAUSED = "unpaused"
    ADMINISTRATION_TRANSFERRED = "administration_transferred"

    @property
    def channel(self) -> str:
        """WebSocket channel this notification is published on"""
        if self in (VestingEventType.TOKEN_SUPPORTED, VestingEventType.TOKEN_UNSUPPORTED):
            return "registry"
        if self in (
            VestingEventType.PAUSED,
            VestingEventType.UNPAUSED,
            VestingEventType.ADMINISTRATION_TRANSFERRED,
        ):
            return "admin"
        return "vesting"


class VestingEvent(Base):
    """
    Append-only record of every notification the engine emits.

    Written in the same commit as the state change it describes, so the log
    never contains an event for a change that was rolled back.
    """
    __tablename__ = "vesting_events"

    id = Column(Integer, primary_key=True, autoincrement=True)
    event_type = Column(SQLEnum(VestingEventType), nullable=False, index=True)

    # Engine clock at emission (Unix seconds)
    timestamp = Column(BigInteger, nullable=False, index=True)
    created_at = Column(DateTime, default=datetime.utcnow)

    beneficiary = Column(String(64), nullable=True, index=True)
    asset = Column(String(64), nullable=True, index=True)
    amount = Column(Amount, nullable=True)
    schedule_index = Column(Integer, nullable=True)

    # Event-specific fields (start/end for locks, swept amount for revocations, ...)
    data = Column(JSON, nullable=True)

    triggered_by = Column(String(64), nullable=True)

    __table_args__ = (
        Index("ix_vesting_events_beneficiary_index", "beneficiary", "schedule_index"),
    )

    def to_message(self) -> dict:
        """Serializable form used for WebSocket broadcasts"""
        return {
            "id": self.id,
            "event_type": self.event_type.value,
            "timestamp": self.timestamp,
            "beneficiary": self.beneficiary,
            "asset": self.asset,
            "amount": str(self.amount) if self.amount is not None else None,
            "schedule_index": self.schedule_index,
            "data": self.data,
            "triggered_by": self.triggered_by,
        }

    def __repr__(self):
        return f"<VestingEvent {self.event_type.value} {self.beneficiary} {self.amount}>"
