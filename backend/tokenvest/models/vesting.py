"""Vesting schedule models"""
from datetime import datetime
from typing import Optional

from sqlalchemy import Column, Integer, String, BigInteger, Boolean, DateTime, UniqueConstraint

from tokenvest.models.database import Base, Amount
from tokenvest.services.release_policy import (
    LinearRelease,
    PeriodicRelease,
    PolicyKind,
    ReleasePolicy,
    vested_amount,
)


class VestingSchedule(Base):
    """Vesting schedule for a beneficiary.

    Records are appended per beneficiary and addressed by a zero-based
    ``schedule_index``. They are never deleted: only ``claimed_amount``,
    ``next_release_time`` and the revocation fields change after creation.
    """
    __tablename__ = "vesting_schedules"
    __table_args__ = (
        UniqueConstraint("beneficiary", "schedule_index", name="uq_vesting_schedules_beneficiary_index"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    beneficiary = Column(String(64), nullable=False, index=True)
    schedule_index = Column(Integer, nullable=False)
    asset = Column(String(64), nullable=False, index=True)
    total_amount = Column(Amount, nullable=False)
    claimed_amount = Column(Amount, nullable=False, default=0)
    start_time = Column(BigInteger, nullable=False)  # Unix seconds
    end_time = Column(BigInteger, nullable=False)
    revocable = Column(Boolean, nullable=False, default=False)
    revoked = Column(Boolean, nullable=False, default=False)

    # Release policy (periodic fields are null for linear schedules)
    policy_kind = Column(String(10), nullable=False, default=PolicyKind.LINEAR.value)
    release_interval = Column(BigInteger, nullable=True)
    release_percentage_bps = Column(Integer, nullable=True)
    next_release_time = Column(BigInteger, nullable=True)

    # Revocation
    vested_at_revocation = Column(Amount, nullable=True)
    revoked_at = Column(BigInteger, nullable=True)
    revoked_by = Column(String(64), nullable=True)

    created_by = Column(String(64), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    @property
    def is_periodic(self) -> bool:
        return self.policy_kind == PolicyKind.PERIODIC.value

    @property
    def policy(self) -> ReleasePolicy:
        """The release policy variant for this schedule"""
        if self.is_periodic:
            return PeriodicRelease(
                release_interval=self.release_interval,
                release_percentage_bps=self.release_percentage_bps,
                next_release_time=self.next_release_time,
            )
        return LinearRelease()

    @property
    def duration(self) -> int:
        return self.end_time - self.start_time

    @property
    def is_fully_claimed(self) -> bool:
        return self.claimed_amount == self.total_amount

    def calculate_vested(self, now: int) -> int:
        """Cumulative vested amount at ``now``.

        A revoked schedule stays at the amount vested when it was revoked.
        """
        if self.revoked:
            return self.vested_at_revocation or 0
        return vested_amount(self.policy, self.total_amount, self.start_time, self.end_time, now)

    def calculate_claimable(self, now: int) -> int:
        """Vested but not yet claimed amount at ``now``"""
        return self.calculate_vested(now) - self.claimed_amount

    def unvested_remainder(self, now: int) -> int:
        return self.total_amount - self.calculate_vested(now)

    def __repr__(self):
        return (
            f"<VestingSchedule {self.beneficiary[:10]}#{self.schedule_index} "
            f"({self.total_amount} {self.asset}, {self.policy_kind})>"
        )


def describe_release(schedule: VestingSchedule) -> Optional[PeriodicRelease]:
    """Periodic release parameters of a schedule, or None for linear schedules"""
    policy = schedule.policy
    if isinstance(policy, PeriodicRelease):
        return policy
    return None
