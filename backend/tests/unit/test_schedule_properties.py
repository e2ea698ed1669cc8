"""
Property-based tests for schedule bookkeeping.

Claimable amounts stay within [0, total - claimed] through any sequence of
claims, each claim raises claimed_amount by exactly the claimable value, and a
revoked schedule never pays beyond its frozen vested amount.
"""
from hypothesis import given, strategies as st, settings

from tokenvest.models.vesting import VestingSchedule
from tokenvest.services.release_policy import BPS_DENOMINATOR, PolicyKind

START = 1_700_000_000


@st.composite
def schedules(draw):
    total = draw(st.integers(min_value=1, max_value=10 ** 24))
    duration = draw(st.integers(min_value=1, max_value=10 ** 8))
    periodic = draw(st.booleans())
    schedule = VestingSchedule(
        beneficiary="0xBeneficiary",
        schedule_index=0,
        asset="VEST",
        total_amount=total,
        claimed_amount=0,
        start_time=START,
        end_time=START + duration,
        revocable=True,
        revoked=False,
        policy_kind=PolicyKind.LINEAR.value,
    )
    if periodic:
        interval = draw(st.integers(min_value=1, max_value=10 ** 7))
        schedule.policy_kind = PolicyKind.PERIODIC.value
        schedule.release_interval = interval
        schedule.release_percentage_bps = draw(st.integers(min_value=1, max_value=BPS_DENOMINATOR))
        schedule.next_release_time = START + interval
    return schedule


claim_times = st.lists(
    st.integers(min_value=-(10 ** 6), max_value=2 * 10 ** 8),
    min_size=1,
    max_size=12,
).map(sorted)


class TestScheduleInvariants:

    @given(schedule=schedules(), times=claim_times)
    @settings(max_examples=150)
    def test_claims_stay_within_bounds(self, schedule, times):
        for offset in times:
            now = START + offset
            claimable = schedule.calculate_claimable(now)
            assert 0 <= claimable <= schedule.total_amount - schedule.claimed_amount

            before = schedule.claimed_amount
            schedule.claimed_amount = before + claimable
            assert schedule.claimed_amount - before == claimable

        assert schedule.claimed_amount <= schedule.total_amount

    @given(
        schedule=schedules(),
        revoke_at=st.integers(min_value=0, max_value=10 ** 8),
        later=st.integers(min_value=0, max_value=10 ** 9),
    )
    @settings(max_examples=150)
    def test_revocation_freezes_vested_amount(self, schedule, revoke_at, later):
        now = START + revoke_at
        frozen = schedule.calculate_vested(now)

        schedule.vested_at_revocation = frozen
        schedule.revoked = True

        assert schedule.calculate_vested(now + later) == frozen
        assert schedule.unvested_remainder(now + later) == schedule.total_amount - frozen
        assert 0 <= schedule.calculate_claimable(now + later) <= frozen
