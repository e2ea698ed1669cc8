"""
Property-based tests for release policy invariants.

Vested amounts must stay within [0, total], never decrease over time, and
the periodic policy may only change value on a step boundary.

Uses Hypothesis for property-based testing with random inputs.
"""
from hypothesis import given, strategies as st, settings, assume

from tokenvest.services.release_policy import (
    BPS_DENOMINATOR,
    linear_vested,
    next_release_time,
    periodic_vested,
)

totals = st.integers(min_value=1, max_value=10 ** 30)
starts = st.integers(min_value=0, max_value=2 ** 40)
durations = st.integers(min_value=1, max_value=10 ** 9)
intervals = st.integers(min_value=1, max_value=10 ** 7)
bps = st.integers(min_value=1, max_value=BPS_DENOMINATOR)
offsets = st.integers(min_value=-(10 ** 9), max_value=10 ** 10)


class TestLinearInvariants:
    """Property tests for continuous linear release"""

    @given(total=totals, start=starts, duration=durations, offset=offsets)
    @settings(max_examples=200)
    def test_bounded_by_total(self, total, start, duration, offset):
        vested = linear_vested(total, start, start + duration, start + offset)
        assert 0 <= vested <= total

    @given(total=totals, start=starts, duration=durations)
    def test_endpoints(self, total, start, duration):
        assert linear_vested(total, start, start + duration, start) == 0
        assert linear_vested(total, start, start + duration, start + duration) == total

    @given(total=totals, start=starts, duration=durations, a=offsets, b=offsets)
    @settings(max_examples=200)
    def test_non_decreasing(self, total, start, duration, a, b):
        early, late = sorted((a, b))
        end = start + duration
        assert linear_vested(total, start, end, start + early) <= linear_vested(total, start, end, start + late)


class TestPeriodicInvariants:
    """Property tests for stepped basis-points release"""

    @given(total=totals, start=starts, interval=intervals, step=bps, offset=offsets)
    @settings(max_examples=200)
    def test_bounded_by_total(self, total, start, interval, step, offset):
        vested = periodic_vested(total, start, interval, step, start + offset)
        assert 0 <= vested <= total

    @given(total=totals, start=starts, interval=intervals, step=bps, a=offsets, b=offsets)
    @settings(max_examples=200)
    def test_non_decreasing(self, total, start, interval, step, a, b):
        early, late = sorted((a, b))
        assert (
            periodic_vested(total, start, interval, step, start + early)
            <= periodic_vested(total, start, interval, step, start + late)
        )

    @given(
        total=totals,
        start=starts,
        interval=intervals,
        step=bps,
        k=st.integers(min_value=0, max_value=1000),
        within=st.integers(min_value=0, max_value=10 ** 7),
    )
    @settings(max_examples=200)
    def test_constant_between_boundaries(self, total, start, interval, step, k, within):
        """Value only changes at start + k * interval"""
        assume(within < interval)
        boundary = start + k * interval
        assert (
            periodic_vested(total, start, interval, step, boundary)
            == periodic_vested(total, start, interval, step, boundary + within)
        )

    @given(
        total=totals,
        start=starts,
        interval=intervals,
        step=bps,
        extra=st.integers(min_value=0, max_value=10 ** 7),
    )
    def test_full_once_steps_reach_100_percent(self, total, start, interval, step, extra):
        periods_to_full = -(-BPS_DENOMINATOR // step)  # ceil
        now = start + periods_to_full * interval + extra
        assert periodic_vested(total, start, interval, step, now) == total

    @given(start=starts, interval=intervals, offset=offsets)
    @settings(max_examples=200)
    def test_next_release_is_a_future_boundary(self, start, interval, offset):
        now = start + offset
        upcoming = next_release_time(start, interval, now)
        assert upcoming > now
        assert upcoming >= start + interval
        assert (upcoming - start) % interval == 0
