"""Release policies: how much of a schedule has vested at a given time.

Two policies exist:

* Linear: the vested amount grows continuously between ``start_time`` and
  ``end_time``, truncated to whole units.
* Periodic: the vested amount grows in steps. Every elapsed
  ``release_interval`` unlocks ``release_percentage_bps`` of the total,
  capped at 100%.

Everything here is pure integer arithmetic over the fields of one schedule.
Revocation freezing is handled by the schedule model, which stops asking the
policy once a schedule is revoked.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Union

BPS_DENOMINATOR = 10_000


class PolicyKind(str, Enum):
    """Discriminator stored on each schedule"""
    LINEAR = "linear"
    PERIODIC = "periodic"


@dataclass(frozen=True)
class LinearRelease:
    """Continuous release, no extra parameters"""
    kind: PolicyKind = PolicyKind.LINEAR


@dataclass(frozen=True)
class PeriodicRelease:
    """Stepped release of a fixed share of the total per interval"""
    release_interval: int
    release_percentage_bps: int
    next_release_time: int
    kind: PolicyKind = PolicyKind.PERIODIC


ReleasePolicy = Union[LinearRelease, PeriodicRelease]


def linear_vested(total_amount: int, start_time: int, end_time: int, now: int) -> int:
    """Vested amount under continuous linear release."""
    if now <= start_time:
        return 0
    if now >= end_time:
        return total_amount
    return total_amount * (now - start_time) // (end_time - start_time)


def periods_elapsed(start_time: int, release_interval: int, now: int) -> int:
    """Number of whole release intervals between start_time and now (never negative)."""
    if now < start_time:
        return 0
    return (now - start_time) // release_interval


def unlocked_bps(start_time: int, release_interval: int, release_percentage_bps: int, now: int) -> int:
    """Cumulative unlocked share in basis points, capped at 100%."""
    periods = periods_elapsed(start_time, release_interval, now)
    return min(periods * release_percentage_bps, BPS_DENOMINATOR)


def periodic_vested(
    total_amount: int,
    start_time: int,
    release_interval: int,
    release_percentage_bps: int,
    now: int,
) -> int:
    """Vested amount under stepped basis-points release.

    The step count depends only on time since start, not on earlier claims,
    and the schedule may reach 100% before ``end_time``.
    """
    if now < start_time:
        return 0
    bps = unlocked_bps(start_time, release_interval, release_percentage_bps, now)
    return total_amount * bps // BPS_DENOMINATOR


def next_release_time(start_time: int, release_interval: int, now: int) -> int:
    """First step boundary ``start_time + k * release_interval`` strictly after now (k >= 1)."""
    k = max(1, periods_elapsed(start_time, release_interval, now) + 1)
    return start_time + k * release_interval


def vested_amount(
    policy: ReleasePolicy,
    total_amount: int,
    start_time: int,
    end_time: int,
    now: int,
) -> int:
    """Single dispatch point over the release policy variant."""
    match policy:
        case LinearRelease():
            return linear_vested(total_amount, start_time, end_time, now)
        case PeriodicRelease(release_interval=interval, release_percentage_bps=bps):
            return periodic_vested(total_amount, start_time, interval, bps, now)
        case _:
            raise TypeError(f"Unknown release policy: {policy!r}")
