"""TokenVest: token vesting schedules with claims, revocation and admin controls."""

__version__ = "0.1.0"
