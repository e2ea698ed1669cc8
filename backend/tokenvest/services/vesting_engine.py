"""Vesting engine: schedule creation, claims, revocation and admin controls."""
import asyncio
import time
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import AsyncIterator, Awaitable, Callable, List, Optional, Protocol

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from tokenvest.config import Settings, get_settings
from tokenvest.errors import (
    AdmissionError,
    AlreadyRevoked,
    AssetNotSupported,
    InvalidAmount,
    InvalidDuration,
    InvalidReleaseParameters,
    NoClaimableTokens,
    NotOwner,
    NotRevocable,
    Paused,
    UnauthorizedCaller,
)
from tokenvest.models.engine_state import EngineState, ENGINE_STATE_ID
from tokenvest.models.vesting import VestingSchedule, describe_release
from tokenvest.models.vesting_event import VestingEvent, VestingEventType
from tokenvest.services.asset_ledger import AssetLedger
from tokenvest.services.asset_registry import AssetRegistry
from tokenvest.services.engine_guard import EngineGuard, get_engine_guard
from tokenvest.services.event_service import EventService
from tokenvest.services.release_policy import (
    BPS_DENOMINATOR,
    PeriodicRelease,
    PolicyKind,
    next_release_time,
)
from tokenvest.services.schedule_store import ScheduleStore

logger = structlog.get_logger()

# Timestamps and intervals are stored in BIGINT columns
MAX_TIMESTAMP = 2 ** 63 - 1


class EventPublisher(Protocol):
    async def publish_event(self, event: VestingEvent) -> None:
        ...


@dataclass
class RevocationResult:
    """Outcome of revoking a schedule"""
    vested_amount: int  # frozen ceiling for the beneficiary
    returned_amount: int  # unvested remainder sent back to the administrator
    claimable_amount: int


def _is_int(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


class VestingEngine:
    """
    Orchestrates the asset registry, schedule store, release policies and the
    asset ledger.

    Every mutating operation runs under the engine guard and is all-or-nothing:
    bookkeeping and the notification are staged and flushed, then the ledger
    transfer and the commit run as one shielded step. Anything that fails or is
    cancelled before that step rolls the session back and moves no funds; once
    funds have moved, a cancellation waits for the commit to land.
    Queries never take the guard.
    """

    def __init__(
        self,
        db: AsyncSession,
        ledger: AssetLedger,
        guard: Optional[EngineGuard] = None,
        clock: Optional[Callable[[], int]] = None,
        settings: Optional[Settings] = None,
        publisher: Optional[EventPublisher] = None,
    ):
        self.db = db
        self.ledger = ledger
        self.guard = guard or get_engine_guard()
        self.settings = settings or get_settings()
        self.publisher = publisher
        self._clock = clock or (lambda: int(time.time()))

        self.registry = AssetRegistry(db)
        self.store = ScheduleStore(db)
        self.events = EventService(db)
        self._pending_events: List[VestingEvent] = []

    @property
    def custody(self) -> str:
        return self.settings.custody_address

    def _now(self) -> int:
        timestamp = self._clock()
        try:
            return int(timestamp)
        except (TypeError, ValueError) as exc:
            raise ValueError("clock must return an integer timestamp") from exc

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    async def ensure_state(self) -> EngineState:
        """Load the engine state row, creating it from settings on first use"""
        result = await self.db.execute(
            select(EngineState).where(EngineState.id == ENGINE_STATE_ID)
        )
        state = result.scalar_one_or_none()
        if state is None:
            state = EngineState(
                id=ENGINE_STATE_ID,
                admin_address=self.settings.admin_address,
                paused=False,
            )
            self.db.add(state)
            await self.db.flush()
            logger.info("Initialized engine state", admin=state.admin_address)
        return state

    async def _require_admin(self, caller: str, operation: str) -> EngineState:
        state = await self.ensure_state()
        if caller != state.admin_address:
            raise NotOwner(
                f"{operation} is restricted to the administrator",
                caller=caller,
                operation=operation,
            )
        return state

    @staticmethod
    def _require_not_paused(state: EngineState, operation: str) -> None:
        if state.paused:
            raise Paused(f"{operation} is unavailable while the engine is paused", operation=operation)

    @asynccontextmanager
    async def _operation(self, name: str) -> AsyncIterator[None]:
        """Exclusive all-or-nothing unit of work"""
        async with self.guard.exclusive(name):
            self._pending_events = []
            try:
                yield
                await self.db.commit()
            except BaseException:
                await self.db.rollback()
                self._pending_events = []
                raise
        published, self._pending_events = self._pending_events, []
        for event in published:
            await self._publish(event)

    async def _settle(self, transfer: Awaitable[None]) -> None:
        """Move funds and commit as a unit that cancellation cannot split.

        Everything else the operation writes must already be flushed.
        """
        step = asyncio.ensure_future(self._transfer_and_commit(transfer))
        try:
            await asyncio.shield(step)
        except asyncio.CancelledError:
            if not step.done():
                logger.warning("Cancelled during settlement, waiting for commit")
                await asyncio.wait({step})
                if step.exception() is not None:
                    logger.error("Settlement failed after cancellation", error=str(step.exception()))
            raise

    async def _transfer_and_commit(self, transfer: Awaitable[None]) -> None:
        await transfer
        await self.db.commit()

    async def _emit(self, event_type: VestingEventType, now: int, **fields) -> VestingEvent:
        event = await self.events.record(event_type=event_type, timestamp=now, **fields)
        self._pending_events.append(event)
        return event

    async def _publish(self, event: VestingEvent) -> None:
        if self.publisher is None:
            return
        try:
            await self.publisher.publish_event(event)
        except Exception as e:
            # The state change is already committed; only the live feed misses it
            logger.error("Failed to publish event", event_id=event.id, error=str(e))

    # ------------------------------------------------------------------
    # Asset registry
    # ------------------------------------------------------------------

    async def add_supported_asset(self, caller: str, asset: str) -> None:
        async with self._operation("add_supported_asset"):
            now = self._now()
            await self._require_admin(caller, "add_supported_asset")
            changed = await self.registry.set_supported(asset, True, updated_by=caller)
            await self._emit(VestingEventType.TOKEN_SUPPORTED, now, asset=asset, triggered_by=caller)
        logger.info("Asset supported", asset=asset, changed=changed)

    async def remove_supported_asset(self, caller: str, asset: str) -> None:
        async with self._operation("remove_supported_asset"):
            now = self._now()
            await self._require_admin(caller, "remove_supported_asset")
            changed = await self.registry.set_supported(asset, False, updated_by=caller)
            await self._emit(VestingEventType.TOKEN_UNSUPPORTED, now, asset=asset, triggered_by=caller)
        logger.info("Asset unsupported", asset=asset, changed=changed)

    async def is_supported(self, asset: str) -> bool:
        return await self.registry.is_supported(asset)

    async def list_supported_assets(self) -> List[str]:
        return await self.registry.list_supported()

    # ------------------------------------------------------------------
    # Creation
    # ------------------------------------------------------------------

    async def create_vesting_schedule(
        self,
        caller: str,
        beneficiary: str,
        asset: str,
        total_amount: int,
        start_time: int,
        duration: int,
        revocable: bool = False,
    ) -> int:
        """Lock ``total_amount`` for continuous linear release. Returns the schedule index."""
        return await self._create(
            caller, beneficiary, asset, total_amount, start_time, duration, revocable
        )

    async def create_vesting_schedule_with_release(
        self,
        caller: str,
        beneficiary: str,
        asset: str,
        total_amount: int,
        start_time: int,
        duration: int,
        release_interval: int,
        release_percentage_bps: int,
        revocable: bool = False,
    ) -> int:
        """Lock ``total_amount`` for stepped release. Returns the schedule index."""
        return await self._create(
            caller,
            beneficiary,
            asset,
            total_amount,
            start_time,
            duration,
            revocable,
            release_interval=release_interval,
            release_percentage_bps=release_percentage_bps,
        )

    async def _create(
        self,
        caller: str,
        beneficiary: str,
        asset: str,
        total_amount: int,
        start_time: int,
        duration: int,
        revocable: bool,
        release_interval: Optional[int] = None,
        release_percentage_bps: Optional[int] = None,
    ) -> int:
        periodic = release_interval is not None or release_percentage_bps is not None

        async with self._operation("create_vesting_schedule"):
            now = self._now()
            state = await self._require_admin(caller, "create_vesting_schedule")
            self._require_not_paused(state, "create_vesting_schedule")

            if not await self.registry.is_supported(asset):
                raise AssetNotSupported(f"Asset {asset} is not supported", asset=asset)
            if not _is_int(total_amount) or total_amount <= 0:
                raise InvalidAmount("Total amount must be a positive integer", total_amount=total_amount)
            if not _is_int(duration) or duration <= 0:
                raise InvalidDuration("Duration must be a positive integer", duration=duration)
            if not _is_int(start_time) or start_time < 0:
                raise InvalidDuration("Start time must be a non-negative integer", start_time=start_time)
            if start_time + duration > MAX_TIMESTAMP:
                raise InvalidDuration(
                    f"Start time plus duration must not exceed {MAX_TIMESTAMP}",
                    start_time=start_time,
                    duration=duration,
                )
            if periodic:
                if not _is_int(release_interval) or release_interval <= 0:
                    raise InvalidReleaseParameters(
                        "Release interval must be a positive integer",
                        release_interval=release_interval,
                    )
                if start_time + release_interval > MAX_TIMESTAMP:
                    raise InvalidReleaseParameters(
                        f"First release must not be later than {MAX_TIMESTAMP}",
                        release_interval=release_interval,
                    )
                if not _is_int(release_percentage_bps) or not 0 < release_percentage_bps <= BPS_DENOMINATOR:
                    raise InvalidReleaseParameters(
                        f"Release percentage must be in (0, {BPS_DENOMINATOR}] basis points",
                        release_percentage_bps=release_percentage_bps,
                    )
            if not beneficiary:
                raise AdmissionError("Beneficiary cannot be empty")

            schedule = VestingSchedule(
                beneficiary=beneficiary,
                asset=asset,
                total_amount=total_amount,
                claimed_amount=0,
                start_time=start_time,
                end_time=start_time + duration,
                revocable=bool(revocable),
                revoked=False,
                policy_kind=PolicyKind.PERIODIC.value if periodic else PolicyKind.LINEAR.value,
                release_interval=release_interval,
                release_percentage_bps=release_percentage_bps,
                next_release_time=start_time + release_interval if periodic else None,
                created_by=caller,
            )
            await self.store.append(schedule)

            await self._emit(
                VestingEventType.TOKENS_LOCKED,
                now,
                beneficiary=beneficiary,
                asset=asset,
                amount=total_amount,
                schedule_index=schedule.schedule_index,
                data={
                    "start_time": schedule.start_time,
                    "end_time": schedule.end_time,
                    "policy": schedule.policy_kind,
                    "release_interval": release_interval,
                    "release_percentage_bps": release_percentage_bps,
                    "revocable": schedule.revocable,
                },
                triggered_by=caller,
            )
            index = schedule.schedule_index
            await self._settle(self.ledger.transfer_into(asset, self.custody, caller, total_amount))

        logger.info(
            "Tokens locked",
            beneficiary=beneficiary,
            asset=asset,
            amount=total_amount,
            schedule_index=index,
            periodic=periodic,
        )
        return index

    # ------------------------------------------------------------------
    # Claim
    # ------------------------------------------------------------------

    async def claim_tokens(self, caller: str, index: int, beneficiary: Optional[str] = None) -> int:
        """
        Pay out everything vested and not yet claimed on a schedule.

        ``beneficiary`` defaults to the caller. Claiming for someone else is
        only allowed when ``claim_mode`` is ``"anyone"``; funds always go to
        the beneficiary.

        Returns:
            The amount transferred
        """
        beneficiary = beneficiary or caller
        if beneficiary != caller and self.settings.claim_mode != "anyone":
            raise UnauthorizedCaller(
                "Only the beneficiary may claim this schedule",
                caller=caller,
                beneficiary=beneficiary,
            )

        async with self._operation("claim_tokens"):
            now = self._now()
            state = await self.ensure_state()
            self._require_not_paused(state, "claim_tokens")

            schedule = await self.store.get_for_update(beneficiary, index)
            claimable = schedule.calculate_claimable(now)
            if claimable <= 0:
                raise NoClaimableTokens(
                    "Nothing is claimable on this schedule yet",
                    beneficiary=beneficiary,
                    index=index,
                )

            schedule.claimed_amount = schedule.claimed_amount + claimable
            if schedule.is_periodic:
                cursor = next_release_time(schedule.start_time, schedule.release_interval, now)
                schedule.next_release_time = max(schedule.next_release_time, cursor)
            await self.db.flush()

            await self._emit(
                VestingEventType.TOKENS_CLAIMED,
                now,
                beneficiary=beneficiary,
                asset=schedule.asset,
                amount=claimable,
                schedule_index=index,
                data={
                    "claimed_amount": str(schedule.claimed_amount),
                    "next_release_time": schedule.next_release_time,
                },
                triggered_by=caller,
            )
            asset = schedule.asset
            await self._settle(self.ledger.transfer_out(asset, self.custody, beneficiary, claimable))

        logger.info(
            "Tokens claimed",
            beneficiary=beneficiary,
            asset=asset,
            amount=claimable,
            schedule_index=index,
        )
        return claimable

    async def calculate_claimable_amount(self, beneficiary: str, index: int) -> int:
        schedule = await self.store.get(beneficiary, index)
        return schedule.calculate_claimable(self._now())

    # ------------------------------------------------------------------
    # Revocation
    # ------------------------------------------------------------------

    async def revoke_vesting(self, caller: str, beneficiary: str, index: int) -> RevocationResult:
        """
        Freeze a schedule at its current vested amount and return the unvested
        remainder to the administrator. The vested but unclaimed part stays
        claimable by the beneficiary.
        """
        async with self._operation("revoke_vesting"):
            now = self._now()
            state = await self._require_admin(caller, "revoke_vesting")

            schedule = await self.store.get_for_update(beneficiary, index)
            if schedule.revoked:
                raise AlreadyRevoked(
                    "Vesting schedule already revoked",
                    beneficiary=beneficiary,
                    index=index,
                )
            if not schedule.revocable:
                raise NotRevocable(
                    "Vesting schedule is not revocable",
                    beneficiary=beneficiary,
                    index=index,
                )

            vested_now = schedule.calculate_vested(now)
            returned = schedule.total_amount - vested_now

            schedule.vested_at_revocation = vested_now
            schedule.revoked = True
            schedule.revoked_at = now
            schedule.revoked_by = caller
            await self.db.flush()

            await self._emit(
                VestingEventType.VESTING_REVOKED,
                now,
                beneficiary=beneficiary,
                asset=schedule.asset,
                amount=vested_now,
                schedule_index=index,
                data={
                    "returned_amount": str(returned),
                    "returned_to": state.admin_address,
                    "claimed_amount": str(schedule.claimed_amount),
                },
                triggered_by=caller,
            )
            result = RevocationResult(
                vested_amount=vested_now,
                returned_amount=returned,
                claimable_amount=vested_now - schedule.claimed_amount,
            )
            if returned > 0:
                await self._settle(
                    self.ledger.transfer_out(schedule.asset, self.custody, state.admin_address, returned)
                )

        logger.info(
            "Vesting revoked",
            beneficiary=beneficiary,
            schedule_index=index,
            vested=result.vested_amount,
            returned=result.returned_amount,
        )
        return result

    # ------------------------------------------------------------------
    # Admin controller
    # ------------------------------------------------------------------

    async def pause(self, caller: str) -> bool:
        """Pause creation and claims. Returns False if already paused."""
        return await self._set_paused(caller, True)

    async def unpause(self, caller: str) -> bool:
        """Resume creation and claims. Returns False if not paused."""
        return await self._set_paused(caller, False)

    async def _set_paused(self, caller: str, paused: bool) -> bool:
        operation = "pause" if paused else "unpause"
        async with self._operation(operation):
            now = self._now()
            state = await self._require_admin(caller, operation)
            if state.paused == paused:
                logger.info("Pause state unchanged", paused=paused, caller=caller)
                return False

            state.paused = paused
            state.paused_by = caller if paused else None
            await self.db.flush()
            await self._emit(
                VestingEventType.PAUSED if paused else VestingEventType.UNPAUSED,
                now,
                data={"account": caller},
                triggered_by=caller,
            )

        if paused:
            logger.warning("Engine paused", caller=caller)
        else:
            logger.info("Engine unpaused", caller=caller)
        return True

    async def transfer_administration(self, caller: str, new_admin: str) -> None:
        """Hand the administrator role to ``new_admin`` in a single commit."""
        if not new_admin:
            raise AdmissionError("New administrator cannot be empty")

        async with self._operation("transfer_administration"):
            now = self._now()
            state = await self._require_admin(caller, "transfer_administration")
            state.admin_address = new_admin
            await self.db.flush()
            await self._emit(
                VestingEventType.ADMINISTRATION_TRANSFERRED,
                now,
                data={"previous_admin": caller, "new_admin": new_admin},
                triggered_by=caller,
            )

        logger.warning("Administration transferred", previous_admin=caller, new_admin=new_admin)

    async def is_paused(self) -> bool:
        return (await self.ensure_state()).paused

    async def administrator(self) -> str:
        return (await self.ensure_state()).admin_address

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    async def get_vesting_schedule(self, beneficiary: str, index: int) -> VestingSchedule:
        return await self.store.get(beneficiary, index)

    async def get_vesting_schedule_count(self, beneficiary: str) -> int:
        return await self.store.count(beneficiary)

    async def get_release_schedule(self, beneficiary: str, index: int) -> Optional[PeriodicRelease]:
        """Release parameters of a periodic schedule; None for linear schedules"""
        schedule = await self.store.get(beneficiary, index)
        return describe_release(schedule)

    async def list_vesting_schedules(self, beneficiary: str) -> List[VestingSchedule]:
        return await self.store.list_for(beneficiary)

    def now(self) -> int:
        """Current engine time"""
        return self._now()
