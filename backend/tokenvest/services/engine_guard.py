"""Serialization and re-entrancy protection for engine mutations."""
import asyncio
from contextlib import asynccontextmanager
from contextvars import ContextVar
from typing import AsyncIterator, FrozenSet, Optional

import structlog

from tokenvest.errors import ReentrantCall

logger = structlog.get_logger()

# ids of the guards held by the current task (and anything it awaits)
_held_guards: ContextVar[FrozenSet[int]] = ContextVar("tokenvest_held_guards", default=frozenset())


class EngineGuard:
    """
    Single-writer lock for every state-mutating engine operation.

    Holding the guard covers the whole read / compute / transfer / write-back
    sequence. A mutation attempted from inside a held guard (for example a
    ledger transfer hook calling back into ``claim_tokens``) is rejected with
    ``ReentrantCall`` instead of waiting on the lock it already holds.
    """

    def __init__(self):
        self._lock = asyncio.Lock()
        self.operation: Optional[str] = None

    @property
    def busy(self) -> bool:
        return self._lock.locked()

    @asynccontextmanager
    async def exclusive(self, operation: str) -> AsyncIterator[None]:
        held = _held_guards.get()
        if id(self) in held:
            logger.warning("Rejected re-entrant engine call", operation=operation, in_flight=self.operation)
            raise ReentrantCall(
                f"{operation} called while {self.operation} is in flight",
                operation=operation,
                in_flight=self.operation,
            )

        token = _held_guards.set(held | {id(self)})
        try:
            async with self._lock:
                self.operation = operation
                try:
                    yield
                finally:
                    self.operation = None
        finally:
            _held_guards.reset(token)


# Singleton instance
_engine_guard: Optional[EngineGuard] = None


def get_engine_guard() -> EngineGuard:
    """Get or create the process-wide engine guard"""
    global _engine_guard
    if _engine_guard is None:
        _engine_guard = EngineGuard()
    return _engine_guard


def reset_engine_guard() -> None:
    """Drop the engine guard singleton (used on shutdown)"""
    global _engine_guard
    _engine_guard = None
