"""
Saga runner — sequencing and compensation for multi-step ledger mutations.

The record store makes each write atomic on its own but offers nothing that
spans two writes. A ledger mutation (e.g. "insert a transfer, debit the
source, credit the destination") is therefore run as a saga: a list of
forward steps, each of which may register a compensating action. If a later
step fails, the compensations of the steps that already succeeded run in
reverse order.

Lifecycle of one mutation:

    PENDING ──validation()──> VALIDATED ──steps──> RECORD_WRITTEN /
       │                                          BALANCES_RECONCILED
       └──> REJECTED (precondition failed,                 │
                      nothing written)                     ├──> COMMITTED
                                                           └──> FAILED

Usage:

    saga = Saga("create_transfer")
    async with saga.validation():
        ...reads and precondition checks...
    async with saga:
        await saga.step("insert transfer", partial(store.insert, ...),
                        compensate=partial(store.delete, ...),
                        state=MutationState.RECORD_WRITTEN)
        ...

Compensation failures:
  Each compensating action is retried (COMPENSATION_MAX_ATTEMPTS, linear
  backoff). If one still fails, the saga raises CompensationFailedError
  naming the steps that could not be undone, chained to the original error.
  Otherwise the original error propagates unchanged.
"""

import asyncio
import enum
from collections.abc import Awaitable, Callable
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Any, TypeVar

from trackhub.config import settings
from trackhub.exceptions import CompensationFailedError, NotFoundError, ValidationError
from trackhub.logging_setup import get_logger

logger = get_logger("trackhub.services.saga")

T = TypeVar("T")


class MutationState(str, enum.Enum):
    """States a single ledger mutation passes through."""
    PENDING = "pending"
    VALIDATED = "validated"
    RECORD_WRITTEN = "record_written"
    BALANCES_RECONCILED = "balances_reconciled"
    COMMITTED = "committed"
    REJECTED = "rejected"
    FAILED = "failed"


TERMINAL_STATES = frozenset(
    {MutationState.COMMITTED, MutationState.REJECTED, MutationState.FAILED}
)


@dataclass
class _Compensation:
    step: str
    action: Callable[[], Awaitable[Any]]


class Saga:
    """One multi-step mutation with reverse-order compensation."""

    def __init__(
        self,
        name: str,
        *,
        max_attempts: int | None = None,
        retry_delay: float | None = None,
    ):
        self.name = name
        self.state = MutationState.PENDING
        self.history: list[MutationState] = [MutationState.PENDING]
        self._compensations: list[_Compensation] = []
        self._max_attempts = max_attempts or settings.COMPENSATION_MAX_ATTEMPTS
        self._retry_delay = (
            settings.COMPENSATION_RETRY_DELAY_SECONDS if retry_delay is None else retry_delay
        )

    def _transition(self, state: MutationState) -> None:
        if self.state in TERMINAL_STATES:
            raise RuntimeError(f"{self.name} already finished as {self.state.value}")
        logger.debug("%s: %s -> %s", self.name, self.state.value, state.value)
        self.state = state
        self.history.append(state)

    @asynccontextmanager
    async def validation(self):
        """
        Wrap the read-and-check phase.

        Precondition failures (ValidationError, NotFoundError) move the saga
        to REJECTED; any other error (e.g. a store read failure) to FAILED.
        Nothing has been written yet in either case.
        """
        try:
            yield self
        except (ValidationError, NotFoundError) as exc:
            self._transition(MutationState.REJECTED)
            logger.info("%s rejected: %s", self.name, exc.detail)
            raise
        except Exception:
            self._transition(MutationState.FAILED)
            raise
        self._transition(MutationState.VALIDATED)

    async def __aenter__(self) -> "Saga":
        if self.state is not MutationState.VALIDATED:
            raise RuntimeError(
                f"{self.name} must be validated before running (state: {self.state.value})"
            )
        return self

    async def __aexit__(self, exc_type, exc, tb) -> bool:
        if exc is None:
            self._transition(MutationState.COMMITTED)
            return False

        self._transition(MutationState.FAILED)
        if not isinstance(exc, Exception):
            # Cancellation / interpreter exit: leave the store as it is
            return False

        logger.warning("%s failed: %s", self.name, exc)
        failed_steps = await self._compensate()
        if failed_steps:
            raise CompensationFailedError(self.name, failed_steps, exc) from exc
        return False

    async def step(
        self,
        name: str,
        action: Callable[[], Awaitable[T]],
        *,
        compensate: Callable[[], Awaitable[Any]] | None = None,
        state: MutationState | None = None,
    ) -> T:
        """
        Run one forward step.

        The compensation is registered only after the action succeeded, so
        a failing step never undoes itself.

        Args:
            name: Step label used in logs and CompensationFailedError.
            action: Zero-argument coroutine factory performing the write.
            compensate: Zero-argument coroutine factory undoing the write.
            state: State to enter once the step succeeded.

        Returns:
            Whatever the action returned.
        """
        result = await action()
        logger.debug("%s: step %r done", self.name, name)
        if compensate is not None:
            self._compensations.append(_Compensation(name, compensate))
        if state is not None:
            self._transition(state)
        return result

    async def _compensate(self) -> list[str]:
        """Undo succeeded steps newest-first; return the steps that stayed applied."""
        failed: list[str] = []
        for compensation in reversed(self._compensations):
            for attempt in range(1, self._max_attempts + 1):
                try:
                    await compensation.action()
                    logger.info("%s: compensated %r", self.name, compensation.step)
                    break
                except Exception as exc:
                    logger.warning(
                        "%s: compensating %r failed (attempt %d/%d): %s",
                        self.name, compensation.step, attempt, self._max_attempts, exc,
                    )
                    if attempt < self._max_attempts:
                        await asyncio.sleep(self._retry_delay * attempt)
            else:
                logger.error(
                    "%s: could not compensate %r; ledger may be inconsistent",
                    self.name, compensation.step,
                )
                failed.append(compensation.step)
        self._compensations.clear()
        return failed
