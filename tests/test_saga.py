"""
Tests for the saga runner that sequences ledger writes.

These tests verify:
  - The state history of committed, rejected and failed mutations
  - Compensations run newest-first and only for steps that succeeded
  - Compensations are retried, and a compensation that never succeeds
    surfaces as CompensationFailedError chained to the original error
"""

import pytest

from trackhub.exceptions import (
    CompensationFailedError,
    StoreReadFailedError,
    StoreWriteFailedError,
    WalletNotFoundError,
)
from trackhub.services.saga import MutationState, Saga


class Recorder:
    """Collects the order in which actions ran."""

    def __init__(self):
        self.calls: list[str] = []

    def action(self, name: str, result=None):
        async def run():
            self.calls.append(name)
            return result

        return run

    def failing(self, name: str, failures: int | None = None):
        """An action that raises `failures` times (always, if None), then succeeds."""
        remaining = [failures]

        async def run():
            self.calls.append(name)
            if remaining[0] is None or remaining[0] > 0:
                if remaining[0] is not None:
                    remaining[0] -= 1
                raise StoreWriteFailedError("update", "wallets", f"{name} failed")

        return run


class TestSagaStates:
    async def test_committed_history(self):
        recorder = Recorder()
        saga = Saga("create_transfer", retry_delay=0)

        async with saga.validation():
            pass
        async with saga:
            await saga.step("insert", recorder.action("insert"),
                            state=MutationState.RECORD_WRITTEN)
            await saga.step("debit", recorder.action("debit"),
                            state=MutationState.BALANCES_RECONCILED)

        assert saga.state is MutationState.COMMITTED
        assert saga.history == [
            MutationState.PENDING,
            MutationState.VALIDATED,
            MutationState.RECORD_WRITTEN,
            MutationState.BALANCES_RECONCILED,
            MutationState.COMMITTED,
        ]

    async def test_failed_precondition_is_rejected(self):
        saga = Saga("create_transaction")

        with pytest.raises(WalletNotFoundError):
            async with saga.validation():
                raise WalletNotFoundError("missing")

        assert saga.state is MutationState.REJECTED
        assert saga.history == [MutationState.PENDING, MutationState.REJECTED]

    async def test_read_failure_during_validation_is_failed(self):
        saga = Saga("create_transaction")

        with pytest.raises(StoreReadFailedError):
            async with saga.validation():
                raise StoreReadFailedError("select", "wallets")

        assert saga.state is MutationState.FAILED

    async def test_cannot_run_without_validation(self):
        saga = Saga("create_transaction")

        with pytest.raises(RuntimeError):
            async with saga:
                pass

    async def test_step_returns_action_result(self):
        recorder = Recorder()
        saga = Saga("create_transaction")
        async with saga.validation():
            pass
        async with saga:
            row = await saga.step("insert", recorder.action("insert", {"id": 1}))

        assert row == {"id": 1}


class TestSagaCompensation:
    async def test_compensates_in_reverse_order(self):
        recorder = Recorder()
        saga = Saga("update_transfer", retry_delay=0)
        async with saga.validation():
            pass

        with pytest.raises(StoreWriteFailedError):
            async with saga:
                await saga.step("one", recorder.action("one"),
                                compensate=recorder.action("undo one"))
                await saga.step("two", recorder.action("two"),
                                compensate=recorder.action("undo two"))
                await saga.step("three", recorder.failing("three"),
                                compensate=recorder.action("undo three"))

        assert recorder.calls == ["one", "two", "three", "undo two", "undo one"]
        assert saga.state is MutationState.FAILED

    async def test_original_error_propagates_after_clean_rollback(self):
        recorder = Recorder()
        saga = Saga("create_transfer", retry_delay=0)
        async with saga.validation():
            pass

        with pytest.raises(StoreWriteFailedError) as exc_info:
            async with saga:
                await saga.step("insert", recorder.action("insert"),
                                compensate=recorder.action("delete"))
                await saga.step("debit", recorder.failing("debit"))

        assert not isinstance(exc_info.value, CompensationFailedError)
        assert str(exc_info.value) == "debit failed"

    async def test_compensation_is_retried(self):
        recorder = Recorder()
        saga = Saga("create_transfer", max_attempts=3, retry_delay=0)
        async with saga.validation():
            pass

        with pytest.raises(StoreWriteFailedError) as exc_info:
            async with saga:
                await saga.step("insert", recorder.action("insert"),
                                compensate=recorder.failing("delete", failures=2))
                await saga.step("debit", recorder.failing("debit"))

        assert not isinstance(exc_info.value, CompensationFailedError)
        assert recorder.calls == ["insert", "debit", "delete", "delete", "delete"]

    async def test_exhausted_compensation_raises_compensation_failed(self):
        recorder = Recorder()
        saga = Saga("create_transfer", max_attempts=2, retry_delay=0)
        async with saga.validation():
            pass

        with pytest.raises(CompensationFailedError) as exc_info:
            async with saga:
                await saga.step("insert transfer", recorder.action("insert"),
                                compensate=recorder.failing("delete"))
                await saga.step("debit source", recorder.action("debit"),
                                compensate=recorder.action("credit back"))
                await saga.step("credit destination", recorder.failing("credit"))

        error = exc_info.value
        assert error.mutation == "create_transfer"
        assert error.failed_steps == ["insert transfer"]
        assert isinstance(error.__cause__, StoreWriteFailedError)
        assert error.error_type == "compensation_failed"
        assert recorder.calls == [
            "insert", "debit", "credit", "credit back", "delete", "delete",
        ]

    async def test_failing_step_does_not_compensate_itself(self):
        recorder = Recorder()
        saga = Saga("delete_transaction", retry_delay=0)
        async with saga.validation():
            pass

        with pytest.raises(StoreWriteFailedError):
            async with saga:
                await saga.step("reverse", recorder.failing("reverse"),
                                compensate=recorder.action("re-apply"))

        assert recorder.calls == ["reverse"]

    async def test_non_store_errors_are_compensated_too(self):
        recorder = Recorder()
        saga = Saga("create_transaction", retry_delay=0)
        async with saga.validation():
            pass

        with pytest.raises(ValueError):
            async with saga:
                await saga.step("insert", recorder.action("insert"),
                                compensate=recorder.action("delete"))
                raise ValueError("boom")

        assert recorder.calls == ["insert", "delete"]
