"""
Custom exception classes and FastAPI exception handlers.

The service layer raises domain-specific errors (like InsufficientBalanceError)
without importing HTTP concepts. The handlers registered here translate them
into consistent JSON responses: {"detail": ..., "error_type": ...}.

Exception hierarchy:
    TrackHubError (base)
    ├── ValidationError                — rejected before any write
    │   ├── InsufficientBalanceError   — expense/transfer exceeds wallet balance
    │   ├── SameWalletTransferError    — transfer source equals destination
    │   └── InvalidAmountError         — zero or negative amount
    ├── NotFoundError                  — id does not resolve for this user
    │   ├── WalletNotFoundError
    │   ├── TransactionNotFoundError
    │   ├── TransferNotFoundError
    │   └── CategoryNotFoundError
    ├── WalletInUseError               — wallet still referenced by the ledger
    └── StoreError                     — the record store rejected a call
        ├── StoreReadFailedError
        └── StoreWriteFailedError      — may follow other successful writes
            ├── ConcurrentModificationError — version check kept failing
            └── CompensationFailedError     — a rollback write itself failed
"""

import uuid

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse


# ---------------------------------------------------------------------------
# Base exception
# ---------------------------------------------------------------------------

class TrackHubError(Exception):
    """Base exception for all Track Hub domain errors."""

    error_type = "error"

    def __init__(self, detail: str = "An error occurred"):
        self.detail = detail
        super().__init__(self.detail)

    def extra(self) -> dict:
        """Additional JSON fields for the HTTP response."""
        return {}


# ---------------------------------------------------------------------------
# Validation errors (never cause partial writes)
# ---------------------------------------------------------------------------

class ValidationError(TrackHubError):
    """Raised when a mutation fails its preconditions."""

    error_type = "validation_error"


class InsufficientBalanceError(ValidationError):
    """
    Raised when an expense or transfer would take more than a wallet holds.

    Attributes:
        wallet_id: The wallet that lacks sufficient balance.
        requested_cents: The amount the mutation needs.
        available_cents: The balance the check was made against.
    """

    error_type = "insufficient_balance"

    def __init__(
        self,
        wallet_id: uuid.UUID,
        requested_cents: int,
        available_cents: int,
    ):
        self.wallet_id = wallet_id
        self.requested_cents = requested_cents
        self.available_cents = available_cents
        super().__init__(
            f"Insufficient balance in wallet: requested {requested_cents} cents, "
            f"available {available_cents} cents"
        )

    def extra(self) -> dict:
        return {
            "wallet_id": str(self.wallet_id),
            "requested_cents": self.requested_cents,
            "available_cents": self.available_cents,
        }


class SameWalletTransferError(ValidationError):
    """Raised when a transfer names the same wallet on both sides."""

    error_type = "same_wallet_transfer"

    def __init__(self, wallet_id: uuid.UUID):
        self.wallet_id = wallet_id
        super().__init__("Source and destination wallets cannot be the same")


class InvalidAmountError(ValidationError):
    """Raised when an amount is zero or negative."""

    error_type = "invalid_amount"

    def __init__(self, amount_cents: int):
        self.amount_cents = amount_cents
        super().__init__(f"Amount must be greater than 0, got {amount_cents} cents")


# ---------------------------------------------------------------------------
# Lookup errors
# ---------------------------------------------------------------------------

class NotFoundError(TrackHubError):
    """Raised when a requested record does not exist for the current user."""

    error_type = "not_found"
    resource = "Record"

    def __init__(self, record_id: uuid.UUID):
        self.record_id = record_id
        super().__init__(f"{self.resource} {record_id} not found")


class WalletNotFoundError(NotFoundError):
    error_type = "wallet_not_found"
    resource = "Wallet"


class TransactionNotFoundError(NotFoundError):
    error_type = "transaction_not_found"
    resource = "Transaction"


class TransferNotFoundError(NotFoundError):
    error_type = "transfer_not_found"
    resource = "Transfer"


class CategoryNotFoundError(NotFoundError):
    error_type = "category_not_found"
    resource = "Category"


class WalletInUseError(TrackHubError):
    """Raised when deleting a wallet that transactions or transfers reference."""

    error_type = "wallet_in_use"

    def __init__(self, wallet_id: uuid.UUID, references: int):
        self.wallet_id = wallet_id
        self.references = references
        super().__init__(
            f"Wallet {wallet_id} is referenced by {references} ledger record(s); "
            "delete them first"
        )


# ---------------------------------------------------------------------------
# Record store errors
# ---------------------------------------------------------------------------

class StoreError(TrackHubError):
    """Raised when the record store fails a call."""

    error_type = "store_error"

    def __init__(self, operation: str, table: str, detail: str | None = None):
        self.operation = operation
        self.table = table
        super().__init__(detail or f"Record store failed to {operation} {table}")


class StoreReadFailedError(StoreError):
    error_type = "store_read_failed"


class StoreWriteFailedError(StoreError):
    """
    Raised when the store rejects a write.

    Earlier writes of the same mutation may already have succeeded; the
    ledger engine compensates them before this reaches the caller.
    """

    error_type = "store_write_failed"


class ConcurrentModificationError(StoreWriteFailedError):
    """Raised when a wallet's version kept changing under a balance write."""

    error_type = "concurrent_modification"

    def __init__(self, wallet_id: uuid.UUID, attempts: int):
        self.wallet_id = wallet_id
        self.attempts = attempts
        super().__init__(
            "update",
            "wallets",
            f"Wallet {wallet_id} was modified concurrently; "
            f"gave up after {attempts} attempts",
        )


class CompensationFailedError(StoreWriteFailedError):
    """
    Raised when a mutation failed AND at least one rollback step also failed.

    The ledger may now be inconsistent; the failed step names are listed so
    the drift can be found with the wallet balance check.
    """

    error_type = "compensation_failed"

    def __init__(self, mutation: str, failed_steps: list[str], cause: BaseException):
        self.mutation = mutation
        self.failed_steps = failed_steps
        self.cause = cause
        super().__init__(
            "compensate",
            mutation,
            f"{mutation} failed ({cause}) and could not be rolled back: "
            f"{', '.join(failed_steps)}",
        )

    def extra(self) -> dict:
        return {"mutation": self.mutation, "failed_steps": self.failed_steps}


# ---------------------------------------------------------------------------
# FastAPI exception handlers
# ---------------------------------------------------------------------------

def _error_content(exc: TrackHubError) -> dict:
    return {"detail": exc.detail, "error_type": exc.error_type, **exc.extra()}


def register_exception_handlers(app: FastAPI) -> None:
    """
    Register custom exception handlers with the FastAPI application.

    Each handler maps one branch of the hierarchy to an HTTP status code and
    the JSON format {"detail", "error_type", ...extra}. Starlette picks the
    handler of the nearest class in the exception's MRO, so the
    ConcurrentModificationError and CompensationFailedError handlers win
    over the StoreError one.

    This is called once during app startup in main.py.
    """

    @app.exception_handler(ValidationError)
    async def validation_error_handler(
        request: Request, exc: ValidationError
    ) -> JSONResponse:
        return JSONResponse(
            status_code=422,  # Unprocessable Entity: business rules reject it
            content=_error_content(exc),
        )

    @app.exception_handler(NotFoundError)
    async def not_found_handler(
        request: Request, exc: NotFoundError
    ) -> JSONResponse:
        return JSONResponse(status_code=404, content=_error_content(exc))

    @app.exception_handler(WalletInUseError)
    async def wallet_in_use_handler(
        request: Request, exc: WalletInUseError
    ) -> JSONResponse:
        return JSONResponse(status_code=409, content=_error_content(exc))

    @app.exception_handler(StoreError)
    async def store_error_handler(
        request: Request, exc: StoreError
    ) -> JSONResponse:
        return JSONResponse(
            status_code=503,  # the record store, not the request, is at fault
            content=_error_content(exc),
        )

    @app.exception_handler(ConcurrentModificationError)
    async def concurrent_modification_handler(
        request: Request, exc: ConcurrentModificationError
    ) -> JSONResponse:
        return JSONResponse(
            status_code=409,  # Conflict: safe for the client to retry
            content=_error_content(exc),
        )

    @app.exception_handler(CompensationFailedError)
    async def compensation_failed_handler(
        request: Request, exc: CompensationFailedError
    ) -> JSONResponse:
        return JSONResponse(status_code=500, content=_error_content(exc))

    @app.exception_handler(TrackHubError)
    async def track_hub_error_handler(
        request: Request, exc: TrackHubError
    ) -> JSONResponse:
        return JSONResponse(status_code=400, content=_error_content(exc))
