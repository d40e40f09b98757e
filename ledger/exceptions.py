"""
Domain exception classes and FastAPI exception handlers.

The ledger engine raises these errors without knowing anything about HTTP.
The handlers at the bottom of this module translate them into responses, so
engine code stays testable without a web server and every endpoint reports
errors the same way: {"detail": "...", "error_type": "...", ...fields}.

Exception hierarchy:
    LedgerError (base)
    ├── InvalidAmountError         — amount <= 0, not a number, sub-cent, too large
    ├── AccountNotFoundError       — account reference does not resolve
    ├── UserNotFoundError          — user reference does not resolve
    ├── TransactionNotFoundError   — transaction id does not resolve
    ├── UserAlreadyExistsError     — duplicate phone / email / account number
    ├── InsufficientFundsError     — transfer larger than the source balance
    ├── BalanceLimitExceededError  — credit would push a balance past the limit
    ├── SameAccountTransferError   — source and destination are the same
    └── StorageUnavailableError    — store unreachable or unit aborted
        └── OperationTimeoutError  — unit exceeded its deadline

Every rejection is raised before or inside an atomic unit and aborts it, so
a caller that sees any of these knows nothing was applied.
"""

import uuid
from decimal import Decimal

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse


# ---------------------------------------------------------------------------
# Base exception
# ---------------------------------------------------------------------------

class LedgerError(Exception):
    """Base exception for all ledger domain errors."""

    error_type = "ledger_error"

    def __init__(self, detail: str = "An error occurred"):
        self.detail = detail
        super().__init__(self.detail)


# ---------------------------------------------------------------------------
# Domain exceptions
# ---------------------------------------------------------------------------

class InvalidAmountError(LedgerError):
    """Raised when an amount is not a positive, two-place decimal."""

    error_type = "invalid_amount"

    def __init__(self, amount):
        self.amount = amount
        super().__init__(f"Invalid amount: {amount!r}")


class AccountNotFoundError(LedgerError):
    """Raised when a referenced account does not exist."""

    error_type = "account_not_found"

    def __init__(self, account_id: uuid.UUID):
        self.account_id = account_id
        super().__init__(f"Account {account_id} not found")


class UserNotFoundError(LedgerError):
    """Raised when a referenced user does not exist."""

    error_type = "user_not_found"

    def __init__(self, user_id: uuid.UUID):
        self.user_id = user_id
        super().__init__(f"User {user_id} not found")


class TransactionNotFoundError(LedgerError):
    """Raised when a transaction id does not resolve."""

    error_type = "transaction_not_found"

    def __init__(self, transaction_id: uuid.UUID):
        self.transaction_id = transaction_id
        super().__init__(f"Transaction {transaction_id} not found")


class UserAlreadyExistsError(LedgerError):
    """
    Raised when registration collides with an existing unique value.

    Attributes:
        field: Which natural key collided ("phone_number", "email",
            "account_number"), or None when the database reported the
            violation without saying which constraint fired.
        value: The colliding value, when known.
    """

    error_type = "user_already_exists"

    def __init__(self, field: str | None = None, value: str | None = None):
        self.field = field
        self.value = value
        if field is None:
            super().__init__("User already exists")
        else:
            super().__init__(f"User with {field} {value} already exists")


class InsufficientFundsError(LedgerError):
    """
    Raised when a transfer would take the source balance below zero.

    Attributes:
        account_id: The source account.
        balance: The source balance read inside the atomic unit.
        amount: The amount the caller tried to move.
    """

    error_type = "insufficient_funds"

    def __init__(self, account_id: uuid.UUID, balance: Decimal, amount: Decimal):
        self.account_id = account_id
        self.balance = balance
        self.amount = amount
        super().__init__(
            f"Insufficient funds: balance = {balance}, amount = {amount}"
        )


class BalanceLimitExceededError(LedgerError):
    """
    Raised when a credit would take a balance above MAX_AMOUNT.

    Attributes:
        account_id: The account that would be credited.
        balance: Its balance read inside the atomic unit.
        amount: The amount the caller tried to add.
    """

    error_type = "balance_limit_exceeded"

    def __init__(self, account_id: uuid.UUID, balance: Decimal, amount: Decimal):
        self.account_id = account_id
        self.balance = balance
        self.amount = amount
        super().__init__(
            f"Balance limit exceeded: balance = {balance}, amount = {amount}"
        )


class SameAccountTransferError(LedgerError):
    """Raised when a transfer names the same account on both sides."""

    error_type = "same_account_transfer"

    def __init__(self, account_id: uuid.UUID):
        self.account_id = account_id
        super().__init__("Cannot transfer to the same account")


class StorageUnavailableError(LedgerError):
    """
    Raised when the store fails for infrastructure reasons.

    The atomic unit has already been rolled back when this surfaces, so
    retrying the whole operation is always safe.
    """

    error_type = "storage_unavailable"

    def __init__(self, reason: str = "Storage unavailable"):
        self.reason = reason
        super().__init__(reason)


class OperationTimeoutError(StorageUnavailableError):
    """Raised when an atomic unit runs past its deadline."""

    error_type = "operation_timeout"

    def __init__(self, timeout: float | None):
        self.timeout = timeout
        super().__init__(f"Operation exceeded its {timeout}s deadline")


# ---------------------------------------------------------------------------
# FastAPI exception handlers
# ---------------------------------------------------------------------------

def register_exception_handlers(app: FastAPI) -> None:
    """
    Register handlers that map ledger errors to HTTP responses.

    Called once from main.py while the app is built.
    """

    @app.exception_handler(InvalidAmountError)
    async def invalid_amount_handler(
        request: Request, exc: InvalidAmountError
    ) -> JSONResponse:
        return JSONResponse(
            status_code=422,
            content={
                "detail": exc.detail,
                "error_type": exc.error_type,
                "amount": str(exc.amount),
            },
        )

    @app.exception_handler(AccountNotFoundError)
    async def account_not_found_handler(
        request: Request, exc: AccountNotFoundError
    ) -> JSONResponse:
        return JSONResponse(
            status_code=404,
            content={
                "detail": exc.detail,
                "error_type": exc.error_type,
                "account_id": str(exc.account_id),
            },
        )

    @app.exception_handler(UserNotFoundError)
    async def user_not_found_handler(
        request: Request, exc: UserNotFoundError
    ) -> JSONResponse:
        return JSONResponse(
            status_code=404,
            content={
                "detail": exc.detail,
                "error_type": exc.error_type,
                "user_id": str(exc.user_id),
            },
        )

    @app.exception_handler(TransactionNotFoundError)
    async def transaction_not_found_handler(
        request: Request, exc: TransactionNotFoundError
    ) -> JSONResponse:
        return JSONResponse(
            status_code=404,
            content={
                "detail": exc.detail,
                "error_type": exc.error_type,
                "transaction_id": str(exc.transaction_id),
            },
        )

    @app.exception_handler(UserAlreadyExistsError)
    async def user_exists_handler(
        request: Request, exc: UserAlreadyExistsError
    ) -> JSONResponse:
        return JSONResponse(
            status_code=409,  # Conflict — the resource already exists
            content={
                "detail": exc.detail,
                "error_type": exc.error_type,
                "field": exc.field,
            },
        )

    @app.exception_handler(InsufficientFundsError)
    async def insufficient_funds_handler(
        request: Request, exc: InsufficientFundsError
    ) -> JSONResponse:
        return JSONResponse(
            status_code=422,  # the request was valid but business rules reject it
            content={
                "detail": exc.detail,
                "error_type": exc.error_type,
                "account_id": str(exc.account_id),
                "balance": str(exc.balance),
                "amount": str(exc.amount),
            },
        )

    @app.exception_handler(BalanceLimitExceededError)
    async def balance_limit_handler(
        request: Request, exc: BalanceLimitExceededError
    ) -> JSONResponse:
        return JSONResponse(
            status_code=422,
            content={
                "detail": exc.detail,
                "error_type": exc.error_type,
                "account_id": str(exc.account_id),
                "balance": str(exc.balance),
                "amount": str(exc.amount),
            },
        )

    @app.exception_handler(SameAccountTransferError)
    async def same_account_handler(
        request: Request, exc: SameAccountTransferError
    ) -> JSONResponse:
        return JSONResponse(
            status_code=422,
            content={"detail": exc.detail, "error_type": exc.error_type},
        )

    @app.exception_handler(StorageUnavailableError)
    async def storage_unavailable_handler(
        request: Request, exc: StorageUnavailableError
    ) -> JSONResponse:
        # Covers OperationTimeoutError too; error_type tells them apart
        return JSONResponse(
            status_code=503,
            content={"detail": exc.detail, "error_type": exc.error_type},
            headers={"Retry-After": "1"},
        )
