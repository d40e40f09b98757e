"""
Logging decorator for a Ledger.

LoggingLedger wraps another Ledger and forwards every call unchanged, writing
one log line per call: INFO with the elapsed time on success, WARNING for a
rejected request (any LedgerError), ERROR with the traceback for anything
else. The exception is always re-raised as-is.

It is composed when the app is built:

    ledger = LoggingLedger(LedgerService(LedgerStore(AsyncSessionLocal)))

so the engine itself contains no logging calls and tests can use either the
bare service or the decorated one.

Passwords never reach a log line; register() logs the phone number only.
"""

import logging
import time
import uuid
from contextlib import asynccontextmanager
from decimal import Decimal

from ledger.exceptions import LedgerError
from ledger.logging_config import request_id_var
from ledger.models.account import Account
from ledger.models.transaction import Transaction, TransactionType
from ledger.models.user import User
from ledger.services.ledger_service import Ledger


class LoggingLedger:
    def __init__(self, next_ledger: Ledger, logger: logging.Logger | None = None):
        self._next = next_ledger
        self._log = logger or logging.getLogger("ledger.operations")

    @asynccontextmanager
    async def _observe(self, operation: str, **context):
        begin = time.perf_counter()
        fields = {
            "operation": operation,
            "request_id": request_id_var.get(),
            "context": {k: str(v) for k, v in context.items()},
        }
        try:
            yield
        except LedgerError as exc:
            self._log.warning(
                "%s failed",
                operation,
                extra={**fields, "error": exc.detail, "error_type": exc.error_type},
            )
            raise
        except Exception as exc:
            self._log.error(
                "%s failed",
                operation,
                exc_info=True,
                extra={**fields, "error": str(exc), "error_type": type(exc).__name__},
            )
            raise
        else:
            took_us = int((time.perf_counter() - begin) * 1_000_000)
            self._log.info(operation, extra={**fields, "took_us": took_us})

    async def register(
        self,
        first_name: str,
        last_name: str,
        phone_number: str,
        password: str,
        email: str | None = None,
        timeout: float | None = None,
    ) -> User:
        async with self._observe("register user", phone_number=phone_number):
            return await self._next.register(
                first_name, last_name, phone_number, password, email=email, timeout=timeout
            )

    async def deposit(
        self,
        account_id: uuid.UUID,
        amount: Decimal,
        description: str | None = None,
        timeout: float | None = None,
    ) -> Transaction:
        async with self._observe("deposit", account_id=account_id, amount=amount):
            return await self._next.deposit(account_id, amount, description, timeout=timeout)

    async def charge(
        self,
        account_id: uuid.UUID,
        amount: Decimal,
        description: str | None = None,
        timeout: float | None = None,
    ) -> Transaction:
        async with self._observe("charge", account_id=account_id, amount=amount):
            return await self._next.charge(account_id, amount, description, timeout=timeout)

    async def transfer(
        self,
        source_account_id: uuid.UUID,
        destination_account_id: uuid.UUID,
        amount: Decimal,
        description: str | None = None,
        timeout: float | None = None,
    ) -> Transaction:
        async with self._observe(
            "transfer",
            source_account_id=source_account_id,
            destination_account_id=destination_account_id,
            amount=amount,
        ):
            return await self._next.transfer(
                source_account_id, destination_account_id, amount, description, timeout=timeout
            )

    async def get_account(self, account_id: uuid.UUID, timeout: float | None = None) -> Account:
        async with self._observe("get account", account_id=account_id):
            return await self._next.get_account(account_id, timeout=timeout)

    async def get_transaction_history(
        self,
        account_id: uuid.UUID,
        type_filter: TransactionType | None = None,
        limit: int | None = None,
        offset: int = 0,
        timeout: float | None = None,
    ) -> list[Transaction]:
        async with self._observe("get transaction history", account_id=account_id):
            return await self._next.get_transaction_history(
                account_id, type_filter=type_filter, limit=limit, offset=offset, timeout=timeout
            )

    async def get_transaction(
        self, transaction_id: uuid.UUID, timeout: float | None = None
    ) -> Transaction:
        async with self._observe("get transaction", transaction_id=transaction_id):
            return await self._next.get_transaction(transaction_id, timeout=timeout)

    async def get_user(self, user_id: uuid.UUID, timeout: float | None = None) -> User:
        async with self._observe("get user", user_id=user_id):
            return await self._next.get_user(user_id, timeout=timeout)

    async def list_users(self, timeout: float | None = None) -> list[User]:
        async with self._observe("get users"):
            return await self._next.list_users(timeout=timeout)

    async def get_user_transactions(
        self, user_id: uuid.UUID, timeout: float | None = None
    ) -> list[Transaction]:
        async with self._observe("get transactions by user", user_id=user_id):
            return await self._next.get_user_transactions(user_id, timeout=timeout)

    async def delete_user(self, user_id: uuid.UUID, timeout: float | None = None) -> None:
        async with self._observe("delete user", user_id=user_id):
            await self._next.delete_user(user_id, timeout=timeout)
