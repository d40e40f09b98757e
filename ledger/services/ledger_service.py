"""
Ledger service — the core financial business logic.

THIS IS THE MOST CRITICAL FILE IN THE PROJECT. It handles:
  - Registering a user together with their zero-balance account
  - Deposits and charges (single-account credits)
  - Transfers between two accounts
  - Balance enforcement (no negative balances, no overdraft races)
  - Account, user and transaction-history queries

Atomicity:
  Every operation runs inside one atomic unit from ledger.store. A balance
  change and the log row that explains it are written in the same unit, so
  they commit together or not at all. A rejected operation raises inside the
  unit, which rolls it back: no balance moves and no log row appears.

Check-then-act:
  A transfer reads the source balance and debits it inside the SAME unit,
  with the source row locked. A second transfer against the same account
  waits for the first to commit and then sees the lower balance, so two
  transfers can never both pass the funds check on a stale read.

Deadlock prevention:
  Both transfer rows are locked in sorted-id order (AtomicUnit.lock_accounts),
  so A->B and B->A running together always request locks in the same order.

State:
  The service holds a store and a default deadline, nothing else. All
  shared mutable state lives in the database.
"""

import random
import string
import uuid
from datetime import datetime, timezone
from decimal import Decimal
from typing import Protocol

from sqlalchemy.exc import IntegrityError

from ledger.config import settings
from ledger.exceptions import (
    AccountNotFoundError,
    BalanceLimitExceededError,
    InsufficientFundsError,
    SameAccountTransferError,
    TransactionNotFoundError,
    UserAlreadyExistsError,
    UserNotFoundError,
)
from ledger.models.account import Account
from ledger.models.transaction import Transaction, TransactionType
from ledger.models.user import User
from ledger.money import MAX_AMOUNT, ZERO, parse_amount
from ledger.security import hash_password
from ledger.store import LedgerStore


class Ledger(Protocol):
    """
    Operations the request surface can call.

    Implemented by LedgerService and by decorators such as LoggingLedger,
    which wrap another Ledger and are composed when the app is built.
    """

    async def register(
        self,
        first_name: str,
        last_name: str,
        phone_number: str,
        password: str,
        email: str | None = None,
        timeout: float | None = None,
    ) -> User: ...

    async def deposit(
        self,
        account_id: uuid.UUID,
        amount: Decimal,
        description: str | None = None,
        timeout: float | None = None,
    ) -> Transaction: ...

    async def charge(
        self,
        account_id: uuid.UUID,
        amount: Decimal,
        description: str | None = None,
        timeout: float | None = None,
    ) -> Transaction: ...

    async def transfer(
        self,
        source_account_id: uuid.UUID,
        destination_account_id: uuid.UUID,
        amount: Decimal,
        description: str | None = None,
        timeout: float | None = None,
    ) -> Transaction: ...

    async def get_account(
        self, account_id: uuid.UUID, timeout: float | None = None
    ) -> Account: ...

    async def get_transaction_history(
        self,
        account_id: uuid.UUID,
        type_filter: TransactionType | None = None,
        limit: int | None = None,
        offset: int = 0,
        timeout: float | None = None,
    ) -> list[Transaction]: ...

    async def get_transaction(
        self, transaction_id: uuid.UUID, timeout: float | None = None
    ) -> Transaction: ...

    async def get_user(self, user_id: uuid.UUID, timeout: float | None = None) -> User: ...

    async def list_users(self, timeout: float | None = None) -> list[User]: ...

    async def get_user_transactions(
        self, user_id: uuid.UUID, timeout: float | None = None
    ) -> list[Transaction]: ...

    async def delete_user(self, user_id: uuid.UUID, timeout: float | None = None) -> None: ...


def _generate_account_number() -> str:
    """
    Generate a random 10-digit account number.

    Random rather than sequential so neighbouring account numbers cannot be
    guessed from one's own.
    """
    return "".join(random.choices(string.digits, k=10))


def _now() -> datetime:
    return datetime.now(timezone.utc)


class LedgerService:
    """
    The ledger engine.

    Args:
        store: Opens the atomic units every operation runs in.
        default_timeout: Deadline (seconds) for operations called without an
            explicit `timeout`. Defaults to settings.OPERATION_TIMEOUT_SECONDS.
    """

    def __init__(self, store: LedgerStore, default_timeout: float | None = None):
        self._store = store
        self._default_timeout = (
            settings.OPERATION_TIMEOUT_SECONDS if default_timeout is None else default_timeout
        )

    def _deadline(self, timeout: float | None) -> float:
        return self._default_timeout if timeout is None else timeout

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    async def register(
        self,
        first_name: str,
        last_name: str,
        phone_number: str,
        password: str,
        email: str | None = None,
        timeout: float | None = None,
    ) -> User:
        """
        Create a user and their zero-balance account in one atomic unit.

        The password is hashed before the unit opens. Duplicate natural keys
        are checked inside the unit; a concurrent registration that slips in
        between the check and the insert is caught by the unique constraints
        and reported the same way. Either both rows exist afterwards or
        neither does.

        Returns:
            The new User, with `account` populated.

        Raises:
            UserAlreadyExistsError: Phone number, email or account number
                already in use.
        """
        hashed_password = hash_password(password)

        try:
            async with self._store.atomic_unit(self._deadline(timeout)) as unit:
                conflict = await unit.find_user_conflict(phone_number, email)
                if conflict is not None:
                    raise UserAlreadyExistsError(*conflict)

                # Retry on collision (extremely unlikely with 10 random digits)
                for _ in range(10):
                    account_number = _generate_account_number()
                    if not await unit.account_number_taken(account_number):
                        break
                else:
                    raise UserAlreadyExistsError("account_number", account_number)

                user = User(
                    first_name=first_name,
                    last_name=last_name,
                    phone_number=phone_number,
                    email=email,
                    hashed_password=hashed_password,
                    account=Account(account_number=account_number, balance=ZERO),
                )
                await unit.add_user(user)
        except IntegrityError as exc:
            raise UserAlreadyExistsError() from exc

        return user

    # ------------------------------------------------------------------
    # Credits
    # ------------------------------------------------------------------

    async def deposit(
        self,
        account_id: uuid.UUID,
        amount: Decimal,
        description: str | None = None,
        timeout: float | None = None,
    ) -> Transaction:
        """
        Credit an account and record a `deposit`.

        Credits have no funds check, so this only fails on a bad amount,
        a missing account, a balance past the limit, or the store itself.

        Raises:
            InvalidAmountError: amount <= 0, above MAX_AMOUNT, or finer than one cent.
            AccountNotFoundError: The account does not exist.
            BalanceLimitExceededError: The new balance would exceed MAX_AMOUNT.
        """
        return await self._credit(TransactionType.DEPOSIT, account_id, amount, description, timeout)

    async def charge(
        self,
        account_id: uuid.UUID,
        amount: Decimal,
        description: str | None = None,
        timeout: float | None = None,
    ) -> Transaction:
        """Same as deposit(), recorded as a `charge`."""
        return await self._credit(TransactionType.CHARGE, account_id, amount, description, timeout)

    async def _credit(
        self,
        txn_type: TransactionType,
        account_id: uuid.UUID,
        amount: Decimal | int | str,
        description: str | None,
        timeout: float | None,
    ) -> Transaction:
        amount = parse_amount(amount)

        async with self._store.atomic_unit(self._deadline(timeout)) as unit:
            account = await unit.get_account(account_id, lock=True)
            if account is None:
                raise AccountNotFoundError(account_id)
            if account.balance + amount > MAX_AMOUNT:
                raise BalanceLimitExceededError(account_id, account.balance, amount)

            await unit.write_balance(account, account.balance + amount)
            txn = await unit.append_transaction(
                Transaction(
                    type=txn_type,
                    amount=amount,
                    source_account_id=None,
                    destination_account_id=account_id,
                    description=description,
                    created_at=_now(),
                )
            )

        return txn

    # ------------------------------------------------------------------
    # Transfers
    # ------------------------------------------------------------------

    async def transfer(
        self,
        source_account_id: uuid.UUID,
        destination_account_id: uuid.UUID,
        amount: Decimal,
        description: str | None = None,
        timeout: float | None = None,
    ) -> Transaction:
        """
        Move `amount` from one account to another.

        Both accounts must exist before the balance is even looked at:
        the source is checked first, then the destination. The funds check
        and both balance writes happen in one unit with both rows locked,
        and a single `transfer` row records the movement for both sides.

        Returns:
            The transfer record, also retrievable from either account's
            history.

        Raises:
            InvalidAmountError: amount <= 0, above MAX_AMOUNT, or finer than one cent.
            SameAccountTransferError: Source and destination are the same.
            AccountNotFoundError: Source or destination does not exist.
            InsufficientFundsError: Source balance is below `amount`.
            BalanceLimitExceededError: The destination would exceed MAX_AMOUNT.
        """
        amount = parse_amount(amount)

        if source_account_id == destination_account_id:
            raise SameAccountTransferError(source_account_id)

        async with self._store.atomic_unit(self._deadline(timeout)) as unit:
            locked = await unit.lock_accounts([source_account_id, destination_account_id])

            source = locked.get(source_account_id)
            if source is None:
                raise AccountNotFoundError(source_account_id)
            destination = locked.get(destination_account_id)
            if destination is None:
                raise AccountNotFoundError(destination_account_id)

            balance = await unit.read_balance(source.id)
            if balance < amount:
                raise InsufficientFundsError(source_account_id, balance, amount)
            if destination.balance + amount > MAX_AMOUNT:
                raise BalanceLimitExceededError(
                    destination_account_id, destination.balance, amount
                )

            await unit.write_balance(source, balance - amount)
            await unit.write_balance(destination, destination.balance + amount)

            txn = await unit.append_transaction(
                Transaction(
                    type=TransactionType.TRANSFER,
                    amount=amount,
                    source_account_id=source_account_id,
                    destination_account_id=destination_account_id,
                    description=description,
                    created_at=_now(),
                )
            )

        return txn

    # ------------------------------------------------------------------
    # Queries (read-only)
    # ------------------------------------------------------------------

    async def get_account(self, account_id: uuid.UUID, timeout: float | None = None) -> Account:
        async with self._store.atomic_unit(self._deadline(timeout)) as unit:
            account = await unit.get_account(account_id)
        if account is None:
            raise AccountNotFoundError(account_id)
        return account

    async def get_transaction_history(
        self,
        account_id: uuid.UUID,
        type_filter: TransactionType | None = None,
        limit: int | None = None,
        offset: int = 0,
        timeout: float | None = None,
    ) -> list[Transaction]:
        """
        Every record naming the account as source or destination, newest first.

        An account with no activity yields an empty list; an account that
        does not exist raises AccountNotFoundError.
        """
        async with self._store.atomic_unit(self._deadline(timeout)) as unit:
            if await unit.get_account(account_id) is None:
                raise AccountNotFoundError(account_id)
            return await unit.transactions_for_account(
                account_id, type_filter=type_filter, limit=limit, offset=offset
            )

    async def get_transaction(
        self, transaction_id: uuid.UUID, timeout: float | None = None
    ) -> Transaction:
        async with self._store.atomic_unit(self._deadline(timeout)) as unit:
            txn = await unit.get_transaction(transaction_id)
        if txn is None:
            raise TransactionNotFoundError(transaction_id)
        return txn

    async def get_user(self, user_id: uuid.UUID, timeout: float | None = None) -> User:
        async with self._store.atomic_unit(self._deadline(timeout)) as unit:
            user = await unit.get_user(user_id)
        if user is None:
            raise UserNotFoundError(user_id)
        return user

    async def list_users(self, timeout: float | None = None) -> list[User]:
        async with self._store.atomic_unit(self._deadline(timeout)) as unit:
            return await unit.list_users()

    async def get_user_transactions(
        self, user_id: uuid.UUID, timeout: float | None = None
    ) -> list[Transaction]:
        """History of the user's account, newest first."""
        async with self._store.atomic_unit(self._deadline(timeout)) as unit:
            user = await unit.get_user(user_id)
            if user is None:
                raise UserNotFoundError(user_id)
            return await unit.transactions_for_account(user.account.id)

    # ------------------------------------------------------------------
    # Deletion
    # ------------------------------------------------------------------

    async def delete_user(self, user_id: uuid.UUID, timeout: float | None = None) -> None:
        """
        Delete a user; the database cascades the delete to their account.

        Transaction rows are left as they are, so a counterparty's history
        still shows past transfers with this account.
        """
        async with self._store.atomic_unit(self._deadline(timeout)) as unit:
            user = await unit.get_user(user_id)
            if user is None:
                raise UserNotFoundError(user_id)
            await unit.delete_user(user)
