"""
Store boundary — the Account Store and Transaction Log as the engine sees them.

The ledger engine never touches a session directly. It opens an atomic unit
and works through the small set of reads and writes the unit exposes:

    async with store.atomic_unit(timeout=2.0) as unit:
        account = await unit.get_account(account_id, lock=True)
        await unit.write_balance(account, account.balance + amount)
        await unit.append_transaction(record)
    # committed here; any exception inside the block rolled everything back

Nothing in this module knows a business rule. It persists what the engine
asks it to and reports failures.

Atomicity:
  One unit is one database transaction on its own session. Leaving the
  block cleanly commits; leaving it with any exception — a rejected
  transfer, a lost connection, an expired deadline — rolls back, so a debit
  can never be committed without its credit and log row.

Failure mapping:
  - Deadline expiry (asyncio.timeout) -> OperationTimeoutError
  - Connection/driver failures        -> StorageUnavailableError
  - IntegrityError is passed through untouched; only the caller knows which
    business rule a constraint violation stands for.
  Both mapped errors mean "nothing was applied, safe to retry".

Deadlines:
  The deadline covers the body of the unit, not its COMMIT. Cancelling a
  commit does not stop the driver from finishing it, so a deadline that
  could fire during COMMIT would report a timeout for a write that landed.
  Once the body is done the commit runs to completion; if it fails, that
  is a StorageUnavailableError and the transaction did not commit.
"""

import asyncio
import logging
import uuid
from contextlib import asynccontextmanager
from decimal import Decimal
from typing import AsyncIterator, Iterable

from sqlalchemy import or_, select
from sqlalchemy.exc import DisconnectionError, InterfaceError, OperationalError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ledger.exceptions import AccountNotFoundError, OperationTimeoutError, StorageUnavailableError
from ledger.models.account import Account
from ledger.models.transaction import Transaction, TransactionType
from ledger.models.user import User

logger = logging.getLogger(__name__)


class AtomicUnit:
    """Reads and writes available inside one open atomic unit."""

    def __init__(self, session: AsyncSession):
        self.session = session

    # --- Accounts -----------------------------------------------------------

    async def get_account(self, account_id: uuid.UUID, *, lock: bool = False) -> Account | None:
        """
        Fetch one account, optionally locking its row until the unit ends.

        with_for_update() is a row lock on PostgreSQL; on SQLite the whole
        unit already holds the write lock (see ledger.database).
        """
        query = select(Account).where(Account.id == account_id)
        if lock:
            query = query.with_for_update()
        result = await self.session.execute(query)
        return result.scalar_one_or_none()

    async def lock_accounts(self, account_ids: Iterable[uuid.UUID]) -> dict[uuid.UUID, Account]:
        """
        Lock several account rows and return the ones that exist, by id.

        Rows are locked in sorted id order. Two transfers over the same pair
        in opposite directions then request the locks in the same order and
        cannot deadlock.
        """
        locked: dict[uuid.UUID, Account] = {}
        for account_id in sorted(set(account_ids)):
            account = await self.get_account(account_id, lock=True)
            if account is not None:
                locked[account_id] = account
        return locked

    async def read_balance(self, account_id: uuid.UUID) -> Decimal:
        """
        Read the committed balance of an account inside this unit.

        This is the unit's balance read for the check half of check-then-act.
        It takes no lock of its own: the caller locks the row first (get_account
        with lock=True or lock_accounts), so the value cannot change before the
        matching write_balance.

        Raises:
            AccountNotFoundError: If the account does not exist.
        """
        result = await self.session.execute(
            select(Account.balance).where(Account.id == account_id)
        )
        balance = result.scalar_one_or_none()
        if balance is None:
            raise AccountNotFoundError(account_id)
        return balance

    async def write_balance(self, account: Account, new_balance: Decimal) -> None:
        account.balance = new_balance
        await self.session.flush()

    async def account_number_taken(self, account_number: str) -> bool:
        result = await self.session.execute(
            select(Account.id).where(Account.account_number == account_number)
        )
        return result.scalar_one_or_none() is not None

    # --- Transaction log ----------------------------------------------------

    async def append_transaction(self, record: Transaction) -> Transaction:
        """Insert a new log row. Rows are never updated afterwards."""
        self.session.add(record)
        await self.session.flush()
        return record

    async def transactions_for_account(
        self,
        account_id: uuid.UUID,
        type_filter: TransactionType | None = None,
        limit: int | None = None,
        offset: int = 0,
    ) -> list[Transaction]:
        """Rows where the account is source or destination, newest first."""
        query = (
            select(Transaction)
            .where(
                or_(
                    Transaction.source_account_id == account_id,
                    Transaction.destination_account_id == account_id,
                )
            )
            .order_by(Transaction.created_at.desc(), Transaction.seq.desc())
            .offset(offset)
        )
        if type_filter is not None:
            query = query.where(Transaction.type == type_filter)
        if limit is not None:
            query = query.limit(limit)

        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def get_transaction(self, transaction_id: uuid.UUID) -> Transaction | None:
        result = await self.session.execute(
            select(Transaction).where(Transaction.id == transaction_id)
        )
        return result.scalar_one_or_none()

    # --- Users --------------------------------------------------------------

    async def find_user_conflict(
        self,
        phone_number: str,
        email: str | None,
    ) -> tuple[str, str] | None:
        """Return (field, value) of the first natural key already in use."""
        result = await self.session.execute(
            select(User.id).where(User.phone_number == phone_number)
        )
        if result.scalar_one_or_none() is not None:
            return "phone_number", phone_number

        if email is not None:
            result = await self.session.execute(
                select(User.id).where(User.email == email)
            )
            if result.scalar_one_or_none() is not None:
                return "email", email

        return None

    async def add_user(self, user: User) -> User:
        """Insert a user; its account is saved with it through the relationship."""
        self.session.add(user)
        await self.session.flush()
        return user

    async def get_user(self, user_id: uuid.UUID) -> User | None:
        result = await self.session.execute(select(User).where(User.id == user_id))
        return result.scalar_one_or_none()

    async def list_users(self) -> list[User]:
        result = await self.session.execute(
            select(User).order_by(User.created_at, User.id)
        )
        return list(result.scalars().all())

    async def delete_user(self, user: User) -> None:
        await self.session.delete(user)
        await self.session.flush()


class LedgerStore:
    """
    Factory for atomic units.

    Holds only a session factory — no cached rows, no in-process state —
    so one instance can be shared by every concurrent request.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    @asynccontextmanager
    async def atomic_unit(self, timeout: float | None = None) -> AsyncIterator[AtomicUnit]:
        """
        Open an atomic unit bounded by `timeout` seconds (None = unbounded).

        Raises:
            OperationTimeoutError: The deadline expired; the unit was rolled back.
            StorageUnavailableError: The store failed; the unit was rolled back.
        """
        try:
            async with self._session_factory() as session:
                async with session.begin():
                    # BEGIN is lazy and runs inside the deadline; COMMIT runs after it
                    async with asyncio.timeout(timeout):
                        yield AtomicUnit(session)
        except TimeoutError as exc:
            logger.warning("Atomic unit exceeded its %ss deadline and was rolled back", timeout)
            raise OperationTimeoutError(timeout) from exc
        except (OperationalError, InterfaceError, DisconnectionError) as exc:
            logger.warning("Atomic unit aborted by storage failure: %s", exc)
            raise StorageUnavailableError(f"Storage unavailable: {exc}") from exc
