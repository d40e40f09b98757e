"""
Transaction model — the append-only log of money movements.

Every committed movement of money creates exactly one row:

  - A deposit or charge credits one account: only destination_account_id
    is set.
  - A transfer debits one account and credits another: both
    source_account_id and destination_account_id are set on the SAME row.
    The transfer therefore shows up in both accounts' histories with one id
    and one timestamp — it is one event seen from two sides, not two events.

Rows are never updated or deleted. Rejected operations leave no row at all.

Key fields:
  - seq: integer surrogate key, increasing in insert order. Used only to
    break ties between rows that share a created_at value.
  - id: the public UUID of the transaction.
  - amount: always positive; the direction is implied by which account
    column holds a given account id.

Why no foreign keys on the account columns?
  Deleting a user removes their account. A foreign key would force the log
  to either block that or rewrite history (SET NULL / CASCADE), and the
  counterparty of an old transfer must still see it exactly as it was.
"""

import enum
import uuid
from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import String, Integer, DateTime, Enum, CheckConstraint
from sqlalchemy.orm import Mapped, mapped_column

from ledger.database import Base
from ledger.money import Money


class TransactionType(str, enum.Enum):
    """
    Kind of ledger entry.

    Inherits from str so values serialize naturally to JSON.
    """
    DEPOSIT = "deposit"     # single-account credit
    CHARGE = "charge"       # single-account credit (top-up through a charge)
    TRANSFER = "transfer"   # debit source + credit destination


class Transaction(Base):
    __tablename__ = "transactions"

    __table_args__ = (
        CheckConstraint("amount_cents > 0", name="ck_transactions_positive_amount"),
    )

    seq: Mapped[int] = mapped_column(
        Integer,
        primary_key=True,
        autoincrement=True,
    )

    id: Mapped[uuid.UUID] = mapped_column(
        unique=True,
        nullable=False,
        default=uuid.uuid4,
    )

    type: Mapped[TransactionType] = mapped_column(
        Enum(TransactionType),
        nullable=False,
    )

    amount: Mapped[Decimal] = mapped_column(
        "amount_cents",
        Money,
        nullable=False,
    )

    # Set only for transfers
    source_account_id: Mapped[uuid.UUID | None] = mapped_column(
        nullable=True,
        index=True,
    )

    destination_account_id: Mapped[uuid.UUID] = mapped_column(
        nullable=False,
        index=True,
    )

    description: Mapped[str | None] = mapped_column(
        String(255),
        nullable=True,
    )

    # Assigned by the engine inside the atomic unit; indexed for history order
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
        index=True,
    )
