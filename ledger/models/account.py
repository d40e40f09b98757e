"""
Account model — the balance-holding side of a user.

Each account has:
  - A unique 10-digit account number (public, generated at registration)
  - A balance, exposed as a two-place Decimal and stored in the
    `balance_cents` integer column through the Money column type

Balance management:
  The balance is changed only by the ledger engine, inside the same atomic
  unit that appends the matching transaction record. A CHECK constraint at
  the database level enforces that it can never go negative; the engine
  checks before debiting, and the constraint is the last line of defence
  against a bug that slips past it.
"""

import uuid
from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import String, DateTime, ForeignKey, CheckConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ledger.database import Base
from ledger.money import Money, ZERO


class Account(Base):
    __tablename__ = "accounts"

    __table_args__ = (
        CheckConstraint(
            "balance_cents >= 0",
            name="ck_accounts_non_negative_balance",
        ),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        primary_key=True,
        default=uuid.uuid4,
    )

    # UNIQUE enforces one account per user
    user_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        unique=True,
        nullable=False,
    )

    account_number: Mapped[str] = mapped_column(
        String(20),
        unique=True,
        nullable=False,
    )

    balance: Mapped[Decimal] = mapped_column(
        "balance_cents",
        Money,
        nullable=False,
        default=ZERO,
    )

    # Audit timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
        nullable=False,
    )

    # --- Relationships ---
    user: Mapped["User"] = relationship(
        back_populates="account",
    )
