"""
Tests for deposits and charges (single-account credits).

These tests verify:
  - A deposit raises the balance and records one `deposit` row
  - A charge behaves the same and is recorded as `charge`
  - The returned record carries a server-assigned id and timestamp
  - Invalid amounts and unknown accounts are rejected with no effect
"""

import uuid
from decimal import Decimal

import pytest

from ledger.exceptions import AccountNotFoundError, InvalidAmountError
from ledger.models.transaction import TransactionType


class TestDeposit:

    async def test_deposit_increases_balance(self, ledger, alice):
        txn = await ledger.deposit(alice.account.id, Decimal("100.00"))

        assert txn.type == TransactionType.DEPOSIT
        assert txn.amount == Decimal("100.00")
        assert txn.destination_account_id == alice.account.id
        assert txn.source_account_id is None
        assert txn.id is not None
        assert txn.created_at is not None

        account = await ledger.get_account(alice.account.id)
        assert account.balance == Decimal("100.00")

    async def test_deposit_records_single_history_entry(self, ledger, alice):
        txn = await ledger.deposit(alice.account.id, Decimal("25.50"), description="Paycheck")

        history = await ledger.get_transaction_history(alice.account.id)
        assert len(history) == 1
        assert history[0].id == txn.id
        assert history[0].description == "Paycheck"

    async def test_deposits_accumulate(self, ledger, alice):
        await ledger.deposit(alice.account.id, Decimal("10.00"))
        await ledger.deposit(alice.account.id, Decimal("5.25"))
        await ledger.deposit(alice.account.id, "0.75")

        account = await ledger.get_account(alice.account.id)
        assert account.balance == Decimal("16.00")

    async def test_deposit_accepts_integer_amount(self, ledger, alice):
        txn = await ledger.deposit(alice.account.id, 42)

        assert txn.amount == Decimal("42.00")

    async def test_charge_is_a_credit_recorded_as_charge(self, ledger, alice):
        txn = await ledger.charge(alice.account.id, Decimal("12.34"))

        assert txn.type == TransactionType.CHARGE
        account = await ledger.get_account(alice.account.id)
        assert account.balance == Decimal("12.34")


class TestDepositRejections:

    @pytest.mark.parametrize("amount", [Decimal("0"), Decimal("-5.00"), "abc", "NaN", Decimal("1.001")])
    async def test_invalid_amount_rejected(self, ledger, alice, amount):
        with pytest.raises(InvalidAmountError):
            await ledger.deposit(alice.account.id, amount)

        account = await ledger.get_account(alice.account.id)
        assert account.balance == Decimal("0.00")
        assert await ledger.get_transaction_history(alice.account.id) == []

    async def test_unknown_account_rejected(self, ledger):
        missing = uuid.uuid4()

        with pytest.raises(AccountNotFoundError) as exc_info:
            await ledger.deposit(missing, Decimal("10.00"))

        assert exc_info.value.account_id == missing

    async def test_charge_unknown_account_rejected(self, ledger):
        with pytest.raises(AccountNotFoundError):
            await ledger.charge(uuid.uuid4(), Decimal("10.00"))
