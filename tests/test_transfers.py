"""
Tests for transfers (atomic debit + credit between two accounts).

These tests verify:
  - A successful transfer moves money and records ONE shared transfer row
  - The row shows up in both accounts' histories with the same id/timestamp
  - Transfers are declined when the source has insufficient funds, and a
    declined transfer changes nothing (balances and histories identical)
  - Both accounts must exist before the balance is looked at; the source
    is reported first
  - Same-account and invalid-amount transfers are rejected
  - Money is conserved across any sequence of transfers
"""

import uuid
from decimal import Decimal

import pytest

from ledger.exceptions import (
    AccountNotFoundError,
    InsufficientFundsError,
    InvalidAmountError,
    SameAccountTransferError,
)
from ledger.models.transaction import TransactionType


async def _snapshot(ledger, *account_ids):
    """Balances and history ids for each account, for before/after comparison."""
    snapshot = {}
    for account_id in account_ids:
        account = await ledger.get_account(account_id)
        history = await ledger.get_transaction_history(account_id)
        snapshot[account_id] = (account.balance, [t.id for t in history])
    return snapshot


class TestTransferSuccess:

    async def test_register_deposit_transfer_scenario(self, ledger, alice, bob):
        """The end-to-end walkthrough: deposit 100, move 40, try to move 1000."""
        a, b = alice.account.id, bob.account.id
        assert (await ledger.get_account(a)).balance == Decimal("0.00")
        assert (await ledger.get_account(b)).balance == Decimal("0.00")

        await ledger.deposit(a, Decimal("100.00"))
        assert (await ledger.get_account(a)).balance == Decimal("100.00")
        history_a = await ledger.get_transaction_history(a)
        assert [t.type for t in history_a] == [TransactionType.DEPOSIT]

        txn = await ledger.transfer(a, b, Decimal("40.00"))
        assert txn.type == TransactionType.TRANSFER
        assert (await ledger.get_account(a)).balance == Decimal("60.00")
        assert (await ledger.get_account(b)).balance == Decimal("40.00")

        history_a = await ledger.get_transaction_history(a)
        history_b = await ledger.get_transaction_history(b)
        assert history_a[0].id == txn.id
        assert [t.id for t in history_b] == [txn.id]

        with pytest.raises(InsufficientFundsError) as exc_info:
            await ledger.transfer(a, b, Decimal("1000.00"))
        assert exc_info.value.balance == Decimal("60.00")
        assert exc_info.value.amount == Decimal("1000.00")
        assert exc_info.value.account_id == a

        assert (await ledger.get_account(a)).balance == Decimal("60.00")
        assert (await ledger.get_account(b)).balance == Decimal("40.00")

    async def test_transfer_is_one_record_seen_from_both_sides(self, ledger, alice, bob):
        await ledger.deposit(alice.account.id, Decimal("50.00"))
        txn = await ledger.transfer(
            alice.account.id, bob.account.id, Decimal("20.00"), description="Dinner"
        )

        [on_a] = [t for t in await ledger.get_transaction_history(alice.account.id)
                  if t.type == TransactionType.TRANSFER]
        [on_b] = await ledger.get_transaction_history(bob.account.id)

        assert on_a.id == on_b.id == txn.id
        assert on_a.created_at == on_b.created_at
        assert on_a.source_account_id == alice.account.id
        assert on_a.destination_account_id == bob.account.id
        assert on_a.amount == on_b.amount == Decimal("20.00")
        assert on_b.description == "Dinner"

    async def test_transfer_exact_balance(self, ledger, alice, bob):
        """Transferring the exact balance should succeed (leaving zero)."""
        await ledger.deposit(alice.account.id, Decimal("75.00"))

        await ledger.transfer(alice.account.id, bob.account.id, Decimal("75.00"))

        assert (await ledger.get_account(alice.account.id)).balance == Decimal("0.00")
        assert (await ledger.get_account(bob.account.id)).balance == Decimal("75.00")

    async def test_transfers_back_and_forth(self, ledger, alice, bob):
        a, b = alice.account.id, bob.account.id
        await ledger.deposit(a, Decimal("200.00"))

        await ledger.transfer(a, b, Decimal("50.00"))
        await ledger.transfer(a, b, Decimal("30.00"))
        await ledger.transfer(b, a, Decimal("20.00"))

        # A: 200 - 50 - 30 + 20 = 140 ; B: 50 + 30 - 20 = 60
        assert (await ledger.get_account(a)).balance == Decimal("140.00")
        assert (await ledger.get_account(b)).balance == Decimal("60.00")
        assert len(await ledger.get_transaction_history(a)) == 4
        assert len(await ledger.get_transaction_history(b)) == 3


class TestTransferRejections:

    async def test_insufficient_funds_changes_nothing(self, ledger, alice, bob):
        a, b = alice.account.id, bob.account.id
        await ledger.deposit(a, Decimal("50.00"))
        before = await _snapshot(ledger, a, b)

        with pytest.raises(InsufficientFundsError):
            await ledger.transfer(a, b, Decimal("50.01"))

        assert await _snapshot(ledger, a, b) == before

    async def test_empty_account_cannot_transfer(self, ledger, alice, bob):
        with pytest.raises(InsufficientFundsError) as exc_info:
            await ledger.transfer(alice.account.id, bob.account.id, Decimal("0.01"))

        assert exc_info.value.balance == Decimal("0.00")
        # No declined record: a rejected transfer leaves no trace in the log
        assert await ledger.get_transaction_history(alice.account.id) == []

    async def test_missing_source_reported_first(self, ledger):
        missing_source, missing_dest = uuid.uuid4(), uuid.uuid4()

        with pytest.raises(AccountNotFoundError) as exc_info:
            await ledger.transfer(missing_source, missing_dest, Decimal("10.00"))

        assert exc_info.value.account_id == missing_source

    async def test_missing_destination_rejected_without_debit(self, ledger, alice):
        await ledger.deposit(alice.account.id, Decimal("100.00"))
        missing = uuid.uuid4()
        before = await _snapshot(ledger, alice.account.id)

        with pytest.raises(AccountNotFoundError) as exc_info:
            await ledger.transfer(alice.account.id, missing, Decimal("50.00"))

        assert exc_info.value.account_id == missing
        assert await _snapshot(ledger, alice.account.id) == before

    async def test_missing_destination_wins_over_insufficient_funds(self, ledger, alice):
        """Existence of both sides is checked before the balance."""
        with pytest.raises(AccountNotFoundError):
            await ledger.transfer(alice.account.id, uuid.uuid4(), Decimal("999.00"))

    async def test_same_account_rejected(self, ledger, alice):
        await ledger.deposit(alice.account.id, Decimal("10.00"))

        with pytest.raises(SameAccountTransferError):
            await ledger.transfer(alice.account.id, alice.account.id, Decimal("5.00"))

        assert len(await ledger.get_transaction_history(alice.account.id)) == 1

    @pytest.mark.parametrize("amount", [Decimal("0"), Decimal("-1.00"), Decimal("0.005")])
    async def test_invalid_amount_rejected(self, ledger, alice, bob, amount):
        await ledger.deposit(alice.account.id, Decimal("10.00"))
        before = await _snapshot(ledger, alice.account.id, bob.account.id)

        with pytest.raises(InvalidAmountError):
            await ledger.transfer(alice.account.id, bob.account.id, amount)

        assert await _snapshot(ledger, alice.account.id, bob.account.id) == before


class TestConservation:

    async def test_transfers_preserve_total_money_supply(self, ledger, register_user):
        """Money is never created or destroyed by a transfer, only moved."""
        users = [await register_user(f"555000010{i}") for i in range(3)]
        a, b, c = (u.account.id for u in users)
        await ledger.deposit(a, Decimal("100.00"))

        await ledger.transfer(a, b, Decimal("30.00"))
        await ledger.transfer(a, c, Decimal("20.00"))
        await ledger.transfer(b, c, Decimal("10.00"))
        with pytest.raises(InsufficientFundsError):
            await ledger.transfer(b, a, Decimal("25.00"))

        balances = [(await ledger.get_account(x)).balance for x in (a, b, c)]
        assert balances == [Decimal("50.00"), Decimal("20.00"), Decimal("30.00")]
        assert sum(balances) == Decimal("100.00")
