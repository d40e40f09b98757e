"""
Tests for registration (user + account created as one atomic unit).

These tests verify:
  - A new user gets exactly one account with a zero balance
  - The password is stored only as an Argon2 hash
  - Duplicate phone numbers and emails are rejected with UserAlreadyExists
  - A rejected registration leaves no user and no account behind
  - A unique-constraint race is reported as UserAlreadyExists too
"""

from decimal import Decimal

import pytest
from sqlalchemy import func, select

from ledger.exceptions import UserAlreadyExistsError
from ledger.models.account import Account
from ledger.models.user import User


async def _row_counts(session_factory) -> tuple[int, int]:
    async with session_factory() as session:
        users = (await session.execute(select(func.count()).select_from(User))).scalar_one()
        accounts = (await session.execute(select(func.count()).select_from(Account))).scalar_one()
    return users, accounts


class TestRegisterSuccess:

    async def test_creates_user_with_zero_balance_account(self, ledger):
        user = await ledger.register(
            first_name="Alice",
            last_name="Chen",
            phone_number="5551234567",
            password="SecurePass123!",
            email="alice@example.com",
        )

        assert user.id is not None
        assert user.account is not None
        assert user.account.user_id == user.id
        assert user.account.balance == Decimal("0.00")
        assert len(user.account.account_number) == 10
        assert user.account.account_number.isdigit()

    async def test_password_is_hashed(self, ledger):
        user = await ledger.register(
            first_name="Alice",
            last_name="Chen",
            phone_number="5551234567",
            password="SecurePass123!",
        )

        assert user.hashed_password != "SecurePass123!"
        assert user.hashed_password.startswith("$argon2")

    async def test_email_is_optional(self, ledger, session_factory):
        await ledger.register(
            first_name="A", last_name="One", phone_number="5550000011", password="SecurePass123!"
        )
        await ledger.register(
            first_name="B", last_name="Two", phone_number="5550000012", password="SecurePass123!"
        )

        # Two users without email do not collide on the unique email column
        assert await _row_counts(session_factory) == (2, 2)

    async def test_each_user_gets_a_distinct_account(self, alice, bob):
        assert alice.account.id != bob.account.id
        assert alice.account.account_number != bob.account.account_number


class TestRegisterDuplicates:

    async def test_duplicate_phone_rejected(self, ledger, alice, session_factory):
        before = await _row_counts(session_factory)

        with pytest.raises(UserAlreadyExistsError) as exc_info:
            await ledger.register(
                first_name="Mallory",
                last_name="Copy",
                phone_number=alice.phone_number,
                password="AnotherPass123!",
            )

        assert exc_info.value.field == "phone_number"
        assert exc_info.value.value == alice.phone_number
        # Neither a user nor an account was created
        assert await _row_counts(session_factory) == before

    async def test_duplicate_email_rejected(self, ledger, alice, session_factory):
        before = await _row_counts(session_factory)

        with pytest.raises(UserAlreadyExistsError) as exc_info:
            await ledger.register(
                first_name="Mallory",
                last_name="Copy",
                phone_number="5559999999",
                password="AnotherPass123!",
                email=alice.email,
            )

        assert exc_info.value.field == "email"
        assert await _row_counts(session_factory) == before

    async def test_duplicate_does_not_show_up_in_user_list(self, ledger, alice):
        with pytest.raises(UserAlreadyExistsError):
            await ledger.register(
                first_name="Mallory",
                last_name="Copy",
                phone_number=alice.phone_number,
                password="AnotherPass123!",
            )

        users = await ledger.list_users()
        assert [u.id for u in users] == [alice.id]

    async def test_constraint_violation_maps_to_user_exists(
        self, ledger, alice, session_factory, monkeypatch
    ):
        """A registration racing past the pre-check still fails cleanly.

        Disabling the pre-check simulates a concurrent request that inserted
        the same phone number between our check and our insert: the unique
        constraint fires and must surface as UserAlreadyExists, not a 500.
        """
        from ledger.store import AtomicUnit

        async def no_conflict(self, phone_number, email):
            return None

        monkeypatch.setattr(AtomicUnit, "find_user_conflict", no_conflict)
        before = await _row_counts(session_factory)

        with pytest.raises(UserAlreadyExistsError):
            await ledger.register(
                first_name="Mallory",
                last_name="Copy",
                phone_number=alice.phone_number,
                password="AnotherPass123!",
            )

        assert await _row_counts(session_factory) == before
