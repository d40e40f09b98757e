"""
Accounts router — balance and history reads.

Endpoints:
  GET /accounts/{account_id}              — Account details and balance
  GET /accounts/{account_id}/transactions — Account history, newest first

Accounts are only ever created by registration (POST /users), so there is
no create endpoint here.
"""

import uuid

from fastapi import APIRouter, Depends, Query

from ledger.dependencies import get_ledger
from ledger.models.transaction import TransactionType
from ledger.schemas.account import AccountResponse
from ledger.schemas.transaction import TransactionResponse
from ledger.services.ledger_service import Ledger

router = APIRouter()


@router.get(
    "/{account_id}",
    response_model=AccountResponse,
    summary="Get account details",
)
async def get_account(
    account_id: uuid.UUID,
    ledger: Ledger = Depends(get_ledger),
):
    """Return the account's current balance and identity fields."""
    return await ledger.get_account(account_id)


@router.get(
    "/{account_id}/transactions",
    response_model=list[TransactionResponse],
    summary="List transactions for an account",
)
async def list_transactions(
    account_id: uuid.UUID,
    type: TransactionType | None = Query(None, description="Filter by type: deposit, charge, transfer"),
    limit: int | None = Query(None, ge=1, le=500),
    offset: int = Query(0, ge=0),
    ledger: Ledger = Depends(get_ledger),
):
    """
    List every transaction that names this account, newest first.

    A transfer appears in both the source's and the destination's list with
    the same id. An account with no activity returns an empty list.
    """
    return await ledger.get_transaction_history(
        account_id,
        type_filter=type,
        limit=limit,
        offset=offset,
    )
