"""
Transactions router — money movement.

Endpoints:
  POST /transactions/deposit          — Credit one account
  POST /transactions/charge           — Credit one account, recorded as a charge
  POST /transactions/transfer         — Move money between two accounts
  GET  /transactions/{transaction_id} — Get a single transaction

Each POST is one atomic unit in the ledger engine: the response is either
the committed transaction record (201) or an error, never anything in
between.
"""

import uuid

from fastapi import APIRouter, Depends, status

from ledger.dependencies import get_ledger
from ledger.schemas.transaction import CreditRequest, TransactionResponse, TransferRequest
from ledger.services.ledger_service import Ledger

router = APIRouter()


@router.post(
    "/deposit",
    response_model=TransactionResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Deposit into an account",
)
async def deposit(
    request: CreditRequest,
    ledger: Ledger = Depends(get_ledger),
):
    """
    Add money to an account.

    Deposits never fail for balance reasons; only an unknown account (404)
    or a malformed amount (422) rejects them.
    """
    return await ledger.deposit(request.account_id, request.amount, request.description)


@router.post(
    "/charge",
    response_model=TransactionResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Charge (top up) an account",
)
async def charge(
    request: CreditRequest,
    ledger: Ledger = Depends(get_ledger),
):
    """Same as a deposit, recorded with type `charge`."""
    return await ledger.charge(request.account_id, request.amount, request.description)


@router.post(
    "/transfer",
    response_model=TransactionResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Transfer money between accounts",
)
async def transfer(
    request: TransferRequest,
    ledger: Ledger = Depends(get_ledger),
):
    """
    Transfer money from one account to another.

    Either the debit, the credit and the transaction record all commit, or
    none of them does. If the source balance is too low the transfer is
    rejected with 422 and nothing changes.

    - **source_account_id** / **destination_account_id**: must both exist
      and must differ
    - **amount**: positive, at most two decimal places
    """
    return await ledger.transfer(
        request.source_account_id,
        request.destination_account_id,
        request.amount,
        request.description,
    )


@router.get(
    "/{transaction_id}",
    response_model=TransactionResponse,
    summary="Get a single transaction",
)
async def get_transaction(
    transaction_id: uuid.UUID,
    ledger: Ledger = Depends(get_ledger),
):
    return await ledger.get_transaction(transaction_id)
