"""
Pydantic schemas for deposit, charge and transfer requests and for
transaction records.

Amounts are decimals with at most two fractional digits (e.g. "10.50").
Shape checks happen here; the ledger engine re-checks the amount itself, so
callers that bypass HTTP get the same guarantees.
"""

import uuid
from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, Field

from ledger.models.transaction import TransactionType
from ledger.money import MAX_AMOUNT


class CreditRequest(BaseModel):
    """Request body for POST /transactions/deposit and /transactions/charge."""
    account_id: uuid.UUID
    amount: Decimal = Field(gt=0, le=MAX_AMOUNT, decimal_places=2, description="Amount, e.g. 10.50")
    description: str | None = Field(None, max_length=255)


class TransferRequest(BaseModel):
    """Request body for POST /transactions/transfer."""
    source_account_id: uuid.UUID
    destination_account_id: uuid.UUID
    amount: Decimal = Field(gt=0, le=MAX_AMOUNT, decimal_places=2, description="Amount, e.g. 10.50")
    description: str | None = Field(None, max_length=255)


class TransactionResponse(BaseModel):
    """Public representation of a ledger entry."""
    id: uuid.UUID
    type: TransactionType
    amount: Decimal
    source_account_id: uuid.UUID | None
    destination_account_id: uuid.UUID
    description: str | None
    created_at: datetime

    model_config = {"from_attributes": True}
