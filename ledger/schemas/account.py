"""
Pydantic schemas for Account reads.

Balances are two-place decimals and serialize to JSON as strings
("100.00"), so no client ever parses them through a float.
"""

import uuid
from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel


class AccountResponse(BaseModel):
    """Public representation of an account."""
    id: uuid.UUID
    user_id: uuid.UUID
    account_number: str
    balance: Decimal
    created_at: datetime

    model_config = {"from_attributes": True}
