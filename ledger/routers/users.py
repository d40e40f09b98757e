"""
Users router — registration and user reads.

Endpoints:
  POST   /users                        — Register a user and their account
  GET    /users                        — List every user with their account
  GET    /users/{user_id}              — Get one user
  DELETE /users/{user_id}              — Delete a user (and their account)
  GET    /users/{user_id}/transactions — Transaction history of the user's account
"""

import uuid

from fastapi import APIRouter, Depends, Response, status

from ledger.dependencies import get_ledger
from ledger.schemas.transaction import TransactionResponse
from ledger.schemas.user import RegisterRequest, UserResponse, UsersResponse
from ledger.services.ledger_service import Ledger

router = APIRouter()


@router.post(
    "",
    response_model=UserResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register a new user",
)
async def register(
    request: RegisterRequest,
    ledger: Ledger = Depends(get_ledger),
):
    """
    Register a user together with a zero-balance account.

    Both rows are created in one atomic unit. A phone number or email that
    is already registered returns 409 and creates nothing.

    - **phone_number**: 10 digits, must be unused
    - **password**: Minimum 8 characters; stored only as an Argon2 hash
    - **email**: Optional, must be unused when given
    """
    return await ledger.register(
        first_name=request.first_name,
        last_name=request.last_name,
        phone_number=request.phone_number,
        password=request.password,
        email=request.email,
    )


@router.get(
    "",
    response_model=UsersResponse,
    summary="List users",
)
async def list_users(ledger: Ledger = Depends(get_ledger)):
    users = await ledger.list_users()
    return UsersResponse(
        users=[UserResponse.model_validate(u) for u in users],
        count=len(users),
    )


@router.get(
    "/{user_id}",
    response_model=UserResponse,
    summary="Get a user",
)
async def get_user(
    user_id: uuid.UUID,
    ledger: Ledger = Depends(get_ledger),
):
    return await ledger.get_user(user_id)


@router.delete(
    "/{user_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete a user",
)
async def delete_user(
    user_id: uuid.UUID,
    ledger: Ledger = Depends(get_ledger),
):
    """
    Delete a user and, by cascade, their account.

    Transaction records are kept, so counterparties still see past transfers.
    """
    await ledger.delete_user(user_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get(
    "/{user_id}/transactions",
    response_model=list[TransactionResponse],
    summary="List a user's transactions",
)
async def list_user_transactions(
    user_id: uuid.UUID,
    ledger: Ledger = Depends(get_ledger),
):
    """Transactions of the user's account, newest first."""
    return await ledger.get_user_transactions(user_id)
