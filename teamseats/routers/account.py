"""
Account endpoints.

PATCH  /account - update the current user's name or image
DELETE /account - delete the current user's account
"""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from teamseats.core.database import get_db
from teamseats.core.dependencies import get_billing_gateway, get_current_user
from teamseats.models.user import User
from teamseats.schemas.account import (
    AccountDeletionResponse,
    AccountResponse,
    AccountUpdateRequest,
)
from teamseats.services.account_service import AccountService
from teamseats.services.billing_service import BillingGateway

router = APIRouter()


def get_account_service(
    db: AsyncSession = Depends(get_db),
    billing: BillingGateway = Depends(get_billing_gateway),
) -> AccountService:
    return AccountService(db=db, billing=billing)


@router.patch(
    "",
    response_model=AccountResponse,
    summary="Update my account",
)
async def update_account(
    data: AccountUpdateRequest,
    current_user: User = Depends(get_current_user),
    service: AccountService = Depends(get_account_service),
) -> AccountResponse:
    user = await service.update_account(current_user, data)
    return AccountResponse.model_validate(user)


@router.delete(
    "",
    response_model=AccountDeletionResponse,
    summary="Delete my account",
)
async def delete_account(
    current_user: User = Depends(get_current_user),
    service: AccountService = Depends(get_account_service),
) -> AccountDeletionResponse:
    """
    Delete the current user.

    - Organizations the user owns alone are deleted with them
    - Fails with ACCOUNT_DELETION_BLOCKED while the user owns a team with other members
    - The user's seat is released in every other organization
    """
    plan = await service.plan_account_deletion(current_user)
    deleted = [org.slug for org, _ in plan.organizations_to_delete]
    released = [org.slug for org, _ in plan.seats_to_release]

    await service.delete_sole_owner_organizations(plan)
    await service.release_seats(plan)
    await service.delete_user(current_user)

    return AccountDeletionResponse(deleted_organizations=deleted, released_seats_in=released)
