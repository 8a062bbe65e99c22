"""
Domain exceptions.

Services raise these; the handler registered in main.py renders them with the
same {"detail": {"code", "message"}} envelope the routers use for HTTPException.
"""

from __future__ import annotations

from typing import Any

from fastapi import status


class DuplicateKeyError(Exception):
    """Raised by the persistence layer when a unique constraint is violated."""

    def __init__(self, constraint: str) -> None:
        super().__init__(f"duplicate key value violates unique constraint {constraint!r}")
        self.constraint = constraint


class DomainError(Exception):
    """Base class for expected, user-facing failures."""

    status_code: int = status.HTTP_400_BAD_REQUEST
    code: str = "DOMAIN_ERROR"
    message: str = "Request could not be completed"

    def __init__(self, message: str | None = None, **extra: Any) -> None:
        self.message = message or self.message
        self.extra = extra
        super().__init__(self.message)

    def to_detail(self) -> dict[str, Any]:
        return {"code": self.code, "message": self.message, **self.extra}


class OrganizationFullError(DomainError):
    """The organization has no free seat under its plan."""

    code = "ORGANIZATION_FULL"
    message = "This organization has reached its member limit"

    def __init__(self, message: str | None = None, redirect_to: str | None = None) -> None:
        extra = {"redirect_to": redirect_to} if redirect_to else {}
        super().__init__(message, **extra)
        self.redirect_to = redirect_to


class ForbiddenError(DomainError):
    status_code = status.HTTP_403_FORBIDDEN
    code = "FORBIDDEN"
    message = "You are not allowed to perform this action"


class AlreadyMemberError(DomainError):
    status_code = status.HTTP_409_CONFLICT
    code = "ALREADY_MEMBER"
    message = "User is already a member of this organization"


class TargetNotFoundError(DomainError):
    code = "TARGET_NOT_FOUND"
    message = "Member not found"


class NotFoundError(DomainError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "NOT_FOUND"
    message = "Resource not found"


class SlugTakenError(DomainError):
    status_code = status.HTTP_409_CONFLICT
    code = "SLUG_TAKEN"
    message = "An organization with this slug already exists"


class AccountDeletionBlockedError(DomainError):
    """The user owns organizations that still have other active members."""

    code = "ACCOUNT_DELETION_BLOCKED"
    message = "Transfer ownership of your organizations before deleting your account"

    def __init__(self, organization_slugs: list[str]) -> None:
        super().__init__(None, organizations=organization_slugs)
        self.organization_slugs = organization_slugs


class BillingCustomerMissingError(DomainError):
    code = "NO_BILLING_CUSTOMER"
    message = "This organization has no billing account yet"
