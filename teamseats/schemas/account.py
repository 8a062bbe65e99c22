"""
Account schemas.
"""

from __future__ import annotations

from uuid import UUID

from pydantic import BaseModel, Field, HttpUrl


class AccountUpdateRequest(BaseModel):
    """Request body for PATCH /account."""

    name: str | None = Field(default=None, min_length=1, max_length=100)
    image_url: HttpUrl | None = None

    model_config = {"str_strip_whitespace": True}


class AccountResponse(BaseModel):
    id: UUID
    email: str
    name: str
    image_url: str | None

    model_config = {"from_attributes": True}


class AccountDeletionResponse(BaseModel):
    """Response for DELETE /account."""

    deleted_organizations: list[str]
    released_seats_in: list[str]
