"""
Shared fixtures.

Tests run against a throwaway SQLite database (aiosqlite), with Stripe,
Redis and the Celery email queue replaced by recording fakes.
"""

import os

os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key-for-teamseats-0123456789abcdef")

from collections.abc import AsyncGenerator
from datetime import timedelta
from typing import Any

import pytest
from fastapi import Depends
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from teamseats.core.database import get_db
from teamseats.core.dependencies import get_billing_gateway, get_redis
from teamseats.core.security import create_access_token, generate_invite_token
from teamseats.models import (
    Base,
    EmailInvite,
    InviteLink,
    Membership,
    Organization,
    StripeProduct,
    StripeSubscription,
    StripeSubscriptionItem,
    User,
)
from teamseats.models.base import now_utc
from teamseats.models.billing import SubscriptionStatus
from teamseats.models.membership import OrgRole
from teamseats.routers.organizations import get_invitation_service
from teamseats.services.invitation_service import InvitationService


# ---------------------------------------------------------------------------
# Fakes
# ---------------------------------------------------------------------------

class RecordingBilling:
    """BillingGateway that records seat updates instead of calling Stripe."""

    def __init__(self) -> None:
        self.calls: list[tuple[str, str, int]] = []
        self.deactivated_customers: list[str] = []
        self.customer_updates: list[tuple[str, str | None, str | None]] = []
        self.error: Exception | None = None

    async def adjust_seats(
        self, subscription_id: str, subscription_item_id: str, new_quantity: int
    ) -> None:
        if self.error is not None:
            raise self.error
        self.calls.append((subscription_id, subscription_item_id, new_quantity))

    async def deactivate_customer(self, customer_id: str) -> None:
        self.deactivated_customers.append(customer_id)

    async def update_customer(
        self, customer_id: str, name: str | None = None, email: str | None = None
    ) -> None:
        self.customer_updates.append((customer_id, name, email))


class RecordingEnqueue:
    """Stands in for send_invitation_email.delay."""

    def __init__(self) -> None:
        self.calls: list[dict[str, Any]] = []

    def __call__(self, **kwargs: Any) -> None:
        self.calls.append(kwargs)


class FakeRedis:
    """In-memory subset of redis.asyncio.Redis used by the app."""

    def __init__(self) -> None:
        self.data: dict[str, str] = {}
        self.expiry: dict[str, int | None] = {}

    async def get(self, key: str) -> str | None:
        return self.data.get(key)

    async def set(self, key: str, value: str, ex: int | None = None) -> bool:
        self.data[key] = value
        self.expiry[key] = ex
        return True

    async def delete(self, *keys: str) -> int:
        removed = 0
        for key in keys:
            if self.data.pop(key, None) is not None:
                removed += 1
            self.expiry.pop(key, None)
        return removed

    async def exists(self, *keys: str) -> int:
        return sum(1 for key in keys if key in self.data)


# ---------------------------------------------------------------------------
# Database
# ---------------------------------------------------------------------------

@pytest.fixture
async def engine(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'teamseats.db'}", poolclass=NullPool)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)


@pytest.fixture
async def db(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@pytest.fixture
def billing() -> RecordingBilling:
    return RecordingBilling()


@pytest.fixture
def enqueue() -> RecordingEnqueue:
    return RecordingEnqueue()


@pytest.fixture
def fake_redis() -> FakeRedis:
    return FakeRedis()


# ---------------------------------------------------------------------------
# Factories (every helper commits so HTTP requests see the rows)
# ---------------------------------------------------------------------------

class Factory:
    def __init__(self, db: AsyncSession) -> None:
        self.db = db
        self._counter = 0

    def _next(self) -> int:
        self._counter += 1
        return self._counter

    async def _save(self, *objects: Any) -> None:
        self.db.add_all(objects)
        await self.db.commit()

    async def user(self, email: str | None = None, name: str | None = None) -> User:
        n = self._next()
        user = User(email=email or f"user{n}@example.com", name=name if name is not None else f"User {n}")
        await self._save(user)
        return user

    async def organization(self, owner: User, slug: str | None = None, **fields: Any) -> Organization:
        n = self._next()
        org = Organization(
            name=fields.pop("name", f"Org {n}"),
            slug=slug or f"org-{n}",
            billing_email=owner.email,
            trial_end=fields.pop("trial_end", now_utc() + timedelta(days=14)),
            **fields,
        )
        await self._save(org)
        await self.membership(owner, org, OrgRole.owner)
        return org

    async def membership(
        self,
        user: User,
        org: Organization,
        role: OrgRole = OrgRole.member,
        deactivated: bool = False,
    ) -> Membership:
        membership = Membership(
            user_id=user.id,
            organization_id=org.id,
            role=role,
            deactivated_at=now_utc() if deactivated else None,
        )
        await self._save(membership)
        return membership

    async def members(self, org: Organization, count: int) -> list[User]:
        users = []
        for _ in range(count):
            user = await self.user()
            await self.membership(user, org)
            users.append(user)
        return users

    async def subscription(
        self,
        org: Organization,
        max_seats: int | None,
        status: SubscriptionStatus = SubscriptionStatus.active,
        created_offset: timedelta = timedelta(0),
    ) -> StripeSubscription:
        n = self._next()
        product = StripeProduct(stripe_id=f"prod_{n}", name=f"Plan {n}", max_seats=max_seats)
        subscription = StripeSubscription(
            stripe_id=f"sub_{n}",
            organization_id=org.id,
            status=status,
            created=now_utc() + created_offset,
            items=[
                StripeSubscriptionItem(
                    stripe_id=f"si_{n}",
                    price_id=f"price_{n}",
                    product_id=product.stripe_id,
                    quantity=1,
                )
            ],
        )
        await self._save(product, subscription)
        return subscription

    async def invite_link(
        self,
        org: Organization,
        creator: User | None,
        expires_in: timedelta = timedelta(days=2),
        deactivated: bool = False,
    ) -> InviteLink:
        link = InviteLink(
            organization_id=org.id,
            creator_id=creator.id if creator else None,
            token=generate_invite_token(),
            expires_at=now_utc() + expires_in,
            deactivated_at=now_utc() if deactivated else None,
        )
        await self._save(link)
        return link

    async def email_invite(
        self,
        org: Organization,
        inviter: User | None,
        email: str,
        role: OrgRole = OrgRole.member,
        created_offset: timedelta = timedelta(0),
        expires_in: timedelta = timedelta(days=2),
    ) -> EmailInvite:
        invite = EmailInvite(
            organization_id=org.id,
            invited_by_id=inviter.id if inviter else None,
            email=email,
            role=role,
            token=generate_invite_token(),
            expires_at=now_utc() + expires_in,
            created_at=now_utc() + created_offset,
        )
        await self._save(invite)
        return invite


@pytest.fixture
def make(db) -> Factory:
    return Factory(db)


# ---------------------------------------------------------------------------
# HTTP client
# ---------------------------------------------------------------------------

def auth_headers(user: User) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(str(user.id))}"}


@pytest.fixture
def auth():
    return auth_headers


@pytest.fixture
async def client(session_factory, billing, enqueue, fake_redis) -> AsyncGenerator[AsyncClient, None]:
    from teamseats.main import app

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    async def override_get_redis() -> FakeRedis:
        return fake_redis

    def override_invitation_service(db: AsyncSession = Depends(get_db)) -> InvitationService:
        return InvitationService(db=db, enqueue_invitation_email=enqueue)

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_redis] = override_get_redis
    app.dependency_overrides[get_billing_gateway] = lambda: billing
    app.dependency_overrides[get_invitation_service] = override_invitation_service

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()
