"""
Pending invite sessions stored in Redis.

When an invite page is opened, the invite token is remembered under a random
session id (sent to the browser as a cookie) so the invite can be resumed after
sign-in. One session holds at most one invite link token and one email invite
token. The session is destroyed when the invite is accepted, when admission is
refused because the organization is full, and when its invites went stale.
"""

from __future__ import annotations

import logging
import secrets
from datetime import UTC, datetime
from typing import Literal

import redis.asyncio as aioredis
from pydantic import BaseModel

from teamseats.core.config import settings
from teamseats.core.security import pending_invite_redis_key

logger = logging.getLogger(__name__)

PENDING_INVITE_COOKIE = "pending_invite"

InviteKind = Literal["invite_link", "email_invite"]


class PendingInvite(BaseModel):
    invite_link_token: str | None = None
    email_invite_token: str | None = None

    def token_for(self, kind: InviteKind) -> str | None:
        return self.email_invite_token if kind == "email_invite" else self.invite_link_token

    def with_token(self, kind: InviteKind, token: str | None) -> PendingInvite:
        field = "email_invite_token" if kind == "email_invite" else "invite_link_token"
        return self.model_copy(update={field: token})

    @property
    def is_empty(self) -> bool:
        return self.invite_link_token is None and self.email_invite_token is None


class PendingInviteStore:
    """Create, read and destroy pending invite sessions."""

    def __init__(self, redis: aioredis.Redis) -> None:
        self.redis = redis

    async def create(
        self,
        kind: InviteKind,
        token: str,
        expires_at: datetime,
        session_id: str | None = None,
    ) -> str | None:
        """
        Remember an invite until it expires.

        An existing session keeps its other invite. Returns the session id, or
        None when the invite is already expired.
        """
        if expires_at.tzinfo is None:
            expires_at = expires_at.replace(tzinfo=UTC)
        remaining = int((expires_at - datetime.now(UTC)).total_seconds())
        if remaining <= 0:
            logger.warning("Refusing to store pending invite for expired %s", kind)
            return None

        pending = await self.get(session_id) if session_id else None
        if pending is None:
            session_id = secrets.token_urlsafe(24)
            pending = PendingInvite()
        pending = pending.with_token(kind, token)

        await self.redis.set(
            pending_invite_redis_key(session_id),
            pending.model_dump_json(),
            ex=min(remaining, settings.PENDING_INVITE_TTL_SECONDS),
        )
        return session_id

    async def get(self, session_id: str) -> PendingInvite | None:
        raw = await self.redis.get(pending_invite_redis_key(session_id))
        if raw is None:
            return None
        return PendingInvite.model_validate_json(raw)

    async def save(self, session_id: str, pending: PendingInvite) -> None:
        """Overwrite a session with the invites that are still valid."""
        await self.redis.set(
            pending_invite_redis_key(session_id),
            pending.model_dump_json(),
            ex=settings.PENDING_INVITE_TTL_SECONDS,
        )

    async def destroy(self, session_id: str) -> None:
        await self.redis.delete(pending_invite_redis_key(session_id))
