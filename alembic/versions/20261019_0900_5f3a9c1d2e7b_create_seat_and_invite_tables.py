"""create_seat_and_invite_tables

Revision ID: 5f3a9c1d2e7b
Revises: 
Create Date: 2026-10-19 09:00:00

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import JSONB, UUID

# revision identifiers, used by Alembic.
revision: str = '5f3a9c1d2e7b'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

org_role = sa.Enum('owner', 'admin', 'member', name='org_role')
subscription_status = sa.Enum(
    'active', 'trialing', 'past_due', 'canceled', 'unpaid',
    'incomplete', 'incomplete_expired', 'paused',
    name='subscription_status',
)


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    ]


def upgrade() -> None:
    """Create users, organizations, memberships, invites, billing and notification tables."""
    op.create_table(
        'users',
        sa.Column('id', UUID(as_uuid=True), primary_key=True, server_default=sa.text('gen_random_uuid()')),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('name', sa.String(length=100), nullable=False, server_default=''),
        sa.Column('image_url', sa.String(length=500), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
    )
    op.create_index('ix_users_email', 'users', ['email'], unique=True)

    op.create_table(
        'organizations',
        sa.Column('id', UUID(as_uuid=True), primary_key=True, server_default=sa.text('gen_random_uuid()')),
        sa.Column('name', sa.String(length=100), nullable=False),
        sa.Column('slug', sa.String(length=50), nullable=False),
        sa.Column('image_url', sa.String(length=500), nullable=True),
        sa.Column('billing_email', sa.String(length=255), nullable=False, server_default=''),
        sa.Column('stripe_customer_id', sa.String(length=255), nullable=True),
        sa.Column('trial_end', sa.DateTime(timezone=True), nullable=False),
        *_timestamps(),
    )
    op.create_index('ix_organizations_slug', 'organizations', ['slug'], unique=True)

    op.create_table(
        'memberships',
        sa.Column('id', UUID(as_uuid=True), primary_key=True, server_default=sa.text('gen_random_uuid()')),
        sa.Column('user_id', UUID(as_uuid=True), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('organization_id', UUID(as_uuid=True), sa.ForeignKey('organizations.id', ondelete='CASCADE'), nullable=False),
        sa.Column('role', org_role, nullable=False),
        sa.Column('deactivated_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.UniqueConstraint('user_id', 'organization_id', name='uq_memberships_user_organization'),
    )
    op.create_index('ix_memberships_user_id', 'memberships', ['user_id'])
    op.create_index('ix_memberships_organization_id', 'memberships', ['organization_id'])

    op.create_table(
        'invite_links',
        sa.Column('id', UUID(as_uuid=True), primary_key=True, server_default=sa.text('gen_random_uuid()')),
        sa.Column('organization_id', UUID(as_uuid=True), sa.ForeignKey('organizations.id', ondelete='CASCADE'), nullable=False),
        sa.Column('creator_id', UUID(as_uuid=True), sa.ForeignKey('users.id', ondelete='SET NULL'), nullable=True),
        sa.Column('token', sa.String(length=255), nullable=False),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('deactivated_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index('ix_invite_links_organization_id', 'invite_links', ['organization_id'])
    op.create_index('ix_invite_links_token', 'invite_links', ['token'], unique=True)

    op.create_table(
        'invite_link_uses',
        sa.Column('id', UUID(as_uuid=True), primary_key=True, server_default=sa.text('gen_random_uuid()')),
        sa.Column('invite_link_id', UUID(as_uuid=True), sa.ForeignKey('invite_links.id', ondelete='CASCADE'), nullable=False),
        sa.Column('user_id', UUID(as_uuid=True), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.UniqueConstraint('invite_link_id', 'user_id', name='uq_invite_link_uses_link_user'),
    )
    op.create_index('ix_invite_link_uses_invite_link_id', 'invite_link_uses', ['invite_link_id'])
    op.create_index('ix_invite_link_uses_user_id', 'invite_link_uses', ['user_id'])

    op.create_table(
        'email_invites',
        sa.Column('id', UUID(as_uuid=True), primary_key=True, server_default=sa.text('gen_random_uuid()')),
        sa.Column('organization_id', UUID(as_uuid=True), sa.ForeignKey('organizations.id', ondelete='CASCADE'), nullable=False),
        sa.Column('invited_by_id', UUID(as_uuid=True), sa.ForeignKey('users.id', ondelete='SET NULL'), nullable=True),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('role', org_role, nullable=False),
        sa.Column('token', sa.String(length=255), nullable=False),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('deactivated_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index('ix_email_invites_organization_id', 'email_invites', ['organization_id'])
    op.create_index('ix_email_invites_email', 'email_invites', ['email'])
    op.create_index('ix_email_invites_token', 'email_invites', ['token'], unique=True)

    op.create_table(
        'stripe_products',
        sa.Column('id', UUID(as_uuid=True), primary_key=True, server_default=sa.text('gen_random_uuid()')),
        sa.Column('stripe_id', sa.String(length=255), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False, server_default=''),
        sa.Column('max_seats', sa.Integer(), nullable=True),
        *_timestamps(),
    )
    op.create_index('ix_stripe_products_stripe_id', 'stripe_products', ['stripe_id'], unique=True)

    op.create_table(
        'stripe_subscriptions',
        sa.Column('id', UUID(as_uuid=True), primary_key=True, server_default=sa.text('gen_random_uuid()')),
        sa.Column('stripe_id', sa.String(length=255), nullable=False),
        sa.Column('organization_id', UUID(as_uuid=True), sa.ForeignKey('organizations.id', ondelete='CASCADE'), nullable=False),
        sa.Column('status', subscription_status, nullable=False),
        sa.Column('cancel_at_period_end', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('created', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        *_timestamps(),
    )
    op.create_index('ix_stripe_subscriptions_stripe_id', 'stripe_subscriptions', ['stripe_id'], unique=True)
    op.create_index('ix_stripe_subscriptions_organization_id', 'stripe_subscriptions', ['organization_id'])

    op.create_table(
        'stripe_subscription_items',
        sa.Column('id', UUID(as_uuid=True), primary_key=True, server_default=sa.text('gen_random_uuid()')),
        sa.Column('stripe_id', sa.String(length=255), nullable=False),
        sa.Column('subscription_id', UUID(as_uuid=True), sa.ForeignKey('stripe_subscriptions.id', ondelete='CASCADE'), nullable=False),
        sa.Column('price_id', sa.String(length=255), nullable=False),
        sa.Column('product_id', sa.String(length=255), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False, server_default='1'),
        *_timestamps(),
    )
    op.create_index('ix_stripe_subscription_items_stripe_id', 'stripe_subscription_items', ['stripe_id'], unique=True)
    op.create_index('ix_stripe_subscription_items_subscription_id', 'stripe_subscription_items', ['subscription_id'])
    op.create_index('ix_stripe_subscription_items_product_id', 'stripe_subscription_items', ['product_id'])

    op.create_table(
        'notifications',
        sa.Column('id', UUID(as_uuid=True), primary_key=True, server_default=sa.text('gen_random_uuid()')),
        sa.Column('organization_id', UUID(as_uuid=True), sa.ForeignKey('organizations.id', ondelete='CASCADE'), nullable=False),
        sa.Column('content', JSONB(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index('ix_notifications_organization_id', 'notifications', ['organization_id'])
    op.create_index('ix_notifications_created_at', 'notifications', ['created_at'])

    op.create_table(
        'notification_recipients',
        sa.Column('id', UUID(as_uuid=True), primary_key=True, server_default=sa.text('gen_random_uuid()')),
        sa.Column('notification_id', UUID(as_uuid=True), sa.ForeignKey('notifications.id', ondelete='CASCADE'), nullable=False),
        sa.Column('user_id', UUID(as_uuid=True), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('read_at', sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index('ix_notification_recipients_notification_id', 'notification_recipients', ['notification_id'])
    op.create_index('ix_notification_recipients_user_id', 'notification_recipients', ['user_id'])

    op.create_table(
        'notification_panels',
        sa.Column('id', UUID(as_uuid=True), primary_key=True, server_default=sa.text('gen_random_uuid()')),
        sa.Column('user_id', UUID(as_uuid=True), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('organization_id', UUID(as_uuid=True), sa.ForeignKey('organizations.id', ondelete='CASCADE'), nullable=False),
        sa.Column('last_opened_at', sa.DateTime(timezone=True), nullable=True),
        sa.UniqueConstraint('user_id', 'organization_id', name='uq_notification_panels_user_org'),
    )
    op.create_index('ix_notification_panels_user_id', 'notification_panels', ['user_id'])
    op.create_index('ix_notification_panels_organization_id', 'notification_panels', ['organization_id'])


def downgrade() -> None:
    """Drop every table and enum type created above."""
    op.drop_table('notification_panels')
    op.drop_table('notification_recipients')
    op.drop_table('notifications')
    op.drop_table('stripe_subscription_items')
    op.drop_table('stripe_subscriptions')
    op.drop_table('stripe_products')
    op.drop_table('email_invites')
    op.drop_table('invite_link_uses')
    op.drop_table('invite_links')
    op.drop_table('memberships')
    op.drop_table('organizations')
    op.drop_table('users')
    subscription_status.drop(op.get_bind(), checkfirst=True)
    org_role.drop(op.get_bind(), checkfirst=True)
