"""users, login tokens, bookings, host contacts

Revision ID: 0001_initial
Revises: None
Create Date: 2026-09-28 00:00:00.000000
"""
from alembic import op
import sqlalchemy as sa

revision = '0001_initial'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    bind = op.get_bind()
    insp = sa.inspect(bind)

    if not insp.has_table('users'):
        op.create_table(
            'users',
            sa.Column('id', sa.Integer, primary_key=True),
            sa.Column('email', sa.String(255), nullable=False, unique=True),
            sa.Column('role', sa.String(20), nullable=False, server_default='guest'),
            sa.Column('full_name', sa.String(120)),
            sa.Column('phone', sa.String(40)),
            sa.Column('avatar_url', sa.String(500)),
            sa.Column('interests', sa.JSON()),
            sa.Column('notification_preferences', sa.JSON()),
            sa.Column('onboarding_completed_at', sa.DateTime),
            sa.Column('created_at', sa.DateTime, nullable=False, server_default=sa.func.current_timestamp()),
            sa.Column('updated_at', sa.DateTime, server_default=sa.func.current_timestamp()),
        )
        op.create_index('ix_users_email', 'users', ['email'])

    if not insp.has_table('login_tokens'):
        op.create_table(
            'login_tokens',
            sa.Column('id', sa.Integer, primary_key=True),
            sa.Column('email', sa.String(255), nullable=False),
            sa.Column('token_hash', sa.String(64), nullable=False, unique=True),
            sa.Column('next_path', sa.String(255)),
            sa.Column('full_name', sa.String(120)),
            sa.Column('expires_at', sa.DateTime, nullable=False),
            sa.Column('used_at', sa.DateTime),
            sa.Column('created_at', sa.DateTime, nullable=False, server_default=sa.func.current_timestamp()),
            sa.Column('updated_at', sa.DateTime, server_default=sa.func.current_timestamp()),
        )
        op.create_index('ix_login_tokens_email', 'login_tokens', ['email'])

    if not insp.has_table('bookings'):
        op.create_table(
            'bookings',
            sa.Column('id', sa.Integer, primary_key=True),
            sa.Column('external_booking_id', sa.String(100), nullable=False, unique=True),
            sa.Column('email', sa.String(255), nullable=False),
            sa.Column('guest_user_id', sa.Integer, sa.ForeignKey('users.id')),
            sa.Column('check_in', sa.DateTime),
            sa.Column('check_out', sa.DateTime),
            sa.Column('guest_count', sa.Integer),
            sa.Column('room_name', sa.String(100)),
            sa.Column('status', sa.String(20), nullable=False, server_default='confirmed'),
            sa.Column('created_at', sa.DateTime, nullable=False, server_default=sa.func.current_timestamp()),
            sa.Column('updated_at', sa.DateTime, server_default=sa.func.current_timestamp()),
        )
        op.create_index('ix_bookings_email', 'bookings', ['email'])
        op.create_index('ix_bookings_guest_user_id', 'bookings', ['guest_user_id'])

    if not insp.has_table('host_contacts'):
        op.create_table(
            'host_contacts',
            sa.Column('id', sa.Integer, primary_key=True),
            sa.Column('display_name', sa.String(120), nullable=False),
            sa.Column('email', sa.String(255)),
            sa.Column('phone', sa.String(40)),
            sa.Column('whatsapp', sa.String(40)),
            sa.Column('is_active', sa.Boolean, nullable=False, server_default=sa.true()),
            sa.Column('created_at', sa.DateTime, nullable=False, server_default=sa.func.current_timestamp()),
            sa.Column('updated_at', sa.DateTime, server_default=sa.func.current_timestamp()),
        )


def downgrade():
    bind = op.get_bind()
    insp = sa.inspect(bind)
    for t in ('host_contacts', 'bookings', 'login_tokens', 'users'):
        if insp.has_table(t):
            op.drop_table(t)
