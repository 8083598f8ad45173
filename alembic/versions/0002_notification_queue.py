"""notification queue and processing timeline

Revision ID: 0002_notification_queue
Revises: 0001_initial
Create Date: 2026-10-02 00:00:00.000000
"""
from alembic import op
import sqlalchemy as sa

revision = '0002_notification_queue'
down_revision = '0001_initial'
branch_labels = None
depends_on = None


def upgrade():
    bind = op.get_bind()
    insp = sa.inspect(bind)

    if not insp.has_table('notifications'):
        op.create_table(
            'notifications',
            sa.Column('id', sa.String(36), primary_key=True),
            sa.Column('type', sa.String(50), nullable=False),
            sa.Column('recipient_email', sa.String(255), nullable=False),
            sa.Column('payload', sa.JSON(), nullable=False),
            # weak references, no foreign keys
            sa.Column('user_id', sa.Integer),
            sa.Column('booking_id', sa.Integer),
            sa.Column('status', sa.String(20), nullable=False, server_default='queued'),
            sa.Column('attempts', sa.Integer, nullable=False, server_default='0'),
            sa.Column('last_error', sa.Text),
            sa.Column('next_retry_at', sa.DateTime),
            sa.Column('created_at', sa.DateTime, nullable=False, server_default=sa.func.current_timestamp()),
            sa.Column('sent_at', sa.DateTime),
            sa.Column('resend_email_id', sa.String(255)),
        )
        op.create_index('ix_notifications_dequeue', 'notifications', ['status', 'next_retry_at', 'created_at'])
        op.create_index('ix_notifications_user_id', 'notifications', ['user_id'])
        op.create_index('ix_notifications_booking_id', 'notifications', ['booking_id'])

    if not insp.has_table('notification_event_logs'):
        op.create_table(
            'notification_event_logs',
            sa.Column('id', sa.Integer, primary_key=True),
            sa.Column('notification_id', sa.String(36), nullable=False),
            sa.Column('event_type', sa.String(30), nullable=False),
            sa.Column('attempt_number', sa.Integer, nullable=False, server_default='0'),
            sa.Column('error_code', sa.String(100)),
            sa.Column('error_message', sa.Text),
            sa.Column('resend_email_id', sa.String(255)),
            sa.Column('response_metadata', sa.JSON(), nullable=False),
            sa.Column('created_at', sa.DateTime, nullable=False, server_default=sa.func.current_timestamp()),
        )
        op.create_index('ix_notification_event_logs_notification_id', 'notification_event_logs', ['notification_id'])


def downgrade():
    bind = op.get_bind()
    insp = sa.inspect(bind)
    if insp.has_table('notification_event_logs'):
        op.drop_table('notification_event_logs')
    if insp.has_table('notifications'):
        op.drop_table('notifications')
