"""Initial schema: people, events, daily attendance, listings and notices

Revision ID: 20261019_initial
Revises:
Create Date: 2026-10-19

This migration adds:
1. People and resident profiles
2. Events, materialized event instances and participations
3. Daily attendance (one row per resident per local day)
4. Listings, notices and their pictures
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '20261019_initial'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    # ==========================================================================
    # 1. PEOPLE AND RESIDENTS
    # ==========================================================================
    op.create_table('people',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('first_name', sa.String(length=100), nullable=False),
        sa.Column('last_name', sa.String(length=100), nullable=False),
        sa.Column('phone_number', sa.String(length=32), nullable=True),
        sa.Column('email', sa.String(length=255), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )

    op.create_table('residents',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='1'),
        sa.Column('branch_name', sa.String(length=100), nullable=True),
        sa.Column('date_of_arrival', sa.Date(), nullable=True),
        sa.ForeignKeyConstraint(['id'], ['people.id'], ),
        sa.PrimaryKeyConstraint('id')
    )
    with op.batch_alter_table('residents', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_residents_is_active'), ['is_active'], unique=False)

    # ==========================================================================
    # 2. EVENTS
    # ==========================================================================
    op.create_table('events',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=100), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('host_id', sa.Integer(), nullable=True),
        sa.Column('location', sa.String(length=255), nullable=True),
        sa.Column('capacity', sa.Integer(), nullable=True),
        sa.Column('is_recurring', sa.Boolean(), nullable=False, server_default='0'),
        sa.Column('recurrence_rule', sa.String(length=255), nullable=True),
        sa.Column('start_date', sa.DateTime(timezone=True), nullable=False),
        sa.Column('end_date', sa.DateTime(timezone=True), nullable=True),
        sa.Column('duration_minutes', sa.Integer(), nullable=False, server_default='60'),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.ForeignKeyConstraint(['host_id'], ['people.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('events', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_events_host_id'), ['host_id'], unique=False)
        batch_op.create_index('ix_events_recurring_end', ['is_recurring', 'end_date'], unique=False)

    op.create_table('event_instances',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('event_id', sa.Integer(), nullable=False),
        sa.Column('start_time', sa.DateTime(timezone=True), nullable=False),
        sa.Column('end_time', sa.DateTime(timezone=True), nullable=False),
        sa.Column('status', sa.String(length=16), nullable=False, server_default='Scheduled'),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.ForeignKeyConstraint(['event_id'], ['events.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('event_id', 'start_time', name='uq_event_instance_event_start'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('event_instances', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_event_instances_event_id'), ['event_id'], unique=False)
        batch_op.create_index('ix_event_instances_start', ['start_time'], unique=False)

    op.create_table('event_participations',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('instance_id', sa.Integer(), nullable=False),
        sa.Column('resident_id', sa.Integer(), nullable=False),
        sa.Column('status', sa.String(length=16), nullable=False, server_default='Registered'),
        sa.Column('recorded_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.ForeignKeyConstraint(['instance_id'], ['event_instances.id'], ),
        sa.ForeignKeyConstraint(['resident_id'], ['residents.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('instance_id', 'resident_id', name='uq_participation_instance_resident'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('event_participations', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_event_participations_instance_id'), ['instance_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_event_participations_resident_id'), ['resident_id'], unique=False)

    # ==========================================================================
    # 3. DAILY ATTENDANCE
    # ==========================================================================
    op.create_table('daily_attendance',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('resident_id', sa.Integer(), nullable=False),
        sa.Column('attendance_date', sa.Date(), nullable=False),
        sa.Column('has_signed_in', sa.Boolean(), nullable=False, server_default='0'),
        sa.Column('sign_in_time', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['resident_id'], ['residents.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('resident_id', 'attendance_date', name='uq_daily_attendance_resident_date'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('daily_attendance', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_daily_attendance_resident_id'), ['resident_id'], unique=False)
        batch_op.create_index('ix_daily_attendance_date', ['attendance_date'], unique=False)

    # ==========================================================================
    # 4. LISTINGS, NOTICES AND PICTURES
    # ==========================================================================
    op.create_table('listings',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('seller_id', sa.Integer(), nullable=True),
        sa.Column('title', sa.String(length=100), nullable=False),
        sa.Column('description', sa.String(length=300), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='1'),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.ForeignKeyConstraint(['seller_id'], ['people.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('listings', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_listings_seller_id'), ['seller_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_listings_created_at'), ['created_at'], unique=False)

    op.create_table('notices',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('sender_id', sa.Integer(), nullable=True),
        sa.Column('title', sa.String(length=100), nullable=False),
        sa.Column('message', sa.String(length=300), nullable=True),
        sa.Column('category', sa.String(length=100), nullable=True),
        sa.Column('sub_category', sa.String(length=100), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='1'),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.ForeignKeyConstraint(['sender_id'], ['people.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('notices', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_notices_sender_id'), ['sender_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_notices_created_at'), ['created_at'], unique=False)

    op.create_table('pictures',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('path', sa.String(length=500), nullable=False),
        sa.Column('alt', sa.String(length=255), nullable=False, server_default=''),
        sa.Column('role', sa.String(length=50), nullable=True),
        sa.Column('uploader_id', sa.Integer(), nullable=True),
        sa.Column('listing_id', sa.Integer(), nullable=True),
        sa.Column('notice_id', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.ForeignKeyConstraint(['uploader_id'], ['people.id'], ),
        sa.ForeignKeyConstraint(['listing_id'], ['listings.id'], ),
        sa.ForeignKeyConstraint(['notice_id'], ['notices.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('pictures', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_pictures_uploader_id'), ['uploader_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_pictures_listing_id'), ['listing_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_pictures_notice_id'), ['notice_id'], unique=False)


def downgrade():
    for table in (
        'pictures',
        'notices',
        'listings',
        'daily_attendance',
        'event_participations',
        'event_instances',
        'events',
        'residents',
        'people',
    ):
        op.drop_table(table)
