"""initial schema

Revision ID: 3c1d9a7e2b40
Revises:
Create Date: 2026-10-18 09:12:44.201553

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '3c1d9a7e2b40'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

# DB stores enum names in uppercase (SQLAlchemy default for pg enum)
userrole = sa.Enum('ADMIN', 'USER', name='userrole')
accesstype = sa.Enum('BASIC', 'PRO', 'EBOOK', 'MINDCARE', name='accesstype')
courseaccesslevel = sa.Enum('PUBLIC', 'BASIC', 'PRO', name='courseaccesslevel')
materialtype = sa.Enum('VIDEO', 'IMAGE', 'TEXT', 'BUTTON', name='materialtype')
backgroundtype = sa.Enum('DEFAULT', 'MUTED', 'GRADIENT', name='backgroundtype')
elementtype = sa.Enum('HEADING', 'PARAGRAPH', 'BUTTON', 'CARD', 'VIDEO', 'CARD_GROUP', name='elementtype')
eventstatus = sa.Enum('PROCESSED', 'FAILED', 'IGNORED', name='eventstatus')


def _timestamps():
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
    ]


def upgrade() -> None:
    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('email', sa.String(255), nullable=False),
        sa.Column('password_hash', sa.String(255), nullable=False),
        sa.Column('role', userrole, nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
    )
    op.create_index('ix_users_id', 'users', ['id'])
    op.create_index('ix_users_email', 'users', ['email'], unique=True)

    op.create_table(
        'buyers',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('email', sa.String(255), nullable=False),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('product_title', sa.String(500), nullable=False),
        sa.Column('access_type', accesstype, nullable=False),
        sa.Column('amount', sa.String(100), nullable=True),
        sa.Column('ref_id', sa.String(255), nullable=True),
        sa.Column('purchased_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        *_timestamps(),
    )
    op.create_index('ix_buyers_id', 'buyers', ['id'])
    op.create_index('ix_buyers_email', 'buyers', ['email'], unique=True)

    op.create_table(
        'courses',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('title', sa.String(255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('thumbnail_url', sa.String(1000), nullable=True),
        sa.Column('is_published', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('access_level', courseaccesslevel, nullable=False),
        sa.Column('order_index', sa.Integer(), nullable=False, server_default='0'),
        *_timestamps(),
    )
    op.create_index('ix_courses_id', 'courses', ['id'])

    op.create_table(
        'modules',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('course_id', sa.Integer(), sa.ForeignKey('courses.id', ondelete='CASCADE'), nullable=False),
        sa.Column('title', sa.String(255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('order_index', sa.Integer(), nullable=False, server_default='0'),
        *_timestamps(),
    )
    op.create_index('ix_modules_id', 'modules', ['id'])
    op.create_index('ix_modules_course_id', 'modules', ['course_id'])

    op.create_table(
        'materials',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('module_id', sa.Integer(), sa.ForeignKey('modules.id', ondelete='CASCADE'), nullable=False),
        sa.Column('type', materialtype, nullable=True),
        sa.Column('title', sa.String(255), nullable=False),
        sa.Column('content', sa.Text(), nullable=True),
        sa.Column('media_url', sa.String(1000), nullable=True),
        sa.Column('button_text', sa.String(255), nullable=True),
        sa.Column('button_url', sa.String(1000), nullable=True),
        sa.Column('order_index', sa.Integer(), nullable=False, server_default='0'),
        *_timestamps(),
    )
    op.create_index('ix_materials_id', 'materials', ['id'])
    op.create_index('ix_materials_module_id', 'materials', ['module_id'])

    op.create_table(
        'homepage_sections',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('title', sa.String(500), nullable=True),
        sa.Column('subtitle', sa.String(1000), nullable=True),
        sa.Column('background', backgroundtype, nullable=False),
        sa.Column('order_index', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('is_visible', sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
    )
    op.create_index('ix_homepage_sections_id', 'homepage_sections', ['id'])

    op.create_table(
        'homepage_elements',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column(
            'section_id', sa.Integer(),
            sa.ForeignKey('homepage_sections.id', ondelete='CASCADE'), nullable=False,
        ),
        sa.Column('type', elementtype, nullable=False),
        sa.Column('content', sa.JSON(), nullable=False),
        sa.Column('order_index', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('is_visible', sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
    )
    op.create_index('ix_homepage_elements_id', 'homepage_elements', ['id'])
    op.create_index('ix_homepage_elements_section_id', 'homepage_elements', ['section_id'])

    op.create_table(
        'announcements',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('title', sa.String(255), nullable=False),
        sa.Column('content', sa.Text(), nullable=False),
        sa.Column('is_published', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('published_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('link_url', sa.String(1000), nullable=True),
        sa.Column('link_text', sa.String(255), nullable=True),
        *_timestamps(),
    )
    op.create_index('ix_announcements_id', 'announcements', ['id'])

    op.create_table(
        'announcement_reads',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column(
            'announcement_id', sa.Integer(),
            sa.ForeignKey('announcements.id', ondelete='CASCADE'), nullable=False,
        ),
        sa.Column('buyer_email', sa.String(255), nullable=False),
        sa.Column('read_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.UniqueConstraint('announcement_id', 'buyer_email', name='uq_announcement_reads_announcement_email'),
    )
    op.create_index('ix_announcement_reads_id', 'announcement_reads', ['id'])
    op.create_index('ix_announcement_reads_announcement_id', 'announcement_reads', ['announcement_id'])
    op.create_index('ix_announcement_reads_buyer_email', 'announcement_reads', ['buyer_email'])

    op.create_table(
        'enrollments',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('buyer_email', sa.String(255), nullable=False),
        sa.Column('course_id', sa.Integer(), sa.ForeignKey('courses.id', ondelete='CASCADE'), nullable=False),
        sa.Column('enrolled_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.UniqueConstraint('buyer_email', 'course_id', name='uq_enrollments_email_course'),
    )
    op.create_index('ix_enrollments_id', 'enrollments', ['id'])
    op.create_index('ix_enrollments_buyer_email', 'enrollments', ['buyer_email'])
    op.create_index('ix_enrollments_course_id', 'enrollments', ['course_id'])

    op.create_table(
        'events',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('type', sa.String(100), nullable=False),
        sa.Column('payload', sa.JSON(), nullable=False),
        sa.Column('status', eventstatus, nullable=False),
        sa.Column('error_message', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
    )
    op.create_index('ix_events_id', 'events', ['id'])
    op.create_index('ix_events_type', 'events', ['type'])
    op.create_index('ix_events_created_at', 'events', ['created_at'])


def downgrade() -> None:
    for table in (
        'events', 'enrollments', 'announcement_reads', 'announcements', 'homepage_elements',
        'homepage_sections', 'materials', 'modules', 'courses', 'buyers', 'users',
    ):
        op.drop_table(table)
    for enum in (eventstatus, elementtype, backgroundtype, materialtype, courseaccesslevel, accesstype, userrole):
        enum.drop(op.get_bind(), checkfirst=True)
