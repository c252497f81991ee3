"""create licensing schema (auth_users, profiles, user_roles, license_applications, licenses)

Revision ID: b7e41c2d9a10
Revises:
Create Date: 2025-11-26 10:13:27.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = 'b7e41c2d9a10'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table('auth_users',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('password_hash', sa.String(length=255), nullable=False),
        sa.Column('raw_user_meta_data', sa.JSON(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('email')
    )
    op.create_index('idx_auth_users_email', 'auth_users', ['email'], unique=False)

    op.create_table('profiles',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('first_name', sa.String(length=100), nullable=True),
        sa.Column('last_name', sa.String(length=100), nullable=True),
        sa.Column('business_name', sa.String(length=200), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.ForeignKeyConstraint(['id'], ['auth_users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
    )

    op.create_table('user_roles',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('user_id', sa.String(length=36), nullable=False),
        sa.Column('role', sa.Enum('admin', 'user', name='app_role'), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.ForeignKeyConstraint(['user_id'], ['auth_users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('user_id', 'role', name='uq_user_roles_user_role')
    )
    op.create_index('idx_user_roles_user_id', 'user_roles', ['user_id'], unique=False)

    op.create_table('license_applications',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('user_id', sa.String(length=36), nullable=False),
        sa.Column('license_type', sa.Text(), nullable=False),
        sa.Column('business_name', sa.Text(), nullable=False),
        sa.Column('registration_number', sa.Text(), nullable=False),
        sa.Column('business_address', sa.Text(), nullable=False),
        sa.Column('contact_person', sa.Text(), nullable=False),
        sa.Column('contact_email', sa.Text(), nullable=False),
        sa.Column('phone_number', sa.Text(), nullable=False),
        sa.Column('business_type', sa.Text(), nullable=False),
        sa.Column('business_description', sa.Text(), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False, server_default='pending'),
        sa.Column('submitted_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column('reviewed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('reviewed_by', sa.String(length=36), nullable=True),
        sa.Column('rejection_reason', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.CheckConstraint(
            "status IN ('pending', 'in_review', 'approved', 'rejected')",
            name='ck_license_applications_status'
        ),
        sa.ForeignKeyConstraint(['user_id'], ['auth_users.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['reviewed_by'], ['auth_users.id']),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('idx_license_applications_user_id', 'license_applications', ['user_id'], unique=False)
    op.create_index('idx_license_applications_status', 'license_applications', ['status'], unique=False)

    op.create_table('licenses',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('application_id', sa.String(length=36), nullable=False),
        sa.Column('user_id', sa.String(length=36), nullable=False),
        sa.Column('license_number', sa.String(length=50), nullable=False),
        sa.Column('license_type', sa.Text(), nullable=False),
        sa.Column('business_name', sa.Text(), nullable=False),
        sa.Column('issue_date', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column('expiry_date', sa.DateTime(timezone=True), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False, server_default='active'),
        sa.Column('integrity_hash', sa.String(length=128), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.CheckConstraint(
            "status IN ('active', 'expired', 'suspended', 'revoked')",
            name='ck_licenses_status'
        ),
        sa.ForeignKeyConstraint(['application_id'], ['license_applications.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['user_id'], ['auth_users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('application_id'),
        sa.UniqueConstraint('license_number')
    )
    op.create_index('idx_licenses_user_id', 'licenses', ['user_id'], unique=False)


def downgrade() -> None:
    op.drop_index('idx_licenses_user_id', table_name='licenses')
    op.drop_table('licenses')

    op.drop_index('idx_license_applications_status', table_name='license_applications')
    op.drop_index('idx_license_applications_user_id', table_name='license_applications')
    op.drop_table('license_applications')

    op.drop_index('idx_user_roles_user_id', table_name='user_roles')
    op.drop_table('user_roles')

    op.drop_table('profiles')

    op.drop_index('idx_auth_users_email', table_name='auth_users')
    op.drop_table('auth_users')

    # Drop enum type (PostgreSQL only)
    if op.get_bind().dialect.name == 'postgresql':
        op.execute('DROP TYPE app_role')
