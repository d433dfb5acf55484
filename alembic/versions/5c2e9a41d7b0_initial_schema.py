"""initial_schema

Revision ID: 5c2e9a41d7b0
Revises:
Create Date: 2026-10-18 12:00:00.000000
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


revision: str = '5c2e9a41d7b0'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

USER_LIBRARY_TABLES = ('user_powers', 'user_techniques', 'user_items', 'user_creatures')
PUBLIC_LIBRARY_TABLES = ('public_powers', 'public_techniques', 'public_items', 'public_creatures')
CODEX_TABLES = (
    'codex_feats', 'codex_skills', 'codex_species', 'codex_traits', 'codex_parts',
    'codex_properties', 'codex_equipment', 'codex_archetypes', 'codex_creature_feats',
)


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
    ]


def _owner_fk(table: str, column: str = 'user_id') -> sa.ForeignKeyConstraint:
    return sa.ForeignKeyConstraint(
        [column], ['user_profiles.id'],
        name=op.f(f'fk_{table}_{column}_user_profiles'), ondelete='CASCADE',
    )


def upgrade() -> None:
    op.create_table(
        'user_profiles',
        sa.Column('id', sa.String(length=64), nullable=False),
        sa.Column('email', sa.String(length=256), nullable=True),
        sa.Column('display_name', sa.String(length=128), nullable=True),
        sa.Column('username', sa.String(length=64), nullable=True),
        sa.Column('photo_url', sa.String(length=512), nullable=True),
        sa.Column('role', sa.String(length=16), nullable=False),
        sa.Column('last_username_change', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_user_profiles')),
        sa.UniqueConstraint('username', name=op.f('uq_user_profiles_username')),
    )

    op.create_table(
        'usernames',
        sa.Column('username', sa.String(length=64), nullable=False),
        sa.Column('user_id', sa.String(length=64), nullable=False),
        _owner_fk('usernames'),
        sa.PrimaryKeyConstraint('username', name=op.f('pk_usernames')),
    )
    op.create_index('ix_usernames_user', 'usernames', ['user_id'])

    op.create_table(
        'characters',
        sa.Column('id', sa.String(length=64), nullable=False),
        sa.Column('user_id', sa.String(length=64), nullable=False),
        sa.Column('data', sa.JSON(), nullable=False),
        *_timestamps(),
        _owner_fk('characters'),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_characters')),
    )
    op.create_index('ix_characters_user', 'characters', ['user_id'])
    op.create_index('ix_characters_user_updated', 'characters', ['user_id', 'updated_at'])

    for table in USER_LIBRARY_TABLES:
        op.create_table(
            table,
            sa.Column('id', sa.String(length=64), nullable=False),
            sa.Column('user_id', sa.String(length=64), nullable=False),
            sa.Column('data', sa.JSON(), nullable=False),
            *_timestamps(),
            _owner_fk(table),
            sa.PrimaryKeyConstraint('id', name=op.f(f'pk_{table}')),
        )
        op.create_index(f'ix_{table}_user', table, ['user_id'])

    for table in PUBLIC_LIBRARY_TABLES:
        op.create_table(
            table,
            sa.Column('id', sa.String(length=64), nullable=False),
            sa.Column('data', sa.JSON(), nullable=False),
            *_timestamps(),
            sa.PrimaryKeyConstraint('id', name=op.f(f'pk_{table}')),
        )

    op.create_table(
        'campaigns',
        sa.Column('id', sa.String(length=64), nullable=False),
        sa.Column('owner_id', sa.String(length=64), nullable=False),
        sa.Column('name', sa.String(length=128), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('invite_code', sa.String(length=16), nullable=False),
        sa.Column('characters', sa.JSON(), nullable=False),
        sa.Column('member_ids', sa.JSON(), nullable=False),
        sa.Column('owner_username', sa.String(length=64), nullable=True),
        *_timestamps(),
        _owner_fk('campaigns', 'owner_id'),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_campaigns')),
        sa.UniqueConstraint('invite_code', name=op.f('uq_campaigns_invite_code')),
    )
    op.create_index('ix_campaigns_owner', 'campaigns', ['owner_id'])

    op.create_table(
        'campaign_rolls',
        sa.Column('id', sa.String(length=64), nullable=False),
        sa.Column('campaign_id', sa.String(length=64), nullable=False),
        sa.Column('data', sa.JSON(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(
            ['campaign_id'], ['campaigns.id'],
            name=op.f('fk_campaign_rolls_campaign_id_campaigns'), ondelete='CASCADE',
        ),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_campaign_rolls')),
    )
    op.create_index('ix_campaign_rolls_campaign', 'campaign_rolls', ['campaign_id', 'created_at'])

    op.create_table(
        'encounters',
        sa.Column('id', sa.String(length=64), nullable=False),
        sa.Column('user_id', sa.String(length=64), nullable=False),
        sa.Column('data', sa.JSON(), nullable=False),
        *_timestamps(),
        _owner_fk('encounters'),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_encounters')),
    )
    op.create_index('ix_encounters_user', 'encounters', ['user_id'])

    for table in CODEX_TABLES:
        op.create_table(
            table,
            sa.Column('id', sa.String(length=128), nullable=False),
            sa.Column('data', sa.JSON(), nullable=False),
            sa.PrimaryKeyConstraint('id', name=op.f(f'pk_{table}')),
        )

    op.create_table(
        'core_rules',
        sa.Column('id', sa.String(length=64), nullable=False),
        sa.Column('data', sa.JSON(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_core_rules')),
    )


def downgrade() -> None:
    op.drop_table('core_rules')
    for table in CODEX_TABLES:
        op.drop_table(table)
    op.drop_index('ix_encounters_user', table_name='encounters')
    op.drop_table('encounters')
    op.drop_index('ix_campaign_rolls_campaign', table_name='campaign_rolls')
    op.drop_table('campaign_rolls')
    op.drop_index('ix_campaigns_owner', table_name='campaigns')
    op.drop_table('campaigns')
    for table in PUBLIC_LIBRARY_TABLES:
        op.drop_table(table)
    for table in USER_LIBRARY_TABLES:
        op.drop_index(f'ix_{table}_user', table_name=table)
        op.drop_table(table)
    op.drop_index('ix_characters_user_updated', table_name='characters')
    op.drop_index('ix_characters_user', table_name='characters')
    op.drop_table('characters')
    op.drop_index('ix_usernames_user', table_name='usernames')
    op.drop_table('usernames')
    op.drop_table('user_profiles')
