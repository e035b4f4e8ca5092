"""initial schema: bills, pending_bills, votes, import_logs

Revision ID: 1_initial_schema
Revises:
Create Date: 2025-10-01 12:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '1_initial_schema'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create the four application tables."""

    # ============================================================================
    # BILLS TABLE
    # ============================================================================
    op.create_table(
        'bills',
        sa.Column('id', sa.String(length=100), nullable=False),
        sa.Column('title', sa.String(length=500), nullable=False),
        sa.Column('summary', sa.Text(), nullable=True),
        sa.Column('ai_summary', sa.Text(), nullable=True),
        sa.Column('ai_abstract', sa.Text(), nullable=True),
        sa.Column('ai_pour', sa.Text(), nullable=True),
        sa.Column('ai_contre', sa.Text(), nullable=True),
        sa.Column('ai_concerne', sa.JSON(), nullable=True),
        sa.Column('theme', sa.String(length=100), nullable=False, server_default='Sans catégorie'),
        sa.Column('ai_confidence', sa.Float(), nullable=True),
        sa.Column('ai_processed_at', sa.DateTime(), nullable=True),
        sa.Column('full_text_url', sa.String(length=1000), nullable=True),
        sa.Column('level', sa.String(length=20), nullable=False),
        sa.Column('chamber', sa.String(length=100), nullable=False),
        sa.Column('vote_datetime', sa.DateTime(), nullable=True),
        sa.Column('status', sa.String(length=20), nullable=False, server_default='upcoming'),
        sa.Column('source', sa.String(length=50), nullable=True),
        sa.Column('external_id', sa.String(length=255), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('source', 'external_id', name='uq_bill_source_key'),
        sa.CheckConstraint("level IN ('eu', 'france')", name='ck_bill_level'),
        sa.CheckConstraint("status IN ('upcoming', 'voting_now', 'completed')", name='ck_bill_status'),
        sa.CheckConstraint(
            'ai_confidence IS NULL OR (ai_confidence >= 0 AND ai_confidence <= 1)',
            name='ck_bill_confidence_range'
        ),
    )
    op.create_index('ix_bills_theme', 'bills', ['theme'])
    op.create_index('ix_bills_vote_datetime', 'bills', ['vote_datetime'])
    op.create_index('idx_bill_level_status', 'bills', ['level', 'status'])

    # ============================================================================
    # PENDING BILLS TABLE (review queue)
    # ============================================================================
    op.create_table(
        'pending_bills',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('external_id', sa.String(length=255), nullable=False),
        sa.Column('source', sa.String(length=50), nullable=False),
        sa.Column('title', sa.String(length=500), nullable=False),
        sa.Column('summary', sa.Text(), nullable=True),
        sa.Column('full_text_url', sa.String(length=1000), nullable=True),
        sa.Column('level', sa.String(length=20), nullable=False),
        sa.Column('chamber', sa.String(length=100), nullable=False),
        sa.Column('vote_datetime', sa.DateTime(), nullable=True),
        sa.Column('raw_data', sa.JSON(), nullable=True),
        sa.Column('status', sa.String(length=20), nullable=False, server_default='pending'),
        sa.Column('theme', sa.String(length=100), nullable=False, server_default='Sans catégorie'),
        sa.Column('ai_summary', sa.Text(), nullable=True),
        sa.Column('ai_abstract', sa.Text(), nullable=True),
        sa.Column('ai_pour', sa.Text(), nullable=True),
        sa.Column('ai_contre', sa.Text(), nullable=True),
        sa.Column('ai_concerne', sa.JSON(), nullable=True),
        sa.Column('ai_confidence', sa.Float(), nullable=True),
        sa.Column('ai_processed_at', sa.DateTime(), nullable=True),
        sa.Column('fetched_at', sa.DateTime(), nullable=False),
        sa.Column('reviewed_at', sa.DateTime(), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('bill_id', sa.String(length=100), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['bill_id'], ['bills.id'], ondelete='SET NULL'),
        sa.UniqueConstraint('source', 'external_id', name='uq_pending_bill_source_key'),
        sa.CheckConstraint(
            "status IN ('pending', 'approved', 'rejected')",
            name='ck_pending_bill_status'
        ),
    )
    op.create_index('ix_pending_bills_source', 'pending_bills', ['source'])
    op.create_index('ix_pending_bills_status', 'pending_bills', ['status'])
    op.create_index('idx_pending_bill_status_fetched', 'pending_bills', ['status', 'fetched_at'])

    # ============================================================================
    # VOTES TABLE
    # ============================================================================
    op.create_table(
        'votes',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('bill_id', sa.String(length=100), nullable=False),
        sa.Column('voter_ip', sa.String(length=45), nullable=False),
        sa.Column('vote_type', sa.String(length=10), nullable=False),
        sa.Column('voted_at', sa.DateTime(), nullable=False),
        sa.Column('user_agent', sa.String(length=500), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['bill_id'], ['bills.id'], ondelete='CASCADE'),
        sa.UniqueConstraint('bill_id', 'voter_ip', name='uq_vote_bill_voter'),
        sa.CheckConstraint("vote_type IN ('for', 'against', 'abstain')", name='ck_vote_type'),
    )
    op.create_index('ix_votes_bill_id', 'votes', ['bill_id'])
    op.create_index('idx_vote_ip_voted_at', 'votes', ['voter_ip', 'voted_at'])
    op.create_index('idx_vote_bill_voted_at', 'votes', ['bill_id', 'voted_at'])

    # ============================================================================
    # IMPORT LOGS TABLE
    # ============================================================================
    op.create_table(
        'import_logs',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('source', sa.String(length=50), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False),
        sa.Column('fetched', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('new', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('updated', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('skipped', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('errors', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('error_details', sa.JSON(), nullable=True),
        sa.Column('execution_time', sa.Float(), nullable=False, server_default='0'),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_import_logs_source', 'import_logs', ['source'])
    op.create_index('ix_import_logs_status', 'import_logs', ['status'])
    op.create_index('ix_import_logs_created_at', 'import_logs', ['created_at'])
    op.create_index('idx_import_log_source_created', 'import_logs', ['source', 'created_at'])


def downgrade() -> None:
    """Drop all application tables."""
    op.drop_table('import_logs')
    op.drop_table('votes')
    op.drop_table('pending_bills')
    op.drop_table('bills')
