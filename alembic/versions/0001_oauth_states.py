"""oauth state table

Revision ID: 0001_oauth_states
Revises:
Create Date: 2026-10-19 00:00:00
"""
from alembic import op
import sqlalchemy as sa

revision = "0001_oauth_states"
down_revision = None
branch_labels = None
depends_on = None

def upgrade():
    op.create_table(
        "oauth_states",
        sa.Column("shop_domain", sa.String(255), primary_key=True),
        sa.Column("nonce", sa.String(128), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("NOW()")),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_oauth_states_expires_at", "oauth_states", ["expires_at"])

def downgrade():
    op.drop_index("ix_oauth_states_expires_at", table_name="oauth_states")
    op.drop_table("oauth_states")
