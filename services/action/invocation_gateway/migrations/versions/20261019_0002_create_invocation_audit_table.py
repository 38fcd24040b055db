"""create invocation audit table"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = "20261019_0002"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    """Create gateway-owned schema objects."""
    op.create_table(
        "invocation_audits",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("request_id", sa.String(length=26), nullable=False),
        sa.Column("service_name", sa.String(length=128), nullable=False),
        sa.Column("action", sa.String(length=256), nullable=False),
        sa.Column("streaming", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("success", sa.Boolean(), nullable=False),
        sa.Column("error_kind", sa.String(length=64), nullable=False, server_default=""),
        sa.Column("duration_ms", sa.Float(), nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id", name="pk_invocation_audits"),
    )
    op.create_index(
        "ix_invocation_audits_service_name", "invocation_audits", ["service_name"]
    )
    op.create_index(
        "ix_invocation_audits_request_id", "invocation_audits", ["request_id"]
    )


def downgrade() -> None:
    """Drop gateway-owned schema objects."""
    op.drop_index("ix_invocation_audits_request_id", table_name="invocation_audits")
    op.drop_index("ix_invocation_audits_service_name", table_name="invocation_audits")
    op.drop_table("invocation_audits")
