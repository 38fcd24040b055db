"""create service registry tables"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = "20261019_0001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    """Create registry-owned schema objects."""
    op.create_table(
        "service_registry",
        sa.Column("id", sa.String(length=128), nullable=False),
        sa.Column("name", sa.String(length=128), nullable=False),
        sa.Column("display_name", sa.String(length=256), nullable=False, server_default=""),
        sa.Column("description", sa.Text(), nullable=False, server_default=""),
        sa.Column("endpoint", sa.String(length=1024), nullable=False, server_default=""),
        sa.Column("api_key", sa.String(length=512), nullable=True),
        sa.Column("enabled", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("trusted", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("trust_level", sa.String(length=16), nullable=False, server_default="medium"),
        sa.Column("actions", sa.Text(), nullable=False, server_default="[]"),
        sa.Column("allowed_actions", sa.Text(), nullable=False, server_default="[]"),
        sa.Column("capabilities", sa.Text(), nullable=False, server_default="[]"),
        sa.Column("rate_limit", sa.Integer(), nullable=False, server_default="100"),
        sa.Column("health_status", sa.String(length=16), nullable=False, server_default="unknown"),
        sa.Column("version", sa.String(length=32), nullable=False, server_default="1.0.0"),
        sa.Column("created_by", sa.String(length=128), nullable=False, server_default="system"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("last_health_check", sa.DateTime(timezone=True), nullable=True),
        sa.Column("consecutive_failures", sa.Integer(), nullable=False, server_default="0"),
        sa.PrimaryKeyConstraint("name", name="pk_service_registry"),
        sa.UniqueConstraint("id", name="uq_service_registry_id"),
    )

    op.create_table(
        "registry_migrations",
        sa.Column("name", sa.String(length=256), nullable=False),
        sa.Column("ordinal", sa.Integer(), nullable=False),
        sa.Column("outcome", sa.String(length=16), nullable=False),
        sa.Column("applied_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("name", name="pk_registry_migrations"),
    )


def downgrade() -> None:
    """Drop registry-owned schema objects."""
    op.drop_table("registry_migrations")
    op.drop_table("service_registry")
