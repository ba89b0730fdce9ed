"""opname sessions, master inventory, idempotency and audit

Revision ID: 0001_opname_initial
Revises:
Create Date: 2026-10-19 00:00:00.000000
"""

from alembic import op
import sqlalchemy as sa


revision = "0001_opname_initial"
down_revision = None
branch_labels = None
depends_on = None


class GUID(sa.TypeDecorator):
    impl = sa.CHAR
    cache_ok = True

    def load_dialect_impl(self, dialect):
        if dialect.name == "postgresql":
            from sqlalchemy.dialects.postgresql import UUID

            return dialect.type_descriptor(UUID(as_uuid=True))
        return dialect.type_descriptor(sa.CHAR(36))


def upgrade() -> None:
    op.create_table(
        "stock_items",
        sa.Column("id", GUID(), primary_key=True),
        sa.Column("material_no", sa.String(length=64), nullable=False),
        sa.Column("sloc", sa.String(length=64), nullable=False),
        sa.Column("material_desc", sa.String(length=255), nullable=True),
        sa.Column("quantity", sa.Float(), nullable=False, server_default="0"),
        sa.Column("uom", sa.String(length=20), nullable=False, server_default="PCS"),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.UniqueConstraint("material_no", "sloc", name="uq_stock_items_material_sloc"),
    )
    op.create_table(
        "stock_history",
        sa.Column("id", GUID(), primary_key=True),
        sa.Column("material_no", sa.String(length=64), nullable=False),
        sa.Column("sloc", sa.String(length=64), nullable=False),
        sa.Column("user_name", sa.String(length=150), nullable=False),
        sa.Column("action", sa.String(length=50), nullable=False),
        sa.Column("details", sa.Text(), nullable=True),
        sa.Column("opname_session_id", GUID(), nullable=True),
        sa.Column("opname_item_id", GUID(), nullable=True, unique=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_stock_history_opname_session_id", "stock_history", ["opname_session_id"])

    op.create_table(
        "opname_sessions",
        sa.Column("id", GUID(), primary_key=True),
        sa.Column("title", sa.String(length=255), nullable=False),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("creator", sa.String(length=150), nullable=False),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="OPEN"),
        sa.Column("total_items", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("closed_at", sa.DateTime(), nullable=True),
    )
    op.create_index("ix_opname_sessions_created_at", "opname_sessions", ["created_at"])
    op.create_index(
        "uq_opname_sessions_single_open",
        "opname_sessions",
        ["status"],
        unique=True,
        sqlite_where=sa.text("status = 'OPEN'"),
        postgresql_where=sa.text("status = 'OPEN'"),
    )

    op.create_table(
        "opname_items",
        sa.Column("id", GUID(), primary_key=True),
        sa.Column(
            "session_id",
            GUID(),
            sa.ForeignKey("opname_sessions.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("material_no", sa.String(length=64), nullable=False),
        sa.Column("sloc", sa.String(length=64), nullable=False),
        sa.Column("material_desc", sa.String(length=255), nullable=True),
        sa.Column("system_qty", sa.Float(), nullable=False),
        sa.Column("physical_qty", sa.Float(), nullable=False, server_default="0"),
        sa.Column("is_counted", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("counted_at", sa.DateTime(), nullable=True),
        sa.Column("reconciled_at", sa.DateTime(), nullable=True),
    )
    op.create_index("ix_opname_items_session_id", "opname_items", ["session_id"])

    op.create_table(
        "idempotency_records",
        sa.Column("id", GUID(), primary_key=True),
        sa.Column("endpoint", sa.String(length=255), nullable=False),
        sa.Column("method", sa.String(length=10), nullable=False),
        sa.Column("idempotency_key", sa.String(length=255), nullable=False),
        sa.Column("request_hash", sa.String(length=64), nullable=False),
        sa.Column("state", sa.String(length=20), nullable=False),
        sa.Column("status_code", sa.Integer(), nullable=True),
        sa.Column("response_body", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.UniqueConstraint("endpoint", "method", "idempotency_key", name="uq_idempotency"),
    )

    op.create_table(
        "audit_events",
        sa.Column("id", GUID(), primary_key=True),
        sa.Column("user_id", sa.String(length=64), nullable=True),
        sa.Column("actor", sa.String(length=150), nullable=False),
        sa.Column("action", sa.String(length=255), nullable=False),
        sa.Column("entity_type", sa.String(length=100), nullable=False),
        sa.Column("entity_id", sa.String(length=64), nullable=True),
        sa.Column("before_payload", sa.JSON(), nullable=True),
        sa.Column("after_payload", sa.JSON(), nullable=True),
        sa.Column("metadata", sa.JSON(), nullable=True),
        sa.Column("result", sa.String(length=20), nullable=False),
        sa.Column("trace_id", sa.String(length=64), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_audit_events_user_id", "audit_events", ["user_id"])
    op.create_index("ix_audit_events_entity_id", "audit_events", ["entity_id"])


def downgrade() -> None:
    op.drop_index("ix_audit_events_entity_id", table_name="audit_events")
    op.drop_index("ix_audit_events_user_id", table_name="audit_events")
    op.drop_table("audit_events")
    op.drop_table("idempotency_records")
    op.drop_index("ix_opname_items_session_id", table_name="opname_items")
    op.drop_table("opname_items")
    op.drop_index("uq_opname_sessions_single_open", table_name="opname_sessions")
    op.drop_index("ix_opname_sessions_created_at", table_name="opname_sessions")
    op.drop_table("opname_sessions")
    op.drop_index("ix_stock_history_opname_session_id", table_name="stock_history")
    op.drop_table("stock_history")
    op.drop_table("stock_items")
