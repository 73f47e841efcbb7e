"""initial schema - users, rfqs, sub-records and the display-id counter

Revision ID: 001_initial
Revises: None
Create Date: 2026-10-19
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

revision: str = "001_initial"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _record_columns():
    return [
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "rfq_pk", sa.Integer(), sa.ForeignKey("rfqs.id", ondelete="CASCADE"), nullable=False
        ),
        sa.Column("timestamp", sa.DateTime(), nullable=False),
    ]


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("email", sa.String(255), nullable=False, unique=True),
        sa.Column("name", sa.String(255)),
        sa.Column("role", sa.String(20)),
        sa.Column("is_active", sa.Boolean()),
        sa.Column("created_at", sa.DateTime()),
    )
    op.create_table(
        "rfqs",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("rfq_id", sa.String(32), nullable=False, unique=True),
        sa.Column("customer_name", sa.String(255), nullable=False),
        sa.Column("customer_email", sa.String(255), nullable=False),
        sa.Column("part_number", sa.String(255), nullable=False),
        sa.Column("pcb_specs", sa.Text()),
        sa.Column("notes", sa.Text()),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.Column("margin", sa.Float(), nullable=False),
        sa.Column("supplier_quote", sa.Float()),
        sa.Column("customer_quote_per_unit", sa.Float()),
        sa.Column("customer_quote_total", sa.Float()),
        sa.Column("customer_quote_sent", sa.Boolean()),
        sa.Column("customer_quote_sent_at", sa.DateTime()),
        sa.Column("urgency", sa.String(20), nullable=False),
        sa.Column("confidence", sa.Integer(), nullable=False),
        sa.Column("status", sa.String(30), nullable=False),
        sa.Column("stage", sa.String(30), nullable=False),
        sa.Column(
            "sales_person_id",
            sa.Integer(),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("date_received", sa.DateTime()),
        sa.Column("actual_delivery_date", sa.DateTime()),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_rfqs_sales_person", "rfqs", ["sales_person_id"])
    op.create_index("ix_rfqs_status", "rfqs", ["status"])
    op.create_index("ix_rfqs_stage", "rfqs", ["stage"])
    op.create_index("ix_rfqs_created_at", "rfqs", ["created_at"])

    op.create_table(
        "rfq_communications",
        *_record_columns(),
        sa.Column("comm_type", sa.String(20), nullable=False),
        sa.Column("direction", sa.String(20), nullable=False),
        sa.Column("message", sa.Text(), nullable=False),
        sa.Column("author", sa.String(255), nullable=False),
    )
    op.create_index("ix_rfq_communications_rfq", "rfq_communications", ["rfq_pk"])

    op.create_table(
        "rfq_notes",
        *_record_columns(),
        sa.Column("note_type", sa.String(20), nullable=False),
        sa.Column("message", sa.Text(), nullable=False),
        sa.Column("author", sa.String(255), nullable=False),
    )
    op.create_index("ix_rfq_notes_rfq_type", "rfq_notes", ["rfq_pk", "note_type"])

    op.create_table(
        "rfq_activity",
        *_record_columns(),
        sa.Column("author", sa.String(255), nullable=False),
        sa.Column("action", sa.String(100), nullable=False),
        sa.Column("details", sa.Text(), nullable=False),
        sa.Column("customer_name", sa.String(255)),
        sa.Column("part_number", sa.String(255)),
    )
    op.create_index("ix_rfq_activity_rfq", "rfq_activity", ["rfq_pk"])

    op.create_table(
        "rfq_counters",
        sa.Column("name", sa.String(50), primary_key=True),
        sa.Column("value", sa.Integer(), nullable=False),
    )


def downgrade() -> None:
    """Drop all tables. ⚠️ DESTRUCTIVE — only for dev/test environments."""
    op.drop_table("rfq_counters")
    op.drop_table("rfq_activity")
    op.drop_table("rfq_notes")
    op.drop_table("rfq_communications")
    op.drop_table("rfqs")
    op.drop_table("users")
