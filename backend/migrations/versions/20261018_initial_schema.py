"""Initial fuel station schema

Revision ID: 20261018_initial
Revises:
Create Date: 2026-10-18
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "20261018_initial"
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("name", sa.String(120), nullable=True),
        sa.Column("role", sa.String(16), nullable=False, server_default="staff"),
        sa.Column("password_hash", sa.String(255), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("1")),
        sa.Column("created_at", sa.DateTime(), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
        sa.Column("last_login_at", sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("email", name="uq_users_email"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("users", schema=None) as batch_op:
        batch_op.create_index("ix_users_role_active", ["role", "is_active"], unique=False)

    op.create_table(
        "session_tokens",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("token_hash", sa.String(64), nullable=False),
        sa.Column("created_at", sa.DateTime(), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
        sa.Column("last_used_at", sa.DateTime(), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
        sa.Column("expires_at", sa.DateTime(), nullable=False),
        sa.Column("is_revoked", sa.Boolean(), nullable=False, server_default=sa.text("0")),
        sa.Column("revoked_at", sa.DateTime(), nullable=True),
        sa.Column("revoked_reason", sa.String(255), nullable=True),
        sa.Column("user_agent", sa.String(512), nullable=True),
        sa.Column("ip_address", sa.String(45), nullable=True),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"]),
        sa.PrimaryKeyConstraint("id"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("session_tokens", schema=None) as batch_op:
        batch_op.create_index("ix_session_tokens_user_id", ["user_id"], unique=False)
        batch_op.create_index("ix_session_tokens_token_hash", ["token_hash"], unique=True)
        batch_op.create_index("ix_session_tokens_expires_at", ["expires_at"], unique=False)
        batch_op.create_index("ix_session_tokens_is_revoked", ["is_revoked"], unique=False)
        batch_op.create_index("ix_session_tokens_user_active", ["user_id", "is_revoked"], unique=False)

    op.create_table(
        "discounts",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("plate", sa.String(16), nullable=False),
        sa.Column("cash_rate", sa.Numeric(4, 1), nullable=False, server_default=sa.text("0")),
        sa.Column("card_rate", sa.Numeric(4, 1), nullable=False, server_default=sa.text("0")),
        sa.Column("note", sa.Text(), nullable=True),
        sa.Column("active", sa.Boolean(), nullable=False, server_default=sa.text("1")),
        sa.Column("created_at", sa.DateTime(), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
        sa.Column("updated_at", sa.DateTime(), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("plate", name="uq_discounts_plate"),
        sa.CheckConstraint("cash_rate >= 0 AND cash_rate <= 100", name="ck_discounts_cash_rate"),
        sa.CheckConstraint("card_rate >= 0 AND card_rate <= 100", name="ck_discounts_card_rate"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("discounts", schema=None) as batch_op:
        batch_op.create_index("ix_discounts_active", ["active"], unique=False)

    op.create_table(
        "plate_requests",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("plate", sa.String(16), nullable=False),
        sa.Column("note", sa.Text(), nullable=True),
        sa.Column("status", sa.String(16), nullable=False, server_default="pending"),
        sa.Column("requested_by", sa.Integer(), nullable=False),
        sa.Column("requested_by_name", sa.String(120), nullable=True),
        sa.Column("requested_by_email", sa.String(255), nullable=True),
        sa.Column("created_at", sa.DateTime(), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
        sa.Column("processed_at", sa.DateTime(), nullable=True),
        sa.Column("processed_by", sa.Integer(), nullable=True),
        sa.Column("processed_by_name", sa.String(120), nullable=True),
        sa.Column("cash_rate", sa.Numeric(4, 1), nullable=True),
        sa.Column("card_rate", sa.Numeric(4, 1), nullable=True),
        sa.Column("approved_discount_id", sa.Integer(), nullable=True),
        sa.Column("rejection_note", sa.Text(), nullable=True),
        sa.ForeignKeyConstraint(["requested_by"], ["users.id"]),
        sa.ForeignKeyConstraint(["processed_by"], ["users.id"]),
        sa.ForeignKeyConstraint(["approved_discount_id"], ["discounts.id"]),
        sa.PrimaryKeyConstraint("id"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("plate_requests", schema=None) as batch_op:
        batch_op.create_index("ix_plate_requests_plate", ["plate"], unique=False)
        batch_op.create_index("ix_plate_requests_requested_by", ["requested_by"], unique=False)
        batch_op.create_index("ix_plate_requests_status_created", ["status", "created_at"], unique=False)

    # One pending request per plate
    op.create_index(
        "uq_plate_requests_pending_plate",
        "plate_requests",
        ["plate"],
        unique=True,
        sqlite_where=sa.text("status = 'pending'"),
        postgresql_where=sa.text("status = 'pending'"),
    )

    op.create_table(
        "checklist_items",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("title", sa.String(200), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("sort_order", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("active", sa.Boolean(), nullable=False, server_default=sa.text("1")),
        sa.PrimaryKeyConstraint("id"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("checklist_items", schema=None) as batch_op:
        batch_op.create_index("ix_checklist_items_active_order", ["active", "sort_order"], unique=False)

    op.create_table(
        "shift_handovers",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("incoming_user", sa.Integer(), nullable=False),
        sa.Column("outgoing_user", sa.Integer(), nullable=False),
        sa.Column("status", sa.String(16), nullable=False, server_default="pending"),
        sa.Column("created_at", sa.DateTime(), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
        sa.Column("approver_note", sa.Text(), nullable=True),
        sa.Column("approved_at", sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(["incoming_user"], ["users.id"]),
        sa.ForeignKeyConstraint(["outgoing_user"], ["users.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint("incoming_user <> outgoing_user", name="ck_shift_handovers_participants"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("shift_handovers", schema=None) as batch_op:
        batch_op.create_index("ix_shift_handovers_incoming_user", ["incoming_user"], unique=False)
        batch_op.create_index("ix_shift_handovers_outgoing_user", ["outgoing_user"], unique=False)
        batch_op.create_index("ix_shift_handovers_status", ["status"], unique=False)
        batch_op.create_index("ix_shift_handovers_outgoing_status", ["outgoing_user", "status"], unique=False)

    op.create_table(
        "checklist_answers",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("handover_id", sa.Integer(), nullable=False),
        sa.Column("item_id", sa.Integer(), nullable=False),
        sa.Column("passed", sa.Boolean(), nullable=False),
        sa.Column("note", sa.Text(), nullable=True),
        sa.ForeignKeyConstraint(["handover_id"], ["shift_handovers.id"]),
        sa.ForeignKeyConstraint(["item_id"], ["checklist_items.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("handover_id", "item_id", name="uq_checklist_answers_handover_item"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("checklist_answers", schema=None) as batch_op:
        batch_op.create_index("ix_checklist_answers_handover_id", ["handover_id"], unique=False)

    op.create_table(
        "discount_sales",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("discount_id", sa.Integer(), nullable=False),
        sa.Column("plate", sa.String(16), nullable=False),
        sa.Column("fuel_type", sa.String(64), nullable=False),
        sa.Column("liters", sa.Numeric(10, 2), nullable=False),
        sa.Column("price_per_liter_cents", sa.Integer(), nullable=False),
        sa.Column("payment_method", sa.String(8), nullable=False),
        sa.Column("rate_applied", sa.Numeric(4, 1), nullable=False),
        sa.Column("gross_cents", sa.Integer(), nullable=False),
        sa.Column("discount_cents", sa.Integer(), nullable=False),
        sa.Column("net_cents", sa.Integer(), nullable=False),
        sa.Column("note", sa.Text(), nullable=True),
        sa.Column("recorded_by", sa.Integer(), nullable=False),
        sa.Column("created_at", sa.DateTime(), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
        sa.ForeignKeyConstraint(["discount_id"], ["discounts.id"]),
        sa.ForeignKeyConstraint(["recorded_by"], ["users.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint("payment_method IN ('cash', 'card')", name="ck_discount_sales_payment_method"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("discount_sales", schema=None) as batch_op:
        batch_op.create_index("ix_discount_sales_discount_id", ["discount_id"], unique=False)
        batch_op.create_index("ix_discount_sales_plate", ["plate"], unique=False)
        batch_op.create_index("ix_discount_sales_recorded_by", ["recorded_by"], unique=False)
        batch_op.create_index("ix_discount_sales_created", ["created_at"], unique=False)

    op.create_table(
        "cleaning_operations",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(120), nullable=False),
        sa.Column("sort_order", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("active", sa.Boolean(), nullable=False, server_default=sa.text("1")),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("name", name="uq_cleaning_operations_name"),
        sqlite_autoincrement=True,
    )

    op.create_table(
        "cleaning_logs",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("performed_at", sa.DateTime(), nullable=False),
        sa.Column("note", sa.Text(), nullable=True),
        sa.Column("recorded_by", sa.Integer(), nullable=False),
        sa.Column("created_at", sa.DateTime(), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
        sa.ForeignKeyConstraint(["recorded_by"], ["users.id"]),
        sa.PrimaryKeyConstraint("id"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("cleaning_logs", schema=None) as batch_op:
        batch_op.create_index("ix_cleaning_logs_recorded_by", ["recorded_by"], unique=False)
        batch_op.create_index("ix_cleaning_logs_performed_at", ["performed_at"], unique=False)

    op.create_table(
        "cleaning_log_operations",
        sa.Column("log_id", sa.Integer(), nullable=False),
        sa.Column("operation_id", sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(["log_id"], ["cleaning_logs.id"]),
        sa.ForeignKeyConstraint(["operation_id"], ["cleaning_operations.id"]),
        sa.PrimaryKeyConstraint("log_id", "operation_id"),
    )


def downgrade():
    op.drop_table("cleaning_log_operations")
    op.drop_table("cleaning_logs")
    op.drop_table("cleaning_operations")
    op.drop_table("discount_sales")
    op.drop_table("checklist_answers")
    op.drop_table("shift_handovers")
    op.drop_table("checklist_items")
    op.drop_index("uq_plate_requests_pending_plate", table_name="plate_requests")
    op.drop_table("plate_requests")
    op.drop_table("discounts")
    op.drop_table("session_tokens")
    op.drop_table("users")
