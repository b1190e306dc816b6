"""Initial schema: users, classes, bills, banking, storefront

Revision ID: a1b2c3d4e5f6
Revises:
Create Date: 2026-10-19
"""
from alembic import op
import sqlalchemy as sa

revision = "a1b2c3d4e5f6"
down_revision = None
branch_labels = None
depends_on = None

user_role = sa.Enum("SUPER_ADMIN", "TEACHER", "STUDENT", name="user_role")
bill_frequency = sa.Enum("ONCE", "WEEKLY", "BIWEEKLY", "MONTHLY", "QUARTERLY", "YEARLY", name="bill_frequency")
bill_status = sa.Enum("ACTIVE", "DUE", "PARTIAL", "PAID", "LATE", "CANCELLED", name="bill_status")
account_type = sa.Enum("CHECKING", "SAVINGS", name="account_type")
transaction_type = sa.Enum("DEPOSIT", "WITHDRAWAL", "TRANSFER_IN", "TRANSFER_OUT", name="transaction_type")
purchase_status = sa.Enum("PENDING", "PAID", "CANCELLED", name="purchase_status")


def _base_columns():
    return [
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
    ]


def _fk(column: str, target: str, nullable: bool = False, ondelete: str = "CASCADE"):
    return sa.Column(column, sa.Uuid(), sa.ForeignKey(target, ondelete=ondelete), nullable=nullable)


def upgrade() -> None:
    op.create_table(
        "users",
        *_base_columns(),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("hashed_password", sa.String(length=255), nullable=False),
        sa.Column("first_name", sa.String(length=255), nullable=False),
        sa.Column("last_name", sa.String(length=255), nullable=False),
        sa.Column("role", user_role, nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
    )
    op.create_index("ix_users_email", "users", ["email"], unique=True)
    op.create_index("ix_users_role", "users", ["role"])
    op.create_index("ix_users_is_active", "users", ["is_active"])

    op.create_table(
        "classes",
        *_base_columns(),
        _fk("teacher_id", "users.id"),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("emoji", sa.String(length=16), nullable=True),
        sa.Column("code", sa.String(length=12), nullable=False),
    )
    op.create_index("ix_classes_teacher_id", "classes", ["teacher_id"])
    op.create_index("ix_classes_code", "classes", ["code"], unique=True)

    op.create_table(
        "class_enrollments",
        sa.Column("class_id", sa.Uuid(), sa.ForeignKey("classes.id", ondelete="CASCADE"), primary_key=True),
        sa.Column("student_id", sa.Uuid(), sa.ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
        sa.Column("joined_at", sa.DateTime(), nullable=False),
    )

    op.create_table(
        "bills",
        *_base_columns(),
        _fk("creator_id", "users.id"),
        sa.Column("title", sa.String(length=255), nullable=False),
        sa.Column("emoji", sa.String(length=16), nullable=True),
        sa.Column("amount", sa.Numeric(10, 2), nullable=False),
        sa.Column("due_date", sa.Date(), nullable=False),
        sa.Column("frequency", bill_frequency, nullable=False),
        sa.Column("status", bill_status, nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("cancellation_reason", sa.Text(), nullable=True),
        sa.Column("cancelled_at", sa.DateTime(), nullable=True),
    )
    op.create_index("ix_bills_creator_id", "bills", ["creator_id"])
    op.create_index("ix_bills_due_date", "bills", ["due_date"])
    op.create_index("ix_bills_status", "bills", ["status"])

    op.create_table(
        "student_bills",
        *_base_columns(),
        _fk("bill_id", "bills.id"),
        _fk("student_id", "users.id"),
        sa.Column("amount", sa.Numeric(10, 2), nullable=False),
        sa.Column("paid_amount", sa.Numeric(10, 2), nullable=False),
        sa.Column("is_paid", sa.Boolean(), nullable=False),
        sa.Column("paid_at", sa.DateTime(), nullable=True),
        sa.Column("due_date", sa.Date(), nullable=False),
        sa.UniqueConstraint("bill_id", "student_id", name="uq_student_bills_bill_student"),
    )
    op.create_index("ix_student_bills_bill_id", "student_bills", ["bill_id"])
    op.create_index("ix_student_bills_student_id", "student_bills", ["student_id"])

    op.create_table(
        "bill_classes",
        sa.Column("bill_id", sa.Uuid(), sa.ForeignKey("bills.id", ondelete="CASCADE"), primary_key=True),
        sa.Column("class_id", sa.Uuid(), sa.ForeignKey("classes.id", ondelete="CASCADE"), primary_key=True),
    )
    op.create_table(
        "bill_excluded_students",
        sa.Column("bill_id", sa.Uuid(), sa.ForeignKey("bills.id", ondelete="CASCADE"), primary_key=True),
        sa.Column("student_id", sa.Uuid(), sa.ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
    )

    op.create_table(
        "bank_accounts",
        *_base_columns(),
        _fk("student_id", "users.id"),
        sa.Column("account_number", sa.String(length=20), nullable=False, unique=True),
        sa.Column("account_type", account_type, nullable=False),
        sa.Column("balance", sa.Numeric(12, 2), nullable=False),
        sa.UniqueConstraint("student_id", "account_type", name="uq_bank_accounts_student_type"),
    )
    op.create_index("ix_bank_accounts_student_id", "bank_accounts", ["student_id"])

    op.create_table(
        "transactions",
        *_base_columns(),
        _fk("account_id", "bank_accounts.id"),
        _fk("receiving_account_id", "bank_accounts.id", nullable=True, ondelete="SET NULL"),
        sa.Column("amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("description", sa.String(length=500), nullable=False),
        sa.Column("transaction_type", transaction_type, nullable=False),
    )
    op.create_index("ix_transactions_account_id", "transactions", ["account_id"])
    op.create_index("ix_transactions_receiving_account_id", "transactions", ["receiving_account_id"])
    op.create_index("ix_transactions_transaction_type", "transactions", ["transaction_type"])

    op.create_table(
        "bank_statements",
        *_base_columns(),
        _fk("account_id", "bank_accounts.id"),
        _fk("student_id", "users.id"),
        sa.Column("year", sa.Integer(), nullable=False),
        sa.Column("month", sa.Integer(), nullable=False),
        sa.Column("url", sa.String(length=1000), nullable=False),
        sa.Column("generated_at", sa.DateTime(), nullable=False),
        sa.UniqueConstraint("account_id", "year", "month", name="uq_bank_statements_account_period"),
    )
    op.create_index("ix_bank_statements_account_id", "bank_statements", ["account_id"])
    op.create_index("ix_bank_statements_student_id", "bank_statements", ["student_id"])

    op.create_table(
        "store_items",
        *_base_columns(),
        _fk("creator_id", "users.id"),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("emoji", sa.String(length=16), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("price", sa.Numeric(10, 2), nullable=False),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.Column("is_available", sa.Boolean(), nullable=False),
    )
    op.create_index("ix_store_items_creator_id", "store_items", ["creator_id"])

    op.create_table(
        "student_purchases",
        *_base_columns(),
        _fk("item_id", "store_items.id"),
        _fk("student_id", "users.id"),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.Column("total_price", sa.Numeric(12, 2), nullable=False),
        sa.Column("status", purchase_status, nullable=False),
        sa.UniqueConstraint("item_id", "student_id", name="uq_student_purchases_item_student"),
    )
    op.create_index("ix_student_purchases_item_id", "student_purchases", ["item_id"])
    op.create_index("ix_student_purchases_student_id", "student_purchases", ["student_id"])

    op.create_table(
        "store_item_classes",
        sa.Column("item_id", sa.Uuid(), sa.ForeignKey("store_items.id", ondelete="CASCADE"), primary_key=True),
        sa.Column("class_id", sa.Uuid(), sa.ForeignKey("classes.id", ondelete="CASCADE"), primary_key=True),
    )


def downgrade() -> None:
    for table in (
        "store_item_classes",
        "student_purchases",
        "store_items",
        "bank_statements",
        "transactions",
        "bank_accounts",
        "bill_excluded_students",
        "bill_classes",
        "student_bills",
        "bills",
        "class_enrollments",
        "classes",
        "users",
    ):
        op.drop_table(table)

    bind = op.get_bind()
    for enum in (purchase_status, transaction_type, account_type, bill_status, bill_frequency, user_role):
        enum.drop(bind, checkfirst=True)
