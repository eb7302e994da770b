"""ledger schema

Revision ID: 0001
Revises:
Create Date: 2026-10-19
"""
from alembic import op
import sqlalchemy as sa


revision = "0001"
down_revision = None
branch_labels = None
depends_on = None

account_status_enum = sa.Enum(
    "Active", "Dormant", "Closed",
    name="account_status_enum", create_constraint=True,
)
transaction_type_enum = sa.Enum(
    "Deposit", "Withdrawal",
    name="transaction_type_enum", create_constraint=True,
)


def upgrade() -> None:
    op.create_table(
        "customers",
        sa.Column("customer_id", sa.String(12), primary_key=True),
        sa.Column("branch_code", sa.String(6), nullable=False),
        sa.Column("full_name", sa.String(50), nullable=False),
        sa.Column("overdraft_limit", sa.Numeric(20, 2), nullable=True),
        sa.Column("email", sa.String(100), nullable=True),
        sa.Column("phone_number", sa.String(15), nullable=True),
        sa.Column("address", sa.String(255), nullable=True),
        sa.Column("date_of_birth", sa.Date(), nullable=True),
        sa.Column("nationality", sa.String(50), nullable=True),
        sa.Column("fathers_name", sa.String(50), nullable=True),
        sa.UniqueConstraint("branch_code", "customer_id"),
    )
    op.create_table(
        "accounts",
        sa.Column("account_id", sa.Integer(), primary_key=True),
        sa.Column(
            "customer_id", sa.String(12),
            sa.ForeignKey("customers.customer_id"), nullable=False,
        ),
        sa.Column("account_balance", sa.Numeric(18, 2), nullable=False),
        sa.Column("account_status", account_status_enum, nullable=False),
        sa.Column("reason_for_closure", sa.String(50), nullable=True),
    )
    op.create_index("ix_accounts_customer_id", "accounts", ["customer_id"])
    op.create_table(
        "transaction_logs",
        sa.Column("log_id", sa.Integer(), primary_key=True),
        sa.Column(
            "account_id", sa.Integer(),
            sa.ForeignKey("accounts.account_id"), nullable=False,
        ),
        sa.Column("transaction_type", transaction_type_enum, nullable=False),
        sa.Column("amount", sa.Numeric(18, 2), nullable=False),
        sa.Column("transaction_date", sa.DateTime(), nullable=False),
    )
    op.create_index(
        "ix_transaction_logs_account_id", "transaction_logs", ["account_id"]
    )
    op.create_table(
        "account_closures",
        sa.Column("closure_id", sa.Integer(), primary_key=True),
        sa.Column(
            "account_id", sa.Integer(),
            sa.ForeignKey("accounts.account_id"),
            nullable=False, unique=True,
        ),
        sa.Column("closure_date", sa.DateTime(), nullable=False),
        sa.Column("reason", sa.String(50), nullable=False),
    )
    op.create_table(
        "loan",
        sa.Column("loan_id", sa.Integer(), primary_key=True),
        sa.Column(
            "customer_id", sa.String(12),
            sa.ForeignKey("customers.customer_id"), nullable=False,
        ),
        sa.Column("loan_amount", sa.Numeric(18, 2), nullable=False),
        sa.Column("loan_to_be_paid", sa.Numeric(18, 2), nullable=False),
        sa.Column("interest", sa.Numeric(5, 2), nullable=False),
        sa.Column("duration", sa.Integer(), nullable=False),
    )
    op.create_index("ix_loan_customer_id", "loan", ["customer_id"])


def downgrade() -> None:
    op.drop_index("ix_loan_customer_id", table_name="loan")
    op.drop_table("loan")
    op.drop_table("account_closures")
    op.drop_index(
        "ix_transaction_logs_account_id", table_name="transaction_logs"
    )
    op.drop_table("transaction_logs")
    op.drop_index("ix_accounts_customer_id", table_name="accounts")
    op.drop_table("accounts")
    op.drop_table("customers")
    transaction_type_enum.drop(op.get_bind(), checkfirst=True)
    account_status_enum.drop(op.get_bind(), checkfirst=True)
