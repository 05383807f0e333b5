"""Create ledger_transactions table

Revision ID: 20261019_000002
Revises: 20261019_000001
Create Date: 2026-10-19

Append-only, per-patient hash chain anchoring predictions and notes.
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


revision: str = "20261019_000002"
down_revision: Union[str, None] = "20261019_000001"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "ledger_transactions",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("tx_id", sa.String(32), nullable=False),
        sa.Column("payload_hash", sa.String(64), nullable=False),
        sa.Column("prev_hash", sa.String(64), nullable=True),
        sa.Column("schema_version", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("patient_id", sa.Integer(), nullable=False),
        sa.Column("created_by", sa.Integer(), nullable=False),
        sa.Column("prediction_id", sa.Integer(), nullable=True),
        sa.Column("note_id", sa.Integer(), nullable=True),
        sa.Column("appointment_id", sa.Integer(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(
            ["patient_id"], ["users.id"], name="fk_ledger_transactions_patient_id", ondelete="NO ACTION"
        ),
        sa.ForeignKeyConstraint(
            ["created_by"], ["users.id"], name="fk_ledger_transactions_created_by", ondelete="NO ACTION"
        ),
        sa.ForeignKeyConstraint(
            ["prediction_id"],
            ["predictions.id"],
            name="fk_ledger_transactions_prediction_id",
            ondelete="NO ACTION",
        ),
        sa.ForeignKeyConstraint(
            ["note_id"],
            ["consultation_notes.id"],
            name="fk_ledger_transactions_note_id",
            ondelete="NO ACTION",
        ),
        sa.UniqueConstraint("tx_id", name="uq_ledger_transactions_tx_id"),
        sa.CheckConstraint(
            "(CASE WHEN prediction_id IS NULL THEN 0 ELSE 1 END)"
            " + (CASE WHEN note_id IS NULL THEN 0 ELSE 1 END) = 1",
            name="ck_ledger_transactions_exactly_one_payload",
        ),
    )
    op.create_index("ix_ledger_transactions_tx_id", "ledger_transactions", ["tx_id"], unique=True)
    op.create_index("ix_ledger_transactions_prediction_id", "ledger_transactions", ["prediction_id"])
    op.create_index("ix_ledger_transactions_note_id", "ledger_transactions", ["note_id"])
    op.create_index(
        "ix_ledger_transactions_patient_created", "ledger_transactions", ["patient_id", "created_at"]
    )


def downgrade() -> None:
    op.drop_index("ix_ledger_transactions_patient_created", table_name="ledger_transactions")
    op.drop_index("ix_ledger_transactions_note_id", table_name="ledger_transactions")
    op.drop_index("ix_ledger_transactions_prediction_id", table_name="ledger_transactions")
    op.drop_index("ix_ledger_transactions_tx_id", table_name="ledger_transactions")
    op.drop_table("ledger_transactions")
