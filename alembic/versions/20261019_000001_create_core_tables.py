"""Create users, predictions, notes, consents and notifications tables

Revision ID: 20261019_000001
Revises: None
Create Date: 2026-10-19

Records owned by the portal workflows; the ledger anchors point at these.
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '20261019_000001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create the portal tables."""
    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('email', sa.String(255), nullable=False),
        sa.Column('password', sa.String(255), nullable=False),
        sa.Column('full_name', sa.String(200), nullable=False),
        sa.Column(
            'role',
            sa.Enum('patient', 'doctor', name='app_role', create_constraint=True),
            nullable=False,
        ),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_users_email', 'users', ['email'], unique=True)

    op.create_table(
        'predictions',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('patient_id', sa.Integer(), nullable=False),
        sa.Column('created_by', sa.Integer(), nullable=False),
        sa.Column('input', sa.JSON(), nullable=False),
        sa.Column('risk_percentage', sa.Integer(), nullable=False),
        sa.Column('risk_category', sa.String(20), nullable=False),
        sa.Column('health_score', sa.Integer(), nullable=False),
        sa.Column('doctor_remarks', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(
            ['patient_id'], ['users.id'], name='fk_predictions_patient_id', ondelete='CASCADE'
        ),
        sa.ForeignKeyConstraint(['created_by'], ['users.id'], name='fk_predictions_created_by'),
    )
    op.create_index('ix_predictions_patient_id', 'predictions', ['patient_id'])

    op.create_table(
        'consultation_notes',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('appointment_id', sa.Integer(), nullable=False),
        sa.Column('doctor_id', sa.Integer(), nullable=False),
        sa.Column('patient_id', sa.Integer(), nullable=False),
        sa.Column('diagnosis', sa.Text(), nullable=True),
        sa.Column('recommendations', sa.Text(), nullable=True),
        sa.Column('is_final', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('finalized_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['doctor_id'], ['users.id'], name='fk_consultation_notes_doctor_id'),
        sa.ForeignKeyConstraint(['patient_id'], ['users.id'], name='fk_consultation_notes_patient_id'),
    )
    op.create_index('ix_consultation_notes_appointment_id', 'consultation_notes', ['appointment_id'], unique=True)
    op.create_index('ix_consultation_notes_doctor_id', 'consultation_notes', ['doctor_id'])
    op.create_index('ix_consultation_notes_patient_id', 'consultation_notes', ['patient_id'])

    op.create_table(
        'doctor_patient_consents',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('patient_id', sa.Integer(), nullable=False),
        sa.Column('doctor_id', sa.Integer(), nullable=False),
        sa.Column(
            'status',
            sa.Enum('pending', 'granted', 'revoked', name='consent_status', create_constraint=True),
            nullable=False,
        ),
        sa.Column('note', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(
            ['patient_id'], ['users.id'], name='fk_consents_patient_id', ondelete='CASCADE'
        ),
        sa.ForeignKeyConstraint(
            ['doctor_id'], ['users.id'], name='fk_consents_doctor_id', ondelete='NO ACTION'
        ),
        sa.UniqueConstraint('patient_id', 'doctor_id', name='uq_consents_patient_doctor'),
    )
    op.create_index('ix_doctor_patient_consents_patient_id', 'doctor_patient_consents', ['patient_id'])
    op.create_index('ix_doctor_patient_consents_doctor_id', 'doctor_patient_consents', ['doctor_id'])

    op.create_table(
        'notifications',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('type', sa.String(50), nullable=False),
        sa.Column('title', sa.String(200), nullable=False),
        sa.Column('body', sa.Text(), nullable=True),
        sa.Column('href', sa.String(500), nullable=True),
        sa.Column('is_read', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(
            ['user_id'], ['users.id'], name='fk_notifications_user_id', ondelete='CASCADE'
        ),
    )
    op.create_index('ix_notifications_user_id', 'notifications', ['user_id'])


def downgrade() -> None:
    """Drop the portal tables."""
    op.drop_index('ix_notifications_user_id', table_name='notifications')
    op.drop_table('notifications')
    op.drop_index('ix_doctor_patient_consents_doctor_id', table_name='doctor_patient_consents')
    op.drop_index('ix_doctor_patient_consents_patient_id', table_name='doctor_patient_consents')
    op.drop_table('doctor_patient_consents')
    op.drop_index('ix_consultation_notes_patient_id', table_name='consultation_notes')
    op.drop_index('ix_consultation_notes_doctor_id', table_name='consultation_notes')
    op.drop_index('ix_consultation_notes_appointment_id', table_name='consultation_notes')
    op.drop_table('consultation_notes')
    op.drop_index('ix_predictions_patient_id', table_name='predictions')
    op.drop_table('predictions')
    op.drop_index('ix_users_email', table_name='users')
    op.drop_table('users')
