"""Create appointment, resource, reservation, doctor and patient tables

Revision ID: 3c9e1f0a7b21
Revises:
Create Date: 2026-10-19 10:00:00

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '3c9e1f0a7b21'
down_revision = None
branch_labels = None
depends_on = None

ACTIVE_SLOT = "status IN ('requested', 'scheduled')"


def upgrade():
    op.create_table(
        'doctors',
        sa.Column('id', sa.String(length=36), primary_key=True),
        sa.Column('first_name', sa.String(length=100), nullable=False),
        sa.Column('last_name', sa.String(length=100), nullable=False),
        sa.Column('email', sa.String(length=120), nullable=False),
        sa.Column('specialization', sa.String(length=100), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_doctors_email', 'doctors', ['email'], unique=True)

    op.create_table(
        'patients',
        sa.Column('id', sa.String(length=36), primary_key=True),
        sa.Column('first_name', sa.String(length=100), nullable=False),
        sa.Column('last_name', sa.String(length=100), nullable=False),
        sa.Column('email', sa.String(length=120), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_patients_email', 'patients', ['email'], unique=True)

    op.create_table(
        'resources',
        sa.Column('id', sa.String(length=36), primary_key=True),
        sa.Column('name', sa.String(length=100), nullable=False),
        sa.Column('type', sa.String(length=20), nullable=False),
    )
    op.create_index('ix_resources_type', 'resources', ['type'])

    op.create_table(
        'appointments',
        sa.Column('id', sa.String(length=36), primary_key=True),
        sa.Column('patient_id', sa.String(length=36), nullable=False),
        sa.Column('doctor_id', sa.String(length=36), nullable=False),
        sa.Column('appointment_date_time', sa.DateTime(), nullable=False),
        sa.Column('end_time', sa.DateTime(), nullable=False),
        sa.Column('type', sa.String(length=30), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False),
        sa.Column('reason', sa.Text(), nullable=True),
        sa.Column('condition_id', sa.String(length=36), nullable=True),
        sa.Column('cancellation_reason', sa.Text(), nullable=True),
        sa.Column('cancelled_by', sa.String(length=10), nullable=True),
        sa.Column('denial_reason', sa.Text(), nullable=True),
        sa.Column('facility_id', sa.String(length=36), nullable=True),
        sa.Column('facility_name', sa.String(length=100), nullable=True),
        sa.Column('equipment_id', sa.String(length=36), nullable=True),
        sa.Column('equipment_name', sa.String(length=100), nullable=True),
        sa.Column('medicine_id', sa.String(length=36), nullable=True),
        sa.Column('medicine_name', sa.String(length=100), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.CheckConstraint('end_time > appointment_date_time', name='ck_appointments_interval'),
    )
    op.create_index('ix_appointments_patient_id', 'appointments', ['patient_id'])
    op.create_index('ix_appointments_doctor_id', 'appointments', ['doctor_id'])
    op.create_index('ix_appointments_appointment_date_time', 'appointments', ['appointment_date_time'])
    op.create_index('ix_appointments_status', 'appointments', ['status'])
    op.create_index('ix_appointments_condition_id', 'appointments', ['condition_id'])
    # Doctor exclusivity: one active appointment per doctor and start instant
    op.create_index(
        'uq_appointments_doctor_slot_active',
        'appointments',
        ['doctor_id', 'appointment_date_time'],
        unique=True,
        sqlite_where=sa.text(ACTIVE_SLOT),
        postgresql_where=sa.text(ACTIVE_SLOT),
    )

    op.create_table(
        'reservations',
        sa.Column('id', sa.String(length=36), primary_key=True),
        sa.Column('appointment_id', sa.String(length=36), nullable=False),
        sa.Column('resource_id', sa.String(length=36), sa.ForeignKey('resources.id'), nullable=False),
        sa.Column('resource_name', sa.String(length=100), nullable=False),
        sa.Column('resource_type', sa.String(length=20), nullable=False),
        sa.Column('start_time', sa.DateTime(), nullable=False),
        sa.Column('end_time', sa.DateTime(), nullable=False),
        sa.UniqueConstraint('appointment_id', 'resource_id', name='uq_reservations_appointment_resource'),
        sa.CheckConstraint('end_time > start_time', name='ck_reservations_interval'),
    )
    op.create_index('ix_reservations_appointment_id', 'reservations', ['appointment_id'])
    op.create_index('idx_reservation_resource_time', 'reservations', ['resource_id', 'start_time'])


def downgrade():
    op.drop_table('reservations')
    op.drop_index('uq_appointments_doctor_slot_active', table_name='appointments')
    op.drop_table('appointments')
    op.drop_table('resources')
    op.drop_table('patients')
    op.drop_table('doctors')
