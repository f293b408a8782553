from clinic_booking.extensions import db
from clinic_booking.utils.identifiers import new_id
from clinic_booking.utils.timeutils import isoformat
from .base import TimestampMixin

APPOINTMENT_STATUSES = ('requested', 'scheduled', 'denied', 'cancelled')
APPOINTMENT_TYPES = ('regular', 'followUp', 'specialConsultation')
CANCELLED_BY = ('patient', 'doctor')

# Slot-holding statuses, kept in sync with utils.availability.ACTIVE_STATUSES
_ACTIVE_SLOT = "status IN ('requested', 'scheduled')"


class Appointment(db.Model, TimestampMixin):
    __tablename__ = 'appointments'
    __table_args__ = (
        # Doctor exclusivity: one active appointment per doctor and start instant
        db.Index(
            'uq_appointments_doctor_slot_active',
            'doctor_id', 'appointment_date_time',
            unique=True,
            sqlite_where=db.text(_ACTIVE_SLOT),
            postgresql_where=db.text(_ACTIVE_SLOT),
        ),
        db.CheckConstraint('end_time > appointment_date_time', name='ck_appointments_interval'),
    )

    id = db.Column(db.String(36), primary_key=True, default=new_id)
    patient_id = db.Column(db.String(36), nullable=False, index=True)
    doctor_id = db.Column(db.String(36), nullable=False, index=True)

    appointment_date_time = db.Column(db.DateTime, nullable=False, index=True)
    end_time = db.Column(db.DateTime, nullable=False)

    type = db.Column(db.String(30), nullable=False, default='regular')
    # Status: requested, scheduled, denied, cancelled
    status = db.Column(db.String(20), nullable=False, default='requested', index=True)

    reason = db.Column(db.Text, nullable=True)
    condition_id = db.Column(db.String(36), nullable=True, index=True)

    cancellation_reason = db.Column(db.Text, nullable=True)
    cancelled_by = db.Column(db.String(10), nullable=True)  # patient or doctor
    denial_reason = db.Column(db.Text, nullable=True)

    # Resource references, written only after a successful reservation
    facility_id = db.Column(db.String(36), nullable=True)
    facility_name = db.Column(db.String(100), nullable=True)
    equipment_id = db.Column(db.String(36), nullable=True)
    equipment_name = db.Column(db.String(100), nullable=True)
    medicine_id = db.Column(db.String(36), nullable=True)
    medicine_name = db.Column(db.String(100), nullable=True)

    def __repr__(self):
        return f"<Appointment {self.id} - doctor {self.doctor_id} at {self.appointment_date_time} ({self.status})>"

    def resource_summaries(self):
        """Attached resources grouped by type, as {id, name, type} dicts."""
        def summary(resource_id, name, typ):
            return [{'id': resource_id, 'name': name, 'type': typ}] if resource_id else []

        return {
            'facilities': summary(self.facility_id, self.facility_name, 'facility'),
            'equipment': summary(self.equipment_id, self.equipment_name, 'equipment'),
            'medicines': summary(self.medicine_id, self.medicine_name, 'medicine'),
        }

    def to_dict(self):
        data = {
            'id': self.id,
            'patientId': self.patient_id,
            'doctorId': self.doctor_id,
            'appointmentDateTime': isoformat(self.appointment_date_time),
            'endTime': isoformat(self.end_time),
            'type': self.type,
            'status': self.status,
            'reason': self.reason,
            'conditionId': self.condition_id,
            'cancellationReason': self.cancellation_reason,
            'cancelledBy': self.cancelled_by,
            'denialReason': self.denial_reason,
            'createdAt': isoformat(self.created_at),
            'updatedAt': isoformat(self.updated_at),
        }
        data.update(self.resource_summaries())
        return data
