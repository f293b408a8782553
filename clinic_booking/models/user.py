from clinic_booking.extensions import db
from clinic_booking.utils.identifiers import new_id
from .base import TimestampMixin


class Doctor(db.Model, TimestampMixin):
    __tablename__ = 'doctors'

    id = db.Column(db.String(36), primary_key=True, default=new_id)
    first_name = db.Column(db.String(100), nullable=False)
    last_name = db.Column(db.String(100), nullable=False)
    email = db.Column(db.String(120), unique=True, nullable=False, index=True)
    specialization = db.Column(db.String(100), nullable=True)  # e.g., Surgery, Radiology

    def __repr__(self):
        return f"<Doctor {self.first_name} {self.last_name} ({self.id})>"

    def to_dict(self):
        return {
            'id': self.id,
            'firstName': self.first_name,
            'lastName': self.last_name,
            'email': self.email,
            'specialization': self.specialization,
            'role': 'doctor',
        }


class Patient(db.Model, TimestampMixin):
    __tablename__ = 'patients'

    id = db.Column(db.String(36), primary_key=True, default=new_id)
    first_name = db.Column(db.String(100), nullable=False)
    last_name = db.Column(db.String(100), nullable=False)
    email = db.Column(db.String(120), unique=True, nullable=False, index=True)

    def __repr__(self):
        return f"<Patient {self.first_name} {self.last_name} ({self.id})>"

    def to_dict(self):
        return {
            'id': self.id,
            'firstName': self.first_name,
            'lastName': self.last_name,
            'email': self.email,
            'role': 'patient',
        }
