"""
User Directory
Doctors and patients, read by the appointment side to validate ids
"""
import logging

from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from clinic_booking.errors import EmailConflictError, InternalError, NotFoundError, ValidationError
from clinic_booking.models import Doctor, Patient
from clinic_booking.utils.identifiers import new_id

logger = logging.getLogger(__name__)


class UserDirectory:

    def __init__(self, db):
        self.db = db

    def _email_taken(self, email):
        return (
            Doctor.query.filter(Doctor.email == email).first() is not None
            or Patient.query.filter(Patient.email == email).first() is not None
        )

    def _validate(self, data, required):
        missing = [field for field in required if not str(data.get(field) or '').strip()]
        if missing:
            raise ValidationError(f'Missing required fields: {", ".join(missing)}')
        email = data['email'].strip().lower()
        if '@' not in email:
            raise ValidationError(f'Invalid email address: {data["email"]!r}')
        return email

    def _register(self, user):
        if self._email_taken(user.email):
            raise EmailConflictError(f'Email {user.email} is already registered')
        try:
            self.db.session.add(user)
            self.db.session.commit()
        except IntegrityError:
            self.db.session.rollback()
            raise EmailConflictError(f'Email {user.email} is already registered')
        except SQLAlchemyError as e:
            self.db.session.rollback()
            raise InternalError(f'Failed to register user: {e}')
        return user

    def register_doctor(self, data: dict) -> Doctor:
        email = self._validate(data, ('firstName', 'lastName', 'email'))
        doctor = Doctor(
            id=new_id(),
            first_name=data['firstName'].strip(),
            last_name=data['lastName'].strip(),
            email=email,
            specialization=data.get('specialization'),
        )
        self._register(doctor)
        logger.info("Registered doctor %s", doctor.id)
        return doctor

    def register_patient(self, data: dict) -> Patient:
        email = self._validate(data, ('firstName', 'lastName', 'email'))
        patient = Patient(
            id=new_id(),
            first_name=data['firstName'].strip(),
            last_name=data['lastName'].strip(),
            email=email,
        )
        self._register(patient)
        logger.info("Registered patient %s", patient.id)
        return patient

    def get_doctor(self, doctor_id: str) -> Doctor:
        doctor = self.db.session.get(Doctor, doctor_id)
        if doctor is None:
            raise NotFoundError(f'Doctor {doctor_id} not found', code='doctor.not.found')
        return doctor

    def get_patient(self, patient_id: str) -> Patient:
        patient = self.db.session.get(Patient, patient_id)
        if patient is None:
            raise NotFoundError(f'Patient {patient_id} not found', code='patient.not.found')
        return patient

    def list_doctors(self, specialization=None):
        query = Doctor.query
        if specialization:
            query = query.filter(Doctor.specialization.ilike(f'%{specialization}%'))
        return query.order_by(Doctor.last_name.asc(), Doctor.first_name.asc()).all()
