"""
Appointment Store
Appointment records, doctor-slot claims and status transitions
"""
import logging
from datetime import datetime, timedelta
from typing import List, Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from clinic_booking.errors import (
    DoctorUnavailableError,
    InternalError,
    InvalidStateError,
    NotFoundError,
    ValidationError,
)
from clinic_booking.models import Appointment, APPOINTMENT_TYPES
from clinic_booking.utils.availability import ACTIVE_STATUSES, is_doctor_free
from clinic_booking.utils.identifiers import new_id
from clinic_booking.utils.timeutils import isoformat, to_db, utcnow_naive

logger = logging.getLogger(__name__)

APPOINTMENT_NOT_FOUND_CODE = 'appointment.not.found'

_CLEARED_RESOURCES = {
    'facility_id': None, 'facility_name': None,
    'equipment_id': None, 'equipment_name': None,
    'medicine_id': None, 'medicine_name': None,
}


class AppointmentStore:
    """
    Owns appointments.

    Doctor slots are claimed atomically: the partial unique index on
    (doctor_id, appointment_date_time) over active statuses rejects a second
    active appointment, whatever the availability pre-check saw. Status
    transitions are conditional updates on the current status, so concurrent
    transitions of the same appointment cannot both win.
    """

    def __init__(self, db, appointment_duration: timedelta = timedelta(hours=1)):
        self.db = db
        self.appointment_duration = appointment_duration

    def get(self, appointment_id: str) -> Appointment:
        appointment = self.db.session.get(Appointment, appointment_id)
        if appointment is None:
            raise NotFoundError(f'Appointment {appointment_id} not found', code=APPOINTMENT_NOT_FOUND_CODE)
        return appointment

    def is_doctor_free(self, doctor_id: str, instant: datetime, excluding_appointment_id: Optional[str] = None) -> bool:
        at = to_db(instant)
        same_slot = Appointment.query.filter(
            Appointment.doctor_id == doctor_id,
            Appointment.appointment_date_time == at,
        ).all()
        return is_doctor_free(same_slot, doctor_id, at, excluding_appointment_id)

    def create(
        self,
        patient_id: str,
        doctor_id: str,
        start: datetime,
        appointment_type: str = 'regular',
        reason: Optional[str] = None,
        condition_id: Optional[str] = None,
    ) -> Appointment:
        """
        Create an appointment in `requested`.

        Raises:
            ValidationError: unknown appointment type
            DoctorUnavailableError: the doctor already has an active appointment at `start`
        """
        if appointment_type not in APPOINTMENT_TYPES:
            raise ValidationError(f'Invalid appointment type. Valid values: {", ".join(APPOINTMENT_TYPES)}')

        if not self.is_doctor_free(doctor_id, start):
            logger.warning("Attempted to book doctor %s when unavailable at %s", doctor_id, isoformat(to_db(start)))
            raise DoctorUnavailableError(f'doctor unavailable at the specified time {isoformat(to_db(start))}')

        appointment = Appointment(
            id=new_id(),
            patient_id=patient_id,
            doctor_id=doctor_id,
            appointment_date_time=to_db(start),
            end_time=to_db(start + self.appointment_duration),
            type=appointment_type,
            status='requested',
            reason=reason,
            condition_id=condition_id,
        )
        try:
            self.db.session.add(appointment)
            self.db.session.commit()
        except IntegrityError:
            self.db.session.rollback()
            # Lost the race for the slot to a concurrent booking
            logger.warning("Doctor slot claimed concurrently: doctor %s at %s", doctor_id, isoformat(to_db(start)))
            raise DoctorUnavailableError(f'doctor unavailable at the specified time {isoformat(to_db(start))}')
        except SQLAlchemyError as e:
            self.db.session.rollback()
            raise InternalError(f'Failed to create appointment: {e}')

        logger.info("Appointment %s requested: doctor %s, patient %s", appointment.id, doctor_id, patient_id)
        return appointment

    def _transition(self, appointment_id: str, from_statuses, values: dict) -> bool:
        """Apply `values` iff the appointment's status is in `from_statuses`. Returns whether it did."""
        values = dict(values, updated_at=utcnow_naive())
        try:
            updated = Appointment.query.filter(
                Appointment.id == appointment_id,
                Appointment.status.in_(from_statuses),
            ).update(values, synchronize_session=False)
            self.db.session.commit()
        except IntegrityError:
            self.db.session.rollback()
            raise
        except SQLAlchemyError as e:
            self.db.session.rollback()
            raise InternalError(f'Failed to update appointment {appointment_id}: {e}')
        self.db.session.expire_all()
        return updated == 1

    def _state_error(self, appointment_id: str, operation: str) -> InvalidStateError:
        current = self.get(appointment_id)
        return InvalidStateError(
            f'appointment {appointment_id} is in state {current.status!r}, '
            f'which is not valid for {operation}'
        )

    def schedule(self, appointment_id: str, resources: Optional[dict] = None) -> Appointment:
        """
        requested -> scheduled, attaching reserved resources.

        `resources` maps 'facility' / 'equipment' / 'medicine' to an
        {id, name, type} summary or None.
        """
        resources = resources or {}
        values = {'status': 'scheduled'}
        for kind in ('facility', 'equipment', 'medicine'):
            summary = resources.get(kind)
            values[f'{kind}_id'] = summary['id'] if summary else None
            values[f'{kind}_name'] = summary['name'] if summary else None

        if not self._transition(appointment_id, ('requested',), values):
            raise self._state_error(appointment_id, 'scheduling')
        logger.info("Appointment %s scheduled", appointment_id)
        return self.get(appointment_id)

    def deny(self, appointment_id: str, reason: str) -> Appointment:
        if not self._transition(appointment_id, ('requested',), {'status': 'denied', 'denial_reason': reason}):
            raise self._state_error(appointment_id, 'denial')
        logger.info("Appointment %s denied", appointment_id)
        return self.get(appointment_id)

    def cancel(self, appointment_id: str, by: str, reason: Optional[str]):
        """
        Cancel an active appointment.

        Returns (appointment, changed). Cancelling an appointment that is
        already cancelled is a no-op that returns changed=False.
        """
        appointment = self.get(appointment_id)
        if appointment.status == 'cancelled':
            return appointment, False

        values = {'status': 'cancelled', 'cancelled_by': by, 'cancellation_reason': reason}
        if not self._transition(appointment_id, ACTIVE_STATUSES, values):
            current = self.get(appointment_id)
            if current.status == 'cancelled':
                return current, False
            raise self._state_error(appointment_id, 'cancellation')
        logger.info("Appointment %s cancelled by %s", appointment_id, by)
        return self.get(appointment_id), True

    def reschedule(self, appointment_id: str, new_start: datetime) -> Appointment:
        """
        Move an active appointment to `new_start` and reset it to `requested`.

        Attached resource references are cleared; the appointment has to be
        decided again.
        """
        appointment = self.get(appointment_id)
        if appointment.status not in ACTIVE_STATUSES:
            raise InvalidStateError(f'appointment {appointment_id} is not in a reschedulable state')

        doctor_id = appointment.doctor_id
        if not self.is_doctor_free(doctor_id, new_start, excluding_appointment_id=appointment_id):
            raise DoctorUnavailableError(f'doctor unavailable at the specified time {isoformat(to_db(new_start))}')

        values = dict(
            _CLEARED_RESOURCES,
            status='requested',
            appointment_date_time=to_db(new_start),
            end_time=to_db(new_start + self.appointment_duration),
        )
        try:
            changed = self._transition(appointment_id, ACTIVE_STATUSES, values)
        except IntegrityError:
            raise DoctorUnavailableError(f'doctor unavailable at the specified time {isoformat(to_db(new_start))}')
        if not changed:
            raise InvalidStateError(f'appointment {appointment_id} is not in a reschedulable state')

        logger.info("Appointment %s rescheduled to %s", appointment_id, isoformat(to_db(new_start)))
        return self.get(appointment_id)

    def revert_to_requested(self, appointment_id: str) -> bool:
        """scheduled -> requested after its resources could not be reserved."""
        reverted = self._transition(appointment_id, ('scheduled',), dict(_CLEARED_RESOURCES, status='requested'))
        if reverted:
            logger.warning("Appointment %s moved back to requested", appointment_id)
        return reverted

    def attach_resources(self, appointment_id: str, resources: dict) -> bool:
        """Record reserved resources on a scheduled appointment."""
        values = {}
        for kind in ('facility', 'equipment', 'medicine'):
            summary = resources.get(kind)
            if summary:
                values[f'{kind}_id'] = summary['id']
                values[f'{kind}_name'] = summary['name']
        if not values:
            return True
        return self._transition(appointment_id, ('scheduled',), values)

    # --- Listings ---

    def list_for_doctor(self, doctor_id: str, start=None, end=None, status=None) -> List[Appointment]:
        return self._list(Appointment.doctor_id == doctor_id, start, end, status)

    def list_for_patient(self, patient_id: str, start=None, end=None, status=None) -> List[Appointment]:
        return self._list(Appointment.patient_id == patient_id, start, end, status)

    def _list(self, owner_filter, start, end, status):
        query = Appointment.query.filter(owner_filter)
        if start is not None:
            query = query.filter(Appointment.appointment_date_time >= to_db(start))
        if end is not None:
            query = query.filter(Appointment.appointment_date_time <= to_db(end))
        if status:
            query = query.filter(Appointment.status == status)
        return query.order_by(Appointment.appointment_date_time.asc()).all()
