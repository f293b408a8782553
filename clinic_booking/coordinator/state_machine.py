"""
Booking Coordinator
Appointment decision, cancellation and reschedule, shared by every accept strategy
"""
import logging

from clinic_booking.errors import BookingError, InvalidStateError, ValidationError
from clinic_booking.models import CANCELLED_BY
from clinic_booking.utils.identifiers import parse_optional_uuid
from clinic_booking.utils.timeutils import from_db

logger = logging.getLogger(__name__)

ACCEPT = 'accept'
REJECT = 'reject'
ACTIONS = (ACCEPT, REJECT)


class Decision:
    """A doctor's decision on a requested appointment."""

    def __init__(self, action, reason=None, facility_id=None, equipment_id=None, medicine_id=None):
        self.action = action
        self.reason = reason
        self.facility_id = facility_id
        self.equipment_id = equipment_id
        self.medicine_id = medicine_id

    @classmethod
    def from_payload(cls, data):
        """Build from a camelCase JSON body; resource ids must be UUIDs."""
        if not isinstance(data, dict):
            raise ValidationError('Request body must be a JSON object')
        reason = data.get('reason')
        if reason is not None and not isinstance(reason, str):
            raise ValidationError('Invalid type for "reason", expected string')
        return cls(
            action=data.get('action'),
            reason=reason,
            facility_id=parse_optional_uuid(data.get('facilityId'), 'facilityId'),
            equipment_id=parse_optional_uuid(data.get('equipmentId'), 'equipmentId'),
            medicine_id=parse_optional_uuid(data.get('medicineId'), 'medicineId'),
        )

    def __repr__(self):
        return f"<Decision {self.action} facility={self.facility_id} equipment={self.equipment_id} medicine={self.medicine_id}>"


class BookingCoordinator:
    """
    Owns the appointment state machine. How an accepted appointment gets its
    resources is delegated to the accept strategy it is composed with.

    Args:
        appointments: AppointmentStore
        gateway: resource gateway used for releases and reservation lookups
        strategy: object with accept(appointment, decision) -> Appointment and
            abandon(appointment_id), which stops pending reservation work best-effort
    """

    def __init__(self, appointments, gateway, strategy):
        self.appointments = appointments
        self.gateway = gateway
        self.strategy = strategy

    def decide(self, appointment_id, decision: Decision):
        if decision.action not in ACTIONS:
            raise ValidationError(f'Invalid action {decision.action!r}. Valid values: {", ".join(ACTIONS)}')

        appointment = self.appointments.get(appointment_id)
        if appointment.status != 'requested':
            raise InvalidStateError(
                f'appointment {appointment_id} is {appointment.status}; only requested appointments can be decided'
            )

        if decision.action == REJECT:
            if not isinstance(decision.reason, str) or not decision.reason.strip():
                raise ValidationError('A reason is required to deny an appointment')
            return self.appointments.deny(appointment_id, decision.reason.strip())

        logger.info("Accepting appointment %s with %s", appointment_id, decision)
        return self.strategy.accept(appointment, decision)

    def cancel(self, appointment_id, by, reason=None):
        if by not in CANCELLED_BY:
            raise ValidationError(f'Invalid value for "by". Valid values: {", ".join(CANCELLED_BY)}')

        appointment, changed = self.appointments.cancel(appointment_id, by, reason)
        if changed:
            self.strategy.abandon(appointment_id)
            self._release(appointment_id)
        else:
            logger.info("Appointment %s already cancelled", appointment_id)
        return appointment

    def reschedule(self, appointment_id, new_start):
        appointment = self.appointments.reschedule(appointment_id, new_start)
        # Pending reservation work and old reservations would block the previous slot
        self.strategy.abandon(appointment_id)
        self._release(appointment_id)
        return appointment

    def view(self, appointment_id) -> dict:
        """
        Appointment as a dict. A scheduled appointment whose resources were
        reserved out of band (workflow engine) is filled from the resource side.
        """
        appointment = self.appointments.get(appointment_id)
        data = appointment.to_dict()
        attached = data['facilities'] or data['equipment'] or data['medicines']
        if appointment.status != 'scheduled' or attached:
            return data
        try:
            reserved = self.gateway.reserved(appointment_id)
        except BookingError as e:
            logger.warning("Could not look up reservations of appointment %s: %s", appointment_id, e.detail)
            return data
        for kind, key in (('facility', 'facilities'), ('equipment', 'equipment'), ('medicine', 'medicines')):
            if reserved.get(kind):
                data[key] = [reserved[kind]]
        return data

    def _release(self, appointment_id):
        """Best-effort release; failures are logged, never raised."""
        try:
            self.gateway.release(appointment_id)
        except BookingError as e:
            logger.error("Failed to release reservations of appointment %s: %s", appointment_id, e.detail)


def appointment_start(appointment):
    return from_db(appointment.appointment_date_time)
