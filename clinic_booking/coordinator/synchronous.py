"""
Synchronous accept: reserve inline, then schedule
"""
import logging

from clinic_booking.errors import BookingError, InvalidStateError

from .state_machine import appointment_start

logger = logging.getLogger(__name__)


class SynchronousStrategy:
    """
    Reserves every requested resource through the gateway while the accept
    request waits. The appointment is written only after the reservation
    succeeded; a failed reservation leaves it untouched.
    """

    def __init__(self, appointments, gateway):
        self.appointments = appointments
        self.gateway = gateway

    def accept(self, appointment, decision):
        appointment_id = appointment.id
        resources = self.gateway.reserve(
            appointment_id,
            appointment_start(appointment),
            facility_id=decision.facility_id,
            equipment_id=decision.equipment_id,
            medicine_id=decision.medicine_id,
        )

        try:
            return self.appointments.schedule(appointment_id, resources)
        except InvalidStateError:
            # A concurrent transition won; undo the reservations made above
            logger.warning("Appointment %s changed state during accept; releasing its reservations", appointment_id)
            try:
                self.gateway.release(appointment_id)
            except BookingError as e:
                logger.error("Compensating release for appointment %s failed: %s", appointment_id, e.detail)
            raise

    def abandon(self, appointment_id):
        # Nothing runs after accept returns
        pass
