"""
Event-driven accept: schedule optimistically, reserve in a consumer
"""
import logging

from clinic_booking.errors import DownstreamError
from clinic_booking.services.events import APPOINTMENT_SCHEDULED, appointment_scheduled_payload

from .state_machine import appointment_start

logger = logging.getLogger(__name__)


class EventDrivenStrategy:
    """
    Marks the appointment scheduled, commits, then publishes
    appointment-scheduled. The reservation outcome comes back as
    resource-reserved or reservation-failed (see tasks.booking_tasks).
    """

    def __init__(self, appointments, publisher):
        self.appointments = appointments
        self.publisher = publisher

    def accept(self, appointment, decision):
        appointment_id = appointment.id
        payload = appointment_scheduled_payload(
            appointment_id,
            appointment_start(appointment),
            facility_id=decision.facility_id,
            equipment_id=decision.equipment_id,
            medicine_id=decision.medicine_id,
        )

        self.appointments.schedule(appointment_id)
        try:
            self.publisher.publish(APPOINTMENT_SCHEDULED, payload)
        except DownstreamError:
            # Nobody will reserve for it; let the doctor decide again
            self.appointments.revert_to_requested(appointment_id)
            raise
        return self.appointments.get(appointment_id)

    def abandon(self, appointment_id):
        # In-flight events are harmless: resource-reserved releases for appointments no longer scheduled
        pass
