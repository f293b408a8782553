"""
Workflow-engine accept: the engine owns the reservation saga
"""
import logging

from clinic_booking.errors import DownstreamError, InvalidStateError
from clinic_booking.utils.timeutils import isoformat

from .state_machine import appointment_start

logger = logging.getLogger(__name__)


class WorkflowStrategy:
    """
    Starts one process instance per accepted appointment (business key =
    appointment id) and marks the appointment scheduled. Reservation runs as
    an external task picked up by the ReservationWorker; retries are the
    engine's business.
    """

    def __init__(self, appointments, engine, process_key):
        self.appointments = appointments
        self.engine = engine
        self.process_key = process_key

    def accept(self, appointment, decision):
        appointment_id = appointment.id
        variables = {
            'appointmentId': appointment_id,
            'appointmentDateTime': isoformat(appointment_start(appointment)),
            'facilityId': decision.facility_id,
            'equipmentId': decision.equipment_id,
            'medicineId': decision.medicine_id,
        }

        # Engine failures surface as DownstreamError before anything is written
        instance_id = self.engine.start_process(self.process_key, appointment_id, variables)

        try:
            return self.appointments.schedule(appointment_id)
        except InvalidStateError:
            logger.warning("Appointment %s changed state during accept; cancelling process %s",
                           appointment_id, instance_id)
            try:
                self.engine.cancel_process(instance_id, reason='appointment no longer requested')
            except DownstreamError as e:
                logger.error("Failed to cancel process %s: %s", instance_id, e.detail)
            raise

    def abandon(self, appointment_id):
        """Stop the appointment's process so its reservation task never runs again. Best-effort."""
        try:
            cancelled = self.engine.cancel_processes_by_business_key(
                appointment_id, process_key=self.process_key, reason='appointment cancelled or rescheduled',
            )
        except DownstreamError as e:
            logger.error("Failed to cancel the process of appointment %s: %s", appointment_id, e.detail)
            return
        if cancelled:
            logger.info("Cancelled %d process instance(s) of appointment %s", cancelled, appointment_id)
