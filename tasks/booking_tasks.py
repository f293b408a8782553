"""
Celery tasks consuming booking events
One task per topic; each topic is routed to its own queue
"""
import logging

from flask import current_app
from sqlalchemy.exc import OperationalError

from clinic_booking.coordinator import get_services
from clinic_booking.errors import (
    DownstreamError,
    InternalError,
    NotFoundError,
    ResourceUnavailableError,
    ValidationError,
)
from clinic_booking.extensions import celery
from clinic_booking.services.events import (
    APPOINTMENT_SCHEDULED,
    CONSUMER_TASKS,
    RESERVATION_FAILED,
    RESOURCE_RESERVED,
    parse_appointment_scheduled,
    parse_reservation_failed,
    parse_resource_reserved,
    reservation_failed_payload,
    resource_reserved_payload,
)
from clinic_booking.services.resource_gateway import summaries_by_type

logger = logging.getLogger(__name__)

TRANSIENT_ERRORS = (DownstreamError, InternalError, OperationalError)
PERMANENT_ERRORS = (ResourceUnavailableError, NotFoundError, ValidationError)


@celery.task(bind=True, name=CONSUMER_TASKS[APPOINTMENT_SCHEDULED])
def appointment_scheduled(self, payload):
    """
    Reserve the resources of a scheduled appointment

    Transient failures are retried with exponential backoff up to
    EVENT_MAX_RETRIES; permanent failures and exhausted retries publish
    reservation-failed.

    Args:
        payload: {appointmentId, appointmentDateTime, facilityId?, equipmentId?, medicineId?}

    Returns:
        dict: Reservation result
    """
    try:
        event = parse_appointment_scheduled(payload)
    except ValidationError as e:
        logger.error(f"Dropping malformed {APPOINTMENT_SCHEDULED} event {payload!r}: {e.detail}")
        return {'success': False, 'error': e.detail}

    services = get_services()
    appointment_id = event['appointment_id']
    try:
        reservations = services.resources.reserve_for_appointment(
            appointment_id,
            event['start'],
            facility_id=event['facility_id'],
            equipment_id=event['equipment_id'],
            medicine_id=event['medicine_id'],
        )
    except PERMANENT_ERRORS as e:
        logger.warning(f"Reservation for appointment {appointment_id} failed: {e.detail}")
        services.publisher.publish(RESERVATION_FAILED, reservation_failed_payload(appointment_id, e.detail))
        return {'success': False, 'error': e.detail}
    except TRANSIENT_ERRORS as e:
        max_retries = current_app.config['EVENT_MAX_RETRIES']
        if self.request.retries >= max_retries:
            logger.error(f"Giving up on reservation for appointment {appointment_id} after {max_retries} retries: {e}")
            services.publisher.publish(RESERVATION_FAILED, reservation_failed_payload(appointment_id, str(e)))
            return {'success': False, 'error': str(e)}
        countdown = 2 ** self.request.retries
        logger.warning(f"Reservation for appointment {appointment_id} failed transiently, retrying in {countdown}s: {e}")
        raise self.retry(exc=e, countdown=countdown, max_retries=max_retries)

    resources = summaries_by_type(
        {'id': r.resource_id, 'name': r.resource_name, 'type': r.resource_type}
        for r in reservations
    )
    services.publisher.publish(RESOURCE_RESERVED, resource_reserved_payload(appointment_id, resources))
    return {
        'success': True,
        'appointment_id': appointment_id,
        'reserved': len(reservations)
    }


@celery.task(name=CONSUMER_TASKS[RESOURCE_RESERVED])
def resource_reserved(payload):
    """
    Attach reserved resources to the appointment

    If the appointment left `scheduled` in the meantime (cancelled,
    rescheduled), its reservations are released instead.
    """
    try:
        appointment_id, resources = parse_resource_reserved(payload)
    except ValidationError as e:
        logger.error(f"Dropping malformed {RESOURCE_RESERVED} event {payload!r}: {e.detail}")
        return {'success': False, 'error': e.detail}

    services = get_services()
    if services.appointments.attach_resources(appointment_id, resources):
        logger.info(f"Resources attached to appointment {appointment_id}")
        return {'success': True, 'appointment_id': appointment_id}

    logger.warning(f"Appointment {appointment_id} is no longer scheduled; releasing its reservations")
    services.resources.release_appointment(appointment_id)
    return {'success': False, 'error': 'appointment no longer scheduled'}


@celery.task(name=CONSUMER_TASKS[RESERVATION_FAILED])
def reservation_failed(payload):
    """Move a still-scheduled appointment back to requested so it can be decided again"""
    try:
        appointment_id, reason = parse_reservation_failed(payload)
    except ValidationError as e:
        logger.error(f"Dropping malformed {RESERVATION_FAILED} event {payload!r}: {e.detail}")
        return {'success': False, 'error': e.detail}

    services = get_services()
    reverted = services.appointments.revert_to_requested(appointment_id)
    if reverted:
        logger.warning(f"Appointment {appointment_id} back to requested: {reason}")
    else:
        logger.info(f"Appointment {appointment_id} not scheduled any more, ignoring reservation failure: {reason}")
    return {'success': reverted, 'appointment_id': appointment_id}


# Topic -> consumer task, used by the event publisher
CONSUMERS = {
    APPOINTMENT_SCHEDULED: appointment_scheduled,
    RESOURCE_RESERVED: resource_reserved,
    RESERVATION_FAILED: reservation_failed,
}
