"""
Booking events
Topic names, payload builders/parsers and the Celery-backed publisher
"""
import logging

from kombu.exceptions import OperationalError as BrokerError

from clinic_booking.errors import DownstreamError, ValidationError
from clinic_booking.utils.identifiers import parse_optional_uuid, parse_uuid
from clinic_booking.utils.timeutils import isoformat, parse_datetime

logger = logging.getLogger(__name__)

APPOINTMENT_SCHEDULED = 'appointment-scheduled'
RESOURCE_RESERVED = 'resource-reserved'
RESERVATION_FAILED = 'reservation-failed'

TOPICS = (APPOINTMENT_SCHEDULED, RESOURCE_RESERVED, RESERVATION_FAILED)

# Topic -> name of the Celery task consuming it; each topic is its own queue
CONSUMER_TASKS = {
    APPOINTMENT_SCHEDULED: 'tasks.appointment_scheduled',
    RESOURCE_RESERVED: 'tasks.resource_reserved',
    RESERVATION_FAILED: 'tasks.reservation_failed',
}


# --- Payloads ---

def appointment_scheduled_payload(appointment_id, start, facility_id=None, equipment_id=None, medicine_id=None):
    payload = {
        'appointmentId': appointment_id,
        'appointmentDateTime': isoformat(start),
    }
    if facility_id:
        payload['facilityId'] = facility_id
    if equipment_id:
        payload['equipmentId'] = equipment_id
    if medicine_id:
        payload['medicineId'] = medicine_id
    return payload


def parse_appointment_scheduled(payload):
    """
    Validate an appointment-scheduled payload.

    Returns a dict with appointment_id, start (aware UTC) and the optional
    facility_id / equipment_id / medicine_id.

    Raises:
        ValidationError: missing or malformed field
    """
    if not isinstance(payload, dict):
        raise ValidationError(f'Event payload must be an object, got {type(payload).__name__}')
    return {
        'appointment_id': parse_uuid(payload.get('appointmentId'), 'appointmentId'),
        'start': parse_datetime(payload.get('appointmentDateTime'), 'appointmentDateTime'),
        'facility_id': parse_optional_uuid(payload.get('facilityId'), 'facilityId'),
        'equipment_id': parse_optional_uuid(payload.get('equipmentId'), 'equipmentId'),
        'medicine_id': parse_optional_uuid(payload.get('medicineId'), 'medicineId'),
    }


def resource_reserved_payload(appointment_id, resources):
    """`resources` maps facility / equipment / medicine to an {id, name, type} summary or None."""
    payload = {'appointmentId': appointment_id}
    for kind in ('equipment', 'facility', 'medicine'):
        if resources.get(kind):
            payload[kind] = resources[kind]
    return payload


def parse_resource_reserved(payload):
    if not isinstance(payload, dict):
        raise ValidationError(f'Event payload must be an object, got {type(payload).__name__}')
    appointment_id = parse_uuid(payload.get('appointmentId'), 'appointmentId')
    resources = {}
    for kind in ('equipment', 'facility', 'medicine'):
        summary = payload.get(kind)
        if summary is None:
            resources[kind] = None
            continue
        if not isinstance(summary, dict) or not summary.get('name'):
            raise ValidationError(f'Invalid resource summary for "{kind}": {summary!r}')
        resources[kind] = {
            'id': parse_uuid(summary.get('id'), f'{kind}.id'),
            'name': summary['name'],
            'type': summary.get('type', kind),
        }
    return appointment_id, resources


def reservation_failed_payload(appointment_id, reason):
    return {'appointmentId': appointment_id, 'reason': reason}


def parse_reservation_failed(payload):
    if not isinstance(payload, dict):
        raise ValidationError(f'Event payload must be an object, got {type(payload).__name__}')
    return parse_uuid(payload.get('appointmentId'), 'appointmentId'), payload.get('reason') or 'unknown'


# --- Publisher ---

class CeleryEventPublisher:
    """
    Publishes booking events as Celery tasks, one queue per topic.

    The consumer registry is imported lazily so the web process does not
    import the task modules at startup.
    """

    def publish(self, topic, payload):
        from tasks.booking_tasks import CONSUMERS

        consumer = CONSUMERS.get(topic)
        if consumer is None:
            raise ValueError(f'Unknown event topic: {topic}')
        try:
            consumer.apply_async(args=[payload], queue=topic)
        except BrokerError as e:
            logger.error("Failed to publish %s for appointment %s: %s", topic, payload.get('appointmentId'), e)
            raise DownstreamError(f'Event broker unavailable: {e}')
        logger.info("Published %s for appointment %s", topic, payload.get('appointmentId'))
