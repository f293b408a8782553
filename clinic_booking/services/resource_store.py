"""
Resource Store
Resource catalog, reservations and conflict-checked reservation writes
"""
import logging
from datetime import datetime, timedelta
from typing import Dict, List, Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from clinic_booking.errors import (
    InternalError,
    NotFoundError,
    ResourceUnavailableError,
    ValidationError,
)
from clinic_booking.models import Resource, Reservation, RESOURCE_TYPES
from clinic_booking.utils.identifiers import new_id
from clinic_booking.utils.intervals import find_conflicts
from clinic_booking.utils.locks import KeyedLock
from clinic_booking.utils.timeutils import isoformat, to_db

logger = logging.getLogger(__name__)

RESOURCE_NOT_FOUND_CODE = 'resource.not-found'

# Payload field -> resource type, in the order reservations are made
RESOURCE_FIELDS = (
    ('equipment', 'equipment'),
    ('facility', 'facility'),
    ('medicine', 'medicine'),
)


class ResourceStore:
    """
    Owns resources and their reservations.

    Every reservation write for a resource runs with that resource locked:
    an in-process lock per resource id plus SELECT ... FOR UPDATE on the
    resource row, so the conflict check and the upsert form one claim.
    """

    def __init__(self, db, appointment_duration: timedelta = timedelta(hours=1), locks: Optional[KeyedLock] = None):
        self.db = db
        self.appointment_duration = appointment_duration
        self.locks = locks or KeyedLock()

    # --- Catalog ---

    def create_resource(self, name: str, resource_type: str) -> Resource:
        if not name or not str(name).strip():
            raise ValidationError('Field "name" is required')
        if resource_type not in RESOURCE_TYPES:
            raise ValidationError(f'Invalid resource type. Valid values: {", ".join(RESOURCE_TYPES)}')

        resource = Resource(id=new_id(), name=name.strip(), type=resource_type)
        try:
            self.db.session.add(resource)
            self.db.session.commit()
        except SQLAlchemyError as e:
            self.db.session.rollback()
            raise InternalError(f'Failed to create resource: {e}')
        logger.info("Created resource %s (%s) %s", resource.name, resource.type, resource.id)
        return resource

    def seed_resources(self, entries) -> int:
        """Insert {id, name, type} entries whose id is not present yet. Returns how many were added."""
        added = 0
        try:
            for entry in entries:
                if self.db.session.get(Resource, entry['id']) is None:
                    self.db.session.add(Resource(id=entry['id'], name=entry['name'], type=entry['type']))
                    added += 1
            self.db.session.commit()
        except SQLAlchemyError as e:
            self.db.session.rollback()
            raise InternalError(f'Failed to seed resources: {e}')
        return added

    def get_resource(self, resource_id: str) -> Resource:
        resource = self.db.session.get(Resource, resource_id)
        if resource is None:
            raise NotFoundError(f'Resource {resource_id} not found', code=RESOURCE_NOT_FOUND_CODE)
        return resource

    def find_available_at(self, instant: datetime) -> Dict[str, List[Resource]]:
        """
        Resources with no reservation covering `instant` (start <= instant < end),
        grouped by type.
        """
        at = to_db(instant)
        busy = self.db.select(Reservation.resource_id).where(
            Reservation.start_time <= at,
            Reservation.end_time > at,
        )
        resources = Resource.query.filter(Resource.id.not_in(busy)).order_by(Resource.name).all()

        available = {'facilities': [], 'equipment': [], 'medicine': []}
        for resource in resources:
            if resource.type == 'facility':
                available['facilities'].append(resource)
            elif resource.type == 'equipment':
                available['equipment'].append(resource)
            elif resource.type == 'medicine':
                available['medicine'].append(resource)
            else:
                logger.warning("Found resource with unknown type: %s %s", resource.id, resource.type)
        return available

    # --- Reservations ---

    def reserve(
        self,
        appointment_id: str,
        resource_id: str,
        resource_name: str,
        resource_type: str,
        start: datetime,
        end: datetime,
    ) -> Reservation:
        """
        Claim `resource_id` for `appointment_id` during [start, end).

        Re-reserving for the same appointment updates its own reservation.

        Raises:
            NotFoundError: unknown resource
            ValidationError: end is not after start
            ResourceUnavailableError: another appointment holds an overlapping slot
        """
        with self.locks.hold(resource_id):
            try:
                reservation = self._claim(appointment_id, resource_id, resource_name, resource_type, start, end)
                self.db.session.commit()
            except IntegrityError as e:
                self.db.session.rollback()
                raise ResourceUnavailableError(f'Concurrent reservation of resource {resource_id}: {e.orig}')
            except SQLAlchemyError as e:
                self.db.session.rollback()
                raise InternalError(f'Reservation write failed: {e}')
            except Exception:
                self.db.session.rollback()
                raise
        return reservation

    def reserve_for_appointment(
        self,
        appointment_id: str,
        start: datetime,
        facility_id: Optional[str] = None,
        equipment_id: Optional[str] = None,
        medicine_id: Optional[str] = None,
    ) -> List[Reservation]:
        """
        Reserve up to one facility, one piece of equipment and one medicine for
        an appointment as a single unit.

        All reservations are written in one transaction. If any member fails,
        the members already written by this call are rolled back before the
        error is raised, so callers never see a partial success.
        """
        requested = {'facility': facility_id, 'equipment': equipment_id, 'medicine': medicine_id}
        end = start + self.appointment_duration
        ids = [rid for rid in requested.values() if rid]

        reservations = []
        with self.locks.hold_many(ids):
            try:
                for field, expected_type in RESOURCE_FIELDS:
                    resource_id = requested[field]
                    if not resource_id:
                        continue
                    resource = self.get_resource(resource_id)
                    if resource.type != expected_type:
                        raise ValidationError(f'Resource {resource_id} is not of type {expected_type}')
                    reservations.append(self._claim(
                        appointment_id, resource.id, resource.name, resource.type, start, end,
                    ))
                self.db.session.commit()
            except IntegrityError as e:
                self.db.session.rollback()
                logger.warning("Rolled back reservations for appointment %s: %s", appointment_id, e.orig)
                raise ResourceUnavailableError(f'Concurrent reservation for appointment {appointment_id}')
            except SQLAlchemyError as e:
                self.db.session.rollback()
                raise InternalError(f'Reservation write failed: {e}')
            except Exception as e:
                self.db.session.rollback()
                logger.warning(
                    "Rolled back %d reservation(s) for appointment %s: %s",
                    len(reservations), appointment_id, e,
                )
                raise

        logger.info("Reserved %d resource(s) for appointment %s", len(reservations), appointment_id)
        return reservations

    def _claim(self, appointment_id, resource_id, resource_name, resource_type, start, end) -> Reservation:
        """Conflict check and upsert inside the caller's transaction. Caller holds the resource lock."""
        locked = self.db.session.query(Resource).filter(Resource.id == resource_id).with_for_update().first()
        if locked is None:
            raise NotFoundError(f'Resource {resource_id} not found', code=RESOURCE_NOT_FOUND_CODE)

        start_db, end_db = to_db(start), to_db(end)
        if end_db <= start_db:
            raise ValidationError('Reservation end time must be after its start time')

        candidates = Reservation.query.filter(
            Reservation.resource_id == resource_id,
            Reservation.start_time < end_db,
            Reservation.end_time > start_db,
        ).all()
        if find_conflicts(candidates, resource_id, appointment_id, start_db, end_db):
            raise ResourceUnavailableError(
                f'resource is unavailable during the requested time slot: resourceId {resource_id} '
                f'from {isoformat(start_db)} to {isoformat(end_db)} (conflict with another appointment)'
            )

        reservation = Reservation.query.filter_by(appointment_id=appointment_id, resource_id=resource_id).first()
        if reservation is None:
            reservation = Reservation(
                id=new_id(),
                appointment_id=appointment_id,
                resource_id=resource_id,
            )
            self.db.session.add(reservation)
        reservation.resource_name = resource_name
        reservation.resource_type = resource_type
        reservation.start_time = start_db
        reservation.end_time = end_db
        self.db.session.flush()
        return reservation

    def reservations_for_appointment(self, appointment_id: str) -> List[Reservation]:
        return Reservation.query.filter_by(appointment_id=appointment_id).order_by(Reservation.resource_type).all()

    def resources_for_appointment(self, appointment_id: str) -> List[dict]:
        """Distinct {id, name, type} summaries of the resources an appointment holds."""
        seen = {}
        for reservation in self.reservations_for_appointment(appointment_id):
            seen[reservation.resource_id] = {
                'id': reservation.resource_id,
                'name': reservation.resource_name,
                'type': reservation.resource_type,
            }
        return list(seen.values())

    def release_appointment(self, appointment_id: str) -> int:
        """Delete every reservation owned by the appointment. Returns the number removed."""
        try:
            removed = Reservation.query.filter_by(appointment_id=appointment_id).delete(synchronize_session=False)
            self.db.session.commit()
        except SQLAlchemyError as e:
            self.db.session.rollback()
            raise InternalError(f'Failed to release reservations of appointment {appointment_id}: {e}')
        if removed:
            logger.info("Released %d reservation(s) of appointment %s", removed, appointment_id)
        return removed
