"""Tests for the resource catalog and conflict-checked reservations."""

import threading
import uuid
from datetime import timedelta

import pytest

from clinic_booking.errors import NotFoundError, ResourceUnavailableError, ValidationError
from clinic_booking.extensions import db as _db
from clinic_booking.models import Reservation
from clinic_booking.seeds import RESOURCE_CATALOG, seed_resources

from conftest import ANTIBIOTICS, MRI_MACHINE, NINE_AM, OPERATING_ROOM, TEN_AM, XRAY_MACHINE, make_app


def new_appointment_id():
    return str(uuid.uuid4())


@pytest.fixture
def store(services):
    return services.resources


class TestCatalog:

    def test_catalog_is_seeded(self, store):
        for entry in RESOURCE_CATALOG:
            resource = store.get_resource(entry["id"])
            assert resource.name == entry["name"]
            assert resource.type == entry["type"]

    def test_seeding_is_idempotent(self, store):
        assert seed_resources(store) == 0

    def test_create_resource(self, store):
        resource = store.create_resource('Ultrasound', 'equipment')
        assert store.get_resource(resource.id).name == 'Ultrasound'

    def test_create_resource_rejects_unknown_type(self, store):
        with pytest.raises(ValidationError):
            store.create_resource('Scalpel', 'tool')

    def test_unknown_resource(self, store):
        with pytest.raises(NotFoundError) as exc:
            store.get_resource(str(uuid.uuid4()))
        assert exc.value.code == 'resource.not-found'


class TestReserve:

    def test_reserve_creates_reservation(self, store):
        appointment_id = new_appointment_id()
        reservation = store.reserve(appointment_id, OPERATING_ROOM, 'Operating Room 1', 'facility', NINE_AM, TEN_AM)
        assert reservation.appointment_id == appointment_id
        assert store.reservations_for_appointment(appointment_id) == [reservation]

    def test_overlapping_reservation_of_other_appointment_conflicts(self, store):
        store.reserve(new_appointment_id(), OPERATING_ROOM, 'Operating Room 1', 'facility', NINE_AM, TEN_AM)

        with pytest.raises(ResourceUnavailableError) as exc:
            store.reserve(new_appointment_id(), OPERATING_ROOM, 'Operating Room 1', 'facility',
                          NINE_AM + timedelta(minutes=30), TEN_AM + timedelta(minutes=30))
        assert exc.value.code == 'resource.unavailable'
        assert exc.value.status == 409

    def test_back_to_back_reservations_are_allowed(self, store):
        store.reserve(new_appointment_id(), OPERATING_ROOM, 'Operating Room 1', 'facility', NINE_AM, TEN_AM)
        store.reserve(new_appointment_id(), OPERATING_ROOM, 'Operating Room 1', 'facility',
                      TEN_AM, TEN_AM + timedelta(hours=1))
        assert Reservation.query.filter_by(resource_id=OPERATING_ROOM).count() == 2

    def test_re_reserving_updates_in_place(self, store):
        appointment_id = new_appointment_id()
        first = store.reserve(appointment_id, OPERATING_ROOM, 'Operating Room 1', 'facility', NINE_AM, TEN_AM)
        second = store.reserve(appointment_id, OPERATING_ROOM, 'Operating Room 1', 'facility',
                               TEN_AM, TEN_AM + timedelta(hours=1))

        assert second.id == first.id
        assert Reservation.query.filter_by(appointment_id=appointment_id).count() == 1
        assert second.start_time == TEN_AM.replace(tzinfo=None)

    def test_unknown_resource_is_not_found(self, store):
        with pytest.raises(NotFoundError):
            store.reserve(new_appointment_id(), str(uuid.uuid4()), 'Nothing', 'facility', NINE_AM, TEN_AM)

    def test_empty_interval_is_rejected(self, store):
        with pytest.raises(ValidationError):
            store.reserve(new_appointment_id(), OPERATING_ROOM, 'Operating Room 1', 'facility', NINE_AM, NINE_AM)


class TestReserveForAppointment:

    def test_reserves_all_requested_resources(self, store):
        appointment_id = new_appointment_id()
        reservations = store.reserve_for_appointment(
            appointment_id, NINE_AM, facility_id=OPERATING_ROOM, equipment_id=MRI_MACHINE, medicine_id=ANTIBIOTICS,
        )

        assert {r.resource_id for r in reservations} == {OPERATING_ROOM, MRI_MACHINE, ANTIBIOTICS}
        assert all(r.end_time - r.start_time == timedelta(hours=1) for r in reservations)

    def test_member_failure_leaves_no_partial_reservations(self, store):
        # Equipment is claimed before the facility, so the MRI claim must be undone
        store.reserve(new_appointment_id(), OPERATING_ROOM, 'Operating Room 1', 'facility', NINE_AM, TEN_AM)
        appointment_id = new_appointment_id()

        with pytest.raises(ResourceUnavailableError):
            store.reserve_for_appointment(appointment_id, NINE_AM, facility_id=OPERATING_ROOM, equipment_id=MRI_MACHINE)

        assert store.reservations_for_appointment(appointment_id) == []

    def test_wrong_resource_type_is_rejected(self, store):
        appointment_id = new_appointment_id()
        with pytest.raises(ValidationError):
            store.reserve_for_appointment(appointment_id, NINE_AM, facility_id=MRI_MACHINE)
        assert store.reservations_for_appointment(appointment_id) == []

    def test_nothing_requested_reserves_nothing(self, store):
        assert store.reserve_for_appointment(new_appointment_id(), NINE_AM) == []


class TestAvailabilityAndRelease:

    def test_find_available_excludes_reserved_resources(self, store):
        store.reserve_for_appointment(new_appointment_id(), NINE_AM, facility_id=OPERATING_ROOM, equipment_id=XRAY_MACHINE)

        available = store.find_available_at(NINE_AM + timedelta(minutes=30))
        facility_ids = {r.id for r in available['facilities']}
        equipment_ids = {r.id for r in available['equipment']}

        assert OPERATING_ROOM not in facility_ids
        assert XRAY_MACHINE not in equipment_ids
        assert MRI_MACHINE in equipment_ids
        assert len(available['medicine']) == 2

    def test_reservation_end_is_exclusive(self, store):
        store.reserve_for_appointment(new_appointment_id(), NINE_AM, facility_id=OPERATING_ROOM)
        available = store.find_available_at(TEN_AM)
        assert OPERATING_ROOM in {r.id for r in available['facilities']}

    def test_release_frees_resources(self, store):
        appointment_id = new_appointment_id()
        store.reserve_for_appointment(appointment_id, NINE_AM, facility_id=OPERATING_ROOM, medicine_id=ANTIBIOTICS)

        assert store.release_appointment(appointment_id) == 2
        assert store.reservations_for_appointment(appointment_id) == []
        store.reserve_for_appointment(new_appointment_id(), NINE_AM, facility_id=OPERATING_ROOM)

    def test_resources_for_appointment(self, store):
        appointment_id = new_appointment_id()
        store.reserve_for_appointment(appointment_id, NINE_AM, facility_id=OPERATING_ROOM)
        assert store.resources_for_appointment(appointment_id) == [
            {'id': OPERATING_ROOM, 'name': 'Operating Room 1', 'type': 'facility'}
        ]


class TestConcurrentReservations:

    @pytest.fixture
    def shared_app(self, tmp_path):
        # A file database so each thread gets its own connection
        app = make_app(SQLALCHEMY_DATABASE_URI=f"sqlite:///{tmp_path / 'booking.db'}")
        yield app
        with app.app_context():
            _db.session.remove()
            _db.drop_all()

    def test_only_one_of_two_simultaneous_claims_wins(self, shared_app):
        store = shared_app.extensions['booking'].resources
        barrier = threading.Barrier(2)
        outcomes = []

        def claim(appointment_id):
            with shared_app.app_context():
                barrier.wait()
                try:
                    store.reserve_for_appointment(appointment_id, NINE_AM, facility_id=OPERATING_ROOM)
                    outcomes.append('reserved')
                except ResourceUnavailableError:
                    outcomes.append('conflict')
                finally:
                    _db.session.remove()

        threads = [threading.Thread(target=claim, args=(new_appointment_id(),)) for _ in range(2)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join(timeout=10)

        assert sorted(outcomes) == ['conflict', 'reserved']
        with shared_app.app_context():
            assert Reservation.query.filter_by(resource_id=OPERATING_ROOM).count() == 1
