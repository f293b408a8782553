"""Shared test fixtures for the booking service tests."""

from datetime import datetime, timezone

import pytest

from clinic_booking import create_app
from clinic_booking.extensions import db as _db
from clinic_booking.seeds import RESOURCE_CATALOG

# Seeded catalog ids
OPERATING_ROOM = RESOURCE_CATALOG[0]["id"]
CONSULTATION_ROOM = RESOURCE_CATALOG[1]["id"]
MRI_MACHINE = RESOURCE_CATALOG[2]["id"]
XRAY_MACHINE = RESOURCE_CATALOG[3]["id"]
PAINKILLERS = RESOURCE_CATALOG[4]["id"]
ANTIBIOTICS = RESOURCE_CATALOG[5]["id"]

NINE_AM = datetime(2025, 1, 1, 9, 0, tzinfo=timezone.utc)
TEN_AM = datetime(2025, 1, 1, 10, 0, tzinfo=timezone.utc)


def make_app(**overrides):
    """Testing app with a fresh in-memory database and the seeded catalog."""
    return create_app('testing', config_overrides=overrides)


@pytest.fixture
def app():
    app = make_app()
    with app.app_context():
        yield app
        _db.session.remove()
        _db.drop_all()


@pytest.fixture
def event_app():
    app = make_app(BOOKING_STRATEGY='event')
    with app.app_context():
        yield app
        _db.session.remove()
        _db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def services(app):
    return app.extensions['booking']


@pytest.fixture
def doctor(services):
    return services.directory.register_doctor({
        'firstName': 'Gregory',
        'lastName': 'House',
        'email': 'house@clinic.test',
        'specialization': 'Diagnostics',
    })


@pytest.fixture
def other_doctor(services):
    return services.directory.register_doctor({
        'firstName': 'Lisa',
        'lastName': 'Cuddy',
        'email': 'cuddy@clinic.test',
    })


@pytest.fixture
def patient(services):
    return services.directory.register_patient({
        'firstName': 'John',
        'lastName': 'Doe',
        'email': 'john.doe@clinic.test',
    })


@pytest.fixture
def requested(services, doctor, patient):
    """A requested appointment with `doctor` at 2025-01-01T09:00Z."""
    return services.appointments.create(patient.id, doctor.id, NINE_AM)
