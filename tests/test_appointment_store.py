"""Tests for appointment creation, doctor exclusivity and status transitions."""

from datetime import timedelta

import pytest

from clinic_booking.errors import DoctorUnavailableError, InvalidStateError, NotFoundError, ValidationError
from clinic_booking.models import Appointment

from conftest import NINE_AM, TEN_AM


@pytest.fixture
def store(services):
    return services.appointments


def active_at(doctor_id, instant):
    return Appointment.query.filter(
        Appointment.doctor_id == doctor_id,
        Appointment.appointment_date_time == instant.replace(tzinfo=None),
        Appointment.status.in_(('requested', 'scheduled')),
    ).count()


class TestCreate:

    def test_new_appointment_is_requested_for_one_hour(self, requested):
        assert requested.status == 'requested'
        assert requested.end_time - requested.appointment_date_time == timedelta(hours=1)
        assert requested.type == 'regular'

    def test_same_doctor_same_instant_is_rejected(self, store, requested, patient, doctor):
        with pytest.raises(DoctorUnavailableError) as exc:
            store.create(patient.id, doctor.id, NINE_AM)
        assert exc.value.code == 'appointment.doctor.unavailable'
        assert active_at(doctor.id, NINE_AM) == 1

    def test_other_doctor_same_instant_is_fine(self, store, requested, patient, other_doctor):
        assert store.create(patient.id, other_doctor.id, NINE_AM).status == 'requested'

    def test_unique_index_backs_the_precheck(self, store, requested, patient, doctor, monkeypatch):
        # Simulate a concurrent booking that passed the early check
        monkeypatch.setattr(store, 'is_doctor_free', lambda *args, **kwargs: True)
        with pytest.raises(DoctorUnavailableError):
            store.create(patient.id, doctor.id, NINE_AM)
        assert active_at(doctor.id, NINE_AM) == 1

    def test_slot_frees_up_after_cancel(self, store, requested, patient, doctor):
        store.cancel(requested.id, 'patient', 'changed plans')
        assert store.create(patient.id, doctor.id, NINE_AM).status == 'requested'

    def test_invalid_type(self, store, patient, doctor):
        with pytest.raises(ValidationError):
            store.create(patient.id, doctor.id, NINE_AM, appointment_type='emergency')

    def test_unknown_appointment(self, store):
        with pytest.raises(NotFoundError):
            store.get('00000000-0000-0000-0000-000000000000')


class TestTransitions:

    def test_schedule_attaches_resources(self, store, requested):
        appointment = store.schedule(requested.id, {
            'facility': {'id': 'f1', 'name': 'Operating Room 1', 'type': 'facility'},
        })
        assert appointment.status == 'scheduled'
        assert appointment.resource_summaries()['facilities'] == [
            {'id': 'f1', 'name': 'Operating Room 1', 'type': 'facility'}
        ]
        assert appointment.resource_summaries()['equipment'] == []

    def test_schedule_only_from_requested(self, store, requested):
        store.deny(requested.id, 'fully booked')
        with pytest.raises(InvalidStateError):
            store.schedule(requested.id)

    def test_cancel_records_who_and_why(self, store, requested):
        appointment, changed = store.cancel(requested.id, 'doctor', 'ill')
        assert changed
        assert appointment.status == 'cancelled'
        assert appointment.cancelled_by == 'doctor'
        assert appointment.cancellation_reason == 'ill'

    def test_cancel_twice_is_a_no_op(self, store, requested):
        store.cancel(requested.id, 'doctor', 'ill')
        appointment, changed = store.cancel(requested.id, 'patient', 'other reason')
        assert not changed
        assert appointment.cancelled_by == 'doctor'
        assert appointment.cancellation_reason == 'ill'

    def test_cannot_cancel_denied(self, store, requested):
        store.deny(requested.id, 'no slots')
        with pytest.raises(InvalidStateError):
            store.cancel(requested.id, 'patient', 'whatever')

    def test_revert_to_requested_only_when_scheduled(self, store, requested):
        assert not store.revert_to_requested(requested.id)
        store.schedule(requested.id, {'medicine': {'id': 'm1', 'name': 'Painkillers', 'type': 'medicine'}})
        assert store.revert_to_requested(requested.id)
        appointment = store.get(requested.id)
        assert appointment.status == 'requested'
        assert appointment.medicine_id is None

    def test_attach_resources_requires_scheduled(self, store, requested):
        resources = {'equipment': {'id': 'e1', 'name': 'MRI Machine', 'type': 'equipment'}}
        assert not store.attach_resources(requested.id, resources)
        store.schedule(requested.id)
        assert store.attach_resources(requested.id, resources)
        assert store.get(requested.id).equipment_name == 'MRI Machine'


class TestReschedule:

    def test_reschedule_resets_to_requested_and_clears_resources(self, store, requested):
        store.schedule(requested.id, {'facility': {'id': 'f1', 'name': 'Room', 'type': 'facility'}})

        appointment = store.reschedule(requested.id, TEN_AM)

        assert appointment.status == 'requested'
        assert appointment.appointment_date_time == TEN_AM.replace(tzinfo=None)
        assert appointment.end_time == (TEN_AM + timedelta(hours=1)).replace(tzinfo=None)
        assert appointment.facility_id is None

    def test_reschedule_to_same_instant_is_allowed(self, store, requested):
        assert store.reschedule(requested.id, NINE_AM).status == 'requested'

    def test_reschedule_into_taken_slot(self, store, requested, patient, doctor):
        store.create(patient.id, doctor.id, TEN_AM)
        with pytest.raises(DoctorUnavailableError):
            store.reschedule(requested.id, TEN_AM)
        assert store.get(requested.id).appointment_date_time == NINE_AM.replace(tzinfo=None)

    def test_reschedule_cancelled(self, store, requested):
        store.cancel(requested.id, 'patient', None)
        with pytest.raises(InvalidStateError):
            store.reschedule(requested.id, TEN_AM)


class TestListings:

    def test_list_for_doctor_with_filters(self, store, requested, patient, doctor):
        later = store.create(patient.id, doctor.id, TEN_AM)
        store.deny(later.id, 'no')

        assert [a.id for a in store.list_for_doctor(doctor.id)] == [requested.id, later.id]
        assert [a.id for a in store.list_for_doctor(doctor.id, status='denied')] == [later.id]
        assert [a.id for a in store.list_for_doctor(doctor.id, start=TEN_AM)] == [later.id]
        assert [a.id for a in store.list_for_doctor(doctor.id, end=NINE_AM)] == [requested.id]

    def test_list_for_patient(self, store, requested, patient):
        assert [a.id for a in store.list_for_patient(patient.id)] == [requested.id]
