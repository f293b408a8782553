"""HTTP tests for the booking API through the Flask test client."""

import uuid

import pytest

from conftest import MRI_MACHINE, OPERATING_ROOM, XRAY_MACHINE


def register(client, kind, first, last, email, **extra):
    body = {'firstName': first, 'lastName': last, 'email': email}
    body.update(extra)
    resp = client.post(f'/{kind}', json=body)
    assert resp.status_code == 201, resp.get_json()
    return resp.get_json()['data']['id']


@pytest.fixture
def ids(client):
    return {
        'doctor': register(client, 'doctors', 'Gregory', 'House', 'house@clinic.test', specialization='Diagnostics'),
        'patient': register(client, 'patients', 'John', 'Doe', 'john@clinic.test'),
        'other_patient': register(client, 'patients', 'Mary', 'Major', 'mary@clinic.test'),
    }


def request_appointment(client, patient_id, doctor_id, when='2025-01-01T09:00:00Z'):
    return client.post('/appointments', json={
        'patientId': patient_id,
        'doctorId': doctor_id,
        'appointmentDateTime': when,
        'reason': 'check-up',
    })


class TestBookingScenario:

    def test_request_accept_and_conflict(self, client, ids):
        resp = request_appointment(client, ids['patient'], ids['doctor'])
        assert resp.status_code == 201
        appointment = resp.get_json()['data']
        assert appointment['status'] == 'requested'
        assert appointment['appointmentDateTime'] == '2025-01-01T09:00:00Z'
        assert appointment['endTime'] == '2025-01-01T10:00:00Z'

        # Same doctor, same instant
        resp = request_appointment(client, ids['other_patient'], ids['doctor'])
        assert resp.status_code == 409
        body = resp.get_json()
        assert body['success'] is False
        assert body['error']['code'] == 'appointment.doctor.unavailable'

        resp = client.put(f"/appointments/{appointment['id']}/decision", json={
            'action': 'accept',
            'facilityId': OPERATING_ROOM,
        })
        assert resp.status_code == 200
        data = resp.get_json()['data']
        assert data['status'] == 'scheduled'
        assert data['facilities'] == [{'id': OPERATING_ROOM, 'name': 'Operating Room 1', 'type': 'facility'}]
        assert data['equipment'] == []
        assert data['medicines'] == []

        # The room is taken for that hour
        resp = client.post(f'/resources/{uuid.uuid4()}/reservations', json={
            'start': '2025-01-01T09:30:00Z',
            'facilityId': OPERATING_ROOM,
        })
        assert resp.status_code == 409
        assert resp.get_json()['error']['code'] == 'resource.unavailable'

        resp = client.get(f"/appointments/{appointment['id']}")
        assert resp.status_code == 200
        assert resp.get_json()['data']['facilities'][0]['id'] == OPERATING_ROOM

    def test_reject_and_cancel(self, client, ids):
        appointment_id = request_appointment(client, ids['patient'], ids['doctor']).get_json()['data']['id']

        resp = client.put(f'/appointments/{appointment_id}/decision', json={'action': 'reject'})
        assert resp.status_code == 400
        assert resp.get_json()['error']['code'] == 'request.validation.failed'

        resp = client.put(f'/appointments/{appointment_id}/decision', json={'action': 'reject', 'reason': 'away'})
        assert resp.status_code == 200
        assert resp.get_json()['data']['denialReason'] == 'away'

        resp = client.put(f'/appointments/{appointment_id}/decision', json={'action': 'accept'})
        assert resp.status_code == 409
        assert resp.get_json()['error']['code'] == 'appointment.invalid.state'

    @pytest.mark.parametrize('path, method, body', [
        ('decision', 'put', {'action': 'reject', 'reason': 42}),
        ('decision', 'put', {'action': 'accept', 'reason': ['busy']}),
        ('cancel', 'post', {'by': 'patient', 'reason': {'text': 'ill'}}),
    ])
    def test_non_string_reason_is_rejected(self, client, ids, path, method, body):
        appointment_id = request_appointment(client, ids['patient'], ids['doctor']).get_json()['data']['id']

        resp = getattr(client, method)(f'/appointments/{appointment_id}/{path}', json=body)

        assert resp.status_code == 400
        assert resp.get_json()['error']['code'] == 'request.validation.failed'
        assert client.get(f'/appointments/{appointment_id}').get_json()['data']['status'] == 'requested'

    def test_create_with_non_string_reason(self, client, ids):
        resp = client.post('/appointments', json={
            'patientId': ids['patient'],
            'doctorId': ids['doctor'],
            'appointmentDateTime': '2025-01-01T09:00:00Z',
            'reason': 7,
        })
        assert resp.status_code == 400

    def test_create_without_utc_offset(self, client, ids):
        resp = request_appointment(client, ids['patient'], ids['doctor'], when='2025-01-01T09:00:00')
        assert resp.status_code == 400
        assert 'no UTC offset' in resp.get_json()['error']['detail']

    def test_cancel_is_idempotent(self, client, ids):
        appointment_id = request_appointment(client, ids['patient'], ids['doctor']).get_json()['data']['id']
        client.put(f'/appointments/{appointment_id}/decision', json={'action': 'accept', 'equipmentId': MRI_MACHINE})

        for _ in range(2):
            resp = client.post(f'/appointments/{appointment_id}/cancel', json={'by': 'patient', 'reason': 'better'})
            assert resp.status_code == 204

        data = client.get(f'/appointments/{appointment_id}').get_json()['data']
        assert data['status'] == 'cancelled'
        assert data['cancelledBy'] == 'patient'
        assert client.get(f'/resources/{appointment_id}/reservations').get_json()['data'] == []

    def test_reschedule(self, client, ids):
        appointment_id = request_appointment(client, ids['patient'], ids['doctor']).get_json()['data']['id']

        resp = client.put(f'/appointments/{appointment_id}/reschedule',
                          json={'newAppointmentDateTime': '2025-01-02T14:00:00+02:00'})

        assert resp.status_code == 200
        assert resp.get_json()['data']['appointmentDateTime'] == '2025-01-02T12:00:00Z'

    def test_create_with_unknown_doctor(self, client, ids):
        resp = request_appointment(client, ids['patient'], str(uuid.uuid4()))
        assert resp.status_code == 404
        assert resp.get_json()['error']['code'] == 'doctor.not.found'

    @pytest.mark.parametrize('body', [
        {'doctorId': 'not-a-uuid', 'appointmentDateTime': '2025-01-01T09:00:00Z'},
        {'appointmentDateTime': 'next tuesday'},
    ])
    def test_create_validation(self, client, ids, body):
        body = dict({'patientId': ids['patient'], 'doctorId': ids['doctor']}, **body)
        resp = client.post('/appointments', json=body)
        assert resp.status_code == 400
        assert resp.get_json()['success'] is False

    def test_non_json_body(self, client):
        resp = client.post('/appointments', data='plain text', content_type='text/plain')
        assert resp.status_code == 400

    def test_unknown_appointment(self, client):
        resp = client.get(f'/appointments/{uuid.uuid4()}')
        assert resp.status_code == 404
        assert resp.get_json()['error']['code'] == 'appointment.not.found'


class TestUsers:

    def test_email_must_be_unique_across_roles(self, client, ids):
        resp = client.post('/patients', json={'firstName': 'Greg', 'lastName': 'H', 'email': 'HOUSE@clinic.test'})
        assert resp.status_code == 409
        assert resp.get_json()['error']['code'] == 'user.email.conflict'

    def test_missing_fields(self, client):
        resp = client.post('/doctors', json={'firstName': 'Only'})
        assert resp.status_code == 400

    def test_list_doctors_by_specialization(self, client, ids):
        register(client, 'doctors', 'Lisa', 'Cuddy', 'cuddy@clinic.test', specialization='Endocrinology')

        doctors = client.get('/doctors?specialization=Diagnostics').get_json()['data']
        assert [d['id'] for d in doctors] == [ids['doctor']]
        assert len(client.get('/doctors').get_json()['data']) == 2

    def test_get_patient(self, client, ids):
        data = client.get(f"/patients/{ids['patient']}").get_json()['data']
        assert data['email'] == 'john@clinic.test'
        assert data['role'] == 'patient'

    def test_appointment_listings(self, client, ids):
        request_appointment(client, ids['patient'], ids['doctor'], '2025-01-01T09:00:00Z')
        request_appointment(client, ids['patient'], ids['doctor'], '2025-01-02T09:00:00Z')

        all_of_them = client.get(f"/doctors/{ids['doctor']}/appointments").get_json()['data']
        assert len(all_of_them) == 2

        one_day = client.get(f"/doctors/{ids['doctor']}/appointments?date=2025-01-02").get_json()['data']
        assert [a['appointmentDateTime'] for a in one_day] == ['2025-01-02T09:00:00Z']

        mine = client.get(f"/patients/{ids['patient']}/appointments?status=requested").get_json()['data']
        assert len(mine) == 2

        resp = client.get(f"/patients/{ids['patient']}/appointments?status=lost")
        assert resp.status_code == 400

        resp = client.get(f"/doctors/{ids['doctor']}/appointments?date=01-02-2025")
        assert resp.status_code == 400


class TestResources:

    def test_available_at(self, client):
        client.post(f'/resources/{uuid.uuid4()}/reservations', json={
            'start': '2025-01-01T09:00:00Z',
            'equipmentId': XRAY_MACHINE,
        })

        data = client.get('/resources/available?dateTime=2025-01-01T09:15:00Z').get_json()['data']

        equipment = {r['id'] for r in data['equipment']}
        assert XRAY_MACHINE not in equipment
        assert MRI_MACHINE in equipment

    def test_available_requires_datetime(self, client):
        assert client.get('/resources/available').status_code == 400

    def test_create_and_get_resource(self, client):
        resp = client.post('/resources', json={'name': 'Ultrasound', 'type': 'equipment'})
        assert resp.status_code == 201
        resource_id = resp.get_json()['data']['id']

        assert client.get(f'/resources/{resource_id}').get_json()['data']['name'] == 'Ultrasound'

    def test_reserve_unknown_resource(self, client):
        resp = client.post(f'/resources/{uuid.uuid4()}/reservations', json={
            'start': '2025-01-01T09:00:00Z',
            'facilityId': str(uuid.uuid4()),
        })
        assert resp.status_code == 404
        assert resp.get_json()['error']['code'] == 'resource.not-found'

    def test_release_is_idempotent(self, client):
        appointment_id = str(uuid.uuid4())
        assert client.delete(f'/resources/{appointment_id}/reservations').status_code == 204
        assert client.delete(f'/resources/{appointment_id}/reservations').status_code == 204


class TestHealth:

    def test_health(self, client):
        data = client.get('/health').get_json()
        assert data['status'] == 'healthy'
        assert data['strategy'] == 'synchronous'

    def test_ready(self, client):
        data = client.get('/health/ready').get_json()
        assert data['database'] == 'connected'
        assert data['resources'] == 6

    def test_unknown_route_is_json(self, client):
        resp = client.get('/nowhere')
        assert resp.status_code == 404
        assert resp.get_json()['error']['code'] == 'http.404'
