from datetime import datetime, time, timezone

from flask import Blueprint, jsonify, request

from clinic_booking.coordinator import get_services
from clinic_booking.errors import ValidationError
from clinic_booking.models import APPOINTMENT_STATUSES
from clinic_booking.utils.identifiers import parse_uuid
from clinic_booking.utils.timeutils import parse_datetime
from .common import json_body

doctor_bp = Blueprint('doctor', __name__, url_prefix='/doctors')
patient_bp = Blueprint('patient', __name__, url_prefix='/patients')


def _appointment_filters():
    """
    Query params:
        from, to: RFC 3339 bounds on the start time (inclusive)
        date: YYYY-MM-DD, shorthand for the whole UTC day
        status: requested | scheduled | denied | cancelled
    """
    start = end = None
    filter_date = request.args.get('date', type=str)
    if filter_date:
        try:
            day = datetime.strptime(filter_date, '%Y-%m-%d').date()
        except ValueError:
            raise ValidationError('Invalid date format. Use YYYY-MM-DD')
        start = datetime.combine(day, time.min, tzinfo=timezone.utc)
        end = datetime.combine(day, time.max, tzinfo=timezone.utc)

    if request.args.get('from'):
        start = parse_datetime(request.args['from'], 'from')
    if request.args.get('to'):
        end = parse_datetime(request.args['to'], 'to')
    if start and end and end < start:
        raise ValidationError('"to" must not be before "from"')

    status = request.args.get('status', type=str)
    if status and status not in APPOINTMENT_STATUSES:
        raise ValidationError(f'Invalid status. Valid values: {", ".join(APPOINTMENT_STATUSES)}')
    return start, end, status


# --- Doctors ---

@doctor_bp.route('', methods=['POST'])
def register_doctor():
    """Body: {firstName, lastName, email, specialization?}"""
    doctor = get_services().directory.register_doctor(json_body())
    return jsonify({
        'success': True,
        'message': 'Doctor registered',
        'data': doctor.to_dict()
    }), 201


@doctor_bp.route('', methods=['GET'])
def list_doctors():
    doctors = get_services().directory.list_doctors(request.args.get('specialization', type=str))
    return jsonify({
        'success': True,
        'data': [d.to_dict() for d in doctors]
    }), 200


@doctor_bp.route('/<doctor_id>', methods=['GET'])
def get_doctor(doctor_id):
    doctor = get_services().directory.get_doctor(parse_uuid(doctor_id, 'doctorId'))
    return jsonify({'success': True, 'data': doctor.to_dict()}), 200


@doctor_bp.route('/<doctor_id>/appointments', methods=['GET'])
def doctor_appointments(doctor_id):
    services = get_services()
    doctor = services.directory.get_doctor(parse_uuid(doctor_id, 'doctorId'))
    start, end, status = _appointment_filters()

    appointments = services.appointments.list_for_doctor(doctor.id, start, end, status)
    return jsonify({
        'success': True,
        'data': [a.to_dict() for a in appointments]
    }), 200


# --- Patients ---

@patient_bp.route('', methods=['POST'])
def register_patient():
    """Body: {firstName, lastName, email}"""
    patient = get_services().directory.register_patient(json_body())
    return jsonify({
        'success': True,
        'message': 'Patient registered',
        'data': patient.to_dict()
    }), 201


@patient_bp.route('/<patient_id>', methods=['GET'])
def get_patient(patient_id):
    patient = get_services().directory.get_patient(parse_uuid(patient_id, 'patientId'))
    return jsonify({'success': True, 'data': patient.to_dict()}), 200


@patient_bp.route('/<patient_id>/appointments', methods=['GET'])
def patient_appointments(patient_id):
    services = get_services()
    patient = services.directory.get_patient(parse_uuid(patient_id, 'patientId'))
    start, end, status = _appointment_filters()

    appointments = services.appointments.list_for_patient(patient.id, start, end, status)
    return jsonify({
        'success': True,
        'data': [a.to_dict() for a in appointments]
    }), 200
