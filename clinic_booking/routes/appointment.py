from flask import Blueprint, jsonify

from clinic_booking.coordinator import Decision, get_services
from clinic_booking.utils.identifiers import parse_uuid
from clinic_booking.utils.timeutils import parse_datetime
from .common import json_body, optional_text

appointment_bp = Blueprint('appointment', __name__, url_prefix='/appointments')


@appointment_bp.route('', methods=['POST'])
def create_appointment():
    """
    Request an appointment.
    Body: {patientId, doctorId, appointmentDateTime, type?, reason?, conditionId?}
    """
    data = json_body()
    services = get_services()

    patient_id = parse_uuid(data.get('patientId'), 'patientId')
    doctor_id = parse_uuid(data.get('doctorId'), 'doctorId')
    start = parse_datetime(data.get('appointmentDateTime'), 'appointmentDateTime')
    condition_id = data.get('conditionId')
    if condition_id:
        condition_id = parse_uuid(condition_id, 'conditionId')

    # Unknown doctor / patient -> 404
    services.directory.get_doctor(doctor_id)
    services.directory.get_patient(patient_id)

    appointment = services.appointments.create(
        patient_id=patient_id,
        doctor_id=doctor_id,
        start=start,
        appointment_type=optional_text(data, 'type') or 'regular',
        reason=optional_text(data, 'reason'),
        condition_id=condition_id,
    )
    return jsonify({
        'success': True,
        'message': 'Appointment requested',
        'data': appointment.to_dict()
    }), 201


@appointment_bp.route('/<appointment_id>', methods=['GET'])
def get_appointment(appointment_id):
    appointment_id = parse_uuid(appointment_id, 'appointmentId')
    return jsonify({
        'success': True,
        'data': get_services().coordinator.view(appointment_id)
    }), 200


@appointment_bp.route('/<appointment_id>/decision', methods=['PUT'])
def decide_appointment(appointment_id):
    """
    Accept or reject a requested appointment.
    Body: {action: accept|reject, reason?, facilityId?, equipmentId?, medicineId?}
    """
    appointment_id = parse_uuid(appointment_id, 'appointmentId')
    decision = Decision.from_payload(json_body())
    coordinator = get_services().coordinator

    coordinator.decide(appointment_id, decision)
    return jsonify({
        'success': True,
        'data': coordinator.view(appointment_id)
    }), 200


@appointment_bp.route('/<appointment_id>/reschedule', methods=['PUT'])
def reschedule_appointment(appointment_id):
    """Body: {newAppointmentDateTime}"""
    appointment_id = parse_uuid(appointment_id, 'appointmentId')
    data = json_body()
    new_start = parse_datetime(data.get('newAppointmentDateTime'), 'newAppointmentDateTime')

    appointment = get_services().coordinator.reschedule(appointment_id, new_start)
    return jsonify({
        'success': True,
        'message': 'Appointment rescheduled',
        'data': appointment.to_dict()
    }), 200


@appointment_bp.route('/<appointment_id>/cancel', methods=['POST'])
def cancel_appointment(appointment_id):
    """Body: {by: patient|doctor, reason}"""
    appointment_id = parse_uuid(appointment_id, 'appointmentId')
    data = json_body()

    get_services().coordinator.cancel(appointment_id, data.get('by'), optional_text(data, 'reason'))
    return '', 204
