from flask import Blueprint, jsonify, request

from clinic_booking.coordinator import get_services
from clinic_booking.errors import ValidationError
from clinic_booking.utils.identifiers import parse_optional_uuid, parse_uuid
from clinic_booking.utils.timeutils import parse_datetime
from .common import json_body

resource_bp = Blueprint('resource', __name__, url_prefix='/resources')


@resource_bp.route('', methods=['POST'])
def create_resource():
    """Body: {name, type: facility|equipment|medicine}"""
    data = json_body()
    resource = get_services().resources.create_resource(data.get('name'), data.get('type'))
    return jsonify({
        'success': True,
        'message': 'Resource created',
        'data': resource.to_dict()
    }), 201


@resource_bp.route('/available', methods=['GET'])
def available_resources():
    """Resources free at ?dateTime=, grouped by type."""
    if not request.args.get('dateTime'):
        raise ValidationError('Query parameter "dateTime" is required')
    instant = parse_datetime(request.args['dateTime'], 'dateTime')

    available = get_services().resources.find_available_at(instant)
    return jsonify({
        'success': True,
        'data': {kind: [r.to_dict() for r in resources] for kind, resources in available.items()}
    }), 200


@resource_bp.route('/<resource_id>', methods=['GET'])
def get_resource(resource_id):
    resource = get_services().resources.get_resource(parse_uuid(resource_id, 'resourceId'))
    return jsonify({'success': True, 'data': resource.to_dict()}), 200


@resource_bp.route('/<appointment_id>/reservations', methods=['POST'])
def reserve_resources(appointment_id):
    """
    Reserve resources for an appointment as one unit.
    Body: {start, facilityId?, equipmentId?, medicineId?}
    """
    appointment_id = parse_uuid(appointment_id, 'appointmentId')
    data = json_body()
    start = parse_datetime(data.get('start'), 'start')

    get_services().resources.reserve_for_appointment(
        appointment_id,
        start,
        facility_id=parse_optional_uuid(data.get('facilityId'), 'facilityId'),
        equipment_id=parse_optional_uuid(data.get('equipmentId'), 'equipmentId'),
        medicine_id=parse_optional_uuid(data.get('medicineId'), 'medicineId'),
    )
    return '', 204


@resource_bp.route('/<appointment_id>/reservations', methods=['GET'])
def list_reservations(appointment_id):
    appointment_id = parse_uuid(appointment_id, 'appointmentId')
    return jsonify({
        'success': True,
        'data': get_services().resources.resources_for_appointment(appointment_id)
    }), 200


@resource_bp.route('/<appointment_id>/reservations', methods=['DELETE'])
def release_reservations(appointment_id):
    appointment_id = parse_uuid(appointment_id, 'appointmentId')
    get_services().resources.release_appointment(appointment_id)
    return '', 204
