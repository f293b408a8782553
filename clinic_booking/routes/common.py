from flask import request

from clinic_booking.errors import ValidationError


def json_body():
    """Request JSON as a dict, or ValidationError."""
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValidationError('Request body must be a JSON object')
    return data


def optional_text(data, field):
    """String field of a JSON body, or None when absent."""
    value = data.get(field)
    if value is not None and not isinstance(value, str):
        raise ValidationError(f'Invalid type for "{field}", expected string')
    return value
