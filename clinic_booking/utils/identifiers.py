import uuid

from clinic_booking.errors import ValidationError


def new_id() -> str:
    return str(uuid.uuid4())


def parse_uuid(value, field='id') -> str:
    """Return the canonical string form of a UUID or raise ValidationError."""
    if value is None or value == '':
        raise ValidationError(f'Field "{field}" is required')
    if isinstance(value, uuid.UUID):
        return str(value)
    if not isinstance(value, str):
        raise ValidationError(f'Invalid type for "{field}", expected string UUID')
    try:
        return str(uuid.UUID(value))
    except ValueError:
        raise ValidationError(f'Invalid format for "{field}": {value!r}')


def parse_optional_uuid(value, field='id'):
    if value is None or value == '':
        return None
    return parse_uuid(value, field)
