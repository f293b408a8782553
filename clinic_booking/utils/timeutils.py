"""
Datetime helpers.

API instants are timezone-aware UTC. The database stores naive UTC, so every
value crossing the model boundary goes through to_db / from_db.
"""
from datetime import datetime, timezone

from clinic_booking.errors import ValidationError


def utcnow():
    return datetime.now(timezone.utc)


def utcnow_naive():
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_db(value: datetime) -> datetime:
    """Convert an aware datetime to naive UTC; naive input is taken as UTC."""
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def from_db(value):
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def isoformat(value):
    """RFC 3339 string with a trailing Z, or None."""
    if value is None:
        return None
    return from_db(value).isoformat().replace('+00:00', 'Z')


def parse_datetime(value, field='dateTime') -> datetime:
    """
    Parse an RFC 3339 / ISO 8601 timestamp into an aware UTC datetime.

    Raises:
        ValidationError: value missing or not a timestamp
    """
    if isinstance(value, datetime):
        return from_db(value)
    if not value or not isinstance(value, str):
        raise ValidationError(f'Field "{field}" is required and must be an RFC 3339 timestamp')
    text = value.strip()
    if text.endswith('Z') or text.endswith('z'):
        text = text[:-1] + '+00:00'
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        raise ValidationError(f'Invalid format for "{field}": {value!r}. Use RFC 3339, e.g. 2025-01-01T09:00:00Z')
    # RFC 3339 requires an offset; a bare local time is ambiguous
    if parsed.tzinfo is None:
        raise ValidationError(f'Invalid format for "{field}": {value!r} has no UTC offset. Use e.g. 2025-01-01T09:00:00Z')
    return from_db(parsed)
