from .timeutils import utcnow, to_db, from_db, isoformat, parse_datetime
from .identifiers import new_id, parse_uuid, parse_optional_uuid
from .intervals import intervals_overlap, find_conflicts
from .availability import is_doctor_free, ACTIVE_STATUSES
from .locks import KeyedLock

__all__ = [
    # Time
    "utcnow",
    "to_db",
    "from_db",
    "isoformat",
    "parse_datetime",
    # Identifiers
    "new_id",
    "parse_uuid",
    "parse_optional_uuid",
    # Conflict checks
    "intervals_overlap",
    "find_conflicts",
    "is_doctor_free",
    "ACTIVE_STATUSES",
    # Locking
    "KeyedLock",
]
