"""
Doctor availability check.
"""
from typing import Iterable, Optional

# Statuses that hold the doctor's slot
ACTIVE_STATUSES = ('requested', 'scheduled')
INACTIVE_STATUSES = ('cancelled', 'denied')


def is_doctor_free(
    appointments: Iterable,
    doctor_id: str,
    instant,
    excluding_appointment_id: Optional[str] = None,
) -> bool:
    """
    A doctor is free at `instant` when none of their appointments starting at
    exactly that instant is still active.

    The appointment being rescheduled is passed as `excluding_appointment_id`
    so it never blocks itself.
    """
    for appt in appointments:
        if appt.doctor_id != doctor_id or appt.appointment_date_time != instant:
            continue
        if excluding_appointment_id is not None and appt.id == excluding_appointment_id:
            continue
        if appt.status not in INACTIVE_STATUSES:
            return False
    return True
