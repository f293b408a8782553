"""
Reservation conflict checks on half-open [start, end) intervals.
"""


def intervals_overlap(start_a, end_a, start_b, end_b) -> bool:
    """True when [start_a, end_a) and [start_b, end_b) share at least one instant."""
    return start_a < end_b and end_a > start_b


def find_conflicts(reservations, resource_id, appointment_id, start, end):
    """
    Return the reservations that block `appointment_id` from holding
    `resource_id` during [start, end).

    A reservation owned by the same appointment never conflicts: re-reserving
    replaces it instead.

    Args:
        reservations: iterable of objects with resource_id, appointment_id,
            start_time and end_time attributes
    """
    return [
        r for r in reservations
        if r.resource_id == resource_id
        and r.appointment_id != appointment_id
        and intervals_overlap(r.start_time, r.end_time, start, end)
    ]
