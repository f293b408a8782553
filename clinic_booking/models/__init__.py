from .appointment import Appointment, APPOINTMENT_STATUSES, APPOINTMENT_TYPES, CANCELLED_BY
from .resource import Resource, Reservation, RESOURCE_TYPES
from .user import Doctor, Patient

__all__ = [
    "Appointment",
    "APPOINTMENT_STATUSES",
    "APPOINTMENT_TYPES",
    "CANCELLED_BY",
    "Resource",
    "Reservation",
    "RESOURCE_TYPES",
    "Doctor",
    "Patient",
]
