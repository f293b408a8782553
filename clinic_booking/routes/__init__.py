from .health import health_bp
from .appointment import appointment_bp
from .resource import resource_bp
from .users import doctor_bp, patient_bp

__all__ = ['health_bp', 'appointment_bp', 'resource_bp', 'doctor_bp', 'patient_bp']
