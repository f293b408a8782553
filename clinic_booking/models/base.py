from clinic_booking.extensions import db
from clinic_booking.utils.timeutils import utcnow_naive


class TimestampMixin:
    """created_at / updated_at columns, stored as naive UTC."""
    created_at = db.Column(db.DateTime, default=utcnow_naive, nullable=False)
    updated_at = db.Column(db.DateTime, default=utcnow_naive, onupdate=utcnow_naive, nullable=False)
