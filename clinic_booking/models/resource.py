"""
Resource catalog and time-slot reservations.
"""
from clinic_booking.extensions import db
from clinic_booking.utils.identifiers import new_id
from clinic_booking.utils.timeutils import isoformat

RESOURCE_TYPES = ('facility', 'equipment', 'medicine')


class Resource(db.Model):
    """A bookable facility, piece of equipment or medicine. Immutable once created."""
    __tablename__ = 'resources'

    id = db.Column(db.String(36), primary_key=True, default=new_id)
    name = db.Column(db.String(100), nullable=False)
    type = db.Column(db.String(20), nullable=False, index=True)

    def __repr__(self):
        return f"<Resource {self.name} ({self.type})>"

    def to_dict(self):
        return {'id': self.id, 'name': self.name, 'type': self.type}


class Reservation(db.Model):
    """
    A resource's exclusive claim on [start_time, end_time), owned by one appointment.

    (appointment_id, resource_id) is unique so that reserving again for the same
    appointment updates the row in place.
    """
    __tablename__ = 'reservations'
    __table_args__ = (
        db.UniqueConstraint('appointment_id', 'resource_id', name='uq_reservations_appointment_resource'),
        db.Index('idx_reservation_resource_time', 'resource_id', 'start_time'),
        db.CheckConstraint('end_time > start_time', name='ck_reservations_interval'),
    )

    id = db.Column(db.String(36), primary_key=True, default=new_id)
    appointment_id = db.Column(db.String(36), nullable=False, index=True)
    resource_id = db.Column(db.String(36), db.ForeignKey('resources.id'), nullable=False)

    # Denormalized copy taken at reservation time
    resource_name = db.Column(db.String(100), nullable=False)
    resource_type = db.Column(db.String(20), nullable=False)

    start_time = db.Column(db.DateTime, nullable=False)
    end_time = db.Column(db.DateTime, nullable=False)

    resource = db.relationship('Resource', backref=db.backref('reservations', lazy='dynamic'), lazy=True)

    def __repr__(self):
        return f"<Reservation {self.resource_name} for {self.appointment_id} {self.start_time}-{self.end_time}>"

    def to_dict(self):
        return {
            'id': self.id,
            'appointmentId': self.appointment_id,
            'resourceId': self.resource_id,
            'resourceName': self.resource_name,
            'resourceType': self.resource_type,
            'startTime': isoformat(self.start_time),
            'endTime': isoformat(self.end_time),
        }
