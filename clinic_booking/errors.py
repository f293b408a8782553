"""
Booking error taxonomy and the Flask handlers that turn it into JSON.

NotFound, Conflict and Validation errors are client errors and carry a
stable code. Downstream and Internal errors are logged and collapsed to a
generic 500 so that collaborator details never reach the caller.
"""
import logging

from flask import jsonify
from werkzeug.exceptions import HTTPException

logger = logging.getLogger(__name__)

INTERNAL_ERROR_CODE = 'internal.server.error'
VALIDATION_ERROR_CODE = 'request.validation.failed'


class BookingError(Exception):
    """Base class for all errors raised by the booking core."""
    code = INTERNAL_ERROR_CODE
    title = 'Internal Server Error'
    status = 500

    def __init__(self, detail=None, code=None):
        super().__init__(detail or self.title)
        self.detail = detail or self.title
        if code:
            self.code = code

    def to_dict(self):
        return {
            'code': self.code,
            'title': self.title,
            'detail': self.detail,
            'status': self.status,
        }


class NotFoundError(BookingError):
    code = 'not.found'
    title = 'Not Found'
    status = 404


class ValidationError(BookingError):
    code = VALIDATION_ERROR_CODE
    title = 'Invalid Request Data'
    status = 400


class ConflictError(BookingError):
    code = 'conflict'
    title = 'Conflict'
    status = 409


class DoctorUnavailableError(ConflictError):
    code = 'appointment.doctor.unavailable'
    title = 'Doctor Unavailable'


class ResourceUnavailableError(ConflictError):
    code = 'resource.unavailable'
    title = 'Conflict'


class InvalidStateError(ConflictError):
    code = 'appointment.invalid.state'
    title = 'Invalid Appointment State'


class EmailConflictError(ConflictError):
    code = 'user.email.conflict'
    title = 'Email Already Registered'


class DownstreamError(BookingError):
    """A collaborator service was unreachable or answered unexpectedly."""
    code = 'downstream.failure'
    title = 'Downstream Failure'
    status = 502


class InternalError(BookingError):
    pass


def _generic_server_error():
    return jsonify({
        'success': False,
        'error': {
            'code': INTERNAL_ERROR_CODE,
            'title': 'Internal Server Error',
            'detail': 'Internal server error. Check server logs for details.',
            'status': 500,
        }
    }), 500


def register_error_handlers(app):
    """Attach JSON error handlers to the Flask app."""

    @app.errorhandler(BookingError)
    def handle_booking_error(error):
        if isinstance(error, (DownstreamError, InternalError)) or error.status >= 500:
            logger.error(f"{error.__class__.__name__}: {error.detail}", exc_info=True)
            return _generic_server_error()
        return jsonify({'success': False, 'error': error.to_dict()}), error.status

    @app.errorhandler(HTTPException)
    def handle_http_exception(error):
        if error.code and error.code >= 500:
            logger.error(f"HTTP {error.code}: {error}", exc_info=True)
            return _generic_server_error()
        return jsonify({
            'success': False,
            'error': {
                'code': f'http.{error.code}',
                'title': error.name,
                'detail': error.description,
                'status': error.code,
            }
        }), error.code

    @app.errorhandler(500)
    def internal_error(error):
        logger.error(f"Internal Server Error: {error}", exc_info=True)
        return _generic_server_error()

    @app.errorhandler(Exception)
    def handle_exception(e):
        logger.error(f"Unhandled exception: {e}", exc_info=True)
        return _generic_server_error()
