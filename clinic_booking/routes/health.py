"""
Health endpoints for load balancers and container probes
"""
from flask import Blueprint, current_app, jsonify
from sqlalchemy.exc import SQLAlchemyError

from clinic_booking.extensions import db
from clinic_booking.models import Resource
from clinic_booking.utils.timeutils import isoformat, utcnow

health_bp = Blueprint('health', __name__, url_prefix='/health')


def _database_status():
    try:
        db.session.execute(db.text('SELECT 1'))
        return 'connected', Resource.query.count()
    except SQLAlchemyError as e:
        db.session.rollback()
        return f'error: {e.__class__.__name__}', None


@health_bp.route('', methods=['GET'])
@health_bp.route('/ping', methods=['GET'])
def health_check():
    """Process is up; touches nothing"""
    config = current_app.config
    return jsonify({
        'status': 'healthy',
        'service': 'clinic-booking',
        'strategy': config['BOOKING_STRATEGY'],
        'resourceGateway': 'http' if config['RESOURCE_SERVICE_URL'] else 'in-process',
        'timestamp': isoformat(utcnow()),
    }), 200


@health_bp.route('/ready', methods=['GET'])
def readiness_check():
    """Database reachable and resource catalog loaded"""
    db_status, catalog_size = _database_status()
    ready = db_status == 'connected'
    return jsonify({
        'status': 'ready' if ready else 'not_ready',
        'database': db_status,
        'resources': catalog_size,
        'timestamp': isoformat(utcnow()),
    }), 200 if ready else 503


@health_bp.route('/live', methods=['GET'])
def liveness_check():
    return jsonify({'status': 'alive', 'timestamp': isoformat(utcnow())}), 200
