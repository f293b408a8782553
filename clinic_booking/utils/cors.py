"""
CORS for the booking API blueprints
"""

API_PREFIXES = ('/appointments', '/doctors', '/patients', '/resources', '/health')


def _origins(value):
    if not value or value.strip() == '*':
        return '*'
    return [origin.strip() for origin in value.split(',') if origin.strip()]


def init_cors(app):
    """Enable CORS on the API routes for the origins in CORS_ORIGINS (comma separated, default *)."""
    from flask_cors import CORS

    origins = _origins(app.config.get('CORS_ORIGINS'))
    CORS(app,
         resources={rf"{prefix}(/.*)?": {"origins": origins} for prefix in API_PREFIXES},
         methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
         allow_headers=["Content-Type", "Accept", "Origin"],
         max_age=86400)

    app.logger.info("CORS enabled for origins: %s", origins)
