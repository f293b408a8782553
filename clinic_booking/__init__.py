from flask import Flask, has_app_context
from .extensions import db, migrate, celery
import logging
import os

# Setup basic logging
logging.basicConfig(
    level=os.getenv('LOG_LEVEL', 'INFO'),
    format='%(asctime)s %(levelname)s %(name)s: %(message)s'
)
logger = logging.getLogger(__name__)


def create_app(config_name=None, config_overrides=None):
    """Create Flask application factory"""
    app = Flask(__name__)

    # Load configuration
    if config_name:
        from clinic_booking.config import config
        app.config.from_object(config.get(config_name, config['default']))
    else:
        from clinic_booking.config import get_config
        app.config.from_object(get_config())

    if config_overrides:
        app.config.update(config_overrides)

    # Ensure production mode if FLASK_ENV is production
    if os.getenv('FLASK_ENV') == 'production' and not config_name:
        app.config['DEBUG'] = False
        app.config['TESTING'] = False

    logging.getLogger().setLevel(app.config['LOG_LEVEL'])

    # Initialize extensions first (before error handlers)
    db.init_app(app)
    migrate.init_app(app, db)

    # Initialize CORS
    from clinic_booking.utils.cors import init_cors
    init_cors(app)

    # Initialize Celery; one queue per booking event topic
    from clinic_booking.services.events import CONSUMER_TASKS
    celery.conf.update(
        broker_url=app.config['CELERY_BROKER_URL'],
        result_backend=app.config['CELERY_RESULT_BACKEND'],
        task_serializer=app.config['CELERY_TASK_SERIALIZER'],
        accept_content=app.config['CELERY_ACCEPT_CONTENT'],
        result_serializer=app.config['CELERY_RESULT_SERIALIZER'],
        timezone=app.config['CELERY_TIMEZONE'],
        enable_utc=app.config['CELERY_ENABLE_UTC'],
        task_always_eager=app.config['CELERY_TASK_ALWAYS_EAGER'],
        task_acks_late=True,
        task_routes={name: {'queue': topic} for topic, name in CONSUMER_TASKS.items()},
    )

    # Make celery tasks work with Flask app context
    class FlaskAppContextTask(celery.Task):
        """Make celery tasks work with Flask app context."""
        def __call__(self, *args, **kwargs):
            # Eager tasks run inside the caller's context and share its session
            if has_app_context():
                return self.run(*args, **kwargs)
            with app.app_context():
                return self.run(*args, **kwargs)

    celery.Task = FlaskAppContextTask

    # JSON error handlers
    from clinic_booking.errors import register_error_handlers
    register_error_handlers(app)

    # Setup logging
    if not app.debug and not app.testing:
        from logging.handlers import RotatingFileHandler

        log_dir = os.path.dirname(app.config['LOG_FILE'])
        if log_dir and not os.path.exists(log_dir):
            os.makedirs(log_dir)

        file_handler = RotatingFileHandler(
            app.config['LOG_FILE'],
            maxBytes=10240000,
            backupCount=10
        )
        file_handler.setFormatter(logging.Formatter(
            '%(asctime)s %(levelname)s: %(message)s [in %(pathname)s:%(lineno)d]'
        ))
        file_handler.setLevel(logging.INFO)
        logging.getLogger().addHandler(file_handler)
        app.logger.info('Application startup')

    register_cli(app)

    with app.app_context():
        # Import models to register them with SQLAlchemy
        from . import models  # noqa: F401

        # Register blueprints
        from .routes import health_bp, appointment_bp, resource_bp, doctor_bp, patient_bp
        app.register_blueprint(health_bp)  # Register health check first
        app.register_blueprint(appointment_bp)
        app.register_blueprint(resource_bp)
        app.register_blueprint(doctor_bp)
        app.register_blueprint(patient_bp)

        if app.config['AUTO_CREATE_TABLES']:
            db.create_all()

        # Store handles, passed to routes and tasks through app.extensions
        from .coordinator import build_booking_services
        services = build_booking_services(app, db)
        app.extensions['booking'] = services

        if app.config['SEED_RESOURCES'] and app.config['AUTO_CREATE_TABLES']:
            from .seeds import seed_resources
            seed_resources(services.resources)

    return app


def register_cli(app):
    """
    Adds small helper CLI commands:
    - flask create-db: create tables using the configured database
    - flask seed-resources: insert the resource catalog
    """
    import click

    @app.cli.command("create-db")
    def create_db_command():
        """Create database tables if they do not exist."""
        db.create_all()
        click.echo("Database tables created.")

    @app.cli.command("seed-resources")
    def seed_resources_command():
        """Insert catalog resources that are missing."""
        from .seeds import seed_resources
        added = seed_resources(app.extensions['booking'].resources)
        click.echo(f"Seeded {added} resources.")
