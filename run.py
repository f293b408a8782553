"""
Development server for the booking API
Run with: python run.py  (FLASK_HOST / FLASK_PORT / BOOKING_STRATEGY from the environment)
"""
import logging
import os

from clinic_booking import create_app

logger = logging.getLogger('run')

app = create_app()


def main():
    host = os.getenv('FLASK_HOST', '0.0.0.0')
    port = int(os.getenv('FLASK_PORT', 5000))
    env = os.getenv('FLASK_ENV', 'development')

    logger.info(
        "Clinic booking API on %s:%s (env=%s, strategy=%s, resources=%s)",
        host, port, env,
        app.config['BOOKING_STRATEGY'],
        app.config['RESOURCE_SERVICE_URL'] or 'in-process',
    )
    if app.config['BOOKING_STRATEGY'] == 'event':
        logger.info("Event consumers run separately: python celery_worker.py")
    elif app.config['BOOKING_STRATEGY'] == 'workflow':
        logger.info("Reservations run in the external task worker: python reservation_worker.py")

    app.run(host=host, port=port, debug=env == 'development', threaded=True)


if __name__ == '__main__':
    main()
