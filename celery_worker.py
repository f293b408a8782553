#!/usr/bin/env python3
"""
Booking event consumers
Run with: celery -A celery_worker.celery worker -Q appointment-scheduled,resource-reserved,reservation-failed --loglevel=info
Or: python celery_worker.py
"""
import os

from clinic_booking import create_app
from clinic_booking.extensions import celery
from clinic_booking.services.events import TOPICS

# The app configures the broker and the task base class
app = create_app()

from tasks import booking_tasks  # noqa: E402,F401

if __name__ == '__main__':
    celery.worker_main([
        'worker',
        '--loglevel=' + os.getenv('CELERY_LOG_LEVEL', 'info'),
        '--concurrency=' + os.getenv('CELERY_CONCURRENCY', '4'),
        '-Q', ','.join(TOPICS),
    ])
