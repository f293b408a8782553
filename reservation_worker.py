#!/usr/bin/env python3
"""
External task worker entry point
Polls the workflow engine for reserve-resources tasks
Run with: python reservation_worker.py
"""
import logging
import signal
import threading

from clinic_booking.config import get_config
from clinic_booking.coordinator import build_workflow_client
from clinic_booking.workers import ReservationWorker

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s %(levelname)s %(name)s: %(message)s'
)
logger = logging.getLogger('reservation_worker')


def main():
    config_class = get_config()
    config = {key: getattr(config_class, key) for key in dir(config_class) if key.isupper()}
    engine = build_workflow_client(config)
    worker = ReservationWorker.from_config(config, engine)

    stop_event = threading.Event()

    def shutdown(signum, frame):
        logger.info("Received signal %s, shutting down worker...", signum)
        stop_event.set()

    signal.signal(signal.SIGINT, shutdown)
    signal.signal(signal.SIGTERM, shutdown)

    worker.run(stop_event)


if __name__ == '__main__':
    main()
