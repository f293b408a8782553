"""
Reservation Worker
Polls the workflow engine for reserve-resources external tasks and runs them
against the resource HTTP boundary
"""
import logging
import threading
from concurrent.futures import ThreadPoolExecutor

import requests

from clinic_booking.errors import DownstreamError, ValidationError
from clinic_booking.utils.identifiers import parse_uuid
from clinic_booking.utils.timeutils import isoformat, parse_datetime

logger = logging.getLogger(__name__)

OPTIONAL_RESOURCE_VARIABLES = ('facilityId', 'equipmentId', 'medicineId')


def _variable_value(variables, name):
    variable = variables.get(name)
    if not isinstance(variable, dict):
        return None
    return variable.get('value')


def parse_task_variables(task):
    """
    Validate the variables of a reserve-resources task.

    Returns a dict with appointment_id, start and the optional resource ids.

    Raises:
        ValidationError: a required variable is missing or any variable is malformed
    """
    variables = task.get('variables') or {}

    appointment_id = _variable_value(variables, 'appointmentId')
    if appointment_id is None:
        raise ValidationError("Missing 'appointmentId' variable")
    if not isinstance(appointment_id, str):
        raise ValidationError("Invalid type for 'appointmentId', expected string UUID")
    appointment_id = parse_uuid(appointment_id, 'appointmentId')

    start = _variable_value(variables, 'appointmentDateTime')
    if start is None:
        raise ValidationError("Missing 'appointmentDateTime' variable")
    if not isinstance(start, str):
        raise ValidationError("Invalid type for 'appointmentDateTime', expected RFC 3339 string")
    start = parse_datetime(start, 'appointmentDateTime')

    parsed = {'appointment_id': appointment_id, 'start': start}
    for name in OPTIONAL_RESOURCE_VARIABLES:
        value = _variable_value(variables, name)
        if value is not None and not isinstance(value, str):
            raise ValidationError(f"Invalid type for '{name}', expected string UUID")
        parsed[name] = parse_uuid(value, name) if value else None
    return parsed


class ReservationWorker:
    """
    External task worker for the reserve-resources topic.

    Malformed tasks are failed with zero retries. Task execution is
    at-least-once (an expired lock hands the task to another worker), which
    the idempotent reservation upsert makes safe.
    """

    def __init__(self, engine, resource_service_url, worker_id='resource-reservation-worker',
                 topic='appointment-reserve-resources', lock_duration_ms=5000, max_tasks=10,
                 max_parallel=100, async_response_timeout_ms=5000, fetch_interval=5.0,
                 http_timeout=10.0, session=None):
        self.engine = engine
        self.resource_service_url = resource_service_url.rstrip('/')
        self.worker_id = worker_id
        self.topic = topic
        self.lock_duration_ms = lock_duration_ms
        self.max_tasks = max_tasks
        self.max_parallel = max_parallel
        self.async_response_timeout_ms = async_response_timeout_ms
        self.fetch_interval = fetch_interval
        self.http_timeout = http_timeout
        self.session = session or requests.Session()
        self._slots = threading.BoundedSemaphore(max_parallel)
        self._executor = None

    @classmethod
    def from_config(cls, config, engine):
        return cls(
            engine,
            config['WORKER_RESOURCE_SERVICE_URL'],
            worker_id=config['WORKER_ID'],
            topic=config['WORKER_TOPIC'],
            lock_duration_ms=config['WORKER_LOCK_DURATION_MS'],
            max_tasks=config['WORKER_MAX_TASKS'],
            max_parallel=config['WORKER_MAX_PARALLEL'],
            async_response_timeout_ms=config['WORKER_ASYNC_RESPONSE_TIMEOUT_MS'],
            fetch_interval=config['WORKER_FETCH_INTERVAL'],
            http_timeout=config['RESOURCE_SERVICE_TIMEOUT'],
        )

    # --- Task handling ---

    def _fail(self, task_id, message):
        logger.error("Failing task %s: %s", task_id, message)
        try:
            self.engine.handle_failure(task_id, self.worker_id, message, retries=0)
        except DownstreamError as e:
            logger.error("Could not report failure of task %s: %s", task_id, e.detail)

    def handle_task(self, task):
        """Run one task to a reported outcome. Returns True when the task was completed."""
        task_id = task.get('id')
        logger.info("Processing task %s (topic %s, business key %s)",
                    task_id, task.get('topicName'), task.get('businessKey'))

        try:
            params = parse_task_variables(task)
        except ValidationError as e:
            self._fail(task_id, e.detail)
            return False

        body = {'start': isoformat(params['start'])}
        for name in OPTIONAL_RESOURCE_VARIABLES:
            if params[name]:
                body[name] = params[name]

        url = f"{self.resource_service_url}/resources/{params['appointment_id']}/reservations"
        try:
            response = self.session.post(url, json=body, timeout=self.http_timeout)
        except requests.RequestException as e:
            self._fail(task_id, f'Failed to send reservation: {e}')
            return False

        if response.status_code != 204:
            self._fail(task_id, f'Failed to reserve resources: resource service answered {response.status_code}')
            return False

        try:
            self.engine.complete(task_id, self.worker_id)
        except DownstreamError as e:
            # Unacknowledged reservations, e.g. for a process deleted mid-task, must not linger
            try:
                self.session.delete(url, timeout=self.http_timeout)
            except requests.RequestException as release_error:
                logger.error("Releasing reservations of appointment %s failed: %s", params['appointment_id'], release_error)
            self._fail(task_id, f'failed to complete task: {e.detail}')
            return False
        logger.info("Completed task %s for appointment %s", task_id, params['appointment_id'])
        return True

    def _run_task(self, task):
        try:
            self.handle_task(task)
        except Exception:
            logger.exception("Unexpected error handling task %s", task.get('id'))
        finally:
            self._slots.release()

    # --- Polling ---

    def poll_once(self):
        """Fetch and dispatch one batch. Returns the number of tasks dispatched."""
        tasks = self.engine.fetch_and_lock(
            self.worker_id,
            self.topic,
            lock_duration_ms=self.lock_duration_ms,
            max_tasks=self.max_tasks,
            async_response_timeout_ms=self.async_response_timeout_ms,
        )
        for task in tasks:
            self._slots.acquire()
            if self._executor is None:
                self._run_task(task)
            else:
                self._executor.submit(self._run_task, task)
        return len(tasks)

    def run(self, stop_event: threading.Event):
        """Poll until `stop_event` is set, then wait for in-flight tasks."""
        logger.info("Starting reservation worker %s on topic %s", self.worker_id, self.topic)
        self._executor = ThreadPoolExecutor(max_workers=self.max_parallel, thread_name_prefix=self.worker_id)
        try:
            while not stop_event.is_set():
                try:
                    fetched = self.poll_once()
                except DownstreamError as e:
                    logger.error("Fetching tasks failed: %s", e.detail)
                    fetched = 0
                if not fetched:
                    stop_event.wait(self.fetch_interval)
        finally:
            logger.info("Stopping reservation worker, waiting for in-flight tasks")
            self._executor.shutdown(wait=True)
            self._executor = None
        logger.info("Reservation worker stopped")
