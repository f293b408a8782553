"""
Workflow Engine Client
Thin client for the Camunda 7 REST API: process start/cancel and external tasks
"""
import logging
from typing import List, Optional

import requests

from clinic_booking.errors import DownstreamError

logger = logging.getLogger(__name__)


def to_variables(values: dict) -> dict:
    """{'name': 'x'} -> {'name': {'value': 'x', 'type': 'String'}}; None values are skipped."""
    variables = {}
    for name, value in values.items():
        if value is None:
            continue
        if isinstance(value, bool):
            typ = 'Boolean'
        elif isinstance(value, int):
            typ = 'Long'
        else:
            typ = 'String'
            value = str(value)
        variables[name] = {'value': value, 'type': typ}
    return variables


class WorkflowEngineClient:
    """
    Every call has a fixed timeout and is attempted once. Transport errors
    and unexpected statuses raise DownstreamError.
    """

    def __init__(self, base_url: str, user: Optional[str] = None, password: Optional[str] = None,
                 timeout: float = 15, session: Optional[requests.Session] = None):
        self.base_url = base_url.rstrip('/')
        self.timeout = timeout
        self.session = session or requests.Session()
        if user:
            self.session.auth = (user, password or '')

    def _call(self, method, path, expected=(200, 204), timeout=None, **kwargs):
        url = f'{self.base_url}{path}'
        try:
            response = self.session.request(method, url, timeout=timeout or self.timeout, **kwargs)
        except requests.RequestException as e:
            logger.error("Workflow engine call %s %s failed: %s", method, path, e)
            raise DownstreamError(f'Workflow engine unreachable: {e}')
        if response.status_code not in expected:
            logger.error("Workflow engine answered %s for %s %s: %s", response.status_code, method, path, response.text)
            raise DownstreamError(f'Workflow engine answered {response.status_code} for {method} {path}')
        return response

    # --- Process instances ---

    def start_process(self, process_key: str, business_key: str, variables: dict) -> str:
        """Start a process instance and return its id."""
        response = self._call(
            'POST', f'/process-definition/key/{process_key}/start',
            json={'businessKey': business_key, 'variables': to_variables(variables)},
        )
        try:
            instance_id = response.json()['id']
        except (ValueError, KeyError, TypeError):
            raise DownstreamError('Workflow engine returned no process instance id')
        logger.info("Started process %s instance %s for %s", process_key, instance_id, business_key)
        return instance_id

    def cancel_process(self, instance_id: str, reason: str = '') -> None:
        self._call('DELETE', f'/process-instance/{instance_id}', params={'skipCustomListeners': 'true'})
        logger.info("Cancelled process instance %s %s", instance_id, reason)

    def cancel_processes_by_business_key(self, business_key: str, process_key: Optional[str] = None,
                                         reason: str = '') -> int:
        """Delete every running instance for `business_key`. Returns the number deleted."""
        params = {'businessKey': business_key}
        if process_key:
            params['processDefinitionKey'] = process_key
        response = self._call('GET', '/process-instance', expected=(200,), params=params)
        try:
            instance_ids = [instance['id'] for instance in response.json()]
        except (ValueError, KeyError, TypeError):
            raise DownstreamError('Workflow engine returned a malformed process instance list')
        for instance_id in instance_ids:
            self.cancel_process(instance_id, reason)
        return len(instance_ids)

    # --- External tasks ---

    def fetch_and_lock(self, worker_id: str, topic: str, lock_duration_ms: int, max_tasks: int,
                       async_response_timeout_ms: int) -> List[dict]:
        """Long-poll for tasks of `topic`. The HTTP timeout covers the long-poll window."""
        response = self._call(
            'POST', '/external-task/fetchAndLock',
            expected=(200,),
            timeout=self.timeout + async_response_timeout_ms / 1000.0,
            json={
                'workerId': worker_id,
                'maxTasks': max_tasks,
                'usePriority': True,
                'asyncResponseTimeout': async_response_timeout_ms,
                'topics': [{'topicName': topic, 'lockDuration': lock_duration_ms}],
            },
        )
        try:
            return response.json()
        except ValueError:
            raise DownstreamError('Workflow engine returned a malformed task list')

    def complete(self, task_id: str, worker_id: str, variables: Optional[dict] = None) -> None:
        self._call(
            'POST', f'/external-task/{task_id}/complete',
            json={'workerId': worker_id, 'variables': to_variables(variables or {})},
        )

    def handle_failure(self, task_id: str, worker_id: str, error_message: str, retries: int = 0,
                       retry_timeout_ms: int = 0) -> None:
        self._call(
            'POST', f'/external-task/{task_id}/failure',
            json={
                'workerId': worker_id,
                'errorMessage': error_message,
                'retries': retries,
                'retryTimeout': retry_timeout_ms,
            },
        )
