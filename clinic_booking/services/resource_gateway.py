"""
Resource Gateway
The appointment side's handle on the resource side, in-process or over HTTP
"""
import logging
from datetime import datetime
from typing import Dict, Optional

import requests

from clinic_booking.errors import (
    BookingError,
    DownstreamError,
    NotFoundError,
    ResourceUnavailableError,
    ValidationError,
)
from clinic_booking.utils.timeutils import isoformat

logger = logging.getLogger(__name__)


def summaries_by_type(summaries) -> Dict[str, Optional[dict]]:
    """[{id, name, type}, ...] -> {'facility': {...}|None, 'equipment': ..., 'medicine': ...}"""
    grouped = {'facility': None, 'equipment': None, 'medicine': None}
    for summary in summaries:
        if summary.get('type') in grouped:
            grouped[summary['type']] = {
                'id': summary['id'],
                'name': summary['name'],
                'type': summary['type'],
            }
    return grouped


class LocalResourceGateway:
    """Calls the Resource Store in-process."""

    def __init__(self, store):
        self.store = store

    def reserve(self, appointment_id, start: datetime, facility_id=None, equipment_id=None, medicine_id=None):
        reservations = self.store.reserve_for_appointment(
            appointment_id, start,
            facility_id=facility_id, equipment_id=equipment_id, medicine_id=medicine_id,
        )
        return summaries_by_type(
            {'id': r.resource_id, 'name': r.resource_name, 'type': r.resource_type}
            for r in reservations
        )

    def release(self, appointment_id) -> None:
        self.store.release_appointment(appointment_id)

    def reserved(self, appointment_id):
        return summaries_by_type(self.store.resources_for_appointment(appointment_id))


class HttpResourceGateway:
    """
    Calls the resource HTTP boundary with `requests`.

    Client errors from the resource side keep their meaning (404, 409, 400);
    anything else, including timeouts and connection errors, is a
    DownstreamError.
    """

    def __init__(self, base_url: str, timeout: float = 10, session: Optional[requests.Session] = None):
        self.base_url = base_url.rstrip('/')
        self.timeout = timeout
        self.session = session or requests.Session()

    def _url(self, appointment_id):
        return f'{self.base_url}/resources/{appointment_id}/reservations'

    def _request(self, method, url, **kwargs):
        try:
            return self.session.request(method, url, timeout=self.timeout, **kwargs)
        except requests.RequestException as e:
            logger.error("Resource service call %s %s failed: %s", method, url, e)
            raise DownstreamError(f'Resource service unreachable: {e}')

    @staticmethod
    def _error_detail(response):
        try:
            return response.json()['error']['detail']
        except (ValueError, KeyError, TypeError):
            return response.text or response.reason

    def _raise_for_status(self, response):
        detail = self._error_detail(response)
        if response.status_code == 404:
            raise NotFoundError(detail, code='resource.not-found')
        if response.status_code == 409:
            raise ResourceUnavailableError(detail)
        if response.status_code == 400:
            raise ValidationError(detail)
        logger.error("Resource service answered %s: %s", response.status_code, detail)
        raise DownstreamError(f'Resource service answered {response.status_code}: {detail}')

    def reserve(self, appointment_id, start: datetime, facility_id=None, equipment_id=None, medicine_id=None):
        payload = {'start': isoformat(start)}
        if facility_id:
            payload['facilityId'] = facility_id
        if equipment_id:
            payload['equipmentId'] = equipment_id
        if medicine_id:
            payload['medicineId'] = medicine_id

        url = self._url(appointment_id)
        response = self._request('POST', url, json=payload)
        if response.status_code != 204:
            self._raise_for_status(response)

        # The reservation call answers 204; fetch what was reserved for the summaries
        try:
            return self.reserved(appointment_id)
        except BookingError:
            # The caller sees a failed reserve, so the committed reservations must go
            try:
                self.release(appointment_id)
            except BookingError as e:
                logger.error("Compensating release for appointment %s failed: %s", appointment_id, e.detail)
            raise

    def reserved(self, appointment_id):
        response = self._request('GET', self._url(appointment_id))
        if response.status_code != 200:
            self._raise_for_status(response)
        try:
            summaries = response.json()['data']
        except (ValueError, KeyError, TypeError) as e:
            raise DownstreamError(f'Malformed reservation listing from resource service: {e}')
        return summaries_by_type(summaries)

    def release(self, appointment_id) -> None:
        response = self._request('DELETE', self._url(appointment_id))
        if response.status_code not in (200, 204):
            self._raise_for_status(response)
