"""
Remote backend: talks to the HealthBuddy API server over HTTP+JSON.

The server owns the document store; this client only maps the storage
contract onto the REST endpoints and translates HTTP errors back into
the error taxonomy.
"""
import logging
from urllib.parse import quote

import requests

from healthbuddy.errors import (
    BackendUnavailable, HealthBuddyError, InvalidCredentials, NotFound,
    UserExists, ValidationError,
)
from healthbuddy.models import BloodPressureReading, Session, User, profile_to_wire
from .base import StorageBackend

logger = logging.getLogger(__name__)


class ApiError(HealthBuddyError):
    """Non-2xx response that does not map onto a more specific error."""

    def __init__(self, status_code: int, message: str):
        self.status_code = status_code
        super().__init__(message)


class ApiBackend(StorageBackend):
    """HTTP client implementation of the storage contract.

    ``http`` is any object with the ``requests.Session.request`` signature;
    a fresh ``requests.Session`` is used when none is given.
    """

    name = 'api'

    def __init__(self, base_url: str, timeout: int = 10, http=None):
        super().__init__()
        self._base_url = base_url.rstrip('/')
        self._timeout = timeout
        self._http = http
        self._owns_http = http is None

    def initialize(self):
        if self._http is None:
            self._http = requests.Session()
        try:
            self._call('GET', '/health')
        except (HealthBuddyError, ValueError) as exc:
            logger.error('API health check failed: %s', exc)
            if isinstance(exc, BackendUnavailable):
                raise
            raise BackendUnavailable(f'API health check failed: {exc}') from exc
        logger.info('API storage connected (%s)', self._base_url)

    def close(self):
        if self._http is not None and self._owns_http:
            self._http.close()
            self._http = None

    def _call(self, method: str, endpoint: str, payload: dict = None):
        if self._http is None:
            raise BackendUnavailable('Database not initialized')
        url = f'{self._base_url}{endpoint}'
        kwargs = {'timeout': self._timeout}
        if payload is not None or method in ('POST', 'PUT'):
            kwargs['json'] = payload or {}
        try:
            response = self._http.request(method, url, **kwargs)
        except requests.RequestException as exc:
            logger.error('API call failed: %s %s: %s', method, endpoint, exc)
            raise BackendUnavailable(f'API unreachable: {exc}') from exc

        if 200 <= response.status_code < 300:
            return response.json()

        try:
            message = response.json().get('error')
        except (ValueError, AttributeError):
            message = None
        if isinstance(message, list):
            message = '; '.join(str(m) for m in message)
        message = message or f'API error: {response.status_code}'
        logger.warning('API call failed: %s %s -> %s %s',
                       method, endpoint, response.status_code, message)
        raise _error_for(response.status_code, message)

    # Users

    def create_user(self, name, email, password):
        data = self._call('POST', '/users/register',
                          {'name': name, 'email': email, 'password': password})
        return User.from_dict(data)

    def find_user_by_credentials(self, email, password):
        try:
            data = self._call('POST', '/users/login', {'email': email, 'password': password})
        except InvalidCredentials:
            return None
        return User.from_dict(data)

    def find_user_by_id(self, user_id):
        """The server answers 404 for unknown and malformed ids alike, so both
        come back as None here; the local backends raise InvalidId for the latter."""
        try:
            data = self._call('GET', f'/users/{_segment(user_id)}')
        except NotFound:
            return None
        return User.from_dict(data)

    def update_user_profile(self, user_id, profile):
        data = self._call('PUT', f'/users/{_segment(user_id)}/profile', profile_to_wire(profile))
        return User.from_dict(data)

    # Sessions

    def create_session(self, user_id):
        data = self._call('POST', '/sessions', {'userId': user_id})
        return Session(id=data.get('sessionId'), user_id=str(user_id),
                       is_active=True, created_at=data.get('createdAt'))

    def get_active_session(self):
        try:
            data = self._call('GET', '/sessions/active')
        except NotFound:
            return None
        return User.from_dict(data)

    def clear_session(self):
        self._call('POST', '/sessions/clear')

    # Readings

    def add_reading(self, user_id, systolic, diastolic, heart_rate):
        data = self._call('POST', '/blood-pressure', {
            'userId': user_id,
            'systolic': systolic,
            'diastolic': diastolic,
            'heartRate': heart_rate,
        })
        return BloodPressureReading.from_dict(data)

    def _query_readings(self, user_id):
        data = self._call('GET', f'/blood-pressure/{_segment(user_id)}')
        return [BloodPressureReading.from_dict(r) for r in data or []]

    def delete_reading(self, reading_id):
        self._call('DELETE', f'/blood-pressure/{_segment(reading_id)}')


def _segment(value) -> str:
    """Quote an id for use as a single URL path segment."""
    return quote(str(value), safe='')


def _error_for(status_code: int, message: str) -> HealthBuddyError:
    if 'already exists' in message:
        return UserExists(message)
    if status_code == 400:
        return ValidationError(message)
    if status_code == 401:
        return InvalidCredentials(message)
    if status_code == 404:
        return NotFound(message)
    if status_code == 503:
        return BackendUnavailable(message)
    return ApiError(status_code, message)
