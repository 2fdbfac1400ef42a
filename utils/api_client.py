"""
Farm backend REST client.

Wraps the crop, activity, expense, auth and report resources of the farm
backend. Every request is stamped with the bearer token read from the session
accessor at call time. Authorization failures (401/403) clear the stored
credential and raise SessionExpired, which the app handles globally with a
redirect to the login page.
"""

import logging
import threading

import requests
from flask import current_app, g

from utils.auth import current_session

logger = logging.getLogger(__name__)

AUTH_FAILURE_CODES = (401, 403)
JSON_HEADERS = {
    'Content-Type': 'application/json',
    'Accept': 'application/json',
}


class ApiError(Exception):
    """Transport failure or non-2xx response from the farm backend"""

    def __init__(self, message='Operation failed', status_code=None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code

    def __str__(self):
        return self.message


class SessionExpired(Exception):
    """The backend rejected the stored credential.

    Not an ApiError subclass, so fallbacks that catch ApiError never absorb
    it and it always reaches the app-wide handler.
    """

    def __init__(self, message='Session expired. Please login again.', status_code=403):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


def _error_message(response):
    """Pull a human readable message out of an error response"""
    try:
        body = response.json()
    except ValueError:
        return response.text.strip() or None

    if isinstance(body, dict):
        return body.get('message') or body.get('error')
    if isinstance(body, str):
        return body
    return None


def _new_http_session():
    http = requests.Session()
    http.headers.update(JSON_HEADERS)
    return http


class FarmApiClient:
    def __init__(self, base_url, session_store, timeout=10, http=None):
        self.base_url = base_url.rstrip('/')
        self.session_store = session_store
        self.timeout = timeout
        self._shared_http = http
        if http is not None:
            http.headers.update(JSON_HEADERS)
        self._local = threading.local()

    @property
    def http(self):
        """HTTP session for the calling thread.

        The dashboard fans requests out over worker threads, so unless a
        session was injected each thread gets its own requests.Session.
        """
        if self._shared_http is not None:
            return self._shared_http
        http = getattr(self._local, 'http', None)
        if http is None:
            http = self._local.http = _new_http_session()
        return http

    @classmethod
    def from_app(cls, session_store):
        return cls(
            current_app.config['FARM_API_URL'],
            session_store,
            timeout=current_app.config.get('API_TIMEOUT', 10),
        )

    def request(self, method, path, params=None, payload=None, authenticated=True):
        headers = {}
        token = self.session_store.get_token() if authenticated else None
        if token:
            headers['Authorization'] = f'Bearer {token}'

        url = f'{self.base_url}{path}'
        try:
            response = self.http.request(
                method, url,
                params=params,
                json=payload,
                headers=headers,
                timeout=self.timeout,
            )
        except requests.exceptions.RequestException as e:
            logger.warning('%s %s failed: %s', method, path, e)
            raise ApiError('Unable to reach the farm server. Please check your connection.') from e

        logger.debug('%s %s -> %s', method, path, response.status_code)

        if authenticated and response.status_code in AUTH_FAILURE_CODES:
            logger.info('Authorization rejected for %s %s, clearing session', method, path)
            self.session_store.clear()
            raise SessionExpired(status_code=response.status_code)

        if not response.ok:
            raise ApiError(_error_message(response) or 'Operation failed', response.status_code)

        if response.status_code == 204 or not response.content:
            return None
        try:
            return response.json()
        except ValueError as e:
            raise ApiError('Unexpected response from the farm server', response.status_code) from e

    # Auth
    def login(self, username, password):
        return self.request('POST', '/auth/login',
                            payload={'username': username, 'password': password},
                            authenticated=False)

    def register(self, username, email, password, role=None):
        payload = {'username': username, 'email': email, 'password': password}
        if role:
            payload['role'] = role
        return self.request('POST', '/auth/register', payload=payload, authenticated=False)

    # Generic resource operations
    def list(self, resource):
        return self._records(self.request('GET', f'/{resource}'))

    @staticmethod
    def _records(body):
        """Collection body as a list of dicts, dropping items that are not objects"""
        if body is None:
            return []
        if not isinstance(body, list):
            raise ApiError('Unexpected response from the farm server')
        return [item for item in body if isinstance(item, dict)]

    @staticmethod
    def _mapping(body):
        return body if isinstance(body, dict) else {}

    def get(self, resource, item_id):
        return self.request('GET', f'/{resource}/{item_id}')

    def create(self, resource, payload):
        return self.request('POST', f'/{resource}', payload=payload)

    def update(self, resource, item_id, payload):
        return self.request('PUT', f'/{resource}/{item_id}', payload=payload)

    def delete(self, resource, item_id):
        self.request('DELETE', f'/{resource}/{item_id}')

    # Crops
    def list_crops(self):
        return self.list('crops')

    def get_crop(self, crop_id):
        return self.get('crops', crop_id)

    def create_crop(self, crop):
        return self.create('crops', crop)

    def update_crop(self, crop_id, crop):
        return self.update('crops', crop_id, crop)

    def delete_crop(self, crop_id):
        self.delete('crops', crop_id)

    # Activities
    def list_activities(self):
        return self.list('activities')

    def get_activity(self, activity_id):
        return self.get('activities', activity_id)

    def create_activity(self, activity):
        return self.create('activities', activity)

    def update_activity(self, activity_id, activity):
        return self.update('activities', activity_id, activity)

    def delete_activity(self, activity_id):
        self.delete('activities', activity_id)

    # Expenses
    def list_expenses(self):
        return self.list('expenses')

    def get_expense(self, expense_id):
        return self.get('expenses', expense_id)

    def create_expense(self, expense):
        return self.create('expenses', expense)

    def update_expense(self, expense_id, expense):
        return self.update('expenses', expense_id, expense)

    def delete_expense(self, expense_id):
        self.delete('expenses', expense_id)

    # Reports
    def expenses_by_category(self):
        return self._mapping(self.request('GET', '/expenses/report/category'))

    def activities_by_crop(self):
        return self._mapping(self.request('GET', '/activities/report/crop'))

    def activities_by_type(self):
        return self._mapping(self.request('GET', '/activities/report/type'))

    def upcoming_activities(self, days=7):
        return self._records(self.request('GET', '/activities/upcoming', params={'days': days}))

    def expense_total_in_range(self, start, end):
        """Sum of expenses dated between start and end (ISO dates)"""
        total = self.request('GET', '/expenses/report/date-range',
                             params={'start': str(start), 'end': str(end)})
        try:
            return float(total or 0)
        except (TypeError, ValueError):
            return 0.0


def get_api_client():
    """Per-request client bound to the current user's session"""
    if 'api_client' not in g:
        factory = current_app.config.get('API_CLIENT_FACTORY') or FarmApiClient.from_app
        g.api_client = factory(current_session())
    return g.api_client
