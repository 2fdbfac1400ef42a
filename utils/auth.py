from functools import wraps
from flask import session, redirect, url_for, request

from utils.config import DEFAULT_SETTINGS

TOKEN_KEY = 'token'
USER_INFO_KEY = 'user_info'
BUDGET_KEY = 'monthly_budget'
SETTINGS_KEY = 'settings'


class SessionStore:
    """Credential and preference accessor over a session mapping.

    Everything a browser client would keep in local storage lives here:
    the bearer token, the cached user info, the monthly budget and the
    settings bundle. The API client only ever sees this object, never the
    Flask session directly.
    """

    def __init__(self, storage=None):
        self._storage = storage

    @property
    def storage(self):
        return session if self._storage is None else self._storage

    def get_token(self):
        return self.storage.get(TOKEN_KEY)

    def is_authenticated(self):
        return bool(self.get_token())

    def get_user_info(self):
        return self.storage.get(USER_INFO_KEY) or {}

    def login(self, auth_response):
        """Store the token and user info returned by /auth/login"""
        self.storage[TOKEN_KEY] = auth_response['token']
        self.storage[USER_INFO_KEY] = {
            'username': auth_response.get('username', ''),
            'email': auth_response.get('email', ''),
            'role': auth_response.get('role', 'FARMER'),
        }

    def clear(self):
        """Forget the credential and cached user info.

        Budget and settings are device preferences and survive a logout.
        """
        self.storage.pop(TOKEN_KEY, None)
        self.storage.pop(USER_INFO_KEY, None)

    def get_budget(self):
        try:
            return float(self.storage.get(BUDGET_KEY) or 0)
        except (TypeError, ValueError):
            return 0.0

    def set_budget(self, amount):
        self.storage[BUDGET_KEY] = amount

    def get_settings(self):
        settings = dict(DEFAULT_SETTINGS)
        settings.update(self.storage.get(SETTINGS_KEY) or {})
        return settings

    def save_settings(self, settings):
        merged = self.get_settings()
        merged.update({k: v for k, v in settings.items() if k in DEFAULT_SETTINGS})
        self.storage[SETTINGS_KEY] = merged
        return merged


def current_session():
    # Unwrap the proxy so worker threads of the dashboard can still reach it
    return SessionStore(session._get_current_object())


def login_required(f):
    """Redirect to the login page unless a token is stored in the session"""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if not current_session().is_authenticated():
            return redirect(url_for('auth.login', next=request.path))
        return f(*args, **kwargs)
    return decorated_function


def safe_next_url(target):
    """Only allow local redirect targets after login"""
    if target and target.startswith('/') and not target.startswith('//'):
        return target
    return None
