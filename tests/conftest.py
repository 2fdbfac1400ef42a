"""
Pytest fixtures for the farm records frontend.

The farm backend is replaced by FakeFarmApi, an in-memory stand-in exposing
the same methods as utils.api_client.FarmApiClient. It is injected through
the API_CLIENT_FACTORY config hook so routes never touch the network.
"""

import pytest

from app import create_app

CROPS = [
    {'id': 1, 'name': 'Wheat', 'variety': 'HD-2967', 'area': 2.5,
     'plantingDate': '2024-01-10', 'harvestDate': '2024-05-01', 'notes': ''},
    {'id': 2, 'name': 'Tomato', 'variety': 'Roma', 'area': 1.0,
     'plantingDate': '2024-03-05', 'harvestDate': None, 'notes': 'drip line'},
]

ACTIVITIES = [
    {'id': 11, 'type': 'Irrigation', 'description': 'First watering', 'date': '2024-01-15',
     'crop': {'id': 1, 'name': 'Wheat'}},
    {'id': 12, 'type': 'Fertilizing', 'description': 'Urea top dressing', 'date': '2024-02-20',
     'crop': {'id': 1, 'name': 'Wheat'}},
    {'id': 13, 'type': 'Equipment Maintenance', 'description': 'Tractor service', 'date': '2024-03-01',
     'crop': None},
]

EXPENSES = [
    {'id': 21, 'expenseTitle': 'Seed bags', 'amount': 1200, 'category': 'Seeds & Plants',
     'expenseDate': '2024-01-08', 'description': 'Certified seed'},
    {'id': 22, 'expenseTitle': 'Urea', 'amount': 850.5, 'category': 'Fertilizers',
     'expenseDate': '2024-02-18', 'description': None},
    {'id': 23, 'expenseTitle': 'Diesel', 'amount': 400, 'category': 'Fuel',
     'expenseDate': '2024-03-02', 'description': 'Tractor "main" tank'},
]


class FakeFarmApi:
    """Backend double; set `failures[name] = exc` to make a method raise"""

    def __init__(self, crops=None, activities=None, expenses=None):
        self.crops = [dict(c) for c in (CROPS if crops is None else crops)]
        self.activities = [dict(a) for a in (ACTIVITIES if activities is None else activities)]
        self.expenses = [dict(e) for e in (EXPENSES if expenses is None else expenses)]
        self.reports = {
            'expenses_by_category': {'Seeds & Plants': 1200.0, 'Fertilizers': 850.5},
            'activities_by_crop': {'Wheat': 2},
            'activities_by_type': {'Irrigation': 1, 'Fertilizing': 1},
        }
        self.upcoming = []
        self.month_total = 0.0
        self.failures = {}
        self.calls = []
        self.auth_response = {'token': 'jwt-token', 'username': 'ravi',
                              'email': 'ravi@example.com', 'role': 'FARMER'}

    def _call(self, name, *args):
        self.calls.append((name,) + args)
        if name in self.failures:
            raise self.failures[name]

    def login(self, username, password):
        self._call('login', username, password)
        return self.auth_response

    def register(self, username, email, password, role=None):
        self._call('register', username, email, password)
        return {'message': 'User registered successfully'}

    def list_crops(self):
        self._call('list_crops')
        return self.crops

    def list_activities(self):
        self._call('list_activities')
        return self.activities

    def list_expenses(self):
        self._call('list_expenses')
        return self.expenses

    def create_crop(self, crop):
        self._call('create_crop', crop)
        return crop

    def update_crop(self, crop_id, crop):
        self._call('update_crop', crop_id, crop)
        return crop

    def delete_crop(self, crop_id):
        self._call('delete_crop', crop_id)

    def create_activity(self, activity):
        self._call('create_activity', activity)
        return activity

    def update_activity(self, activity_id, activity):
        self._call('update_activity', activity_id, activity)
        return activity

    def delete_activity(self, activity_id):
        self._call('delete_activity', activity_id)

    def create_expense(self, expense):
        self._call('create_expense', expense)
        return expense

    def update_expense(self, expense_id, expense):
        self._call('update_expense', expense_id, expense)
        return expense

    def delete_expense(self, expense_id):
        self._call('delete_expense', expense_id)

    def expenses_by_category(self):
        self._call('expenses_by_category')
        return self.reports['expenses_by_category']

    def activities_by_crop(self):
        self._call('activities_by_crop')
        return self.reports['activities_by_crop']

    def activities_by_type(self):
        self._call('activities_by_type')
        return self.reports['activities_by_type']

    def upcoming_activities(self, days=7):
        self._call('upcoming_activities', days)
        return self.upcoming

    def expense_total_in_range(self, start, end):
        self._call('expense_total_in_range', start, end)
        return self.month_total

    def called(self, name):
        return [c for c in self.calls if c[0] == name]


@pytest.fixture()
def fake_api():
    return FakeFarmApi()


@pytest.fixture()
def app(fake_api):
    app = create_app({
        'TESTING': True,
        'SECRET_KEY': 'test-secret',
        'API_CLIENT_FACTORY': lambda store: fake_api,
    })
    yield app


@pytest.fixture()
def client(app):
    return app.test_client()


@pytest.fixture()
def logged_in(client):
    """Test client whose session already holds a bearer token"""
    with client.session_transaction() as sess:
        sess['token'] = 'jwt-token'
        sess['user_info'] = {'username': 'ravi', 'email': 'ravi@example.com', 'role': 'FARMER'}
    return client
