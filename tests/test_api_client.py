"""
Tests for utils/api_client.py: bearer token, error mapping and session expiry

requests.Session.request is patched so no traffic leaves the test process.
"""
from concurrent.futures import ThreadPoolExecutor
from unittest.mock import MagicMock, patch

import pytest
import requests

from utils.api_client import ApiError, FarmApiClient, SessionExpired, _error_message
from utils.auth import SessionStore

BASE_URL = 'http://farm.test/api'


def make_response(status=200, body=None, text=None):
    response = MagicMock()
    response.status_code = status
    response.ok = 200 <= status < 300
    if body is not None:
        response.json.return_value = body
        response.content = b'{...}'
        response.text = str(body)
    else:
        response.json.side_effect = ValueError('no json')
        response.content = (text or '').encode()
        response.text = text or ''
    return response


@pytest.fixture()
def store():
    return SessionStore({'token': 'abc123', 'user_info': {'username': 'ravi'}, 'monthly_budget': 500})


@pytest.fixture()
def client(store):
    return FarmApiClient(BASE_URL, store, timeout=3)


class TestRequest:
    def test_bearer_header_attached(self, client):
        with patch.object(requests.Session, 'request', return_value=make_response(body=[])) as mock:
            client.list_crops()
        method, url = mock.call_args.args
        assert (method, url) == ('GET', f'{BASE_URL}/crops')
        assert mock.call_args.kwargs['headers']['Authorization'] == 'Bearer abc123'
        assert mock.call_args.kwargs['timeout'] == 3

    def test_token_read_at_call_time(self, client, store):
        store.storage['token'] = 'rotated'
        with patch.object(requests.Session, 'request', return_value=make_response(body=[])) as mock:
            client.list_expenses()
        assert mock.call_args.kwargs['headers']['Authorization'] == 'Bearer rotated'

    def test_login_is_unauthenticated(self, client):
        auth = {'token': 'new', 'username': 'ravi'}
        with patch.object(requests.Session, 'request', return_value=make_response(body=auth)) as mock:
            assert client.login('ravi', 'secret') == auth
        assert 'Authorization' not in mock.call_args.kwargs['headers']
        assert mock.call_args.kwargs['json'] == {'username': 'ravi', 'password': 'secret'}

    def test_login_rejection_is_api_error(self, client, store):
        with patch.object(requests.Session, 'request',
                          return_value=make_response(401, body={'message': 'Bad credentials'})):
            with pytest.raises(ApiError) as exc:
                client.login('ravi', 'wrong')
        assert exc.value.status_code == 401
        assert store.get_token() == 'abc123'

    def test_upcoming_passes_days(self, client):
        with patch.object(requests.Session, 'request', return_value=make_response(body=[])) as mock:
            client.upcoming_activities(7)
        assert mock.call_args.kwargs['params'] == {'days': 7}

    def test_date_range_total(self, client):
        with patch.object(requests.Session, 'request', return_value=make_response(body=1250.5)) as mock:
            assert client.expense_total_in_range('2024-03-01', '2024-04-01') == 1250.5
        assert mock.call_args.args[1].endswith('/expenses/report/date-range')
        assert mock.call_args.kwargs['params'] == {'start': '2024-03-01', 'end': '2024-04-01'}

    def test_delete_with_empty_body(self, client):
        with patch.object(requests.Session, 'request', return_value=make_response(204)) as mock:
            assert client.delete_crop(4) is None
        assert mock.call_args.args == ('DELETE', f'{BASE_URL}/crops/4')

    def test_update_sends_payload(self, client):
        payload = {'expenseTitle': 'Fuel', 'amount': 40.0}
        with patch.object(requests.Session, 'request', return_value=make_response(body=payload)) as mock:
            client.update_expense(9, payload)
        assert mock.call_args.args == ('PUT', f'{BASE_URL}/expenses/9')
        assert mock.call_args.kwargs['json'] == payload


class TestFailures:
    @pytest.mark.parametrize('status', [401, 403])
    def test_auth_failure_clears_session(self, client, store, status):
        with patch.object(requests.Session, 'request', return_value=make_response(status, text='Forbidden')):
            with pytest.raises(SessionExpired):
                client.list_activities()
        assert store.get_token() is None
        assert store.get_user_info() == {}
        assert store.get_budget() == 500

    def test_session_expired_is_not_an_api_error(self):
        assert not issubclass(SessionExpired, ApiError)

    def test_server_error_message(self, client):
        with patch.object(requests.Session, 'request',
                          return_value=make_response(400, body={'message': 'Crop name already exists'})):
            with pytest.raises(ApiError) as exc:
                client.create_crop({'name': 'Wheat'})
        assert exc.value.message == 'Crop name already exists'
        assert exc.value.status_code == 400

    def test_transport_error(self, client, store):
        with patch.object(requests.Session, 'request',
                          side_effect=requests.exceptions.ConnectionError('refused')):
            with pytest.raises(ApiError) as exc:
                client.list_crops()
        assert 'Unable to reach the farm server' in exc.value.message
        assert store.get_token() == 'abc123'


class TestResponseShape:
    def test_object_where_list_expected(self, client):
        with patch.object(requests.Session, 'request', return_value=make_response(body={'content': []})):
            with pytest.raises(ApiError) as exc:
                client.list_expenses()
        assert exc.value.message == 'Unexpected response from the farm server'

    def test_non_object_items_are_dropped(self, client):
        body = [{'id': 1, 'name': 'Wheat'}, None, 'junk', 4]
        with patch.object(requests.Session, 'request', return_value=make_response(body=body)):
            assert client.list_crops() == [{'id': 1, 'name': 'Wheat'}]

    def test_upcoming_must_be_a_list(self, client):
        with patch.object(requests.Session, 'request', return_value=make_response(body='soon')):
            with pytest.raises(ApiError):
                client.upcoming_activities(7)

    @pytest.mark.parametrize('body', [['Fuel', 400.0], 'Fuel', 12])
    def test_report_that_is_not_an_object(self, client, body):
        with patch.object(requests.Session, 'request', return_value=make_response(body=body)):
            assert client.expenses_by_category() == {}
            assert client.activities_by_crop() == {}
            assert client.activities_by_type() == {}

    def test_report_object_passes_through(self, client):
        with patch.object(requests.Session, 'request', return_value=make_response(body={'Fuel': 400.0})):
            assert client.expenses_by_category() == {'Fuel': 400.0}


class TestHttpSession:
    def test_one_session_per_thread(self, client):
        with ThreadPoolExecutor(max_workers=1) as pool:
            worker_http = pool.submit(lambda: client.http).result()
        assert client.http is client.http
        assert worker_http is not client.http
        assert worker_http.headers['Accept'] == 'application/json'

    def test_injected_session_is_shared(self, store):
        http = requests.Session()
        client = FarmApiClient(BASE_URL, store, http=http)
        with ThreadPoolExecutor(max_workers=1) as pool:
            assert pool.submit(lambda: client.http).result() is http
        assert http.headers['Content-Type'] == 'application/json'


class TestErrorMessage:
    def test_json_message(self):
        assert _error_message(make_response(400, body={'message': 'nope'})) == 'nope'

    def test_json_error_key(self):
        assert _error_message(make_response(400, body={'error': 'bad'})) == 'bad'

    def test_plain_string_body(self):
        assert _error_message(make_response(400, body='Invalid date')) == 'Invalid date'

    def test_text_body(self):
        assert _error_message(make_response(500, text='Internal Server Error\n')) == 'Internal Server Error'

    def test_empty_body(self):
        assert _error_message(make_response(500)) is None
