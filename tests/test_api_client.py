import json
import types
from datetime import date

import pytest
import requests

from finance_tracker.api_client import (
    ApiClient,
    AuthService,
    CancellationToken,
    RecordService,
    RecordStore,
    load_collections,
)
from finance_tracker.exceptions import (
    ApiError,
    AuthenticationError,
    RequestCancelled,
    SessionExpiredError,
    ValidationError,
    user_message,
)
from finance_tracker.records import Record, RecordKind
from finance_tracker.session import AppContext


def fake_response(status_code=200, body=None):
    content = b'' if body is None else json.dumps(body).encode('utf-8')

    def _json():
        if not content:
            raise ValueError('empty body')
        return json.loads(content)

    return types.SimpleNamespace(status_code=status_code, content=content, text=content.decode(), json=_json)


class FakeSession:
    """Records calls and replays queued responses keyed by (method, path suffix)."""

    def __init__(self, responses=None):
        self.headers = {}
        self.calls = []
        self.responses = responses or {}

    def request(self, method, url, json=None, headers=None, timeout=None):
        self.calls.append({'method': method, 'url': url, 'json': json, 'headers': headers})
        for (m, suffix), response in self.responses.items():
            if m == method and url.endswith(suffix):
                if isinstance(response, Exception):
                    raise response
                return response(self) if callable(response) else response
        return fake_response(404, {'message': 'Not found'})


def logged_in_context(tmp_path):
    ctx = AppContext.hydrate(tmp_path / 'session.json')
    ctx.login({'accessToken': 'tok', 'refreshToken': 'ref', 'username': 'ann'})
    return ctx


def make_client(tmp_path, responses):
    session = FakeSession(responses)
    client = ApiClient(logged_in_context(tmp_path), base_url='http://api.test/api', session=session)
    return client, session


EXPENSES = [
    {'id': 1, 'title': 'Lunch', 'amount': 12.5, 'category': 'Food', 'note': '', 'expenseDate': '2024-01-05'},
    {'id': 2, 'title': 'Taxi', 'amount': '30', 'category': 'Transport', 'note': 'late', 'expenseDate': '2024-01-06'},
]


def test_request_attaches_bearer_token(tmp_path):
    client, session = make_client(tmp_path, {('GET', '/expenses'): fake_response(200, EXPENSES)})
    records = RecordService(client, 'expense').list_records()
    assert [r.title for r in records] == ['Lunch', 'Taxi']
    assert records[1].amount == 30.0
    assert session.calls[0]['headers']['Authorization'] == 'Bearer tok'
    assert session.calls[0]['url'] == 'http://api.test/api/expenses'


def test_missing_token_fails_before_network(tmp_path):
    session = FakeSession()
    client = ApiClient(AppContext.hydrate(tmp_path / 'session.json'), session=session)
    with pytest.raises(AuthenticationError) as excinfo:
        RecordService(client, 'income').list_records()
    assert session.calls == []
    assert user_message(excinfo.value) == 'Authentication token missing. Please login again.'


def test_token_rejection_tears_down_session(tmp_path):
    client, _ = make_client(tmp_path, {('GET', '/expenses'): fake_response(401, {'message': 'Invalid token'})})
    closed = []
    client.context.on_teardown(lambda: closed.append(True))
    with pytest.raises(SessionExpiredError) as excinfo:
        RecordService(client, 'expense').list_records()
    assert client.context.access_token is None
    assert not client.context.is_authenticated
    assert closed == [True]
    assert user_message(excinfo.value) == 'Session expired. Please login again.'


def test_other_401_keeps_session(tmp_path):
    client, _ = make_client(tmp_path, {('GET', '/expenses'): fake_response(401, {'message': 'Bad credentials'})})
    with pytest.raises(ApiError) as excinfo:
        RecordService(client, 'expense').list_records()
    assert not isinstance(excinfo.value, SessionExpiredError)
    assert client.context.access_token == 'tok'
    assert user_message(excinfo.value) == 'Bad credentials'


def test_server_error_uses_fallback_message(tmp_path):
    client, _ = make_client(tmp_path, {('GET', '/incomes'): fake_response(500)})
    with pytest.raises(ApiError, match='Failed to fetch incomes') as excinfo:
        RecordService(client, 'income').list_records()
    assert excinfo.value.status == 500


def test_network_failure_wrapped(tmp_path):
    client, _ = make_client(tmp_path, {('GET', '/expenses'): requests.ConnectionError('down')})
    with pytest.raises(ApiError, match='Failed to fetch expenses'):
        RecordService(client, 'expense').list_records()


def test_create_validates_before_sending(tmp_path):
    client, session = make_client(tmp_path, {})
    bad = Record(RecordKind.EXPENSE, '', 0, 'Food', date(2024, 1, 1))
    with pytest.raises(ValidationError):
        RecordService(client, 'expense').create_record(bad)
    assert session.calls == []


def test_store_add_refetches_collection(tmp_path):
    created = dict(EXPENSES[0], id=3)
    client, session = make_client(tmp_path, {
        ('POST', '/expenses'): fake_response(201, created),
        ('GET', '/expenses'): fake_response(200, EXPENSES + [created]),
    })
    store = RecordStore(RecordService(client, 'expense'))
    record = Record(RecordKind.EXPENSE, 'Lunch', 12.5, 'Food', date(2024, 1, 5))
    result = store.add(record)
    assert result.id == 3
    assert len(store.records) == 3
    assert session.calls[0]['json']['expenseDate'] == '2024-01-05'


def test_store_remove_drops_record_locally(tmp_path):
    client, session = make_client(tmp_path, {
        ('GET', '/expenses'): fake_response(200, EXPENSES),
        ('DELETE', '/expenses/1'): fake_response(204),
    })
    store = RecordStore(RecordService(client, 'expense'))
    assert store.load()
    store.remove(1)
    assert [r.id for r in store.records] == [2]
    assert [c['method'] for c in session.calls] == ['GET', 'DELETE']


def test_cancelled_store_discards_response(tmp_path):
    token = CancellationToken()

    def respond_then_close(_session):
        token.cancel()
        return fake_response(200, EXPENSES)

    client, _ = make_client(tmp_path, {('GET', '/expenses'): respond_then_close})
    store = RecordStore(RecordService(client, 'expense'), token)
    with pytest.raises(RequestCancelled):
        store.load()
    assert store.records == []


def test_load_collections_returns_both_frames(tmp_path):
    incomes = [{'id': 9, 'title': 'Pay', 'amount': 1000, 'category': 'Salary', 'incomeDate': '2024-01-31'}]
    client, _ = make_client(tmp_path, {
        ('GET', '/expenses'): fake_response(200, EXPENSES),
        ('GET', '/incomes'): fake_response(200, incomes),
    })
    expenses_frame, incomes_frame = load_collections(client)
    assert list(expenses_frame['id']) == [1, 2]
    assert list(incomes_frame['kind']) == ['income']


def test_login_and_logout(tmp_path):
    session = FakeSession({
        ('POST', '/auth/login'): fake_response(200, {'accessToken': 'new', 'refreshToken': 'r', 'username': 'bo'}),
        ('POST', '/auth/logout'): fake_response(500),
    })
    client = ApiClient(AppContext.hydrate(tmp_path / 'session.json'), session=session)
    auth = AuthService(client)
    auth.login({'username': 'bo', 'password': 'pw'})
    assert client.context.access_token == 'new'
    assert client.context.user == {'username': 'bo'}
    auth.logout()
    assert not client.context.is_authenticated


def test_wrong_password_shows_server_message(tmp_path):
    session = FakeSession({('POST', '/auth/login'): fake_response(401, {'message': 'Bad credentials'})})
    client = ApiClient(AppContext.hydrate(tmp_path / 'session.json'), session=session)
    with pytest.raises(ApiError) as excinfo:
        AuthService(client).login({'username': 'bo', 'password': 'nope'})
    assert not isinstance(excinfo.value, SessionExpiredError)
    assert user_message(excinfo.value) == 'Bad credentials'


def test_login_rejection_without_body_uses_fallback(tmp_path):
    session = FakeSession({('POST', '/auth/login'): fake_response(401)})
    client = ApiClient(AppContext.hydrate(tmp_path / 'session.json'), session=session)
    with pytest.raises(ApiError) as excinfo:
        AuthService(client).login({'username': 'bo', 'password': 'nope'})
    assert user_message(excinfo.value) == 'Invalid username or password. Please try again.'


@pytest.mark.parametrize('message, torn_down', [
    ('Invalid token', True),
    ('Unauthorized access', True),
    ('Token expired', False),
    ('unauthorized', False),
])
def test_session_markers_are_case_sensitive(tmp_path, message, torn_down):
    client, _ = make_client(tmp_path, {('GET', '/expenses'): fake_response(403, {'message': message})})
    with pytest.raises(ApiError) as excinfo:
        RecordService(client, 'expense').list_records()
    assert isinstance(excinfo.value, SessionExpiredError) is torn_down
    assert (client.context.access_token is None) is torn_down
