import types

import pytest

pytest.importorskip('streamlit')

from finance_tracker import dashboard  # noqa: E402
from finance_tracker.api_client import ApiClient  # noqa: E402
from finance_tracker.records import RecordKind  # noqa: E402
from finance_tracker.session import AppContext  # noqa: E402
from test_api_client import FakeSession, fake_response  # noqa: E402


def test_get_context_is_created_once(monkeypatch, tmp_path):
    state = {}
    monkeypatch.setattr(dashboard, 'st', types.SimpleNamespace(session_state=state))
    monkeypatch.setattr(dashboard.AppContext, 'hydrate',
                        classmethod(lambda cls, path=None: cls(path=tmp_path / 'session.json')))
    first = dashboard.get_context()
    assert dashboard.get_context() is first
    assert state['app_context'] is first


def test_get_store_reports_expired_session(monkeypatch, tmp_path):
    state = {}
    monkeypatch.setattr(dashboard, 'st', types.SimpleNamespace(session_state=state))
    ctx = AppContext.hydrate(tmp_path / 'session.json')
    ctx.login({'accessToken': 'tok', 'username': 'ann'})
    session = FakeSession({('GET', '/expenses'): fake_response(401, {'message': 'JWT token expired'})})
    client = ApiClient(ctx, base_url='http://api.test/api', session=session)

    dashboard.get_store(client, RecordKind.EXPENSE)
    assert state['store_expense_error'] == 'Session expired. Please login again.'
    assert state['store_expense_loaded'] is False
    assert not ctx.is_authenticated


def _expense_list_app():
    import types
    from datetime import date

    from finance_tracker import dashboard
    from finance_tracker.records import Record, RecordKind, records_to_frame

    records = [
        Record(RecordKind.EXPENSE, f'Item {i}', float(i + 1), 'Food', date(2024, 1, i + 1), id=i + 1)
        for i in range(20)
    ]
    store = types.SimpleNamespace(kind=RecordKind.EXPENSE, frame=records_to_frame(records), records=records)
    dashboard.render_record_list(store)


def _page_widget(at):
    return next(widget for widget in at.number_input if widget.label == 'Page')


def test_filter_change_returns_list_to_first_page():
    from streamlit.testing.v1 import AppTest

    at = AppTest.from_function(_expense_list_app).run()
    _page_widget(at).set_value(3).run()
    assert at.session_state['page_expense'].page_number == 3

    at.text_input(key='search_expense').input('Item').run()
    assert not at.exception
    assert at.session_state['page_expense'].page_number == 1
    assert _page_widget(at).value == 1


def test_page_size_change_returns_list_to_first_page():
    from streamlit.testing.v1 import AppTest

    at = AppTest.from_function(_expense_list_app).run()
    _page_widget(at).set_value(4).run()
    at.selectbox(key='size_expense').select(10).run()
    assert at.session_state['page_expense'] == dashboard.PageState(page_size=10, page_number=1)
    assert _page_widget(at).value == 1


def test_apply_theme_injects_styles(monkeypatch):
    calls = []
    monkeypatch.setattr(dashboard, 'st', types.SimpleNamespace(
        markdown=lambda body, unsafe_allow_html=False: calls.append((body, unsafe_allow_html)),
    ))
    dashboard.apply_theme('light')
    dashboard.apply_theme('dark')
    assert calls[0][0] == dashboard.THEME_CSS['light']
    assert calls[1][0] == dashboard.THEME_CSS['dark']
    assert all(flag for _, flag in calls)
