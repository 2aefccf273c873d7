"""Streamlit app for the finance tracker.

This module wires the record stores, the filter/sort/pagination engines,
the analytics and the exports into a small multi-view application:

* **Expenses / Incomes** – searchable, sortable, paginated lists with
  CSV download, editing and deletion
* **Analytics** – category, monthly and weekly charts plus a PDF report
* **Budget** – monthly income vs expense and a calendar heat map

To run the dashboard from the command line::

    streamlit run finance_tracker/dashboard.py
"""

from __future__ import annotations

import logging
import os
import sys
from datetime import date
from typing import Dict, Optional

import pandas as pd
import streamlit as st

if __package__:
    from . import config
    from . import visualization as viz
    from .analytics import RecordAnalytics, compute_statistics
    from .api_client import ApiClient, AuthService, RecordService, RecordStore
    from .exceptions import ExportError, FinanceTrackerError, ValidationError, user_message
    from .export import csv_filename, export_pdf_report, pdf_filename, records_to_csv
    from .filters import FilterSpec, apply_filters
    from .formatting import format_currency, month_name
    from .pagination import PageState, total_pages
    from .records import Record, RecordKind, frame_to_records, parse_date
    from .session import AppContext
    from .sorting import SORT_LABELS, sort_records
else:
    CURRENT_DIR = os.path.dirname(os.path.abspath(__file__))
    PARENT_DIR = os.path.dirname(CURRENT_DIR)
    if PARENT_DIR not in sys.path:
        sys.path.insert(0, PARENT_DIR)
    from finance_tracker import config  # type: ignore
    from finance_tracker import visualization as viz  # type: ignore
    from finance_tracker.analytics import RecordAnalytics, compute_statistics  # type: ignore
    from finance_tracker.api_client import ApiClient, AuthService, RecordService, RecordStore  # type: ignore
    from finance_tracker.exceptions import ExportError, FinanceTrackerError, ValidationError, user_message  # type: ignore
    from finance_tracker.export import csv_filename, export_pdf_report, pdf_filename, records_to_csv  # type: ignore
    from finance_tracker.filters import FilterSpec, apply_filters  # type: ignore
    from finance_tracker.formatting import format_currency, month_name  # type: ignore
    from finance_tracker.pagination import PageState, total_pages  # type: ignore
    from finance_tracker.records import Record, RecordKind, frame_to_records, parse_date  # type: ignore
    from finance_tracker.session import AppContext  # type: ignore
    from finance_tracker.sorting import SORT_LABELS, sort_records  # type: ignore

logger = logging.getLogger(__name__)

VIEWS = ["Expenses", "Incomes", "Analytics", "Budget"]


# ---------------------------------------------------------------------------
# Application context
# ---------------------------------------------------------------------------


def get_context() -> AppContext:
    """Hydrate the context once per browser session."""
    ctx = st.session_state.get('app_context')
    if ctx is None:
        ctx = AppContext.hydrate()
        ctx.on_teardown(_close_stores)
        st.session_state['app_context'] = ctx
    return ctx


def get_client(ctx: AppContext) -> ApiClient:
    client = st.session_state.get('api_client')
    if client is None or client.context is not ctx:
        client = ApiClient(ctx)
        st.session_state['api_client'] = client
    return client


def get_store(client: ApiClient, kind: RecordKind) -> RecordStore:
    key = f"store_{kind.value}"
    store = st.session_state.get(key)
    if store is None or store.cancel_token.cancelled:
        store = RecordStore(RecordService(client, kind))
        st.session_state[key] = store
        st.session_state[f"{key}_loaded"] = False
    if not st.session_state.get(f"{key}_loaded"):
        st.session_state[f"{key}_error"] = None
        try:
            store.load()
        except FinanceTrackerError as exc:
            logger.error("Error fetching %s: %s", kind.plural, exc)
            st.session_state[f"{key}_error"] = user_message(exc)
        else:
            st.session_state[f"{key}_loaded"] = True
    return store


def _close_stores() -> None:
    for kind in RecordKind:
        store = st.session_state.pop(f"store_{kind.value}", None)
        if store is not None:
            store.close()
        st.session_state.pop(f"store_{kind.value}_loaded", None)


THEME_CSS = {
    'dark': """
        <style>
        .stApp {
            background-color: #111827;
            color: #f9fafb;
        }
        .stMetric {
            background-color: #1f2937;
            padding: 1rem;
            border-radius: 0.5rem;
        }
        </style>
        """,
    'light': """
        <style>
        .stApp {
            background-color: #f9fafb;
            color: #111827;
        }
        .stMetric {
            background-color: #ffffff;
            padding: 1rem;
            border-radius: 0.5rem;
        }
        </style>
        """,
}


def apply_theme(theme: str) -> None:
    """Apply the dark or light page styling."""
    st.markdown(THEME_CSS.get(theme, THEME_CSS['dark']), unsafe_allow_html=True)


def _plot(container, fig, theme: str) -> None:
    container.plotly_chart(viz.apply_chart_theme(fig, theme), use_container_width=True)


# ---------------------------------------------------------------------------
# Views
# ---------------------------------------------------------------------------


def render_login(ctx: AppContext, client: ApiClient) -> None:
    st.title("💰 Finance Tracker")
    login_tab, register_tab = st.tabs(["Login", "Register"])
    auth = AuthService(client)
    with login_tab:
        with st.form("login_form"):
            username = st.text_input("Username")
            password = st.text_input("Password", type="password")
            submitted = st.form_submit_button("Login")
        if submitted:
            try:
                auth.login({'username': username, 'password': password})
                st.rerun()
            except FinanceTrackerError as exc:
                st.error(user_message(exc))
    with register_tab:
        with st.form("register_form"):
            username = st.text_input("Username", key="reg_user")
            email = st.text_input("Email")
            password = st.text_input("Password", type="password", key="reg_pass")
            submitted = st.form_submit_button("Register")
        if submitted:
            try:
                auth.register({'username': username, 'email': email, 'password': password})
                st.success("Registration successful. Please login.")
            except FinanceTrackerError as exc:
                st.error(user_message(exc))


def _record_form(kind: RecordKind, key: str, record: Optional[Record] = None) -> Optional[Record]:
    with st.form(key, clear_on_submit=record is None):
        title = st.text_input("Title", value=record.title if record else "")
        amount = st.number_input("Amount", min_value=0.0, step=0.01,
                                 value=float(record.amount) if record else 0.0)
        categories = list(kind.categories)
        index = categories.index(record.category) if record and record.category in categories else 0
        category = st.selectbox("Category", categories, index=index)
        entry_date = st.date_input("Date", value=record.date if record and record.date else date.today(),
                                   max_value=date.today())
        note = st.text_area("Description", value=record.note if record else "")
        submitted = st.form_submit_button("Save")
    if not submitted:
        return None
    return Record(kind=kind, title=title, amount=amount, category=category,
                  date=parse_date(entry_date), note=note, id=record.id if record else None)


def render_record_list(store: RecordStore) -> None:
    kind = store.kind
    st.header(f"All {kind.label}s")
    flash = st.session_state.pop(f"flash_{kind.value}", None)
    if flash:
        st.success(flash)
    error = st.session_state.get(f"store_{kind.value}_error")
    if error:
        st.error(error)
        return

    with st.expander(f"➕ Add {kind.label}"):
        new_record = _record_form(kind, f"add_{kind.value}")
        if new_record is not None:
            try:
                store.add(new_record)
                st.success(f"{kind.label} added successfully!")
            except ValidationError as exc:
                for field_name, message in exc.errors.items():
                    st.error(f"{field_name}: {message}")
            except FinanceTrackerError as exc:
                st.error(f"Error: {user_message(exc)}")

    state_key = f"page_{kind.value}"
    page: PageState = st.session_state.get(state_key, PageState(page_size=config.DEFAULT_PAGE_SIZE))

    cols = st.columns([3, 2, 2, 2])
    search = cols[0].text_input("Search", key=f"search_{kind.value}")
    category = cols[1].selectbox("Category", ['all'] + list(kind.categories), key=f"cat_{kind.value}")
    start = cols[2].date_input("From", value=None, key=f"start_{kind.value}")
    end = cols[3].date_input("To", value=None, key=f"end_{kind.value}")
    spec = FilterSpec(search_term=search, category=category, date_start=start, date_end=end)

    cols = st.columns([2, 1])
    sort_key = cols[0].selectbox("Sort by", list(SORT_LABELS), format_func=SORT_LABELS.get,
                                 key=f"sort_{kind.value}")
    page_size = cols[1].selectbox("Per page", config.PAGE_SIZE_OPTIONS,
                                  index=config.PAGE_SIZE_OPTIONS.index(page.page_size)
                                  if page.page_size in config.PAGE_SIZE_OPTIONS else 0,
                                  key=f"size_{kind.value}")

    reset = st.session_state.pop(f"pageno_reset_{kind.value}", False)
    if st.session_state.get(f"spec_{kind.value}") != spec:
        page = page.with_filters_changed()
        st.session_state[f"spec_{kind.value}"] = spec
        reset = True
    if page_size != page.page_size:
        page = page.with_page_size(page_size)
        reset = True

    filtered = apply_filters(store.frame, spec)
    ordered = sort_records(filtered, sort_key)
    stats = compute_statistics(filtered)

    metric_cols = st.columns(4)
    metric_cols[0].metric("Total", format_currency(stats.total))
    metric_cols[1].metric("Average", format_currency(stats.average))
    metric_cols[2].metric("Highest", format_currency(stats.max))
    metric_cols[3].metric("Count", stats.count)

    st.download_button("📥 Export CSV", data=records_to_csv(ordered).encode('utf-8'),
                       file_name=csv_filename(kind), mime='text/csv')

    pages = total_pages(len(ordered), page.page_size)
    if pages > 1:
        pageno_key = f"pageno_{kind.value}"
        # The widget value must be written before the widget is built.
        if reset or pageno_key not in st.session_state or st.session_state[pageno_key] > pages:
            st.session_state[pageno_key] = min(page.page_number, pages)
        requested = st.number_input("Page", min_value=1, max_value=pages, key=pageno_key)
        page = page.go_to(int(requested), len(ordered))
    st.session_state[state_key] = page

    for record in frame_to_records(page.slice(ordered)):
        _render_record_row(store, record, page)


def _render_record_row(store: RecordStore, record: Record, page: PageState) -> None:
    cols = st.columns([3, 2, 2, 2, 1, 1])
    cols[0].write(f"**{record.title}**  \n{record.note or '-'}")
    cols[1].write(record.category)
    cols[2].write(format_currency(record.amount))
    cols[3].write(record.date.isoformat() if record.date else '-')
    if cols[4].button("✏️", key=f"edit_{record.kind.value}_{record.id}"):
        st.session_state['editing'] = (record.kind.value, record.id)
    if cols[5].button("🗑️", key=f"delete_{record.kind.value}_{record.id}"):
        try:
            store.remove(record.id)
            st.session_state[f"page_{record.kind.value}"] = page.after_removal(len(store.records))
            st.session_state[f"pageno_reset_{record.kind.value}"] = True
            st.session_state[f"flash_{record.kind.value}"] = f"{record.kind.label} deleted successfully!"
            st.rerun()
        except FinanceTrackerError as exc:
            st.error(f"Failed to delete {record.kind.value}: {user_message(exc)}")

    if st.session_state.get('editing') == (record.kind.value, record.id):
        updated = _record_form(record.kind, f"edit_form_{record.kind.value}_{record.id}", record)
        if updated is not None:
            try:
                store.update(record.id, updated)
                st.session_state.pop('editing', None)
                st.rerun()
            except FinanceTrackerError as exc:
                st.error(f"Error: {user_message(exc)}")


def render_analytics(stores: Dict[RecordKind, RecordStore], theme: str = 'dark') -> None:
    st.header("📊 Analytics")
    today = date.today()
    cols = st.columns(4)
    kind = RecordKind(cols[0].radio("View", [k.value for k in RecordKind],
                                    format_func=str.capitalize, horizontal=True))
    time_range = cols[1].selectbox("Time range", ['all', 'month', 'year'],
                                   format_func={'all': 'All Time', 'month': 'Month', 'year': 'Year'}.get)
    base = RecordAnalytics(stores[kind].frame)
    years = base.available_years() or [today.year]
    year = cols[2].selectbox("Year", years)
    month = cols[3].selectbox("Month", list(range(1, 13)), index=today.month - 1, format_func=month_name)

    analytics = base.for_period(time_range, year, month)
    summary = analytics.summary(time_range, today)
    stats = summary['statistics']

    metric_cols = st.columns(4)
    metric_cols[0].metric(f"Total {kind.label}s", format_currency(stats.total))
    metric_cols[1].metric("Average", format_currency(stats.average))
    metric_cols[2].metric("Highest", format_currency(stats.max))
    metric_cols[3].metric("Lowest", format_currency(stats.min))

    try:
        pdf = export_pdf_report(analytics.data, kind, time_range, year, month)
    except ExportError as exc:
        st.error(str(exc))
    else:
        st.download_button("📄 Export PDF", data=pdf, file_name=pdf_filename(kind, time_range),
                           mime='application/pdf')

    left, right = st.columns(2)
    _plot(left, viz.create_category_pie_chart(summary['categories'], f"{kind.category_label} breakdown"), theme)
    _plot(right, viz.create_trend_line_chart(summary['monthly_trend']), theme)
    _plot(st, viz.create_weekly_bar_chart(summary['weekly_trend']), theme)

    insights = summary['insights']
    st.subheader("Insights")
    icols = st.columns(4)
    if insights.top_category:
        top = insights.top_category
        icols[0].metric(f"Top {kind.category_label}", top.name,
                        f"{format_currency(top.value)} ({top.percentage:.1f}% of total)", delta_color="off")
    if insights.trend_direction:
        icols[1].metric("Trend", "📈 Increasing" if insights.trend_direction == 'increasing' else "📉 Decreasing")
    icols[2].metric("Transactions per day", f"{insights.transactions_per_day:.1f}")
    icols[3].metric(f"{kind.category_label} diversity", insights.category_count)


def render_budget(stores: Dict[RecordKind, RecordStore], theme: str = 'dark') -> None:
    st.header("⚖️ Monthly Budget Overview")
    today = date.today()
    combined = pd.concat([stores[k].frame for k in RecordKind], ignore_index=True)
    analytics = RecordAnalytics(combined)
    years = analytics.available_years() or [today.year]

    cols = st.columns(2)
    month = cols[0].selectbox("Month", list(range(1, 13)), index=today.month - 1, format_func=month_name,
                              key="budget_month")
    year = cols[1].selectbox("Year", years, key="budget_year")

    balance = analytics.monthly_balance(year, month)
    metric_cols = st.columns(3)
    metric_cols[0].metric("Income", format_currency(balance.income))
    metric_cols[1].metric("Expenses", format_currency(balance.expense))
    metric_cols[2].metric("Balance", format_currency(balance.balance))

    left, right = st.columns(2)
    _plot(left, viz.create_income_expense_pie(balance.as_pie_data()), theme)
    _plot(right, viz.create_calendar_heatmap(analytics.calendar_month(year, month), f"{month_name(month)} {year}"),
          theme)


def main() -> None:
    """Entry point for the Streamlit app."""
    config.configure_logging()
    st.set_page_config(page_title="Finance Tracker", page_icon="💰", layout="wide")
    ctx = get_context()
    client = get_client(ctx)

    if not ctx.is_authenticated:
        apply_theme(ctx.theme)
        render_login(ctx, client)
        return

    st.sidebar.write(f"Welcome, **{ctx.user.get('username', '')}**!")
    if st.sidebar.toggle("🌙 Dark mode", value=ctx.is_dark_mode) != ctx.is_dark_mode:
        ctx.toggle_theme()
    apply_theme(ctx.theme)
    if st.sidebar.button("Logout"):
        AuthService(client).logout()
        st.rerun()

    view = st.sidebar.radio("Navigate", VIEWS)
    stores = {kind: get_store(client, kind) for kind in RecordKind}
    if not ctx.is_authenticated:
        st.warning("Session expired. Please login again.")
        st.rerun()

    if view == "Expenses":
        render_record_list(stores[RecordKind.EXPENSE])
    elif view == "Incomes":
        render_record_list(stores[RecordKind.INCOME])
    elif view == "Analytics":
        render_analytics(stores, ctx.theme)
    else:
        render_budget(stores, ctx.theme)


if __name__ == "__main__":  # pragma: no cover
    main()
