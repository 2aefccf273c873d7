"""Plotly visualisation helpers for the finance tracker.

Each function accepts the dataclasses returned by :mod:`analytics` and
produces an interactive Plotly figure that Streamlit renders via
``st.plotly_chart``.  Empty inputs produce an empty figure titled
"No data to display" rather than raising.
"""

from __future__ import annotations

from typing import Dict, List, Sequence

import pandas as pd
import plotly.express as px
import plotly.graph_objects as go

from .analytics import CalendarMonth, CategoryShare, TrendPoint, day_activity

COLORS = [
    '#10b981', '#3b82f6', '#f59e0b', '#ef4444', '#8b5cf6',
    '#ec4899', '#14b8a6', '#f97316', '#6366f1', '#84cc16',
]
INCOME_EXPENSE_COLORS = ['#10b981', '#ef4444']
ACTIVITY_RGB = {
    'income': (16, 185, 129),
    'expense': (239, 68, 68),
    'balanced': (251, 191, 36),
}
WEEKDAY_LABELS = ['Sun', 'Mon', 'Tue', 'Wed', 'Thu', 'Fri', 'Sat']


def _empty_figure(title: str = "No data to display") -> go.Figure:
    fig = go.Figure()
    fig.update_layout(title=title)
    return fig


def create_category_pie_chart(shares: Sequence[CategoryShare], title: str | None = None) -> go.Figure:
    """Pie chart of a category breakdown.

    Parameters
    ----------
    shares : sequence of CategoryShare
        Output of :func:`analytics.compute_category_breakdown`.
    title : str, optional
        Chart title.
    """
    if not shares:
        return _empty_figure()
    df = pd.DataFrame([{'Category': s.name, 'Value': s.value} for s in shares])
    fig = px.pie(df, names='Category', values='Value', color_discrete_sequence=COLORS)
    fig.update_traces(textinfo='percent+label', hovertemplate='%{label}: ₹%{value:,.2f}')
    fig.update_layout(title=title or "Category breakdown")
    return fig


def create_trend_line_chart(points: Sequence[TrendPoint], title: str | None = None) -> go.Figure:
    """Line chart of a monthly trend series."""
    if not points:
        return _empty_figure()
    df = pd.DataFrame([{'Period': p.period, 'Amount': p.amount} for p in points])
    fig = px.line(df, x='Period', y='Amount', markers=True)
    fig.update_traces(line_color=COLORS[0])
    fig.update_layout(title=title or "Monthly trend", xaxis_title="Month", yaxis_title="Amount (₹)")
    return fig


def create_weekly_bar_chart(points: Sequence[TrendPoint], title: str | None = None) -> go.Figure:
    """Bar chart of the most recent weekly totals."""
    if not points:
        return _empty_figure()
    years = {p.year for p in points}
    labels = [p.period if len(years) <= 1 else f"{p.year} {p.period}" for p in points]
    df = pd.DataFrame({'Week': labels, 'Amount': [p.amount for p in points]})
    fig = px.bar(df, x='Week', y='Amount')
    fig.update_traces(marker_color=COLORS[1])
    fig.update_layout(title=title or "Weekly comparison", xaxis_title="Week", yaxis_title="Amount (₹)")
    return fig


def create_income_expense_pie(pie_data: List[Dict[str, float]], title: str | None = None) -> go.Figure:
    """Income vs expense split from :meth:`MonthlyBalance.as_pie_data`."""
    if not pie_data:
        return _empty_figure("No transactions this month")
    df = pd.DataFrame(pie_data)
    fig = px.pie(df, names='name', values='value', color_discrete_sequence=INCOME_EXPENSE_COLORS)
    fig.update_layout(title=title or "Income vs Expense")
    return fig


def _cell_colour(state: str, intensity: float) -> str:
    if state == 'none':
        return 'rgba(107, 114, 128, 0.1)'
    r, g, b = ACTIVITY_RGB[state]
    return f"rgba({r}, {g}, {b}, {0.2 + intensity * 0.6:.2f})"


def create_calendar_heatmap(month: CalendarMonth, title: str | None = None) -> go.Figure:
    """Month grid (Sunday first) coloured by income/expense balance per day.

    Cells are drawn as a table so each day keeps its own colour; the
    hover text carries the day's income and expense.
    """
    peak = month.peak_total
    slots = [None] * month.first_weekday + list(range(1, month.days_in_month + 1))
    slots += [None] * (-len(slots) % 7)
    weeks = [slots[i:i + 7] for i in range(0, len(slots), 7)]

    values: List[List[str]] = [[] for _ in range(7)]
    fills: List[List[str]] = [[] for _ in range(7)]
    for week in weeks:
        for col, day in enumerate(week):
            if day is None:
                values[col].append('')
                fills[col].append('rgba(0, 0, 0, 0)')
                continue
            cell = month.days[day]
            activity = day_activity(cell, peak)
            text = f"<b>{day}</b>"
            if cell.income:
                text += f"<br>+₹{cell.income:,.0f}"
            if cell.expense:
                text += f"<br>-₹{cell.expense:,.0f}"
            values[col].append(text)
            fills[col].append(_cell_colour(activity.state, activity.intensity))

    fig = go.Figure(go.Table(
        header=dict(values=WEEKDAY_LABELS, align='center'),
        cells=dict(values=values, fill_color=fills, align='center', height=48),
    ))
    fig.update_layout(title=title or "Daily activity")
    return fig


CHART_TEMPLATES = {'dark': 'plotly_dark', 'light': 'plotly_white'}


def apply_chart_theme(fig: go.Figure, theme: str) -> go.Figure:
    """Switch a figure to the Plotly template matching the app theme."""
    fig.update_layout(template=CHART_TEMPLATES.get(theme, CHART_TEMPLATES['dark']))
    return fig
