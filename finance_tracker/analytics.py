"""Record Analytics and Aggregation.

This module turns a flat record collection into the numbers the report
views display: summary statistics, category breakdowns, monthly and
weekly trend series, the budget calendar and a handful of insights.
Every function is total over an empty collection and returns zeroed or
empty results instead of raising.
"""

from __future__ import annotations

import calendar
import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Dict, List, Optional

import numpy as np
import pandas as pd

from .config import WEEKLY_TREND_LIMIT
from .filters import select_period
from .records import RecordKind

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Statistics:
    total: float = 0.0
    average: float = 0.0
    max: float = 0.0
    min: float = 0.0
    count: int = 0


@dataclass(frozen=True)
class CategoryShare:
    name: str
    value: float
    percentage: float


@dataclass(frozen=True)
class TrendPoint:
    period: str
    amount: float
    year: Optional[int] = None


@dataclass
class CalendarDay:
    day: int
    income: float = 0.0
    expense: float = 0.0
    total: float = 0.0


@dataclass
class CalendarMonth:
    year: int
    month: int
    days_in_month: int
    first_weekday: int
    days: Dict[int, CalendarDay] = field(default_factory=dict)

    @property
    def peak_total(self) -> float:
        return max((d.total for d in self.days.values()), default=0.0)


@dataclass(frozen=True)
class DayActivity:
    state: str
    intensity: float


@dataclass(frozen=True)
class MonthlyBalance:
    income: float = 0.0
    expense: float = 0.0

    @property
    def balance(self) -> float:
        return self.income - self.expense

    def as_pie_data(self) -> List[Dict[str, float]]:
        if self.income == 0 and self.expense == 0:
            return []
        return [
            {'name': 'Income', 'value': round(self.income, 2)},
            {'name': 'Expense', 'value': round(self.expense, 2)},
        ]


@dataclass(frozen=True)
class Insights:
    top_category: Optional[CategoryShare]
    trend_direction: Optional[str]
    transactions_per_day: float
    category_count: int


def _amounts(data: pd.DataFrame) -> pd.Series:
    if data.empty or 'amount' not in data.columns:
        return pd.Series(dtype=float)
    return pd.to_numeric(data['amount'], errors='coerce').fillna(0.0).astype(float)


def _dated(data: pd.DataFrame) -> pd.DataFrame:
    """Copy with parsed dates and float amounts; rows without a date are dropped."""
    working = data.copy()
    working['amount'] = _amounts(working)
    working['date'] = pd.to_datetime(working['date'], errors='coerce')
    return working.dropna(subset=['date'])


def compute_statistics(data: pd.DataFrame) -> Statistics:
    """Total, mean, max, min and count of the amounts in ``data``."""
    amounts = _amounts(data)
    count = int(len(amounts))
    if count == 0:
        return Statistics()
    total = float(amounts.sum())
    return Statistics(
        total=total,
        average=total / count,
        max=float(amounts.max()),
        min=float(amounts.min()),
        count=count,
    )


def compute_category_breakdown(data: pd.DataFrame) -> List[CategoryShare]:
    """Sum amounts per category.

    Groups appear in order of first occurrence, not sorted by value.
    ``value`` is rounded to cents and ``percentage`` to one decimal; a
    zero grand total yields 0% for every group.
    """
    if data.empty:
        return []
    working = data.assign(amount=_amounts(data))
    totals = working.groupby('category', sort=False)['amount'].sum()
    grand_total = float(totals.sum())
    shares: List[CategoryShare] = []
    for name, value in totals.items():
        percentage = (value / grand_total * 100) if grand_total else 0.0
        shares.append(CategoryShare(
            name=str(name),
            value=round(float(value), 2),
            percentage=round(float(percentage), 1),
        ))
    return shares


def compute_monthly_trend(data: pd.DataFrame) -> List[TrendPoint]:
    """Monthly totals keyed ``YYYY-MM`` in ascending order."""
    if data.empty:
        return []
    working = _dated(data)
    if working.empty:
        return []
    working['period'] = working['date'].dt.strftime('%Y-%m')
    monthly = working.groupby('period')['amount'].sum().sort_index()
    return [
        TrendPoint(period=str(period), amount=round(float(amount), 2), year=int(period[:4]))
        for period, amount in monthly.items()
    ]


def week_number(day) -> int:
    """Calendar-year relative week index.

    ``ceil((days_since_jan1 + weekday_of_jan1 + 1) / 7)`` where the
    weekday counts from Sunday = 0.  This is not ISO-8601 numbering.
    """
    day = pd.Timestamp(day).normalize()
    jan1 = pd.Timestamp(year=day.year, month=1, day=1)
    offset = (jan1.weekday() + 1) % 7
    return int(np.ceil(((day - jan1).days + offset + 1) / 7))


def compute_weekly_trend(data: pd.DataFrame, limit: int = WEEKLY_TREND_LIMIT) -> List[TrendPoint]:
    """Weekly totals for the most recent ``limit`` weeks that have data."""
    if data.empty or limit <= 0:
        return []
    working = _dated(data)
    if working.empty:
        return []
    dates = working['date'].dt.normalize()
    days_since = dates.dt.dayofyear - 1
    jan1 = dates - pd.to_timedelta(days_since, unit='D')
    offsets = (jan1.dt.dayofweek + 1) % 7
    working['year'] = dates.dt.year
    working['week'] = np.ceil((days_since + offsets + 1) / 7).astype(int)
    weekly = working.groupby(['year', 'week'])['amount'].sum().sort_index()
    points = [
        TrendPoint(period=f"Week {week}", amount=round(float(amount), 2), year=int(year))
        for (year, week), amount in weekly.items()
    ]
    return points[-limit:]


def first_weekday(year: int, month: int) -> int:
    """Weekday of the first of the month, Sunday = 0."""
    return (calendar.monthrange(year, month)[0] + 1) % 7


def compute_calendar_month(data: pd.DataFrame, year: int, month: int) -> CalendarMonth:
    """Per-day income/expense totals for every day of ``month`` (1-based).

    ``data`` may mix both record kinds; the ``kind`` column decides which
    side an amount lands on.  Days without activity stay at zero.
    """
    days_in_month = calendar.monthrange(year, month)[1]
    result = CalendarMonth(
        year=year,
        month=month,
        days_in_month=days_in_month,
        first_weekday=first_weekday(year, month),
        days={day: CalendarDay(day=day) for day in range(1, days_in_month + 1)},
    )
    if data.empty:
        return result

    working = _dated(data)
    working = working[(working['date'].dt.year == year) & (working['date'].dt.month == month)]
    if working.empty:
        return result

    working['day'] = working['date'].dt.day
    kinds = working['kind'].astype(str) if 'kind' in working.columns else pd.Series(
        RecordKind.EXPENSE.value, index=working.index
    )
    working['side'] = np.where(kinds == RecordKind.INCOME.value, 'income', 'expense')
    sums = working.groupby(['day', 'side'])['amount'].sum()
    for (day, side), amount in sums.items():
        bucket = result.days[int(day)]
        setattr(bucket, side, getattr(bucket, side) + float(amount))
        bucket.total += float(amount)
    return result


def day_activity(day: CalendarDay, peak: float) -> DayActivity:
    """Classify a calendar cell for the heat map.

    ``state`` is ``none``, ``income``, ``expense`` or ``balanced``;
    ``intensity`` is the day's share of the busiest day in the month.
    """
    total = day.income + day.expense
    if total == 0 or peak == 0:
        return DayActivity(state='none', intensity=0.0)
    intensity = min(total / peak, 1.0)
    if day.income > day.expense:
        return DayActivity(state='income', intensity=intensity)
    if day.expense > day.income:
        return DayActivity(state='expense', intensity=intensity)
    return DayActivity(state='balanced', intensity=intensity)


def compute_monthly_balance(data: pd.DataFrame, year: int, month: int) -> MonthlyBalance:
    """Income, expense and balance for one month of a mixed-kind collection."""
    monthly = select_period(data, 'month', year, month)
    if monthly.empty:
        return MonthlyBalance()
    amounts = _amounts(monthly)
    is_income = monthly['kind'].astype(str) == RecordKind.INCOME.value
    return MonthlyBalance(
        income=float(amounts[is_income].sum()),
        expense=float(amounts[~is_income].sum()),
    )


def available_years(data: pd.DataFrame) -> List[int]:
    """Distinct years present in the collection, newest first."""
    if data.empty:
        return []
    years = pd.to_datetime(data['date'], errors='coerce').dropna().dt.year.unique()
    return sorted((int(y) for y in years), reverse=True)


def generate_insights(data: pd.DataFrame, time_range: str = 'all') -> Insights:
    """Headline facts shown under the analytics charts."""
    breakdown = compute_category_breakdown(data)
    top = max(breakdown, key=lambda share: share.value) if breakdown else None

    trend = compute_monthly_trend(data)
    direction = None
    if len(trend) > 1:
        direction = 'increasing' if trend[-1].amount > trend[-2].amount else 'decreasing'

    days = 30 if time_range == 'month' else 365
    return Insights(
        top_category=top,
        trend_direction=direction,
        transactions_per_day=round(len(data) / days, 1),
        category_count=len(breakdown),
    )


class RecordAnalytics:
    """Report calculations for one record collection."""

    def __init__(self, data: pd.DataFrame):
        """Initialize with a record frame (see :func:`records.records_to_frame`)."""
        self.data = data.copy()
        self._prepare_data()

    def _prepare_data(self) -> None:
        if 'amount' in self.data.columns:
            self.data['amount'] = pd.to_numeric(self.data['amount'], errors='coerce').fillna(0.0)
        if 'date' in self.data.columns:
            self.data['date'] = pd.to_datetime(self.data['date'], errors='coerce')
        if 'category' in self.data.columns:
            self.data['category'] = self.data['category'].fillna('Other').astype(str)

    def for_period(self, time_range: str, year: Optional[int] = None,
                   month: Optional[int] = None) -> 'RecordAnalytics':
        return RecordAnalytics(select_period(self.data, time_range, year, month))

    def statistics(self) -> Statistics:
        return compute_statistics(self.data)

    def category_breakdown(self) -> List[CategoryShare]:
        return compute_category_breakdown(self.data)

    def monthly_trend(self) -> List[TrendPoint]:
        return compute_monthly_trend(self.data)

    def weekly_trend(self, limit: int = WEEKLY_TREND_LIMIT) -> List[TrendPoint]:
        return compute_weekly_trend(self.data, limit=limit)

    def calendar_month(self, year: int, month: int) -> CalendarMonth:
        return compute_calendar_month(self.data, year, month)

    def monthly_balance(self, year: int, month: int) -> MonthlyBalance:
        return compute_monthly_balance(self.data, year, month)

    def available_years(self) -> List[int]:
        return available_years(self.data)

    def insights(self, time_range: str = 'all') -> Insights:
        return generate_insights(self.data, time_range)

    def summary(self, time_range: str = 'all', today: Optional[date] = None) -> Dict[str, object]:
        """Everything the analytics page renders, in one dict."""
        logger.debug("Summarising %d records for range %s", len(self.data), time_range)
        return {
            'statistics': self.statistics(),
            'categories': self.category_breakdown(),
            'monthly_trend': self.monthly_trend(),
            'weekly_trend': self.weekly_trend(),
            'insights': self.insights(time_range),
            'years': self.available_years() or [(today or date.today()).year],
        }
