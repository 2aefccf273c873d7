from datetime import date, timedelta

import pytest

from finance_tracker.analytics import (
    CalendarDay,
    RecordAnalytics,
    compute_calendar_month,
    compute_category_breakdown,
    compute_monthly_balance,
    compute_monthly_trend,
    compute_statistics,
    compute_weekly_trend,
    day_activity,
    generate_insights,
    week_number,
)
from finance_tracker.records import Record, RecordKind, records_to_frame


def sample_df():
    return records_to_frame([
        Record(RecordKind.EXPENSE, 'Lunch', 100.0, 'Food', date(2024, 1, 10), id=1),
        Record(RecordKind.EXPENSE, 'Train', 50.0, 'Travel', date(2024, 1, 20), id=2),
        Record(RecordKind.EXPENSE, 'Party', 200.0, 'Food', date(2024, 2, 5), id=3),
    ])


def mixed_df():
    return records_to_frame([
        Record(RecordKind.INCOME, 'Pay', 1000.0, 'Salary', date(2024, 2, 1), id=10),
        Record(RecordKind.EXPENSE, 'Rent', 400.0, 'Rent', date(2024, 2, 1), id=11),
        Record(RecordKind.EXPENSE, 'Snacks', 20.0, 'Food', date(2024, 2, 3), id=12),
        Record(RecordKind.EXPENSE, 'Old', 99.0, 'Food', date(2024, 1, 3), id=13),
    ])


def test_statistics_for_sample():
    stats = compute_statistics(sample_df())
    assert stats.total == 350
    assert stats.average == pytest.approx(116.67, abs=0.01)
    assert stats.max == 200
    assert stats.min == 50
    assert stats.count == 3


def test_statistics_empty_collection_is_zero():
    stats = compute_statistics(records_to_frame([]))
    assert (stats.total, stats.average, stats.max, stats.min, stats.count) == (0, 0, 0, 0, 0)


def test_category_breakdown_first_occurrence_order():
    shares = compute_category_breakdown(sample_df())
    assert [(s.name, s.value, s.percentage) for s in shares] == [
        ('Food', 300.0, 85.7),
        ('Travel', 50.0, 14.3),
    ]


def test_monthly_trend_ascending():
    trend = compute_monthly_trend(sample_df())
    assert [(p.period, p.amount) for p in trend] == [('2024-01', 150.0), ('2024-02', 200.0)]


def test_week_number_starts_weeks_on_sunday():
    # 2024-01-01 is a Monday, 2024-01-07 a Sunday
    assert week_number(date(2024, 1, 1)) == 1
    assert week_number(date(2024, 1, 6)) == 1
    assert week_number(date(2024, 1, 7)) == 2


def test_weekly_trend_keeps_most_recent_weeks():
    df = records_to_frame([
        Record(RecordKind.EXPENSE, f'W{i}', float(i + 1), 'Food', date(2024, 1, 7) + timedelta(weeks=i), id=i)
        for i in range(10)
    ])
    trend = compute_weekly_trend(df, limit=8)
    assert len(trend) == 8
    assert trend[0].period == 'Week 4'
    assert trend[-1].period == 'Week 11'
    assert trend[-1].amount == 10.0


def test_weekly_trend_orders_across_years():
    df = records_to_frame([
        Record(RecordKind.EXPENSE, 'a', 5.0, 'Food', date(2024, 1, 2), id=1),
        Record(RecordKind.EXPENSE, 'b', 7.0, 'Food', date(2023, 12, 30), id=2),
    ])
    trend = compute_weekly_trend(df)
    assert [p.year for p in trend] == [2023, 2024]


def test_calendar_month_without_records_is_all_zero():
    month = compute_calendar_month(records_to_frame([]), 2024, 2)
    assert month.days_in_month == 29
    assert month.first_weekday == 4
    assert all(d.total == 0 for d in month.days.values())
    assert month.peak_total == 0


def test_calendar_month_splits_income_and_expense():
    month = compute_calendar_month(mixed_df(), 2024, 2)
    first = month.days[1]
    assert (first.income, first.expense, first.total) == (1000.0, 400.0, 1400.0)
    assert month.days[3].expense == 20.0
    assert month.peak_total == 1400.0


def test_day_activity_states():
    assert day_activity(CalendarDay(day=1), 0).state == 'none'
    income = day_activity(CalendarDay(day=1, income=100, expense=50, total=150), 300)
    assert income.state == 'income'
    assert income.intensity == pytest.approx(0.5)
    assert day_activity(CalendarDay(day=1, income=10, expense=10, total=20), 20).state == 'balanced'
    assert day_activity(CalendarDay(day=1, expense=5, total=5), 5).state == 'expense'


def test_monthly_balance():
    balance = compute_monthly_balance(mixed_df(), 2024, 2)
    assert balance.income == 1000.0
    assert balance.expense == 420.0
    assert balance.balance == 580.0
    assert compute_monthly_balance(mixed_df(), 2023, 5).as_pie_data() == []


def test_insights():
    insights = generate_insights(sample_df(), 'all')
    assert insights.top_category.name == 'Food'
    assert insights.trend_direction == 'increasing'
    assert insights.category_count == 2


def test_record_analytics_summary_for_period():
    analytics = RecordAnalytics(sample_df()).for_period('month', 2024, 1)
    summary = analytics.summary('month', date(2024, 3, 1))
    assert summary['statistics'].total == 150
    assert summary['years'] == [2024]
    assert summary['insights'].trend_direction is None


def test_category_breakdown_zero_total_gives_zero_percent():
    df = records_to_frame([
        Record(RecordKind.EXPENSE, 'Free sample', 0.0, 'Food', date(2024, 1, 1), id=1),
        Record(RecordKind.EXPENSE, 'Gift card', 0.0, 'Gifts', date(2024, 1, 2), id=2),
    ])
    shares = compute_category_breakdown(df)
    assert [(s.name, s.value, s.percentage) for s in shares] == [('Food', 0.0, 0.0), ('Gifts', 0.0, 0.0)]
    assert generate_insights(df).top_category.value == 0.0


def test_category_breakdown_sums_to_total():
    amounts = [12.34, 56.78, 9.99, 100.0, 0.01, 45.5, 3.33, 78.9]
    categories = ['Food', 'Rent', 'Travel', 'Food', 'Pets', 'Rent', 'Taxes', 'Other']
    df = records_to_frame([
        Record(RecordKind.EXPENSE, f'r{i}', amount, category, date(2024, 1, i + 1), id=i)
        for i, (amount, category) in enumerate(zip(amounts, categories))
    ])
    shares = compute_category_breakdown(df)
    assert len(shares) == len(set(categories))
    assert sum(s.value for s in shares) == pytest.approx(compute_statistics(df).total, abs=0.01)
    assert sum(s.percentage for s in shares) == pytest.approx(100, abs=0.1 * len(shares))
