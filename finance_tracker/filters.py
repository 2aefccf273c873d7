"""Filter predicates applied to a record collection before sorting."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional

import pandas as pd

ALL_CATEGORIES = 'all'
TIME_RANGES = ('all', 'month', 'year')


@dataclass(frozen=True)
class FilterSpec:
    search_term: str = ''
    category: str = ALL_CATEGORIES
    date_start: Optional[Any] = None
    date_end: Optional[Any] = None

    def is_empty(self) -> bool:
        return (
            not (self.search_term or '').strip()
            and self.category in ('', None, ALL_CATEGORIES)
            and not self.date_start
            and not self.date_end
        )

    def cleared(self) -> 'FilterSpec':
        return FilterSpec()


def _to_day(value: Any) -> Optional[pd.Timestamp]:
    if value is None or value == '':
        return None
    parsed = pd.to_datetime(value, errors='coerce')
    if pd.isna(parsed):
        return None
    return parsed.normalize()


def apply_filters(data: pd.DataFrame, spec: Optional[FilterSpec] = None) -> pd.DataFrame:
    """Return the rows of ``data`` matching ``spec``.

    Search is a case-insensitive literal substring match against title,
    note and category.  Date bounds are inclusive and compare calendar
    days only.  Fields left empty in ``spec`` do not filter anything.
    """
    filtered = data.copy()
    if spec is None or filtered.empty:
        return filtered

    search_text = (spec.search_term or '').strip().lower()
    if search_text:
        combined_mask = pd.Series(False, index=filtered.index)
        for col in ['title', 'note', 'category']:
            if col in filtered.columns:
                combined_mask |= (
                    filtered[col].fillna('').astype(str).str.lower()
                    .str.contains(search_text, regex=False, na=False)
                )
        filtered = filtered[combined_mask]

    if spec.category and spec.category != ALL_CATEGORIES:
        filtered = filtered[filtered['category'] == spec.category]

    start = _to_day(spec.date_start)
    end = _to_day(spec.date_end)
    if start is not None or end is not None:
        days = pd.to_datetime(filtered['date'], errors='coerce').dt.normalize()
        mask = pd.Series(True, index=filtered.index)
        if start is not None:
            mask &= days >= start
        if end is not None:
            mask &= days <= end
        filtered = filtered[mask]

    return filtered


def select_period(
    data: pd.DataFrame,
    time_range: str = 'all',
    year: Optional[int] = None,
    month: Optional[int] = None,
) -> pd.DataFrame:
    """Restrict a collection to one calendar month or year.

    ``month`` is 1-based.  ``'all'`` and unknown ranges return every row.
    """
    if data.empty or time_range not in ('month', 'year') or year is None:
        return data.copy()
    dates = pd.to_datetime(data['date'], errors='coerce')
    mask = dates.dt.year == year
    if time_range == 'month':
        if month is None:
            return data.copy()
        mask &= dates.dt.month == month
    return data[mask].copy()
