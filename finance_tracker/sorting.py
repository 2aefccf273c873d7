"""Ordering of filtered record collections for the list views."""

from __future__ import annotations

import locale
from typing import Dict, Tuple

import pandas as pd

# key -> (column, ascending)
SORT_KEYS: Dict[str, Tuple[str, bool]] = {
    'dateDesc': ('date', False),
    'dateAsc': ('date', True),
    'amountDesc': ('amount', False),
    'amountAsc': ('amount', True),
    'titleAsc': ('title', True),
}

SORT_LABELS = {
    'dateDesc': 'Date (Newest First)',
    'dateAsc': 'Date (Oldest First)',
    'amountDesc': 'Amount (High to Low)',
    'amountAsc': 'Amount (Low to High)',
    'titleAsc': 'Title (A-Z)',
}


def _collation_key(text: str) -> str:
    folded = str(text).casefold()
    try:
        return locale.strxfrm(folded)
    except (ValueError, OSError):
        return folded


def _sort_key_for(column: str):
    if column == 'date':
        return lambda s: pd.to_datetime(s, errors='coerce')
    if column == 'amount':
        return lambda s: pd.to_numeric(s, errors='coerce').astype(float)
    return lambda s: s.fillna('').astype(str).map(_collation_key)


def sort_records(data: pd.DataFrame, sort_key: str) -> pd.DataFrame:
    """Return a new frame ordered by ``sort_key``.

    Every ordering uses a stable algorithm so equal keys keep their
    relative order; an unknown key returns the rows in their current order.
    """
    ordered = data.copy()
    if sort_key not in SORT_KEYS or ordered.empty:
        return ordered
    column, ascending = SORT_KEYS[sort_key]
    return ordered.sort_values(
        column,
        ascending=ascending,
        kind='stable',
        key=_sort_key_for(column),
        na_position='last',
    )
