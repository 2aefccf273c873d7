"""Record model shared by expenses and incomes.

Both kinds carry the same fields; they differ only in the name the API
uses for the date field and in their category vocabulary.  The engines
in this package work on a pandas DataFrame built from records with
:func:`records_to_frame`.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import date, datetime
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional

import pandas as pd

from .exceptions import ValidationError


class RecordKind(str, Enum):
    EXPENSE = "expense"
    INCOME = "income"

    @property
    def date_field(self) -> str:
        return f"{self.value}Date"

    @property
    def plural(self) -> str:
        return f"{self.value}s"

    @property
    def label(self) -> str:
        return self.value.capitalize()

    @property
    def category_label(self) -> str:
        """Heading used for the grouping column in reports."""
        return "Category" if self is RecordKind.EXPENSE else "Source"

    @property
    def categories(self) -> tuple:
        return CATEGORY_VOCABULARY[self]


EXPENSE_CATEGORIES = (
    'Food', 'Transport', 'Utilities', 'Entertainment', 'Health', 'Education',
    'Shopping', 'Groceries', 'Rent', 'Travel', 'Insurance', 'Clothing',
    'Electronics', 'Fitness', 'Personal Care', 'Gifts', 'Charity',
    'Subscriptions', 'Dining Out', 'Pets', 'Home Improvement',
    'Vehicle Maintenance', 'Taxes', 'Investments', 'Other',
)

INCOME_CATEGORIES = (
    'Salary', 'Freelance', 'Business', 'Investment', 'Rental', 'Bonus',
    'Commission', 'Dividend', 'Interest', 'Pension', 'Gift', 'Refund',
    'Side Hustle', 'Royalty', 'Grant', 'Other',
)

CATEGORY_VOCABULARY = {
    RecordKind.EXPENSE: EXPENSE_CATEGORIES,
    RecordKind.INCOME: INCOME_CATEGORIES,
}

FRAME_COLUMNS = ['id', 'kind', 'title', 'amount', 'category', 'note', 'date']


@dataclass(frozen=True)
class Record:
    kind: RecordKind
    title: str
    amount: float
    category: str
    date: Optional[date]
    note: str = ''
    id: Optional[Any] = None

    @classmethod
    def from_payload(cls, payload: Dict[str, Any], kind: RecordKind) -> 'Record':
        """Build a record from an API payload (``expenseDate``/``incomeDate``)."""
        kind = RecordKind(kind)
        raw_date = payload.get(kind.date_field, payload.get('date'))
        return cls(
            kind=kind,
            id=payload.get('id'),
            title=str(payload.get('title') or ''),
            amount=coerce_amount(payload.get('amount')),
            category=str(payload.get('category') or ''),
            note=str(payload.get('note') or ''),
            date=parse_date(raw_date),
        )

    def to_payload(self) -> Dict[str, Any]:
        """Return the five editable fields in the API's shape."""
        return {
            'title': self.title,
            'amount': self.amount,
            'category': self.category,
            'note': self.note,
            self.kind.date_field: self.date.isoformat() if self.date else None,
        }

    def with_id(self, record_id: Any) -> 'Record':
        return replace(self, id=record_id)


def coerce_amount(value: Any) -> float:
    """Coerce a numeric string or number to float; unparseable values become NaN."""
    if value is None or (isinstance(value, str) and not value.strip()):
        return float('nan')
    try:
        return float(value)
    except (TypeError, ValueError):
        return float('nan')


def parse_date(value: Any) -> Optional[date]:
    """Parse a calendar date, ignoring any time-of-day component."""
    if value is None or value == '':
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    parsed = pd.to_datetime(value, errors='coerce')
    if pd.isna(parsed):
        return None
    return parsed.date()


def validate_record(record: Record, today: Optional[date] = None) -> Record:
    """Check entry-time invariants and return the record unchanged.

    Raises :class:`ValidationError` carrying one message per failing field.
    """
    today = today or date.today()
    errors: Dict[str, str] = {}

    if not record.title or not record.title.strip():
        errors['title'] = 'Title is required'

    amount = record.amount
    if amount is None or pd.isna(amount):
        errors['amount'] = 'Amount is required'
    elif amount <= 0:
        errors['amount'] = 'Amount must be positive'

    if record.category not in record.kind.categories:
        errors['category'] = f"Unknown {record.kind.value} category '{record.category}'"

    if record.date is None:
        errors['date'] = f"{record.kind.label} date is required"
    elif record.date > today:
        errors['date'] = f"{record.kind.label} date cannot be in the future"

    if errors:
        raise ValidationError(errors)
    return record


def empty_frame() -> pd.DataFrame:
    frame = pd.DataFrame({col: pd.Series(dtype=object) for col in FRAME_COLUMNS})
    frame['amount'] = frame['amount'].astype(float)
    frame['date'] = pd.to_datetime(frame['date'])
    return frame


def records_to_frame(records: Iterable[Record]) -> pd.DataFrame:
    """Convert records to the DataFrame shape the engines operate on."""
    rows = [
        {
            'id': record.id,
            'kind': RecordKind(record.kind).value,
            'title': record.title,
            'amount': record.amount,
            'category': record.category,
            'note': record.note or '',
            'date': record.date,
        }
        for record in records
    ]
    if not rows:
        return empty_frame()
    return prepare_frame(pd.DataFrame(rows, columns=FRAME_COLUMNS))


def prepare_frame(frame: pd.DataFrame) -> pd.DataFrame:
    """Normalise column types: float amounts, midnight timestamps, text notes."""
    prepared = frame.copy()
    for column in FRAME_COLUMNS:
        if column not in prepared.columns:
            prepared[column] = '' if column in {'note', 'title', 'category'} else None
    prepared['amount'] = pd.to_numeric(prepared['amount'], errors='coerce')
    prepared['date'] = pd.to_datetime(prepared['date'], errors='coerce').dt.normalize()
    for column in ['title', 'category', 'note']:
        prepared[column] = prepared[column].fillna('').astype(str)
    return prepared[FRAME_COLUMNS]


def frame_to_records(frame: pd.DataFrame) -> List[Record]:
    records: List[Record] = []
    for row in frame.to_dict('records'):
        timestamp = row.get('date')
        records.append(Record(
            kind=RecordKind(row['kind']),
            id=row.get('id'),
            title=row.get('title', ''),
            amount=float(row.get('amount')),
            category=row.get('category', ''),
            note=row.get('note') or '',
            date=None if pd.isna(timestamp) else pd.Timestamp(timestamp).date(),
        ))
    return records
