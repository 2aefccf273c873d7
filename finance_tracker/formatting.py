"""Formatting utilities for currency, percentages and dates."""

from __future__ import annotations

import calendar
from datetime import date
from typing import Optional, Union

RUPEE_SYMBOL = "₹"
# The PDF path uses the standard Type 1 fonts, which have no rupee glyph.
PDF_CURRENCY_PREFIX = "Rs."


def format_currency(amount: Union[float, int], symbol: Optional[str] = RUPEE_SYMBOL) -> str:
    """Format a currency amount with two decimals.

    Args:
        amount: The amount to format
        symbol: Prefix to use; ``None`` for a bare number

    Returns:
        Formatted currency string (e.g., "₹1,234.56" or "1,234.56")

    Example:
        >>> format_currency(1234.56)
        '₹1,234.56'
        >>> format_currency(1234.56, symbol=None)
        '1,234.56'
    """
    formatted = f"{float(amount):,.2f}"
    return f"{symbol}{formatted}" if symbol else formatted


def format_pdf_currency(amount: Union[float, int]) -> str:
    """Currency as printed in PDF reports, e.g. ``Rs.1234.50``."""
    return f"{PDF_CURRENCY_PREFIX}{float(amount):.2f}"


def format_percentage(value: float) -> str:
    return f"{value:.1f}%"


def month_name(month: int) -> str:
    """Full English month name for a 1-based month number."""
    return calendar.month_name[month]


def format_display_date(value: Optional[date]) -> str:
    if value is None:
        return '-'
    return f"{value.month}/{value.day}/{value.year}"
