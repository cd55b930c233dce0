"""Utility functions for the mortgage schedule engine.

This module provides helpers for parsing user input into Python data types,
for rounding money and for calendar arithmetic. Date helpers are pure
functions built on ``calendar.monthrange`` so that payment dates never depend
on mutable date objects.
"""

from __future__ import annotations

import calendar
from datetime import date, datetime
from decimal import ROUND_HALF_EVEN, Decimal, InvalidOperation, getcontext
from typing import Any, Optional

from .errors import InvalidInputError

getcontext().prec = 28  # increase decimal precision to avoid rounding errors

CENT = Decimal("0.01")


def to_money(value: Decimal) -> Decimal:
    """Round ``value`` to the minor currency unit using banker's rounding."""
    return value.quantize(CENT, rounding=ROUND_HALF_EVEN)


def to_decimal(value: Any, field: str = "value") -> Decimal:
    """Convert user input into a ``Decimal``.

    Strings may contain thousands separators. Floats go through ``str`` so
    that ``0.1`` becomes ``Decimal("0.1")`` rather than its binary expansion.
    Raises ``InvalidInputError`` for anything that is not a finite number.
    """
    if isinstance(value, bool) or value is None:
        raise InvalidInputError(f"Invalid numeric value for {field}: {value!r}")
    if isinstance(value, Decimal):
        result = value
    else:
        try:
            result = Decimal(str(value).replace(",", "").strip())
        except InvalidOperation as exc:
            raise InvalidInputError(f"Invalid numeric value for {field}: {value!r}") from exc
    if not result.is_finite():
        raise InvalidInputError(f"Invalid numeric value for {field}: {value!r}")
    return result


def parse_iso_date(value: Any, field: str = "date") -> date:
    """Parse an ISO ``YYYY-MM-DD`` value into a ``date``.

    ``date`` instances are returned unchanged and ``datetime`` values are
    truncated to their date. A trailing time component in a string (as sent
    by JavaScript clients) is ignored.
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str):
        raise InvalidInputError(f"Invalid date for {field}: {value!r}")
    try:
        return date.fromisoformat(value.strip()[:10])
    except ValueError as exc:
        raise InvalidInputError(f"Invalid date for {field}: {value!r}") from exc


def parse_year_month(ym: str) -> date:
    """Parse a YYYY-MM string into a ``date`` object (first day of month).

    Raises
    ------
    InvalidInputError
        If the string is not a valid year-month.
    """
    parts = ym.split("-")
    try:
        if len(parts) < 2:
            raise ValueError(ym)
        return date(int(parts[0]), int(parts[1]), 1)
    except ValueError as exc:
        raise InvalidInputError(f"Invalid year-month string: {ym}") from exc


def add_months(dt: date, months: int, day: Optional[int] = None) -> date:
    """Return a new date a number of months after ``dt``.

    The day of the month is ``day`` when given, otherwise ``dt.day``. It is
    clamped to the last valid day if needed (e.g., adding one month to
    Jan 31 yields Feb 28 or 29).
    """
    year = dt.year + (dt.month - 1 + months) // 12
    month = (dt.month - 1 + months) % 12 + 1
    wanted = dt.day if day is None else day
    return date(year, month, min(wanted, calendar.monthrange(year, month)[1]))


def first_payment_date(start: date, preferred_day: Optional[int] = None) -> date:
    """Return the first date on or after ``start`` that falls on ``preferred_day``.

    Without a preferred day the loan is paid on its start date. When the
    preferred day has already passed in the start month, the first payment
    moves to the next month.
    """
    if preferred_day is None:
        return start
    first = add_months(start, 0, preferred_day)
    if first < start:
        first = add_months(start, 1, preferred_day)
    return first


def payment_date(start: date, period: int, preferred_day: Optional[int] = None) -> date:
    """Return the payment date of ``period`` (1-based) for a loan starting at ``start``.

    Every date is derived from the first payment date rather than from the
    previous payment, so a loan paid on the 31st is back on the 31st after
    February.
    """
    first = first_payment_date(start, preferred_day)
    return add_months(first, period - 1, start.day if preferred_day is None else preferred_day)


def months_between(earlier: date, later: date) -> int:
    """Number of calendar months from ``earlier``'s month to ``later``'s month."""
    return (later.year - earlier.year) * 12 + (later.month - earlier.month)
