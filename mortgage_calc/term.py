"""Conversions between "years + months" loan terms and total months.

Term parts are usually typed in by hand and are often half filled in while
the user is still editing, so nothing here raises: anything that is not a
finite non-negative number counts as zero.
"""

from __future__ import annotations

import math
from typing import Any

from .data_models import TermParts


def _safe_component(value: Any) -> int:
    if value is None or isinstance(value, bool):
        return 0
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0
    if not math.isfinite(number) or number < 0:
        return 0
    return math.floor(number)


def term_parts_to_months(years: Any, months: Any) -> int:
    """Return ``years * 12 + months``, treating unusable components as zero."""
    return _safe_component(years) * 12 + _safe_component(months)


def months_to_term_parts(total_months: Any) -> TermParts:
    """Split a month count into whole years and remaining months."""
    total = _safe_component(total_months)
    return TermParts(years=total // 12, months=total % 12)


def normalize_term_parts(years: Any, months: Any) -> TermParts:
    """Fold a months value of 12 or more into years, e.g. ``(24, 18) -> (25, 6)``."""
    return months_to_term_parts(term_parts_to_months(years, months))


def format_term(total_months: Any) -> str:
    """Render a month count for display, e.g. ``"25 years and 6 months"``."""
    parts = months_to_term_parts(total_months)
    years = f"{parts.years} {'year' if parts.years == 1 else 'years'}"
    months = f"{parts.months} {'month' if parts.months == 1 else 'months'}"
    if parts.years == 0:
        return months
    if parts.months == 0:
        return years
    return f"{years} and {months}"
