"""Lookup of rate adjustments and lump sums for a given period.

The stepper never keeps a running "current rate" or a queue of pending
payments. For every period it asks this module which adjustments are in
effect and which lump sums target it, so recomputing from period 1 with a
different event set always gives a schedule consistent with that set.
"""

from __future__ import annotations

import logging
from datetime import date
from decimal import Decimal
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from .data_models import LoanDefinition, LumpSumPayment, RateAdjustment
from .utils import months_between, payment_date

logger = logging.getLogger(__name__)


def sort_adjustments(adjustments: Iterable[RateAdjustment]) -> Tuple[RateAdjustment, ...]:
    """Order adjustments by effective date.

    ``sorted`` is stable, so adjustments sharing a date keep their input
    order.
    """
    return tuple(sorted(adjustments, key=lambda adj: adj.effective_date))


def applicable_rate(
    base_rate: Decimal, adjustments: Sequence[RateAdjustment], on_date: date
) -> Decimal:
    """Return the nominal annual rate in effect on ``on_date``.

    ``adjustments`` must already be sorted with :func:`sort_adjustments`.
    """
    rate = base_rate
    for adj in adjustments:
        if adj.effective_date > on_date:
            break
        rate += adj.rate_delta
    return rate


def adjustments_effective_between(
    adjustments: Sequence[RateAdjustment], after: Optional[date], through: date
) -> List[RateAdjustment]:
    """Adjustments whose effective date falls in ``(after, through]``.

    With ``after=None`` every adjustment effective on or before ``through``
    is returned.
    """
    return [
        adj
        for adj in adjustments
        if (after is None or adj.effective_date > after) and adj.effective_date <= through
    ]


def effective_lump_sum_amount(lump: LumpSumPayment) -> Decimal:
    """Amount that counts for the schedule: the actual one once paid."""
    if lump.is_paid and lump.actual_amount is not None:
        return lump.actual_amount
    return lump.amount


def effective_lump_sum_date(lump: LumpSumPayment) -> Optional[date]:
    if lump.is_paid and lump.actual_paid_date is not None:
        return lump.actual_paid_date
    return lump.planned_date


def period_for_date(loan: LoanDefinition, target: date) -> int:
    """First period whose payment date is on or after ``target``.

    Dates on or before the first payment date belong to period 1.
    """
    first = payment_date(loan.start_date, 1, loan.preferred_payment_day)
    if target <= first:
        return 1
    period = months_between(first, target) + 1
    if payment_date(loan.start_date, period, loan.preferred_payment_day) < target:
        period += 1
    return period


def resolve_lump_sum_period(lump: LumpSumPayment, loan: LoanDefinition) -> int:
    """Return the 1-based period a lump sum is applied in.

    An exact date wins over the loan year/month pair. Year ``0`` means the
    payment is made immediately, together with the first instalment.
    """
    target = effective_lump_sum_date(lump)
    if target is not None:
        return period_for_date(loan, target)
    if lump.year == 0:
        return 1
    return (lump.year - 1) * 12 + lump.month


def lump_sums_by_period(
    lump_sums: Iterable[LumpSumPayment], loan: LoanDefinition
) -> Dict[int, Decimal]:
    """Group lump-sum amounts by the period they target."""
    mapping: Dict[int, Decimal] = {}
    for lump in lump_sums:
        period = resolve_lump_sum_period(lump, loan)
        amount = effective_lump_sum_amount(lump)
        logger.debug("Lump sum of %s resolved to period %d", amount, period)
        mapping[period] = mapping.get(period, Decimal("0")) + amount
    return mapping
