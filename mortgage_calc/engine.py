"""Core calculation engine for the mortgage calculator.

This module implements the amortization schedule for a fixed-payment loan
with dated rate adjustments and principal-only lump sums. The schedule is
computed one monthly period at a time:

* the rate in effect is re-derived from the sorted adjustments for every
  period, interest is charged on the opening balance and rounded to cents
  with banker's rounding;
* the contractual payment is clamped in the final period so the loan is paid
  off exactly;
* lump sums and the optional extra monthly payment go to principal only;
* the schedule stops at the first period whose closing balance is zero.

A loan whose payment never outgrows its interest is reported with
``InvalidScheduleError`` once ``max_periods`` periods have elapsed.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from decimal import ROUND_UP, Decimal, getcontext
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from .data_models import (
    LoanDefinition,
    LumpSumImpact,
    LumpSumPayment,
    RateAdjustment,
    ScheduleEntry,
)
from .errors import InvalidInputError, InvalidScheduleError
from .events import (
    adjustments_effective_between,
    applicable_rate,
    effective_lump_sum_amount,
    lump_sums_by_period,
    resolve_lump_sum_period,
    sort_adjustments,
)
from .term import format_term
from .utils import CENT, parse_iso_date, payment_date, to_decimal, to_money

getcontext().prec = 28  # increase precision for financial calculations

logger = logging.getLogger(__name__)

# 100 years of monthly payments.
MAX_PERIODS = 1200
PAYOFF_EPSILON = Decimal("0.005")
ZERO = Decimal("0")


def solve_payment(principal: Decimal, annual_rate: Decimal, term_months: int) -> Decimal:
    """Return the level monthly payment that repays ``principal`` in ``term_months``.

    The formula is:

        payment = P * (i * (1 + i)^n) / ((1 + i)^n - 1)

    where ``P`` is the principal, ``i`` is the monthly interest rate and
    ``n`` is the number of payments. When the interest rate is zero, the
    payment simplifies to ``P / n``. The result is rounded up to the cent so
    the loan never runs past its term.
    """
    if term_months <= 0:
        raise InvalidInputError("Term must be positive to solve for the payment")
    rate_per_month = annual_rate / Decimal(12)
    if rate_per_month == 0:
        payment = principal / Decimal(term_months)
    else:
        factor = (1 + rate_per_month) ** term_months
        payment = principal * (rate_per_month * factor) / (factor - 1)
    return payment.quantize(CENT, rounding=ROUND_UP)


def _is_int(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _normalize_loan(loan: LoanDefinition) -> LoanDefinition:
    principal = to_money(to_decimal(loan.principal, "principal"))
    if principal <= 0:
        raise InvalidInputError("Principal must be positive")
    annual_rate = to_decimal(loan.annual_rate, "annual rate")
    if annual_rate < 0:
        raise InvalidInputError("Annual rate cannot be negative")
    extra = to_money(to_decimal(loan.extra_monthly_payment, "extra monthly payment"))
    if extra < 0:
        raise InvalidInputError("Extra monthly payment cannot be negative")
    start_date = parse_iso_date(loan.start_date, "start date")
    day = loan.preferred_payment_day
    if day is not None and (not _is_int(day) or not 1 <= day <= 31):
        raise InvalidInputError(f"Preferred payment day must be between 1 and 31; got {day}")

    if loan.payment_amount is None:
        if not loan.term_months:
            raise InvalidInputError("Either a payment amount or a term is required")
        payment = solve_payment(principal, annual_rate, loan.term_months)
        logger.debug("Solved payment %s for a %d month term", payment, loan.term_months)
    else:
        payment = to_money(to_decimal(loan.payment_amount, "payment amount"))
    if payment <= 0:
        raise InvalidInputError("Payment amount must be positive")

    return replace(
        loan,
        principal=principal,
        annual_rate=annual_rate,
        payment_amount=payment,
        start_date=start_date,
        extra_monthly_payment=extra,
    )


def _normalize_adjustments(
    base_rate: Decimal, adjustments: Iterable[RateAdjustment]
) -> Tuple[RateAdjustment, ...]:
    normalized = [
        replace(
            adj,
            effective_date=parse_iso_date(adj.effective_date, "effective date"),
            rate_delta=to_decimal(adj.rate_delta, "rate delta"),
        )
        for adj in adjustments
    ]
    ordered = sort_adjustments(normalized)
    rate = base_rate
    for adj in ordered:
        rate += adj.rate_delta
        if rate < 0:
            raise InvalidInputError(
                f"Rate adjustment effective {adj.effective_date.isoformat()} "
                f"makes the annual rate negative ({rate})"
            )
    return ordered


def _normalize_lump_sums(lump_sums: Iterable[LumpSumPayment]) -> Tuple[LumpSumPayment, ...]:
    normalized: List[LumpSumPayment] = []
    for lump in lump_sums:
        amount = to_money(to_decimal(lump.amount, "lump sum amount"))
        if amount <= 0:
            raise InvalidInputError("Lump sum amount must be positive")
        actual_amount = lump.actual_amount
        if actual_amount is not None:
            actual_amount = to_money(to_decimal(actual_amount, "lump sum actual amount"))
            if actual_amount <= 0:
                raise InvalidInputError("Lump sum actual amount must be positive")
        if not _is_int(lump.year) or not _is_int(lump.month):
            raise InvalidInputError(
                f"Lump sum year and month must be integers; got {lump.year!r}, {lump.month!r}"
            )
        if lump.year < 0:
            raise InvalidInputError(f"Lump sum year cannot be negative; got {lump.year}")
        if lump.year > 0 and not 1 <= lump.month <= 12:
            raise InvalidInputError(f"Lump sum month must be between 1 and 12; got {lump.month}")
        planned_date = lump.planned_date
        if planned_date is not None:
            planned_date = parse_iso_date(planned_date, "lump sum planned date")
        actual_paid_date = lump.actual_paid_date
        if actual_paid_date is not None:
            actual_paid_date = parse_iso_date(actual_paid_date, "lump sum actual paid date")
        normalized.append(
            replace(
                lump,
                amount=amount,
                actual_amount=actual_amount,
                planned_date=planned_date,
                actual_paid_date=actual_paid_date,
            )
        )
    return tuple(normalized)


def prepare_inputs(
    loan: LoanDefinition,
    rate_adjustments: Iterable[RateAdjustment] = (),
    lump_sums: Iterable[LumpSumPayment] = (),
) -> Tuple[LoanDefinition, Tuple[RateAdjustment, ...], Tuple[LumpSumPayment, ...]]:
    """Validate the inputs and return normalized copies of them.

    Money is rounded to cents, the payment is solved when missing and the
    adjustments are sorted. Raises ``InvalidInputError`` on the first
    problem found.
    """
    loan = _normalize_loan(loan)
    adjustments = _normalize_adjustments(loan.annual_rate, rate_adjustments)
    return loan, adjustments, _normalize_lump_sums(lump_sums)


def compute_schedule(
    loan: LoanDefinition,
    rate_adjustments: Iterable[RateAdjustment] = (),
    lump_sums: Iterable[LumpSumPayment] = (),
    *,
    max_periods: int = MAX_PERIODS,
) -> Tuple[ScheduleEntry, ...]:
    """Compute the amortization schedule for a loan.

    Parameters
    ----------
    loan: LoanDefinition
        The loan being repaid.
    rate_adjustments: Iterable[RateAdjustment]
        Dated changes to the nominal rate, applied cumulatively.
    lump_sums: Iterable[LumpSumPayment]
        Extra principal-only payments.
    max_periods: int
        Number of periods after which a loan that is still not paid off is
        reported as never amortizing.

    Returns
    -------
    Tuple[ScheduleEntry, ...]
        One entry per month, the last one flagged with ``is_payoff``.

    Raises
    ------
    InvalidInputError
        If the inputs are invalid.
    InvalidScheduleError
        If the balance is not paid off within ``max_periods`` periods.
    """
    loan, adjustments, lumps = prepare_inputs(loan, rate_adjustments, lump_sums)
    lump_map = lump_sums_by_period(lumps, loan)
    payment = loan.payment_amount
    extra = loan.extra_monthly_payment

    schedule: List[ScheduleEntry] = []
    balance = loan.principal
    previous_date = None
    for period in range(1, max_periods + 1):
        current_date = payment_date(loan.start_date, period, loan.preferred_payment_day)
        rate = applicable_rate(loan.annual_rate, adjustments, current_date)
        rate_changed = bool(adjustments_effective_between(adjustments, previous_date, current_date))
        interest = to_money(balance * rate / Decimal(12))

        # Final-period clamp
        scheduled = payment
        if balance + interest < scheduled:
            scheduled = balance + interest

        lump = lump_map.get(period, ZERO)
        principal_paid = scheduled + extra + lump - interest
        if principal_paid > balance:
            principal_paid = balance
        starting_balance = balance
        balance = balance - principal_paid
        paid_off = balance <= PAYOFF_EPSILON
        if paid_off:
            balance = ZERO

        schedule.append(
            ScheduleEntry(
                period=period,
                payment_date=current_date,
                starting_balance=starting_balance,
                scheduled_payment=scheduled,
                actual_payment=interest + principal_paid,
                principal=principal_paid,
                interest=interest,
                lump_sum=lump,
                remaining_balance=balance,
                applicable_rate=rate,
                is_lump_sum=lump > 0,
                is_rate_change=rate_changed,
                is_payoff=paid_off,
            )
        )
        if paid_off:
            logger.debug("Loan paid off in period %d on %s", period, current_date)
            return tuple(schedule)
        previous_date = current_date

    logger.debug("No payoff after %d periods; balance %s", max_periods, balance)
    raise InvalidScheduleError(
        f"Loan is not paid off within {max_periods} periods; "
        "the payment does not cover the accruing interest",
        max_periods=max_periods,
        balance=balance,
    )


def _applied_lump_sum(entry: ScheduleEntry, extra: Decimal) -> Decimal:
    # At payoff the principal cap eats into the lump sum before the
    # instalment and the extra payment.
    regular = entry.scheduled_payment - entry.interest + extra
    return min(entry.lump_sum, max(entry.principal - regular, ZERO))


def summarize(
    loan: LoanDefinition,
    schedule: Sequence[ScheduleEntry],
    baseline: Optional[Sequence[ScheduleEntry]] = None,
) -> Dict[str, object]:
    """Aggregate metrics for a computed schedule.

    When ``baseline`` (typically the schedule without lump sums) is given,
    a ``comparison`` section reports the interest and months saved.
    """
    total_interest = sum((e.interest for e in schedule), ZERO)
    total_paid = sum((e.actual_payment for e in schedule), ZERO)
    extra = to_decimal(loan.extra_monthly_payment, "extra monthly payment")
    total_lump_sums = sum((_applied_lump_sum(e, extra) for e in schedule if e.is_lump_sum), ZERO)
    # Highest cash outflow in a single period, lump sums included.
    max_payment = max((e.actual_payment for e in schedule), default=ZERO)

    summary: Dict[str, object] = {
        "principal": float(to_decimal(loan.principal, "principal")),
        "total_interest": float(total_interest),
        "total_paid": float(total_paid),
        "total_lump_sums": float(total_lump_sums),
        "payments_made": len(schedule),
        "first_payment_date": schedule[0].payment_date.isoformat() if schedule else None,
        "payoff_date": schedule[-1].payment_date.isoformat() if schedule else None,
        "term_months": len(schedule),
        "term": format_term(len(schedule)),
        "max_payment": float(max_payment),
        "final_rate": float(schedule[-1].applicable_rate) if schedule else None,
    }
    if baseline is not None:
        baseline_interest = sum((e.interest for e in baseline), ZERO)
        summary["comparison"] = {
            "baseline_total_interest": float(baseline_interest),
            "baseline_payoff_date": baseline[-1].payment_date.isoformat() if baseline else None,
            "interest_saved": float(baseline_interest - total_interest),
            "months_saved": len(baseline) - len(schedule),
        }
    return summary


def lump_sum_impacts(
    loan: LoanDefinition,
    rate_adjustments: Iterable[RateAdjustment] = (),
    lump_sums: Sequence[LumpSumPayment] = (),
    *,
    max_periods: int = MAX_PERIODS,
) -> List[LumpSumImpact]:
    """Measure what each lump sum contributes, in input order.

    Each lump sum is compared against the schedule holding only the lump sums
    before it, so the marginal savings add up to the cumulative saving.
    """
    adjustments = tuple(rate_adjustments)
    lump_sums = tuple(lump_sums)
    normalized = _normalize_lump_sums(lump_sums)
    solved_loan = _normalize_loan(loan)

    def total_interest(schedule: Sequence[ScheduleEntry]) -> Decimal:
        return sum((e.interest for e in schedule), ZERO)

    previous = compute_schedule(loan, adjustments, (), max_periods=max_periods)
    baseline_interest = total_interest(previous)
    impacts: List[LumpSumImpact] = []
    for index, lump in enumerate(lump_sums):
        current = compute_schedule(loan, adjustments, lump_sums[: index + 1], max_periods=max_periods)
        current_interest = total_interest(current)
        impacts.append(
            LumpSumImpact(
                index=index,
                period=resolve_lump_sum_period(normalized[index], solved_loan),
                amount=effective_lump_sum_amount(normalized[index]),
                interest_saved=total_interest(previous) - current_interest,
                months_saved=len(previous) - len(current),
                cumulative_interest_saved=baseline_interest - current_interest,
            )
        )
        previous = current
    return impacts
