"""Data models for the mortgage schedule engine.

This module defines dataclasses representing the entities the engine works
with: the loan definition, dated rate adjustments, lump-sum payments, the
rows of a computed schedule and a years/months term. All of them are frozen
so a schedule is always a pure function of its inputs.
"""

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Optional


@dataclass(frozen=True)
class LoanDefinition:
    """Configuration of a loan.

    Attributes
    ----------
    principal: Decimal
        The amount borrowed. Must be positive.
    annual_rate: Decimal
        Nominal annual rate as a fraction (``Decimal("0.045")`` for 4.5 %).
    payment_amount: Decimal or None
        Contractual monthly payment. ``None`` asks the engine to solve the
        payment from ``term_months``.
    start_date: date
        Loan start and, without ``preferred_payment_day``, the date of the
        first payment. With a preferred day the first payment is the first
        date on or after the start falling on that day. Later payments keep the day of the month,
        clamped to the month end.
    """

    principal: Decimal
    annual_rate: Decimal
    payment_amount: Optional[Decimal]
    start_date: date
    preferred_payment_day: Optional[int] = None
    # Only needed when the payment amount is solved for.
    term_months: Optional[int] = None
    # Principal-only amount paid on top of every scheduled payment.
    extra_monthly_payment: Decimal = Decimal("0")


@dataclass(frozen=True)
class RateAdjustment:
    """A change of the nominal annual rate effective from ``effective_date``.

    ``rate_delta`` is signed and added to whatever rate applies at that point,
    so adjustments are cumulative.
    """

    effective_date: date
    rate_delta: Decimal
    description: Optional[str] = None


@dataclass(frozen=True)
class LumpSumPayment:
    """An extra, principal-only payment.

    Attributes
    ----------
    amount: Decimal
        Planned amount.
    year: int
        Loan year the payment is planned for. ``0`` means immediately, i.e.
        together with the first payment.
    month: int
        Month (1-12) within the loan year.
    is_paid: bool
        Whether the payment has actually been made. Paid payments use
        ``actual_paid_date`` and ``actual_amount`` when they are known.
    planned_date: date or None
        Exact planned date; takes precedence over ``year``/``month``.
    """

    amount: Decimal
    year: int
    month: int
    is_paid: bool = False
    actual_paid_date: Optional[date] = None
    planned_date: Optional[date] = None
    actual_amount: Optional[Decimal] = None
    description: Optional[str] = None


@dataclass(frozen=True)
class ScheduleEntry:
    """An entry in the amortization schedule, one per monthly period."""

    period: int
    payment_date: date
    starting_balance: Decimal
    scheduled_payment: Decimal
    actual_payment: Decimal
    principal: Decimal
    interest: Decimal
    lump_sum: Decimal
    remaining_balance: Decimal
    applicable_rate: Decimal
    is_lump_sum: bool = False
    is_rate_change: bool = False
    is_payoff: bool = False


@dataclass(frozen=True)
class TermParts:
    """A loan term split into whole years and remaining months."""

    years: int
    months: int

    @property
    def total_months(self) -> int:
        return self.years * 12 + self.months


@dataclass(frozen=True)
class LumpSumImpact:
    """Effect of a single lump sum on the schedule it is added to."""

    index: int
    period: int
    amount: Decimal
    interest_saved: Decimal
    months_saved: int
    cumulative_interest_saved: Decimal
