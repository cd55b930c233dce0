"""Conversion between plain JSON-style dictionaries and engine dataclasses.

Callers that fetch loans, rate adjustments and lump sums from storage or
receive them over HTTP pass camelCase dictionaries. This module turns them
into the frozen dataclasses the engine works on and serializes the results
back into JSON-friendly dictionaries.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence

from .data_models import (
    LoanDefinition,
    LumpSumImpact,
    LumpSumPayment,
    RateAdjustment,
    ScheduleEntry,
)
from .errors import InvalidInputError
from .term import term_parts_to_months
from .utils import parse_iso_date, to_decimal


def _require(data: Mapping[str, Any], key: str) -> Any:
    value = data.get(key)
    if value is None or value == "":
        raise InvalidInputError(f"Missing required field: {key}")
    return value


def _optional_decimal(data: Mapping[str, Any], key: str):
    value = data.get(key)
    if value is None or value == "":
        return None
    return to_decimal(value, key)


def _optional_date(data: Mapping[str, Any], key: str):
    value = data.get(key)
    if not value:
        return None
    return parse_iso_date(value, key)


def _int(value: Any, key: str) -> int:
    if isinstance(value, bool):
        raise InvalidInputError(f"Invalid integer for {key}: {value!r}")
    number = to_decimal(value, key)
    if number != number.to_integral_value():
        raise InvalidInputError(f"Invalid integer for {key}: {value!r}")
    return int(number)


def _flag(data: Mapping[str, Any], key: str) -> bool:
    value = data.get(key)
    if value is None:
        return False
    if not isinstance(value, bool):
        raise InvalidInputError(f"Invalid boolean for {key}: {value!r}")
    return value


def _optional_text(data: Mapping[str, Any], key: str) -> Optional[str]:
    value = data.get(key)
    if isinstance(value, str) and value.strip():
        return value
    return None


def loan_from_dict(data: Mapping[str, Any]) -> LoanDefinition:
    """Build a ``LoanDefinition`` from its dictionary form.

    ``termYears``/``termMonths`` are optional and, like every term entered
    by a user, degrade to zero when they are missing or not numbers.
    """
    term_months = term_parts_to_months(data.get("termYears"), data.get("termMonths"))
    preferred_day = data.get("preferredPaymentDay")
    return LoanDefinition(
        principal=to_decimal(_require(data, "principal"), "principal"),
        annual_rate=to_decimal(_require(data, "annualRate"), "annualRate"),
        payment_amount=_optional_decimal(data, "paymentAmount"),
        start_date=parse_iso_date(_require(data, "startDate"), "startDate"),
        preferred_payment_day=None if preferred_day in (None, "") else _int(preferred_day, "preferredPaymentDay"),
        term_months=term_months or None,
        extra_monthly_payment=_optional_decimal(data, "extraMonthlyPayment") or Decimal("0"),
    )


def rate_adjustment_from_dict(data: Mapping[str, Any]) -> RateAdjustment:
    return RateAdjustment(
        effective_date=parse_iso_date(_require(data, "effectiveDate"), "effectiveDate"),
        rate_delta=to_decimal(_require(data, "rateDelta"), "rateDelta"),
        description=_optional_text(data, "description"),
    )


def lump_sum_from_dict(data: Mapping[str, Any]) -> LumpSumPayment:
    year = data.get("year")
    month = data.get("month")
    return LumpSumPayment(
        amount=to_decimal(_require(data, "amount"), "amount"),
        year=0 if year in (None, "") else _int(year, "year"),
        month=1 if month in (None, "") else _int(month, "month"),
        is_paid=_flag(data, "isPaid"),
        actual_paid_date=_optional_date(data, "actualPaidDate"),
        planned_date=_optional_date(data, "plannedDate"),
        actual_amount=_optional_decimal(data, "actualAmount"),
        description=_optional_text(data, "description"),
    )


def inputs_from_dict(payload: Mapping[str, Any]):
    """Parse a ``{loan, rateAdjustments, lumpSumPayments}`` request body."""
    if not isinstance(payload, Mapping):
        raise InvalidInputError("Request body must be a JSON object")
    loan_data = payload.get("loan")
    if not isinstance(loan_data, Mapping):
        raise InvalidInputError("Missing required field: loan")
    adjustments = [rate_adjustment_from_dict(item) for item in payload.get("rateAdjustments") or []]
    lump_sums = [lump_sum_from_dict(item) for item in payload.get("lumpSumPayments") or []]
    return loan_from_dict(loan_data), adjustments, lump_sums


def entry_to_dict(entry: ScheduleEntry) -> Dict[str, Any]:
    return {
        "period": entry.period,
        "paymentDate": entry.payment_date.isoformat(),
        "startingBalance": float(entry.starting_balance),
        "scheduledPayment": float(entry.scheduled_payment),
        "actualPayment": float(entry.actual_payment),
        "principal": float(entry.principal),
        "interest": float(entry.interest),
        "lumpSum": float(entry.lump_sum),
        "remainingBalance": float(entry.remaining_balance),
        "applicableRate": float(entry.applicable_rate),
        "isLumpSum": entry.is_lump_sum,
        "isRateChange": entry.is_rate_change,
        "isPayoff": entry.is_payoff,
    }


def schedule_to_list(schedule: Iterable[ScheduleEntry]) -> List[Dict[str, Any]]:
    """Convert schedule entries into JSON-serialisable dictionaries."""
    return [entry_to_dict(entry) for entry in schedule]


def impacts_to_list(impacts: Sequence[LumpSumImpact]) -> List[Dict[str, Any]]:
    return [
        {
            "index": impact.index,
            "period": impact.period,
            "amount": float(impact.amount),
            "interestSaved": float(impact.interest_saved),
            "monthsSaved": impact.months_saved,
            "cumulativeInterestSaved": float(impact.cumulative_interest_saved),
        }
        for impact in impacts
    ]
