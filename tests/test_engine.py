# tests/test_engine.py
import json
from datetime import date
from decimal import Decimal

import pytest

from mortgage_calc.contracts import schedule_to_list
from mortgage_calc.data_models import LumpSumPayment, RateAdjustment
from mortgage_calc.engine import (
    MAX_PERIODS,
    compute_schedule,
    lump_sum_impacts,
    solve_payment,
    summarize,
)
from mortgage_calc.errors import InvalidInputError, InvalidScheduleError, ScheduleError
from tests.utils import make_loan


def test_reference_loan_pays_off(loan):
    schedule = compute_schedule(loan)
    assert 359 <= len(schedule) <= 362
    assert len(schedule) <= MAX_PERIODS
    last = schedule[-1]
    assert last.remaining_balance == 0
    assert last.is_payoff
    assert not any(e.is_payoff for e in schedule[:-1])
    assert sum(e.principal for e in schedule) == Decimal("200000")


def test_first_period_split(loan):
    first = compute_schedule(loan)[0]
    assert first.period == 1
    assert first.payment_date == date(2025, 1, 1)
    assert first.starting_balance == Decimal("200000")
    assert first.interest == Decimal("833.33")
    assert first.principal == Decimal("240.31")
    assert first.remaining_balance == Decimal("199759.69")
    assert first.scheduled_payment == Decimal("1073.64")
    assert first.actual_payment == Decimal("1073.64")
    assert first.applicable_rate == Decimal("0.05")
    assert not (first.is_lump_sum or first.is_rate_change or first.is_payoff)


def test_final_period_is_clamped(loan):
    last = compute_schedule(loan)[-1]
    assert last.scheduled_payment < Decimal("1073.64")
    assert last.principal == last.starting_balance
    assert last.scheduled_payment == last.principal + last.interest


def test_balances_chain(loan):
    schedule = compute_schedule(loan)
    for previous, current in zip(schedule, schedule[1:]):
        assert current.starting_balance == previous.remaining_balance
        assert current.remaining_balance == current.starting_balance - current.principal


def test_same_inputs_give_identical_output(loan):
    adjustments = [RateAdjustment(date(2027, 1, 1), Decimal("0.0075"))]
    lump_sums = [LumpSumPayment(Decimal("15000"), year=2, month=6)]
    first = compute_schedule(loan, adjustments, lump_sums)
    second = compute_schedule(loan, adjustments, lump_sums)
    assert first == second
    assert json.dumps(schedule_to_list(first)) == json.dumps(schedule_to_list(second))


def test_payment_dates_follow_month_end():
    schedule = compute_schedule(make_loan(start_date=date(2025, 1, 31)))
    assert [e.payment_date for e in schedule[:4]] == [
        date(2025, 1, 31),
        date(2025, 2, 28),
        date(2025, 3, 31),
        date(2025, 4, 30),
    ]


def test_preferred_payment_day():
    schedule = compute_schedule(make_loan(start_date=date(2025, 4, 15), preferred_payment_day=31))
    assert schedule[0].payment_date == date(2025, 4, 30)
    assert schedule[1].payment_date == date(2025, 5, 31)


def test_first_payment_is_never_before_the_loan_starts():
    loan = make_loan(start_date=date(2025, 1, 20), preferred_payment_day=5)
    schedule = compute_schedule(
        loan, lump_sums=[LumpSumPayment(Decimal("1000"), year=0, month=1, planned_date=date(2025, 2, 10))]
    )
    assert schedule[0].payment_date == date(2025, 2, 5)
    assert schedule[1].payment_date == date(2025, 3, 5)
    assert all(e.payment_date >= loan.start_date for e in schedule)
    assert schedule[1].is_lump_sum
    assert not schedule[0].is_lump_sum


def test_lump_sum_only_affects_later_periods(loan):
    baseline = compute_schedule(loan)
    with_lump = compute_schedule(loan, lump_sums=[LumpSumPayment(Decimal("10000"), year=1, month=12)])
    k = 12
    assert with_lump[: k - 1] == baseline[: k - 1]
    entry = with_lump[k - 1]
    assert entry.is_lump_sum
    assert entry.lump_sum == Decimal("10000")
    # The lump sum does not change the interest charged in its own period.
    assert entry.interest == baseline[k - 1].interest
    assert entry.actual_payment == entry.scheduled_payment + Decimal("10000")
    for index in range(k - 1, len(with_lump)):
        assert with_lump[index].remaining_balance < baseline[index].remaining_balance
    assert len(with_lump) < len(baseline)


def test_lump_sum_paying_off_the_loan_stops_the_schedule(loan):
    schedule = compute_schedule(
        loan, lump_sums=[LumpSumPayment(Decimal("1000000"), year=1, month=3)]
    )
    assert len(schedule) == 3
    last = schedule[-1]
    assert last.is_payoff and last.is_lump_sum
    assert last.remaining_balance == 0
    assert last.principal == last.starting_balance
    assert last.actual_payment == last.starting_balance + last.interest


def test_paid_lump_sum_uses_actual_values(loan):
    lump = LumpSumPayment(
        Decimal("5000"),
        year=1,
        month=6,
        is_paid=True,
        actual_paid_date=date(2025, 3, 1),
        actual_amount=Decimal("6000"),
    )
    schedule = compute_schedule(loan, lump_sums=[lump])
    assert schedule[2].lump_sum == Decimal("6000")
    assert not schedule[5].is_lump_sum


def test_rate_adjustment_applies_from_its_period(loan):
    baseline = compute_schedule(loan)
    schedule = compute_schedule(loan, [RateAdjustment(date(2026, 1, 1), Decimal("0.01"))])
    assert schedule[:12] == baseline[:12]
    assert all(e.applicable_rate == Decimal("0.05") for e in schedule[:12])
    assert all(e.applicable_rate == Decimal("0.06") for e in schedule[12:])
    assert [e.period for e in schedule if e.is_rate_change] == [13]
    assert schedule[12].interest > baseline[12].interest


def test_rate_adjustment_between_payment_dates(loan):
    schedule = compute_schedule(loan, [RateAdjustment(date(2025, 6, 15), Decimal("-0.01"))])
    assert schedule[5].applicable_rate == Decimal("0.05")
    assert schedule[6].applicable_rate == Decimal("0.04")
    assert schedule[6].is_rate_change


def test_rate_change_and_lump_sum_on_same_date(loan):
    change = RateAdjustment(date(2025, 7, 1), Decimal("0.01"))
    lump = LumpSumPayment(Decimal("20000"), year=0, month=1, planned_date=date(2025, 7, 1))
    rate_only = compute_schedule(loan, [change])
    both = compute_schedule(loan, [change], [lump])
    entry = both[6]
    assert entry.is_rate_change and entry.is_lump_sum
    assert entry.applicable_rate == Decimal("0.06")
    assert entry.interest == rate_only[6].interest
    assert entry.remaining_balance == rate_only[6].remaining_balance - Decimal("20000")


def test_adjustment_order_does_not_matter(loan):
    a = RateAdjustment(date(2026, 1, 1), Decimal("0.01"))
    b = RateAdjustment(date(2028, 1, 1), Decimal("-0.015"))
    assert compute_schedule(loan, [a, b]) == compute_schedule(loan, [b, a])


def test_zero_rate_loan():
    schedule = compute_schedule(
        make_loan(principal=Decimal("1200"), annual_rate=Decimal("0"), payment_amount=Decimal("100"))
    )
    assert len(schedule) == 12
    assert all(e.interest == 0 for e in schedule)
    assert schedule[-1].is_payoff


def test_extra_monthly_payment_shortens_the_loan(loan):
    baseline = compute_schedule(loan)
    schedule = compute_schedule(make_loan(extra_monthly_payment=Decimal("200")))
    assert schedule[0].principal == Decimal("440.31")
    assert not schedule[0].is_lump_sum
    assert len(schedule) < len(baseline)


def test_solve_payment():
    assert solve_payment(Decimal("200000"), Decimal("0.05"), 360) == Decimal("1073.65")
    assert solve_payment(Decimal("1200"), Decimal("0"), 12) == Decimal("100.00")
    with pytest.raises(InvalidInputError):
        solve_payment(Decimal("1200"), Decimal("0.05"), 0)


def test_schedule_solves_missing_payment():
    schedule = compute_schedule(make_loan(payment_amount=None, term_months=360))
    assert schedule[0].scheduled_payment == Decimal("1073.65")
    assert len(schedule) <= 360
    assert schedule[-1].is_payoff


def test_negative_amortization_raises():
    with pytest.raises(InvalidScheduleError) as excinfo:
        compute_schedule(make_loan(payment_amount=Decimal("500")))
    assert excinfo.value.max_periods == MAX_PERIODS
    assert excinfo.value.balance > Decimal("200000")


def test_payment_equal_to_interest_raises():
    with pytest.raises(InvalidScheduleError):
        compute_schedule(make_loan(principal=Decimal("120000"), payment_amount=Decimal("500")))


def test_period_cap_is_configurable(loan):
    with pytest.raises(InvalidScheduleError):
        compute_schedule(loan, max_periods=12)


@pytest.mark.parametrize(
    "overrides",
    [
        {"principal": Decimal("0")},
        {"principal": Decimal("-100")},
        {"payment_amount": Decimal("0")},
        {"annual_rate": Decimal("-0.01")},
        {"preferred_payment_day": 32},
        {"payment_amount": None},
        {"extra_monthly_payment": Decimal("-1")},
        {"principal": "not a number"},
        {"start_date": "2025-13-01"},
        {"start_date": None},
        {"preferred_payment_day": 15.5},
        {"preferred_payment_day": "15"},
    ],
)
def test_invalid_loans_are_rejected(overrides):
    with pytest.raises(InvalidInputError):
        compute_schedule(make_loan(**overrides))


def test_adjustments_driving_rate_negative_are_rejected(loan):
    adjustments = [
        RateAdjustment(date(2026, 1, 1), Decimal("-0.03")),
        RateAdjustment(date(2027, 1, 1), Decimal("-0.03")),
    ]
    with pytest.raises(InvalidInputError):
        compute_schedule(loan, adjustments)


@pytest.mark.parametrize(
    "lump",
    [
        LumpSumPayment(Decimal("0"), year=1, month=1),
        LumpSumPayment(Decimal("100"), year=1, month=13),
        LumpSumPayment(Decimal("100"), year=-1, month=1),
        LumpSumPayment(Decimal("100"), year=1, month=1, actual_amount=Decimal("-5")),
        LumpSumPayment(Decimal("100"), year=1, month=1, planned_date="June"),
        LumpSumPayment(Decimal("100"), year=1, month=1, is_paid=True, actual_paid_date=20250601),
        LumpSumPayment(Decimal("100"), year="1", month=1),
    ],
)
def test_invalid_lump_sums_are_rejected(loan, lump):
    with pytest.raises(InvalidInputError):
        compute_schedule(loan, lump_sums=[lump])


def test_adjustment_with_malformed_date_is_rejected(loan):
    with pytest.raises(InvalidInputError):
        compute_schedule(loan, [RateAdjustment("next year", Decimal("0.01"))])


def test_iso_strings_are_accepted_as_dates():
    loan = make_loan(start_date="2025-01-01")
    schedule = compute_schedule(loan, [RateAdjustment("2026-01-01", Decimal("0.01"))])
    assert schedule[0].payment_date == date(2025, 1, 1)
    assert schedule[12].is_rate_change


def test_errors_are_value_errors():
    assert issubclass(InvalidInputError, ScheduleError)
    assert issubclass(InvalidScheduleError, ValueError)


def test_summarize_with_baseline(loan):
    lump_sums = [LumpSumPayment(Decimal("25000"), year=3, month=1)]
    baseline = compute_schedule(loan)
    schedule = compute_schedule(loan, lump_sums=lump_sums)
    summary = summarize(loan, schedule, baseline)
    assert summary["payments_made"] == len(schedule)
    assert summary["total_interest"] == pytest.approx(float(sum(e.interest for e in schedule)))
    assert summary["total_lump_sums"] == pytest.approx(25000.0)
    assert summary["first_payment_date"] == "2025-01-01"
    assert summary["payoff_date"] == schedule[-1].payment_date.isoformat()
    assert summary["max_payment"] == pytest.approx(1073.64 + 25000)
    comparison = summary["comparison"]
    assert comparison["interest_saved"] > 0
    assert comparison["months_saved"] == len(baseline) - len(schedule)


def test_summary_counts_only_the_applied_part_of_a_lump_sum(loan):
    schedule = compute_schedule(
        loan, lump_sums=[LumpSumPayment(Decimal("1000000"), year=1, month=3)]
    )
    last = schedule[-1]
    applied = last.starting_balance - (last.scheduled_payment - last.interest)
    summary = summarize(loan, schedule)
    assert summary["total_lump_sums"] == pytest.approx(float(applied))
    assert summary["total_lump_sums"] < 1000000
    assert summary["total_paid"] == pytest.approx(summary["principal"] + summary["total_interest"])


def test_lump_sum_impacts(loan):
    lump_sums = [
        LumpSumPayment(Decimal("10000"), year=2, month=1),
        LumpSumPayment(Decimal("5000"), year=5, month=6),
    ]
    impacts = lump_sum_impacts(loan, lump_sums=lump_sums)
    assert [i.period for i in impacts] == [13, 54]
    assert all(i.interest_saved > 0 for i in impacts)
    assert all(i.months_saved >= 0 for i in impacts)
    baseline_interest = sum(e.interest for e in compute_schedule(loan))
    both_interest = sum(e.interest for e in compute_schedule(loan, lump_sums=lump_sums))
    assert impacts[-1].cumulative_interest_saved == baseline_interest - both_interest
    assert impacts[0].interest_saved + impacts[1].interest_saved == impacts[-1].cumulative_interest_saved
