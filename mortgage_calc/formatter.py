"""Output helpers for the mortgage calculator.

This module provides simple functions to render amortization schedules,
summaries and lump-sum impacts in a tabular text format. We rely only on
built-in printing and string formatting.
"""

from __future__ import annotations

from typing import Dict, Iterable, Sequence

from .data_models import LumpSumImpact, ScheduleEntry


def print_summary(summary: Dict[str, object]) -> None:
    """Print a summary of loan metrics in a human-readable format."""
    print("Summary")
    print("-" * 72)
    print(f"Principal          : {summary['principal']:.2f}")
    print(f"Total interest     : {summary['total_interest']:.2f}")
    if summary.get("total_lump_sums"):
        print(f"Total lump sums    : {summary['total_lump_sums']:.2f}")
    print(f"Total paid         : {summary['total_paid']:.2f}")
    print(f"First payment      : {summary['first_payment_date']}")
    print(f"Payoff date        : {summary['payoff_date']}")
    print(f"Term               : {summary['term']} ({summary['term_months']} payments)")
    if summary.get("final_rate") is not None:
        print(f"Final rate         : {summary['final_rate'] * 100:.3f}%")
    if summary.get("max_payment"):
        print(f"Highest payment    : {summary['max_payment']:.2f}")
    comparison = summary.get("comparison")
    if comparison:
        print(f"Baseline interest  : {comparison['baseline_total_interest']:.2f}")
        print(f"Interest saved     : {comparison['interest_saved']:.2f}")
        if comparison.get("months_saved"):
            print(f"Term reduction     : {int(comparison['months_saved'])} months")
    print("-" * 72)


def _flags(entry: ScheduleEntry) -> str:
    flags = []
    if entry.is_rate_change:
        flags.append("rate")
    if entry.is_lump_sum:
        flags.append("lump")
    if entry.is_payoff:
        flags.append("payoff")
    return ",".join(flags)


def print_schedule(schedule: Iterable[ScheduleEntry]) -> None:
    """Print the amortization schedule as a simple table."""
    headers = [
        "Period",
        "Date",
        "Rate%",
        "StartBal",
        "Payment",
        "Principal",
        "Interest",
        "LumpSum",
        "EndBal",
        "Flags",
    ]
    print("\t".join(headers))
    for entry in schedule:
        row = [
            str(entry.period),
            entry.payment_date.isoformat(),
            f"{entry.applicable_rate * 100:.3f}",
            f"{entry.starting_balance:.2f}",
            f"{entry.actual_payment:.2f}",
            f"{entry.principal:.2f}",
            f"{entry.interest:.2f}",
            f"{entry.lump_sum:.2f}",
            f"{entry.remaining_balance:.2f}",
            _flags(entry),
        ]
        print("\t".join(row))


def print_impacts(impacts: Sequence[LumpSumImpact]) -> None:
    """Print what each lump sum saves, in the order the lump sums were given."""
    print(f"{'#':>3s} {'Period':>7s} {'Amount':>12s} {'Interest saved':>15s} {'Months saved':>13s} {'Cumulative':>12s}")
    for impact in impacts:
        print(
            f"{impact.index + 1:3d} {impact.period:7d} {impact.amount:12.2f} "
            f"{impact.interest_saved:15.2f} {impact.months_saved:13d} "
            f"{impact.cumulative_interest_saved:12.2f}"
        )
