"""Command-line interface for the mortgage calculator.

This module uses the ``click`` library to implement a multi-command
interface. Users can compute full amortization schedules with rate changes
and lump sums, view summaries, measure what each lump sum saves and
normalize loan terms. Results can be printed to the terminal or exported to
JSON/CSV files.
"""

from __future__ import annotations

import csv
import json
import logging
from datetime import date
from decimal import Decimal
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Tuple

import click

from .contracts import schedule_to_list
from .data_models import LoanDefinition, LumpSumPayment, RateAdjustment, ScheduleEntry
from .engine import compute_schedule, lump_sum_impacts, summarize
from .errors import InvalidInputError, ScheduleError
from .formatter import print_impacts, print_schedule, print_summary
from .term import format_term, normalize_term_parts, term_parts_to_months
from .utils import parse_iso_date, parse_year_month, to_decimal


def parse_amount(value: str) -> Decimal:
    """Parse a numeric string with optional suffixes.

    Accepts plain numbers ("500000") and shorthand with ``k``/``m`` suffixes
    (e.g., "500k" meaning 500_000).
    """
    value = value.strip().lower().replace(",", "")
    factor = Decimal(1)
    if value.endswith("k"):
        factor = Decimal(1_000)
        value = value[:-1]
    elif value.endswith("m"):
        factor = Decimal(1_000_000)
        value = value[:-1]
    try:
        return to_decimal(value) * factor
    except InvalidInputError:
        raise click.BadParameter(f"Invalid amount: {value}")


def parse_percent(value: str) -> Decimal:
    """Parse a percentage string ("4.5" or "4.5%") into a fraction."""
    value = value.strip()
    if value.endswith("%"):
        value = value[:-1]
    try:
        return to_decimal(value) / Decimal(100)
    except InvalidInputError:
        raise click.BadParameter(f"Invalid percentage: {value}")


def parse_date(value: str) -> date:
    """Parse ``YYYY-MM-DD``, or ``YYYY-MM`` meaning the first of the month."""
    try:
        if value.count("-") == 1:
            return parse_year_month(value)
        return parse_iso_date(value)
    except InvalidInputError as exc:
        raise click.BadParameter(str(exc))


def parse_rate_change_strings(values: Sequence[str]) -> List[RateAdjustment]:
    adjustments: List[RateAdjustment] = []
    for item in values:
        parts = item.split(":", 2)
        if len(parts) < 2:
            raise click.BadParameter(
                f"Rate change must be in DATE:DELTA_PERCENT[:DESCRIPTION] format; got {item}"
            )
        description = parts[2] if len(parts) == 3 else None
        adjustments.append(
            RateAdjustment(
                effective_date=parse_date(parts[0]),
                rate_delta=parse_percent(parts[1]),
                description=description or None,
            )
        )
    return adjustments


def parse_lump_sum_strings(values: Sequence[str]) -> List[LumpSumPayment]:
    """Parse ``DATE:AMOUNT`` or ``YEAR:MONTH:AMOUNT`` lump sums.

    ``YEAR`` is the loan year (``0`` means with the first payment), not a
    calendar year.
    """
    lump_sums: List[LumpSumPayment] = []
    for item in values:
        parts = item.split(":")
        if len(parts) == 2:
            planned = parse_date(parts[0])
            lump_sums.append(
                LumpSumPayment(amount=parse_amount(parts[1]), year=0, month=1, planned_date=planned)
            )
        elif len(parts) == 3:
            try:
                year, month = int(parts[0]), int(parts[1])
            except ValueError:
                raise click.BadParameter(f"Invalid loan year/month in lump sum: {item}")
            lump_sums.append(LumpSumPayment(amount=parse_amount(parts[2]), year=year, month=month))
        else:
            raise click.BadParameter(
                f"Lump sum must be in DATE:AMOUNT or YEAR:MONTH:AMOUNT format; got {item}"
            )
    return lump_sums


def build_inputs_from_options(
    principal: str,
    rate: str,
    payment: Optional[str],
    term_years: Optional[int],
    term_months: Optional[int],
    start_date: str,
    payment_day: Optional[int],
    extra: Optional[str],
    rate_change: Sequence[str],
    lump_sum: Sequence[str],
) -> Tuple[LoanDefinition, List[RateAdjustment], List[LumpSumPayment]]:
    total_months = term_parts_to_months(term_years, term_months)
    if payment is None and not total_months:
        raise click.UsageError("Provide either --payment or a term (--term-years/--term-months)")
    loan = LoanDefinition(
        principal=parse_amount(principal),
        annual_rate=parse_percent(rate),
        payment_amount=parse_amount(payment) if payment else None,
        start_date=parse_date(start_date),
        preferred_payment_day=payment_day,
        term_months=total_months or None,
        extra_monthly_payment=parse_amount(extra) if extra else Decimal("0"),
    )
    return loan, parse_rate_change_strings(rate_change), parse_lump_sum_strings(lump_sum)


def export_to_json(path: Path, schedule: Sequence[ScheduleEntry], summary: Dict[str, Any]) -> None:
    """Export schedule and summary to a JSON file."""
    data = {"summary": summary, "schedule": schedule_to_list(schedule)}
    with path.open("w", encoding="utf-8") as f:
        json.dump(data, f, indent=2)


def export_to_csv(path: Path, schedule: Sequence[ScheduleEntry]) -> None:
    """Export schedule to a CSV file."""
    header = [
        "Period",
        "Payment_Date",
        "Rate",
        "Starting_Balance",
        "Scheduled_Payment",
        "Actual_Payment",
        "Principal",
        "Interest",
        "Lump_Sum",
        "Remaining_Balance",
        "Rate_Change",
        "Payoff",
    ]
    with path.open("w", newline="", encoding="utf-8") as f:
        writer = csv.writer(f)
        writer.writerow(header)
        for e in schedule:
            writer.writerow(
                [
                    e.period,
                    e.payment_date.isoformat(),
                    str(e.applicable_rate),
                    str(e.starting_balance),
                    str(e.scheduled_payment),
                    str(e.actual_payment),
                    str(e.principal),
                    str(e.interest),
                    str(e.lump_sum),
                    str(e.remaining_balance),
                    e.is_rate_change,
                    e.is_payoff,
                ]
            )


def loan_options(func):
    """Attach the options describing a loan and its events to a command."""
    options = [
        click.option("--principal", "-p", "principal", required=True, help="Loan amount (accepts 500k)"),
        click.option("--rate", "-r", "rate", required=True, help="Annual interest rate (percent)"),
        click.option("--payment", "payment", help="Monthly payment; solved from the term when omitted"),
        click.option("--term-years", "term_years", type=int, help="Term in years, used to solve the payment"),
        click.option("--term-months", "term_months", type=int, help="Additional term months"),
        click.option("--start-date", "-s", "start_date", required=True, help="First payment date (YYYY-MM-DD)"),
        click.option("--payment-day", "payment_day", type=click.IntRange(1, 31), help="Preferred day of month"),
        click.option("--extra", "extra", help="Extra principal paid every month"),
        click.option(
            "--rate-change",
            "rate_change",
            multiple=True,
            help="Rate change in DATE:DELTA_PERCENT[:DESCRIPTION] format, e.g. 2027-01-01:-0.25",
        ),
        click.option(
            "--lump-sum",
            "lump_sum",
            multiple=True,
            help="Lump sum in DATE:AMOUNT or LOAN_YEAR:MONTH:AMOUNT format",
        ),
    ]
    for option in reversed(options):
        func = option(func)
    return func


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Log engine details to stderr")
def cli(verbose: bool) -> None:
    """A command-line mortgage calculator with rate changes and lump sums."""
    if verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(asctime)s %(levelname)s: %(message)s")


@cli.command()
@loan_options
@click.option("--output", "output", type=str, help="Output file path (.json or .csv)")
def schedule(output: Optional[str], **options: Any) -> None:
    """Compute and print the full amortization schedule."""
    loan, adjustments, lump_sums = build_inputs_from_options(**options)
    try:
        schedule_entries = compute_schedule(loan, adjustments, lump_sums)
    except ScheduleError as exc:
        raise click.ClickException(str(exc))
    summary_data = summarize(loan, schedule_entries)
    if output:
        path = Path(output)
        if path.suffix.lower() == ".json":
            export_to_json(path, schedule_entries, summary_data)
        elif path.suffix.lower() == ".csv":
            export_to_csv(path, schedule_entries)
        else:
            raise click.BadParameter("Unsupported output format; use .json or .csv")
        click.echo(f"Schedule exported to {path}")
    else:
        print_summary(summary_data)
        print_schedule(schedule_entries)


@cli.command()
@loan_options
@click.option("--output", "output", type=str, help="Output file path (.json)")
def summary(output: Optional[str], **options: Any) -> None:
    """Compute and print the summary, compared with the loan without lump sums."""
    loan, adjustments, lump_sums = build_inputs_from_options(**options)
    try:
        schedule_entries = compute_schedule(loan, adjustments, lump_sums)
        baseline = compute_schedule(loan, adjustments) if lump_sums else None
    except ScheduleError as exc:
        raise click.ClickException(str(exc))
    summary_data = summarize(loan, schedule_entries, baseline)
    if output:
        path = Path(output)
        if path.suffix.lower() != ".json":
            raise click.BadParameter("Summary export must use .json extension")
        with path.open("w", encoding="utf-8") as f:
            json.dump({"summary": summary_data}, f, indent=2)
        click.echo(f"Summary exported to {path}")
    else:
        print_summary(summary_data)


@cli.command()
@loan_options
def impacts(**options: Any) -> None:
    """Show how much interest and time each lump sum saves."""
    loan, adjustments, lump_sums = build_inputs_from_options(**options)
    if not lump_sums:
        raise click.UsageError("Add at least one --lump-sum to measure its impact")
    try:
        results = lump_sum_impacts(loan, adjustments, lump_sums)
    except ScheduleError as exc:
        raise click.ClickException(str(exc))
    print_impacts(results)


@cli.command()
@click.argument("years", required=False)
@click.argument("months", required=False)
def term(years: Optional[str], months: Optional[str]) -> None:
    """Normalize a YEARS MONTHS term, e.g. ``term 24 18`` gives 25 years 6 months."""
    parts = normalize_term_parts(years, months)
    click.echo(f"{parts.years} years {parts.months} months ({parts.total_months} months): {format_term(parts.total_months)}")


if __name__ == "__main__":
    cli()
