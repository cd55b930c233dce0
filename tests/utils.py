# tests/utils.py
from __future__ import annotations

from datetime import date
from decimal import Decimal

from mortgage_calc.data_models import LoanDefinition


def make_loan(**overrides) -> LoanDefinition:
    """The 200k / 5 % / 30 year reference loan, paid on the 1st."""
    values = dict(
        principal=Decimal("200000"),
        annual_rate=Decimal("0.05"),
        payment_amount=Decimal("1073.64"),
        start_date=date(2025, 1, 1),
    )
    values.update(overrides)
    return LoanDefinition(**values)
