# tests/conftest.py
from __future__ import annotations

import pytest

from mortgage_calc.data_models import LoanDefinition
from mortgage_calc_web.app import create_app
from tests.utils import make_loan


@pytest.fixture
def loan() -> LoanDefinition:
    return make_loan()


@pytest.fixture
def loan_payload() -> dict:
    return {
        "principal": 200000,
        "annualRate": 0.05,
        "paymentAmount": 1073.64,
        "startDate": "2025-01-01",
    }


@pytest.fixture
def app(tmp_path):
    app = create_app(
        {
            "TESTING": True,
            "SECRET_KEY": "test",
            "SCENARIO_DATABASE_URL": f"sqlite:///{tmp_path / 'scenarios.sqlite3'}",
            "SCENARIO_MAX_PER_USER": 3,
        }
    )
    return app


@pytest.fixture
def client(app):
    return app.test_client()
