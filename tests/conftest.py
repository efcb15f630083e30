# This project was developed with assistance from AI tools.
"""Shared fixtures: a 100,000 / 6% / 30-year loan and an HTTP client."""

from datetime import date
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

import pytest
from db import get_db
from fastapi.testclient import TestClient

from servicing.main import app
from servicing.schemas.modification import ModificationCalculationParams
from servicing.services.amortization import create_loan_terms

LOAN_START = date(2024, 1, 1)


@pytest.fixture
def loan_terms():
    return create_loan_terms(Decimal("100000"), Decimal("6"), 360, LOAN_START)


@pytest.fixture
def balloon_loan_terms():
    return create_loan_terms(
        Decimal("100000"),
        Decimal("6"),
        360,
        LOAN_START,
        balloon_payment=Decimal("20000"),
    )


@pytest.fixture
def params():
    """Position at origination: nothing paid yet."""
    return ModificationCalculationParams(
        current_balance=Decimal("100000"),
        current_terms_remaining=360,
        current_payment_number=1,
    )


@pytest.fixture
def mock_session():
    session = AsyncMock()
    session.add = MagicMock()
    return session


@pytest.fixture
def client(mock_session):
    """TestClient with the database dependency replaced by a mock session."""

    async def _get_db():
        yield mock_session

    app.dependency_overrides[get_db] = _get_db
    yield TestClient(app)
    app.dependency_overrides.clear()
