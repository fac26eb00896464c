from datetime import date

import pytest
from fastapi.testclient import TestClient

from expense_tracker.config import load_config
from expense_tracker.database import create_transaction
from webapp.main import create_app


@pytest.fixture
def db_path(tmp_path):
    return str(tmp_path / "transactions.db")


@pytest.fixture
def config(tmp_path, db_path):
    return load_config(
        tmp_path / "missing.yaml",
        environ={"EXPENSE_TRACKER_ENV": "test", "EXPENSE_TRACKER_DB": db_path},
    )


@pytest.fixture
def client(config):
    return TestClient(create_app(config))


def make_tx(**overrides):
    data = {
        "amount": 10.0,
        "category": "Groceries",
        "description": "Weekly shop",
        "type": "expense",
        "date": date(2025, 1, 5),
        "tags": [],
        "notes": None,
    }
    data.update(overrides)
    return data


@pytest.fixture
def seeded_db(db_path):
    rows = [
        make_tx(amount=45.5, description="Fresh Market run", date=date(2025, 1, 5), tags=["food"]),
        make_tx(amount=12.0, category="Entertainment", description="Cinema night", date=date(2025, 1, 20)),
        make_tx(amount=2500.0, category="Salary", description="January salary", type="income", date=date(2025, 1, 31)),
        make_tx(amount=60.0, category="Transport", description="Fuel refill", date=date(2025, 2, 1)),
        make_tx(amount=800.0, category="Rent", description="February rent", date=date(2025, 2, 3)),
        make_tx(amount=300.0, category="Freelance", description="Logo design", type="income", date=date(2025, 2, 10)),
    ]
    for row in rows:
        create_transaction(db_path, row)
    return db_path


@pytest.fixture
def tx_data():
    return make_tx
