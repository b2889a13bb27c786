"""
Pytest fixtures for the ledger test suite.

Provides:
- A file-backed SQLite Store per test (threads can share it)
- Database sessions for service-level tests
- A TestClient for API tests, with uploads going to a temp directory
- Small helpers to create vendors, items and transactions
"""

from datetime import datetime

import pytest
from fastapi.testclient import TestClient

from ledger_core.app.config import Settings
from ledger_core.app.db import Store
from ledger_core.app.logging_config import reset_logging
from ledger_core.app.main import create_app
from ledger_core.app.models import TransactionType
from ledger_core.app.services import ItemService, TransactionService, VendorService


@pytest.fixture
def database_url(tmp_path):
    return f"sqlite:///{(tmp_path / 'ledger.db').as_posix()}"


@pytest.fixture
def store(database_url):
    store = Store(database_url)
    store.create_all()
    yield store
    store.dispose()


@pytest.fixture
def db(store):
    session = store.session()
    yield session
    session.close()


@pytest.fixture
def settings(database_url, tmp_path):
    return Settings(
        database_url=database_url,
        upload_dir=tmp_path / "uploads",
        max_upload_bytes=1024,
        cors_origins=["*"],
        log_level="WARNING",
    )


@pytest.fixture
def app(settings):
    application = create_app(settings)
    yield application
    reset_logging()


@pytest.fixture
def client(app):
    with TestClient(app) as test_client:
        yield test_client


# =============================================================================
# DATA HELPERS
# =============================================================================

@pytest.fixture
def vendor(db):
    vendor = VendorService.create_vendor(db, "Anuj Kumar", phone="9876543210", address="Agra")
    db.commit()
    return vendor


@pytest.fixture
def item(db):
    item = ItemService.create_item(db, "22mm")
    db.commit()
    return item


@pytest.fixture
def record_out(db, vendor, item):
    """Issue `qty` of the test item to the test vendor."""

    def _record_out(qty, price=0.0):
        return TransactionService.create_transaction(
            db, TransactionType.OUT, vendor.name, item.name, qty, price_per_unit=price,
            out_date=datetime(2024, 1, 1),
        )

    return _record_out


@pytest.fixture
def record_in(db, vendor, item):
    """Take `qty` of the test item back from the test vendor."""

    def _record_in(qty, price=10.0, payal_type="Golden"):
        return TransactionService.create_transaction(
            db, TransactionType.IN, vendor.name, item.name, qty, price_per_unit=price,
            payal_type=payal_type, in_date=datetime(2024, 1, 2),
        )

    return _record_in
