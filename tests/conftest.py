"""
Pytest fixtures for the stock ledger test suite.

Provides:
- SQLite database sessions (in-memory per test; file-backed where several
  connections must see committed data, e.g. the worker pool and scheduler)
- A deterministic clock pinned to 2024-02-20
- Ledger builders for common item histories
"""

import json
import logging
from datetime import date
from decimal import Decimal
from io import StringIO
from uuid import uuid4

import pytest

from stock_config import EngineConfig
from stock_kernel.db.engine import (
    create_tables,
    get_session_factory,
    init_engine_from_url,
    reset_engine,
)
from stock_kernel.db.immutability import unregister_immutability_listeners
from stock_kernel.domain.clock import DeterministicClock
from stock_kernel.domain.entries import IssueEntry, OpeningStockEntry, ReceiptEntry
from stock_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)
from stock_kernel.services.ledger_store import LedgerStore


# Test actor ID for all test operations
TEST_ACTOR_ID = uuid4()

# "Today" for every clock-dependent test
TODAY = date(2024, 2, 20)


# =============================================================================
# Logging fixtures
# =============================================================================


@pytest.fixture(autouse=True, scope="session")
def _configure_test_logging():
    """Configure structured logging for the test suite."""
    reset_logging()
    configure_logging(level=logging.DEBUG)
    yield
    reset_logging()


@pytest.fixture(autouse=True)
def _clear_log_context():
    """Clear LogContext between tests to prevent cross-test contamination."""
    LogContext.clear()
    yield
    LogContext.clear()


@pytest.fixture
def captured_logs():
    """
    Capture stock_kernel logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs, store):
            store.append(...)
            logs = captured_logs()
            assert any(r["message"] == "ledger_entry_appended" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("stock_kernel")
    root.addHandler(handler)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)


# =============================================================================
# Clock and config
# =============================================================================


@pytest.fixture
def clock():
    return DeterministicClock.on(TODAY)


@pytest.fixture
def config():
    return EngineConfig()


# =============================================================================
# Database fixtures
# =============================================================================


def _init_database(url: str):
    engine = init_engine_from_url(url)
    create_tables()
    return engine


@pytest.fixture
def db_engine():
    """Fresh in-memory database per test."""
    engine = _init_database("sqlite://")
    yield engine
    unregister_immutability_listeners()
    reset_engine()


@pytest.fixture
def session_factory(db_engine):
    return get_session_factory()


@pytest.fixture
def session(session_factory):
    s = session_factory()
    yield s
    s.rollback()
    s.close()


@pytest.fixture
def file_db_engine(tmp_path):
    """File-backed database: every connection sees committed rows."""
    engine = _init_database(f"sqlite:///{tmp_path / 'stock.db'}")
    yield engine
    unregister_immutability_listeners()
    reset_engine()


@pytest.fixture
def file_session_factory(file_db_engine):
    return get_session_factory()


@pytest.fixture
def file_session(file_session_factory):
    s = file_session_factory()
    yield s
    s.rollback()
    s.close()


# =============================================================================
# Ledger builders
# =============================================================================


@pytest.fixture
def store(session, clock):
    return LedgerStore(session, clock)


def opening(item_code, entry_date, quantity, **kwargs):
    return OpeningStockEntry(
        item_code=item_code, entry_date=entry_date, quantity=Decimal(str(quantity)), **kwargs,
    )


def receipt(item_code, entry_date, quantity, unit_cost=None, **kwargs):
    return ReceiptEntry(
        item_code=item_code,
        entry_date=entry_date,
        quantity=Decimal(str(quantity)),
        unit_cost=None if unit_cost is None else Decimal(str(unit_cost)),
        **kwargs,
    )


def issue(item_code, entry_date, quantity, **kwargs):
    return IssueEntry(
        item_code=item_code, entry_date=entry_date, quantity=Decimal(str(quantity)), **kwargs,
    )


def seed_item_x(ledger_store: LedgerStore, item_code: str = "X") -> None:
    """Open 100 on Jan 1, receive 50 @ 10 on Feb 1, issue 30 on Feb 15."""
    ledger_store.append(opening(item_code, date(2024, 1, 1), 100), TEST_ACTOR_ID)
    ledger_store.append(receipt(item_code, date(2024, 2, 1), 50, unit_cost=10), TEST_ACTOR_ID)
    ledger_store.append(issue(item_code, date(2024, 2, 15), 30), TEST_ACTOR_ID)


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "slow: mark test as slow (threads or background scheduler)"
    )
