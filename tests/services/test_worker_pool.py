"""
Tests for CatalogWorkerPool.
"""

import threading
from decimal import Decimal

import pytest

from stock_kernel.exceptions import UnknownCostMethodError
from stock_services import BalanceService, CatalogWorkerPool

from tests.services.conftest import seed_catalog


@pytest.fixture
def seeded_factory(file_session, file_session_factory, clock):
    seed_catalog(file_session, clock)
    file_session.commit()
    file_session.close()
    return file_session_factory


def test_results_per_item(seeded_factory, clock):
    pool = CatalogWorkerPool(seeded_factory, max_workers=3)

    result = pool.run(
        ["V", "W", "X", "Y", "Z"],
        lambda session, code: BalanceService(session, clock).compute_balance(code).current_stock,
    )

    assert result.results == {
        "V": Decimal("1"),
        "W": Decimal("0"),
        "X": Decimal("120"),
        "Y": Decimal("15"),
        "Z": Decimal("4"),
    }
    assert result.failures == ()
    assert not result.cancelled


def test_failure_isolated(seeded_factory):
    def work(session, code):
        if code == "Y":
            raise UnknownCostMethodError("bogus")
        return code.lower()

    result = CatalogWorkerPool(seeded_factory, max_workers=2).run(["X", "Y", "Z"], work)

    assert result.results == {"X": "x", "Z": "z"}
    assert [(f.item_code, f.error_code) for f in result.failures] == [("Y", "UNKNOWN_COST_METHOD")]


def test_unexpected_error_code(seeded_factory):
    def work(session, code):
        raise RuntimeError("boom")

    result = CatalogWorkerPool(seeded_factory, max_workers=1).run(["X"], work)

    assert result.failures[0].error_code == "UNHANDLED_EXCEPTION"


def test_cancelled_before_start(seeded_factory):
    cancel = threading.Event()
    cancel.set()

    result = CatalogWorkerPool(seeded_factory).run(["X", "Y"], lambda s, c: c, cancel)

    assert result.results == {}
    assert result.skipped == ("X", "Y")
    assert result.cancelled


def test_cancel_midway_skips_remaining(seeded_factory):
    cancel = threading.Event()

    def work(session, code):
        cancel.set()
        return code

    result = CatalogWorkerPool(seeded_factory, max_workers=1).run(["A", "B", "C"], work, cancel)

    assert result.results == {"A": "A"}
    assert result.skipped == ("B", "C")


@pytest.mark.parametrize("workers", [0, -1])
def test_invalid_worker_count(seeded_factory, workers):
    with pytest.raises(ValueError):
        CatalogWorkerPool(seeded_factory, max_workers=workers)
