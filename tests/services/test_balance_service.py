"""
Tests for BalanceService: positions derived from the stored ledger.
"""

from datetime import date
from decimal import Decimal

from stock_config import EngineConfig
from stock_kernel.domain.clock import DeterministicClock
from stock_kernel.domain.findings import FindingCode
from stock_kernel.services.ledger_store import LedgerStore
from stock_services import BalanceService

from tests.conftest import TEST_ACTOR_ID, TODAY, issue, opening, receipt, seed_item_x


class TestComputeBalance:

    def test_item_x(self, store, session, clock):
        seed_item_x(store)

        position = BalanceService(session, clock).compute_balance("X")

        assert position.current_stock == Decimal("120")
        assert position.as_of_date == TODAY
        assert position.findings == ()

    def test_unknown_item_is_zero(self, session, clock):
        position = BalanceService(session, clock).compute_balance("NOPE")

        assert position.current_stock == Decimal("0")

    def test_recomputed_after_append(self, store, session, clock):
        seed_item_x(store)
        service = BalanceService(session, clock)
        before = service.compute_balance("X")

        store.append(issue("X", date(2024, 2, 18), 20), TEST_ACTOR_ID)
        after = service.compute_balance("X")

        assert before.current_stock == Decimal("120")
        assert after.current_stock == Decimal("100")

    def test_reversed_entries_excluded(self, store, session, clock):
        seed_item_x(store)
        issue_id = store.query_by_item("X")[-1].entry_id
        store.reverse(issue_id, "duplicate issue", TEST_ACTOR_ID)

        position = BalanceService(session, clock).compute_balance("X")

        assert position.current_stock == Decimal("150")

    def test_configured_opening_cutoff(self, store, session, clock):
        store.append(opening("X", date(2024, 1, 1), 100), TEST_ACTOR_ID)
        store.append(opening("X", date(2024, 2, 1), 10), TEST_ACTOR_ID)
        store.append(receipt("X", date(2024, 1, 10), 5, unit_cost=1), TEST_ACTOR_ID)
        config = EngineConfig(opening_stock_date=date(2024, 1, 15))

        configured = BalanceService(session, clock, config).compute_balance("X")
        latest = BalanceService(session, clock).compute_balance("X")
        explicit = BalanceService(session, clock, config).compute_balance(
            "X", as_of_opening_date=date(2024, 2, 1),
        )

        assert configured.current_stock == Decimal("105")
        assert latest.current_stock == Decimal("10")
        assert explicit.current_stock == Decimal("10")

    def test_future_dated_entry_flagged(self, session, clock):
        later = LedgerStore(session, DeterministicClock.on(date(2024, 3, 1)))
        later.append(receipt("X", date(2024, 2, 25), 5, unit_cost=1), TEST_ACTOR_ID)

        position = BalanceService(session, clock).compute_balance("X")

        assert position.current_stock == Decimal("5")
        assert [f.code for f in position.findings] == [FindingCode.FUTURE_DATED_TRANSACTION]

    def test_negative_stock_flagged(self, store, session, clock):
        store.append(opening("X", date(2024, 1, 1), 2), TEST_ACTOR_ID)
        store.append(issue("X", date(2024, 1, 2), 5), TEST_ACTOR_ID)

        position = BalanceService(session, clock).compute_balance("X")

        assert position.current_stock == Decimal("-3")
        assert position.findings[0].code is FindingCode.NEGATIVE_STOCK
