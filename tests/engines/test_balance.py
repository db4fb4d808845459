"""
Tests for the balance engine.

Covers:
- Ledger identity: current = opening + receipts - issues
- Opening selection against the cutoff
- Negative and future-dated findings
- Trailing-window totals
- Determinism (property-based)
"""

from datetime import date, timedelta
from decimal import Decimal

from hypothesis import given, settings
from hypothesis import strategies as st

from stock_engines.balance import BalanceCalculator, window_totals
from stock_kernel.domain.entries import IssueEntry, ItemLedger, OpeningStockEntry, ReceiptEntry
from stock_kernel.domain.findings import FindingCode


def _ledger(openings=(), receipts=(), issues=(), item_code="X"):
    seq = iter(range(1, 1000))
    return ItemLedger(
        item_code=item_code,
        openings=tuple(
            OpeningStockEntry(item_code, d, Decimal(q), seq=next(seq)) for d, q in openings
        ),
        receipts=tuple(
            ReceiptEntry(item_code, d, Decimal(q), unit_cost=Decimal("1"), seq=next(seq))
            for d, q in receipts
        ),
        issues=tuple(IssueEntry(item_code, d, Decimal(q), seq=next(seq)) for d, q in issues),
    )


class TestLedgerIdentity:

    def setup_method(self):
        self.calculator = BalanceCalculator()

    def test_item_x_position(self):
        ledger = _ledger(
            openings=[(date(2024, 1, 1), "100")],
            receipts=[(date(2024, 2, 1), "50")],
            issues=[(date(2024, 2, 15), "30")],
        )

        position = self.calculator.compute_position(ledger, as_of_date=date(2024, 2, 20))

        assert position.opening_stock == Decimal("100")
        assert position.total_receipts == Decimal("50")
        assert position.total_issues == Decimal("30")
        assert position.current_stock == Decimal("120")
        assert position.findings == ()

    def test_empty_ledger_is_zero(self):
        position = self.calculator.compute_position(_ledger(), as_of_date=date(2024, 2, 20))

        assert position.current_stock == Decimal("0")
        assert position.opening_date is None
        assert position.findings == ()

    def test_no_opening_starts_at_zero(self):
        ledger = _ledger(receipts=[(date(2024, 2, 1), "7")], issues=[(date(2024, 2, 2), "2")])

        position = self.calculator.compute_position(ledger, as_of_date=date(2024, 2, 20))

        assert position.opening_stock == Decimal("0")
        assert position.current_stock == Decimal("5")

    def test_counts(self):
        ledger = _ledger(
            receipts=[(date(2024, 2, 1), "1"), (date(2024, 2, 2), "1")],
            issues=[(date(2024, 2, 3), "1")],
        )

        position = self.calculator.compute_position(ledger, as_of_date=date(2024, 2, 20))

        assert (position.receipt_count, position.issue_count) == (2, 1)


class TestOpeningSelection:

    def setup_method(self):
        self.calculator = BalanceCalculator()

    def test_latest_opening_used_without_cutoff(self):
        ledger = _ledger(
            openings=[(date(2024, 1, 1), "100"), (date(2024, 2, 1), "40")],
            receipts=[(date(2024, 1, 15), "10"), (date(2024, 2, 10), "5")],
        )

        position = self.calculator.compute_position(ledger, as_of_date=date(2024, 2, 20))

        # Only movements on or after the chosen opening date count
        assert position.opening_date == date(2024, 2, 1)
        assert position.current_stock == Decimal("45")

    def test_cutoff_selects_earlier_opening(self):
        ledger = _ledger(
            openings=[(date(2024, 1, 1), "100"), (date(2024, 2, 1), "40")],
            receipts=[(date(2024, 1, 15), "10")],
        )

        position = self.calculator.compute_position(
            ledger, as_of_opening_date=date(2024, 1, 31), as_of_date=date(2024, 2, 20),
        )

        assert position.opening_date == date(2024, 1, 1)
        assert position.current_stock == Decimal("110")

    def test_cutoff_before_any_opening_bounds_movements(self):
        ledger = _ledger(
            openings=[(date(2024, 2, 1), "40")],
            receipts=[(date(2023, 12, 1), "99"), (date(2024, 1, 10), "3")],
        )

        position = self.calculator.compute_position(
            ledger, as_of_opening_date=date(2024, 1, 1), as_of_date=date(2024, 2, 20),
        )

        assert position.opening_stock == Decimal("0")
        assert position.current_stock == Decimal("3")

    def test_same_date_openings_later_seq_wins(self):
        ledger = ItemLedger(
            item_code="X",
            openings=(
                OpeningStockEntry("X", date(2024, 1, 1), Decimal("5"), seq=1),
                OpeningStockEntry("X", date(2024, 1, 1), Decimal("8"), seq=2),
            ),
        )

        position = self.calculator.compute_position(ledger, as_of_date=date(2024, 2, 20))

        assert position.opening_stock == Decimal("8")


class TestFindings:

    def setup_method(self):
        self.calculator = BalanceCalculator()

    def test_negative_stock_reported_not_clamped(self):
        ledger = _ledger(openings=[(date(2024, 1, 1), "5")], issues=[(date(2024, 1, 2), "8")])

        position = self.calculator.compute_position(ledger, as_of_date=date(2024, 2, 20))

        assert position.current_stock == Decimal("-3")
        assert position.has_negative_stock
        assert [f.code for f in position.findings] == [FindingCode.NEGATIVE_STOCK]
        assert position.findings[0].actual == "-3"

    def test_future_dated_entry_counted_and_flagged(self):
        ledger = _ledger(
            openings=[(date(2024, 1, 1), "10")],
            receipts=[(date(2024, 3, 1), "5")],
        )

        position = self.calculator.compute_position(ledger, as_of_date=date(2024, 2, 20))

        assert position.current_stock == Decimal("15")
        assert [f.code for f in position.findings] == [FindingCode.FUTURE_DATED_TRANSACTION]

    def test_negative_stock_logged(self, captured_logs):
        ledger = _ledger(issues=[(date(2024, 1, 2), "1")])

        self.calculator.compute_position(ledger, as_of_date=date(2024, 2, 20))

        assert any(r["message"] == "negative_stock_detected" for r in captured_logs())


class TestWindowTotals:

    def test_window_is_inclusive_at_both_ends(self):
        as_of = date(2024, 2, 20)
        ledger = _ledger(
            receipts=[(as_of - timedelta(days=30), "4"), (as_of - timedelta(days=31), "100")],
            issues=[(as_of, "2"), (as_of + timedelta(days=1), "50")],
        )

        issues, receipts = window_totals(ledger, as_of_date=as_of, window_days=30)

        assert issues == Decimal("2")
        assert receipts == Decimal("4")

    def test_window_starts_no_earlier_than_the_selected_opening(self):
        as_of = date(2024, 2, 20)
        ledger = _ledger(
            openings=[(date(2024, 1, 1), "100"), (date(2024, 2, 10), "80")],
            receipts=[(date(2024, 2, 5), "7"), (date(2024, 2, 12), "3")],
            issues=[(date(2024, 2, 1), "40"), (date(2024, 2, 15), "5")],
        )
        position = BalanceCalculator().compute_position(ledger, as_of_date=as_of)

        issues, receipts = window_totals(
            ledger, as_of_date=as_of, window_days=30, since=position.counted_from,
        )

        assert position.counted_from == date(2024, 2, 10)
        assert position.current_stock == Decimal("78")
        assert issues == Decimal("5")
        assert receipts == Decimal("3")

    def test_since_before_window_start_changes_nothing(self):
        as_of = date(2024, 2, 20)
        ledger = _ledger(issues=[(date(2024, 2, 1), "40")])

        issues, _ = window_totals(
            ledger, as_of_date=as_of, window_days=30, since=date(2023, 1, 1),
        )

        assert issues == Decimal("40")


quantities = st.decimals(min_value=Decimal("0"), max_value=Decimal("10000"), places=3)
days = st.integers(min_value=0, max_value=50)


class TestProperties:

    @settings(max_examples=100)
    @given(
        opening_qty=quantities,
        receipt_qtys=st.lists(quantities.filter(lambda q: q > 0), max_size=8),
        issue_qtys=st.lists(quantities.filter(lambda q: q > 0), max_size=8),
        offsets=st.lists(days, min_size=16, max_size=16),
    )
    def test_identity_holds(self, opening_qty, receipt_qtys, issue_qtys, offsets):
        start = date(2024, 1, 1)
        ledger = _ledger(
            openings=[(start, opening_qty)],
            receipts=[(start + timedelta(days=o), q) for q, o in zip(receipt_qtys, offsets)],
            issues=[(start + timedelta(days=o), q) for q, o in zip(issue_qtys, offsets[8:])],
        )

        position = BalanceCalculator().compute_position(ledger, as_of_date=date(2024, 3, 1))

        assert position.current_stock == (
            position.opening_stock + position.total_receipts - position.total_issues
        )
        assert position.total_receipts == sum(receipt_qtys, Decimal("0"))
        assert position.total_issues == sum(issue_qtys, Decimal("0"))
        assert position.has_negative_stock == (position.current_stock < 0)

    @settings(max_examples=50)
    @given(
        receipt_qtys=st.lists(quantities.filter(lambda q: q > 0), max_size=6),
        issue_qtys=st.lists(quantities.filter(lambda q: q > 0), max_size=6),
    )
    def test_deterministic_and_order_independent(self, receipt_qtys, issue_qtys):
        d = date(2024, 2, 1)
        ledger = _ledger(
            openings=[(date(2024, 1, 1), "10")],
            receipts=[(d, q) for q in receipt_qtys],
            issues=[(d, q) for q in issue_qtys],
        )
        shuffled = ItemLedger(
            item_code=ledger.item_code,
            openings=ledger.openings,
            receipts=tuple(reversed(ledger.receipts)),
            issues=tuple(reversed(ledger.issues)),
        )
        calculator = BalanceCalculator()

        first = calculator.compute_position(ledger, as_of_date=date(2024, 2, 20))
        again = calculator.compute_position(ledger, as_of_date=date(2024, 2, 20))
        other = calculator.compute_position(shuffled, as_of_date=date(2024, 2, 20))

        assert first == again
        assert first.current_stock == other.current_stock
