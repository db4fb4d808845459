"""
Tests for monthly consumption analysis.
"""

from datetime import date
from decimal import Decimal

import pytest

from stock_engines.consumption import (
    ConsumptionAnalyzer,
    ConsumptionPattern,
    ConsumptionTrend,
    monthly_buckets,
)
from stock_kernel.domain.entries import IssueEntry

AS_OF = date(2024, 12, 15)


def _issues(monthly):
    """One issue on the 10th of each 2024 month with a non-zero quantity."""
    return [
        IssueEntry("X", date(2024, month, 10), Decimal(qty))
        for month, qty in enumerate(monthly, start=1)
        if Decimal(qty) > 0
    ]


class TestMonthlyBuckets:

    def test_buckets_oldest_first(self):
        issues = [
            IssueEntry("X", date(2024, 1, 3), Decimal("4")),
            IssueEntry("X", date(2024, 1, 28), Decimal("1")),
            IssueEntry("X", date(2024, 12, 1), Decimal("9")),
        ]

        buckets = monthly_buckets(issues, AS_OF, 12)

        assert buckets[0] == Decimal("5")
        assert buckets[-1] == Decimal("9")
        assert sum(buckets) == Decimal("14")

    def test_entries_outside_window_ignored(self):
        issues = [
            IssueEntry("X", date(2023, 12, 31), Decimal("100")),
            IssueEntry("X", date(2024, 12, 20), Decimal("100")),
            IssueEntry("X", date(2024, 12, 15), Decimal("2")),
        ]

        assert sum(monthly_buckets(issues, AS_OF, 12)) == Decimal("2")

    def test_window_crosses_year_boundary(self):
        issues = [IssueEntry("X", date(2023, 10, 5), Decimal("3"))]

        buckets = monthly_buckets(issues, date(2024, 3, 1), 6)

        assert buckets == [Decimal("3"), 0, 0, 0, 0, 0]


class TestAnalyze:

    def setup_method(self):
        self.analyzer = ConsumptionAnalyzer()

    def test_regular(self):
        profile = self.analyzer.analyze(item_code="X", issues=_issues(["10"] * 12), as_of_date=AS_OF)

        assert profile.average_monthly_consumption == Decimal("10")
        assert profile.trend_direction is ConsumptionTrend.STABLE
        assert profile.variance_coefficient == Decimal("0")
        assert profile.pattern is ConsumptionPattern.REGULAR
        assert profile.forecast_next_month == Decimal("10")
        assert profile.safety_stock_recommended == Decimal("5")

    def test_increasing(self):
        monthly = ["10"] * 3 + ["15"] * 6 + ["20"] * 3

        profile = self.analyzer.analyze(item_code="X", issues=_issues(monthly), as_of_date=AS_OF)

        assert profile.average_monthly_consumption == Decimal("15")
        assert profile.trend_percentage == Decimal("100.00")
        assert profile.trend_direction is ConsumptionTrend.INCREASING
        assert profile.variance_coefficient == Decimal("23.57")
        assert profile.pattern is ConsumptionPattern.REGULAR
        assert profile.forecast_next_month == Decimal("40")
        assert profile.safety_stock_recommended == Decimal("10")

    def test_declining(self):
        monthly = ["20"] * 3 + ["15"] * 6 + ["10"] * 3

        profile = self.analyzer.analyze(item_code="X", issues=_issues(monthly), as_of_date=AS_OF)

        assert profile.trend_percentage == Decimal("-50.00")
        assert profile.trend_direction is ConsumptionTrend.DECREASING
        assert profile.pattern is ConsumptionPattern.DECLINING
        assert profile.forecast_next_month == Decimal("5")

    def test_seasonal(self):
        monthly = ["10", "20"] * 6

        profile = self.analyzer.analyze(item_code="X", issues=_issues(monthly), as_of_date=AS_OF)

        assert profile.variance_coefficient == Decimal("33.33")
        assert profile.pattern is ConsumptionPattern.SEASONAL

    def test_irregular(self):
        monthly = ["0"] * 5 + ["120"] + ["0"] * 6

        profile = self.analyzer.analyze(item_code="X", issues=_issues(monthly), as_of_date=AS_OF)

        # Average is over the months that had consumption
        assert profile.average_monthly_consumption == Decimal("120")
        assert profile.pattern is ConsumptionPattern.IRREGULAR
        assert profile.trend_direction is ConsumptionTrend.STABLE

    def test_no_issues(self):
        profile = self.analyzer.analyze(item_code="X", issues=[], as_of_date=AS_OF)

        assert profile.average_monthly_consumption == Decimal("0")
        assert profile.pattern is ConsumptionPattern.REGULAR
        assert profile.forecast_next_month == Decimal("0")
        assert profile.safety_stock_recommended == Decimal("0")

    def test_short_history_rejected(self):
        with pytest.raises(ValueError):
            self.analyzer.analyze(item_code="X", issues=[], as_of_date=AS_OF, months=5)

    def test_custom_window_length(self):
        profile = self.analyzer.analyze(
            item_code="X", issues=_issues(["10"] * 12), as_of_date=AS_OF, months=6,
        )

        assert len(profile.monthly_buckets) == 6
