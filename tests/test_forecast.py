# -*- coding: utf-8 -*-
"""
Emissions Trend Forecaster Tests

Covers:
- Linear least-squares projection of monthly totals
- Degradation to historical-only output with too little history
- Month label wrap-around and non-negative clamping
- Grouping of emission rows into monthly totals
- Year-over-year reduction status
"""

from datetime import datetime, timezone
from decimal import Decimal

import pytest
from pydantic import ValidationError

from esgcore.analytics.forecast import (
    MonthlyTotal,
    TrendForecaster,
    fit_linear_trend,
    monthly_totals_from_records,
    next_periods,
    year_over_year_reduction,
)
from esgcore.config import EsgCoreConfig, set_config
from esgcore.exceptions import InsufficientHistoryError


def _history(*totals, start_month=1, year=2025):
    return [
        MonthlyTotal(period=f"{year}-{start_month + i:02d}", total=total)
        for i, total in enumerate(totals)
    ]


class TestTrendForecaster:
    """slope/intercept fit and projection."""

    def test_linear_series(self):
        result = TrendForecaster().forecast(_history(100, 110, 120, start_month=10))
        assert [(p.period, p.total) for p in result.forecast] == [
            ("2026-01", Decimal("130.00")),
            ("2026-02", Decimal("140.00")),
            ("2026-03", Decimal("150.00")),
        ]
        assert result.slope == Decimal("10")
        assert result.intercept == Decimal("100")
        assert result.forecast_skipped is False
        assert all(p.is_forecast for p in result.forecast)

    def test_flat_series(self):
        result = TrendForecaster().forecast(_history(50, 50, 50, 50))
        assert {p.total for p in result.forecast} == {Decimal("50.00")}

    def test_clamped_at_zero(self):
        result = TrendForecaster().forecast(_history(300, 200, 100))
        assert [p.total for p in result.forecast] == [0, 0, 0]
        assert all(p.total >= 0 for p in result.forecast)

    def test_custom_periods(self):
        result = TrendForecaster().forecast(_history(1, 2, 3), periods=6)
        assert len(result.forecast) == 6
        assert result.forecast[-1].period == "2025-09"

    def test_periods_from_config(self):
        set_config(EsgCoreConfig(forecast_periods=2))
        result = TrendForecaster().forecast(_history(1, 2, 3))
        assert len(result.forecast) == 2

    def test_accepts_mappings(self):
        history = [
            {"period": "2025-01", "total": "10.5"},
            {"period": "2025-02", "total": 11},
            {"period": "2025-03", "total": 11.5},
        ]
        result = TrendForecaster().forecast(history)
        assert result.forecast[0].total == Decimal("12.00")


class TestInsufficientHistory:
    """Fewer than the minimum points -> historical data only."""

    def test_two_points_skipped(self):
        history = _history(100, 110)
        result = TrendForecaster().forecast(history)
        assert result.forecast == []
        assert result.forecast_skipped is True
        assert result.historical == history
        assert result.slope is None

    def test_empty_history(self):
        result = TrendForecaster().forecast([])
        assert result.forecast_skipped is True

    def test_require_forecast_raises(self):
        with pytest.raises(InsufficientHistoryError) as exc_info:
            TrendForecaster().forecast(_history(100, 110), require_forecast=True)
        assert exc_info.value.context == {"available": 2, "required": 3}

    @pytest.mark.parametrize("requested", [1, 2])
    def test_min_history_never_below_three(self, requested):
        forecaster = TrendForecaster(min_history=requested)
        assert forecaster.min_history == 3
        result = forecaster.forecast(_history(5, 7))
        assert result.forecast == []
        assert result.forecast_skipped is True
        assert result.slope is None

    def test_configured_two_points_still_skipped(self):
        set_config(EsgCoreConfig(forecast_min_history=2))
        result = TrendForecaster().forecast(_history(5, 7))
        assert result.forecast == []
        assert result.forecast_skipped is True

    def test_min_history_from_config(self):
        set_config(EsgCoreConfig(forecast_min_history=5))
        result = TrendForecaster().forecast(_history(1, 2, 3, 4))
        assert result.forecast_skipped is True


class TestPeriods:

    def test_wraps_year(self):
        assert next_periods("2025-11", 3) == ["2025-12", "2026-01", "2026-02"]

    def test_multi_year(self):
        assert next_periods("2025-12", 13)[-1] == "2027-01"

    @pytest.mark.parametrize("bad", ["2025-13", "2025-00", "2025-1", "25-01", "2025/01"])
    def test_invalid_period(self, bad):
        with pytest.raises(ValidationError):
            MonthlyTotal(period=bad, total=1)


class TestFitLinearTrend:

    def test_exact_line(self):
        slope, intercept = fit_linear_trend([Decimal(3), Decimal(5), Decimal(7)])
        assert slope == 2
        assert intercept == 3

    def test_single_point(self):
        slope, intercept = fit_linear_trend([Decimal(4)])
        assert slope == 0
        assert intercept == 4


class TestMonthlyTotals:
    """Emission rows grouped by (year, month)."""

    def test_grouping(self):
        rows = [
            {"date": datetime(2025, 1, 5, tzinfo=timezone.utc), "scope": "scope1", "co2e": "10.004"},
            {"date": datetime(2025, 1, 20, tzinfo=timezone.utc), "scope": "scope2", "co2e": 5},
            {"recorded_at": datetime(2024, 12, 31, tzinfo=timezone.utc), "scope": 3, "co2e": 1},
            {"date": "2025-02-01T00:00:00Z", "scope": "Scope3", "co2e": 2.5},
        ]
        totals = monthly_totals_from_records(rows)
        assert [t.period for t in totals] == ["2024-12", "2025-01", "2025-02"]
        january = totals[1]
        assert january.scope1 == Decimal("10.00")
        assert january.scope2 == Decimal("5.00")
        assert january.total == Decimal("15.00")
        assert totals[2].scope3 == Decimal("2.50")

    def test_feeds_forecaster(self):
        rows = [
            {"date": datetime(2025, month, 1, tzinfo=timezone.utc), "scope": 1, "co2e": month * 10}
            for month in (1, 2, 3)
        ]
        result = TrendForecaster().forecast(monthly_totals_from_records(rows))
        assert result.forecast[0].total == Decimal("40.00")


class TestYearOverYear:

    def test_improving(self):
        rate = year_over_year_reduction(80, 100)
        assert rate.rate == Decimal("20.00")
        assert rate.status == "improving"

    def test_declining(self):
        rate = year_over_year_reduction(120, 100)
        assert rate.rate == Decimal("-20.00")
        assert rate.status == "declining"

    def test_no_change(self):
        assert year_over_year_reduction(100, 100).status == "no-change"

    def test_no_previous(self):
        rate = year_over_year_reduction(100, 0)
        assert rate.status == "N/A"
        assert rate.rate == 0
