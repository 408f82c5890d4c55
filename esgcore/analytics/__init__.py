# -*- coding: utf-8 -*-
"""Emission trend analytics."""

from esgcore.analytics.forecast import (
    MonthlyTotal,
    TrendForecaster,
    TrendResult,
    monthly_totals_from_records,
    year_over_year_reduction,
)

__all__ = [
    "MonthlyTotal",
    "TrendForecaster",
    "TrendResult",
    "monthly_totals_from_records",
    "year_over_year_reduction",
]
