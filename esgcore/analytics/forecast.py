# -*- coding: utf-8 -*-
"""
Emissions Trend Forecaster

Fits an ordinary least-squares line through monthly emission totals
(x = month index 0..n-1) and projects it forward:

    slope     = (n*Sxy - Sx*Sy) / (n*Sxx - Sx^2)
    intercept = (Sy - slope*Sx) / n
    forecast_i = max(0, slope*(n+i-1) + intercept), i = 1..N

With fewer than ``forecast_min_history`` points (3) no fit is attempted and
only the historical series is returned.

Example:
    >>> from esgcore.analytics.forecast import MonthlyTotal, TrendForecaster
    >>> history = [MonthlyTotal(period="2025-10", total=100),
    ...            MonthlyTotal(period="2025-11", total=110),
    ...            MonthlyTotal(period="2025-12", total=120)]
    >>> [(p.period, p.total) for p in TrendForecaster().forecast(history).forecast]
    [('2026-01', Decimal('130.00')), ('2026-02', Decimal('140.00')), ('2026-03', Decimal('150.00'))]
"""

from __future__ import annotations

import logging
import re
from collections import defaultdict
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

from pydantic import BaseModel, Field, field_validator

from esgcore.config import get_config
from esgcore.determinism import (
    HUNDRED,
    ZERO,
    round_half_up,
    safe_decimal,
    safe_divide,
)
from esgcore.exceptions import InsufficientHistoryError
from esgcore.metrics import record_forecast

logger = logging.getLogger(__name__)

_PERIOD_RE = re.compile(r"^(\d{4})-(\d{2})$")

# Fewer points than this never produce a regression forecast.
MIN_FORECAST_HISTORY = 3


# =============================================================================
# Models
# =============================================================================


class MonthlyTotal(BaseModel):
    """Total emissions for one ``YYYY-MM`` period."""

    period: str
    total: Decimal = ZERO
    scope1: Decimal = ZERO
    scope2: Decimal = ZERO
    scope3: Decimal = ZERO

    @field_validator("period")
    @classmethod
    def _check_period(cls, v: str) -> str:
        match = _PERIOD_RE.match(v)
        if not match or not 1 <= int(match.group(2)) <= 12:
            raise ValueError(f"period must be YYYY-MM, got {v!r}")
        return v


class ForecastPoint(BaseModel):
    """One projected month."""

    period: str
    total: Decimal
    is_forecast: bool = True


class TrendResult(BaseModel):
    """Historical series plus projections (empty when skipped)."""

    historical: List[MonthlyTotal] = Field(default_factory=list)
    forecast: List[ForecastPoint] = Field(default_factory=list)
    forecast_skipped: bool = False
    slope: Optional[Decimal] = None
    intercept: Optional[Decimal] = None


class EmissionEntry(BaseModel):
    """A persisted emission row (kg or t CO2e, as stored)."""

    recorded_at: datetime
    scope: int = Field(..., ge=1, le=3)
    co2e: Decimal = ZERO


class ReductionRate(BaseModel):
    """Year-over-year reduction of total emissions."""

    rate: Decimal = ZERO
    status: str = "N/A"
    current: Decimal = ZERO
    previous: Decimal = ZERO


# =============================================================================
# Helpers
# =============================================================================


def _parse_period(period: str) -> Tuple[int, int]:
    year, month = period.split("-")
    return int(year), int(month)


def next_periods(last_period: str, count: int) -> List[str]:
    """``count`` month labels following ``last_period``, wrapping 12 -> 1.

    Example:
        >>> next_periods("2025-11", 3)
        ['2025-12', '2026-01', '2026-02']
    """
    year, month = _parse_period(last_period)
    labels = []
    for i in range(1, count + 1):
        next_month = month + i
        next_year = year + (next_month - 1) // 12
        adjusted = (next_month - 1) % 12 + 1
        labels.append(f"{next_year}-{adjusted:02d}")
    return labels


def fit_linear_trend(values: Sequence[Decimal]) -> Tuple[Decimal, Decimal]:
    """Closed-form OLS over x = 0..n-1; returns ``(slope, intercept)``."""
    n = len(values)
    sum_x = Decimal(n * (n - 1) // 2)
    sum_y = sum(values, ZERO)
    sum_xy = sum((Decimal(i) * y for i, y in enumerate(values)), ZERO)
    sum_x2 = Decimal(sum(i * i for i in range(n)))
    slope = safe_divide(n * sum_xy - sum_x * sum_y, n * sum_x2 - sum_x * sum_x)
    intercept = safe_divide(sum_y - slope * sum_x, n)
    return slope, intercept


def _entry(record: Union[EmissionEntry, Mapping[str, Any]]) -> EmissionEntry:
    if isinstance(record, EmissionEntry):
        return record
    data = dict(record)
    if "recorded_at" not in data and "date" in data:
        data["recorded_at"] = data.pop("date")
    scope = data.get("scope")
    if isinstance(scope, str) and scope.lower().startswith("scope"):
        data["scope"] = int(scope[5:])
    return EmissionEntry.model_validate(data)


def monthly_totals_from_records(
    records: Iterable[Union[EmissionEntry, Mapping[str, Any]]],
) -> List[MonthlyTotal]:
    """Group emission rows into ordered (year, month) totals per scope.

    Mapping rows may use ``date`` for ``recorded_at`` and ``"scope1"`` style
    scope labels. Totals are rounded to 2 decimals.
    """
    buckets: Dict[Tuple[int, int], Dict[int, Decimal]] = defaultdict(
        lambda: {1: ZERO, 2: ZERO, 3: ZERO}
    )
    for record in records:
        entry = _entry(record)
        key = (entry.recorded_at.year, entry.recorded_at.month)
        buckets[key][entry.scope] += entry.co2e

    totals = []
    for (year, month) in sorted(buckets):
        scopes = buckets[(year, month)]
        totals.append(MonthlyTotal(
            period=f"{year}-{month:02d}",
            total=round_half_up(sum(scopes.values(), ZERO), 2),
            scope1=round_half_up(scopes[1], 2),
            scope2=round_half_up(scopes[2], 2),
            scope3=round_half_up(scopes[3], 2),
        ))
    return totals


def year_over_year_reduction(current: Any, previous: Any) -> ReductionRate:
    """Percentage reduction from ``previous`` to ``current``.

    ``status`` is "improving" for a reduction, "declining" for an increase,
    "no-change" when equal and "N/A" when there is no previous total.
    """
    current = safe_decimal(current)
    previous = safe_decimal(previous)
    if previous == ZERO:
        return ReductionRate(rate=ZERO, status="N/A", current=current, previous=previous)

    rate = round_half_up((previous - current) / previous * HUNDRED, 2)
    if rate > ZERO:
        status = "improving"
    elif rate < ZERO:
        status = "declining"
    else:
        status = "no-change"
    return ReductionRate(rate=rate, status=status, current=current, previous=previous)


# =============================================================================
# Forecaster
# =============================================================================


class TrendForecaster:
    """Linear-trend projection of monthly emission totals.

    Args:
        min_history: Minimum points needed to fit. Defaults to the
            ``forecast_min_history`` configuration value and is never
            lower than 3.
        periods: Default number of months to project. Defaults to the
            ``forecast_periods`` configuration value.
    """

    def __init__(self, min_history: Optional[int] = None, periods: Optional[int] = None):
        config = get_config()
        self.min_history = max(
            min_history or config.forecast_min_history, MIN_FORECAST_HISTORY,
        )
        self.periods = periods or config.forecast_periods

    def forecast(
        self,
        history: Sequence[Union[MonthlyTotal, Mapping[str, Any]]],
        periods: Optional[int] = None,
        require_forecast: bool = False,
    ) -> TrendResult:
        """Project ``periods`` months beyond the last historical period.

        Args:
            history: Monthly totals in chronological order.
            periods: Months to project (default from construction).
            require_forecast: Raise instead of degrading when history is
                too short.

        Raises:
            InsufficientHistoryError: Only with ``require_forecast=True``.
        """
        historical = [
            h if isinstance(h, MonthlyTotal) else MonthlyTotal.model_validate(dict(h))
            for h in history
        ]
        periods = self.periods if periods is None else periods

        if len(historical) < self.min_history:
            if require_forecast:
                raise InsufficientHistoryError(
                    f"Forecast needs at least {self.min_history} monthly points",
                    available=len(historical),
                    required=self.min_history,
                )
            logger.warning(
                "Forecast skipped: %d historical points, %d required",
                len(historical), self.min_history,
            )
            record_forecast("skipped")
            return TrendResult(historical=historical, forecast_skipped=True)

        slope, intercept = fit_linear_trend([h.total for h in historical])
        n = len(historical)
        points = []
        for i, label in enumerate(next_periods(historical[-1].period, periods), start=1):
            value = slope * (n + i - 1) + intercept
            points.append(ForecastPoint(
                period=label,
                total=max(ZERO, round_half_up(value, 2)),
            ))

        record_forecast("forecast")
        logger.debug(
            "Forecast %d periods from %d points (slope=%s, intercept=%s)",
            periods, n, slope, intercept,
        )
        return TrendResult(
            historical=historical,
            forecast=points,
            slope=slope,
            intercept=intercept,
        )


__all__ = [
    "MIN_FORECAST_HISTORY",
    "MonthlyTotal",
    "ForecastPoint",
    "TrendResult",
    "EmissionEntry",
    "ReductionRate",
    "next_periods",
    "fit_linear_trend",
    "monthly_totals_from_records",
    "year_over_year_reduction",
    "TrendForecaster",
]
