# -*- coding: utf-8 -*-
"""
Prometheus Metrics - esgcore emissions & compliance scoring engine

Metrics:
    1. esg_emission_calculations_total (Counter, labels: scope)
    2. esg_missing_factors_total (Counter, labels: category)
    3. esg_financed_calculations_total (Counter, labels: tier)
    4. esg_score_recomputations_total (Counter)
    5. esg_forecasts_total (Counter, labels: outcome)
    6. esg_calculation_duration_seconds (Histogram, labels: operation)

Recording is a no-op when ``enable_metrics`` is off in the configuration.
"""

from __future__ import annotations

import logging

from prometheus_client import Counter, Histogram

from esgcore.config import get_config

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Metric definitions
# ---------------------------------------------------------------------------

# 1. Activity emission calculations by scope
esg_emission_calculations_total = Counter(
    "esg_emission_calculations_total",
    "Total activity emission calculations",
    labelnames=["scope"],
)

# 2. Activity keys skipped for lack of a factor
esg_missing_factors_total = Counter(
    "esg_missing_factors_total",
    "Activity keys without a matching emission factor",
    labelnames=["category"],
)

# 3. Financed emission calculations by PCAF data-quality tier
esg_financed_calculations_total = Counter(
    "esg_financed_calculations_total",
    "Total PCAF financed emission calculations",
    labelnames=["tier"],
)

# 4. Compliance score recomputations
esg_score_recomputations_total = Counter(
    "esg_score_recomputations_total",
    "Total compliance score recomputations",
)

# 5. Forecast requests by outcome (forecast / skipped)
esg_forecasts_total = Counter(
    "esg_forecasts_total",
    "Total trend forecast requests",
    labelnames=["outcome"],
)

# 6. Calculation duration by operation
esg_calculation_duration_seconds = Histogram(
    "esg_calculation_duration_seconds",
    "Duration of engine operations in seconds",
    labelnames=["operation"],
    buckets=(0.0005, 0.001, 0.005, 0.01, 0.05, 0.1, 0.5, 1.0),
)


# ---------------------------------------------------------------------------
# Helper functions
# ---------------------------------------------------------------------------


def _enabled() -> bool:
    return get_config().enable_metrics


def record_emission_calculation(scope: int) -> None:
    """Count one activity emission calculation."""
    if _enabled():
        esg_emission_calculations_total.labels(scope=str(scope)).inc()


def record_missing_factor(category: str) -> None:
    """Count one activity key skipped for lack of a factor."""
    if _enabled():
        esg_missing_factors_total.labels(category=category).inc()


def record_financed_calculation(tier: int) -> None:
    """Count one financed emission calculation by data-quality tier."""
    if _enabled():
        esg_financed_calculations_total.labels(tier=str(tier)).inc()


def record_score_recomputation() -> None:
    """Count one compliance score recomputation."""
    if _enabled():
        esg_score_recomputations_total.inc()


def record_forecast(outcome: str) -> None:
    """Count one forecast request ("forecast" or "skipped")."""
    if _enabled():
        esg_forecasts_total.labels(outcome=outcome).inc()


def record_duration(operation: str, seconds: float) -> None:
    """Observe the duration of an engine operation."""
    if _enabled():
        esg_calculation_duration_seconds.labels(operation=operation).observe(seconds)


__all__ = [
    "esg_emission_calculations_total",
    "esg_missing_factors_total",
    "esg_financed_calculations_total",
    "esg_score_recomputations_total",
    "esg_forecasts_total",
    "esg_calculation_duration_seconds",
    "record_emission_calculation",
    "record_missing_factor",
    "record_financed_calculation",
    "record_score_recomputation",
    "record_forecast",
    "record_duration",
]
