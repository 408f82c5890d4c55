# -*- coding: utf-8 -*-
"""
esgcore: ESG Emissions & Compliance Scoring Engine
===================================================

Deterministic calculation core for corporate sustainability reporting:

- Scope 1/2/3 activity emissions from a versioned emission factor registry
- PCAF financed emissions (Scope 3 Category 15) with a data-quality
  fallback hierarchy and portfolio aggregation
- Disclosure-tree progress tracking for nine reporting frameworks
- Pillar (E/S/G) and overall compliance scores
- Linear-trend forecasting of monthly emission totals

All quantities are Decimal with ROUND_HALF_UP; every result carries a
SHA-256 provenance hash. Configuration uses the ESG_ env prefix.

Example:
    >>> from esgcore import ActivityEmissionsCalculator
    >>> result = ActivityEmissionsCalculator().calculate_scope1({"naturalGasKwh": 1000})
    >>> print(result.total_kg_co2e)
    183.16000
"""

from esgcore._version import __version__
from esgcore.analytics import TrendForecaster
from esgcore.compliance import (
    ComplianceScoreAggregator,
    ComplianceService,
    FrameworkId,
    FrameworkProgressTracker,
)
from esgcore.config import EsgCoreConfig, configure_logging, get_config
from esgcore.emissions import (
    ActivityEmissionsCalculator,
    EmissionFactorTable,
    FinancedEmissionsCalculator,
    get_default_table,
)
from esgcore.exceptions import EsgCoreException

__all__ = [
    "__version__",
    "EsgCoreConfig",
    "get_config",
    "configure_logging",
    "EsgCoreException",
    "EmissionFactorTable",
    "get_default_table",
    "ActivityEmissionsCalculator",
    "FinancedEmissionsCalculator",
    "FrameworkId",
    "FrameworkProgressTracker",
    "ComplianceScoreAggregator",
    "ComplianceService",
    "TrendForecaster",
]
