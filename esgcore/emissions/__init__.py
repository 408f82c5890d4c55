# -*- coding: utf-8 -*-
"""
Emissions calculation: factor registry, Scope 1/2/3 activity emissions and
PCAF financed emissions.

Key Components:
    - factors: EmissionFactor / EmissionFactorTable loaded from YAML
    - activity: ActivityEmissionsCalculator (Scope 1, 2, 3 and totals)
    - financed: FinancedEmissionsCalculator and portfolio aggregation
    - models: Pydantic v2 inputs and results
"""

from esgcore.emissions.activity import ActivityEmissionsCalculator, ActivityRecordSource
from esgcore.emissions.factors import (
    EmissionFactor,
    EmissionFactorTable,
    get_default_table,
    reset_default_table,
)
from esgcore.emissions.financed import FinancedEmissionsCalculator, aggregate_portfolio
from esgcore.emissions.models import (
    ActivityRecord,
    EmissionResult,
    EmissionsSummary,
    EstimationBasis,
    FinancedEmissionsInput,
    FinancedEmissionsResult,
    PortfolioSummary,
    Scope2Method,
    Scope2Result,
)

__all__ = [
    "EmissionFactor",
    "EmissionFactorTable",
    "get_default_table",
    "reset_default_table",
    "ActivityEmissionsCalculator",
    "ActivityRecordSource",
    "FinancedEmissionsCalculator",
    "aggregate_portfolio",
    "ActivityRecord",
    "EmissionResult",
    "EmissionsSummary",
    "EstimationBasis",
    "FinancedEmissionsInput",
    "FinancedEmissionsResult",
    "PortfolioSummary",
    "Scope2Method",
    "Scope2Result",
]
