# -*- coding: utf-8 -*-
"""
PCAF Financed Emissions Calculator

Attributes a counterparty's emissions to a lender or investor following the
PCAF Global GHG Accounting and Reporting Standard:

    Financed Emissions = Counterparty Emissions x Attribution Factor
    Attribution Factor = Outstanding Amount / Total Asset or Equity

Counterparty emissions are taken from the best available data, walking the
PCAF data-quality hierarchy:

    1. Reported emissions              -> tier 1
    2. Building area x intensity       -> tier 3
    3. Revenue x sector intensity      -> tier 4
    4. Nothing available               -> tier 5, flagged as unavailable

Example:
    >>> from esgcore.emissions.financed import FinancedEmissionsCalculator
    >>> calc = FinancedEmissionsCalculator()
    >>> result = calc.calculate({
    ...     "outstanding_amount_usd": 5_000_000,
    ...     "total_asset_or_equity_usd": 50_000_000,
    ...     "counterparty_reported_emissions_tonnes": 100_000,
    ... })
    >>> result.attribution_factor, result.total_tonnes_co2e
    (Decimal('0.1'), Decimal('10000.0'))
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Tuple, Union

from esgcore.config import get_config
from esgcore.determinism import (
    HUNDRED,
    MILLION,
    THOUSAND,
    ZERO,
    content_hash,
    safe_divide,
)
from esgcore.emissions.factors import (
    EmissionFactor,
    EmissionFactorTable,
    get_default_table,
    pcaf_data_quality_score,
)
from esgcore.emissions.models import (
    EstimationBasis,
    FinancedEmissionsInput,
    FinancedEmissionsResult,
    PortfolioBreakdown,
    PortfolioSummary,
)
from esgcore.exceptions import MissingFactorError
from esgcore.metrics import record_duration, record_financed_calculation

logger = logging.getLogger(__name__)

SECTOR_CATEGORY = "pcaf_sectors"
BUILDING_CATEGORY = "pcaf_buildings"

#: Counterparty sector label (lower case) -> sector intensity factor key.
SECTOR_FACTOR_KEYS: Dict[str, str] = {
    "utilities": "electricUtilities",
    "electric utilities": "electricUtilities",
    "energy": "oilGas",
    "oil & gas": "oilGas",
    "oil and gas": "oilGas",
    "manufacturing": "manufacturing",
    "industrials": "manufacturing",
    "technology": "technology",
    "tech": "technology",
    "it": "technology",
    "financial services": "financialServices",
    "financials": "financialServices",
    "banking": "financialServices",
    "real estate": "realEstate",
    "property": "realEstate",
    "retail": "retail",
    "consumer": "retail",
}

#: Building type -> building intensity factor key (kgCO2e / m2 / year).
BUILDING_FACTOR_KEYS: Dict[str, str] = {
    "office": "officeBuilding",
    "retail": "retailBuilding",
    "warehouse": "warehouse",
}

#: PCAF quality label attached to each estimation basis.
BASIS_QUALITY_LABELS: Dict[EstimationBasis, str] = {
    EstimationBasis.REPORTED: "reported",
    EstimationBasis.BUILDING_AREA: "economic-activity",
    EstimationBasis.SECTOR_REVENUE: "sector-average",
    EstimationBasis.UNAVAILABLE: "proxy",
}

FORMULA = (
    "Financed Emissions = Counterparty Emissions x "
    "(Outstanding Amount / Total Asset or Equity)"
)

UNALLOCATED = "unallocated"


def resolve_sector(
    label: Optional[str], default_sector: Optional[str] = None,
) -> Tuple[str, bool]:
    """Map a counterparty sector label to a sector intensity key.

    Returns:
        ``(factor_key, fallback_applied)``. Unrecognised or empty labels fall
        back to ``default_sector`` (configuration ``default_pcaf_sector``)
        with ``fallback_applied=True``.

    Example:
        >>> resolve_sector("Oil & Gas")
        ('oilGas', False)
    """
    normalized = (label or "").strip().lower()
    if normalized in SECTOR_FACTOR_KEYS:
        return SECTOR_FACTOR_KEYS[normalized], False
    default_sector = default_sector or get_config().default_pcaf_sector
    default_key = SECTOR_FACTOR_KEYS.get(default_sector.strip().lower(), default_sector)
    return default_key, True


@dataclass
class _Estimate:
    """Counterparty emissions obtained at one level of the hierarchy."""

    tonnes: Decimal
    basis: EstimationBasis
    methodology: str
    uncertainty: Decimal = ZERO
    sector: Optional[str] = None
    sector_fallback_applied: bool = False


class FinancedEmissionsCalculator:
    """PCAF attribution with a data-quality fallback hierarchy.

    Args:
        factor_table: Table providing sector and building intensities.
            Defaults to the process-wide table.
    """

    def __init__(self, factor_table: Optional[EmissionFactorTable] = None):
        self.factor_table = factor_table or get_default_table()

    def calculate(
        self, data: Union[FinancedEmissionsInput, Mapping[str, Any]],
    ) -> FinancedEmissionsResult:
        """Calculate financed emissions for one counterparty.

        Raises:
            InvalidQuantityError: Negative monetary or physical input.
        """
        start = time.perf_counter()
        if not isinstance(data, FinancedEmissionsInput):
            data = FinancedEmissionsInput.model_validate(dict(data))

        warnings: List[str] = []
        estimate = self._estimate_counterparty(data, warnings)
        tier = pcaf_data_quality_score(BASIS_QUALITY_LABELS[estimate.basis])

        outstanding = data.outstanding_amount_usd
        total_value = data.total_asset_or_equity_usd
        attribution = safe_divide(outstanding, total_value)
        financed_t = estimate.tonnes * attribution
        financed_kg = financed_t * THOUSAND
        intensity = safe_divide(financed_t, outstanding / MILLION)
        attribution_pct = attribution * HUNDRED

        if total_value == ZERO:
            warnings.append(
                "Total asset or equity is zero; attribution factor set to 0"
            )

        result = FinancedEmissionsResult(
            counterparty_name=data.counterparty_name,
            total_kg_co2e=financed_kg,
            total_tonnes_co2e=financed_t,
            breakdown={estimate.basis.value: financed_kg},
            category_totals={15: financed_kg},
            methodology=estimate.methodology,
            uncertainty_fraction=estimate.uncertainty,
            data_available=estimate.basis != EstimationBasis.UNAVAILABLE,
            warnings=warnings,
            counterparty_emissions_tonnes=estimate.tonnes,
            attribution_factor=attribution,
            attribution_percent=attribution_pct,
            outstanding_amount_usd=outstanding,
            total_asset_or_equity_usd=total_value,
            data_quality_tier=tier,
            estimation_basis=estimate.basis,
            portfolio_carbon_intensity=intensity,
            sector=estimate.sector or (data.sector or None),
            sector_fallback_applied=estimate.sector_fallback_applied,
            asset_class=data.asset_class,
            geography=data.geography,
            formula={
                "formula": FORMULA,
                "counterparty_emissions": f"{estimate.tonnes:.2f} tCO2e",
                "attribution": (
                    f"{outstanding:,.2f} / {total_value:,.2f} = {attribution_pct:.2f}%"
                ),
                "result": (
                    f"{estimate.tonnes:.2f} x {attribution_pct:.2f}% = "
                    f"{financed_t:.2f} tCO2e"
                ),
            },
        )
        result.provenance_hash = content_hash({
            "inputs": data.model_dump(mode="json"),
            "counterparty_emissions_tonnes": estimate.tonnes,
            "attribution_factor": attribution,
            "financed_tonnes": financed_t,
            "tier": tier,
            "factor_table_version": self.factor_table.version,
        })

        record_financed_calculation(tier)
        record_duration("financed", time.perf_counter() - start)
        logger.debug(
            "Financed emissions %s tCO2e (tier %d, %s, attribution %s)",
            financed_t, tier, estimate.basis.value, attribution,
        )
        return result

    def calculate_portfolio(
        self, holdings: Iterable[Union[FinancedEmissionsInput, Mapping[str, Any]]],
    ) -> Tuple[List[FinancedEmissionsResult], PortfolioSummary]:
        """Calculate every holding and aggregate the portfolio."""
        results = [self.calculate(holding) for holding in holdings]
        return results, aggregate_portfolio(results)

    # ------------------------------------------------------------------
    # Data-quality hierarchy
    # ------------------------------------------------------------------

    def _estimate_counterparty(
        self, data: FinancedEmissionsInput, warnings: List[str],
    ) -> _Estimate:
        steps: List[Callable[[FinancedEmissionsInput, List[str]], Optional[_Estimate]]] = [
            self._from_reported,
            self._from_building_area,
            self._from_sector_revenue,
        ]
        for step in steps:
            estimate = step(data, warnings)
            if estimate is not None:
                return estimate

        message = (
            "No reported emissions, building area or revenue supplied; "
            "counterparty emissions unavailable (PCAF data quality 5)"
        )
        logger.warning(
            "Financed emissions unavailable for counterparty %s",
            data.counterparty_name or "<unnamed>",
        )
        warnings.append(message)
        return _Estimate(
            tonnes=ZERO,
            basis=EstimationBasis.UNAVAILABLE,
            methodology="No data available (DQ Score 5)",
        )

    def _from_reported(
        self, data: FinancedEmissionsInput, warnings: List[str],
    ) -> Optional[_Estimate]:
        reported = data.counterparty_reported_emissions_tonnes
        if reported is None or reported <= ZERO:
            return None
        return _Estimate(
            tonnes=reported,
            basis=EstimationBasis.REPORTED,
            methodology="Reported emissions (DQ Score 1)",
        )

    def _from_building_area(
        self, data: FinancedEmissionsInput, warnings: List[str],
    ) -> Optional[_Estimate]:
        area = data.building_area_m2
        if area is None or area <= ZERO:
            return None
        building_type = (data.building_type or get_config().default_building_type).lower()
        factor_key = BUILDING_FACTOR_KEYS.get(building_type)
        if factor_key is None:
            default_type = get_config().default_building_type
            message = (
                f"Unknown building type '{data.building_type}', "
                f"using '{default_type}' intensity"
            )
            logger.warning("%s", message)
            warnings.append(message)
            factor_key = BUILDING_FACTOR_KEYS.get(default_type, "officeBuilding")

        factor = self._lookup(BUILDING_CATEGORY, factor_key, warnings)
        if factor is None:
            return None
        return _Estimate(
            tonnes=area * factor.factor_value / THOUSAND,
            basis=EstimationBasis.BUILDING_AREA,
            methodology=f"Building area-based: {factor.description or factor_key} (DQ Score 3)",
            uncertainty=factor.uncertainty_fraction,
        )

    def _from_sector_revenue(
        self, data: FinancedEmissionsInput, warnings: List[str],
    ) -> Optional[_Estimate]:
        revenue = data.counterparty_revenue_musd
        if revenue is None or revenue <= ZERO:
            return None
        sector_key, fallback = resolve_sector(data.sector)
        if fallback:
            message = (
                f"Sector '{data.sector}' not recognised; "
                f"default sector intensity '{sector_key}' applied"
            )
            logger.warning("%s", message)
            warnings.append(message)

        factor = self._lookup(SECTOR_CATEGORY, sector_key, warnings)
        if factor is None:
            return None
        return _Estimate(
            tonnes=revenue * factor.factor_value,
            basis=EstimationBasis.SECTOR_REVENUE,
            methodology=f"Sector average: {data.sector or sector_key} (DQ Score 4)",
            uncertainty=factor.uncertainty_fraction,
            sector=sector_key,
            sector_fallback_applied=fallback,
        )

    def _lookup(
        self, category: str, key: str, warnings: List[str],
    ) -> Optional[EmissionFactor]:
        try:
            return self.factor_table.get(category, key)
        except MissingFactorError as e:
            logger.warning("PCAF intensity unavailable: %s", e)
            warnings.append(str(e))
            return None


# =============================================================================
# Portfolio aggregation
# =============================================================================


def _add_to_breakdown(
    breakdowns: Dict[str, PortfolioBreakdown],
    label: Optional[str],
    result: FinancedEmissionsResult,
) -> None:
    entry = breakdowns.setdefault(label or UNALLOCATED, PortfolioBreakdown())
    entry.financed_emissions_tonnes += result.total_tonnes_co2e
    entry.asset_count += 1
    entry.exposure_usd += result.outstanding_amount_usd


def aggregate_portfolio(results: Iterable[FinancedEmissionsResult]) -> PortfolioSummary:
    """Aggregate financed emission results into a portfolio summary.

    Data quality is reported both as a simple mean of tiers and weighted by
    outstanding exposure. All ratios are 0 for an empty portfolio.
    """
    summary = PortfolioSummary()
    tier_sum = ZERO
    weighted_tier_sum = ZERO

    for result in results:
        summary.asset_count += 1
        summary.total_financed_emissions_tonnes += result.total_tonnes_co2e
        summary.total_exposure_usd += result.outstanding_amount_usd
        summary.tier_distribution[result.data_quality_tier] += 1
        tier_sum += result.data_quality_tier
        weighted_tier_sum += result.data_quality_tier * result.outstanding_amount_usd

        _add_to_breakdown(summary.by_sector, result.sector, result)
        _add_to_breakdown(summary.by_asset_class, result.asset_class, result)
        _add_to_breakdown(summary.by_geography, result.geography, result)

    summary.average_data_quality = safe_divide(tier_sum, summary.asset_count)
    summary.exposure_weighted_data_quality = safe_divide(
        weighted_tier_sum, summary.total_exposure_usd,
    )
    summary.weighted_carbon_intensity = safe_divide(
        summary.total_financed_emissions_tonnes,
        summary.total_exposure_usd / MILLION,
    )
    summary.provenance_hash = content_hash({
        "asset_count": summary.asset_count,
        "total_financed_emissions_tonnes": summary.total_financed_emissions_tonnes,
        "total_exposure_usd": summary.total_exposure_usd,
        "tier_distribution": summary.tier_distribution,
    })
    logger.info(
        "Aggregated %d holdings: %s tCO2e financed, mean data quality %s",
        summary.asset_count,
        summary.total_financed_emissions_tonnes,
        summary.average_data_quality,
    )
    return summary


__all__ = [
    "SECTOR_FACTOR_KEYS",
    "BUILDING_FACTOR_KEYS",
    "resolve_sector",
    "FinancedEmissionsCalculator",
    "aggregate_portfolio",
]
