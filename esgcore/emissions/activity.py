# -*- coding: utf-8 -*-
"""
Activity Emissions Calculator - Scope 1, 2 and 3

Converts raw activity quantities (fuel liters, kWh, passenger-km, tonnes of
waste, spend) into kg CO2e, scope by scope, using the read-only
EmissionFactorTable.

ZERO-HALLUCINATION GUARANTEE:
- Decimal arithmetic only, no floating point in the calculation path
- Same inputs + same factor table -> same result and provenance hash
- Absent activities contribute zero; unknown activity keys are skipped and
  surfaced as data-quality warnings (or rejected in strict mode)

Example:
    >>> from esgcore.emissions.activity import ActivityEmissionsCalculator
    >>> calc = ActivityEmissionsCalculator()
    >>> result = calc.calculate_scope1({"naturalGasKwh": 1000})
    >>> result.total_kg_co2e, result.total_tonnes_co2e
    (Decimal('183.16000'), Decimal('0.18316000'))
"""

from __future__ import annotations

import logging
import re
import time
from collections import defaultdict
from decimal import Decimal
from typing import (
    Any,
    Dict,
    Iterable,
    List,
    Mapping,
    Optional,
    Protocol,
    Tuple,
    Union,
)

from esgcore.config import get_config
from esgcore.determinism import (
    HUNDRED,
    ZERO,
    content_hash,
    round_percent,
    safe_decimal,
    safe_divide,
    to_tonnes,
)
from esgcore.emissions.factors import (
    EmissionFactor,
    EmissionFactorTable,
    get_default_table,
)
from esgcore.emissions.models import (
    ActivityRecord,
    EmissionResult,
    EmissionsSummary,
    Scope2Method,
    Scope2Result,
)
from esgcore.exceptions import InvalidQuantityError, MissingFactorError
from esgcore.metrics import (
    record_duration,
    record_emission_calculation,
    record_missing_factor,
)

logger = logging.getLogger(__name__)

FactorRef = Tuple[str, str]


# =============================================================================
# Activity vocabularies (input key -> (factor category, factor key))
# =============================================================================

SCOPE1_ACTIVITIES: Dict[str, FactorRef] = {
    "naturalGasKwh": ("fuels", "naturalGas"),
    "petrolLiters": ("fuels", "petrol"),
    "dieselLiters": ("fuels", "diesel"),
    "lpgLiters": ("fuels", "lpg"),
    "coalKwh": ("fuels", "coalIndustrial"),
    "heatingOilLiters": ("fuels", "heatingOil"),
}

SCOPE2_ACTIVITIES: Dict[str, FactorRef] = {
    "electricityKwh": ("electricity", "ukGrid"),
}

#: Scope 3 category 6 business travel.
TRAVEL_ACTIVITIES: Dict[str, FactorRef] = {
    "domesticFlightKm": ("transportation", "airDomesticAverage"),
    "shortHaulFlightKm": ("transportation", "airShortHaulInternational"),
    "longHaulFlightKm": ("transportation", "airLongHaulInternational"),
    "carPetrolKm": ("transportation", "carPetrolMedium"),
    "carDieselKm": ("transportation", "carDieselMedium"),
    "carHybridKm": ("transportation", "carHybrid"),
    "carElectricKm": ("transportation", "carElectric"),
    "taxiKm": ("transportation", "taxi"),
    "nationalRailKm": ("transportation", "railNational"),
    "internationalRailKm": ("transportation", "railInternational"),
    "undergroundKm": ("transportation", "railLondonUnderground"),
    "hotelNightsAverage": ("accommodation", "hotelAverage"),
    "hotelNightsLuxury": ("accommodation", "hotelLuxury"),
}

#: Scope 3 category 1 purchased goods and services, spend based.
PURCHASED_GOODS_ACTIVITIES: Dict[str, FactorRef] = {
    "goodsSpendGBP": ("materials", "purchasedGoodsSpend"),
    "servicesSpendGBP": ("materials", "purchasedServicesSpend"),
}

#: Scope 3 category 1 materials by mass.
MATERIAL_ACTIVITIES: Dict[str, FactorRef] = {
    "steelKg": ("materials", "steel"),
    "concreteKg": ("materials", "concrete"),
    "aluminumKg": ("materials", "aluminum"),
    "plasticKg": ("materials", "plastic"),
    "paperKg": ("materials", "paper"),
}

#: Scope 3 category 5 waste generated in operations.
WASTE_ACTIVITIES: Dict[str, FactorRef] = {
    "landfillTonnes": ("waste", "landfill"),
    "recyclingTonnes": ("waste", "recycling"),
    "incinerationTonnes": ("waste", "incineration"),
    "compostTonnes": ("waste", "compost"),
}

WATER_ACTIVITIES: Dict[str, FactorRef] = {
    "waterSupplyM3": ("water", "supply"),
    "waterTreatmentM3": ("water", "treatment"),
}

SCOPE3_ACTIVITIES: Dict[str, FactorRef] = {
    **TRAVEL_ACTIVITIES,
    **PURCHASED_GOODS_ACTIVITIES,
    **MATERIAL_ACTIVITIES,
    **WASTE_ACTIVITIES,
    **WATER_ACTIVITIES,
}

ACTIVITY_VOCABULARY: Dict[int, Dict[str, FactorRef]] = {
    1: SCOPE1_ACTIVITIES,
    2: SCOPE2_ACTIVITIES,
    3: SCOPE3_ACTIVITIES,
}

#: Extra spellings accepted on input.
ACTIVITY_ALIASES: Dict[str, str] = {
    "goodsSpend": "goodsSpendGBP",
    "servicesSpend": "servicesSpendGBP",
    "coalIndustrialKwh": "coalKwh",
}

RENEWABLE_PERCENTAGE_KEY = "renewablePercentage"

GHG_CATEGORY_NAMES: Dict[int, str] = {
    1: "Purchased Goods and Services",
    3: "Fuel- and Energy-Related Activities",
    5: "Waste Generated in Operations",
    6: "Business Travel",
    15: "Investments",
}


def _normalize_key(key: str) -> str:
    return re.sub(r"[_\-\s]", "", key).lower()


def _build_lookup() -> Dict[str, str]:
    lookup: Dict[str, str] = {}
    for vocabulary in ACTIVITY_VOCABULARY.values():
        for key in vocabulary:
            lookup[_normalize_key(key)] = key
    for alias, key in ACTIVITY_ALIASES.items():
        lookup[_normalize_key(alias)] = key
    lookup[_normalize_key(RENEWABLE_PERCENTAGE_KEY)] = RENEWABLE_PERCENTAGE_KEY
    return lookup


_CANONICAL_KEYS = _build_lookup()


def canonical_activity_key(key: str) -> str:
    """Resolve snake_case and alias spellings to the canonical activity key.

    Unrecognised keys are returned unchanged.

    Example:
        >>> canonical_activity_key("natural_gas_kwh")
        'naturalGasKwh'
    """
    return _CANONICAL_KEYS.get(_normalize_key(key), key)


# =============================================================================
# Persistence collaborator
# =============================================================================


class ActivityRecordSource(Protocol):
    """Persistence collaborator that supplies stored activity rows."""

    def load_activity_records(
        self, company_id: str, period: str,
    ) -> List[ActivityRecord]:
        ...


# =============================================================================
# Calculator
# =============================================================================


class ActivityEmissionsCalculator:
    """Scope 1/2/3 emissions from activity quantities.

    Pure apart from logging and metrics: every call reads only its arguments
    and the read-only factor table.

    Args:
        factor_table: Table to resolve factors from. Defaults to the
            process-wide table.
        strict_unknown_activities: Raise ``MissingFactorError`` for unknown
            activity keys instead of skipping them. Defaults to the
            ``strict_unknown_activities`` configuration value.
    """

    def __init__(
        self,
        factor_table: Optional[EmissionFactorTable] = None,
        strict_unknown_activities: Optional[bool] = None,
    ):
        self.factor_table = factor_table or get_default_table()
        if strict_unknown_activities is None:
            strict_unknown_activities = get_config().strict_unknown_activities
        self.strict_unknown_activities = strict_unknown_activities

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def calculate(
        self,
        scope: int,
        activities: Mapping[str, Any],
        method: Union[str, Scope2Method, None] = None,
    ) -> EmissionResult:
        """Calculate emissions for one scope.

        Args:
            scope: 1, 2 or 3.
            activities: Activity key -> non-negative quantity.
            method: Scope 2 accounting method (ignored for scopes 1 and 3).

        Raises:
            InvalidQuantityError: Negative or non-numeric quantity, or a
                renewable percentage outside 0-100.
            ValueError: Unsupported scope.
        """
        if scope == 1:
            return self.calculate_scope1(activities)
        if scope == 2:
            return self.calculate_scope2(
                activities, method or Scope2Method.LOCATION_BASED,
            )
        if scope == 3:
            return self.calculate_scope3(activities)
        raise ValueError(f"Unsupported scope: {scope}")

    def calculate_scope1(self, activities: Mapping[str, Any]) -> EmissionResult:
        """Direct emissions from stationary and mobile fuel combustion."""
        start = time.perf_counter()
        quantities, unknown = self._prepare(1, activities)
        result = self._sum_activities(1, quantities, unknown)
        result.methodology = f"{self._source_label(1)} Fuels"
        self._finalize(result, quantities)
        record_duration("activity_scope1", time.perf_counter() - start)
        return result

    def calculate_scope2(
        self,
        activities: Mapping[str, Any],
        method: Union[str, Scope2Method] = Scope2Method.LOCATION_BASED,
    ) -> Scope2Result:
        """Indirect emissions from purchased electricity.

        Location-based always applies the grid-average factor. Market-based
        applies the zero-emission renewable factor at 100% renewable supply,
        otherwise ``grid * (1 - renewable% / 100)``. Transmission and
        distribution losses are reported separately and excluded from the
        Scope 2 total.
        """
        start = time.perf_counter()
        method = Scope2Method(method)
        renewable_pct = self._renewable_percentage(activities)
        quantities, unknown = self._prepare(2, activities)
        kwh = quantities.get("electricityKwh", ZERO)

        warnings: List[str] = []
        grid = self._resolve_factor("electricity", "ukGrid", warnings)
        td = self._resolve_factor("electricity", "ukGridTransmissionLoss", warnings)

        applied = grid
        if method == Scope2Method.MARKET_BASED and renewable_pct == HUNDRED:
            applied = self._resolve_factor("electricity", "renewable100", warnings)

        grid_value = grid.factor_value if grid else ZERO
        applied_value = applied.factor_value if applied else ZERO

        if method == Scope2Method.MARKET_BASED:
            share = renewable_pct / HUNDRED
            scope2_kg = kwh * applied_value * (1 - share)
            offset_kg = kwh * grid_value * share
        else:
            scope2_kg = kwh * applied_value
            offset_kg = ZERO
        td_kg = kwh * (td.factor_value if td else ZERO)

        breakdown = {"electricityKwh": scope2_kg} if "electricityKwh" in quantities else {}
        result = Scope2Result(
            method=method,
            renewable_percentage=renewable_pct,
            total_kg_co2e=scope2_kg,
            total_tonnes_co2e=to_tonnes(scope2_kg),
            breakdown=breakdown,
            renewable_offset_kg_co2e=offset_kg,
            td_losses_kg_co2e=td_kg,
            td_losses_tonnes_co2e=to_tonnes(td_kg),
            uncertainty_fraction=applied.uncertainty_fraction if applied else ZERO,
            data_available=kwh > ZERO,
            methodology=f"{self._source_label(2)} Electricity ({method.value})",
        )
        result.warnings.extend(warnings)
        self._apply_unknown(result, 2, unknown)
        self._finalize(result, {**quantities, RENEWABLE_PERCENTAGE_KEY: renewable_pct})
        record_duration("activity_scope2", time.perf_counter() - start)
        return result

    def calculate_scope3(self, activities: Mapping[str, Any]) -> EmissionResult:
        """Value-chain emissions: business travel (cat. 6), purchased goods
        and materials (cat. 1), waste (cat. 5) and water.
        """
        start = time.perf_counter()
        quantities, unknown = self._prepare(3, activities)
        result = self._sum_activities(3, quantities, unknown)
        categories = sorted(result.category_totals)
        if len(categories) == 1:
            result.ghg_category = categories[0]
        label = self._source_label(3)
        if categories:
            names = ", ".join(
                GHG_CATEGORY_NAMES.get(c, f"Category {c}") for c in categories
            )
            result.methodology = f"{label} Scope 3 ({names})"
        else:
            result.methodology = f"{label} Scope 3"
        self._finalize(result, quantities)
        record_duration("activity_scope3", time.perf_counter() - start)
        return result

    def calculate_records(
        self,
        records: Iterable[ActivityRecord],
        scope2_method: Union[str, Scope2Method] = Scope2Method.LOCATION_BASED,
    ) -> Dict[int, EmissionResult]:
        """Group persisted records by scope and calculate each scope.

        Quantities of the same activity type are summed. The renewable
        percentage is not summed: the most recently recorded value applies.
        """
        by_scope: Dict[int, Dict[str, Decimal]] = defaultdict(dict)
        for record in sorted(records, key=lambda r: r.recorded_at):
            key = canonical_activity_key(record.activity_type)
            bucket = by_scope[record.scope]
            if key == RENEWABLE_PERCENTAGE_KEY:
                bucket[key] = record.quantity
            else:
                bucket[key] = bucket.get(key, ZERO) + record.quantity

        results: Dict[int, EmissionResult] = {}
        for scope in sorted(by_scope):
            results[scope] = self.calculate(
                scope, by_scope[scope], method=scope2_method,
            )
        logger.debug(
            "Calculated %d scopes from persisted activity records", len(results),
        )
        return results

    def calculate_for_company(
        self,
        source: ActivityRecordSource,
        company_id: str,
        period: str,
        scope2_method: Union[str, Scope2Method] = Scope2Method.LOCATION_BASED,
    ) -> Dict[int, EmissionResult]:
        """Load a company's activity records for ``period`` and calculate."""
        records = source.load_activity_records(company_id, period)
        logger.info(
            "Loaded %d activity records for company %s period %s",
            len(records), company_id, period,
        )
        return self.calculate_records(records, scope2_method=scope2_method)

    def calculate_total(
        self,
        scope1: Optional[Mapping[str, Any]] = None,
        scope2: Optional[Mapping[str, Any]] = None,
        scope3: Optional[Mapping[str, Any]] = None,
        scope2_method: Union[str, Scope2Method] = Scope2Method.LOCATION_BASED,
    ) -> EmissionsSummary:
        """Roll Scope 1, 2 and 3 up into tonnes with integer percentage shares.

        Percentages are 0 when the grand total is 0.
        """
        details: Dict[str, EmissionResult] = {
            "scope1": self.calculate_scope1(scope1 or {}),
            "scope2": self.calculate_scope2(scope2 or {}, scope2_method),
            "scope3": self.calculate_scope3(scope3 or {}),
        }
        breakdown = {name: r.total_tonnes_co2e for name, r in details.items()}
        total_tonnes = sum(breakdown.values(), ZERO)
        percentages = {
            name: round_percent(safe_divide(value, total_tonnes) * HUNDRED)
            for name, value in breakdown.items()
        }
        warnings = [w for r in details.values() for w in r.warnings]

        summary = EmissionsSummary(
            total_tonnes_co2e=total_tonnes,
            total_kg_co2e=sum((r.total_kg_co2e for r in details.values()), ZERO),
            breakdown=breakdown,
            percentages=percentages,
            details=details,
            emission_factors=self._source_label(1),
            warnings=warnings,
        )
        summary.provenance_hash = content_hash({
            "details": {name: r.provenance_hash for name, r in details.items()},
            "total_tonnes_co2e": total_tonnes,
        })
        logger.info(
            "Total emissions %s tCO2e (scope1=%s%%, scope2=%s%%, scope3=%s%%)",
            total_tonnes,
            percentages["scope1"], percentages["scope2"], percentages["scope3"],
        )
        return summary

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _prepare(
        self, scope: int, activities: Mapping[str, Any],
    ) -> Tuple[Dict[str, Decimal], List[str]]:
        """Canonicalise keys, validate quantities, separate unknown keys."""
        vocabulary = ACTIVITY_VOCABULARY[scope]
        quantities: Dict[str, Decimal] = {}
        unknown: List[str] = []
        for raw_key, raw_value in activities.items():
            key = canonical_activity_key(raw_key)
            if key == RENEWABLE_PERCENTAGE_KEY and scope == 2:
                continue
            if key not in vocabulary:
                unknown.append(raw_key)
                continue
            quantities[key] = quantities.get(key, ZERO) + self._quantity(raw_key, raw_value)
        return quantities, unknown

    @staticmethod
    def _quantity(field: str, value: Any) -> Decimal:
        try:
            quantity = safe_decimal(value)
        except TypeError as e:
            raise InvalidQuantityError(
                f"Quantity for {field} is not numeric",
                field=field,
                value=value,
            ) from e
        if not quantity.is_finite():
            raise InvalidQuantityError(
                f"Quantity for {field} must be finite", field=field, value=value,
            )
        if quantity < ZERO:
            raise InvalidQuantityError(
                f"Quantity for {field} cannot be negative",
                field=field,
                value=value,
            )
        return quantity

    def _renewable_percentage(self, activities: Mapping[str, Any]) -> Decimal:
        for raw_key, raw_value in activities.items():
            if canonical_activity_key(raw_key) == RENEWABLE_PERCENTAGE_KEY:
                pct = self._quantity(raw_key, raw_value)
                if pct > HUNDRED:
                    raise InvalidQuantityError(
                        "renewablePercentage must be between 0 and 100",
                        field=raw_key,
                        value=raw_value,
                    )
                return pct
        return ZERO

    def _resolve_factor(
        self, category: str, key: str, warnings: List[str],
    ) -> Optional[EmissionFactor]:
        try:
            return self.factor_table.get(category, key)
        except MissingFactorError as e:
            if self.strict_unknown_activities:
                raise
            record_missing_factor(category)
            logger.warning("Emission factor unavailable, contributing zero: %s", e)
            warnings.append(str(e))
            return None

    def _sum_activities(
        self,
        scope: int,
        quantities: Dict[str, Decimal],
        unknown: List[str],
    ) -> EmissionResult:
        vocabulary = ACTIVITY_VOCABULARY[scope]
        breakdown: Dict[str, Decimal] = {}
        category_totals: Dict[int, Decimal] = {}
        weighted_uncertainty = ZERO
        warnings: List[str] = []

        for key, quantity in quantities.items():
            category, factor_key = vocabulary[key]
            factor = self._resolve_factor(category, factor_key, warnings)
            if factor is None:
                continue
            mass = quantity * factor.factor_value
            breakdown[key] = mass
            weighted_uncertainty += mass * factor.uncertainty_fraction
            if factor.ghg_category is not None:
                category_totals[factor.ghg_category] = (
                    category_totals.get(factor.ghg_category, ZERO) + mass
                )
            logger.debug(
                "scope%d %s: %s x %s (%s) = %s kgCO2e",
                scope, key, quantity, factor.factor_value, factor.factor_id, mass,
            )

        total_kg = sum(breakdown.values(), ZERO)
        result = EmissionResult(
            scope=scope,
            total_kg_co2e=total_kg,
            total_tonnes_co2e=to_tonnes(total_kg),
            breakdown=breakdown,
            category_totals=category_totals,
            uncertainty_fraction=safe_divide(weighted_uncertainty, total_kg),
            data_available=any(q > ZERO for q in quantities.values()),
            warnings=warnings,
        )
        self._apply_unknown(result, scope, unknown)
        return result

    def _apply_unknown(
        self, result: EmissionResult, scope: int, unknown: List[str],
    ) -> None:
        for key in unknown:
            error = MissingFactorError(
                f"Unknown scope {scope} activity '{key}' skipped",
                category=f"scope{scope}",
                key=key,
            )
            if self.strict_unknown_activities:
                raise error
            record_missing_factor(f"scope{scope}")
            logger.warning(
                "Unknown scope %d activity key %r treated as zero contribution",
                scope, key,
            )
            result.skipped_activities.append(key)
            result.warnings.append(str(error))

    def _source_label(self, scope: int) -> str:
        for category, _ in ACTIVITY_VOCABULARY[scope].values():
            for factor in self.factor_table.by_category(category).values():
                return factor.source
        return "Unspecified source"

    def _finalize(self, result: EmissionResult, inputs: Mapping[str, Decimal]) -> None:
        result.provenance_hash = content_hash({
            "scope": result.scope,
            "inputs": dict(inputs),
            "breakdown": result.breakdown,
            "total_kg_co2e": result.total_kg_co2e,
            "factor_table_version": self.factor_table.version,
        })
        record_emission_calculation(result.scope)
        if not result.data_available:
            logger.debug("scope%d: no activity data supplied", result.scope)


__all__ = [
    "SCOPE1_ACTIVITIES",
    "SCOPE2_ACTIVITIES",
    "SCOPE3_ACTIVITIES",
    "TRAVEL_ACTIVITIES",
    "PURCHASED_GOODS_ACTIVITIES",
    "MATERIAL_ACTIVITIES",
    "WASTE_ACTIVITIES",
    "WATER_ACTIVITIES",
    "ACTIVITY_VOCABULARY",
    "ACTIVITY_ALIASES",
    "canonical_activity_key",
    "ActivityRecordSource",
    "ActivityEmissionsCalculator",
]
