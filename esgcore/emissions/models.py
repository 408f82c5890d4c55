# -*- coding: utf-8 -*-
"""
Emissions Data Models

Pydantic v2 models for activity records and the results produced by the
activity and financed emission calculators.

Conventions:
    - Masses are kg CO2e internally; tonnes are derived (kg / 1000).
    - Monetary amounts are USD unless a field name says otherwise.
    - Results are derived values, never the source of truth: they can always
      be recomputed from ActivityRecord rows plus the factor table.

Models:
    - ActivityRecord: one persisted activity quantity
    - EmissionResult: per-scope calculation output
    - Scope2Result: EmissionResult with method and T&D losses
    - EmissionsSummary: Scope 1 + 2 + 3 roll-up with percentages
    - FinancedEmissionsInput / FinancedEmissionsResult: PCAF attribution
    - PortfolioBreakdown / PortfolioSummary: PCAF portfolio aggregation
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import AliasChoices, BaseModel, Field, ValidationInfo, field_validator

from esgcore.determinism import ZERO, safe_decimal, utcnow
from esgcore.exceptions import InvalidQuantityError


# =============================================================================
# Enumerations
# =============================================================================


class Scope2Method(str, Enum):
    """Scope 2 accounting method."""

    LOCATION_BASED = "location-based"
    MARKET_BASED = "market-based"


class EstimationBasis(str, Enum):
    """How counterparty emissions were obtained for a financed calculation."""

    REPORTED = "reported"
    BUILDING_AREA = "building-area"
    SECTOR_REVENUE = "sector-revenue"
    UNAVAILABLE = "unavailable"


def _non_negative(field: str, value: Any) -> Optional[Decimal]:
    if value is None:
        return value
    try:
        amount = safe_decimal(value)
    except TypeError as e:
        raise InvalidQuantityError(
            f"{field} is not numeric", field=field, value=value,
        ) from e
    if not amount.is_finite():
        raise InvalidQuantityError(
            f"{field} must be finite", field=field, value=value,
        )
    if amount < ZERO:
        raise InvalidQuantityError(
            f"{field} cannot be negative",
            field=field,
            value=value,
        )
    return amount


# =============================================================================
# Activity records
# =============================================================================


class ActivityRecord(BaseModel):
    """A single persisted activity quantity.

    Negative quantities are rejected on construction with
    ``InvalidQuantityError``.
    """

    company_id: str = Field(..., min_length=1)
    activity_type: str = Field(..., min_length=1)
    quantity: Decimal
    unit: Optional[str] = None
    scope: int = Field(..., ge=1, le=3)
    recorded_at: datetime = Field(default_factory=utcnow)

    @field_validator("quantity", mode="before")
    @classmethod
    def _validate_quantity(cls, v: Any) -> Decimal:
        return _non_negative("quantity", v)


# =============================================================================
# Results
# =============================================================================


class EmissionResult(BaseModel):
    """Emissions for one scope, with per-activity breakdown in kg CO2e."""

    scope: int = Field(..., ge=1, le=3)
    total_kg_co2e: Decimal = ZERO
    total_tonnes_co2e: Decimal = ZERO
    breakdown: Dict[str, Decimal] = Field(default_factory=dict)
    methodology: str = ""
    uncertainty_fraction: Decimal = ZERO
    ghg_category: Optional[int] = None
    category_totals: Dict[int, Decimal] = Field(
        default_factory=dict,
        description="Scope 3 kg CO2e per GHG Protocol category",
    )
    data_available: bool = True
    warnings: List[str] = Field(default_factory=list)
    skipped_activities: List[str] = Field(default_factory=list)
    calculated_at: datetime = Field(default_factory=utcnow)
    provenance_hash: str = ""

    def to_dict(self) -> Dict[str, Any]:
        """JSON-safe dict for the export collaborator."""
        return self.model_dump(mode="json")


class Scope2Result(EmissionResult):
    """Scope 2 result.

    Transmission and distribution losses are Scope 3 category 3 and are
    reported alongside, never included in ``total_kg_co2e``.
    """

    scope: int = 2
    method: Scope2Method = Scope2Method.LOCATION_BASED
    renewable_percentage: Decimal = ZERO
    renewable_offset_kg_co2e: Decimal = ZERO
    td_losses_kg_co2e: Decimal = ZERO
    td_losses_tonnes_co2e: Decimal = ZERO


class EmissionsSummary(BaseModel):
    """Scope 1 + 2 + 3 roll-up in tonnes CO2e."""

    total_tonnes_co2e: Decimal = ZERO
    total_kg_co2e: Decimal = ZERO
    breakdown: Dict[str, Decimal] = Field(default_factory=dict)
    percentages: Dict[str, int] = Field(default_factory=dict)
    details: Dict[str, EmissionResult] = Field(default_factory=dict)
    standard: str = "GHG Protocol Corporate Standard"
    emission_factors: str = ""
    warnings: List[str] = Field(default_factory=list)
    calculated_at: datetime = Field(default_factory=utcnow)
    provenance_hash: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump(mode="json")


# =============================================================================
# Financed emissions (PCAF)
# =============================================================================


class FinancedEmissionsInput(BaseModel):
    """Inputs for one counterparty / loan.

    Only the fields needed by the chosen estimation path must be supplied;
    absent optional fields are treated as unavailable data.
    """

    counterparty_name: Optional[str] = None
    counterparty_reported_emissions_tonnes: Optional[Decimal] = Field(
        default=None,
        validation_alias=AliasChoices(
            "counterparty_reported_emissions_tonnes", "counterpartyEmissionsTonnes",
        ),
    )
    counterparty_revenue_musd: Optional[Decimal] = Field(
        default=None,
        validation_alias=AliasChoices(
            "counterparty_revenue_musd", "counterpartyRevenueMillion",
        ),
    )
    sector: str = Field(
        default="",
        validation_alias=AliasChoices("sector", "counterpartySector"),
    )
    outstanding_amount_usd: Decimal = Field(
        default=ZERO,
        validation_alias=AliasChoices("outstanding_amount_usd", "outstandingAmountUSD"),
    )
    total_asset_or_equity_usd: Decimal = Field(
        default=ZERO,
        validation_alias=AliasChoices(
            "total_asset_or_equity_usd", "totalAssetOrEquityUSD",
        ),
    )
    building_area_m2: Optional[Decimal] = Field(
        default=None,
        validation_alias=AliasChoices("building_area_m2", "buildingAreaM2"),
    )
    building_type: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("building_type", "buildingType"),
    )
    asset_class: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("asset_class", "assetClass"),
    )
    geography: Optional[str] = None

    @field_validator(
        "counterparty_reported_emissions_tonnes",
        "counterparty_revenue_musd",
        "outstanding_amount_usd",
        "total_asset_or_equity_usd",
        "building_area_m2",
        mode="before",
    )
    @classmethod
    def _validate_amounts(cls, v: Any, info: ValidationInfo) -> Optional[Decimal]:
        return _non_negative(info.field_name, v)


class FinancedEmissionsResult(EmissionResult):
    """PCAF financed emissions for one counterparty.

    ``total_tonnes_co2e`` is the financed (attributed) amount:
    ``counterparty_emissions_tonnes * attribution_factor``.
    """

    scope: int = 3
    ghg_category: Optional[int] = 15
    counterparty_name: Optional[str] = None
    counterparty_emissions_tonnes: Decimal = ZERO
    attribution_factor: Decimal = ZERO
    attribution_percent: Decimal = ZERO
    outstanding_amount_usd: Decimal = ZERO
    total_asset_or_equity_usd: Decimal = ZERO
    data_quality_tier: int = Field(default=5, ge=1, le=5)
    estimation_basis: EstimationBasis = EstimationBasis.UNAVAILABLE
    portfolio_carbon_intensity: Decimal = Field(
        default=ZERO,
        description="Financed tCO2e per USD million outstanding",
    )
    sector: Optional[str] = None
    sector_fallback_applied: bool = False
    asset_class: Optional[str] = None
    geography: Optional[str] = None
    formula: Dict[str, str] = Field(default_factory=dict)

    @property
    def financed_emissions_tonnes(self) -> Decimal:
        return self.total_tonnes_co2e


class PortfolioBreakdown(BaseModel):
    """Financed emissions and exposure for one portfolio slice."""

    financed_emissions_tonnes: Decimal = ZERO
    asset_count: int = 0
    exposure_usd: Decimal = ZERO


class PortfolioSummary(BaseModel):
    """Aggregate of many financed emission results."""

    asset_count: int = 0
    total_financed_emissions_tonnes: Decimal = ZERO
    total_exposure_usd: Decimal = ZERO
    weighted_carbon_intensity: Decimal = ZERO
    average_data_quality: Decimal = ZERO
    exposure_weighted_data_quality: Decimal = ZERO
    tier_distribution: Dict[int, int] = Field(
        default_factory=lambda: {tier: 0 for tier in range(1, 6)},
    )
    by_sector: Dict[str, PortfolioBreakdown] = Field(default_factory=dict)
    by_asset_class: Dict[str, PortfolioBreakdown] = Field(default_factory=dict)
    by_geography: Dict[str, PortfolioBreakdown] = Field(default_factory=dict)
    calculated_at: datetime = Field(default_factory=utcnow)
    provenance_hash: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump(mode="json")


__all__ = [
    "Scope2Method",
    "EstimationBasis",
    "ActivityRecord",
    "EmissionResult",
    "Scope2Result",
    "EmissionsSummary",
    "FinancedEmissionsInput",
    "FinancedEmissionsResult",
    "PortfolioBreakdown",
    "PortfolioSummary",
]
