# -*- coding: utf-8 -*-
"""
Activity Emissions Calculator Tests

This test suite validates:
- Scope 1 fuel combustion against published DEFRA factors
- Scope 2 location-based and market-based accounting
- Scope 3 category tagging and breakdowns
- Additivity of per-activity contributions (property based)
- Unknown-key handling in permissive and strict modes
- Aggregation from persisted activity records
- Scope 1+2+3 totals and percentage shares
- Determinism of provenance hashes
"""

from datetime import datetime, timezone
from decimal import Decimal

import pytest
from hypothesis import HealthCheck, given, settings
from hypothesis import strategies as st

from esgcore.emissions.activity import (
    SCOPE1_ACTIVITIES,
    ActivityEmissionsCalculator,
    canonical_activity_key,
)
from esgcore.emissions.models import ActivityRecord, Scope2Method
from esgcore.exceptions import InvalidQuantityError, MissingFactorError


@pytest.fixture
def calculator():
    return ActivityEmissionsCalculator()


# ==================== SCOPE 1 ====================

class TestScope1:
    """Direct emissions from fuel combustion."""

    def test_natural_gas_1000_kwh(self, calculator):
        result = calculator.calculate_scope1({"naturalGasKwh": 1000})
        assert result.total_kg_co2e == Decimal("183.16")
        assert result.total_tonnes_co2e == Decimal("0.18316")
        assert result.breakdown == {"naturalGasKwh": Decimal("183.16")}
        assert result.scope == 1
        assert result.data_available is True

    def test_methodology_names_source(self, calculator):
        result = calculator.calculate_scope1({"dieselLiters": 10})
        assert result.methodology == "DEFRA 2025 Fuels"

    def test_multiple_fuels(self, calculator):
        result = calculator.calculate_scope1({"dieselLiters": 100, "petrolLiters": 50})
        expected = Decimal("100") * Decimal("2.68844") + Decimal("50") * Decimal("2.31441")
        assert result.total_kg_co2e == expected

    def test_empty_input(self, calculator):
        result = calculator.calculate_scope1({})
        assert result.total_kg_co2e == 0
        assert result.breakdown == {}
        assert result.data_available is False
        assert result.warnings == []

    def test_zero_quantities_mean_no_data(self, calculator):
        result = calculator.calculate_scope1({"naturalGasKwh": 0})
        assert result.total_kg_co2e == 0
        assert result.data_available is False

    def test_uncertainty_is_emission_weighted(self, calculator):
        result = calculator.calculate_scope1({"naturalGasKwh": 1000})
        assert result.uncertainty_fraction == Decimal("0.02")

    def test_string_and_float_quantities(self, calculator):
        a = calculator.calculate_scope1({"naturalGasKwh": "1,000"})
        b = calculator.calculate_scope1({"naturalGasKwh": 1000.0})
        assert a.total_kg_co2e == b.total_kg_co2e == Decimal("183.16")

    def test_snake_case_keys(self, calculator):
        result = calculator.calculate_scope1({"natural_gas_kwh": 1000})
        assert result.breakdown == {"naturalGasKwh": Decimal("183.16")}

    def test_alias_key(self, calculator):
        result = calculator.calculate_scope1({"coalIndustrialKwh": 100})
        assert "coalKwh" in result.breakdown


class TestAdditivity:
    """total == sum of individual activity calculations."""

    @settings(max_examples=50, deadline=None, suppress_health_check=[HealthCheck.function_scoped_fixture])
    @given(st.dictionaries(
        st.sampled_from(sorted(SCOPE1_ACTIVITIES)),
        st.integers(min_value=0, max_value=10_000_000),
        max_size=len(SCOPE1_ACTIVITIES),
    ))
    def test_scope1_total_is_sum_of_parts(self, activities):
        calculator = ActivityEmissionsCalculator()
        combined = calculator.calculate_scope1(activities)
        parts = sum(
            (calculator.calculate_scope1({k: v}).total_kg_co2e for k, v in activities.items()),
            Decimal("0"),
        )
        assert combined.total_kg_co2e == parts
        assert combined.total_kg_co2e == sum(combined.breakdown.values(), Decimal("0"))

    @settings(max_examples=30, deadline=None, suppress_health_check=[HealthCheck.function_scoped_fixture])
    @given(
        st.integers(min_value=0, max_value=100_000),
        st.integers(min_value=0, max_value=100_000),
    )
    def test_scope3_total_is_sum_of_parts(self, flight_km, steel_kg):
        calculator = ActivityEmissionsCalculator()
        combined = calculator.calculate_scope3({"domesticFlightKm": flight_km, "steelKg": steel_kg})
        flight = calculator.calculate_scope3({"domesticFlightKm": flight_km})
        steel = calculator.calculate_scope3({"steelKg": steel_kg})
        assert combined.total_kg_co2e == flight.total_kg_co2e + steel.total_kg_co2e


# ==================== SCOPE 2 ====================

class TestScope2:
    """Purchased electricity."""

    def test_location_based(self, calculator):
        result = calculator.calculate_scope2({"electricityKwh": 1000})
        assert result.total_kg_co2e == Decimal("193.38")
        assert result.method == Scope2Method.LOCATION_BASED
        assert result.methodology == "DEFRA 2025 Electricity (location-based)"

    def test_location_based_ignores_renewables(self, calculator):
        result = calculator.calculate_scope2(
            {"electricityKwh": 1000, "renewablePercentage": 50},
        )
        assert result.total_kg_co2e == Decimal("193.38")
        assert result.renewable_offset_kg_co2e == 0

    def test_td_losses_reported_separately(self, calculator):
        result = calculator.calculate_scope2({"electricityKwh": 1000})
        assert result.td_losses_kg_co2e == Decimal("14.55")
        assert result.td_losses_tonnes_co2e == Decimal("0.01455")
        assert result.total_kg_co2e == sum(result.breakdown.values(), Decimal("0"))

    def test_market_based_partial_renewable(self, calculator):
        result = calculator.calculate_scope2(
            {"electricityKwh": 1000, "renewablePercentage": 50}, "market-based",
        )
        assert result.total_kg_co2e == Decimal("96.69")
        assert result.renewable_offset_kg_co2e == Decimal("96.69")
        assert result.renewable_percentage == Decimal("50")

    def test_market_based_fully_renewable(self, calculator):
        result = calculator.calculate_scope2(
            {"electricityKwh": 1000, "renewablePercentage": 100},
            Scope2Method.MARKET_BASED,
        )
        assert result.total_kg_co2e == 0
        assert result.renewable_offset_kg_co2e == Decimal("193.38")

    def test_market_based_without_renewables_matches_location(self, calculator):
        location = calculator.calculate_scope2({"electricityKwh": 500})
        market = calculator.calculate_scope2({"electricityKwh": 500}, "market-based")
        assert market.total_kg_co2e == location.total_kg_co2e

    def test_renewable_percentage_above_100(self, calculator):
        with pytest.raises(InvalidQuantityError):
            calculator.calculate_scope2(
                {"electricityKwh": 1000, "renewablePercentage": 150}, "market-based",
            )

    def test_unknown_method(self, calculator):
        with pytest.raises(ValueError):
            calculator.calculate_scope2({"electricityKwh": 1}, "residual-mix")


# ==================== SCOPE 3 ====================

class TestScope3:
    """Value-chain categories."""

    def test_business_travel(self, calculator):
        result = calculator.calculate_scope3(
            {"domesticFlightKm": 1000, "hotelNightsAverage": 2},
        )
        assert result.breakdown["domesticFlightKm"] == Decimal("255.73")
        assert result.breakdown["hotelNightsAverage"] == Decimal("47.6")
        assert result.ghg_category == 6
        assert result.category_totals == {6: Decimal("303.33")}
        assert "Business Travel" in result.methodology

    def test_mixed_categories(self, calculator):
        result = calculator.calculate_scope3(
            {"steelKg": 100, "landfillTonnes": 1, "taxiKm": 10},
        )
        assert result.ghg_category is None
        assert set(result.category_totals) == {1, 5, 6}
        assert result.category_totals[5] == Decimal("467.0")

    def test_spend_aliases(self, calculator):
        result = calculator.calculate_scope3({"goodsSpend": 1000, "servicesSpendGBP": 1000})
        assert result.breakdown == {
            "goodsSpendGBP": Decimal("420.00"),
            "servicesSpendGBP": Decimal("280.00"),
        }

    def test_scope1_key_in_scope3_is_unknown(self, calculator):
        result = calculator.calculate_scope3({"naturalGasKwh": 1000})
        assert result.total_kg_co2e == 0
        assert result.skipped_activities == ["naturalGasKwh"]


# ==================== VALIDATION ====================

class TestUnknownActivities:
    """Unknown keys are skipped with a warning, or rejected when strict."""

    def test_permissive_by_default(self, calculator):
        result = calculator.calculate_scope1({"naturalGasKwh": 1000, "unicornKwh": 5})
        assert result.total_kg_co2e == Decimal("183.16")
        assert result.skipped_activities == ["unicornKwh"]
        assert len(result.warnings) == 1
        assert "unicornKwh" in result.warnings[0]

    def test_strict_from_config(self, strict_config):
        calculator = ActivityEmissionsCalculator()
        with pytest.raises(MissingFactorError) as exc_info:
            calculator.calculate_scope1({"unicornKwh": 5})
        assert exc_info.value.key == "unicornKwh"

    @pytest.mark.parametrize("scope", [1, 3])
    def test_renewable_percentage_outside_scope2(self, calculator, scope):
        activities = {"renewablePercentage": 50}
        if scope == 1:
            activities["naturalGasKwh"] = 1000
        result = calculator.calculate(scope, activities)
        assert result.skipped_activities == ["renewablePercentage"]
        assert any("renewablePercentage" in w for w in result.warnings)
        if scope == 1:
            assert result.total_kg_co2e == Decimal("183.16")

    def test_renewable_percentage_scope2_not_skipped(self, calculator):
        result = calculator.calculate_scope2(
            {"electricityKwh": 1000, "renewablePercentage": 50},
            method=Scope2Method.MARKET_BASED,
        )
        assert result.skipped_activities == []

    def test_strict_argument_overrides_config(self):
        calculator = ActivityEmissionsCalculator(strict_unknown_activities=True)
        with pytest.raises(MissingFactorError):
            calculator.calculate_scope3({"teleportKm": 1})


class TestQuantityValidation:
    """Quantities must be finite, numeric and non-negative."""

    def test_negative_rejected(self, calculator):
        with pytest.raises(InvalidQuantityError) as exc_info:
            calculator.calculate_scope1({"dieselLiters": -1})
        assert exc_info.value.field == "dieselLiters"

    def test_non_numeric_rejected(self, calculator):
        with pytest.raises(InvalidQuantityError):
            calculator.calculate_scope1({"dieselLiters": "lots"})

    def test_boolean_rejected(self, calculator):
        with pytest.raises(InvalidQuantityError):
            calculator.calculate_scope1({"dieselLiters": True})

    def test_infinite_rejected(self, calculator):
        with pytest.raises(InvalidQuantityError):
            calculator.calculate_scope1({"dieselLiters": float("inf")})

    def test_nan_rejected(self, calculator):
        with pytest.raises(InvalidQuantityError):
            calculator.calculate_scope1({"dieselLiters": "NaN"})

    @pytest.mark.parametrize("quantity", ["NaN", "Infinity", float("nan")])
    def test_non_finite_activity_record(self, quantity):
        with pytest.raises(InvalidQuantityError) as exc_info:
            ActivityRecord(
                company_id="acme", activity_type="dieselLiters", quantity=quantity, scope=1,
            )
        assert exc_info.value.field == "quantity"

    def test_unsupported_scope(self, calculator):
        with pytest.raises(ValueError):
            calculator.calculate(4, {})

    def test_negative_activity_record(self):
        with pytest.raises(InvalidQuantityError):
            ActivityRecord(
                company_id="acme", activity_type="dieselLiters", quantity=-5, scope=1,
            )


# ==================== RECORDS AND TOTALS ====================

class TestActivityRecords:
    """Calculation from persisted rows."""

    def _record(self, activity, quantity, scope, day):
        return ActivityRecord(
            company_id="acme",
            activity_type=activity,
            quantity=quantity,
            scope=scope,
            recorded_at=datetime(2025, 3, day, tzinfo=timezone.utc),
        )

    def test_sums_same_activity(self, calculator):
        results = calculator.calculate_records([
            self._record("naturalGasKwh", 400, 1, 1),
            self._record("natural_gas_kwh", 600, 1, 2),
        ])
        assert list(results) == [1]
        assert results[1].total_kg_co2e == Decimal("183.16")

    def test_latest_renewable_percentage_applies(self, calculator):
        results = calculator.calculate_records(
            [
                self._record("electricityKwh", 1000, 2, 1),
                self._record("renewablePercentage", 100, 2, 2),
                self._record("renewablePercentage", 50, 2, 3),
            ],
            scope2_method="market-based",
        )
        assert results[2].renewable_percentage == Decimal("50")
        assert results[2].total_kg_co2e == Decimal("96.69")

    def test_calculate_for_company(self, calculator, activity_source):
        source = activity_source({
            ("acme", "2025-03"): [
                self._record("dieselLiters", 10, 1, 5),
                self._record("electricityKwh", 100, 2, 6),
                self._record("taxiKm", 10, 3, 7),
            ],
        })
        results = calculator.calculate_for_company(source, "acme", "2025-03")
        assert sorted(results) == [1, 2, 3]
        assert calculator.calculate_for_company(source, "acme", "2025-04") == {}


class TestTotals:
    """Scope 1 + 2 + 3 roll-up."""

    def test_percentages(self, calculator):
        summary = calculator.calculate_total(
            scope1={"naturalGasKwh": 1000},
            scope2={"electricityKwh": 1000},
        )
        assert summary.total_tonnes_co2e == Decimal("0.37654")
        assert summary.breakdown["scope3"] == 0
        assert summary.percentages == {"scope1": 49, "scope2": 51, "scope3": 0}
        assert summary.standard == "GHG Protocol Corporate Standard"

    def test_all_zero(self, calculator):
        summary = calculator.calculate_total()
        assert summary.total_tonnes_co2e == 0
        assert summary.percentages == {"scope1": 0, "scope2": 0, "scope3": 0}

    def test_warnings_collected(self, calculator):
        summary = calculator.calculate_total(scope1={"mysteryFuel": 1})
        assert len(summary.warnings) == 1

    def test_to_dict_is_json_safe(self, calculator):
        data = calculator.calculate_total(scope1={"naturalGasKwh": 1000}).to_dict()
        assert data["details"]["scope1"]["total_kg_co2e"] == "183.16000"


class TestDeterminism:
    """Same inputs -> same provenance hash."""

    def test_hash_stable(self, calculator):
        a = calculator.calculate_scope1({"naturalGasKwh": 1000, "dieselLiters": 5})
        b = calculator.calculate_scope1({"dieselLiters": 5, "naturalGasKwh": 1000})
        assert a.provenance_hash == b.provenance_hash
        assert len(a.provenance_hash) == 64

    def test_hash_changes_with_input(self, calculator):
        a = calculator.calculate_scope1({"naturalGasKwh": 1000})
        b = calculator.calculate_scope1({"naturalGasKwh": 1001})
        assert a.provenance_hash != b.provenance_hash


class TestCanonicalKeys:

    @pytest.mark.parametrize("raw,expected", [
        ("naturalGasKwh", "naturalGasKwh"),
        ("natural_gas_kwh", "naturalGasKwh"),
        ("NATURAL-GAS-KWH", "naturalGasKwh"),
        ("goodsSpend", "goodsSpendGBP"),
        ("renewable_percentage", "renewablePercentage"),
        ("somethingElse", "somethingElse"),
    ])
    def test_resolution(self, raw, expected):
        assert canonical_activity_key(raw) == expected
