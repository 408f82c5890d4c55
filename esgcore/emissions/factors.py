# -*- coding: utf-8 -*-
"""
Emission Factor Table

Read-only lookup of activity -> emission factor mappings. Each factor is
tagged with its scope, unit, versioned source label, uncertainty and, for
financed emissions, a PCAF data-quality tier.

The table is loaded once from a YAML registry (``yaml.safe_load``) laid out
as ``<category>: <key>: {factor, unit, scope, source, uncertainty, ...}``.
A top-level ``metadata`` block is ignored.

Example:
    >>> from esgcore.emissions.factors import get_default_table
    >>> table = get_default_table()
    >>> table.get("fuels", "naturalGas").factor_value
    Decimal('0.18316')
"""

from __future__ import annotations

import logging
import threading
from decimal import Decimal
from enum import Enum
from pathlib import Path
from types import MappingProxyType
from typing import Any, Dict, Iterator, List, Mapping, Optional, Tuple, Union

import yaml
from pydantic import BaseModel, ConfigDict, Field, field_validator

from esgcore.config import get_config
from esgcore.determinism import safe_decimal
from esgcore.exceptions import ConfigurationError, MissingFactorError

logger = logging.getLogger(__name__)

#: Registry bundled with the package.
DEFAULT_REGISTRY_PATH = Path(__file__).parent.parent / "data" / "emission_factors.yaml"

_METADATA_KEY = "metadata"


# =============================================================================
# Enumerations
# =============================================================================


class FactorUnit(str, Enum):
    """Activity unit an emission factor applies to."""

    KWH = "kWh"
    LITER = "liter"
    KM = "km"
    PASSENGER_KM = "passenger-km"
    ROOM_NIGHT = "room-night"
    KG = "kg"
    TONNE = "tonne"
    M3 = "m3"
    CURRENCY = "currency"
    USD_MILLION_REVENUE = "usd-million-revenue"
    M2_YEAR = "m2-year"


# =============================================================================
# PCAF data-quality hierarchy
# =============================================================================

#: PCAF data-quality score per estimation basis (1 best ... 5 worst).
PCAF_DATA_QUALITY_SCORES: Dict[str, int] = {
    "reported": 1,
    "physical-activity": 2,
    "economic-activity": 3,
    "sector-average": 4,
    "proxy": 5,
    "default": 5,
}


def pcaf_data_quality_score(source_label: Optional[str]) -> int:
    """Map an estimation-basis label to its PCAF data-quality score.

    Unknown or missing labels score 5.

    Example:
        >>> pcaf_data_quality_score("sector_average")
        4
    """
    if not source_label:
        return 5
    normalized = source_label.strip().lower().replace("_", "-").replace(" ", "-")
    return PCAF_DATA_QUALITY_SCORES.get(normalized, 5)


# =============================================================================
# EmissionFactor
# =============================================================================


class EmissionFactor(BaseModel):
    """A single immutable emission factor.

    ``factor_value`` is kg CO2e per ``unit``, except for the PCAF sector
    intensities, which are tCO2e per USD million of revenue.
    """

    model_config = ConfigDict(frozen=True)

    category: str = Field(..., min_length=1)
    key: str = Field(..., min_length=1)
    factor_value: Decimal = Field(..., ge=0)
    unit: FactorUnit
    scope: int = Field(..., ge=1, le=3)
    source: str = Field(..., min_length=1)
    uncertainty_fraction: Decimal = Field(default=Decimal("0"), ge=0, le=1)
    data_quality_tier: Optional[int] = Field(default=None, ge=1, le=5)
    ghg_category: Optional[int] = Field(default=None, ge=1, le=15)
    method: Optional[str] = None
    description: str = ""

    @field_validator("factor_value", "uncertainty_fraction", mode="before")
    @classmethod
    def _coerce_decimal(cls, v: Any) -> Decimal:
        return safe_decimal(v)

    @property
    def factor_id(self) -> str:
        """``category.key`` identifier used in logs and formula trails."""
        return f"{self.category}.{self.key}"

    @classmethod
    def from_registry_entry(
        cls, category: str, key: str, entry: Mapping[str, Any],
    ) -> EmissionFactor:
        """Build a factor from one YAML registry entry."""
        return cls(
            category=category,
            key=key,
            factor_value=entry["factor"],
            unit=entry["unit"],
            scope=entry["scope"],
            source=entry.get("source", "unspecified"),
            uncertainty_fraction=entry.get("uncertainty", 0),
            data_quality_tier=entry.get("data_quality_tier"),
            ghg_category=entry.get("ghg_category"),
            method=entry.get("method"),
            description=entry.get("description", ""),
        )


# =============================================================================
# EmissionFactorTable
# =============================================================================


class EmissionFactorTable:
    """Read-only emission factor lookup keyed by (category, key).

    Build from the YAML registry with :meth:`from_yaml` or from an in-memory
    mapping with :meth:`from_mapping`. The table exposes no mutating API.
    """

    def __init__(
        self,
        factors: Mapping[str, Mapping[str, EmissionFactor]],
        version: str = "unversioned",
    ):
        self._factors: Dict[str, Mapping[str, EmissionFactor]] = {
            category: MappingProxyType(dict(entries))
            for category, entries in factors.items()
        }
        self.version = version

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    @classmethod
    def from_mapping(
        cls, data: Mapping[str, Any], version: Optional[str] = None,
    ) -> EmissionFactorTable:
        """Build a table from a raw registry mapping.

        Raises:
            ConfigurationError: If an entry is missing required fields or
                is otherwise invalid.
        """
        metadata = data.get(_METADATA_KEY) or {}
        factors: Dict[str, Dict[str, EmissionFactor]] = {}
        for category, entries in data.items():
            if category == _METADATA_KEY:
                continue
            if not isinstance(entries, Mapping):
                raise ConfigurationError(
                    f"Factor category '{category}' must be a mapping",
                    context={"category": category},
                )
            factors[category] = {}
            for key, entry in entries.items():
                try:
                    factors[category][key] = EmissionFactor.from_registry_entry(
                        category, key, entry,
                    )
                except (KeyError, TypeError, ValueError) as e:
                    raise ConfigurationError(
                        f"Invalid emission factor entry {category}.{key}: {e}",
                        context={"category": category, "key": key},
                    ) from e
        return cls(factors, version=version or str(metadata.get("version", "unversioned")))

    @classmethod
    def from_yaml(cls, path: Union[str, Path]) -> EmissionFactorTable:
        """Load a table from a YAML registry file.

        Raises:
            ConfigurationError: If the file is missing or unparsable.
        """
        path = Path(path)
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f)
        except FileNotFoundError as e:
            logger.error("Emission factor registry not found: %s", path)
            raise ConfigurationError(
                f"Emission factor registry not found: {path}",
                context={"path": str(path)},
            ) from e
        except yaml.YAMLError as e:
            logger.error("Failed to parse emission factor registry %s: %s", path, e)
            raise ConfigurationError(
                f"Failed to parse emission factor registry: {path}",
                context={"path": str(path)},
            ) from e

        if not isinstance(data, Mapping):
            raise ConfigurationError(
                "Emission factor registry root must be a mapping",
                context={"path": str(path)},
            )
        table = cls.from_mapping(data)
        logger.info(
            "Loaded %d emission factors in %d categories from %s (version %s)",
            len(table), len(table.categories()), path, table.version,
        )
        return table

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def get(self, category: str, key: str) -> EmissionFactor:
        """Return the factor for (category, key).

        Raises:
            MissingFactorError: If no factor matches.
        """
        factor = self.find(category, key)
        if factor is None:
            raise MissingFactorError(
                f"No emission factor for {category}.{key}",
                category=category,
                key=key,
            )
        return factor

    def find(self, category: str, key: str) -> Optional[EmissionFactor]:
        """Return the factor for (category, key), or None."""
        entries = self._factors.get(category)
        if entries is None:
            return None
        return entries.get(key)

    def by_category(self, category: str) -> Dict[str, EmissionFactor]:
        """Return a copy of all factors in ``category`` (empty if unknown)."""
        return dict(self._factors.get(category, {}))

    def categories(self) -> List[str]:
        """Return the category names in registry order."""
        return list(self._factors)

    def __len__(self) -> int:
        return sum(len(entries) for entries in self._factors.values())

    def __contains__(self, item: object) -> bool:
        if not isinstance(item, tuple) or len(item) != 2:
            return False
        category, key = item
        return self.find(category, key) is not None

    def __iter__(self) -> Iterator[EmissionFactor]:
        for entries in self._factors.values():
            yield from entries.values()

    def __repr__(self) -> str:
        return f"EmissionFactorTable(version={self.version!r}, factors={len(self)})"


# =============================================================================
# Process-wide default table
# =============================================================================

_default_table: Optional[EmissionFactorTable] = None
_default_table_lock = threading.Lock()


def get_default_table() -> EmissionFactorTable:
    """Return the process-wide factor table, loading it on first use.

    The registry path comes from ``factor_registry_path`` in the
    configuration; empty selects the bundled registry.
    """
    global _default_table
    if _default_table is None:
        with _default_table_lock:
            if _default_table is None:
                path = get_config().factor_registry_path or DEFAULT_REGISTRY_PATH
                _default_table = EmissionFactorTable.from_yaml(path)
    return _default_table


def reset_default_table() -> None:
    """Drop the cached default table (primarily for test teardown)."""
    global _default_table
    with _default_table_lock:
        _default_table = None


__all__ = [
    "DEFAULT_REGISTRY_PATH",
    "FactorUnit",
    "PCAF_DATA_QUALITY_SCORES",
    "pcaf_data_quality_score",
    "EmissionFactor",
    "EmissionFactorTable",
    "get_default_table",
    "reset_default_table",
]
