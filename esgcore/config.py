# -*- coding: utf-8 -*-
"""
esgcore Engine Configuration

Centralized configuration for the emissions and compliance scoring engine:
- Emission factor registry location
- Unknown-activity policy (permissive skip vs. strict rejection)
- PCAF estimation defaults (fallback sector, building type)
- Forecasting limits (minimum history, default horizon)
- Reporting precision, metrics toggle and logging

All settings can be overridden via environment variables with the
``ESG_`` prefix (e.g. ``ESG_STRICT_UNKNOWN_ACTIVITIES=true``).

Example:
    >>> from esgcore.config import get_config
    >>> cfg = get_config()
    >>> print(cfg.default_pcaf_sector, cfg.forecast_min_history)
"""

from __future__ import annotations

import logging
import os
import threading
from dataclasses import dataclass, replace
from typing import Any, Optional

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Environment variable prefix
# ---------------------------------------------------------------------------

_ENV_PREFIX = "ESG_"


# ---------------------------------------------------------------------------
# EsgCoreConfig
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class EsgCoreConfig:
    """Complete configuration for the esgcore engine.

    Attributes:
        factor_registry_path: YAML emission factor registry. Empty string
            selects the registry bundled with the package.
        strict_unknown_activities: Raise ``MissingFactorError`` for activity
            keys without a factor instead of skipping them with a warning.
        default_pcaf_sector: Sector used when a counterparty sector label is
            not recognised.
        default_building_type: Building type used for area-based PCAF
            estimates when none is given.
        forecast_min_history: Minimum monthly points required to fit a trend
            (values below 3 are raised to 3).
        forecast_periods: Default number of months to project.
        reporting_decimal_places: Decimal places for kg CO2e values in CLI
            emissions tables.
        enable_metrics: Record Prometheus metrics.
        log_level: Logging level for the ``esgcore`` logger.
    """

    # -- Reference data ------------------------------------------------------
    factor_registry_path: str = ""

    # -- Activity calculation ------------------------------------------------
    strict_unknown_activities: bool = False

    # -- Financed emissions --------------------------------------------------
    default_pcaf_sector: str = "manufacturing"
    default_building_type: str = "office"

    # -- Forecasting ---------------------------------------------------------
    forecast_min_history: int = 3
    forecast_periods: int = 3

    # -- Reporting -----------------------------------------------------------
    reporting_decimal_places: int = 3

    # -- Observability -------------------------------------------------------
    enable_metrics: bool = True
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> EsgCoreConfig:
        """Build an EsgCoreConfig from environment variables.

        Every field can be overridden via ``ESG_<FIELD_UPPER>``.
        Boolean values accept ``true/1/yes`` (case-insensitive).

        Returns:
            Populated EsgCoreConfig instance.
        """
        prefix = _ENV_PREFIX

        def _env(name: str, default: Any = None) -> Optional[str]:
            return os.environ.get(f"{prefix}{name}", default)

        def _bool(name: str, default: bool) -> bool:
            val = _env(name)
            if val is None:
                return default
            return val.lower() in ("true", "1", "yes")

        def _int(name: str, default: int) -> int:
            val = _env(name)
            if val is None:
                return default
            try:
                return int(val)
            except ValueError:
                logger.warning(
                    "Invalid integer for %s%s=%s, using default %d",
                    prefix, name, val, default,
                )
                return default

        def _str(name: str, default: str) -> str:
            val = _env(name)
            if val is None:
                return default
            return val

        config = cls(
            factor_registry_path=_str(
                "FACTOR_REGISTRY_PATH", cls.factor_registry_path,
            ),
            strict_unknown_activities=_bool(
                "STRICT_UNKNOWN_ACTIVITIES", cls.strict_unknown_activities,
            ),
            default_pcaf_sector=_str(
                "DEFAULT_PCAF_SECTOR", cls.default_pcaf_sector,
            ),
            default_building_type=_str(
                "DEFAULT_BUILDING_TYPE", cls.default_building_type,
            ),
            forecast_min_history=_int(
                "FORECAST_MIN_HISTORY", cls.forecast_min_history,
            ),
            forecast_periods=_int("FORECAST_PERIODS", cls.forecast_periods),
            reporting_decimal_places=_int(
                "REPORTING_DECIMAL_PLACES", cls.reporting_decimal_places,
            ),
            enable_metrics=_bool("ENABLE_METRICS", cls.enable_metrics),
            log_level=_str("LOG_LEVEL", cls.log_level),
        )

        logger.info(
            "EsgCoreConfig loaded: registry=%s, strict_unknown=%s, "
            "pcaf_sector=%s, building=%s, forecast_min=%d, periods=%d, "
            "decimals=%d, metrics=%s",
            config.factor_registry_path or "<bundled>",
            config.strict_unknown_activities,
            config.default_pcaf_sector,
            config.default_building_type,
            config.forecast_min_history,
            config.forecast_periods,
            config.reporting_decimal_places,
            config.enable_metrics,
        )
        return config

    def with_overrides(self, **overrides: Any) -> EsgCoreConfig:
        """Return a copy with the given fields replaced."""
        return replace(self, **overrides)


# ---------------------------------------------------------------------------
# Thread-safe singleton accessor
# ---------------------------------------------------------------------------

_config_instance: Optional[EsgCoreConfig] = None
_config_lock = threading.Lock()


def get_config() -> EsgCoreConfig:
    """Return the singleton EsgCoreConfig, creating from env if needed.

    Uses double-checked locking for thread safety with minimal
    contention on the hot path.
    """
    global _config_instance
    if _config_instance is None:
        with _config_lock:
            if _config_instance is None:
                _config_instance = EsgCoreConfig.from_env()
    return _config_instance


def set_config(config: EsgCoreConfig) -> None:
    """Replace the singleton EsgCoreConfig (useful for testing)."""
    global _config_instance
    with _config_lock:
        _config_instance = config
    logger.info("EsgCoreConfig replaced programmatically")


def reset_config() -> None:
    """Reset the singleton (primarily for test teardown)."""
    global _config_instance
    with _config_lock:
        _config_instance = None


def configure_logging(config: Optional[EsgCoreConfig] = None) -> None:
    """Apply ``log_level`` to the ``esgcore`` logger hierarchy."""
    config = config or get_config()
    level = logging.getLevelName(config.log_level.upper())
    if not isinstance(level, int):
        logger.warning("Unknown log level %s, using INFO", config.log_level)
        level = logging.INFO
    logging.getLogger("esgcore").setLevel(level)


__all__ = [
    "EsgCoreConfig",
    "get_config",
    "set_config",
    "reset_config",
    "configure_logging",
]
