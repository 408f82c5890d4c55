"""esgcore Exception Hierarchy.

Rich-context exceptions for the emissions and compliance scoring engine.

Exception Hierarchy:
    EsgCoreException (base)
    ├── CalculationException
    │   ├── InvalidQuantityError
    │   └── MissingFactorError
    ├── ComplianceException
    │   ├── MalformedTreeError
    │   └── UnknownFrameworkError
    ├── ForecastException
    │   └── InsufficientHistoryError
    └── ConfigurationError

Recoverable conditions (``MissingFactorError``, ``InsufficientHistoryError``)
are normally caught inside the engine and surfaced as warnings on the result.
Contract violations (``InvalidQuantityError``, ``MalformedTreeError``)
propagate to the caller.

Example:
    >>> from esgcore.exceptions import InvalidQuantityError
    >>> raise InvalidQuantityError(
    ...     message="Quantity cannot be negative",
    ...     field="dieselLiters",
    ...     value=-4,
    ... )
"""

import json
import re
import traceback as tb
from datetime import datetime
from typing import Any, Dict, Optional


# ==============================================================================
# Base Exception
# ==============================================================================

class EsgCoreException(Exception):
    """Base exception for all esgcore errors.

    Attributes:
        message: Human-readable error message
        error_code: Unique error identifier (e.g., "ESG_CALC_INVALID_QUANTITY_ERROR")
        context: Dictionary with error-specific details
        timestamp: When the error occurred
        traceback_str: Stack at the point of construction
    """

    ERROR_PREFIX = "ESG"

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        """Initialize exception with rich context.

        Args:
            message: Human-readable error message
            error_code: Unique error identifier (auto-generated if not provided)
            context: Dictionary with error-specific details
        """
        super().__init__(message)
        self.message = message
        self.error_code = error_code or self._generate_error_code()
        self.context = context or {}
        self.timestamp = datetime.now()
        self.traceback_str = "".join(tb.format_stack()[:-1])

    def _generate_error_code(self) -> str:
        """Generate error code from the class name.

        Returns:
            Error code like "ESG_CALC_MISSING_FACTOR_ERROR"
        """
        error_type = re.sub(r'(?<!^)(?=[A-Z])', '_', self.__class__.__name__).upper()
        return f"{self.ERROR_PREFIX}_{error_type}"

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for serialization."""
        return {
            "error_type": self.__class__.__name__,
            "error_code": self.error_code,
            "message": self.message,
            "context": self.context,
            "timestamp": self.timestamp.isoformat(),
            "traceback": self.traceback_str,
        }

    def to_json(self) -> str:
        """Convert exception to JSON string."""
        return json.dumps(self.to_dict(), indent=2, default=str)

    def __str__(self) -> str:
        return f"[{self.error_code}] - {self.message}"

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"message='{self.message}', "
            f"error_code='{self.error_code}')"
        )


# ==============================================================================
# Calculation Exceptions
# ==============================================================================

class CalculationException(EsgCoreException):
    """Base exception for emission calculation errors."""
    ERROR_PREFIX = "ESG_CALC"


class InvalidQuantityError(CalculationException):
    """A quantity or percentage is outside its allowed range.

    Rejected at the boundary; calculators assume validated input.

    Example:
        >>> raise InvalidQuantityError(
        ...     message="Quantity cannot be negative",
        ...     field="electricityKwh",
        ...     value=-10,
        ... )
    """

    def __init__(
        self,
        message: str,
        context: Optional[Dict[str, Any]] = None,
        field: Optional[str] = None,
        value: Any = None,
    ):
        context = context or {}
        if field is not None:
            context["field"] = field
        if value is not None:
            context["value"] = str(value)
        self.field = field
        self.value = value
        super().__init__(message, context=context)


class MissingFactorError(CalculationException):
    """No emission factor matches an activity.

    Recoverable: calculators treat the activity as a zero contribution and
    attach the error to the result as a data-quality warning.
    """

    def __init__(
        self,
        message: str,
        context: Optional[Dict[str, Any]] = None,
        category: Optional[str] = None,
        key: Optional[str] = None,
    ):
        context = context or {}
        if category is not None:
            context["category"] = category
        if key is not None:
            context["key"] = key
        self.category = category
        self.key = key
        super().__init__(message, context=context)


# ==============================================================================
# Compliance Exceptions
# ==============================================================================

class ComplianceException(EsgCoreException):
    """Base exception for disclosure tracking and scoring errors."""
    ERROR_PREFIX = "ESG_COMPLIANCE"


class MalformedTreeError(ComplianceException):
    """A disclosure tree node is not a mapping where one is required."""

    def __init__(
        self,
        message: str,
        context: Optional[Dict[str, Any]] = None,
        path: Optional[str] = None,
    ):
        context = context or {}
        if path is not None:
            context["path"] = path
        self.path = path
        super().__init__(message, context=context)


class UnknownFrameworkError(ComplianceException):
    """Framework identifier is not one of the supported frameworks."""
    pass


# ==============================================================================
# Forecast Exceptions
# ==============================================================================

class ForecastException(EsgCoreException):
    """Base exception for trend forecasting errors."""
    ERROR_PREFIX = "ESG_FORECAST"


class InsufficientHistoryError(ForecastException):
    """Too few historical points to fit a trend.

    Only raised when the caller explicitly requires a forecast; the default
    forecasting path returns historical data only.
    """

    def __init__(
        self,
        message: str,
        context: Optional[Dict[str, Any]] = None,
        available: Optional[int] = None,
        required: Optional[int] = None,
    ):
        context = context or {}
        if available is not None:
            context["available"] = available
        if required is not None:
            context["required"] = required
        super().__init__(message, context=context)


class ConfigurationError(EsgCoreException):
    """Engine configuration is invalid (e.g. unreadable factor registry)."""
    pass


def format_exception_chain(exc: Exception) -> str:
    """Format exception chain for logging/display.

    Args:
        exc: Exception to format

    Returns:
        Formatted string with full exception chain
    """
    lines = []
    current = exc

    while current is not None:
        if isinstance(current, EsgCoreException):
            lines.append(str(current))
            lines.append(f"  Context: {current.context}")
        else:
            lines.append(f"{type(current).__name__}: {current}")
        current = getattr(current, "__cause__", None)

    return "\n".join(lines)


__all__ = [
    "EsgCoreException",
    "CalculationException",
    "InvalidQuantityError",
    "MissingFactorError",
    "ComplianceException",
    "MalformedTreeError",
    "UnknownFrameworkError",
    "ForecastException",
    "InsufficientHistoryError",
    "ConfigurationError",
    "format_exception_chain",
]
