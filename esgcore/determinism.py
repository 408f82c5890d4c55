# -*- coding: utf-8 -*-
"""
esgcore Determinism Module - Decimal arithmetic, guarded division and hashing

Every calculation in esgcore runs on ``Decimal`` with ROUND_HALF_UP so that
the same inputs always reproduce the same outputs, and every result carries a
SHA-256 provenance hash of its inputs and outputs.

Features:
- Safe conversion of int/float/str/Decimal to Decimal (floats via ``str``)
- Division guarded against zero denominators (returns 0, never NaN/Infinity)
- Half-up rounding for integer percentages and reporting precision
- Content hashing with sorted keys
- Freezable UTC clock for timestamps
"""

import hashlib
import json
import threading
from contextlib import contextmanager
from datetime import date, datetime, timezone
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP, getcontext
from enum import Enum
from typing import Any, Optional, Union

getcontext().prec = 28
getcontext().rounding = ROUND_HALF_UP

Number = Union[int, float, str, Decimal]

ZERO = Decimal("0")
HUNDRED = Decimal("100")
THOUSAND = Decimal("1000")
MILLION = Decimal("1000000")


class DeterministicClock:
    """
    A UTC clock that can be frozen for testing and auditing.

    Usage:
        with DeterministicClock.frozen(datetime(2025, 1, 1, tzinfo=timezone.utc)):
            # utcnow() returns 2025-01-01
            pass
    """

    _lock = threading.Lock()
    _frozen_time: Optional[datetime] = None

    @classmethod
    def utcnow(cls) -> datetime:
        """Get current UTC time (microseconds zeroed), or the frozen time."""
        if cls._frozen_time is not None:
            return cls._frozen_time
        return datetime.now(timezone.utc).replace(microsecond=0)

    @classmethod
    def freeze(cls, frozen_time: Optional[datetime] = None):
        """Freeze the clock at ``frozen_time`` (defaults to now)."""
        with cls._lock:
            if frozen_time is None:
                frozen_time = datetime.now(timezone.utc).replace(microsecond=0)
            cls._frozen_time = frozen_time

    @classmethod
    def unfreeze(cls):
        """Unfreeze the clock."""
        with cls._lock:
            cls._frozen_time = None

    @classmethod
    @contextmanager
    def frozen(cls, frozen_time: Optional[datetime] = None):
        """Context manager for temporarily freezing time."""
        cls.freeze(frozen_time)
        try:
            yield
        finally:
            cls.unfreeze()


def utcnow() -> datetime:
    """Get current deterministic UTC time."""
    return DeterministicClock.utcnow()


def safe_decimal(value: Any) -> Decimal:
    """
    Convert a numeric value to Decimal.

    Floats are converted through ``str`` so that ``0.1`` becomes
    ``Decimal('0.1')`` rather than its binary expansion. ``None`` maps to 0.

    Args:
        value: int, float, str, Decimal or None

    Returns:
        Decimal value

    Raises:
        TypeError: If value cannot be converted to Decimal

    Example:
        >>> safe_decimal(0.18316)
        Decimal('0.18316')
    """
    if value is None:
        return ZERO
    if isinstance(value, Decimal):
        return value
    if isinstance(value, bool):
        raise TypeError("Cannot convert bool to Decimal")
    if isinstance(value, int):
        return Decimal(value)
    if isinstance(value, float):
        return Decimal(str(value))
    if isinstance(value, str):
        try:
            return Decimal(value.replace(",", "").strip())
        except InvalidOperation as e:
            raise TypeError(f"Cannot convert {value!r} to Decimal") from e
    raise TypeError(f"Cannot convert {type(value).__name__} to Decimal")


def safe_divide(numerator: Any, denominator: Any) -> Decimal:
    """
    Divide, short-circuiting to 0 when the denominator is zero.

    Example:
        >>> safe_divide(5, 0)
        Decimal('0')
    """
    denominator = safe_decimal(denominator)
    if denominator == ZERO:
        return ZERO
    return safe_decimal(numerator) / denominator


def round_half_up(value: Any, decimal_places: int = 0) -> Decimal:
    """
    Round half away from zero to ``decimal_places``.

    Example:
        >>> round_half_up(37.5)
        Decimal('38')
        >>> round_half_up(123.456789, 3)
        Decimal('123.457')
    """
    quantum = Decimal(1).scaleb(-decimal_places)
    return safe_decimal(value).quantize(quantum, rounding=ROUND_HALF_UP)


def round_percent(value: Any) -> int:
    """Round a 0-100 value half-up to an integer percentage."""
    return int(round_half_up(value, 0))


def to_tonnes(kg: Any) -> Decimal:
    """Convert kg CO2e to tonnes CO2e."""
    return safe_decimal(kg) / THOUSAND


def _json_default(obj: Any) -> Any:
    if isinstance(obj, Decimal):
        return str(obj)
    if isinstance(obj, (datetime, date)):
        return obj.isoformat()
    if isinstance(obj, Enum):
        return obj.value
    if hasattr(obj, "model_dump"):
        return obj.model_dump(mode="json")
    raise TypeError(f"Object of type {type(obj).__name__} is not JSON serializable")


def content_hash(content: Any) -> str:
    """
    SHA-256 of the canonical (sorted-key, compact) JSON form of ``content``.

    Same content -> same hash regardless of dict insertion order.
    """
    if isinstance(content, bytes):
        payload = content
    elif isinstance(content, str):
        payload = content.encode("utf-8")
    else:
        payload = json.dumps(
            content,
            sort_keys=True,
            separators=(",", ":"),
            default=_json_default,
        ).encode("utf-8")
    return hashlib.sha256(payload).hexdigest()


__all__ = [
    "DeterministicClock",
    "utcnow",
    "safe_decimal",
    "safe_divide",
    "round_half_up",
    "round_percent",
    "to_tonnes",
    "content_hash",
    "ZERO",
    "HUNDRED",
    "THOUSAND",
    "MILLION",
]
