"""Numeric coercion that never raises and never produces NaN."""

from __future__ import annotations

import math
from decimal import Decimal, InvalidOperation


def _finite(value: float) -> bool:
    return not (math.isnan(value) or math.isinf(value))


def safe_division(numerator: float, denominator: float, fallback: float = 0.0) -> float:
    """Divide, returning ``fallback`` for a zero or non-finite operand or result."""
    if denominator == 0 or not _finite(denominator) or not _finite(numerator):
        return fallback
    result = numerator / denominator
    return result if _finite(result) else fallback


def compute_rate(numerator: float, denominator: float) -> float:
    """Return ``numerator / denominator`` as a 0-100 percentage, rounded to 2 places.

    A zero denominator yields ``0.0``.
    """
    return round(safe_division(numerator, denominator) * 100, 2)


def safe_integer(value: object, fallback: int = 0) -> int:
    """Coerce to int; finite fractions truncate toward zero whether given as numbers or text."""
    if isinstance(value, bool):
        return fallback
    if isinstance(value, int):
        return value
    if isinstance(value, float | Decimal):
        number = safe_float(value, math.nan)
        return int(number) if _finite(number) else fallback
    if isinstance(value, str):
        text = value.strip()
        try:
            return int(text)
        except ValueError:
            pass
        try:
            number = float(text)
        except ValueError:
            return fallback
        return int(number) if _finite(number) else fallback
    return fallback


def safe_float(value: object, fallback: float = 0.0) -> float:
    if isinstance(value, bool):
        return fallback
    if isinstance(value, int | float | Decimal):
        try:
            number = float(value)
        except (InvalidOperation, OverflowError, ValueError):
            return fallback
        return number if _finite(number) else fallback
    if isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            return fallback
        return number if _finite(number) else fallback
    return fallback
