"""
Utility Functions for GPS Track Analysis

This module provides helper functions for value coercion, rounding and
numeric formatting used throughout the engine.
"""

import math
import numpy as np
from typing import Optional
from . import constants


def safe_float(value) -> float:
    """
    Safely convert a value to float, returning NaN on failure.

    Args:
        value: Value to convert (string, number, etc.).

    Returns:
        Float value, or np.nan if conversion fails.
    """
    if isinstance(value, bool):
        return np.nan
    try:
        return float(value)
    except (TypeError, ValueError, OverflowError):
        return np.nan


def round_float(value, digits: int = 3) -> Optional[float]:
    """
    Round a number for output; None for missing or non-finite input.

    Args:
        value: Number to round.
        digits: Decimal places kept.
    """
    if value is None or not math.isfinite(value):
        return None
    return round(float(value), digits)


def format_degrees(value: float,
                   min_decimals: int = constants.GPX_MIN_DECIMALS,
                   max_decimals: int = constants.GPX_MAX_DECIMALS) -> str:
    """
    Format a degree value for XML output.

    Prints max_decimals places and trims trailing zeros, never going below
    min_decimals, so 40.7128 stays "40.7128" and -74.006 becomes "-74.0060".

    Args:
        value: Latitude or longitude in degrees.
        min_decimals: Minimum number of decimals kept.
        max_decimals: Number of decimals printed before trimming.

    Returns:
        The formatted number.
    """
    text = f"{value:.{max_decimals}f}"
    whole, _, fraction = text.partition(".")
    fraction = fraction.rstrip("0")
    if len(fraction) < min_decimals:
        fraction = fraction.ljust(min_decimals, "0")
    return f"{whole}.{fraction}"
