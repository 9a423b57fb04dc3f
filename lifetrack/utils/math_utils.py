# File: utils/math_utils.py
"""Math and calculation utilities for LifeTrack.

Functions:
    - calculate_percentage: Progress percentage as a rounded integer
    - clamp: Bound a value to a range
"""

from __future__ import annotations

import logging

# Module-level logger
_LOGGER = logging.getLogger(__name__)


def calculate_percentage(current: float, target: float) -> int:
    """Calculate progress percentage rounded to an integer in [0, 100].

    Args:
        current: Current progress value
        target: Target/total value

    Returns:
        Percentage (0-100), or 100 if target is not positive

    Examples:
        calculate_percentage(50, 100) → 50
        calculate_percentage(1, 3) → 33
        calculate_percentage(150, 100) → 100
        calculate_percentage(5, 0) → 100  # Nothing left to earn
    """
    if target <= 0:
        return 100
    return int(clamp(round((current / target) * 100), 0, 100))


def clamp(value: float, min_val: float, max_val: float) -> float:
    """Clamp a value between minimum and maximum bounds.

    Examples:
        clamp(150, 0, 100) → 100
        clamp(-10, 0, 100) → 0
    """
    return max(min_val, min(value, max_val))
