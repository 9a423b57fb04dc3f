# File: utils/__init__.py
"""Pure Python utilities for LifeTrack.

Nothing in this package touches the store or the managers; everything here can
be unit tested in isolation.

Submodules:
    - dt_utils: Date/time parsing, local calendar days, interval arithmetic
    - math_utils: Progress percentages and clamping

Usage:
    from . import dt_utils
    from .math_utils import calculate_percentage
"""

from . import dt_utils, math_utils

__all__ = ["dt_utils", "math_utils"]
