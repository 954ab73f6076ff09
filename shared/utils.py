"""
utils.py – small numeric helpers reused in multiple services
"""

from __future__ import annotations

import math
from decimal import ROUND_HALF_UP, Decimal

import numpy as np

from .constants import STEP_TOLERANCE


def round_price(x: float, digits: int) -> float:
    """Round half away from zero at `digits` decimals (MT5 NormalizeDouble)."""
    q = Decimal(1).scaleb(-int(digits))
    return float(Decimal(repr(float(x))).quantize(q, rounding=ROUND_HALF_UP))


def step_digits(step: float) -> int:
    """0.01 → 2, 0.1 → 1, 1.0 → 0."""
    exp = Decimal(repr(float(step))).normalize().as_tuple().exponent
    return max(0, -int(exp))


def floor_to_step(x: float, step: float) -> float:
    """Largest multiple of `step` not above `x` (never rounds up)."""
    return math.floor(x / step + STEP_TOLERANCE) * step


def is_finite_positive(x: float | None) -> bool:
    return x is not None and bool(np.isfinite(x)) and x > 0
