"""Domain Utilities - rounding and safe aggregate helpers.

Every reported average and percentage goes through these helpers so the
whole catalog shares one rounding rule: half-up at a fixed number of
places, with nulls (and results over zero rows) passed through as None.
"""

import math
from decimal import Decimal, ROUND_HALF_EVEN, ROUND_HALF_UP
from typing import Optional

import pandas as pd

# Float noise below this precision is discarded before rounding half-up,
# so a mean stored as 2.67499999999 still rounds to 2.68.
_NOISE_QUANTUM = Decimal("1e-9")

CURRENCY_PLACES = 2
PERCENT_PLACES = 2
DAYS_PLACES = 1
AGE_PLACES = 1


def round_half_up(value, places: int) -> Optional[float]:
    """Round a number half-up (away from zero for .5) to ``places`` decimals.

    Parameters:
        value: int, float, Decimal or a pandas/NumPy scalar; None/NaN/NA allowed
        places: Number of decimal places to keep

    Returns:
        The rounded value as float, or None for missing input
    """
    if value is None or value is pd.NA or value is pd.NaT:
        return None
    if isinstance(value, float) and math.isnan(value):
        return None
    try:
        if pd.isna(value):
            return None
    except (TypeError, ValueError):
        pass

    exact = Decimal(str(value)) if not isinstance(value, Decimal) else value
    cleaned = exact.quantize(_NOISE_QUANTUM, rounding=ROUND_HALF_EVEN)
    return float(cleaned.quantize(Decimal(1).scaleb(-places), rounding=ROUND_HALF_UP))


def round_series(series: pd.Series, places: int) -> pd.Series:
    """Apply :func:`round_half_up` element-wise, keeping the index."""
    return pd.Series([round_half_up(v, places) for v in series], index=series.index, dtype=object)


def percentage(part, whole, places: int = PERCENT_PLACES) -> Optional[float]:
    """Return ``100 * part / whole`` rounded half-up, or None when whole is zero."""
    if whole is None or whole == 0 or pd.isna(whole):
        return None
    return round_half_up(Decimal(int(part)) * 100 / Decimal(int(whole)), places)


def safe_mean(series: pd.Series) -> Optional[float]:
    """Mean of the non-null values, or None when there are none."""
    values = pd.to_numeric(series, errors="coerce").dropna()
    if values.empty:
        return None
    return float(values.mean())


def percentile_linear(series: pd.Series, fraction: float) -> Optional[float]:
    """Continuous percentile with linear interpolation between closest ranks.

    The position in the sorted population is ``fraction * (n - 1)``; when it
    is not an integer the value is interpolated between its two neighbours.
    This matches SQL ``PERCENTILE_CONT``.

    Returns:
        The percentile, or None for an empty population
    """
    if not 0.0 <= fraction <= 1.0:
        raise ValueError(f"Percentile fraction must be within [0, 1]. Got: {fraction}")
    values = pd.to_numeric(series, errors="coerce").dropna()
    if values.empty:
        return None
    return float(values.quantile(fraction, interpolation="linear"))
