# production_planner/utils/math_utils.py
import math
from typing import Sequence, Tuple

import numpy as np

from production_planner.exceptions import CalculationError

def clamp(value: float, lower: float, upper: float) -> float:
    """Limit a value to the closed interval [lower, upper]."""
    return max(lower, min(upper, value))

def clamp_probability(value: float) -> float:
    """Limit a probability to [0, 1], mapping NaN to 0."""
    if value is None or math.isnan(value):
        return 0.0
    return clamp(float(value), 0.0, 1.0)

def safe_divide(numerator: float, denominator: float, default: float = 0.0) -> float:
    """Divide, returning a default instead of raising or producing NaN."""
    if denominator == 0 or not math.isfinite(denominator):
        return default
    result = numerator / denominator
    return result if math.isfinite(result) else default

def mean(values: Sequence[float]) -> float:
    """Arithmetic mean, 0.0 for an empty sample."""
    if len(values) == 0:
        return 0.0
    return float(np.mean(values))

def population_variance(values: Sequence[float]) -> float:
    """Population variance (ddof=0), 0.0 for an empty sample."""
    if len(values) == 0:
        return 0.0
    return float(np.var(values))

def standard_deviation(values: Sequence[float]) -> float:
    """Population standard deviation, 0.0 for an empty sample."""
    return math.sqrt(population_variance(values))

def coefficient_of_variation(values: Sequence[float]) -> float:
    """Standard deviation relative to the mean.

    Args:
        values: Sample values

    Returns:
        Coefficient of variation, 0.0 when the mean is zero
    """
    return safe_divide(standard_deviation(values), mean(values))

def linear_regression(x: Sequence[float], y: Sequence[float]) -> Tuple[float, float]:
    """Fit a least squares line through the points.

    Args:
        x: x values, typically the observation index
        y: y values, typically demand

    Returns:
        Tuple with slope and intercept; the slope is 0.0 when every x is equal
    """
    if len(x) != len(y) or len(x) < 2:
        raise CalculationError("Invalid input for linear regression")

    xs = np.asarray(x, dtype=float)
    ys = np.asarray(y, dtype=float)

    if np.ptp(xs) == 0:
        return (0.0, float(ys.mean()))

    slope, intercept = np.polyfit(xs, ys, 1)
    return (float(slope), float(intercept))
