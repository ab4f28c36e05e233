# production_planner/core/baseline.py
import math
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

import numpy as np

from production_planner.core.distribution import (
    DEFAULT_DISPERSION_THRESHOLD, select_distribution_type
)
from production_planner.exceptions import ForecastError
from production_planner.models import ConfidenceLevel, DistributionType, SalesRecord
from production_planner.utils.math_utils import mean, population_variance, safe_divide

OUTLIER_METHODS = ('iqr', 'zscore')

@dataclass(frozen=True)
class DailyObservation:
    sale_date: date
    quantity: int
    weather_condition: Optional[str] = None

@dataclass(frozen=True)
class BaselineEstimate:
    """Cleaned sample statistics behind a forecast."""
    baseline_forecast: float
    variance: float
    dispersion_ratio: float
    distribution_type: DistributionType
    data_points: int
    same_day_data_points: int
    outliers_removed: int
    confidence_level: ConfidenceLevel
    no_data: bool
    used_same_day: bool = False
    # Retained full-history quantities in date order
    retained_values: Tuple[int, ...] = ()
    # The sample the mean was taken from
    sample_values: Tuple[int, ...] = ()

def select_item_history(
    records: Iterable[SalesRecord],
    product_id: str,
    market_id: str,
    target_date: date,
    variant_id: Optional[str] = None,
    max_history_days: int = 180
) -> List[DailyObservation]:
    """Get the daily demand history of one item at one market.

    Only sales strictly before the target date and within the history
    window are used. Several records for the same day are summed.

    Args:
        records: Sales records to select from
        product_id: Product ID
        market_id: Market ID
        target_date: Date being forecast
        variant_id: Variant ID; when absent only records without a variant match
        max_history_days: Length of the history window in days

    Returns:
        Daily observations sorted by date
    """
    cutoff = target_date - timedelta(days=max_history_days)
    totals: Dict[date, int] = {}
    weather: Dict[date, str] = {}

    for record in records:
        if record.product_id != product_id or record.market_id != market_id:
            continue

        if variant_id:
            if record.variant_id != variant_id:
                continue
        elif record.variant_id:
            continue

        if record.sale_date >= target_date or record.sale_date < cutoff:
            continue

        totals[record.sale_date] = totals.get(record.sale_date, 0) + max(0, record.quantity_sold)
        if record.weather_condition and record.sale_date not in weather:
            weather[record.sale_date] = record.weather_condition

    return [DailyObservation(day, qty, weather.get(day)) for day, qty in sorted(totals.items())]

def outlier_fences(
    values: Sequence[float],
    method: str = 'iqr',
    iqr_multiplier: float = 1.5,
    zscore_threshold: float = 2.5
) -> Tuple[float, float]:
    """Calculate inclusive lower and upper fences for outlier rejection.

    Args:
        values: Sample values
        method: 'iqr' for Tukey fences or 'zscore' for mean +/- k standard deviations
        iqr_multiplier: IQR multiplier for Tukey fences
        zscore_threshold: Number of standard deviations for the z-score rule

    Returns:
        Tuple with lower and upper fence
    """
    if method not in OUTLIER_METHODS:
        raise ForecastError(f"Unknown outlier method: {method}")

    # Too few points to call anything an outlier
    if len(values) < 3:
        return (-math.inf, math.inf)

    if method == 'iqr':
        q1, q3 = np.percentile(values, [25, 75])
        iqr = q3 - q1
        return (float(q1 - iqr_multiplier * iqr), float(q3 + iqr_multiplier * iqr))

    center = mean(values)
    spread = math.sqrt(population_variance(values))
    if spread == 0:
        return (-math.inf, math.inf)
    return (center - zscore_threshold * spread, center + zscore_threshold * spread)

def remove_outliers(
    values: Sequence[float],
    fences: Tuple[float, float]
) -> Tuple[List[float], int]:
    """Drop values outside the fences.

    Returns:
        Tuple with retained values and number removed
    """
    lower, upper = fences
    kept = [v for v in values if lower <= v <= upper]
    return kept, len(values) - len(kept)

def determine_confidence(
    data_points: int,
    same_day_points: int,
    high_same_day_points: int = 5,
    medium_total_points: int = 5
) -> ConfidenceLevel:
    """Get the confidence level from the amount of retained history."""
    if data_points <= 0:
        return ConfidenceLevel.NONE

    if same_day_points >= high_same_day_points:
        return ConfidenceLevel.HIGH

    if data_points >= medium_total_points or same_day_points > 0:
        return ConfidenceLevel.MEDIUM

    return ConfidenceLevel.LOW

def empty_estimate(outliers_removed: int = 0) -> BaselineEstimate:
    return BaselineEstimate(
        baseline_forecast=0.0,
        variance=0.0,
        dispersion_ratio=0.0,
        distribution_type=DistributionType.POISSON,
        data_points=0,
        same_day_data_points=0,
        outliers_removed=outliers_removed,
        confidence_level=ConfidenceLevel.NONE,
        no_data=True
    )

def estimate_baseline(
    history: Sequence[DailyObservation],
    target_date: date,
    min_same_day_samples: int = 3,
    outlier_method: str = 'iqr',
    iqr_multiplier: float = 1.5,
    zscore_threshold: float = 2.5,
    dispersion_threshold: float = DEFAULT_DISPERSION_THRESHOLD,
    high_same_day_points: int = 5,
    medium_total_points: int = 5
) -> BaselineEstimate:
    """Estimate the baseline demand mean and variance for a target date.

    The history is split into same-weekday observations and the full
    sample. Outlier fences come from the full sample and apply to both.
    The same-weekday sample is preferred once it is large enough.

    Args:
        history: Daily observations sorted by date
        target_date: Date being forecast
        min_same_day_samples: Smallest same-weekday sample that is preferred
        outlier_method: 'iqr' or 'zscore'
        iqr_multiplier: IQR multiplier for Tukey fences
        zscore_threshold: Number of standard deviations for the z-score rule
        dispersion_threshold: Variance/mean ratio that selects Negative Binomial
        high_same_day_points: Same-weekday points for high confidence
        medium_total_points: Total points for medium confidence

    Returns:
        BaselineEstimate, flagged no_data when nothing is retained
    """
    if not history:
        return empty_estimate()

    all_values = [obs.quantity for obs in history]
    same_day_values = [obs.quantity for obs in history
                       if obs.sale_date.weekday() == target_date.weekday()]

    fences = outlier_fences(all_values, outlier_method, iqr_multiplier, zscore_threshold)
    retained_all, removed = remove_outliers(all_values, fences)
    retained_same_day, _ = remove_outliers(same_day_values, fences)

    if not retained_all:
        return empty_estimate(removed)

    used_same_day = len(retained_same_day) >= min_same_day_samples
    sample = retained_same_day if used_same_day else retained_all

    sample_mean = mean(sample)
    sample_variance = population_variance(sample)
    dispersion_ratio = safe_divide(sample_variance, sample_mean)

    return BaselineEstimate(
        baseline_forecast=sample_mean,
        variance=sample_variance,
        dispersion_ratio=dispersion_ratio,
        distribution_type=select_distribution_type(
            sample_mean, sample_variance, len(sample), dispersion_threshold
        ),
        data_points=len(retained_all),
        same_day_data_points=len(retained_same_day),
        outliers_removed=removed,
        confidence_level=determine_confidence(
            len(retained_all), len(retained_same_day),
            high_same_day_points, medium_total_points
        ),
        no_data=False,
        used_same_day=used_same_day,
        retained_values=tuple(int(v) for v in retained_all),
        sample_values=tuple(int(v) for v in sample)
    )
