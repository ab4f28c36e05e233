# production_planner/core/learning.py
from typing import Iterable, List, Optional, Sequence

from production_planner.models import AccuracyComparison, LearningStats, PatternInsight
from production_planner.utils.date_utils import weekday_name
from production_planner.utils.math_utils import mean

MID_MONTH_DAYS = (14, 16)
WET_CONDITIONS = ('rain', 'storm')
WEEKEND = (5, 6)

def _change(factor: float) -> str:
    return f"{abs(factor - 1.0) * 100:.0f}%"

def _average_actual(comparisons: Sequence[AccuracyComparison]) -> float:
    return mean([c.actual_qty for c in comparisons])

def detect_patterns(
    comparisons: Iterable[AccuracyComparison],
    product_id: str,
    min_points: int = 5,
    weekday_threshold: float = 0.15,
    mid_month_threshold: float = 0.15,
    wet_weekend_threshold: float = 0.2
) -> List[PatternInsight]:
    """Find days on which a product sells consistently above or below its average.

    Three conditions are checked against the product's average actual
    quantity: the middle of the month (days 14-16), weekends with rain or
    storm, and each weekday.

    Args:
        comparisons: Forecast comparisons, only matched ones are used
        product_id: Product to inspect
        min_points: Matched comparisons needed before looking for patterns
        weekday_threshold: Minimum relative deviation for a weekday pattern
        mid_month_threshold: Minimum relative deviation for the mid-month pattern
        wet_weekend_threshold: Minimum relative deviation for the wet weekend pattern

    Returns:
        Patterns sorted by confidence, highest first
    """
    rows = [c for c in comparisons if c.matched and c.product_id == product_id]
    if len(rows) < min_points:
        return []

    overall = _average_actual(rows)
    if overall <= 0:
        return []

    patterns = []

    mid_month = [c for c in rows if MID_MONTH_DAYS[0] <= c.date.day <= MID_MONTH_DAYS[1]]
    if len(mid_month) >= 2:
        factor = _average_actual(mid_month) / overall
        if abs(factor - 1.0) > mid_month_threshold:
            direction = 'up' if factor > 1 else 'down'
            patterns.append(PatternInsight(
                kind='micro_cycle',
                product_id=product_id,
                description=f"Mid-month (days 14-16) sales {direction} {_change(factor)}",
                factor=factor,
                confidence=80.0,
                data_points=len(mid_month),
                condition='day_of_month:14-16'
            ))

    wet_weekends = [
        c for c in rows if c.weekday in WEEKEND and c.weather_condition in WET_CONDITIONS
    ]
    if len(wet_weekends) >= 2:
        factor = _average_actual(wet_weekends) / overall
        if abs(factor - 1.0) > wet_weekend_threshold:
            direction = 'more' if factor > 1 else 'less'
            patterns.append(PatternInsight(
                kind='weather',
                product_id=product_id,
                description=f"Rainy weekends sell {_change(factor)} {direction}",
                factor=factor,
                confidence=90.0,
                data_points=len(wet_weekends),
                condition='rain+weekend'
            ))

    for day in range(7):
        same_day = [c for c in rows if c.weekday == day]
        if len(same_day) < 3:
            continue

        factor = _average_actual(same_day) / overall
        if abs(factor - 1.0) > weekday_threshold:
            direction = 'more' if factor > 1 else 'less'
            patterns.append(PatternInsight(
                kind='weekday',
                product_id=product_id,
                description=f"{weekday_name(day)} sells {_change(factor)} {direction}",
                factor=factor,
                confidence=min(100.0, len(same_day) * 15.0),
                data_points=len(same_day),
                condition=f"weekday:{day}"
            ))

    patterns.sort(key=lambda p: p.confidence, reverse=True)
    return patterns

def learning_stats(
    comparisons: Iterable[AccuracyComparison],
    product_id: Optional[str] = None,
    recent_window: int = 5,
    max_patterns: int = 5
) -> LearningStats:
    """Summarize how well forecasts track sales and whether they improve.

    Args:
        comparisons: Forecast comparisons
        product_id: Restrict to one product; all products otherwise
        recent_window: Number of latest comparisons treated as recent
        max_patterns: Maximum number of patterns to keep

    Returns:
        LearningStats; improvement_trend is the older mean absolute error
        minus the recent one
    """
    comparisons = list(comparisons)
    rows = sorted(
        (c for c in comparisons if c.matched and (product_id is None or c.product_id == product_id)),
        key=lambda c: c.date
    )
    if not rows:
        return LearningStats(total_forecasts=len(comparisons))

    recent = rows[-recent_window:]
    older = rows[:max(1, len(rows) - recent_window)]
    trend = mean([abs(c.diff) for c in older]) - mean([abs(c.diff) for c in recent])

    product_ids = [product_id] if product_id is not None else sorted({c.product_id for c in rows})
    patterns = []
    for pid in product_ids:
        patterns.extend(detect_patterns(rows, pid))
    patterns.sort(key=lambda p: p.confidence, reverse=True)

    scope = [c for c in comparisons if product_id is None or c.product_id == product_id]
    return LearningStats(
        total_forecasts=len(scope),
        matched_forecasts=len(rows),
        avg_accuracy=mean([c.accuracy for c in rows]),
        avg_bias=mean([c.diff for c in rows]),
        improvement_trend=trend,
        patterns=tuple(patterns[:max_patterns])
    )
