# production_planner/core/recommendations.py
from typing import Dict, List, Optional

from production_planner.models import (
    AccuracyAnalysisResult, Recommendation, RecommendationPriority
)

DEFAULT_THRESHOLDS = {
    'market_accuracy_threshold': 60.0,
    'day_accuracy_threshold': 60.0,
    'product_bias_threshold': 20.0,
    'product_high_priority_bias': 30.0,
    'min_sample_size': 2
}

def generate_recommendations(
    result: AccuracyAnalysisResult,
    thresholds: Optional[Dict] = None
) -> List[Recommendation]:
    """Turn accuracy aggregates into prioritized production suggestions.

    Args:
        result: Accuracy analysis result
        thresholds: Overrides for DEFAULT_THRESHOLDS

    Returns:
        Market recommendations first, then product, then day
    """
    limits = dict(DEFAULT_THRESHOLDS)
    if thresholds:
        limits.update(thresholds)

    min_samples = limits['min_sample_size']
    recommendations = []

    for market in result.market_accuracy:
        if market.sample_size < min_samples or market.accuracy >= limits['market_accuracy_threshold']:
            continue

        # Negative bias means production ran above demand
        if market.avg_bias < 0:
            suggestion = 'Reduce production quantities for this market'
        else:
            suggestion = 'Increase production quantities for this market'

        recommendations.append(Recommendation(
            category='market',
            target=market.name,
            issue=f"Accuracy {market.accuracy:.0f}% is below {limits['market_accuracy_threshold']:.0f}%",
            suggestion=suggestion,
            priority=RecommendationPriority.HIGH
        ))

    for product in result.product_accuracy:
        bias = product.bias_percent
        if product.sample_size < min_samples or abs(bias) <= limits['product_bias_threshold']:
            continue

        units = abs(product.avg_bias)
        if bias > 0:
            issue = f"Demand exceeds production by {bias:.0f}%"
            suggestion = f"Increase production by about {units:.0f} units"
        else:
            issue = f"Production exceeds demand by {abs(bias):.0f}%"
            suggestion = f"Reduce production by about {units:.0f} units"

        if abs(bias) > limits['product_high_priority_bias']:
            priority = RecommendationPriority.HIGH
        else:
            priority = RecommendationPriority.NORMAL

        recommendations.append(Recommendation(
            category='product',
            target=product.name,
            issue=issue,
            suggestion=suggestion,
            priority=priority
        ))

    for day in result.weekday_accuracy:
        if day.sample_size < min_samples or day.accuracy >= limits['day_accuracy_threshold']:
            continue

        recommendations.append(Recommendation(
            category='day',
            target=day.name,
            issue=f"Accuracy {day.accuracy:.0f}%",
            suggestion=f"Review the sales pattern for {day.name}",
            priority=RecommendationPriority.NORMAL
        ))

    return recommendations
