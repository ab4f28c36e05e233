# production_planner/services/accuracy_service.py
from dataclasses import replace
from typing import Dict, Iterable, Optional

from production_planner.config import config
from production_planner.core.accuracy import analyze_accuracy
from production_planner.core.bias_correction import update_bias_state
from production_planner.core.learning import learning_stats
from production_planner.core.recommendations import generate_recommendations
from production_planner.exceptions import AccuracyError
from production_planner.logging_setup import get_logger
from production_planner.models import (
    AccuracyAnalysisResult, BiasState, ForecastRecord, Product, SalesRecord, item_key
)

# Set up logging
logger = get_logger(__name__)

class AccuracyService:
    """Service for scoring past forecasts against realized sales."""

    def __init__(self):
        self.accuracy_settings = config.accuracy_config
        self.bias_settings = config.bias_config

    def analyze(
        self,
        forecasts: Iterable[ForecastRecord],
        sales: Iterable[SalesRecord],
        catalog: Iterable[Product]
    ) -> AccuracyAnalysisResult:
        """Analyze forecast accuracy and attach recommendations.

        Args:
            forecasts: Persisted forecast records
            sales: Realized sales records
            catalog: Product catalog

        Returns:
            AccuracyAnalysisResult with recommendations and learning stats
        """
        try:
            result = analyze_accuracy(forecasts, sales, catalog)
        except (TypeError, AttributeError) as e:
            raise AccuracyError(f"Error analyzing forecast accuracy: {str(e)}")

        recommendations = generate_recommendations(result, self.accuracy_settings)
        learning = learning_stats(result.comparisons)

        summary = result.summary
        logger.info(
            f"Analyzed {summary.total_forecasts} forecasts over {summary.total_days} days: "
            f"{summary.matched_forecasts} matched, accuracy {summary.overall_accuracy:.1f}%, "
            f"{len(recommendations)} recommendations"
        )
        for pattern in learning.patterns:
            logger.info(f"Pattern for {pattern.product_id}: {pattern.description}")

        return replace(result, recommendations=tuple(recommendations), learning=learning)

    def update_bias_states(
        self,
        result: AccuracyAnalysisResult,
        bias_states: Optional[Dict[str, BiasState]] = None
    ) -> Dict[str, BiasState]:
        """Feed matched forecast errors back into per-item bias states.

        Comparisons are applied in date order.

        Args:
            result: Accuracy analysis result
            bias_states: Current bias state per item key

        Returns:
            New mapping of item key to bias state; the input is not modified
        """
        states = dict(bias_states or {})
        settings = {k: v for k, v in self.bias_settings.items() if k != 'min_observations'}

        for comparison in sorted(result.comparisons, key=lambda c: c.date):
            if not comparison.matched:
                continue

            key = item_key(comparison.product_id, comparison.market_id, comparison.variant_id)
            states[key] = update_bias_state(states.get(key), comparison.diff, **settings)

        return states
