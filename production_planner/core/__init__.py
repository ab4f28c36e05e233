from .distribution import (
    DemandDistribution, PoissonDistribution, NegativeBinomialDistribution,
    select_distribution_type, build_distribution
)
from .baseline import select_item_history, estimate_baseline, determine_confidence
from .exogenous import (
    get_weather_factor, build_calendar_context, get_upcoming_events, apply_exogenous_factors,
    LearnedFactors, learn_seasonality_factors, measure_weather_impact
)
from .bias_correction import (
    BiasCorrector, update_bias_state, calculate_momentum, is_high_volatility
)
from .newsvendor import critical_fractile, optimize_production
from .accuracy import resolve_actual_sales, analyze_accuracy
from .recommendations import generate_recommendations
from .learning import detect_patterns, learning_stats

__all__ = [
    'DemandDistribution',
    'PoissonDistribution',
    'NegativeBinomialDistribution',
    'select_distribution_type',
    'build_distribution',
    'select_item_history',
    'estimate_baseline',
    'determine_confidence',
    'get_weather_factor',
    'build_calendar_context',
    'get_upcoming_events',
    'apply_exogenous_factors',
    'LearnedFactors',
    'learn_seasonality_factors',
    'measure_weather_impact',
    'BiasCorrector',
    'update_bias_state',
    'calculate_momentum',
    'is_high_volatility',
    'critical_fractile',
    'optimize_production',
    'resolve_actual_sales',
    'analyze_accuracy',
    'generate_recommendations',
    'detect_patterns',
    'learning_stats'
]
