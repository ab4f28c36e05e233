# production_planner/services/forecast_service.py
from concurrent.futures import ThreadPoolExecutor
from datetime import date, timedelta
from typing import Callable, Dict, List, Optional, Sequence

from production_planner.config import config
from production_planner.core.baseline import DailyObservation, estimate_baseline, select_item_history
from production_planner.core.bias_correction import (
    BiasCorrector, calculate_momentum, is_high_volatility, momentum_adjustment
)
from production_planner.core.distribution import build_distribution
from production_planner.core.exogenous import (
    LearnedFactors, apply_exogenous_factors, build_calendar_context, learn_seasonality_factors
)
from production_planner.core.newsvendor import optimize_production
from production_planner.exceptions import (
    CalculationError, DistributionError, ForecastError, OptimizationError
)
from production_planner.logging_setup import get_logger
from production_planner.models import (
    Adjustment, BiasState, CalendarContext, ForecastOutput, ForecastRequest,
    Product, SalesRecord, WeatherSignal, item_key
)
from production_planner.services.sales_repository import SalesRepository
from production_planner.utils.validation import ensure_valid_request

# Set up logging
logger = get_logger(__name__)

WeatherProvider = Callable[[date, str], Optional[WeatherSignal]]

class ForecastService:
    """Service for computing production forecasts."""

    def __init__(
        self,
        sales_repository: Optional[SalesRepository] = None,
        weather_provider: Optional[WeatherProvider] = None
    ):
        """Initialize the forecast service.

        Args:
            sales_repository: Source of history when a request carries none
            weather_provider: Callable returning the weather for a date and market
        """
        self.sales_repository = sales_repository
        self.weather_provider = weather_provider

        self.forecasting_settings = config.forecasting_config
        self.confidence_settings = config.confidence_config
        self.weather_factors = config.weather_factors
        self.calendar_settings = config.calendar_config
        self.seasonality_factors = config.seasonality_factors
        self.learning_settings = config.learning_config
        self.bias_settings = config.bias_config
        self.newsvendor_settings = config.newsvendor_config

    def get_sales_history(self, request: ForecastRequest) -> Sequence[SalesRecord]:
        """Get the sales history for a request.

        History on the request wins; otherwise the repository is queried
        for the configured window before the target date.
        """
        if request.sales_history or self.sales_repository is None:
            return request.sales_history

        start = request.target_date - timedelta(days=self.forecasting_settings['max_history_days'])
        end = request.target_date - timedelta(days=1)
        return self.sales_repository.get_sales(
            request.product_id, request.market_id, request.variant_id, start, end
        )

    def get_weather(self, request: ForecastRequest) -> Optional[WeatherSignal]:
        """Get the weather for a request, never failing the forecast."""
        if request.weather_signal is not None or self.weather_provider is None:
            return request.weather_signal

        try:
            return self.weather_provider(request.target_date, request.market_id)
        except Exception as e:
            logger.warning(
                f"Weather lookup failed for market {request.market_id} on "
                f"{request.target_date}, using neutral factor: {str(e)}"
            )
            return None

    def get_calendar_context(self, request: ForecastRequest) -> CalendarContext:
        if request.calendar_context is not None:
            return request.calendar_context

        return build_calendar_context(
            request.target_date,
            payday_start_day=self.calendar_settings['payday_start_day'],
            payday_end_day=self.calendar_settings['payday_end_day'],
            near_event_days=self.calendar_settings['near_event_days'],
            near_event_weight=self.calendar_settings['near_event_weight'],
            seasonality_factors=self.seasonality_factors
        )

    def learn_factors(self, history: Sequence[DailyObservation]) -> Optional[LearnedFactors]:
        """Learn weekday, weather and payday factors from item history.

        Returns None when learning is disabled in the LEARNING section.
        """
        settings = self.learning_settings
        if not settings['enabled']:
            return None

        return learn_seasonality_factors(
            history,
            window_days=settings['window_days'],
            min_days=settings['min_days'],
            min_window_points=settings['min_window_points'],
            payday_start_day=self.calendar_settings['payday_start_day'],
            payday_end_day=self.calendar_settings['payday_end_day'],
            min_payday_samples=settings['min_payday_samples'],
            min_weather_samples=settings['min_weather_samples']
        )

    def calculate_forecast(
        self,
        request: ForecastRequest,
        bias_state: Optional[BiasState] = None
    ) -> ForecastOutput:
        """Calculate the production forecast for one item, market and date.

        Args:
            request: Forecast request
            bias_state: Stored bias state for the item, if any

        Returns:
            ForecastOutput; no_data is set when there is no usable history

        Raises:
            ValidationError: If the request or product is malformed
            ForecastError: If the demand model cannot be evaluated
        """
        ensure_valid_request(request)

        settings = self.forecasting_settings
        price, cost = request.product.unit_economics(request.variant_id)

        history = select_item_history(
            self.get_sales_history(request),
            request.product_id,
            request.market_id,
            request.target_date,
            variant_id=request.variant_id,
            max_history_days=settings['max_history_days']
        )

        baseline = estimate_baseline(
            history,
            request.target_date,
            min_same_day_samples=settings['min_same_day_samples'],
            outlier_method=settings['outlier_method'],
            iqr_multiplier=settings['iqr_multiplier'],
            zscore_threshold=settings['zscore_threshold'],
            dispersion_threshold=settings['dispersion_threshold'],
            high_same_day_points=self.confidence_settings['high_same_day_points'],
            medium_total_points=self.confidence_settings['medium_total_points']
        )

        if baseline.no_data:
            logger.info(
                f"No sales history for {item_key(request.product_id, request.market_id, request.variant_id)}"
            )
            return ForecastOutput.empty(price, cost, baseline.outliers_removed)

        learned = self.learn_factors(history)
        exogenous = apply_exogenous_factors(
            baseline.baseline_forecast,
            self.get_weather(request),
            self.get_calendar_context(request),
            weather_factors=self.weather_factors,
            payday_factor=self.calendar_settings['payday_factor'],
            learned=learned,
            min_learned_confidence=self.learning_settings['min_confidence'],
            # Same-weekday baselines already carry the weekday effect
            apply_weekday=not baseline.used_same_day
        )
        adjustments = list(exogenous.adjustments)

        # Trend over the most recent retained observations
        momentum = calculate_momentum(baseline.retained_values, settings['momentum_window'])
        trend_change = momentum_adjustment(
            momentum, settings['momentum_threshold'], settings['momentum_strength']
        )
        lam = max(0.0, exogenous.adjusted_forecast + trend_change)
        if trend_change:
            adjustments.append(Adjustment('momentum', trend_change, 'additive'))

        corrector = BiasCorrector.from_config(self.bias_settings, bias_state)
        bias_correction = corrector.correction
        if bias_correction:
            lam = corrector.apply(lam)
            adjustments.append(Adjustment('bias', bias_correction, 'additive'))

        volatile = is_high_volatility(baseline.sample_values, settings['volatility_cv_threshold'])
        nv_settings = self.newsvendor_settings
        if volatile:
            lower, upper = nv_settings['volatile_interval_lower'], nv_settings['volatile_interval_upper']
        else:
            lower, upper = nv_settings['interval_lower'], nv_settings['interval_upper']

        try:
            distribution = build_distribution(
                baseline.distribution_type,
                lam,
                baseline.dispersion_ratio,
                max_r=settings['max_negative_binomial_r']
            )
            result = optimize_production(
                distribution,
                price,
                cost,
                disposal_cost=nv_settings['disposal_cost'],
                interval_lower=lower,
                interval_upper=upper
            )
        except (DistributionError, OptimizationError, CalculationError) as e:
            raise ForecastError(
                f"Error optimizing production for product {request.product_id}: {str(e)}",
                details={'lambda': lam, 'price': price, 'cost': cost}
            )

        return ForecastOutput(
            baseline_forecast=baseline.baseline_forecast,
            weather_adjusted_forecast=exogenous.weather_adjusted_forecast,
            lambda_value=lam,
            distribution_type=distribution.distribution_type,
            variance=distribution.variance,
            optimal_quantity=result.optimal_quantity,
            stockout_probability=result.stockout_probability,
            waste_probability=result.waste_probability,
            prediction_interval=result.prediction_interval,
            confidence_level=baseline.confidence_level,
            data_points=baseline.data_points,
            same_day_data_points=baseline.same_day_data_points,
            outliers_removed=baseline.outliers_removed,
            service_level_target=result.service_level_target,
            momentum_trend=momentum,
            is_high_volatility=volatile,
            no_data=False,
            expected_profit=result.expected_profit,
            economics=result.economics,
            weather_factor=exogenous.weather_factor,
            calendar_factor=exogenous.calendar_factor,
            bias_correction=bias_correction,
            seasonality_confidence=learned.confidence if learned is not None else 0.0,
            adjustments=tuple(adjustments)
        )

    def _calculate_item(
        self,
        request: ForecastRequest,
        bias_states: Dict[str, BiasState]
    ) -> ForecastOutput:
        key = item_key(request.product_id, request.market_id, request.variant_id)
        try:
            return self.calculate_forecast(request, bias_states.get(key))
        except Exception as e:
            logger.error(f"Error forecasting {key} for {request.target_date}: {str(e)}")
            price, cost = 0.0, 0.0
            if isinstance(request.product, Product):
                price, cost = request.product.unit_economics(request.variant_id)
            return ForecastOutput.empty(price, cost, error=str(e))

    def calculate_batch(
        self,
        requests: Sequence[ForecastRequest],
        bias_states: Optional[Dict[str, BiasState]] = None,
        max_workers: Optional[int] = None
    ) -> List[ForecastOutput]:
        """Calculate forecasts for many items.

        A failing item never aborts the batch: its output is a no-data
        result carrying the error message.

        Args:
            requests: Forecast requests
            bias_states: Bias state per item key
            max_workers: Worker threads; 1 runs sequentially

        Returns:
            Outputs in the same order as the requests
        """
        bias_states = bias_states or {}
        workers = max_workers or config.batch_config['max_workers']

        if workers <= 1 or len(requests) <= 1:
            return [self._calculate_item(request, bias_states) for request in requests]

        with ThreadPoolExecutor(max_workers=workers) as executor:
            return list(executor.map(lambda r: self._calculate_item(r, bias_states), requests))
