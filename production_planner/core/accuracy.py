# production_planner/core/accuracy.py
from collections import OrderedDict
from typing import Callable, Dict, Iterable, List, Optional, Sequence, Tuple

from production_planner.models import (
    AccuracyAnalysisResult, AccuracyComparison, AccuracySummary, DailyAccuracy,
    ForecastRecord, GroupAccuracy, Product, SalesRecord
)
from production_planner.utils.date_utils import weekday_name
from production_planner.utils.math_utils import safe_divide

# Match rules in order of precedence
MATCH_BY_PRODUCT_ID = 'product_id'
MATCH_BY_VARIANT_ID = 'variant_id'
MATCH_BY_PRODUCT_NAME = 'product_name'

def resolve_actual_sales(
    forecast: ForecastRecord,
    sales: Iterable[SalesRecord]
) -> Tuple[List[SalesRecord], Optional[str]]:
    """Find the sales that realized a forecast.

    Sales are first limited to the forecast date and, when the forecast
    names one, its market. Rules are then tried in order and the first
    that matches anything wins:

    1. product_id equality (and the same variant when the forecast has one)
    2. variant_id equality with the forecast's variant, or its product_id
       when the forecast was made for a variant under that ID
    3. exact product_name equality

    Args:
        forecast: Forecast record
        sales: Candidate sales records

    Returns:
        Tuple with the matched sales and the rule name, or ([], None)
    """
    candidates = [
        s for s in sales
        if s.sale_date == forecast.forecast_for_date
        and (not forecast.market_id or s.market_id == forecast.market_id)
    ]

    by_product = [
        s for s in candidates
        if s.product_id == forecast.product_id
        and (not forecast.variant_id or s.variant_id == forecast.variant_id)
    ]
    if by_product:
        return by_product, MATCH_BY_PRODUCT_ID

    variant_key = forecast.variant_id or forecast.product_id
    by_variant = [s for s in candidates if s.variant_id and s.variant_id == variant_key]
    if by_variant:
        return by_variant, MATCH_BY_VARIANT_ID

    if forecast.product_name:
        by_name = [s for s in candidates if s.product_name == forecast.product_name]
        if by_name:
            return by_name, MATCH_BY_PRODUCT_NAME

    return [], None

def record_accuracy(forecast_qty: int, actual_qty: int) -> float:
    """Accuracy percentage of a single forecast.

    100 for an exact zero forecast of zero demand; 0 for any other
    forecast against zero demand.
    """
    if actual_qty > 0:
        return max(0.0, 1.0 - abs(actual_qty - forecast_qty) / actual_qty) * 100.0
    return 100.0 if forecast_qty == 0 else 0.0

def totals_accuracy(total_forecast: float, total_actual: float) -> float:
    """Accuracy percentage of summed quantities, 0 when nothing sold."""
    if total_actual <= 0:
        return 0.0
    return max(0.0, 1.0 - abs(total_forecast - total_actual) / total_actual) * 100.0

def lookup_unit_economics(
    forecast: ForecastRecord,
    catalog: Dict[str, Product],
    matched: Sequence[SalesRecord] = ()
) -> Tuple[float, float]:
    """Get (price, cost) for a forecast from the catalog or its sales.

    Args:
        forecast: Forecast record
        catalog: Products keyed by ID
        matched: Sales matched to the forecast, used when the catalog has no entry

    Returns:
        Tuple with unit price and unit cost
    """
    product = catalog.get(forecast.product_id)
    if product is not None:
        return product.unit_economics(forecast.variant_id)

    # Forecasts made for a variant may carry the variant ID as product ID
    for candidate in catalog.values():
        variant = candidate.get_variant(forecast.product_id)
        if variant is not None:
            return variant.price, variant.cost

    if matched:
        return matched[0].price, matched[0].cost

    return 0.0, 0.0

def compare_forecast(
    forecast: ForecastRecord,
    sales: Iterable[SalesRecord],
    catalog: Dict[str, Product]
) -> AccuracyComparison:
    """Compare one forecast with the sales that realized it."""
    matched, rule = resolve_actual_sales(forecast, sales)
    actual = sum(max(0, s.quantity_sold) for s in matched)
    forecast_qty = max(0, forecast.optimal_quantity)

    price, cost = lookup_unit_economics(forecast, catalog, matched)
    margin = max(0.0, price - cost)

    market_name = forecast.market_name
    if not market_name and matched:
        market_name = matched[0].market_name or ''

    weather = forecast.weather_condition or next(
        (s.weather_condition for s in matched if s.weather_condition), None
    )

    return AccuracyComparison(
        date=forecast.forecast_for_date,
        product_id=forecast.product_id,
        product_name=forecast.product_name,
        market_id=forecast.market_id,
        market_name=market_name,
        forecast_qty=forecast_qty,
        actual_qty=actual,
        diff=actual - forecast_qty,
        waste_cost=max(0, forecast_qty - actual) * cost,
        stockout_revenue=max(0, actual - forecast_qty) * margin,
        accuracy=record_accuracy(forecast_qty, actual),
        matched=rule is not None,
        match_rule=rule,
        variant_id=forecast.variant_id,
        weather_condition=weather
    )

def group_accuracy(key: str, name: str, comparisons: Sequence[AccuracyComparison]) -> GroupAccuracy:
    """Aggregate matched comparisons of one bucket.

    Accuracy averages records with actual sales; bias percent is the
    summed error over the summed actual quantity.
    """
    matched = [c for c in comparisons if c.matched]
    valid = [c for c in matched if c.actual_qty > 0]
    total_diff = sum(c.diff for c in matched)
    total_actual = sum(c.actual_qty for c in valid)

    return GroupAccuracy(
        key=key,
        name=name,
        accuracy=safe_divide(sum(c.accuracy for c in valid), len(valid)),
        sample_size=len(valid),
        total_forecasts=len(matched),
        avg_bias=safe_divide(total_diff, len(matched)),
        bias_percent=safe_divide(total_diff, total_actual) * 100.0,
        waste_qty=sum(c.waste_qty for c in matched),
        stockout_qty=sum(c.stockout_qty for c in matched),
        waste_cost=sum(c.waste_cost for c in matched),
        stockout_revenue=sum(c.stockout_revenue for c in matched)
    )

def _bucket(
    comparisons: Sequence[AccuracyComparison],
    key_fn: Callable[[AccuracyComparison], str],
    name_fn: Callable[[AccuracyComparison], str]
) -> List[GroupAccuracy]:
    buckets = OrderedDict()
    names = {}
    for comparison in comparisons:
        key = key_fn(comparison)
        buckets.setdefault(key, []).append(comparison)
        names.setdefault(key, name_fn(comparison))

    groups = [group_accuracy(key, names[key], items) for key, items in buckets.items()]
    groups.sort(key=lambda g: g.accuracy, reverse=True)
    return groups

def daily_accuracy(comparisons: Sequence[AccuracyComparison]) -> List[DailyAccuracy]:
    """Per-day accuracy of summed matched quantities, in date order."""
    by_date = OrderedDict()
    for comparison in sorted(comparisons, key=lambda c: c.date):
        by_date.setdefault(comparison.date, []).append(comparison)

    days = []
    for day, items in by_date.items():
        matched = [c for c in items if c.matched]
        total_forecast = sum(c.forecast_qty for c in matched)
        total_actual = sum(c.actual_qty for c in matched)

        days.append(DailyAccuracy(
            date=day,
            total_forecast_qty=total_forecast,
            total_actual_qty=total_actual,
            accuracy=totals_accuracy(total_forecast, total_actual),
            bias_percent=safe_divide(total_actual - total_forecast, total_actual) * 100.0,
            forecast_count=len(items),
            match_count=len(matched),
            sample_size=len([c for c in matched if c.actual_qty > 0])
        ))
    return days

def weekday_accuracy(comparisons: Sequence[AccuracyComparison]) -> List[GroupAccuracy]:
    """Accuracy for each of the seven weekdays, Monday first."""
    return [
        group_accuracy(str(day), weekday_name(day), [c for c in comparisons if c.weekday == day])
        for day in range(7)
    ]

def summarize(
    comparisons: Sequence[AccuracyComparison],
    daily: Sequence[DailyAccuracy]
) -> AccuracySummary:
    overall = group_accuracy('all', 'All', comparisons)

    return AccuracySummary(
        total_days=len(daily),
        days_with_data=len([d for d in daily if d.sample_size > 0]),
        overall_accuracy=overall.accuracy,
        overall_bias_percent=overall.bias_percent,
        total_forecasts=len(comparisons),
        matched_forecasts=overall.total_forecasts,
        total_waste_qty=overall.waste_qty,
        total_stockout_qty=overall.stockout_qty,
        total_waste_cost=overall.waste_cost,
        total_stockout_revenue=overall.stockout_revenue
    )

def analyze_accuracy(
    forecasts: Iterable[ForecastRecord],
    sales: Iterable[SalesRecord],
    catalog: Iterable[Product]
) -> AccuracyAnalysisResult:
    """Join forecasts with realized sales and aggregate their accuracy.

    Unmatched forecasts stay in the raw comparisons with an actual
    quantity of 0 and are left out of every aggregate.

    Args:
        forecasts: Persisted forecast records
        sales: Realized sales records
        catalog: Products used for unit economics

    Returns:
        AccuracyAnalysisResult without recommendations
    """
    sales = list(sales)
    products = {product.id: product for product in catalog}
    comparisons = [compare_forecast(f, sales, products) for f in forecasts]

    daily = daily_accuracy(comparisons)

    return AccuracyAnalysisResult(
        summary=summarize(comparisons, daily),
        daily=tuple(daily),
        weekday_accuracy=tuple(weekday_accuracy(comparisons)),
        product_accuracy=tuple(_bucket(
            comparisons,
            lambda c: c.product_id,
            lambda c: c.product_name or c.product_id
        )),
        market_accuracy=tuple(_bucket(
            comparisons,
            lambda c: c.market_id or 'all',
            lambda c: c.market_name or c.market_id or 'All markets'
        )),
        comparisons=tuple(comparisons)
    )
