# production_planner/core/newsvendor.py
import logging
from dataclasses import dataclass

import numpy as np

from production_planner.core.distribution import DemandDistribution
from production_planner.exceptions import OptimizationError
from production_planner.models import Economics, PredictionInterval
from production_planner.utils.math_utils import clamp_probability, safe_divide

logger = logging.getLogger(__name__)

@dataclass(frozen=True)
class NewsvendorResult:
    optimal_quantity: int
    service_level_target: float
    stockout_probability: float
    waste_probability: float
    prediction_interval: PredictionInterval
    economics: Economics

    @property
    def expected_profit(self) -> float:
        return self.economics.expected_profit

def critical_fractile(price: float, cost: float, disposal_cost: float = 0.0) -> float:
    """Calculate the newsvendor critical fractile.

    Underage cost is the lost margin, overage cost is the unit cost plus
    any disposal cost: f* = margin / (margin + cost + disposal_cost).

    Args:
        price: Unit selling price
        cost: Unit production cost
        disposal_cost: Cost of disposing one unsold unit

    Returns:
        Target service level in [0, 1]; 0 when the margin is not positive
    """
    margin = price - cost
    if margin <= 0:
        return 0.0

    return clamp_probability(safe_divide(margin, margin + cost + disposal_cost))

def expected_sales(distribution: DemandDistribution, quantity: int) -> float:
    """Expected units sold, E[min(demand, quantity)].

    Sums over the truncated support and counts the remaining tail mass
    as selling the full quantity.
    """
    if quantity <= 0:
        return 0.0

    pmf = distribution.pmf_array()
    support = np.arange(len(pmf))
    in_support = float(np.sum(pmf * np.minimum(support, quantity)))
    tail = max(0.0, 1.0 - float(np.sum(pmf)))

    return min(float(quantity), in_support + tail * quantity)

def optimize_production(
    distribution: DemandDistribution,
    price: float,
    cost: float,
    disposal_cost: float = 0.0,
    interval_lower: float = 0.05,
    interval_upper: float = 0.95
) -> NewsvendorResult:
    """Pick the production quantity that minimizes expected cost.

    Args:
        distribution: Demand distribution at the final lambda
        price: Unit selling price
        cost: Unit production cost
        disposal_cost: Cost of disposing one unsold unit
        interval_lower: Lower tail percentile of the prediction interval
        interval_upper: Upper tail percentile of the prediction interval

    Returns:
        NewsvendorResult with quantity, probabilities, interval and economics
    """
    if price is None or cost is None or price < 0 or cost < 0:
        raise OptimizationError(
            "Price and cost must be non-negative",
            details={'price': price, 'cost': cost}
        )

    if not 0.0 <= interval_lower <= interval_upper <= 1.0:
        raise OptimizationError(
            "Invalid prediction interval percentiles",
            details={'lower': interval_lower, 'upper': interval_upper}
        )

    margin = price - cost
    target = critical_fractile(price, cost, disposal_cost)

    if margin <= 0:
        logger.warning(f"Non-positive margin ({margin:.2f}), production floored at 0")
        quantity = 0
    else:
        quantity = max(0, distribution.quantile(target))

    cdf_q = distribution.cdf(quantity)
    stockout = clamp_probability(1.0 - cdf_q)
    waste = clamp_probability(cdf_q - distribution.pmf(quantity))

    lower = min(distribution.quantile(interval_lower), quantity)
    upper = max(distribution.quantile(interval_upper), quantity)

    sales = expected_sales(distribution, quantity)
    leftover = max(0.0, quantity - sales)

    economics = Economics(
        unit_price=price,
        unit_cost=cost,
        expected_demand=distribution.mean,
        expected_sales=sales,
        expected_waste=leftover,
        expected_revenue=sales * price,
        expected_cost=quantity * cost + leftover * disposal_cost,
        expected_profit=sales * margin - leftover * (cost + disposal_cost)
    )

    return NewsvendorResult(
        optimal_quantity=int(quantity),
        service_level_target=target,
        stockout_probability=stockout,
        waste_probability=waste,
        prediction_interval=PredictionInterval(int(lower), int(upper)),
        economics=economics
    )
