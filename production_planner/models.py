# production_planner/models.py
import enum
from dataclasses import dataclass, field, asdict
from datetime import date
from typing import Dict, List, Optional, Tuple

from production_planner.exceptions import ValidationError
from production_planner.utils.date_utils import convert_to_date

class WeatherCondition(enum.Enum):
    """Weather conditions reported by the weather collaborator."""
    SUNNY = 'sunny'
    CLOUDY = 'cloudy'
    RAIN = 'rain'
    STORM = 'storm'
    WIND = 'wind'
    COLD = 'cold'

    def __str__(self):
        """Return the string value of the enum."""
        return self.value

    @classmethod
    def from_string(cls, value: str) -> 'WeatherCondition':
        """Create a WeatherCondition from a string value.

        Raises:
            ValueError if the string value is not valid
        """
        try:
            return cls(value.strip().lower())
        except ValueError:
            valid = ', '.join(c.value for c in cls)
            raise ValueError(f"Invalid weather condition: {value}. Valid values are: {valid}")

class DistributionType(enum.Enum):
    POISSON = 'poisson'
    NEGATIVE_BINOMIAL = 'negativeBinomial'

    def __str__(self):
        return self.value

class ConfidenceLevel(enum.Enum):
    """Confidence in a forecast, driven by how much history backs it.

    Values:
        NONE: no history at all, the forecast carries no recommendation
        LOW: fewer than the medium cut-off of total points
        MEDIUM: enough total points or some same-weekday points
        HIGH: enough same-weekday points
    """
    NONE = 'none'
    LOW = 'low'
    MEDIUM = 'medium'
    HIGH = 'high'

    def __str__(self):
        return self.value

class RecommendationPriority(enum.Enum):
    HIGH = 'high'
    NORMAL = 'normal'

    def __str__(self):
        return self.value

def _plain(value):
    """Convert enums and dates to JSON friendly values."""
    if isinstance(value, enum.Enum):
        return value.value
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, dict):
        return {k: _plain(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_plain(v) for v in value]
    return value

@dataclass(frozen=True)
class SalesRecord:
    """One immutable day of sales for a product (or variant) at a market."""
    sale_date: date
    product_id: str
    market_id: str
    quantity_sold: int
    price: float = 0.0
    cost: float = 0.0
    variant_id: Optional[str] = None
    product_name: Optional[str] = None
    market_name: Optional[str] = None
    weather_condition: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict) -> 'SalesRecord':
        """Parse a sales row.

        Raises:
            ValidationError: If a field is missing or malformed, or the quantity is negative
        """
        try:
            record = cls(
                sale_date=convert_to_date(data['sale_date']),
                product_id=str(data['product_id']),
                market_id=str(data.get('market_id') or ''),
                quantity_sold=int(data.get('quantity_sold', 0)),
                price=float(data.get('price', 0.0)),
                cost=float(data.get('cost', 0.0)),
                variant_id=data.get('variant_id'),
                product_name=data.get('product_name'),
                market_name=data.get('market_name'),
                weather_condition=str(data['weather_condition']).strip().lower() if data.get('weather_condition') else None
            )
        except (KeyError, TypeError, ValueError) as e:
            raise ValidationError(f"Invalid sales record: {str(e)}")

        if record.quantity_sold < 0:
            raise ValidationError(
                f"Negative quantity sold for product {record.product_id} on {record.sale_date}",
                details={'quantity_sold': record.quantity_sold}
            )
        return record

    def to_dict(self) -> Dict:
        return _plain(asdict(self))

@dataclass(frozen=True)
class Variant:
    id: str
    name: str
    price: float
    cost: float

@dataclass(frozen=True)
class Product:
    """Read-only catalog entry."""
    id: str
    name: str
    price: float
    cost: float
    variants: Tuple[Variant, ...] = ()

    def get_variant(self, variant_id: Optional[str]) -> Optional[Variant]:
        if not variant_id:
            return None
        for variant in self.variants:
            if variant.id == variant_id:
                return variant
        return None

    def unit_economics(self, variant_id: Optional[str] = None) -> Tuple[float, float]:
        """Get (price, cost) for the product or one of its variants.

        Args:
            variant_id: Optional variant ID

        Returns:
            Tuple of unit price and unit cost
        """
        variant = self.get_variant(variant_id)
        if variant is not None:
            return variant.price, variant.cost
        return self.price, self.cost

    @classmethod
    def from_dict(cls, data: Dict) -> 'Product':
        variants = tuple(
            Variant(
                id=str(v['id']),
                name=v.get('name', ''),
                price=float(v.get('price', 0.0)),
                cost=float(v.get('cost', 0.0))
            )
            for v in data.get('variants') or []
        )
        return cls(
            id=str(data['id']),
            name=data.get('name', ''),
            price=float(data.get('price', 0.0)),
            cost=float(data.get('cost', 0.0)),
            variants=variants
        )

    def to_dict(self) -> Dict:
        return _plain(asdict(self))

@dataclass(frozen=True)
class WeatherSignal:
    """Weather for a target date; factor overrides the configured multiplier."""
    date: date
    condition: WeatherCondition
    factor: Optional[float] = None

    @classmethod
    def from_dict(cls, data: Dict) -> 'WeatherSignal':
        factor = data.get('factor')
        return cls(
            date=convert_to_date(data['date']),
            condition=WeatherCondition.from_string(data['condition']),
            factor=float(factor) if factor is not None else None
        )

@dataclass(frozen=True)
class CalendarEvent:
    date: date
    name: str
    demand_factor: float
    event_type: str = 'holiday'

@dataclass(frozen=True)
class CalendarContext:
    target_date: date
    is_payday: bool = False
    event: Optional[CalendarEvent] = None
    seasonality_factor: float = 1.0

@dataclass(frozen=True)
class Adjustment:
    """A named change applied to the demand mean."""
    source: str
    magnitude: float
    kind: str = 'multiplier'  # multiplier | additive

@dataclass(frozen=True)
class PredictionInterval:
    lower: int
    upper: int

@dataclass(frozen=True)
class Economics:
    unit_price: float = 0.0
    unit_cost: float = 0.0
    expected_demand: float = 0.0
    expected_sales: float = 0.0
    expected_waste: float = 0.0
    expected_revenue: float = 0.0
    expected_cost: float = 0.0
    expected_profit: float = 0.0

@dataclass(frozen=True)
class ForecastOutput:
    """Result of one forecast computation, never mutated after construction."""
    baseline_forecast: float
    weather_adjusted_forecast: float
    lambda_value: float
    distribution_type: DistributionType
    variance: float
    optimal_quantity: int
    stockout_probability: float
    waste_probability: float
    prediction_interval: PredictionInterval
    confidence_level: ConfidenceLevel
    data_points: int
    same_day_data_points: int
    outliers_removed: int
    service_level_target: float
    momentum_trend: float
    is_high_volatility: bool
    no_data: bool
    expected_profit: float
    economics: Economics = field(default_factory=Economics)
    weather_factor: float = 1.0
    calendar_factor: float = 1.0
    bias_correction: float = 0.0
    seasonality_confidence: float = 0.0
    adjustments: Tuple[Adjustment, ...] = ()
    error: Optional[str] = None

    @classmethod
    def empty(cls, unit_price: float = 0.0, unit_cost: float = 0.0,
              outliers_removed: int = 0, error: Optional[str] = None) -> 'ForecastOutput':
        """Build the no-data result: no recommendation, confidence none."""
        return cls(
            baseline_forecast=0.0,
            weather_adjusted_forecast=0.0,
            lambda_value=0.0,
            distribution_type=DistributionType.POISSON,
            variance=0.0,
            optimal_quantity=0,
            stockout_probability=0.0,
            waste_probability=0.0,
            prediction_interval=PredictionInterval(0, 0),
            confidence_level=ConfidenceLevel.NONE,
            data_points=0,
            same_day_data_points=0,
            outliers_removed=outliers_removed,
            service_level_target=0.0,
            momentum_trend=0.0,
            is_high_volatility=False,
            no_data=True,
            expected_profit=0.0,
            economics=Economics(unit_price=unit_price, unit_cost=unit_cost),
            error=error
        )

    def to_dict(self) -> Dict:
        return _plain(asdict(self))

@dataclass(frozen=True)
class ForecastRequest:
    product_id: str
    market_id: str
    target_date: date
    product: Product
    sales_history: Tuple[SalesRecord, ...] = ()
    variant_id: Optional[str] = None
    weather_signal: Optional[WeatherSignal] = None
    calendar_context: Optional[CalendarContext] = None

@dataclass(frozen=True)
class ForecastRecord:
    """A persisted forecast tagged with what it was made for."""
    forecast_for_date: date
    product_id: str
    market_id: str
    optimal_quantity: int
    product_name: str = ''
    market_name: str = ''
    variant_id: Optional[str] = None
    weather_condition: Optional[str] = None

    @classmethod
    def from_output(cls, output: ForecastOutput, request: ForecastRequest,
                    market_name: str = '') -> 'ForecastRecord':
        product = request.product
        variant = product.get_variant(request.variant_id)
        weather = request.weather_signal
        return cls(
            forecast_for_date=request.target_date,
            product_id=request.product_id,
            market_id=request.market_id,
            optimal_quantity=output.optimal_quantity,
            product_name=variant.name if variant else product.name,
            market_name=market_name,
            variant_id=request.variant_id,
            weather_condition=weather.condition.value if weather else None
        )

    @classmethod
    def from_dict(cls, data: Dict) -> 'ForecastRecord':
        return cls(
            forecast_for_date=convert_to_date(data['forecast_for_date']),
            product_id=str(data['product_id']),
            market_id=str(data.get('market_id') or ''),
            optimal_quantity=int(data.get('optimal_quantity', 0)),
            product_name=data.get('product_name') or '',
            market_name=data.get('market_name') or '',
            variant_id=data.get('variant_id'),
            weather_condition=data.get('weather_condition')
        )

    def to_dict(self) -> Dict:
        return _plain(asdict(self))

@dataclass(frozen=True)
class AccuracyComparison:
    date: date
    product_id: str
    product_name: str
    market_id: str
    market_name: str
    forecast_qty: int
    actual_qty: int
    diff: int
    waste_cost: float
    stockout_revenue: float
    accuracy: float
    matched: bool
    match_rule: Optional[str] = None
    variant_id: Optional[str] = None
    weather_condition: Optional[str] = None

    @property
    def weekday(self) -> int:
        return self.date.weekday()

    @property
    def waste_qty(self) -> int:
        return max(0, self.forecast_qty - self.actual_qty)

    @property
    def stockout_qty(self) -> int:
        return max(0, self.actual_qty - self.forecast_qty)

@dataclass(frozen=True)
class DailyAccuracy:
    date: date
    total_forecast_qty: int
    total_actual_qty: int
    accuracy: float
    bias_percent: float
    forecast_count: int
    match_count: int
    sample_size: int

@dataclass(frozen=True)
class GroupAccuracy:
    """Accuracy for one weekday, product or market bucket."""
    key: str
    name: str
    accuracy: float
    sample_size: int
    total_forecasts: int
    avg_bias: float
    bias_percent: float
    waste_qty: int
    stockout_qty: int
    waste_cost: float
    stockout_revenue: float

@dataclass(frozen=True)
class AccuracySummary:
    total_days: int = 0
    days_with_data: int = 0
    overall_accuracy: float = 0.0
    overall_bias_percent: float = 0.0
    total_forecasts: int = 0
    matched_forecasts: int = 0
    total_waste_qty: int = 0
    total_stockout_qty: int = 0
    total_waste_cost: float = 0.0
    total_stockout_revenue: float = 0.0

@dataclass(frozen=True)
class Recommendation:
    category: str  # market | product | day
    target: str
    issue: str
    suggestion: str
    priority: RecommendationPriority = RecommendationPriority.NORMAL

@dataclass(frozen=True)
class PatternInsight:
    """A recurring deviation of actual sales from the item's average."""
    kind: str  # weekday | micro_cycle | weather
    product_id: str
    description: str
    factor: float
    confidence: float
    data_points: int
    condition: Optional[str] = None

@dataclass(frozen=True)
class LearningStats:
    total_forecasts: int = 0
    matched_forecasts: int = 0
    avg_accuracy: float = 0.0
    avg_bias: float = 0.0
    # Positive when recent absolute errors are smaller than older ones
    improvement_trend: float = 0.0
    patterns: Tuple[PatternInsight, ...] = ()

@dataclass(frozen=True)
class AccuracyAnalysisResult:
    summary: AccuracySummary
    daily: Tuple[DailyAccuracy, ...]
    weekday_accuracy: Tuple[GroupAccuracy, ...]
    product_accuracy: Tuple[GroupAccuracy, ...]
    market_accuracy: Tuple[GroupAccuracy, ...]
    comparisons: Tuple[AccuracyComparison, ...]
    recommendations: Tuple[Recommendation, ...] = ()
    learning: Optional[LearningStats] = None

    def best_products(self, count: int = 3) -> List[GroupAccuracy]:
        ranked = [p for p in self.product_accuracy if p.sample_size > 0]
        return ranked[:count]

    def worst_products(self, count: int = 3) -> List[GroupAccuracy]:
        ranked = [p for p in self.product_accuracy if p.sample_size > 0]
        return list(reversed(ranked))[:count]

    def to_dict(self) -> Dict:
        return _plain(asdict(self))

@dataclass(frozen=True)
class BiasState:
    """Running forecast-error estimate for one item."""
    bias_estimate: float = 0.0
    gain: float = 0.5
    streak: int = 0
    observations: int = 0

    @classmethod
    def from_dict(cls, data: Dict) -> 'BiasState':
        return cls(
            bias_estimate=float(data.get('bias_estimate', 0.0)),
            gain=float(data.get('gain', 0.5)),
            streak=int(data.get('streak', 0)),
            observations=int(data.get('observations', 0))
        )

    def to_dict(self) -> Dict:
        return asdict(self)

def item_key(product_id: str, market_id: str, variant_id: Optional[str] = None) -> str:
    """Key used for per-item state such as bias estimates."""
    return f"{product_id}:{variant_id or ''}:{market_id}"
