# production_planner/core/exogenous.py
from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np

from production_planner.core.baseline import DailyObservation
from production_planner.models import (
    Adjustment, CalendarContext, CalendarEvent, WeatherCondition, WeatherSignal
)
from production_planner.utils.date_utils import date_range, is_payday_period
from production_planner.utils.math_utils import mean

DEFAULT_WEATHER_FACTORS = {
    'sunny': 1.0,
    'cloudy': 1.0,
    'rain': 0.7,
    'storm': 0.5,
    'wind': 0.9,
    'cold': 0.9
}

# Recurring fixed-date events: (month, day) -> (name, demand factor, type)
RECURRING_EVENTS = {
    (1, 1): ("New Year's Day", 0.4, 'holiday'),
    (2, 14): ("Valentine's Day", 1.5, 'special'),
    (4, 6): ('Chakri Day', 0.8, 'holiday'),
    (4, 13): ('Songkran', 0.4, 'festival'),
    (4, 14): ('Songkran', 0.4, 'festival'),
    (4, 15): ('Songkran', 0.4, 'festival'),
    (5, 1): ('Labour Day', 1.2, 'holiday'),
    (8, 12): ("Mother's Day", 1.4, 'holiday'),
    (12, 5): ("Father's Day", 1.4, 'holiday'),
    (12, 25): ('Christmas', 1.3, 'special'),
    (12, 31): ("New Year's Eve", 0.5, 'holiday'),
}

@dataclass(frozen=True)
class ExogenousResult:
    weather_factor: float
    payday_factor: float
    event_factor: float
    seasonality_factor: float
    weather_adjusted_forecast: float
    adjusted_forecast: float
    adjustments: Tuple[Adjustment, ...] = ()
    weekday_factor: float = 1.0

    @property
    def calendar_factor(self) -> float:
        return self.payday_factor * self.event_factor * self.seasonality_factor * self.weekday_factor

@dataclass(frozen=True)
class LearnedFactors:
    """Demand multipliers measured from an item's own history."""
    # Monday-first weekday index -> multiplier
    weekday_factors: Dict[int, float] = field(default_factory=dict)
    weather_factors: Dict[str, float] = field(default_factory=dict)
    # None when too few payday days were seen
    payday_factor: Optional[float] = None
    data_points: int = 0
    confidence: float = 0.0

def measure_weather_impact(
    history: Sequence[DailyObservation],
    reference_condition: str = 'sunny'
) -> Dict[str, float]:
    """Average demand per weather condition relative to a reference condition.

    Days without a recorded condition are ignored. When the reference
    condition never occurs, the first condition seen is the reference.
    """
    groups: Dict[str, List[int]] = {}
    for obs in history:
        if obs.weather_condition:
            groups.setdefault(obs.weather_condition, []).append(obs.quantity)

    if not groups:
        return {}

    averages = {condition: mean(values) for condition, values in groups.items()}
    reference = averages.get(reference_condition, next(iter(averages.values())))
    if reference <= 0:
        return {}

    return {condition: avg / reference for condition, avg in averages.items()}

def learn_seasonality_factors(
    history: Sequence[DailyObservation],
    window_days: int = 30,
    min_days: int = 10,
    min_window_points: int = 5,
    payday_start_day: int = 25,
    payday_end_day: int = 5,
    min_payday_samples: int = 3,
    min_weather_samples: int = 2
) -> LearnedFactors:
    """Learn weekday, weather and payday multipliers from daily history.

    Each day is compared with the moving average of the window_days
    before it. Weekday factors are the median of actual / average per
    weekday. Weather and payday factors are the median of what remains
    after the weekday effect is divided out. Extreme ratios are dropped
    before aggregation.

    Args:
        history: Daily observations in date order
        window_days: Length of the trailing moving average
        min_days: Days of history needed to learn anything
        min_window_points: Days inside the window needed for a usable average
        payday_start_day: First day of the payday window
        payday_end_day: Last day of the payday window
        min_payday_samples: Payday days needed for a payday factor
        min_weather_samples: Days of one condition needed for its factor

    Returns:
        LearnedFactors; confidence grows linearly to 1.0 at window_days days
    """
    if len(history) < min_days:
        return LearnedFactors(data_points=len(history))

    quantities = {obs.sale_date: obs.quantity for obs in history}
    scored = []
    for obs in history:
        window = [
            quantities[day]
            for day in (obs.sale_date - timedelta(days=offset) for offset in range(1, window_days + 1))
            if day in quantities
        ]
        if len(window) >= min_window_points and sum(window) > 0:
            scored.append((obs, mean(window)))

    weekday_samples: Dict[int, List[float]] = {day: [] for day in range(7)}
    for obs, average in scored:
        ratio = obs.quantity / average
        if 0.1 < ratio < 5.0:
            weekday_samples[obs.sale_date.weekday()].append(ratio)

    weekday_factors = {
        day: float(np.median(samples)) if samples else 1.0
        for day, samples in weekday_samples.items()
    }

    payday_samples = []
    weather_samples: Dict[str, List[float]] = {}
    for obs, average in scored:
        expected = average * weekday_factors[obs.sale_date.weekday()]
        if expected <= 0:
            continue

        residual = obs.quantity / expected
        if not 0.2 < residual < 4.0:
            continue

        if is_payday_period(obs.sale_date, payday_start_day, payday_end_day):
            payday_samples.append(residual)
        if obs.weather_condition:
            weather_samples.setdefault(obs.weather_condition, []).append(residual)

    weather_factors = {
        condition: float(np.median(samples))
        for condition, samples in weather_samples.items()
        if len(samples) >= min_weather_samples
    }

    # Conditions too rare for residuals fall back to plain averages
    seen = {}
    for obs in history:
        if obs.weather_condition:
            seen[obs.weather_condition] = seen.get(obs.weather_condition, 0) + 1
    for condition, impact in measure_weather_impact(history).items():
        if condition not in weather_factors and seen[condition] >= min_weather_samples:
            weather_factors[condition] = impact

    payday_factor = None
    if len(payday_samples) >= min_payday_samples:
        payday_factor = float(np.median(payday_samples))

    return LearnedFactors(
        weekday_factors=weekday_factors,
        weather_factors=weather_factors,
        payday_factor=payday_factor,
        data_points=len(history),
        confidence=min(1.0, len(history) / float(window_days))
    )


def get_weather_factor(
    signal: Optional[WeatherSignal],
    weather_factors: Optional[Dict[str, float]] = None
) -> float:
    """Get the demand multiplier for a weather signal.

    Args:
        signal: Weather signal, may be None
        weather_factors: Multiplier per condition value

    Returns:
        The signal's own factor when it carries one, otherwise the
        configured multiplier for its condition; 1.0 without a signal
    """
    if signal is None:
        return 1.0

    if signal.factor is not None and signal.factor >= 0:
        return float(signal.factor)

    factors = weather_factors or DEFAULT_WEATHER_FACTORS
    condition = signal.condition.value if isinstance(signal.condition, WeatherCondition) else str(signal.condition)
    return float(factors.get(condition, 1.0))

def get_event(target: date, events: Optional[Dict] = None) -> Optional[CalendarEvent]:
    """Get the recurring event that falls on a date."""
    table = RECURRING_EVENTS if events is None else events
    entry = table.get((target.month, target.day))
    if entry is None:
        return None

    name, factor, event_type = entry
    return CalendarEvent(date=target, name=name, demand_factor=factor, event_type=event_type)

def get_nearby_event(
    target: date,
    near_event_days: int = 2,
    near_event_weight: float = 0.3,
    events: Optional[Dict] = None
) -> Optional[CalendarEvent]:
    """Get a diluted event for days close to, but not on, an event.

    The nearest event within near_event_days contributes near_event_weight
    of its effect: factor = 1 + weight * (event factor - 1).
    """
    for distance in range(1, near_event_days + 1):
        for offset in (distance, -distance):
            event = get_event(target + timedelta(days=offset), events)
            if event is None:
                continue

            factor = 1.0 + near_event_weight * (event.demand_factor - 1.0)
            return CalendarEvent(
                date=target,
                name=f"Near {event.name}",
                demand_factor=round(factor, 4),
                event_type=f"near_{event.event_type}"
            )
    return None

def build_calendar_context(
    target_date: date,
    payday_start_day: int = 25,
    payday_end_day: int = 5,
    near_event_days: int = 2,
    near_event_weight: float = 0.3,
    seasonality_factors: Optional[Dict[int, float]] = None,
    events: Optional[Dict] = None
) -> CalendarContext:
    """Derive the calendar context for a date.

    Args:
        target_date: Date being forecast
        payday_start_day: First day of the payday window
        payday_end_day: Last day of the payday window
        near_event_days: Days around an event that feel part of its effect
        near_event_weight: Share of the event effect applied on nearby days
        seasonality_factors: Month number -> multiplier
        events: Optional replacement for the recurring event table

    Returns:
        CalendarContext for the date
    """
    event = get_event(target_date, events)
    if event is None and near_event_days > 0:
        event = get_nearby_event(target_date, near_event_days, near_event_weight, events)

    seasonality = 1.0
    if seasonality_factors:
        seasonality = float(seasonality_factors.get(target_date.month, 1.0))

    return CalendarContext(
        target_date=target_date,
        is_payday=is_payday_period(target_date, payday_start_day, payday_end_day),
        event=event,
        seasonality_factor=seasonality
    )

def get_upcoming_events(
    from_date: date,
    days: int = 30,
    events: Optional[Dict] = None
) -> List[CalendarEvent]:
    """Get recurring events from a date through the following days."""
    upcoming = []
    for day in date_range(from_date, days):
        event = get_event(day, events)
        if event is not None:
            upcoming.append(event)
    return upcoming

def apply_exogenous_factors(
    baseline: float,
    weather_signal: Optional[WeatherSignal] = None,
    calendar_context: Optional[CalendarContext] = None,
    weather_factors: Optional[Dict[str, float]] = None,
    payday_factor: float = 1.2,
    learned: Optional[LearnedFactors] = None,
    min_learned_confidence: float = 0.5,
    apply_weekday: bool = False
) -> ExogenousResult:
    """Multiply the baseline by weather, payday, event and seasonality factors.

    Factors combine by plain multiplication without re-normalization.
    Learned factors replace the configured weather and payday multipliers
    only when their confidence exceeds min_learned_confidence.

    Args:
        baseline: Baseline demand mean
        weather_signal: Weather for the target date, may be None
        calendar_context: Calendar context for the target date, may be None
        weather_factors: Multiplier per weather condition
        payday_factor: Multiplier inside the payday window
        learned: Factors learned from the item's history, may be None
        min_learned_confidence: Confidence a learned factor set must exceed
        apply_weekday: Also apply the learned weekday factor; leave off when
            the baseline already comes from same-weekday history

    Returns:
        ExogenousResult with every factor applied and recorded
    """
    use_learned = learned is not None and learned.confidence > min_learned_confidence

    factors = dict(weather_factors or DEFAULT_WEATHER_FACTORS)
    learned_weather = False
    if use_learned and weather_signal is not None and weather_signal.factor is None:
        condition = str(weather_signal.condition)
        if condition in learned.weather_factors:
            factors[condition] = learned.weather_factors[condition]
            learned_weather = True

    weather = get_weather_factor(weather_signal, factors)
    payday = 1.0
    event_factor = 1.0
    seasonality = 1.0
    weekday_factor = 1.0
    adjustments = []

    if weather_signal is not None:
        source = f"weather:{weather_signal.condition}"
        adjustments.append(Adjustment(f"{source}:learned" if learned_weather else source, weather))

    if calendar_context is not None:
        if calendar_context.is_payday:
            if use_learned and learned.payday_factor is not None:
                payday = learned.payday_factor
                adjustments.append(Adjustment('payday:learned', payday))
            else:
                payday = payday_factor
                adjustments.append(Adjustment('payday', payday))

        if calendar_context.event is not None:
            event_factor = float(calendar_context.event.demand_factor)
            adjustments.append(Adjustment(f"event:{calendar_context.event.name}", event_factor))

        seasonality = float(calendar_context.seasonality_factor)
        if seasonality != 1.0:
            adjustments.append(Adjustment('seasonality', seasonality))

    target = calendar_context.target_date if calendar_context is not None else (
        weather_signal.date if weather_signal is not None else None
    )
    if use_learned and apply_weekday and target is not None:
        weekday_factor = float(learned.weekday_factors.get(target.weekday(), 1.0))
        if weekday_factor != 1.0:
            adjustments.append(Adjustment('weekday:learned', weekday_factor))

    weather_adjusted = max(0.0, baseline * weather)

    return ExogenousResult(
        weather_factor=weather,
        payday_factor=payday,
        event_factor=event_factor,
        seasonality_factor=seasonality,
        weather_adjusted_forecast=weather_adjusted,
        adjusted_forecast=max(
            0.0, weather_adjusted * payday * event_factor * seasonality * weekday_factor
        ),
        adjustments=tuple(adjustments),
        weekday_factor=weekday_factor
    )
