# production_planner/core/bias_correction.py
from typing import Optional, Sequence

from production_planner.models import BiasState
from production_planner.utils.math_utils import coefficient_of_variation, linear_regression

def _sign(value: float) -> int:
    if value > 0:
        return 1
    if value < 0:
        return -1
    return 0

def update_bias_state(
    state: Optional[BiasState],
    error: float,
    decay: float = 0.7,
    base_gain: float = 0.5,
    gain_growth_rate: float = 0.1,
    max_gain: float = 1.0,
    gain_relaxation: float = 0.5
) -> BiasState:
    """Fold one observed forecast error into a bias state.

    The bias estimate is an exponentially weighted average of errors
    (actual - forecast). The gain grows while errors keep the same sign
    and relaxes toward base_gain when the sign changes.

    Args:
        state: Current state, None for a new item
        error: Observed error, actual minus forecast
        decay: Weight kept by the previous estimate
        base_gain: Gain the corrector relaxes toward
        gain_growth_rate: Gain added per consecutive same-sign error
        max_gain: Upper limit for the gain
        gain_relaxation: Share of the distance to base_gain removed on a sign change

    Returns:
        New BiasState; the input is not modified
    """
    if state is None:
        state = BiasState(gain=base_gain)

    bias = decay * state.bias_estimate + (1.0 - decay) * error

    sign = _sign(error)
    previous_sign = _sign(state.streak)

    if sign != 0 and sign == previous_sign:
        # Streak is signed: positive for under-forecasting, negative for over
        streak = state.streak + sign
        gain = min(max_gain, state.gain + gain_growth_rate)
    else:
        streak = sign
        gain = state.gain + gain_relaxation * (base_gain - state.gain)

    return BiasState(
        bias_estimate=bias,
        gain=min(max_gain, max(0.0, gain)),
        streak=streak,
        observations=state.observations + 1
    )

class BiasCorrector:
    """Adaptive correction of an item's demand mean from its past errors."""

    def __init__(
        self,
        decay: float = 0.7,
        base_gain: float = 0.5,
        gain_growth_rate: float = 0.1,
        max_gain: float = 1.0,
        gain_relaxation: float = 0.5,
        min_observations: int = 0,
        state: Optional[BiasState] = None
    ):
        self.decay = decay
        self.base_gain = base_gain
        self.gain_growth_rate = gain_growth_rate
        self.max_gain = max_gain
        self.gain_relaxation = gain_relaxation
        self.min_observations = min_observations
        self.state = state if state is not None else BiasState(gain=base_gain)

    @classmethod
    def from_config(cls, bias_config: dict, state: Optional[BiasState] = None) -> 'BiasCorrector':
        return cls(state=state, **bias_config)

    @property
    def correction(self) -> float:
        """Current additive adjustment to lambda."""
        if self.state.observations < self.min_observations:
            return 0.0
        return self.state.gain * self.state.bias_estimate

    def update(self, observed_error: float) -> float:
        """Record an observed error and return the new lambda adjustment."""
        self.state = update_bias_state(
            self.state,
            observed_error,
            self.decay,
            self.base_gain,
            self.gain_growth_rate,
            self.max_gain,
            self.gain_relaxation
        )
        return self.correction

    def apply(self, lam: float) -> float:
        return max(0.0, lam + self.correction)

def calculate_momentum(values: Sequence[float], window: int = 5) -> float:
    """Get the least-squares slope of the most recent observations.

    Args:
        values: Observations in date order
        window: Number of recent observations to fit

    Returns:
        Slope per observation, 0.0 with fewer than three points
    """
    recent = list(values)[-window:]
    if len(recent) < 3:
        return 0.0

    slope, _ = linear_regression([float(i) for i in range(len(recent))], [float(v) for v in recent])
    return slope

def momentum_adjustment(slope: float, threshold: float = 0.3, strength: float = 0.8) -> float:
    """Get the additive lambda change for a trend slope beyond the threshold."""
    if abs(slope) <= threshold:
        return 0.0
    return strength * slope

def is_high_volatility(values: Sequence[float], threshold: float = 0.5) -> bool:
    """Check whether the coefficient of variation exceeds the threshold."""
    if len(values) < 2:
        return False
    return coefficient_of_variation(values) > threshold
