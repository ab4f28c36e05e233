# production_planner/core/distribution.py
import math
from typing import Optional

import numpy as np
from scipy import stats

from production_planner.exceptions import DistributionError
from production_planner.models import DistributionType
from production_planner.utils.math_utils import clamp_probability, safe_divide

# Poisson is kept below this variance/mean ratio
DEFAULT_DISPERSION_THRESHOLD = 1.2

# Larger r is numerically indistinguishable from Poisson
DEFAULT_MAX_NEGATIVE_BINOMIAL_R = 500.0

class DemandDistribution:
    """Discrete demand distribution over the non-negative integers.

    Subclasses provide a frozen scipy distribution; pmf, cdf and quantile
    are shared so the optimizer never branches on the distribution type.
    """

    distribution_type = None

    def __init__(self, frozen):
        self._frozen = frozen

    @property
    def mean(self) -> float:
        if self._frozen is None:
            return 0.0
        return float(self._frozen.mean())

    @property
    def variance(self) -> float:
        if self._frozen is None:
            return 0.0
        return float(self._frozen.var())

    @property
    def is_degenerate(self) -> bool:
        """True when all probability mass sits at zero."""
        return self._frozen is None

    def pmf(self, k: int) -> float:
        if k < 0:
            return 0.0
        if self._frozen is None:
            return 1.0 if k == 0 else 0.0
        return clamp_probability(float(self._frozen.pmf(k)))

    def cdf(self, k: int) -> float:
        if k < 0:
            return 0.0
        if self._frozen is None:
            return 1.0
        return clamp_probability(float(self._frozen.cdf(k)))

    def support_upper_bound(self) -> int:
        """Truncation point for sums and quantile searches over the support."""
        if self._frozen is None:
            return 0
        return int(math.ceil(self.mean + 10.0 * math.sqrt(self.variance) + 10))

    def support(self) -> np.ndarray:
        return np.arange(self.support_upper_bound() + 1)

    def pmf_array(self) -> np.ndarray:
        """Probability mass over the truncated support."""
        if self._frozen is None:
            return np.array([1.0])
        return np.clip(self._frozen.pmf(self.support()), 0.0, 1.0)

    def cdf_array(self) -> np.ndarray:
        """Cumulative probability over the truncated support."""
        if self._frozen is None:
            return np.array([1.0])
        return np.clip(self._frozen.cdf(self.support()), 0.0, 1.0)

    def quantile(self, p: float) -> int:
        """Find the smallest k with cdf(k) >= p.

        Args:
            p: Target cumulative probability

        Returns:
            Quantity k, limited to the truncated support
        """
        p = clamp_probability(p)
        if p <= 0.0 or self._frozen is None:
            return 0

        cdf_values = self.cdf_array()
        index = int(np.searchsorted(cdf_values, p, side='left'))

        # Mass beyond the truncation point is negligible
        return min(index, len(cdf_values) - 1)

    def __repr__(self):
        return f"{self.__class__.__name__}(mean={self.mean:.4f}, variance={self.variance:.4f})"

class PoissonDistribution(DemandDistribution):
    """Poisson demand with rate lam; lam = 0 is a point mass at zero."""

    distribution_type = DistributionType.POISSON

    def __init__(self, lam: float):
        if lam is None or not math.isfinite(lam) or lam < 0:
            raise DistributionError(f"Invalid Poisson mean: {lam}")

        self.lam = float(lam)
        super().__init__(stats.poisson(mu=self.lam) if self.lam > 0 else None)

class NegativeBinomialDistribution(DemandDistribution):
    """Negative Binomial demand fitted by the method of moments.

    p = mean / variance and r = mean^2 / (variance - mean), so the
    variance must strictly exceed the mean.
    """

    distribution_type = DistributionType.NEGATIVE_BINOMIAL

    def __init__(self, mean: float, variance: float):
        if mean is None or variance is None or mean <= 0 or variance <= mean:
            raise DistributionError(
                "Negative Binomial requires variance greater than a positive mean",
                details={'mean': mean, 'variance': variance}
            )

        self.p = mean / variance
        self.r = mean ** 2 / (variance - mean)

        if not (math.isfinite(self.p) and math.isfinite(self.r)):
            raise DistributionError(
                "Negative Binomial parameters are not finite",
                details={'mean': mean, 'variance': variance}
            )

        super().__init__(stats.nbinom(n=self.r, p=self.p))

def select_distribution_type(
    mean: float,
    variance: float,
    sample_size: int,
    dispersion_threshold: float = DEFAULT_DISPERSION_THRESHOLD,
    min_sample_size: int = 3
) -> DistributionType:
    """Choose Poisson or Negative Binomial from the variance/mean ratio.

    Args:
        mean: Sample mean
        variance: Sample variance
        sample_size: Number of observations behind the estimates
        dispersion_threshold: Ratio at or above which demand is overdispersed
        min_sample_size: Smallest sample trusted to show overdispersion

    Returns:
        Selected distribution type
    """
    if mean <= 0 or sample_size < min_sample_size:
        return DistributionType.POISSON

    ratio = safe_divide(variance, mean)
    if ratio >= dispersion_threshold:
        return DistributionType.NEGATIVE_BINOMIAL

    return DistributionType.POISSON

def build_distribution(
    distribution_type: DistributionType,
    mean: float,
    dispersion_ratio: Optional[float] = None,
    max_r: float = DEFAULT_MAX_NEGATIVE_BINOMIAL_R
) -> DemandDistribution:
    """Build a distribution at the final mean keeping the observed dispersion.

    Args:
        distribution_type: Type chosen by the baseline estimator
        mean: Final demand mean (lambda)
        dispersion_ratio: Observed variance/mean ratio
        max_r: Largest Negative Binomial r before falling back to Poisson

    Returns:
        Demand distribution; Poisson when Negative Binomial is unstable
    """
    mean = max(0.0, float(mean))

    if distribution_type != DistributionType.NEGATIVE_BINOMIAL or mean <= 0:
        return PoissonDistribution(mean)

    if dispersion_ratio is None or not math.isfinite(dispersion_ratio) or dispersion_ratio <= 1.0:
        return PoissonDistribution(mean)

    variance = mean * dispersion_ratio
    r = mean ** 2 / (variance - mean)
    if not math.isfinite(r) or r > max_r:
        return PoissonDistribution(mean)

    try:
        return NegativeBinomialDistribution(mean, variance)
    except DistributionError:
        return PoissonDistribution(mean)
