"""
Unit tests for the demand distribution models.
"""
import unittest

from scipy import stats

from production_planner.core.distribution import (
    PoissonDistribution,
    NegativeBinomialDistribution,
    select_distribution_type,
    build_distribution
)
from production_planner.exceptions import DistributionError
from production_planner.models import DistributionType

class TestPoissonDistribution(unittest.TestCase):
    """Test cases for the Poisson distribution."""

    def test_pmf_and_cdf_match_scipy(self):
        dist = PoissonDistribution(4.5)
        for k in range(15):
            self.assertAlmostEqual(dist.pmf(k), stats.poisson.pmf(k, 4.5))
            self.assertAlmostEqual(dist.cdf(k), stats.poisson.cdf(k, 4.5))

        self.assertEqual(dist.pmf(-1), 0.0)
        self.assertEqual(dist.cdf(-1), 0.0)
        self.assertAlmostEqual(dist.mean, 4.5)
        self.assertAlmostEqual(dist.variance, 4.5)

    def test_quantile_rain_scenario(self):
        """Smallest k with CDF >= 0.4 for lambda 7.28 is 6 (CDF(6) ~ 0.409)."""
        dist = PoissonDistribution(7.28)
        q = dist.quantile(0.4)

        self.assertEqual(q, 6)
        self.assertGreaterEqual(dist.cdf(6), 0.4)
        self.assertLess(dist.cdf(5), 0.4)

    def test_quantile_is_smallest_k(self):
        for lam in [0.3, 1.0, 3.0, 7.28, 20.0, 55.0]:
            dist = PoissonDistribution(lam)
            for p in [0.05, 0.1, 0.4, 0.5, 0.75, 0.9, 0.99]:
                q = dist.quantile(p)
                self.assertGreaterEqual(dist.cdf(q), p)
                if q > 0:
                    self.assertLess(dist.cdf(q - 1), p)

    def test_quantile_bounds(self):
        dist = PoissonDistribution(5.0)
        self.assertEqual(dist.quantile(0.0), 0)
        self.assertEqual(dist.quantile(-0.5), 0)
        self.assertLessEqual(dist.quantile(1.0), dist.support_upper_bound())

    def test_zero_lambda_is_point_mass(self):
        dist = PoissonDistribution(0.0)

        self.assertTrue(dist.is_degenerate)
        self.assertEqual(dist.pmf(0), 1.0)
        self.assertEqual(dist.pmf(1), 0.0)
        self.assertEqual(dist.cdf(0), 1.0)
        self.assertEqual(dist.quantile(0.9), 0)
        self.assertEqual(dist.variance, 0.0)
        self.assertEqual(dist.support_upper_bound(), 0)

    def test_invalid_lambda(self):
        with self.assertRaises(DistributionError):
            PoissonDistribution(-1.0)

        with self.assertRaises(DistributionError):
            PoissonDistribution(float('nan'))

class TestNegativeBinomialDistribution(unittest.TestCase):
    """Test cases for the method-of-moments Negative Binomial."""

    def test_method_of_moments(self):
        dist = NegativeBinomialDistribution(10.0, 25.0)

        self.assertAlmostEqual(dist.p, 0.4)
        self.assertAlmostEqual(dist.r, 100.0 / 15.0)
        self.assertAlmostEqual(dist.mean, 10.0, places=6)
        self.assertAlmostEqual(dist.variance, 25.0, places=6)
        self.assertEqual(dist.distribution_type, DistributionType.NEGATIVE_BINOMIAL)

    def test_quantile_is_smallest_k(self):
        dist = NegativeBinomialDistribution(12.0, 40.0)
        for p in [0.05, 0.3, 0.5, 0.8, 0.95]:
            q = dist.quantile(p)
            self.assertGreaterEqual(dist.cdf(q), p)
            if q > 0:
                self.assertLess(dist.cdf(q - 1), p)

    def test_requires_overdispersion(self):
        with self.assertRaises(DistributionError):
            NegativeBinomialDistribution(10.0, 10.0)

        with self.assertRaises(DistributionError):
            NegativeBinomialDistribution(0.0, 5.0)

class TestDistributionSelection(unittest.TestCase):
    """Test cases for choosing and building distributions."""

    def test_select_distribution_type(self):
        self.assertEqual(select_distribution_type(10.0, 10.4, 5), DistributionType.POISSON)
        self.assertEqual(select_distribution_type(10.0, 15.0, 5), DistributionType.NEGATIVE_BINOMIAL)
        self.assertEqual(select_distribution_type(10.0, 12.0, 5), DistributionType.NEGATIVE_BINOMIAL)

        # Too little data to trust overdispersion
        self.assertEqual(select_distribution_type(10.0, 30.0, 2), DistributionType.POISSON)
        self.assertEqual(select_distribution_type(0.0, 0.0, 5), DistributionType.POISSON)

    def test_custom_threshold(self):
        self.assertEqual(
            select_distribution_type(10.0, 15.0, 5, dispersion_threshold=2.0),
            DistributionType.POISSON
        )

    def test_build_keeps_dispersion(self):
        dist = build_distribution(DistributionType.NEGATIVE_BINOMIAL, 8.0, 2.0)

        self.assertIsInstance(dist, NegativeBinomialDistribution)
        self.assertAlmostEqual(dist.mean, 8.0, places=6)
        self.assertAlmostEqual(dist.variance, 16.0, places=6)

    def test_build_falls_back_to_poisson(self):
        # r = mean / (ratio - 1) = 1000, beyond the stable range
        dist = build_distribution(DistributionType.NEGATIVE_BINOMIAL, 10.0, 1.01)
        self.assertIsInstance(dist, PoissonDistribution)
        self.assertEqual(dist.distribution_type, DistributionType.POISSON)

        dist = build_distribution(DistributionType.NEGATIVE_BINOMIAL, 10.0, None)
        self.assertIsInstance(dist, PoissonDistribution)

        dist = build_distribution(DistributionType.NEGATIVE_BINOMIAL, 0.0, 3.0)
        self.assertTrue(dist.is_degenerate)

    def test_build_poisson(self):
        dist = build_distribution(DistributionType.POISSON, 7.28, 0.1)
        self.assertIsInstance(dist, PoissonDistribution)
        self.assertAlmostEqual(dist.mean, 7.28)

        # Negative means are floored at zero
        self.assertTrue(build_distribution(DistributionType.POISSON, -2.0).is_degenerate)

if __name__ == '__main__':
    unittest.main()
