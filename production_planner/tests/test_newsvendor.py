"""
Unit tests for the newsvendor optimizer.
"""
import unittest

from production_planner.core.distribution import NegativeBinomialDistribution, PoissonDistribution
from production_planner.core.newsvendor import critical_fractile, expected_sales, optimize_production
from production_planner.exceptions import OptimizationError

class TestCriticalFractile(unittest.TestCase):
    """Test cases for the critical fractile."""

    def test_values(self):
        self.assertAlmostEqual(critical_fractile(50, 30), 0.4)
        self.assertAlmostEqual(critical_fractile(100, 20), 0.8)
        self.assertAlmostEqual(critical_fractile(50, 30, disposal_cost=10), 20 / 60)

    def test_guards(self):
        self.assertEqual(critical_fractile(50, 50), 0.0)
        self.assertEqual(critical_fractile(40, 50), 0.0)
        self.assertEqual(critical_fractile(0, 0), 0.0)

class TestOptimizeProduction(unittest.TestCase):
    """Test cases for picking the production quantity."""

    def assert_fractile_property(self, dist, result):
        q = result.optimal_quantity
        target = result.service_level_target

        self.assertGreaterEqual(dist.cdf(q), target)
        if q > 0:
            self.assertLess(dist.cdf(q - 1), target)

    def test_rain_scenario(self):
        dist = PoissonDistribution(7.28)
        result = optimize_production(dist, 50, 30)

        self.assertAlmostEqual(result.service_level_target, 0.4)
        self.assertEqual(result.optimal_quantity, 6)
        self.assert_fractile_property(dist, result)
        self.assertAlmostEqual(result.stockout_probability, 1 - dist.cdf(6))
        self.assertAlmostEqual(result.waste_probability, dist.cdf(5))
        self.assertLessEqual(result.prediction_interval.lower, 6)
        self.assertGreaterEqual(result.prediction_interval.upper, 6)

    def test_fractile_and_interval_properties(self):
        for lam in [0.3, 2.0, 7.28, 15.0, 40.0]:
            dist = PoissonDistribution(lam)
            for price, cost in [(50, 30), (10, 9), (100, 10), (20, 1)]:
                result = optimize_production(dist, price, cost)

                self.assert_fractile_property(dist, result)
                self.assertLessEqual(result.prediction_interval.lower, result.optimal_quantity)
                self.assertLessEqual(result.optimal_quantity, result.prediction_interval.upper)
                self.assertGreaterEqual(result.stockout_probability, 0.0)
                self.assertLessEqual(result.stockout_probability, 1.0)
                self.assertGreaterEqual(result.waste_probability, 0.0)
                self.assertLessEqual(result.waste_probability, 1.0)

    def test_negative_binomial(self):
        dist = NegativeBinomialDistribution(10.0, 25.0)
        result = optimize_production(dist, 50, 30)

        self.assert_fractile_property(dist, result)
        self.assertLessEqual(result.prediction_interval.lower, result.optimal_quantity)
        self.assertGreaterEqual(result.prediction_interval.upper, result.optimal_quantity)

    def test_higher_margin_never_lowers_quantity(self):
        dist = PoissonDistribution(12.0)
        previous = 0
        for price in range(31, 201, 7):
            quantity = optimize_production(dist, price, 30).optimal_quantity
            self.assertGreaterEqual(quantity, previous)
            previous = quantity

    def test_non_positive_margin(self):
        with self.assertLogs('production_planner.core.newsvendor', level='WARNING'):
            result = optimize_production(PoissonDistribution(10.0), 30, 30)

        self.assertEqual(result.optimal_quantity, 0)
        self.assertEqual(result.service_level_target, 0.0)
        self.assertEqual(result.expected_profit, 0.0)
        self.assertEqual(result.prediction_interval.lower, 0)

    def test_zero_lambda(self):
        result = optimize_production(PoissonDistribution(0.0), 50, 30)

        self.assertEqual(result.optimal_quantity, 0)
        self.assertEqual(result.stockout_probability, 0.0)
        self.assertEqual(result.waste_probability, 0.0)
        self.assertEqual(result.expected_profit, 0.0)
        self.assertEqual((result.prediction_interval.lower, result.prediction_interval.upper), (0, 0))

    def test_economics(self):
        dist = PoissonDistribution(7.28)
        result = optimize_production(dist, 50, 30)
        economics = result.economics

        self.assertLessEqual(economics.expected_sales, result.optimal_quantity)
        self.assertLessEqual(economics.expected_sales, dist.mean)
        self.assertAlmostEqual(economics.expected_waste, result.optimal_quantity - economics.expected_sales)
        self.assertAlmostEqual(
            economics.expected_profit,
            economics.expected_sales * 20 - economics.expected_waste * 30
        )
        self.assertAlmostEqual(
            economics.expected_profit,
            economics.expected_revenue - economics.expected_cost
        )

    def test_expected_sales_large_quantity(self):
        dist = PoissonDistribution(5.0)
        self.assertAlmostEqual(expected_sales(dist, 1000), 5.0, places=6)
        self.assertEqual(expected_sales(dist, 0), 0.0)

    def test_invalid_input(self):
        with self.assertRaises(OptimizationError):
            optimize_production(PoissonDistribution(5.0), -1, 3)

        with self.assertRaises(OptimizationError):
            optimize_production(PoissonDistribution(5.0), 10, 3, interval_lower=0.9, interval_upper=0.1)

if __name__ == '__main__':
    unittest.main()
