"""
Unit tests for the baseline estimator.
"""
import unittest
from datetime import date, timedelta

from production_planner.core.baseline import (
    DailyObservation,
    select_item_history,
    outlier_fences,
    remove_outliers,
    determine_confidence,
    estimate_baseline
)
from production_planner.exceptions import ForecastError
from production_planner.models import ConfidenceLevel, DistributionType, SalesRecord

def make_history(quantities, start):
    """Daily observations on consecutive days from start."""
    return [DailyObservation(start + timedelta(days=i), q) for i, q in enumerate(quantities)]

class TestSelectItemHistory(unittest.TestCase):
    """Test cases for selecting an item's sales history."""

    def setUp(self):
        """Set up test fixtures."""
        self.target = date(2024, 3, 16)
        self.records = [
            SalesRecord(date(2024, 3, 14), 'P1', 'M1', 4),
            SalesRecord(date(2024, 3, 14), 'P1', 'M1', 3),
            SalesRecord(date(2024, 3, 15), 'P1', 'M1', 6),
            SalesRecord(date(2024, 3, 16), 'P1', 'M1', 50),
            SalesRecord(date(2024, 3, 15), 'P1', 'M2', 9),
            SalesRecord(date(2024, 3, 15), 'P2', 'M1', 9),
            SalesRecord(date(2024, 3, 15), 'P1', 'M1', 2, variant_id='V1'),
            SalesRecord(date(2023, 6, 1), 'P1', 'M1', 8),
        ]

    def test_sums_same_day_and_filters(self):
        history = select_item_history(self.records, 'P1', 'M1', self.target)

        self.assertEqual(
            [(obs.sale_date, obs.quantity) for obs in history],
            [(date(2024, 3, 14), 7), (date(2024, 3, 15), 6)]
        )

    def test_variant_selection(self):
        history = select_item_history(self.records, 'P1', 'M1', self.target, variant_id='V1')
        self.assertEqual([obs.quantity for obs in history], [2])

    def test_history_window(self):
        history = select_item_history(self.records, 'P1', 'M1', self.target, max_history_days=365)
        self.assertEqual(history[0].sale_date, date(2023, 6, 1))

class TestOutliers(unittest.TestCase):
    """Test cases for outlier rejection."""

    def test_iqr_fences(self):
        values = [10, 11, 10, 12, 11, 10, 60]
        kept, removed = remove_outliers(values, outlier_fences(values, 'iqr'))

        self.assertEqual(removed, 1)
        self.assertNotIn(60, kept)

    def test_zscore_fences(self):
        values = [10] * 9 + [100]
        kept, removed = remove_outliers(values, outlier_fences(values, 'zscore', zscore_threshold=2.5))

        self.assertEqual(removed, 1)
        self.assertEqual(kept, [10] * 9)

    def test_small_samples_keep_everything(self):
        kept, removed = remove_outliers([1, 100], outlier_fences([1, 100], 'iqr'))
        self.assertEqual(removed, 0)
        self.assertEqual(kept, [1, 100])

    def test_unknown_method(self):
        with self.assertRaises(ForecastError):
            outlier_fences([1, 2, 3], 'median')

class TestDetermineConfidence(unittest.TestCase):
    """Test cases for confidence levels."""

    def test_levels(self):
        self.assertEqual(determine_confidence(0, 0), ConfidenceLevel.NONE)
        self.assertEqual(determine_confidence(3, 0), ConfidenceLevel.LOW)
        self.assertEqual(determine_confidence(3, 1), ConfidenceLevel.MEDIUM)
        self.assertEqual(determine_confidence(5, 0), ConfidenceLevel.MEDIUM)
        self.assertEqual(determine_confidence(30, 5), ConfidenceLevel.HIGH)

class TestEstimateBaseline(unittest.TestCase):
    """Test cases for baseline estimation."""

    def test_scenario_mean(self):
        history = make_history([10, 12, 9, 11, 10], date(2024, 3, 11))
        estimate = estimate_baseline(history, date(2024, 3, 16))

        self.assertFalse(estimate.no_data)
        self.assertAlmostEqual(estimate.baseline_forecast, 10.4)
        self.assertAlmostEqual(estimate.variance, 1.04)
        self.assertEqual(estimate.data_points, 5)
        self.assertEqual(estimate.same_day_data_points, 0)
        self.assertEqual(estimate.outliers_removed, 0)
        self.assertEqual(estimate.distribution_type, DistributionType.POISSON)
        self.assertEqual(estimate.confidence_level, ConfidenceLevel.MEDIUM)
        self.assertFalse(estimate.used_same_day)

    def test_mean_of_retained_sample(self):
        quantities = [10, 11, 10, 12, 11, 10, 60]
        estimate = estimate_baseline(make_history(quantities, date(2024, 3, 1)), date(2024, 3, 20))

        self.assertEqual(estimate.outliers_removed, 1)
        self.assertEqual(estimate.data_points, 6)
        self.assertAlmostEqual(estimate.baseline_forecast, sum(estimate.sample_values) / 6)
        self.assertAlmostEqual(estimate.baseline_forecast, 64 / 6)

    def test_repeated_sample_keeps_mean(self):
        once = estimate_baseline(make_history([10, 12, 9, 11, 10], date(2024, 3, 11)), date(2024, 3, 16))
        twice = estimate_baseline(
            make_history([10, 12, 9, 11, 10] * 2, date(2024, 3, 6)), date(2024, 3, 16)
        )

        self.assertAlmostEqual(once.baseline_forecast, twice.baseline_forecast)
        self.assertEqual(
            estimate_baseline(make_history([10, 12, 9, 11, 10], date(2024, 3, 11)), date(2024, 3, 16)),
            once
        )

    def test_prefers_same_weekday(self):
        # 2024-01-06 is a Saturday; five Saturdays sell 12, other days rotate 8/10/12
        start = date(2024, 1, 6)
        history = []
        for i in range(35):
            day = start + timedelta(days=i)
            quantity = 12 if day.weekday() == 5 else [8, 10, 12][i % 3]
            history.append(DailyObservation(day, quantity))

        estimate = estimate_baseline(history, date(2024, 2, 10))

        self.assertTrue(estimate.used_same_day)
        self.assertEqual(estimate.same_day_data_points, 5)
        self.assertEqual(estimate.data_points, 35)
        self.assertAlmostEqual(estimate.baseline_forecast, 12.0)
        self.assertEqual(estimate.confidence_level, ConfidenceLevel.HIGH)

    def test_overdispersed_history(self):
        history = make_history([1, 20, 2, 18, 3], date(2024, 3, 11))
        estimate = estimate_baseline(history, date(2024, 3, 16))

        self.assertEqual(estimate.distribution_type, DistributionType.NEGATIVE_BINOMIAL)
        self.assertGreater(estimate.dispersion_ratio, 1.2)

    def test_no_history(self):
        estimate = estimate_baseline([], date(2024, 3, 16))

        self.assertTrue(estimate.no_data)
        self.assertEqual(estimate.data_points, 0)
        self.assertEqual(estimate.confidence_level, ConfidenceLevel.NONE)
        self.assertEqual(estimate.baseline_forecast, 0.0)

if __name__ == '__main__':
    unittest.main()
