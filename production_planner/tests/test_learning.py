"""
Unit tests for pattern detection and learning statistics.
"""
import unittest
from datetime import date, timedelta

from production_planner.core.learning import detect_patterns, learning_stats
from production_planner.models import AccuracyComparison, LearningStats

START = date(2024, 3, 4)  # Monday

def comparison(day, forecast_qty, actual_qty, product_id='P1', weather=None, matched=True, accuracy=100.0):
    return AccuracyComparison(
        date=day,
        product_id=product_id,
        product_name='Cake',
        market_id='M1',
        market_name='Central',
        forecast_qty=forecast_qty,
        actual_qty=actual_qty,
        diff=actual_qty - forecast_qty,
        waste_cost=0.0,
        stockout_revenue=0.0,
        accuracy=accuracy,
        matched=matched,
        weather_condition=weather
    )

class TestDetectPatterns(unittest.TestCase):
    """Test cases for detect_patterns."""

    def setUp(self):
        """Set up test fixtures."""
        # Three weeks; Saturdays sell double and the first two were rainy
        self.rows = []
        for i in range(21):
            day = START + timedelta(days=i)
            saturday = day.weekday() == 5
            weather = 'rain' if saturday and day < date(2024, 3, 20) else 'sunny'
            self.rows.append(comparison(day, 10, 20 if saturday else 10, weather=weather))

    def test_patterns_sorted_by_confidence(self):
        patterns = detect_patterns(self.rows, 'P1')

        self.assertEqual([p.kind for p in patterns], ['weather', 'micro_cycle', 'weekday'])
        self.assertEqual(patterns[0].condition, 'rain+weekend')
        self.assertEqual(patterns[0].description, 'Rainy weekends sell 75% more')
        self.assertEqual(patterns[1].description, 'Mid-month (days 14-16) sales up 17%')

    def test_weekday_pattern(self):
        weekday = [p for p in detect_patterns(self.rows, 'P1') if p.kind == 'weekday']

        self.assertEqual(len(weekday), 1)
        self.assertEqual(weekday[0].condition, 'weekday:5')
        self.assertEqual(weekday[0].description, 'Saturday sells 75% more')
        self.assertAlmostEqual(weekday[0].factor, 1.75)
        self.assertEqual(weekday[0].confidence, 45.0)
        self.assertEqual(weekday[0].data_points, 3)

    def test_too_few_points(self):
        self.assertEqual(detect_patterns(self.rows[:4], 'P1'), [])
        self.assertEqual(detect_patterns(self.rows, 'P2'), [])

    def test_unmatched_rows_ignored(self):
        rows = [comparison(r.date, 10, r.actual_qty, matched=False) for r in self.rows]
        self.assertEqual(detect_patterns(rows, 'P1'), [])

class TestLearningStats(unittest.TestCase):
    """Test cases for learning_stats."""

    def setUp(self):
        """Set up test fixtures."""
        # Errors shrink from 4 to 1 over ten days
        self.rows = [
            comparison(START + timedelta(days=i), 14 if i < 5 else 11, 10, accuracy=60.0 if i < 5 else 90.0)
            for i in range(10)
        ]

    def test_improvement_trend(self):
        stats = learning_stats(reversed(self.rows + [comparison(START, 10, 0, matched=False)]))

        self.assertEqual(stats.total_forecasts, 11)
        self.assertEqual(stats.matched_forecasts, 10)
        self.assertAlmostEqual(stats.improvement_trend, 3.0)
        self.assertAlmostEqual(stats.avg_bias, -2.5)
        self.assertAlmostEqual(stats.avg_accuracy, 75.0)
        self.assertEqual(stats.patterns, ())

    def test_product_filter(self):
        rows = self.rows + [comparison(START, 5, 10, product_id='P2')]

        self.assertEqual(learning_stats(rows, product_id='P2').matched_forecasts, 1)
        self.assertEqual(learning_stats(rows, product_id='P2').avg_bias, 5.0)
        self.assertEqual(learning_stats(rows).matched_forecasts, 11)

    def test_no_comparisons(self):
        self.assertEqual(learning_stats([]), LearningStats())

if __name__ == '__main__':
    unittest.main()
