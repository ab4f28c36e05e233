"""
Unit tests for the command line entry point.
"""
import io
import json
import os
import tempfile
import unittest
from contextlib import redirect_stdout

from production_planner.run_planner import main

PRODUCTS = [{'id': 'P1', 'name': 'Cake', 'price': 50, 'cost': 30}]

SALES = [
    {'sale_date': f'2024-03-{day}', 'product_id': 'P1', 'market_id': 'M1',
     'quantity_sold': qty, 'price': 50, 'cost': 30}
    for day, qty in zip(range(11, 16), [10, 12, 9, 11, 10])
]

class TestCommandLine(unittest.TestCase):
    """Test cases for run_planner.main."""

    def setUp(self):
        """Set up test fixtures."""
        self.tmp = tempfile.TemporaryDirectory()
        self.addCleanup(self.tmp.cleanup)

    def write_input(self, data):
        path = os.path.join(self.tmp.name, 'input.json')
        with open(path, 'w') as handle:
            json.dump(data, handle)
        return path

    def run_main(self, argv):
        buffer = io.StringIO()
        with redirect_stdout(buffer):
            code = main(argv)
        return code, buffer.getvalue()

    def test_forecast_json(self):
        path = self.write_input({
            'products': PRODUCTS,
            'sales': SALES,
            'requests': [{
                'product_id': 'P1', 'market_id': 'M1', 'target_date': '2024-03-16',
                'weather': {'condition': 'rain'}
            }]
        })

        code, out = self.run_main(['forecast', path, '--json'])
        payload = json.loads(out)

        self.assertEqual(code, 0)
        self.assertEqual(payload['outputs'][0]['optimal_quantity'], 6)
        self.assertEqual(payload['outputs'][0]['distribution_type'], 'poisson')
        self.assertEqual(payload['records'][0]['weather_condition'], 'rain')

    def test_forecast_table(self):
        path = self.write_input({
            'products': PRODUCTS,
            'sales': SALES,
            'requests': [{'product_id': 'P1', 'market_id': 'M1', 'target_date': '2024-03-16'}]
        })

        code, out = self.run_main(['forecast', path])

        self.assertEqual(code, 0)
        self.assertIn('Production Forecast', out)
        self.assertIn('Forecasted: 1', out)

    def test_unknown_product_does_not_abort_batch(self):
        path = self.write_input({
            'products': PRODUCTS,
            'sales': SALES,
            'requests': [
                {'product_id': 'P1', 'market_id': 'M1', 'target_date': '2024-03-16'},
                {'product_id': 'P9', 'market_id': 'M1', 'target_date': '2024-03-16'},
                {'product_id': 'P1', 'target_date': '2024-03-16'}
            ]
        })

        code, out = self.run_main(['forecast', path, '--json'])
        payload = json.loads(out)
        outputs = payload['outputs']

        self.assertEqual(code, 0)
        self.assertEqual(len(outputs), 3)
        self.assertFalse(outputs[0]['no_data'])
        self.assertGreater(outputs[0]['optimal_quantity'], 0)
        self.assertTrue(outputs[1]['no_data'])
        self.assertIn('P9 not found', outputs[1]['error'])
        self.assertIn('market_id', outputs[2]['error'])
        self.assertEqual(len(payload['records']), 1)

    def test_rejected_requests_counted_in_table(self):
        path = self.write_input({
            'products': PRODUCTS,
            'sales': SALES,
            'requests': [
                {'product_id': 'P1', 'market_id': 'M1', 'target_date': '2024-03-16'},
                {'product_id': 'P9', 'market_id': 'M1', 'target_date': '2024-03-16'}
            ]
        })

        code, out = self.run_main(['forecast', path])

        self.assertEqual(code, 0)
        self.assertIn('Forecasted: 1', out)
        self.assertIn('Errors: 1', out)

    def test_invalid_sales_rows_skipped(self):
        bad_row = dict(SALES[0], sale_date='2024-03-10', quantity_sold=-4)
        path = self.write_input({
            'products': PRODUCTS,
            'sales': SALES + [bad_row, {'product_id': 'P1'}],
            'requests': [{'product_id': 'P1', 'market_id': 'M1', 'target_date': '2024-03-16'}]
        })

        code, out = self.run_main(['forecast', path, '--json'])
        output = json.loads(out)['outputs'][0]

        self.assertEqual(code, 0)
        self.assertEqual(output['data_points'], 5)
        self.assertAlmostEqual(output['baseline_forecast'], 10.4)

    def test_accuracy_json(self):
        path = self.write_input({
            'products': PRODUCTS,
            'sales': SALES,
            'forecasts': [{'forecast_for_date': '2024-03-15', 'product_id': 'P1',
                           'market_id': 'M1', 'optimal_quantity': 8}]
        })

        code, out = self.run_main(['accuracy', path, '--json'])
        payload = json.loads(out)

        self.assertEqual(code, 0)
        self.assertEqual(payload['analysis']['summary']['matched_forecasts'], 1)
        self.assertAlmostEqual(payload['analysis']['summary']['overall_accuracy'], 80.0)
        self.assertEqual(payload['bias_states']['P1::M1']['observations'], 1)
        self.assertEqual(payload['analysis']['learning']['matched_forecasts'], 1)

    def test_missing_command(self):
        code, _ = self.run_main([])
        self.assertEqual(code, 1)

if __name__ == '__main__':
    unittest.main()
