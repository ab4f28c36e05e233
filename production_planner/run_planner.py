#!/usr/bin/env python
# production_planner/run_planner.py - Command line entry point for forecasts and accuracy reports

import argparse
import json
import logging
import sys
from typing import Dict, List, Optional, Tuple

from tabulate import tabulate

from production_planner.batch.accuracy_job import run_accuracy_job
from production_planner.batch.forecast_job import run_forecast_job
from production_planner.config import config
from production_planner.exceptions import PlannerError, ValidationError
from production_planner.logging_setup import get_logger, logger as log_manager
from production_planner.models import (
    BiasState, ForecastOutput, ForecastRecord, ForecastRequest, Product, SalesRecord, WeatherSignal
)
from production_planner.utils.date_utils import convert_to_date

logger = get_logger('planner_cli')

def load_input(path: str) -> Dict:
    """Read a JSON input document."""
    try:
        with open(path) as handle:
            return json.load(handle)
    except (OSError, json.JSONDecodeError) as e:
        raise ValidationError(f"Cannot read input file {path}: {str(e)}")

def load_catalog(data: Dict) -> Dict[str, Product]:
    return {p.id: p for p in (Product.from_dict(item) for item in data.get('products', []))}

def load_sales(data: Dict) -> List[SalesRecord]:
    """Parse the sales rows, skipping rows that fail validation."""
    sales = []
    for index, item in enumerate(data.get('sales', [])):
        try:
            sales.append(SalesRecord.from_dict(item))
        except ValidationError as e:
            logger.warning(f"Skipping sales row {index}: {str(e)}")
    return sales

def load_bias_states(data: Dict) -> Dict[str, BiasState]:
    return {key: BiasState.from_dict(value) for key, value in data.get('bias_states', {}).items()}

def build_request(item: Dict, catalog: Dict[str, Product], history: Tuple[SalesRecord, ...]) -> ForecastRequest:
    """Build one forecast request from an input row.

    Raises:
        ValidationError: If the row is incomplete or names an unknown product
    """
    missing = [key for key in ('product_id', 'market_id', 'target_date') if item.get(key) in (None, '')]
    if missing:
        raise ValidationError(f"Request is missing {', '.join(missing)}")

    product_id = str(item['product_id'])
    if product_id not in catalog:
        raise ValidationError(f"Product {product_id} not found in catalog")

    try:
        target_date = convert_to_date(item['target_date'])
        weather = item.get('weather')
        if weather is not None:
            weather = WeatherSignal.from_dict(dict(weather, date=weather.get('date', target_date)))
    except (KeyError, TypeError, ValueError) as e:
        raise ValidationError(f"Invalid request for product {product_id}: {str(e)}")

    return ForecastRequest(
        product_id=product_id,
        market_id=str(item['market_id']),
        target_date=target_date,
        product=catalog[product_id],
        sales_history=history,
        variant_id=item.get('variant_id'),
        weather_signal=weather
    )

def build_requests(
    data: Dict,
    catalog: Dict[str, Product],
    sales: List[SalesRecord]
) -> List[Tuple[Dict, Optional[ForecastRequest], Optional[str]]]:
    """Build forecast requests, sharing the full sales list as history.

    A bad row does not stop the others: it is returned with no request
    and the reason it was rejected.

    Returns:
        (input row, request or None, error or None) per row, in input order
    """
    history = tuple(sales)
    entries = []

    for index, item in enumerate(data.get('requests', [])):
        if not isinstance(item, dict):
            entries.append(({}, None, f"Request {index} is not an object"))
            continue
        try:
            entries.append((item, build_request(item, catalog, history), None))
        except ValidationError as e:
            logger.error(f"Rejected request {index}: {str(e)}")
            entries.append((item, None, str(e)))

    return entries

def forecast_command(args) -> int:
    """Run forecasts for the requests in the input file."""
    data = load_input(args.input)
    entries = build_requests(data, load_catalog(data), load_sales(data))
    requests = [request for _, request, _ in entries if request is not None]

    results = run_forecast_job(requests, load_bias_states(data), max_workers=args.workers)
    if not results['success']:
        logger.error(f"Forecast job failed: {results.get('error', 'Unknown error')}")
        return 1

    # Put rejected rows back in their input position
    computed = iter(results['outputs'])
    rows = []
    for item, request, error in entries:
        if request is None:
            rows.append((item, None, ForecastOutput.empty(error=error)))
        else:
            rows.append((item, request, next(computed)))
    rejected = len(entries) - len(requests)

    if args.json:
        print(json.dumps({
            'outputs': [output.to_dict() for _, _, output in rows],
            'records': [record.to_dict() for record in results['records']]
        }, indent=2))
        return 0

    table_data = []
    for item, request, output in rows:
        if request is not None:
            row_key = [request.product_id, request.variant_id or '', request.market_id,
                       request.target_date.isoformat()]
        else:
            row_key = [item.get('product_id', ''), item.get('variant_id') or '',
                       item.get('market_id', ''), str(item.get('target_date', ''))]
        table_data.append(row_key + [
            f"{output.baseline_forecast:.2f}",
            f"{output.lambda_value:.2f}",
            str(output.distribution_type),
            output.optimal_quantity,
            f"{output.prediction_interval.lower}-{output.prediction_interval.upper}",
            f"{output.service_level_target:.2f}",
            str(output.confidence_level),
            f"{output.expected_profit:.2f}",
            output.error or ''
        ])

    print("\nProduction Forecast:")
    print(tabulate(table_data, headers=[
        'Product', 'Variant', 'Market', 'Date', 'Baseline', 'Lambda', 'Distribution',
        'Produce', 'Interval', 'Service Level', 'Confidence', 'Exp. Profit', 'Error'
    ]))
    print(f"\nForecasted: {results['forecasted']}  No data: {results['no_data']}  "
          f"Errors: {results['errors'] + rejected}")
    return 0

def accuracy_command(args) -> int:
    """Score the forecasts in the input file against its sales."""
    data = load_input(args.input)
    forecasts = [ForecastRecord.from_dict(item) for item in data.get('forecasts', [])]

    results = run_accuracy_job(
        forecasts, load_sales(data), load_catalog(data).values(), load_bias_states(data)
    )
    if not results['success']:
        logger.error(f"Accuracy job failed: {results.get('error', 'Unknown error')}")
        return 1

    analysis = results['analysis']

    if args.json:
        print(json.dumps({
            'analysis': analysis.to_dict(),
            'bias_states': {key: state.to_dict() for key, state in results['bias_states'].items()}
        }, indent=2))
        return 0

    summary = analysis.summary
    print("\nAccuracy Summary:")
    print(tabulate([
        ['Days', summary.total_days],
        ['Days with data', summary.days_with_data],
        ['Forecasts', summary.total_forecasts],
        ['Matched', summary.matched_forecasts],
        ['Accuracy', f"{summary.overall_accuracy:.1f}%"],
        ['Bias', f"{summary.overall_bias_percent:+.1f}%"],
        ['Waste cost', f"{summary.total_waste_cost:.2f}"],
        ['Stockout revenue', f"{summary.total_stockout_revenue:.2f}"]
    ]))

    print("\nProducts:")
    print(tabulate(
        [[p.name, f"{p.accuracy:.1f}%", f"{p.bias_percent:+.1f}%", p.sample_size]
         for p in analysis.product_accuracy],
        headers=['Product', 'Accuracy', 'Bias', 'Samples']
    ))

    if analysis.recommendations:
        print("\nRecommendations:")
        print(tabulate(
            [[str(r.priority), r.category, r.target, r.issue, r.suggestion]
             for r in analysis.recommendations],
            headers=['Priority', 'Type', 'Target', 'Issue', 'Suggestion']
        ))

    learning = analysis.learning
    if learning is not None and learning.patterns:
        print("\nPatterns:")
        print(tabulate(
            [[p.product_id, p.kind, p.description, f"{p.confidence:.0f}", p.data_points]
             for p in learning.patterns],
            headers=['Product', 'Type', 'Pattern', 'Confidence', 'Samples']
        ))
    return 0

def main(argv=None) -> int:
    """Run the production planner CLI."""
    parser = argparse.ArgumentParser(description='Production planner forecasts and accuracy reports')
    parser.add_argument('--config', '-c', help='Settings file overriding the defaults')
    parser.add_argument('--verbose', '-v', action='store_true', help='Enable verbose logging')
    subparsers = parser.add_subparsers(dest='command', help='Command to run')

    forecast_parser = subparsers.add_parser('forecast', help='Calculate production quantities')
    forecast_parser.add_argument('input', help='JSON file with products, sales and requests')
    forecast_parser.add_argument('--workers', '-w', type=int, help='Worker threads')
    forecast_parser.add_argument('--json', action='store_true', help='Print JSON instead of a table')
    forecast_parser.set_defaults(func=forecast_command)

    accuracy_parser = subparsers.add_parser('accuracy', help='Score past forecasts against sales')
    accuracy_parser.add_argument('input', help='JSON file with products, sales, forecasts and bias states')
    accuracy_parser.add_argument('--json', action='store_true', help='Print JSON instead of tables')
    accuracy_parser.set_defaults(func=accuracy_command)

    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 1

    if args.config:
        config.load(args.config)

    if args.verbose:
        log_manager.set_level(logging.DEBUG)

    try:
        return args.func(args)
    except PlannerError as e:
        logger.error(str(e))
        return 1

if __name__ == "__main__":
    sys.exit(main())
