# production_planner/batch/forecast_job.py
from datetime import datetime
from typing import Dict, Optional, Sequence

from production_planner.config import config
from production_planner.logging_setup import get_logger, log_exception, logger as log_manager
from production_planner.models import BiasState, ForecastRecord, ForecastRequest
from production_planner.services.forecast_service import ForecastService, WeatherProvider
from production_planner.services.sales_repository import SalesRepository

# Initialize logger
logger = get_logger('forecast_job')

def run_forecast_job(
    requests: Sequence[ForecastRequest],
    bias_states: Optional[Dict[str, BiasState]] = None,
    sales_repository: Optional[SalesRepository] = None,
    weather_provider: Optional[WeatherProvider] = None,
    max_workers: Optional[int] = None
) -> Dict:
    """Run the production forecast batch.

    Args:
        requests: Forecast requests, one per item, market and date
        bias_states: Bias state per item key
        sales_repository: History source for requests without history
        weather_provider: Optional weather lookup
        max_workers: Worker threads, defaults to BATCH_PROCESS.max_workers

    Returns:
        Dictionary with job results; outputs and records follow request order
    """
    workers = max_workers or config.batch_config['max_workers']
    log_info = log_manager.batch_start_log(
        'production_forecast',
        {'items': len(requests), 'max_workers': workers}
    )

    start_time = datetime.now()
    results = {
        'start_time': start_time,
        'end_time': None,
        'duration': None,
        'total_items': len(requests),
        'forecasted': 0,
        'no_data': 0,
        'errors': 0,
        'outputs': [],
        'records': []
    }

    try:
        service = ForecastService(sales_repository, weather_provider)
        outputs = service.calculate_batch(requests, bias_states, max_workers=workers)

        for request, output in zip(requests, outputs):
            if output.error:
                results['errors'] += 1
            elif output.no_data:
                results['no_data'] += 1
            else:
                results['forecasted'] += 1
                results['records'].append(ForecastRecord.from_output(output, request))

        results['outputs'] = outputs
        results['success'] = True

        logger.info(
            f"Forecasted {results['forecasted']} of {len(requests)} items "
            f"({results['no_data']} without history, {results['errors']} failed)"
        )

    except Exception as e:
        log_exception('forecast_job', e, "Error during forecast job")
        results['success'] = False
        results['error'] = str(e)

    results['end_time'] = datetime.now()
    results['duration'] = results['end_time'] - start_time

    log_manager.batch_end_log(
        log_info,
        success=results['success'],
        result_info={
            'forecasted': results['forecasted'],
            'no_data': results['no_data'],
            'errors': results['errors']
        }
    )

    return results
