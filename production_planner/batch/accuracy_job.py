# production_planner/batch/accuracy_job.py
from datetime import datetime
from typing import Dict, Iterable, Optional

from production_planner.logging_setup import get_logger, log_exception, logger as log_manager
from production_planner.models import BiasState, ForecastRecord, Product, SalesRecord
from production_planner.services.accuracy_service import AccuracyService

# Initialize logger
logger = get_logger('accuracy_job')

def run_accuracy_job(
    forecasts: Iterable[ForecastRecord],
    sales: Iterable[SalesRecord],
    catalog: Iterable[Product],
    bias_states: Optional[Dict[str, BiasState]] = None
) -> Dict:
    """Score past forecasts and update the bias states from their errors.

    Args:
        forecasts: Persisted forecast records
        sales: Realized sales records
        catalog: Product catalog
        bias_states: Current bias state per item key

    Returns:
        Dictionary with the analysis result and the new bias states
    """
    forecasts = list(forecasts)
    log_info = log_manager.batch_start_log('forecast_accuracy', {'forecasts': len(forecasts)})

    start_time = datetime.now()
    results = {
        'start_time': start_time,
        'end_time': None,
        'duration': None,
        'analysis': None,
        'bias_states': dict(bias_states or {})
    }

    try:
        service = AccuracyService()
        analysis = service.analyze(forecasts, sales, catalog)

        results['analysis'] = analysis
        results['bias_states'] = service.update_bias_states(analysis, bias_states)
        results['success'] = True

        for recommendation in analysis.recommendations:
            logger.info(
                f"[{recommendation.priority}] {recommendation.category} {recommendation.target}: "
                f"{recommendation.issue}; {recommendation.suggestion}"
            )

    except Exception as e:
        log_exception('accuracy_job', e, "Error during accuracy job")
        results['success'] = False
        results['error'] = str(e)

    results['end_time'] = datetime.now()
    results['duration'] = results['end_time'] - start_time

    result_info = None
    if results['analysis'] is not None:
        summary = results['analysis'].summary
        result_info = {
            'matched': summary.matched_forecasts,
            'accuracy': round(summary.overall_accuracy, 1),
            'recommendations': len(results['analysis'].recommendations)
        }

    log_manager.batch_end_log(log_info, success=results['success'], result_info=result_info)

    return results
