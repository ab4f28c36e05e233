from .forecast_job import run_forecast_job
from .accuracy_job import run_accuracy_job

__all__ = ['run_forecast_job', 'run_accuracy_job']
