from .config import config
from .logging_setup import logger, get_logger
from .exceptions import (
    PlannerError, ConfigError, ValidationError, ForecastError, DistributionError,
    OptimizationError, AccuracyError, CalculationError
)
from .services import ForecastService, AccuracyService, SalesRepository, InMemorySalesRepository

__version__ = '0.1.0'

__all__ = [
    'config',
    'logger',
    'get_logger',
    'PlannerError',
    'ConfigError',
    'ValidationError',
    'ForecastError',
    'DistributionError',
    'OptimizationError',
    'AccuracyError',
    'CalculationError',
    'ForecastService',
    'AccuracyService',
    'SalesRepository',
    'InMemorySalesRepository'
]
