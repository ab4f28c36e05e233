from .sales_repository import SalesRepository, InMemorySalesRepository
from .forecast_service import ForecastService
from .accuracy_service import AccuracyService

__all__ = [
    'SalesRepository',
    'InMemorySalesRepository',
    'ForecastService',
    'AccuracyService'
]
