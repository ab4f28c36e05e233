from .date_utils import convert_to_date, weekday_name, is_payday_period
from .math_utils import clamp_probability, safe_divide, linear_regression, coefficient_of_variation

__all__ = [
    'convert_to_date',
    'weekday_name',
    'is_payday_period',
    'clamp_probability',
    'safe_divide',
    'linear_regression',
    'coefficient_of_variation'
]
