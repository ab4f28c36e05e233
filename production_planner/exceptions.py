# production_planner/exceptions.py

class PlannerError(Exception):
    """Base exception for Production Planner errors.

    Subclasses only change the message used when none is given.
    """

    default_message = "An error occurred in the Production Planner"

    def __init__(self, message=None, code=None, details=None):
        """Initialize the exception.

        Args:
            message: Error message
            code: Error code
            details: Additional error details, e.g. field -> problem
        """
        self.message = message or self.default_message
        self.code = code
        self.details = details
        super().__init__(self.message)

    def __str__(self):
        if self.code:
            return f"[{self.code}] {self.message}"
        return self.message

    def to_dict(self):
        """Convert the exception to a JSON friendly dictionary."""
        payload = {'error': type(self).__name__, 'message': self.message}
        if self.code:
            payload['code'] = self.code
        if self.details:
            payload['details'] = self.details
        return payload


class ConfigError(PlannerError):
    """Settings file missing or unreadable."""
    default_message = "Configuration error"


class ValidationError(PlannerError):
    """Invalid product, sales record or forecast request."""
    default_message = "Validation error"


class ForecastError(PlannerError):
    default_message = "Forecasting error"


class DistributionError(PlannerError):
    """A demand distribution cannot be built or evaluated."""
    default_message = "Demand distribution error"


class OptimizationError(PlannerError):
    default_message = "Production optimization error"


class AccuracyError(PlannerError):
    default_message = "Accuracy analysis error"


class CalculationError(PlannerError):
    default_message = "Calculation error"
