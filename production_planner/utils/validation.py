from typing import Dict, Optional

from production_planner.models import Product, SalesRecord, ForecastRequest
from production_planner.exceptions import ValidationError

def validate_product(product: Product, variant_id: Optional[str] = None) -> Dict[str, str]:
    """Validate a catalog product.

    Args:
        product: Product to validate
        variant_id: Optional variant the forecast is for

    Returns:
        Dictionary with validation errors
    """
    errors = {}

    if not product.id:
        errors['id'] = 'Product ID is required'

    price, cost = product.unit_economics(variant_id)

    if price is None or price < 0:
        errors['price'] = 'Price must be a non-negative number'

    if cost is None or cost < 0:
        errors['cost'] = 'Cost must be a non-negative number'

    return errors

def validate_sales_record(record: SalesRecord) -> Dict[str, str]:
    """Validate a sales record.

    Args:
        record: Sales record to validate

    Returns:
        Dictionary with validation errors
    """
    errors = {}

    if not record.product_id:
        errors['product_id'] = 'Product ID is required'

    if record.quantity_sold < 0:
        errors['quantity_sold'] = 'Quantity sold cannot be negative'

    return errors

def validate_forecast_request(request: ForecastRequest) -> Dict[str, str]:
    """Validate a forecast request and its product."""
    errors = {}

    if not request.product_id:
        errors['product_id'] = 'Product ID is required'

    if not request.market_id:
        errors['market_id'] = 'Market ID is required'

    if request.target_date is None:
        errors['target_date'] = 'Target date is required'

    if request.product is None:
        errors['product'] = 'Product is required'
    else:
        for key, message in validate_product(request.product, request.variant_id).items():
            errors[f"product.{key}"] = message

    return errors

def ensure_valid_request(request: ForecastRequest) -> None:
    """Raise ValidationError if the forecast request is invalid."""
    errors = validate_forecast_request(request)
    if errors:
        raise ValidationError(
            f"Invalid forecast request for product {request.product_id}",
            details=errors
        )
