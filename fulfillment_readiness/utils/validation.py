from typing import Any, Dict

from fulfillment_readiness.exceptions import ValidationError
from fulfillment_readiness.records import DecrementLine


def validate_quantity(qty: Any, field_name: str = 'qty') -> int:
    """Validate a stock quantity.

    Args:
        qty: Value to validate
        field_name: Name used in the error message

    Returns:
        The quantity as an int

    Raises:
        ValidationError: If the value is not a positive whole number
    """
    if isinstance(qty, bool):
        raise ValidationError(f"{field_name} deve ser um número inteiro", details={field_name: qty})

    try:
        value = int(qty)
    except (TypeError, ValueError):
        raise ValidationError(f"{field_name} deve ser um número inteiro", details={field_name: qty})

    if value != qty:
        raise ValidationError(f"{field_name} deve ser um número inteiro", details={field_name: qty})

    if value <= 0:
        raise ValidationError(f"{field_name} deve ser maior que zero", details={field_name: qty})

    return value


def validate_decrement_line(line: DecrementLine) -> Dict[str, str]:
    """Validate a decrement line.

    Args:
        line: Line to validate

    Returns:
        Dictionary with validation errors
    """
    errors = {}

    if not line.sku:
        errors['sku'] = 'SKU é obrigatório'

    if not line.location_id:
        errors['location_id'] = 'Local de estoque é obrigatório'

    try:
        validate_quantity(line.qty)
    except ValidationError as e:
        errors['qty'] = e.message

    return errors
