from typing import Any, Dict, Optional

from stockroom.exceptions import ValidationError
from stockroom.utils.date_utils import to_date


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and value.strip() == '')


def to_quantity(value: Any, default: float = 0.0) -> float:
    """Coerce a quantity field to float, falling back to default when unparsable."""
    if _is_blank(value):
        return default
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


def to_optional_quantity(value: Any) -> Optional[float]:
    """Coerce a nullable quantity; blank means "not given"."""
    if _is_blank(value):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        raise ValidationError(f"Invalid quantity: {value!r}", details={'quantity': 'Must be a number'})


def _check_date(errors: Dict[str, str], value: Any, field: str = 'date') -> None:
    if _is_blank(value):
        errors[field] = 'Date is required'
        return
    try:
        to_date(value)
    except ValidationError:
        errors[field] = f'Invalid date: {value}'


def validate_item_fields(name: Any, unit: Any) -> Dict[str, str]:
    """Validate the required fields of a new catalog item.

    Args:
        name: Display name
        unit: Unit of measure

    Returns:
        Dictionary with validation errors
    """
    errors = {}

    if _is_blank(name):
        errors['name'] = 'Item name is required'

    if _is_blank(unit):
        errors['unit'] = 'Unit is required'

    return errors


def validate_count(date_value: Any, item_id: Any) -> Dict[str, str]:
    """Validate an inventory count submission.

    Args:
        date_value: Count date
        item_id: Item ID

    Returns:
        Dictionary with validation errors
    """
    errors = {}
    _check_date(errors, date_value)

    if _is_blank(item_id):
        errors['item_id'] = 'Item ID is required'

    return errors


def validate_purchase_order(date_value: Any, item_id: Any, planned_qty: Any) -> Dict[str, str]:
    """Validate a purchase order submission.

    Args:
        date_value: Order date
        item_id: Item ID
        planned_qty: Planned quantity

    Returns:
        Dictionary with validation errors
    """
    errors = validate_count(date_value, item_id)

    if planned_qty is None:
        errors['planned_qty'] = 'Planned quantity is required'
    else:
        try:
            float(planned_qty)
        except (TypeError, ValueError):
            errors['planned_qty'] = f'Invalid planned quantity: {planned_qty}'

    return errors


def raise_if_invalid(errors: Dict[str, str], message: str) -> None:
    """Raise ValidationError carrying the error dictionary, if it is not empty."""
    if errors:
        raise ValidationError(message, details=errors)
