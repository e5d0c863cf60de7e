from .date_utils import to_date, date_key, today, tomorrow, get_week_window, get_month_window, days_between
from .concurrency import fan_out
from .validation import validate_item_fields, validate_count, validate_purchase_order

__all__ = [
    'to_date',
    'date_key',
    'today',
    'tomorrow',
    'get_week_window',
    'get_month_window',
    'days_between',
    'fan_out',
    'validate_item_fields',
    'validate_count',
    'validate_purchase_order'
]
