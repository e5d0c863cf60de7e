from .ledger import (
    derive_usage,
    carry_forward_quantity,
    received_from_order,
    stock_from_record,
    latest_record_on_or_before
)
from .replenishment import (
    recent_records,
    calculate_average_usage,
    calculate_suggested_quantity,
    is_discrete_unit,
    round_for_unit
)

__all__ = [
    'derive_usage',
    'carry_forward_quantity',
    'received_from_order',
    'stock_from_record',
    'latest_record_on_or_before',
    'recent_records',
    'calculate_average_usage',
    'calculate_suggested_quantity',
    'is_discrete_unit',
    'round_for_unit'
]
