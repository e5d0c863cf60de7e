# stockroom/core/replenishment.py
import math
from typing import Iterable, List, Optional, Sequence
import numpy as np

from stockroom.exceptions import SuggestionError
from stockroom.models import InventoryRecord
from stockroom.utils.date_utils import to_date


def recent_records(
    records: Iterable[InventoryRecord],
    on_or_before,
    limit: int
) -> List[InventoryRecord]:
    """Get the most recent records up to a date, newest first.

    Args:
        records: Records for one item
        on_or_before: Cut-off date (inclusive)
        limit: Maximum number of records

    Returns:
        List of at most ``limit`` records
    """
    eligible = [r for r in records if to_date(r.date) <= on_or_before]
    eligible.sort(key=lambda r: r.date, reverse=True)
    return eligible[:limit]


def calculate_average_usage(records: Sequence[InventoryRecord]) -> float:
    """Calculate mean daily usage over counted records.

    Args:
        records: Records to average; uncounted ones are ignored

    Returns:
        Average usage, 0 when no record has usage
    """
    usages = [r.usage for r in records if r.usage is not None]
    if not usages:
        return 0.0
    return float(np.mean(usages))


def calculate_suggested_quantity(
    par_level: float,
    current_stock: float,
    average_usage: float,
    usage_buffer: float = 1.2,
    today_uncounted: bool = False
) -> float:
    """Calculate the raw reorder quantity.

    Precedence:
        1. Par level set: shortfall below par level.
        2. Otherwise average usage plus buffer.
        3. Otherwise 0.
    When today's count is still missing and there is usage history, the
    plain average usage replaces the above.

    Args:
        par_level: Target stock floor (0 means unset)
        current_stock: Stock on hand
        average_usage: Average daily usage
        usage_buffer: Multiplier applied to average usage
        today_uncounted: Whether today's record has no closing count

    Returns:
        Unrounded, non-negative quantity
    """
    if usage_buffer < 0:
        raise SuggestionError(f"Usage buffer cannot be negative: {usage_buffer}")

    suggested = 0.0
    if par_level and par_level > 0:
        suggested = max(0.0, par_level - current_stock)
    elif average_usage > 0:
        suggested = max(0.0, average_usage * usage_buffer)

    if today_uncounted and average_usage > 0:
        suggested = average_usage

    return suggested


def is_discrete_unit(unit: Optional[str], discrete_units: Iterable[str]) -> bool:
    """Check whether a unit names a whole container such as a box or case."""
    if not unit:
        return False
    return unit.strip().lower() in {u.strip().lower() for u in discrete_units}


def round_for_unit(
    quantity: float,
    unit: Optional[str],
    discrete_units: Iterable[str],
    places: int = 2
) -> float:
    """Round a suggested quantity to something orderable.

    Whole containers are rounded up to the next unit; everything else is
    rounded half-up to ``places`` decimals.

    Args:
        quantity: Raw quantity
        unit: Item unit of measure
        discrete_units: Unit names treated as whole containers
        places: Decimal places for other units

    Returns:
        Rounded quantity
    """
    if quantity <= 0:
        return 0.0

    if is_discrete_unit(unit, discrete_units):
        # Trim float noise first so 3.0000000000004 does not become 4
        return float(math.ceil(round(quantity, 9)))

    factor = 10 ** places
    return math.floor(quantity * factor + 0.5) / factor
