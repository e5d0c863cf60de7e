# stockroom/core/ledger.py
from datetime import date
from typing import Iterable, Optional

from stockroom.models import InventoryRecord, PurchaseOrder
from stockroom.utils.date_utils import to_date


def derive_usage(start_qty: float, received_qty: float, end_qty: Optional[float]) -> Optional[float]:
    """Calculate consumption for a counted day.

    Args:
        start_qty: Opening quantity
        received_qty: Quantity received that day
        end_qty: Closing count, or None when the day is not counted yet

    Returns:
        start + received - end, or None while uncounted
    """
    if end_qty is None:
        return None
    return (start_qty or 0) + (received_qty or 0) - end_qty


def carry_forward_quantity(previous: Optional[InventoryRecord]) -> float:
    """Opening quantity for a new day: yesterday's closing count, else 0."""
    if previous is None or previous.end_qty is None:
        return 0.0
    return previous.end_qty


def received_from_order(order: Optional[PurchaseOrder]) -> float:
    """Quantity booked as received from the day's purchase order, confirmed or not."""
    if order is None:
        return 0.0
    return order.received_qty


def stock_from_record(record: Optional[InventoryRecord]) -> float:
    """Stock held according to one ledger entry.

    A counted day reports its closing count; an uncounted day reports
    opening plus received, as if nothing had been used yet.
    """
    if record is None:
        return 0.0
    if record.end_qty is not None:
        return record.end_qty
    return (record.start_qty or 0) + (record.received_qty or 0)


def latest_record_on_or_before(
    records: Iterable[InventoryRecord],
    as_of: date,
    item_id: Optional[str] = None
) -> Optional[InventoryRecord]:
    """Pick the most recent record dated on or before as_of.

    Args:
        records: Records to scan
        as_of: Cut-off date (inclusive)
        item_id: Optional item filter

    Returns:
        Latest matching record, or None
    """
    latest = None
    latest_date = None

    for record in records:
        if item_id is not None and record.item_id != item_id:
            continue
        record_date = to_date(record.date)
        if record_date > as_of:
            continue
        if latest_date is None or record_date > latest_date:
            latest = record
            latest_date = record_date

    return latest
