# stockroom/models.py
from dataclasses import dataclass, asdict, fields
from typing import Any, Dict, Optional
import enum


class ReportPeriod(enum.Enum):
    """Enum for report period kinds.

    Values:
        DAY ('day'): One calendar day, every counted record kept
        WEEK ('week'): Monday-anchored 7-day window, one summary row per item
        MONTH ('month'): Calendar month, one summary row per item
    """
    DAY = 'day'
    WEEK = 'week'
    MONTH = 'month'

    def __str__(self):
        """Return the string value of the enum."""
        return self.value

    @classmethod
    def from_string(cls, value: str) -> 'ReportPeriod':
        """Create a ReportPeriod from a string value.

        Args:
            value: String value ('day', 'week', 'month')

        Returns:
            ReportPeriod enum value

        Raises:
            ValueError if the string value is not valid
        """
        try:
            return cls((value or '').strip().lower())
        except ValueError:
            raise ValueError(f"Invalid report period: {value}. Valid values are: day, week, month")


class _Record:
    """Mixin for records stored as JSON documents in the key-value store."""

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]):
        if not data:
            return None
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in data.items() if k in known})


@dataclass
class Item(_Record):
    """A tracked material in the catalog."""
    id: str
    name: str
    unit: str
    par_level: float = 0.0
    safety_stock: float = 0.0
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


@dataclass
class PurchaseOrder(_Record):
    """A planned or confirmed delivery for one (date, item) pair."""
    id: str
    date: str
    item_id: str
    planned_qty: float = 0.0
    confirmed: bool = False
    actual_qty: Optional[float] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    @property
    def received_qty(self) -> float:
        """Quantity the ledger books as received: actual, else planned, else 0."""
        if self.actual_qty is not None:
            return self.actual_qty
        if self.planned_qty is not None:
            return self.planned_qty
        return 0.0


@dataclass
class InventoryRecord(_Record):
    """Ledger entry for one (date, item) pair.

    ``end_qty`` and ``usage`` stay None until the day is counted.
    """
    id: str
    date: str
    item_id: str
    start_qty: float = 0.0
    received_qty: float = 0.0
    end_qty: Optional[float] = None
    usage: Optional[float] = None
    confirmed: bool = False
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    @property
    def is_counted(self) -> bool:
        return self.end_qty is not None
