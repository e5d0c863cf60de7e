from .item_service import ItemService
from .purchase_service import PurchaseService
from .inventory_service import InventoryService
from .suggestion_service import SuggestionService
from .reporting_service import ReportingService
from .reconciliation_service import ReconciliationService

__all__ = [
    'ItemService',
    'PurchaseService',
    'InventoryService',
    'SuggestionService',
    'ReportingService',
    'ReconciliationService'
]
