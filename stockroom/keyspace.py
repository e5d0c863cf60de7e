# stockroom/keyspace.py
"""Key naming for the flat key-value substrate.

Every entity lives under a primary key and is reachable through secondary
keys that stand in for relational features:

    item:{id}                     primary record
    items:list                    global id-set (full-table scan)
    purchase:{id}                 primary record
    purchase:{date}:{item_id}     natural-key lookup -> id
    purchases:date:{date}         day-bucket id-set
    purchases:list                global id-set
    inventory:{id}                primary record
    inventory:{date}:{item_id}    natural-key lookup -> id
    inventories:date:{date}       day-bucket id-set
    inventories:list              global id-set

Dates in keys are always ``YYYY-MM-DD``.
"""
import time
import uuid


def item_key(item_id: str) -> str:
    return f"item:{item_id}"


def items_list_key() -> str:
    return "items:list"


def purchase_key(order_id: str) -> str:
    return f"purchase:{order_id}"


def purchase_lookup_key(date_key: str, item_id: str) -> str:
    return f"purchase:{date_key}:{item_id}"


def purchases_by_date_key(date_key: str) -> str:
    return f"purchases:date:{date_key}"


def purchases_list_key() -> str:
    return "purchases:list"


def inventory_key(record_id: str) -> str:
    return f"inventory:{record_id}"


def inventory_lookup_key(date_key: str, item_id: str) -> str:
    return f"inventory:{date_key}:{item_id}"


def inventories_by_date_key(date_key: str) -> str:
    return f"inventories:date:{date_key}"


def inventories_list_key() -> str:
    return "inventories:list"


def generate_id() -> str:
    """Generate an opaque, timestamp-prefixed unique id."""
    return f"{int(time.time() * 1000)}-{uuid.uuid4().hex[:9]}"
