# stockroom/db/__init__.py
from stockroom.config import config
from stockroom.exceptions import ConfigError

from .interface import KeyValueStore
from .memory import InMemoryStore
from .sql_store import SqlAlchemyStore
from .connection import Database, db


def get_store(backend=None) -> KeyValueStore:
    """Build the configured key-value store.

    Args:
        backend: Optional backend name overriding configuration ('memory' or 'sql')

    Returns:
        KeyValueStore instance
    """
    backend = (backend or config.storage_config['backend']).lower()

    if backend == 'memory':
        return InMemoryStore()
    if backend == 'sql':
        return SqlAlchemyStore(db.engine)

    raise ConfigError(f"Unknown storage backend: {backend}")


__all__ = [
    'KeyValueStore',
    'InMemoryStore',
    'SqlAlchemyStore',
    'Database',
    'db',
    'get_store'
]
