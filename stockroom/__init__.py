from .config import config
from .db import db, get_store
from .logging_setup import logger, get_logger
from .exceptions import StockroomError, ValidationError, NotFoundError, StorageError, ReportingError

__all__ = [
    'config',
    'db',
    'get_store',
    'logger',
    'get_logger',
    'StockroomError',
    'ValidationError',
    'NotFoundError',
    'StorageError',
    'ReportingError'
]
