class StockroomError(Exception):
    """Base exception for the stockroom ledger.

    Args:
        message: Error message, defaults to the class's ``default_message``
        code: Optional short error code shown in ``str()``
        details: Optional mapping, e.g. per-field validation errors
    """

    default_message = "Stockroom ledger error"

    def __init__(self, message=None, code=None, details=None):
        self.message = message or self.default_message
        self.code = code
        self.details = details
        super().__init__(self.message)

    def __str__(self):
        return f"[{self.code}] {self.message}" if self.code else self.message

    def to_dict(self):
        """Serializable form, used by the CLI and batch results."""
        payload = {'error': type(self).__name__, 'message': self.message}
        if self.code:
            payload['code'] = self.code
        if self.details:
            payload['details'] = self.details
        return payload


class ConfigError(StockroomError):
    """Unreadable settings or an unknown storage backend."""
    default_message = "Configuration error"


class StorageError(StockroomError):
    """A call to the key-value substrate failed."""
    default_message = "Storage error"


class ValidationError(StockroomError):
    """Missing or malformed input, raised before any write."""
    default_message = "Validation error"


class NotFoundError(StockroomError):
    """A referenced item, order or ledger entry does not exist."""
    default_message = "Resource not found"


class SuggestionError(StockroomError):
    default_message = "Suggestion error"


class ReportingError(StockroomError):
    default_message = "Reporting error"
