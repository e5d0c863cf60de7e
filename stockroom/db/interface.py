# stockroom/db/interface.py
from abc import ABC, abstractmethod
from contextlib import contextmanager
from typing import Any, List, Optional


class KeyValueStore(ABC):
    """Abstract key-value substrate.

    Offers single-key get/set/delete and set-typed keys. There are no range
    queries and no secondary indexes; callers build those from keys.
    Values must be JSON-serialisable. Backend failures raise StorageError.
    """

    @abstractmethod
    def get(self, key: str) -> Optional[Any]:
        """Get the value stored at key, or None when absent."""
        pass

    @abstractmethod
    def set(self, key: str, value: Any) -> None:
        """Store value at key, replacing any previous value."""
        pass

    @abstractmethod
    def delete(self, key: str) -> None:
        """Remove key. Deleting an absent key is a no-op."""
        pass

    @abstractmethod
    def sadd(self, set_key: str, member: str) -> None:
        """Add member to the set stored at set_key."""
        pass

    @abstractmethod
    def srem(self, set_key: str, member: str) -> None:
        """Remove member from the set stored at set_key."""
        pass

    @abstractmethod
    def smembers(self, set_key: str) -> List[str]:
        """List the members of the set stored at set_key, in insertion order."""
        pass

    def set_if_absent(self, key: str, value: Any) -> bool:
        """Store value only when key is absent.

        Backends that can do this atomically override it; this fallback is a
        plain read-then-write.

        Returns:
            True if the value was written
        """
        if self.get(key) is not None:
            return False
        self.set(key, value)
        return True

    @contextmanager
    def atomic(self):
        """Group several writes so they commit together where supported."""
        yield self
