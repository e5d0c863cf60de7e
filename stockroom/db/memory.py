# stockroom/db/memory.py
import json
import threading
from contextlib import contextmanager
from typing import Any, Dict, List, Optional

from stockroom.db.interface import KeyValueStore
from stockroom.exceptions import StorageError


class InMemoryStore(KeyValueStore):
    """Process-local key-value store.

    Values are kept as JSON text so every read hands back a fresh copy, the
    same as a remote store would.
    """

    def __init__(self):
        self._values: Dict[str, str] = {}
        self._sets: Dict[str, Dict[str, None]] = {}
        self._lock = threading.RLock()

    @staticmethod
    def _dump(key: str, value: Any) -> str:
        try:
            return json.dumps(value, ensure_ascii=False)
        except (TypeError, ValueError) as e:
            raise StorageError(f"Value for key {key} is not JSON serialisable: {str(e)}")

    def get(self, key: str) -> Optional[Any]:
        with self._lock:
            raw = self._values.get(key)
        return json.loads(raw) if raw is not None else None

    def set(self, key: str, value: Any) -> None:
        raw = self._dump(key, value)
        with self._lock:
            self._values[key] = raw

    def delete(self, key: str) -> None:
        with self._lock:
            self._values.pop(key, None)

    def sadd(self, set_key: str, member: str) -> None:
        with self._lock:
            self._sets.setdefault(set_key, {})[member] = None

    def srem(self, set_key: str, member: str) -> None:
        with self._lock:
            members = self._sets.get(set_key)
            if members is not None:
                members.pop(member, None)
                if not members:
                    del self._sets[set_key]

    def smembers(self, set_key: str) -> List[str]:
        with self._lock:
            return list(self._sets.get(set_key, {}))

    def set_if_absent(self, key: str, value: Any) -> bool:
        raw = self._dump(key, value)
        with self._lock:
            if key in self._values:
                return False
            self._values[key] = raw
            return True

    @contextmanager
    def atomic(self):
        # Holding the re-entrant lock keeps other writers out until the block ends.
        with self._lock:
            yield self

    def keys(self) -> List[str]:
        """List every plain key. Used by tests and diagnostics only."""
        with self._lock:
            return list(self._values)
