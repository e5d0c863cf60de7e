# stockroom/db/sql_store.py
import json
import logging
import threading
from contextlib import contextmanager
from typing import Any, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from stockroom.db.interface import KeyValueStore
from stockroom.db.schema import Base, KeyValueEntry, KeyValueSetMember
from stockroom.exceptions import StorageError

logger = logging.getLogger(__name__)


class SqlAlchemyStore(KeyValueStore):
    """Key-value store kept in two SQL tables.

    Each call runs in its own transaction unless it happens inside an
    ``atomic()`` block, in which case every call on that thread shares one
    session and the block commits once.
    """

    def __init__(self, engine, create_tables: bool = True):
        """Initialize the store.

        Args:
            engine: SQLAlchemy engine
            create_tables: Whether to create the key-value tables if missing
        """
        self._engine = engine
        self._session_factory = sessionmaker(bind=engine, expire_on_commit=False)
        self._local = threading.local()

        if create_tables:
            try:
                Base.metadata.create_all(engine)
            except SQLAlchemyError as e:
                raise StorageError(f"Could not create key-value tables: {str(e)}")

    @contextmanager
    def _session(self):
        active = getattr(self._local, 'session', None)
        if active is not None:
            yield active
            return

        session = self._session_factory()
        try:
            yield session
            session.commit()
        except SQLAlchemyError as e:
            session.rollback()
            logger.error(f"Key-value operation failed: {str(e)}")
            raise StorageError(f"Storage operation failed: {str(e)}")
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    @contextmanager
    def atomic(self):
        if getattr(self._local, 'session', None) is not None:
            # Already inside a transaction on this thread
            yield self
            return

        session = self._session_factory()
        self._local.session = session
        try:
            yield self
            session.commit()
        except SQLAlchemyError as e:
            session.rollback()
            logger.error(f"Key-value transaction rolled back: {str(e)}")
            raise StorageError(f"Storage transaction failed: {str(e)}")
        except Exception:
            session.rollback()
            raise
        finally:
            self._local.session = None
            session.close()

    def _insert_ignore(self, session, model, values) -> bool:
        """Insert a row unless it collides with an existing key.

        Returns:
            True if the row was inserted
        """
        dialect = self._engine.dialect.name
        if dialect == 'sqlite':
            from sqlalchemy.dialects.sqlite import insert
        elif dialect == 'postgresql':
            from sqlalchemy.dialects.postgresql import insert
        else:
            insert = None

        if insert is None:
            # Generic path for other dialects: not atomic across connections
            if model is KeyValueEntry:
                exists = session.get(KeyValueEntry, values['key']) is not None
            else:
                exists = session.query(KeyValueSetMember).filter_by(
                    set_key=values['set_key'], member=values['member']
                ).first() is not None
            if exists:
                return False
            session.add(model(**values))
            session.flush()
            return True

        session.flush()
        result = session.execute(insert(model).values(**values).on_conflict_do_nothing())
        return result.rowcount == 1

    def get(self, key: str) -> Optional[Any]:
        with self._session() as session:
            entry = session.get(KeyValueEntry, key)
            return json.loads(entry.value) if entry is not None else None

    def set(self, key: str, value: Any) -> None:
        raw = json.dumps(value, ensure_ascii=False)
        with self._session() as session:
            entry = session.get(KeyValueEntry, key)
            if entry is None:
                session.add(KeyValueEntry(key=key, value=raw))
            else:
                entry.value = raw
            session.flush()

    def delete(self, key: str) -> None:
        with self._session() as session:
            session.query(KeyValueEntry).filter(
                KeyValueEntry.key == key
            ).delete(synchronize_session='fetch')

    def sadd(self, set_key: str, member: str) -> None:
        with self._session() as session:
            self._insert_ignore(session, KeyValueSetMember, {'set_key': set_key, 'member': member})

    def srem(self, set_key: str, member: str) -> None:
        with self._session() as session:
            session.query(KeyValueSetMember).filter(
                KeyValueSetMember.set_key == set_key,
                KeyValueSetMember.member == member
            ).delete(synchronize_session=False)

    def smembers(self, set_key: str) -> List[str]:
        with self._session() as session:
            rows = session.query(KeyValueSetMember.member).filter(
                KeyValueSetMember.set_key == set_key
            ).order_by(KeyValueSetMember.id).all()
            return [row.member for row in rows]

    def set_if_absent(self, key: str, value: Any) -> bool:
        raw = json.dumps(value, ensure_ascii=False)
        with self._session() as session:
            return self._insert_ignore(session, KeyValueEntry, {'key': key, 'value': raw})
