# stockroom/db/connection.py
from sqlalchemy import create_engine
from sqlalchemy.engine import make_url

from stockroom.config import config
from stockroom.db.schema import Base


class Database:
    """Engine holder for the SQL key-value store and its schema."""

    _instance = None

    def __new__(cls):
        """Singleton pattern implementation."""
        if cls._instance is None:
            cls._instance = super(Database, cls).__new__(cls)
            cls._instance._engine = None
        return cls._instance

    def initialize(self, connection_string=None):
        """Create the engine.

        Args:
            connection_string: Optional SQLAlchemy URL.
                              If not provided, will use configuration.
        """
        storage = config.storage_config
        if connection_string is None:
            connection_string = storage['url']

        engine_options = {'echo': storage['echo']}

        # SQLite picks its own pool; the sizing options only apply to server databases
        if make_url(connection_string).get_backend_name() == 'sqlite':
            engine_options['connect_args'] = {'check_same_thread': False}
        else:
            engine_options.update(
                pool_size=storage['pool_size'],
                max_overflow=storage['max_overflow'],
                pool_recycle=storage['pool_recycle'],
                pool_pre_ping=True
            )

        self._engine = create_engine(connection_string, **engine_options)

    @property
    def engine(self):
        """Get the database engine, creating it from configuration on first use."""
        if self._engine is None:
            self.initialize()
        return self._engine

    def create_all_tables(self):
        """Create the key-value tables."""
        Base.metadata.create_all(self.engine)

    def drop_all_tables(self):
        """Drop the key-value tables."""
        Base.metadata.drop_all(self.engine)


# Global database instance
db = Database()
