import os
import configparser
from pathlib import Path

class Config:
    """Configuration manager for the stockroom ledger."""

    _instance = None

    def __new__(cls):
        """Singleton pattern implementation."""
        if cls._instance is None:
            cls._instance = super(Config, cls).__new__(cls)
            cls._instance._initialized = False
        return cls._instance

    def __init__(self):
        """Initialize the configuration if not already initialized."""
        if self._initialized:
            return

        self._config_dir = Path(os.getenv('STOCKROOM_CONFIG_DIR', 'config'))
        self._config_path = self._config_dir / 'settings.ini'
        self._config = configparser.ConfigParser(interpolation=None)

        # Create config directory if it doesn't exist
        if not self._config_dir.exists():
            self._config_dir.mkdir(parents=True)

        # Load config or create default
        if self._config_path.exists():
            self._config.read(self._config_path, encoding='utf-8')
        else:
            self._create_default_config()

        self._initialized = True

    def _create_default_config(self):
        """Create default configuration file."""
        self._config['STORAGE'] = {
            'backend': 'sql',
            'url': 'sqlite:///stockroom.db',
            'echo': 'False',
            'pool_size': '5',
            'max_overflow': '10',
            'pool_recycle': '1800'
        }

        self._config['LOGGING'] = {
            'level': 'INFO',
            'format': '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
            'directory': 'logs',
            'max_size_mb': '10',
            'backup_count': '5',
            'console_output': 'True'
        }

        self._config['LEDGER'] = {
            'timezone': 'UTC',
            'history_days': '30',
            'usage_buffer': '1.2',
            'discrete_units': 'box,case,箱,箱装',
            'rounding_places': '2'
        }

        self._config['BATCH_PROCESS'] = {
            'max_workers': '8'
        }

        with open(self._config_path, 'w', encoding='utf-8') as configfile:
            self._config.write(configfile)

    def get(self, section, key, default=None):
        """Get configuration value."""
        try:
            return self._config.get(section, key)
        except (configparser.NoSectionError, configparser.NoOptionError):
            return default

    def get_int(self, section, key, default=None):
        """Get configuration value as integer."""
        try:
            return self._config.getint(section, key)
        except (configparser.NoSectionError, configparser.NoOptionError, ValueError):
            return default

    def get_float(self, section, key, default=None):
        """Get configuration value as float."""
        try:
            return self._config.getfloat(section, key)
        except (configparser.NoSectionError, configparser.NoOptionError, ValueError):
            return default

    def get_boolean(self, section, key, default=None):
        """Get configuration value as boolean."""
        try:
            return self._config.getboolean(section, key)
        except (configparser.NoSectionError, configparser.NoOptionError, ValueError):
            return default

    @property
    def storage_config(self):
        """Get key-value storage configuration."""
        return {
            'backend': self.get('STORAGE', 'backend', 'sql').lower(),
            'url': self.get('STORAGE', 'url', 'sqlite:///stockroom.db'),
            'echo': self.get_boolean('STORAGE', 'echo', False),
            'pool_size': self.get_int('STORAGE', 'pool_size', 5),
            'max_overflow': self.get_int('STORAGE', 'max_overflow', 10),
            'pool_recycle': self.get_int('STORAGE', 'pool_recycle', 1800)
        }

    @property
    def log_config(self):
        """Get logging configuration."""
        return {
            'level': self.get('LOGGING', 'level', 'INFO'),
            'format': self.get('LOGGING', 'format', '%(asctime)s - %(name)s - %(levelname)s - %(message)s'),
            'directory': self.get('LOGGING', 'directory', 'logs'),
            'max_size_mb': self.get_int('LOGGING', 'max_size_mb', 10),
            'backup_count': self.get_int('LOGGING', 'backup_count', 5),
            'console_output': self.get_boolean('LOGGING', 'console_output', True)
        }

    @property
    def ledger_rules(self):
        """Get ledger and replenishment rules."""
        units = self.get('LEDGER', 'discrete_units', 'box,case,箱,箱装')
        return {
            'timezone': self.get('LEDGER', 'timezone', 'UTC'),
            'history_days': self.get_int('LEDGER', 'history_days', 30),
            'usage_buffer': self.get_float('LEDGER', 'usage_buffer', 1.2),
            'discrete_units': [u.strip().lower() for u in units.split(',') if u.strip()],
            'rounding_places': self.get_int('LEDGER', 'rounding_places', 2)
        }

    @property
    def batch_config(self):
        """Get batch processing configuration."""
        return {
            'max_workers': self.get_int('BATCH_PROCESS', 'max_workers', 8)
        }

# Global config instance
config = Config()
