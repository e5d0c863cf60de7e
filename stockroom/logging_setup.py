import logging
import logging.handlers
import traceback
from datetime import datetime
from pathlib import Path

from stockroom.config import config


class Logger:
    """Owns the ledger's named loggers.

    Every named logger writes to ``<directory>/<name>.log`` through a rotating
    handler and, when ``console_output`` is on, to stderr as well. Named loggers
    do not propagate, so the root logger only carries console output for
    third-party libraries.
    """

    _instance = None
    _loggers = {}

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super(Logger, cls).__new__(cls)
            cls._instance._initialized = False
        return cls._instance

    def __init__(self):
        if self._initialized:
            return

        settings = config.log_config
        self._level = getattr(logging, settings['level'].upper(), logging.INFO)
        self._formatter = logging.Formatter(settings['format'])
        self._console = settings['console_output']
        self._max_bytes = settings['max_size_mb'] * 1024 * 1024
        self._backups = settings['backup_count']
        self._log_dir = Path(settings['directory'])
        self._log_dir.mkdir(parents=True, exist_ok=True)

        root = logging.getLogger()
        root.setLevel(self._level)
        self._reset_handlers(root)
        if self._console:
            root.addHandler(self._console_handler())

        self._app_logger = self.get_logger('app')
        self._initialized = True

    @staticmethod
    def _reset_handlers(target):
        for handler in list(target.handlers):
            target.removeHandler(handler)

    def _console_handler(self):
        handler = logging.StreamHandler()
        handler.setFormatter(self._formatter)
        return handler

    def _file_handler(self, name):
        handler = logging.handlers.RotatingFileHandler(
            self._log_dir / f"{name}.log",
            maxBytes=self._max_bytes,
            backupCount=self._backups,
            encoding='utf-8'
        )
        handler.setFormatter(self._formatter)
        return handler

    def get_logger(self, name):
        """Return the named logger, creating its handlers on first use."""
        if name not in self._loggers:
            named = logging.getLogger(name)
            named.setLevel(self._level)
            self._reset_handlers(named)
            named.addHandler(self._file_handler(name))
            if self._console:
                named.addHandler(self._console_handler())
            named.propagate = False
            self._loggers[name] = named
        return self._loggers[name]

    def log_exception(self, logger_name, exception, message=None):
        """Log an exception and the traceback being handled.

        Args:
            logger_name: Logger to write to
            exception: The caught exception
            message: Optional context placed before the exception text
        """
        target = self.get_logger(logger_name)
        text = f"{message}: {exception}" if message else str(exception)
        target.error(text)
        target.error(traceback.format_exc())

    @property
    def app_logger(self):
        return self._app_logger

    def batch_start_log(self, process_name, additional_info=None):
        """Record that a batch run started.

        Returns:
            Run context to hand back to ``batch_end_log``
        """
        started = datetime.now()
        batch = self.get_logger('batch')
        batch.info(f"Batch run {process_name} started at {started:%Y-%m-%d %H:%M:%S}")
        if additional_info:
            batch.info(f"{process_name} parameters: {additional_info}")
        return {'process_name': process_name, 'start_time': started, 'additional_info': additional_info}

    def batch_end_log(self, log_info, success=True, result_info=None):
        """Record how a batch run ended and how long it took."""
        finished = datetime.now()
        name = log_info.get('process_name', 'unknown')
        elapsed = finished - log_info.get('start_time', finished)

        batch = self.get_logger('batch')
        outcome = "finished" if success else "failed"
        report = batch.info if success else batch.error
        report(f"Batch run {name} {outcome} after {elapsed}")
        if result_info:
            batch.info(f"{name} results: {result_info}")


# Shared manager instance
logger = Logger()


def get_logger(name):
    """Get a ledger logger by name."""
    return logger.get_logger(name)
