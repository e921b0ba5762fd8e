import logging
import logging.handlers
from pathlib import Path
from datetime import datetime

from fulfillment_readiness.config import config

# Module loggers (``logging.getLogger(__name__)``) propagate up to this one.
PACKAGE_LOGGER = 'fulfillment_readiness'


class Logger:
    """Logging manager for the Fulfillment Readiness engine.

    Each named logger writes to ``<directory>/<name>.log`` through a rotating
    handler and, optionally, to the console. The service modules log under the
    package logger, so their records land in ``fulfillment_readiness.log``.
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

        self._log_config = config.log_config
        self._log_dir = Path(self._log_config['directory'])
        self._formatter = logging.Formatter(self._log_config['format'])

        if self._log_config['file_output']:
            self._log_dir.mkdir(parents=True, exist_ok=True)

        root_logger = logging.getLogger()
        root_logger.setLevel(self._level())
        self._replace_handlers(root_logger, self._console_handlers())

        self.get_logger(PACKAGE_LOGGER)

        self._initialized = True

    def _level(self):
        level_name = self._log_config['level'].upper()
        return getattr(logging, level_name, logging.INFO)

    def _console_handlers(self):
        if not self._log_config['console_output']:
            return []
        handler = logging.StreamHandler()
        handler.setFormatter(self._formatter)
        return [handler]

    def _file_handlers(self, name):
        if not self._log_config['file_output']:
            return []
        handler = logging.handlers.RotatingFileHandler(
            self._log_dir / f"{name}.log",
            maxBytes=self._log_config['max_size_mb'] * 1024 * 1024,
            backupCount=self._log_config['backup_count']
        )
        handler.setFormatter(self._formatter)
        return [handler]

    @staticmethod
    def _replace_handlers(target, handlers):
        for handler in target.handlers[:]:
            target.removeHandler(handler)
            handler.close()
        for handler in handlers:
            target.addHandler(handler)

    def get_logger(self, name):
        """Get a logger with the specified name.

        Args:
            name: Name of the logger, also the log file name

        Returns:
            Configured logger instance
        """
        if name in self._loggers:
            return self._loggers[name]

        logger = logging.getLogger(name)
        logger.setLevel(self._level())

        handlers = self._file_handlers(name) + self._console_handlers()
        # Silent when both outputs are off
        self._replace_handlers(logger, handlers or [logging.NullHandler()])
        logger.propagate = False

        self._loggers[name] = logger
        return logger

    def log_exception(self, logger_name, exception, message=None):
        """Log an exception with its stack trace.

        Args:
            logger_name: Logger name
            exception: Exception object
            message: Optional message to include
        """
        text = f"{message}: {exception}" if message else str(exception)
        self.get_logger(logger_name).error(text, exc_info=exception)

    def batch_start_log(self, process_name, additional_info=None):
        """Log the start of an engine batch (resolution, supply check, decrement).

        Args:
            process_name: Name of the engine operation
            additional_info: Optional batch parameters, logged at DEBUG

        Returns:
            Dictionary to hand back to ``batch_end_log``
        """
        batch_logger = self.get_logger('batch')
        start_time = datetime.now()

        batch_logger.info(f"Starting batch: {process_name}")
        if additional_info:
            batch_logger.debug(f"Batch info: {additional_info}")

        return {
            'process_name': process_name,
            'start_time': start_time,
            'additional_info': additional_info
        }

    def batch_end_log(self, log_info, success=True, result_info=None):
        """Log the end of an engine batch.

        Args:
            log_info: Dictionary returned by batch_start_log
            success: Whether the batch succeeded
            result_info: Optional counts, e.g. results per status
        """
        batch_logger = self.get_logger('batch')
        end_time = datetime.now()

        process_name = log_info.get('process_name', 'Unknown')
        duration = end_time - log_info.get('start_time', end_time)
        summary = f" {result_info}" if result_info else ''

        if success:
            batch_logger.info(f"Completed batch: {process_name} in {duration}{summary}")
        else:
            batch_logger.error(f"Failed batch: {process_name} after {duration}{summary}")


# Global logger instance
logger = Logger()


def get_logger(name):
    """Get a logger with the specified name."""
    return logger.get_logger(name)


def log_exception(logger_name, exception, message=None):
    """Log an exception with its stack trace."""
    logger.log_exception(logger_name, exception, message)
