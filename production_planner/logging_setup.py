# production_planner/logging_setup.py
import logging
import logging.handlers
import traceback
from datetime import datetime
from pathlib import Path

from production_planner.config import config

class Logger:
    """Owns every logger the planner creates and the batch run log."""

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
        self._format = settings['format']
        self._level_value = getattr(logging, settings['level'].upper(), logging.INFO)
        self._log_dir = Path(settings['directory'])
        self._console = settings['console_output']
        self._to_file = settings['file_output']
        self._max_bytes = settings['max_size_mb'] * 1024 * 1024
        self._backups = settings['backup_count']

        self._initialized = True

    def _handlers_for(self, name):
        """Build the console and rotating file handlers for one logger."""
        handlers = []

        if self._to_file:
            self._log_dir.mkdir(parents=True, exist_ok=True)
            handlers.append(logging.handlers.RotatingFileHandler(
                self._log_dir / f"{name}.log",
                maxBytes=self._max_bytes,
                backupCount=self._backups
            ))

        if self._console:
            handlers.append(logging.StreamHandler())

        formatter = logging.Formatter(self._format)
        for handler in handlers:
            handler.setFormatter(formatter)
        return handlers

    def get_logger(self, name):
        """Get a configured logger, creating it on first use.

        Args:
            name: Logger name, usually the module path

        Returns:
            logging.Logger that does not propagate to the root logger
        """
        managed = self._loggers.get(name)
        if managed is not None:
            return managed

        managed = logging.getLogger(name)
        managed.setLevel(self._level_value)
        for handler in list(managed.handlers):
            managed.removeHandler(handler)
        for handler in self._handlers_for(name):
            managed.addHandler(handler)
        managed.propagate = False

        self._loggers[name] = managed
        return managed

    def set_level(self, level):
        """Change the level of every managed logger, including later ones."""
        self._level_value = level
        for managed in self._loggers.values():
            managed.setLevel(level)

    def log_exception(self, logger_name, exception, message=None):
        """Log an error line followed by the current traceback."""
        target = self.get_logger(logger_name)
        text = f"{message}: {exception}" if message else str(exception)
        target.error(text)
        target.error(traceback.format_exc())

    def batch_start_log(self, process_name, additional_info=None):
        """Record the start of a batch run.

        Args:
            process_name: Name of the batch run
            additional_info: Optional run parameters to log

        Returns:
            Run information to hand back to batch_end_log
        """
        run_info = {
            'process_name': process_name,
            'start_time': datetime.now(),
            'additional_info': additional_info
        }

        batch_logger = self.get_logger('batch')
        batch_logger.info(f"Batch run started: {process_name}")
        if additional_info:
            batch_logger.info(f"{process_name} parameters: {additional_info}")

        return run_info

    def batch_end_log(self, log_info, success=True, result_info=None):
        """Record the end of a batch run.

        Args:
            log_info: Value returned by batch_start_log
            success: Whether the run succeeded
            result_info: Optional counts to log

        Returns:
            Duration of the run as a timedelta
        """
        finished = datetime.now()
        process_name = log_info.get('process_name', 'unknown')
        duration = finished - log_info.get('start_time', finished)

        batch_logger = self.get_logger('batch')
        outcome = 'finished' if success else 'failed'
        level = logging.INFO if success else logging.ERROR
        batch_logger.log(level, f"Batch run {outcome}: {process_name} in {duration}")

        if result_info:
            batch_logger.info(f"{process_name} results: {result_info}")

        return duration

# Global logger instance
logger = Logger()

def get_logger(name):
    """Get a logger with the specified name."""
    return logger.get_logger(name)

def log_exception(logger_name, exception, message=None):
    """Log an exception with stack trace."""
    logger.log_exception(logger_name, exception, message)
