"""
Logging configuration for the job status listener.

Console output is short and human oriented; the rotating file log is detailed
and stamps every line with the service name so it can be merged with the logs
of the services consuming the job updates.
"""
import os
import sys
import logging
from logging.handlers import RotatingFileHandler
from typing import Optional

CONSOLE_FORMAT = "%(asctime)s - %(levelname)s - %(message)s"
CONSOLE_DATEFMT = "%H:%M:%S"
FILE_FORMAT = "%(asctime)s - %(service)s - %(name)s - %(levelname)s - %(filename)s:%(lineno)d - %(message)s"
FILE_DATEFMT = "%Y-%m-%d %H:%M:%S"

# Libraries that are chatty at INFO
QUIET_LOGGERS = ("uvicorn", "uvicorn.access", "aio_pika", "aiormq", "redis")


class ServiceContextFilter(logging.Filter):
    """Stamps every record with the service name."""

    def __init__(self, service_name: str):
        super().__init__()
        self.service_name = service_name

    def filter(self, record: logging.LogRecord) -> bool:
        record.service = self.service_name
        return True


class LoggingManager:
    """Installs the service's handlers on the root logger."""

    @staticmethod
    def setup_logging(
            service_name: str,
            log_file_path: Optional[str] = None,
            log_level: int = logging.INFO,
            enable_console: bool = True,
            max_bytes: int = 10 * 1024 * 1024,
            backup_count: int = 5
    ) -> logging.Logger:
        """
        Replace the root logger's handlers with the service's console and file handlers.

        Args:
            service_name: Name of the service logger, also stamped on file records
            log_file_path: Rotating log file; None or empty disables file logging
            log_level: Level for the root logger and the console
            enable_console: Whether to log to stdout
            max_bytes: Size at which the log file rotates
            backup_count: Rotated files to keep

        Returns:
            The service logger
        """
        root_logger = logging.getLogger()
        for handler in list(root_logger.handlers):
            root_logger.removeHandler(handler)
        root_logger.setLevel(log_level)

        context_filter = ServiceContextFilter(service_name)
        if enable_console:
            root_logger.addHandler(LoggingManager._console_handler(log_level, context_filter))
        if log_file_path:
            root_logger.addHandler(
                LoggingManager._file_handler(log_file_path, max_bytes, backup_count, context_filter)
            )

        for name in QUIET_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)

        return logging.getLogger(service_name)

    @staticmethod
    def setup_from_settings(service_name: str, settings) -> logging.Logger:
        """Reconfigure logging from loaded ServiceSettings."""
        return LoggingManager.setup_logging(
            service_name=service_name,
            log_file_path=settings.log_file_path,
            log_level=settings.log_level_number,
        )

    @staticmethod
    def _console_handler(log_level: int, context_filter: logging.Filter) -> logging.Handler:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(CONSOLE_FORMAT, datefmt=CONSOLE_DATEFMT))
        handler.setLevel(log_level)
        handler.addFilter(context_filter)
        return handler

    @staticmethod
    def _file_handler(log_file_path: str, max_bytes: int, backup_count: int,
                      context_filter: logging.Filter) -> logging.Handler:
        log_dir = os.path.dirname(log_file_path)
        if log_dir:
            os.makedirs(log_dir, exist_ok=True)

        handler = RotatingFileHandler(
            filename=log_file_path,
            maxBytes=max_bytes,
            backupCount=backup_count,
            encoding="utf-8"
        )
        handler.setFormatter(logging.Formatter(FILE_FORMAT, datefmt=FILE_DATEFMT))
        # The file keeps everything, whatever the console level
        handler.setLevel(logging.DEBUG)
        handler.addFilter(context_filter)
        return handler
