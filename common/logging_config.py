import logging
import os
import sys
from typing import Optional


class LineBreakFilter(logging.Filter):
    """Filter that flattens CR/LF in log records so client-supplied names cannot forge lines."""

    def filter(self, record: logging.LogRecord) -> bool:
        """Escape line breaks in the message and its arguments."""
        if isinstance(record.msg, str):
            record.msg = self._flatten(record.msg)

        if hasattr(record, 'args') and record.args:
            if isinstance(record.args, dict):
                record.args = {k: self._flatten(v) for k, v in record.args.items()}
            elif isinstance(record.args, tuple):
                record.args = tuple(self._flatten(arg) for arg in record.args)

        return True

    def _flatten(self, value):
        """Replace line breaks in string values."""
        if isinstance(value, str):
            return value.replace('\r', '\\r').replace('\n', '\\n')
        return value


def setup_logging(
    component_name: str,
    log_level: Optional[str] = None
) -> logging.Logger:
    """
    Set up logging configuration for a component.

    Handlers are attached to the component logger and to the 'fileshare' and
    'common' package loggers so module loggers created with __name__ share
    the same output.

    Args:
        component_name: Name of the component (e.g., 'fileshare', 'cli')
        log_level: Log level (DEBUG, INFO, WARNING, ERROR). Defaults to LOG_LEVEL env var or INFO

    Returns:
        Configured logger instance
    """
    if log_level is None:
        log_level = os.getenv('LOG_LEVEL', 'INFO')

    level = getattr(logging, log_level.upper(), logging.INFO)

    formatter = logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )

    for name in dict.fromkeys((component_name, 'fileshare', 'common')):
        package_logger = logging.getLogger(name)
        package_logger.setLevel(level)

        if package_logger.handlers:
            for handler in package_logger.handlers:
                handler.setLevel(level)
            continue

        handler = logging.StreamHandler(sys.stdout)
        handler.setLevel(level)
        handler.setFormatter(formatter)
        handler.addFilter(LineBreakFilter())

        package_logger.addHandler(handler)
        package_logger.propagate = False

    return logging.getLogger(component_name)


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger with the given name.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Logger instance
    """
    return logging.getLogger(name)
