"""Logging setup for reposync."""

import logging

from .config import Config

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
DATE_FORMAT = '%Y-%m-%d %H:%M:%S'

LOGGERS = [
    'reposync.git_sync',
    'reposync.scheduler',
    'reposync.tasks',
    'reposync.generate',
    'reposync.config',
    'reposync.cli',
    'reposync.server',
]


class StructuredFormatter(logging.Formatter):
    """Prefixes ``[operation]`` to records logged with an ``operation`` extra."""

    def format(self, record):
        operation = getattr(record, 'operation', None)
        if operation and not str(record.msg).startswith(f"[{operation}] "):
            record.msg = f"[{operation}] {record.msg}"
        return super().format(record)


def setup_logging(config: Config) -> None:
    """Configure console logging for every reposync logger at the configured level."""
    level = getattr(logging, config.log_level)

    logging.basicConfig(level=level, format=LOG_FORMAT, datefmt=DATE_FORMAT)

    formatter = StructuredFormatter(LOG_FORMAT, datefmt=DATE_FORMAT)
    for logger_name in LOGGERS:
        logger = logging.getLogger(logger_name)
        logger.setLevel(level)

        # Add console handler if not already present
        if not logger.handlers:
            handler = logging.StreamHandler()
            handler.setFormatter(formatter)
            logger.addHandler(handler)
            logger.propagate = False
