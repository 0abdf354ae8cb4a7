import logging
from logging import (
    Logger,
    StreamHandler,
)
import os
import sys
from typing import (
    Dict,
    Optional,
    Tuple,
)

from eth_utils import (
    ExtendedDebugLogger,
    get_extended_debug_logger,
)

from beaconsync._utils.shellart import (
    bold_red,
    bold_yellow,
)


def get_logger(name: str) -> ExtendedDebugLogger:
    """
    Return an ``ExtendedDebugLogger`` for ``name``, creating every ancestor logger as an
    ``ExtendedDebugLogger`` too, so that ``debug2`` is available all the way up.
    """
    parts = name.split('.')
    for idx in range(1, len(parts)):
        ancestor_name = '.'.join(parts[:idx])
        if not isinstance(logging.Logger.manager.loggerDict.get(ancestor_name), Logger):
            get_extended_debug_logger(ancestor_name)
    return get_extended_debug_logger(name)


class BeaconSyncLogFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        record.shortname = record.name.split('.')[-1]  # type: ignore

        if record.levelno >= logging.ERROR:
            return bold_red(super().format(record))
        elif record.levelno >= logging.WARNING:
            return bold_yellow(super().format(record))
        else:
            return super().format(record)


LOG_FORMATTER = BeaconSyncLogFormatter(
    fmt='%(levelname)8s  %(asctime)s  %(shortname)20s  %(message)s',
)


def setup_log_levels(log_levels: Dict[Optional[str], int]) -> None:
    for name, level in log_levels.items():

        # The root logger is configured separately
        if name is None:
            continue

        handler_stream = logging.StreamHandler(sys.stderr)
        handler_stream.setLevel(level)
        handler_stream.setFormatter(LOG_FORMATTER)

        logger = logging.getLogger(name)
        logger.propagate = False
        logger.setLevel(level)
        logger.addHandler(handler_stream)


def setup_stderr_logging(level: int = None) -> Tuple[Logger, StreamHandler]:
    if level is None:
        level = logging.INFO
    logger = logging.getLogger()
    logger.setLevel(level)

    handler_stream = logging.StreamHandler(sys.stderr)
    handler_stream.setLevel(level)

    handler_stream.setFormatter(LOG_FORMATTER)

    logger.addHandler(handler_stream)

    logger.debug('Logging initialized: PID=%s', os.getpid())

    return logger, handler_stream
