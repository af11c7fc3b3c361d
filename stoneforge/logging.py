import logging
import logging.config
import os
import time
from functools import wraps
from typing import Optional

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def get_logging_config(level: Optional[str] = None) -> dict:
    """Build a dictConfig for the ``stoneforge`` loggers.

    ``level`` falls back to ``STONEFORGE_LOG_LEVEL``, then INFO. Stage timings
    on ``stoneforge.timing`` are only shown at DEBUG.
    """
    level = (level or os.environ.get('STONEFORGE_LOG_LEVEL', 'INFO')).upper()
    timing_level = 'DEBUG' if level == 'DEBUG' else 'WARNING'

    return {
        'version': 1,
        'disable_existing_loggers': False,
        'formatters': {'default': {'format': LOG_FORMAT}},
        'handlers': {
            'console': {
                'class': 'logging.StreamHandler',
                'formatter': 'default',
                'stream': 'ext://sys.stdout',
            },
        },
        'loggers': {
            name: {'level': lvl, 'handlers': ['console'], 'propagate': False}
            for name, lvl in (('stoneforge', level), ('stoneforge.timing', timing_level))
        },
    }


def configure_logging(level: Optional[str] = None, config: Optional[dict] = None) -> None:
    """Apply ``config``, or :func:`get_logging_config` for ``level``."""
    logging.config.dictConfig(config if config is not None else get_logging_config(level))


_timing_log = logging.getLogger('stoneforge.timing')


def timed(func):
    """Decorator to log the execution time of a pipeline stage."""

    @wraps(func)
    def wrapper(*args, **kwargs):
        t0 = time.perf_counter()
        result = func(*args, **kwargs)
        t1 = time.perf_counter()
        _timing_log.debug("%-25s: %0.3fs", func.__name__, t1 - t0)
        return result

    return wrapper
