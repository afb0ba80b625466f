import logging
from functools import wraps
from typing import Any
from typing import Callable
from typing import Dict
from typing import TypeVar

from etcdpki.stats import get_stats_client

logger = logging.getLogger(__name__)

STATUS_SUCCESS = 0
STATUS_FAILURE = 1
STATUS_KEYBOARD_INTERRUPT = 130

F = TypeVar("F", bound=Callable[..., Any])


def timeit(method: F) -> F:
    """Time `method` through the stats client of its module, when stats are enabled."""
    @wraps(method)
    def timed(*args, **kwargs):
        stats_client = get_stats_client(method.__module__)
        if not stats_client.is_enabled():
            return method(*args, **kwargs)
        timer = stats_client.timer(method.__name__)
        timer.start()
        try:
            return method(*args, **kwargs)
        finally:
            timer.stop()

    return timed  # type: ignore


def backoff_handler(details: Dict) -> None:
    """Log a warning each time a backoff-decorated call is retried."""
    logger.warning(
        "Backing off {wait:0.1f} seconds after {tries} tries. Calling function {target}".format(**details),
    )
