import logging
from unittest.mock import MagicMock

from etcdpki.stats import get_stats_client
from etcdpki.stats import set_stats_client
from etcdpki.util import backoff_handler
from etcdpki.util import timeit


@timeit
def _double(value):
    return value * 2


def test_timeit_without_stats():
    assert _double(2) == 4


def test_timeit_with_stats():
    client = MagicMock()
    set_stats_client(client)
    try:
        assert _double(3) == 6
    finally:
        set_stats_client(None)

    client.timer.assert_called_once_with(f"{__name__}._double", 1.0)
    client.timer.return_value.start.assert_called_once()
    client.timer.return_value.stop.assert_called_once()


def test_scoped_stats_client_prefixes():
    client = MagicMock()
    set_stats_client(client)
    try:
        get_stats_client("etcdpki.controllers.leaf").incr("leaf.issued")
    finally:
        set_stats_client(None)

    client.incr.assert_called_once_with("etcdpki.controllers.leaf.leaf.issued", 1, 1.0)


def test_backoff_handler_logs(caplog):
    with caplog.at_level(logging.WARNING):
        backoff_handler({"wait": 1.5, "tries": 2, "target": "read_namespaced_secret"})

    assert "Backing off 1.5 seconds after 2 tries" in caplog.text
