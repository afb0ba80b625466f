from typing import Optional

from statsd import StatsClient


class ScopedStatsClient:
    """
    A thin wrapper around a statsd client that prefixes every stat with a scope. Calls are
    no-ops until a root client has been installed with set_stats_client.
    """
    _client: Optional[StatsClient] = None

    def __init__(self, prefix: Optional[str] = None, root: Optional["ScopedStatsClient"] = None) -> None:
        self._scope_prefix = prefix
        self._root = root or self

    def get_stats_client(self, scope: str) -> "ScopedStatsClient":
        if not self._scope_prefix:
            prefix = scope
        else:
            prefix = f"{self._scope_prefix}.{scope}"
        return ScopedStatsClient(prefix, self._root)

    @staticmethod
    def is_enabled() -> bool:
        return ScopedStatsClient._client is not None

    def _stat(self, stat: str) -> str:
        return f"{self._scope_prefix}.{stat}" if self._scope_prefix else stat

    def incr(self, stat: str, count: int = 1, rate: float = 1.0) -> None:
        if self.is_enabled():
            self._client.incr(self._stat(stat), count, rate)

    def gauge(self, stat: str, value: int, rate: float = 1.0, delta: bool = False) -> None:
        if self.is_enabled():
            self._client.gauge(self._stat(stat), value, rate, delta)

    def timer(self, stat: str, rate: float = 1.0):
        if self.is_enabled():
            return self._client.timer(self._stat(stat), rate)
        return None


_scoped_stats_client = ScopedStatsClient(None)


def set_stats_client(stats_client: Optional[StatsClient]) -> None:
    ScopedStatsClient._client = stats_client


def get_stats_client(prefix: str) -> ScopedStatsClient:
    return _scoped_stats_client.get_stats_client(prefix)
