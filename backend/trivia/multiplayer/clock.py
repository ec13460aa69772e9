import logging
import math
import time
from typing import Callable, Optional

logger = logging.getLogger(__name__)


def local_time_ms() -> int:
    return int(time.time() * 1000)


class ClockSync:
    """Maps the local clock onto the store's clock.

    Question start times and answer timestamps are written by the store, so
    countdowns are derived from ``server_now()`` rather than the local clock.
    The offset is estimated from one round trip, assuming symmetric latency.
    """

    def __init__(self, store, local_clock: Optional[Callable[[], int]] = None):
        self.store = store
        self.local_clock = local_clock or local_time_ms
        self.offset_ms = 0
        self.synced = False

    def sample(self) -> int:
        sent = self.local_clock()
        server = self.store.server_time()
        received = self.local_clock()
        self.offset_ms = int(server - (sent + received) / 2)
        self.synced = True
        logger.debug(f"[clock] offset={self.offset_ms}ms rtt={received - sent}ms")
        return self.offset_ms

    def server_now(self) -> int:
        if not self.synced:
            self.sample()
        return self.local_clock() + self.offset_ms

    def seconds_remaining(self, start_ms: Optional[int], time_limit: int, now_ms: Optional[int] = None) -> int:
        return seconds_remaining(start_ms, time_limit, self.server_now() if now_ms is None else now_ms)


def seconds_remaining(start_ms: Optional[int], time_limit: int, now_ms: int) -> int:
    # Start not resolved yet: show the full countdown
    if start_ms is None:
        return time_limit
    elapsed = max(0, math.floor((now_ms - start_ms) / 1000))
    return max(0, time_limit - elapsed)
