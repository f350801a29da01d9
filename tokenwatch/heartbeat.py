import asyncio
import logging
from typing import Awaitable, Callable, Optional

from tokenwatch.config import HEARTBEAT_INTERVAL, HEARTBEAT_TIMEOUT

logger = logging.getLogger(__name__)


class HeartbeatMonitor:
    """
    Periodic liveness probe for the streaming connection.

    Every `interval` seconds `probe()` is raced against `timeout`. A probe
    that errors is logged and retried on the next cycle. A probe that times
    out is cancelled, the cycle stops for good and `on_timeout()` is called
    once; the owner is expected to rebuild the connection and `start()` again.
    """

    def __init__(
        self,
        probe: Callable[[], Awaitable],
        on_timeout: Callable[[], None],
        interval: float = HEARTBEAT_INTERVAL,
        timeout: float = HEARTBEAT_TIMEOUT,
    ):
        self._probe = probe
        self._on_timeout = on_timeout
        self.interval = interval
        self.timeout = timeout
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self):
        self.stop()
        self._task = asyncio.create_task(self._run())

    def stop(self):
        if self._task is not None:
            self._task.cancel()
            self._task = None

    async def _run(self):
        while True:
            await asyncio.sleep(self.interval)
            if not await self.beat():
                return

    async def beat(self) -> bool:
        """Run one probe cycle. Returns False when the connection is lost."""
        try:
            await asyncio.wait_for(self._probe(), timeout=self.timeout)
        except asyncio.TimeoutError:
            logger.warning("Heartbeat timeout. Connection might be lost.")
            # this cycle ends here; start() must not cancel the caller below
            if self._task is asyncio.current_task():
                self._task = None
            self._on_timeout()
            return False
        except Exception as e:
            logger.error("Heartbeat check failed: %s", e)
        return True
