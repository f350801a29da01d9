"""
Connection supervisor.

Owns the provider connection for the lifetime of the process:

    DISCONNECTED -> CONNECTING -> ACTIVE
    ACTIVE -> (error | close | heartbeat timeout) -> RECONNECTING
    RECONNECTING -> (fixed delay) -> CONNECTING -> ...

There is no terminal state. Only a provider that cannot be constructed at all
(malformed endpoint) is fatal, and that is raised from start().
"""

import asyncio
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Optional

from tokenwatch.config import HEARTBEAT_INTERVAL, HEARTBEAT_TIMEOUT, RECONNECT_DELAY
from tokenwatch.errors import ProviderError
from tokenwatch.heartbeat import HeartbeatMonitor
from tokenwatch.provider import ChainProvider

logger = logging.getLogger(__name__)


class ConnectionState(Enum):
    DISCONNECTED = "DISCONNECTED"
    CONNECTING = "CONNECTING"
    ACTIVE = "ACTIVE"
    RECONNECTING = "RECONNECTING"


@dataclass
class ConnectionHandle:
    """The active provider. Only ConnectionSupervisor assigns to it."""

    provider: Optional[ChainProvider] = None
    state: ConnectionState = ConnectionState.DISCONNECTED
    ready: asyncio.Event = field(default_factory=asyncio.Event, repr=False)

    def __post_init__(self):
        self.set_state(self.state)

    @property
    def alive(self) -> bool:
        return self.state is ConnectionState.ACTIVE and self.provider is not None

    def set_state(self, state: ConnectionState):
        self.state = state
        if self.alive:
            self.ready.set()
        else:
            self.ready.clear()

    async def wait_active(self) -> ChainProvider:
        """The active provider, waiting out any reconnect in progress."""
        while not self.alive:
            await self.ready.wait()
        return self.provider

    def active(self) -> ChainProvider:
        if self.provider is None:
            raise ProviderError(f"No active connection ({self.state.value})")
        return self.provider


class ConnectionSupervisor:
    def __init__(
        self,
        url: str,
        on_block: Callable[[int], None],
        handle: Optional[ConnectionHandle] = None,
        provider_factory: Callable[[str], ChainProvider] = ChainProvider,
        reconnect_delay: float = RECONNECT_DELAY,
        heartbeat_interval: float = HEARTBEAT_INTERVAL,
        heartbeat_timeout: float = HEARTBEAT_TIMEOUT,
    ):
        self.url = url
        self.handle = handle or ConnectionHandle()
        self.reconnect_delay = reconnect_delay
        self.reconnects = 0
        self._on_block = on_block
        self._provider_factory = provider_factory
        self._reconnect_task: Optional[asyncio.Task] = None
        self.heartbeat = HeartbeatMonitor(
            probe=self._probe,
            on_timeout=self._on_heartbeat_timeout,
            interval=heartbeat_interval,
            timeout=heartbeat_timeout,
        )

    @property
    def state(self) -> ConnectionState:
        return self.handle.state

    def _set_state(self, state: ConnectionState):
        if state is not self.handle.state:
            logger.info("Connection %s -> %s", self.handle.state.value, state.value)
        self.handle.set_state(state)

    async def start(self):
        if not await self._connect():
            self._schedule_reconnect()

    async def stop(self):
        self.heartbeat.stop()
        self._set_state(ConnectionState.DISCONNECTED)
        task, self._reconnect_task = self._reconnect_task, None
        if task is not None:
            task.cancel()
            await asyncio.gather(task, return_exceptions=True)
        await self._teardown()

    def initialize(self):
        """Install exactly one block listener and (re)start the heartbeat."""
        provider = self.handle.active()
        provider.remove_all_listeners("block")
        provider.on("block", self._on_block)
        self.heartbeat.start()

    async def _connect(self) -> bool:
        self._set_state(ConnectionState.CONNECTING)
        # a ProviderError here means the endpoint itself is unusable
        provider = self._provider_factory(self.url)
        provider.on("error", self._on_connection_lost("error"))
        provider.on("close", self._on_connection_lost("close"))
        try:
            await provider.connect()
        except asyncio.CancelledError:
            await provider.destroy()
            raise
        except Exception as e:
            logger.error("Failed to connect to %s: %s", self.url, e)
            await provider.destroy()
            self._set_state(ConnectionState.RECONNECTING)
            return False

        self.handle.provider = provider
        self.initialize()
        self._set_state(ConnectionState.ACTIVE)
        return True

    async def _teardown(self):
        provider, self.handle.provider = self.handle.provider, None
        self.handle.set_state(self.handle.state)
        if provider is not None:
            await provider.destroy()

    async def _probe(self):
        return await self.handle.active().get_block_number()

    def _on_connection_lost(self, event: str):
        def listener(error=None):
            logger.error("WebSocket %s: %s", event, error)
            self._schedule_reconnect()
        return listener

    def _on_heartbeat_timeout(self):
        self._schedule_reconnect()

    def _schedule_reconnect(self):
        if self._reconnect_task is not None and not self._reconnect_task.done():
            return
        self._set_state(ConnectionState.RECONNECTING)
        self.heartbeat.stop()
        if self.handle.provider is not None:
            self.handle.provider.remove_all_listeners("block")
        self._reconnect_task = asyncio.create_task(self._reconnect())

    async def _reconnect(self):
        while True:
            logger.info("Reconnecting in %ss...", self.reconnect_delay)
            await asyncio.sleep(self.reconnect_delay)
            await self._teardown()
            if await self._connect():
                self.reconnects += 1
                return
