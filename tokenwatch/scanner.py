"""
Token scanner - wires the connection, ingestion and discovery pieces together.

    ConnectionSupervisor --block--> BlockIngestor --tx--> ContractDiscoveryPipeline
          |                                                   |
    HeartbeatMonitor                               MetadataEnricher -> TokenSink
"""

import logging

from tokenwatch.config import Settings
from tokenwatch.enricher import MetadataEnricher
from tokenwatch.ingestor import BlockIngestor
from tokenwatch.pipeline import ContractDiscoveryPipeline
from tokenwatch.provider import ChainProvider
from tokenwatch.sink import TokenSink
from tokenwatch.supervisor import ConnectionHandle, ConnectionSupervisor

logger = logging.getLogger(__name__)


class TokenScanner:
    def __init__(self, settings: Settings, provider_factory=ChainProvider,
                 enricher: MetadataEnricher = None, sink: TokenSink = None):
        self.settings = settings
        self.handle = ConnectionHandle()
        self.sink = sink or TokenSink(recent_max=settings.recent_tokens_max)
        self.enricher = enricher or MetadataEnricher(settings.api_key, api_url=settings.etherscan_api)
        self.pipeline = ContractDiscoveryPipeline(
            self.handle, self.enricher, self.sink, grace_period=settings.grace_period,
        )
        self.ingestor = BlockIngestor(
            self.handle, self.pipeline, max_concurrent=settings.max_concurrent_discoveries,
        )
        self.supervisor = ConnectionSupervisor(
            settings.wss_url,
            on_block=self.ingestor.handle_block,
            handle=self.handle,
            provider_factory=provider_factory,
            reconnect_delay=settings.reconnect_delay,
            heartbeat_interval=settings.heartbeat_interval,
            heartbeat_timeout=settings.heartbeat_timeout,
        )

    async def start(self):
        logger.info("TOKENWATCH - NEW TOKEN MONITOR")
        logger.info("=" * 60)
        logger.info("Node: %s", self.settings.wss_url)
        logger.info("Grace period: %ss", self.settings.grace_period)
        logger.info("Heartbeat: every %ss, timeout %ss", self.settings.heartbeat_interval, self.settings.heartbeat_timeout)
        logger.info("=" * 60)
        await self.supervisor.start()

    async def stop(self):
        await self.supervisor.stop()
        await self.ingestor.cancel_all()

    def stats(self) -> dict:
        return {
            "state": self.supervisor.state.value,
            "blocks_seen": self.ingestor.blocks_seen,
            "last_block": self.ingestor.last_block,
            "contract_creations": self.ingestor.contract_creations,
            "in_flight": self.ingestor.in_flight,
            "tokens_found": self.sink.tokens_found,
            "reconnects": self.supervisor.reconnects,
        }
