import asyncio
import logging
from typing import Optional, Set

from tokenwatch.pipeline import ContractDiscoveryPipeline
from tokenwatch.supervisor import ConnectionHandle

logger = logging.getLogger(__name__)


class BlockIngestor:
    """
    Turns block notifications into discovery pipelines.

    `handle_block` is registered as the provider's block listener. It never
    waits for a block to be processed, so blocks and the contract creations
    inside them are worked on concurrently. Every spawned task is kept in
    `tasks` until it finishes. A head that skips ahead of the last one seen
    also schedules the blocks in between, so blocks mined while the
    connection was being rebuilt are still covered.
    """

    def __init__(self, handle: ConnectionHandle, pipeline: ContractDiscoveryPipeline,
                 max_concurrent: int = 0):
        self.handle = handle
        self.pipeline = pipeline
        self.tasks: Set[asyncio.Task] = set()
        self._limit: Optional[asyncio.Semaphore] = asyncio.Semaphore(max_concurrent) if max_concurrent else None
        self.blocks_seen = 0
        self.last_block = 0
        self.contract_creations = 0

    @property
    def in_flight(self) -> int:
        return len(self.tasks)

    def _spawn(self, coro) -> asyncio.Task:
        task = asyncio.create_task(coro)
        self.tasks.add(task)
        task.add_done_callback(self.tasks.discard)
        return task

    def handle_block(self, block_number: int) -> asyncio.Task:
        self.blocks_seen += 1
        if self.last_block and block_number > self.last_block + 1:
            # heads missed while the connection was down
            logger.warning("Backfilling blocks %d-%d", self.last_block + 1, block_number - 1)
            for missed in range(self.last_block + 1, block_number):
                self._spawn(self.process_block(missed))
        self.last_block = max(self.last_block, block_number)
        return self._spawn(self.process_block(block_number))

    async def process_block(self, block_number: int):
        try:
            block = await self.handle.active().get_block_with_transactions(block_number)
        except Exception as e:
            logger.error("Error in block %d: %s", block_number, e)
            return

        creations = [tx for tx in block.transactions if tx.is_contract_creation]
        if creations:
            logger.info("Block %d | %d txs | %d new contracts", block_number, len(block.transactions), len(creations))

        for tx in creations:
            self.contract_creations += 1
            self._spawn(self._discover(tx, block_number))

    async def _discover(self, tx, block_number: int):
        if self._limit is None:
            return await self.pipeline.process(tx, block_number)
        async with self._limit:
            return await self.pipeline.process(tx, block_number)

    async def drain(self):
        """Wait until every spawned block and discovery task has finished."""
        while self.tasks:
            await asyncio.gather(*list(self.tasks), return_exceptions=True)

    async def cancel_all(self):
        tasks = list(self.tasks)
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
